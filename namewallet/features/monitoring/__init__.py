"""Wallet state monitoring feature for the name wallet."""

from namewallet.features.monitoring.events import (
    BalanceChanged,
    CallbackNotificationSink,
    EncryptionStatusChanged,
    NumTransactionsChanged,
    TransactionUpdated,
)
from namewallet.features.monitoring.service import WalletStateMonitor

__all__ = [
    "WalletStateMonitor",
    "CallbackNotificationSink",
    "BalanceChanged",
    "TransactionUpdated",
    "NumTransactionsChanged",
    "EncryptionStatusChanged",
]
