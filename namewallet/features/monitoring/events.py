"""Wallet state notifications published by the state monitor."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable

from namewallet.shared.protocols import EncryptionStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BalanceChanged:
    balance: int
    unconfirmed_balance: int
    immature_balance: int


@dataclass(frozen=True)
class TransactionUpdated:
    txid: str
    status: int


@dataclass(frozen=True)
class NumTransactionsChanged:
    count: int


@dataclass(frozen=True)
class EncryptionStatusChanged:
    status: EncryptionStatus


class CallbackNotificationSink:
    """Dispatches published events to callbacks registered per event type."""

    def __init__(self):
        self._callbacks: dict[type, list[Callable[[Any], None]]] = {}
        self._lock = threading.Lock()

    def subscribe(self, event_type: type, callback: Callable[[Any], None]) -> None:
        with self._lock:
            self._callbacks.setdefault(event_type, []).append(callback)

    def unsubscribe(self, event_type: type, callback: Callable[[Any], None]) -> None:
        with self._lock:
            try:
                self._callbacks.get(event_type, []).remove(callback)
            except ValueError:
                pass

    def publish(self, event: Any) -> None:
        with self._lock:
            callbacks = list(self._callbacks.get(type(event), []))
        for callback in callbacks:
            try:
                callback(event)
            except Exception as e:
                logger.error("Error in callback for %s: %s", type(event).__name__, e)
