"""Periodic wallet state polling.

Every tick compares the chain height with the last one seen. A new block
refreshes the cached balances and, once the node has finished its initial
sync, hands the pending name registrations to the registration service so
matured commitments get their reveal broadcast.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from namewallet.features.monitoring.events import (
    BalanceChanged,
    EncryptionStatusChanged,
    NumTransactionsChanged,
    TransactionUpdated,
)
from namewallet.features.names.models import FinalizeReport
from namewallet.features.names.service import NameRegistrationService
from namewallet.shared.config import RegistrationConfig
from namewallet.shared.protocols import (
    ChainIndexProtocol,
    EncryptionStatus,
    NotificationSink,
    WalletProtocol,
)

logger = logging.getLogger(__name__)


@dataclass
class WalletSnapshot:
    balance: int | None = None
    unconfirmed_balance: int | None = None
    immature_balance: int | None = None
    num_transactions: int | None = None
    encryption_status: EncryptionStatus | None = None
    height: int | None = None


class WalletStateMonitor:
    def __init__(
        self,
        service: NameRegistrationService,
        wallet: WalletProtocol,
        chain: ChainIndexProtocol,
        notifier: NotificationSink | None = None,
        config: RegistrationConfig | None = None,
    ):
        self.service = service
        self.wallet = wallet
        self.chain = chain
        self.notifier = notifier
        self.config = config or service.config
        self._cached = WalletSnapshot()
        self._running = False
        self._stop_event = threading.Event()
        self._monitor_thread: threading.Thread | None = None
        self._lock = threading.Lock()

    @property
    def cached_height(self) -> int | None:
        with self._lock:
            return self._cached.height

    @property
    def is_running(self) -> bool:
        return self._running

    def _publish(self, event: object) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier.publish(event)
        except Exception as e:
            logger.error("Error publishing %s: %s", type(event).__name__, e)

    def check_balance_changed(self) -> bool:
        balance = self.wallet.get_balance()
        unconfirmed = self.wallet.get_unconfirmed_balance()
        immature = self.wallet.get_immature_balance()

        with self._lock:
            changed = (
                balance != self._cached.balance
                or unconfirmed != self._cached.unconfirmed_balance
                or immature != self._cached.immature_balance
            )
            if changed:
                self._cached.balance = balance
                self._cached.unconfirmed_balance = unconfirmed
                self._cached.immature_balance = immature

        if changed:
            self._publish(BalanceChanged(balance, unconfirmed, immature))
        return changed

    def poll(self) -> FinalizeReport | None:
        """Run one polling tick; returns the finalize report when one ran."""
        try:
            height = self.chain.current_height()
        except Exception as e:
            logger.warning("Could not read chain height, skipping poll: %s", e)
            return None

        with self._lock:
            if height == self._cached.height:
                return None
            self._cached.height = height

        try:
            self.check_balance_changed()
        except Exception as e:
            logger.warning("Could not read wallet balances at height %d: %s", height, e)

        try:
            syncing = self.chain.is_initial_sync()
        except Exception as e:
            logger.warning("Could not read sync state, skipping reveals: %s", e)
            return None
        if syncing:
            logger.debug("Initial sync in progress at height %d", height)
            return None

        return self.service.finalize_pending_reveals(height)

    def update_transaction(self, txid: str, status: int) -> None:
        self._publish(TransactionUpdated(txid=txid, status=status))
        self.check_balance_changed()

        count = self.wallet.get_num_transactions()
        with self._lock:
            changed = count != self._cached.num_transactions
            self._cached.num_transactions = count
        if changed:
            self._publish(NumTransactionsChanged(count=count))

    def update_status(self) -> None:
        status = self.wallet.get_encryption_status()
        with self._lock:
            changed = status != self._cached.encryption_status
            self._cached.encryption_status = status
        if changed:
            self._publish(EncryptionStatusChanged(status=status))

    def start(self) -> None:
        if self._running:
            return

        self._running = True
        self._stop_event.clear()
        self._monitor_thread = threading.Thread(target=self._monitor_loop, daemon=True)
        self._monitor_thread.start()
        logger.info("Wallet state monitor started")

    def stop(self) -> None:
        self._running = False
        self._stop_event.set()
        if self._monitor_thread:
            self._monitor_thread.join(timeout=2.0)
            self._monitor_thread = None
        logger.info("Wallet state monitor stopped")

    def _monitor_loop(self) -> None:
        while self._running:
            try:
                self.poll()
            except Exception as e:
                logger.error("Error in wallet state monitor loop: %s", e)
            self._stop_event.wait(self.config.poll_interval_seconds)
