"""Tests for wallet state monitoring."""

import time
from unittest.mock import MagicMock

import pytest

from namewallet.features.monitoring.events import (
    BalanceChanged,
    CallbackNotificationSink,
    EncryptionStatusChanged,
    NumTransactionsChanged,
    TransactionUpdated,
)
from namewallet.features.monitoring.service import WalletStateMonitor
from namewallet.features.names.service import NameRegistrationService
from namewallet.shared.config import RegistrationConfig
from namewallet.shared.protocols import EncryptionStatus


@pytest.fixture
def service(wallet, chain):
    return NameRegistrationService(wallet, chain)


@pytest.fixture
def monitor(service, wallet, chain, sink):
    return WalletStateMonitor(service, wallet, chain, notifier=sink)


class TestCallbackNotificationSink:
    def test_dispatches_by_event_type(self):
        notifier = CallbackNotificationSink()
        balances, counts = [], []
        notifier.subscribe(BalanceChanged, balances.append)
        notifier.subscribe(NumTransactionsChanged, counts.append)

        notifier.publish(BalanceChanged(1, 2, 3))

        assert balances == [BalanceChanged(1, 2, 3)]
        assert counts == []

    def test_unsubscribe(self):
        notifier = CallbackNotificationSink()
        received = []
        notifier.subscribe(BalanceChanged, received.append)
        notifier.unsubscribe(BalanceChanged, received.append)
        notifier.unsubscribe(BalanceChanged, received.append)

        notifier.publish(BalanceChanged(1, 2, 3))
        assert received == []

    def test_callback_error_does_not_stop_others(self):
        notifier = CallbackNotificationSink()
        received = []
        notifier.subscribe(BalanceChanged, MagicMock(side_effect=RuntimeError("boom")))
        notifier.subscribe(BalanceChanged, received.append)

        notifier.publish(BalanceChanged(1, 2, 3))
        assert len(received) == 1


class TestWalletStateMonitor:
    def test_poll_on_new_block_checks_balance(self, monitor, sink, wallet):
        monitor.poll()

        assert sink.of_type(BalanceChanged) == [BalanceChanged(wallet.balance, 0, 0)]
        assert monitor.cached_height == 20000

    def test_poll_without_new_block_does_nothing(self, monitor, sink):
        monitor.poll()
        sink.events.clear()

        assert monitor.poll() is None
        assert sink.events == []

    def test_unchanged_balance_is_not_republished(self, monitor, sink, chain):
        monitor.poll()
        chain.height += 1
        monitor.poll()
        assert len(sink.of_type(BalanceChanged)) == 1

    def test_poll_finalizes_mature_reveals(self, monitor, service, wallet, chain):
        result = service.name_new("d/alice")
        chain.depths[result.commitment_txid] = 12

        report = monitor.poll()

        assert report.revealed == [b"d/alice"]
        assert len(wallet.broadcasted) == 1

    def test_no_reveals_during_initial_sync(self, monitor, service, wallet, chain):
        result = service.name_new("d/alice")
        chain.depths[result.commitment_txid] = 12
        chain.initial_sync = True

        assert monitor.poll() is None
        assert wallet.broadcasted == []
        assert b"d/alice" in service.store

    def test_height_read_failure_skips_poll(self, monitor, chain, sink):
        chain.height_error = RuntimeError("node down")
        assert monitor.poll() is None
        assert sink.events == []
        assert monitor.cached_height is None

    def test_balance_read_failure_still_finalizes(self, monitor, service, wallet, chain, sink):
        result = service.name_new("d/alice")
        chain.depths[result.commitment_txid] = 12
        wallet.balance_error = RuntimeError("wallet locked")

        report = monitor.poll()

        assert report.revealed == [b"d/alice"]
        assert sink.of_type(BalanceChanged) == []
        assert monitor.cached_height == 20000

    def test_update_transaction(self, monitor, sink, wallet):
        wallet.fund_and_broadcast(b"\x00", 1)
        monitor.update_transaction("ab" * 32, 1)

        assert sink.of_type(TransactionUpdated) == [TransactionUpdated("ab" * 32, 1)]
        assert sink.of_type(NumTransactionsChanged) == [NumTransactionsChanged(1)]

        monitor.update_transaction("ab" * 32, 1)
        assert len(sink.of_type(NumTransactionsChanged)) == 1

    def test_update_status(self, monitor, sink, wallet):
        monitor.update_status()
        monitor.update_status()
        wallet.encryption_status = EncryptionStatus.LOCKED
        monitor.update_status()

        assert sink.of_type(EncryptionStatusChanged) == [
            EncryptionStatusChanged(EncryptionStatus.UNENCRYPTED),
            EncryptionStatusChanged(EncryptionStatus.LOCKED),
        ]

    def test_works_without_notifier(self, service, wallet, chain):
        monitor = WalletStateMonitor(service, wallet, chain)
        monitor.poll()
        monitor.update_status()

    def test_start_stop(self, service, wallet, chain):
        config = RegistrationConfig(poll_interval_seconds=0.01)
        monitor = WalletStateMonitor(service, wallet, chain, config=config)

        monitor.start()
        deadline = time.time() + 2.0
        while monitor.cached_height is None and time.time() < deadline:
            time.sleep(0.01)
        monitor.stop()

        assert monitor.cached_height == 20000
        assert monitor.is_running is False
