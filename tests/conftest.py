import hashlib
import itertools
import threading
import time

import base58
import pytest

from namewallet.features.names import policy
from namewallet.features.names.models import (
    OwnershipRecord,
    PersistedReveal,
    Transaction,
    TxOutput,
)
from namewallet.features.names.store import EncryptedRevealJournal
from namewallet.shared.config import RegistrationConfig
from namewallet.shared.protocols import EncryptionStatus


def make_address(seed: str, version: int = 0x34) -> str:
    digest = hashlib.sha256(seed.encode()).digest()[:20]
    return base58.b58encode_check(bytes([version]) + digest).decode("ascii")


def make_txid(seed: str) -> str:
    return hashlib.sha256(seed.encode()).hexdigest()


class FakeWallet:
    """In-memory wallet collaborator recording every call the name layer makes."""

    def __init__(self, journal: EncryptedRevealJournal | None = None):
        self.balance = 10 * policy.COIN
        self.unconfirmed_balance = 0
        self.immature_balance = 0
        self.encryption_status = EncryptionStatus.UNENCRYPTED
        self.transactions: dict[str, Transaction] = {}
        self.funded: list[tuple[bytes, int]] = []
        self.built: list[tuple[list[TxOutput], Transaction, int]] = []
        self.broadcasted: list[Transaction] = []
        self.reserved_keys: list[str] = []
        self.persisted: dict[bytes, PersistedReveal] = {}
        self.erased: list[bytes] = []
        self.journal = journal

        self.fund_error: Exception | None = None
        self.build_error: Exception | None = None
        self.broadcast_error: Exception | None = None
        self.lookup_error: Exception | None = None
        self.balance_error: Exception | None = None
        self.fund_delay = 0.0
        self.required_fee = 10_000

        self._counter = itertools.count(1)
        self._lock = threading.Lock()

    def _next_txid(self) -> str:
        with self._lock:
            return make_txid(f"tx-{next(self._counter)}")

    def get_balance(self) -> int:
        if self.balance_error is not None:
            raise self.balance_error
        return self.balance

    def get_unconfirmed_balance(self) -> int:
        return self.unconfirmed_balance

    def get_immature_balance(self) -> int:
        return self.immature_balance

    def get_num_transactions(self) -> int:
        return len(self.transactions)

    def get_encryption_status(self) -> EncryptionStatus:
        return self.encryption_status

    def fund_and_broadcast(self, script: bytes, value: int) -> str:
        if self.fund_delay:
            time.sleep(self.fund_delay)
        if self.fund_error is not None:
            raise self.fund_error
        txid = self._next_txid()
        self.transactions[txid] = Transaction(
            txid=txid, outputs=(TxOutput(script=script, value=value),), raw=b"funded"
        )
        self.funded.append((script, value))
        return txid

    def build_transaction_from_existing_output(self, outputs, source_tx, output_index):
        if self.build_error is not None:
            raise self.build_error
        self.built.append((list(outputs), source_tx, output_index))
        tx = Transaction(txid=self._next_txid(), outputs=tuple(outputs), raw=b"signed")
        return tx, self.required_fee

    def broadcast(self, tx: Transaction) -> None:
        if self.broadcast_error is not None:
            raise self.broadcast_error
        self.broadcasted.append(tx)
        self.transactions[tx.txid] = tx

    def lookup_transaction(self, txid: str) -> Transaction | None:
        if self.lookup_error is not None:
            raise self.lookup_error
        return self.transactions.get(txid)

    def persist_pending_reveal(self, name, source_txid, randomness, data, tx) -> None:
        record = PersistedReveal(
            name=name,
            source_txid=source_txid,
            randomness=randomness,
            data=data,
            reveal_tx=tx,
        )
        self.persisted[name] = record
        if self.journal is not None:
            self.journal.persist(record)

    def erase_pending_reveal(self, name: bytes) -> None:
        self.erased.append(name)
        self.persisted.pop(name, None)
        if self.journal is not None:
            self.journal.erase(name)

    def load_pending_reveals(self) -> list[PersistedReveal]:
        if self.journal is not None:
            return self.journal.load()
        return list(self.persisted.values())

    def reserve_destination_key(self) -> str:
        address = make_address(f"key-{len(self.reserved_keys)}")
        self.reserved_keys.append(address)
        return address


class FakeChainIndex:
    def __init__(self, height: int = 20000):
        self.height = height
        self.initial_sync = False
        self.records: dict[bytes, OwnershipRecord] = {}
        self.depths: dict[str, int] = {}
        self.pending: dict[bytes, list[str]] = {}
        self.lookup_error: Exception | None = None
        self.height_error: Exception | None = None
        self.testnet = False

    def current_height(self) -> int:
        if self.height_error is not None:
            raise self.height_error
        return self.height

    def is_initial_sync(self) -> bool:
        return self.initial_sync

    def lookup_last_ownership_record(self, name: bytes) -> OwnershipRecord | None:
        if self.lookup_error is not None:
            raise self.lookup_error
        return self.records.get(name)

    def expiration_depth(self, record_height: int) -> int:
        return policy.expiration_depth(record_height)

    def confirmation_depth(self, txid: str) -> int:
        return self.depths.get(txid, 0)

    def network_fee(self, height: int) -> int:
        return policy.network_fee(height, testnet=self.testnet)

    def pending_broadcast_operations(self, name: bytes) -> list[str]:
        return list(self.pending.get(name, []))


class RecordingSink:
    def __init__(self):
        self.events: list[object] = []

    def publish(self, event: object) -> None:
        self.events.append(event)

    def of_type(self, event_type: type) -> list[object]:
        return [e for e in self.events if isinstance(e, event_type)]


@pytest.fixture
def wallet():
    return FakeWallet()


@pytest.fixture
def chain():
    return FakeChainIndex()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def journal(tmp_path):
    return EncryptedRevealJournal(tmp_path, "correct horse battery staple")


@pytest.fixture
def config(tmp_path):
    return RegistrationConfig(storage_dir=tmp_path)


@pytest.fixture
def address():
    return make_address


@pytest.fixture
def journal_wallet(journal):
    return FakeWallet(journal=journal)
