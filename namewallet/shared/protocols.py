"""Collaborator interfaces consumed by the name registration core."""

from __future__ import annotations

from enum import Enum
from typing import Any, Protocol, Sequence

from namewallet.features.names.models import (
    OwnershipRecord,
    PersistedReveal,
    Transaction,
    TxOutput,
)


class EncryptionStatus(Enum):
    UNENCRYPTED = "unencrypted"
    LOCKED = "locked"
    UNLOCKED = "unlocked"


class WalletProtocol(Protocol):
    def get_balance(self) -> int: ...

    def get_unconfirmed_balance(self) -> int: ...

    def get_immature_balance(self) -> int: ...

    def get_num_transactions(self) -> int: ...

    def get_encryption_status(self) -> EncryptionStatus: ...

    def fund_and_broadcast(self, script: bytes, value: int) -> str: ...

    def build_transaction_from_existing_output(
        self,
        outputs: Sequence[TxOutput],
        source_tx: Transaction,
        output_index: int,
    ) -> tuple[Transaction, int]:
        """Fund, sign and return ``(tx, fee)``.

        Raises ``TransactionBuildError`` carrying the required fee on failure.
        """
        ...

    def broadcast(self, tx: Transaction) -> None: ...

    def lookup_transaction(self, txid: str) -> Transaction | None: ...

    def persist_pending_reveal(
        self,
        name: bytes,
        source_txid: str,
        randomness: int,
        data: bytes,
        tx: Transaction,
    ) -> None: ...

    def erase_pending_reveal(self, name: bytes) -> None: ...

    def load_pending_reveals(self) -> list[PersistedReveal]: ...

    def reserve_destination_key(self) -> str: ...


class ChainIndexProtocol(Protocol):
    def current_height(self) -> int: ...

    def is_initial_sync(self) -> bool: ...

    def lookup_last_ownership_record(self, name: bytes) -> OwnershipRecord | None: ...

    def expiration_depth(self, record_height: int) -> int: ...

    def confirmation_depth(self, txid: str) -> int: ...

    def network_fee(self, height: int) -> int: ...

    def pending_broadcast_operations(self, name: bytes) -> list[str]: ...


class NotificationSink(Protocol):
    def publish(self, event: Any) -> None: ...
