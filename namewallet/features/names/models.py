"""Data types shared by the name registration components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from namewallet.features.names.errors import NameOperationError


class RegistrationState(Enum):
    UNREGISTERED = "unregistered"
    COMMITTED = "committed"
    REVEAL_PREPARED = "reveal_prepared"


@dataclass(frozen=True)
class TxOutput:
    script: bytes
    value: int

    def to_dict(self) -> dict[str, Any]:
        return {"script": self.script.hex(), "value": self.value}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TxOutput":
        return cls(script=bytes.fromhex(data["script"]), value=int(data["value"]))


@dataclass(frozen=True)
class Transaction:
    """A wallet transaction as seen by the name layer.

    ``raw`` is the serialized, signed transaction the wallet broadcasts; the
    name layer only inspects ``outputs``.
    """

    txid: str
    outputs: tuple[TxOutput, ...] = ()
    raw: bytes = b""

    def to_dict(self) -> dict[str, Any]:
        return {
            "txid": self.txid,
            "outputs": [output.to_dict() for output in self.outputs],
            "raw": self.raw.hex(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Transaction":
        return cls(
            txid=data["txid"],
            outputs=tuple(TxOutput.from_dict(o) for o in data.get("outputs", [])),
            raw=bytes.fromhex(data.get("raw", "")),
        )


@dataclass(frozen=True)
class OwnershipRecord:
    name: bytes
    txid: str
    height: int | None
    value: bytes = b""


@dataclass(frozen=True)
class PendingRegistration:
    name: bytes
    randomness: int = field(repr=False)
    commitment_hash: bytes
    data: bytes = b""
    reveal_tx: Transaction | None = None

    @property
    def state(self) -> RegistrationState:
        if self.reveal_tx is None:
            return RegistrationState.COMMITTED
        return RegistrationState.REVEAL_PREPARED


@dataclass(frozen=True)
class PersistedReveal:
    name: bytes
    source_txid: str
    randomness: int = field(repr=False)
    data: bytes
    reveal_tx: Transaction | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name.hex(),
            "sourceTxId": self.source_txid,
            "randomness": self.randomness,
            "payloadData": self.data.hex(),
            "serializedRevealTx": self.reveal_tx.to_dict() if self.reveal_tx else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PersistedReveal":
        reveal = data.get("serializedRevealTx")
        return cls(
            name=bytes.fromhex(data["name"]),
            source_txid=data["sourceTxId"],
            randomness=int(data["randomness"]),
            data=bytes.fromhex(data.get("payloadData", "")),
            reveal_tx=Transaction.from_dict(reveal) if reveal else None,
        )


@dataclass
class OperationResult:
    ok: bool
    error: NameOperationError | None = None

    @classmethod
    def success(cls) -> "OperationResult":
        return cls(ok=True)

    @classmethod
    def failure(cls, error: NameOperationError) -> "OperationResult":
        return cls(ok=False, error=error)


@dataclass
class NameNewResult:
    ok: bool
    name: bytes
    commitment_txid: str | None = None
    randomness: int | None = field(default=None, repr=False)
    commitment_hash: bytes | None = None
    error: NameOperationError | None = None
    reveal_error: NameOperationError | None = None

    @property
    def reveal_prepared(self) -> bool:
        return self.ok and self.reveal_error is None


@dataclass
class NameUpdateResult:
    ok: bool
    txid: str | None = None
    error: NameOperationError | None = None


@dataclass
class FinalizeReport:
    revealed: list[bytes] = field(default_factory=list)
    failed: list[bytes] = field(default_factory=list)
    dropped: list[bytes] = field(default_factory=list)
    deferred: list[bytes] = field(default_factory=list)
