"""Typed failures for name operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class NameErrorKind(Enum):
    INVALID_INPUT = "invalid_input"
    PENDING_CONFLICT = "pending_conflict"
    ALREADY_REGISTERED = "already_registered"
    NOT_REGISTERED = "not_registered"
    UNKNOWN_REGISTRATION = "unknown_registration"
    NOT_IN_WALLET = "not_in_wallet"
    PAYLOAD_MISMATCH = "payload_mismatch"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    TRANSACTION_BUILD_FAILED = "transaction_build_failed"
    BROADCAST_FAILED = "broadcast_failed"
    MALFORMED_PAYLOAD = "malformed_payload"


@dataclass
class NameOperationError(Exception):
    kind: NameErrorKind
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.message

    @classmethod
    def wrap(
        cls, error: Exception, default_kind: NameErrorKind, context: str = ""
    ) -> "NameOperationError":
        if isinstance(error, NameOperationError):
            return error
        prefix = f"{context}: " if context else ""
        return cls(kind=default_kind, message=f"{prefix}{error}")


class MalformedPayload(NameOperationError):
    def __init__(self, message: str):
        super().__init__(kind=NameErrorKind.MALFORMED_PAYLOAD, message=message)


class TransactionBuildError(Exception):
    """Raised by a wallet that could not fund a spending transaction.

    ``required_fee`` is the fee the wallet computed before giving up.
    """

    def __init__(self, message: str, required_fee: int = 0):
        super().__init__(message)
        self.required_fee = required_fee
