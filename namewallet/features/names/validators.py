"""Validation utilities for names, values and destination addresses."""

from dataclasses import dataclass
from typing import Any

import base58

from namewallet.features.names.codec import (
    HASH160_SIZE,
    payment_script_for_hash160,
    script_hash_script,
)
from namewallet.features.names.policy import MAX_NAME_LENGTH, MAX_VALUE_LENGTH


@dataclass
class ValidationResult:
    is_valid: bool
    error_message: str | None = None
    normalized_value: Any = None


PUBKEY_HASH_VERSIONS = {0x34, 0x6F}
SCRIPT_HASH_VERSIONS = {0x0D, 0xC4}


def _to_bytes(value: str | bytes) -> bytes:
    if isinstance(value, bytes):
        return value
    return value.encode("utf-8")


class NameValidator:
    @classmethod
    def validate_name(
        cls, name: str | bytes | None, max_length: int = MAX_NAME_LENGTH
    ) -> ValidationResult:
        if name is None or not isinstance(name, (str, bytes)):
            return ValidationResult(is_valid=False, error_message="Name is required")

        raw = _to_bytes(name)
        if not raw:
            return ValidationResult(is_valid=False, error_message="Name is required")

        if len(raw) > max_length:
            return ValidationResult(
                is_valid=False,
                error_message=f"Name exceeds {max_length} bytes",
            )

        return ValidationResult(is_valid=True, normalized_value=raw)

    @classmethod
    def validate_value(
        cls, value: str | bytes | None, max_length: int = MAX_VALUE_LENGTH
    ) -> ValidationResult:
        if value is None:
            return ValidationResult(is_valid=True, normalized_value=b"")

        if not isinstance(value, (str, bytes)):
            return ValidationResult(
                is_valid=False, error_message="Value must be text or bytes"
            )

        raw = _to_bytes(value)
        if len(raw) > max_length:
            return ValidationResult(
                is_valid=False,
                error_message=f"Value exceeds {max_length} bytes",
            )

        return ValidationResult(is_valid=True, normalized_value=raw)


class AddressValidator:
    @classmethod
    def validate(cls, address: str | None) -> ValidationResult:
        """Check a base58check address and return its output script."""
        if not address or not address.strip():
            return ValidationResult(is_valid=False, error_message="Address is required")

        try:
            payload = base58.b58decode_check(address.strip())
        except ValueError:
            return ValidationResult(is_valid=False, error_message="Invalid address")

        if len(payload) != HASH160_SIZE + 1:
            return ValidationResult(
                is_valid=False, error_message="Invalid address length"
            )

        version, digest = payload[0], payload[1:]
        if version in PUBKEY_HASH_VERSIONS:
            script = payment_script_for_hash160(digest)
        elif version in SCRIPT_HASH_VERSIONS:
            script = script_hash_script(digest)
        else:
            return ValidationResult(
                is_valid=False, error_message="Invalid address version"
            )

        return ValidationResult(is_valid=True, normalized_value=script)

    @classmethod
    def is_valid_address(cls, address: str | None) -> bool:
        return cls.validate(address).is_valid
