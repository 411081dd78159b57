"""Name operation scripts and commitment hashing.

A name operation is an output script prefix followed by a normal payment
script::

    NEW          OP_NAME_NEW <hash160> OP_2DROP
    FIRSTUPDATE  OP_NAME_FIRSTUPDATE <name> <rand> <value> OP_2DROP OP_2DROP
    UPDATE       OP_NAME_UPDATE <name> <value> OP_2DROP OP_DROP

The drops remove the tag and its arguments from the stack so that the
trailing payment script validates exactly like a plain one.
"""

from __future__ import annotations

import hashlib
import struct
from dataclasses import dataclass
from enum import IntEnum

from Crypto.Hash import RIPEMD160

from namewallet.features.names.errors import MalformedPayload
from namewallet.features.names.models import Transaction

OP_0 = 0x00
OP_PUSHDATA1 = 0x4C
OP_PUSHDATA2 = 0x4D
OP_PUSHDATA4 = 0x4E
OP_RETURN = 0x6A
OP_2DROP = 0x6D
OP_DUP = 0x76
OP_DROP = 0x75
OP_EQUAL = 0x87
OP_EQUALVERIFY = 0x88
OP_HASH160 = 0xA9
OP_CHECKSIG = 0xAC

HASH160_SIZE = 20


class NameOperation(IntEnum):
    NEW = 0x51
    FIRSTUPDATE = 0x52
    UPDATE = 0x53


_ARG_COUNTS = {
    NameOperation.NEW: 1,
    NameOperation.FIRSTUPDATE: 3,
    NameOperation.UPDATE: 2,
}

_DROP_SEQUENCES = {
    NameOperation.NEW: (OP_2DROP,),
    NameOperation.FIRSTUPDATE: (OP_2DROP, OP_2DROP),
    NameOperation.UPDATE: (OP_2DROP, OP_DROP),
}


@dataclass(frozen=True)
class NameScript:
    operation: NameOperation
    args: tuple[bytes, ...]
    payment_script: bytes

    @property
    def name(self) -> bytes | None:
        if self.operation == NameOperation.NEW:
            return None
        return self.args[0]

    @property
    def value(self) -> bytes | None:
        if self.operation == NameOperation.NEW:
            return None
        return self.args[-1]

    @property
    def commitment_hash(self) -> bytes | None:
        if self.operation != NameOperation.NEW:
            return None
        return self.args[0]

    @property
    def randomness(self) -> int | None:
        if self.operation != NameOperation.FIRSTUPDATE:
            return None
        return decode_randomness(self.args[1])


def encode_randomness(randomness: int) -> bytes:
    """Minimal little-endian script-number encoding of a non-negative integer."""
    if randomness < 0 or randomness >= 1 << 64:
        raise ValueError("Randomness must be a 64-bit unsigned integer")
    if randomness == 0:
        return b""
    encoded = randomness.to_bytes((randomness.bit_length() + 7) // 8, "little")
    if encoded[-1] & 0x80:
        encoded += b"\x00"
    return encoded


def decode_randomness(encoded: bytes) -> int:
    if len(encoded) > 9:
        raise MalformedPayload("Randomness push is longer than 64 bits")
    if encoded and encoded[-1] & 0x80:
        raise MalformedPayload("Randomness push is negative")
    return int.from_bytes(encoded, "little")


def hash160(data: bytes) -> bytes:
    return RIPEMD160.new(hashlib.sha256(data).digest()).digest()


def compute_commitment_hash(randomness: int, name: bytes) -> bytes:
    return hash160(encode_randomness(randomness) + name)


def push_data(data: bytes) -> bytes:
    length = len(data)
    if length < OP_PUSHDATA1:
        return bytes([length]) + data
    if length <= 0xFF:
        return bytes([OP_PUSHDATA1, length]) + data
    if length <= 0xFFFF:
        return bytes([OP_PUSHDATA2]) + struct.pack("<H", length) + data
    return bytes([OP_PUSHDATA4]) + struct.pack("<I", length) + data


def payment_script_for_hash160(pubkey_hash: bytes) -> bytes:
    if len(pubkey_hash) != HASH160_SIZE:
        raise ValueError("Public key hash must be 20 bytes")
    return (
        bytes([OP_DUP, OP_HASH160])
        + push_data(pubkey_hash)
        + bytes([OP_EQUALVERIFY, OP_CHECKSIG])
    )


def script_hash_script(script_hash: bytes) -> bytes:
    if len(script_hash) != HASH160_SIZE:
        raise ValueError("Script hash must be 20 bytes")
    return bytes([OP_HASH160]) + push_data(script_hash) + bytes([OP_EQUAL])


def fee_script() -> bytes:
    return bytes([OP_RETURN])


def _name_prefix(operation: NameOperation, args: list[bytes]) -> bytes:
    return (
        bytes([operation])
        + b"".join(push_data(arg) for arg in args)
        + bytes(_DROP_SEQUENCES[operation])
    )


def encode_new_payload(commitment_hash: bytes, destination_script: bytes) -> bytes:
    if len(commitment_hash) != HASH160_SIZE:
        raise ValueError("Commitment hash must be 20 bytes")
    return _name_prefix(NameOperation.NEW, [commitment_hash]) + destination_script


def encode_first_update_payload(
    name: bytes, randomness: int, value: bytes, destination_script: bytes
) -> bytes:
    args = [name, encode_randomness(randomness), value]
    return _name_prefix(NameOperation.FIRSTUPDATE, args) + destination_script


def encode_update_payload(name: bytes, value: bytes, destination_script: bytes) -> bytes:
    return _name_prefix(NameOperation.UPDATE, [name, value]) + destination_script


def _read_push(script: bytes, pos: int) -> tuple[bytes, int] | None:
    opcode = script[pos]
    pos += 1
    if opcode < OP_PUSHDATA1:
        length = opcode
    elif opcode == OP_PUSHDATA1:
        if pos + 1 > len(script):
            raise MalformedPayload("Truncated OP_PUSHDATA1 length")
        length = script[pos]
        pos += 1
    elif opcode == OP_PUSHDATA2:
        if pos + 2 > len(script):
            raise MalformedPayload("Truncated OP_PUSHDATA2 length")
        (length,) = struct.unpack_from("<H", script, pos)
        pos += 2
    elif opcode == OP_PUSHDATA4:
        if pos + 4 > len(script):
            raise MalformedPayload("Truncated OP_PUSHDATA4 length")
        (length,) = struct.unpack_from("<I", script, pos)
        pos += 4
    else:
        return None

    if pos + length > len(script):
        raise MalformedPayload(
            f"Push of {length} bytes runs past the end of the script"
        )
    return script[pos : pos + length], pos + length


def decode_payload(script: bytes) -> NameScript | None:
    """Parse the name prefix of an output script.

    Returns ``None`` when the script is not a name operation at all. Raises
    :class:`MalformedPayload` when a name tag is followed by a drop sequence
    but the pushes or drops are inconsistent with the tag.
    """
    if not script or script[0] not in _ARG_COUNTS:
        return None

    operation = NameOperation(script[0])
    args: list[bytes] = []
    pos = 1
    while pos < len(script):
        pushed = _read_push(script, pos)
        if pushed is None:
            break
        data, pos = pushed
        args.append(data)

    drops = _DROP_SEQUENCES[operation]
    if pos >= len(script) or script[pos] not in (OP_DROP, OP_2DROP):
        # a bare OP_1..OP_3 followed by something else, e.g. multisig
        return None

    if len(args) != _ARG_COUNTS[operation]:
        raise MalformedPayload(
            f"{operation.name} expects {_ARG_COUNTS[operation]} arguments, got {len(args)}"
        )

    end = pos + len(drops)
    if tuple(script[pos:end]) != drops:
        raise MalformedPayload(f"{operation.name} has an unexpected drop sequence")

    if operation == NameOperation.NEW and len(args[0]) != HASH160_SIZE:
        raise MalformedPayload("Commitment hash must be 20 bytes")

    return NameScript(operation=operation, args=tuple(args), payment_script=script[end:])


def index_of_name_output(tx: Transaction) -> int | None:
    for index, output in enumerate(tx.outputs):
        if decode_payload(output.script) is not None:
            return index
    return None
