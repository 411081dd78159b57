"""In-flight registration state and its durable journal."""

from __future__ import annotations

import base64
import hashlib
import json
import logging
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

from cryptography.fernet import Fernet, InvalidToken

from namewallet.features.names.errors import NameErrorKind, NameOperationError
from namewallet.features.names.models import (
    PendingRegistration,
    PersistedReveal,
    Transaction,
)

logger = logging.getLogger(__name__)


class PendingRegistrationStore:
    """Name -> pending registration, plus the commitment's source transaction.

    Not thread safe on its own: every access happens under the registration
    service's chain-state lock.
    """

    def __init__(self):
        self._entries: dict[bytes, PendingRegistration] = {}
        self._origins: dict[bytes, str] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[bytes]:
        return iter(list(self._entries))

    def names(self) -> list[bytes]:
        return list(self._entries)

    def get(self, name: bytes) -> PendingRegistration | None:
        return self._entries.get(name)

    def origin_of(self, name: bytes) -> str | None:
        return self._origins.get(name)

    def insert(
        self,
        name: bytes,
        randomness: int,
        commitment_hash: bytes,
        source_txid: str,
    ) -> PendingRegistration:
        if name in self._entries:
            raise NameOperationError(
                kind=NameErrorKind.PENDING_CONFLICT,
                message="A registration for this name is already pending",
            )
        entry = PendingRegistration(
            name=name, randomness=randomness, commitment_hash=commitment_hash
        )
        self._entries[name] = entry
        self._origins[name] = source_txid
        return entry

    def replace_reveal(
        self, name: bytes, data: bytes, reveal_tx: Transaction
    ) -> PendingRegistration:
        current = self._entries.get(name)
        if current is None:
            raise NameOperationError(
                kind=NameErrorKind.UNKNOWN_REGISTRATION,
                message="Cannot find stored random value for name",
            )
        entry = replace(current, data=data, reveal_tx=reveal_tx)
        self._entries[name] = entry
        return entry

    def remove(self, name: bytes) -> PendingRegistration | None:
        self._origins.pop(name, None)
        return self._entries.pop(name, None)

    def restore(self, record: PersistedReveal, commitment_hash: bytes) -> PendingRegistration:
        entry = PendingRegistration(
            name=record.name,
            randomness=record.randomness,
            commitment_hash=commitment_hash,
            data=record.data,
            reveal_tx=record.reveal_tx,
        )
        self._entries[record.name] = entry
        self._origins[record.name] = record.source_txid
        return entry


class EncryptedRevealJournal:
    """Durable pending reveals, one encrypted record per name.

    Wallet collaborators back ``persist_pending_reveal``,
    ``erase_pending_reveal`` and ``load_pending_reveals`` with this journal.
    Records hold the unrevealed randomness, so each one is a Fernet token.
    """

    JOURNAL_VERSION = 1

    def __init__(self, storage_dir: Path, passphrase: str):
        if not passphrase:
            raise ValueError("A passphrase is required to encrypt pending reveals")
        self.storage_dir = Path(storage_dir)
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        self.journal_file = self.storage_dir / "pending_reveals.json"
        self._cipher = Fernet(self._derive_key(passphrase))
        self._tokens: dict[str, str] = {}
        self._load()

    @staticmethod
    def _derive_key(passphrase: str) -> bytes:
        digest = hashlib.sha256(passphrase.encode("utf-8")).digest()
        return base64.urlsafe_b64encode(digest)

    def _load(self) -> None:
        if not self.journal_file.exists():
            self._tokens = {}
            return

        try:
            with open(self.journal_file, "r") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Failed to load pending reveal journal: %s", e)
            self._tokens = {}
            return

        version = data.get("version", 0)
        if version >= self.JOURNAL_VERSION:
            self._tokens = dict(data.get("records", {}))
        else:
            logger.warning("Pending reveal journal version mismatch, starting fresh")
            self._tokens = {}

    def _save(self) -> None:
        data = {
            "version": self.JOURNAL_VERSION,
            "records": self._tokens,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        tmp_file = self.journal_file.with_suffix(".tmp")
        with open(tmp_file, "w") as f:
            json.dump(data, f, indent=2)
        tmp_file.replace(self.journal_file)

    def persist(self, record: PersistedReveal) -> None:
        payload = json.dumps(record.to_dict()).encode("utf-8")
        self._tokens[record.name.hex()] = self._cipher.encrypt(payload).decode("ascii")
        self._save()
        logger.debug("Persisted pending reveal for name %r", record.name)

    def erase(self, name: bytes) -> bool:
        if self._tokens.pop(name.hex(), None) is None:
            return False
        self._save()
        logger.debug("Erased pending reveal for name %r", name)
        return True

    def load(self) -> list[PersistedReveal]:
        records = []
        for key, token in self._tokens.items():
            try:
                payload = self._cipher.decrypt(token.encode("ascii"))
                records.append(PersistedReveal.from_dict(json.loads(payload)))
            except (InvalidToken, ValueError, KeyError) as e:
                logger.error("Skipping unreadable pending reveal %s: %s", key, e)
        return records

    def count(self) -> int:
        return len(self._tokens)
