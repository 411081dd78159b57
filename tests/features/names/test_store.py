"""Tests for the pending registration store and the encrypted reveal journal."""

import json

import pytest

from namewallet.features.names.codec import compute_commitment_hash
from namewallet.features.names.errors import NameErrorKind, NameOperationError
from namewallet.features.names.models import (
    PersistedReveal,
    RegistrationState,
    Transaction,
    TxOutput,
)
from namewallet.features.names.store import (
    EncryptedRevealJournal,
    PendingRegistrationStore,
)

NAME = b"d/alice"
RAND = 0x0123456789ABCDEF
HASH = compute_commitment_hash(RAND, NAME)
REVEAL = Transaction(txid="cd" * 32, outputs=(TxOutput(b"\x52", 100),), raw=b"raw")


class TestPendingRegistrationStore:
    def test_insert_and_lookup(self):
        store = PendingRegistrationStore()
        entry = store.insert(NAME, RAND, HASH, "ab" * 32)

        assert NAME in store
        assert len(store) == 1
        assert store.get(NAME) is entry
        assert store.origin_of(NAME) == "ab" * 32
        assert entry.state == RegistrationState.COMMITTED

    def test_insert_twice_is_a_conflict(self):
        store = PendingRegistrationStore()
        store.insert(NAME, RAND, HASH, "ab" * 32)
        with pytest.raises(NameOperationError) as exc_info:
            store.insert(NAME, RAND + 1, HASH, "ef" * 32)
        assert exc_info.value.kind == NameErrorKind.PENDING_CONFLICT
        assert store.get(NAME).randomness == RAND

    def test_replace_reveal_swaps_entry(self):
        store = PendingRegistrationStore()
        original = store.insert(NAME, RAND, HASH, "ab" * 32)
        updated = store.replace_reveal(NAME, b"value", REVEAL)

        assert updated is not original
        assert original.reveal_tx is None
        assert store.get(NAME).data == b"value"
        assert store.get(NAME).state == RegistrationState.REVEAL_PREPARED
        assert store.get(NAME).randomness == RAND

    def test_replace_reveal_unknown_name(self):
        store = PendingRegistrationStore()
        with pytest.raises(NameOperationError) as exc_info:
            store.replace_reveal(NAME, b"", REVEAL)
        assert exc_info.value.kind == NameErrorKind.UNKNOWN_REGISTRATION

    def test_remove_clears_entry_and_origin(self):
        store = PendingRegistrationStore()
        store.insert(NAME, RAND, HASH, "ab" * 32)
        assert store.remove(NAME) is not None

        assert NAME not in store
        assert store.origin_of(NAME) is None
        assert store.remove(NAME) is None

    def test_iteration_tolerates_removal(self):
        store = PendingRegistrationStore()
        store.insert(b"a", 1, compute_commitment_hash(1, b"a"), "01" * 32)
        store.insert(b"b", 2, compute_commitment_hash(2, b"b"), "02" * 32)
        for name in store:
            store.remove(name)
        assert len(store) == 0

    def test_randomness_not_in_repr(self):
        store = PendingRegistrationStore()
        entry = store.insert(NAME, RAND, HASH, "ab" * 32)
        assert str(RAND) not in repr(entry)

    def test_restore(self):
        store = PendingRegistrationStore()
        record = PersistedReveal(NAME, "ab" * 32, RAND, b"v", REVEAL)
        store.restore(record, HASH)

        assert store.get(NAME).reveal_tx == REVEAL
        assert store.origin_of(NAME) == "ab" * 32
        assert store.get(NAME).commitment_hash == HASH


class TestEncryptedRevealJournal:
    def test_requires_passphrase(self, tmp_path):
        with pytest.raises(ValueError):
            EncryptedRevealJournal(tmp_path, "")

    def test_persist_and_reload(self, tmp_path):
        journal = EncryptedRevealJournal(tmp_path, "secret")
        journal.persist(PersistedReveal(NAME, "ab" * 32, RAND, b"v", REVEAL))

        reopened = EncryptedRevealJournal(tmp_path, "secret")
        records = reopened.load()
        assert len(records) == 1
        assert records[0].name == NAME
        assert records[0].randomness == RAND
        assert records[0].reveal_tx == REVEAL

    def test_randomness_never_written_in_plaintext(self, tmp_path):
        journal = EncryptedRevealJournal(tmp_path, "secret")
        journal.persist(PersistedReveal(NAME, "ab" * 32, RAND, b"v", REVEAL))

        content = (tmp_path / "pending_reveals.json").read_text()
        assert str(RAND) not in content
        assert "ab" * 32 not in content
        assert json.loads(content)["version"] == EncryptedRevealJournal.JOURNAL_VERSION

    def test_one_record_per_name(self, tmp_path):
        journal = EncryptedRevealJournal(tmp_path, "secret")
        journal.persist(PersistedReveal(NAME, "ab" * 32, RAND, b"v1", REVEAL))
        journal.persist(PersistedReveal(NAME, "ab" * 32, RAND, b"v2", REVEAL))

        assert journal.count() == 1
        assert journal.load()[0].data == b"v2"

    def test_erase(self, tmp_path):
        journal = EncryptedRevealJournal(tmp_path, "secret")
        journal.persist(PersistedReveal(NAME, "ab" * 32, RAND, b"", None))

        assert journal.erase(NAME) is True
        assert journal.erase(NAME) is False
        assert EncryptedRevealJournal(tmp_path, "secret").count() == 0

    def test_wrong_passphrase_skips_records(self, tmp_path):
        EncryptedRevealJournal(tmp_path, "secret").persist(
            PersistedReveal(NAME, "ab" * 32, RAND, b"", None)
        )
        assert EncryptedRevealJournal(tmp_path, "other").load() == []

    def test_corrupt_file_starts_fresh(self, tmp_path):
        (tmp_path / "pending_reveals.json").write_text("{not json")
        journal = EncryptedRevealJournal(tmp_path, "secret")
        assert journal.count() == 0
