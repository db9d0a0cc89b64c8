"""Tests for the sequencing stores."""

import hashlib

import pytest

from seqledger.backends.filesystem import FilesystemStore, leaf_path, seq_path
from seqledger.backends.memory import MemoryStore
from seqledger.core.exceptions import DuplicateEntryError, StorageError
from seqledger.crypto.hashing import DEFAULT_HASHER


def _sequence(store, payload):
    return store.sequence(DEFAULT_HASHER.hash_leaf(payload), payload)


@pytest.fixture(params=["memory", "filesystem"])
def store(request, tmp_path):
    if request.param == "memory":
        return MemoryStore.load(tmp_path, 0)
    return FilesystemStore.load(tmp_path, 0)


def test_distinct_payloads_get_distinct_numbers(store):
    assert [_sequence(store, p) for p in (b"one", b"two", b"three")] == [0, 1, 2]


def test_duplicate_returns_original_number(store):
    _sequence(store, b"one")
    _sequence(store, b"two")
    with pytest.raises(DuplicateEntryError) as exc_info:
        _sequence(store, b"one")
    assert exc_info.value.sequence_number == 0
    assert _sequence(store, b"three") == 2


def test_get_returns_payload(store):
    seq = _sequence(store, b"payload")
    assert store.get(seq) == b"payload"
    assert store.get(seq + 1) is None


def test_numbering_starts_at_checkpoint_size(tmp_path):
    assert _sequence(FilesystemStore.load(tmp_path, 10), b"x") == 10
    assert _sequence(MemoryStore.load(tmp_path, 10), b"x") == 10


def test_filesystem_skips_pending_slots(tmp_path):
    first = FilesystemStore.load(tmp_path, 0)
    assert _sequence(first, b"a") == 0
    assert _sequence(first, b"b") == 1

    # A second run before integration still sees the checkpoint at size 0
    second = FilesystemStore.load(tmp_path, 0)
    assert _sequence(second, b"c") == 2
    assert second.next_sequence == 3


def test_filesystem_detects_duplicates_across_runs(tmp_path):
    _sequence(FilesystemStore.load(tmp_path, 0), b"a")
    with pytest.raises(DuplicateEntryError) as exc_info:
        _sequence(FilesystemStore.load(tmp_path, 1), b"a")
    assert exc_info.value.sequence_number == 0


def test_filesystem_layout(tmp_path):
    store = FilesystemStore.load(tmp_path, 0x0102030405)
    leaf_hash = DEFAULT_HASHER.hash_leaf(b"a")
    store.sequence(leaf_hash, b"a")

    seq_dir, seq_file = seq_path(tmp_path, 0x0102030405)
    assert seq_dir == tmp_path / "seq" / "01" / "02" / "03" / "04"
    assert seq_file == "05"
    assert (seq_dir / seq_file).read_bytes() == b"a"

    leaf_dir, leaf_file = leaf_path(tmp_path, leaf_hash)
    assert (leaf_dir / leaf_file).read_text() == str(0x0102030405)


def test_filesystem_corrupt_leaf_record(tmp_path):
    leaf_hash = DEFAULT_HASHER.hash_leaf(b"a")
    leaf_dir, leaf_file = leaf_path(tmp_path, leaf_hash)
    leaf_dir.mkdir(parents=True)
    (leaf_dir / leaf_file).write_text("garbage")
    with pytest.raises(StorageError):
        FilesystemStore.load(tmp_path, 0).sequence(leaf_hash, b"a")


def test_filesystem_load_requires_directory(tmp_path):
    with pytest.raises(StorageError):
        FilesystemStore.load(tmp_path / "missing", 0)


def test_leaf_hash_is_domain_separated():
    assert DEFAULT_HASHER.hash_leaf(b"a") == hashlib.sha256(b"\x00a").digest()
    assert DEFAULT_HASHER.empty_root() == hashlib.sha256(b"").digest()
