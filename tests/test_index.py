"""Tests for the identifier index."""

import json

import pytest

from seqledger.backends.index import IndexEntry, IndexStore, decode_identifier, index_path
from seqledger.core.exceptions import IdentifierDecodeError, IndexUpdateError


@pytest.fixture
def index(tmp_path):
    return IndexStore(tmp_path)


def test_append_then_lookup(index):
    index.append("abcd", 5)
    index.append("abcd", 9)
    assert index.lookup("abcd").indices == [5, 9]


def test_lookup_unknown_identifier(index):
    assert index.lookup("abcd").indices == []
    assert not index.exists("abcd")


def test_document_shape(index):
    index.append("abcd", 5)
    data = json.loads(index.path_for("abcd").read_text())
    assert data == {"Indices": [5]}


def test_identifiers_are_independent(index):
    index.append("aa", 1)
    index.append("bb", 2)
    index.append("aa", 3)
    assert index.lookup("aa").indices == [1, 3]
    assert index.lookup("bb").indices == [2]


def test_append_is_idempotent(index):
    index.append("aa", 4)
    index.append("aa", 4)
    assert index.lookup("aa").indices == [4]


def test_insertion_order_is_kept(index):
    for seq in (9, 2, 7):
        index.append("aa", seq)
    assert index.lookup("aa").indices == [9, 2, 7]


def test_path_is_sharded_and_deterministic(tmp_path):
    first = index_path(tmp_path, b"\xab\xcd")
    assert first == index_path(tmp_path, b"\xab\xcd")
    assert first != index_path(tmp_path, b"\xab\xce")
    directory, name = first
    assert directory.parent.parent == tmp_path / "index"
    assert len(directory.name) == 2
    assert len(name) == 60


def test_permissions(index, file_mode, dir_mode):
    index.append("aa", 1)
    path = index.path_for("aa")
    assert path.stat().st_mode & 0o777 == file_mode
    assert path.parent.stat().st_mode & 0o777 == dir_mode


@pytest.mark.parametrize("identifier", ["", "abc", "zz", "aa bb", "0x00"])
def test_bad_identifier(identifier, index):
    with pytest.raises(IdentifierDecodeError):
        index.append(identifier, 1)


def test_decode_identifier_case_insensitive():
    assert decode_identifier("ABcd") == b"\xab\xcd"


def test_null_indices_read_as_empty(index):
    path = index.path_for("aa")
    path.parent.mkdir(parents=True)
    path.write_text('{"Indices": null}')
    assert index.lookup("aa").indices == []
    assert index.append("aa", 3).indices == [3]


def test_corrupt_document(index):
    path = index.path_for("aa")
    path.parent.mkdir(parents=True)
    path.write_text("not json")
    with pytest.raises(IndexUpdateError):
        index.append("aa", 1)


def test_entry_round_trip():
    entry = IndexEntry.model_validate({"Indices": [1, 2]})
    assert entry.to_json() == '{"Indices":[1,2]}'


def test_concurrent_writers_can_lose_updates(tmp_path, mocker):
    """Index updates take no lock: only one writer per storage root is supported.

    Two runs interleaving their read-modify-write on one identifier lose
    the first run's number, which is why callers must serialise runs.
    """
    first, second = IndexStore(tmp_path), IndexStore(tmp_path)
    stale = first.lookup("aa")

    second.append("aa", 1)
    mocker.patch.object(first, "_read", return_value=stale)
    first.append("aa", 2)

    assert IndexStore(tmp_path).lookup("aa").indices == [2]
