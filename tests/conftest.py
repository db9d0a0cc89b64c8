"""Shared fixtures for SeqLedger tests."""

import os

import pytest
from cryptography.hazmat.primitives.asymmetric import ed25519

from seqledger.core.checkpoint import Checkpoint, sign_checkpoint, write_checkpoint
from seqledger.core.config import SequencerConfig
from seqledger.crypto.hashing import DEFAULT_HASHER
from seqledger.crypto.note import NoteSigner

ORIGIN = "example.com/testlog"


@pytest.fixture
def signer():
    return NoteSigner("testlog", ed25519.Ed25519PrivateKey.generate())


@pytest.fixture
def verifier(signer):
    return signer.verifier


def make_checkpoint(signer, size=0, origin=ORIGIN):
    checkpoint = Checkpoint(origin=origin, size=size, root_hash=DEFAULT_HASHER.empty_root())
    return sign_checkpoint(checkpoint, signer)


@pytest.fixture
def storage_dir(tmp_path, signer):
    """Storage root holding a signed, empty checkpoint."""
    root = tmp_path / "log"
    root.mkdir()
    write_checkpoint(root, make_checkpoint(signer))
    return root


@pytest.fixture
def config(storage_dir, verifier):
    return SequencerConfig(storage_dir=storage_dir, origin=ORIGIN, verifiers=[verifier])


@pytest.fixture
def entries_dir(tmp_path):
    d = tmp_path / "entries"
    d.mkdir()
    return d


def write_entries(directory, contents):
    """Write one file per payload, named so they sort in the given order."""
    paths = []
    for i, content in enumerate(contents):
        path = directory / f"entry-{i:03d}"
        path.write_bytes(content)
        paths.append(path)
    return paths


@pytest.fixture
def file_mode():
    """Permission bits a 0o644 file ends up with under the current umask."""
    mask = os.umask(0)
    os.umask(mask)
    return 0o644 & ~mask


@pytest.fixture
def dir_mode():
    mask = os.umask(0)
    os.umask(mask)
    return 0o755 & ~mask


def _key_data(key):
    """Base64 key data: everything after the key hash field."""
    fields = 5 if key.startswith("PRIVATE+KEY+") else 3
    return key.split("+", fields - 1)[-1]


def signer_with_plus(private=False):
    """Generate signers until the encoded key data contains a '+'."""
    while True:
        signer = NoteSigner("testlog", ed25519.Ed25519PrivateKey.generate())
        key = signer.to_key() if private else signer.verifier.to_key()
        if "+" in _key_data(key):
            return signer
