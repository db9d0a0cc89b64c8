"""Tests for checkpoint parsing and verification."""

import base64

import pytest
from cryptography.hazmat.primitives.asymmetric import ed25519

from seqledger.core.checkpoint import (
    Checkpoint,
    read_checkpoint,
    verify_checkpoint,
    write_checkpoint,
)
from seqledger.core.exceptions import (
    CheckpointInvalidError,
    CheckpointUnreadableError,
)
from seqledger.crypto.note import NoteSigner

from .conftest import ORIGIN, make_checkpoint


def test_verify_returns_size(signer, verifier):
    raw = make_checkpoint(signer, size=42)
    checkpoint = verify_checkpoint(raw, [verifier], ORIGIN)
    assert checkpoint.size == 42
    assert checkpoint.origin == ORIGIN
    assert checkpoint.signers == ["testlog"]


def test_any_trusted_key_is_enough(signer, verifier):
    other = NoteSigner("other", ed25519.Ed25519PrivateKey.generate())
    raw = make_checkpoint(signer, size=3)
    assert verify_checkpoint(raw, [other.verifier, verifier], ORIGIN).size == 3


def test_origin_mismatch(signer, verifier):
    raw = make_checkpoint(signer, origin="someone.else/log")
    with pytest.raises(CheckpointInvalidError) as exc_info:
        verify_checkpoint(raw, [verifier], ORIGIN)
    assert "origin" in str(exc_info.value)


def test_untrusted_signer(signer):
    other = NoteSigner("testlog", ed25519.Ed25519PrivateKey.generate())
    with pytest.raises(CheckpointInvalidError):
        verify_checkpoint(make_checkpoint(signer), [other.verifier], ORIGIN)


@pytest.mark.parametrize("body", [
    f"{ORIGIN}\n",
    f"{ORIGIN}\n-1\nAAAA\n",
    f"{ORIGIN}\nten\nAAAA\n",
    f"{ORIGIN}\n10\n%%%%\n",
    f"{ORIGIN}\n10\nAAAA\n\n",
])
def test_malformed_body(body, signer, verifier):
    with pytest.raises(CheckpointInvalidError):
        verify_checkpoint(signer.sign(body), [verifier], ORIGIN)


def test_marshal_parse(signer):
    checkpoint = Checkpoint(origin=ORIGIN, size=7, root_hash=b"\x01" * 32, extension=["extra"])
    encoded_root = base64.b64encode(b"\x01" * 32).decode("ascii")
    text = checkpoint.marshal()
    assert text == f"{ORIGIN}\n7\n{encoded_root}\nextra\n"
    assert Checkpoint.parse(text) == checkpoint


def test_read_missing_checkpoint(tmp_path):
    with pytest.raises(CheckpointUnreadableError):
        read_checkpoint(tmp_path)


def test_write_then_read(tmp_path, signer, file_mode):
    raw = make_checkpoint(signer, size=5)
    write_checkpoint(tmp_path, raw)
    assert read_checkpoint(tmp_path) == raw
    assert (tmp_path / "checkpoint").stat().st_mode & 0o777 == file_mode
