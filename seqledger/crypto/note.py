"""Signed note verification for SeqLedger.

Checkpoints are distributed as signed notes: a UTF-8 text body ending in a
newline, a blank line, then one signature line per signer::

    <body>

    — <key name> <base64(key hash || signature)>

Keys are Ed25519 and are named ``<name>+<hex key hash>+<base64 key>``, where
the key data is an algorithm byte followed by the raw key.
"""

import base64
import binascii
import hashlib
from dataclasses import dataclass, field
from typing import Iterable, List, Union
import logging

from cryptography.hazmat.primitives.asymmetric import ed25519
from cryptography.hazmat.primitives import serialization
from cryptography.exceptions import InvalidSignature

from ..core.exceptions import NoteError, UnverifiedNoteError

logger = logging.getLogger(__name__)

ALG_ED25519 = 0x01
SIGNATURE_PREFIX = "— "
PRIVATE_KEY_PREFIX = "PRIVATE+KEY+"


def key_hash(name: str, key: bytes) -> int:
    """Compute the 32-bit hash that identifies a named key."""
    digest = hashlib.sha256(name.encode("utf-8") + b"\n" + key).digest()
    return int.from_bytes(digest[:4], "big")


def _check_name(name: str) -> None:
    if not name or "+" in name or any(c.isspace() for c in name):
        raise NoteError(f"Invalid key name: {name!r}")


def _decode_key(name: str, hash_hex: str, key_b64: str, size: int) -> bytes:
    _check_name(name)
    try:
        expected_hash = int(hash_hex, 16)
        key = base64.b64decode(key_b64, validate=True)
    except (ValueError, binascii.Error) as e:
        raise NoteError(f"Malformed key for {name!r}: {e}") from e

    if len(hash_hex) != 8 or len(key) != size + 1 or key[0] != ALG_ED25519:
        raise NoteError(f"Malformed key for {name!r}")
    if key_hash(name, key) != expected_hash:
        raise NoteError(f"Key hash mismatch for {name!r}")
    return key


@dataclass
class NoteSignature:
    """A verified signature line of a note."""
    name: str
    key_hash: int
    signature: bytes


@dataclass
class Note:
    """A note body together with the signatures that verified it."""
    text: str
    signatures: List[NoteSignature] = field(default_factory=list)
    unverified: List[str] = field(default_factory=list)


class NoteVerifier:
    """Ed25519 verifier for one named note key."""

    def __init__(self, name: str, public_key: ed25519.Ed25519PublicKey):
        _check_name(name)
        self.name = name
        self._public_key = public_key
        raw = public_key.public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        self._key_data = bytes([ALG_ED25519]) + raw
        self.key_hash = key_hash(name, self._key_data)

    @classmethod
    def from_key(cls, vkey: str) -> "NoteVerifier":
        """Parse a ``<name>+<hash>+<key>`` verifier key string."""
        parts = vkey.strip().split("+", 2)
        if len(parts) != 3:
            raise NoteError("Malformed verifier key")
        name, hash_hex, key_b64 = parts
        key = _decode_key(name, hash_hex, key_b64, 32)
        return cls(name, ed25519.Ed25519PublicKey.from_public_bytes(key[1:]))

    def verify(self, data: bytes, signature: bytes) -> bool:
        """Verify an Ed25519 signature over data."""
        try:
            self._public_key.verify(signature, data)
            return True
        except (InvalidSignature, ValueError):
            return False

    def to_key(self) -> str:
        """Encode this verifier as a key string."""
        encoded = base64.b64encode(self._key_data).decode("ascii")
        return f"{self.name}+{self.key_hash:08x}+{encoded}"

    def __repr__(self) -> str:
        return f"NoteVerifier({self.name!r}, {self.key_hash:08x})"


class NoteSigner:
    """Ed25519 signer producing notes that NoteVerifier accepts."""

    def __init__(self, name: str, private_key: ed25519.Ed25519PrivateKey):
        _check_name(name)
        self.name = name
        self._private_key = private_key
        self.verifier = NoteVerifier(name, private_key.public_key())

    @classmethod
    def from_key(cls, skey: str) -> "NoteSigner":
        """Parse a ``PRIVATE+KEY+<name>+<hash>+<key>`` signer key string."""
        skey = skey.strip()
        if not skey.startswith(PRIVATE_KEY_PREFIX):
            raise NoteError("Malformed signer key")
        parts = skey[len(PRIVATE_KEY_PREFIX):].split("+", 2)
        if len(parts) != 3:
            raise NoteError("Malformed signer key")
        name, hash_hex, key_b64 = parts
        key = _decode_key(name, hash_hex, key_b64, 32)
        return cls(name, ed25519.Ed25519PrivateKey.from_private_bytes(key[1:]))

    def to_key(self) -> str:
        """Encode this signer as a private key string."""
        seed = self._private_key.private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption(),
        )
        data = bytes([ALG_ED25519]) + seed
        encoded = base64.b64encode(data).decode("ascii")
        return f"{PRIVATE_KEY_PREFIX}{self.name}+{key_hash(self.name, data):08x}+{encoded}"

    def sign(self, text: str) -> bytes:
        """Sign a note body and return the complete signed note.

        Args:
            text: Note body; must be non-empty and end with a newline

        Returns:
            Encoded note including its signature line
        """
        if not text.endswith("\n"):
            raise NoteError("Note text must end with a newline")

        body = text.encode("utf-8")
        signature = self._private_key.sign(body)
        blob = self.verifier.key_hash.to_bytes(4, "big") + signature
        line = f"{SIGNATURE_PREFIX}{self.name} {base64.b64encode(blob).decode('ascii')}\n"
        return body + b"\n" + line.encode("utf-8")


def open_note(msg: Union[bytes, str], verifiers: Iterable[NoteVerifier]) -> Note:
    """Parse a signed note and verify it against trusted keys.

    Signatures from unknown keys are skipped, but a signature from a known
    key that does not verify is an error, as is a note that no known key
    has signed.

    Args:
        msg: Encoded note
        verifiers: Trusted verifiers

    Returns:
        The verified note

    Raises:
        NoteError: If the note is malformed or a known signature is invalid
        UnverifiedNoteError: If no trusted key signed the note
    """
    if isinstance(msg, bytes):
        try:
            msg = msg.decode("utf-8")
        except UnicodeDecodeError as e:
            raise NoteError("Note is not valid UTF-8") from e

    split = msg.rfind("\n\n")
    if split < 0:
        raise NoteError("Malformed note: missing signature block")
    text, block = msg[:split + 1], msg[split + 2:]
    if not block.endswith("\n"):
        raise NoteError("Malformed note: signature block must end with a newline")

    known = {(v.name, v.key_hash): v for v in verifiers}
    note = Note(text=text)
    body = text.encode("utf-8")

    for line in block[:-1].split("\n"):
        if not line.startswith(SIGNATURE_PREFIX):
            raise NoteError(f"Malformed signature line: {line!r}")
        fields = line[len(SIGNATURE_PREFIX):].split(" ")
        if len(fields) != 2:
            raise NoteError(f"Malformed signature line: {line!r}")
        name, encoded = fields
        try:
            blob = base64.b64decode(encoded, validate=True)
        except binascii.Error as e:
            raise NoteError(f"Malformed signature from {name!r}") from e
        if len(blob) < 5:
            raise NoteError(f"Malformed signature from {name!r}")

        hash_value = int.from_bytes(blob[:4], "big")
        verifier = known.get((name, hash_value))
        if verifier is None:
            logger.debug(f"Skipping signature from unknown key {name}+{hash_value:08x}")
            note.unverified.append(name)
            continue
        if not verifier.verify(body, blob[4:]):
            raise NoteError(f"Invalid signature from {name!r}")
        note.signatures.append(NoteSignature(name, hash_value, blob[4:]))

    if not note.signatures:
        raise UnverifiedNoteError("Note has no signature from a trusted key")
    return note
