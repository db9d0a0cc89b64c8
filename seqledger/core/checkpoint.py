"""Checkpoint reading and verification for SeqLedger."""

import base64
import binascii
import os
from pathlib import Path
from typing import Iterable, List, Union
import logging

from pydantic import BaseModel, Field

from .exceptions import (
    CheckpointInvalidError,
    CheckpointUnreadableError,
    NoteError,
    StorageError,
)
from ..crypto.note import NoteSigner, NoteVerifier, open_note

logger = logging.getLogger(__name__)

CHECKPOINT_FILE = "checkpoint"
FILE_PERM = 0o644


class Checkpoint(BaseModel):
    """Signed statement of a log's size and root hash."""

    model_config = {"frozen": True}

    origin: str = Field(min_length=1)
    size: int = Field(ge=0)
    root_hash: bytes
    extension: List[str] = Field(default_factory=list)
    signers: List[str] = Field(default_factory=list)

    def marshal(self) -> str:
        """Encode the checkpoint body as note text."""
        lines = [
            self.origin,
            str(self.size),
            base64.b64encode(self.root_hash).decode("ascii"),
            *self.extension,
        ]
        return "\n".join(lines) + "\n"

    @classmethod
    def parse(cls, text: str) -> "Checkpoint":
        """Parse a checkpoint body.

        Args:
            text: Note text, one field per line

        Returns:
            Parsed checkpoint

        Raises:
            CheckpointInvalidError: If the body is malformed
        """
        if not text.endswith("\n"):
            raise CheckpointInvalidError("Checkpoint body must end with a newline")

        lines = text[:-1].split("\n")
        if len(lines) < 3:
            raise CheckpointInvalidError("Checkpoint body has too few lines")

        origin, size_line, root_line, *extension = lines
        if not origin:
            raise CheckpointInvalidError("Checkpoint origin is empty")
        if not size_line.isdigit() or not size_line.isascii():
            raise CheckpointInvalidError(f"Invalid checkpoint size: {size_line!r}", origin=origin)
        try:
            root_hash = base64.b64decode(root_line, validate=True)
        except binascii.Error as e:
            raise CheckpointInvalidError(f"Invalid checkpoint root hash: {e}", origin=origin) from e
        if any(not line for line in extension):
            raise CheckpointInvalidError("Checkpoint has an empty extension line", origin=origin)

        return cls(origin=origin, size=int(size_line), root_hash=root_hash, extension=extension)


def checkpoint_path(root: Union[str, Path]) -> Path:
    return Path(root) / CHECKPOINT_FILE


def read_checkpoint(root: Union[str, Path]) -> bytes:
    """Read the raw signed checkpoint from a storage root.

    Raises:
        CheckpointUnreadableError: If the file cannot be read
    """
    path = checkpoint_path(root)
    try:
        return path.read_bytes()
    except OSError as e:
        raise CheckpointUnreadableError(f"Failed to read log checkpoint: {e}", path=str(path)) from e


def write_checkpoint(root: Union[str, Path], raw: bytes) -> None:
    """Atomically replace the signed checkpoint under a storage root."""
    path = checkpoint_path(root)
    tmp = path.with_name(f".{CHECKPOINT_FILE}.tmp")
    try:
        fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, FILE_PERM)
        with os.fdopen(fd, "wb") as f:
            f.write(raw)
        os.replace(tmp, path)
    except OSError as e:
        raise StorageError(f"Failed to write checkpoint: {e}", "write_checkpoint") from e


def sign_checkpoint(checkpoint: Checkpoint, signer: NoteSigner) -> bytes:
    """Sign a checkpoint body and return the encoded note."""
    return signer.sign(checkpoint.marshal())


def verify_checkpoint(
    raw: Union[bytes, str],
    verifiers: Iterable[NoteVerifier],
    origin: str,
) -> Checkpoint:
    """Verify a signed checkpoint and return its contents.

    Nothing may be sequenced against a checkpoint that fails here: the store
    is opened at the size it states.

    Args:
        raw: Encoded signed note
        verifiers: Trusted log keys
        origin: Expected log origin

    Returns:
        The verified checkpoint

    Raises:
        CheckpointInvalidError: On a bad signature, origin mismatch or
            malformed body
    """
    try:
        note = open_note(raw, list(verifiers))
    except NoteError as e:
        raise CheckpointInvalidError(f"Failed to verify checkpoint: {e.message}", origin=origin) from e

    checkpoint = Checkpoint.parse(note.text)
    if checkpoint.origin != origin:
        raise CheckpointInvalidError(
            f"Checkpoint origin {checkpoint.origin!r} does not match expected {origin!r}",
            origin=origin,
        )

    logger.debug(f"Verified checkpoint for {origin} at size {checkpoint.size}")
    return checkpoint.model_copy(update={"signers": [s.name for s in note.signatures]})
