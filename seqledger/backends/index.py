"""Identifier index for SeqLedger.

Maps an application identifier to the sequence numbers of the entries tagged
with it. Each identifier gets one JSON document, ``{"Indices": [...]}``, at a
path sharded by the SHA-256 of its raw bytes.

Updates are a plain read-modify-write with no file locking: only a single
writer per storage root is supported, and callers must serialise runs.
"""

import binascii
import hashlib
import json
import os
from pathlib import Path
from typing import List, Tuple, Union
import logging

from pydantic import BaseModel, Field, ValidationError, field_validator

from .filesystem import make_dirs
from ..core.exceptions import IdentifierDecodeError, IndexUpdateError

logger = logging.getLogger(__name__)

FILE_PERM = 0o644


class IndexEntry(BaseModel):
    """Ordered sequence numbers recorded for one identifier."""

    model_config = {"populate_by_name": True}

    indices: List[int] = Field(default_factory=list, alias="Indices")

    @field_validator("indices", mode="before")
    @classmethod
    def null_as_empty(cls, v):
        """Documents written with no indices may hold ``null``."""
        return [] if v is None else v

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


def decode_identifier(identifier: str) -> bytes:
    """Decode a hex identifier.

    Raises:
        IdentifierDecodeError: If the identifier is empty or not valid hex
    """
    if not identifier:
        raise IdentifierDecodeError("Identifier is empty", identifier=identifier)
    try:
        return binascii.unhexlify(identifier)
    except (binascii.Error, ValueError) as e:
        raise IdentifierDecodeError(
            f"Unable to hex decode identifier {identifier!r}: {e}",
            identifier=identifier,
        ) from e


def index_path(root: Union[str, Path], raw_id: bytes) -> Tuple[Path, str]:
    """Directory and file name of the index document for an identifier."""
    h = hashlib.sha256(raw_id).hexdigest()
    return Path(root, "index", h[0:2], h[2:4]), h[4:]


class IndexStore:
    """JSON file per identifier under a storage root."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def path_for(self, identifier: str) -> Path:
        index_dir, index_file = index_path(self.root, decode_identifier(identifier))
        return index_dir / index_file

    def _read(self, path: Path, identifier: str) -> IndexEntry:
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            return IndexEntry()
        except OSError as e:
            raise IndexUpdateError(f"Unable to read index {path}: {e}", identifier=identifier) from e

        try:
            return IndexEntry.model_validate(json.loads(data))
        except (ValueError, ValidationError) as e:
            raise IndexUpdateError(
                f"Unable to decode existing JSON index {path}: {e}",
                identifier=identifier,
            ) from e

    def lookup(self, identifier: str) -> IndexEntry:
        """Read the index entry for an identifier.

        A never-written identifier yields an empty entry.
        """
        return self._read(self.path_for(identifier), identifier)

    def append(self, identifier: str, sequence_number: int) -> IndexEntry:
        """Record a sequence number against an identifier.

        Appending a number the identifier already holds leaves the document
        untouched, so a run that failed after sequencing can be retried.

        Args:
            identifier: Hex encoded identifier
            sequence_number: Number assigned to the tagged entry

        Returns:
            The index entry as written

        Raises:
            IdentifierDecodeError: If the identifier is not valid hex
            IndexUpdateError: If the index cannot be read or written
        """
        index_dir, index_file = index_path(self.root, decode_identifier(identifier))
        path = index_dir / index_file

        try:
            make_dirs(index_dir)
        except OSError as e:
            raise IndexUpdateError(
                f"Unable to create index directory {index_dir}: {e}",
                identifier=identifier,
                sequence_number=sequence_number,
            ) from e

        entry = self._read(path, identifier)
        if sequence_number in entry.indices:
            logger.debug(f"Index {identifier} already holds {sequence_number}")
            return entry

        entry = IndexEntry(indices=[*entry.indices, sequence_number])
        tmp = index_dir / f"{index_file}.tmp"
        try:
            fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, FILE_PERM)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(entry.to_json())
            os.replace(tmp, path)
        except OSError as e:
            raise IndexUpdateError(
                f"Unable to write index {path}: {e}",
                identifier=identifier,
                sequence_number=sequence_number,
            ) from e

        return entry

    def exists(self, identifier: str) -> bool:
        return self.path_for(identifier).exists()

