"""Filesystem sequencing store for SeqLedger.

Sequenced payloads live under ``seq/`` at a path derived from their sequence
number; a file per leaf hash under ``leaves/`` records the number each
payload was given, which is how duplicates are detected across runs.
"""

import os
from pathlib import Path
from typing import Optional, Tuple, Union
import logging

from .base import SequencingStore
from ..core.exceptions import DuplicateEntryError, StorageError

logger = logging.getLogger(__name__)

DIR_PERM = 0o755
FILE_PERM = 0o644


def seq_path(root: Union[str, Path], seq: int) -> Tuple[Path, str]:
    """Directory and file name holding the payload for a sequence number."""
    if seq < 0 or seq >= 1 << 40:
        raise ValueError(f"Sequence number out of range: {seq}")
    frags = [f"{seq >> 32:02x}"] + [f"{(seq >> shift) & 0xff:02x}" for shift in (24, 16, 8, 0)]
    return Path(root, "seq", *frags[:4]), frags[4]


def leaf_path(root: Union[str, Path], leaf_hash: bytes) -> Tuple[Path, str]:
    """Directory and file name recording the sequence number of a leaf."""
    h = leaf_hash.hex()
    return Path(root, "leaves", "pending", h[0:2], h[2:4], h[4:6]), h[6:]


def make_dirs(path: Path, mode: int = DIR_PERM) -> None:
    """Create a directory and any missing parents, all with the given mode."""
    missing = []
    while not path.exists():
        missing.append(path)
        path = path.parent
    for directory in reversed(missing):
        try:
            directory.mkdir(mode=mode)
        except FileExistsError:
            pass


def _write_exclusive(path: Path, data: bytes) -> None:
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, FILE_PERM)
    with os.fdopen(fd, "wb") as f:
        f.write(data)


class FilesystemStore(SequencingStore):
    """Store that sequences entries into a directory tree.

    Numbering starts at the checkpoint size. Slots taken by entries that were
    sequenced but not yet integrated into a new checkpoint are skipped, so
    several sequencing runs between integrations stay gap-free.

    Not safe for concurrent use by several processes.
    """

    def __init__(self, root: Union[str, Path], next_sequence: int):
        super().__init__()
        self.root = Path(root)
        self._next_sequence = next_sequence

    @classmethod
    def load(cls, root: Union[str, Path], size: int) -> "FilesystemStore":
        if not Path(root).is_dir():
            raise StorageError(f"Storage root {root} is not a directory", "load", cls.__name__)
        logger.debug(f"Loaded filesystem store at {root} with size {size}")
        return cls(root, next_sequence=size)

    @property
    def next_sequence(self) -> int:
        return self._next_sequence

    def _existing_sequence(self, path: Path) -> Optional[int]:
        try:
            text = path.read_text(encoding="ascii").strip()
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Failed to read leaf record {path}: {e}", "sequence", self.name) from e
        try:
            return int(text)
        except ValueError as e:
            raise StorageError(f"Corrupt leaf record {path}: {text!r}", "sequence", self.name) from e

    def sequence(self, leaf_hash: bytes, payload: bytes) -> int:
        leaf_dir, leaf_file = leaf_path(self.root, leaf_hash)
        leaf_fq = leaf_dir / leaf_file

        existing = self._existing_sequence(leaf_fq)
        if existing is not None:
            raise DuplicateEntryError(f"Leaf already sequenced at {existing}", existing)

        try:
            make_dirs(leaf_dir)

            # Scan past slots filled by earlier, not yet integrated, runs
            while True:
                seq = self._next_sequence
                self._next_sequence += 1
                seq_dir, seq_file = seq_path(self.root, seq)
                make_dirs(seq_dir)
                try:
                    _write_exclusive(seq_dir / seq_file, payload)
                except FileExistsError:
                    continue
                break

            tmp = leaf_dir / f"{leaf_file}.tmp"
            fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, FILE_PERM)
            with os.fdopen(fd, "w", encoding="ascii") as f:
                f.write(str(seq))
            os.replace(tmp, leaf_fq)
        except OSError as e:
            raise StorageError(f"Failed to sequence leaf: {e}", "sequence", self.name) from e

        return seq

    def get(self, sequence_number: int) -> Optional[bytes]:
        seq_dir, seq_file = seq_path(self.root, sequence_number)
        try:
            return (seq_dir / seq_file).read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Failed to read entry {sequence_number}: {e}", "get", self.name) from e
