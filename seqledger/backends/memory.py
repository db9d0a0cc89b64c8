"""In-memory sequencing store for SeqLedger."""

from pathlib import Path
from typing import Dict, Optional, Union
import threading

from .base import SequencingStore
from ..core.exceptions import DuplicateEntryError


class MemoryStore(SequencingStore):
    """Simple in-memory store for embedding and testing."""

    def __init__(self, next_sequence: int = 0):
        super().__init__()
        self._by_hash: Dict[bytes, int] = {}
        self._payloads: Dict[int, bytes] = {}
        self._lock = threading.RLock()
        self._next_sequence = next_sequence

    @classmethod
    def load(cls, root: Union[str, Path], size: int) -> "MemoryStore":
        return cls(next_sequence=size)

    @property
    def next_sequence(self) -> int:
        return self._next_sequence

    def sequence(self, leaf_hash: bytes, payload: bytes) -> int:
        with self._lock:
            if leaf_hash in self._by_hash:
                seq = self._by_hash[leaf_hash]
                raise DuplicateEntryError(f"Leaf already sequenced at {seq}", seq)

            seq = self._next_sequence
            self._by_hash[leaf_hash] = seq
            self._payloads[seq] = payload
            self._next_sequence += 1
            return seq

    def get(self, sequence_number: int) -> Optional[bytes]:
        with self._lock:
            return self._payloads.get(sequence_number)

