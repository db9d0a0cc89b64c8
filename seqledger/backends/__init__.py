"""Storage implementations for SeqLedger."""

from .base import SequencingStore
from .filesystem import FilesystemStore
from .memory import MemoryStore
from .index import IndexEntry, IndexStore

__all__ = [
    'SequencingStore',
    'FilesystemStore',
    'MemoryStore',
    'IndexEntry',
    'IndexStore',
]
