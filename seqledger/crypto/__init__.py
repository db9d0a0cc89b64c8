"""Cryptographic components for SeqLedger."""

from .hashing import LeafHasher, DEFAULT_HASHER
from .note import NoteSigner, NoteVerifier, Note, open_note

__all__ = [
    'LeafHasher',
    'DEFAULT_HASHER',
    'NoteSigner',
    'NoteVerifier',
    'Note',
    'open_note',
]
