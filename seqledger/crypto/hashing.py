"""Leaf hashing for SeqLedger."""

import hashlib


class LeafHasher:
    """RFC 6962 SHA-256 hasher used to fingerprint entry payloads.

    The leaf hash is the deduplication key: two entries with the same
    payload always hash to the same digest, whatever their names.
    """

    LEAF_PREFIX = b"\x00"

    def hash_leaf(self, payload: bytes) -> bytes:
        """Calculate the leaf hash of an entry payload.

        Args:
            payload: Raw entry bytes

        Returns:
            SHA-256 of the domain-separated payload
        """
        hasher = hashlib.sha256()
        hasher.update(self.LEAF_PREFIX)
        hasher.update(payload)
        return hasher.digest()

    def empty_root(self) -> bytes:
        """Root hash of a tree with no leaves."""
        return hashlib.sha256().digest()


DEFAULT_HASHER = LeafHasher()
