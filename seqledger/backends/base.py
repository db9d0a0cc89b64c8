"""Base sequencing store interface for SeqLedger."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union


class SequencingStore(ABC):
    """Abstract base class for stores that assign sequence numbers."""

    def __init__(self):
        self.name = self.__class__.__name__

    @classmethod
    @abstractmethod
    def load(cls, root: Union[str, Path], size: int) -> "SequencingStore":
        """Open the store at the size of a verified checkpoint.

        Args:
            root: Storage root
            size: Log size from the checkpoint

        Returns:
            Store ready to sequence entries

        Raises:
            StorageError: If the store cannot be opened
        """
        pass

    @abstractmethod
    def sequence(self, leaf_hash: bytes, payload: bytes) -> int:
        """Assign a sequence number to a payload.

        Args:
            leaf_hash: Leaf hash of the payload
            payload: Raw entry bytes

        Returns:
            Newly assigned sequence number

        Raises:
            DuplicateEntryError: If the payload was already sequenced; the
                exception carries the existing number
            StorageError: If the store fails
        """
        pass

    @abstractmethod
    def get(self, sequence_number: int) -> Optional[bytes]:
        """Get the payload stored at a sequence number."""
        pass

    def close(self) -> None:
        """Close the store."""
        pass
