"""Exception classes for SeqLedger."""

from typing import Optional, Any


class SeqLedgerError(Exception):
    """Base exception for all SeqLedger errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(SeqLedgerError):
    """Raised when the sequencer is misconfigured before any work starts."""

    def __init__(self, message: str, option: Optional[str] = None, value: Any = None):
        details = {"option": option, "value": value}
        super().__init__(message, details)
        self.option = option
        self.value = value


class PublicKeyError(ConfigurationError):
    """Raised when no usable log public key can be loaded."""


class GlobError(ConfigurationError):
    """Raised when the entries pattern is malformed."""

    def __init__(self, message: str, pattern: Optional[str] = None):
        super().__init__(message, option="entries", value=pattern)
        self.pattern = pattern


class NoEntriesError(ConfigurationError):
    """Raised when the entries pattern matches no files."""

    def __init__(self, message: str, pattern: Optional[str] = None):
        super().__init__(message, option="entries", value=pattern)
        self.pattern = pattern


class NoteError(SeqLedgerError):
    """Raised when a signed note or note key cannot be parsed or verified."""


class UnverifiedNoteError(NoteError):
    """Raised when a note carries no valid signature from a trusted key."""


class CheckpointError(SeqLedgerError):
    """Base class for checkpoint failures; always fatal to a run."""

    def __init__(self, message: str, origin: Optional[str] = None, path: Optional[str] = None):
        details = {"origin": origin, "path": path}
        super().__init__(message, details)
        self.origin = origin
        self.path = path


class CheckpointUnreadableError(CheckpointError):
    """Raised when the checkpoint cannot be read from storage."""


class CheckpointInvalidError(CheckpointError):
    """Raised when the checkpoint is malformed, unsigned or for another log."""


class EntryReadError(SeqLedgerError):
    """Raised when an entry's payload cannot be read."""

    def __init__(self, message: str, name: Optional[str] = None):
        super().__init__(message, {"name": name})
        self.name = name


class DuplicateEntryError(SeqLedgerError):
    """Raised by a store when the payload was already sequenced.

    This is not a failure: ``sequence_number`` carries the number originally
    assigned to the payload.
    """

    def __init__(self, message: str, sequence_number: int):
        super().__init__(message, {"sequence_number": sequence_number})
        self.sequence_number = sequence_number


class SequencingError(SeqLedgerError):
    """Raised when a store fails to sequence an entry."""

    def __init__(self, message: str, name: Optional[str] = None, leaf_hash: Optional[str] = None):
        details = {"name": name, "leaf_hash": leaf_hash}
        super().__init__(message, details)
        self.name = name
        self.leaf_hash = leaf_hash


class IndexUpdateError(SeqLedgerError):
    """Raised when the identifier index cannot be read or written."""

    def __init__(
        self,
        message: str,
        identifier: Optional[str] = None,
        sequence_number: Optional[int] = None,
        name: Optional[str] = None,
    ):
        details = {
            "identifier": identifier,
            "sequence_number": sequence_number,
            "name": name,
        }
        super().__init__(message, details)
        self.identifier = identifier
        self.sequence_number = sequence_number
        self.name = name


class IdentifierDecodeError(IndexUpdateError):
    """Raised when an identifier is not valid hex."""


class StorageError(SeqLedgerError):
    """Raised when storage operations fail."""

    def __init__(self, message: str, operation: str, backend: Optional[str] = None):
        details = {"operation": operation, "backend": backend}
        super().__init__(message, details)
        self.operation = operation
        self.backend = backend
