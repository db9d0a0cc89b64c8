"""SeqLedger - Entry sequencing for file-backed transparency logs.

Appends entries to an append-only, tamper-evident log, giving each distinct
payload a durable, gap-free sequence number, and keeps a secondary index
from application identifiers to the numbers of the entries tagged with them.
"""

__version__ = "1.0.0"

from seqledger.core.entry import Entry, EntrySource, SequenceResult
from seqledger.core.config import SequencerConfig, load_config, load_verifiers
from seqledger.core.checkpoint import Checkpoint, verify_checkpoint
from seqledger.core.sequencer import Sequencer, resolve_entries
from seqledger.core.exceptions import (
    SeqLedgerError,
    ConfigurationError,
    CheckpointError,
    EntryReadError,
    SequencingError,
    IndexUpdateError,
    StorageError,
)

__all__ = [
    "Entry",
    "EntrySource",
    "SequenceResult",
    "SequencerConfig",
    "load_config",
    "load_verifiers",
    "Checkpoint",
    "verify_checkpoint",
    "Sequencer",
    "resolve_entries",
    "SeqLedgerError",
    "ConfigurationError",
    "CheckpointError",
    "EntryReadError",
    "SequencingError",
    "IndexUpdateError",
    "StorageError",
]
