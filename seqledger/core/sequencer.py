"""Entry sequencing pipeline for SeqLedger."""

import glob
import os
import queue
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union
import logging

from .checkpoint import Checkpoint, read_checkpoint, verify_checkpoint
from .config import SequencerConfig
from .entry import Entry, EntrySource, SequenceResult
from .exceptions import (
    DuplicateEntryError,
    EntryReadError,
    GlobError,
    IndexUpdateError,
    NoEntriesError,
    SequencingError,
    StorageError,
)
from ..backends.base import SequencingStore
from ..backends.filesystem import FilesystemStore
from ..backends.index import IndexStore, decode_identifier
from ..crypto.hashing import DEFAULT_HASHER, LeafHasher

logger = logging.getLogger(__name__)

StoreLoader = Callable[[Path, int], SequencingStore]


def _check_pattern(pattern: str) -> None:
    if not pattern:
        raise GlobError("Entries pattern is empty", pattern=pattern)
    if pattern.endswith("\\"):
        raise GlobError(f"Malformed entries pattern {pattern!r}: trailing backslash", pattern=pattern)
    i = 0
    while i < len(pattern):
        if pattern[i] == "[":
            # A leading "]" (after an optional negation) is part of the class
            j = i + 1
            if j < len(pattern) and pattern[j] in "!^":
                j += 1
            if j < len(pattern) and pattern[j] == "]":
                j += 1
            close = pattern.find("]", j)
            if close < 0:
                raise GlobError(f"Malformed entries pattern {pattern!r}: unclosed '['", pattern=pattern)
            i = close
        i += 1


def resolve_entries(pattern: str, identifier: Optional[str] = None) -> List[EntrySource]:
    """Expand a glob into the files to sequence, in sorted order.

    Args:
        pattern: File path glob
        identifier: Optional hex identifier attached to every match

    Returns:
        One source per matching regular file

    Raises:
        GlobError: If the pattern is malformed
        NoEntriesError: If nothing matches
    """
    _check_pattern(pattern)
    paths = sorted(p for p in glob.glob(pattern, include_hidden=True) if os.path.isfile(p))
    if not paths:
        raise NoEntriesError(
            f"Sequence must be run with at least one valid entry; {pattern!r} matched nothing",
            pattern=pattern,
        )
    return [EntrySource(path=p, identifier=identifier or None) for p in paths]


class _Done:
    pass


_DONE = _Done()


@dataclass
class _ReadFailure:
    name: str
    error: Exception


class Sequencer:
    """Sequences entries into a log and maintains the identifier index.

    Reading payloads happens on a producer thread feeding a bounded queue;
    the calling thread hashes, sequences and indexes one entry at a time in
    the order the entries were given. It is the only caller of the store and
    the index.
    """

    def __init__(
        self,
        config: SequencerConfig,
        store_loader: Optional[StoreLoader] = None,
        index: Optional[IndexStore] = None,
        hasher: Optional[LeafHasher] = None,
    ):
        self.config = config
        self.store_loader = store_loader if store_loader is not None else FilesystemStore.load
        self.index = index if index is not None else IndexStore(config.storage_dir)
        self.hasher = hasher if hasher is not None else DEFAULT_HASHER
        self._subscribers: List[Callable[[SequenceResult], None]] = []

    def subscribe(self, callback: Callable[[SequenceResult], None]) -> None:
        """Subscribe to per-entry results.

        Args:
            callback: Function called with each SequenceResult
        """
        self._subscribers.append(callback)

    def _notify_subscribers(self, result: SequenceResult) -> None:
        for callback in self._subscribers:
            try:
                callback(result)
            except Exception as e:
                logger.error(f"Subscriber callback failed: {e}")

    def verify_checkpoint(self) -> Checkpoint:
        """Read and verify the checkpoint under the storage root.

        Raises:
            CheckpointUnreadableError: If the checkpoint cannot be read
            CheckpointInvalidError: If it fails verification
        """
        raw = read_checkpoint(self.config.storage_dir)
        return verify_checkpoint(raw, self.config.verifiers, self.config.origin)

    def open_store(self, checkpoint: Checkpoint) -> SequencingStore:
        try:
            return self.store_loader(self.config.storage_dir, checkpoint.size)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to load storage: {e}", "load") from e

    def sequence_entry(self, store: SequencingStore, entry: Entry) -> SequenceResult:
        """Sequence one entry and update its identifier index.

        Args:
            store: Store opened at the checkpoint size
            entry: Entry to sequence

        Returns:
            The assigned number and whether the payload was a duplicate

        Raises:
            SequencingError: If the store fails for any reason other than a
                duplicate
            IndexUpdateError: If the entry was sequenced but its index could
                not be updated
        """
        leaf_hash = self.hasher.hash_leaf(entry.payload)
        duplicate = False
        try:
            seq = store.sequence(leaf_hash, entry.payload)
        except DuplicateEntryError as e:
            seq = e.sequence_number
            duplicate = True
        except Exception as e:
            raise SequencingError(
                f"Failed to sequence {entry.label!r}: {e}",
                name=entry.name,
                leaf_hash=leaf_hash.hex(),
            ) from e

        indexed = False
        if entry.identifier and (not duplicate or self.config.index_duplicates):
            try:
                self.index.append(entry.identifier, seq)
            except IndexUpdateError as e:
                raise type(e)(
                    f"Sequenced {entry.label!r} at {seq} but failed to update its index: {e.message}",
                    identifier=entry.identifier,
                    sequence_number=seq,
                    name=entry.name,
                ) from e
            indexed = True

        return SequenceResult(
            sequence_number=seq,
            is_duplicate=duplicate,
            name=entry.name,
            identifier=entry.identifier,
            indexed=indexed,
        )

    def _put(self, entries: queue.Queue, item, stop: threading.Event) -> bool:
        while not stop.is_set():
            try:
                entries.put(item, timeout=0.1)
                return True
            except queue.Full:
                continue
        return False

    def _produce(
        self,
        sources: Sequence[Union[EntrySource, Entry]],
        entries: queue.Queue,
        stop: threading.Event,
    ) -> None:
        for source in sources:
            if isinstance(source, Entry):
                item = source
            else:
                try:
                    payload = Path(source.path).read_bytes()
                    item = Entry(payload=payload, name=source.path, identifier=source.identifier)
                except Exception as e:
                    self._put(entries, _ReadFailure(source.path, e), stop)
                    return
            if not self._put(entries, item, stop):
                return
        self._put(entries, _DONE, stop)

    def run(self, sources: Sequence[Union[EntrySource, Entry]]) -> List[SequenceResult]:
        """Sequence entries in order.

        Sources are either files to read or ready-made entries. Nothing is
        sequenced unless the checkpoint verifies, and the first failure
        aborts the rest of the batch; entries sequenced before it stay in
        the log.

        Args:
            sources: Entries in the order they must be sequenced

        Returns:
            One result per entry, in order

        Raises:
            NoEntriesError: If sources is empty
            IdentifierDecodeError: If any identifier is not valid hex
            CheckpointError: If the checkpoint is unreadable or invalid
            EntryReadError: If an entry file cannot be read
            SequencingError: If the store fails
            IndexUpdateError: If an index update fails
        """
        if not sources:
            raise NoEntriesError("Sequence must be run with at least one valid entry")

        # Reject bad identifiers before anything reaches the log
        for identifier in {s.identifier for s in sources if s.identifier}:
            decode_identifier(identifier)

        checkpoint = self.verify_checkpoint()
        store = self.open_store(checkpoint)
        logger.debug(f"Sequencing {len(sources)} entries from log size {checkpoint.size}")

        entries: queue.Queue = queue.Queue(maxsize=self.config.queue_size)
        stop = threading.Event()
        producer = threading.Thread(
            target=self._produce,
            args=(sources, entries, stop),
            name="seqledger-reader",
            daemon=True,
        )
        producer.start()

        results: List[SequenceResult] = []
        try:
            while True:
                item = entries.get()
                if item is _DONE:
                    break
                if isinstance(item, _ReadFailure):
                    raise EntryReadError(
                        f"Failed to read entry file {item.name!r}: {item.error}",
                        name=item.name,
                    ) from item.error

                result = self.sequence_entry(store, item)
                results.append(result)
                self._notify_subscribers(result)
        finally:
            stop.set()
            producer.join(timeout=5)
            store.close()

        logger.debug(f"Sequenced {len(results)} entries")
        return results

    def run_pattern(self, pattern: str, identifier: Optional[str] = None) -> List[SequenceResult]:
        """Resolve a glob and sequence every matching file."""
        return self.run(resolve_entries(pattern, identifier))
