"""Entry and result models for SeqLedger."""

from typing import Optional

from pydantic import BaseModel, Field


class EntrySource(BaseModel):
    """A file whose whole contents will become one log entry."""

    model_config = {"frozen": True}

    path: str
    identifier: Optional[str] = None


class Entry(BaseModel):
    """Immutable payload waiting to be sequenced.

    ``name`` is only used to tell the user which input a sequence number was
    assigned to; deduplication is keyed on the payload's leaf hash alone.
    """

    model_config = {"frozen": True}

    payload: bytes
    name: Optional[str] = None
    identifier: Optional[str] = None

    @property
    def label(self) -> str:
        return self.name if self.name is not None else "<unnamed>"


class SequenceResult(BaseModel):
    """Outcome of sequencing one entry."""

    model_config = {"frozen": True}

    sequence_number: int = Field(ge=0)
    is_duplicate: bool = False
    name: Optional[str] = None
    identifier: Optional[str] = None
    indexed: bool = False

    def describe(self) -> str:
        """Format the result as ``<seq>: <name>`` with a dupe marker."""
        name = self.name if self.name is not None else "<unnamed>"
        line = f"{self.sequence_number}: {name}"
        if self.is_duplicate:
            line += " (dupe)"
        return line
