"""Configuration for SeqLedger."""

import os
from pathlib import Path
from typing import List, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from .exceptions import ConfigurationError, NoteError, PublicKeyError
from ..crypto.note import NoteVerifier

PUBLIC_KEY_ENV = "SERVERLESS_LOG_PUBLIC_KEY"
DEFAULT_QUEUE_SIZE = 100


class SequencerConfig(BaseModel):
    """Everything the sequencer needs, passed in rather than read from the process."""

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    storage_dir: Path
    origin: str
    verifiers: List[NoteVerifier]
    queue_size: int = Field(default=DEFAULT_QUEUE_SIZE, gt=0)
    index_duplicates: bool = False

    @field_validator("origin")
    @classmethod
    def validate_origin(cls, v):
        """Ensure an origin is given; checkpoints cannot be checked without one."""
        if not v:
            raise ValueError("origin must be set")
        return v

    @field_validator("verifiers")
    @classmethod
    def validate_verifiers(cls, v):
        if not v:
            raise ValueError("at least one trusted public key is required")
        return v


def parse_verifiers(text: str) -> List[NoteVerifier]:
    """Parse one verifier key per non-empty line."""
    try:
        verifiers = [NoteVerifier.from_key(line) for line in text.splitlines() if line.strip()]
    except NoteError as e:
        raise PublicKeyError(f"Invalid public key: {e.message}", option="public_key") from e
    if not verifiers:
        raise PublicKeyError("Public key is empty", option="public_key")
    return verifiers


def load_verifiers(
    path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> List[NoteVerifier]:
    """Load the log's public key(s).

    The key file wins when a path is given; otherwise the key is taken from
    the ``SERVERLESS_LOG_PUBLIC_KEY`` variable of ``environ`` (the process
    environment by default).

    Raises:
        PublicKeyError: If no key is available or it cannot be parsed
    """
    if path:
        try:
            text = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise PublicKeyError(f"Failed to read public_key file: {e}", option="public_key", value=path) from e
        return parse_verifiers(text)

    environ = os.environ if environ is None else environ
    text = environ.get(PUBLIC_KEY_ENV, "")
    if not text:
        raise PublicKeyError(
            f"Supply public key file path using --public_key or set {PUBLIC_KEY_ENV} environment variable",
            option="public_key",
        )
    return parse_verifiers(text)


def load_config(
    storage_dir: str,
    origin: str,
    public_key: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
    **options,
) -> SequencerConfig:
    """Build a SequencerConfig, reporting problems as ConfigurationError."""
    if not storage_dir:
        raise ConfigurationError("storage_dir must be set", option="storage_dir")
    verifiers = load_verifiers(public_key, environ)
    try:
        return SequencerConfig(
            storage_dir=Path(storage_dir),
            origin=origin,
            verifiers=verifiers,
            **options,
        )
    except ValidationError as e:
        errors = e.errors()
        option = str(errors[0]["loc"][0]) if errors and errors[0]["loc"] else None
        raise ConfigurationError(f"Invalid configuration: {e}", option=option) from e
