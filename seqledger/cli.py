#!/usr/bin/env python
"""Command-line interface for sequencing entries into a SeqLedger log."""

import argparse
import logging
import os
import sys

from seqledger import __version__
from seqledger.core.config import DEFAULT_QUEUE_SIZE, load_config
from seqledger.core.exceptions import SeqLedgerError
from seqledger.core.sequencer import Sequencer, resolve_entries

logger = logging.getLogger("seqledger")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="seqledger",
        description="Sequence entries into a file-backed transparency log",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"SeqLedger {__version__}",
    )
    parser.add_argument("--storage_dir", required=True, help="Root directory to store log data.")
    parser.add_argument("--entries", required=True, help="File path glob of entries to add to the log.")
    parser.add_argument(
        "--identifier",
        default="",
        help="Optional hex encoded application-specific identifier for the entries",
    )
    parser.add_argument(
        "--public_key",
        default="",
        help="Location of public key file. If unset, uses the contents of the "
        "SERVERLESS_LOG_PUBLIC_KEY environment variable.",
    )
    parser.add_argument("--origin", required=True, help="Log origin string to check for in checkpoint.")
    parser.add_argument(
        "--index_duplicates",
        action="store_true",
        help="Also index entries whose content was already sequenced",
    )
    parser.add_argument(
        "--queue_size",
        type=int,
        default=DEFAULT_QUEUE_SIZE,
        help="Number of entries read ahead of sequencing",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv=None, environ=None):
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config(
            storage_dir=args.storage_dir,
            origin=args.origin,
            public_key=args.public_key or None,
            environ=os.environ if environ is None else environ,
            queue_size=args.queue_size,
            index_duplicates=args.index_duplicates,
        )
        sources = resolve_entries(args.entries, args.identifier or None)

        sequencer = Sequencer(config)
        sequencer.subscribe(lambda result: logger.info(result.describe()))
        sequencer.run(sources)
    except SeqLedgerError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
