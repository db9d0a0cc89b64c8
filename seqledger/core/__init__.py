"""Core sequencing components for SeqLedger."""
