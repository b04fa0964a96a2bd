"""Liftlog: workout aggregate store, history ledger and JSON-to-Postgres migration pipeline."""

__version__ = "0.1.0"
