"""Helpers for building multi-statement writes."""

from cassandra.query import BatchStatement, BatchType


def logged_batch() -> BatchStatement:
    """Create a LOGGED batch: all statements apply or none do."""
    return BatchStatement(batch_type=BatchType.LOGGED)
