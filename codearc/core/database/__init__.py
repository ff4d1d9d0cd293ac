"""Database connection module for CodeArc."""

from codearc.core.database.async_cassandra import (
    AsyncCassandraConnection,
    init_async_cassandra,
    init_schema,
)


__all__ = [
    "AsyncCassandraConnection",
    "init_async_cassandra",
    "init_schema",
]
