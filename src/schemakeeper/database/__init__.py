"""
Database integration package for schemakeeper.

This package provides:
- The connection and introspector interfaces the engine consumes
- An asyncpg-backed PostgreSQL connection
- PostgreSQL table introspection
"""

from .connection import Connection, ConnectionConfig, PostgresConnection
from .introspection import IndexInfo, Introspector, PostgresIntrospector, parse_default

__all__ = [
    "Connection",
    "ConnectionConfig",
    "PostgresConnection",
    "IndexInfo",
    "Introspector",
    "PostgresIntrospector",
    "parse_default",
]
