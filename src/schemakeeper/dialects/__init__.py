"""
SQL dialects for schemakeeper.

This package provides:
- The base Dialect with the overridable formatting hooks
- MySQL and PostgreSQL dialects
- Lookup of a dialect by name
"""

from typing import Dict, Type

from ..exceptions import ConfigurationError
from .base import Dialect
from .mysql import MySQLDialect
from .postgresql import PostgreSQLDialect


DIALECTS: Dict[str, Type[Dialect]] = {
    "generic": Dialect,
    "mysql": MySQLDialect,
    "mariadb": MySQLDialect,
    "postgresql": PostgreSQLDialect,
    "postgres": PostgreSQLDialect,
    "pgsql": PostgreSQLDialect,
}


def get_dialect(name: str) -> Dialect:
    """Create a new dialect instance by name."""
    dialect_class = DIALECTS.get(name.lower())
    if dialect_class is None:
        raise ConfigurationError(
            f"Unknown dialect '{name}'. Available: {', '.join(sorted(DIALECTS))}"
        )
    return dialect_class()


__all__ = [
    "Dialect",
    "MySQLDialect",
    "PostgreSQLDialect",
    "DIALECTS",
    "get_dialect",
]
