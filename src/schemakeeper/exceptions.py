"""
Exception classes for schemakeeper.
"""

from typing import Any, Dict, Optional


class SchemaKeeperError(Exception):
    """Base exception for all schemakeeper errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        result = self.message
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            result += f" [{details_str}]"
        if self.cause:
            result += f" (caused by: {self.cause})"
        return result


class ConfigurationError(SchemaKeeperError):
    """Raised when there's an error in configuration."""

    pass


class DefinitionError(SchemaKeeperError):
    """Raised when a table or column definition violates a data-model invariant."""

    def __init__(
        self,
        message: str,
        table_name: Optional[str] = None,
        column_name: Optional[str] = None,
    ) -> None:
        details = {}
        if table_name:
            details["table"] = table_name
        if column_name:
            details["column"] = column_name

        super().__init__(message, details)
        self.table_name = table_name
        self.column_name = column_name


class DatabaseError(SchemaKeeperError):
    """Raised when there's an error with database operations."""

    pass


class DriverError(DatabaseError):
    """Raised by a connection when the driver rejects a statement.

    The message is the driver's own, unchanged.
    """

    def __init__(
        self,
        message: str,
        sql: Optional[str] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.sql = sql

    def __str__(self) -> str:
        return self.message


class DDLError(DatabaseError):
    """Raised when a generated DDL statement fails to execute."""

    def __init__(
        self,
        message: str,
        sql: Optional[str] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.sql = sql

    def __str__(self) -> str:
        # Operators need the verbatim driver message first.
        if self.sql:
            return f"{self.message} [sql={self.sql}]"
        return self.message


class IntrospectionError(DatabaseError):
    """Raised when the current definition of a table cannot be read."""

    pass


class TableNotFoundError(IntrospectionError):
    """Raised when introspection finds no table with the given name."""

    def __init__(self, table_name: str, schema: Optional[str] = None) -> None:
        full_name = f"{schema}.{table_name}" if schema else table_name
        super().__init__(f"Table {full_name} does not exist")
        self.table_name = table_name
        self.schema = schema
