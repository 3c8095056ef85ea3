"""
schemakeeper: database-agnostic table schema reconciliation.

schemakeeper keeps tables in line with declared definitions. It creates
missing tables and brings existing ones to the declared column set with
a single ALTER TABLE, rendering DDL through a pluggable SQL dialect.
"""

__version__ = "0.1.0"

from .exceptions import (
    ConfigurationError,
    DatabaseError,
    DDLError,
    DefinitionError,
    DriverError,
    IntrospectionError,
    SchemaKeeperError,
    TableNotFoundError,
)
from .schema import ColumnDefinition, KeyRole, SchemaDiff, TableDefinition
from .dialects import Dialect, MySQLDialect, PostgreSQLDialect, get_dialect
from .schema.operations import OperationMode, SchemaOperations
from .schema.reconciler import (
    ReconciliationResult,
    ReconciliationStatus,
    SchemaReconciler,
)

__all__ = [
    "__version__",
    "SchemaKeeperError",
    "ConfigurationError",
    "DefinitionError",
    "DatabaseError",
    "DriverError",
    "DDLError",
    "IntrospectionError",
    "TableNotFoundError",
    "ColumnDefinition",
    "KeyRole",
    "TableDefinition",
    "SchemaDiff",
    "Dialect",
    "MySQLDialect",
    "PostgreSQLDialect",
    "get_dialect",
    "OperationMode",
    "SchemaOperations",
    "ReconciliationResult",
    "ReconciliationStatus",
    "SchemaReconciler",
]
