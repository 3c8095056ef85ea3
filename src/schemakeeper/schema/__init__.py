"""
Schema definition package for schemakeeper.

This package provides:
- Column and table definitions
- Column equality and table diffs
- Conversion from the legacy per-column format
- Loading definitions from YAML files

The DDL emitter and the reconciler live in the operations and
reconciler modules and are imported from there.
"""

from .definition import (
    CURRENT_TIMESTAMP,
    ColumnDefinition,
    KeyRole,
    TableDefinition,
)
from .diff import SchemaDiff, columns_equal
from .legacy import LegacyColumnDef, convert_legacy_columns, is_numeric_type
from .loader import load_definitions, parse_definitions

__all__ = [
    "CURRENT_TIMESTAMP",
    "ColumnDefinition",
    "KeyRole",
    "TableDefinition",
    "SchemaDiff",
    "columns_equal",
    "LegacyColumnDef",
    "convert_legacy_columns",
    "is_numeric_type",
    "load_definitions",
    "parse_definitions",
]
