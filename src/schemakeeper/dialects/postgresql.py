"""
PostgreSQL dialect for schemakeeper.

PostgreSQL has no MODIFY COLUMN and no inline plain indexes, so both are
rendered differently from the base dialect: a modification becomes a group
of ALTER COLUMN sub-clauses, and non-unique indexes are created with
separate CREATE INDEX statements after the table.
"""

from dataclasses import replace
from typing import List, Optional, Sequence

from ..schema.definition import ColumnDefinition
from .base import Dialect


_INT_SIZES = {
    "tiny": "SMALLINT",
    "small": "SMALLINT",
    "medium": "INTEGER",
    "big": "BIGINT",
}

# Integer size classes as the catalogs report them back.
_STORED_INT_SIZES = {
    "tiny": "small",
    "small": "small",
    "big": "big",
}


class PostgreSQLDialect(Dialect):
    """PostgreSQL dialect."""

    name = "postgresql"

    type_names = {
        "int": "integer",
        "datetime": "timestamp",
        "blob": "bytea",
        "bool": "boolean",
        "float": "real",
    }

    # Type tags PostgreSQL stores under another canonical tag.
    type_aliases = {
        "integer": "int",
        "boolean": "bool",
        "timestamp": "datetime",
        "decimal": "numeric",
    }

    def quote_identifier(self, name: str) -> str:
        escaped = name.replace('"', '""')
        return f'"{escaped}"'

    def map_type(self, column: ColumnDefinition) -> str:
        canonical = column.effective_type
        size = column.size

        if canonical == "serial":
            return "BIGSERIAL" if size == "big" else "SERIAL"
        if canonical in ("int", "integer") and size in _INT_SIZES:
            return _INT_SIZES[size]
        if canonical == "float" and size == "big":
            return "DOUBLE PRECISION"

        return super().map_type(column)

    def normalize_column(self, column: ColumnDefinition) -> ColumnDefinition:
        """
        Fold a column onto what PostgreSQL stores for it.

        Size classes survive only where they pick a different native type.
        Type aliases collapse onto the tag introspection reports.
        """
        canonical = column.effective_type.lower()
        canonical = self.type_aliases.get(canonical, canonical)

        size = column.size
        if canonical == "int":
            size = _STORED_INT_SIZES.get(size)
        elif canonical in ("serial", "float"):
            size = "big" if size == "big" else None
        else:
            size = None

        changes = {"type": canonical, "size": size, "auto_increment": False}
        if canonical == "numeric" and column.precision is not None and column.scale is None:
            changes["scale"] = 0
        if canonical == "char" and column.length is None:
            changes["length"] = 1

        return replace(column, **changes)

    def storage_type(self, column: ColumnDefinition) -> str:
        """Type usable in ALTER COLUMN ... TYPE, where serial is not allowed."""
        if column.effective_type == "serial":
            return "BIGINT" if column.size == "big" else "INTEGER"
        return self.type_and_size(column)

    def inline_index_clause(
        self, table: str, index_name: str, columns: Sequence[str], unique: bool = False
    ) -> Optional[str]:
        if not unique:
            return None
        return (
            f"CONSTRAINT {self.quote_identifier(index_name)} "
            f"UNIQUE ({self.quote_identifiers(columns)})"
        )

    def alter_modify_column(self, column: ColumnDefinition) -> List[str]:
        # Validates default/NOT NULL exclusivity before splitting into sub-clauses.
        self.column_sql(column)

        quoted = self.quote_identifier(column.name)
        phrases = [f"ALTER COLUMN {quoted} TYPE {self.storage_type(column)}"]

        # A serial keeps its sequence default and implicit NOT NULL.
        if column.effective_type == "serial":
            return phrases

        if column.has_default:
            phrases.append(
                f"ALTER COLUMN {quoted} SET DEFAULT {self.quote_default_value(column)}"
            )
        else:
            phrases.append(f"ALTER COLUMN {quoted} DROP DEFAULT")

        if column.nullable:
            phrases.append(f"ALTER COLUMN {quoted} DROP NOT NULL")
        else:
            phrases.append(f"ALTER COLUMN {quoted} SET NOT NULL")

        return phrases
