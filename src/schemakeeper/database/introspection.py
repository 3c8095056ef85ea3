"""
Database schema introspection for schemakeeper.

Reads the current definition of a PostgreSQL table from the system
catalogs and maps it back onto canonical column types, so it can be
compared with a declared TableDefinition.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Tuple

from ..exceptions import DriverError, IntrospectionError, TableNotFoundError
from ..schema.definition import CURRENT_TIMESTAMP, ColumnDefinition, TableDefinition


logger = logging.getLogger(__name__)


class Introspector(Protocol):
    """What the reconciler needs to read a table's current definition."""

    async def get_table_def(self, table: str) -> TableDefinition:
        """Return the live definition, raising TableNotFoundError if absent."""
        ...


# information_schema data_type -> (canonical type, size class)
PG_TYPE_MAP: Dict[str, Tuple[str, Optional[str]]] = {
    "integer": ("int", None),
    "smallint": ("int", "small"),
    "bigint": ("int", "big"),
    "character varying": ("varchar", None),
    "character": ("char", None),
    "text": ("text", None),
    "numeric": ("numeric", None),
    "real": ("float", None),
    "double precision": ("float", "big"),
    "boolean": ("bool", None),
    "bytea": ("blob", None),
    "date": ("date", None),
    "time without time zone": ("time", None),
    "timestamp without time zone": ("datetime", None),
    "timestamp with time zone": ("timestamptz", None),
}


@dataclass
class IndexInfo:
    """Information about a database index."""

    name: str
    columns: Tuple[str, ...]
    is_unique: bool
    is_primary: bool = False


_CAST_RE = re.compile(r"^(.*)::([\w\s\"\[\]\.]+)$", re.DOTALL)
_INT_RE = re.compile(r"^-?\d+$")
_FLOAT_RE = re.compile(r"^-?\d+\.\d+$")

# Casts under which PostgreSQL quotes negative numeric defaults.
_NUMERIC_CASTS = ("integer", "smallint", "bigint", "numeric", "real", "double precision")


def _parse_number(value: str) -> Any:
    if _INT_RE.match(value):
        return int(value)
    if _FLOAT_RE.match(value):
        return float(value)
    return value


def parse_default(raw: Optional[str]) -> Any:
    """Turn a column_default expression into a definition default value."""
    if raw is None:
        return None

    value = raw.strip()
    cast = None
    while True:
        match = _CAST_RE.match(value)
        if not match:
            break
        value = match.group(1).strip()
        cast = cast or match.group(2).strip().lower()
    if value.startswith("(") and value.endswith(")"):
        value = value[1:-1].strip()

    if len(value) >= 2 and value.startswith("'") and value.endswith("'"):
        text = value[1:-1].replace("''", "'")
        if cast in _NUMERIC_CASTS:
            return _parse_number(text)
        return text
    if value.upper() in (CURRENT_TIMESTAMP, "NOW()"):
        return CURRENT_TIMESTAMP
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    if value.upper() == "NULL":
        return None
    return _parse_number(value)


class PostgresIntrospector:
    """Builds TableDefinitions from the PostgreSQL catalogs."""

    def __init__(self, connection, schema: str = "public"):
        self.connection = connection
        self.schema = schema

    async def get_table_def(self, table: str) -> TableDefinition:
        """Get the complete current definition of a table."""
        try:
            exists = await self.table_exists(table)
            if not exists:
                raise TableNotFoundError(table, self.schema)

            indexes = await self.get_indexes(table)
            primary_key: Tuple[str, ...] = ()
            for index in indexes:
                if index.is_primary:
                    primary_key = index.columns
            columns = await self.get_columns(table, primary_key)
        except DriverError as e:
            logger.error(f"Error introspecting {self.schema}.{table}: {e}")
            raise IntrospectionError(
                f"Failed to introspect table {self.schema}.{table}: {e}", cause=e
            ) from e

        return TableDefinition(
            columns=tuple(columns),
            primary_key=primary_key,
            unique_indexes={
                i.name: i.columns for i in indexes if i.is_unique and not i.is_primary
            },
            indexes={i.name: i.columns for i in indexes if not i.is_unique},
            name=table,
        )

    async def table_exists(self, table: str) -> bool:
        """Check if a table exists."""
        query = """
            SELECT EXISTS (
                SELECT 1 FROM information_schema.tables
                WHERE table_schema = $1 AND table_name = $2
            )
        """
        result = await self.connection.fetchval(query, self.schema, table)
        return bool(result)

    async def get_columns(
        self, table: str, primary_key: Tuple[str, ...] = ()
    ) -> List[ColumnDefinition]:
        """Get all columns of a table in ordinal order."""
        query = """
            SELECT
                c.column_name,
                c.data_type,
                c.is_nullable,
                c.column_default,
                c.character_maximum_length,
                c.numeric_precision,
                c.numeric_scale,
                c.udt_name
            FROM information_schema.columns c
            WHERE c.table_schema = $1 AND c.table_name = $2
            ORDER BY c.ordinal_position
        """
        rows = await self.connection.fetch(query, self.schema, table)
        return [self._column_from_row(row, primary_key) for row in rows]

    def _column_from_row(self, row, primary_key: Tuple[str, ...]) -> ColumnDefinition:
        data_type = row["data_type"].lower()
        column_type, size = PG_TYPE_MAP.get(data_type, (row["udt_name"], None))

        raw_default = row["column_default"]
        default = None
        if raw_default and raw_default.startswith("nextval("):
            column_type = "serial"
        else:
            default = parse_default(raw_default)

        length = None
        if column_type in ("varchar", "char"):
            length = row["character_maximum_length"]

        precision = scale = None
        if column_type == "numeric":
            precision = row["numeric_precision"]
            if precision is not None:
                scale = row["numeric_scale"]

        # NOT NULL implied by a default, a serial type or primary key
        # membership is not part of the declared shape.
        nullable = row["is_nullable"] == "YES"
        if default is not None or column_type == "serial" or row["column_name"] in primary_key:
            nullable = True

        return ColumnDefinition(
            name=row["column_name"],
            type=column_type,
            length=length,
            precision=precision,
            scale=scale,
            size=size,
            nullable=nullable,
            default=default,
        )

    async def get_indexes(self, table: str) -> List[IndexInfo]:
        """Get the indexes of a table, primary key index included."""
        query = """
            SELECT
                ic.relname AS index_name,
                ix.indisunique AS is_unique,
                ix.indisprimary AS is_primary,
                array_agg(a.attname ORDER BY k.ord) AS columns
            FROM pg_index ix
            JOIN pg_class tc ON tc.oid = ix.indrelid
            JOIN pg_namespace n ON n.oid = tc.relnamespace
            JOIN pg_class ic ON ic.oid = ix.indexrelid
            JOIN LATERAL unnest(ix.indkey::int2[]) WITH ORDINALITY AS k(attnum, ord) ON true
            JOIN pg_attribute a ON a.attrelid = tc.oid AND a.attnum = k.attnum
            WHERE n.nspname = $1 AND tc.relname = $2
            GROUP BY ic.relname, ix.indisunique, ix.indisprimary
            ORDER BY ic.relname
        """
        rows = await self.connection.fetch(query, self.schema, table)
        return [
            IndexInfo(
                name=row["index_name"],
                columns=tuple(row["columns"]),
                is_unique=bool(row["is_unique"]),
                is_primary=bool(row["is_primary"]),
            )
            for row in rows
        ]

    async def list_tables(self) -> List[str]:
        """List the base tables in the introspected schema."""
        query = """
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = $1
            AND table_type = 'BASE TABLE'
            ORDER BY table_name
        """
        try:
            rows = await self.connection.fetch(query, self.schema)
        except DriverError as e:
            raise IntrospectionError(f"Failed to list tables: {e}", cause=e) from e
        return [row["table_name"] for row in rows]
