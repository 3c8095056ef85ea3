"""
Base SQL dialect for schemakeeper.

A dialect is the set of formatting hooks the DDL emitter needs:
identifier quoting, value quoting, type mapping and column-clause
rendering, plus the shape of the few statements that differ between
engines. The base class renders a neutral SQL close to MySQL's
syntax and quotes nothing; engine dialects override what they need.
"""

from dataclasses import replace
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..exceptions import DefinitionError
from ..schema.definition import CURRENT_TIMESTAMP, ColumnDefinition, TableDefinition


class Dialect:
    """Generic dialect: identity type mapping, no identifier quoting."""

    name = "generic"

    # Canonical type tag -> native type name.
    type_names: Dict[str, str] = {}

    boolean_literals: Tuple[str, str] = ("TRUE", "FALSE")

    # Canonical types whose CURRENT_TIMESTAMP default is a function call.
    timestamp_types = ("datetime", "timestamp")

    # ---------------------------------------------------------------
    # Identifier quoting
    # ---------------------------------------------------------------

    def quote_identifier(self, name: str) -> str:
        """Quote a table, column or index name if the dialect needs it."""
        return name

    def quote_identifiers(self, names: Sequence[str]) -> str:
        return ", ".join(self.quote_identifier(n) for n in names)

    # ---------------------------------------------------------------
    # Type formatting
    # ---------------------------------------------------------------

    def map_type(self, column: ColumnDefinition) -> str:
        """Map the column's canonical type to a native type name."""
        canonical = column.effective_type
        return self.type_names.get(canonical, canonical).upper()

    def type_and_size(self, column: ColumnDefinition) -> str:
        """Native type with its length or precision/scale suffix."""
        type_name = self.map_type(column)
        lengths: List[int] = []

        if column.effective_type == "numeric":
            if column.precision is not None:
                lengths.append(column.precision)
                if column.scale is not None:
                    lengths.append(column.scale)
        elif column.length is not None:
            lengths.append(column.length)

        if lengths:
            return f"{type_name}({','.join(str(n) for n in lengths)})"
        return type_name

    # ---------------------------------------------------------------
    # Value quoting
    # ---------------------------------------------------------------

    def escape_string(self, value: str) -> str:
        """Escape a string for embedding between single quotes."""
        return value.replace("'", "''")

    def quote_value(self, value: Any) -> str:
        """Render a literal value as SQL."""
        if value is None:
            return "NULL"
        if isinstance(value, bool):
            return self.boolean_literals[0] if value else self.boolean_literals[1]
        if isinstance(value, (int, float, Decimal)):
            return str(value)
        return f"'{self.escape_string(str(value))}'"

    def quote_default_value(self, column: ColumnDefinition) -> str:
        """Render a column default; CURRENT_TIMESTAMP stays unquoted."""
        if (
            column.effective_type in self.timestamp_types
            and isinstance(column.default, str)
            and column.default.upper() == CURRENT_TIMESTAMP
        ):
            return CURRENT_TIMESTAMP
        return self.quote_value(column.default)

    # ---------------------------------------------------------------
    # Normalization
    # ---------------------------------------------------------------

    def normalize_column(self, column: ColumnDefinition) -> ColumnDefinition:
        """The column as the engine would store it, for comparisons."""
        return column

    def normalize_table(self, definition: TableDefinition) -> TableDefinition:
        return replace(
            definition,
            columns=tuple(self.normalize_column(c) for c in definition.columns),
        )

    # ---------------------------------------------------------------
    # Column clauses
    # ---------------------------------------------------------------

    def column_sql(self, column: ColumnDefinition) -> str:
        """
        SQL for a column's type, default and nullability.

        Suitable for CREATE TABLE column lists and ALTER TABLE
        ADD/MODIFY clauses. A default and NOT NULL are never rendered
        together.
        """
        if column.has_default and not column.nullable:
            raise DefinitionError(
                f"Column '{column.name}' declares both a default and NOT NULL",
                column_name=column.name,
            )

        line = [self.type_and_size(column)]
        if column.has_default:
            line.append("DEFAULT")
            line.append(self.quote_default_value(column))
        elif not column.nullable:
            line.append("NOT NULL")
        line.extend(self.column_extras(column))

        return " ".join(line)

    def column_extras(self, column: ColumnDefinition) -> List[str]:
        """Trailing keywords after type/default/nullability."""
        return []

    def column_clause(self, column: ColumnDefinition) -> str:
        """Quoted column name followed by its column SQL."""
        return f"{self.quote_identifier(column.name)} {self.column_sql(column)}"

    # ---------------------------------------------------------------
    # Table-level clauses
    # ---------------------------------------------------------------

    def primary_key_clause(self, columns: Sequence[str]) -> str:
        return f"PRIMARY KEY ({self.quote_identifiers(columns)})"

    def inline_index_clause(
        self, table: str, index_name: str, columns: Sequence[str], unique: bool = False
    ) -> Optional[str]:
        """Index clause inside CREATE TABLE, or None to emit CREATE INDEX after."""
        keyword = "UNIQUE INDEX" if unique else "INDEX"
        return (
            f"{keyword} {self.quote_identifier(index_name)} "
            f"({self.quote_identifiers(columns)})"
        )

    # ---------------------------------------------------------------
    # Statements
    # ---------------------------------------------------------------

    def create_table_sql(self, table: str, clauses: Sequence[str]) -> str:
        body = ",\n  ".join(clauses)
        return f"CREATE TABLE {self.quote_identifier(table)} (\n  {body}\n)"

    def drop_table_sql(self, table: str) -> str:
        return f"DROP TABLE {self.quote_identifier(table)}"

    def create_index_sql(
        self, table: str, index_name: str, columns: Sequence[str], unique: bool = False
    ) -> str:
        keyword = "CREATE UNIQUE INDEX" if unique else "CREATE INDEX"
        return (
            f"{keyword} {self.quote_identifier(index_name)} "
            f"ON {self.quote_identifier(table)} ({self.quote_identifiers(columns)})"
        )

    def drop_index_sql(self, table: str, index_name: str) -> str:
        return f"DROP INDEX {self.quote_identifier(index_name)}"

    def alter_table_sql(self, table: str, phrases: Sequence[str]) -> str:
        return f"ALTER TABLE {self.quote_identifier(table)} {', '.join(phrases)}"

    def alter_add_column(self, column: ColumnDefinition) -> List[str]:
        return [f"ADD COLUMN {self.column_clause(column)}"]

    def alter_modify_column(self, column: ColumnDefinition) -> List[str]:
        return [f"MODIFY COLUMN {self.column_clause(column)}"]

    def alter_drop_column(self, column_name: str) -> List[str]:
        return [f"DROP COLUMN {self.quote_identifier(column_name)}"]

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"
