"""
MySQL dialect for schemakeeper.
"""

from typing import List, Sequence

from ..schema.definition import ColumnDefinition
from .base import Dialect


_INT_SIZES = {
    "tiny": "TINYINT",
    "small": "SMALLINT",
    "medium": "MEDIUMINT",
    "big": "BIGINT",
}

_TEXT_SIZES = {
    "tiny": "TINYTEXT",
    "medium": "MEDIUMTEXT",
    "big": "LONGTEXT",
}

_BLOB_SIZES = {
    "tiny": "TINYBLOB",
    "medium": "MEDIUMBLOB",
    "big": "LONGBLOB",
}


class MySQLDialect(Dialect):
    """MySQL / MariaDB dialect."""

    name = "mysql"

    type_names = {
        "serial": "int",
        "integer": "int",
        "numeric": "decimal",
        "bool": "tinyint(1)",
        "boolean": "tinyint(1)",
    }

    def quote_identifier(self, name: str) -> str:
        escaped = name.replace("`", "``")
        return f"`{escaped}`"

    def escape_string(self, value: str) -> str:
        return value.replace("\\", "\\\\").replace("'", "''")

    def map_type(self, column: ColumnDefinition) -> str:
        canonical = column.effective_type
        size = column.size

        if canonical in ("int", "integer", "serial") and size in _INT_SIZES:
            return _INT_SIZES[size]
        if canonical == "text" and size in _TEXT_SIZES:
            return _TEXT_SIZES[size]
        if canonical == "blob" and size in _BLOB_SIZES:
            return _BLOB_SIZES[size]
        if canonical == "float" and size == "big":
            return "DOUBLE"

        return super().map_type(column)

    def column_extras(self, column: ColumnDefinition) -> List[str]:
        if column.effective_type == "serial":
            return ["AUTO_INCREMENT"]
        return []

    def create_index_sql(
        self, table: str, index_name: str, columns: Sequence[str], unique: bool = False
    ) -> str:
        keyword = "ADD UNIQUE INDEX" if unique else "ADD INDEX"
        return (
            f"ALTER TABLE {self.quote_identifier(table)} {keyword} "
            f"{self.quote_identifier(index_name)} ({self.quote_identifiers(columns)})"
        )

    def drop_index_sql(self, table: str, index_name: str) -> str:
        return (
            f"ALTER TABLE {self.quote_identifier(table)} "
            f"DROP INDEX {self.quote_identifier(index_name)}"
        )
