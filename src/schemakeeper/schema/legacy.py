"""
Conversion of legacy per-column definitions.

Older callers describe a table as an ordered list of column objects, each
carrying its own key flag (``PRI``, ``UNI``, ``MUL``) and a type name that
may embed a size class (``tinyint``, ``bigtext``). This module converts
such a list into a TableDefinition. It is a pure function: nothing is
mutated and nothing touches the database.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .definition import ColumnDefinition, KeyRole, TableDefinition


SIZE_PREFIXES = ("tiny", "small", "medium", "big")

LEGACY_KEYS = {
    "PRI": KeyRole.PRIMARY,
    "UNI": KeyRole.UNIQUE,
    "MUL": KeyRole.MULTIPLE,
}


@dataclass(frozen=True)
class LegacyColumnDef:
    """A column in the legacy one-object-per-column format."""

    name: str
    type: str
    size: Optional[int] = None
    nullable: bool = True
    key: Optional[str] = None
    default: Any = None
    auto_increment: bool = False


def is_numeric_type(type_name: str) -> bool:
    """Check if a canonical type tag is numeric."""
    return type_name.lower() in ("int", "serial", "numeric")


def _split_size_prefix(type_name: str) -> Tuple[str, Optional[str]]:
    for prefix in SIZE_PREFIXES:
        if type_name.startswith(prefix) and len(type_name) > len(prefix):
            return type_name[len(prefix):], prefix
    return type_name, None


def convert_legacy_columns(
    table_name: str, legacy_columns: Sequence[LegacyColumnDef]
) -> TableDefinition:
    """
    Convert legacy column objects into a TableDefinition.

    Args:
        table_name: Name of the table, used to name single-column indexes
        legacy_columns: Columns in declaration order

    Returns:
        TableDefinition with primary key and indexes derived from the
        per-column key flags
    """
    columns: List[ColumnDefinition] = []
    primary_key: List[str] = []
    unique_indexes: Dict[str, List[str]] = {}
    indexes: Dict[str, List[str]] = {}

    for legacy in legacy_columns:
        column_type, size = _split_size_prefix(legacy.type)

        length = None
        if legacy.size and legacy.type in ("varchar", "char"):
            length = legacy.size

        if legacy.auto_increment:
            column_type = "serial"

        # Legacy definitions treat a falsy default as "no default".
        default = legacy.default if legacy.default else None

        key_role = LEGACY_KEYS.get((legacy.key or "").upper(), KeyRole.NONE)

        columns.append(
            ColumnDefinition(
                name=legacy.name,
                type=column_type,
                length=length,
                size=size,
                nullable=legacy.nullable,
                default=default,
                key_role=key_role,
            )
        )

        index_name = f"{table_name}_{legacy.name}_idx"
        if key_role == KeyRole.PRIMARY:
            primary_key.append(legacy.name)
        elif key_role == KeyRole.MULTIPLE:
            indexes[index_name] = [legacy.name]
        elif key_role == KeyRole.UNIQUE:
            unique_indexes[index_name] = [legacy.name]

    return TableDefinition(
        columns=tuple(columns),
        primary_key=tuple(primary_key),
        unique_indexes=unique_indexes,
        indexes=indexes,
        name=table_name,
    )
