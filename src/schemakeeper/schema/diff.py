"""
Column equality and schema diffing.
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Tuple, Union

from .definition import ColumnDefinition, TableDefinition


ColumnLike = Union[ColumnDefinition, Mapping[str, Any]]


def _as_attributes(column: ColumnLike) -> Mapping[str, Any]:
    if isinstance(column, ColumnDefinition):
        return column.attributes()
    return column


def columns_equal(a: ColumnLike, b: ColumnLike) -> bool:
    """
    Check if two column definitions are equivalent.

    Every attribute present in either map must be present in the other
    with an equal value. The check is strict: metadata a driver reports
    for one side only (an internal flag, a collation) makes the columns
    unequal, so the column is re-declared even if nothing functional
    changed.
    """
    attrs_a = _as_attributes(a)
    attrs_b = _as_attributes(b)

    if attrs_a.keys() != attrs_b.keys():
        return False
    return all(attrs_a[key] == attrs_b[key] for key in attrs_a)


@dataclass(frozen=True)
class SchemaDiff:
    """Column-level difference between a current and a desired table."""

    to_add: Tuple[str, ...] = ()
    to_drop: Tuple[str, ...] = ()
    to_modify: Tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.to_add or self.to_drop or self.to_modify)

    def __bool__(self) -> bool:
        return not self.is_empty

    def __len__(self) -> int:
        return len(self.to_add) + len(self.to_drop) + len(self.to_modify)

    @classmethod
    def compute(cls, old: TableDefinition, new: TableDefinition) -> "SchemaDiff":
        """
        Classify columns of ``old`` and ``new`` into add, drop and modify sets.

        NOT NULL is ignored on primary key and serial columns of either
        table, since the engine enforces it there whether declared or not.
        """
        old_fields = _comparable_fields(old)
        new_fields = _comparable_fields(new)

        to_add = tuple(name for name in new_fields if name not in old_fields)
        to_drop = tuple(name for name in old_fields if name not in new_fields)
        to_modify = tuple(
            name
            for name, attrs in new_fields.items()
            if name in old_fields and not columns_equal(old_fields[name], attrs)
        )

        return cls(to_add=to_add, to_drop=to_drop, to_modify=to_modify)


def _comparable_fields(table: TableDefinition) -> Dict[str, Dict[str, Any]]:
    primary_key = table.primary_key_columns()
    fields = {}
    for column in table.columns:
        attrs = column.attributes()
        if column.name in primary_key or column.effective_type == "serial":
            attrs.pop("not null", None)
        fields[column.name] = attrs
    return fields
