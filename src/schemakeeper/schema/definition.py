"""
Declarative table and column definitions for schemakeeper.

Definitions are immutable values. They are built fresh for each
reconciliation, either from caller input or from introspection of the
live database.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..exceptions import DefinitionError


CURRENT_TIMESTAMP = "CURRENT_TIMESTAMP"

SIZE_CLASSES = ("tiny", "small", "medium", "big", "normal")


class KeyRole(str, Enum):
    """Participation of a single column in a key or index."""

    NONE = "none"
    PRIMARY = "primary"
    UNIQUE = "unique"
    MULTIPLE = "multiple"


@dataclass(frozen=True)
class ColumnDefinition:
    """Declared shape of one column."""

    name: str
    type: str
    length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    size: Optional[str] = None
    nullable: bool = True
    default: Any = None
    key_role: KeyRole = KeyRole.NONE
    auto_increment: bool = False
    extra: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not isinstance(self.key_role, KeyRole):
            object.__setattr__(self, "key_role", KeyRole(self.key_role))
        object.__setattr__(self, "extra", dict(self.extra))

    @property
    def effective_type(self) -> str:
        """Canonical type after auto-increment coercion."""
        if self.auto_increment:
            return "serial"
        return self.type

    @property
    def has_default(self) -> bool:
        return self.default is not None

    def attributes(self) -> Dict[str, Any]:
        """Attribute map used for equality checks.

        Keys are present only when the attribute is set, so two columns
        compare equal only when they declare exactly the same things.
        """
        attrs: Dict[str, Any] = {"type": self.effective_type}
        if self.length is not None:
            attrs["length"] = self.length
        if self.precision is not None:
            attrs["precision"] = self.precision
        if self.scale is not None:
            attrs["scale"] = self.scale
        if self.size is not None:
            attrs["size"] = self.size
        if not self.nullable:
            attrs["not null"] = True
        if self.default is not None:
            attrs["default"] = self.default
        if self.auto_increment:
            attrs["auto_increment"] = True
        attrs.update(self.extra)
        return attrs

    def validate(self, table_name: Optional[str] = None) -> None:
        """Raise DefinitionError if the column is internally inconsistent."""
        if not self.name or not self.name.strip():
            raise DefinitionError("Column name is required", table_name)
        if not self.type or not str(self.type).strip():
            raise DefinitionError(
                f"Column '{self.name}' has no type", table_name, self.name
            )
        if self.default is not None and not self.nullable:
            raise DefinitionError(
                f"Column '{self.name}' declares both a default and NOT NULL",
                table_name,
                self.name,
            )
        for attr in ("length", "precision", "scale"):
            value = getattr(self, attr)
            if value is not None and value < 0:
                raise DefinitionError(
                    f"Column '{self.name}' has negative {attr}: {value}",
                    table_name,
                    self.name,
                )
        if self.scale is not None and self.precision is None:
            raise DefinitionError(
                f"Column '{self.name}' declares scale without precision",
                table_name,
                self.name,
            )
        if self.size is not None and self.size not in SIZE_CLASSES:
            raise DefinitionError(
                f"Column '{self.name}' has unknown size class '{self.size}'",
                table_name,
                self.name,
            )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ColumnDefinition":
        """Build a column from a plain mapping (YAML, JSON, kwargs)."""
        data = dict(data)
        known = {
            "name", "type", "length", "precision", "scale", "size",
            "nullable", "default", "key_role", "auto_increment", "extra",
        }
        unknown = set(data) - known
        if unknown:
            raise DefinitionError(
                f"Unknown column attributes: {sorted(unknown)}",
                column_name=data.get("name"),
            )
        if "name" not in data or "type" not in data:
            raise DefinitionError(
                "Column requires 'name' and 'type'", column_name=data.get("name")
            )
        if data.get("key_role") is None:
            data.pop("key_role", None)
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"name": self.name, "type": self.type}
        for attr in ("length", "precision", "scale", "size", "default"):
            value = getattr(self, attr)
            if value is not None:
                result[attr] = value
        if not self.nullable:
            result["nullable"] = False
        if self.key_role != KeyRole.NONE:
            result["key_role"] = self.key_role.value
        if self.auto_increment:
            result["auto_increment"] = True
        if self.extra:
            result["extra"] = dict(self.extra)
        return result

    def __str__(self) -> str:
        result = f"{self.name} {self.effective_type}"
        if self.precision is not None:
            result += f"({self.precision}"
            result += f",{self.scale})" if self.scale is not None else ")"
        elif self.length is not None:
            result += f"({self.length})"
        if not self.nullable:
            result += " NOT NULL"
        if self.default is not None:
            result += f" DEFAULT {self.default}"
        return result


def _index_map(indexes: Optional[Mapping[str, Iterable[str]]]) -> Dict[str, Tuple[str, ...]]:
    if not indexes:
        return {}
    return {
        name: (columns,) if isinstance(columns, str) else tuple(columns)
        for name, columns in indexes.items()
    }


@dataclass(frozen=True)
class TableDefinition:
    """A named, ordered collection of columns plus keys and indexes."""

    columns: Tuple[ColumnDefinition, ...]
    primary_key: Tuple[str, ...] = ()
    unique_indexes: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    indexes: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    name: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "columns", tuple(self.columns))
        object.__setattr__(self, "primary_key", tuple(self.primary_key or ()))
        object.__setattr__(self, "unique_indexes", _index_map(self.unique_indexes))
        object.__setattr__(self, "indexes", _index_map(self.indexes))

    @property
    def column_names(self) -> List[str]:
        return [col.name for col in self.columns]

    @property
    def fields(self) -> Dict[str, ColumnDefinition]:
        """Columns keyed by name, in declaration order."""
        return {col.name: col for col in self.columns}

    def has_column(self, column_name: str) -> bool:
        return any(col.name == column_name for col in self.columns)

    def get_column(self, column_name: str) -> Optional[ColumnDefinition]:
        for col in self.columns:
            if col.name == column_name:
                return col
        return None

    def primary_key_columns(self) -> Tuple[str, ...]:
        """Primary key tuple, falling back to per-column PRIMARY roles."""
        if self.primary_key:
            return self.primary_key
        return tuple(
            col.name for col in self.columns if col.key_role == KeyRole.PRIMARY
        )

    def validate(self) -> None:
        """Raise DefinitionError on the first invariant violation found."""
        table = self.name
        if not self.columns:
            raise DefinitionError("Table definition has no columns", table)

        seen = set()
        for col in self.columns:
            col.validate(table)
            if col.name in seen:
                raise DefinitionError(
                    f"Duplicate column name '{col.name}'", table, col.name
                )
            seen.add(col.name)

        self._check_columns_exist("primary key", self.primary_key, seen)
        if self.primary_key:
            for col in self.columns:
                if col.key_role == KeyRole.PRIMARY and col.name not in self.primary_key:
                    raise DefinitionError(
                        f"Column '{col.name}' has the primary key role but is not "
                        f"in primary key {list(self.primary_key)}",
                        table,
                        col.name,
                    )

        index_names = set()
        for kind, mapping in (("unique index", self.unique_indexes), ("index", self.indexes)):
            for index_name, columns in mapping.items():
                if index_name in index_names:
                    raise DefinitionError(f"Duplicate index name '{index_name}'", table)
                index_names.add(index_name)
                if not columns:
                    raise DefinitionError(
                        f"{kind.capitalize()} '{index_name}' has no columns", table
                    )
                self._check_columns_exist(f"{kind} '{index_name}'", columns, seen)

    def _check_columns_exist(self, what: str, columns: Sequence[str], known: set) -> None:
        for column_name in columns:
            if column_name not in known:
                raise DefinitionError(
                    f"{what.capitalize()} references unknown column '{column_name}'",
                    self.name,
                    column_name,
                )

    @classmethod
    def from_dict(
        cls, data: Mapping[str, Any], name: Optional[str] = None
    ) -> "TableDefinition":
        """Build a table from the declarative mapping format.

        Expected keys: ``columns`` (list of column mappings), and optionally
        ``primary_key``, ``unique_indexes`` and ``indexes``.
        """
        if "columns" not in data:
            raise DefinitionError("Table definition requires 'columns'", name)
        return cls(
            columns=tuple(ColumnDefinition.from_dict(c) for c in data["columns"]),
            primary_key=tuple(data.get("primary_key") or ()),
            unique_indexes=data.get("unique_indexes") or {},
            indexes=data.get("indexes") or {},
            name=name or data.get("name"),
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "columns": [col.to_dict() for col in self.columns],
        }
        if self.primary_key:
            result["primary_key"] = list(self.primary_key)
        if self.unique_indexes:
            result["unique_indexes"] = {k: list(v) for k, v in self.unique_indexes.items()}
        if self.indexes:
            result["indexes"] = {k: list(v) for k, v in self.indexes.items()}
        return result
