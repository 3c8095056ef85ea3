"""
Loading table definitions from YAML files.

A definition file maps table names to table specs::

    tables:
      users:
        columns:
          - {name: id, type: serial, key_role: primary}
          - {name: email, type: varchar, length: 255, nullable: false}
        unique_indexes:
          users_email_idx: [email]

A table may instead list ``legacy_columns`` in the older per-column
format; those are converted with convert_legacy_columns.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from ..exceptions import ConfigurationError
from .definition import ColumnDefinition, KeyRole, TableDefinition
from .legacy import LegacyColumnDef, convert_legacy_columns


logger = logging.getLogger(__name__)


class ColumnSpec(BaseModel):
    """A column as written in a definition file."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., description="Column name")
    type: str = Field(..., description="Canonical column type")
    length: Optional[int] = Field(None, ge=0, description="Maximum length")
    precision: Optional[int] = Field(None, ge=0, description="Numeric precision")
    scale: Optional[int] = Field(None, ge=0, description="Numeric scale")
    size: Optional[str] = Field(None, description="Size class (tiny, small, medium, big)")
    nullable: bool = Field(True, description="Whether NULL is allowed")
    default: Any = Field(None, description="Default value")
    key_role: KeyRole = Field(KeyRole.NONE, description="Single-column key role")
    auto_increment: bool = Field(False, description="Auto-generated integer")
    extra: Dict[str, Any] = Field(
        default_factory=dict, description="Additional attributes compared as-is"
    )

    def to_definition(self) -> ColumnDefinition:
        return ColumnDefinition(**self.model_dump())


class LegacyColumnSpec(BaseModel):
    """A column in the legacy per-column format."""

    model_config = ConfigDict(extra="forbid")

    name: str
    type: str
    size: Optional[int] = None
    nullable: bool = True
    key: Optional[str] = None
    default: Any = None
    auto_increment: bool = False


class TableSpec(BaseModel):
    """A table as written in a definition file."""

    model_config = ConfigDict(extra="forbid")

    columns: List[ColumnSpec] = Field(default_factory=list)
    legacy_columns: List[LegacyColumnSpec] = Field(default_factory=list)
    primary_key: List[str] = Field(default_factory=list)
    unique_indexes: Dict[str, List[str]] = Field(default_factory=dict)
    indexes: Dict[str, List[str]] = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_column_format(self):
        if self.columns and self.legacy_columns:
            raise ValueError("use either 'columns' or 'legacy_columns', not both")
        if not self.columns and not self.legacy_columns:
            raise ValueError("a table needs 'columns' or 'legacy_columns'")
        return self

    def to_definition(self, name: str) -> TableDefinition:
        if self.legacy_columns:
            return convert_legacy_columns(
                name,
                [LegacyColumnDef(**c.model_dump()) for c in self.legacy_columns],
            )
        return TableDefinition(
            columns=tuple(c.to_definition() for c in self.columns),
            primary_key=tuple(self.primary_key),
            unique_indexes=self.unique_indexes,
            indexes=self.indexes,
            name=name,
        )


class DefinitionFile(BaseModel):
    """Top level of a definition file."""

    model_config = ConfigDict(extra="forbid")

    tables: Dict[str, TableSpec] = Field(default_factory=dict)

    def to_definitions(self) -> Dict[str, TableDefinition]:
        return {name: spec.to_definition(name) for name, spec in self.tables.items()}


def parse_definitions(data: Any) -> Dict[str, TableDefinition]:
    """Validate parsed YAML/JSON data and build table definitions."""
    try:
        document = DefinitionFile.model_validate(data or {})
    except ValidationError as e:
        raise ConfigurationError(f"Invalid definition file: {e}") from e

    definitions = document.to_definitions()
    for definition in definitions.values():
        definition.validate()
    return definitions


def load_definitions(path: Union[str, Path]) -> Dict[str, TableDefinition]:
    """Load and validate table definitions from a YAML file."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"Definition file not found: {path}")
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in definition file: {e}")

    definitions = parse_definitions(data)
    logger.info(f"Loaded {len(definitions)} table definition(s) from {os.fspath(path)}")
    return definitions


def dump_definition(name: str, definition: TableDefinition) -> str:
    """Render one table definition in the definition-file YAML format."""
    return yaml.safe_dump(
        {"tables": {name: definition.to_dict()}},
        default_flow_style=False,
        sort_keys=False,
        indent=2,
    )
