"""
DDL operations for schemakeeper.

Builds CREATE/ALTER/DROP statements from definitions through a dialect
and submits them to the connection. Every operation runs its statements
one after another and stops at the first failure; nothing is retried
and nothing is rolled back.
"""

import logging
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple, Union

from ..dialects.base import Dialect
from ..exceptions import ConfigurationError, DDLError, DriverError
from .definition import ColumnDefinition, KeyRole, TableDefinition


logger = logging.getLogger(__name__)


class OperationMode(str, Enum):
    """Schema operation modes."""

    APPLY = "apply"        # Execute generated statements
    DRY_RUN = "dry_run"    # Generate and log statements without executing


class SchemaOperations:
    """DDL emitter bound to one connection and one dialect."""

    def __init__(
        self,
        connection,
        dialect: Optional[Dialect] = None,
        introspector=None,
        operation_mode: OperationMode = OperationMode.APPLY,
    ):
        self.connection = connection
        self.dialect = dialect or Dialect()
        self.introspector = introspector
        self.operation_mode = OperationMode(operation_mode)

    @property
    def dry_run(self) -> bool:
        return self.operation_mode == OperationMode.DRY_RUN

    # ---------------------------------------------------------------
    # Statement builders
    # ---------------------------------------------------------------

    def index_name(self, table: str, column_names: Sequence[str]) -> str:
        """Synthesized index name: ``{table}_{col1}_{col2}..._idx``."""
        return f"{table}_{'_'.join(column_names)}_idx"

    def _table_indexes(
        self, table: str, definition: TableDefinition
    ) -> Tuple[Dict[str, Tuple[str, ...]], Dict[str, Tuple[str, ...]]]:
        unique = dict(definition.unique_indexes)
        multiple = dict(definition.indexes)

        for column in definition.columns:
            if column.key_role not in (KeyRole.UNIQUE, KeyRole.MULTIPLE):
                continue
            # An index declared under the synthesized name takes precedence.
            index_name = self.index_name(table, [column.name])
            if index_name in unique or index_name in multiple:
                continue
            target = unique if column.key_role == KeyRole.UNIQUE else multiple
            target[index_name] = (column.name,)

        return unique, multiple

    def create_table_statements(
        self, name: str, definition: TableDefinition
    ) -> List[str]:
        """
        Build the statements that create a table.

        The first statement is CREATE TABLE; dialects that cannot declare
        an index inline get a CREATE INDEX statement for it afterwards.
        """
        definition.validate()

        clauses = [self.dialect.column_clause(column) for column in definition.columns]

        primary = definition.primary_key_columns()
        if primary:
            clauses.append(self.dialect.primary_key_clause(primary))

        unique, multiple = self._table_indexes(name, definition)
        follow_up: List[str] = []

        for is_unique, indexes in ((True, unique), (False, multiple)):
            for index_name, columns in indexes.items():
                clause = self.dialect.inline_index_clause(
                    name, index_name, columns, unique=is_unique
                )
                if clause is not None:
                    clauses.append(clause)
                else:
                    follow_up.append(
                        self.dialect.create_index_sql(
                            name, index_name, columns, unique=is_unique
                        )
                    )

        return [self.dialect.create_table_sql(name, clauses)] + follow_up

    # ---------------------------------------------------------------
    # Execution
    # ---------------------------------------------------------------

    async def _execute(self, sql: str) -> None:
        if self.dry_run:
            logger.info(f"DRY RUN: would execute: {sql}")
            return

        logger.debug(f"Executing: {sql}")
        try:
            await self.connection.execute(sql)
        except DriverError as e:
            logger.error(f"Statement failed: {e.message}")
            raise DDLError(e.message, sql=sql, cause=e) from e

    async def _execute_all(self, statements: List[str]) -> List[str]:
        for sql in statements:
            await self._execute(sql)
        return statements

    # ---------------------------------------------------------------
    # DDL operations
    # ---------------------------------------------------------------

    async def create_table(self, name: str, definition: TableDefinition) -> List[str]:
        """Create a table with the given columns, keys and indexes."""
        statements = self.create_table_statements(name, definition)
        await self._execute_all(statements)
        logger.info(f"Created table {name}")
        return statements

    async def drop_table(self, name: str) -> List[str]:
        """Drop a table unconditionally."""
        statements = [self.dialect.drop_table_sql(name)]
        await self._execute_all(statements)
        logger.info(f"Dropped table {name}")
        return statements

    async def create_index(
        self,
        table: str,
        column_names: Union[str, Sequence[str]],
        name: Optional[str] = None,
        unique: bool = False,
    ) -> List[str]:
        """
        Add an index to a table.

        If no name is given, one is made up from the table and column names.
        """
        if isinstance(column_names, str):
            column_names = [column_names]
        column_names = list(column_names)
        if not column_names:
            raise ConfigurationError("An index needs at least one column")

        if not name:
            name = self.index_name(table, column_names)

        statements = [
            self.dialect.create_index_sql(table, name, column_names, unique=unique)
        ]
        await self._execute_all(statements)
        logger.info(f"Created index {name} on {table}")
        return statements

    async def drop_index(self, table: str, name: str) -> List[str]:
        """Drop a named index from a table."""
        statements = [self.dialect.drop_index_sql(table, name)]
        await self._execute_all(statements)
        logger.info(f"Dropped index {name} on {table}")
        return statements

    async def add_column(self, table: str, column: ColumnDefinition) -> List[str]:
        """Add a column to a table."""
        column.validate(table)
        statements = [
            self.dialect.alter_table_sql(table, self.dialect.alter_add_column(column))
        ]
        await self._execute_all(statements)
        logger.info(f"Added column {column.name} to {table}")
        return statements

    async def modify_column(self, table: str, column: ColumnDefinition) -> List[str]:
        """Redefine an existing column; the name must match."""
        column.validate(table)
        statements = [
            self.dialect.alter_table_sql(table, self.dialect.alter_modify_column(column))
        ]
        await self._execute_all(statements)
        logger.info(f"Modified column {column.name} in {table}")
        return statements

    async def drop_column(self, table: str, column_name: str) -> List[str]:
        """Drop a column from a table."""
        statements = [
            self.dialect.alter_table_sql(table, self.dialect.alter_drop_column(column_name))
        ]
        await self._execute_all(statements)
        logger.info(f"Dropped column {column_name} from {table}")
        return statements

    # ---------------------------------------------------------------
    # Introspection passthrough
    # ---------------------------------------------------------------

    async def get_table_def(self, table: str) -> TableDefinition:
        """Current definition of a table, from the introspector."""
        if self.introspector is None:
            raise ConfigurationError("No introspector configured")
        return await self.introspector.get_table_def(table)

    async def get_column_def(
        self, table: str, column_name: str
    ) -> Optional[ColumnDefinition]:
        """
        Current definition of a single column.

        Raises TableNotFoundError if the table does not exist; returns None
        if the table exists but has no such column.
        """
        definition = await self.get_table_def(table)
        return definition.get_column(column_name)
