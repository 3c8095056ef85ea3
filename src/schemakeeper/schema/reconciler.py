"""
Schema reconciliation core logic for schemakeeper.

Compares the live definition of a table with a declared one and applies
the column changes needed to make them agree, creating the table when it
does not exist yet.

Reconciliation takes no locks. Two reconciliations of the same table
running at once can race at the database level, so callers must run
schema changes for a table one at a time (for example from a single
migration step at deploy time).
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional

from ..exceptions import TableNotFoundError
from .definition import TableDefinition
from .diff import SchemaDiff
from .operations import SchemaOperations


logger = logging.getLogger(__name__)


class ReconciliationStatus(str, Enum):
    """Outcome of reconciling one table."""

    CREATED = "created"
    ALTERED = "altered"
    UNCHANGED = "unchanged"


@dataclass
class ReconciliationResult:
    """Result of a schema reconciliation operation."""

    table: str
    status: ReconciliationStatus
    diff: Optional[SchemaDiff] = None
    statements: List[str] = field(default_factory=list)
    executed: bool = False
    execution_time_ms: float = 0.0

    @property
    def changed(self) -> bool:
        """Check if the table was (or would be) changed."""
        return self.status != ReconciliationStatus.UNCHANGED


class SchemaReconciler(SchemaOperations):
    """
    Core schema reconciliation engine.

    One instance serves one connection and one dialect. It keeps no state
    about any particular table between calls.
    """

    def alter_table_statement(
        self, table: str, diff: SchemaDiff, desired: TableDefinition
    ) -> str:
        """
        Build a single ALTER TABLE applying a diff.

        Clauses are ordered: additions, then modifications, then drops.
        Added and modified columns are rendered from the desired definition.
        """
        dialect = self.dialect
        phrases: List[str] = []

        for column_name in diff.to_add:
            phrases.extend(dialect.alter_add_column(desired.get_column(column_name)))

        for column_name in diff.to_modify:
            phrases.extend(dialect.alter_modify_column(desired.get_column(column_name)))

        for column_name in diff.to_drop:
            phrases.extend(dialect.alter_drop_column(column_name))

        return dialect.alter_table_sql(table, phrases)

    async def plan_table(
        self, table_name: str, desired: TableDefinition
    ) -> ReconciliationResult:
        """
        Work out what ensure_table would do without changing anything.

        Raises DefinitionError for an invalid desired definition and lets
        any introspection failure other than a missing table propagate.
        """
        desired.validate()

        try:
            current = await self.get_table_def(table_name)
        except TableNotFoundError:
            logger.info(f"Table {table_name} does not exist, it will be created")
            return ReconciliationResult(
                table=table_name,
                status=ReconciliationStatus.CREATED,
                statements=self.create_table_statements(table_name, desired),
            )

        diff = SchemaDiff.compute(
            self.dialect.normalize_table(current),
            self.dialect.normalize_table(desired),
        )
        if diff.is_empty:
            return ReconciliationResult(
                table=table_name,
                status=ReconciliationStatus.UNCHANGED,
                diff=diff,
            )

        return ReconciliationResult(
            table=table_name,
            status=ReconciliationStatus.ALTERED,
            diff=diff,
            statements=[self.alter_table_statement(table_name, diff, desired)],
        )

    async def ensure_table(
        self, table_name: str, desired: TableDefinition
    ) -> ReconciliationResult:
        """
        Ensure that a table exists and matches the desired definition.

        A missing table is created. An existing table gets one ALTER TABLE
        with every needed column change, or no statement at all when it
        already matches.

        Args:
            table_name: Name of the table
            desired: Declared definition of the table

        Returns:
            ReconciliationResult with the statements issued
        """
        start_time = time.monotonic()

        result = await self.plan_table(table_name, desired)

        if result.status == ReconciliationStatus.CREATED:
            result.statements = await self.create_table(table_name, desired)
            result.executed = not self.dry_run
        elif result.status == ReconciliationStatus.ALTERED:
            await self._execute_all(result.statements)
            result.executed = not self.dry_run

        result.execution_time_ms = (time.monotonic() - start_time) * 1000

        if result.status == ReconciliationStatus.UNCHANGED:
            logger.info(f"No changes needed for {table_name}")
        else:
            diff = result.diff
            detail = (
                f" (add={len(diff.to_add)}, modify={len(diff.to_modify)}, "
                f"drop={len(diff.to_drop)})"
                if diff
                else ""
            )
            logger.info(
                f"Reconciliation for {table_name}: {result.status.value}{detail} "
                f"({result.execution_time_ms:.1f}ms)"
            )

        return result

    async def ensure_tables(
        self, definitions: Mapping[str, TableDefinition]
    ) -> Dict[str, ReconciliationResult]:
        """
        Reconcile several tables in order.

        Stops at the first failure; the error propagates and tables after
        the failing one are left untouched.
        """
        results = {}
        for table_name, definition in definitions.items():
            results[table_name] = await self.ensure_table(table_name, definition)
        return results
