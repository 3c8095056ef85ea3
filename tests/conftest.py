"""
Pytest configuration and shared fixtures for schemakeeper tests.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from schemakeeper.dialects import MySQLDialect, PostgreSQLDialect
from schemakeeper.exceptions import TableNotFoundError
from schemakeeper.schema.definition import (
    CURRENT_TIMESTAMP,
    ColumnDefinition,
    KeyRole,
    TableDefinition,
)
from schemakeeper.schema.operations import SchemaOperations
from schemakeeper.schema.reconciler import SchemaReconciler


# ============================================================================
# Definition Fixtures
# ============================================================================

@pytest.fixture
def users_definition() -> TableDefinition:
    """users(id serial primary key, email varchar(255) not null unique, created datetime)."""
    return TableDefinition(
        columns=(
            ColumnDefinition(name="id", type="serial", key_role=KeyRole.PRIMARY),
            ColumnDefinition(
                name="email",
                type="varchar",
                length=255,
                nullable=False,
                key_role=KeyRole.UNIQUE,
            ),
            ColumnDefinition(name="created", type="datetime", default=CURRENT_TIMESTAMP),
        ),
        primary_key=("id",),
        name="users",
    )


@pytest.fixture
def users_without_email(users_definition) -> TableDefinition:
    """users with email removed and an age column added."""
    return TableDefinition(
        columns=(
            users_definition.get_column("id"),
            users_definition.get_column("created"),
            ColumnDefinition(name="age", type="int"),
        ),
        primary_key=("id",),
        name="users",
    )


# ============================================================================
# Collaborator Fixtures
# ============================================================================

@pytest.fixture
def mock_connection():
    """Connection whose execute succeeds."""
    connection = MagicMock()
    connection.execute = AsyncMock(return_value="OK")
    return connection


@pytest.fixture
def missing_table_introspector():
    """Introspector that reports every table as missing."""
    async def get_table_def(table):
        raise TableNotFoundError(table)

    introspector = MagicMock()
    introspector.get_table_def = AsyncMock(side_effect=get_table_def)
    return introspector


@pytest.fixture
def mysql_dialect() -> MySQLDialect:
    return MySQLDialect()


@pytest.fixture
def postgresql_dialect() -> PostgreSQLDialect:
    return PostgreSQLDialect()


@pytest.fixture
def operations(mock_connection, mysql_dialect) -> SchemaOperations:
    """DDL emitter over a mock connection, MySQL dialect."""
    return SchemaOperations(mock_connection, dialect=mysql_dialect)


@pytest.fixture
def reconciler_factory(mock_connection, mysql_dialect):
    """Build a reconciler around a given introspector."""
    def factory(introspector, **kwargs):
        kwargs.setdefault("dialect", mysql_dialect)
        return SchemaReconciler(mock_connection, introspector=introspector, **kwargs)
    return factory


@pytest.fixture
def executed_sql(mock_connection):
    """Statements passed to the mock connection, in order."""
    return lambda: [c.args[0] for c in mock_connection.execute.await_args_list]
