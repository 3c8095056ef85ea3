"""
Tests for schemakeeper.database.introspection module.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from schemakeeper.database.introspection import (
    IndexInfo,
    PostgresIntrospector,
    parse_default,
)
from schemakeeper.dialects import PostgreSQLDialect
from schemakeeper.exceptions import DriverError, IntrospectionError, TableNotFoundError
from schemakeeper.schema.definition import CURRENT_TIMESTAMP, ColumnDefinition, TableDefinition
from schemakeeper.schema.diff import SchemaDiff
from schemakeeper.schema.legacy import LegacyColumnDef, convert_legacy_columns
from schemakeeper.schema.reconciler import ReconciliationStatus, SchemaReconciler


def _column_row(name, data_type, nullable="YES", default=None, length=None,
                precision=None, scale=None, udt_name=None):
    return {
        "column_name": name,
        "data_type": data_type,
        "is_nullable": nullable,
        "column_default": default,
        "character_maximum_length": length,
        "numeric_precision": precision,
        "numeric_scale": scale,
        "udt_name": udt_name or data_type,
    }


USERS_COLUMNS = [
    _column_row(
        "id", "integer", nullable="NO",
        default="nextval('users_id_seq'::regclass)", precision=32, scale=0,
        udt_name="int4",
    ),
    _column_row("email", "character varying", nullable="NO", length=255, udt_name="varchar"),
    _column_row(
        "created", "timestamp without time zone",
        default="CURRENT_TIMESTAMP", udt_name="timestamp",
    ),
]


def _pkey_index(table, *columns):
    return {
        "index_name": f"{table}_pkey",
        "is_unique": True,
        "is_primary": True,
        "columns": list(columns),
    }


USERS_INDEXES = [
    {"index_name": "users_email_idx", "is_unique": True, "is_primary": False, "columns": ["email"]},
    {"index_name": "users_pkey", "is_unique": True, "is_primary": True, "columns": ["id"]},
]


@pytest.fixture
def mock_pg_connection():
    """Connection with fetch/fetchval mocks."""
    connection = MagicMock()
    connection.fetchval = AsyncMock(return_value=True)
    connection.fetch = AsyncMock(side_effect=[USERS_INDEXES, USERS_COLUMNS])
    return connection


@pytest.fixture
def introspector(mock_pg_connection):
    return PostgresIntrospector(mock_pg_connection, schema="public")


class TestParseDefault:
    """Test column_default parsing."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            (None, None),
            ("'abc'::character varying", "abc"),
            ("'O''Brien'::text", "O'Brien"),
            ("CURRENT_TIMESTAMP", CURRENT_TIMESTAMP),
            ("now()", CURRENT_TIMESTAMP),
            ("true", True),
            ("false", False),
            ("0", 0),
            ("42", 42),
            ("1.5", 1.5),
            ("NULL::character varying", None),
            ("(0)::numeric", 0),
            ("'-1'::integer", -1),
            ("'-5'::bigint", -5),
            ("'-1.5'::numeric", -1.5),
            ("'-1'::text", "-1"),
        ],
    )
    def test_parse_default(self, raw, expected):
        assert parse_default(raw) == expected

    def test_unknown_expression_is_kept(self):
        assert parse_default("gen_random_uuid()") == "gen_random_uuid()"


class TestPostgresIntrospector:
    """Test PostgresIntrospector against mocked catalog queries."""

    @pytest.mark.asyncio
    async def test_get_table_def(self, introspector, mock_pg_connection):
        definition = await introspector.get_table_def("users")

        assert definition.name == "users"
        assert definition.column_names == ["id", "email", "created"]
        assert definition.primary_key == ("id",)
        assert definition.unique_indexes == {"users_email_idx": ("email",)}
        assert definition.indexes == {}
        mock_pg_connection.fetchval.assert_awaited_once()
        assert mock_pg_connection.fetchval.await_args.args[1:] == ("public", "users")

    @pytest.mark.asyncio
    async def test_columns_map_to_canonical_types(self, introspector):
        definition = await introspector.get_table_def("users")

        assert definition.get_column("id") == ColumnDefinition(name="id", type="serial")
        assert definition.get_column("email") == ColumnDefinition(
            name="email", type="varchar", length=255, nullable=False
        )
        assert definition.get_column("created") == ColumnDefinition(
            name="created", type="datetime", default=CURRENT_TIMESTAMP
        )

    @pytest.mark.asyncio
    async def test_created_table_introspects_equal(self, introspector, users_definition):
        """What create_table declares is what introspection reads back."""
        current = await introspector.get_table_def("users")

        assert SchemaDiff.compute(current, users_definition).is_empty

    @pytest.mark.asyncio
    async def test_missing_table(self, introspector, mock_pg_connection):
        mock_pg_connection.fetchval.return_value = False

        with pytest.raises(TableNotFoundError) as exc_info:
            await introspector.get_table_def("ghost_table")

        assert exc_info.value.table_name == "ghost_table"
        assert str(exc_info.value) == "Table public.ghost_table does not exist"
        mock_pg_connection.fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_driver_error_becomes_introspection_error(
        self, introspector, mock_pg_connection
    ):
        mock_pg_connection.fetchval.side_effect = DriverError("connection reset")

        with pytest.raises(IntrospectionError) as exc_info:
            await introspector.get_table_def("users")

        assert not isinstance(exc_info.value, TableNotFoundError)
        assert isinstance(exc_info.value.cause, DriverError)

    @pytest.mark.asyncio
    async def test_numeric_and_user_defined_columns(self, introspector, mock_pg_connection):
        mock_pg_connection.fetch.side_effect = [
            [],
            [
                _column_row("price", "numeric", precision=10, scale=2),
                _column_row("amount", "numeric"),
                _column_row("name", "USER-DEFINED", udt_name="citext"),
                _column_row("total", "bigint", default="0"),
            ],
        ]

        definition = await introspector.get_table_def("orders")

        assert definition.get_column("price").precision == 10
        assert definition.get_column("price").scale == 2
        assert definition.get_column("amount").precision is None
        assert definition.get_column("amount").scale is None
        assert definition.get_column("name").type == "citext"
        total = definition.get_column("total")
        assert (total.type, total.size, total.default) == ("int", "big", 0)
        assert definition.primary_key == ()

    @pytest.mark.asyncio
    async def test_not_null_with_default_reads_as_nullable(
        self, introspector, mock_pg_connection
    ):
        """NOT NULL implied by a default is not part of the declared shape."""
        mock_pg_connection.fetch.side_effect = [
            [],
            [_column_row("status", "text", nullable="NO", default="'new'::text")],
        ]

        definition = await introspector.get_table_def("orders")

        status = definition.get_column("status")
        assert status.nullable is True
        assert status.default == "new"

    @pytest.mark.asyncio
    async def test_get_indexes(self, introspector, mock_pg_connection):
        mock_pg_connection.fetch.side_effect = [USERS_INDEXES]

        indexes = await introspector.get_indexes("users")

        assert indexes == [
            IndexInfo(name="users_email_idx", columns=("email",), is_unique=True),
            IndexInfo(name="users_pkey", columns=("id",), is_unique=True, is_primary=True),
        ]

    @pytest.mark.asyncio
    async def test_list_tables(self, introspector, mock_pg_connection):
        mock_pg_connection.fetch.side_effect = [[{"table_name": "a"}, {"table_name": "b"}]]

        assert await introspector.list_tables() == ["a", "b"]

    @pytest.mark.asyncio
    async def test_list_tables_error(self, introspector, mock_pg_connection):
        mock_pg_connection.fetch.side_effect = DriverError("boom")

        with pytest.raises(IntrospectionError, match="Failed to list tables"):
            await introspector.list_tables()


class TestCreateThenIntrospect:
    """Tables created from a definition read back without differences."""

    @pytest.fixture
    def dialect(self):
        return PostgreSQLDialect()

    @pytest.mark.parametrize(
        "column, native, row, primary_key",
        [
            pytest.param(
                ColumnDefinition(name="c", type="int", nullable=False),
                "INTEGER",
                _column_row("c", "integer", nullable="NO"),
                ("c",),
                id="not-null-primary-key",
            ),
            pytest.param(
                ColumnDefinition(name="c", type="serial", nullable=False),
                "SERIAL",
                _column_row("c", "integer", nullable="NO", default="nextval('t_c_seq'::regclass)"),
                (),
                id="not-null-serial",
            ),
            pytest.param(
                ColumnDefinition(name="c", type="int", size="big", auto_increment=True),
                "BIGSERIAL",
                _column_row("c", "bigint", nullable="NO", default="nextval('t_c_seq'::regclass)"),
                (),
                id="auto-increment",
            ),
            pytest.param(
                ColumnDefinition(name="c", type="int", default=-1),
                "INTEGER",
                _column_row("c", "integer", default="'-1'::integer"),
                (),
                id="negative-default",
            ),
            pytest.param(
                ColumnDefinition(name="c", type="numeric", precision=8, scale=2, default=-1.5),
                "NUMERIC(8,2)",
                _column_row("c", "numeric", precision=8, scale=2, default="'-1.5'::numeric"),
                (),
                id="negative-numeric-default",
            ),
            pytest.param(
                ColumnDefinition(name="c", type="int", size="tiny"),
                "SMALLINT",
                _column_row("c", "smallint"),
                (),
                id="int-tiny",
            ),
            pytest.param(
                ColumnDefinition(name="c", type="int", size="medium"),
                "INTEGER",
                _column_row("c", "integer"),
                (),
                id="int-medium",
            ),
            pytest.param(
                ColumnDefinition(name="c", type="int", size="normal"),
                "INTEGER",
                _column_row("c", "integer"),
                (),
                id="int-normal",
            ),
            pytest.param(
                ColumnDefinition(name="c", type="text", size="big"),
                "TEXT",
                _column_row("c", "text"),
                (),
                id="text-big",
            ),
            pytest.param(
                ColumnDefinition(name="c", type="blob", size="medium"),
                "BYTEA",
                _column_row("c", "bytea"),
                (),
                id="blob-medium",
            ),
            pytest.param(
                ColumnDefinition(name="c", type="float", size="medium"),
                "REAL",
                _column_row("c", "real"),
                (),
                id="float-medium",
            ),
            pytest.param(
                ColumnDefinition(name="c", type="timestamp", default=CURRENT_TIMESTAMP),
                "TIMESTAMP",
                _column_row("c", "timestamp without time zone", default="CURRENT_TIMESTAMP"),
                (),
                id="timestamp",
            ),
            pytest.param(
                ColumnDefinition(name="c", type="integer"),
                "INTEGER",
                _column_row("c", "integer"),
                (),
                id="integer-alias",
            ),
            pytest.param(
                ColumnDefinition(name="c", type="boolean", default=False),
                "BOOLEAN",
                _column_row("c", "boolean", default="false"),
                (),
                id="boolean-alias",
            ),
            pytest.param(
                ColumnDefinition(name="c", type="numeric", precision=10),
                "NUMERIC(10)",
                _column_row("c", "numeric", precision=10, scale=0),
                (),
                id="numeric-without-scale",
            ),
            pytest.param(
                ColumnDefinition(name="c", type="char"),
                "CHAR",
                _column_row("c", "character", length=1),
                (),
                id="char-without-length",
            ),
        ],
    )
    @pytest.mark.asyncio
    async def test_column_reads_back_equal(
        self, introspector, mock_pg_connection, dialect, column, native, row, primary_key
    ):
        assert dialect.type_and_size(column) == native
        declared = TableDefinition(columns=(column,), primary_key=primary_key)
        mock_pg_connection.fetch.side_effect = [
            [_pkey_index("t", *primary_key)] if primary_key else [],
            [row],
        ]

        current = await introspector.get_table_def("t")

        diff = SchemaDiff.compute(
            dialect.normalize_table(current), dialect.normalize_table(declared)
        )
        assert diff.is_empty

    @pytest.mark.asyncio
    async def test_changed_default_is_still_detected(
        self, introspector, mock_pg_connection, dialect
    ):
        declared = TableDefinition(columns=(ColumnDefinition(name="c", type="int", default=-2),))
        mock_pg_connection.fetch.side_effect = [
            [],
            [_column_row("c", "integer", default="'-1'::integer")],
        ]

        current = await introspector.get_table_def("t")

        diff = SchemaDiff.compute(
            dialect.normalize_table(current), dialect.normalize_table(declared)
        )
        assert diff.to_modify == ("c",)

    @pytest.mark.asyncio
    async def test_legacy_table_is_unchanged_after_creation(
        self, introspector, mock_pg_connection, mock_connection, dialect
    ):
        """A converted legacy table needs no ALTER once it exists."""
        desired = convert_legacy_columns(
            "users",
            [
                LegacyColumnDef("id", "int", nullable=False, key="PRI", auto_increment=True),
                LegacyColumnDef("nick", "varchar", size=64, nullable=False, key="UNI"),
                LegacyColumnDef("bio", "mediumtext"),
                LegacyColumnDef("flags", "tinyint", default=-1),
            ],
        )
        reconciler = SchemaReconciler(
            mock_connection, dialect=dialect, introspector=introspector
        )

        create_sql = reconciler.create_table_statements("users", desired)[0]
        assert '"id" SERIAL NOT NULL' in create_sql
        assert '"nick" VARCHAR(64) NOT NULL' in create_sql
        assert '"bio" TEXT' in create_sql
        assert '"flags" SMALLINT DEFAULT -1' in create_sql

        mock_pg_connection.fetch.side_effect = [
            [
                _pkey_index("users", "id"),
                {
                    "index_name": "users_nick_idx",
                    "is_unique": True,
                    "is_primary": False,
                    "columns": ["nick"],
                },
            ],
            [
                _column_row(
                    "id", "integer", nullable="NO",
                    default="nextval('users_id_seq'::regclass)",
                ),
                _column_row("nick", "character varying", nullable="NO", length=64),
                _column_row("bio", "text"),
                _column_row("flags", "smallint", default="'-1'::integer"),
            ],
        ]

        result = await reconciler.ensure_table("users", desired)

        assert result.status == ReconciliationStatus.UNCHANGED
        mock_connection.execute.assert_not_awaited()
