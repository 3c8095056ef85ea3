"""
Database connection management for schemakeeper.

Provides the connection interface the DDL emitter submits statements
through, and an asyncpg-backed PostgreSQL implementation of it.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Protocol
from urllib.parse import parse_qs, urlparse

import asyncpg
from pydantic import BaseModel, Field, field_validator

from ..exceptions import ConfigurationError, DriverError


logger = logging.getLogger(__name__)


class Connection(Protocol):
    """What the schema engine needs from a database connection."""

    async def execute(self, sql: str) -> Any:
        """Execute one SQL statement, raising DriverError on failure."""
        ...


class ConnectionConfig(BaseModel):
    """PostgreSQL connection configuration."""

    host: str = Field("localhost", description="Database host")
    port: int = Field(5432, description="Database port")
    database: str = Field(..., description="Database name")
    user: str = Field("", description="Database user")
    password: str = Field("", description="Database password")

    command_timeout: float = Field(60.0, description="Command timeout in seconds")
    server_settings: Dict[str, str] = Field(
        default_factory=lambda: {"application_name": "schemakeeper"},
        description="PostgreSQL server settings",
    )
    ssl_mode: Optional[str] = Field(None, description="SSL mode")

    @field_validator("database")
    @classmethod
    def validate_database(cls, v):
        if not v or not v.strip():
            raise ValueError("Database name is required")
        return v

    @classmethod
    def from_url(cls, url: str) -> "ConnectionConfig":
        """Create configuration from a database URL."""
        parsed = urlparse(url)

        if parsed.scheme not in ("postgresql", "postgres"):
            raise ConfigurationError(f"Invalid database URL scheme: {parsed.scheme}")

        if not parsed.path or parsed.path == "/":
            raise ConfigurationError("Database name is required")

        query_params = parse_qs(parsed.query) if parsed.query else {}

        config_data = {
            "host": parsed.hostname or "localhost",
            "port": parsed.port or 5432,
            "database": parsed.path.lstrip("/"),
            "user": parsed.username or "",
            "password": parsed.password or "",
        }
        if "sslmode" in query_params:
            config_data["ssl_mode"] = query_params["sslmode"][0]

        return cls(**config_data)

    def to_connection_kwargs(self) -> Dict[str, Any]:
        """Convert to asyncpg connection kwargs."""
        kwargs = {
            "host": self.host,
            "port": self.port,
            "database": self.database,
            "user": self.user,
            "password": self.password,
            "command_timeout": self.command_timeout,
            "server_settings": self.server_settings,
        }
        if self.ssl_mode:
            kwargs["ssl"] = self.ssl_mode
        return kwargs


class PostgresConnection:
    """A single asyncpg connection, held for the engine's lifetime."""

    def __init__(self, config: ConnectionConfig):
        self.config = config
        self._conn: Optional[asyncpg.Connection] = None
        self._lock = asyncio.Lock()

    async def connect(self) -> None:
        """Open the connection if it is not open yet."""
        async with self._lock:
            if self._conn is not None:
                return

            logger.info(
                f"Connecting to {self.config.host}:{self.config.port}/{self.config.database}"
            )
            try:
                self._conn = await asyncpg.connect(**self.config.to_connection_kwargs())
            except (asyncpg.PostgresError, OSError) as e:
                logger.error(f"Failed to connect: {e}")
                raise DriverError(str(e), cause=e) from e

    async def close(self) -> None:
        """Close the connection."""
        async with self._lock:
            if self._conn is not None:
                logger.info("Closing database connection")
                await self._conn.close()
                self._conn = None

    @property
    def is_connected(self) -> bool:
        return self._conn is not None and not self._conn.is_closed()

    def _require(self) -> asyncpg.Connection:
        if self._conn is None:
            raise DriverError("Connection is not open")
        return self._conn

    async def execute(self, sql: str, *args) -> str:
        """Execute a statement and return its status."""
        conn = self._require()
        try:
            return await conn.execute(sql, *args)
        except asyncpg.PostgresError as e:
            raise DriverError(str(e), sql=sql, cause=e) from e

    async def fetch(self, query: str, *args) -> List[asyncpg.Record]:
        """Fetch all results from a query."""
        conn = self._require()
        try:
            return await conn.fetch(query, *args)
        except asyncpg.PostgresError as e:
            raise DriverError(str(e), sql=query, cause=e) from e

    async def fetchrow(self, query: str, *args) -> Optional[asyncpg.Record]:
        """Fetch a single row from a query."""
        conn = self._require()
        try:
            return await conn.fetchrow(query, *args)
        except asyncpg.PostgresError as e:
            raise DriverError(str(e), sql=query, cause=e) from e

    async def fetchval(self, query: str, *args, column: int = 0) -> Any:
        """Fetch a single value from a query."""
        conn = self._require()
        try:
            return await conn.fetchval(query, *args, column=column)
        except asyncpg.PostgresError as e:
            raise DriverError(str(e), sql=query, cause=e) from e

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
