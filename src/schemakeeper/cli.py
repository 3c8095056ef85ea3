"""
Command-line interface for schemakeeper.
"""

import asyncio
import sys
from contextlib import asynccontextmanager
from functools import wraps
from typing import Dict

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .config import LoggingConfig, SchemaKeeperConfig, configure_logging
from .database.connection import PostgresConnection
from .database.introspection import PostgresIntrospector
from .dialects import DIALECTS, PostgreSQLDialect, get_dialect
from .exceptions import ConfigurationError, SchemaKeeperError
from .schema.definition import TableDefinition
from .schema.loader import dump_definition, load_definitions
from .schema.operations import OperationMode, SchemaOperations
from .schema.reconciler import ReconciliationResult, ReconciliationStatus, SchemaReconciler


console = Console()


def handle_errors(func):
    """Decorator to handle errors gracefully in CLI commands."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except SchemaKeeperError as e:
            console.print(f"[red]Error:[/red] {escape(str(e))}")
            sys.exit(1)
        except KeyboardInterrupt:
            console.print("\n[yellow]Interrupted by user[/yellow]")
            sys.exit(0)
    return wrapper


@click.group()
@click.version_option(__version__)
@click.option(
    "--debug", is_flag=True, help="Enable debug mode"
)
@click.pass_context
def main(ctx, debug):
    """schemakeeper: keep database tables in line with declared definitions."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    if debug:
        configure_logging(LoggingConfig(), debug=True)


def _load_config(ctx, config: str, dry_run: bool = False) -> SchemaKeeperConfig:
    sk_config = SchemaKeeperConfig.from_yaml(config)
    if dry_run:
        sk_config.dry_run = True
    configure_logging(sk_config.logging, debug=ctx.obj.get("debug", False))
    return sk_config


@asynccontextmanager
async def _open_reconciler(config: SchemaKeeperConfig):
    """Connect to the configured database and yield a reconciler."""
    dialect = get_dialect(config.dialect)
    if not isinstance(dialect, PostgreSQLDialect):
        raise ConfigurationError(
            f"Live database commands support PostgreSQL only, not '{config.dialect}'"
        )

    mode = OperationMode.DRY_RUN if config.dry_run else OperationMode.APPLY
    async with PostgresConnection(config.connection_config()) as connection:
        yield SchemaReconciler(
            connection,
            dialect=dialect,
            introspector=PostgresIntrospector(connection, schema=config.schema_name),
            operation_mode=mode,
        )


def _print_statements(statements) -> None:
    for sql in statements:
        console.print(f"{sql};", markup=False, highlight=False, soft_wrap=True)


def _display_definitions(definitions: Dict[str, TableDefinition]) -> None:
    """Display a summary of loaded table definitions."""
    table = Table(title="Table Definitions")
    table.add_column("Table", style="cyan")
    table.add_column("Columns", style="magenta")
    table.add_column("Primary Key", style="green")
    table.add_column("Indexes", style="yellow")

    for name, definition in definitions.items():
        index_count = len(definition.unique_indexes) + len(definition.indexes)
        table.add_row(
            name,
            str(len(definition.columns)),
            ", ".join(definition.primary_key_columns()) or "-",
            str(index_count),
        )

    console.print(table)


def _display_results(results: Dict[str, ReconciliationResult]) -> None:
    styles = {
        ReconciliationStatus.CREATED: "green",
        ReconciliationStatus.ALTERED: "yellow",
        ReconciliationStatus.UNCHANGED: "dim",
    }

    table = Table(title="Reconciliation")
    table.add_column("Table", style="cyan")
    table.add_column("Status")
    table.add_column("Statements", style="magenta")
    table.add_column("Time (ms)", style="green")

    for name, result in results.items():
        style = styles[result.status]
        table.add_row(
            name,
            f"[{style}]{result.status.value}[/{style}]",
            str(len(result.statements)),
            f"{result.execution_time_ms:.1f}",
        )

    console.print(table)


@main.command()
@click.argument("definitions", type=click.Path(exists=True))
@handle_errors
def validate(definitions: str):
    """Validate a table definition file."""
    console.print(f"Validating definitions: {definitions}")

    loaded = load_definitions(definitions)

    console.print("[green]✓[/green] Definitions are valid")
    _display_definitions(loaded)


@main.command()
@click.argument("definitions", type=click.Path(exists=True))
@click.option(
    "--dialect",
    "-d",
    type=click.Choice(sorted(DIALECTS), case_sensitive=False),
    default="postgresql",
    show_default=True,
    help="SQL dialect to render for",
)
@handle_errors
def render(definitions: str, dialect: str):
    """Print CREATE TABLE statements without connecting to a database."""
    loaded = load_definitions(definitions)
    operations = SchemaOperations(None, dialect=get_dialect(dialect))

    for name, definition in loaded.items():
        console.print(f"[dim]-- {name}[/dim]")
        _print_statements(operations.create_table_statements(name, definition))


@main.command()
@click.argument("definitions", type=click.Path(exists=True))
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    required=True,
    help="Configuration file path",
)
@click.pass_context
@handle_errors
def diff(ctx, definitions: str, config: str):
    """Show the statements that would bring the database in line."""
    sk_config = _load_config(ctx, config)
    loaded = load_definitions(definitions)

    async def run_plan():
        async with _open_reconciler(sk_config) as reconciler:
            return {
                name: await reconciler.plan_table(name, definition)
                for name, definition in loaded.items()
            }

    results = asyncio.run(run_plan())

    pending = 0
    for name, result in results.items():
        if not result.changed:
            console.print(f"[dim]{name}: up to date[/dim]")
            continue
        pending += 1
        console.print(f"[yellow]{name}: {result.status.value}[/yellow]")
        if result.diff:
            console.print(
                f"  add={list(result.diff.to_add)} "
                f"modify={list(result.diff.to_modify)} "
                f"drop={list(result.diff.to_drop)}",
                markup=False,
                highlight=False,
            )
        _print_statements(result.statements)

    if pending == 0:
        console.print("[green]✓[/green] All tables match their definitions")


@main.command()
@click.argument("definitions", type=click.Path(exists=True))
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    required=True,
    help="Configuration file path",
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Show what would be done without making changes",
)
@click.pass_context
@handle_errors
def ensure(ctx, definitions: str, config: str, dry_run: bool):
    """Create or alter tables to match a definition file."""
    sk_config = _load_config(ctx, config, dry_run=dry_run)
    loaded = load_definitions(definitions)

    if sk_config.dry_run:
        console.print("[yellow]Dry run mode - no changes will be made[/yellow]")

    async def run_ensure():
        async with _open_reconciler(sk_config) as reconciler:
            return await reconciler.ensure_tables(loaded)

    results = asyncio.run(run_ensure())
    _display_results(results)

    if sk_config.dry_run:
        for name, result in results.items():
            if result.statements:
                console.print(f"[dim]-- {name}[/dim]")
                _print_statements(result.statements)


@main.command()
@click.argument("table")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    required=True,
    help="Configuration file path",
)
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
@handle_errors
def drop(ctx, table: str, config: str, yes: bool):
    """Drop a table."""
    sk_config = _load_config(ctx, config)

    if not yes and not click.confirm(f"Drop table {table}? This cannot be undone"):
        console.print("[yellow]Aborted[/yellow]")
        return

    async def run_drop():
        async with _open_reconciler(sk_config) as reconciler:
            return await reconciler.drop_table(table)

    statements = asyncio.run(run_drop())
    if sk_config.dry_run:
        _print_statements(statements)
    else:
        console.print(f"[green]✓[/green] Dropped table {table}")


@main.command()
@click.argument("table")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    required=True,
    help="Configuration file path",
)
@click.pass_context
@handle_errors
def show(ctx, table: str, config: str):
    """Print the live definition of a table as YAML."""
    sk_config = _load_config(ctx, config)

    async def run_show():
        async with _open_reconciler(sk_config) as reconciler:
            return await reconciler.get_table_def(table)

    definition = asyncio.run(run_show())
    click.echo(dump_definition(table, definition), nl=False)


if __name__ == "__main__":
    main()
