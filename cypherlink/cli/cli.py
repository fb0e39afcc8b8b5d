"""
CLI entry point for cypherlink.

Compiles loopback-style filters to Cypher and runs schema migrations.
Uses Typer for the command line and Rich for tabular output.

Usage:
    cypherlink compile find Post --models models.yaml --filter '{"where": {"title": "x"}}'
    cypherlink compile update-all Post --models models.yaml --data '{"draft": false}'
    cypherlink plan --models models.yaml User Post
    cypherlink migrate --models models.yaml User
    cypherlink migrate --models models.yaml --update-only
    cypherlink ping
"""

from __future__ import annotations

import json
import logging
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table
from rich.text import Text

from cypherlink.adapters.neo4j import Neo4jConnection
from cypherlink.common.exceptions import CypherlinkError
from cypherlink.modules.query.builder import CompiledQuery, QueryBuilder
from cypherlink.modules.schema.models import ModelRegistry, load_models
from cypherlink.modules.schema.reconciler import MigrationMode
from cypherlink.services.config_models import CypherlinkSettings
from cypherlink.services.migration import plan_statements, run_migration

app = typer.Typer(
    name="cypherlink",
    help="cypherlink CLI - compile ORM filters to Cypher and migrate Neo4j schema",
    no_args_is_help=True,
)

console = Console()

COMPILE_KINDS = ("find", "count", "destroy-all", "update-all")


@app.callback()
def main(
    verbose: Annotated[
        bool, typer.Option("-v", "--verbose", help="Enable debug logging")
    ] = False,
) -> None:
    """Load .env and configure logging."""
    load_dotenv()
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# =============================================================================
# Helpers
# =============================================================================


def _load_registry(models_file: str | None) -> ModelRegistry:
    path = models_file or CypherlinkSettings().models_file
    try:
        return load_models(path)
    except FileNotFoundError:
        typer.echo(f"Error: models file not found: {path}", err=True)
        raise typer.Exit(1)


def _parse_json(option: str, value: str | None) -> Any:
    if value is None:
        return None
    try:
        return json.loads(value)
    except json.JSONDecodeError as e:
        typer.echo(f"Error: {option} is not valid JSON: {e}", err=True)
        raise typer.Exit(1)


def _print_query(compiled: CompiledQuery) -> None:
    console.print(compiled.text, highlight=False, markup=False, soft_wrap=True)
    if not compiled.params:
        return
    table = Table(title="Parameters")
    table.add_column("Name", style="cyan")
    table.add_column("Value")
    for name, value in compiled.params.items():
        table.add_row(name, Text(json.dumps(value, default=str)))
    console.print(table)


# =============================================================================
# Commands
# =============================================================================


@app.command("compile")
def compile_query(
    kind: Annotated[
        str, typer.Argument(help="Query kind (find, count, destroy-all, update-all)")
    ],
    model: Annotated[str, typer.Argument(help="Model name")],
    models_file: Annotated[
        str | None, typer.Option("--models", "-m", help="YAML file with model definitions")
    ] = None,
    filter_json: Annotated[
        str | None, typer.Option("--filter", "-f", help="Filter (find) or where (others) as JSON")
    ] = None,
    data_json: Annotated[
        str | None, typer.Option("--data", "-d", help="Properties to set (update-all) as JSON")
    ] = None,
) -> None:
    """Print the Cypher text and parameters for a query."""
    if kind not in COMPILE_KINDS:
        typer.echo(
            f"Error: kind must be one of {', '.join(COMPILE_KINDS)}, got '{kind}'",
            err=True,
        )
        raise typer.Exit(1)

    registry = _load_registry(models_file)
    filter_value = _parse_json("--filter", filter_json)
    data = _parse_json("--data", data_json) or {}
    builder = QueryBuilder(CypherlinkSettings().compiler.to_options())

    try:
        definition = registry.get(model)
        if kind == "find":
            compiled = builder.compile_find(definition, filter_value)
        elif kind == "count":
            compiled = builder.compile_count(definition, filter_value)
        elif kind == "destroy-all":
            compiled = builder.compile_destroy_all(definition, filter_value)
        else:
            compiled = builder.compile_update_all(definition, filter_value, data)
    except (KeyError, CypherlinkError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    _print_query(compiled)


@app.command("plan")
def plan(
    models: Annotated[
        list[str] | None, typer.Argument(help="Models to plan (default: all)")
    ] = None,
    models_file: Annotated[
        str | None, typer.Option("--models", "-m", help="YAML file with model definitions")
    ] = None,
    enterprise: Annotated[
        bool | None,
        typer.Option("--enterprise/--community", help="Include existence constraints"),
    ] = None,
) -> None:
    """Print the CREATE statements the models require, without a server."""
    registry = _load_registry(models_file)
    if enterprise is None:
        enterprise = CypherlinkSettings().neo4j.enterprise

    try:
        statements = plan_statements(registry, models, enterprise=enterprise)
    except KeyError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if not statements:
        typer.echo("No constraints or indexes required.")
        return
    for statement in statements:
        console.print(statement, highlight=False, markup=False, soft_wrap=True)


@app.command("migrate")
def migrate(
    models: Annotated[
        list[str] | None, typer.Argument(help="Models to migrate (default: all)")
    ] = None,
    models_file: Annotated[
        str | None, typer.Option("--models", "-m", help="YAML file with model definitions")
    ] = None,
    update_only: Annotated[
        bool, typer.Option("--update-only", help="Only add constraints/indexes (autoupdate)")
    ] = False,
) -> None:
    """Reconcile the server's constraints and indexes with the models."""
    registry = _load_registry(models_file)
    mode = MigrationMode.UPDATE_ONLY if update_only else MigrationMode.FULL_MIGRATE

    try:
        result = run_migration(registry, models, mode)
    except (KeyError, ConnectionError, CypherlinkError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    table = Table(title=f"Schema {mode.value}: {', '.join(result.labels)}")
    table.add_column("Phase", style="cyan")
    table.add_column("Statement")
    for statement in result.dropped_constraints:
        table.add_row("drop constraint", Text(statement))
    for statement in result.dropped_indexes:
        table.add_row("drop index", Text(statement))
    for statement in result.created:
        table.add_row("create", Text(statement))
    console.print(table)


@app.command("ping")
def ping() -> None:
    """Check connectivity to the configured Neo4j server."""
    settings = CypherlinkSettings().neo4j
    try:
        with Neo4jConnection(settings) as conn:
            ok = conn.ping()
    except ConnectionError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if not ok:
        typer.echo(f"Neo4j at {settings.uri} did not answer", err=True)
        raise typer.Exit(1)
    typer.echo(f"Neo4j at {settings.uri} is reachable")


if __name__ == "__main__":
    app()
