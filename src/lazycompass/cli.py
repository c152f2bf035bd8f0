"""CLI for lazycompass using Click.

Exposes config resolution, saved spec lookup, and the safety gate without
contacting a database. Query execution belongs to the driver layer.
"""

import json
import sys
from pathlib import Path
from typing import Any, NoReturn

import click

from pydantic import ValidationError

from lazycompass.config import (
    Config,
    ConfigPaths,
    ConnectionSpec,
    append_connection,
    load_config_with_report,
    resolve_config_scope,
    translate_validation_error,
)
from lazycompass.exceptions import LazyCompassError
from lazycompass.logging_setup import configure_logging
from lazycompass.safety import (
    DELETE,
    INSERT,
    LOCAL_WRITE,
    READ,
    UPDATE,
    Operation,
    SafetyOverrides,
    connection_warnings,
    evaluate,
    evaluate_pipeline,
    redact_connection_uri,
    redact_sensitive_text,
)
from lazycompass.saved import (
    ResolvedTarget,
    load_aggregation,
    load_query,
    resolve_target,
    scan_aggregations,
    scan_queries,
)

OPERATIONS = {
    "read": READ,
    "insert": INSERT,
    "update": UPDATE,
    "delete": DELETE,
    "local-write": LOCAL_WRITE,
}


def _fail(error: Exception) -> NoReturn:
    click.echo(f"Error: {redact_sensitive_text(str(error))}", err=True)
    sys.exit(1)


def _warn(message: str) -> None:
    click.echo(f"warning: {redact_sensitive_text(message)}", err=True)


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2))


def _target_json(target: ResolvedTarget, config: Config) -> dict[str, Any]:
    return {
        "connection": target.connection.name if target.connection else None,
        "database": target.database,
        "collection": target.collection,
        "timeouts": config.timeouts.model_dump(),
    }


scope_options = [
    click.option("--connection", default=None, help="Connection name"),
    click.option("--db", "database", default=None, help="Database for shared specs"),
    click.option("--collection", default=None, help="Collection for shared specs"),
]


def with_scope_options(func):
    for option in reversed(scope_options):
        func = option(func)
    return func


@click.group()
@click.option(
    "-d",
    "--dir",
    "project_dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Project directory (default: current directory)",
)
@click.option("--write-enabled", is_flag=True, help="Turn off read-only mode")
@click.option(
    "--allow-pipeline-writes",
    is_flag=True,
    help="Allow $out and $merge stages (requires --write-enabled)",
)
@click.option(
    "--allow-insecure",
    is_flag=True,
    help="Silence warnings for connections without TLS or auth",
)
@click.pass_context
def cli(
    ctx: click.Context,
    project_dir: Path | None,
    write_enabled: bool,
    allow_pipeline_writes: bool,
    allow_insecure: bool,
) -> None:
    """lazycompass - MongoDB client configuration and safety checks."""
    ctx.ensure_object(dict)

    if project_dir is None:
        project_dir = Path.cwd()
    paths = ConfigPaths.resolve_from(project_dir.resolve())
    overrides = SafetyOverrides(
        write_enabled=write_enabled,
        allow_pipeline_writes=allow_pipeline_writes,
        allow_insecure=allow_insecure,
    )

    try:
        config, reports = load_config_with_report(paths)
        configure_logging(paths, config, overrides)
    except (LazyCompassError, OSError) as e:
        _fail(e)

    for report in reports:
        if not report.corrected:
            _warn(report.warning)
    for warning in connection_warnings(config, overrides):
        _warn(warning)

    ctx.obj["paths"] = paths
    ctx.obj["config"] = config
    ctx.obj["overrides"] = overrides


@cli.group()
def config() -> None:
    """Inspect and edit the configuration."""


@config.command("show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Print the merged configuration as JSON (passwords masked)."""
    effective: Config = ctx.obj["config"]
    data = effective.model_dump(mode="json")
    for connection in data["connections"]:
        connection["uri"] = redact_connection_uri(connection["uri"])
    _echo_json(data)


@config.command("path")
@click.pass_context
def config_path(ctx: click.Context) -> None:
    """Print the config file locations."""
    paths: ConfigPaths = ctx.obj["paths"]
    click.echo(f"global: {paths.global_config_path}")
    click.echo(f"repo:   {paths.repo_config_path or '(not in a repository)'}")


scope_flags = [
    click.option("--global", "use_global", is_flag=True, help="Edit the global config"),
    click.option("--repo", "use_repo", is_flag=True, help="Edit the repository config"),
]


def with_scope_flags(func):
    for option in reversed(scope_flags):
        func = option(func)
    return func


@config.command("add-connection")
@click.argument("name")
@click.argument("uri")
@click.option("--default-database", default=None, help="Database for shared specs")
@with_scope_flags
@click.pass_context
def config_add_connection(
    ctx: click.Context,
    name: str,
    uri: str,
    default_database: str | None,
    use_global: bool,
    use_repo: bool,
) -> None:
    """Append a connection to the repo config (or --global).

    The URI is stored as given, so ${VAR} placeholders stay unresolved in
    the file. Needs --write-enabled while read-only mode is on.
    """
    if use_global and use_repo:
        raise click.UsageError("--global and --repo are mutually exclusive")

    paths: ConfigPaths = ctx.obj["paths"]
    scope = resolve_config_scope(paths, use_global, use_repo)

    try:
        try:
            connection = ConnectionSpec(
                name=name, uri=uri, default_database=default_database or None
            )
        except ValidationError as e:
            raise translate_validation_error(e) from e
        path = append_connection(
            paths,
            connection,
            scope,
            config=ctx.obj["config"],
            overrides=ctx.obj["overrides"],
        )
    except (LazyCompassError, OSError) as e:
        _fail(e)

    click.echo(f"connection '{connection.name}' added to {path}")


@cli.command()
@click.argument("name")
@click.argument("uri")
@click.option("--default-database", default=None, help="Database for shared specs")
@with_scope_flags
@click.pass_context
def init(ctx: click.Context, **kwargs: Any) -> None:
    """Set up lazycompass by adding a first connection.

    Writes to the repo config inside a repository, else the global config.
    """
    ctx.invoke(config_add_connection, **kwargs)


@cli.group()
def saved() -> None:
    """Work with saved queries and aggregations."""


@saved.command("list")
@click.pass_context
def saved_list(ctx: click.Context) -> None:
    """List saved specs, skipping files that fail to load."""
    paths: ConfigPaths = ctx.obj["paths"]
    queries = scan_queries(paths.queries_dir)
    aggregations = scan_aggregations(paths.aggregations_dir)

    for warning in queries.warnings + aggregations.warnings:
        _warn(warning)
    for query in queries.items:
        click.echo(f"query        {query.id.stem}")
    for aggregation in aggregations.items:
        click.echo(f"aggregation  {aggregation.id.stem}")


@cli.group()
def query() -> None:
    """Saved queries."""


@query.command("resolve")
@click.argument("name")
@with_scope_options
@click.pass_context
def query_resolve(
    ctx: click.Context,
    name: str,
    connection: str | None,
    database: str | None,
    collection: str | None,
) -> None:
    """Resolve a saved query and its target without running it."""
    paths: ConfigPaths = ctx.obj["paths"]
    effective: Config = ctx.obj["config"]

    try:
        saved_query = load_query(paths.queries_dir, name)
        target = resolve_target(saved_query.id, effective, database, collection, connection)
    except LazyCompassError as e:
        _fail(e)

    _echo_json(
        {
            "name": saved_query.id.stem,
            **_target_json(target, effective),
            **saved_query.payload.to_json(),
        }
    )


@cli.group()
def agg() -> None:
    """Saved aggregations."""


@agg.command("resolve")
@click.argument("name")
@with_scope_options
@click.pass_context
def agg_resolve(
    ctx: click.Context,
    name: str,
    connection: str | None,
    database: str | None,
    collection: str | None,
) -> None:
    """Resolve a saved aggregation and gate its stages without running it."""
    paths: ConfigPaths = ctx.obj["paths"]
    effective: Config = ctx.obj["config"]
    overrides: SafetyOverrides = ctx.obj["overrides"]

    try:
        aggregation = load_aggregation(paths.aggregations_dir, name)
        target = resolve_target(aggregation.id, effective, database, collection, connection)
        evaluate_pipeline(effective, overrides, aggregation.payload.stages).raise_for_denial()
    except LazyCompassError as e:
        _fail(e)

    _echo_json(
        {
            "name": aggregation.id.stem,
            **_target_json(target, effective),
            "pipeline": aggregation.payload.to_json(),
        }
    )


@cli.command()
@click.argument("operation", type=click.Choice([*OPERATIONS, "stage"]))
@click.argument("stage", required=False)
@click.pass_context
def check(ctx: click.Context, operation: str, stage: str | None) -> None:
    """Ask the safety gate whether an operation is allowed.

    Exits with status 1 when the operation is denied.

    Examples:

        \b
        lazycompass check insert
        lazycompass --write-enabled check stage '$merge'
    """
    if operation == "stage":
        if not stage:
            raise click.UsageError("stage requires a stage name, e.g. '$out'")
        requested = Operation.pipeline_stage(stage)
    else:
        requested = OPERATIONS[operation]

    decision = evaluate(ctx.obj["config"], ctx.obj["overrides"], requested)
    click.echo(decision.message)
    if not decision.allowed:
        sys.exit(1)


if __name__ == "__main__":
    cli()
