"""
Command-line interface for schemerge.
"""

import sys
from functools import wraps
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import SchemergeConfig
from .exceptions import ConfigurationError, SchemergeError
from .loader import dump_schema, load_schema
from .logging_setup import setup_logging
from .schema.changes import ChangeType
from .schema.integrity import IssueSeverity, SchemaIntegrityChecker
from .schema.reconciler import ReconciliationResult, SchemaReconciler


console = Console(stderr=True)

CHANGE_STYLES = {
    ChangeType.ADD_TABLE: "green",
    ChangeType.ADD_COLUMN: "green",
    ChangeType.ADD_RELATIONSHIP: "green",
    ChangeType.DROP_TABLE: "red",
    ChangeType.DROP_COLUMN: "red",
    ChangeType.DROP_RELATIONSHIP: "red",
    ChangeType.UPDATE_COLUMN: "yellow",
    ChangeType.MERGE_TABLE: "cyan",
    ChangeType.PRESERVE_RELATIONSHIP: "cyan",
}

SEVERITY_STYLES = {
    IssueSeverity.INFO: "blue",
    IssueSeverity.WARNING: "yellow",
    IssueSeverity.ERROR: "red",
}


def handle_errors(func):
    """Decorator to handle errors gracefully in CLI commands."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except SchemergeError as e:
            console.print(f"[red]Error:[/red] {e}")
            sys.exit(1)
        except KeyboardInterrupt:
            console.print("\n[yellow]Interrupted by user[/yellow]")
            sys.exit(0)
        except Exception as e:
            console.print(f"[red]Unexpected error:[/red] {e}")
            if "--debug" in sys.argv:
                import traceback
                traceback.print_exc()
            sys.exit(1)
    return wrapper


@click.group()
@click.version_option(__version__)
@click.option(
    "--debug", is_flag=True, help="Enable debug mode"
)
@click.pass_context
def main(ctx, debug):
    """schemerge: Non-destructive schema reconciliation."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@main.command()
@click.argument("current", type=click.Path(exists=True, dir_okay=False))
@click.argument("proposed", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False),
    help="Write the merged schema here instead of stdout",
)
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    help="Configuration file path",
)
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["json", "yaml"]),
    help="Output format (defaults to the output file suffix, then config)",
)
@click.option(
    "--sync-foreign-keys",
    is_flag=True,
    help="Derive isForeignKey/references from relationships",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    help="Do not print the change summary",
)
@click.pass_context
@handle_errors
def merge(
    ctx,
    current: str,
    proposed: str,
    output: Optional[str],
    config: Optional[str],
    fmt: Optional[str],
    sync_foreign_keys: bool,
    quiet: bool,
):
    """Merge the PROPOSED schema into the CURRENT schema."""
    schemerge_config = _load_config(config, ctx.obj.get("debug", False))
    if sync_foreign_keys:
        schemerge_config.reconciler.sync_foreign_keys = True

    result = _reconcile(schemerge_config, current, proposed)

    if fmt is None and output is None:
        fmt = schemerge_config.output.format
    text = dump_schema(result.schema, output, fmt, schemerge_config.output.indent)

    if output:
        console.print(f"[green]✓[/green] Merged schema written to {output}")
    else:
        click.echo(text, nl=False)

    if not quiet:
        _display_result_summary(result)


@main.command()
@click.argument("current", type=click.Path(exists=True, dir_okay=False))
@click.argument("proposed", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    help="Configuration file path",
)
@click.option(
    "--all",
    "show_all",
    is_flag=True,
    help="Also list merged tables and preserved relationships",
)
@click.pass_context
@handle_errors
def diff(ctx, current: str, proposed: str, config: Optional[str], show_all: bool):
    """Show what merging PROPOSED into CURRENT would change."""
    schemerge_config = _load_config(config, ctx.obj.get("debug", False))
    result = _reconcile(schemerge_config, current, proposed)

    if result.is_passthrough:
        console.print(
            f"[yellow]Nothing to merge ({result.status.value.replace('_', ' ')})[/yellow]"
        )
        return

    quiet_types = {ChangeType.MERGE_TABLE, ChangeType.PRESERVE_RELATIONSHIP}
    shown = [c for c in result.changes if show_all or c.change_type not in quiet_types]
    if not shown:
        console.print("[green]✓[/green] No changes")

    for change in shown:
        style = CHANGE_STYLES.get(change.change_type, "white")
        console.print(f"[{style}]{change.change_type.value:<22}[/{style}] {change.description}")

    for warning in result.warnings:
        console.print(f"[yellow]⚠[/yellow] {warning}")


@main.command()
@click.argument("schema", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--require-ids",
    is_flag=True,
    help="Report columns without an id",
)
@handle_errors
def check(schema: str, require_ids: bool):
    """Check a schema document for integrity issues."""
    loaded = load_schema(schema)
    if loaded is None:
        raise ConfigurationError(f"Schema document {schema} is empty")

    issues = SchemaIntegrityChecker(require_column_ids=require_ids).check(loaded)
    if not issues:
        console.print(
            f"[green]✓[/green] Schema is consistent "
            f"({len(loaded.tables or [])} tables, {len(loaded.relationships)} relationships)"
        )
        return

    issue_table = Table(title="Integrity Issues")
    issue_table.add_column("Severity", style="bold")
    issue_table.add_column("Type", style="magenta")
    issue_table.add_column("Message")
    for issue in issues:
        style = SEVERITY_STYLES[issue.severity]
        issue_table.add_row(
            f"[{style}]{issue.severity.value}[/{style}]",
            issue.issue_type.value,
            issue.message,
        )
    console.print(issue_table)

    if any(issue.is_error for issue in issues):
        sys.exit(1)


@main.command()
@click.option(
    "--output",
    "-o",
    type=click.Path(),
    default="schemerge.yaml",
    help="Output configuration file path",
)
@handle_errors
def init(output: str):
    """Initialize a new schemerge configuration file."""
    if Path(output).exists():
        if not click.confirm(f"Configuration file {output} already exists. Overwrite?"):
            return

    SchemergeConfig().to_yaml(output)
    console.print(f"[green]✓[/green] Configuration file created: {output}")


@main.command()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    required=True,
    help="Configuration file path",
)
@handle_errors
def validate_config(config: str):
    """Validate configuration file."""
    console.print(f"Validating configuration: {config}")

    try:
        schemerge_config = SchemergeConfig.from_yaml(config)
        console.print("[green]✓[/green] Configuration is valid")
        _display_config_summary(schemerge_config)

    except ConfigurationError as e:
        console.print(f"[red]✗[/red] Configuration error: {e}")
        sys.exit(1)


def _load_config(path: Optional[str], debug: bool) -> SchemergeConfig:
    config = SchemergeConfig.from_yaml(path) if path else SchemergeConfig()
    setup_logging(config.logging, debug=debug or config.debug)
    return config


def _reconcile(config: SchemergeConfig, current: str, proposed: str) -> ReconciliationResult:
    reconciler = SchemaReconciler.from_config(config.reconciler)
    return reconciler.reconcile(load_schema(current), load_schema(proposed))


def _display_result_summary(result: ReconciliationResult):
    """Display a summary of a reconciliation result."""
    if result.is_passthrough:
        console.print(
            f"[yellow]Nothing to merge ({result.status.value.replace('_', ' ')})[/yellow]"
        )
        return

    summary_table = Table(title="Reconciliation Summary")
    summary_table.add_column("Change", style="cyan")
    summary_table.add_column("Count", style="yellow", justify="right")
    for change_type, count in result.summary().items():
        summary_table.add_row(change_type, str(count))
    console.print(summary_table)

    for warning in result.warnings:
        console.print(f"[yellow]⚠[/yellow] {warning}")


def _display_config_summary(config: SchemergeConfig):
    """Display a summary of the configuration."""
    config_table = Table(title="Configuration Summary")
    config_table.add_column("Setting", style="cyan")
    config_table.add_column("Value", style="green")

    reconciler = config.reconciler
    config_table.add_row("id_strategy", reconciler.id_strategy)
    config_table.add_row("id_prefix", reconciler.id_prefix)
    config_table.add_row("sync_foreign_keys", str(reconciler.sync_foreign_keys))
    config_table.add_row(
        "drop_unresolved_relationships", str(reconciler.drop_unresolved_relationships)
    )
    config_table.add_row("output.format", config.output.format)
    config_table.add_row("logging.level", config.logging.level)

    console.print(config_table)


if __name__ == "__main__":
    main()
