"""Command line interface for Forensight."""

from __future__ import annotations

import difflib
from pathlib import Path
from typing import Any

import click
import yaml
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from forensight.analysis import (
    AnalysisAssembler,
    AnalysisError,
    AnalysisRecord,
    AnalysisWorker,
    SignatureReason,
)
from forensight.config import ConfigError, ConfigManager, ForensightConfig, resolve_with_precedence
from forensight.log import configure_logging
from forensight.records import MissingRecordError, RecordStore, RecordStoreError

console = Console()

_VERDICT_STYLES = {
    SignatureReason.MATCHED: "[green]matched[/green]",
    SignatureReason.MISMATCHED: "[red]MISMATCHED[/red]",
    SignatureReason.NO_KNOWN_SIGNATURE: "[yellow]inconclusive (no known signature)[/yellow]",
}


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    details: Any | None = None,
    original: Exception | None = None,
) -> None:
    """Emit a standardized error and terminate the command.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Indicates whether JSON mode is active.
        details: Optional structured details to include in the payload.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: When emitting JSON output.
        click.ClickException: For non-JSON flows.
    """
    if json_output:
        payload: dict[str, Any] = {"error": {"code": code, "message": message}}
        if details is not None:
            payload["error"]["details"] = details
        console.print_json(data=payload)
        raise SystemExit(1)

    if isinstance(original, click.ClickException):
        raise original

    raise click.ClickException(message) from original


def _load_config(
    cli_overrides: dict[str, Any] | None = None, *, json_output: bool = False
) -> ForensightConfig:
    try:
        return ConfigManager().load(cli_overrides=cli_overrides)
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
        raise  # pragma: no cover - _handle_cli_error always raises


def _record_payload(record: AnalysisRecord) -> dict[str, Any]:
    return record.model_dump(mode="json", exclude_none=True)


def _format_value(value: Any) -> str:
    if isinstance(value, list):
        return ", ".join(str(item) for item in value)
    if isinstance(value, dict):
        return ", ".join(f"{key}={item}" for key, item in value.items())
    return str(value)


def _render_record(record: AnalysisRecord) -> Table:
    """Build a rich table summarizing one analysis record.

    Args:
        record: Record to render.

    Returns:
        Table: Two-column field/value table.
    """
    attributes = record.file_attributes
    metadata = record.metadata
    table = Table(title=attributes.name, show_header=False, title_justify="left")
    table.add_column("Field", style="bold cyan")
    table.add_column("Value", overflow="fold")

    table.add_row("Record", record.id)
    table.add_row("Created", record.created_at.isoformat())
    table.add_row("Size", f"{attributes.size} bytes")
    table.add_row("Declared type", attributes.declared_type or "-")
    if attributes.last_modified is not None:
        table.add_row("Last modified", attributes.last_modified.isoformat())
    table.add_row("MD5", record.hash.md5)
    table.add_row("SHA-256", record.hash.sha256)
    table.add_row("Signature", _VERDICT_STYLES[record.signature.reason])
    table.add_row(
        "Content",
        f"{metadata.mime_type or '-'} ({metadata.category.value}, routed by {metadata.routed_by})",
    )
    for name, value in metadata.attributes.items():
        table.add_row(name.replace("_", " "), _format_value(value))
    return table


def _assign_nested(target: dict[str, Any], path: list[str], value: Any) -> None:
    """Assign a nested value within a dictionary for a dotted path.

    Raises:
        ConfigError: If a non-mapping value is encountered along the path.
    """
    node = target
    for segment in path[:-1]:
        existing = node.setdefault(segment, {})
        if not isinstance(existing, dict):
            raise ConfigError(
                f"Cannot assign into '{segment}' because it is not a mapping in the config file."
            )
        node = existing
    node[path[-1]] = value


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="forensight")
def cli() -> None:
    """Forensight hashes files, checks their signatures and extracts metadata as evidence."""


@cli.command("analyze")
@click.argument(
    "paths",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option("--type", "declared_type", type=str, help="Declared MIME type for every file.")
@click.option("--chunk-size", type=click.IntRange(min=1), help="Override the read chunk size in bytes.")
@click.option("--save", is_flag=True, help="Store records in the configured records directory.")
@click.option("--json", "json_output", is_flag=True, help="Emit records as JSON.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def analyze_files(
    paths: tuple[Path, ...],
    declared_type: str | None,
    chunk_size: int | None,
    save: bool,
    json_output: bool,
    quiet: bool,
    verbose: bool,
) -> None:
    """Analyze one or more files and print their evidentiary records.

    Args:
        paths: Files to analyze.
        declared_type: MIME type to declare instead of guessing from extensions.
        chunk_size: Chunk size override in bytes.
        save: Whether to persist the records.
        json_output: Whether to emit JSON.
        quiet: Whether to suppress non-error output.
        verbose: Whether to enable debug logging.
    """
    overrides = {"hashing.chunk_size_bytes": chunk_size} if chunk_size else None
    config = _load_config(overrides, json_output=json_output)
    configure_logging(config.logging, verbose=verbose)
    json_enabled = json_output or config.cli.json_default
    quiet_enabled = quiet or config.cli.quiet_default

    store = RecordStore(config.storage.records_dir) if save else None
    declared = {"declared_type": declared_type} if declared_type is not None else None

    outcomes: dict[Path, AnalysisRecord | AnalysisError] = {}
    with AnalysisWorker(
        AnalysisAssembler.from_config(config),
        max_workers=config.workers.max_concurrent_analyses,
        chunk_size=config.hashing.chunk_size_bytes,
    ) as worker:
        for source, outcome in worker.run_all((path, declared) for path in paths):
            outcomes[Path(source)] = outcome

    records: list[AnalysisRecord] = []
    failures: list[dict[str, str]] = []
    for path in paths:
        outcome = outcomes[path]
        if isinstance(outcome, AnalysisError):
            failures.append({"path": str(path), "type": type(outcome).__name__, "message": str(outcome)})
            continue
        records.append(outcome)
        if store is not None:
            try:
                store.save(outcome)
            except RecordStoreError as exc:
                failures.append({"path": str(path), "type": type(exc).__name__, "message": str(exc)})

    if json_enabled:
        console.print_json(
            data={"records": [_record_payload(record) for record in records], "errors": failures}
        )
        if failures:
            raise SystemExit(1)
        return

    if not quiet_enabled:
        for record in records:
            console.print(_render_record(record))
        if store is not None and records:
            console.print(f"[green]Saved {len(records)} record(s) to {store.directory}.[/green]")

    if failures:
        for failure in failures:
            console.print(f"[red]{failure['path']}: {failure['message']}[/red]")
        raise click.ClickException(f"{len(failures)} of {len(paths)} analyses failed.")


@cli.command()
@click.argument("record_id")
@click.option("--json", "json_output", is_flag=True, help="Emit the record as JSON.")
def show(record_id: str, json_output: bool) -> None:
    """Display a stored analysis record.

    Args:
        record_id: Identifier of the record.
        json_output: Whether to emit JSON.
    """
    config = _load_config(json_output=json_output)
    try:
        record = RecordStore(config.storage.records_dir).load(record_id)
    except MissingRecordError as exc:
        _handle_cli_error(str(exc), code="not_found", json_output=json_output, original=exc)
        return
    except RecordStoreError as exc:
        _handle_cli_error(str(exc), code="store_error", json_output=json_output, original=exc)
        return

    if json_output:
        console.print_json(data=_record_payload(record))
    else:
        console.print(_render_record(record))


@cli.command("list")
def list_records() -> None:
    """List stored analysis records."""
    config = _load_config()
    store = RecordStore(config.storage.records_dir)
    record_ids = store.list_ids()
    if not record_ids:
        console.print("[yellow]No stored analysis records.[/yellow]")
        return

    table = Table(title=f"Records in {store.directory}")
    table.add_column("Record")
    table.add_column("File")
    table.add_column("Created")
    table.add_column("Signature")
    for record_id in record_ids:
        try:
            record = store.load(record_id)
        except RecordStoreError as exc:
            console.print(f"[yellow]Skipping {record_id}: {exc}[/yellow]")
            continue
        table.add_row(
            record.id,
            record.file_attributes.name,
            record.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            _VERDICT_STYLES[record.signature.reason],
        )
    console.print(table)


@cli.command()
@click.argument("record_id")
def delete(record_id: str) -> None:
    """Delete a stored analysis record.

    Args:
        record_id: Identifier of the record.
    """
    config = _load_config()
    try:
        RecordStore(config.storage.records_dir).delete(record_id)
    except MissingRecordError as exc:
        raise click.ClickException(str(exc)) from exc
    console.print(f"[green]Deleted record {record_id}.[/green]")


@cli.group()
def config() -> None:
    """Manage Forensight configuration files and overrides."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
def config_view(no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules.

    Args:
        no_env: If True, ignore environment-derived overrides.
    """
    manager = ConfigManager()
    try:
        effective = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(effective.model_dump(mode="python"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY.")
def config_set(key: str, value: str) -> None:
    """Persist a configuration value expressed as a dotted KEY.

    Args:
        key: Dotted path such as ``hashing.chunk_size_bytes``.
        value: YAML-literal value to write into the configuration file.
    """
    manager = ConfigManager()
    manager.ensure_exists()

    segments = [segment.strip() for segment in key.split(".") if segment.strip()]
    if not segments:
        raise click.ClickException("KEY must be a dotted path such as 'hashing.backend'.")

    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    before = manager.read_text().splitlines()
    file_data = manager.load_file_overrides()
    try:
        _assign_nested(file_data, segments, parsed_value)
        resolve_with_precedence(defaults=ForensightConfig(), file_overrides=file_data)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(file_data)
    diff = list(
        difflib.unified_diff(
            before,
            manager.read_text().splitlines(),
            fromfile="config.yaml (before)",
            tofile="config.yaml (after)",
            lineterm="",
        )
    )
    changed = [
        line
        for line in diff
        if line.startswith(("+", "-"))
        and not line.startswith(("+++", "---"))
        and "Last updated" not in line
    ]
    if not changed:
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")
        return

    console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {'.'.join(segments)}.[/green]")


def main() -> None:
    """Invoke the Click CLI as the console script entry point."""
    cli()


if __name__ == "__main__":
    main()
