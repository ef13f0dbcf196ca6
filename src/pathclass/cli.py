"""Command line interface for pathclass."""

from __future__ import annotations

import asyncio
import difflib
from pathlib import Path
from typing import Any, Dict, List

import click
import yaml
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from pathclass.classification import (
    FallbackClassifier,
    InvalidInputError,
    PathclassError,
)
from pathclass.config import ConfigError, ConfigManager, PathclassConfig, resolve_with_precedence
from pathclass.logging_config import configure_logging
from pathclass.pipeline import ClassificationPipeline, PipelineReport
from pathclass.tabular import PREVIEW_COLUMNS, read_tsv_file

console = Console()

PREVIEW_LIMIT = 20


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    details: Any | None = None,
    original: Exception | None = None,
) -> None:
    """Emit a standardized error and terminate the command appropriately.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Indicates whether JSON mode is active.
        details: Optional structured details to include in the payload.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: When emitting JSON output to terminate the command.
        click.ClickException: For non-JSON flows to surface the error.
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


def _emit_message(message: Any, *, mode: str, quiet: bool, summary_only: bool) -> None:
    """Conditionally print CLI output according to quiet/summary settings.

    Args:
        message: Renderable or string to emit.
        mode: Output mode identifier (`detail`, `summary`, `warning`, or `error`).
        quiet: Whether quiet mode is active.
        summary_only: Whether only summary lines should be emitted.
    """

    if quiet and mode != "error":
        return

    if summary_only and mode not in {"summary", "warning", "error"}:
        return

    console.print(message)


def _format_summary_line(command: str, target: Path | str, metrics: dict[str, Any]) -> str:
    """Return a consistent summary line for CLI commands."""

    parts = ", ".join(f"{key}={value}" for key, value in metrics.items())
    return f"[green]{command} summary for {target}: {parts}.[/green]"


def _assign_nested(target: dict[str, Any], path: list[str], value: Any) -> None:
    """Assign a nested value within a dictionary for a dotted path.

    Raises:
        ConfigError: If a non-mapping value is encountered along the path.
    """

    node = target
    for segment in path[:-1]:
        existing = node.get(segment)
        if existing is None:
            existing = {}
            node[segment] = existing
        elif not isinstance(existing, dict):
            raise ConfigError(
                f"Cannot assign into '{segment}' because it is not a mapping in the config file."
            )
        node = existing
    node[path[-1]] = value


def _default_output_path(input_path: Path) -> Path:
    return input_path.with_name(f"{input_path.stem}_class_reassigned.tsv")


def _preview_table(rows: List[Dict[str, str]], limit: int = PREVIEW_LIMIT) -> Table:
    table = Table(title=f"Preview ({min(limit, len(rows))} of {len(rows)} rows)")
    for column in PREVIEW_COLUMNS:
        table.add_column(column, overflow="fold")
    for row in rows[:limit]:
        table.add_row(*(row.get(column, "") for column in PREVIEW_COLUMNS))
    return table


class _ConsoleProgress:
    """Progress channel that renders events on the rich console status line."""

    def __init__(self, status: Any) -> None:
        self._status = status

    async def publish(self, event: Dict[str, Any]) -> None:
        self._status.update(
            f"{event.get('message', '')} [{event.get('processed', 0)}/{event.get('total', 0)}] "
            f"{event.get('percentage', 0)}%"
        )


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="pathclass")
def cli() -> None:
    """Assign Reactome-style classes and subclasses to biological pathways."""


@cli.command()
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Destination TSV (defaults to <input>_class_reassigned.tsv).",
)
@click.option("--reset-cache", is_flag=True, help="Ignore cached classifications for this run.")
@click.option("--no-cache", is_flag=True, help="Disable the durable (Redis) cache tier.")
@click.option("--json", "json_output", is_flag=True, help="Emit a JSON report instead of tables.")
@click.option("--summary", "summary_mode", is_flag=True, help="Only emit summary lines.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
def classify(
    input_path: Path,
    output: Path | None,
    reset_cache: bool,
    no_cache: bool,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Classify the pathways in INPUT_PATH and write the sorted table.

    Args:
        input_path: Tab-separated input table.
        output: Optional destination for the output table.
        reset_cache: Whether cached classifications are ignored for this run.
        no_cache: Whether the durable cache tier is disabled.
        json_output: If True, emit a JSON report.
        summary_mode: When True, limit output to summary lines.
        quiet: When True, suppress non-error output.
    """

    if json_output and (quiet or summary_mode):
        raise click.ClickException("--json cannot be combined with --quiet or --summary.")
    if quiet and summary_mode:
        raise click.ClickException("--quiet and --summary cannot both be enabled.")

    try:
        overrides = {"cache.enabled": False} if no_cache else None
        config = ConfigManager().load(cli_overrides=overrides)
        configure_logging(config.logging)

        records = read_tsv_file(input_path)
        pipeline = ClassificationPipeline.from_config(config)

        async def _run() -> PipelineReport:
            try:
                if quiet or json_output:
                    return await pipeline.process(records, reset_cache=reset_cache)
                with console.status("Classifying pathways...") as status:
                    return await pipeline.process(
                        records, reset_cache=reset_cache, channel=_ConsoleProgress(status)
                    )
            finally:
                await pipeline.aclose()

        report = asyncio.run(_run())
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
        return
    except InvalidInputError as exc:
        _handle_cli_error(str(exc), code="invalid_input", json_output=json_output, original=exc)
        return
    except PathclassError as exc:
        _handle_cli_error(str(exc), code="classification_error", json_output=json_output, original=exc)
        return
    except Exception as exc:
        _handle_cli_error(
            f"Unexpected error while classifying pathways: {exc}",
            code="internal_error",
            json_output=json_output,
            details={"exception": type(exc).__name__},
            original=exc,
        )
        return

    destination = output or _default_output_path(input_path)
    destination.write_text(report.tsv, encoding="utf-8")

    run = report.run
    metrics = {
        "pathways": report.total_pathways,
        "service_calls": run.service_calls,
        "cache_hits": run.cache_hits,
        "fallbacks": run.fallbacks,
        "failed_batches": run.failed_batches,
        "seconds": report.processing_time,
    }

    if json_output:
        console.print_json(
            data={
                "output": str(destination),
                "processingTime": report.processing_time,
                "totalPathways": report.total_pathways,
                "counts": metrics,
                "preview": report.preview[:PREVIEW_LIMIT],
            }
        )
        return

    _emit_message(_preview_table(report.preview), mode="detail", quiet=quiet, summary_only=summary_mode)
    _emit_message(
        f"Wrote {report.total_pathways} rows to {destination}",
        mode="detail",
        quiet=quiet,
        summary_only=summary_mode,
    )
    if run.failed_batches:
        _emit_message(
            f"[yellow]{run.failed_batches} batch(es) failed; fallback classifications were used.[/yellow]",
            mode="warning",
            quiet=quiet,
            summary_only=summary_mode,
        )
    _emit_message(
        _format_summary_line("Classify", input_path, metrics),
        mode="summary",
        quiet=quiet,
        summary_only=summary_mode,
    )


@cli.command()
@click.argument("name")
@click.option("--species", type=str, help="Species used to narrow the subclass.")
@click.option("--json", "json_output", is_flag=True, help="Emit the classification as JSON.")
def fallback(name: str, species: str | None, json_output: bool) -> None:
    """Print the deterministic keyword classification for NAME."""

    result = FallbackClassifier().classify(name, species)
    if json_output:
        console.print_json(data=result.model_dump(by_alias=True))
        return
    console.print(f"{result.class_name} / {result.subclass}", markup=False)


@cli.command()
@click.option("--host", type=str, help="Interface to bind (defaults to server.host).")
@click.option("--port", type=int, help="Port to bind (defaults to server.port).")
def serve(host: str | None, port: int | None) -> None:
    """Serve the pathway assignment HTTP API with uvicorn."""

    import uvicorn

    from pathclass.api import create_app

    try:
        config = ConfigManager().load()
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    app = create_app(config=config)
    uvicorn.run(
        app,
        host=host or config.server.host,
        port=port or config.server.port,
        log_level=config.logging.level.lower(),
    )


@cli.group()
def config() -> None:
    """Manage pathclass configuration files and overrides."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
def config_view(no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules.

    Args:
        no_env: If True, ignore environment-derived overrides.

    Raises:
        click.ClickException: If configuration cannot be loaded.
    """
    manager = ConfigManager()
    try:
        manager.ensure_exists()
        loaded = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(loaded.model_dump(mode="python"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY.")
def config_set(key: str, value: str) -> None:
    """Persist a configuration value expressed as a dotted KEY.

    Raises:
        click.ClickException: If parsing, assignment, or validation fails.
    """
    manager = ConfigManager()
    manager.ensure_exists()

    before = manager.read_text().splitlines()
    segments = [segment.strip() for segment in key.split(".") if segment.strip()]
    if not segments:
        raise click.ClickException(
            "KEY must specify a dotted path such as 'classification.batch_size'."
        )

    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    try:
        file_data = manager.load_file_overrides()
        _assign_nested(file_data, segments, parsed_value)
        resolve_with_precedence(defaults=PathclassConfig(), file_overrides=file_data)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(file_data)
    after = manager.read_text().splitlines()

    # The timestamp header line always changes; compare the body only.
    diff = [
        line
        for line in difflib.unified_diff(
            before,
            after,
            fromfile="config.yaml (before)",
            tofile="config.yaml (after)",
            lineterm="",
        )
        if "# Last updated:" not in line
    ]

    if any(line.startswith(("+", "-")) and not line.startswith(("+++", "---")) for line in diff):
        console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    else:
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")
        return

    console.print(f"[green]Updated {'.'.join(segments)}.[/green]")


@config.command("edit")
def config_edit() -> None:
    """Open the configuration file in an interactive editor session.

    Raises:
        click.ClickException: If edited content is invalid or cannot be saved.
    """
    manager = ConfigManager()
    manager.ensure_exists()

    original = manager.read_text()
    edited = click.edit(original, extension=".yaml")

    if edited is None:
        console.print("[yellow]Edit cancelled; no changes applied.[/yellow]")
        return

    if edited == original:
        console.print("[yellow]No changes detected.[/yellow]")
        return

    try:
        parsed = yaml.safe_load(edited) or {}
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Invalid YAML: {exc}") from exc

    if not isinstance(parsed, dict):
        raise click.ClickException("Configuration file must contain a top-level mapping.")

    try:
        resolve_with_precedence(defaults=PathclassConfig(), file_overrides=parsed)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(parsed)
    console.print("[green]Configuration updated successfully.[/green]")


def main() -> None:
    """Invoke the Click CLI as the console script entry point."""
    cli()


if __name__ == "__main__":
    main()
