# src/linkverify/cli.py
"""linkverify Command Line Interface.

Entry point for the linkverify CLI tool.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

import typer
from pydantic import ValidationError

from linkverify import __version__
from linkverify.contracts import Classification, ConfigurationError, StorageAccessError
from linkverify.core.config import LinkVerifySettings, load_settings, render_settings

__all__ = ["app"]

app = typer.Typer(
    name="linkverify",
    help="linkverify: find lost nodes in very large linked lists.",
    no_args_is_help=True,
)


@dataclass
class _GlobalOptions:
    verbose: bool = False
    json_logs: bool = False


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"linkverify version {__version__}")
        raise typer.Exit()


def _load_dotenv(env_file: Path | None = None) -> bool:
    """Load environment variables from a .env file.

    Raises:
        typer.Exit: If an explicit env_file path doesn't exist.
    """
    from dotenv import load_dotenv

    if env_file is not None:
        if not env_file.exists():
            typer.secho(f"Error: .env file not found: {env_file}", fg=typer.colors.RED, err=True)
            raise typer.Exit(1)
        return load_dotenv(env_file, override=False)

    return load_dotenv(override=False)


@app.callback()
def main(
    ctx: typer.Context,
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    no_dotenv: bool = typer.Option(False, "--no-dotenv", help="Skip loading .env file."),
    env_file: Path | None = typer.Option(None, "--env-file", help="Path to .env file (skips automatic search)."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose/debug logging."),
    json_logs: bool = typer.Option(False, "--json-logs", help="Output structured JSON logs."),
) -> None:
    """linkverify: find lost nodes in very large linked lists."""
    from linkverify.core.logging import configure_logging

    configure_logging(json_output=json_logs, level="DEBUG" if verbose else "INFO")
    ctx.obj = _GlobalOptions(verbose=verbose, json_logs=json_logs)

    if not no_dotenv:
        _load_dotenv(env_file=env_file)
    elif env_file is not None:
        typer.secho("Warning: --env-file ignored because --no-dotenv is set.", fg=typer.colors.YELLOW, err=True)


def _resolve_settings(settings: Path | None, store_url: str | None) -> LinkVerifySettings:
    """Load settings (or defaults) and apply command-line overrides; exits 1 on error."""
    try:
        config = load_settings(settings.expanduser() if settings is not None else None)
    except FileNotFoundError:
        typer.echo(f"Error: Settings file not found: {settings}", err=True)
        raise typer.Exit(1) from None
    except ValidationError as e:
        typer.echo("Configuration errors:", err=True)
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            typer.echo(f"  - {loc}: {error['msg']}", err=True)
        raise typer.Exit(1) from None

    if store_url is not None:
        config = config.model_copy(update={"store": config.store.model_copy(update={"url": store_url})})
    return config


def _reconfigure_logging(ctx: typer.Context, config: LinkVerifySettings) -> None:
    """Apply settings-file logging preferences unless overridden by flags."""
    from linkverify.core.logging import configure_logging

    options = ctx.obj if isinstance(ctx.obj, _GlobalOptions) else _GlobalOptions()
    configure_logging(
        json_output=options.json_logs or config.logging.json_output,
        level="DEBUG" if options.verbose else config.logging.level,
    )


def _print_counters(counters: Mapping[Classification, int]) -> None:
    """Render the job counters as a table on stdout."""
    from rich.console import Console
    from rich.table import Table

    table = Table(title="Link Verifier counters")
    table.add_column("Counter")
    table.add_column("Value", justify="right")
    for name in Classification:
        style = "red bold" if name == Classification.UNDEFINED and counters[name] else None
        table.add_row(name.value, str(counters[name]), style=style)
    Console().print(table)


@app.command()
def verify(
    ctx: typer.Context,
    output_dir: Path = typer.Argument(..., help="Directory for diagnostic output (must not exist or be empty)."),
    num_partitions: int = typer.Argument(..., min=1, help="Number of reduce partitions."),
    concurrent: bool = typer.Option(
        False,
        "--concurrent",
        "-c",
        help="Run concurrently with generation (skip nodes that are not yet flushed).",
    ),
    expected: int | None = typer.Option(
        None,
        "--expected",
        "-e",
        min=0,
        help="Expected REFERENCED count; when set, a failed check also fails the exit code.",
    ),
    settings: Path | None = typer.Option(None, "--settings", "-s", help="Path to settings YAML file."),
    store_url: str | None = typer.Option(None, "--store-url", help="Override store.url from settings."),
    show_undefined: int = typer.Option(
        10,
        "--show-undefined",
        min=0,
        help="Print up to N undefined-node diagnostic lines after the run.",
    ),
) -> None:
    """Verify that every referenced node in the store was written.

    Exits 0 when the job completes successfully. With --expected, the
    REFERENCED/UNREFERENCED/UNDEFINED checks must also pass.
    """
    from linkverify.engine.output import read_diagnostics
    from linkverify.engine.verifier import Verifier

    config = _resolve_settings(settings, store_url)
    _reconfigure_logging(ctx, config)

    verifier = Verifier(config)
    try:
        verifier.start(output_dir, num_partitions, concurrent)
    except (ConfigurationError, StorageAccessError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None

    if not verifier.wait_for_completion():
        failure = verifier.failure
        typer.echo(f"Verification job failed: {failure if failure else verifier.state.value}", err=True)
        raise typer.Exit(1)

    counters = verifier.counters()
    _print_counters(counters)

    if show_undefined and counters[Classification.UNDEFINED]:
        typer.echo(f"Undefined nodes (first {show_undefined}):")
        for index, line in enumerate(read_diagnostics(output_dir.expanduser())):
            if index >= show_undefined:
                break
            typer.echo(f"  {line}")

    if expected is not None:
        report = verifier.verify(expected)
        if not report:
            for violation in report.violations:
                typer.secho(
                    f"FAILED {violation.condition}: {violation.message} (expected={violation.expected}, actual={violation.actual})",
                    fg=typer.colors.RED,
                    err=True,
                )
            raise typer.Exit(1)
        typer.secho("Verification passed.", fg=typer.colors.GREEN)


@app.command("show-config")
def show_config(
    settings: Path | None = typer.Option(None, "--settings", "-s", help="Path to settings YAML file."),
    store_url: str | None = typer.Option(None, "--store-url", help="Override store.url from settings."),
) -> None:
    """Print the resolved configuration as YAML (credentials masked)."""
    config = _resolve_settings(settings, store_url)
    typer.echo(render_settings(config), nl=False)


if __name__ == "__main__":
    app()
