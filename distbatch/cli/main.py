"""distbatch CLI - Main entrypoint."""

from pathlib import Path

import typer
from rich.console import Console

from distbatch import __version__
from distbatch.cli.commands import batch_cmd
from distbatch.core.config import load_config
from distbatch.core.config.models import LOG_LEVELS
from distbatch.core.exceptions import ConfigurationError
from distbatch.core.logging import configure_logging

app = typer.Typer(
    name="distbatch",
    help="distbatch - build a whole package tree in dependency order.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    pretty_exceptions_enable=False,
)

console = Console()

app.add_typer(batch_cmd.app, name="batch", help="Plan and run batch builds")


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"[bold blue]distbatch[/bold blue] version [green]{__version__}[/green]")
        raise typer.Exit()


@app.callback()
def callback(
    ctx: typer.Context,
    *,
    config_path: Path | None = typer.Option(
        None, "--config", "-c", help="Path to distbatch.toml or pyproject.toml"
    ),
    quiet: bool = typer.Option(False, "-q", "--quiet", help="Suppress non-error output"),
    verbose: bool = typer.Option(False, "-V", "--verbose", help="Enable verbose logging"),
    log_level: str | None = typer.Option(
        None, "--log-level", help="Log level: debug|info|warning|error"
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """distbatch CLI - batch builder for source-based distributions.

    Global flags are parsed here and stored on `ctx.obj` for subcommands.
    """
    if ctx.obj is None:
        ctx.obj = {}

    try:
        config = load_config(config_path)
    except (FileNotFoundError, ConfigurationError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(2) from e

    effective_level = (log_level or config.logging.level).upper()
    if quiet:
        effective_level = "ERROR"
    elif verbose:
        effective_level = "DEBUG"
    if effective_level == "WARN":
        effective_level = "WARNING"
    if effective_level not in LOG_LEVELS:
        console.print(f"[red]Error: unknown log level '{log_level}'[/red]")
        raise typer.Exit(2)

    configure_logging(
        level=effective_level,  # type: ignore[arg-type]
        format=config.logging.format,
        output_file=config.logging.output_file,
        use_color=config.logging.use_color,
        include_timestamp=config.logging.include_timestamp,
    )

    ctx.obj.update({"config": config, "quiet": quiet, "log_level": effective_level})


def main() -> None:
    """Main CLI entrypoint."""
    app()


if __name__ == "__main__":
    main()
