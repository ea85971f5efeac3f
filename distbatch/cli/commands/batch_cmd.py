"""Batch build commands for distbatch CLI."""

import asyncio
import dataclasses
import json
import shlex
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from distbatch.api.batch import BatchPlan, BatchReport, load_plan, run_plan
from distbatch.core.config import DistBatchConfig, load_config
from distbatch.core.config.models import EXECUTOR_KINDS
from distbatch.core.domain.cycles import build_waves
from distbatch.core.exceptions import DistBatchError
from distbatch.core.scheduling.models import BuildState
from distbatch.drivers.executors import create_executor

app = typer.Typer()
console = Console()

# Exit codes
EXIT_BUILD_FAILURES = 1
EXIT_ERROR = 2

RootOption = Annotated[
    Path | None,
    typer.Option("--root", "-r", help="Distribution root (overrides configuration)"),
]


def _config(ctx: typer.Context, root: Path | None) -> DistBatchConfig:
    """Configuration from the main callback, or loaded here when run standalone."""
    config = ctx.obj.get("config") if ctx.obj else None
    if config is None:
        try:
            config = load_config()
        except DistBatchError as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(EXIT_ERROR) from e
    if root is not None:
        config = dataclasses.replace(config, root=str(root))
    return config


def _plan(config: DistBatchConfig) -> BatchPlan:
    try:
        return load_plan(config)
    except DistBatchError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(EXIT_ERROR) from e


def _print_report(report: BatchReport) -> None:
    summary = report.summary
    table = Table(title="Batch Summary", show_header=True, header_style="bold cyan")
    table.add_column("State")
    table.add_column("Packages", justify="right")
    table.add_row("[green]succeeded[/green]", str(summary.succeeded))
    table.add_row("[red]failed[/red]", str(summary.failed_directly))
    table.add_row("[yellow]failed by dependency[/yellow]", str(summary.failed_by_dependency))
    table.add_row("[bold]total[/bold]", str(summary.total))
    console.print(table)

    failed = summary.names_in(BuildState.FAILED)
    if failed:
        console.print("\n[red]Failed builds:[/red]")
        for name in failed:
            console.print(f"  [red]✗[/red] {name}")
    skipped = summary.names_in(BuildState.FAILED_BY_DEPENDENCY)
    if skipped:
        console.print("\n[yellow]Not attempted (dependency failed):[/yellow]")
        for name in skipped:
            console.print(f"  [yellow]-[/yellow] {name}")
    if report.broken:
        console.print(f"\n[dim]Cycle breaks: {', '.join(report.broken)}[/dim]")

    console.print(
        f"\n{summary.succeeded} packages succeeded, {summary.failed} failed, {summary.total} total"
    )


@app.command("run")
def run_batch(
    ctx: typer.Context,
    root: RootOption = None,
    workers: Annotated[
        int | None,
        typer.Option("--workers", "-j", min=1, help="Parallel builds (default: configuration)"),
    ] = None,
    executor: Annotated[
        str | None,
        typer.Option("--executor", "-e", help=f"Executor kind: {'|'.join(EXECUTOR_KINDS)}"),
    ] = None,
    command: Annotated[
        str | None,
        typer.Option("--command", help="Build command for the command executor, e.g. "
                     "'distri build -pkg={package}'"),
    ] = None,
    fail: Annotated[
        list[str] | None,
        typer.Option("--fail", help="Package the simulated executor should fail (repeatable)"),
    ] = None,
    json_out: Annotated[bool, typer.Option("--json", help="Output JSON summary")] = False,
) -> None:
    """Build every package in dependency order."""
    config = _config(ctx, root)

    executor_config = config.executor
    try:
        if executor is not None:
            executor_config = dataclasses.replace(executor_config, kind=executor)
        if command is not None:
            executor_config = dataclasses.replace(
                executor_config, kind="command", command=tuple(shlex.split(command))
            )
        if fail:
            executor_config = dataclasses.replace(
                executor_config, fail=(*executor_config.fail, *fail)
            )
        build_executor = create_executor(executor_config, cwd=config.root)
    except DistBatchError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(EXIT_ERROR) from e

    plan = _plan(config)
    try:
        report = asyncio.run(
            run_plan(plan, build_executor, workers=workers or config.scheduler.workers)
        )
    except DistBatchError as e:
        console.print(f"[red]Batch aborted: {e}[/red]")
        raise typer.Exit(EXIT_ERROR) from e

    if json_out:
        payload = {
            "succeeded": report.summary.succeeded,
            "failed": report.summary.failed,
            "total": report.summary.total,
            "broken": list(report.broken),
            "states": {name: state.value for name, state in report.summary.states.items()},
        }
        typer.echo(json.dumps(payload, indent=2, sort_keys=True))
    else:
        _print_report(report)

    if not report.summary.ok:
        raise typer.Exit(EXIT_BUILD_FAILURES)


@app.command("bootstrap")
def bootstrap(ctx: typer.Context, root: RootOption = None) -> None:
    """List packages that need a cycle break (built without their dependencies)."""
    plan = _plan(_config(ctx, root))

    if not plan.resolution.had_cycles:
        console.print("[green]✓ No dependency cycles[/green]")
        return

    console.print(f"[cyan]{len(plan.resolution.components)} dependency cycle(s):[/cyan]")
    for component in plan.resolution.components:
        console.print(f"  {' <-> '.join(component)}")
    console.print(f"\n[yellow]{len(plan.broken)} package(s) need a cycle break:[/yellow]")
    for name in plan.broken:
        console.print(f"  {name}")


@app.command("order")
def order(ctx: typer.Context, root: RootOption = None) -> None:
    """Show the build waves after cycle breaking."""
    plan = _plan(_config(ctx, root))
    waves = build_waves(plan.schedulable)

    table = Table(title="Build Order", show_header=True, header_style="bold cyan")
    table.add_column("Wave", justify="right")
    table.add_column("Packages")
    for index, wave in enumerate(waves):
        table.add_row(str(index), ", ".join(wave))
    console.print(table)
    console.print(f"[dim]{len(plan.schedulable)} packages in {len(waves)} waves[/dim]")
