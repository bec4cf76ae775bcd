"""CLI command implementations."""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer

from kkp_provisioner.cli import app
from kkp_provisioner.cli.errors import handle_error

if TYPE_CHECKING:
    from collections.abc import Callable

    from kkp_provisioner.config.schema import Config
    from kkp_provisioner.core.state import State
    from kkp_provisioner.engine.events import ProgressEvent
    from kkp_provisioner.engine.types import ResourceChange

ConfigPath = Annotated[
    Path,
    typer.Option("--config", "-c", help="Path to the configuration file."),
]

NoColor = Annotated[
    bool,
    typer.Option("--no-color", help="Disable colored output."),
]

AutoApprove = Annotated[
    bool,
    typer.Option("--auto-approve", help="Skip interactive approval."),
]

NoRefresh = Annotated[
    bool,
    typer.Option("--no-refresh", help="Skip refreshing state from the API."),
]

_DEFAULT_CONFIG = Path("kkp-provisioner.yaml")


def _use_color(no_color: bool) -> bool:
    """Determine whether to use color output."""
    return not (no_color or os.environ.get("NO_COLOR"))


def _run_with_spinner(
    change: ResourceChange,
    *,
    color: bool,
    run: Callable[[Callable[[ProgressEvent], None]], State | ResourceChange],
) -> None:
    """Run a lifecycle operation behind a Rich spinner fed by progress events."""
    from rich.console import Console
    from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

    from kkp_provisioner.cli.formatting import _ACTION_STYLES, format_event
    from kkp_provisioner.engine.events import log_event

    console = Console(no_color=not color)
    s = _ACTION_STYLES[change.action.value]

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task(f"{change.address}: {s.progress_verb}...", total=None)

        def on_event(event: ProgressEvent) -> None:
            log_event(event)
            progress.update(task, description=f"{change.address}: {format_event(event)}")

        run(on_event)


def _confirm_and_apply(
    change: ResourceChange,
    *,
    color: bool,
    auto_approve: bool,
    confirm_msg: str,
    empty_msg: str,
    run: Callable[[Callable[[ProgressEvent], None]], State | ResourceChange],
) -> None:
    """Shared flow: show change -> confirm -> run with spinner -> print summary.

    Exits with code 0 if there is nothing to do.
    """
    from kkp_provisioner.cli.formatting import (
        format_apply_summary,
        format_change,
        has_actionable_changes,
    )

    if not has_actionable_changes(change):
        typer.echo(empty_msg)
        raise typer.Exit(0)

    typer.echo(format_change(change, color=color))
    typer.echo()

    if not auto_approve:
        try:
            typer.confirm(confirm_msg, abort=True)
        except typer.Abort as e:
            typer.echo("Apply canceled.", err=True)
            raise typer.Exit(1) from e

    try:
        _run_with_spinner(change, color=color, run=run)
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc

    typer.echo(format_apply_summary(change, color=color))


def _load(config: Path, color: bool) -> Config:
    from kkp_provisioner.config import load

    try:
        return load(config)
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc


@app.command()
def plan(
    config: ConfigPath = _DEFAULT_CONFIG,
    no_color: NoColor = False,
    no_refresh: NoRefresh = False,
) -> None:
    """Show the change required by the current configuration."""
    from kkp_provisioner.cli.formatting import format_change, has_actionable_changes
    from kkp_provisioner.config import plan as plan_fn

    color = _use_color(no_color)
    cfg = _load(config, color)
    try:
        change = plan_fn(cfg, refresh=not no_refresh)
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc

    typer.echo(format_change(change, color=color))
    if has_actionable_changes(change):
        raise typer.Exit(2)


@app.command(name="apply")
def apply_cmd(
    config: ConfigPath = _DEFAULT_CONFIG,
    auto_approve: AutoApprove = False,
    no_color: NoColor = False,
    no_refresh: NoRefresh = False,
) -> None:
    """Create or update the project and wait until it is active."""
    from kkp_provisioner.config import apply
    from kkp_provisioner.config import plan as plan_fn

    color = _use_color(no_color)
    cfg = _load(config, color)
    try:
        change = plan_fn(cfg, refresh=not no_refresh)
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc

    _confirm_and_apply(
        change,
        color=color,
        auto_approve=auto_approve,
        confirm_msg="Do you want to apply these changes?",
        empty_msg="No changes. Project is up-to-date.",
        run=lambda events: apply(change, cfg, events=events),
    )


@app.command()
def destroy(
    config: ConfigPath = _DEFAULT_CONFIG,
    auto_approve: AutoApprove = False,
    no_color: NoColor = False,
) -> None:
    """Delete the project and wait until it is gone."""
    from kkp_provisioner.config import apply
    from kkp_provisioner.config import plan as plan_fn

    color = _use_color(no_color)
    cfg = _load(config, color)
    try:
        change = plan_fn(cfg, destroy=True)
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc

    _confirm_and_apply(
        change,
        color=color,
        auto_approve=auto_approve,
        confirm_msg="Do you really want to destroy the project?",
        empty_msg="No project to destroy.",
        run=lambda events: apply(change, cfg, events=events),
    )


@app.command(name="refresh")
def refresh_cmd(
    config: ConfigPath = _DEFAULT_CONFIG,
    no_color: NoColor = False,
) -> None:
    """Refresh state from the live API and save it."""
    from kkp_provisioner.cli.formatting import format_state
    from kkp_provisioner.config import refresh as refresh_fn
    from kkp_provisioner.config import save_state

    color = _use_color(no_color)
    cfg = _load(config, color)
    try:
        state = refresh_fn(cfg)
        save_state(cfg, state)
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc

    typer.echo(format_state(state, color=color))


@app.command()
def show(
    config: ConfigPath = _DEFAULT_CONFIG,
    no_color: NoColor = False,
) -> None:
    """Show the project tracked in the state file."""
    from kkp_provisioner.cli.formatting import format_state
    from kkp_provisioner.core.state import State

    color = _use_color(no_color)
    cfg = _load(config, color)
    try:
        state = State.load_or_create(cfg.state_path)
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc

    typer.echo(format_state(state, color=color))
