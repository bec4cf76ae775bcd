"""Map exceptions to clean stderr messages and exit codes."""

from __future__ import annotations

import typer


def _err(msg: str, *, fg: str | None) -> None:
    """Print a styled message to stderr."""
    typer.echo(typer.style(msg, fg=fg), err=True)


def handle_error(exc: Exception, *, color: bool = True) -> int:
    """Print a clean error message to stderr and return an exit code.

    All errors map to exit code 1.  No tracebacks are printed.
    """
    from kkp_provisioner.config.loader import ConfigError
    from kkp_provisioner.engine.errors import (
        ReconcileError,
        ReconcileTimeoutError,
        UnexpectedStateError,
    )

    fg = typer.colors.RED if color else None

    if isinstance(exc, ConfigError):
        _err(f"Configuration error: {exc}", fg=fg)
    elif isinstance(exc, ReconcileTimeoutError):
        _err(f"Timed out: {exc}", fg=fg)
        _err("  The operation may still complete remotely; run 'refresh' to check.", fg=fg)
    elif isinstance(exc, UnexpectedStateError):
        _err(f"Unexpected state: {exc}", fg=fg)
    elif isinstance(exc, ReconcileError):
        _err(f"Apply failed: {exc}", fg=fg)
    else:
        _err(f"Error: {exc}", fg=fg)

    return 1
