"""Command-line entry point: ``kkp-provisioner plan|apply|destroy|refresh|show``."""

from __future__ import annotations

import logging
import os
import sys

import typer

from kkp_provisioner import __version__

app = typer.Typer(
    name="kkp-provisioner",
    help="Reconcile a Kubermatic project with its YAML definition.",
    no_args_is_help=True,
    add_completion=False,
)

_LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
_LOG_DATEFMT = "%H:%M:%S"

# Poll and retry progress is logged at DEBUG so it stays quiet in library use.
EVENTS_LOGGER = "kkp_provisioner.engine.events"


def _show_version(value: bool) -> None:
    if value:
        typer.echo(f"kkp-provisioner {__version__}")
        raise typer.Exit


def _resolve_level(verbose: int) -> int | None:
    """Package log level from ``KKP_LOG``, else from the ``-v`` count.

    Returns None when logging should stay unconfigured.
    """
    name = os.environ.get("KKP_LOG", "").strip().upper()
    if name:
        level = logging.getLevelName(name)
        if isinstance(level, int):
            return level
        typer.echo(f"Ignoring unknown KKP_LOG level {name!r}; using INFO", err=True)
        return logging.INFO
    if verbose <= 0:
        return None
    return logging.INFO if verbose == 1 else logging.DEBUG


def _configure_logging(verbose: int) -> None:
    level = _resolve_level(verbose)
    if level is None:
        return
    logging.basicConfig(
        level=logging.WARNING,
        format=_LOG_FORMAT,
        datefmt=_LOG_DATEFMT,
        stream=sys.stderr,
        force=True,
    )
    logging.getLogger("kkp_provisioner").setLevel(level)
    # At INFO or below, per-poll progress is shown as well.
    logging.getLogger(EVENTS_LOGGER).setLevel(
        logging.DEBUG if level <= logging.INFO else logging.NOTSET
    )


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_show_version,
        is_eager=True,
    ),
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Log to stderr: -v shows progress of each poll, -vv everything.",
    ),
) -> None:
    _ = version
    _configure_logging(verbose)


# Commands register themselves on ``app`` at import time.
from kkp_provisioner.cli import commands as _commands  # noqa: E402, F401
