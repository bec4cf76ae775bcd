"""Structured progress events emitted while reconciling a project."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal

logger = logging.getLogger(__name__)

EventKind = Literal["poll", "retry", "converged", "timeout", "unexpected_state", "absent"]


@dataclass(frozen=True)
class ProgressEvent:
    """One step of a lifecycle operation.

    Attributes:
        kind: What happened (a probe, a retry, convergence, ...)
        resource_id: Project identifier (the project name before one is assigned)
        operation: Lifecycle operation in progress ("create", "read", ...)
        state: Last observed lifecycle status, if known
        attempt: 1-based attempt counter within the current loop
        message: Human-readable detail
    """

    kind: EventKind
    resource_id: str
    operation: str
    state: str | None = None
    attempt: int = 0
    message: str = ""


EventSink = Callable[[ProgressEvent], None]


def log_event(event: ProgressEvent) -> None:
    """Default sink: forward events to stdlib logging."""
    level = logging.WARNING if event.kind in ("timeout", "unexpected_state") else logging.DEBUG
    logger.log(
        level,
        "%s project '%s' [%s] attempt=%d state=%s %s",
        event.operation,
        event.resource_id,
        event.kind,
        event.attempt,
        event.state or "-",
        event.message,
    )
