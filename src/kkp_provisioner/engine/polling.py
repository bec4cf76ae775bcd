"""Bounded-time retry and poll-until-state loops.

Both loops are synchronous and block the calling thread; the only way to
stop them early is the ``timeout`` budget.  Time and sleeping are taken
from :class:`WaitSettings` so tests can drive them with a fake clock.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Collection
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeVar

from kkp_provisioner.engine.classify import DEFAULT_CLASSIFIER, ErrorClass, ErrorClassifier
from kkp_provisioner.engine.errors import (
    NonRetryableRemoteError,
    OperationFailedError,
    ReconcileError,
    ReconcileTimeoutError,
    RetryableError,
    RetryableTransportError,
    UnexpectedStateError,
)
from kkp_provisioner.engine.events import EventSink, ProgressEvent, log_event

logger = logging.getLogger(__name__)

T = TypeVar("T")

MIN_INTERVAL = 3.0
INITIAL_DELAY = 3.0
MAX_INTERVAL = 10.0
BACKOFF_FACTOR = 1.5


@dataclass(frozen=True)
class WaitSettings:
    """Pacing of the retry/poll loops.

    ``min_interval`` is the smallest pause between two attempts;
    the pause grows by ``BACKOFF_FACTOR`` per attempt up to ``max_interval``.
    """

    min_interval: float = MIN_INTERVAL
    initial_delay: float = INITIAL_DELAY
    max_interval: float = MAX_INTERVAL
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)


class NotFoundPolicy(str, Enum):
    """What a NotFound probe result means for a poll loop."""

    FAIL = "fail"  # waiting for the resource to appear
    SUCCEED = "succeed"  # waiting for the resource to go away


def retry(
    func: Callable[[], T],
    *,
    resource_id: str,
    operation: str,
    timeout: float,
    wait: WaitSettings | None = None,
    initial_delay: float = 0.0,
    on_event: EventSink = log_event,
) -> T:
    """Call *func* until it returns, raises a non-retryable error, or time runs out.

    *func* requests another attempt by raising :class:`RetryableError`; any
    other exception propagates immediately.  When the budget is exhausted a
    :class:`ReconcileTimeoutError` is raised carrying the last state reported
    by a retryable signal.
    """
    wait = wait or WaitSettings()
    deadline = wait.clock() + timeout
    if initial_delay > 0:
        wait.sleep(initial_delay)

    interval = wait.min_interval
    last_state: str | None = None
    last_reason = ""
    attempt = 0
    while True:
        attempt += 1
        try:
            return func()
        except RetryableError as exc:
            if exc.state is not None:
                last_state = exc.state
            last_reason = exc.detail

        remaining = deadline - wait.clock()
        if remaining <= 0:
            on_event(
                ProgressEvent(
                    kind="timeout",
                    resource_id=resource_id,
                    operation=operation,
                    state=last_state,
                    attempt=attempt,
                    message=last_reason,
                )
            )
            raise ReconcileTimeoutError(
                resource_id=resource_id,
                operation=operation,
                timeout=timeout,
                last_state=last_state,
                reason=last_reason,
            )

        on_event(
            ProgressEvent(
                kind="retry",
                resource_id=resource_id,
                operation=operation,
                state=last_state,
                attempt=attempt,
                message=last_reason,
            )
        )
        wait.sleep(min(interval, remaining))
        interval = max(min(interval * BACKOFF_FACTOR, wait.max_interval), wait.min_interval)


def poll_until(
    probe: Callable[[], tuple[Any, str]],
    *,
    resource_id: str,
    operation: str,
    pending: Collection[str] | None,
    target: Collection[str],
    timeout: float,
    not_found: NotFoundPolicy = NotFoundPolicy.FAIL,
    classifier: ErrorClassifier = DEFAULT_CLASSIFIER,
    wait: WaitSettings | None = None,
    on_event: EventSink = log_event,
) -> Any:
    """Probe the remote state until it reaches a label in *target*.

    ``probe()`` performs one remote read and returns ``(observation, label)``
    or raises the client's exception.  A *pending* of ``None`` keeps polling on
    any label outside *target*.  Returns the converged observation, or
    ``None`` when a NotFound result ends the loop under
    ``NotFoundPolicy.SUCCEED``.

    Raises:
        OperationFailedError: NotFound while waiting for the resource to appear.
        NonRetryableRemoteError: The probe failed with a non-retryable error.
        UnexpectedStateError: The label is neither pending nor a target.
        ReconcileTimeoutError: *timeout* elapsed before convergence.
    """
    wait = wait or WaitSettings()
    attempts = 0

    def _attempt() -> Any:
        nonlocal attempts
        attempts += 1
        try:
            observation, label = probe()
        except ReconcileError:
            raise
        except Exception as exc:
            kind = classifier.classify(exc)
            if kind is ErrorClass.NOT_FOUND:
                if not_found is NotFoundPolicy.SUCCEED:
                    on_event(
                        ProgressEvent(
                            kind="converged",
                            resource_id=resource_id,
                            operation=operation,
                            attempt=attempts,
                            message="project no longer exists",
                        )
                    )
                    return None
                raise OperationFailedError(
                    f"project disappeared while waiting for state {sorted(target)}",
                    resource_id=resource_id,
                    operation=operation,
                ) from exc
            if kind is ErrorClass.RETRYABLE:
                raise RetryableTransportError(
                    f"network issue: {exc}", resource_id=resource_id, operation=operation
                ) from exc
            raise NonRetryableRemoteError(
                str(exc), resource_id=resource_id, operation=operation
            ) from exc

        on_event(
            ProgressEvent(
                kind="poll",
                resource_id=resource_id,
                operation=operation,
                state=label,
                attempt=attempts,
            )
        )
        if label in target:
            on_event(
                ProgressEvent(
                    kind="converged",
                    resource_id=resource_id,
                    operation=operation,
                    state=label,
                    attempt=attempts,
                )
            )
            return observation
        if pending is None or label in pending:
            raise RetryableError(
                f"project is still in '{label}' state",
                resource_id=resource_id,
                operation=operation,
                state=label,
            )
        on_event(
            ProgressEvent(
                kind="unexpected_state",
                resource_id=resource_id,
                operation=operation,
                state=label,
                attempt=attempts,
            )
        )
        raise UnexpectedStateError(resource_id=resource_id, operation=operation, state=label)

    logger.debug(
        "Waiting for project '%s' (%s): pending=%s target=%s timeout=%gs",
        resource_id,
        operation,
        "any" if pending is None else sorted(pending),
        sorted(target),
        timeout,
    )
    return retry(
        _attempt,
        resource_id=resource_id,
        operation=operation,
        timeout=timeout,
        wait=wait,
        initial_delay=wait.initial_delay,
        on_event=on_event,
    )
