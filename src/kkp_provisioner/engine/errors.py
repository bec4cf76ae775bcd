"""Engine error types."""

from __future__ import annotations


class EngineError(Exception):
    """Base exception for engine errors."""


class ReconcileError(EngineError):
    """Base exception for a failed lifecycle operation on a single project.

    Every reconcile error names the project it concerns and the operation
    that was being performed.  The underlying remote failure, if any, is
    chained via ``__cause__``.
    """

    def __init__(self, message: str, *, resource_id: str, operation: str) -> None:
        self.resource_id = resource_id
        self.operation = operation
        self.detail = message
        super().__init__(f"Failed to {operation} project '{resource_id}': {message}")


class RetryableError(ReconcileError):
    """Signal raised inside a retry loop to request another attempt.

    ``state`` holds the last observed lifecycle status, when there was one.
    Never escapes a retry loop; exhausting the time budget turns it into a
    :class:`ReconcileTimeoutError`.
    """

    def __init__(
        self,
        message: str,
        *,
        resource_id: str,
        operation: str,
        state: str | None = None,
    ) -> None:
        super().__init__(message, resource_id=resource_id, operation=operation)
        self.state = state


class RetryableTransportError(RetryableError):
    """A network timeout or transient connectivity failure."""


class NonRetryableRemoteError(ReconcileError):
    """The remote API rejected the call in a way retrying will not fix."""


class NotFoundError(NonRetryableRemoteError):
    """The project does not exist where its existence is required."""


class ReconcileTimeoutError(ReconcileError):
    """The operation did not converge within its time budget."""

    def __init__(
        self,
        *,
        resource_id: str,
        operation: str,
        timeout: float,
        last_state: str | None = None,
        reason: str | None = None,
    ) -> None:
        self.timeout = timeout
        self.last_state = last_state
        msg = f"timeout after {timeout:g}s"
        if last_state is not None:
            msg += f", last observed state '{last_state}'"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg, resource_id=resource_id, operation=operation)


class UnexpectedStateError(ReconcileError):
    """The project reported a status that is neither pending nor a target."""

    def __init__(self, *, resource_id: str, operation: str, state: str) -> None:
        self.state = state
        super().__init__(
            f"unexpected state '{state}'", resource_id=resource_id, operation=operation
        )


class OperationFailedError(ReconcileError):
    """The operation completed its remote calls but the outcome is wrong.

    Raised e.g. when a freshly created project disappears while waiting for
    it to become active.
    """
