"""Reconciliation engine for Kubermatic projects."""

from kkp_provisioner.engine.classify import ErrorClass, ErrorClassifier, classify_error
from kkp_provisioner.engine.engine import ProjectEngine
from kkp_provisioner.engine.errors import (
    EngineError,
    NonRetryableRemoteError,
    NotFoundError,
    OperationFailedError,
    ReconcileError,
    ReconcileTimeoutError,
    RetryableError,
    RetryableTransportError,
    UnexpectedStateError,
)
from kkp_provisioner.engine.events import EventSink, ProgressEvent, log_event
from kkp_provisioner.engine.handlers import EngineContext, ResourceHandler
from kkp_provisioner.engine.polling import NotFoundPolicy, WaitSettings, poll_until, retry
from kkp_provisioner.engine.project_handler import ProjectHandler
from kkp_provisioner.engine.types import Action, ResourceChange, Timeouts

__all__ = [
    "Action",
    "EngineContext",
    "EngineError",
    "ErrorClass",
    "ErrorClassifier",
    "EventSink",
    "NonRetryableRemoteError",
    "NotFoundError",
    "NotFoundPolicy",
    "OperationFailedError",
    "ProgressEvent",
    "ProjectEngine",
    "ProjectHandler",
    "ReconcileError",
    "ReconcileTimeoutError",
    "ResourceChange",
    "ResourceHandler",
    "RetryableError",
    "RetryableTransportError",
    "Timeouts",
    "UnexpectedStateError",
    "WaitSettings",
    "classify_error",
    "log_event",
    "poll_until",
    "retry",
]
