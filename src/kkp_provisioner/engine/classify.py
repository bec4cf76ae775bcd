"""Classification of remote failures into retry decisions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import requests

_HTTP_FORBIDDEN = 403
_HTTP_NOT_FOUND = 404

_TRANSIENT_EXCEPTIONS: tuple[type[BaseException], ...] = (
    requests.Timeout,
    requests.ConnectionError,
    TimeoutError,
    ConnectionError,
)

# Subclasses of requests.ConnectionError that retrying cannot fix.
_PERMANENT_EXCEPTIONS: tuple[type[BaseException], ...] = (
    requests.exceptions.SSLError,
    requests.exceptions.ProxyError,
)


class ErrorClass(str, Enum):
    """How a caller should react to a failed remote call."""

    RETRYABLE = "retryable"
    NON_RETRYABLE = "non_retryable"
    NOT_FOUND = "not_found"


def _status_code(exc: BaseException) -> int | None:
    code = getattr(exc, "status_code", None)
    if isinstance(code, int):
        return code
    # requests.HTTPError raised by Response.raise_for_status()
    response = getattr(exc, "response", None)
    code = getattr(response, "status_code", None)
    return code if isinstance(code, int) else None


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, _PERMANENT_EXCEPTIONS):
        return False
    if isinstance(exc, _TRANSIENT_EXCEPTIONS):
        return True
    return getattr(exc, "transient", False) is True


@dataclass(frozen=True)
class ErrorClassifier:
    """Map an exception raised by a project client to an :class:`ErrorClass`.

    Works on any exception that exposes an HTTP ``status_code`` (directly or
    through a ``response`` attribute) and/or a boolean ``transient`` flag;
    everything else is opaque and non-retryable.

    With ``forbidden_as_not_found`` (the default) a 403 is treated exactly
    like a 404: a project the caller lost access to is dropped the same way
    as one that was removed.
    """

    forbidden_as_not_found: bool = True

    def classify(self, exc: BaseException) -> ErrorClass:
        code = _status_code(exc)
        if code == _HTTP_NOT_FOUND:
            return ErrorClass.NOT_FOUND
        if code == _HTTP_FORBIDDEN and self.forbidden_as_not_found:
            return ErrorClass.NOT_FOUND
        if _is_transient(exc):
            return ErrorClass.RETRYABLE
        return ErrorClass.NON_RETRYABLE


DEFAULT_CLASSIFIER = ErrorClassifier()


def classify_error(exc: BaseException, *, forbidden_as_not_found: bool = True) -> ErrorClass:
    """Classify *exc* with the default (or an explicit) forbidden policy."""
    return ErrorClassifier(forbidden_as_not_found=forbidden_as_not_found).classify(exc)
