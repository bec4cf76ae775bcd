"""Tests for the retry and poll-until-state loops."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest
import requests

from kkp_provisioner.core.client import KubermaticAPIError
from kkp_provisioner.engine.errors import (
    NonRetryableRemoteError,
    OperationFailedError,
    ReconcileTimeoutError,
    RetryableError,
    UnexpectedStateError,
)
from kkp_provisioner.engine.polling import NotFoundPolicy, WaitSettings, poll_until, retry

if TYPE_CHECKING:
    from kkp_provisioner.engine.events import ProgressEvent
    from tests.unit.fakes import FakeClock


def _probe(*results: Any) -> Any:
    """Build a probe returning/raising *results* in order, recording the call count."""
    items = list(results)

    def probe() -> tuple[str, str]:
        probe.calls += 1  # type: ignore[attr-defined]
        item = items.pop(0) if len(items) > 1 else items[0]
        if isinstance(item, BaseException):
            raise item
        return f"obs-{item}", item

    probe.calls = 0  # type: ignore[attr-defined]
    return probe


def _create_wait(probe: Any, wait: WaitSettings, **kwargs: Any) -> Any:
    kwargs.setdefault("timeout", 60.0)
    return poll_until(
        probe,
        resource_id="p-1",
        operation="create",
        pending={"Inactive"},
        target={"Active"},
        wait=wait,
        **kwargs,
    )


class TestRetry:
    def test_returns_first_success(self, wait: WaitSettings, clock: FakeClock) -> None:
        assert retry(lambda: 42, resource_id="p-1", operation="read", timeout=10, wait=wait) == 42
        assert clock.sleeps == []

    def test_retries_until_success(self, wait: WaitSettings) -> None:
        attempts = []

        def func() -> str:
            attempts.append(1)
            if len(attempts) < 3:
                raise RetryableError("not yet", resource_id="p-1", operation="read")
            return "done"

        assert retry(func, resource_id="p-1", operation="read", timeout=30, wait=wait) == "done"
        assert len(attempts) == 3

    def test_other_errors_propagate_immediately(self, wait: WaitSettings) -> None:
        calls = []

        def func() -> None:
            calls.append(1)
            raise ValueError("bad")

        with pytest.raises(ValueError, match="bad"):
            retry(func, resource_id="p-1", operation="read", timeout=30, wait=wait)
        assert len(calls) == 1

    def test_timeout_carries_last_state(self, wait: WaitSettings, clock: FakeClock) -> None:
        def func() -> None:
            raise RetryableError("pending", resource_id="p-1", operation="read", state="Inactive")

        with pytest.raises(ReconcileTimeoutError) as exc_info:
            retry(func, resource_id="p-1", operation="read", timeout=20, wait=wait)

        err = exc_info.value
        assert err.last_state == "Inactive"
        assert err.resource_id == "p-1"
        assert err.operation == "read"
        assert "p-1" in str(err)
        assert "Inactive" in str(err)
        assert clock.now == pytest.approx(20)

    def test_interval_never_below_minimum_and_capped(
        self, wait: WaitSettings, clock: FakeClock
    ) -> None:
        def func() -> None:
            raise RetryableError("pending", resource_id="p-1", operation="read")

        with pytest.raises(ReconcileTimeoutError):
            retry(func, resource_id="p-1", operation="read", timeout=100, wait=wait)

        # The last sleep may be clipped to the deadline.
        assert all(1.0 <= s <= 5.0 for s in clock.sleeps[:-1])
        assert max(clock.sleeps) == 5.0

    def test_initial_delay(self, wait: WaitSettings, clock: FakeClock) -> None:
        retry(lambda: None, resource_id="p-1", operation="read", timeout=10, wait=wait,
              initial_delay=2.5)
        assert clock.sleeps == [2.5]

    def test_emits_retry_and_timeout_events(self, wait: WaitSettings) -> None:
        events: list[ProgressEvent] = []

        def func() -> None:
            raise RetryableError("pending", resource_id="p-1", operation="read")

        with pytest.raises(ReconcileTimeoutError):
            retry(func, resource_id="p-1", operation="read", timeout=3, wait=wait,
                  on_event=events.append)

        kinds = [e.kind for e in events]
        assert kinds[-1] == "timeout"
        assert set(kinds[:-1]) == {"retry"}


class TestPollUntilCreate:
    def test_converges_after_pending_states(self, wait: WaitSettings) -> None:
        probe = _probe("Inactive", "Inactive", "Active")

        result = _create_wait(probe, wait)

        assert result == "obs-Active"
        assert probe.calls == 3

    def test_waits_initial_delay_before_first_probe(
        self, wait: WaitSettings, clock: FakeClock
    ) -> None:
        _create_wait(_probe("Active"), wait)
        assert clock.sleeps == [1.0]

    def test_permanently_pending_times_out(self, wait: WaitSettings, clock: FakeClock) -> None:
        probe = _probe("Inactive")

        with pytest.raises(ReconcileTimeoutError) as exc_info:
            _create_wait(probe, wait, timeout=30)

        assert exc_info.value.last_state == "Inactive"
        assert clock.now == pytest.approx(30)
        assert probe.calls > 1

    def test_unexpected_state_aborts(self, wait: WaitSettings) -> None:
        probe = _probe("Inactive", "Terminating", "Active")

        with pytest.raises(UnexpectedStateError) as exc_info:
            _create_wait(probe, wait)

        assert exc_info.value.state == "Terminating"
        assert probe.calls == 2

    def test_not_found_is_a_failure(self, wait: WaitSettings) -> None:
        probe = _probe(KubermaticAPIError(404, "gone"))

        with pytest.raises(OperationFailedError, match="p-1"):
            _create_wait(probe, wait)
        assert probe.calls == 1

    def test_transient_error_is_swallowed(self, wait: WaitSettings) -> None:
        probe = _probe(requests.ConnectionError("reset"), "Active")
        events: list[ProgressEvent] = []

        assert _create_wait(probe, wait, on_event=events.append) == "obs-Active"
        assert probe.calls == 2
        assert events[-1].kind == "converged"

    def test_non_retryable_error_aborts(self, wait: WaitSettings) -> None:
        probe = _probe(KubermaticAPIError(409, "conflict"), "Active")

        with pytest.raises(NonRetryableRemoteError) as exc_info:
            _create_wait(probe, wait)

        assert isinstance(exc_info.value.__cause__, KubermaticAPIError)
        assert exc_info.value.operation == "create"
        assert probe.calls == 1


class TestPollUntilDelete:
    def _delete_wait(self, probe: Any, wait: WaitSettings, timeout: float = 60.0) -> Any:
        return poll_until(
            probe,
            resource_id="p-1",
            operation="delete",
            pending=None,
            target=(),
            timeout=timeout,
            not_found=NotFoundPolicy.SUCCEED,
            wait=wait,
        )

    def test_not_found_is_convergence(self, wait: WaitSettings) -> None:
        probe = _probe("Active", "Active", KubermaticAPIError(404, "gone"))

        assert self._delete_wait(probe, wait) is None
        assert probe.calls == 3

    @pytest.mark.parametrize("code", [403, 404])
    def test_forbidden_and_not_found_behave_the_same(self, wait: WaitSettings, code: int) -> None:
        probe = _probe("Active", KubermaticAPIError(code, "gone"))
        assert self._delete_wait(probe, wait) is None

    def test_any_present_state_keeps_polling(self, wait: WaitSettings) -> None:
        probe = _probe("Terminating", "Inactive", KubermaticAPIError(404, "gone"))
        assert self._delete_wait(probe, wait) is None
        assert probe.calls == 3

    def test_never_gone_times_out(self, wait: WaitSettings) -> None:
        probe = _probe("Active")

        with pytest.raises(ReconcileTimeoutError) as exc_info:
            self._delete_wait(probe, wait, timeout=15)

        assert exc_info.value.last_state == "Active"
        assert exc_info.value.operation == "delete"
