"""Shared fixtures for unit tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from kkp_provisioner.config import load
from kkp_provisioner.engine.polling import WaitSettings
from tests.unit.fakes import FakeClock, FakeProjectClient

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from kkp_provisioner.config.schema import Config

_KKP_ENV_VARS = (
    "KKP_HOST",
    "KKP_TOKEN",
    "KKP_VERIFY_SSL",
    "KKP_REQUEST_TIMEOUT",
    "KKP_FORBIDDEN_AS_NOT_FOUND",
    "KKP_LOG",
)


@pytest.fixture(autouse=True)
def _clean_kkp_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove KKP_* env vars so unit tests don't leak host config."""
    for var in _KKP_ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def wait(clock: FakeClock) -> WaitSettings:
    return WaitSettings(
        min_interval=1.0,
        initial_delay=1.0,
        max_interval=5.0,
        clock=clock,
        sleep=clock.sleep,
    )


@pytest.fixture
def fake_client() -> FakeProjectClient:
    return FakeProjectClient()


@pytest.fixture
def make_config(tmp_path: Path) -> Callable[..., Config]:
    """Factory fixture: write YAML + optional .env, return loaded Config."""

    def _make(yaml_str: str, *, dotenv: str | None = None) -> Config:
        (tmp_path / "config.yaml").write_text(yaml_str)
        if dotenv is not None:
            (tmp_path / ".env").write_text(dotenv)
        return load(tmp_path / "config.yaml")

    return _make
