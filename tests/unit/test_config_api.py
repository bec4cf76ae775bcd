"""Tests for the convenience plan/apply API in ``kkp_provisioner.config``."""

from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import patch

import pytest

from kkp_provisioner import config as api
from kkp_provisioner.config.loader import ConfigError
from kkp_provisioner.core import KubermaticProvider
from kkp_provisioner.engine import ProjectEngine
from kkp_provisioner.engine.types import Action
from tests.unit.fakes import FakeProjectClient

if TYPE_CHECKING:
    from collections.abc import Callable

    from kkp_provisioner.config.schema import Config
    from kkp_provisioner.engine.events import ProgressEvent
    from kkp_provisioner.engine.polling import WaitSettings

_YAML = """\
provider:
  host: https://kkp.example.com
  token: s3cret

project:
  name: team-a
  labels:
    env: prod
"""


@pytest.fixture
def fake_engine(
    fake_client: FakeProjectClient, wait: WaitSettings
) -> Callable[..., ProjectEngine]:
    """Patch ``_engine_from_config`` to run against the in-memory API."""

    def _build(config: Config, *, events: Callable[[ProgressEvent], None] | None = None):
        kwargs = {"events": events} if events is not None else {}
        return ProjectEngine(
            provider=KubermaticProvider.from_client(fake_client),
            state_path=config.state_path,
            timeouts=config.timeouts,
            wait=wait,
            **kwargs,
        )

    with patch.object(api, "_engine_from_config", side_effect=_build):
        yield _build


class TestEngineFromConfig:
    def test_requires_host(self, make_config: Callable[..., Config]) -> None:
        cfg = make_config("project:\n  name: team-a\nprovider:\n  token: x\n")
        with pytest.raises(ConfigError, match="provider.host"):
            api.plan(cfg)

    def test_requires_token(self, make_config: Callable[..., Config]) -> None:
        cfg = make_config("project:\n  name: team-a\nprovider:\n  host: https://h\n")
        with pytest.raises(ConfigError, match="provider.token"):
            api.plan(cfg)

    def test_forbidden_policy_is_passed_through(self, make_config: Callable[..., Config]) -> None:
        cfg = make_config(_YAML + "  forbidden_as_not_found: false\n")
        engine = api._engine_from_config(cfg)
        assert engine._ctx.classifier.forbidden_as_not_found is False


@pytest.mark.usefixtures("fake_engine")
class TestLifecycle:
    def test_plan_apply_refresh_destroy(
        self, make_config: Callable[..., Config], fake_client: FakeProjectClient
    ) -> None:
        cfg = make_config(_YAML)

        change = api.plan(cfg)
        assert change.action == Action.CREATE

        events: list[ProgressEvent] = []
        state = api.apply(change, cfg, events=events.append)
        assert state.project is not None
        assert state.project.attributes["status"] == "Active"
        assert any(e.kind == "converged" for e in events)

        assert api.plan(cfg).action == Action.NOOP

        fake_client.projects["p-1"]["labels"] = {"env": "dev"}
        refreshed = api.refresh(cfg)
        assert refreshed.project is not None
        assert refreshed.project.labels == {"env": "dev"}
        api.save_state(cfg, refreshed)

        update = api.plan(cfg)
        assert update.action == Action.UPDATE
        assert update.changed_fields == {"labels"}

        destroyed = api.destroy(cfg)
        assert destroyed.action == Action.DELETE
        assert fake_client.projects == {}
        assert api.plan(cfg, destroy=True).action == Action.NOOP
