"""YAML configuration loading and convenience plan/apply API."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import SecretStr

from kkp_provisioner.config.loader import ConfigError, load_config
from kkp_provisioner.config.schema import Config, ProviderConfig
from kkp_provisioner.core.provider import KubermaticProvider, TokenAuth
from kkp_provisioner.core.state import State
from kkp_provisioner.engine.classify import ErrorClassifier
from kkp_provisioner.engine.engine import ProjectEngine
from kkp_provisioner.engine.events import log_event

if TYPE_CHECKING:
    from pathlib import Path

    from kkp_provisioner.engine.events import EventSink
    from kkp_provisioner.engine.types import ResourceChange

__all__ = [
    "Config",
    "ConfigError",
    "ProviderConfig",
    "State",
    "apply",
    "destroy",
    "load",
    "load_config",
    "plan",
    "refresh",
    "save_state",
]


def load(path: Path | str) -> Config:
    """Load a YAML configuration file."""
    return load_config(path)


def _engine_from_config(config: Config, *, events: EventSink | None = None) -> ProjectEngine:
    """Build a ``ProjectEngine`` from a ``Config`` instance."""
    if not config.provider.host:
        raise ConfigError("provider.host is required (set in YAML or KKP_HOST env var)")
    if not config.provider.token:
        raise ConfigError("provider.token is required (set KKP_TOKEN env var)")
    provider = KubermaticProvider(
        host=config.provider.host,
        auth=TokenAuth(token=SecretStr(config.provider.token)),
        verify_ssl=config.provider.verify_ssl,
        request_timeout=config.provider.request_timeout,
    )
    return ProjectEngine(
        provider=provider,
        state_path=config.state_path,
        timeouts=config.timeouts,
        classifier=ErrorClassifier(forbidden_as_not_found=config.provider.forbidden_as_not_found),
        events=events or log_event,
    )


def plan(config: Config, *, destroy: bool = False, refresh: bool = True) -> ResourceChange:
    """Plan the change needed for the configured project."""
    engine = _engine_from_config(config)
    return engine.plan(config.project, destroy=destroy, refresh=refresh)


def apply(
    change: ResourceChange, config: Config, *, events: EventSink | None = None
) -> State:
    """Apply a previously planned change and persist state."""
    engine = _engine_from_config(config, events=events)
    return engine.apply(change)


def destroy(config: Config, *, events: EventSink | None = None) -> ResourceChange:
    """Delete the managed project and wait until it is gone."""
    engine = _engine_from_config(config, events=events)
    return engine.destroy()


def refresh(config: Config) -> State:
    """Re-read the managed project from the API (not persisted).

    Call :func:`save_state` to persist the returned state to disk.
    """
    return _engine_from_config(config).refresh()


def save_state(config: Config, state: State) -> None:
    """Persist state to disk."""
    state.serial += 1
    state.save(config.state_path)
