"""Configuration models for YAML-based provisioning."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from kkp_provisioner.engine.types import Timeouts  # noqa: TC001 - Pydantic needs this at runtime
from kkp_provisioner.resources.project import (
    ProjectResource,  # noqa: TC001 - Pydantic needs this at runtime
)


class ProviderConfig(BaseSettings):
    """Kubermatic API connection settings.

    Fields can be set via YAML (constructor kwargs) or environment variables
    with the ``KKP_`` prefix.  Constructor kwargs take precedence.

    ``token`` is typically provided via the ``KKP_TOKEN`` environment
    variable rather than YAML to avoid committing secrets to version control.
    """

    model_config = SettingsConfigDict(env_prefix="KKP_")

    host: str | None = None
    token: str | None = None
    verify_ssl: bool = True
    request_timeout: float = Field(default=30.0, gt=0)
    forbidden_as_not_found: bool = True


class Config(BaseModel):
    """Provisioning configuration, validated directly from the YAML document."""

    model_config = ConfigDict(extra="forbid")

    provider: ProviderConfig
    state_path: Path = Path(".kkp-state.json")
    timeouts: Timeouts = Field(default_factory=Timeouts)
    project: ProjectResource
    config_dir: Path = Path()
