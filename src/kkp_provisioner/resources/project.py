"""Project resource model."""

from __future__ import annotations

import re
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

_SLUG_RE = re.compile(r"[^a-z0-9]+")


class ProjectResource(BaseModel):
    """Desired state of a Kubermatic project.

    Resources are pure data; :class:`~kkp_provisioner.engine.project_handler.ProjectHandler`
    knows how to reconcile them against the remote API.
    """

    model_config = ConfigDict(extra="forbid")

    resource_type: ClassVar[str] = "kkp_project"

    name: str = Field(min_length=1)
    labels: dict[str, str] = Field(default_factory=dict)

    @field_validator("labels")
    @classmethod
    def _non_empty_keys(cls, v: dict[str, str]) -> dict[str, str]:
        for key in v:
            if not key.strip():
                raise ValueError("label keys must not be empty")
        return v

    @computed_field
    @property
    def address(self) -> str:
        """Display address (e.g., 'kkp_project.team_a')."""
        slug = _SLUG_RE.sub("_", self.name.lower()).strip("_") or "project"
        return f"{self.resource_type}.{slug}"
