"""Engine types (changes, timeouts)."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Action(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    NOOP = "no-op"


class Timeouts(BaseModel):
    """Per-operation time budgets, in seconds."""

    model_config = ConfigDict(extra="forbid")

    create: float = Field(default=600.0, gt=0)
    read: float = Field(default=60.0, gt=0)
    update: float = Field(default=60.0, gt=0)
    delete: float = Field(default=600.0, gt=0)


class ResourceChange(BaseModel):
    """A planned (or applied) change to the managed project.

    ``diff`` maps each changed attribute to ``{"from": ..., "to": ...}``;
    the reconciler uses it to decide which fields an update must send.
    """

    address: str
    action: Action
    resource_id: str | None = None
    desired: dict[str, Any] | None = None
    prior: dict[str, Any] | None = None
    diff: dict[str, Any] | None = None

    @property
    def changed_fields(self) -> set[str]:
        return set(self.diff or {})
