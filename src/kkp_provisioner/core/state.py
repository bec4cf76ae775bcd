"""State management for tracking the deployed project."""

import contextlib
import hashlib
import json
import logging
import os
import tempfile
import uuid
from collections.abc import Mapping
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


def compute_attributes_hash(attrs: Mapping[str, Any]) -> str:
    """Compute a stable hash for a project's stored attributes."""
    payload = json.dumps(attrs, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class ResourceInstance(BaseModel):
    """The tracked project in the state file.

    Attributes:
        id: Identifier assigned by the remote API on creation
        address: Display address (e.g., "kkp_project.team_a")
        attributes: Last observed attribute values
        attributes_hash: SHA256 hash for change detection
        created_at: When the project was created
        updated_at: When the project was last updated
    """

    id: str
    address: str
    attributes: dict[str, Any] = Field(default_factory=dict)
    attributes_hash: str = ""
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @property
    def name(self) -> str:
        return self.attributes.get("name", "")

    @property
    def labels(self) -> dict[str, str]:
        return dict(self.attributes.get("labels") or {})


class State(BaseModel):
    """Terraform-style state file for the managed project.

    An empty ``project`` means nothing is tracked: either it was never
    created, it was destroyed, or a refresh found it gone.
    """

    version: int = 1
    serial: int = 0
    lineage: str = Field(default_factory=lambda: str(uuid.uuid4()))
    project: ResourceInstance | None = None

    def save(self, path: Path) -> None:
        """Save state to a JSON file.

        - Writes atomically (temp file + rename)
        - Writes a `.backup` copy of the previous state when overwriting
        """
        path.parent.mkdir(parents=True, exist_ok=True)

        backup_path = Path(str(path) + ".backup")
        with contextlib.suppress(FileNotFoundError):
            backup_path.write_bytes(path.read_bytes())

        content = json.dumps(self.model_dump(mode="json"), indent=2, sort_keys=True) + "\n"

        fd, tmp_path = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
        tmp_file = Path(tmp_path)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            tmp_file.replace(path)
        finally:
            with contextlib.suppress(FileNotFoundError):
                tmp_file.unlink()
        logger.debug("State saved: serial=%d path=%s", self.serial, path)

    @classmethod
    def load(cls, path: Path) -> "State":
        """Load state from a JSON file."""
        state = cls.model_validate_json(path.read_text(encoding="utf-8"))
        logger.debug("State loaded from %s", path)
        return state

    @classmethod
    def load_or_create(cls, path: Path) -> "State":
        """Load existing state or create an empty one."""
        if path.exists():
            return cls.load(path)
        logger.debug("Created new state for %s", path)
        return cls()

    def track(self, address: str, attributes: dict[str, Any]) -> ResourceInstance:
        """Record freshly observed attributes, keeping creation time across updates."""
        now = datetime.now()
        created_at = self.project.created_at if self.project is not None else now
        self.project = ResourceInstance(
            id=attributes["id"],
            address=address,
            attributes=dict(attributes),
            attributes_hash=compute_attributes_hash(attributes),
            created_at=created_at,
            updated_at=now,
        )
        return self.project
