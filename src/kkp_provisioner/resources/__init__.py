"""Resource models (desired state)."""

from kkp_provisioner.resources.project import ProjectResource

__all__ = ["ProjectResource"]
