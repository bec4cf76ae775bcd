"""Core infrastructure components for KKP Provisioner."""

from kkp_provisioner.core.client import (
    KubermaticAPIError,
    KubermaticClient,
    ProjectClient,
    ProjectSnapshot,
    ProjectStatus,
)
from kkp_provisioner.core.provider import KubermaticProvider, TokenAuth
from kkp_provisioner.core.state import ResourceInstance, State

__all__ = [
    "KubermaticAPIError",
    "KubermaticClient",
    "KubermaticProvider",
    "ProjectClient",
    "ProjectSnapshot",
    "ProjectStatus",
    "ResourceInstance",
    "State",
    "TokenAuth",
]
