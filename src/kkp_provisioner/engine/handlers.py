"""Engine-facing handler interfaces."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from pydantic import BaseModel

from kkp_provisioner.engine.classify import DEFAULT_CLASSIFIER, ErrorClassifier
from kkp_provisioner.engine.events import EventSink, log_event
from kkp_provisioner.engine.polling import WaitSettings
from kkp_provisioner.engine.types import Timeouts

if TYPE_CHECKING:
    from collections.abc import Callable, Collection

    from kkp_provisioner.core import KubermaticProvider
    from kkp_provisioner.core.state import ResourceInstance

R = TypeVar("R", bound=BaseModel)


@dataclass(frozen=True)
class EngineContext:
    """Everything a handler needs, passed explicitly on every call.

    Holds no mutable state, so contexts can be shared between threads that
    reconcile different projects.
    """

    provider: KubermaticProvider
    timeouts: Timeouts = field(default_factory=Timeouts)
    wait: WaitSettings = field(default_factory=WaitSettings)
    classifier: ErrorClassifier = DEFAULT_CLASSIFIER
    events: EventSink = log_event


class ResourceHandler(Generic[R]):
    """Base class for resource handlers.

    Handlers translate desired resources into remote API calls and block
    until the remote side has converged.  Subclass and override the CRUD
    methods; ``timeout`` overrides the context's budget for one call.
    """

    def read(
        self, ctx: EngineContext, prior: ResourceInstance, *, timeout: float | None = None
    ) -> dict[str, Any] | None:
        """Read the resource. Return None if it no longer exists."""
        raise NotImplementedError

    def create(
        self,
        ctx: EngineContext,
        desired: R,
        *,
        timeout: float | None = None,
        on_created: Callable[[str], None] | None = None,
    ) -> dict[str, Any]:
        """Create the resource. Return stored attributes.

        *on_created* is called with the remote id as soon as one is assigned.
        """
        raise NotImplementedError

    def update(
        self,
        ctx: EngineContext,
        desired: R,
        prior: ResourceInstance,
        *,
        changed_fields: Collection[str] | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """Update the resource. Return stored attributes.

        *changed_fields* names the attributes known to differ from *prior*;
        ``None`` lets the handler work it out itself.
        """
        raise NotImplementedError

    def delete(
        self, ctx: EngineContext, prior: ResourceInstance, *, timeout: float | None = None
    ) -> None:
        """Delete the resource and wait until it is gone."""
        raise NotImplementedError
