"""Plan/apply engine for a single Kubermatic project."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from kkp_provisioner.core.state import State
from kkp_provisioner.engine.classify import DEFAULT_CLASSIFIER, ErrorClassifier
from kkp_provisioner.engine.errors import EngineError
from kkp_provisioner.engine.events import EventSink, log_event
from kkp_provisioner.engine.handlers import EngineContext
from kkp_provisioner.engine.polling import WaitSettings
from kkp_provisioner.engine.project_handler import ProjectHandler
from kkp_provisioner.engine.types import Action, ResourceChange, Timeouts
from kkp_provisioner.resources.project import ProjectResource

if TYPE_CHECKING:
    from pathlib import Path

    from kkp_provisioner.core import KubermaticProvider
    from kkp_provisioner.core.state import ResourceInstance

logger = logging.getLogger(__name__)

# Attributes owned by the user; everything else is read-only on the remote side.
_MANAGED_FIELDS = ("name", "labels")


def _diff(desired: ProjectResource, prior: ResourceInstance) -> dict[str, Any]:
    planned = {"name": desired.name, "labels": dict(desired.labels)}
    current = {"name": prior.name, "labels": prior.labels}
    return {
        k: {"from": current[k], "to": planned[k]}
        for k in _MANAGED_FIELDS
        if planned[k] != current[k]
    }


class ProjectEngine:
    """Terraform-like plan/apply engine for one Kubermatic project.

    The engine owns the state file; the handler owns the remote calls.
    Callers must not run two engines against the same state file at once.
    """

    def __init__(
        self,
        *,
        provider: KubermaticProvider,
        state_path: Path,
        timeouts: Timeouts | None = None,
        wait: WaitSettings | None = None,
        classifier: ErrorClassifier = DEFAULT_CLASSIFIER,
        events: EventSink = log_event,
        handler: ProjectHandler | None = None,
    ) -> None:
        self._state_path = state_path
        self._handler = handler or ProjectHandler()
        self._ctx = EngineContext(
            provider=provider,
            timeouts=timeouts or Timeouts(),
            wait=wait or WaitSettings(),
            classifier=classifier,
            events=events,
        )

    @property
    def state_path(self) -> Path:
        return self._state_path

    def load_state(self) -> State:
        return State.load_or_create(self._state_path)

    def refresh(self) -> State:
        """Re-read the tracked project and return the refreshed (unsaved) state.

        A project that the API reports as gone is dropped from the state.
        """
        state = self.load_state()
        if state.project is None:
            return state

        prior = state.project
        attrs = self._handler.read(self._ctx, prior)
        if attrs is None:
            logger.info(
                "Project %s (%s) no longer exists, removing from state", prior.address, prior.id
            )
            state.project = None
        else:
            state.track(prior.address, attrs)
        return state

    def plan(
        self,
        desired: ProjectResource | None,
        *,
        destroy: bool = False,
        refresh: bool = True,
    ) -> ResourceChange:
        """Compute the change needed to converge on *desired*."""
        state = self.refresh() if refresh else self.load_state()
        prior = state.project

        if destroy:
            if prior is None:
                address = desired.address if desired is not None else ProjectResource.resource_type
                return ResourceChange(address=address, action=Action.NOOP)
            return ResourceChange(
                address=prior.address,
                action=Action.DELETE,
                resource_id=prior.id,
                prior=dict(prior.attributes),
            )

        if desired is None:
            raise EngineError("A desired project is required unless destroying")

        desired_attrs = desired.model_dump(exclude={"address"})
        if prior is None:
            return ResourceChange(
                address=desired.address, action=Action.CREATE, desired=desired_attrs
            )

        diff = _diff(desired, prior)
        return ResourceChange(
            address=prior.address,
            action=Action.UPDATE if diff else Action.NOOP,
            resource_id=prior.id,
            desired=desired_attrs,
            prior=dict(prior.attributes),
            diff=diff or None,
        )

    def apply(self, change: ResourceChange) -> State:
        """Apply a planned change and persist the resulting state."""
        state = self.load_state()
        logger.debug("Applying %s to %s", change.action.value, change.address)

        if change.action == Action.CREATE:
            desired = ProjectResource.model_validate(change.desired or {})

            def _record_id(project_id: str) -> None:
                # Saved before the wait: a timed-out create stays tracked by id.
                state.project = None
                state.track(
                    desired.address,
                    {"id": project_id, "name": desired.name, "labels": dict(desired.labels)},
                )
                self._save(state)

            attrs = self._handler.create(self._ctx, desired, on_created=_record_id)
            state.track(desired.address, attrs)
        elif change.action == Action.UPDATE:
            prior = self._require_prior(state, change)
            desired = ProjectResource.model_validate(change.desired or {})
            attrs = self._handler.update(
                self._ctx, desired, prior, changed_fields=change.changed_fields
            )
            state.track(prior.address, attrs)
        elif change.action == Action.DELETE:
            prior = self._require_prior(state, change)
            self._handler.delete(self._ctx, prior)
            state.project = None
        else:
            return state

        self._save(state)
        return state

    def destroy(self) -> ResourceChange:
        """Delete the tracked project, if any, and return the applied change."""
        change = self.plan(None, destroy=True)
        self.apply(change)
        return change

    def _require_prior(self, state: State, change: ResourceChange) -> ResourceInstance:
        prior = state.project
        if prior is None or (change.resource_id and prior.id != change.resource_id):
            raise EngineError(
                f"State no longer tracks project '{change.resource_id}' planned for "
                f"{change.action.value}; re-run plan"
            )
        return prior

    def _save(self, state: State) -> None:
        state.serial += 1
        state.save(self._state_path)
