"""Project handler implementing converging CRUD against the Kubermatic API."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from kkp_provisioner.core.client import ProjectStatus
from kkp_provisioner.core.state import ResourceInstance
from kkp_provisioner.engine.classify import ErrorClass
from kkp_provisioner.engine.errors import (
    NonRetryableRemoteError,
    NotFoundError,
    OperationFailedError,
    RetryableTransportError,
)
from kkp_provisioner.engine.events import ProgressEvent
from kkp_provisioner.engine.handlers import ResourceHandler
from kkp_provisioner.engine.polling import NotFoundPolicy, poll_until, retry

if TYPE_CHECKING:
    from collections.abc import Callable, Collection

    from kkp_provisioner.core.client import ProjectClient, ProjectSnapshot
    from kkp_provisioner.engine.handlers import EngineContext
    from kkp_provisioner.resources.project import ProjectResource

logger = logging.getLogger(__name__)


def _timestamp(value: Any) -> str:
    return value.isoformat() if value is not None else ""


def _read_attrs(snapshot: ProjectSnapshot) -> dict[str, Any]:
    """Extract the stored attributes from a remote snapshot."""
    labels = snapshot.labels or {}
    for key, val in labels.items():
        if not isinstance(key, str) or not isinstance(val, str):
            raise ValueError(f"label {key!r} has a non-string key or value")
    return {
        "id": snapshot.id,
        "name": snapshot.name,
        "labels": dict(labels),
        "status": snapshot.status,
        "creation_timestamp": _timestamp(snapshot.creation_timestamp),
        "deletion_timestamp": _timestamp(snapshot.deletion_timestamp),
    }


class ProjectHandler(ResourceHandler["ProjectResource"]):
    """Reconciler for Kubermatic projects.

    Creation and deletion are asynchronous on the remote side, so both wait
    for the project to reach its final state before returning.
    """

    def _client(self, ctx: EngineContext) -> ProjectClient:
        return ctx.provider.client

    def read(
        self, ctx: EngineContext, prior: ResourceInstance, *, timeout: float | None = None
    ) -> dict[str, Any] | None:
        """Read a project. Returns None if it no longer exists (or is no longer visible)."""
        client = self._client(ctx)
        project_id = prior.id

        def _read_once() -> dict[str, Any] | None:
            try:
                snapshot = client.get_project(project_id)
            except Exception as exc:
                kind = ctx.classifier.classify(exc)
                if kind is ErrorClass.NOT_FOUND:
                    logger.debug("Project '%s' is gone: %s", project_id, exc)
                    ctx.events(
                        ProgressEvent(
                            kind="absent",
                            resource_id=project_id,
                            operation="read",
                            message=str(exc),
                        )
                    )
                    return None
                if kind is ErrorClass.RETRYABLE:
                    raise RetryableTransportError(
                        f"network issue: {exc}", resource_id=project_id, operation="read"
                    ) from exc
                raise NonRetryableRemoteError(
                    str(exc), resource_id=project_id, operation="read"
                ) from exc

            try:
                return _read_attrs(snapshot)
            except ValueError as exc:
                raise NonRetryableRemoteError(
                    f"invalid attribute value: {exc}", resource_id=project_id, operation="read"
                ) from exc

        return retry(
            _read_once,
            resource_id=project_id,
            operation="read",
            timeout=timeout if timeout is not None else ctx.timeouts.read,
            wait=ctx.wait,
            on_event=ctx.events,
        )

    def create(
        self,
        ctx: EngineContext,
        desired: ProjectResource,
        *,
        timeout: float | None = None,
        on_created: Callable[[str], None] | None = None,
    ) -> dict[str, Any]:
        """Create a project and wait until it is active.

        *on_created* receives the assigned id before the wait starts.
        """
        client = self._client(ctx)
        try:
            project_id = client.create_project(desired.name, dict(desired.labels) or None)
        except Exception as exc:
            raise NonRetryableRemoteError(
                str(exc), resource_id=desired.name, operation="create"
            ) from exc
        logger.info(
            "Created project '%s' (%s), waiting for it to become active", desired.name, project_id
        )
        if on_created is not None:
            on_created(project_id)

        def _probe() -> tuple[ProjectSnapshot, str]:
            snapshot = client.get_project(project_id)
            return snapshot, snapshot.status

        poll_until(
            _probe,
            resource_id=project_id,
            operation="create",
            pending={ProjectStatus.INACTIVE.value},
            target={ProjectStatus.ACTIVE.value},
            timeout=timeout if timeout is not None else ctx.timeouts.create,
            not_found=NotFoundPolicy.FAIL,
            classifier=ctx.classifier,
            wait=ctx.wait,
            on_event=ctx.events,
        )
        return self._read_existing(ctx, project_id, operation="create")

    def update(
        self,
        ctx: EngineContext,
        desired: ProjectResource,
        prior: ResourceInstance,
        *,
        changed_fields: Collection[str] | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """Update a project's name and, when they changed, its labels."""
        client = self._client(ctx)
        project_id = prior.id

        if changed_fields is None:
            labels_changed = desired.labels != prior.labels
        else:
            labels_changed = "labels" in changed_fields
        if desired.name != prior.name:
            logger.debug(
                "Project '%s' name change from '%s' to '%s'", project_id, prior.name, desired.name
            )
        # Labels are replaced, not merged: send the complete desired set.
        labels = dict(desired.labels) if labels_changed else None
        if labels is not None:
            logger.debug(
                "Project '%s' labels change from %s to %s", project_id, prior.labels, labels
            )

        try:
            client.update_project(project_id, desired.name, labels)
        except Exception as exc:
            error_cls = (
                NotFoundError
                if ctx.classifier.classify(exc) is ErrorClass.NOT_FOUND
                else NonRetryableRemoteError
            )
            raise error_cls(str(exc), resource_id=project_id, operation="update") from exc

        return self._read_existing(
            ctx,
            project_id,
            operation="update",
            timeout=timeout if timeout is not None else ctx.timeouts.update,
        )

    def delete(
        self, ctx: EngineContext, prior: ResourceInstance, *, timeout: float | None = None
    ) -> None:
        """Delete a project and wait until the API no longer returns it."""
        client = self._client(ctx)
        project_id = prior.id
        try:
            client.delete_project(project_id)
        except Exception as exc:
            raise NonRetryableRemoteError(
                str(exc), resource_id=project_id, operation="delete"
            ) from exc

        def _probe() -> tuple[ProjectSnapshot, str]:
            snapshot = client.get_project(project_id)
            logger.debug(
                "Project '%s' deletion in progress, deletionTimestamp: %s, status: %s",
                project_id,
                _timestamp(snapshot.deletion_timestamp),
                snapshot.status,
            )
            return snapshot, snapshot.status

        poll_until(
            _probe,
            resource_id=project_id,
            operation="delete",
            pending=None,
            target=(),
            timeout=timeout if timeout is not None else ctx.timeouts.delete,
            not_found=NotFoundPolicy.SUCCEED,
            classifier=ctx.classifier,
            wait=ctx.wait,
            on_event=ctx.events,
        )
        logger.info("Project '%s' has been destroyed", project_id)

    def _read_existing(
        self, ctx: EngineContext, project_id: str, *, operation: str, timeout: float | None = None
    ) -> dict[str, Any]:
        attrs = self.read(ctx, ResourceInstance(id=project_id, address=""), timeout=timeout)
        if attrs is None:
            raise OperationFailedError(
                "project vanished right after the change was applied",
                resource_id=project_id,
                operation=operation,
            )
        return attrs
