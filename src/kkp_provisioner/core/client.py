"""HTTP client for the Kubermatic project API."""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Protocol

import requests
from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

# Gateway/overload responses worth retrying; everything else is final.
_TRANSIENT_STATUS_CODES = frozenset({429, 502, 503, 504})


class ProjectStatus(str, Enum):
    """Lifecycle statuses reported by the API.

    A deleted project has no status; it is inferred from a 404/403 response.
    """

    INACTIVE = "Inactive"
    ACTIVE = "Active"


class ProjectSnapshot(BaseModel):
    """A project as last observed on the remote API."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    name: str
    labels: dict[str, str] = Field(default_factory=dict)
    status: str = ""
    creation_timestamp: datetime | None = Field(default=None, alias="creationTimestamp")
    deletion_timestamp: datetime | None = Field(default=None, alias="deletionTimestamp")

    @field_validator("labels", mode="before")
    @classmethod
    def _none_to_dict(cls, v: Any) -> Any:
        return v if v is not None else {}


class KubermaticAPIError(Exception):
    """Non-2xx response from the Kubermatic API."""

    def __init__(self, status_code: int, message: str = "", *, response_body: str = "") -> None:
        self.status_code = status_code
        self.message = message
        self.response_body = response_body
        super().__init__(f"Kubermatic API error {status_code}: {message}")

    @property
    def transient(self) -> bool:
        return self.status_code in _TRANSIENT_STATUS_CODES


class ProjectClient(Protocol):
    """The remote operations the reconciler needs, addressed by project id."""

    def create_project(self, name: str, labels: dict[str, str] | None) -> str: ...

    def get_project(self, project_id: str) -> ProjectSnapshot: ...

    def update_project(
        self, project_id: str, name: str, labels: dict[str, str] | None
    ) -> None: ...

    def delete_project(self, project_id: str) -> None: ...


class KubermaticClient:
    """Thin synchronous client for ``/api/v1/projects``.

    Transport failures (timeouts, refused connections) are raised as the
    underlying ``requests`` exceptions; HTTP errors as :class:`KubermaticAPIError`.
    """

    def __init__(
        self,
        host: str,
        token: str,
        *,
        verify_ssl: bool = True,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        if not token:
            raise ValueError("token is required")
        self._base_url = host.rstrip("/")
        self._token = token
        self._verify = verify_ssl
        self._timeout = timeout
        self._session = session or requests.Session()

    def _url(self, path: str) -> str:
        return f"{self._base_url}/api/v1{path}"

    def _raise_for_status(self, resp: requests.Response) -> None:
        if resp.status_code < 400:
            return

        body = resp.text
        message = body[:200] if body else f"HTTP {resp.status_code}"
        try:
            payload = resp.json()
            if isinstance(payload, dict):
                error = payload.get("error")
                if isinstance(error, dict):
                    message = error.get("message", message)
                else:
                    message = payload.get("message", message)
        except ValueError:
            pass

        raise KubermaticAPIError(resp.status_code, message, response_body=body)

    def _request(
        self, method: str, path: str, *, json: dict[str, Any] | None = None
    ) -> requests.Response:
        url = self._url(path)
        logger.debug("%s %s", method, url)
        resp = self._session.request(
            method,
            url,
            json=json,
            headers={"Authorization": f"Bearer {self._token}"},
            timeout=self._timeout,
            verify=self._verify,
        )
        self._raise_for_status(resp)
        return resp

    def create_project(self, name: str, labels: dict[str, str] | None) -> str:
        body: dict[str, Any] = {"name": name}
        if labels is not None:
            body["labels"] = dict(labels)
        resp = self._request("POST", "/projects", json=body)
        project_id = resp.json()["id"]
        logger.debug("Created project '%s' with id %s", name, project_id)
        return project_id

    def get_project(self, project_id: str) -> ProjectSnapshot:
        resp = self._request("GET", f"/projects/{project_id}")
        return ProjectSnapshot.model_validate(resp.json())

    def update_project(self, project_id: str, name: str, labels: dict[str, str] | None) -> None:
        # The API rejects updates without a name, even when only labels change.
        body: dict[str, Any] = {"name": name}
        if labels is not None:
            body["labels"] = dict(labels)
        self._request("PUT", f"/projects/{project_id}", json=body)

    def delete_project(self, project_id: str) -> None:
        self._request("DELETE", f"/projects/{project_id}")
