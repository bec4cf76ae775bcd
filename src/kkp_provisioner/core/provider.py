"""KKP Provider - Connection configuration for a Kubermatic API endpoint."""

from functools import cached_property
from typing import Self

from pydantic import BaseModel, ConfigDict, SecretStr

from kkp_provisioner.core.client import KubermaticClient, ProjectClient


class TokenAuth(BaseModel):
    """Bearer token authentication for the Kubermatic API."""

    token: SecretStr


class KubermaticProvider(BaseModel):
    """Connection configuration for a Kubermatic API endpoint.

    Provide host and auth for normal use, or inject a pre-built client with
    :meth:`from_client` (tests, custom transports).

    Examples:
        provider = KubermaticProvider(
            host="https://kkp.company.com",
            auth=TokenAuth(token="my-token"),
        )

        provider = KubermaticProvider.from_client(fake_client)
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    host: str | None = None
    auth: TokenAuth | None = None
    verify_ssl: bool = True
    request_timeout: float = 30.0

    # Injected client (for testing / custom transports)
    _injected_client: ProjectClient | None = None

    @classmethod
    def from_client(cls, client: ProjectClient) -> Self:
        """Create a provider around an existing project client."""
        provider = cls.model_construct()
        provider._injected_client = client
        return provider

    @cached_property
    def client(self) -> ProjectClient:
        """Get the project client."""
        if self._injected_client is not None:
            return self._injected_client

        if self.host is None or self.auth is None:
            raise ValueError(
                "Either provide host+auth, or use KubermaticProvider.from_client() "
                "to inject a client"
            )

        return KubermaticClient(
            self.host,
            self.auth.token.get_secret_value(),
            verify_ssl=self.verify_ssl,
            timeout=self.request_timeout,
        )
