"""Service client.

Thin synchronous wrapper over httpx exposing a single ``call`` operation.
HTTP error statuses are returned, not raised, because scenarios assert on
them; only transport failures raise.

Usage:
    from phoenix.client import ServiceClient

    with ServiceClient("http://localhost:9200", username="u", password="p") as client:
        response = client.call("GET", "/_cluster/health")
        print(response.status, response.json())
"""

import json as jsonlib
from dataclasses import dataclass
from typing import Any

import httpx

from phoenix.config.models.client import ClientConfig
from phoenix.harness.errors import FatalError, Unreachable
from phoenix.observability.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ServiceResponse:
    """Status code and raw body of one request."""

    status: int
    body: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json(self) -> dict[str, Any]:
        """Decode the body as a JSON object.

        Raises:
            FatalError: If the body is not a JSON object
        """
        try:
            data = jsonlib.loads(self.body) if self.body else {}
        except ValueError as e:
            raise FatalError(f"response body is not JSON: {e}", details=self.body) from e
        if not isinstance(data, dict):
            raise FatalError("response body is not a JSON object", details=data)
        return data


class ServiceClient:
    """Synchronous client for the service under test.

    Attributes:
        base_url: Base URL of the service
    """

    def __init__(
        self,
        base_url: str = "http://localhost:9200",
        username: str | None = None,
        password: str | None = None,
        timeout: float = 90.0,
        verify_tls: bool = True,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            base_url: Base URL of the service
            username: Basic auth user
            password: Basic auth password
            timeout: Request timeout in seconds
            verify_tls: Verify TLS certificates
            transport: Optional httpx transport, used by tests
        """
        self.base_url = base_url.rstrip("/")
        auth = httpx.BasicAuth(username, password or "") if username else None
        self._client = httpx.Client(
            base_url=self.base_url,
            auth=auth,
            timeout=timeout,
            verify=verify_tls,
            transport=transport,
        )

    @classmethod
    def from_config(cls, config: ClientConfig) -> "ServiceClient":
        """Create a client from the ``client`` settings section."""
        return cls(
            base_url=config.base_url,
            username=config.username,
            password=config.password.get_secret_value(),
            timeout=config.timeout,
            verify_tls=config.verify_tls,
        )

    def __enter__(self) -> "ServiceClient":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def call(
        self,
        method: str,
        path: str,
        params: dict[str, str] | None = None,
        body: dict | list | str | None = None,
        *,
        content_type: str = "application/json",
    ) -> ServiceResponse:
        """Issue one request and return its status and body.

        Args:
            method: HTTP method
            path: Request path, with or without a leading slash
            params: Query string parameters
            body: JSON-serializable value, or a pre-encoded string
            content_type: Content type sent with a string body

        Returns:
            ServiceResponse with the status code and body text

        Raises:
            Unreachable: On connection, timeout or protocol failure
        """
        if not path.startswith("/"):
            path = "/" + path

        kwargs: dict[str, Any] = {"params": params}
        if isinstance(body, str):
            kwargs["content"] = body.encode("utf-8")
            kwargs["headers"] = {"Content-Type": content_type}
        elif body is not None:
            kwargs["json"] = body

        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.TransportError as e:
            logger.warning("service_unreachable", method=method, path=path, error=str(e))
            raise Unreachable(f"{method} {path} failed: {e}") from e

        logger.debug("service_call", method=method, path=path, status=response.status_code)
        return ServiceResponse(status=response.status_code, body=response.text)
