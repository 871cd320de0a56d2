"""Low-level authenticated client for the GitHub REST API."""

from typing import Any

import httpx
import structlog

from release_publisher.exceptions import (
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    RequestFailedError,
    TransportError,
)

log = structlog.get_logger(__name__)

API_HOST = "api.github.com"
ACCEPT_HEADER = "application/vnd.github.v3+json"

_STATUS_ERRORS: dict[int, type[RequestFailedError]] = {
    404: NotFoundError,
    409: ConflictError,
}


class GitHubApiClient:
    """Sends JSON requests to api.github.com on behalf of one token.

    The scheme and host of every request are forced to
    ``https://api.github.com`` whatever the caller passes, so only the path
    and query of ``path`` are used.

    A transport can be injected to execute requests without a network, e.g.
    ``httpx.MockTransport(handler)`` in tests.
    """

    def __init__(
        self,
        token: str,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 30.0,
    ) -> None:
        """Initialize the client.

        Args:
            token: GitHub personal access token or App token
            transport: Optional request executor replacing the network transport
            timeout: Per-request timeout in seconds
        """
        self.token = token.strip() if token else token
        self.timeout = timeout
        self._client = httpx.AsyncClient(
            transport=transport,
            timeout=timeout,
            headers={
                "Authorization": f"Bearer {self.token}",
                "Accept": ACCEPT_HEADER,
            },
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "GitHubApiClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    @staticmethod
    def build_url(path: str) -> httpx.URL:
        """Pin ``path`` (and its query, if any) to the GitHub API host."""
        raw_path = httpx.URL(path).raw_path.decode("ascii")
        if not raw_path.startswith("/"):
            raw_path = "/" + raw_path
        return httpx.URL(f"https://{API_HOST}{raw_path}")

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
        decode: bool = True,
    ) -> Any:
        """Send one request and decode the JSON response.

        Args:
            method: HTTP method
            path: API path, optionally with a query string
            params: Extra query parameters
            json: Request body to JSON-encode; omitted when None
            decode: Whether to decode the response body

        Returns:
            Decoded JSON body, or None when ``decode`` is false or the body is empty

        Raises:
            NotFoundError: On HTTP 404
            ConflictError: On HTTP 409
            RequestFailedError: On any other non-2xx status
            TransportError: If no response was received
        """
        url = self.build_url(path)
        log.debug("github_request", method=method, path=url.path)

        try:
            response = await self._client.request(method, url, params=params, json=json)
        except httpx.TransportError as e:
            log.error("github_transport_failed", method=method, path=url.path, error=str(e))
            raise TransportError(f"{method} {url.path} failed: {e}") from e

        if not response.is_success:
            error_cls = _STATUS_ERRORS.get(response.status_code, RequestFailedError)
            log.debug(
                "github_request_failed",
                method=method,
                path=url.path,
                status_code=response.status_code,
            )
            raise error_cls(response.status_code, response.text)

        if not decode or not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise ExternalServiceError(f"Invalid JSON in response to {method} {url.path}") from e
