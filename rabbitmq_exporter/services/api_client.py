"""RabbitMQ management API client."""

import json
import logging
from typing import Any, Dict, List, Optional

import httpx

from ..utils.errors import AuthError, DecodeError, HTTPError, TransportError

DEFAULT_TIMEOUT_MS = 10000


class BrokerAPIClient:
    """
    Issue authenticated GET requests against one node's management API.

    The client never retries; failures are raised as exporter errors and
    the node poller decides what to do with them.
    """

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        timeout_ms: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize API client.

        Args:
            base_url: Management API root, e.g. http://rabbit-1:15672
            username: Basic auth username
            password: Basic auth password
            timeout_ms: Per-request timeout in milliseconds
            transport: Optional httpx transport (used by tests)
            logger: Optional logger instance
        """
        self.base_url = base_url.rstrip("/")
        self.logger = (logger or logging.getLogger(__name__)).getChild(self.__class__.__name__)
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            auth=httpx.BasicAuth(username, password),
            timeout=(timeout_ms or DEFAULT_TIMEOUT_MS) / 1000.0,
            headers={"Accept": "application/json"},
            transport=transport
        )

    async def fetch(self, path: str) -> Any:
        """
        GET base_url + path and decode the JSON body.

        Args:
            path: API path, e.g. /api/overview

        Returns:
            Decoded JSON value

        Raises:
            TransportError: Connection, timeout or TLS failure
            AuthError: 401/403 response
            HTTPError: Any other non-2xx response
            DecodeError: Body is not valid JSON
        """
        try:
            response = await self._client.get(path)
        except httpx.TimeoutException as e:
            raise TransportError(f"Request to {self.base_url}{path} timed out: {e}") from e
        except httpx.RequestError as e:
            raise TransportError(f"Request to {self.base_url}{path} failed: {e}") from e

        if not response.is_success:
            message = f"GET {self.base_url}{path} returned HTTP {response.status_code}"
            if response.status_code in (401, 403):
                raise AuthError(message, status_code=response.status_code)
            raise HTTPError(message, status_code=response.status_code)

        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise DecodeError(f"Invalid JSON from {self.base_url}{path}: {e}") from e

    async def fetch_object(self, path: str) -> Dict[str, Any]:
        """Fetch a path whose body must be a JSON object."""
        payload = await self.fetch(path)
        if not isinstance(payload, dict):
            raise DecodeError(
                f"Expected JSON object from {path}, got {type(payload).__name__}"
            )
        return payload

    async def fetch_list(self, path: str) -> List[Dict[str, Any]]:
        """Fetch a path whose body must be a JSON array of objects."""
        payload = await self.fetch(path)
        if not isinstance(payload, list):
            raise DecodeError(
                f"Expected JSON array from {path}, got {type(payload).__name__}"
            )
        for index, item in enumerate(payload):
            if not isinstance(item, dict):
                raise DecodeError(
                    f"Expected object at index {index} of {path}, got {type(item).__name__}"
                )
        return payload

    async def aclose(self) -> None:
        """Release pooled connections."""
        await self._client.aclose()

    async def __aenter__(self) -> "BrokerAPIClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
