"""Thin async client for the IPFS (Kubo) HTTP RPC API."""

import logging
from typing import Any

import httpx

from eacchain.domain.shared.error import NotFoundError, TransportError

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v0"

# Node answers that mean "this content does not exist here" rather than a failure
_NOT_FOUND_MARKERS = (
    "not found",
    "block was not found locally",
    "no link named",
)


class IpfsClient:
    """Issues RPC calls (always POST) and maps failures onto the error hierarchy.

    Every call is awaited to completion before the caller continues; the
    underlying httpx client carries the request timeout.
    """

    def __init__(self, client: httpx.AsyncClient, api_url: str) -> None:
        self._client = client
        self._api_url = api_url.rstrip("/")

    def url(self, endpoint: str) -> str:
        return f"{self._api_url}{API_PREFIX}/{endpoint.lstrip('/')}"

    async def post(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """POST to `endpoint` and return the successful response.

        Raises:
            NotFoundError: The node reported the requested content as missing.
            TransportError: The node was unreachable or returned an error.
        """
        try:
            response = await self._client.post(
                self.url(endpoint), params=_encode_params(params), files=files
            )
        except httpx.TimeoutException as e:
            raise TransportError(f"IPFS {endpoint} timed out") from e
        except httpx.HTTPError as e:
            raise TransportError(f"IPFS {endpoint} failed: {e}") from e

        if response.status_code < 400:
            return response

        message = _error_message(response)
        logger.debug(f"IPFS {endpoint} returned {response.status_code}: {message}")
        if any(marker in message.lower() for marker in _NOT_FOUND_MARKERS):
            raise NotFoundError(f"IPFS {endpoint}: {message}")
        raise TransportError(f"IPFS {endpoint} returned {response.status_code}: {message}")

    async def post_json(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
    ) -> Any:
        response = await self.post(endpoint, params=params, files=files)
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"IPFS {endpoint} returned invalid JSON") from e


def _encode_params(params: dict[str, Any] | None) -> dict[str, str] | None:
    """Render booleans the way the RPC API expects them ("true"/"false")."""
    if params is None:
        return None
    encoded = {}
    for key, value in params.items():
        if value is None:
            continue
        encoded[key] = str(value).lower() if isinstance(value, bool) else str(value)
    return encoded


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text.strip() or response.reason_phrase
    if isinstance(body, dict) and "Message" in body:
        return str(body["Message"])
    return response.text.strip()
