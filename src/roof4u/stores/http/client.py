"""
HTTP Record Store

Store backed by a json-server style REST API:

    GET    /{collection}
    GET    /{collection}/{id}
    POST   /{collection}
    PUT    /{collection}/{id}
    DELETE /{collection}/{id}

All bodies are JSON. Every request carries an explicit timeout.
"""

import logging
from typing import Any

import httpx

from roof4u.contracts.records import Record, RecordId
from roof4u.stores.base import NotFoundError, RecordStore, TransportError

logger = logging.getLogger(__name__)


class HttpRecordStore(RecordStore):
    """
    Record store speaking HTTP to the record server.

    Uses a single lazily-created httpx.AsyncClient per store.
    """

    def __init__(
        self,
        api_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the HTTP store.

        Args:
            api_url: Base URL of the record server (e.g., "http://localhost:3000")
            timeout: Timeout in seconds applied to every request
            transport: Optional httpx transport (used by tests)
        """
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.api_url,
                timeout=self.timeout,
                headers={"Content-Type": "application/json"},
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _make_request(
        self,
        method: str,
        collection: str,
        record_id: RecordId | None = None,
        json_data: Record | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Make a request and decode the JSON body."""
        client = await self._get_client()
        endpoint = f"/{collection}" if record_id is None else f"/{collection}/{record_id}"

        try:
            response = await client.request(method, endpoint, json=json_data, params=params)
        except httpx.TimeoutException as e:
            logger.error(
                f"Request timed out: {method} {endpoint}",
                extra={"timeout": self.timeout},
            )
            raise TransportError(
                message=f"Request timed out after {self.timeout}s: {method} {endpoint}",
                code="TIMEOUT",
                retryable=True,
            ) from e
        except httpx.RequestError as e:
            logger.error(f"HTTP request failed: {e}")
            raise TransportError(
                message=f"HTTP request failed: {e}",
                code="HTTP_ERROR",
                retryable=True,
            ) from e

        if response.status_code == 404 and record_id is not None:
            raise NotFoundError(collection, record_id, details={"status": 404})

        if response.status_code >= 400:
            raise TransportError(
                message=f"{method} {endpoint} returned {response.status_code}",
                code=str(response.status_code),
                details={"body": response.text[:500]},
                retryable=response.status_code >= 500,
            )

        if not response.content:
            return {}

        try:
            return response.json()
        except ValueError as e:
            raise TransportError(
                message=f"Invalid JSON from {method} {endpoint}",
                code="INVALID_JSON",
                details={"body": response.text[:500]},
            ) from e

    async def list(
        self,
        collection: str,
        params: dict[str, Any] | None = None,
    ) -> list[Record]:
        """List records of a collection."""
        data = await self._make_request("GET", collection, params=params)
        if not isinstance(data, list):
            raise TransportError(
                message=f"Expected a list from GET /{collection}",
                code="INVALID_PAYLOAD",
                details={"type": type(data).__name__},
            )
        return data

    async def get(self, collection: str, record_id: RecordId) -> Record:
        """Get a single record."""
        return await self._make_request("GET", collection, record_id)

    async def create(self, collection: str, record: Record) -> Record:
        """Create a record and return the stored version."""
        created = await self._make_request("POST", collection, json_data=record)
        logger.info(
            f"Created record in {collection}",
            extra={"collection": collection, "record_id": created.get("id")},
        )
        return created

    async def replace(self, collection: str, record_id: RecordId, record: Record) -> Record:
        """Overwrite a record and return the stored version."""
        updated = await self._make_request("PUT", collection, record_id, json_data=record)
        logger.info(
            f"Replaced record in {collection}",
            extra={"collection": collection, "record_id": record_id},
        )
        return updated

    async def delete(self, collection: str, record_id: RecordId) -> Record:
        """Delete a record and return the removed value."""
        removed = await self._make_request("DELETE", collection, record_id)
        logger.info(
            f"Deleted record from {collection}",
            extra={"collection": collection, "record_id": record_id},
        )
        return removed
