"""HTTP client for the APItome documentation service."""

import logging
from typing import Any, Dict, List, Optional, Sequence, Union

import httpx

from apitome.errors import (
    IngestionFailedError,
    NetworkUnreachableError,
    OpaqueHttpError,
    QueryTimeoutError,
    classify_http_error,
)
from apitome.models import (
    AddUrlsRequest,
    AddUrlsResponse,
    ConversationTurn,
    IngestRequest,
    IngestResponse,
)
from apitome.streaming import QUERY_TIMEOUT, StreamCallbacks, StreamingQueryClient, StreamResult

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "http://localhost:8000"
REQUEST_TIMEOUT = 180.0
HEALTH_TIMEOUT = 5.0

INGEST_TIMEOUT_MESSAGE = (
    "Request timed out. The documentation may be too large or the server is "
    "taking too long to respond."
)
ADD_URLS_TIMEOUT_MESSAGE = "Request timed out. Please try again."


class DocumentationClient:
    """Talks to the backend: health, ingestion and streamed queries.

    Attributes:
        base_url: Backend root URL.
        request_timeout: Seconds allowed for ingestion and add-urls calls.
        health_timeout: Seconds allowed for the health probe.
        streaming: The streamed query client sharing this HTTP connection pool.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_API_BASE_URL,
        request_timeout: float = REQUEST_TIMEOUT,
        query_timeout: float = QUERY_TIMEOUT,
        health_timeout: float = HEALTH_TIMEOUT,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Backend root URL.
            request_timeout: Timeout for ingestion requests in seconds.
            query_timeout: Hard limit for a streamed answer in seconds.
            health_timeout: Timeout for the health probe in seconds.
            http_client: Pre-built client, mainly for tests. Its ``base_url``
                is used as is.
        """
        self.base_url = base_url.rstrip("/")
        self.request_timeout = request_timeout
        self.health_timeout = health_timeout
        self.client = http_client or httpx.AsyncClient(
            base_url=self.base_url, timeout=request_timeout
        )
        self.streaming = StreamingQueryClient(self.client, timeout=query_timeout)

    async def check_health(self) -> bool:
        """Probe ``GET /health``.

        Returns:
            True on any 2xx response, False on anything else.
        """
        try:
            response = await self.client.get("/health", timeout=self.health_timeout)
            return response.is_success
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            return False

    async def _post(self, path: str, payload: Dict[str, Any], timeout_message: str) -> Dict[str, Any]:
        try:
            response = await self.client.post(path, json=payload, timeout=self.request_timeout)
        except httpx.TimeoutException as e:
            raise QueryTimeoutError(timeout_message) from e
        except httpx.TransportError as e:
            logger.error(f"Request to {path} failed: {e}")
            raise NetworkUnreachableError() from e

        if not response.is_success:
            try:
                body = response.json()
            except ValueError:
                body = None
            raise classify_http_error(response.status_code, body)

        try:
            return response.json()
        except ValueError as e:
            raise OpaqueHttpError(
                f"Server returned an unreadable response ({response.status_code})",
                status_code=response.status_code,
            ) from e

    async def ingest(
        self,
        collection_name: str,
        urls: Optional[List[str]] = None,
        urls_with_label: Optional[Dict[str, List[str]]] = None,
    ) -> IngestResponse:
        """Submit documentation URLs for ingestion into a new collection.

        Args:
            collection_name: Backend-safe collection name.
            urls: Flat list of URLs.
            urls_with_label: URLs grouped by label; sent instead of ``urls``.

        Returns:
            The backend's ingestion report.

        Raises:
            ApitomeError: Classified failure, or ``IngestionFailedError`` when
                the backend answered but reported an error status.
        """
        request = IngestRequest(
            urls=None if urls_with_label else urls,
            urls_with_label=urls_with_label,
            collection_name=collection_name,
        )
        logger.info(f"Ingesting documentation into collection '{collection_name}'")
        data = await self._post(
            "/api/ingest", request.model_dump(exclude_none=True), INGEST_TIMEOUT_MESSAGE
        )
        result = self._validate(IngestResponse, data)
        if result.status != "success":
            raise IngestionFailedError(result.error or None)
        return result

    async def add_urls(
        self, collection_id: str, urls_with_label: Dict[str, List[str]]
    ) -> AddUrlsResponse:
        """Add URLs to an existing collection.

        Returns:
            The backend's report, including the new document total.
        """
        request = AddUrlsRequest(collection_id=collection_id, urls_with_label=urls_with_label)
        data = await self._post(
            "/api/ingest/add-urls", request.model_dump(), ADD_URLS_TIMEOUT_MESSAGE
        )
        result = self._validate(AddUrlsResponse, data)
        if result.status == "error":
            raise IngestionFailedError(result.error or "Failed to add URLs")
        return result

    @staticmethod
    def _validate(model, data: Any):
        try:
            return model.model_validate(data)
        except ValueError as e:
            raise OpaqueHttpError(f"Unexpected response from server: {e}") from e

    async def query_stream(
        self,
        collection_id: str,
        question: str,
        callbacks: Optional[StreamCallbacks] = None,
        conversation_history: Optional[Sequence[Union[ConversationTurn, dict]]] = None,
        enable_lazy_loading: bool = False,
    ) -> StreamResult:
        """Ask a question and stream the answer. See :class:`StreamingQueryClient`."""
        return await self.streaming.submit_query(
            collection_id,
            question,
            conversation_history=conversation_history,
            callbacks=callbacks,
            enable_lazy_loading=enable_lazy_loading,
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "DocumentationClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
