"""Streaming question answering over the backend's event-stream protocol.

A query is one ``POST /api/query`` with ``stream: true``. The response body
is a line-oriented event stream whose ``data:`` lines carry JSON events of
four kinds (token, metadata, error, done). This module reassembles those
events into an answer and reports progress through callbacks.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence, Union, assert_never

import httpx
from pydantic import ValidationError

from apitome.errors import (
    NetworkUnreachableError,
    ProtocolMismatchError,
    QueryTimeoutError,
    classify_http_error,
)
from apitome.models import (
    STREAM_EVENT_ADAPTER,
    ConversationTurn,
    DoneEvent,
    ErrorEvent,
    MetadataEvent,
    QueryRequest,
    StreamMetadata,
    TokenEvent,
)

logger = logging.getLogger(__name__)

QUERY_PATH = "/api/query"
QUERY_TIMEOUT = 180.0
EVENT_STREAM_CONTENT_TYPE = "text/event-stream"
DATA_PREFIX = "data:"


class QueryState(str, Enum):
    """Lifecycle of one streamed query."""

    INIT = "init"
    STREAMING = "streaming"
    METADATA_RECEIVED = "metadata_received"
    DONE = "done"
    ERROR = "error"
    CLOSED = "closed"


@dataclass
class StreamCallbacks:
    """Progress hooks for a streamed query. Every hook is optional."""

    on_token: Optional[Callable[[str], None]] = None
    on_metadata: Optional[Callable[[StreamMetadata], None]] = None
    on_error: Optional[Callable[[str], None]] = None
    on_done: Optional[Callable[[], None]] = None


@dataclass
class StreamResult:
    """What a finished query produced."""

    text: str
    metadata: Optional[StreamMetadata]
    errors: List[str] = field(default_factory=list)
    completed: bool = False
    malformed_lines: int = 0


class EventStreamBuffer:
    """Splits incrementally decoded text into complete lines.

    The trailing fragment after the last newline is kept until the next chunk
    completes it.
    """

    def __init__(self) -> None:
        self._buffer = ""

    def feed(self, chunk: str) -> List[str]:
        """Append ``chunk`` and return every line it completed."""
        self._buffer += chunk
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()
        return [line.rstrip("\r") for line in lines]

    def flush(self) -> List[str]:
        """Return the leftover fragment, if any, as a final line."""
        rest, self._buffer = self._buffer.rstrip("\r"), ""
        return [rest] if rest.strip() else []


class StreamingQuery:
    """State machine for one query: parses lines and drives the callbacks.

    Attributes:
        state: Current lifecycle state.
        text: Concatenation of every accepted token.
        metadata: The answer metadata once received.
        errors: Messages of every error event, in arrival order.
    """

    def __init__(self, callbacks: Optional[StreamCallbacks] = None) -> None:
        self.callbacks = callbacks or StreamCallbacks()
        self.state = QueryState.INIT
        self.text = ""
        self.metadata: Optional[StreamMetadata] = None
        self.errors: List[str] = []
        self.completed = False
        self.malformed_lines = 0
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def start(self) -> None:
        self.state = QueryState.STREAMING

    def cancel(self) -> None:
        """Stop all further callback invocations for this query."""
        self._cancelled = True

    def close(self) -> None:
        self._cancelled = True
        self.state = QueryState.CLOSED

    def handle_line(self, line: str) -> None:
        """Parse one complete line and dispatch the event it carries.

        Blank lines and non-``data:`` fields are ignored. A payload that is
        not a valid event is logged and skipped.
        """
        if self._cancelled or not line.strip():
            return
        if not line.startswith(DATA_PREFIX):
            logger.debug(f"Ignoring non-data line: {line!r}")
            return

        payload = line[len(DATA_PREFIX):]
        if payload.startswith(" "):
            payload = payload[1:]

        try:
            event = STREAM_EVENT_ADAPTER.validate_json(payload)
        except ValidationError as e:
            self.malformed_lines += 1
            logger.error(f"Failed to parse stream event: {payload!r} ({e.error_count()} errors)")
            return

        self.dispatch(event)

    def dispatch(self, event: Union[TokenEvent, MetadataEvent, ErrorEvent, DoneEvent]) -> None:
        if self._cancelled:
            return

        match event:
            case TokenEvent():
                if self.metadata is not None:
                    logger.warning("Ignoring token received after metadata")
                    return
                self.text += event.content
                if self.callbacks.on_token:
                    self.callbacks.on_token(event.content)
            case MetadataEvent():
                if self.metadata is not None:
                    logger.warning("Ignoring duplicate metadata event")
                    return
                self.metadata = StreamMetadata.from_event(event)
                if self.state != QueryState.DONE:
                    self.state = QueryState.METADATA_RECEIVED
                if self.callbacks.on_metadata:
                    self.callbacks.on_metadata(self.metadata)
            case ErrorEvent():
                self.errors.append(event.message)
                if self.state != QueryState.DONE:
                    self.state = QueryState.ERROR
                if self.callbacks.on_error:
                    self.callbacks.on_error(event.message)
            case DoneEvent():
                if self.completed:
                    return
                self.completed = True
                self.state = QueryState.DONE
                if self.callbacks.on_done:
                    self.callbacks.on_done()
            case _:
                assert_never(event)

    def result(self) -> StreamResult:
        return StreamResult(
            text=self.text,
            metadata=self.metadata,
            errors=list(self.errors),
            completed=self.completed,
            malformed_lines=self.malformed_lines,
        )


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


class StreamingQueryClient:
    """Issues streamed queries and reassembles the answers.

    Attributes:
        http_client: Shared ``httpx.AsyncClient``; its ``base_url`` points at
            the backend.
        timeout: Hard limit in seconds for a query to reach its ``done`` event.
    """

    def __init__(self, http_client: httpx.AsyncClient, timeout: float = QUERY_TIMEOUT) -> None:
        self.http_client = http_client
        self.timeout = timeout

    @staticmethod
    def build_request(
        collection_id: str,
        question: str,
        conversation_history: Optional[Sequence[Union[ConversationTurn, dict]]] = None,
        enable_lazy_loading: bool = False,
    ) -> dict:
        """Build the JSON body for a streamed query.

        An empty history is left out of the body entirely.
        """
        history = [ConversationTurn.model_validate(turn) for turn in conversation_history or []]
        request = QueryRequest(
            collection_id=collection_id,
            query=question,
            enable_lazy_loading=enable_lazy_loading,
            stream=True,
            conversation_history=history or None,
        )
        return request.model_dump(mode="json", exclude_none=True)

    async def submit_query(
        self,
        collection_id: str,
        question: str,
        conversation_history: Optional[Sequence[Union[ConversationTurn, dict]]] = None,
        callbacks: Optional[StreamCallbacks] = None,
        enable_lazy_loading: bool = False,
    ) -> StreamResult:
        """Ask a question and stream the answer through ``callbacks``.

        Error events are reported through ``on_error`` and do not stop the
        read loop, which runs until the backend closes the stream.

        Args:
            collection_id: Backend collection to query.
            question: The user's question.
            conversation_history: Earlier turns sent as context.
            callbacks: Progress hooks.
            enable_lazy_loading: Let the backend fetch missing pages on demand.

        Returns:
            The assembled answer.

        Raises:
            ApitomeError: The classified failure when the backend rejects the
                request, ``ProtocolMismatchError`` when the response is not an
                event stream, ``QueryTimeoutError`` when the answer does not
                complete in time, ``NetworkUnreachableError`` on transport
                failures.
        """
        body = self.build_request(collection_id, question, conversation_history, enable_lazy_loading)
        query = StreamingQuery(callbacks)

        try:
            await asyncio.wait_for(self._execute(query, body), timeout=self.timeout)
        except asyncio.TimeoutError:
            query.cancel()
            if not query.completed:
                logger.error(f"Query timed out after {self.timeout} seconds")
                raise QueryTimeoutError() from None
            logger.debug("Stream stayed open after done; closed by timer")
        finally:
            query.close()

        return query.result()

    async def _execute(self, query: StreamingQuery, body: dict) -> None:
        buffer = EventStreamBuffer()
        try:
            async with self.http_client.stream(
                "POST", QUERY_PATH, json=body, timeout=self.timeout
            ) as response:
                if not response.is_success:
                    await response.aread()
                    raise classify_http_error(response.status_code, _json_or_none(response))

                content_type = response.headers.get("content-type", "")
                if EVENT_STREAM_CONTENT_TYPE not in content_type:
                    raise ProtocolMismatchError(
                        f"Expected streaming response but got: {content_type or 'no content type'}"
                    )

                query.start()
                async for chunk in response.aiter_text():
                    for line in buffer.feed(chunk):
                        query.handle_line(line)
                for line in buffer.flush():
                    query.handle_line(line)
        except httpx.TimeoutException as e:
            raise QueryTimeoutError() from e
        except httpx.TransportError as e:
            logger.error(f"Query transport failure: {e}")
            raise NetworkUnreachableError() from e
