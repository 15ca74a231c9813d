"""Conversation controller tying the API client to persisted sessions."""

import logging
import uuid
from typing import Callable, Dict, List, Optional, Union

from apitome.client import DocumentationClient
from apitome.errors import ApitomeError, RateLimitedError, SessionNotFoundError
from apitome.models import ChatSession, ConversationTurn, Message, MessageRole, StreamMetadata
from apitome.rate_limiter import DEFAULT_COOLDOWN_MS, RateLimiter
from apitome.sessions import SessionStore
from apitome.streaming import StreamCallbacks
from apitome.utils.naming import flatten_urls, sanitize_collection_name

logger = logging.getLogger(__name__)

MAX_HISTORY_MESSAGES = 10
MAX_INPUT_LENGTH = 3000


def new_message_id() -> str:
    return uuid.uuid4().hex


def error_reply(message: str) -> str:
    """Assistant text shown in place of an answer that failed."""
    return (
        f"Sorry, I encountered an error: {message}. "
        "Please try again or check if the backend is running."
    )


class ChatController:
    """Runs the collection and question workflows against the backend.

    Questions are gated by the rate limiter, answers are streamed into a
    transient assistant message, and only settled messages are persisted.
    """

    def __init__(
        self,
        client: DocumentationClient,
        sessions: SessionStore,
        rate_limiter: RateLimiter,
        max_history_messages: int = MAX_HISTORY_MESSAGES,
        max_input_length: int = MAX_INPUT_LENGTH,
        rate_limit_cooldown_ms: int = DEFAULT_COOLDOWN_MS,
    ) -> None:
        """Initialize the controller.

        Args:
            client: Backend API client.
            sessions: Session store.
            rate_limiter: Cooldown gate consulted before every question.
            max_history_messages: Earlier messages sent along as context.
            max_input_length: Longest question accepted, in characters.
            rate_limit_cooldown_ms: Cooldown started when the backend rate-limits.
        """
        self.client = client
        self.sessions = sessions
        self.rate_limiter = rate_limiter
        self.max_history_messages = max_history_messages
        self.max_input_length = max_input_length
        self.rate_limit_cooldown_ms = rate_limit_cooldown_ms

    def _require_session(self, session_id: str) -> ChatSession:
        session = self.sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Session not found: {session_id}")
        return session

    async def start_collection(
        self, urls: Union[List[str], Dict[str, List[str]]], name: str
    ) -> ChatSession:
        """Ingest documentation and open a session on the new collection.

        Args:
            urls: URLs to ingest, flat or grouped by label.
            name: Display name for the session.

        Returns:
            The created session.

        Raises:
            ValueError: If no URLs were given or the name is unusable.
            ApitomeError: If ingestion fails.
        """
        if not flatten_urls(urls):
            raise ValueError("At least one URL is required")
        if not name.strip():
            raise ValueError("A collection name is required")

        collection_name = sanitize_collection_name(name)
        if not collection_name:
            raise ValueError(f"Collection name must contain letters or digits: {name!r}")

        if isinstance(urls, dict):
            result = await self.client.ingest(collection_name, urls_with_label=urls)
        else:
            result = await self.client.ingest(collection_name, urls=flatten_urls(urls))

        logger.info(
            f"Ingested {result.documents_ingested} documents into {result.collection_id}"
            f" ({result.pending_urls_count} pending)"
        )
        return self.sessions.create(
            urls,
            collection_id=result.collection_id,
            name=name,
            document_count=result.documents_ingested,
            pending_urls=result.pending_urls_count,
        )

    async def add_urls(self, session_id: str, urls: List[str]) -> ChatSession:
        """Add URLs to a session's collection.

        A notice describing the outcome is appended to the session either way.

        Raises:
            ValueError: If no URLs were given.
            SessionNotFoundError: If the session does not exist.
            ApitomeError: If the backend rejects the URLs.
        """
        url_list = flatten_urls(urls)
        if not url_list:
            raise ValueError("At least one URL is required")
        session = self._require_session(session_id)

        try:
            result = await self.client.add_urls(session.collection_id, {"urls": url_list})
        except ApitomeError as e:
            self._notify(session_id, f"Failed to add URLs: {e.message}")
            raise

        updated = self.sessions.update_urls(session_id, url_list, result.total_documents)
        added = result.urls_added or len(url_list)
        self._notify(
            session_id,
            f"Successfully added {added} URL(s) with {result.documents_ingested} new documents. "
            f"Total documents in collection: {result.total_documents}",
        )
        return self.sessions.get(session_id) or updated

    def _notify(self, session_id: str, text: str) -> None:
        self.sessions.append_message(
            session_id, Message(id=new_message_id(), role=MessageRole.ASSISTANT, text=text)
        )

    def build_history(self, session: ChatSession) -> List[ConversationTurn]:
        """The last ``max_history_messages`` messages as query context."""
        if self.max_history_messages <= 0:
            return []
        recent = session.messages[-self.max_history_messages:]
        return [ConversationTurn(role=m.role, content=m.text) for m in recent]

    async def ask(
        self,
        session_id: str,
        question: str,
        on_token: Optional[Callable[[str], None]] = None,
    ) -> Message:
        """Ask a question in a session and stream the answer.

        Args:
            session_id: Session to ask in.
            question: The question text.
            on_token: Receives each answer fragment as it arrives.

        Returns:
            The settled assistant message, as persisted. Backend failures other
            than rate limiting become an apologetic assistant message instead
            of an exception.

        Raises:
            ValueError: If the question is blank or too long.
            RateLimitedError: If a cooldown is active or the backend
                rate-limits this question. Nothing is persisted for the answer.
            SessionNotFoundError: If the session does not exist.
        """
        question = question.strip()
        if not question:
            raise ValueError("Question must not be empty")
        if len(question) > self.max_input_length:
            raise ValueError(
                f"Question is too long ({len(question)} characters, "
                f"maximum {self.max_input_length})"
            )

        self.rate_limiter.check()
        session = self._require_session(session_id)
        history = self.build_history(session)

        self.sessions.append_message(
            session_id, Message(id=new_message_id(), role=MessageRole.USER, text=question)
        )

        reply = Message(id=new_message_id(), role=MessageRole.ASSISTANT, is_streaming=True)
        persisted = False
        failed = False

        def settle() -> None:
            nonlocal persisted
            reply.is_streaming = False
            if not persisted:
                persisted = True
                self.sessions.append_message(session_id, reply.model_copy(deep=True))

        def handle_token(token: str) -> None:
            if failed:
                return
            reply.text += token
            if on_token:
                on_token(token)

        def handle_metadata(metadata: StreamMetadata) -> None:
            if failed:
                # apology text is final
                settle()
                return
            reply.confidence = metadata.confidence
            reply.sources = metadata.sources
            reply.lazy_loaded = metadata.lazy_loaded
            reply.suggested_urls = metadata.suggested_urls
            settle()

        def handle_error(message: str) -> None:
            nonlocal failed
            if persisted or failed:
                logger.warning(f"Ignoring error after the answer was settled: {message}")
                return
            failed = True
            reply.text = error_reply(message)
            reply.is_streaming = False

        def handle_done() -> None:
            reply.is_streaming = False

        callbacks = StreamCallbacks(
            on_token=handle_token,
            on_metadata=handle_metadata,
            on_error=handle_error,
            on_done=handle_done,
        )

        try:
            await self.client.query_stream(
                session.collection_id,
                question,
                callbacks=callbacks,
                conversation_history=history,
            )
        except RateLimitedError:
            self.rate_limiter.set_limit(self.rate_limit_cooldown_ms)
            raise
        except ApitomeError as e:
            logger.error(f"Query failed: {e.message}")
            if not persisted and not failed:
                reply.text = error_reply(e.message)
            settle()
            return reply

        settle()
        return reply
