"""Persistent chat sessions.

All sessions live as one JSON array under a single durable key. Every
mutation reads the whole array, transforms it and writes the whole array
back. There is no locking: a single writer at a time is assumed, and two
processes mutating sessions concurrently may lose one of the updates.
"""

import logging
import re
from datetime import datetime
from typing import Callable, List, Optional

from pydantic import ValidationError

from apitome.models import ChatSession, Message, utcnow
from apitome.storage import DurableStore
from apitome.utils.naming import UrlInput, flatten_urls, slugify

logger = logging.getLogger(__name__)

SESSIONS_KEY = "chat_sessions"


class SessionStore:
    """CRUD and merge operations over persisted chat sessions.

    Attributes:
        store: The durable key-value store holding the session array.
    """

    def __init__(
        self,
        store: DurableStore,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Initialize the session store.

        Args:
            store: Durable store to read from and write to.
            clock: Source of the current time, used for activity stamps.
        """
        self.store = store
        self._clock = clock

    def load(self) -> List[ChatSession]:
        """Read every persisted session.

        Unreadable data is logged and treated as an empty collection.
        """
        try:
            raw = self.store.load(SESSIONS_KEY, default=[])
            return [ChatSession.model_validate(item) for item in raw]
        except (ValueError, TypeError, ValidationError) as e:
            logger.error(f"Error reading sessions: {e}")
            return []

    def save(self, sessions: List[ChatSession]) -> None:
        """Replace the persisted session array with ``sessions``."""
        self.store.save(SESSIONS_KEY, [s.model_dump(mode="json") for s in sessions])

    def list_sessions(self) -> List[ChatSession]:
        """Return all sessions in storage order."""
        return self.load()

    def list_sorted(self) -> List[ChatSession]:
        """Return all sessions, most recently active first."""
        return sorted(self.load(), key=lambda s: s.last_activity, reverse=True)

    def get(self, session_id: str) -> Optional[ChatSession]:
        """Return the session with ``session_id``, or ``None``."""
        for session in self.load():
            if session.session_id == session_id:
                return session
        return None

    def find_by_collection(self, collection_id: str) -> Optional[ChatSession]:
        """Return the first session bound to ``collection_id``, or ``None``."""
        for session in self.load():
            if session.collection_id == collection_id:
                return session
        return None

    def generate_session_id(
        self, name: str, sessions: Optional[List[ChatSession]] = None
    ) -> str:
        """Build the next free ``{slug}_session_{n}`` id for ``name``.

        Args:
            name: Human display name.
            sessions: Existing sessions; loaded from storage when omitted.

        Returns:
            The id with ``n`` one above the highest existing suffix for the slug.
        """
        if sessions is None:
            sessions = self.load()

        base = slugify(name)
        pattern = re.compile(rf"^{re.escape(base)}_session_(\d+)$")

        highest = 0
        for session in sessions:
            match = pattern.match(session.session_id)
            if match:
                highest = max(highest, int(match.group(1)))

        return f"{base}_session_{highest + 1}"

    def create(
        self,
        urls: UrlInput,
        collection_id: str,
        name: str,
        document_count: int,
        pending_urls: int = 0,
    ) -> ChatSession:
        """Create and persist a session for a freshly ingested collection.

        Args:
            urls: Ingested URLs, either a flat list or a ``{label: [urls]}`` map.
            collection_id: Backend collection id.
            name: Display name; trimmed before use.
            document_count: Documents the backend reported as ingested.
            pending_urls: URLs the backend still has queued.

        Returns:
            The new session.
        """
        sessions = self.load()
        url_list = flatten_urls(urls)
        now = self._clock()

        session = ChatSession(
            session_id=self.generate_session_id(name, sessions),
            name=name.strip(),
            url=url_list[0] if url_list else None,
            urls=url_list,
            collection_id=collection_id,
            document_count=document_count,
            pending_urls=pending_urls,
            created_at=now,
            last_activity=now,
            messages=[],
        )
        sessions.append(session)
        self.save(sessions)
        logger.info(f"Created session {session.session_id} for collection {collection_id}")
        return session

    def insert(self, session: ChatSession) -> ChatSession:
        """Persist a fully built session, replacing one with the same id."""
        sessions = [s for s in self.load() if s.session_id != session.session_id]
        sessions.append(session)
        self.save(sessions)
        return session

    def append_message(self, session_id: str, message: Message) -> Optional[ChatSession]:
        """Append ``message`` to a session's history.

        A missing session is logged and ignored so one lost message never
        interrupts the conversation.

        Returns:
            The updated session, or ``None`` if it does not exist.
        """
        sessions = self.load()
        for index, session in enumerate(sessions):
            if session.session_id == session_id:
                break
        else:
            logger.error(f"Session not found: {session_id}")
            return None

        if message.is_streaming:
            for existing in session.messages:
                existing.is_streaming = False

        session.messages.append(message)
        session.last_activity = self._clock()
        sessions[index] = session
        self.save(sessions)
        return session

    def update_urls(
        self, session_id: str, new_urls: UrlInput, total_document_count: int
    ) -> Optional[ChatSession]:
        """Merge URLs into a session and record the backend's document total.

        Args:
            session_id: Session to update.
            new_urls: URLs just added, flat or keyed by label.
            total_document_count: Authoritative document count from the backend.

        Returns:
            The updated session, or ``None`` if it does not exist.
        """
        sessions = self.load()
        for index, session in enumerate(sessions):
            if session.session_id == session_id:
                break
        else:
            logger.error(f"Session not found: {session_id}")
            return None

        merged = list(dict.fromkeys(session.urls + flatten_urls(new_urls)))
        updated = session.model_copy(
            update={
                "urls": merged,
                "url": session.url or (merged[0] if merged else None),
                "document_count": total_document_count,
                "last_activity": self._clock(),
            }
        )
        sessions[index] = updated
        self.save(sessions)
        return updated

    def delete(self, session_id: str) -> bool:
        """Remove one session.

        Returns:
            True if a session was removed.
        """
        sessions = self.load()
        remaining = [s for s in sessions if s.session_id != session_id]
        if len(remaining) == len(sessions):
            return False
        self.save(remaining)
        logger.info(f"Deleted session {session_id}")
        return True

    def clear_all(self) -> None:
        """Remove every session."""
        self.store.remove_item(SESSIONS_KEY)
