"""One-time migration of the legacy single-collection record into a session.

Older clients kept exactly one collection under ``currentCollection``. On
startup that record is turned into a regular chat session and removed. A
record that cannot be parsed is left in place and reported, so nothing is
lost; it can be discarded explicitly with :func:`discard_legacy_collection`.
"""

import json
import logging
from typing import Optional

from pydantic import ValidationError

from apitome.models import ChatSession, LegacyCollection, utcnow
from apitome.sessions import SessionStore

logger = logging.getLogger(__name__)

LEGACY_COLLECTION_KEY = "currentCollection"
MIGRATED_SESSION_NAME = "Migrated Collection"


def migrate_legacy_collection(sessions: SessionStore) -> Optional[ChatSession]:
    """Fold a legacy collection record into the session store.

    Args:
        sessions: The session store sharing the durable store with the record.

    Returns:
        The session created from the record, or ``None`` if there was nothing
        to migrate, the collection was already migrated, or the record was
        unreadable.
    """
    store = sessions.store
    raw = store.get_item(LEGACY_COLLECTION_KEY)
    if raw is None:
        return None

    try:
        legacy = LegacyCollection.model_validate(json.loads(raw))
    except (ValueError, ValidationError) as e:
        logger.error(f"Error migrating old collection: {e}")
        return None

    if sessions.find_by_collection(legacy.id) is not None:
        store.remove_item(LEGACY_COLLECTION_KEY)
        logger.info(f"Collection {legacy.id} already migrated; discarded legacy record")
        return None

    name = (legacy.name or "").strip() or MIGRATED_SESSION_NAME
    urls = [legacy.url] if legacy.url else []
    now = utcnow()

    session = ChatSession(
        session_id=sessions.generate_session_id(name),
        name=name,
        url=legacy.url,
        urls=urls,
        collection_id=legacy.id,
        document_count=legacy.document_count or 0,
        pending_urls=legacy.pending_urls or 0,
        created_at=legacy.ingested_at or now,
        last_activity=now,
        messages=[],
    )
    sessions.insert(session)
    store.remove_item(LEGACY_COLLECTION_KEY)
    logger.info(f"Migrated legacy collection {legacy.id} to session {session.session_id}")
    return session


def discard_legacy_collection(sessions: SessionStore) -> bool:
    """Drop the legacy record without migrating it.

    Returns:
        True if a record was present.
    """
    store = sessions.store
    if not store.has_item(LEGACY_COLLECTION_KEY):
        return False
    store.remove_item(LEGACY_COLLECTION_KEY)
    logger.info("Discarded legacy collection record")
    return True
