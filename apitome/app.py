"""Startup wiring: builds every component from settings."""

import logging
from functools import cached_property
from typing import Optional

import httpx

from apitome.client import DocumentationClient
from apitome.config import Settings, load_settings
from apitome.conversation import ChatController
from apitome.migration import migrate_legacy_collection
from apitome.models import ChatSession
from apitome.rate_limiter import RateLimiter
from apitome.sessions import SessionStore
from apitome.storage import DurableStore
from apitome.utils.store_discovery import discover_store

logger = logging.getLogger(__name__)


class Application:
    """The assembled client.

    Opening the application opens the durable store and runs the legacy
    migration once. The HTTP client is only created when first used.

    Attributes:
        settings: Resolved settings.
        store: The durable store.
        sessions: Session store.
        rate_limiter: Cooldown gate.
        migrated: Session created by the legacy migration, if any.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.settings = settings or load_settings()
        self._http_client = http_client

        store_path = discover_store(self.settings.store_path)
        logger.debug(f"Using store {store_path}")
        self.store = DurableStore(store_path)
        self.sessions = SessionStore(self.store)
        self.migrated: Optional[ChatSession] = migrate_legacy_collection(self.sessions)
        self.rate_limiter = RateLimiter(self.store)

    @cached_property
    def client(self) -> DocumentationClient:
        return DocumentationClient(
            base_url=self.settings.api_base_url,
            request_timeout=self.settings.request_timeout,
            query_timeout=self.settings.query_timeout,
            health_timeout=self.settings.health_timeout,
            http_client=self._http_client,
        )

    @cached_property
    def controller(self) -> ChatController:
        return ChatController(
            self.client,
            self.sessions,
            self.rate_limiter,
            max_history_messages=self.settings.max_history_messages,
            max_input_length=self.settings.max_input_length,
            rate_limit_cooldown_ms=self.settings.rate_limit_cooldown * 1000,
        )

    def close(self) -> None:
        """Close the durable store."""
        self.store.close()

    async def aclose(self) -> None:
        """Close the HTTP client, if one was created, and the store."""
        if "client" in self.__dict__:
            await self.client.aclose()
        self.close()

    def __enter__(self) -> "Application":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    async def __aenter__(self) -> "Application":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
