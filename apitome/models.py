"""Data models for sessions, messages and the backend wire protocol."""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class MessageRole(str, Enum):
    """Chat message roles."""

    USER = "user"
    ASSISTANT = "assistant"


class Source(BaseModel):
    """A document an answer was drawn from."""

    model_config = ConfigDict(populate_by_name=True)

    url: str = Field(..., alias="source", description="Source document URL")
    section: Optional[str] = Field(None, description="Relevant section title")


class Message(BaseModel):
    """One turn in a conversation."""

    id: str = Field(..., description="Unique message identifier within a session")
    role: MessageRole
    text: str = ""
    timestamp: datetime = Field(default_factory=utcnow)
    is_streaming: bool = Field(False, description="True while the answer is incomplete")
    confidence: Optional[float] = None
    sources: Optional[List[Source]] = None
    lazy_loaded: Optional[bool] = None
    suggested_urls: Optional[List[str]] = None

    @model_validator(mode="after")
    def _user_messages_never_stream(self) -> "Message":
        if self.role == MessageRole.USER and self.is_streaming:
            raise ValueError("user messages cannot be streaming")
        return self


class ChatSession(BaseModel):
    """A conversation bound to one backend document collection."""

    session_id: str = Field(..., description="e.g. stripe_session_1")
    name: str = Field(..., description="Display name")
    url: Optional[str] = Field(None, description="First URL, kept for older records")
    urls: List[str] = Field(default_factory=list)
    collection_id: str
    document_count: int = 0
    pending_urls: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    last_activity: datetime = Field(default_factory=utcnow)
    messages: List[Message] = Field(default_factory=list)


class LegacyCollection(BaseModel):
    """The single-collection record written by older clients."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: Optional[str] = None
    url: Optional[str] = None
    document_count: Optional[int] = Field(None, alias="documentCount")
    pending_urls: Optional[int] = Field(None, alias="pendingUrls")
    ingested_at: Optional[datetime] = Field(None, alias="ingestedAt")


class ConversationTurn(BaseModel):
    """History entry sent with a query."""

    role: MessageRole
    content: str


class IngestRequest(BaseModel):
    """Body of ``POST /api/ingest``."""

    urls: Optional[List[str]] = None
    urls_with_label: Optional[Dict[str, List[str]]] = None
    collection_name: Optional[str] = None


class IngestResponse(BaseModel):
    """Response of ``POST /api/ingest``."""

    status: str
    collection_id: str = ""
    collection_name: Optional[str] = None
    documents_parsed: int = 0
    documents_ingested: int = 0
    pending_urls_count: int = 0
    message: Optional[str] = None
    error: Optional[str] = None


class AddUrlsRequest(BaseModel):
    """Body of ``POST /api/ingest/add-urls``."""

    collection_id: str
    urls_with_label: Dict[str, List[str]]


class AddUrlsResponse(BaseModel):
    """Response of ``POST /api/ingest/add-urls``."""

    status: str
    collection_id: str = ""
    urls_added: int = 0
    documents_parsed: int = 0
    documents_ingested: int = 0
    total_documents: int = 0
    message: Optional[str] = None
    error: Optional[str] = None


class QueryRequest(BaseModel):
    """Body of ``POST /api/query``."""

    collection_id: str
    query: str
    enable_lazy_loading: bool = False
    stream: bool = True
    conversation_history: Optional[List[ConversationTurn]] = None


# Stream events. The ``type`` field discriminates the union.


class TokenEvent(BaseModel):
    type: Literal["token"]
    content: str


class MetadataEvent(BaseModel):
    type: Literal["metadata"]
    confidence: float = 0.0
    sources: Optional[List[Source]] = None
    lazy_loaded: Optional[bool] = None
    suggested_urls: Optional[List[str]] = None


class ErrorEvent(BaseModel):
    type: Literal["error"]
    message: str = "Unknown error"


class DoneEvent(BaseModel):
    type: Literal["done"]


StreamEvent = Annotated[
    Union[TokenEvent, MetadataEvent, ErrorEvent, DoneEvent],
    Field(discriminator="type"),
]

STREAM_EVENT_ADAPTER: TypeAdapter = TypeAdapter(StreamEvent)


class StreamMetadata(BaseModel):
    """Answer metadata handed to ``on_metadata``."""

    confidence: float
    sources: List[Source] = Field(default_factory=list)
    lazy_loaded: bool = False
    suggested_urls: Optional[List[str]] = None

    @classmethod
    def from_event(cls, event: MetadataEvent) -> "StreamMetadata":
        return cls(
            confidence=event.confidence,
            sources=list(event.sources or []),
            lazy_loaded=bool(event.lazy_loaded),
            suggested_urls=event.suggested_urls,
        )
