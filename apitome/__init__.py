"""APItome - chat with API documentation from the command line.

A client for a documentation question-answering service: it submits
documentation URLs for ingestion, streams answers to questions about them,
and keeps conversations and rate-limit state in a local store.
"""

__version__ = "0.1.0"
__author__ = "AJ Carter"
__email__ = "ajcarter@example.com"

# Public API
from apitome.app import Application
from apitome.client import DocumentationClient
from apitome.conversation import ChatController
from apitome.errors import ApitomeError, ErrorKind, classify_http_error
from apitome.rate_limiter import RateLimiter
from apitome.sessions import SessionStore
from apitome.storage import DurableStore
from apitome.streaming import StreamCallbacks, StreamingQueryClient

__all__ = [
    "Application",
    "ApitomeError",
    "ChatController",
    "DocumentationClient",
    "DurableStore",
    "ErrorKind",
    "RateLimiter",
    "SessionStore",
    "StreamCallbacks",
    "StreamingQueryClient",
    "classify_http_error",
]
