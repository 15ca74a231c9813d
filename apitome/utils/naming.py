"""Name helpers: session slugs, backend collection names and URL labels."""

import re
from typing import Dict, Iterable, List, Union
from urllib.parse import urlparse

MAX_COLLECTION_NAME_LENGTH = 63
DEFAULT_SLUG = "collection"

UrlInput = Union[Iterable[str], Dict[str, List[str]]]


def slugify(name: str) -> str:
    """Turn a display name into the readable base of a session id.

    Lowercases, replaces every run of non-alphanumerics with a single hyphen
    and trims hyphens from both ends. ``"Stripe API Docs"`` becomes
    ``"stripe-api-docs"``.
    """
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower())
    slug = re.sub(r"-+", "-", slug).strip("-")
    return slug or DEFAULT_SLUG


def sanitize_collection_name(name: str) -> str:
    """Make a user-supplied name acceptable as a backend collection name.

    Args:
        name: The display name typed by the user.

    Returns:
        At most 63 characters of ``[A-Za-z0-9_-]`` that start and end with an
        alphanumeric character. May be empty if nothing usable remains.
    """
    sanitized = re.sub(r"\s+", "-", name.strip())
    sanitized = re.sub(r"[^a-zA-Z0-9_-]", "", sanitized)
    sanitized = re.sub(r"^[^a-zA-Z0-9]+", "", sanitized)
    sanitized = re.sub(r"[^a-zA-Z0-9]+$", "", sanitized)
    return sanitized[:MAX_COLLECTION_NAME_LENGTH]


def flatten_urls(urls: UrlInput) -> List[str]:
    """Flatten a URL list or a ``{label: [urls]}`` mapping.

    Blank entries are dropped and exact duplicates removed, keeping the first
    occurrence so insertion order survives.
    """
    if isinstance(urls, dict):
        candidates: Iterable[str] = (u for group in urls.values() for u in group)
    else:
        candidates = urls

    seen: Dict[str, None] = {}
    for url in candidates:
        if url.strip() and url not in seen:
            seen[url] = None
    return list(seen)


def url_display_name(url: str) -> str:
    """Derive a short human label from a documentation URL.

    ``https://docs.stripe.com/api/balance_transactions`` gives
    ``"Balance Transactions"``; a bare host gives the host name.
    """
    try:
        parsed = urlparse(url)
    except ValueError:
        return "Document"
    if not parsed.scheme or not parsed.netloc:
        return "Document"

    segments = [s for s in parsed.path.split("/") if s]
    if not segments:
        return parsed.netloc

    last = segments[-1]
    if ".html" in last:
        return last.replace(".html", "")

    words = last.replace("-", " ").replace("_", " ").split(" ")
    return " ".join(w[:1].upper() + w[1:] for w in words)
