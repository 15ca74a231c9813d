"""Tests for name helpers."""

import pytest

from apitome.utils.naming import (
    flatten_urls,
    sanitize_collection_name,
    slugify,
    url_display_name,
)


@pytest.mark.parametrize(
    "name,expected",
    [
        ("Stripe", "stripe"),
        ("Stripe API Docs", "stripe-api-docs"),
        ("  --GitHub // REST--  ", "github-rest"),
        ("!!!", "collection"),
    ],
)
def test_slugify(name, expected):
    assert slugify(name) == expected


def test_sanitize_collection_name():
    assert sanitize_collection_name("  My API docs! ") == "My-API-docs"
    assert sanitize_collection_name("__internal__") == "internal"
    assert sanitize_collection_name("***") == ""


def test_sanitize_collection_name_caps_length():
    assert len(sanitize_collection_name("a" * 100)) == 63


def test_flatten_urls_from_list_dedupes_in_order():
    urls = ["https://a.dev/docs", "", "https://b.dev/docs", "https://a.dev/docs"]

    assert flatten_urls(urls) == ["https://a.dev/docs", "https://b.dev/docs"]


def test_flatten_urls_from_label_map():
    urls = {"rest": ["https://a.dev/api"], "guides": ["https://a.dev/guide", "https://a.dev/api"]}

    assert flatten_urls(urls) == ["https://a.dev/api", "https://a.dev/guide"]


def test_url_display_name():
    assert url_display_name("https://docs.stripe.com/api/balance_transactions") == "Balance Transactions"
    assert url_display_name("https://docs.stripe.com/") == "docs.stripe.com"
    assert url_display_name("https://example.com/guide/intro.html") == "intro"
    assert url_display_name("not a url") == "Document"
