"""Tests for the SQLite durable store."""

import json

import pytest

from apitome.storage import DurableStore


def test_set_and_get(store):
    store.set_item("greeting", "hello")

    assert store.get_item("greeting") == "hello"
    assert store.has_item("greeting")


def test_missing_key(store):
    assert store.get_item("missing") is None
    assert not store.has_item("missing")


def test_set_replaces_value(store):
    store.set_item("k", "one")
    store.set_item("k", "two")

    assert store.get_item("k") == "two"
    assert store.keys() == ["k"]


def test_remove_item(store):
    store.set_item("k", "v")
    store.remove_item("k")
    store.remove_item("k")

    assert store.get_item("k") is None


def test_json_helpers(store):
    store.save("data", {"a": [1, 2]})

    assert store.load("data") == {"a": [1, 2]}
    assert store.load("absent", default=[]) == []


def test_load_corrupt_json_raises(store):
    store.set_item("data", "{not json")

    with pytest.raises(json.JSONDecodeError):
        store.load("data")


def test_values_survive_reopen(tmp_path):
    path = tmp_path / "nested" / "apitome.db"

    with DurableStore(path) as first:
        first.set_item("chatRateLimitExpiresAt", "123")

    with DurableStore(path) as second:
        assert second.get_item("chatRateLimitExpiresAt") == "123"
