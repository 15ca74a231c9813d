"""Tests for the persisted session store."""

from apitome.models import Message, MessageRole
from apitome.sessions import SESSIONS_KEY


def make_message(role=MessageRole.USER, text="hi", streaming=False, id="m1"):
    return Message(id=id, role=role, text=text, is_streaming=streaming)


def test_create_and_get(sessions):
    created = sessions.create(["https://docs.stripe.com/api"], "cid-1", "Stripe", 42)

    fetched = sessions.get(created.session_id)
    assert fetched is not None
    assert fetched.session_id == "stripe_session_1"
    assert fetched.name == "Stripe"
    assert fetched.url == "https://docs.stripe.com/api"
    assert fetched.urls == ["https://docs.stripe.com/api"]
    assert fetched.collection_id == "cid-1"
    assert fetched.document_count == 42
    assert fetched.messages == []


def test_session_ids_increment_per_slug(sessions):
    ids = [sessions.create(["https://x.dev/api"], f"c{i}", "Stripe", 1).session_id for i in range(3)]
    other = sessions.create(["https://y.dev/api"], "c9", "GitHub REST", 1)

    assert ids == ["stripe_session_1", "stripe_session_2", "stripe_session_3"]
    assert other.session_id == "github-rest_session_1"


def test_session_id_uses_highest_suffix(sessions):
    sessions.create(["https://x.dev/api"], "c1", "Stripe", 1)
    second = sessions.create(["https://x.dev/api"], "c2", "Stripe", 1)
    sessions.create(["https://x.dev/api"], "c3", "Stripe", 1)
    sessions.delete(second.session_id)

    assert sessions.generate_session_id("Stripe") == "stripe_session_4"


def test_create_from_label_map(sessions):
    session = sessions.create(
        {"api": ["https://a.dev/api"], "guides": ["https://a.dev/guide", "https://a.dev/api"]},
        "cid",
        "A",
        3,
        pending_urls=2,
    )

    assert session.urls == ["https://a.dev/api", "https://a.dev/guide"]
    assert session.pending_urls == 2


def test_append_message_updates_activity(sessions, clock):
    session = sessions.create(["https://a.dev/api"], "cid", "A", 1)
    clock.advance(60)

    updated = sessions.append_message(session.session_id, make_message())

    assert [m.text for m in updated.messages] == ["hi"]
    assert updated.last_activity > session.last_activity
    assert sessions.get(session.session_id).messages[0].id == "m1"


def test_append_to_missing_session_is_ignored(sessions):
    assert sessions.append_message("nope_session_1", make_message()) is None
    assert sessions.list_sessions() == []


def test_only_one_streaming_message(sessions):
    session = sessions.create(["https://a.dev/api"], "cid", "A", 1)
    sessions.append_message(
        session.session_id, make_message(MessageRole.ASSISTANT, "partial", True, "a1")
    )
    updated = sessions.append_message(
        session.session_id, make_message(MessageRole.ASSISTANT, "", True, "a2")
    )

    assert [m.is_streaming for m in updated.messages] == [False, True]


def test_update_urls_merges_and_takes_backend_count(sessions):
    session = sessions.create(["https://a.dev", "https://b.dev"], "cid", "A", 5)

    updated = sessions.update_urls(session.session_id, ["https://b.dev", "https://c.dev"], 12)

    assert updated.urls == ["https://a.dev", "https://b.dev", "https://c.dev"]
    assert updated.document_count == 12
    assert sessions.get(session.session_id).urls == updated.urls


def test_update_urls_missing_session(sessions):
    assert sessions.update_urls("nope_session_1", ["https://a.dev"], 1) is None


def test_list_sorted_by_activity(sessions, clock):
    first = sessions.create(["https://a.dev"], "c1", "First", 1)
    clock.advance(10)
    second = sessions.create(["https://b.dev"], "c2", "Second", 1)
    clock.advance(10)
    sessions.append_message(first.session_id, make_message())

    assert [s.session_id for s in sessions.list_sorted()] == [
        first.session_id,
        second.session_id,
    ]


def test_find_by_collection(sessions):
    session = sessions.create(["https://a.dev"], "cid-7", "A", 1)

    assert sessions.find_by_collection("cid-7").session_id == session.session_id
    assert sessions.find_by_collection("other") is None


def test_delete_and_clear(sessions, store):
    a = sessions.create(["https://a.dev"], "c1", "A", 1)
    sessions.create(["https://b.dev"], "c2", "B", 1)

    assert sessions.delete(a.session_id) is True
    assert sessions.delete(a.session_id) is False
    assert len(sessions.list_sessions()) == 1

    sessions.clear_all()
    assert sessions.list_sessions() == []
    assert not store.has_item(SESSIONS_KEY)


def test_corrupt_data_reads_as_empty_and_is_kept(sessions, store):
    store.set_item(SESSIONS_KEY, "[{broken")

    assert sessions.list_sessions() == []
    assert store.get_item(SESSIONS_KEY) == "[{broken"


def test_schema_mismatch_reads_as_empty(sessions, store):
    store.save(SESSIONS_KEY, [{"unexpected": True}])

    assert sessions.list_sessions() == []
