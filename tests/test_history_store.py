import json
import threading

import mongomock
import pytest
from pymongo.errors import ServerSelectionTimeoutError

from chatrelay.services.errors import StoreError
from chatrelay.services.history_store import (
    InMemoryHistoryStore,
    JsonHistoryStore,
    create_history_store,
)
from chatrelay.services.mongo_store import MongoHistoryStore


def _pairs(messages):
    return [(m.text, m.is_user) for m in messages]


# -----------------------------------------------------------------------------
# Contract shared by every backend
# -----------------------------------------------------------------------------

def test_get_unknown_user_is_empty(any_store):
    assert any_store.get("nobody") == []


def test_append_adds_user_then_bot(any_store):
    any_store.append("u1", "Hello", "Hi there")

    assert _pairs(any_store.get("u1")) == [("Hello", True), ("Hi there", False)]


def test_each_append_grows_history_by_two(any_store):
    any_store.append("u1", "one", "1")
    any_store.append("u1", "two", "2")

    messages = any_store.get("u1")
    assert len(messages) == 4
    assert _pairs(messages[2:]) == [("two", True), ("2", False)]


def test_identical_appends_are_not_deduplicated(any_store):
    any_store.append("u1", "Hello", "Hi there")
    any_store.append("u1", "Hello", "Hi there")

    assert _pairs(any_store.get("u1")) == [
        ("Hello", True),
        ("Hi there", False),
        ("Hello", True),
        ("Hi there", False),
    ]


def test_users_are_isolated(any_store):
    any_store.append("u1", "a", "b")

    assert any_store.get("u2") == []


def test_clear_populated_history(any_store):
    any_store.append("u1", "Hello", "Hi there")
    any_store.clear("u1")

    assert any_store.get("u1") == []


def test_clear_unknown_user_is_noop(any_store):
    any_store.clear("ghost")

    assert any_store.get("ghost") == []


def test_append_after_clear_starts_over(any_store):
    any_store.append("u1", "old", "old reply")
    any_store.clear("u1")
    any_store.append("u1", "new", "new reply")

    assert _pairs(any_store.get("u1")) == [("new", True), ("new reply", False)]


def test_store_stamps_both_messages(any_store):
    any_store.append("u1", "Hello", "Hi there")

    user_msg, bot_msg = any_store.get("u1")
    assert user_msg.timestamp is not None
    assert user_msg.timestamp == bot_msg.timestamp


def test_concurrent_appends_keep_pairs_together(any_store):
    def worker(n):
        any_store.append("u1", f"q{n}", f"a{n}")

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    messages = any_store.get("u1")
    assert len(messages) == 40
    for user_msg, bot_msg in zip(messages[::2], messages[1::2]):
        assert user_msg.is_user and not bot_msg.is_user
        assert user_msg.text[1:] == bot_msg.text[1:]


# -----------------------------------------------------------------------------
# In-memory backend
# -----------------------------------------------------------------------------

def test_memory_clear_keeps_session_and_does_not_create_one():
    store = InMemoryHistoryStore()
    store.append("u1", "a", "b")
    store.clear("u1")
    store.clear("ghost")

    assert "u1" in store.sessions
    assert "ghost" not in store.sessions


# -----------------------------------------------------------------------------
# JSON file backend
# -----------------------------------------------------------------------------

def test_json_history_survives_new_instance(tmp_path):
    JsonHistoryStore(tmp_path).append("u1", "Hello", "Hi there")

    assert _pairs(JsonHistoryStore(tmp_path).get("u1")) == [("Hello", True), ("Hi there", False)]


def test_json_file_uses_camel_case_fields(tmp_path):
    store = JsonHistoryStore(tmp_path)
    store.append("u1", "Hello", "Hi there")

    data = json.loads((tmp_path / "u1.json").read_text(encoding="utf-8"))
    assert data["userId"] == "u1"
    assert "createdAt" in data
    assert data["messages"][0]["isUser"] is True
    assert data["messages"][1]["isUser"] is False


def test_json_clear_keeps_file_and_unknown_user_creates_none(tmp_path):
    store = JsonHistoryStore(tmp_path)
    store.append("u1", "a", "b")
    store.clear("u1")
    store.clear("ghost")

    assert json.loads((tmp_path / "u1.json").read_text(encoding="utf-8"))["messages"] == []
    assert not (tmp_path / "ghost.json").exists()


def test_json_user_id_cannot_escape_data_dir(tmp_path):
    data_dir = tmp_path / "chats"
    store = JsonHistoryStore(data_dir)
    store.append("../../evil", "a", "b")

    assert [p.parent for p in tmp_path.rglob("*.json")] == [data_dir]
    assert _pairs(store.get("../../evil")) == [("a", True), ("b", False)]


def test_json_corrupt_file_raises_store_error(tmp_path):
    (tmp_path / "u1.json").write_text("{not json", encoding="utf-8")
    store = JsonHistoryStore(tmp_path)

    with pytest.raises(StoreError):
        store.get("u1")
    with pytest.raises(StoreError):
        store.append("u1", "a", "b")


# -----------------------------------------------------------------------------
# MongoDB backend
# -----------------------------------------------------------------------------

class UnreachableCollection:
    """Behaves like a pymongo collection whose server cannot be selected."""

    def _fail(self, *args, **kwargs):
        raise ServerSelectionTimeoutError("localhost:27017: connection refused")

    create_index = update_one = find_one = _fail


def test_mongo_single_document_per_user():
    collection = mongomock.MongoClient()["chatrelay"]["chats"]
    store = MongoHistoryStore(collection=collection)
    store.append("u1", "a", "b")
    store.append("u1", "c", "d")

    assert collection.count_documents({"userId": "u1"}) == 1
    doc = collection.find_one({"userId": "u1"})
    assert "createdAt" in doc
    assert [m["isUser"] for m in doc["messages"]] == [True, False, True, False]


def test_mongo_clear_keeps_document_and_does_not_upsert():
    collection = mongomock.MongoClient()["chatrelay"]["chats"]
    store = MongoHistoryStore(collection=collection)
    store.append("u1", "a", "b")
    store.clear("u1")
    store.clear("ghost")

    assert collection.find_one({"userId": "u1"})["messages"] == []
    assert collection.count_documents({"userId": "ghost"}) == 0


def test_mongo_unreachable_server_raises_store_error():
    store = MongoHistoryStore(collection=UnreachableCollection())

    with pytest.raises(StoreError):
        store.append("u1", "a", "b")
    with pytest.raises(StoreError):
        store.get("u1")
    with pytest.raises(StoreError):
        store.clear("u1")


# -----------------------------------------------------------------------------
# Factory
# -----------------------------------------------------------------------------

def test_create_history_store_backends():
    assert isinstance(create_history_store("memory"), InMemoryHistoryStore)
    assert isinstance(create_history_store("JSON"), JsonHistoryStore)


def test_create_history_store_rejects_unknown_backend():
    with pytest.raises(ValueError):
        create_history_store("redis")


def test_json_overlong_user_id_raises_store_error(tmp_path):
    store = JsonHistoryStore(tmp_path)
    user_id = "u" * 300

    with pytest.raises(StoreError):
        store.append(user_id, "a", "b")
    with pytest.raises(StoreError):
        store.get(user_id)
    with pytest.raises(StoreError):
        store.clear(user_id)
    assert list(tmp_path.iterdir()) == []


def test_mongo_malformed_document_raises_store_error():
    collection = mongomock.MongoClient()["chatrelay"]["chats"]
    collection.insert_one({"userId": "u1", "messages": [{"text": "no role flag"}]})
    collection.insert_one({"userId": "u2", "messages": 42})
    store = MongoHistoryStore(collection=collection)

    with pytest.raises(StoreError):
        store.get("u1")
    with pytest.raises(StoreError):
        store.get("u2")
