"""
Thread Store Tests

Tests for in-memory thread storage and its JSON persistence.
"""

import json

from maki.llm import Message, MessageRole, ToolCall
from maki.storage import ThreadStore, title_from_message


def test_create_and_list_threads():
    store = ThreadStore()
    first = store.create_thread("First")
    second = store.create_thread("Second")
    store.add_message(first.id, Message.user("bump"))

    listed = store.list_threads()
    assert [t["id"] for t in listed] == [first.id, second.id]
    assert listed[0]["message_count"] == 1
    assert len(first.id) == 12


def test_messages_round_trip_through_records():
    store = ThreadStore()
    thread = store.create_thread()
    messages = [
        Message.user("list files"),
        Message.assistant(None, [ToolCall(id="c1", name="glob", arguments='{"pattern": "*"}')]),
        Message.tool("c1", "glob", "[]"),
        Message.assistant("The workspace is empty."),
    ]
    for message in messages:
        assert store.add_message(thread.id, message)

    assert store.get_messages(thread.id) == messages
    assert "tool_calls" not in thread.messages[0]


def test_unknown_thread():
    store = ThreadStore()
    assert store.add_message("nope", Message.user("hi")) is False
    assert store.get_messages("nope") == []
    assert store.update_title("nope", "x") is False
    assert store.delete_thread("nope") is False


def test_persistence(tmp_path):
    """Test saving threads to disk and loading them back."""
    print("=" * 60)
    print("TEST: Thread persistence")
    print("=" * 60)

    path = tmp_path / "threads.json"
    store = ThreadStore(persist_path=path, auto_persist=True)
    thread = store.create_thread("Persisted")
    store.add_message(thread.id, Message.user("remember me"))

    data = json.loads(path.read_text())
    assert data["threads"][0]["title"] == "Persisted"

    reloaded = ThreadStore(persist_path=path)
    restored = reloaded.get_thread(thread.id)
    assert restored.title == "Persisted"
    assert restored.created_at == thread.created_at
    assert reloaded.get_messages(thread.id)[0].role == MessageRole.USER

    assert reloaded.delete_thread(thread.id)
    reloaded.save()
    assert json.loads(path.read_text()) == {"threads": []}
    print("[PASS] Threads persisted and reloaded")


def test_manual_persistence_only_on_save(tmp_path):
    path = tmp_path / "threads.json"
    store = ThreadStore(persist_path=path)
    store.create_thread()
    assert not path.exists()

    store.save()
    assert path.exists()


def test_corrupt_file_is_ignored(tmp_path):
    path = tmp_path / "threads.json"
    path.write_text("{not json")

    store = ThreadStore(persist_path=path)
    assert store.list_threads() == []


def test_title_from_message():
    assert title_from_message("  Rename   the\nreports ") == "Rename the reports"
    long_title = title_from_message("x" * 80)
    assert long_title == "x" * 50 + "..."
