"""
Chat Session Tests

Tests for direct and delegated chat turns and thread persistence.
"""

import asyncio

import pytest

from maki.config import (
    MockModelClient,
    ModelConfig,
    ProfileConfig,
    create_chat_session,
    create_tool_registry,
)
from maki.config.loader import ConversationConfig, ToolsConfig
from maki.llm import Message, MessageRole, ModelClientError, ToolCall
from maki.orchestration import ChatSession
from maki.storage import ThreadStore


@pytest.fixture
def profile(tmp_path):
    return ProfileConfig(
        model=ModelConfig(backend="mock"),
        tools=ToolsConfig(workspace_dir=str(tmp_path / "workspace")),
    )


def test_direct_turns_keep_history(profile):
    """Test a direct chat keeping the conversation across turns."""
    print("=" * 60)
    print("TEST: Direct chat turns")
    print("=" * 60)

    client = MockModelClient(responses=[
        Message.assistant(None, [ToolCall(id="c1", name="listFiles", arguments="{}")]),
        "The workspace is empty.",
        "You asked about files.",
    ])
    session = create_chat_session(client, profile)

    answer = asyncio.run(session.send("What files are there?"))
    assert answer == "The workspace is empty."

    answer = asyncio.run(session.send("What did I ask?"))
    assert answer == "You asked about files."

    roles = [m.role for m in session.messages]
    assert roles == [
        MessageRole.SYSTEM,
        MessageRole.USER,
        MessageRole.ASSISTANT,
        MessageRole.TOOL,
        MessageRole.ASSISTANT,
        MessageRole.USER,
        MessageRole.ASSISTANT,
    ]
    # The last model call saw the whole history
    assert len(client.calls[-1][0]) == 6
    print("[PASS] History kept across turns")


def test_error_reply_resets_next_turn(profile):
    client = MockModelClient(responses=[ModelClientError("upstream down"), "fresh start"])
    session = create_chat_session(client, profile)

    first = asyncio.run(session.send("hello"))
    assert first.startswith("Error: upstream down")

    asyncio.run(session.send("hello again"))
    assert [m.content for m in session.messages[1:]] == ["hello again", "fresh start"]


def test_long_conversation_resets(tmp_path):
    profile = ProfileConfig(
        model=ModelConfig(backend="mock"),
        conversation=ConversationConfig(max_conversation_length=4),
        tools=ToolsConfig(workspace_dir=str(tmp_path / "workspace")),
    )
    session = create_chat_session(MockModelClient(), profile)

    for turn in range(3):
        asyncio.run(session.send(f"turn {turn}"))

    assert len(session.messages) == 3
    assert session.messages[1].content == "turn 2"


def test_delegated_turn_uses_agent_system(profile):
    def responder(messages, tools):
        if messages[0].content.startswith("You are the coordinator"):
            return "COMPLEXITY: SIMPLE"
        return "delegated answer"

    client = MockModelClient(responder=responder)
    session = create_chat_session(client, profile, delegate=True)

    answer = asyncio.run(session.send("do the thing"))

    assert answer == "delegated answer"
    assert [m.content for m in session.messages[1:]] == ["do the thing", "delegated answer"]


def test_thread_recording_and_resume(profile, tmp_path):
    store = ThreadStore(persist_path=tmp_path / "threads.json", auto_persist=True)
    client = MockModelClient(responses=["Hi there!", "Welcome back."])
    session = create_chat_session(client, profile, thread_store=store)

    asyncio.run(session.send("Hello, this is my first message"))
    thread = store.get_thread(session.thread_id)
    assert thread.title == "Hello, this is my first message"
    assert [r["role"] for r in thread.messages] == ["user", "assistant"]

    reloaded = ThreadStore(persist_path=tmp_path / "threads.json")
    resumed = create_chat_session(
        client, profile, thread_store=reloaded, thread_id=session.thread_id
    )
    assert [m.role for m in resumed.messages] == [
        MessageRole.SYSTEM,
        MessageRole.USER,
        MessageRole.ASSISTANT,
    ]

    asyncio.run(resumed.send("Second visit"))
    assert reloaded.get_thread(session.thread_id).title == "Hello, this is my first message"
    assert reloaded.get_thread(session.thread_id).message_count == 4


def test_resume_unknown_thread(profile):
    registry = create_tool_registry(profile)
    with pytest.raises(KeyError):
        ChatSession.from_thread(ThreadStore(), "missing", MockModelClient(), registry)


def test_reset(profile):
    session = create_chat_session(MockModelClient(), profile)
    asyncio.run(session.send("hi"))

    session.reset()
    assert len(session.messages) == 1
