"""In-memory conversation thread storage with optional JSON persistence."""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from ..llm.protocols import Message

logger = logging.getLogger(__name__)

TITLE_LENGTH = 50


@dataclass
class Thread:
    """A persisted conversation."""

    id: str
    title: str
    messages: list[dict] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    @property
    def message_count(self) -> int:
        return len(self.messages)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "messages": self.messages,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> Thread:
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            messages=list(data.get("messages", [])),
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
        )


def title_from_message(content: str) -> str:
    """Thread title from the first user message."""
    text = " ".join(content.split())
    if len(text) <= TITLE_LENGTH:
        return text
    return text[:TITLE_LENGTH].rstrip() + "..."


class ThreadStore:
    """
    In-memory store for conversation threads.

    Provides:
    - Thread creation, listing, lookup and deletion
    - Append-only message logs per thread
    - Optional persistence to disk (JSON)
    """

    def __init__(
        self,
        persist_path: Path | None = None,
        auto_persist: bool = False,
    ):
        """
        Initialize the thread store.

        Args:
            persist_path: Optional path for disk persistence
            auto_persist: Whether to auto-save on every update
        """
        self._threads: dict[str, Thread] = {}
        self.persist_path = Path(persist_path) if persist_path else None
        self.auto_persist = auto_persist

        # Load from disk if path exists
        if self.persist_path and self.persist_path.exists():
            self._load_from_disk()

    def create_thread(self, title: str = "New conversation") -> Thread:
        thread = Thread(id=uuid.uuid4().hex[:12], title=title)
        self._threads[thread.id] = thread
        self._changed()
        logger.debug(f"Created thread {thread.id}")
        return thread

    def get_thread(self, thread_id: str) -> Thread | None:
        return self._threads.get(thread_id)

    def list_threads(self) -> list[dict]:
        """
        List threads, most recently updated first.

        Returns:
            Thread metadata (id, title, message_count, created_at, updated_at)
        """
        threads = sorted(self._threads.values(), key=lambda t: t.updated_at, reverse=True)
        return [
            {
                "id": t.id,
                "title": t.title,
                "message_count": t.message_count,
                "created_at": t.created_at,
                "updated_at": t.updated_at,
            }
            for t in threads
        ]

    def add_message(self, thread_id: str, message: Message) -> bool:
        """
        Append a message to a thread.

        Returns:
            True if appended, False if the thread does not exist
        """
        thread = self._threads.get(thread_id)
        if not thread:
            logger.warning(f"Cannot add message to unknown thread {thread_id}")
            return False

        thread.messages.append(message.to_record())
        thread.updated_at = datetime.now()
        self._changed()
        return True

    def get_messages(self, thread_id: str) -> list[Message]:
        thread = self._threads.get(thread_id)
        if not thread:
            return []
        return [Message.model_validate(record) for record in thread.messages]

    def update_title(self, thread_id: str, title: str) -> bool:
        thread = self._threads.get(thread_id)
        if not thread:
            return False

        thread.title = title
        thread.updated_at = datetime.now()
        self._changed()
        return True

    def delete_thread(self, thread_id: str) -> bool:
        """
        Delete a thread.

        Returns:
            True if deleted, False if not found
        """
        if thread_id in self._threads:
            del self._threads[thread_id]
            self._changed()
            logger.info(f"Deleted thread {thread_id}")
            return True

        return False

    def save(self) -> None:
        """Persist all threads now, regardless of auto_persist."""
        self._persist_to_disk()

    def _changed(self) -> None:
        if self.auto_persist and self.persist_path:
            self._persist_to_disk()

    def _persist_to_disk(self) -> None:
        """Persist all threads to disk."""
        if not self.persist_path:
            return

        try:
            data = {"threads": [t.to_dict() for t in self._threads.values()]}

            self.persist_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.persist_path, "w") as f:
                json.dump(data, f, indent=2, default=str)

            logger.debug(f"Persisted threads to {self.persist_path}")

        except OSError as e:
            logger.error(f"Failed to persist threads: {e}")

    def _load_from_disk(self) -> None:
        """Load threads from disk."""
        try:
            with open(self.persist_path) as f:
                data = json.load(f)

            for raw in data.get("threads", []):
                thread = Thread.from_dict(raw)
                self._threads[thread.id] = thread
            logger.info(f"Loaded {len(self._threads)} threads from {self.persist_path}")

        except (OSError, ValueError, KeyError) as e:
            logger.error(f"Failed to load threads: {e}")
