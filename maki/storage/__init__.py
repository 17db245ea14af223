"""Conversation thread persistence."""

from .thread_store import Thread, ThreadStore, title_from_message

__all__ = ["Thread", "ThreadStore", "title_from_message"]
