"""Repositories over the hosted relational API."""

from __future__ import annotations

from .memory_repository import MemoryRepository
from .message_repository import MessageRepository
from .story_repository import StoryRepository

__all__ = ["MemoryRepository", "MessageRepository", "StoryRepository"]
