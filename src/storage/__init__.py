# src/storage/__init__.py
from __future__ import annotations

from .base import SubmissionStore
from .memory import InMemoryStore
from .sqlite_store import SqliteStore

__all__ = ["SubmissionStore", "InMemoryStore", "SqliteStore"]
