# turnguard/postprocess/history.py
from __future__ import annotations

import sqlite3
from collections.abc import Iterable, Mapping
from typing import Protocol

from turnguard.types import RecentMessage


class MessageHistory(Protocol):
    """Read-only view of recent assistant messages, newest first."""

    def recent_assistant_messages(self, conversation_id: str, limit: int) -> list[RecentMessage]: ...


class StaticHistory:
    """In-memory snapshot, keyed by conversation id (newest first)."""

    def __init__(self, by_conversation: Mapping[str, Iterable[RecentMessage]] | None = None):
        self._messages = {cid: tuple(msgs) for cid, msgs in (by_conversation or {}).items()}

    def recent_assistant_messages(self, conversation_id: str, limit: int) -> list[RecentMessage]:
        return list(self._messages.get(conversation_id, ())[:limit])


class SqliteMessageHistory:
    """
    Reads completed assistant rows from the chat store.
    The connection is opened read-only; writes belong to the persistence layer.
    """

    QUERY = (
        "SELECT content, opener_norm FROM messages "
        "WHERE conversation_id=? AND role='assistant' AND status='COMPLETED' "
        "ORDER BY created_at DESC LIMIT ?"
    )

    def __init__(self, db_path: str):
        self.db_path = db_path

    def connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(f"file:{self.db_path}?mode=ro", uri=True)
        conn.row_factory = sqlite3.Row
        return conn

    def recent_assistant_messages(self, conversation_id: str, limit: int) -> list[RecentMessage]:
        conn = self.connect()
        try:
            rows = conn.execute(self.QUERY, (conversation_id, limit)).fetchall()
        finally:
            conn.close()
        return [RecentMessage(content=r["content"] or "", opener_norm=r["opener_norm"]) for r in rows]
