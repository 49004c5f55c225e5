from __future__ import annotations

import asyncio
from typing import Optional

from carebot.types import ConversationHandle


class SessionStore:
    """In-memory conversation handles keyed by chat id; lost on restart."""

    def __init__(self) -> None:
        self._handles: dict[int, ConversationHandle] = {}
        self._locks: dict[int, asyncio.Lock] = {}

    def get(self, chat_id: int) -> Optional[ConversationHandle]:
        return self._handles.get(chat_id)

    def set(self, chat_id: int, handle: ConversationHandle) -> None:
        self._handles[chat_id] = handle

    def reset(self, chat_id: int) -> bool:
        lock = self._locks.get(chat_id)
        if lock is not None and not lock.locked():
            del self._locks[chat_id]
        return self._handles.pop(chat_id, None) is not None

    def lock(self, chat_id: int) -> asyncio.Lock:
        lock = self._locks.get(chat_id)
        if lock is None:
            lock = self._locks[chat_id] = asyncio.Lock()
        return lock
