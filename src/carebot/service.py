from __future__ import annotations

import logging

from carebot.backends import ChatBackend
from carebot.sessions import SessionStore
from carebot.types import ChatReply

LOGGER = logging.getLogger(__name__)


class ChatService:
    def __init__(self, backend: ChatBackend, sessions: SessionStore | None = None) -> None:
        self._backend = backend
        self._sessions = sessions if sessions is not None else SessionStore()

    async def ask(self, chat_id: int, utterance: str) -> ChatReply:
        # One in-flight turn per chat; later messages queue on the lock.
        async with self._sessions.lock(chat_id):
            handle = self._sessions.get(chat_id)
            LOGGER.debug("Turn start chat_id=%s thread_id=%s", chat_id, handle)
            reply = await self._backend.send(utterance, handle)
            if reply.conversation_handle and reply.conversation_handle != handle:
                self._sessions.set(chat_id, reply.conversation_handle)
            LOGGER.info(
                "Turn done chat_id=%s thread_id=%s failure=%s",
                chat_id,
                reply.conversation_handle,
                reply.failure.value if reply.failure else None,
            )
            return reply

    def reset(self, chat_id: int) -> bool:
        return self._sessions.reset(chat_id)
