from __future__ import annotations

from typing import Optional, Protocol

from carebot.backends.assistant import AssistantConversationClient
from carebot.backends.webhook import WebhookChatClient
from carebot.config import BACKEND_WEBHOOK, AppConfig
from carebot.types import ChatReply, ConversationHandle


class ChatBackend(Protocol):
    async def send(
        self,
        utterance: str,
        conversation_handle: Optional[ConversationHandle] = None,
    ) -> ChatReply:
        """Send one utterance; always returns a reply, the fallback on failure."""
        ...


def build_backend(config: AppConfig) -> ChatBackend:
    if config.backend == BACKEND_WEBHOOK:
        return WebhookChatClient(config.webhook, fallback_reply=config.chat.fallback_reply)
    return AssistantConversationClient(config.assistant, fallback_reply=config.chat.fallback_reply)
