"""Interchangeable chat backends."""

from carebot.backends.assistant import AssistantConversationClient
from carebot.backends.base import ChatBackend, build_backend
from carebot.backends.webhook import WebhookChatClient

__all__ = ["AssistantConversationClient", "ChatBackend", "WebhookChatClient", "build_backend"]
