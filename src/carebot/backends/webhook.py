from __future__ import annotations

import logging
import uuid
from typing import Optional

import httpx

from carebot.config import DEFAULT_FALLBACK_REPLY, WebhookConfig
from carebot.errors import (
    BackendConfigurationError,
    BackendTransportError,
    ChatBackendError,
    MissingResponseError,
)
from carebot.types import ChatReply, ConversationHandle

LOGGER = logging.getLogger(__name__)


class WebhookChatClient:
    """Single-shot workflow webhook; every call is independent."""

    def __init__(
        self,
        config: WebhookConfig,
        fallback_reply: str = DEFAULT_FALLBACK_REPLY,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._config = config
        self._fallback_reply = fallback_reply
        self._transport = transport

    async def send(
        self,
        utterance: str,
        conversation_handle: Optional[ConversationHandle] = None,
    ) -> ChatReply:
        try:
            reply = await self._post(utterance)
        except ChatBackendError as exc:
            LOGGER.warning("Webhook turn failed kind=%s: %s", exc.kind.value, exc)
            return ChatReply(
                reply=self._fallback_reply,
                conversation_handle=conversation_handle,
                failure=exc.kind,
            )
        return ChatReply(reply=reply, conversation_handle=conversation_handle)

    async def _post(self, utterance: str) -> str:
        if not self._config.url:
            raise BackendConfigurationError("Webhook URL is not configured")

        payload = {
            "action": "sendMessage",
            "chatInput": utterance,
            "sessionId": uuid.uuid4().hex,
        }
        async with httpx.AsyncClient(
            timeout=self._config.timeout_seconds,
            transport=self._transport,
        ) as client:
            try:
                response = await client.post(self._config.url, json=payload)
                response.raise_for_status()
                body = response.json()
            except httpx.HTTPError as exc:
                raise BackendTransportError(f"Webhook request failed: {exc}") from exc
            except ValueError as exc:
                raise BackendTransportError("Webhook returned invalid JSON") from exc

        output = body.get("output") if isinstance(body, dict) else None
        if not isinstance(output, str):
            raise MissingResponseError("Webhook response missing output")
        return output
