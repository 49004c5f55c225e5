from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

import httpx

from carebot.config import DEFAULT_FALLBACK_REPLY, AssistantConfig
from carebot.errors import (
    BackendConfigurationError,
    BackendTransportError,
    ChatBackendError,
    MissingResponseError,
    RunFailedError,
    RunTimeoutError,
    UnexpectedRunStatusError,
)
from carebot.types import ChatReply, ConversationHandle, RunStatus
from carebot.utils.text import clean_reply_text

LOGGER = logging.getLogger(__name__)

ASSISTANTS_BETA_HEADER = "assistants=v2"

Sleep = Callable[[float], Awaitable[None]]


class AssistantConversationClient:
    """Drives one chat turn through the thread/message/run lifecycle.

    Failures never escape :meth:`send`; the caller always gets a reply,
    the fallback text when the turn could not finish.
    """

    def __init__(
        self,
        config: AssistantConfig,
        fallback_reply: str = DEFAULT_FALLBACK_REPLY,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self._config = config
        self._fallback_reply = fallback_reply
        self._transport = transport
        self._sleep = sleep

    async def send(
        self,
        utterance: str,
        conversation_handle: Optional[ConversationHandle] = None,
    ) -> ChatReply:
        turn = _Turn(conversation_handle)
        try:
            reply = await self._run_turn(utterance, turn)
        except ChatBackendError as exc:
            LOGGER.warning(
                "Assistant turn failed kind=%s thread_id=%s: %s",
                exc.kind.value,
                turn.thread_id,
                exc,
            )
            return ChatReply(
                reply=self._fallback_reply,
                conversation_handle=turn.thread_id,
                failure=exc.kind,
            )
        return ChatReply(reply=reply, conversation_handle=turn.thread_id)

    async def _run_turn(self, utterance: str, turn: "_Turn") -> str:
        api_key = self._config.api_key
        assistant_id = self._config.assistant_id
        if not api_key or not assistant_id:
            raise BackendConfigurationError("OpenAI API key or assistant id is not configured")

        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            "OpenAI-Beta": ASSISTANTS_BETA_HEADER,
        }
        async with httpx.AsyncClient(
            base_url=self._config.base_url,
            headers=headers,
            timeout=self._config.timeout_seconds,
            transport=self._transport,
        ) as client:
            if turn.thread_id is None:
                created = await _request(client, "POST", "/threads")
                turn.thread_id = _require_str(created, "id", "create thread")
                LOGGER.info("Created thread thread_id=%s", turn.thread_id)

            thread_id = turn.thread_id
            await _request(
                client,
                "POST",
                f"/threads/{thread_id}/messages",
                json={"role": "user", "content": utterance},
            )
            run = await _request(
                client,
                "POST",
                f"/threads/{thread_id}/runs",
                json={"assistant_id": assistant_id},
            )
            run_id = _require_str(run, "id", "create run")

            await self._wait_for_completion(client, thread_id, run_id)

            listing = await _request(client, "GET", f"/threads/{thread_id}/messages")

        return _extract_reply(listing, self._fallback_reply)

    async def _wait_for_completion(
        self,
        client: httpx.AsyncClient,
        thread_id: str,
        run_id: str,
    ) -> None:
        status = RunStatus.QUEUED
        for attempt in range(1, self._config.max_poll_attempts + 1):
            await self._sleep(self._config.poll_interval_seconds)
            body = await _request(client, "GET", f"/threads/{thread_id}/runs/{run_id}")
            raw_status = body.get("status")
            status = RunStatus.parse(raw_status)
            LOGGER.debug("Run run_id=%s attempt=%d status=%s", run_id, attempt, raw_status)

            if status is RunStatus.FAILED:
                raise RunFailedError(f"Assistant run {run_id} failed")
            if status is RunStatus.COMPLETED:
                return
            if not status.is_pending:
                raise UnexpectedRunStatusError(f"Assistant run {run_id} ended with status {raw_status!r}")

        raise RunTimeoutError(
            f"Assistant run {run_id} still {status.value} after {self._config.max_poll_attempts} polls"
        )


@dataclass
class _Turn:
    thread_id: Optional[ConversationHandle]


async def _request(
    client: httpx.AsyncClient,
    method: str,
    path: str,
    json: dict[str, Any] | None = None,
) -> dict[str, Any]:
    try:
        response = await client.request(method, path, json=json)
        response.raise_for_status()
        body = response.json()
    except httpx.HTTPError as exc:
        raise BackendTransportError(f"OpenAI request {method} {path} failed: {exc}") from exc
    except ValueError as exc:
        raise BackendTransportError(f"OpenAI request {method} {path} returned invalid JSON") from exc

    if not isinstance(body, dict):
        raise BackendTransportError(f"OpenAI request {method} {path} returned a non-object body")
    return body


def _require_str(body: dict[str, Any], key: str, operation: str) -> str:
    value = body.get(key)
    if not isinstance(value, str) or not value:
        raise BackendTransportError(f"{operation} response missing {key!r}")
    return value


def _extract_reply(listing: dict[str, Any], apology: str) -> str:
    # The service lists messages newest first.
    messages = listing.get("data") or []
    if not isinstance(messages, list):
        raise BackendTransportError("list messages response has a malformed data field")
    message = next(
        (m for m in messages if isinstance(m, dict) and m.get("role") == "assistant"),
        None,
    )
    if message is None:
        raise MissingResponseError("No assistant response found")

    raw = apology
    content = message.get("content")
    for block in content if isinstance(content, list) else []:
        if not isinstance(block, dict) or block.get("type") != "text":
            continue
        text = block.get("text")
        value = text.get("value") if isinstance(text, dict) else None
        if isinstance(value, str) and value:
            raw = value
        break
    return clean_reply_text(raw)
