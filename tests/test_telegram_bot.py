from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from carebot.config import AppConfig, ChatConfig, TelegramConfig
from carebot.errors import ConfigError
from carebot.service import ChatService
from carebot.telegram.bot import TelegramBotApp
from carebot.types import ChatReply


class EchoBackend:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str | None]] = []

    async def send(self, utterance: str, conversation_handle: str | None = None) -> ChatReply:
        self.calls.append((utterance, conversation_handle))
        return ChatReply(reply=f"echo {utterance}", conversation_handle="thread_tg")


def _app(backend: EchoBackend, allowed: list[int] | None = None) -> TelegramBotApp:
    config = AppConfig(
        telegram=TelegramConfig(bot_token="123456:TEST-TOKEN", allowed_user_ids=allowed or []),
        chat=ChatConfig(suggested_questions=["First?", "Second?"]),
    )
    return TelegramBotApp(config=config, service=ChatService(backend))


def _update(text: str = "", user_id: int = 1, chat_id: int = 99) -> MagicMock:
    chat = MagicMock()
    chat.id = chat_id
    chat.send_message = AsyncMock()
    chat.send_action = AsyncMock()

    update = MagicMock()
    update.effective_user.id = user_id
    update.effective_chat = chat
    update.effective_message.text = text
    update.effective_message.reply_text = AsyncMock()
    return update


def test_missing_token_is_config_error() -> None:
    with pytest.raises(ConfigError):
        TelegramBotApp(config=AppConfig(), service=ChatService(EchoBackend()))


@pytest.mark.asyncio
async def test_text_message_gets_reply() -> None:
    backend = EchoBackend()
    app = _app(backend)
    update = _update("hello")

    await app._on_text(update, None)

    assert backend.calls == [("hello", None)]
    update.effective_chat.send_message.assert_awaited_once_with("echo hello")


@pytest.mark.asyncio
async def test_blank_message_is_ignored() -> None:
    backend = EchoBackend()
    update = _update("   ")

    await _app(backend)._on_text(update, None)

    assert backend.calls == []
    update.effective_chat.send_message.assert_not_awaited()


@pytest.mark.asyncio
async def test_users_outside_allow_list_are_ignored() -> None:
    backend = EchoBackend()
    update = _update("hello", user_id=5)

    await _app(backend, allowed=[1])._on_text(update, None)

    assert backend.calls == []


@pytest.mark.asyncio
async def test_start_sends_welcome_and_carousel() -> None:
    update = _update("/start")

    await _app(EchoBackend())._on_start(update, None)

    calls = update.effective_message.reply_text.await_args_list
    assert len(calls) == 2
    assert calls[1].args[0] == "Suggested question 1/2:\nFirst?"
    markup = calls[1].kwargs["reply_markup"]
    buttons = markup.inline_keyboard[0]
    assert [b.callback_data for b in buttons] == ["suggest:nav:1", "suggest:ask:0", "suggest:nav:1"]


@pytest.mark.asyncio
async def test_carousel_navigation_edits_message() -> None:
    update = _update()
    update.callback_query.data = "suggest:nav:1"
    update.callback_query.answer = AsyncMock()
    update.callback_query.edit_message_text = AsyncMock()

    await _app(EchoBackend())._on_suggestion(update, None)

    update.callback_query.edit_message_text.assert_awaited_once()
    assert update.callback_query.edit_message_text.await_args.args[0] == "Suggested question 2/2:\nSecond?"


@pytest.mark.asyncio
async def test_carousel_ask_sends_question_as_turn() -> None:
    backend = EchoBackend()
    update = _update()
    update.callback_query.data = "suggest:ask:1"
    update.callback_query.answer = AsyncMock()

    await _app(backend)._on_suggestion(update, None)

    assert backend.calls == [("Second?", None)]
    sent = [call.args[0] for call in update.effective_chat.send_message.await_args_list]
    assert sent == ["You asked: Second?", "echo Second?"]


@pytest.mark.asyncio
async def test_reset_starts_new_conversation() -> None:
    backend = EchoBackend()
    app = _app(backend)
    await app._on_text(_update("first"), None)

    await app._on_reset(_update("/reset"), None)
    await app._on_text(_update("second"), None)

    assert backend.calls == [("first", None), ("second", None)]
