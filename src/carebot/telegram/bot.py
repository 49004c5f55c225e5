from __future__ import annotations

import asyncio
import contextlib
import logging
import platform
import signal
from importlib.metadata import PackageNotFoundError, version
from urllib.parse import urlparse, urlunparse

from telegram import Chat, InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.constants import ChatAction
from telegram.error import TelegramError
from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from carebot.config import BACKEND_WEBHOOK, AppConfig
from carebot.errors import ConfigError
from carebot.service import ChatService
from carebot.suggestions import (
    ACTION_ASK,
    ACTION_NAV,
    CALLBACK_PREFIX,
    SuggestionCarousel,
    callback_data,
)

LOGGER = logging.getLogger(__name__)

TYPING_REFRESH_SECONDS = 4.0


def _get_carebot_version() -> str:
    try:
        return version("carebot")
    except PackageNotFoundError:
        return "unknown"


def _sanitize_url_for_display(value: str) -> str:
    parsed = urlparse(value.strip())
    host = parsed.hostname or ""
    if parsed.port is not None:
        host = f"{host}:{parsed.port}"
    return urlunparse((parsed.scheme, host, parsed.path, "", "", ""))


def format_status_block(config: AppConfig) -> str:
    lines = ["status:", f"backend: {config.backend}"]
    if config.backend == BACKEND_WEBHOOK:
        webhook_url = _sanitize_url_for_display(config.webhook.url) if config.webhook.url else "<not set>"
        lines.append(f"webhook_url: {webhook_url}")
    else:
        assistant = config.assistant
        lines.extend(
            [
                f"base_url: {_sanitize_url_for_display(assistant.base_url)}",
                f"assistant_id: {assistant.assistant_id or '<not set>'}",
                f"api_key_configured: {str(bool(assistant.api_key)).lower()}",
                (
                    "polling: "
                    f"interval={assistant.poll_interval_seconds}s "
                    f"max_attempts={assistant.max_poll_attempts}"
                ),
            ]
        )
    allowed = ", ".join(str(uid) for uid in config.telegram.allowed_user_ids) or "<everyone>"
    lines.extend(
        [
            f"allowed_user_ids: {allowed}",
            f"suggested_questions: {len(config.chat.suggested_questions)}",
            f"python_version: {platform.python_version()}",
            f"carebot_version: {_get_carebot_version()}",
        ]
    )
    return "\n".join(lines)


class TelegramBotApp:
    def __init__(self, config: AppConfig, service: ChatService):
        if not config.telegram.bot_token:
            raise ConfigError("TELEGRAM_BOT_TOKEN is not configured")

        self._config = config
        self._service = service
        self._carousel = SuggestionCarousel(config.chat.suggested_questions)
        self._app = Application.builder().token(config.telegram.bot_token).build()
        self._stop_event = asyncio.Event()

        self._app.add_handler(CommandHandler("start", self._on_start))
        self._app.add_handler(CommandHandler("help", self._on_help))
        self._app.add_handler(CommandHandler("reset", self._on_reset))
        self._app.add_handler(CommandHandler("status", self._on_status))
        self._app.add_handler(CommandHandler("suggest", self._on_suggest))
        self._app.add_handler(CallbackQueryHandler(self._on_suggestion, pattern=f"^{CALLBACK_PREFIX}:"))
        self._app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, self._on_text))

    async def run_forever(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self._stop_event.set)
            except NotImplementedError:
                pass

        await self._app.initialize()
        await self._app.start()
        await self._app.updater.start_polling(drop_pending_updates=True)
        LOGGER.info("Telegram bot polling backend=%s", self._config.backend)

        try:
            await self._stop_event.wait()
        finally:
            await self._app.updater.stop()
            await self._app.stop()
            await self._app.shutdown()

    async def _on_start(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if not self._is_allowed_user(update):
            return
        await update.effective_message.reply_text(self._config.chat.welcome_message)
        await self._send_carousel(update)

    async def _on_help(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if not self._is_allowed_user(update):
            return
        await update.effective_message.reply_text(
            "Commands:\n"
            "/help - show this message\n"
            "/suggest - browse suggested questions\n"
            "/reset - start a new conversation\n"
            "/status - show current runtime status\n"
            "Any other text is sent to the assistant."
        )

    async def _on_reset(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if not self._is_allowed_user(update):
            return
        self._service.reset(update.effective_chat.id)
        await update.effective_message.reply_text("Started a new conversation.")

    async def _on_status(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if not self._is_allowed_user(update):
            return
        await update.effective_message.reply_text(format_status_block(self._config))

    async def _on_suggest(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if not self._is_allowed_user(update):
            return
        await self._send_carousel(update)

    async def _on_text(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if not self._is_allowed_user(update):
            return
        message = update.effective_message
        text = (message.text or "") if message else ""
        if not text.strip():
            return
        await self._answer(update.effective_chat, text)

    async def _on_suggestion(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        query = update.callback_query
        if query is None:
            return
        if not self._is_allowed_user(update):
            await query.answer()
            return

        action = self._carousel.parse_callback_data(query.data)
        if action is None:
            await query.answer("This suggestion is no longer available.")
            return

        await query.answer()
        if action.action == ACTION_NAV:
            await query.edit_message_text(
                self._carousel.caption(action.index),
                reply_markup=self._carousel_markup(action.index),
            )
            return

        question = self._carousel.question(action.index)
        chat = update.effective_chat
        await chat.send_message(f"You asked: {question}")
        await self._answer(chat, question)

    async def _answer(self, chat: Chat, utterance: str) -> None:
        typing = asyncio.create_task(self._keep_typing(chat), name=f"typing-{chat.id}")
        try:
            reply = await self._service.ask(chat.id, utterance)
        finally:
            typing.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await typing
        await chat.send_message(reply.reply)

    async def _keep_typing(self, chat: Chat) -> None:
        while True:
            try:
                await chat.send_action(ChatAction.TYPING)
            except TelegramError as exc:
                LOGGER.debug("Typing indicator failed chat_id=%s: %s", chat.id, exc)
            await asyncio.sleep(TYPING_REFRESH_SECONDS)

    async def _send_carousel(self, update: Update) -> None:
        if not len(self._carousel):
            return
        await update.effective_message.reply_text(
            self._carousel.caption(0),
            reply_markup=self._carousel_markup(0),
        )

    def _carousel_markup(self, index: int) -> InlineKeyboardMarkup:
        return InlineKeyboardMarkup(
            [
                [
                    InlineKeyboardButton("◀", callback_data=callback_data(ACTION_NAV, self._carousel.prev_index(index))),
                    InlineKeyboardButton("Ask", callback_data=callback_data(ACTION_ASK, index)),
                    InlineKeyboardButton("▶", callback_data=callback_data(ACTION_NAV, self._carousel.next_index(index))),
                ]
            ]
        )

    def _is_allowed_user(self, update: Update) -> bool:
        user = update.effective_user
        if user is None:
            return False
        allowed = self._config.telegram.allowed_user_ids
        return not allowed or user.id in allowed
