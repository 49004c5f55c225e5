from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
from typing import Any

import yaml

from carebot.errors import ConfigError

BACKEND_ASSISTANT = "assistant"
BACKEND_WEBHOOK = "webhook"
BACKENDS = (BACKEND_ASSISTANT, BACKEND_WEBHOOK)

DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"
DEFAULT_WELCOME_MESSAGE = "Hello! Feel free to tell me about any health concern you have."
DEFAULT_FALLBACK_REPLY = "Sorry, something went wrong while generating an answer. Please try again."
DEFAULT_SUGGESTED_QUESTIONS = [
    "I was diagnosed with liver cancer and my surgery is scheduled. Which foods should I avoid for now?",
    "I have diabetes. What kind of exercise helps with blood sugar control?",
    "I take blood pressure medication. Are there foods I should not combine with it?",
    "What should I watch out for while recovering from stomach cancer surgery?",
    "I was diagnosed with hypothyroidism. What should I be careful about in daily life?",
]


@dataclass
class TelegramConfig:
    bot_token: str = ""
    allowed_user_ids: list[int] = field(default_factory=list)


@dataclass
class AssistantConfig:
    api_key: str = ""
    assistant_id: str = ""
    base_url: str = DEFAULT_OPENAI_BASE_URL
    poll_interval_seconds: float = 1.0
    max_poll_attempts: int = 60
    timeout_seconds: float = 30.0


@dataclass
class WebhookConfig:
    url: str = ""
    timeout_seconds: float = 60.0


@dataclass
class ChatConfig:
    welcome_message: str = DEFAULT_WELCOME_MESSAGE
    fallback_reply: str = DEFAULT_FALLBACK_REPLY
    suggested_questions: list[str] = field(default_factory=lambda: list(DEFAULT_SUGGESTED_QUESTIONS))


@dataclass
class AppConfig:
    backend: str = BACKEND_ASSISTANT
    telegram: TelegramConfig = field(default_factory=TelegramConfig)
    assistant: AssistantConfig = field(default_factory=AssistantConfig)
    webhook: WebhookConfig = field(default_factory=WebhookConfig)
    chat: ChatConfig = field(default_factory=ChatConfig)

    def __post_init__(self) -> None:
        if self.backend not in BACKENDS:
            raise ConfigError(f"backend must be one of {', '.join(BACKENDS)}, got {self.backend!r}")
        if self.assistant.poll_interval_seconds <= 0:
            raise ConfigError("assistant.poll_interval_seconds must be positive")
        if self.assistant.max_poll_attempts <= 0:
            raise ConfigError("assistant.max_poll_attempts must be positive")

    @classmethod
    def from_env(cls) -> "AppConfig":
        return cls(
            backend=os.getenv("CAREBOT_BACKEND", BACKEND_ASSISTANT).strip().lower() or BACKEND_ASSISTANT,
            telegram=TelegramConfig(
                bot_token=os.getenv("TELEGRAM_BOT_TOKEN", ""),
                allowed_user_ids=_parse_user_ids(os.getenv("TELEGRAM_ALLOWED_USER_IDS", "")),
            ),
            assistant=AssistantConfig(
                api_key=os.getenv("OPENAI_API_KEY", ""),
                assistant_id=os.getenv("OPENAI_ASSISTANT_ID", ""),
                base_url=os.getenv("OPENAI_BASE_URL", "") or DEFAULT_OPENAI_BASE_URL,
            ),
            webhook=WebhookConfig(url=os.getenv("CAREBOT_WEBHOOK_URL", "")),
        )


def load_config(path: str | Path) -> AppConfig:
    raw = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ConfigError(f"{path}: top level must be a mapping")
    expanded = _expand_env(raw)

    telegram = dict(expanded.get("telegram") or {})
    if "allowed_user_ids" in telegram:
        telegram["allowed_user_ids"] = _parse_user_ids(telegram["allowed_user_ids"])

    try:
        return AppConfig(
            backend=str(expanded.get("backend") or BACKEND_ASSISTANT).lower(),
            telegram=TelegramConfig(**telegram),
            assistant=AssistantConfig(**(expanded.get("assistant") or {})),
            webhook=WebhookConfig(**(expanded.get("webhook") or {})),
            chat=ChatConfig(**(expanded.get("chat") or {})),
        )
    except TypeError as exc:
        raise ConfigError(f"{path}: {exc}") from exc


def _parse_user_ids(value: Any) -> list[int]:
    if value in (None, ""):
        return []
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = value
    else:
        items = [value]
    try:
        return [int(str(item).strip()) for item in items if str(item).strip()]
    except ValueError as exc:
        raise ConfigError(f"allowed user ids must be integers: {value!r}") from exc


def _expand_env(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _expand_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_expand_env(v) for v in value]
    if isinstance(value, str):
        return _expand_env_str(value)
    return value


def _expand_env_str(value: str) -> str:
    if value.startswith("${") and value.endswith("}"):
        return os.getenv(value[2:-1], "")
    return value
