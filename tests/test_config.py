from __future__ import annotations

from pathlib import Path

import pytest

from carebot.backends import AssistantConversationClient, WebhookChatClient, build_backend
from carebot.config import (
    DEFAULT_OPENAI_BASE_URL,
    DEFAULT_SUGGESTED_QUESTIONS,
    AppConfig,
    AssistantConfig,
    WebhookConfig,
    load_config,
)
from carebot.errors import ConfigError

EXAMPLE_CONFIG = Path(__file__).resolve().parent.parent / "config" / "example.yaml"


def test_load_config_expands_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TEST_OPENAI_KEY", "sk-from-env")
    path = tmp_path / "carebot.yaml"
    path.write_text(
        "backend: assistant\n"
        "telegram:\n"
        "  bot_token: tg-token\n"
        "  allowed_user_ids: '1, 2'\n"
        "assistant:\n"
        "  api_key: ${TEST_OPENAI_KEY}\n"
        "  assistant_id: asst_1\n"
        "  max_poll_attempts: 5\n"
        "chat:\n"
        "  suggested_questions: [\"one?\", \"two?\"]\n",
        encoding="utf-8",
    )

    config = load_config(path)

    assert config.assistant.api_key == "sk-from-env"
    assert config.assistant.max_poll_attempts == 5
    assert config.assistant.poll_interval_seconds == 1.0
    assert config.telegram.allowed_user_ids == [1, 2]
    assert config.chat.suggested_questions == ["one?", "two?"]


def test_example_config_loads_without_secrets(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("TELEGRAM_BOT_TOKEN", "TELEGRAM_ALLOWED_USER_IDS", "OPENAI_API_KEY", "OPENAI_ASSISTANT_ID"):
        monkeypatch.delenv(name, raising=False)

    config = load_config(EXAMPLE_CONFIG)

    assert config.backend == "assistant"
    assert config.assistant.api_key == ""
    assert config.telegram.allowed_user_ids == []
    assert config.assistant.max_poll_attempts == 60
    assert len(config.chat.suggested_questions) == 5


def test_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CAREBOT_BACKEND", "Webhook")
    monkeypatch.setenv("CAREBOT_WEBHOOK_URL", "https://hooks.example.com/chat")
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "tg")
    monkeypatch.setenv("TELEGRAM_ALLOWED_USER_IDS", "42")
    monkeypatch.delenv("OPENAI_BASE_URL", raising=False)

    config = AppConfig.from_env()

    assert config.backend == "webhook"
    assert config.webhook.url == "https://hooks.example.com/chat"
    assert config.telegram.allowed_user_ids == [42]
    assert config.assistant.base_url == DEFAULT_OPENAI_BASE_URL
    assert config.chat.suggested_questions == DEFAULT_SUGGESTED_QUESTIONS


def test_rejects_unknown_backend() -> None:
    with pytest.raises(ConfigError, match="backend must be one of"):
        AppConfig(backend="carrier-pigeon")


def test_rejects_non_positive_poll_bounds() -> None:
    with pytest.raises(ConfigError):
        AppConfig(assistant=AssistantConfig(max_poll_attempts=0))
    with pytest.raises(ConfigError):
        AppConfig(assistant=AssistantConfig(poll_interval_seconds=0))


def test_rejects_bad_user_ids(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TELEGRAM_ALLOWED_USER_IDS", "42,abc")
    with pytest.raises(ConfigError, match="integers"):
        AppConfig.from_env()


def test_rejects_unknown_keys(tmp_path: Path) -> None:
    path = tmp_path / "bad.yaml"
    path.write_text("assistant:\n  model: gpt\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(path)


def test_build_backend_selects_implementation() -> None:
    assert isinstance(build_backend(AppConfig()), AssistantConversationClient)
    webhook = AppConfig(backend="webhook", webhook=WebhookConfig(url="https://hooks.example.com"))
    assert isinstance(build_backend(webhook), WebhookChatClient)


def test_scalar_user_id_in_yaml(tmp_path: Path) -> None:
    path = tmp_path / "single.yaml"
    path.write_text("telegram:\n  bot_token: tg\n  allowed_user_ids: 42\n", encoding="utf-8")

    assert load_config(path).telegram.allowed_user_ids == [42]


def test_non_integer_user_id_in_yaml_is_config_error(tmp_path: Path) -> None:
    path = tmp_path / "bad_ids.yaml"
    path.write_text("telegram:\n  allowed_user_ids: {admin: 1}\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="integers"):
        load_config(path)
