from __future__ import annotations

import argparse
import asyncio
import logging

from carebot.backends import build_backend
from carebot.config import BACKEND_WEBHOOK, AppConfig, load_config
from carebot.service import ChatService
from carebot.telegram.bot import TelegramBotApp

LOGGER = logging.getLogger(__name__)


def resolve_config(config_path: str | None) -> AppConfig:
    if config_path:
        return load_config(config_path)
    return AppConfig.from_env()


def warn_if_unconfigured(config: AppConfig) -> None:
    if config.backend == BACKEND_WEBHOOK:
        if not config.webhook.url:
            LOGGER.warning("Webhook URL is not configured; every reply will be the fallback message")
    elif not config.assistant.api_key or not config.assistant.assistant_id:
        LOGGER.warning("OpenAI API key or assistant id is not configured; every reply will be the fallback message")


async def run_bot(config: AppConfig) -> None:
    warn_if_unconfigured(config)
    service = ChatService(build_backend(config))
    bot = TelegramBotApp(config=config, service=service)
    await bot.run_forever()


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", default=None, help="YAML config file; environment variables when omitted")
    parser.add_argument("--log-level", default="INFO")


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the carebot Telegram bot")
    add_common_arguments(parser)
    args = parser.parse_args()
    logging.basicConfig(level=args.log_level.upper())
    asyncio.run(run_bot(resolve_config(args.config)))


if __name__ == "__main__":
    main()
