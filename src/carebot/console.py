from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Callable, TextIO

from carebot.app import add_common_arguments, resolve_config, warn_if_unconfigured
from carebot.backends import build_backend
from carebot.config import AppConfig
from carebot.service import ChatService

CONSOLE_CHAT_ID = 0


async def run_console(
    config: AppConfig,
    service: ChatService | None = None,
    read_line: Callable[[str], str] = input,
    out: TextIO = sys.stdout,
) -> None:
    """Interactive terminal chat; ``/reset`` starts over, ``/quit`` exits."""
    warn_if_unconfigured(config)
    service = service or ChatService(build_backend(config))

    print(f"bot> {config.chat.welcome_message}", file=out)
    for index, question in enumerate(config.chat.suggested_questions, start=1):
        print(f"  [{index}] {question}", file=out)

    while True:
        try:
            line = await asyncio.to_thread(read_line, "you> ")
        except EOFError:
            break

        text = line.strip()
        if not text:
            continue
        if text == "/quit":
            break
        if text == "/reset":
            service.reset(CONSOLE_CHAT_ID)
            print("bot> Started a new conversation.", file=out)
            continue
        if text.isdigit() and 1 <= int(text) <= len(config.chat.suggested_questions):
            text = config.chat.suggested_questions[int(text) - 1]
            print(f"you> {text}", file=out)

        reply = await service.ask(CONSOLE_CHAT_ID, text)
        print(f"bot> {reply.reply}", file=out)


def main() -> None:
    parser = argparse.ArgumentParser(description="Chat with carebot in the terminal")
    add_common_arguments(parser)
    args = parser.parse_args()
    logging.basicConfig(level=args.log_level.upper())
    asyncio.run(run_console(resolve_config(args.config)))


if __name__ == "__main__":
    main()
