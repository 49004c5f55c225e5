from __future__ import annotations

from dataclasses import dataclass

CALLBACK_PREFIX = "suggest"
ACTION_NAV = "nav"
ACTION_ASK = "ask"


@dataclass(frozen=True)
class SuggestionAction:
    action: str
    index: int


class SuggestionCarousel:
    def __init__(self, questions: list[str]) -> None:
        self._questions = [q.strip() for q in questions if q and q.strip()]

    def __len__(self) -> int:
        return len(self._questions)

    def question(self, index: int) -> str:
        return self._questions[index]

    def next_index(self, index: int) -> int:
        return (index + 1) % len(self._questions)

    def prev_index(self, index: int) -> int:
        return (index - 1 + len(self._questions)) % len(self._questions)

    def caption(self, index: int) -> str:
        return f"Suggested question {index + 1}/{len(self)}:\n{self.question(index)}"

    def parse_callback_data(self, data: str | None) -> SuggestionAction | None:
        if not data:
            return None
        parts = data.split(":")
        if len(parts) != 3 or parts[0] != CALLBACK_PREFIX or parts[1] not in (ACTION_NAV, ACTION_ASK):
            return None
        try:
            index = int(parts[2])
        except ValueError:
            return None
        if not 0 <= index < len(self):
            return None
        return SuggestionAction(action=parts[1], index=index)


def callback_data(action: str, index: int) -> str:
    return f"{CALLBACK_PREFIX}:{action}:{index}"
