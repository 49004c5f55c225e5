from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

ConversationHandle = str


class RunStatus(str, Enum):
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: object) -> "RunStatus":
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN

    @property
    def is_pending(self) -> bool:
        return self in (RunStatus.QUEUED, RunStatus.IN_PROGRESS)


class FailureKind(str, Enum):
    CONFIGURATION = "configuration"
    TRANSPORT = "transport"
    RUN_FAILED = "run_failed"
    TIMEOUT = "timeout"
    MISSING_RESPONSE = "missing_response"
    UNEXPECTED_STATUS = "unexpected_status"


@dataclass(frozen=True)
class ChatReply:
    reply: str
    conversation_handle: Optional[ConversationHandle] = None
    failure: Optional[FailureKind] = None

    @property
    def ok(self) -> bool:
        return self.failure is None
