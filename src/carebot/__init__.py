"""Health-advice chat bot over an assistant thread/run API or a workflow webhook."""

from carebot.types import ChatReply, ConversationHandle, FailureKind, RunStatus

__all__ = ["ChatReply", "ConversationHandle", "FailureKind", "RunStatus"]
