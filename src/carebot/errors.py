from __future__ import annotations

from carebot.types import FailureKind


class CarebotError(RuntimeError):
    pass


class ConfigError(CarebotError):
    pass


class ChatBackendError(CarebotError):
    """A failed chat turn; ``kind`` says which step gave up."""

    kind: FailureKind = FailureKind.TRANSPORT


class BackendConfigurationError(ChatBackendError):
    kind = FailureKind.CONFIGURATION


class BackendTransportError(ChatBackendError):
    kind = FailureKind.TRANSPORT


class RunFailedError(ChatBackendError):
    kind = FailureKind.RUN_FAILED


class RunTimeoutError(ChatBackendError):
    kind = FailureKind.TIMEOUT


class MissingResponseError(ChatBackendError):
    kind = FailureKind.MISSING_RESPONSE


class UnexpectedRunStatusError(ChatBackendError):
    kind = FailureKind.UNEXPECTED_STATUS
