"""Errors raised by providers, tools and agent runs."""

from __future__ import annotations

import enum
from datetime import timedelta
from typing import Any


class HttpErrorKind(enum.Enum):
    """Category of a transport-level failure."""

    TIMEOUT = "timeout"
    CONNECT = "connect"
    BODY = "body"
    REQUEST = "request"
    DECODE = "decode"
    BUILDER = "builder"
    REDIRECT = "redirect"
    OTHER = "other"


_TRANSIENT_KINDS = frozenset(
    {HttpErrorKind.TIMEOUT, HttpErrorKind.CONNECT, HttpErrorKind.BODY, HttpErrorKind.REQUEST}
)


class ProviderError(Exception):
    """Failure reported by an LLM provider.

    Providers only classify; retry policy belongs to the caller.
    """

    def is_retryable(self) -> bool:
        """Whether the same request may be sent again after a backoff."""
        return False

    def retry_after(self) -> timedelta | None:
        """Wait suggested by the server, if any."""
        return None


class HttpError(ProviderError):
    """Transport failure; transient kinds are retryable."""

    def __init__(self, message: str, kind: HttpErrorKind = HttpErrorKind.OTHER) -> None:
        super().__init__(f"HTTP error: {message}")
        self.message = message
        self.kind = kind

    def is_retryable(self) -> bool:
        return self.kind in _TRANSIENT_KINDS


class ApiError(ProviderError):
    """API-level error with an explicit HTTP status."""

    def __init__(self, status: int, message: str, retryable: bool) -> None:
        super().__init__(f"API error ({status}): {message}")
        self.status = status
        self.message = message
        self.retryable = retryable

    def is_retryable(self) -> bool:
        return self.retryable


class _RetryAfterError(ProviderError):
    _label = ""

    def __init__(self, retry_after_ms: int | None = None) -> None:
        hint = f"{retry_after_ms}ms" if retry_after_ms is not None else "unknown"
        super().__init__(f"{self._label} (retry after: {hint})")
        self.retry_after_ms = retry_after_ms

    def is_retryable(self) -> bool:
        return True

    def retry_after(self) -> timedelta | None:
        if self.retry_after_ms is None:
            return None
        return timedelta(milliseconds=self.retry_after_ms)


class OverloadedError(_RetryAfterError):
    """Server temporarily overloaded; always retryable."""

    _label = "overloaded"


class RateLimitError(_RetryAfterError):
    """Rate limit exceeded; always retryable."""

    _label = "rate limited"


class DeserializationError(ProviderError):
    """A successful response whose body could not be parsed."""

    def __init__(self, message: str) -> None:
        super().__init__(f"deserialization error: {message}")
        self.message = message


class BatchNotReadyError(ProviderError):
    """Batch results requested before the batch ended."""

    def __init__(self, status: str) -> None:
        super().__init__(f"batch not ready (status: {status})")
        self.status = status


class OtherProviderError(ProviderError):
    """Provider-specific error that fits no other category."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ToolError(Exception):
    """Failure raised by a tool."""


class ToolIoError(ToolError):
    def __init__(self, message: str) -> None:
        super().__init__(f"IO error: {message}")
        self.message = message


class InvalidInputError(ToolError):
    def __init__(self, message: str) -> None:
        super().__init__(f"invalid input: {message}")
        self.message = message


class ToolCancelledError(ToolError):
    """The cooperative cancellation signal fired before the tool finished."""

    def __init__(self) -> None:
        super().__init__("cancelled")


class ToolExecutionError(ToolError):
    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class AgentError(Exception):
    """Failure of an agent run; ``partial`` holds the progress made before it."""

    def __init__(self, message: str, partial: Any) -> None:
        super().__init__(message)
        self.partial = partial


class MaxTurnsReachedError(AgentError):
    def __init__(self, turns: int, partial: Any) -> None:
        super().__init__(f"max turns ({turns}) reached without completion", partial)
        self.turns = turns


class AgentProviderError(AgentError):
    def __init__(self, source: ProviderError, partial: Any) -> None:
        super().__init__(f"provider error: {source}", partial)
        self.source = source
        self.__cause__ = source


class AgentCancelledError(AgentError):
    def __init__(self, partial: Any) -> None:
        super().__init__("cancelled", partial)


class AgentToolError(AgentError):
    def __init__(self, tool_name: str, source: ToolError, partial: Any) -> None:
        super().__init__(f"tool '{tool_name}' failed: {source}", partial)
        self.tool_name = tool_name
        self.source = source
        self.__cause__ = source