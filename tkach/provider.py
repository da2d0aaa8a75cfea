"""Provider request/response types and the provider interface."""

from __future__ import annotations

import abc
from dataclasses import dataclass, field
from typing import Any, AsyncIterator

from tkach.message import CacheControl, Content, Message, StopReason, Usage


@dataclass
class ToolDefinition:
    """A tool as advertised to the model."""

    name: str
    description: str
    input_schema: Any
    cache_control: CacheControl | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema,
        }
        if self.cache_control is not None:
            data["cache_control"] = self.cache_control.to_dict()
        return data


@dataclass
class SystemBlock:
    """One block of the system prompt, optionally a cache breakpoint."""

    text: str
    cache_control: CacheControl | None = None

    @classmethod
    def text_block(cls, text: str) -> SystemBlock:
        """Plain system block."""
        return cls(text)

    @classmethod
    def cached(cls, text: str) -> SystemBlock:
        """System block cached with the default lifetime."""
        return cls(text, CacheControl.ephemeral())

    @classmethod
    def cached_1h(cls, text: str) -> SystemBlock:
        """System block cached for one hour."""
        return cls(text, CacheControl.ephemeral_1h())

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"text": self.text}
        if self.cache_control is not None:
            data["cache_control"] = self.cache_control.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SystemBlock:
        if "text" not in data:
            raise ValueError("system block is missing field 'text'")
        raw = data.get("cache_control")
        return cls(data["text"], CacheControl.from_dict(raw) if raw is not None else None)


@dataclass(kw_only=True)
class Request:
    """A request to an LLM provider."""

    model: str
    messages: list[Message]
    max_tokens: int
    system: list[SystemBlock] | None = None
    tools: list[ToolDefinition] = field(default_factory=list)
    temperature: float | None = None


@dataclass
class Response:
    """A complete response from an LLM provider."""

    content: list[Content]
    stop_reason: StopReason
    usage: Usage = field(default_factory=Usage)


class LlmProvider(abc.ABC):
    """Interface of an LLM backend.

    ``complete`` returns a fully buffered response; ``stream`` yields
    incremental events. Failures are raised as ``ProviderError``.
    """

    @abc.abstractmethod
    async def complete(self, request: Request) -> Response:
        """Send the request and return the whole response."""

    @abc.abstractmethod
    async def stream(self, request: Request) -> AsyncIterator[Any]:
        """Send the request and return an async iterator of stream events."""