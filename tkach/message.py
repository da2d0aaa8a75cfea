"""Conversation messages, content blocks, cache markers and token usage."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, fields
from typing import Any, Union

_U32_MAX = 2**32 - 1


class Role(str, enum.Enum):
    """Author of a message."""

    USER = "user"
    ASSISTANT = "assistant"


class CacheTtl(str, enum.Enum):
    """Lifetime of an ephemeral cache breakpoint."""

    FIVE_MINUTES = "5m"
    ONE_HOUR = "1h"


@dataclass(frozen=True)
class CacheControl:
    """Ephemeral cache breakpoint marking the end of a cached prefix.

    A ``ttl`` of ``None`` is equivalent on the wire to five minutes.
    """

    ttl: CacheTtl | None = None

    @classmethod
    def ephemeral(cls) -> CacheControl:
        """Breakpoint with the default five-minute lifetime."""
        return cls()

    @classmethod
    def ephemeral_1h(cls) -> CacheControl:
        """Breakpoint with a one-hour lifetime."""
        return cls(CacheTtl.ONE_HOUR)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": "ephemeral"}
        if self.ttl is not None:
            data["ttl"] = self.ttl.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CacheControl:
        kind = data.get("type")
        if kind != "ephemeral":
            raise ValueError(f"unknown cache_control type: {kind!r}")
        ttl = data.get("ttl")
        return cls(CacheTtl(ttl) if ttl is not None else None)


class StopReason(str, enum.Enum):
    """Why the model stopped generating.

    ``CANCELLED`` is produced only by the runtime, never by a provider.
    """

    END_TURN = "end_turn"
    TOOL_USE = "tool_use"
    MAX_TOKENS = "max_tokens"
    STOP_SEQUENCE = "stop_sequence"
    PAUSE_TURN = "pause_turn"
    CANCELLED = "cancelled"


@dataclass
class Usage:
    """Token counts reported by a provider call."""

    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_input_tokens: int = 0
    cache_read_input_tokens: int = 0

    def merge_max(self, other: Usage) -> None:
        """Keep the larger value of each field (several reports of one turn)."""
        for f in fields(self):
            setattr(self, f.name, max(getattr(self, f.name), getattr(other, f.name)))

    def add(self, other: Usage) -> None:
        """Sum each field, saturating at the 32-bit unsigned maximum."""
        for f in fields(self):
            total = getattr(self, f.name) + getattr(other, f.name)
            setattr(self, f.name, min(total, _U32_MAX))

    def to_dict(self) -> dict[str, int]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Usage:
        try:
            return cls(
                input_tokens=int(data["input_tokens"]),
                output_tokens=int(data["output_tokens"]),
                cache_creation_input_tokens=int(data.get("cache_creation_input_tokens", 0)),
                cache_read_input_tokens=int(data.get("cache_read_input_tokens", 0)),
            )
        except KeyError as exc:
            raise ValueError(f"usage is missing field {exc.args[0]!r}") from exc


@dataclass
class TextContent:
    """A block of text, optionally marked as a cache breakpoint."""

    text: str
    cache_control: CacheControl | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": "text", "text": self.text}
        if self.cache_control is not None:
            data["cache_control"] = self.cache_control.to_dict()
        return data


@dataclass
class ToolUseContent:
    """A tool invocation requested by the model."""

    id: str
    name: str
    input: Any = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"type": "tool_use", "id": self.id, "name": self.name, "input": self.input}


@dataclass
class ToolResultContent:
    """The outcome of a tool invocation, sent back to the model."""

    tool_use_id: str
    content: str
    is_error: bool = False
    cache_control: CacheControl | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": "tool_result",
            "tool_use_id": self.tool_use_id,
            "content": self.content,
        }
        if self.is_error:
            data["is_error"] = True
        if self.cache_control is not None:
            data["cache_control"] = self.cache_control.to_dict()
        return data


Content = Union[TextContent, ToolUseContent, ToolResultContent]


def _cache_from(data: dict[str, Any]) -> CacheControl | None:
    raw = data.get("cache_control")
    return CacheControl.from_dict(raw) if raw is not None else None


def content_from_dict(data: dict[str, Any]) -> Content:
    """Build a content block from its tagged dictionary form."""
    kind = data.get("type")
    try:
        if kind == "text":
            return TextContent(data["text"], _cache_from(data))
        if kind == "tool_use":
            return ToolUseContent(data["id"], data["name"], data["input"])
        if kind == "tool_result":
            return ToolResultContent(
                data["tool_use_id"],
                data["content"],
                bool(data.get("is_error", False)),
                _cache_from(data),
            )
    except KeyError as exc:
        raise ValueError(f"{kind} block is missing field {exc.args[0]!r}") from exc
    raise ValueError(f"unknown content type: {kind!r}")


def text(text: str) -> TextContent:
    """Plain text block."""
    return TextContent(text)


def text_cached(text: str) -> TextContent:
    """Text block marked as a cache breakpoint with the default lifetime."""
    return TextContent(text, CacheControl.ephemeral())


def tool_result(tool_use_id: str, content: str, is_error: bool = False) -> ToolResultContent:
    """Tool result block."""
    return ToolResultContent(tool_use_id, content, is_error)


@dataclass
class Message:
    """One turn of the conversation."""

    role: Role
    content: list[Content] = field(default_factory=list)

    @classmethod
    def user(cls, content: list[Content]) -> Message:
        return cls(Role.USER, list(content))

    @classmethod
    def user_text(cls, text: str) -> Message:
        return cls(Role.USER, [TextContent(text)])

    @classmethod
    def assistant(cls, content: list[Content]) -> Message:
        return cls(Role.ASSISTANT, list(content))

    def text(self) -> str:
        """All text blocks joined together."""
        return "".join(block.text for block in self.content if isinstance(block, TextContent))

    def tool_uses(self) -> list[tuple[str, str, Any]]:
        """All tool invocations as ``(id, name, input)`` tuples."""
        return [
            (block.id, block.name, block.input)
            for block in self.content
            if isinstance(block, ToolUseContent)
        ]

    def to_dict(self) -> dict[str, Any]:
        return {"role": self.role.value, "content": [block.to_dict() for block in self.content]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Message:
        try:
            role = Role(data["role"])
            blocks = data["content"]
        except KeyError as exc:
            raise ValueError(f"message is missing field {exc.args[0]!r}") from exc
        return cls(role, [content_from_dict(block) for block in blocks])