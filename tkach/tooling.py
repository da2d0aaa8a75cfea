"""Tool interfaces, cancellation, approval gates, policies and the tool registry."""

from __future__ import annotations

import abc
import asyncio
import enum
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Iterator

logger = logging.getLogger(__name__)


class CancellationToken:
    """Cooperative cancellation signal shared between an agent run and its tools."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        """Fire the signal. Calling it again has no further effect."""
        self._event.set()

    def is_cancelled(self) -> bool:
        return self._event.is_set()

    async def cancelled(self) -> None:
        """Wait until the signal fires."""
        await self._event.wait()


class ToolClass(enum.Enum):
    """How a tool may be scheduled alongside others.

    Read-only tools may run concurrently; mutating tools run one at a time.
    """

    READ_ONLY = "read_only"
    MUTATING = "mutating"


@dataclass
class ToolOutput:
    """What a tool hands back to the model."""

    content: str
    is_error: bool = False

    @classmethod
    def text(cls, content: str) -> ToolOutput:
        """Successful output."""
        return cls(content)

    @classmethod
    def error(cls, content: str) -> ToolOutput:
        """Output the model should read as a failure."""
        return cls(content, True)


@dataclass
class ToolCall:
    """A single tool invocation decoded from a model's tool_use block."""

    id: str
    name: str
    input: Any = field(default_factory=dict)


@dataclass(kw_only=True)
class ToolContext:
    """Environment a tool runs in."""

    working_dir: Path
    cancel: CancellationToken
    depth: int = 0
    max_depth: int = 1
    executor: Any = None


class Tool(abc.ABC):
    """A capability the model can invoke.

    Subclasses provide ``name``, ``description`` and ``input_schema``
    (as attributes or properties) and may override ``tool_class``.
    """

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Name the model uses to call the tool."""

    @property
    @abc.abstractmethod
    def description(self) -> str:
        """What the tool does, shown to the model."""

    @property
    @abc.abstractmethod
    def input_schema(self) -> Any:
        """JSON schema of the tool's input."""

    @property
    def tool_class(self) -> ToolClass:
        """Scheduling class; mutating unless overridden."""
        return ToolClass.MUTATING

    @abc.abstractmethod
    async def execute(self, input: Any, ctx: ToolContext) -> ToolOutput:
        """Run the tool. Failures are raised as ``ToolError``."""


@dataclass(frozen=True)
class ApprovalDecision:
    """Outcome of an approval request: allowed, or denied with a reason."""

    reason: str | None = None

    @classmethod
    def allow(cls) -> ApprovalDecision:
        return cls()

    @classmethod
    def deny(cls, reason: str) -> ApprovalDecision:
        return cls(reason)

    @property
    def allowed(self) -> bool:
        return self.reason is None


class ApprovalHandler(abc.ABC):
    """Dynamic gate asked before each specific tool call."""

    @abc.abstractmethod
    async def approve(self, tool_name: str, input: Any, tool_class: ToolClass) -> ApprovalDecision:
        """Decide whether this call, with these arguments, may run."""


class AutoApprove(ApprovalHandler):
    """Approves every call."""

    async def approve(self, tool_name: str, input: Any, tool_class: ToolClass) -> ApprovalDecision:
        return ApprovalDecision.allow()


class ToolPolicy(abc.ABC):
    """Static gate deciding by name whether a tool may run at all."""

    @abc.abstractmethod
    def is_allowed(self, tool_name: str) -> bool:
        """Whether the named tool may be invoked."""


class AllowAll(ToolPolicy):
    """Every tool is allowed."""

    def is_allowed(self, tool_name: str) -> bool:
        return True


class ToolRegistry:
    """Name-keyed collection of tools.

    When two tools share a name the later one wins and a warning is logged.
    """

    def __init__(self, tools: Iterable[Tool] = ()) -> None:
        self._tools: dict[str, Tool] = {}
        for tool in tools:
            if tool.name in self._tools:
                logger.warning(
                    "duplicate tool name %r in registry; later registration overrode earlier",
                    tool.name,
                )
            self._tools[tool.name] = tool

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def __iter__(self) -> Iterator[Tool]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)