"""Tool dispatch through a registry, gated by a policy and an approval handler."""

from __future__ import annotations

import asyncio
from typing import Sequence

from tkach.errors import ToolError
from tkach.message import ToolResultContent, tool_result
from tkach.tooling import (
    AllowAll,
    ApprovalHandler,
    AutoApprove,
    ToolCall,
    ToolClass,
    ToolContext,
    ToolPolicy,
    ToolRegistry,
)


class ToolExecutor:
    """Runs tool calls against a registry.

    Every call yields a tool_result block. Policy denial, approval denial,
    a missing tool and a tool failure all come back as results with
    ``is_error`` set, so the model can observe the problem and adapt.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        policy: ToolPolicy | None = None,
        approval: ApprovalHandler | None = None,
    ) -> None:
        self._registry = registry
        self._policy = policy if policy is not None else AllowAll()
        self._approval = approval if approval is not None else AutoApprove()

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    async def execute_one(self, call: ToolCall, ctx: ToolContext) -> ToolResultContent:
        """Run a single call and return its tool_result block."""
        if not self._policy.is_allowed(call.name):
            return tool_result(
                call.id, f"Error: tool '{call.name}' is not allowed by policy", True
            )

        tool = self._registry.get(call.name)
        if tool is None:
            return tool_result(call.id, f"Error: tool '{call.name}' not found", True)

        cancelled_result = tool_result(call.id, "Error: cancelled while awaiting approval", True)
        if ctx.cancel.is_cancelled():
            return cancelled_result

        approve_task = asyncio.ensure_future(
            self._approval.approve(call.name, call.input, tool.tool_class)
        )
        cancel_task = asyncio.ensure_future(ctx.cancel.cancelled())
        try:
            done, _ = await asyncio.wait(
                {approve_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for task in (approve_task, cancel_task):
                if not task.done():
                    task.cancel()

        # Cancellation wins even if approval finished at the same moment.
        if cancel_task in done:
            return cancelled_result

        decision = approve_task.result()
        if not decision.allowed:
            return tool_result(call.id, f"Error: approval denied — {decision.reason}", True)

        try:
            output = await tool.execute(call.input, ctx)
        except ToolError as exc:
            return tool_result(call.id, f"Error: {exc}", True)
        return tool_result(call.id, output.content, output.is_error)

    async def execute_batch(
        self, calls: Sequence[ToolCall], ctx: ToolContext
    ) -> list[ToolResultContent]:
        """Run calls in order, returning results in the input order.

        Consecutive read-only calls run concurrently; every other call runs
        on its own. Once cancellation fires, calls not yet started receive a
        synthetic error result instead of running.
        """
        runs: list[tuple[bool, list[ToolCall]]] = []
        for call in calls:
            read_only = self._classify(call) is ToolClass.READ_ONLY
            if read_only and runs and runs[-1][0]:
                runs[-1][1].append(call)
            else:
                runs.append((read_only, [call]))

        results: list[ToolResultContent] = []
        for position, (_, run) in enumerate(runs):
            if ctx.cancel.is_cancelled():
                results.extend(
                    tool_result(call.id, "Error: cancelled before execution", True)
                    for _, remaining in runs[position:]
                    for call in remaining
                )
                return results
            if len(run) == 1:
                results.append(await self.execute_one(run[0], ctx))
            else:
                results.extend(
                    await asyncio.gather(*(self.execute_one(call, ctx) for call in run))
                )
        return results

    def _classify(self, call: ToolCall) -> ToolClass:
        # Denied or missing tools fail instantly, so running them alone costs nothing.
        if not self._policy.is_allowed(call.name):
            return ToolClass.MUTATING
        tool = self._registry.get(call.name)
        return tool.tool_class if tool is not None else ToolClass.MUTATING