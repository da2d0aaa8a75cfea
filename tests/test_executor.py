import asyncio
import time
from pathlib import Path

import pytest

from tkach.errors import ToolExecutionError
from tkach.executor import ToolExecutor
from tkach.message import ToolResultContent
from tkach.tooling import (
    AllowAll,
    ApprovalDecision,
    ApprovalHandler,
    CancellationToken,
    Tool,
    ToolCall,
    ToolClass,
    ToolOutput,
    ToolPolicy,
    ToolRegistry,
)
from tkach.tooling import ToolContext


class Echo(Tool):
    name = "echo"
    description = "echo"
    input_schema = {}

    @property
    def tool_class(self):
        return ToolClass.READ_ONLY

    async def execute(self, input, ctx):
        return ToolOutput.text(input.get("msg", ""))


class SlowRO(Tool):
    description = "slow"
    input_schema = {}

    def __init__(self, label, log=None):
        self.label = label
        self.log = log

    @property
    def name(self):
        return self.label

    @property
    def tool_class(self):
        return ToolClass.READ_ONLY

    async def execute(self, input, ctx):
        await asyncio.sleep(input.get("delay_ms", 0) / 1000)
        if self.log is not None:
            self.log.append(self.label)
        return ToolOutput.text(self.label)


class OrderingMut(Tool):
    description = "mut"
    input_schema = {}

    def __init__(self, label):
        self.label = label

    @property
    def name(self):
        return self.label

    async def execute(self, input, ctx):
        return ToolOutput.text(self.label)


class FlagSetter(Tool):
    description = "flag"
    input_schema = {}

    def __init__(self, label):
        self.label = label
        self.ran = False

    @property
    def name(self):
        return self.label

    async def execute(self, input, ctx):
        self.ran = True
        return ToolOutput.text("ran")


class Failing(Tool):
    name = "fail"
    description = "fails"
    input_schema = {}

    async def execute(self, input, ctx):
        raise ToolExecutionError("boom")


class SoftError(Tool):
    name = "soft"
    description = "reports an error output"
    input_schema = {}

    async def execute(self, input, ctx):
        return ToolOutput.error("bad thing")


class DenyNamed(ToolPolicy):
    def __init__(self, denied):
        self.denied = denied

    def is_allowed(self, tool_name):
        return tool_name != self.denied


class AlwaysDeny(ApprovalHandler):
    def __init__(self, reason):
        self.reason = reason

    async def approve(self, tool_name, input, tool_class):
        return ApprovalDecision.deny(self.reason)


class SlowApproval(ApprovalHandler):
    async def approve(self, tool_name, input, tool_class):
        await asyncio.sleep(10)
        return ApprovalDecision.allow()


def empty_executor():
    return ToolExecutor(ToolRegistry([]), AllowAll())


def make_ctx(cancel=None):
    return ToolContext(
        working_dir=Path("/tmp"),
        cancel=cancel if cancel is not None else CancellationToken(),
        depth=0,
        max_depth=1,
        executor=empty_executor(),
    )


def call(name, input, call_id="id"):
    return ToolCall(call_id, name, input)


@pytest.mark.asyncio
async def test_allow_all_runs_tool():
    exec_ = ToolExecutor(ToolRegistry([Echo()]), AllowAll())
    res = await exec_.execute_one(call("echo", {"msg": "hi"}), make_ctx())
    assert isinstance(res, ToolResultContent)
    assert res.is_error is False
    assert res.content == "hi"
    assert res.tool_use_id == "id"


@pytest.mark.asyncio
async def test_missing_tool_returns_error_result():
    exec_ = ToolExecutor(ToolRegistry([]), AllowAll())
    res = await exec_.execute_one(call("ghost", {}), make_ctx())
    assert res.is_error is True
    assert "not found" in res.content


@pytest.mark.asyncio
async def test_policy_denial_returns_error_result():
    exec_ = ToolExecutor(ToolRegistry([Echo()]), DenyNamed("echo"))
    res = await exec_.execute_one(call("echo", {"msg": "hi"}), make_ctx())
    assert res.is_error is True
    assert "not allowed" in res.content


@pytest.mark.asyncio
async def test_tool_error_becomes_error_result():
    exec_ = ToolExecutor(ToolRegistry([Failing()]))
    res = await exec_.execute_one(call("fail", {}), make_ctx())
    assert res.is_error is True
    assert res.content == "Error: boom"


@pytest.mark.asyncio
async def test_error_output_keeps_error_flag():
    exec_ = ToolExecutor(ToolRegistry([SoftError()]))
    res = await exec_.execute_one(call("soft", {}), make_ctx())
    assert res.is_error is True
    assert res.content == "bad thing"


@pytest.mark.asyncio
async def test_empty_batch_returns_empty_list():
    exec_ = ToolExecutor(ToolRegistry([Echo()]))
    assert await exec_.execute_batch([], make_ctx()) == []


@pytest.mark.asyncio
async def test_batch_preserves_order_despite_parallel_ro():
    log = []
    exec_ = ToolExecutor(ToolRegistry([SlowRO("a", log), SlowRO("b", log)]), AllowAll())
    calls = [
        ToolCall("1", "a", {"delay_ms": 50}),
        ToolCall("2", "b", {"delay_ms": 0}),
    ]
    start = time.monotonic()
    results = await exec_.execute_batch(calls, make_ctx())
    elapsed = time.monotonic() - start

    assert [r.content for r in results] == ["a", "b"]
    assert [r.tool_use_id for r in results] == ["1", "2"]
    # "b" finished first, proving the read-only run was concurrent.
    assert log == ["b", "a"]
    assert elapsed < 0.15


@pytest.mark.asyncio
async def test_batch_partitions_ro_and_mut_runs():
    exec_ = ToolExecutor(
        ToolRegistry([SlowRO("a"), SlowRO("b"), OrderingMut("m"), SlowRO("c")]),
        AllowAll(),
    )
    calls = [
        ToolCall("1", "a", {"delay_ms": 10}),
        ToolCall("2", "b", {"delay_ms": 10}),
        ToolCall("3", "m", {}),
        ToolCall("4", "c", {"delay_ms": 10}),
    ]
    results = await exec_.execute_batch(calls, make_ctx())
    assert len(results) == 4
    assert [r.content for r in results] == ["a", "b", "m", "c"]


@pytest.mark.asyncio
async def test_batch_with_missing_tool_keeps_positions():
    exec_ = ToolExecutor(ToolRegistry([SlowRO("a"), SlowRO("b")]))
    calls = [
        ToolCall("1", "a", {}),
        ToolCall("2", "ghost", {}),
        ToolCall("3", "b", {}),
    ]
    results = await exec_.execute_batch(calls, make_ctx())
    assert [r.tool_use_id for r in results] == ["1", "2", "3"]
    assert [r.is_error for r in results] == [False, True, False]
    assert "not found" in results[1].content


@pytest.mark.asyncio
async def test_batch_stops_dispatching_after_cancel():
    m1 = FlagSetter("m1")
    m2 = FlagSetter("m2")
    exec_ = ToolExecutor(ToolRegistry([m1, m2]), AllowAll())
    cancel = CancellationToken()
    ctx = make_ctx(cancel)

    cancel.cancel()
    calls = [ToolCall("1", "m1", {}), ToolCall("2", "m2", {})]
    results = await exec_.execute_batch(calls, ctx)

    assert len(results) == 2
    assert [r.tool_use_id for r in results] == ["1", "2"]
    for r in results:
        assert r.is_error is True
        assert "cancelled before execution" in r.content
    assert m1.ran is False
    assert m2.ran is False


@pytest.mark.asyncio
async def test_approval_deny_emits_error_tool_result_and_skips_execution():
    observer = FlagSetter("observe")
    exec_ = ToolExecutor(
        ToolRegistry([observer]), AllowAll(), AlwaysDeny("blocked by user")
    )
    res = await exec_.execute_one(call("observe", {}), make_ctx())
    assert res.is_error is True
    assert "approval denied" in res.content
    assert "blocked by user" in res.content
    assert observer.ran is False


@pytest.mark.asyncio
async def test_approval_cancel_during_approve_short_circuits():
    exec_ = ToolExecutor(ToolRegistry([Echo()]), AllowAll(), SlowApproval())
    cancel = CancellationToken()
    ctx = make_ctx(cancel)

    async def fire():
        await asyncio.sleep(0.05)
        cancel.cancel()

    trigger = asyncio.create_task(fire())
    started = time.monotonic()
    res = await exec_.execute_one(call("echo", {"msg": "x"}), ctx)
    elapsed = time.monotonic() - started
    await trigger

    assert res.is_error is True
    assert "cancelled" in res.content
    assert elapsed < 1.0


def test_registry_property_returns_given_registry():
    registry = ToolRegistry([Echo()])
    exec_ = ToolExecutor(registry)
    assert exec_.registry is registry
    assert len(exec_.registry) == 1