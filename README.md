# tkach

Building blocks for an asyncio LLM agent runtime that is not tied to any one
provider. The package has five modules:

- `tkach.message`: the conversation model
- `tkach.provider`: the provider interface and its request and response types
- `tkach.errors`: a typed error hierarchy
- `tkach.tooling`: tools, cancellation, approval gates and policies
- `tkach.executor`: the executor that runs the tool calls a model asks for

Nothing keeps conversation state. You own the history and pass it in whenever
you need it.

## Installation

```
pip install tkach
```

To run the test suite:

```
pip install "tkach[test]"
pytest
```

## Messages (`tkach.message`)

```python
from tkach.message import Message, Usage, text, text_cached, tool_result

history = [Message.user_text("What files are in the current directory?")]

# Mark a block as a prompt-cache breakpoint (default lifetime, 5 minutes).
history.append(Message.user([text_cached("Long, stable context ...")]))

wire = [m.to_dict() for m in history]
restored = [Message.from_dict(d) for d in wire]
```

Content blocks:

- `TextContent` is a block of text with an optional `CacheControl`.
- `ToolUseContent` is a tool call requested by the model, with `id`, `name` and `input`.
- `ToolResultContent` carries `tool_use_id`, `content`, `is_error` and an optional `CacheControl`.

`content_from_dict` builds any of the three from its tagged dictionary form. It
raises `ValueError` for an unknown `type` or a missing field.

A `Message` has:

- a `Role` (`USER` or `ASSISTANT`)
- a list of blocks
- `text()`, which joins all of its text blocks
- `tool_uses()`, which returns `(id, name, input)` tuples

`CacheControl.ephemeral()` and `CacheControl.ephemeral_1h()` create cache
breakpoints. On the wire, a `ttl` of `None` means five minutes.

`StopReason` lists why a model stopped: `END_TURN`, `TOOL_USE`, `MAX_TOKENS`,
`STOP_SEQUENCE`, `PAUSE_TURN` and `CANCELLED`. No provider reports
`CANCELLED`. It is meant for runtime use.

`Usage` holds token counts. There are two ways to combine them:

- `Usage.add` sums counts across turns. Each field saturates at the 32-bit
  unsigned maximum.
- `Usage.merge_max` combines several reports for the same turn by keeping the
  larger value of each field.

## Providers (`tkach.provider`)

To add a provider, subclass `LlmProvider` and implement two async methods:

- `complete(request)` returns a `Response`, which has `content`,
  `stop_reason` and `usage`.
- `stream(request)` returns an async iterator of events.

A `Request` takes keyword arguments only:

- `model`
- `messages`
- `max_tokens`
- optional `system`, a list of `SystemBlock`
- `tools`, a list of `ToolDefinition`
- optional `temperature`

`SystemBlock.text_block`, `SystemBlock.cached` and `SystemBlock.cached_1h` build
system prompt blocks. `ToolDefinition.to_dict` and `SystemBlock.to_dict` give
the wire shape. These omit `cache_control` when it is unset.

## Errors (`tkach.errors`)

Providers raise subclasses of `ProviderError`. Each one classifies itself
through `is_retryable()` and `retry_after()`. The second returns a `timedelta`
or `None`.

| Error | Retryable | `retry_after()` |
| --- | --- | --- |
| `HttpError` | when its `HttpErrorKind` is `TIMEOUT`, `CONNECT`, `BODY` or `REQUEST` | `None` |
| `ApiError` | per its `retryable` flag | `None` |
| `OverloadedError` | always | the server's hint (`retry_after_ms`) |
| `RateLimitError` | always | the server's hint (`retry_after_ms`) |
| `DeserializationError` | never | `None` |
| `BatchNotReadyError` | never | `None` |
| `OtherProviderError` | never | `None` |

```python
from tkach.errors import ProviderError

try:
    response = await provider.complete(request)
except ProviderError as err:
    if err.is_retryable():
        delay = err.retry_after()  # timedelta or None
```

Tools raise `ToolError` subclasses:

- `ToolIoError`
- `InvalidInputError`
- `ToolCancelledError`
- `ToolExecutionError`

There are also `AgentError` subclasses for an agent loop to raise:

- `MaxTurnsReachedError`
- `AgentProviderError`
- `AgentCancelledError`
- `AgentToolError`

Each one carries a `partial` attribute for the progress made before the
failure.

## Tools (`tkach.tooling`)

A tool subclasses `Tool`. It provides `name`, `description` and `input_schema`
and implements `async execute(input, ctx)`. `execute` returns a `ToolOutput`,
built with `ToolOutput.text` or `ToolOutput.error`. Tools are `MUTATING` by
default. Override the `tool_class` property to return `ToolClass.READ_ONLY`.

```python
from pathlib import Path
from tkach.tooling import CancellationToken, Tool, ToolClass, ToolContext, ToolOutput

class Echo(Tool):
    name = "echo"
    description = "Echo the message back"
    input_schema = {"type": "object", "properties": {"msg": {"type": "string"}}}

    @property
    def tool_class(self) -> ToolClass:
        return ToolClass.READ_ONLY

    async def execute(self, input, ctx):
        return ToolOutput.text(input.get("msg", ""))

ctx = ToolContext(working_dir=Path("."), cancel=CancellationToken())
```

`ToolRegistry` keys tools by name. If two tools share a name, the later one
wins and a warning is logged.

`ToolPolicy.is_allowed(name)` is a static gate. `AllowAll` permits every tool.

`ApprovalHandler.approve(tool_name, input, tool_class)` is a dynamic gate,
asked before each call. It returns `ApprovalDecision.allow()` or
`ApprovalDecision.deny(reason)`. `AutoApprove` approves every call.

`CancellationToken` is a cooperative signal with three members:

- `cancel()`
- `is_cancelled()`
- `await cancelled()`

## Dispatch (`tkach.executor`)

```python
from tkach.executor import ToolExecutor
from tkach.tooling import AllowAll, AutoApprove, ToolCall, ToolRegistry

executor = ToolExecutor(ToolRegistry([Echo()]), AllowAll(), AutoApprove())
results = await executor.execute_batch(
    [ToolCall("1", "echo", {"msg": "hi"})], ctx
)
```

`execute_one` always returns a `ToolResultContent`. Each of these becomes a
result with `is_error` set:

- a policy denial
- a missing tool
- an approval denial, whose reason is kept in the text
- a raised `ToolError`

The approval request races the context's cancellation token. If the token
fires first, the call ends with a "cancelled while awaiting approval" error.

`execute_batch` runs consecutive read-only calls concurrently. All other calls
run one at a time. Results come back in input order. Once the token fires, no
new call starts. Each remaining call gets a "cancelled before execution" error
result, so every tool use still has a matching tool result.

## What this package does not do

- It has no agent loop. Nothing here sends a request, runs the returned tool
  calls and repeats. You write that loop yourself from `LlmProvider`,
  `ToolExecutor` and the `AgentError` types.
- It ships no concrete provider, so it makes no network calls.
- It ships no ready-made tools such as shell, file or search tools.
- It defines no stream event types. `LlmProvider.stream` can yield whatever
  event objects your provider defines.
- It offers no command-line interface.