"""Building blocks for an LLM agent runtime: messages, provider interface, errors and tool dispatch."""

__version__ = "0.3.0"

__all__ = ["errors", "executor", "message", "provider", "tooling"]