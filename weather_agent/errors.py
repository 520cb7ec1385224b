"""Error types raised inside the agent core.

Tool lookup and invocation failures are not raised: they come back as
ToolOutcome values (see tools/executor.py).
"""
from typing import Optional


class AgentError(Exception):
    """Base class for agent errors."""


class ConfigurationError(AgentError):
    """Chat completion or providers are not configured."""


class UpstreamCompletionError(AgentError):
    """Network or HTTP failure talking to the chat-completion backend."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ProviderImportError(AgentError):
    """A single tool provider could not be imported."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class OperationCancelled(AgentError):
    """The shared cancel token fired while an operation was in flight."""
