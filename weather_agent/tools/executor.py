"""Tool executor — resolves a parsed directive and runs its invoker.

invoke() never raises: lookup misses, invoker failures and cancellation all
come back as a ToolOutcome.
"""
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from ..cancellation import CancelToken, run_cancellable
from ..errors import OperationCancelled
from .directive import ParsedInvocation
from .registry import FunctionRegistry

logger = logging.getLogger(__name__)


@dataclass
class ToolOutcome:
    type: str  # "success" | "not_found" | "error" | "cancelled"
    name: str
    text: str = ""

    @property
    def ok(self) -> bool:
        return self.type == "success"

    def display_text(self) -> str:
        """Text embedded in the final answer."""
        if self.type == "not_found":
            return f"Tool '{self.name}' not found."
        if self.type == "error":
            return f"Invocation error ({self.name}): {self.text}"
        if self.type == "cancelled":
            return f"Tool '{self.name}' was cancelled."
        return self.text


def normalize_result(value: Any) -> str:
    """Best-effort text projection of an invoker's return value."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, (dict, list, tuple)):
        try:
            return json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError):
            return str(value)
    return str(value)


def _error_message(e: Exception) -> str:
    if isinstance(e, httpx.HTTPStatusError):
        return f"HTTP {e.response.status_code} {e.response.reason_phrase} from {e.request.url}"
    return str(e) or type(e).__name__


class ToolInvoker:
    def __init__(self, registry: FunctionRegistry):
        self.registry = registry

    async def invoke(self, invocation: ParsedInvocation, cancel: Optional[CancelToken] = None) -> ToolOutcome:
        name = invocation.tool_name
        tool = self.registry.lookup(name)
        if tool is None:
            logger.warning(f"Unknown tool: {name}")
            return ToolOutcome(type="not_found", name=name)

        arg_str = ", ".join(f"{k}={v!r}" for k, v in invocation.parameters.items())
        logger.info(f"Executing tool: {tool.qualified_name}({arg_str})")
        t0 = time.monotonic()

        try:
            raw = await run_cancellable(tool.invoker(dict(invocation.parameters), cancel), cancel)
            outcome = ToolOutcome(type="success", name=tool.name, text=normalize_result(raw))
        except OperationCancelled:
            outcome = ToolOutcome(type="cancelled", name=tool.name)
        except Exception as e:
            logger.error(f"Tool {tool.qualified_name} failed: {type(e).__name__}: {e}")
            outcome = ToolOutcome(type="error", name=tool.name, text=_error_message(e))

        elapsed = time.monotonic() - t0
        logger.info(f"Tool {tool.qualified_name}: {elapsed:.1f}s -> {outcome.type}")
        return outcome
