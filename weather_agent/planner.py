"""Planner — one user turn: completion → optional tool call → formatted answer.

plan() never raises for ordinary failures; configuration problems, upstream
errors and cancellation all come back as a TurnResult the session can print.
"""
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from .cancellation import CancelToken, run_cancellable
from .errors import ConfigurationError, OperationCancelled, UpstreamCompletionError
from .llm import ChatCompletion, ExecutionOptions
from .tools.directive import parse_directive
from .tools.executor import ToolInvoker
from .tools.registry import FunctionRegistry

logger = logging.getLogger(__name__)

MAX_HISTORY = 20

NO_RESPONSE = "No response generated."
CANCELLED_MESSAGE = "Request cancelled."
CONFIG_ERROR_PREFIX = "Configuration error:"
PLANNING_ERROR_PREFIX = "Planning error:"

NOT_FOUND_HINT = (
    "The chat service returned 404 Not Found. Verify that CHAT_ENDPOINT and CHAT_MODEL_ID "
    "match your model server's API (path and model name), and set CHAT_API_KEY if required."
)

SYSTEM_PROMPT = """You are a helpful weather assistant with access to tools for weather, location, and time information.
Today's date/time: {current_datetime}

Available tools:
{tool_list}

When a user asks a question:
1. Work out what information is needed.
2. If a tool provides it, write one line in exactly this format:
   CALL_TOOL: <tool_name> | param1=value1;param2=value2
   Use the tool name and parameter names from the list above. Only one tool call per answer is executed.
3. Otherwise answer directly with a clear, friendly, natural response."""


@dataclass
class TurnResult:
    type: str  # "answer" | "cancelled" | "config_error" | "error"
    text: str

    @property
    def ok(self) -> bool:
        return self.type == "answer"


def format_response(raw: str) -> str:
    """Trim every line, drop blank ones, rejoin."""
    lines = [line.strip() for line in raw.split("\n")]
    return "\n".join(line for line in lines if line).strip()


class Planner:
    def __init__(
        self,
        registry: FunctionRegistry,
        completion: Optional[ChatCompletion] = None,
        options: Optional[ExecutionOptions] = None,
        invoker: Optional[ToolInvoker] = None,
    ):
        self.registry = registry
        self.completion = completion
        self.options = options or ExecutionOptions()
        self.invoker = invoker or ToolInvoker(registry)
        self.history: List[Dict[str, str]] = []

    def reset(self):
        """Clear conversation history."""
        if self.history:
            logger.info(f"Conversation history cleared ({len(self.history)} messages)")
        self.history = []

    def system_prompt(self) -> str:
        now_str = datetime.now().strftime("%Y-%m-%d %H:%M:%S (%A)")
        tool_list = self.registry.tool_descriptions_for_llm() or "(none)"
        return SYSTEM_PROMPT.replace("{current_datetime}", now_str).replace("{tool_list}", tool_list)

    def build_transcript(self, user_query: str) -> List[Dict[str, str]]:
        return (
            [{"role": "system", "content": self.system_prompt()}]
            + list(self.history)
            + [{"role": "user", "content": user_query}]
        )

    def _remember(self, user_query: str, answer: str):
        self.history.append({"role": "user", "content": user_query})
        self.history.append({"role": "assistant", "content": answer})
        if len(self.history) > MAX_HISTORY:
            self.history[:] = self.history[-MAX_HISTORY:]

    def _get_completion(self) -> ChatCompletion:
        if self.completion is None:
            raise ConfigurationError(
                "Chat completion service is not configured. "
                "Check CHAT_ENDPOINT, CHAT_MODEL_ID and CHAT_API_KEY."
            )
        return self.completion

    async def plan(
        self,
        user_query: str,
        cancel: Optional[CancelToken] = None,
        clear_history: bool = False,
    ) -> TurnResult:
        t0 = time.monotonic()
        try:
            try:
                completion = self._get_completion()
            except ConfigurationError as e:
                logger.error(str(e))
                return TurnResult(type="config_error", text=f"{CONFIG_ERROR_PREFIX} {e}")

            if clear_history:
                self.reset()
            messages = self.build_transcript(user_query)

            logger.info(f"Model is analyzing the query ({len(messages)} messages)")
            raw = await run_cancellable(completion.complete(messages, self.options, cancel), cancel)
            if not raw or not raw.strip():
                raw = NO_RESPONSE
            logger.info(f"Completion raw: {raw[:200]!r}")

            invocation = parse_directive(raw)
            if invocation is None:
                merged = raw
            else:
                outcome = await self.invoker.invoke(invocation, cancel)
                if outcome.type == "cancelled":
                    raise OperationCancelled(f"tool {outcome.name} cancelled")
                merged = f"{raw}\n\n--- Tool result: {outcome.name} ---\n{outcome.display_text()}"

            answer = format_response(merged)
            self._remember(user_query, answer)
            return TurnResult(type="answer", text=answer)

        except OperationCancelled as e:
            logger.info(f"Turn cancelled: {e}")
            return TurnResult(type="cancelled", text=CANCELLED_MESSAGE)
        except UpstreamCompletionError as e:
            logger.error(f"Chat completion failed: {e}")
            if e.status_code == 404:
                logger.error(f"Hint: {NOT_FOUND_HINT}")
                return TurnResult(type="error", text=f"{PLANNING_ERROR_PREFIX} {e}. {NOT_FOUND_HINT}")
            return TurnResult(type="error", text=f"{PLANNING_ERROR_PREFIX} {e}")
        except Exception as e:
            logger.error(f"Error in plan: {type(e).__name__}: {e}", exc_info=True)
            return TurnResult(type="error", text=f"{PLANNING_ERROR_PREFIX} {type(e).__name__}: {e}")
        finally:
            logger.info(f"Turn total: {time.monotonic() - t0:.1f}s")
