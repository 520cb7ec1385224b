"""Function registry — maps tool names to async invokers.

Entries are reachable by bare name and by provider-qualified name
("weather.GetWeather"), both case-insensitive. First registration wins.
"""
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional

logger = logging.getLogger(__name__)

# (parameters, cancel_token) -> result of any shape
Invoker = Callable[[Mapping[str, str], Any], Awaitable[Any]]


@dataclass
class ToolParam:
    name: str
    type: str = "string"
    location: str = "query"  # "path" | "query" | "header" | "body"
    required: bool = False
    description: str = ""


@dataclass
class ToolDescriptor:
    name: str
    qualified_name: str
    invoker: Invoker
    description: str = ""
    params: List[ToolParam] = field(default_factory=list)


class FunctionRegistry:
    """Process-wide tool table, written during provider import and read per turn."""

    def __init__(self):
        self._lock = threading.Lock()
        self._tools: Dict[str, ToolDescriptor] = {}
        self._ordered: List[ToolDescriptor] = []

    def register(
        self,
        name: str,
        qualified_name: str,
        invoker: Invoker,
        description: str = "",
        params: Optional[List[ToolParam]] = None,
    ) -> bool:
        """Register a tool under both keys. Returns False if nothing was added."""
        name = (name or "").strip()
        if not name:
            logger.warning(f"Skipping tool with empty name (qualified: {qualified_name!r})")
            return False
        qualified_name = (qualified_name or "").strip() or name

        tool = ToolDescriptor(
            name=name,
            qualified_name=qualified_name,
            invoker=invoker,
            description=description,
            params=params or [],
        )
        added = False
        with self._lock:
            for key in {name.lower(), qualified_name.lower()}:
                if key not in self._tools:
                    self._tools[key] = tool
                    added = True
            if added:
                self._ordered.append(tool)

        if added:
            logger.info(f"Registered tool: {qualified_name}")
        else:
            logger.debug(f"Tool already registered, keeping first: {qualified_name}")
        return added

    def lookup(self, name: str) -> Optional[ToolDescriptor]:
        if not name:
            return None
        key = name.strip().lower()
        with self._lock:
            tool = self._tools.get(key)
            if tool is None and "." in key:
                tool = self._tools.get(key.rsplit(".", 1)[1])
        return tool

    def all_tools(self) -> List[ToolDescriptor]:
        with self._lock:
            return list(self._ordered)

    def __len__(self) -> int:
        with self._lock:
            return len(self._ordered)

    def tool_descriptions_for_llm(self) -> str:
        """Generate tool list for the system prompt."""
        lines = []
        for tool in sorted(self.all_tools(), key=lambda t: t.qualified_name.lower()):
            params = []
            for p in tool.params:
                req = "required" if p.required else "optional"
                params.append(f"{p.name}({req}): {p.description}" if p.description else f"{p.name}({req})")
            params_text = ", ".join(params) if params else "none"
            desc = tool.description or "no description"
            # a shadowed bare name only reaches the first provider
            shown = tool.name if self.lookup(tool.name) is tool else tool.qualified_name
            lines.append(f"- {shown}: {desc} | params: {params_text}")
        return "\n".join(lines)
