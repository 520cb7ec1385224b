"""Directive parser — finds a tool call request in free-text model output.

Wire format, one line:

    CALL_TOOL: <toolName> | key1=val1;key2=val2

Only the first directive line counts. Malformed pairs are dropped and a
broken directive means "no tool requested"; parsing never raises.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

logger = logging.getLogger(__name__)

MARKER = "CALL_TOOL:"


@dataclass
class ParsedInvocation:
    tool_name: str
    parameters: Dict[str, str] = field(default_factory=dict)


def _parse_parameters(segment: str) -> Dict[str, str]:
    params: Dict[str, str] = {}
    for pair in segment.split(";"):
        key, sep, value = pair.partition("=")
        key, value = key.strip(), value.strip()
        if not sep or not key or not value:
            continue
        # keys are case-insensitive: a later spelling replaces an earlier one
        for existing in [k for k in params if k.lower() == key.lower()]:
            del params[existing]
        params[key] = value
    return params


def parse_directive(text: str) -> Optional[ParsedInvocation]:
    """Return the first directive in `text`, or None."""
    if not isinstance(text, str) or not text:
        return None

    for raw_line in text.split("\n"):
        line = raw_line.strip()
        if line[:len(MARKER)].upper() != MARKER:
            continue

        name_part, _, param_part = line[len(MARKER):].partition("|")
        tool_name = name_part.strip()
        if not tool_name:
            continue

        invocation = ParsedInvocation(tool_name=tool_name, parameters=_parse_parameters(param_part))
        logger.info(f"Directive matched: {invocation.tool_name}({invocation.parameters})")
        return invocation

    return None
