"""Tool system — registry, directive parser, executor, OpenAPI import."""
from .registry import FunctionRegistry, ToolDescriptor, ToolParam
from .directive import parse_directive, ParsedInvocation
from .executor import ToolInvoker, ToolOutcome
from .openapi import import_providers, create_http_client
