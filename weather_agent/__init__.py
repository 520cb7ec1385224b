"""Weather agent — answers questions by dispatching tool calls to OpenAPI providers."""
__version__ = "0.1.0"
