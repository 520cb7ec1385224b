"""OpenAPI provider import — turns a remote interface document into registry entries.

Each operation becomes one invoker with the fixed shape
`(parameters, cancel) -> result`, so the executor never has to know what
kind of provider it is calling.
"""
import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping
from urllib.parse import quote, urljoin, urlsplit

import httpx

from ..config import PluginEndpoint, Settings
from ..errors import ConfigurationError, ProviderImportError
from .registry import FunctionRegistry, Invoker, ToolParam

logger = logging.getLogger(__name__)

HTTP_METHODS = ("get", "put", "post", "delete", "patch", "head", "options")


@dataclass
class OpenApiOperation:
    name: str
    method: str
    path: str
    description: str = ""
    params: List[ToolParam] = field(default_factory=list)
    has_body: bool = False


def create_http_client(settings: Settings) -> httpx.AsyncClient:
    """Client shared by document fetches and every imported invoker."""
    return httpx.AsyncClient(timeout=settings.plugin_timeout_s, verify=settings.plugin_verify_ssl)


def _sanitize_name(raw: str) -> str:
    name = re.sub(r"[^0-9A-Za-z_]", "_", raw).strip("_")
    return re.sub(r"_+", "_", name)


def _resolve_ref(document: dict, node: Any) -> Any:
    """Follow local "#/..." references; anything else is returned unchanged."""
    seen = set()
    while isinstance(node, dict) and "$ref" in node:
        ref = node["$ref"]
        if not isinstance(ref, str) or not ref.startswith("#/") or ref in seen:
            return {}
        seen.add(ref)
        target: Any = document
        for part in ref[2:].split("/"):
            part = part.replace("~1", "/").replace("~0", "~")
            target = target.get(part, {}) if isinstance(target, dict) else {}
        node = target
    return node


def resolve_base_url(document: dict, document_url: str) -> str:
    servers = document.get("servers")
    if isinstance(servers, list) and servers and isinstance(servers[0], dict) and servers[0].get("url"):
        server = servers[0]
        url = server["url"]
        for var, var_def in (server.get("variables") or {}).items():
            url = url.replace("{" + var + "}", str(var_def.get("default", "")))
        return urljoin(document_url, url).rstrip("/")

    parts = urlsplit(document_url)
    if document.get("host"):
        schemes = document.get("schemes") or [parts.scheme or "https"]
        return f"{schemes[0]}://{document['host']}{document.get('basePath', '')}".rstrip("/")

    return f"{parts.scheme}://{parts.netloc}"


def _body_params(document: dict, schema: Any, required_body: bool) -> List[ToolParam]:
    schema = _resolve_ref(document, schema)
    if not isinstance(schema, dict):
        return []
    required = set(schema.get("required") or [])
    params = []
    for prop, prop_schema in (schema.get("properties") or {}).items():
        prop_schema = _resolve_ref(document, prop_schema)
        params.append(ToolParam(
            name=prop,
            type=prop_schema.get("type", "string") if isinstance(prop_schema, dict) else "string",
            location="body",
            required=required_body and prop in required,
            description=prop_schema.get("description", "") if isinstance(prop_schema, dict) else "",
        ))
    return params


def _parse_operation(document: dict, path: str, method: str, op: dict, shared_params: list) -> OpenApiOperation:
    raw_name = op.get("operationId") or f"{method}_{path}"
    name = _sanitize_name(raw_name)
    if not name:
        raise ValueError(f"cannot derive a name for {method.upper()} {path}")

    params: List[ToolParam] = []
    has_body = False
    by_key: Dict[tuple, dict] = {}
    for raw in list(shared_params) + list(op.get("parameters") or []):
        p = _resolve_ref(document, raw)
        by_key[(p["name"], p["in"])] = p  # operation-level overrides path-level

    for (pname, location), p in by_key.items():
        if location == "body":
            has_body = True
            params.extend(_body_params(document, p.get("schema"), bool(p.get("required"))))
            continue
        if location not in ("path", "query", "header"):
            continue
        schema = _resolve_ref(document, p.get("schema") or {})
        params.append(ToolParam(
            name=pname,
            type=p.get("type") or schema.get("type", "string"),
            location=location,
            required=bool(p.get("required")) or location == "path",
            description=p.get("description", ""),
        ))

    body = _resolve_ref(document, op.get("requestBody"))
    if isinstance(body, dict) and body.get("content"):
        content = body["content"]
        media = content.get("application/json") or next(iter(content.values()), {})
        has_body = True
        params.extend(_body_params(document, media.get("schema"), bool(body.get("required"))))

    return OpenApiOperation(
        name=name,
        method=method,
        path=path,
        description=op.get("summary") or op.get("description") or "",
        params=params,
        has_body=has_body,
    )


def build_operations(provider_name: str, document: dict) -> List[OpenApiOperation]:
    """Collect operations from a document, skipping any that are malformed."""
    operations = []
    for path, item in (document.get("paths") or {}).items():
        if not isinstance(item, dict):
            continue
        shared = item.get("parameters") or []
        for method in HTTP_METHODS:
            op = item.get(method)
            if not isinstance(op, dict):
                continue
            try:
                operations.append(_parse_operation(document, path, method, op, shared))
            except (KeyError, TypeError, AttributeError, ValueError) as e:
                logger.warning(f"[{provider_name}] Skipping {method.upper()} {path}: {type(e).__name__}: {e}")
    return operations


def _coerce(value: str, type_name: str) -> Any:
    try:
        if type_name == "integer":
            return int(value)
        if type_name == "number":
            return float(value)
    except ValueError:
        return value
    if type_name == "boolean":
        return value.strip().lower() in ("true", "1", "yes")
    return value


def make_invoker(client: httpx.AsyncClient, base_url: str, op: OpenApiOperation) -> Invoker:
    async def invoke(parameters: Mapping[str, str], cancel=None) -> Any:
        if cancel is not None:
            cancel.raise_if_cancelled()

        provided = {str(k).lower(): v for k, v in (parameters or {}).items()}
        path = op.path
        query: Dict[str, str] = {}
        headers: Dict[str, str] = {}
        body: Dict[str, Any] = {}

        for p in op.params:
            value = provided.get(p.name.lower())
            if value is None:
                if p.required:
                    raise ValueError(f"Missing required parameter '{p.name}' for {op.name}")
                continue
            if p.location == "path":
                path = path.replace("{" + p.name + "}", quote(str(value), safe=""))
            elif p.location == "header":
                headers[p.name] = str(value)
            elif p.location == "body":
                body[p.name] = _coerce(str(value), p.type)
            else:
                query[p.name] = str(value)

        request = client.build_request(
            op.method.upper(),
            base_url + path,
            params=query or None,
            headers=headers or None,
            json=body if op.has_body else None,
        )
        response = await client.send(request)
        response.raise_for_status()

        if "json" in response.headers.get("content-type", ""):
            return response.json()
        return response.text

    invoke.__name__ = op.name
    return invoke


async def load_openapi_document(client: httpx.AsyncClient, endpoint: PluginEndpoint) -> dict:
    url = endpoint.swagger_url
    try:
        response = await client.get(url)
    except httpx.HTTPError as e:
        raise ProviderImportError(endpoint.plugin_name, f"HTTP error fetching {url}: {e}") from e

    if not response.is_success:
        raise ProviderImportError(endpoint.plugin_name, f"URL returned {response.status_code}")
    logger.info(f"[{endpoint.plugin_name}] URL accessible, content length: {len(response.content)} bytes")

    try:
        document = response.json()
    except ValueError as e:
        raise ProviderImportError(endpoint.plugin_name, f"document at {url} is not valid JSON") from e
    if not isinstance(document, dict) or not isinstance(document.get("paths"), dict):
        raise ProviderImportError(endpoint.plugin_name, f"document at {url} declares no paths")
    return document


async def import_provider(registry: FunctionRegistry, client: httpx.AsyncClient, endpoint: PluginEndpoint) -> int:
    """Import one provider. Returns the number of functions registered."""
    logger.info(f"Importing plugin: {endpoint.plugin_name} ({endpoint.swagger_url})")
    document = await load_openapi_document(client, endpoint)
    base_url = resolve_base_url(document, endpoint.swagger_url)
    operations = build_operations(endpoint.plugin_name, document)
    if not operations:
        logger.warning(f"[{endpoint.plugin_name}] Document declares no usable operations")

    count = 0
    for op in operations:
        added = registry.register(
            op.name,
            f"{endpoint.plugin_name}.{op.name}",
            make_invoker(client, base_url, op),
            description=op.description,
            params=op.params,
        )
        if added:
            count += 1
            logger.info(f"[{endpoint.plugin_name}]   • {op.name}: {op.description or 'N/A'} ({len(op.params)} params)")
        else:
            logger.warning(f"[{endpoint.plugin_name}] Duplicate operation {op.name}, keeping first")

    logger.info(f"Plugin '{endpoint.plugin_name}' imported: {count} function(s) at {base_url}")
    return count


async def import_providers(
    registry: FunctionRegistry,
    endpoints: List[PluginEndpoint],
    client: httpx.AsyncClient,
) -> Dict[str, int]:
    """Import all providers concurrently; one failure never blocks the others."""
    if not endpoints:
        raise ConfigurationError("No plugins configured")

    logger.info(f"Loading {len(endpoints)} plugin(s) from remote OpenAPI URLs...")
    results = await asyncio.gather(
        *(import_provider(registry, client, ep) for ep in endpoints),
        return_exceptions=True,
    )

    imported: Dict[str, int] = {}
    for ep, result in zip(endpoints, results):
        if isinstance(result, Exception):
            logger.error(f"Error loading plugin '{ep.plugin_name}': {type(result).__name__}: {result}")
        elif isinstance(result, BaseException):
            raise result
        else:
            imported[ep.plugin_name] = result
    return imported
