"""Tests for tools/openapi.py — document parsing, invokers, provider import."""
import httpx
import pytest

from weather_agent.config import PluginEndpoint, Settings
from weather_agent.errors import ConfigurationError, ProviderImportError
from weather_agent.tools.directive import ParsedInvocation
from weather_agent.tools.executor import ToolInvoker
from weather_agent.tools.openapi import (
    build_operations,
    create_http_client,
    import_provider,
    import_providers,
    load_openapi_document,
    resolve_base_url,
)
from weather_agent.tools.registry import FunctionRegistry
from weather_api.main import app

DOC_URL = "http://weather.test/openapi.json"

SWAGGER2_DOC = {
    "swagger": "2.0",
    "host": "api.example.com",
    "basePath": "/v2",
    "schemes": ["https"],
    "paths": {
        "/pets/{petId}": {
            "parameters": [{"name": "petId", "in": "path", "required": True, "type": "string"}],
            "get": {
                "operationId": "get-pet.by id",
                "summary": "Find pet by ID",
                "parameters": [{"name": "verbose", "in": "query", "type": "boolean"}],
            },
        },
        "/pets": {
            "post": {
                "parameters": [{
                    "name": "body", "in": "body", "required": True,
                    "schema": {"$ref": "#/definitions/Pet"},
                }],
            },
            "get": "not an operation",
        },
    },
    "definitions": {
        "Pet": {
            "type": "object",
            "required": ["name"],
            "properties": {"name": {"type": "string"}, "age": {"type": "integer"}},
        }
    },
}


def _asgi_client():
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app))


def _weather_endpoint(name="weather"):
    return PluginEndpoint(plugin_name=name, swagger_url=DOC_URL)


class TestResolveBaseUrl:
    def test_fallback_to_document_origin(self):
        assert resolve_base_url({"paths": {}}, "https://host:8443/swagger/v1/swagger.json") == "https://host:8443"

    def test_absolute_server(self):
        doc = {"servers": [{"url": "https://api.example.com/v1/"}]}
        assert resolve_base_url(doc, DOC_URL) == "https://api.example.com/v1"

    def test_relative_server(self):
        doc = {"servers": [{"url": "/api"}]}
        assert resolve_base_url(doc, "http://host:5080/docs/openapi.json") == "http://host:5080/api"

    def test_server_variables(self):
        doc = {"servers": [{"url": "https://{region}.example.com", "variables": {"region": {"default": "eu"}}}]}
        assert resolve_base_url(doc, DOC_URL) == "https://eu.example.com"

    def test_swagger2_host(self):
        assert resolve_base_url(SWAGGER2_DOC, DOC_URL) == "https://api.example.com/v2"


class TestBuildOperations:
    def test_swagger2(self):
        ops = {op.name: op for op in build_operations("pets", SWAGGER2_DOC)}
        assert set(ops) == {"get_pet_by_id", "post_pets"}

        get_pet = ops["get_pet_by_id"]
        assert get_pet.description == "Find pet by ID"
        params = {p.name: p for p in get_pet.params}
        assert params["petId"].location == "path"
        assert params["petId"].required is True
        assert params["verbose"].location == "query"
        assert params["verbose"].type == "boolean"

        post = ops["post_pets"]
        assert post.has_body is True
        body = {p.name: p for p in post.params}
        assert body["name"].required is True
        assert body["age"].type == "integer"
        assert body["age"].location == "body"

    def test_malformed_operation_skipped(self):
        doc = {"paths": {
            "/bad": {"get": {"operationId": "Bad", "parameters": [{"in": "query"}]}},
            "/good": {"get": {"operationId": "Good"}},
        }}
        assert [op.name for op in build_operations("p", doc)] == ["Good"]

    def test_fastapi_document(self):
        ops = {op.name: op for op in build_operations("weather", app.openapi())}
        assert "GetWeather" in ops
        assert "CalculateDistance" in ops
        assert ops["CalculateDistance"].method == "post"
        assert {p.name for p in ops["CalculateDistance"].params} == {"from_city", "to_city"}
        forecast = {p.name: p for p in ops["GetForecast"].params}
        assert forecast["city"].location == "path"
        assert forecast["days"].location == "query"
        assert forecast["days"].required is False


class TestLoadDocument:
    @pytest.mark.asyncio
    async def test_non_success_status(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(503))
        async with httpx.AsyncClient(transport=transport) as client:
            with pytest.raises(ProviderImportError, match="503"):
                await load_openapi_document(client, _weather_endpoint())

    @pytest.mark.asyncio
    async def test_not_json(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html></html>"))
        async with httpx.AsyncClient(transport=transport) as client:
            with pytest.raises(ProviderImportError, match="not valid JSON"):
                await load_openapi_document(client, _weather_endpoint())

    @pytest.mark.asyncio
    async def test_no_paths(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"openapi": "3.0.0"}))
        async with httpx.AsyncClient(transport=transport) as client:
            with pytest.raises(ProviderImportError, match="no paths"):
                await load_openapi_document(client, _weather_endpoint())

    @pytest.mark.asyncio
    async def test_unreachable(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(refuse)) as client:
            with pytest.raises(ProviderImportError, match="HTTP error"):
                await load_openapi_document(client, _weather_endpoint())


class TestImportAndInvoke:
    @pytest.mark.asyncio
    async def test_import_weather_api(self):
        registry = FunctionRegistry()
        async with _asgi_client() as client:
            count = await import_provider(registry, client, _weather_endpoint())
        assert count == len(build_operations("weather", app.openapi()))
        assert registry.lookup("getweather") is not None
        assert registry.lookup("weather.GetForecast") is not None

    @pytest.mark.asyncio
    async def test_invoke_path_parameter(self):
        registry = FunctionRegistry()
        async with _asgi_client() as client:
            await import_provider(registry, client, _weather_endpoint())
            outcome = await ToolInvoker(registry).invoke(ParsedInvocation("GetWeather", {"City": "New York"}))
        assert outcome.type == "success"
        assert '"city": "New York"' in outcome.text

    @pytest.mark.asyncio
    async def test_invoke_query_parameter(self):
        registry = FunctionRegistry()
        async with _asgi_client() as client:
            await import_provider(registry, client, _weather_endpoint())
            tool = registry.lookup("GetForecast")
            result = await tool.invoker({"city": "Tokyo", "days": "3"})
        assert result["days"] == 3
        assert len(result["forecast"]) == 3

    @pytest.mark.asyncio
    async def test_invoke_json_body(self):
        registry = FunctionRegistry()
        async with _asgi_client() as client:
            await import_provider(registry, client, _weather_endpoint())
            tool = registry.lookup("CalculateDistance")
            result = await tool.invoker({"from_city": "London", "to_city": "Paris"})
        assert result["from_city"] == "London"
        assert result["miles"] == round(result["kilometers"] * 0.621371, 2)

    @pytest.mark.asyncio
    async def test_missing_required_parameter(self):
        registry = FunctionRegistry()
        async with _asgi_client() as client:
            await import_provider(registry, client, _weather_endpoint())
            outcome = await ToolInvoker(registry).invoke(ParsedInvocation("GetWeather", {}))
        assert outcome.type == "error"
        assert "Missing required parameter 'city'" in outcome.text

    @pytest.mark.asyncio
    async def test_remote_error_status(self):
        doc = {"paths": {"/boom": {"get": {"operationId": "Boom"}}}}

        def handler(request):
            if request.url.path == "/openapi.json":
                return httpx.Response(200, json=doc)
            return httpx.Response(500, text="internal error")

        registry = FunctionRegistry()
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            await import_provider(registry, client, _weather_endpoint("flaky"))
            outcome = await ToolInvoker(registry).invoke(ParsedInvocation("flaky.Boom", {}))
        assert outcome.type == "error"
        assert "HTTP 500" in outcome.text

    @pytest.mark.asyncio
    async def test_text_response(self):
        doc = {"paths": {"/ping": {"get": {"operationId": "Ping"}}}}

        def handler(request):
            if request.url.path == "/openapi.json":
                return httpx.Response(200, json=doc)
            return httpx.Response(200, text="pong")

        registry = FunctionRegistry()
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            await import_provider(registry, client, _weather_endpoint("misc"))
            assert await registry.lookup("Ping").invoker({}) == "pong"

    @pytest.mark.asyncio
    async def test_duplicate_operation_not_logged_as_imported(self, caplog):
        doc = {"paths": {
            "/a": {"get": {"operationId": "Ping"}},
            "/b": {"get": {"operationId": "Ping"}},
        }}

        def handler(request):
            return httpx.Response(200, json=doc)

        registry = FunctionRegistry()
        caplog.set_level("INFO", logger="weather_agent.tools.openapi")
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            count = await import_provider(registry, client, _weather_endpoint("misc"))

        assert count == 1
        listed = [r for r in caplog.records if "• Ping" in r.getMessage()]
        assert len(listed) == 1
        assert any("Duplicate operation Ping" in r.getMessage() for r in caplog.records)


class TestImportProviders:
    @pytest.mark.asyncio
    async def test_no_providers_is_fatal(self):
        async with _asgi_client() as client:
            with pytest.raises(ConfigurationError):
                await import_providers(FunctionRegistry(), [], client)

    @pytest.mark.asyncio
    async def test_one_failure_does_not_block_others(self):
        good_doc = {"paths": {"/ping": {"get": {"operationId": "Ping"}}}}

        def handler(request):
            if request.url.host == "down.test":
                raise httpx.ConnectError("connection refused", request=request)
            if request.url.host == "broken.test":
                return httpx.Response(404)
            return httpx.Response(200, json=good_doc)

        endpoints = [
            PluginEndpoint(plugin_name="down", swagger_url="http://down.test/openapi.json"),
            PluginEndpoint(plugin_name="broken", swagger_url="http://broken.test/openapi.json"),
            PluginEndpoint(plugin_name="good", swagger_url="http://good.test/openapi.json"),
        ]
        registry = FunctionRegistry()
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            imported = await import_providers(registry, endpoints, client)
        assert imported == {"good": 1}
        assert registry.lookup("good.Ping") is not None


class TestCreateHttpClient:
    @pytest.mark.asyncio
    async def test_timeout_from_settings(self):
        client = create_http_client(Settings(plugin_timeout_s=5, plugin_verify_ssl=False))
        try:
            assert client.timeout.read == 5
        finally:
            await client.aclose()
