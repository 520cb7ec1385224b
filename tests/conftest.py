"""Shared fixtures: a populated registry and a scripted chat completion."""
import asyncio

import pytest

from weather_agent.tools.registry import FunctionRegistry, ToolParam


class FakeCompletion:
    """Chat completion that returns a canned reply and records every call."""

    def __init__(self, reply="", error=None, block=False):
        self.reply = reply
        self.error = error
        self.block = block
        self.calls = []

    async def complete(self, messages, options, cancel=None):
        self.calls.append({"messages": list(messages), "options": options, "cancel": cancel})
        if self.block:
            await asyncio.Event().wait()
        if self.error is not None:
            raise self.error
        return self.reply


async def weather_invoker(parameters, cancel=None):
    city = parameters.get("city", "?")
    return {"city": city, "condition": "Sunny", "temperature": 21.5}


async def failing_invoker(parameters, cancel=None):
    raise RuntimeError("upstream exploded")


@pytest.fixture
def registry():
    reg = FunctionRegistry()
    reg.register(
        "GetWeather",
        "weather.GetWeather",
        weather_invoker,
        description="Get current weather for a city",
        params=[ToolParam("city", location="path", required=True)],
    )
    reg.register("Broken", "weather.Broken", failing_invoker, description="Always fails")
    return reg


@pytest.fixture
def fake_completion():
    return FakeCompletion(reply="It is sunny.")
