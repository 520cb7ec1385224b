#!/usr/bin/env python3
"""
Weather Agent - interactive console launcher
Imports tool providers from remote OpenAPI documents, then runs the chat session
"""
import os
import sys

os.environ.setdefault('PYTHONIOENCODING', 'utf-8')

import asyncio
import logging
import signal

from weather_agent.config import settings, load_plugin_config
from weather_agent.errors import ConfigurationError
from weather_agent.llm import create_chat_completion, ExecutionOptions
from weather_agent.planner import Planner
from weather_agent.session import AgentSession, console_reader, console_writer
from weather_agent.tools import FunctionRegistry, import_providers, create_http_client

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def main() -> int:
    logger.info("Weather Agent starting...")
    logger.info(f"Python {sys.version}, encoding={sys.getdefaultencoding()}")

    try:
        plugin_config = load_plugin_config(settings.plugins_config)
    except ConfigurationError as e:
        logger.error(f"FATAL: {e}")
        return 1

    registry = FunctionRegistry()
    async with create_http_client(settings) as http_client:
        try:
            imported = await import_providers(registry, plugin_config.plugin_endpoints, http_client)
        except ConfigurationError as e:
            logger.error(f"FATAL: {e}")
            return 1

        logger.info(f"Plugins loaded: {imported} ({len(registry)} tool(s) registered)")
        if not registry:
            logger.warning("No tools available, the agent will answer from the model alone")

        planner = Planner(
            registry,
            completion=create_chat_completion(settings),
            options=ExecutionOptions(max_tokens=settings.chat_max_tokens, temperature=settings.chat_temperature),
        )
        session = AgentSession(
            planner,
            await console_reader(),
            console_writer,
            clear_history=settings.clear_history,
        )

        loop = asyncio.get_running_loop()
        loop.add_signal_handler(signal.SIGINT, session.interrupt)
        print("Weather Agent ready. Type 'exit' or 'quit' to leave, 'reset' to clear the conversation.\n")
        try:
            await session.run()
        finally:
            loop.remove_signal_handler(signal.SIGINT)

    logger.info("Weather Agent shutting down")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
