"""Chat-completion capability — OpenAI-compatible backend behind a small contract."""
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol

import openai
from openai import AsyncOpenAI

from .cancellation import CancelToken, run_cancellable
from .config import Settings
from .errors import UpstreamCompletionError

logger = logging.getLogger(__name__)


@dataclass
class ExecutionOptions:
    max_tokens: int = 2048
    temperature: float = 0.7


class ChatCompletion(Protocol):
    async def complete(
        self,
        messages: List[Dict[str, str]],
        options: ExecutionOptions,
        cancel: Optional[CancelToken] = None,
    ) -> str:
        ...


class OpenAIChatCompletion:
    """ChatCompletion over any OpenAI-compatible /chat/completions endpoint."""

    def __init__(self, client: AsyncOpenAI, model: str):
        self.client = client
        self.model = model

    async def complete(
        self,
        messages: List[Dict[str, str]],
        options: ExecutionOptions,
        cancel: Optional[CancelToken] = None,
    ) -> str:
        try:
            response = await run_cancellable(
                self.client.chat.completions.create(
                    model=self.model,
                    messages=messages,
                    max_tokens=options.max_tokens,
                    temperature=options.temperature,
                ),
                cancel,
            )
        except openai.APIStatusError as e:
            raise UpstreamCompletionError(f"Status: {e.status_code} {e.message}", status_code=e.status_code) from e
        except openai.APIConnectionError as e:
            raise UpstreamCompletionError(f"Connection error: {e}") from e

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""


def create_chat_completion(settings: Settings) -> Optional[OpenAIChatCompletion]:
    """Build the backend from settings, or None if it cannot be configured."""
    if not settings.chat_configured:
        logger.warning("Chat configuration missing or incomplete, starting without chat completion")
        return None

    try:
        client = AsyncOpenAI(
            api_key=settings.chat_api_key or "EMPTY",
            base_url=settings.chat_endpoint,
        )
    except openai.OpenAIError as e:
        logger.warning(f"Failed to configure chat completion: {e}")
        return None

    logger.info(f"Chat completion: {settings.chat_endpoint}, model={settings.chat_model_id}")
    return OpenAIChatCompletion(client, settings.chat_model_id)
