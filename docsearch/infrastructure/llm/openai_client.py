import logging
from typing import Optional

from openai import AsyncOpenAI, OpenAIError

from docsearch.core.exceptions import GenerationError

logger = logging.getLogger(__name__)


class OpenAIChatClient:
    """Text-generation client for any OpenAI-compatible API."""

    def __init__(
        self,
        base_url: str = "https://api.openai.com/v1",
        api_key: str = "not-needed",
        model: str = "gpt-4o-mini",
        max_tokens: int = 2000,
        temperature: float = 0.3,
        client: Optional[AsyncOpenAI] = None,
    ):
        """Initialize chat client.

        Args:
            base_url: API URL (OpenAI, Ollama, vLLM...).
            api_key: API key; local servers accept any value.
            model: Model name.
            max_tokens: Default max response tokens.
            temperature: Default sampling temperature.
            client: Preconfigured client, mainly for tests.
        """
        self._client = client or AsyncOpenAI(base_url=base_url, api_key=api_key)
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature

    async def generate(
        self,
        messages: list[dict],
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> str:
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=messages,
                max_tokens=max_tokens if max_tokens is not None else self._max_tokens,
                temperature=temperature if temperature is not None else self._temperature,
            )
        except OpenAIError as e:
            logger.error(f"[llm] Completion error: {e}")
            raise GenerationError(f"LLM completion failed: {e}") from e

        if not response.choices or not response.choices[0].message.content:
            raise GenerationError("LLM returned an empty completion")

        return response.choices[0].message.content
