"""
OpenRouter provider using the OpenAI SDK.

All three voters are served through OpenRouter's OpenAI-compatible
chat completions endpoint; only the model id differs.
"""

import asyncio
import time
from typing import Optional

import openai

from .base import BaseProvider
from dev3.core.models import LLMResponse

DEFAULT_MAX_TOKENS = 1024
DEFAULT_TEMPERATURE = 0.7


class OpenRouterProvider(BaseProvider):
    """
    Provider for one voter model on OpenRouter.

    The AsyncOpenAI client is created lazily on first query and may be
    shared between providers.
    """

    def __init__(
        self,
        name: str,
        model: str,
        base_url: str,
        api_key: Optional[str],
        client: Optional[openai.AsyncOpenAI] = None,
    ):
        super().__init__(name)
        self._model_id = model
        self._base_url = base_url
        self._api_key = api_key
        self._client = client

    @property
    def model_id(self) -> str:
        return self._model_id

    def _get_client(self) -> openai.AsyncOpenAI:
        """Lazy initialization of the OpenAI client pointed at OpenRouter."""
        if self._client is None:
            self._client = openai.AsyncOpenAI(base_url=self._base_url, api_key=self._api_key)
        return self._client

    def is_available(self) -> bool:
        """Available when a client was injected or an API key is configured."""
        return self._client is not None or bool(self._api_key)

    async def query(
        self,
        prompt: str,
        timeout: int,
        system_prompt: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> LLMResponse:
        """
        Query the voter model and wait for the complete response.

        Returns:
            LLMResponse with the complete response. Errors, including
            timeouts, come back as success=False.
        """
        if not self.is_available():
            return LLMResponse(
                content='',
                model=self._name,
                latency_ms=0,
                success=False,
                error='OpenRouter API key not configured'
            )

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        start = time.time()

        try:
            client = self._get_client()

            async def generate():
                response = await client.chat.completions.create(
                    model=self._model_id,
                    messages=messages,
                    max_tokens=max_tokens or DEFAULT_MAX_TOKENS,
                    temperature=DEFAULT_TEMPERATURE if temperature is None else temperature,
                    timeout=timeout
                )
                if not response.choices:
                    return ''
                return response.choices[0].message.content

            result_text = await asyncio.wait_for(generate(), timeout=timeout)

            return self._create_response(
                content=result_text or '',
                start_time=start,
                success=True
            )

        except asyncio.TimeoutError:
            return self._create_error_response('TIMEOUT', start)
        except openai.OpenAIError as e:
            return self._create_error_response(str(e), start)
