"""
Base protocol for model providers.

Defines the unified interface that the reasoning-service invokers implement.
"""

from abc import ABC, abstractmethod
from typing import Optional
import time

from dev3.core.models import LLMResponse


class ProviderProtocol(ABC):
    """
    Abstract base class for model providers.

    Providers never raise for service failures: they return an LLMResponse
    with success=False and the error text.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the voter name served by this provider (e.g., 'grok')."""
        ...

    @abstractmethod
    def is_available(self) -> bool:
        """
        Check if the provider is configured and can be called.

        Returns:
            True if the provider can be used, False otherwise.
        """
        ...

    @abstractmethod
    async def query(
        self,
        prompt: str,
        timeout: int,
        system_prompt: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> LLMResponse:
        """
        Send a prompt and wait for the complete response.

        Args:
            prompt: The user message.
            timeout: Maximum time to wait in seconds.
            system_prompt: Role instructions sent as the system message.
            max_tokens: Completion token cap.
            temperature: Sampling temperature.

        Returns:
            LLMResponse with the complete response.
        """
        ...


class BaseProvider(ProviderProtocol):
    """
    Base implementation with common utilities.

    Provides timing measurement and error handling helpers.
    """

    def __init__(self, model_name: str):
        self._name = model_name
        self._last_latency_ms: Optional[int] = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def last_latency_ms(self) -> Optional[int]:
        return self._last_latency_ms

    def _create_response(
        self,
        content: str,
        start_time: float,
        success: bool = True,
        error: Optional[str] = None
    ) -> LLMResponse:
        """Create an LLMResponse with timing information."""
        latency_ms = int((time.time() - start_time) * 1000)
        self._last_latency_ms = latency_ms
        return LLMResponse(
            content=content,
            model=self._name,
            latency_ms=latency_ms,
            success=success,
            error=error
        )

    def _create_error_response(
        self,
        error: str,
        start_time: float
    ) -> LLMResponse:
        """Create an error LLMResponse."""
        return self._create_response(
            content='',
            start_time=start_time,
            success=False,
            error=error
        )
