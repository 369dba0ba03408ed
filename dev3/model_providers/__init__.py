"""
Provider abstraction layer for Dev3.

All voters are reached through OpenRouter's OpenAI-compatible API.
"""

from .base import ProviderProtocol, BaseProvider
from .openrouter import OpenRouterProvider
from .factory import get_provider, get_providers, get_provider_info

__all__ = [
    'ProviderProtocol',
    'BaseProvider',
    'OpenRouterProvider',
    'get_provider',
    'get_providers',
    'get_provider_info',
]
