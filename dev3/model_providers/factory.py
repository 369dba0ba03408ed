"""
Provider factory.

Builds one provider per voter from configuration. All voters share a single
AsyncOpenAI client pointed at OpenRouter.
"""

from typing import Dict, Optional

import openai

from .base import ProviderProtocol
from .openrouter import OpenRouterProvider
from dev3.config import Dev3Config
from dev3.core.models import VoterId, VOTER_ORDER


def get_provider(
    voter: VoterId,
    config: Dev3Config,
    client: Optional[openai.AsyncOpenAI] = None,
) -> ProviderProtocol:
    """
    Get the provider serving a voter.

    Raises:
        ValueError: If the voter is not one of the fixed three.
    """
    if voter not in VOTER_ORDER:
        raise ValueError(f"Unknown voter: {voter}. Available: {[v.value for v in VOTER_ORDER]}")

    return OpenRouterProvider(
        name=voter.value,
        model=config.model_for(voter),
        base_url=config.openrouter_base_url,
        api_key=config.openrouter_api_key,
        client=client,
    )


def get_providers(config: Dev3Config) -> Dict[VoterId, ProviderProtocol]:
    """Providers for all three voters, sharing one client when a key is set."""
    client = None
    if config.openrouter_api_key:
        client = openai.AsyncOpenAI(
            base_url=config.openrouter_base_url,
            api_key=config.openrouter_api_key,
        )
    return {voter: get_provider(voter, config, client=client) for voter in VOTER_ORDER}


def get_provider_info(config: Dev3Config) -> Dict[str, Dict[str, object]]:
    """
    Get information about configured providers.

    Returns:
        Dict with provider status for each voter.
    """
    info = {}
    for voter in VOTER_ORDER:
        provider = get_provider(voter, config)
        info[voter.value] = {
            'available': provider.is_available(),
            'provider_type': type(provider).__name__,
            'model': config.model_for(voter),
        }
    return info
