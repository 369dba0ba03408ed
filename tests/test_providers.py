"""
Tests for the provider layer and the voter adapters built on it.
"""

import asyncio
import time
from types import SimpleNamespace

import httpx
import openai
import pytest

from dev3.config import Dev3Config
from dev3.core.adapters import VoterAdapter, build_voters
from dev3.core.errors import VoterParseError, VoterTransportError
from dev3.core.models import (
    ActionType, AutonomousContext, Decision, DecisionCategory, Priority,
    VoteChoice, VoterId, VOTER_ORDER, WalletBalance,
)
from dev3.core.voters import get_role
from dev3.model_providers.base import BaseProvider
from dev3.model_providers.factory import get_provider, get_provider_info, get_providers
from dev3.model_providers.openrouter import OpenRouterProvider

from helpers import FakeProvider, action_json, vote_json


class FakeCompletions:
    """Stands in for client.chat.completions."""

    def __init__(self, content='{"vote": "approve"}', delay=0, error=None, choices=True):
        self.content = content
        self.delay = delay
        self.error = error
        self.choices = choices
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if not self.choices:
            return SimpleNamespace(choices=[])
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=self.content))])


def fake_client(completions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


def provider_with(completions):
    return OpenRouterProvider(
        name='grok',
        model='x-ai/grok-3-mini-beta',
        base_url='https://openrouter.ai/api/v1',
        api_key=None,
        client=fake_client(completions),
    )


class TestBaseProvider:
    """Tests for BaseProvider."""

    def test_create_response_includes_timing(self):
        """Verify _create_response calculates latency."""
        provider = FakeProvider('test')
        start = time.time() - 0.5  # Simulate 500ms delay

        response = provider._create_response("content", start, success=True)

        assert response.success is True
        assert response.content == "content"
        assert response.latency_ms >= 500
        assert response.model == "test"
        assert provider.last_latency_ms == response.latency_ms

    def test_create_error_response(self):
        """Verify _create_error_response sets error fields."""
        provider = FakeProvider('test')

        response = provider._create_error_response("connection failed", time.time())

        assert response.success is False
        assert response.error == "connection failed"
        assert response.content == ""

    def test_base_provider_is_abstract(self):
        with pytest.raises(TypeError):
            BaseProvider('incomplete')


class TestOpenRouterProvider:
    """Tests for OpenRouterProvider against a fake OpenAI client."""

    def test_query_sends_system_and_user_messages(self):
        completions = FakeCompletions(content='{"vote": "approve"}')
        provider = provider_with(completions)

        response = asyncio.run(provider.query(
            "Decide this", 10, system_prompt="You are Grok", max_tokens=256, temperature=0.2,
        ))

        assert response.success is True
        assert response.content == '{"vote": "approve"}'
        call = completions.calls[0]
        assert call['model'] == 'x-ai/grok-3-mini-beta'
        assert call['messages'] == [
            {'role': 'system', 'content': 'You are Grok'},
            {'role': 'user', 'content': 'Decide this'},
        ]
        assert call['max_tokens'] == 256
        assert call['temperature'] == 0.2

    def test_defaults_applied(self):
        completions = FakeCompletions()
        asyncio.run(provider_with(completions).query("hi", 10))

        call = completions.calls[0]
        assert call['messages'] == [{'role': 'user', 'content': 'hi'}]
        assert call['max_tokens'] == 1024
        assert call['temperature'] == 0.7

    def test_empty_choices(self):
        response = asyncio.run(provider_with(FakeCompletions(choices=False)).query("hi", 10))
        assert response.success is True
        assert response.content == ''

    def test_timeout(self):
        response = asyncio.run(provider_with(FakeCompletions(delay=1)).query("hi", 0.05))
        assert response.success is False
        assert response.error == 'TIMEOUT'

    def test_api_error_returned_not_raised(self):
        error = openai.APIConnectionError(request=httpx.Request('POST', 'https://openrouter.ai/api/v1'))
        response = asyncio.run(provider_with(FakeCompletions(error=error)).query("hi", 10))

        assert response.success is False
        assert response.error

    def test_unavailable_without_key(self):
        provider = OpenRouterProvider('claude', 'anthropic/claude-3.5-haiku:beta',
                                      'https://openrouter.ai/api/v1', api_key=None)

        assert provider.is_available() is False
        response = asyncio.run(provider.query("hi", 10))
        assert response.success is False
        assert response.error == 'OpenRouter API key not configured'


class TestProviderFactory:
    """Tests for the provider factory."""

    def test_provider_per_voter(self):
        config = Dev3Config(models={'grok': 'x-ai/grok-4'})
        provider = get_provider(VoterId.GROK, config)

        assert isinstance(provider, OpenRouterProvider)
        assert provider.name == 'grok'
        assert provider.model_id == 'x-ai/grok-4'

    def test_unknown_voter_raises_error(self):
        with pytest.raises(ValueError, match="Unknown voter"):
            get_provider('gemini', Dev3Config())

    def test_providers_share_client(self):
        config = Dev3Config(openrouter_api_key='test-key')
        providers = get_providers(config)

        assert list(providers) == list(VOTER_ORDER)
        assert providers[VoterId.GROK]._client is providers[VoterId.CLAUDE]._client
        assert all(p.is_available() for p in providers.values())

    def test_provider_info(self):
        info = get_provider_info(Dev3Config())

        assert list(info) == ['grok', 'chatgpt', 'claude']
        assert info['chatgpt'] == {
            'available': False,
            'provider_type': 'OpenRouterProvider',
            'model': 'openai/gpt-4o-mini',
        }


class TestVoterAdapter:
    """Tests for VoterAdapter transport and parse handling."""

    def test_cast_vote(self):
        provider = FakeProvider('grok', vote_json('reject', 65, 'Too early'))
        adapter = VoterAdapter(get_role(VoterId.GROK), provider, timeout=5)
        decision = Decision(title='t', description='d', category=DecisionCategory.OTHER, priority=Priority.LOW)

        draft = asyncio.run(adapter.cast_vote(decision))

        assert draft.voter is VoterId.GROK
        assert draft.choice is VoteChoice.REJECT
        assert draft.confidence == 65
        assert provider.calls[0]['temperature'] == 0.7

    def test_timeout_is_transport_error(self):
        provider = FakeProvider('claude', action_json('hold'), delay=1)
        adapter = VoterAdapter(get_role(VoterId.CLAUDE), provider, timeout=0.05)

        with pytest.raises(VoterTransportError) as exc_info:
            asyncio.run(adapter.recommend_action(_context()))

        assert exc_info.value.voter is VoterId.CLAUDE
        assert 'TIMEOUT' in exc_info.value.message

    def test_unsuccessful_response_is_transport_error(self):
        provider = FakeProvider('chatgpt', '', success=False, error='502 bad gateway')
        adapter = VoterAdapter(get_role(VoterId.CHATGPT), provider)

        with pytest.raises(VoterTransportError, match='502 bad gateway'):
            asyncio.run(adapter.recommend_action(_context()))

    def test_provider_exception_is_transport_error(self):
        provider = FakeProvider('grok', ConnectionError('reset'))
        adapter = VoterAdapter(get_role(VoterId.GROK), provider)

        with pytest.raises(VoterTransportError) as exc_info:
            asyncio.run(adapter.recommend_action(_context()))
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    def test_strict_action_parse(self):
        provider = FakeProvider('grok', 'Hold for now.')
        adapter = VoterAdapter(get_role(VoterId.GROK), provider)

        with pytest.raises(VoterParseError):
            asyncio.run(adapter.recommend_action(_context()))

    def test_recommend_action(self):
        provider = FakeProvider('claude', action_json('claim_rewards', 72, 'Fees accrued'))
        adapter = VoterAdapter(get_role(VoterId.CLAUDE), provider)

        rec = asyncio.run(adapter.recommend_action(_context()))

        assert rec.action is ActionType.CLAIM_REWARDS
        assert rec.confidence == 72
        assert provider.calls[0]['max_tokens'] == 512
        assert 'Ethics & Restraint' in provider.calls[0]['system_prompt']

    def test_build_voters_in_order(self):
        config = Dev3Config(timeout=12)
        providers = {voter: FakeProvider(voter.value) for voter in VOTER_ORDER}

        voters = build_voters(config, providers)

        assert [v.voter for v in voters] == list(VOTER_ORDER)
        assert all(v.timeout == 12 for v in voters)
        assert voters[1].provider is providers[VoterId.CHATGPT]


def _context():
    return AutonomousContext(balance=WalletBalance(sol=1.0, lamports=1_000_000_000),
                             token=None, market=None, recent_actions=[])
