"""
Voter adapters.

One VoterAdapter per voter role wraps a reasoning-service provider and
applies the parse policy of the calling path:
- cast_vote: lenient (manual deliberation)
- recommend_action: strict (autonomous cycle)
Transport failures raise VoterTransportError on both paths. No retries.
"""

import asyncio
from typing import Dict, List, Optional, TYPE_CHECKING

from .emit import emit
from .errors import VoterTransportError
from .models import (
    ActionRecommendation, AutonomousContext, Decision, LLMResponse,
    VoteDraft, VoterId, VOTER_ORDER,
)
from .parsing import extract_json, parse_action_recommendation, parse_vote
from .prompts import build_context_prompt, build_decision_prompt
from .voters import VoterRole, get_role

if TYPE_CHECKING:
    from dev3.config import Dev3Config
    from dev3.model_providers.base import ProviderProtocol


DEFAULT_TIMEOUT = 60  # seconds per voter call


class VoterAdapter:
    """
    Invokes one voter and turns its raw text into a vote or recommendation.

    Usage:
        adapter = VoterAdapter(get_role(VoterId.GROK), provider)
        draft = await adapter.cast_vote(decision)
        rec = await adapter.recommend_action(context)
    """

    def __init__(
        self,
        role: VoterRole,
        provider: 'ProviderProtocol',
        timeout: int = DEFAULT_TIMEOUT,
        decision_max_tokens: int = 1024,
        action_max_tokens: int = 512,
        temperature: float = 0.7,
    ):
        self.role = role
        self.provider = provider
        self.timeout = timeout
        self.decision_max_tokens = decision_max_tokens
        self.action_max_tokens = action_max_tokens
        self.temperature = temperature

    @property
    def voter(self) -> VoterId:
        return self.role.voter

    async def _invoke(self, system_prompt: str, prompt: str, max_tokens: int,
                      decision_id: Optional[str], path: str) -> LLMResponse:
        """Call the provider once; any failure to get usable text raises VoterTransportError."""
        voter = self.voter.value
        emit({
            "type": "voter_start",
            "voter": voter,
            "role": self.role.role,
            "path": path,
            "decision_id": decision_id,
            "timeout": self.timeout,
        })

        try:
            response = await asyncio.wait_for(
                self.provider.query(
                    prompt,
                    self.timeout,
                    system_prompt=system_prompt,
                    max_tokens=max_tokens,
                    temperature=self.temperature,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            response = LLMResponse(content='', model=voter, latency_ms=self.timeout * 1000,
                                   success=False, error='TIMEOUT')
        except Exception as e:
            emit({"type": "voter_error", "voter": voter, "path": path,
                  "decision_id": decision_id, "error": str(e)})
            raise VoterTransportError(self.voter, f"{self.role.name} call failed: {e}") from e

        if not response.success:
            emit({"type": "voter_error", "voter": voter, "path": path,
                  "decision_id": decision_id, "error": response.error})
            raise VoterTransportError(self.voter, f"{self.role.name} call failed: {response.error}")

        if not response.content or not response.content.strip():
            emit({"type": "voter_error", "voter": voter, "path": path,
                  "decision_id": decision_id, "error": "empty response"})
            raise VoterTransportError(self.voter, f"Empty response from {self.role.name}")

        emit({
            "type": "voter_complete",
            "voter": voter,
            "path": path,
            "decision_id": decision_id,
            "latency_ms": response.latency_ms,
        })
        return response

    async def cast_vote(self, decision: Decision) -> VoteDraft:
        """
        Ask this voter for a vote on a decision (lenient policy).

        Raises:
            VoterTransportError: the service failed, timed out or returned nothing.
        """
        response = await self._invoke(
            self.role.decision_instructions,
            build_decision_prompt(decision),
            self.decision_max_tokens,
            decision.id,
            'decision',
        )

        if extract_json(response.content) is None:
            emit({
                "type": "vote_parse_fallback",
                "voter": self.voter.value,
                "decision_id": decision.id,
                "content_preview": response.content[:200],
            })
        return parse_vote(self.voter, response.content)

    async def recommend_action(self, context: AutonomousContext) -> ActionRecommendation:
        """
        Ask this voter for an autonomous action (strict policy).

        Raises:
            VoterTransportError: the service failed, timed out or returned nothing.
            VoterParseError: no JSON payload or an unknown action.
        """
        response = await self._invoke(
            self.role.action_instructions,
            build_context_prompt(context),
            self.action_max_tokens,
            None,
            'action',
        )
        return parse_action_recommendation(self.voter, response.content)


def build_voters(
    config: 'Dev3Config',
    providers: Optional[Dict[VoterId, 'ProviderProtocol']] = None,
) -> List[VoterAdapter]:
    """
    Build the three voter adapters in fixed voter order.

    Args:
        config: Timeouts, token limits and model ids.
        providers: Optional explicit providers per voter (defaults to OpenRouter).
    """
    if providers is None:
        from dev3.model_providers.factory import get_providers
        providers = get_providers(config)

    return [
        VoterAdapter(
            get_role(voter),
            providers[voter],
            timeout=config.timeout,
            decision_max_tokens=config.decision_max_tokens,
            action_max_tokens=config.action_max_tokens,
            temperature=config.temperature,
        )
        for voter in VOTER_ORDER
    ]
