"""
Shared fakes for Dev3 tests.

FakeProvider stands in for the OpenRouter provider so voter adapters,
deliberation and the autonomous engine can run without network access.
"""

import asyncio
import json
from typing import Dict, List, Optional, Sequence, Union

from dev3.core.adapters import VoterAdapter
from dev3.core.models import LLMResponse, VoterId, VOTER_ORDER
from dev3.core.voters import get_role
from dev3.model_providers.base import BaseProvider


class FakeProvider(BaseProvider):
    """
    Scripted provider.

    `replies` is either one reply used for every call or a list consumed in
    order (the last entry repeats). A reply that is an Exception is raised.
    """

    def __init__(
        self,
        name: str,
        replies: Union[str, Exception, Sequence[Union[str, Exception]]] = '',
        success: bool = True,
        error: Optional[str] = None,
        delay: float = 0,
    ):
        super().__init__(name)
        if isinstance(replies, (str, Exception)):
            replies = [replies]
        self.replies = list(replies)
        self.success = success
        self.error = error
        self.delay = delay
        self.calls: List[Dict[str, object]] = []

    def is_available(self) -> bool:
        return True

    async def query(self, prompt, timeout, system_prompt=None, max_tokens=None, temperature=None):
        self.calls.append({
            'prompt': prompt,
            'timeout': timeout,
            'system_prompt': system_prompt,
            'max_tokens': max_tokens,
            'temperature': temperature,
        })
        if self.delay:
            await asyncio.sleep(self.delay)

        reply = self.replies[min(len(self.calls) - 1, len(self.replies) - 1)]
        if isinstance(reply, Exception):
            raise reply
        return LLMResponse(
            content=reply if self.success else '',
            model=self._name,
            latency_ms=1,
            success=self.success,
            error=self.error,
        )


def vote_json(vote: str, confidence=80, reasoning: str = 'Looks reasonable', risks=None,
              recommendations=None) -> str:
    return json.dumps({
        'vote': vote,
        'reasoning': reasoning,
        'confidence': confidence,
        'risks': risks or [],
        'recommendations': recommendations or [],
    })


def action_json(action: str, confidence=80, reasoning: str = 'Market looks fine', amount=None) -> str:
    payload = {'action': action, 'reasoning': reasoning, 'confidence': confidence}
    if amount is not None:
        payload['amount'] = amount
    return json.dumps(payload)


def make_providers(replies: Sequence, **kwargs) -> Dict[VoterId, FakeProvider]:
    """One FakeProvider per voter; replies are given in voter order."""
    return {
        voter: FakeProvider(voter.value, reply, **kwargs)
        for voter, reply in zip(VOTER_ORDER, replies)
    }


def make_voters(providers: Dict[VoterId, BaseProvider], timeout: float = 5) -> List[VoterAdapter]:
    return [VoterAdapter(get_role(voter), providers[voter], timeout=timeout) for voter in VOTER_ORDER]


def decision_payload(**overrides) -> Dict[str, object]:
    payload = {
        'title': 'Adopt PostgreSQL',
        'description': 'Replace the in-memory store with PostgreSQL',
        'category': 'architecture',
        'priority': 'high',
    }
    payload.update(overrides)
    return payload
