"""
JSON extraction and voter response parsing.

Two policies live here:
- parse_vote: lenient. Anything unusable degrades to an abstain vote.
- parse_action_recommendation: strict. Anything unusable raises.
"""

import json
import re
from typing import Any, List, Optional, TYPE_CHECKING

from .errors import VoterParseError
from .models import (
    ActionRecommendation, ActionType, DEFAULT_CONFIDENCE, VoteChoice,
    VoteDraft, VoterId,
)

if TYPE_CHECKING:
    from .models import LLMResponse

# Pre-compiled regex patterns
FENCE_PATTERN = re.compile(r'^```(?:json)?\s*|\s*```$')

PARSE_FAILED_RISK = "Response parsing failed"
PARSE_FAILED_RECOMMENDATION = "Review manually"
NO_REASONING = "No reasoning provided"


def _first_json_object(text: str) -> Optional[dict]:
    """Decode the first well-formed JSON object starting anywhere in text."""
    decoder = json.JSONDecoder()
    idx = text.find('{')
    while idx != -1:
        try:
            obj, _ = decoder.raw_decode(text, idx)
        except json.JSONDecodeError:
            idx = text.find('{', idx + 1)
            continue
        if isinstance(obj, dict):
            return obj
        idx = text.find('{', idx + 1)
    return None


def extract_json(text: str) -> Optional[dict]:
    """
    Extract the first JSON object embedded in a model response.

    Tolerates surrounding commentary and ```json code fences.
    Returns None when no object can be decoded.
    """
    if not text:
        return None

    stripped = FENCE_PATTERN.sub('', text.strip())

    # Try parsing as-is
    if stripped.startswith('{'):
        try:
            parsed = json.loads(stripped)
            if isinstance(parsed, dict):
                return parsed
        except json.JSONDecodeError:
            pass

    return _first_json_object(text)


def get_parsed_json(response: 'LLMResponse') -> Optional[dict]:
    """Get parsed JSON from LLMResponse, using the cached value if available."""
    if response.parsed_json is None:
        response.parsed_json = extract_json(response.content)
    return response.parsed_json


def bounded_confidence(raw: Any, default: float = DEFAULT_CONFIDENCE) -> float:
    """
    Bound a reported confidence to [0, 100], keeping any fraction.

    Numeric values (and numeric strings) are bounded; anything else,
    including booleans and NaN, falls back to the default.
    """
    if isinstance(raw, bool) or raw is None:
        return default
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return default
    if value != value:  # NaN
        return default
    return max(0.0, min(100.0, value))


def clamp_confidence(raw: Any, default: int = DEFAULT_CONFIDENCE) -> int:
    """Integer confidence for votes; fractions are truncated."""
    return int(bounded_confidence(raw, default))


def _string_list(raw: Any) -> List[str]:
    if not isinstance(raw, list):
        return []
    return [str(item) for item in raw if item is not None]


def fallback_vote(voter: VoterId, content: str) -> VoteDraft:
    """Default vote recorded when a reachable voter returns an unusable payload."""
    return VoteDraft(
        voter=voter,
        choice=VoteChoice.ABSTAIN,
        reasoning=content or "Failed to generate response",
        confidence=DEFAULT_CONFIDENCE,
        risks=[PARSE_FAILED_RISK],
        recommendations=[PARSE_FAILED_RECOMMENDATION],
    )


def parse_vote(voter: VoterId, content: str) -> VoteDraft:
    """
    Parse a manual deliberation vote (lenient policy).

    Never raises: a missing payload yields fallback_vote(); invalid fields
    are normalised individually.
    """
    data = extract_json(content)
    if data is None:
        return fallback_vote(voter, content)

    raw_vote = data.get('vote')
    try:
        choice = VoteChoice(raw_vote.strip().lower()) if isinstance(raw_vote, str) else VoteChoice.ABSTAIN
    except ValueError:
        choice = VoteChoice.ABSTAIN

    reasoning = data.get('reasoning')
    if not isinstance(reasoning, str) or not reasoning.strip():
        reasoning = NO_REASONING

    return VoteDraft(
        voter=voter,
        choice=choice,
        reasoning=reasoning,
        confidence=clamp_confidence(data.get('confidence')),
        risks=_string_list(data.get('risks')),
        recommendations=_string_list(data.get('recommendations')),
    )


def parse_action_recommendation(voter: VoterId, content: str) -> ActionRecommendation:
    """
    Parse an autonomous action recommendation (strict policy).

    Raises:
        VoterParseError: no JSON object found, or the action is not one of
            the known ActionType values.
    """
    data = extract_json(content)
    if data is None:
        raise VoterParseError(voter, f"No JSON found in {voter.value} response")

    raw_action = data.get('action') or ActionType.HOLD.value
    try:
        action = ActionType(str(raw_action).strip().lower())
    except ValueError:
        raise VoterParseError(voter, f"Unknown action '{raw_action}' in {voter.value} response")

    reasoning = data.get('reasoning')
    if not isinstance(reasoning, str) or not reasoning.strip():
        reasoning = NO_REASONING

    amount = data.get('amount')
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        amount = None

    # Thresholds compare against the exact value; whole numbers stay ints
    confidence = bounded_confidence(data.get('confidence'))
    if confidence == int(confidence):
        confidence = int(confidence)

    return ActionRecommendation(
        voter=voter,
        action=action,
        reasoning=reasoning,
        confidence=confidence,
        amount=amount,
    )
