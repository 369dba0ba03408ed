"""
Dev3 Core - Shared infrastructure for three-voter deliberation.

Modules:
- models: Data classes (Decision, Vote, Consensus, AutonomousDecision)
- errors: Error taxonomy
- voters: Fixed voter roles
- emit: Event emission with secret redaction
- adapters: Voter call wrappers
- prompts: Prompt builders
- parsing: JSON extraction and vote/recommendation parsing
- consensus: Majority consensus over three votes
- storage: In-memory decision store and activity log
"""

from .models import (
    ActionType, Consensus, Decision, LLMResponse, Outcome, Vote, VoterId,
    VOTER_ORDER,
)
from .errors import (
    Dev3Error, DecisionValidationError, DecisionNotFoundError,
    AlreadyDeliberatedError, MissingVotesError, DeliberationFailed,
    VoterTransportError, VoterParseError,
)

__all__ = [
    'ActionType',
    'Consensus',
    'Decision',
    'LLMResponse',
    'Outcome',
    'Vote',
    'VoterId',
    'VOTER_ORDER',
    'Dev3Error',
    'DecisionValidationError',
    'DecisionNotFoundError',
    'AlreadyDeliberatedError',
    'MissingVotesError',
    'DeliberationFailed',
    'VoterTransportError',
    'VoterParseError',
]
