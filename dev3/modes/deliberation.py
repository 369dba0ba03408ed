"""
Manual deliberation for Dev3.

Three voters judge a decision in parallel; their votes are recorded and a
consensus is computed from them. All-or-nothing: if any voter call fails,
nothing is persisted.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from dev3.core.adapters import VoterAdapter
from dev3.core.consensus import calculate_consensus
from dev3.core.emit import emit
from dev3.core.errors import (
    AlreadyDeliberatedError, DecisionNotFoundError, DeliberationFailed,
)
from dev3.core.models import (
    ActivityLogEntry, Consensus, Decision, DecisionStatus, Outcome, Vote, VoteDraft,
)
from dev3.core.storage import MemStorage
from dev3.security.input_validator import InputValidator


@dataclass
class DeliberationResult:
    """Decision state after a completed deliberation."""
    decision: Decision
    votes: List[Vote]
    consensus: Consensus

    def to_dict(self) -> Dict[str, Any]:
        return {
            'decision': self.decision.to_dict(),
            'deliberation': {
                'responses': [v.to_dict() for v in self.votes],
                'consensus': self.consensus.to_dict(),
            },
        }


async def gather_votes(decision: Decision, voters: Sequence[VoterAdapter]) -> List[VoteDraft]:
    """
    Collect one vote per voter in parallel.

    Waits for every call to finish. If any call raised, the first failure in
    voter order is surfaced as DeliberationFailed and no votes are returned.
    """
    results = await asyncio.gather(
        *(voter.cast_vote(decision) for voter in voters),
        return_exceptions=True,
    )

    for voter, result in zip(voters, results):
        if isinstance(result, BaseException):
            emit({
                "type": "deliberation_failed",
                "decision_id": decision.id,
                "voter": voter.voter.value,
                "error": str(result),
            })
            raise DeliberationFailed(decision.id, str(result), voter=voter.voter) from result

    return list(results)


class DeliberationService:
    """
    Operations on manual decisions.

    Deliberations of the same decision are serialized by a per-decision
    asyncio.Lock; different decisions deliberate concurrently.
    """

    def __init__(
        self,
        storage: MemStorage,
        voters: Sequence[VoterAdapter],
        validator: Optional[InputValidator] = None,
    ):
        self.storage = storage
        self.voters = list(voters)
        self.validator = validator or InputValidator()
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock_for(self, decision_id: str) -> asyncio.Lock:
        return self._locks.setdefault(decision_id, asyncio.Lock())

    def _require(self, decision_id: str) -> Decision:
        decision = self.storage.get_decision(decision_id)
        if decision is None:
            raise DecisionNotFoundError(decision_id)
        return decision

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def create_decision(self, payload: Dict[str, Any]) -> Decision:
        """
        Validate a payload and store a new pending decision.

        Raises:
            DecisionValidationError: before anything is stored.
        """
        data = self.validator.validate_decision(payload)

        flags = self.validator.check_prompt_injection(f"{data.title}\n{data.description}\n{data.context or ''}")
        decision = self.storage.create_decision(data)
        if flags:
            emit({"type": "prompt_injection_warning", "decision_id": decision.id, "flags": flags})
        emit({"type": "decision_created", "decision_id": decision.id, "title": decision.title})
        return decision

    def get_decision(self, decision_id: str) -> Decision:
        return self._require(decision_id)

    def list_decisions(self) -> List[Decision]:
        return self.storage.list_decisions()

    def update_decision(self, decision_id: str, payload: Dict[str, Any]) -> Decision:
        updates = self.validator.validate_decision_update(payload)
        decision = self.storage.update_decision(decision_id, updates)
        if decision is None:
            raise DecisionNotFoundError(decision_id)
        return decision

    def delete_decision(self, decision_id: str) -> None:
        if not self.storage.delete_decision(decision_id):
            raise DecisionNotFoundError(decision_id)
        self._locks.pop(decision_id, None)

    # ------------------------------------------------------------------
    # Votes and consensus
    # ------------------------------------------------------------------

    def record_vote(self, decision_id: str, payload: Dict[str, Any]) -> Vote:
        """Set one voter's vote by hand, replacing any earlier vote from that voter."""
        self._require(decision_id)
        draft = self.validator.validate_vote(payload)
        vote = self.storage.add_vote(Vote.from_draft(decision_id, draft))
        if vote is None:
            raise DecisionNotFoundError(decision_id)
        return vote

    def get_votes(self, decision_id: str) -> List[Vote]:
        self._require(decision_id)
        return self.storage.get_votes(decision_id)

    def reach_consensus(self, decision_id: str) -> Consensus:
        """
        Compute and store consensus from the recorded votes.

        Recomputation is allowed here and replaces the stored consensus.

        Raises:
            DecisionNotFoundError
            MissingVotesError: listing responded and missing voters.
        """
        self._require(decision_id)
        consensus = calculate_consensus(decision_id, self.storage.get_votes(decision_id))
        stored = self.storage.set_consensus(decision_id, consensus)
        if stored is None:
            raise DecisionNotFoundError(decision_id)
        return stored

    def get_consensus(self, decision_id: str) -> Optional[Consensus]:
        self._require(decision_id)
        return self.storage.get_consensus(decision_id)

    # ------------------------------------------------------------------
    # Deliberation
    # ------------------------------------------------------------------

    async def deliberate(self, decision_id: str) -> DeliberationResult:
        """
        Ask all three voters, record their votes and compute consensus.

        Raises:
            DecisionNotFoundError
            AlreadyDeliberatedError: carrying the existing consensus.
            DeliberationFailed: a voter call failed; nothing was recorded.
        """
        self._require(decision_id)
        async with self._lock_for(decision_id):
            try:
                decision = self._require(decision_id)
            except DecisionNotFoundError:
                # Deleted while waiting for the lock
                self._locks.pop(decision_id, None)
                raise
            if decision.status is DecisionStatus.CONSENSUS_REACHED:
                raise AlreadyDeliberatedError(decision_id, decision.consensus)

            emit({"type": "deliberation_start", "decision_id": decision_id, "title": decision.title})

            drafts = await gather_votes(decision, self.voters)

            votes = []
            for draft in drafts:
                vote = self.storage.add_vote(Vote.from_draft(decision_id, draft))
                if vote is None:
                    raise DecisionNotFoundError(decision_id)
                votes.append(vote)

            consensus = self.reach_consensus(decision_id)

            emit({
                "type": "consensus_reached",
                "decision_id": decision_id,
                "outcome": consensus.outcome.value,
                "unanimity": consensus.unanimity,
                "vote_summary": consensus.vote_summary.to_dict(),
                "reasoning": consensus.synthesized_reasoning,
            })

            return DeliberationResult(
                decision=self._require(decision_id),
                votes=votes,
                consensus=consensus,
            )

    async def create_and_deliberate(self, payload: Dict[str, Any]) -> DeliberationResult:
        """Create a decision and deliberate on it in one step."""
        decision = self.create_decision(payload)
        return await self.deliberate(decision.id)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def list_activity(self) -> List[ActivityLogEntry]:
        return self.storage.get_activity_logs()

    def compute_stats(self) -> Dict[str, Any]:
        """Aggregate counts over all decisions."""
        decisions = self.storage.list_decisions()

        by_status = {status.value: 0 for status in DecisionStatus}
        by_category: Dict[str, int] = {}
        by_priority: Dict[str, int] = {}
        outcomes = {outcome.value: 0 for outcome in Outcome}
        unanimous = 0

        for decision in decisions:
            by_status[decision.status.value] += 1
            by_category[decision.category.value] = by_category.get(decision.category.value, 0) + 1
            by_priority[decision.priority.value] = by_priority.get(decision.priority.value, 0) + 1
            if decision.consensus is not None:
                outcomes[decision.consensus.outcome.value] += 1
                if decision.consensus.unanimity:
                    unanimous += 1

        return {
            'totalDecisions': len(decisions),
            'byStatus': by_status,
            'byCategory': by_category,
            'byPriority': by_priority,
            'consensusOutcomes': outcomes,
            'unanimousDecisions': unanimous,
        }
