"""
In-memory storage for Dev3 decisions.

Holds decisions, their votes and consensus, plus the append-only activity
log. Nothing survives a restart.

Thread-safe: all mutations are protected by an internal lock.
"""

import copy
import threading
from dataclasses import replace
from typing import Any, Dict, List, Optional

from .models import (
    ActivityLogEntry, ActivityType, Consensus, Decision, DecisionInput,
    Outcome, Vote, utc_now_iso,
)

UPDATABLE_FIELDS = ('title', 'description', 'context', 'category', 'priority')

OUTCOME_ACTIVITY = {
    Outcome.APPROVED: ActivityType.CONSENSUS_APPROVED,
    Outcome.REJECTED: ActivityType.CONSENSUS_REJECTED,
    Outcome.NEEDS_REVISION: ActivityType.CONSENSUS_NEEDS_REVISION,
}


class MemStorage:
    """
    Volatile store for the manual deliberation path.

    Reads return deep copies so callers cannot bypass the lock to mutate
    stored votes or consensus.

    Usage:
        storage = MemStorage()
        decision = storage.create_decision(payload)
        storage.add_vote(vote)
        storage.set_consensus(decision.id, consensus)
    """

    def __init__(self):
        self._lock = threading.RLock()  # Reentrant lock for nested calls
        self._decisions: Dict[str, Decision] = {}
        self._activity: List[ActivityLogEntry] = []

    # ------------------------------------------------------------------
    # Activity log
    # ------------------------------------------------------------------

    def _log(
        self,
        activity_type: ActivityType,
        decision: Optional[Decision] = None,
        outcome: Optional[Outcome] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> ActivityLogEntry:
        entry = ActivityLogEntry(
            type=activity_type,
            decision_id=decision.id if decision else None,
            decision_title=decision.title if decision else None,
            outcome=outcome.value if outcome else None,
            metadata=metadata,
        )
        self._activity.append(entry)
        return entry

    def get_activity_logs(self) -> List[ActivityLogEntry]:
        """All activity entries, newest first."""
        with self._lock:
            return list(reversed(self._activity))

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def create_decision(self, data: DecisionInput) -> Decision:
        with self._lock:
            decision = Decision(
                title=data.title,
                description=data.description,
                category=data.category,
                priority=data.priority,
                context=data.context,
            )
            self._decisions[decision.id] = decision
            self._log(
                ActivityType.DECISION_CREATED,
                decision,
                metadata={'category': decision.category.value, 'priority': decision.priority.value},
            )
            return copy.deepcopy(decision)

    def get_decision(self, decision_id: str) -> Optional[Decision]:
        with self._lock:
            decision = self._decisions.get(decision_id)
            return copy.deepcopy(decision) if decision else None

    def list_decisions(self) -> List[Decision]:
        """All decisions, newest first."""
        with self._lock:
            return [copy.deepcopy(d) for d in reversed(list(self._decisions.values()))]

    def update_decision(self, decision_id: str, updates: Dict[str, Any]) -> Optional[Decision]:
        """
        Apply a partial update to the descriptive fields of a decision.

        Votes, consensus and status are not updatable here. Unknown keys
        raise ValueError.
        """
        unknown = set(updates) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Fields not updatable: {sorted(unknown)}")

        with self._lock:
            decision = self._decisions.get(decision_id)
            if decision is None:
                return None
            updated = replace(decision, **updates)
            updated.updated_at = utc_now_iso()
            self._decisions[decision_id] = updated
            return copy.deepcopy(updated)

    def delete_decision(self, decision_id: str) -> bool:
        """Delete a decision with its votes and consensus. Activity entries are kept."""
        with self._lock:
            decision = self._decisions.pop(decision_id, None)
            if decision is None:
                return False
            self._log(ActivityType.DECISION_DELETED, decision)
            return True

    # ------------------------------------------------------------------
    # Votes
    # ------------------------------------------------------------------

    def add_vote(self, vote: Vote) -> Optional[Vote]:
        """
        Record a vote, replacing any earlier vote from the same voter.

        When this vote completes the voter set of a pending decision, the
        decision moves to deliberating and deliberation_started is logged.

        Returns:
            The stored vote, or None if the decision does not exist.
        """
        with self._lock:
            decision = self._decisions.get(vote.decision_id)
            if decision is None:
                return None

            was_incomplete = bool(decision.missing_voters)
            was_pending = decision.consensus is None and was_incomplete

            for idx, existing in enumerate(decision.votes):
                if existing.voter is vote.voter:
                    decision.votes[idx] = vote
                    break
            else:
                decision.votes.append(vote)

            if was_pending and not decision.missing_voters:
                decision.updated_at = utc_now_iso()
                self._log(ActivityType.DELIBERATION_STARTED, decision)

            return copy.deepcopy(vote)

    def get_votes(self, decision_id: str) -> List[Vote]:
        with self._lock:
            decision = self._decisions.get(decision_id)
            return copy.deepcopy(decision.votes) if decision else []

    # ------------------------------------------------------------------
    # Consensus
    # ------------------------------------------------------------------

    def set_consensus(self, decision_id: str, consensus: Consensus) -> Optional[Consensus]:
        """
        Store (or replace) the consensus for a decision.

        Appends deliberation_completed and the outcome-specific entry on
        every call, including recomputations.
        """
        with self._lock:
            decision = self._decisions.get(decision_id)
            if decision is None:
                return None

            decision.consensus = consensus
            decision.updated_at = utc_now_iso()

            self._log(
                ActivityType.DELIBERATION_COMPLETED,
                decision,
                outcome=consensus.outcome,
                metadata={'unanimity': consensus.unanimity, 'votes': consensus.vote_summary.to_dict()},
            )
            self._log(
                OUTCOME_ACTIVITY[consensus.outcome],
                decision,
                outcome=consensus.outcome,
                metadata={'unanimity': consensus.unanimity},
            )
            return copy.deepcopy(consensus)

    def get_consensus(self, decision_id: str) -> Optional[Consensus]:
        with self._lock:
            decision = self._decisions.get(decision_id)
            if decision is None or decision.consensus is None:
                return None
            return copy.deepcopy(decision.consensus)
