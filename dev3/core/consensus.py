"""
Consensus calculation for manual deliberation.

Pure function over exactly three votes (one per voter). Persisting the
result is the storage layer's job.
"""

from typing import Dict, List, Sequence

from .errors import MissingVotesError
from .models import (
    Consensus, Outcome, Vote, VoteChoice, VoterId, VoteTally, VOTER_ORDER, MIN_QUORUM,
)
from .voters import get_role


def tally(votes: Sequence[Vote]) -> VoteTally:
    counts = VoteTally()
    for vote in votes:
        if vote.choice is VoteChoice.APPROVE:
            counts.approve += 1
        elif vote.choice is VoteChoice.REJECT:
            counts.reject += 1
        else:
            counts.abstain += 1
    return counts


def decide_outcome(counts: VoteTally) -> Outcome:
    """Approve beats reject; no choice reaching quorum means needs_revision."""
    if counts.approve >= MIN_QUORUM:
        return Outcome.APPROVED
    if counts.reject >= MIN_QUORUM:
        return Outcome.REJECTED
    return Outcome.NEEDS_REVISION


def synthesize_reasoning(ordered_votes: Sequence[Vote]) -> str:
    parts = []
    for vote in ordered_votes:
        name = get_role(vote.voter).name
        parts.append(f"{name} ({vote.choice.value}, {vote.confidence}% confidence): {vote.reasoning}")
    return "\n\n".join(parts)


def merge_action_items(ordered_votes: Sequence[Vote]) -> List[str]:
    """Union of all recommendation lists, duplicates removed, first-seen order."""
    seen = {}
    for vote in ordered_votes:
        for item in vote.recommendations or []:
            seen.setdefault(item, None)
    return list(seen)


def order_votes(votes: Sequence[Vote]) -> List[Vote]:
    """
    Select one vote per voter in fixed voter order.

    Raises:
        MissingVotesError: if any voter has not voted.
    """
    by_voter: Dict[VoterId, Vote] = {}
    for vote in votes:
        # Later entries win, mirroring storage replacement
        by_voter[vote.voter] = vote

    missing = [v for v in VOTER_ORDER if v not in by_voter]
    if missing:
        responded = [v for v in VOTER_ORDER if v in by_voter]
        raise MissingVotesError(responded, missing)

    return [by_voter[v] for v in VOTER_ORDER]


def calculate_consensus(decision_id: str, votes: Sequence[Vote]) -> Consensus:
    """
    Compute a Consensus from exactly one vote per voter.

    Rules (strict order):
    1. approve >= 2 -> approved
    2. reject >= 2 -> rejected
    3. otherwise -> needs_revision
    Unanimity is true only for 3-0 approve or 3-0 reject.

    Raises:
        MissingVotesError: if fewer than three distinct voters are present.
    """
    ordered = order_votes(votes)
    counts = tally(ordered)

    return Consensus(
        decision_id=decision_id,
        outcome=decide_outcome(counts),
        unanimity=counts.approve == len(VOTER_ORDER) or counts.reject == len(VOTER_ORDER),
        vote_summary=counts,
        synthesized_reasoning=synthesize_reasoning(ordered),
        action_items=merge_action_items(ordered),
    )
