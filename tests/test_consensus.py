"""
Tests for majority consensus over three votes.
"""

import pytest

from dev3.core.consensus import calculate_consensus, decide_outcome, merge_action_items, order_votes
from dev3.core.errors import MissingVotesError
from dev3.core.models import Outcome, Vote, VoteChoice, VoterId, VoteTally


def make_vote(voter, choice, confidence=80, reasoning='because', recommendations=None):
    return Vote(
        decision_id='d1',
        voter=voter,
        choice=VoteChoice(choice),
        reasoning=reasoning,
        confidence=confidence,
        recommendations=recommendations,
    )


def three_votes(grok, chatgpt, claude):
    return [
        make_vote(VoterId.GROK, grok),
        make_vote(VoterId.CHATGPT, chatgpt),
        make_vote(VoterId.CLAUDE, claude),
    ]


class TestOutcome:
    """Outcome and unanimity rules."""

    def test_unanimous_approve(self):
        consensus = calculate_consensus('d1', three_votes('approve', 'approve', 'approve'))
        assert consensus.outcome is Outcome.APPROVED
        assert consensus.unanimity is True
        assert consensus.vote_summary.to_dict() == {'approve': 3, 'reject': 0, 'abstain': 0}

    def test_majority_approve(self):
        consensus = calculate_consensus('d1', three_votes('approve', 'reject', 'approve'))
        assert consensus.outcome is Outcome.APPROVED
        assert consensus.unanimity is False

    def test_majority_reject(self):
        consensus = calculate_consensus('d1', three_votes('reject', 'approve', 'reject'))
        assert consensus.outcome is Outcome.REJECTED
        assert consensus.unanimity is False

    def test_unanimous_reject(self):
        consensus = calculate_consensus('d1', three_votes('reject', 'reject', 'reject'))
        assert consensus.outcome is Outcome.REJECTED
        assert consensus.unanimity is True

    def test_split_needs_revision(self):
        consensus = calculate_consensus('d1', three_votes('approve', 'reject', 'abstain'))
        assert consensus.outcome is Outcome.NEEDS_REVISION
        assert consensus.unanimity is False

    def test_abstain_majority_needs_revision(self):
        consensus = calculate_consensus('d1', three_votes('abstain', 'approve', 'abstain'))
        assert consensus.outcome is Outcome.NEEDS_REVISION

    def test_unanimous_abstain_is_not_unanimity(self):
        """Three abstains agree, but unanimity only counts approve or reject."""
        consensus = calculate_consensus('d1', three_votes('abstain', 'abstain', 'abstain'))
        assert consensus.outcome is Outcome.NEEDS_REVISION
        assert consensus.unanimity is False

    def test_summary_always_totals_three(self):
        for combo in [('approve', 'reject', 'abstain'), ('abstain', 'abstain', 'reject')]:
            consensus = calculate_consensus('d1', three_votes(*combo))
            assert consensus.vote_summary.total == 3

    def test_approve_checked_before_reject(self):
        assert decide_outcome(VoteTally(approve=2, reject=2)) is Outcome.APPROVED


class TestSynthesis:
    """Reasoning synthesis and action items."""

    def test_reasoning_follows_voter_order(self):
        """Votes arriving out of order are still synthesized Grok, ChatGPT, Claude."""
        votes = [
            make_vote(VoterId.CLAUDE, 'reject', 60, 'Too risky'),
            make_vote(VoterId.GROK, 'approve', 90, 'Ship it'),
            make_vote(VoterId.CHATGPT, 'approve', 75, 'Feasible'),
        ]
        consensus = calculate_consensus('d1', votes)

        assert consensus.synthesized_reasoning == (
            "Grok (approve, 90% confidence): Ship it\n\n"
            "ChatGPT (approve, 75% confidence): Feasible\n\n"
            "Claude (reject, 60% confidence): Too risky"
        )

    def test_action_items_deduplicated_in_first_seen_order(self):
        votes = [
            make_vote(VoterId.GROK, 'approve', recommendations=['add tests', 'benchmark']),
            make_vote(VoterId.CHATGPT, 'approve', recommendations=['benchmark', 'document']),
            make_vote(VoterId.CLAUDE, 'approve', recommendations=None),
        ]
        assert merge_action_items(votes) == ['add tests', 'benchmark', 'document']
        assert calculate_consensus('d1', votes).action_items == ['add tests', 'benchmark', 'document']


class TestVoteSelection:
    """One vote per voter is required."""

    def test_missing_voter_raises(self):
        votes = [make_vote(VoterId.GROK, 'approve'), make_vote(VoterId.CHATGPT, 'reject')]

        with pytest.raises(MissingVotesError) as exc_info:
            calculate_consensus('d1', votes)

        assert exc_info.value.responded == [VoterId.GROK, VoterId.CHATGPT]
        assert exc_info.value.missing == [VoterId.CLAUDE]

    def test_no_votes(self):
        with pytest.raises(MissingVotesError) as exc_info:
            order_votes([])
        assert exc_info.value.responded == []
        assert len(exc_info.value.missing) == 3

    def test_later_vote_from_same_voter_wins(self):
        votes = three_votes('reject', 'reject', 'approve') + [make_vote(VoterId.GROK, 'approve')]
        consensus = calculate_consensus('d1', votes)
        assert consensus.outcome is Outcome.APPROVED
        assert consensus.vote_summary.total == 3
