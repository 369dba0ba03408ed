"""
Tests for the in-memory decision store and activity log.
"""

import pytest

from dev3.core.consensus import calculate_consensus
from dev3.core.models import (
    ActivityType, DecisionCategory, DecisionInput, DecisionStatus, Priority,
    Vote, VoteChoice, VoterId, VOTER_ORDER,
)
from dev3.core.storage import MemStorage


def new_decision(storage, title='Adopt PostgreSQL'):
    return storage.create_decision(DecisionInput(
        title=title,
        description='Replace the in-memory store',
        category=DecisionCategory.ARCHITECTURE,
        priority=Priority.HIGH,
    ))


def vote(decision_id, voter, choice='approve'):
    return Vote(decision_id=decision_id, voter=voter, choice=VoteChoice(choice),
                reasoning='r', confidence=80)


def activity_types(storage):
    return [entry.type for entry in storage.get_activity_logs()]


class TestDecisions:
    """Tests for decision CRUD."""

    def test_create_logs_activity(self):
        storage = MemStorage()
        decision = new_decision(storage)

        assert decision.status is DecisionStatus.PENDING
        entries = storage.get_activity_logs()
        assert len(entries) == 1
        assert entries[0].type is ActivityType.DECISION_CREATED
        assert entries[0].decision_id == decision.id
        assert entries[0].decision_title == 'Adopt PostgreSQL'
        assert entries[0].metadata == {'category': 'architecture', 'priority': 'high'}

    def test_list_newest_first(self):
        storage = MemStorage()
        first = new_decision(storage, 'first')
        second = new_decision(storage, 'second')

        assert [d.id for d in storage.list_decisions()] == [second.id, first.id]

    def test_get_missing(self):
        assert MemStorage().get_decision('nope') is None

    def test_update_descriptive_fields(self):
        storage = MemStorage()
        decision = new_decision(storage)
        storage.add_vote(vote(decision.id, VoterId.GROK))

        updated = storage.update_decision(decision.id, {'title': 'Adopt SQLite', 'priority': Priority.LOW})

        assert updated.title == 'Adopt SQLite'
        assert updated.priority is Priority.LOW
        assert len(updated.votes) == 1

    def test_update_rejects_other_fields(self):
        storage = MemStorage()
        decision = new_decision(storage)
        with pytest.raises(ValueError):
            storage.update_decision(decision.id, {'consensus': None})

    def test_update_missing(self):
        assert MemStorage().update_decision('nope', {'title': 'x'}) is None

    def test_delete_keeps_activity(self):
        """Deleting a decision leaves its activity entries in place."""
        storage = MemStorage()
        decision = new_decision(storage)

        assert storage.delete_decision(decision.id) is True
        assert storage.get_decision(decision.id) is None
        assert storage.get_votes(decision.id) == []
        assert activity_types(storage) == [ActivityType.DECISION_DELETED, ActivityType.DECISION_CREATED]

    def test_delete_missing(self):
        assert MemStorage().delete_decision('nope') is False

    def test_reads_are_copies(self):
        storage = MemStorage()
        decision = new_decision(storage)
        storage.add_vote(vote(decision.id, VoterId.GROK))

        fetched = storage.get_decision(decision.id)
        fetched.votes.clear()
        fetched.title = 'mutated'

        stored = storage.get_decision(decision.id)
        assert stored.title == 'Adopt PostgreSQL'
        assert len(stored.votes) == 1


class TestVotes:
    """Tests for vote recording and the derived status."""

    def test_vote_replaces_same_voter(self):
        storage = MemStorage()
        decision = new_decision(storage)

        storage.add_vote(vote(decision.id, VoterId.GROK, 'approve'))
        storage.add_vote(vote(decision.id, VoterId.GROK, 'reject'))

        votes = storage.get_votes(decision.id)
        assert len(votes) == 1
        assert votes[0].choice is VoteChoice.REJECT

    def test_vote_for_missing_decision(self):
        assert MemStorage().add_vote(vote('nope', VoterId.GROK)) is None

    def test_third_voter_starts_deliberation(self):
        storage = MemStorage()
        decision = new_decision(storage)

        storage.add_vote(vote(decision.id, VoterId.GROK))
        storage.add_vote(vote(decision.id, VoterId.CHATGPT))
        assert storage.get_decision(decision.id).status is DecisionStatus.PENDING
        assert ActivityType.DELIBERATION_STARTED not in activity_types(storage)

        storage.add_vote(vote(decision.id, VoterId.CLAUDE))
        assert storage.get_decision(decision.id).status is DecisionStatus.DELIBERATING
        assert activity_types(storage)[0] is ActivityType.DELIBERATION_STARTED

    def test_replacement_after_complete_does_not_log_again(self):
        storage = MemStorage()
        decision = new_decision(storage)
        for voter in VOTER_ORDER:
            storage.add_vote(vote(decision.id, voter))

        storage.add_vote(vote(decision.id, VoterId.GROK, 'reject'))

        assert activity_types(storage).count(ActivityType.DELIBERATION_STARTED) == 1


class TestConsensusStorage:
    """Tests for storing consensus."""

    def test_set_consensus_logs_outcome(self):
        storage = MemStorage()
        decision = new_decision(storage)
        for voter in VOTER_ORDER:
            storage.add_vote(vote(decision.id, voter))

        consensus = calculate_consensus(decision.id, storage.get_votes(decision.id))
        storage.set_consensus(decision.id, consensus)

        assert storage.get_decision(decision.id).status is DecisionStatus.CONSENSUS_REACHED
        assert activity_types(storage) == [
            ActivityType.CONSENSUS_APPROVED,
            ActivityType.DELIBERATION_COMPLETED,
            ActivityType.DELIBERATION_STARTED,
            ActivityType.DECISION_CREATED,
        ]
        latest = storage.get_activity_logs()[0]
        assert latest.outcome == 'approved'
        assert latest.metadata == {'unanimity': True}

    def test_consensus_replaced_on_recompute(self):
        storage = MemStorage()
        decision = new_decision(storage)
        for voter in VOTER_ORDER:
            storage.add_vote(vote(decision.id, voter, 'reject'))
        storage.set_consensus(decision.id, calculate_consensus(decision.id, storage.get_votes(decision.id)))

        for voter in VOTER_ORDER:
            storage.add_vote(vote(decision.id, voter, 'approve'))
        storage.set_consensus(decision.id, calculate_consensus(decision.id, storage.get_votes(decision.id)))

        assert storage.get_consensus(decision.id).outcome.value == 'approved'
        assert activity_types(storage)[0] is ActivityType.CONSENSUS_APPROVED
        assert ActivityType.CONSENSUS_REJECTED in activity_types(storage)

    def test_consensus_for_missing_decision(self):
        storage = MemStorage()
        assert storage.get_consensus('nope') is None
        decision = new_decision(storage)
        assert storage.get_consensus(decision.id) is None


class TestVoteSetInvariants:
    """Properties of the per-decision vote set."""

    @pytest.mark.parametrize("order", [
        (VoterId.CLAUDE, VoterId.GROK, VoterId.CHATGPT),
        (VoterId.CHATGPT, VoterId.CLAUDE, VoterId.GROK),
    ])
    def test_deliberating_independent_of_submission_order(self, order):
        storage = MemStorage()
        decision = new_decision(storage)

        for idx, voter in enumerate(order):
            storage.add_vote(vote(decision.id, voter))
            expected = DecisionStatus.DELIBERATING if idx == 2 else DecisionStatus.PENDING
            assert storage.get_decision(decision.id).status is expected

    def test_never_more_than_three_votes(self):
        storage = MemStorage()
        decision = new_decision(storage)

        for choice in ('approve', 'reject', 'abstain', 'approve'):
            for voter in VOTER_ORDER:
                storage.add_vote(vote(decision.id, voter, choice))

        votes = storage.get_votes(decision.id)
        assert len(votes) == 3
        assert {v.voter for v in votes} == set(VOTER_ORDER)
