"""
Data classes for Dev3 deliberation.

Contains all structured data types used across the manual deliberation
pipeline and the autonomous cycle engine.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


# Default constants (defined here to avoid circular imports)
MIN_QUORUM = 2              # Votes needed to force an outcome
HISTORY_LIMIT = 100         # Autonomous decisions kept in memory
DEFAULT_CONFIDENCE = 50     # Used when a voter reports no usable confidence


def utc_now_iso() -> str:
    """ISO-8601 timestamp in UTC."""
    return datetime.now(timezone.utc).isoformat()


def new_id() -> str:
    return str(uuid.uuid4())


class VoterId(Enum):
    """The three fixed voters, in declaration order."""
    GROK = "grok"
    CHATGPT = "chatgpt"
    CLAUDE = "claude"


VOTER_ORDER = (VoterId.GROK, VoterId.CHATGPT, VoterId.CLAUDE)


class VoteChoice(Enum):
    APPROVE = "approve"
    REJECT = "reject"
    ABSTAIN = "abstain"


class DecisionCategory(Enum):
    ARCHITECTURE = "architecture"
    FEATURE = "feature"
    REFACTOR = "refactor"
    SECURITY = "security"
    PERFORMANCE = "performance"
    DEPENDENCY = "dependency"
    OTHER = "other"


class Priority(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class DecisionStatus(Enum):
    """
    Lifecycle of a manual decision.

    DEADLOCK is part of the enumeration but no transition produces it.
    """
    PENDING = "pending"
    DELIBERATING = "deliberating"
    CONSENSUS_REACHED = "consensus_reached"
    DEADLOCK = "deadlock"


class Outcome(Enum):
    APPROVED = "approved"
    REJECTED = "rejected"
    NEEDS_REVISION = "needs_revision"


class ActionType(Enum):
    """Autonomous actions. Declaration order is the plurality tie-break order."""
    BUYBACK = "buyback"
    BURN = "burn"
    HOLD = "hold"
    SELL_PARTIAL = "sell_partial"
    CLAIM_REWARDS = "claim_rewards"


class ActivityType(Enum):
    DECISION_CREATED = "decision_created"
    DELIBERATION_STARTED = "deliberation_started"
    DELIBERATION_COMPLETED = "deliberation_completed"
    CONSENSUS_APPROVED = "consensus_approved"
    CONSENSUS_REJECTED = "consensus_rejected"
    CONSENSUS_NEEDS_REVISION = "consensus_needs_revision"
    DECISION_DELETED = "decision_deleted"


@dataclass
class LLMResponse:
    """Response from a single reasoning-service call."""
    content: str
    model: str
    latency_ms: int
    success: bool
    error: Optional[str] = None
    parsed_json: Optional[dict] = field(default=None, repr=False)  # Cached JSON parsing


@dataclass
class VoteTally:
    """Approve/reject/abstain counts."""
    approve: int = 0
    reject: int = 0
    abstain: int = 0

    @property
    def total(self) -> int:
        return self.approve + self.reject + self.abstain

    def to_dict(self) -> Dict[str, int]:
        return {'approve': self.approve, 'reject': self.reject, 'abstain': self.abstain}


@dataclass
class VoteDraft:
    """A parsed vote before it is attached to a decision."""
    voter: VoterId
    choice: VoteChoice
    reasoning: str
    confidence: int
    risks: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)


@dataclass
class Vote:
    """A single voter's ballot on one decision."""
    decision_id: str
    voter: VoterId
    choice: VoteChoice
    reasoning: str
    confidence: int
    risks: Optional[List[str]] = None
    recommendations: Optional[List[str]] = None
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=utc_now_iso)

    @classmethod
    def from_draft(cls, decision_id: str, draft: VoteDraft) -> 'Vote':
        return cls(
            decision_id=decision_id,
            voter=draft.voter,
            choice=draft.choice,
            reasoning=draft.reasoning,
            confidence=draft.confidence,
            risks=list(draft.risks),
            recommendations=list(draft.recommendations),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'decisionId': self.decision_id,
            'model': self.voter.value,
            'vote': self.choice.value,
            'reasoning': self.reasoning,
            'confidence': self.confidence,
            'risks': self.risks,
            'recommendations': self.recommendations,
            'createdAt': self.created_at,
        }


@dataclass
class Consensus:
    """Aggregated outcome of exactly three votes."""
    decision_id: str
    outcome: Outcome
    unanimity: bool
    vote_summary: VoteTally
    synthesized_reasoning: str
    action_items: List[str] = field(default_factory=list)
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'decisionId': self.decision_id,
            'outcome': self.outcome.value,
            'unanimity': self.unanimity,
            'voteSummary': self.vote_summary.to_dict(),
            'synthesizedReasoning': self.synthesized_reasoning,
            'actionItems': list(self.action_items),
            'createdAt': self.created_at,
        }


@dataclass
class DecisionInput:
    """Validated payload for creating a decision."""
    title: str
    description: str
    category: DecisionCategory
    priority: Priority
    context: Optional[str] = None


@dataclass
class Decision:
    """A proposal awaiting (or holding) the voters' judgment."""
    title: str
    description: str
    category: DecisionCategory
    priority: Priority
    context: Optional[str] = None
    votes: List[Vote] = field(default_factory=list)
    consensus: Optional[Consensus] = None
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=utc_now_iso)
    updated_at: str = field(default_factory=utc_now_iso)

    @property
    def voters_present(self) -> List[VoterId]:
        return [v for v in VOTER_ORDER if any(vote.voter is v for vote in self.votes)]

    @property
    def missing_voters(self) -> List[VoterId]:
        present = set(self.voters_present)
        return [v for v in VOTER_ORDER if v not in present]

    @property
    def status(self) -> DecisionStatus:
        """Derived from the vote set and consensus presence; never assigned."""
        if self.consensus is not None:
            return DecisionStatus.CONSENSUS_REACHED
        if not self.missing_voters:
            return DecisionStatus.DELIBERATING
        return DecisionStatus.PENDING

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'context': self.context,
            'category': self.category.value,
            'priority': self.priority.value,
            'status': self.status.value,
            'votes': [v.to_dict() for v in self.votes],
            'consensus': self.consensus.to_dict() if self.consensus else None,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
        }


@dataclass
class ActivityLogEntry:
    """Immutable, system-generated fact about a state transition."""
    type: ActivityType
    decision_id: Optional[str] = None
    decision_title: Optional[str] = None
    outcome: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    id: str = field(default_factory=new_id)
    timestamp: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'type': self.type.value,
            'decisionId': self.decision_id,
            'decisionTitle': self.decision_title,
            'outcome': self.outcome,
            'metadata': self.metadata,
            'timestamp': self.timestamp,
        }


# ============================================================================
# Autonomous engine types
# ============================================================================

@dataclass
class WalletBalance:
    sol: float = 0.0
    lamports: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {'sol': self.sol, 'lamports': self.lamports}


@dataclass
class TokenInfo:
    mint: str
    name: str
    symbol: str
    created_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {'mint': self.mint, 'name': self.name, 'symbol': self.symbol, 'createdAt': self.created_at}


@dataclass
class MarketData:
    price: float = 0.0
    market_cap: float = 0.0
    volume_24h: float = 0.0
    price_change_24h: float = 0.0
    holders: int = 0


@dataclass
class AutonomousContext:
    """Snapshot fed to the voters at the start of a cycle."""
    balance: WalletBalance
    token: Optional[TokenInfo]
    market: Optional[MarketData]
    recent_actions: List[str]
    timestamp: str = field(default_factory=utc_now_iso)


@dataclass
class ActionRecommendation:
    """One voter's recommended autonomous action."""
    voter: VoterId
    action: ActionType
    reasoning: str
    confidence: float
    amount: Optional[float] = None


@dataclass
class TradeResult:
    """Outcome reported by the execution dispatcher."""
    success: bool
    signature: Optional[str] = None
    error: Optional[str] = None


@dataclass
class AutonomousDecision:
    """A record produced by one autonomous cycle."""
    action: ActionType
    reasoning: str
    votes: VoteTally
    executed: bool
    result: Optional[str] = None
    id: str = field(default_factory=lambda: f"auto-{int(datetime.now(timezone.utc).timestamp() * 1000)}-{uuid.uuid4().hex[:6]}")
    timestamp: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'action': self.action.value,
            'reasoning': self.reasoning,
            'votes': self.votes.to_dict(),
            'executed': self.executed,
            'result': self.result,
            'timestamp': self.timestamp,
        }
