"""
Error taxonomy for Dev3.

Validation and precondition errors are raised before any voter is invoked.
Transport and parse errors come from the voter adapters; the deliberation
and autonomous layers decide whether they are fatal.
"""

from typing import Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import Consensus, VoterId


class Dev3Error(Exception):
    """Base class for all Dev3 errors."""
    pass


class DecisionValidationError(Dev3Error):
    """Raised when a decision payload fails validation. Carries per-field detail."""

    def __init__(self, violations: Dict[str, List[str]]):
        self.violations = violations
        fields = ', '.join(sorted(violations))
        super().__init__(f"Validation failed: {fields}")


class VoterTransportError(Dev3Error):
    """Raised when the reasoning service is unreachable or returns no content."""

    def __init__(self, voter: 'VoterId', message: str):
        self.voter = voter
        self.message = message
        super().__init__(message)


class VoterParseError(Dev3Error):
    """Raised on the strict path when a response holds no usable payload."""

    def __init__(self, voter: 'VoterId', message: str):
        self.voter = voter
        self.message = message
        super().__init__(message)


class DeliberationFailed(Dev3Error):
    """Raised when any voter fails during a manual deliberation."""

    def __init__(self, decision_id: str, message: str, voter: Optional['VoterId'] = None):
        self.decision_id = decision_id
        self.voter = voter
        self.message = message
        super().__init__(message)


class DecisionNotFoundError(Dev3Error):
    def __init__(self, decision_id: str):
        self.decision_id = decision_id
        super().__init__(f"Decision not found: {decision_id}")


class AlreadyDeliberatedError(Dev3Error):
    """Raised when deliberation is requested for a decision that already has consensus."""

    def __init__(self, decision_id: str, consensus: Optional['Consensus']):
        self.decision_id = decision_id
        self.consensus = consensus
        super().__init__("This decision has already reached consensus")


class MissingVotesError(Dev3Error):
    """Raised when consensus is requested before all three voters responded."""

    def __init__(self, responded: List['VoterId'], missing: List['VoterId']):
        self.responded = responded
        self.missing = missing
        super().__init__(
            "All three AI models must respond before consensus can be reached"
        )
