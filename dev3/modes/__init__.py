"""
Dev3 Modes - the two deliberation paths.

Modes:
- deliberation: manual decisions judged by all three voters, with consensus
- autonomous: timer-driven action cycles with the quorum rule and execution gate
"""

from .deliberation import DeliberationResult, DeliberationService, gather_votes
from .autonomous import (
    AutonomousEngine, ConsensusAction, EngineState, determine_consensus_action,
    execute_action,
)

__all__ = [
    'DeliberationService',
    'DeliberationResult',
    'gather_votes',
    'AutonomousEngine',
    'EngineState',
    'ConsensusAction',
    'determine_consensus_action',
    'execute_action',
]
