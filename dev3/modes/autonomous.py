"""
Autonomous cycle engine for Dev3.

On every tick the engine snapshots wallet/token/market context, asks the
three voters for an action recommendation, applies the quorum rule and,
when the result clears the execution gate, dispatches the action. Every
cycle, including a failed one, leaves an AutonomousDecision in history.
"""

import asyncio
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional, Sequence, Set, Tuple

from dev3.core.adapters import VoterAdapter
from dev3.core.emit import emit
from dev3.core.models import (
    ActionRecommendation, ActionType, AutonomousContext, AutonomousDecision,
    HISTORY_LIMIT, VoteTally, utc_now_iso,
)
from dev3.execution.context import ContextProvider
from dev3.execution.dispatcher import ExecutionDispatcher


# Quorum rule. The two confidence thresholds are independent of each other.
PLURALITY_CONFIDENCE_THRESHOLD = 30   # Recommendations above this count toward the plurality
QUORUM_FLOOR = 2                      # Plurality leader needs this many qualifying votes
DISPLAY_CONFIDENCE_THRESHOLD = 50     # Above this a recommendation shows as approve/reject
EXECUTION_APPROVAL_FLOOR = 2          # Display approvals needed to dispatch

DEFAULT_INTERVAL_MS = 30000
RECENT_ACTIONS_WINDOW = 5

# Execution parameters
MIN_BUYBACK_SOL = 0.01
BUYBACK_FRACTION = 0.1
MAX_BUYBACK_SOL = 0.1
SELL_PERCENTAGE = "10%"
BURN_PERCENTAGE = 10
CLAIM_POOL = "pump"

NOT_EXECUTED_RESULT = "Action not executed - HOLD consensus"


@dataclass
class ConsensusAction:
    """Outcome of the quorum rule over three recommendations."""
    action: ActionType
    reasoning: str
    votes: VoteTally


def plurality_leader(recommendations: Sequence[ActionRecommendation]) -> Tuple[ActionType, int]:
    """
    Action with the most qualifying votes and its count.

    Only confidence > PLURALITY_CONFIDENCE_THRESHOLD qualifies. Ties go to the
    action declared first in ActionType; with no qualifying votes it is (hold, 0).
    """
    counts: Dict[ActionType, int] = {action: 0 for action in ActionType}
    for rec in recommendations:
        if rec.confidence > PLURALITY_CONFIDENCE_THRESHOLD:
            counts[rec.action] += 1

    leader = ActionType.HOLD
    max_votes = 0
    for action in ActionType:
        if counts[action] > max_votes:
            max_votes = counts[action]
            leader = action
    return leader, max_votes


def determine_consensus_action(recommendations: Sequence[ActionRecommendation]) -> ConsensusAction:
    """
    Apply the autonomous quorum rule.

    1. Take the plurality leader among qualifying recommendations.
    2. A leader with fewer than QUORUM_FLOOR votes is replaced by hold.
    The display tally uses DISPLAY_CONFIDENCE_THRESHOLD and does not affect the action.
    """
    chosen, max_votes = plurality_leader(recommendations)
    if max_votes < QUORUM_FLOOR:
        chosen = ActionType.HOLD

    reasoning = "\n\n".join(
        f"{rec.voter.value.upper()}: {rec.action.value} ({rec.confidence}%) - {rec.reasoning}"
        for rec in recommendations
    )

    votes = VoteTally(
        approve=sum(1 for r in recommendations
                    if r.action is chosen and r.confidence > DISPLAY_CONFIDENCE_THRESHOLD),
        reject=sum(1 for r in recommendations
                   if r.action is not chosen and r.confidence > DISPLAY_CONFIDENCE_THRESHOLD),
        abstain=sum(1 for r in recommendations if r.confidence <= DISPLAY_CONFIDENCE_THRESHOLD),
    )

    return ConsensusAction(action=chosen, reasoning=reasoning, votes=votes)


def should_execute(consensus: ConsensusAction) -> bool:
    return consensus.action is not ActionType.HOLD and consensus.votes.approve >= EXECUTION_APPROVAL_FLOOR


async def execute_action(
    action: ActionType,
    context: AutonomousContext,
    dispatcher: ExecutionDispatcher,
) -> str:
    """Dispatch an approved action and describe what happened."""
    if context.token is None:
        return "No token created yet - cannot execute action"

    mint = context.token.mint

    if action is ActionType.BUYBACK:
        if context.balance.sol < MIN_BUYBACK_SOL:
            return "Insufficient SOL for buyback"
        amount = round(min(context.balance.sol * BUYBACK_FRACTION, MAX_BUYBACK_SOL), 9)
        result = await dispatcher.buy(mint, amount)
        if result.success:
            return f"Buyback executed: {amount} SOL - tx: {result.signature}"
        return f"Buyback failed: {result.error}"

    if action is ActionType.SELL_PARTIAL:
        result = await dispatcher.sell(mint, SELL_PERCENTAGE)
        if result.success:
            return f"Sell executed: {SELL_PERCENTAGE} of tokens - tx: {result.signature}"
        return f"Sell failed: {result.error}"

    if action is ActionType.BURN:
        result = await dispatcher.burn(mint, BURN_PERCENTAGE)
        if result.success:
            return f"Burn executed: {BURN_PERCENTAGE}% of tokens permanently burned - tx: {result.signature}"
        return f"Burn failed: {result.error}"

    if action is ActionType.CLAIM_REWARDS:
        result = await dispatcher.claim_rewards(CLAIM_POOL)
        if result.success:
            return f"Creator fees claimed - tx: {result.signature}"
        return f"Claim failed: {result.error}"

    return "No action taken - HOLD"


def degraded_decision(message: str) -> AutonomousDecision:
    """Record for a cycle that could not complete deliberation."""
    return AutonomousDecision(
        action=ActionType.HOLD,
        reasoning=f"Cycle aborted: AI deliberation failed - {message}",
        votes=VoteTally(approve=0, reject=0, abstain=3),
        executed=False,
        result=f"ERROR: {message}",
    )


@dataclass
class EngineState:
    """Everything the engine mutates. History is newest first and capped."""
    running: bool = False
    interval_ms: int = DEFAULT_INTERVAL_MS
    loop_task: Optional[asyncio.Task] = None
    cycle_tasks: Set[asyncio.Task] = field(default_factory=set)
    history: Deque[AutonomousDecision] = field(default_factory=lambda: deque(maxlen=HISTORY_LIMIT))


class AutonomousEngine:
    """
    Timer-driven cycle runner.

    States: stopped -> running (start) -> stopped (stop). start() and stop()
    are idempotent. run_cycle() works in either state and does not change it.
    Timer ticks spawn independent cycle tasks, so cycles may overlap.

    Usage:
        engine = AutonomousEngine(voters, context_provider, dispatcher)
        engine.start()            # inside a running event loop
        decision = await engine.run_cycle()
        engine.stop()
    """

    def __init__(
        self,
        voters: Sequence[VoterAdapter],
        context_provider: ContextProvider,
        dispatcher: ExecutionDispatcher,
        state: Optional[EngineState] = None,
    ):
        self.voters = list(voters)
        self.context_provider = context_provider
        self.dispatcher = dispatcher
        self.state = state or EngineState()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, interval_ms: Optional[int] = None) -> bool:
        """
        Start the timer. Must be called from a running event loop.

        Returns:
            False if the engine was already running (nothing changes).
        """
        if self.state.running:
            emit({"type": "engine_already_running"})
            return False

        loop = asyncio.get_running_loop()
        if interval_ms is not None:
            self.state.interval_ms = interval_ms
        self.state.running = True
        self.state.loop_task = loop.create_task(self._run_loop())
        emit({"type": "engine_started", "interval_ms": self.state.interval_ms})
        return True

    def stop(self) -> bool:
        """
        Stop the timer. In-flight cycles finish on their own.

        Returns:
            False if the engine was already stopped.
        """
        if not self.state.running:
            return False

        if self.state.loop_task is not None:
            self.state.loop_task.cancel()
            self.state.loop_task = None
        self.state.running = False
        emit({"type": "engine_stopped"})
        return True

    async def shutdown(self):
        """Stop the timer and cancel any in-flight cycles."""
        loop_task = self.state.loop_task
        self.stop()
        pending = list(self.state.cycle_tasks)
        if loop_task is not None:
            pending.append(loop_task)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def _run_loop(self):
        # First cycle fires immediately, then one per interval
        while True:
            self._spawn_cycle()
            await asyncio.sleep(self.state.interval_ms / 1000)

    def _spawn_cycle(self) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(self.run_cycle())
        self.state.cycle_tasks.add(task)
        task.add_done_callback(self.state.cycle_tasks.discard)
        return task

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    def recent_actions(self) -> List[str]:
        return [d.action.value for d in list(self.state.history)[:RECENT_ACTIONS_WINDOW]]

    async def snapshot_context(self) -> AutonomousContext:
        token = self.context_provider.get_token()
        balance = await self.context_provider.get_balance()
        market = await self.context_provider.get_market_data(token.mint) if token else None
        return AutonomousContext(
            balance=balance,
            token=token,
            market=market,
            recent_actions=self.recent_actions(),
            timestamp=utc_now_iso(),
        )

    def record(self, decision: AutonomousDecision) -> AutonomousDecision:
        """Push to the front of history; the oldest entry falls off past the cap."""
        self.state.history.appendleft(decision)
        return decision

    def _abort(self, message: str) -> AutonomousDecision:
        emit({"type": "cycle_aborted", "error": message})
        return self.record(degraded_decision(message))

    async def run_cycle(self) -> AutonomousDecision:
        """
        Run one cycle and return its recorded decision.

        Never raises for context, voter or dispatch failures: those produce
        a degraded or failed record instead.
        """
        emit({"type": "cycle_start"})

        try:
            context = await self.snapshot_context()
        except Exception as e:
            return self._abort(str(e))

        emit({
            "type": "cycle_context",
            "sol": context.balance.sol,
            "token": context.token.symbol if context.token else None,
            "recent_actions": context.recent_actions,
        })

        results = await asyncio.gather(
            *(voter.recommend_action(context) for voter in self.voters),
            return_exceptions=True,
        )
        for result in results:  # first failure in voter order aborts
            if isinstance(result, BaseException):
                return self._abort(str(result))

        recommendations: List[ActionRecommendation] = list(results)
        for rec in recommendations:
            emit({
                "type": "recommendation",
                "voter": rec.voter.value,
                "action": rec.action.value,
                "confidence": rec.confidence,
            })

        consensus = determine_consensus_action(recommendations)

        result_text = NOT_EXECUTED_RESULT
        executed = False
        if should_execute(consensus):
            executed = True
            try:
                result_text = await execute_action(consensus.action, context, self.dispatcher)
            except Exception as e:
                result_text = f"ERROR: {e}"
                emit({"type": "dispatch_error", "action": consensus.action.value, "error": str(e)})

        decision = self.record(AutonomousDecision(
            action=consensus.action,
            reasoning=consensus.reasoning,
            votes=consensus.votes,
            executed=executed,
            result=result_text,
        ))

        emit({
            "type": "cycle_complete",
            "decision_id": decision.id,
            "action": decision.action.value,
            "executed": decision.executed,
            "result": decision.result,
        })
        return decision

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def status(self) -> Dict[str, object]:
        last = self.state.history[0].timestamp if self.state.history else None
        return {
            'running': self.state.running,
            'lastCycle': last,
            'decisionsCount': len(self.state.history),
            'intervalMs': self.state.interval_ms,
        }

    def decisions(self) -> List[AutonomousDecision]:
        """History, newest first."""
        return list(self.state.history)
