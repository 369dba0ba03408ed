"""
Execution dispatchers.

The autonomous engine hands an approved action to a dispatcher and records
the returned TradeResult. Signing and submitting transactions is out of
scope: DryRunDispatcher records what would have been sent.
"""

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List

from dev3.core.emit import emit
from dev3.core.models import TradeResult


class ExecutionDispatcher(ABC):
    """Trading collaborator. Failures are returned, not raised."""

    @abstractmethod
    async def buy(self, mint: str, sol_amount: float) -> TradeResult:
        ...

    @abstractmethod
    async def sell(self, mint: str, percentage: str) -> TradeResult:
        ...

    @abstractmethod
    async def burn(self, mint: str, percentage: float) -> TradeResult:
        ...

    @abstractmethod
    async def claim_rewards(self, pool: str = 'pump') -> TradeResult:
        ...


@dataclass
class DispatchedCall:
    """One call received by DryRunDispatcher."""
    method: str
    params: Dict[str, Any] = field(default_factory=dict)
    signature: str = ''


class DryRunDispatcher(ExecutionDispatcher):
    """
    Accepts every action and returns a synthetic signature.

    Calls are kept in `calls` for inspection.
    """

    def __init__(self):
        self.calls: List[DispatchedCall] = []

    def _record(self, method: str, **params) -> TradeResult:
        signature = f"dryrun-{uuid.uuid4().hex[:16]}"
        self.calls.append(DispatchedCall(method=method, params=params, signature=signature))
        emit({"type": "dispatch_dry_run", "method": method, "params": params, "signature": signature})
        return TradeResult(success=True, signature=signature)

    async def buy(self, mint: str, sol_amount: float) -> TradeResult:
        return self._record('buy', mint=mint, sol_amount=sol_amount)

    async def sell(self, mint: str, percentage: str) -> TradeResult:
        return self._record('sell', mint=mint, percentage=percentage)

    async def burn(self, mint: str, percentage: float) -> TradeResult:
        return self._record('burn', mint=mint, percentage=percentage)

    async def claim_rewards(self, pool: str = 'pump') -> TradeResult:
        return self._record('claim_rewards', pool=pool)
