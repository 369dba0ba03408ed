"""
External collaborators of the autonomous engine: context snapshot and trade dispatch.
"""

from .context import ContextProvider, SolanaContextProvider, StaticContextProvider
from .dispatcher import DispatchedCall, DryRunDispatcher, ExecutionDispatcher

__all__ = [
    'ContextProvider',
    'SolanaContextProvider',
    'StaticContextProvider',
    'ExecutionDispatcher',
    'DryRunDispatcher',
    'DispatchedCall',
]
