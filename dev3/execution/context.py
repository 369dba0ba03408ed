"""
Context providers for the autonomous engine.

A context provider answers three questions at the start of every cycle:
treasury balance, managed token identity, and market metrics for the token.
"""

from abc import ABC, abstractmethod
from typing import Optional

import httpx

from dev3.core.emit import emit
from dev3.core.models import MarketData, TokenInfo, WalletBalance

LAMPORTS_PER_SOL = 1_000_000_000
PUMP_FUN_COINS_URL = 'https://frontend-api.pump.fun/coins/{mint}'
REQUEST_TIMEOUT = 10  # seconds


class ContextProvider(ABC):
    """Source of the balance/token/market snapshot fed to the voters."""

    @property
    def wallet_public_key(self) -> Optional[str]:
        return None

    async def aclose(self):
        """Release network resources, if any."""
        return None

    @abstractmethod
    async def get_balance(self) -> WalletBalance:
        ...

    @abstractmethod
    def get_token(self) -> Optional[TokenInfo]:
        ...

    @abstractmethod
    async def get_market_data(self, mint: str) -> Optional[MarketData]:
        ...


class StaticContextProvider(ContextProvider):
    """Fixed snapshot. Used for dry runs and tests."""

    def __init__(
        self,
        balance: Optional[WalletBalance] = None,
        token: Optional[TokenInfo] = None,
        market: Optional[MarketData] = None,
        wallet_public_key: Optional[str] = None,
    ):
        self.balance = balance or WalletBalance()
        self.token = token
        self.market = market
        self._wallet_public_key = wallet_public_key

    @property
    def wallet_public_key(self) -> Optional[str]:
        return self._wallet_public_key

    async def get_balance(self) -> WalletBalance:
        return self.balance

    def get_token(self) -> Optional[TokenInfo]:
        return self.token

    async def get_market_data(self, mint: str) -> Optional[MarketData]:
        return self.market


class SolanaContextProvider(ContextProvider):
    """
    Live snapshot from Solana JSON-RPC and the pump.fun coin API.

    Lookup failures degrade to an empty balance / no market data, mirroring
    how a not-yet-funded wallet or not-yet-launched token looks.
    """

    def __init__(
        self,
        rpc_url: str,
        wallet_public_key: Optional[str],
        token: Optional[TokenInfo] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.rpc_url = rpc_url
        self._wallet_public_key = wallet_public_key
        self.token = token
        self._client = client

    @property
    def wallet_public_key(self) -> Optional[str]:
        return self._wallet_public_key

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=REQUEST_TIMEOUT)
        return self._client

    async def aclose(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def get_balance(self) -> WalletBalance:
        if not self._wallet_public_key:
            return WalletBalance()

        payload = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "getBalance",
            "params": [self._wallet_public_key],
        }
        try:
            resp = await self._get_client().post(self.rpc_url, json=payload)
            resp.raise_for_status()
            data = resp.json()
            lamports = int(data["result"]["value"])
        except (httpx.HTTPError, KeyError, TypeError, ValueError) as e:
            emit({"type": "context_error", "source": "balance", "error": str(e)})
            return WalletBalance()

        return WalletBalance(sol=lamports / LAMPORTS_PER_SOL, lamports=lamports)

    def get_token(self) -> Optional[TokenInfo]:
        return self.token

    async def get_market_data(self, mint: str) -> Optional[MarketData]:
        try:
            resp = await self._get_client().get(PUMP_FUN_COINS_URL.format(mint=mint))
            if resp.status_code != 200:
                return None
            data = resp.json()
            return MarketData(
                price=float(data.get("price") or 0),
                market_cap=float(data.get("usd_market_cap") or 0),
                volume_24h=float(data.get("volume_24h") or 0),
                price_change_24h=float(data.get("price_change_24h") or 0),
                holders=int(data.get("holder_count") or 0),
            )
        except (httpx.HTTPError, AttributeError, TypeError, ValueError) as e:
            emit({"type": "context_error", "source": "market", "mint": mint, "error": str(e)})
            return None
