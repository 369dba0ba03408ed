"""
Configuration for Dev3.

Values come from a YAML file (dev3.config.yaml at the repo root by default),
with environment variables filling in service endpoints and credentials.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

import yaml

from dev3.core.models import TokenInfo, VoterId
from dev3.core.voters import VOTER_ROLES

DEFAULT_OPENROUTER_BASE_URL = 'https://openrouter.ai/api/v1'
DEFAULT_RPC_URL = 'https://api.mainnet-beta.solana.com'


def _default_models() -> Dict[str, str]:
    return {voter.value: role.default_model for voter, role in VOTER_ROLES.items()}


@dataclass
class Dev3Config:
    """Configuration for deliberation, the autonomous engine and its collaborators."""
    models: Dict[str, str] = field(default_factory=_default_models)
    timeout: int = 60
    decision_max_tokens: int = 1024
    action_max_tokens: int = 512
    temperature: float = 0.7
    cycle_interval_ms: int = 30000
    openrouter_base_url: str = DEFAULT_OPENROUTER_BASE_URL
    openrouter_api_key: Optional[str] = None
    rpc_url: str = DEFAULT_RPC_URL
    wallet_public_key: Optional[str] = None
    token: Optional[TokenInfo] = None
    dry_run: bool = True

    def model_for(self, voter: VoterId) -> str:
        return self.models.get(voter.value) or VOTER_ROLES[voter].default_model

    @classmethod
    def from_file(cls, path: Path) -> 'Dev3Config':
        """Load configuration from YAML file, then apply environment fallbacks."""
        data = {}
        if path.exists():
            with open(path, 'r') as f:
                data = yaml.safe_load(f) or {}
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict) -> 'Dev3Config':
        models = _default_models()
        models.update({k: v for k, v in (data.get('models') or {}).items() if v})

        token_data = data.get('token') or {}
        token = None
        if token_data.get('mint'):
            token = TokenInfo(
                mint=token_data['mint'],
                name=token_data.get('name', ''),
                symbol=token_data.get('symbol', ''),
                created_at=token_data.get('created_at'),
            )

        return cls(
            models=models,
            timeout=data.get('timeout', 60),
            decision_max_tokens=data.get('decision_max_tokens', 1024),
            action_max_tokens=data.get('action_max_tokens', 512),
            temperature=data.get('temperature', 0.7),
            cycle_interval_ms=data.get('cycle_interval_ms', 30000),
            openrouter_base_url=(
                os.environ.get('AI_INTEGRATIONS_OPENROUTER_BASE_URL')
                or data.get('openrouter_base_url')
                or DEFAULT_OPENROUTER_BASE_URL
            ),
            openrouter_api_key=(
                os.environ.get('AI_INTEGRATIONS_OPENROUTER_API_KEY')
                or os.environ.get('OPENROUTER_API_KEY')
            ),
            rpc_url=os.environ.get('SOLANA_RPC_URL') or data.get('rpc_url') or DEFAULT_RPC_URL,
            wallet_public_key=os.environ.get('DEV3_WALLET_PUBLIC_KEY') or data.get('wallet_public_key'),
            token=token,
            dry_run=data.get('dry_run', True),
        )

    @classmethod
    def default_path(cls) -> Path:
        """Get default config file path."""
        return Path(__file__).parent.parent / 'dev3.config.yaml'
