"""
Prompt builders for Dev3 voters.

Renders a Decision (manual path) or an AutonomousContext (autonomous path)
into the user message sent alongside a voter's role instructions.
"""

from .models import AutonomousContext, Decision


def build_decision_prompt(decision: Decision) -> str:
    """Render a decision for a manual deliberation vote."""
    context_block = f"**Additional Context:** {decision.context}" if decision.context else ""

    return f"""Please analyze this decision request and provide your assessment:

**Title:** {decision.title}

**Description:** {decision.description}

**Category:** {decision.category.value}

**Priority:** {decision.priority.value}

{context_block}

Provide your vote (approve/reject/abstain), detailed reasoning from your specialized perspective, confidence level (0-100), identified risks, and actionable recommendations."""


def _format_token(context: AutonomousContext) -> str:
    token = context.token
    if token is None:
        return "- Token not yet created"
    return (
        f"- Name: {token.name} ({token.symbol})\n"
        f"- Mint: {token.mint}\n"
        f"- Created: {token.created_at or 'unknown'}"
    )


def _format_market(context: AutonomousContext) -> str:
    market = context.market
    if market is None:
        return "- No market data available (token may not be launched yet)"
    return (
        f"- Price: ${market.price:.8f}\n"
        f"- Market Cap: ${market.market_cap:,.0f}\n"
        f"- 24h Volume: ${market.volume_24h:,.0f}\n"
        f"- 24h Change: {market.price_change_24h:.2f}%\n"
        f"- Holders: {market.holders}"
    )


def build_context_prompt(context: AutonomousContext) -> str:
    """Render the cycle snapshot for an autonomous action recommendation."""
    recent = ", ".join(context.recent_actions) if context.recent_actions else "None"

    return f"""Current Dev3 Token State:

WALLET BALANCE:
- SOL: {context.balance.sol:.4f} SOL

TOKEN INFO:
{_format_token(context)}

MARKET DATA:
{_format_market(context)}

RECENT ACTIONS: {recent}

TIMESTAMP: {context.timestamp}

Based on this data, what action should Dev3 take? Remember:
- If balance is very low (<0.01 SOL), recommend HOLD to preserve funds
- If no token exists yet, recommend HOLD until token is created
- Be conservative with treasury funds"""
