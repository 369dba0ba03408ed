"""
Dev3 - Three-Voter Consensus and Autonomous Token Engine

Routes decisions through Grok, ChatGPT and Claude, records their votes and
computes a majority consensus. The autonomous engine runs the same three
voters on a timer to pick treasury actions for a Solana token.
"""

__version__ = "1.0.0"
