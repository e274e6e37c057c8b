"""
Domain models and value objects.

Contains fundamental domain entities like Round, BetInfo, MarketState.
"""

from src.core.domain.bet import BetInfo
from src.core.domain.market_state import MarketState
from src.core.domain.oracle import OraclePrice, OracleRoundData, OracleState
from src.core.domain.round import Position, Round, RoundPhase

__all__ = [
    # Round model
    "Round",
    "RoundPhase",
    "Position",
    # Ledger model
    "BetInfo",
    # Oracle models
    "OracleRoundData",
    "OraclePrice",
    "OracleState",
    # Aggregate state
    "MarketState",
]
