"""Market — движок round-based binary prediction market.

- RoundManager: state machine раундов (start / lock / end)
- Ledger: ставки, claimable / refundable, claim
- SettlementEngine: расчёт пула выплат при close
- treasury: накопитель раундов-ничьих
- PredictionMarket: фасад с single-writer транзакциями
"""

from .access import AccessPolicy
from .engine import PredictionMarket
from .events import (
    BetPlaced,
    EventBus,
    EventRecorder,
    MarketEvent,
    RewardClaimed,
    RoundEnded,
    RoundLocked,
    RoundSettled,
    RoundStarted,
    TreasuryClaimed,
)
from .ledger import ClaimResult, Ledger
from .round_manager import RoundManager, RoundTransitionResult
from .settlement import SettlementEngine, SettlementResult
from .transfer import InMemoryVault, JournalTransfer, ValueTransfer

__all__ = [
    "PredictionMarket",
    "AccessPolicy",
    "RoundManager",
    "RoundTransitionResult",
    "Ledger",
    "ClaimResult",
    "SettlementEngine",
    "SettlementResult",
    "ValueTransfer",
    "InMemoryVault",
    "JournalTransfer",
    # Events
    "MarketEvent",
    "EventBus",
    "EventRecorder",
    "RoundStarted",
    "RoundLocked",
    "RoundEnded",
    "BetPlaced",
    "RoundSettled",
    "RewardClaimed",
    "TreasuryClaimed",
]
