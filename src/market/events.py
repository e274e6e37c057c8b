"""Events — события движка для observers / indexers.

События буферизуются внутри транзакции и публикуются только
после коммита состояния. Исключение listener'а пробрасывается
вызывающему коду; состояние к этому моменту уже закоммичено.
"""

import logging
from typing import Callable, List, Literal, Union

from pydantic import BaseModel, Field

from src.core.domain.round import Position

logger = logging.getLogger(__name__)


# =============================================================================
# EVENT MODELS
# =============================================================================


class RoundStarted(BaseModel):
    event: Literal["StartRound"] = "StartRound"
    epoch: int = Field(..., ge=1)

    model_config = {"frozen": True}


class RoundLocked(BaseModel):
    event: Literal["LockRound"] = "LockRound"
    epoch: int = Field(..., ge=1)
    oracle_round_id: int = Field(..., gt=0)
    price: int

    model_config = {"frozen": True}


class RoundEnded(BaseModel):
    event: Literal["EndRound"] = "EndRound"
    epoch: int = Field(..., ge=1)
    oracle_round_id: int = Field(..., gt=0)
    price: int

    model_config = {"frozen": True}


class BetPlaced(BaseModel):
    event: Literal["Bet"] = "Bet"
    participant: str
    epoch: int = Field(..., ge=1)
    amount: int = Field(..., gt=0)
    position: Position

    model_config = {"frozen": True}


class RoundSettled(BaseModel):
    event: Literal["RewardsCalculated"] = "RewardsCalculated"
    epoch: int = Field(..., ge=1)
    reward_base_cal_amount: int = Field(..., ge=0)
    reward_amount: int = Field(..., ge=0)
    treasury_delta: int = Field(..., ge=0)

    model_config = {"frozen": True}


class RewardClaimed(BaseModel):
    event: Literal["Claim"] = "Claim"
    participant: str
    epoch: int = Field(..., ge=1)
    amount: int = Field(..., ge=0)

    model_config = {"frozen": True}


class TreasuryClaimed(BaseModel):
    event: Literal["TreasuryClaim"] = "TreasuryClaim"
    amount: int = Field(..., ge=0)

    model_config = {"frozen": True}


MarketEvent = Union[
    RoundStarted,
    RoundLocked,
    RoundEnded,
    BetPlaced,
    RoundSettled,
    RewardClaimed,
    TreasuryClaimed,
]

EventListener = Callable[[MarketEvent], None]


# =============================================================================
# EVENT BUS
# =============================================================================


class EventBus:
    """Синхронная рассылка событий подписчикам в порядке подписки."""

    def __init__(self):
        self._listeners: List[EventListener] = []

    def subscribe(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: EventListener) -> None:
        self._listeners.remove(listener)

    def publish(self, events: List[MarketEvent]) -> None:
        for event in events:
            logger.debug("Event %s: %s", event.event, event.model_dump(mode="json"))
            for listener in self._listeners:
                listener(event)


class EventRecorder:
    """Listener, сохраняющий все события (журнал для тестов и CLI)."""

    def __init__(self):
        self.events: List[MarketEvent] = []

    def __call__(self, event: MarketEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: type) -> List[MarketEvent]:
        return [e for e in self.events if isinstance(e, event_type)]
