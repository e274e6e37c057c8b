"""
MarketState — Модель состояния рынка

Pydantic модель, объединяющая всё персистентное состояние движка:
- rounds: таблица раундов по epoch
- ledger: таблица ставок по (epoch, participant)
- user_rounds: индекс epoch'ов участника (в порядке ставок)
- treasury_amount: накопитель treasury
- oracle: watermark оракула

Полная совместимость с JSON Schema (contracts/schema/market_state.json).

Модель мутабельна только как контейнер: значения (Round, BetInfo) frozen.
Мутирующие операции работают на clone() и коммитят копию целиком.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .bet import BetInfo
from .oracle import OracleState
from .round import Round


class MarketState(BaseModel):
    """Снапшот состояния рынка."""

    schema_version: str = Field(default="1", description="Версия формата снапшота")
    current_epoch: int = Field(default=0, ge=0, description="Последний стартовавший epoch")
    rounds: Dict[int, Round] = Field(default_factory=dict)
    ledger: Dict[int, Dict[str, BetInfo]] = Field(default_factory=dict)
    user_rounds: Dict[str, List[int]] = Field(default_factory=dict)
    treasury_amount: int = Field(default=0, ge=0)
    oracle: OracleState = Field(default_factory=OracleState)

    def clone(self) -> "MarketState":
        """
        Рабочая копия для транзакции.

        Контейнеры копируются, frozen значения разделяются.
        """
        return MarketState.model_construct(
            schema_version=self.schema_version,
            current_epoch=self.current_epoch,
            rounds=dict(self.rounds),
            ledger={epoch: dict(bets) for epoch, bets in self.ledger.items()},
            user_rounds={user: list(epochs) for user, epochs in self.user_rounds.items()},
            treasury_amount=self.treasury_amount,
            oracle=OracleState(last_accepted_round_id=self.oracle.last_accepted_round_id),
        )

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def get_round(self, epoch: int) -> Optional[Round]:
        return self.rounds.get(epoch)

    def current_round(self) -> Optional[Round]:
        return self.rounds.get(self.current_epoch)

    def get_bet(self, epoch: int, participant: str) -> Optional[BetInfo]:
        return self.ledger.get(epoch, {}).get(participant)

    def put_round(self, round_: Round) -> None:
        self.rounds[round_.epoch] = round_

    def put_bet(self, epoch: int, participant: str, bet: BetInfo) -> None:
        self.ledger.setdefault(epoch, {})[participant] = bet
