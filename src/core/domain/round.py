"""
Round — Модель раунда prediction market

Immutable Pydantic модель одного раунда (epoch). Каждый переход
жизненного цикла создаёт новый экземпляр через model_copy(update=...),
RoundManager коммитит его в MarketState.

Жизненный цикл: CREATED → LIVE → LOCKED → CLOSED
(либо EXPIRED, если close_timestamp прошёл, а оракул так и не был вызван).

ИНВАРИАНТЫ:
1. total_amount == bull_amount + bear_amount
2. lock_price / close_price пишутся один раз (sentinel 0 = не задано)
3. reward_* равны нулю до settlement и не меняются после
4. Возвраты по стороне не превышают её ставок; settlement считается
   по net-суммам (ставки минус возвраты)
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator


# =============================================================================
# ENUMS
# =============================================================================


class Position(str, Enum):
    """Направление ставки"""

    BULL = "bull"  # цена вырастет
    BEAR = "bear"  # цена упадёт


class RoundPhase(str, Enum):
    """Фаза раунда (производная от полей и текущего времени)"""

    CREATED = "CREATED"  # раунд создан, окно ставок ещё не открыто
    LIVE = "LIVE"  # start < now < lock: приём ставок
    AWAITING_LOCK = "AWAITING_LOCK"  # lock_timestamp наступил, lock ещё не вызван
    LOCKED = "LOCKED"  # lock price зафиксирована
    CLOSED = "CLOSED"  # close price зафиксирована, settlement выполнен
    EXPIRED = "EXPIRED"  # close_timestamp прошёл без вызова оракула


# =============================================================================
# ROUND MODEL
# =============================================================================


class Round(BaseModel):
    """
    Модель раунда.

    Immutable модель (frozen=True). Все изменения раунда должны
    создавать новый экземпляр.
    """

    # Идентификация
    epoch: int = Field(..., ge=1, description="Номер раунда, начиная с 1")

    # Временные границы (unix seconds)
    start_timestamp: int = Field(..., ge=0, description="Момент старта раунда")
    lock_timestamp: int = Field(..., ge=0, description="Начало окна lock")
    close_timestamp: int = Field(..., ge=0, description="Начало окна close")
    lock_interval_seconds: int = Field(..., ge=0, description="lockSeconds, с которым стартовал раунд")

    # Снапшоты оракула (signed fixed-point, 0 = не задано)
    lock_price: int = Field(default=0, description="Цена на момент lock")
    close_price: int = Field(default=0, description="Цена на момент close")
    lock_oracle_id: int = Field(default=0, ge=0, description="Oracle round id снапшота lock")
    close_oracle_id: int = Field(default=0, ge=0, description="Oracle round id снапшота close")

    # Аккумуляторы ставок
    total_amount: int = Field(default=0, ge=0, description="Сумма всех ставок")
    bull_amount: int = Field(default=0, ge=0, description="Сумма ставок BULL")
    bear_amount: int = Field(default=0, ge=0, description="Сумма ставок BEAR")

    # Возвраты неразрешённого раунда (после close_timestamp)
    bull_refunded_amount: int = Field(default=0, ge=0, description="Возвращённые ставки BULL")
    bear_refunded_amount: int = Field(default=0, ge=0, description="Возвращённые ставки BEAR")

    # Результаты settlement
    reward_base_cal_amount: int = Field(default=0, ge=0, description="Ставка победившей стороны")
    reward_amount: int = Field(default=0, ge=0, description="Пул выплат победителям")

    oracle_called: bool = Field(default=False, description="Close выполнен, оракул отчитался")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_amounts(self) -> "Round":
        """Проверка инварианта total == bull + bear и порядка временных границ."""
        if self.total_amount != self.bull_amount + self.bear_amount:
            raise ValueError(
                f"total_amount {self.total_amount} != bull {self.bull_amount} + bear {self.bear_amount}"
            )
        if self.bull_refunded_amount > self.bull_amount or self.bear_refunded_amount > self.bear_amount:
            raise ValueError(
                f"refunded bull {self.bull_refunded_amount} / bear {self.bear_refunded_amount} "
                f"exceeds stake bull {self.bull_amount} / bear {self.bear_amount}"
            )
        if not self.start_timestamp <= self.lock_timestamp:
            raise ValueError(
                f"lock_timestamp {self.lock_timestamp} before start_timestamp {self.start_timestamp}"
            )
        return self

    # -------------------------------------------------------------------------
    # Predicates
    # -------------------------------------------------------------------------

    @property
    def is_started(self) -> bool:
        return self.start_timestamp != 0

    @property
    def is_locked(self) -> bool:
        # принятый oracle round id всегда > watermark >= 0: значение 0 означает "не заблокирован"
        return self.lock_oracle_id != 0

    @property
    def is_settled(self) -> bool:
        return self.reward_base_cal_amount != 0 or self.reward_amount != 0

    @property
    def net_bull_amount(self) -> int:
        return self.bull_amount - self.bull_refunded_amount

    @property
    def net_bear_amount(self) -> int:
        return self.bear_amount - self.bear_refunded_amount

    @property
    def net_total_amount(self) -> int:
        """Ставки, оставшиеся в пуле раунда после возвратов."""
        return self.net_bull_amount + self.net_bear_amount

    def is_bet_window_open(self, now: int) -> bool:
        """Окно приёма ставок: start < now < lock (строго)."""
        return self.start_timestamp < now < self.lock_timestamp

    def winning_position(self) -> Optional[Position]:
        """
        Победившая сторона закрытого раунда.

        Returns:
            Position или None (ничья либо раунд не разрешён)
        """
        if not self.oracle_called:
            return None
        if self.close_price > self.lock_price:
            return Position.BULL
        if self.close_price < self.lock_price:
            return Position.BEAR
        return None

    def phase(self, now: int) -> RoundPhase:
        """Текущая фаза раунда."""
        if self.oracle_called:
            return RoundPhase.CLOSED
        if now > self.close_timestamp:
            return RoundPhase.EXPIRED
        if self.is_locked:
            return RoundPhase.LOCKED
        if self.is_bet_window_open(now):
            return RoundPhase.LIVE
        if now >= self.lock_timestamp:
            return RoundPhase.AWAITING_LOCK
        return RoundPhase.CREATED
