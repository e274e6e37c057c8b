"""Ledger — приём ставок и права на выплату.

Одна ставка на (epoch, participant): без доливок и частичных ставок.

Права на выплату:
- claimable: раунд разрешён (oracle_called), ставка есть, не выплачена,
  lock != close, позиция совпадает с победившей стороной
- refundable: раунд не разрешён, now > close_timestamp, ставка есть,
  не выплачена

claim() помечает ставки claimed на рабочей копии состояния до любого
перевода средств; перевод выполняет вызывающий код одним вызовом.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Tuple

from src.core.config import DEFAULT_MIN_BET_AMOUNT
from src.core.domain.bet import BetInfo
from src.core.domain.market_state import MarketState
from src.core.domain.round import Position
from src.core.errors import EconomicError, StateError
from src.core.math.payout import pro_rata_payout

from .events import BetPlaced, RewardClaimed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClaimResult:
    """Результат claim по списку epoch'ов."""

    participant: str
    payouts: Tuple[Tuple[int, int], ...]  # (epoch, amount)
    refunded_epochs: Tuple[int, ...]
    events: Tuple[RewardClaimed, ...] = field(default_factory=tuple)

    @property
    def total(self) -> int:
        return sum(amount for _, amount in self.payouts)


class Ledger:
    """Операции над таблицей ставок MarketState."""

    def __init__(self, min_bet_amount: int = DEFAULT_MIN_BET_AMOUNT):
        if min_bet_amount < 1:
            raise ValueError(f"min_bet_amount must be >= 1, got {min_bet_amount}")
        self.min_bet_amount = min_bet_amount

    # -------------------------------------------------------------------------
    # Wagers
    # -------------------------------------------------------------------------

    def place_bet(
        self,
        state: MarketState,
        epoch: int,
        participant: str,
        position: Position,
        amount: int,
        now: int,
    ) -> BetPlaced:
        """
        Приём ставки в текущем раунде.

        Args:
            state: рабочая копия состояния (мутируется)
            epoch: раунд, на который ставит участник
            participant: идентификатор участника
            position: BULL / BEAR
            amount: размер ставки
            now: текущее время (unix seconds)

        Returns:
            BetPlaced событие

        Raises:
            StateError: epoch не текущий или окно ставок закрыто
            EconomicError: нулевая/слишком маленькая ставка или повторная ставка
        """
        position = Position(position)

        if epoch != state.current_epoch or epoch == 0:
            raise StateError(f"Bet is too early/late: epoch {epoch} is not current", reason="epoch_not_current")

        round_ = state.rounds[epoch]
        if not round_.is_bet_window_open(now):
            raise StateError(f"Round {epoch} not bettable", reason="round_not_bettable")

        if amount <= 0:
            raise EconomicError("Bet amount must be greater than zero", reason="zero_bet")
        if amount < self.min_bet_amount:
            raise EconomicError(
                f"Bet amount {amount} below minimum {self.min_bet_amount}",
                reason="bet_below_minimum",
            )

        if state.get_bet(epoch, participant) is not None:
            raise EconomicError(f"Can only bet once per round (epoch {epoch})", reason="duplicate_bet")

        if position == Position.BULL:
            updated = round_.model_copy(
                update={
                    "total_amount": round_.total_amount + amount,
                    "bull_amount": round_.bull_amount + amount,
                }
            )
        else:
            updated = round_.model_copy(
                update={
                    "total_amount": round_.total_amount + amount,
                    "bear_amount": round_.bear_amount + amount,
                }
            )

        state.put_round(updated)
        state.put_bet(epoch, participant, BetInfo(position=position, amount=amount))
        state.user_rounds.setdefault(participant, []).append(epoch)

        logger.info("Bet %s epoch=%d position=%s amount=%d", participant, epoch, position.value, amount)
        return BetPlaced(participant=participant, epoch=epoch, amount=amount, position=position)

    # -------------------------------------------------------------------------
    # Predicates
    # -------------------------------------------------------------------------

    def claimable(self, state: MarketState, epoch: int, participant: str) -> bool:
        round_ = state.get_round(epoch)
        bet = state.get_bet(epoch, participant)
        if round_ is None or bet is None:
            return False
        return (
            round_.oracle_called
            and bet.amount != 0
            and not bet.claimed
            and round_.lock_price != round_.close_price
            and bet.position == round_.winning_position()
        )

    def refundable(self, state: MarketState, epoch: int, participant: str, now: int) -> bool:
        round_ = state.get_round(epoch)
        bet = state.get_bet(epoch, participant)
        if round_ is None or bet is None:
            return False
        return (
            not round_.oracle_called
            and now > round_.close_timestamp
            and bet.amount != 0
            and not bet.claimed
        )

    # -------------------------------------------------------------------------
    # Claims
    # -------------------------------------------------------------------------

    def claim(
        self,
        state: MarketState,
        epochs: Iterable[int],
        participant: str,
        now: int,
    ) -> ClaimResult:
        """
        Claim выигрышей/возвратов по списку epoch'ов.

        Args:
            state: рабочая копия состояния (мутируется)
            epochs: список раундов
            participant: получатель
            now: текущее время

        Returns:
            ClaimResult с выплатами по раундам

        Raises:
            StateError: раунд не стартовал или ещё не закончился
            EconomicError: ни claimable, ни refundable
        """
        payouts: List[Tuple[int, int]] = []
        refunded: List[int] = []
        events: List[RewardClaimed] = []

        for epoch in epochs:
            round_ = state.get_round(epoch)
            if round_ is None or not round_.is_started:
                raise StateError(f"Round {epoch} has not started", reason="round_not_started")
            if now <= round_.close_timestamp:
                raise StateError(f"Round {epoch} has not ended", reason="round_not_ended")

            bet = state.get_bet(epoch, participant)

            if round_.oracle_called:
                if not self.claimable(state, epoch, participant):
                    raise EconomicError(f"Not eligible for claim (epoch {epoch})", reason="not_claimable")
                amount = pro_rata_payout(bet.amount, round_.reward_amount, round_.reward_base_cal_amount)
            else:
                if not self.refundable(state, epoch, participant, now):
                    raise EconomicError(f"Not eligible for refund (epoch {epoch})", reason="not_refundable")
                amount = bet.amount
                refunded.append(epoch)
                side = "bull_refunded_amount" if bet.position == Position.BULL else "bear_refunded_amount"
                state.put_round(round_.model_copy(update={side: getattr(round_, side) + amount}))

            state.put_bet(epoch, participant, bet.mark_claimed())
            payouts.append((epoch, amount))
            events.append(RewardClaimed(participant=participant, epoch=epoch, amount=amount))

        return ClaimResult(
            participant=participant,
            payouts=tuple(payouts),
            refunded_epochs=tuple(refunded),
            events=tuple(events),
        )
