"""SettlementEngine — расчёт пула выплат закрытого раунда.

Вызывается ровно один раз, сразу после успешного close. Суммы берутся
за вычетом возвратов (net), выплаченных до close:
- close > lock → BULL: reward_base = net bull, reward = net total
- close < lock → BEAR: reward_base = net bear, reward = net total
- close == lock → ничья: reward_base = reward = 0, net total уходит в treasury

Если победившая сторона пуста (reward_base == 0), пул не востребован
никем: claimable ложно для всех, средства остаются на счету рынка.

residual: остаток floor-деления, который не будет выплачен
победителям; не распределяется, только сообщается.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from src.core.domain.round import Position, Round
from src.core.errors import AlreadySettled, StateError
from src.core.math.payout import payout_residual

from .events import RoundSettled

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SettlementResult:
    """Результат settlement."""

    round: Round
    treasury_delta: int
    winner: Optional[Position]
    event: RoundSettled
    residual: int = 0


class SettlementEngine:
    """Stateless расчёт reward_amount / reward_base_cal_amount."""

    def settle(self, round_: Round, winning_amounts: Iterable[int] = ()) -> SettlementResult:
        """
        Settlement закрытого раунда.

        Args:
            round_: раунд с зафиксированными lock/close ценами
            winning_amounts: невыплаченные ставки победившей стороны (для residual)

        Returns:
            SettlementResult с обновлённым раундом и приращением treasury

        Raises:
            AlreadySettled: reward_* уже ненулевые
            StateError: раунд не закрыт (оракул не вызван)
        """
        if round_.is_settled:
            raise AlreadySettled(f"Rewards already calculated for epoch {round_.epoch}")
        if not round_.oracle_called:
            raise StateError(f"Round {round_.epoch} is not closed", reason="round_not_closed")

        treasury_delta = 0
        winner = round_.winning_position()

        if winner == Position.BULL:
            reward_base_cal_amount = round_.net_bull_amount
            reward_amount = round_.net_total_amount
        elif winner == Position.BEAR:
            reward_base_cal_amount = round_.net_bear_amount
            reward_amount = round_.net_total_amount
        else:
            reward_base_cal_amount = 0
            reward_amount = 0
            treasury_delta = round_.net_total_amount

        residual = payout_residual(winning_amounts, reward_amount, reward_base_cal_amount)

        settled = round_.model_copy(
            update={
                "reward_base_cal_amount": reward_base_cal_amount,
                "reward_amount": reward_amount,
            }
        )

        logger.info(
            "Round %d settled: winner=%s reward_base=%d reward=%d treasury_delta=%d residual=%d",
            round_.epoch,
            winner.value if winner else "tie",
            reward_base_cal_amount,
            reward_amount,
            treasury_delta,
            residual,
        )

        return SettlementResult(
            round=settled,
            treasury_delta=treasury_delta,
            winner=winner,
            event=RoundSettled(
                epoch=round_.epoch,
                reward_base_cal_amount=reward_base_cal_amount,
                reward_amount=reward_amount,
                treasury_delta=treasury_delta,
            ),
            residual=residual,
        )
