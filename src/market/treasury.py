"""Treasury — накопитель средств раундов, закончившихся ничьей.

Пополняется только settlement'ом, списывается только полностью
(drain по команде администратора).
"""

import logging

from src.core.domain.market_state import MarketState
from src.core.math.payout import validate_amount

logger = logging.getLogger(__name__)


def credit(state: MarketState, amount: int) -> int:
    """Зачисление в treasury. Возвращает новый баланс."""
    validate_amount(amount, "treasury credit")
    state.treasury_amount += amount
    if amount:
        logger.info("Treasury credited %d, balance %d", amount, state.treasury_amount)
    return state.treasury_amount


def drain(state: MarketState) -> int:
    """Обнуление treasury. Возвращает списанную сумму."""
    amount = state.treasury_amount
    state.treasury_amount = 0
    return amount
