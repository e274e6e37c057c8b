"""
Payout — целочисленная pro-rata арифметика выплат

Все суммы — целые числа в минимальных единицах, деление только
целочисленное (floor). Остаток от деления не распределяется:
payout_residual позволяет его наблюдать.

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Деление на ноль никогда не происходит (ValueError до деления)
2. Сумма выплат победителям никогда не превышает reward_amount
3. Отрицательные суммы отвергаются
"""

from typing import Iterable


def validate_amount(value: int, name: str = "amount") -> int:
    """
    Проверка суммы: целое, неотрицательное.

    Raises:
        TypeError: если value не int (bool тоже отвергается)
        ValueError: если value < 0
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be int, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")
    return value


def pro_rata_payout(amount: int, reward_amount: int, reward_base_cal_amount: int) -> int:
    """
    Выплата победителю: amount * reward_amount // reward_base_cal_amount.

    Args:
        amount: ставка участника
        reward_amount: пул выплат раунда
        reward_base_cal_amount: суммарная ставка победившей стороны

    Returns:
        Выплата (floor)

    Raises:
        ValueError: reward_base_cal_amount == 0 или amount > reward_base_cal_amount

    Examples:
        >>> pro_rata_payout(1, 4, 2)
        2
        >>> pro_rata_payout(1, 10, 3)
        3
    """
    validate_amount(amount, "amount")
    validate_amount(reward_amount, "reward_amount")
    validate_amount(reward_base_cal_amount, "reward_base_cal_amount")

    if reward_base_cal_amount == 0:
        raise ValueError("reward_base_cal_amount is zero: round has no winning stake")
    if amount > reward_base_cal_amount:
        raise ValueError(
            f"amount {amount} exceeds winning stake {reward_base_cal_amount}"
        )

    return amount * reward_amount // reward_base_cal_amount


def payout_residual(
    winning_amounts: Iterable[int],
    reward_amount: int,
    reward_base_cal_amount: int,
) -> int:
    """
    Остаток пула, который не будет выплачен из-за floor-деления.

    Args:
        winning_amounts: ставки всех победителей раунда
        reward_amount: пул выплат раунда
        reward_base_cal_amount: суммарная ставка победившей стороны

    Returns:
        reward_amount - sum(payouts), всегда >= 0
    """
    if reward_base_cal_amount == 0:
        return 0
    paid = sum(
        pro_rata_payout(amount, reward_amount, reward_base_cal_amount)
        for amount in winning_amounts
    )
    return reward_amount - paid
