"""
Core math modules

Целочисленная арифметика выплат.
"""

from src.core.math.payout import payout_residual, pro_rata_payout, validate_amount

__all__ = [
    "pro_rata_payout",
    "payout_residual",
    "validate_amount",
]
