"""
Contract Validation Module

Модуль для валидации JSON контрактов: персистентный снапшот
состояния рынка и payload событий.
"""

from .validators import (
    ContractValidator,
    MarketEventValidator,
    MarketStateValidator,
    SchemaLoader,
    validate_market_event,
    validate_market_state,
)

__all__ = [
    # Classes
    "SchemaLoader",
    "ContractValidator",
    "MarketStateValidator",
    "MarketEventValidator",
    # Functions
    "validate_market_state",
    "validate_market_event",
]
