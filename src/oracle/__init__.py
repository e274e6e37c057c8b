"""Oracle — чтение и валидация цен внешнего price feed."""

from .feeds import HttpPriceFeed, MockAggregator
from .gateway import OracleGateway, PriceFeed

__all__ = [
    "OracleGateway",
    "PriceFeed",
    "MockAggregator",
    "HttpPriceFeed",
]
