"""OracleGateway — валидация цен внешнего price feed.

Gateway — единственная точка чтения оракула для RoundManager:
- updated_at == 0 → OracleIncomplete (feed round не финализирован)
- round_id <= last_accepted_round_id → OracleStale (повтор/откат снапшота)
- успех → watermark продвигается до round_id

Проверка монотонности выполняется на каждом принятом чтении, в том
числе между разными раундами: один снапшот не может быть использован
дважды (lock и close, либо close раунда n и lock раунда n+1).
"""

import logging
from typing import Protocol

from src.core.domain.oracle import OraclePrice, OracleRoundData, OracleState
from src.core.errors import OracleIncomplete, OracleStale

logger = logging.getLogger(__name__)


class PriceFeed(Protocol):
    """Read-контракт внешнего оракула (aggregator v3)."""

    decimals: int

    def latest_round_data(self) -> OracleRoundData:
        ...


class OracleGateway:
    """Обёртка над PriceFeed с проверками полноты и монотонности."""

    def __init__(self, feed: PriceFeed):
        """
        Args:
            feed: источник цен (live adapter или MockAggregator)
        """
        self.feed = feed

    @property
    def decimals(self) -> int:
        return self.feed.decimals

    def _read_validated(self, oracle_state: OracleState) -> OracleRoundData:
        data = self.feed.latest_round_data()

        if data.updated_at == 0:
            logger.warning("Oracle round %d not finalized (updated_at=0)", data.round_id)
            raise OracleIncomplete(f"Oracle round {data.round_id} is not finalized")

        if data.round_id <= oracle_state.last_accepted_round_id:
            logger.warning(
                "Oracle round %d rejected: watermark %d",
                data.round_id,
                oracle_state.last_accepted_round_id,
            )
            raise OracleStale(
                f"Oracle round id {data.round_id} must be greater than "
                f"last accepted {oracle_state.last_accepted_round_id}"
            )

        return data

    def fetch_price(self, oracle_state: OracleState) -> OraclePrice:
        """
        Чтение цены с продвижением watermark.

        Args:
            oracle_state: watermark (рабочая копия транзакции, мутируется)

        Returns:
            OraclePrice(round_id, price)

        Raises:
            OracleIncomplete: feed round не финализирован
            OracleStale: round_id не строго больше watermark
            OracleUnavailable: транспортная ошибка live feed
        """
        data = self._read_validated(oracle_state)
        oracle_state.last_accepted_round_id = data.round_id
        logger.debug("Oracle round %d accepted, price=%d", data.round_id, data.answer)
        return OraclePrice(round_id=data.round_id, price=data.answer)

    def peek_price(self, oracle_state: OracleState) -> OraclePrice:
        """Та же валидация, что в fetch_price, без продвижения watermark."""
        data = self._read_validated(oracle_state)
        return OraclePrice(round_id=data.round_id, price=data.answer)
