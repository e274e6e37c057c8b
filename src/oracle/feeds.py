"""Price feeds — реализации PriceFeed.

- MockAggregator: детерминированный in-process feed (тесты, локальный прогон)
- HttpPriceFeed: live adapter, опрашивает JSON endpoint через requests
"""

import logging
import time
from typing import Any, Callable, Dict, Optional

import requests
from pydantic import ValidationError

from src.core.domain.oracle import OracleRoundData
from src.core.errors import OracleUnavailable

logger = logging.getLogger(__name__)


DEFAULT_DECIMALS = 8


# =============================================================================
# MOCK AGGREGATOR
# =============================================================================


class MockAggregator:
    """
    Детерминированный aggregator.

    update_answer() открывает новый feed round: round_id + 1,
    updated_at/started_at = текущее время clock.
    """

    def __init__(
        self,
        decimals: int = DEFAULT_DECIMALS,
        initial_answer: int = 0,
        clock: Optional[Callable[[], int]] = None,
    ):
        self.decimals = decimals
        self._clock = clock or (lambda: int(time.time()))
        self.latest_round = 0
        self.latest_answer = 0
        self.latest_timestamp = 0
        self.latest_started_at = 0
        self.update_answer(initial_answer)

    def update_answer(self, answer: int) -> int:
        """Новый feed round с ценой answer. Возвращает его round_id."""
        now = self._clock()
        self.latest_round += 1
        self.latest_answer = answer
        self.latest_timestamp = now
        self.latest_started_at = now
        return self.latest_round

    def update_round_data(
        self,
        round_id: int,
        answer: int,
        timestamp: int,
        started_at: int,
    ) -> None:
        """Прямая установка данных раунда (в т.ч. незавершённого: timestamp=0)."""
        self.latest_round = round_id
        self.latest_answer = answer
        self.latest_timestamp = timestamp
        self.latest_started_at = started_at

    def latest_round_data(self) -> OracleRoundData:
        return OracleRoundData(
            round_id=self.latest_round,
            answer=self.latest_answer,
            started_at=self.latest_started_at,
            updated_at=self.latest_timestamp,
            answered_in_round=self.latest_round,
        )


# =============================================================================
# HTTP FEED
# =============================================================================


class HttpPriceFeed:
    """
    Live adapter: GET <url> → JSON в формате latestRoundData.

    Поддерживаются ключи camelCase (roundId, answer, startedAt,
    updatedAt, answeredInRound) и snake_case.
    """

    DEFAULT_TIMEOUT = 10.0  # seconds

    _KEY_MAP = {
        "roundId": "round_id",
        "startedAt": "started_at",
        "updatedAt": "updated_at",
        "answeredInRound": "answered_in_round",
    }

    def __init__(
        self,
        url: str,
        decimals: int = DEFAULT_DECIMALS,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.url = url
        self.decimals = decimals
        self.timeout = timeout
        self._session = session or requests.Session()

    def _normalize(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return {self._KEY_MAP.get(key, key): value for key, value in payload.items()}

    def latest_round_data(self) -> OracleRoundData:
        """
        Чтение последнего feed round.

        Raises:
            OracleUnavailable: timeout, HTTP ошибка или невалидный payload
        """
        try:
            resp = self._session.get(
                self.url,
                timeout=self.timeout,
                headers={"Accept": "application/json"},
            )
            resp.raise_for_status()
        except requests.exceptions.Timeout as e:
            logger.error("Price feed timeout after %ss: %s", self.timeout, self.url)
            raise OracleUnavailable(f"Price feed timeout: {self.url}") from e
        except requests.exceptions.RequestException as e:
            logger.error("Price feed request failed: %s", e)
            raise OracleUnavailable(f"Price feed request failed: {e}") from e

        try:
            payload = resp.json()
        except ValueError as e:
            raise OracleUnavailable(f"Price feed returned non-JSON body: {e}", reason="oracle_malformed") from e

        if not isinstance(payload, dict):
            raise OracleUnavailable(
                f"Price feed payload must be an object, got {type(payload).__name__}",
                reason="oracle_malformed",
            )

        try:
            return OracleRoundData(**self._normalize(payload))
        except ValidationError as e:
            raise OracleUnavailable(f"Price feed payload invalid: {e}", reason="oracle_malformed") from e
