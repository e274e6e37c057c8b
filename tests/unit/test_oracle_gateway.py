"""Тесты для OracleGateway и price feeds.

Coverage:
- OracleIncomplete при updated_at == 0
- OracleStale при round_id <= watermark
- Продвижение watermark только в fetch_price
- MockAggregator: монотонные round id
- HttpPriceFeed: парсинг payload и транспортные ошибки
"""

import pytest
import requests

from src.core.domain import OraclePrice, OracleState
from src.core.errors import OracleError, OracleIncomplete, OracleStale, OracleUnavailable
from src.oracle import HttpPriceFeed, MockAggregator, OracleGateway


T0 = 1_700_000_000
PRICE = 10_000_000_000


@pytest.fixture
def aggregator():
    return MockAggregator(decimals=8, initial_answer=PRICE, clock=lambda: T0)


@pytest.fixture
def gateway(aggregator):
    return OracleGateway(aggregator)


class TestOracleGateway:
    """Тесты валидации чтений оракула."""

    def test_fetch_returns_latest_price(self, gateway, aggregator):
        oracle_state = OracleState()

        price = gateway.fetch_price(oracle_state)

        data = aggregator.latest_round_data()
        assert price == OraclePrice(round_id=data.round_id, price=data.answer)
        assert oracle_state.last_accepted_round_id == data.round_id

    def test_same_round_rejected_as_stale(self, gateway):
        oracle_state = OracleState()
        gateway.fetch_price(oracle_state)

        with pytest.raises(OracleStale) as exc_info:
            gateway.fetch_price(oracle_state)

        assert exc_info.value.reason == "oracle_stale"

    def test_older_round_rejected(self, gateway, aggregator):
        oracle_state = OracleState(last_accepted_round_id=10)
        aggregator.update_round_data(round_id=9, answer=PRICE, timestamp=T0, started_at=T0)

        with pytest.raises(OracleStale):
            gateway.fetch_price(oracle_state)
        assert oracle_state.last_accepted_round_id == 10

    def test_incomplete_round_rejected(self, gateway, aggregator):
        aggregator.update_round_data(round_id=2, answer=PRICE, timestamp=0, started_at=T0)
        oracle_state = OracleState()

        with pytest.raises(OracleIncomplete):
            gateway.fetch_price(oracle_state)
        assert oracle_state.last_accepted_round_id == 0

    def test_every_accepted_read_is_strictly_increasing(self, gateway, aggregator):
        oracle_state = OracleState()
        accepted = []
        for delta in (0, 5, -3):
            aggregator.update_answer(PRICE + delta)
            accepted.append(gateway.fetch_price(oracle_state).round_id)

        assert accepted == sorted(set(accepted))
        assert oracle_state.last_accepted_round_id == accepted[-1]

    def test_negative_price_accepted(self, gateway, aggregator):
        """Цена signed: отрицательное значение не является ошибкой шлюза."""
        aggregator.update_answer(-5)
        assert gateway.fetch_price(OracleState()).price == -5

    def test_peek_does_not_advance_watermark(self, gateway):
        oracle_state = OracleState()

        peeked = gateway.peek_price(oracle_state)
        fetched = gateway.fetch_price(oracle_state)

        assert peeked == fetched
        assert oracle_state.last_accepted_round_id == fetched.round_id

    def test_oracle_errors_share_base_class(self):
        assert issubclass(OracleIncomplete, OracleError)
        assert issubclass(OracleStale, OracleError)
        assert issubclass(OracleUnavailable, OracleError)


class TestMockAggregator:
    """Тесты детерминированного aggregator."""

    def test_initial_round(self, aggregator):
        data = aggregator.latest_round_data()
        assert data.round_id == 1
        assert data.answer == PRICE
        assert data.updated_at == T0
        assert data.answered_in_round == 1
        assert aggregator.decimals == 8

    def test_update_answer_increments_round(self, aggregator):
        assert aggregator.update_answer(PRICE + 1) == 2
        assert aggregator.update_answer(PRICE + 2) == 3
        assert aggregator.latest_round_data().answer == PRICE + 2


class _FakeResponse:
    def __init__(self, payload=None, status_error=None, json_error=None):
        self._payload = payload
        self._status_error = status_error
        self._json_error = json_error

    def raise_for_status(self):
        if self._status_error is not None:
            raise self._status_error

    def json(self):
        if self._json_error is not None:
            raise self._json_error
        return self._payload


class _FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def get(self, url, timeout=None, headers=None):
        self.calls.append((url, timeout))
        if self.error is not None:
            raise self.error
        return self.response


class TestHttpPriceFeed:
    """Тесты live adapter на подменённой requests session."""

    URL = "http://feed.local/eth-usd/latest"

    def test_camel_case_payload(self):
        session = _FakeSession(
            _FakeResponse(
                {"roundId": 7, "answer": PRICE, "startedAt": T0, "updatedAt": T0, "answeredInRound": 7}
            )
        )
        feed = HttpPriceFeed(self.URL, timeout=3.0, session=session)

        data = feed.latest_round_data()

        assert data.round_id == 7
        assert data.answer == PRICE
        assert session.calls == [(self.URL, 3.0)]

    def test_snake_case_payload(self):
        session = _FakeSession(
            _FakeResponse(
                {"round_id": 3, "answer": PRICE, "started_at": T0, "updated_at": 0, "answered_in_round": 3}
            )
        )
        data = HttpPriceFeed(self.URL, session=session).latest_round_data()
        assert data.updated_at == 0

    def test_timeout_maps_to_unavailable(self):
        session = _FakeSession(error=requests.exceptions.Timeout("slow"))
        with pytest.raises(OracleUnavailable) as exc_info:
            HttpPriceFeed(self.URL, session=session).latest_round_data()
        assert exc_info.value.reason == "oracle_unavailable"

    def test_http_error_maps_to_unavailable(self):
        session = _FakeSession(_FakeResponse(status_error=requests.exceptions.HTTPError("503")))
        with pytest.raises(OracleUnavailable):
            HttpPriceFeed(self.URL, session=session).latest_round_data()

    def test_non_json_body_is_malformed(self):
        session = _FakeSession(_FakeResponse(json_error=ValueError("no json")))
        with pytest.raises(OracleUnavailable) as exc_info:
            HttpPriceFeed(self.URL, session=session).latest_round_data()
        assert exc_info.value.reason == "oracle_malformed"

    def test_missing_fields_is_malformed(self):
        session = _FakeSession(_FakeResponse({"roundId": 1}))
        with pytest.raises(OracleUnavailable) as exc_info:
            HttpPriceFeed(self.URL, session=session).latest_round_data()
        assert exc_info.value.reason == "oracle_malformed"

    def test_gateway_over_http_feed(self):
        session = _FakeSession(
            _FakeResponse(
                {"roundId": 11, "answer": PRICE, "startedAt": T0, "updatedAt": T0, "answeredInRound": 11}
            )
        )
        gateway = OracleGateway(HttpPriceFeed(self.URL, session=session))
        oracle_state = OracleState(last_accepted_round_id=10)

        assert gateway.fetch_price(oracle_state).round_id == 11
