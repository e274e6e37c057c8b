"""Тесты для SettlementEngine и treasury.

Coverage:
- BULL / BEAR / ничья
- Пустая победившая сторона
- Net суммы после возвратов, остаток floor-деления
- AlreadySettled и незакрытый раунд
- treasury credit / drain
"""

import pytest

from src.core.domain import MarketState, Position, Round
from src.core.errors import AlreadySettled, StateError
from src.market import treasury
from src.market.events import RoundSettled
from src.market.settlement import SettlementEngine


T0 = 1_700_000_000
PRICE = 10_000_000_000


def _closed_round(lock_price: int, close_price: int, bull: int = 3, bear: int = 5, **overrides) -> Round:
    fields = dict(
        epoch=4,
        start_timestamp=T0,
        lock_timestamp=T0 + 10,
        close_timestamp=T0 + 7210,
        lock_interval_seconds=7200,
        lock_price=lock_price,
        close_price=close_price,
        lock_oracle_id=2,
        close_oracle_id=3,
        bull_amount=bull,
        bear_amount=bear,
        total_amount=bull + bear,
        oracle_called=True,
    )
    fields.update(overrides)
    return Round(**fields)


@pytest.fixture
def engine():
    return SettlementEngine()


class TestSettlement:
    """Тесты расчёта reward_amount / reward_base_cal_amount."""

    def test_bull_wins(self, engine):
        result = engine.settle(_closed_round(PRICE, PRICE + 1))

        assert result.winner == Position.BULL
        assert result.round.reward_base_cal_amount == 3
        assert result.round.reward_amount == 8
        assert result.treasury_delta == 0
        assert result.event == RoundSettled(
            epoch=4, reward_base_cal_amount=3, reward_amount=8, treasury_delta=0
        )

    def test_bear_wins(self, engine):
        result = engine.settle(_closed_round(PRICE, PRICE - 1))

        assert result.winner == Position.BEAR
        assert result.round.reward_base_cal_amount == 5
        assert result.round.reward_amount == 8
        assert result.treasury_delta == 0

    def test_tie_goes_to_treasury(self, engine):
        result = engine.settle(_closed_round(PRICE, PRICE))

        assert result.winner is None
        assert result.round.reward_base_cal_amount == 0
        assert result.round.reward_amount == 0
        assert result.treasury_delta == 8

    def test_empty_winning_side(self, engine):
        """Победившая сторона пуста: пул никем не востребован."""
        result = engine.settle(_closed_round(PRICE, PRICE + 1, bull=0, bear=5))

        assert result.round.reward_base_cal_amount == 0
        assert result.round.reward_amount == 5
        assert result.treasury_delta == 0

    def test_original_round_unchanged(self, engine):
        round_ = _closed_round(PRICE, PRICE + 1)
        engine.settle(round_)
        assert round_.reward_amount == 0

    def test_settle_twice_rejected(self, engine):
        settled = engine.settle(_closed_round(PRICE, PRICE + 1)).round

        with pytest.raises(AlreadySettled) as exc_info:
            engine.settle(settled)
        assert exc_info.value.reason == "already_settled"
        assert isinstance(exc_info.value, StateError)

    def test_unclosed_round_rejected(self, engine):
        with pytest.raises(StateError) as exc_info:
            engine.settle(_closed_round(PRICE, 0, oracle_called=False, close_oracle_id=0))
        assert exc_info.value.reason == "round_not_closed"

    def test_reward_never_exceeds_total(self, engine):
        for close in (PRICE - 1, PRICE, PRICE + 1):
            result = engine.settle(_closed_round(PRICE, close))
            assert result.round.reward_amount + result.treasury_delta == result.round.total_amount

    def test_refunded_stake_excluded_from_pool(self, engine):
        """Ставки, возвращённые до close, не входят ни в base, ни в пул."""
        round_ = _closed_round(PRICE, PRICE + 1, bull=1, bear=1, bear_refunded_amount=1)

        result = engine.settle(round_, [1])

        assert result.round.reward_base_cal_amount == 1
        assert result.round.reward_amount == 1
        assert result.residual == 0

    def test_refunded_winner_stake_excluded_from_base(self, engine):
        round_ = _closed_round(PRICE, PRICE - 1, bull=2, bear=3, bear_refunded_amount=1)

        result = engine.settle(round_, [2])

        assert result.round.reward_base_cal_amount == 2
        assert result.round.reward_amount == 4
        assert result.residual == 0

    def test_tie_credits_net_total(self, engine):
        round_ = _closed_round(PRICE, PRICE, bull=3, bear=5, bull_refunded_amount=3)

        assert engine.settle(round_).treasury_delta == 5


class TestResidual:
    """Остаток floor-деления сообщается при settlement."""

    def test_residual_reported(self, engine):
        # 4 * 1 // 3 = 1 на каждого из трёх победителей
        result = engine.settle(_closed_round(PRICE, PRICE + 1, bull=3, bear=1), [1, 1, 1])
        assert result.residual == 1

    def test_exact_division_has_no_residual(self, engine):
        result = engine.settle(_closed_round(PRICE, PRICE + 1, bull=2, bear=2), [1, 1])
        assert result.residual == 0

    def test_tie_has_no_residual(self, engine):
        assert engine.settle(_closed_round(PRICE, PRICE, bull=3, bear=1), [1, 1, 1]).residual == 0

    def test_residual_logged(self, engine, caplog):
        with caplog.at_level("INFO", logger="src.market.settlement"):
            engine.settle(_closed_round(PRICE, PRICE + 1, bull=3, bear=1), [1, 1, 1])
        assert "residual=1" in caplog.text


class TestTreasury:
    """Тесты накопителя treasury."""

    def test_credit_accumulates(self):
        state = MarketState()
        assert treasury.credit(state, 5) == 5
        assert treasury.credit(state, 0) == 5
        assert treasury.credit(state, 2) == 7

    def test_negative_credit_rejected(self):
        with pytest.raises(ValueError):
            treasury.credit(MarketState(), -1)

    def test_drain_zeroes_balance(self):
        state = MarketState(treasury_amount=9)

        assert treasury.drain(state) == 9
        assert state.treasury_amount == 0
        assert treasury.drain(state) == 0
