"""
Тесты для базовых доменных моделей: Round, BetInfo, MarketState

Проверяет:
1. Создание и валидацию моделей Pydantic
2. Инварианты раунда (total == bull + bear, порядок временных границ)
3. Immutability (frozen=True)
4. Производные предикаты и фазы раунда
5. Независимость clone() от исходного состояния
"""

import pytest
from pydantic import ValidationError

from src.core.domain import BetInfo, MarketState, OraclePrice, Position, Round, RoundPhase


T0 = 1_700_000_000


def _round(**overrides) -> Round:
    fields = dict(
        epoch=1,
        start_timestamp=T0,
        lock_timestamp=T0 + 10,
        close_timestamp=T0 + 7210,
        lock_interval_seconds=7200,
    )
    fields.update(overrides)
    return Round(**fields)


# =============================================================================
# ROUND TESTS
# =============================================================================


class TestRound:
    """Тесты для модели Round"""

    def test_defaults(self):
        round_ = _round()
        assert round_.total_amount == 0
        assert round_.lock_price == 0
        assert not round_.oracle_called
        assert round_.is_started
        assert not round_.is_locked
        assert not round_.is_settled

    def test_total_must_equal_sides(self):
        with pytest.raises(ValidationError):
            _round(bull_amount=1, bear_amount=2, total_amount=4)

    def test_lock_before_start_rejected(self):
        with pytest.raises(ValidationError):
            _round(lock_timestamp=T0 - 1)

    def test_epoch_starts_at_one(self):
        with pytest.raises(ValidationError):
            _round(epoch=0)

    def test_frozen(self):
        round_ = _round()
        with pytest.raises(ValidationError):
            round_.lock_price = 5

    def test_model_copy_creates_new_instance(self):
        round_ = _round()
        locked = round_.model_copy(update={"lock_price": 7, "lock_oracle_id": 3})

        assert locked.is_locked
        assert not round_.is_locked

    def test_negative_price_allowed(self):
        """Цена signed: отрицательные значения допустимы."""
        assert _round(lock_price=-1, lock_oracle_id=1).lock_price == -1

    @pytest.mark.parametrize(
        "lock_price,close_price,expected",
        [
            (100, 101, Position.BULL),
            (100, 99, Position.BEAR),
            (100, 100, None),
            (-5, -3, Position.BULL),
        ],
    )
    def test_winning_position(self, lock_price, close_price, expected):
        round_ = _round(
            lock_price=lock_price,
            close_price=close_price,
            lock_oracle_id=1,
            close_oracle_id=2,
            oracle_called=True,
        )
        assert round_.winning_position() == expected

    def test_no_winner_before_close(self):
        assert _round(lock_price=1, lock_oracle_id=1, close_price=2).winning_position() is None

    def test_bet_window_is_strict(self):
        round_ = _round()
        assert not round_.is_bet_window_open(T0)
        assert round_.is_bet_window_open(T0 + 1)
        assert round_.is_bet_window_open(T0 + 9)
        assert not round_.is_bet_window_open(T0 + 10)

    def test_net_amounts(self):
        round_ = _round(bull_amount=3, bear_amount=5, total_amount=8, bear_refunded_amount=2)

        assert round_.net_bull_amount == 3
        assert round_.net_bear_amount == 3
        assert round_.net_total_amount == 6
        assert round_.total_amount == 8

    def test_refund_cannot_exceed_side_stake(self):
        with pytest.raises(ValidationError):
            _round(bull_amount=1, total_amount=1, bull_refunded_amount=2)


class TestRoundPhase:
    """Тесты фаз раунда"""

    def test_phases_over_time(self):
        round_ = _round()
        assert round_.phase(T0) == RoundPhase.CREATED
        assert round_.phase(T0 + 5) == RoundPhase.LIVE
        assert round_.phase(T0 + 10) == RoundPhase.AWAITING_LOCK
        assert round_.phase(T0 + 7210) == RoundPhase.AWAITING_LOCK
        assert round_.phase(T0 + 7211) == RoundPhase.EXPIRED

    def test_locked_and_closed(self):
        locked = _round(lock_price=1, lock_oracle_id=1)
        assert locked.phase(T0 + 100) == RoundPhase.LOCKED
        assert locked.phase(T0 + 7211) == RoundPhase.EXPIRED

        closed = locked.model_copy(update={"close_price": 2, "close_oracle_id": 2, "oracle_called": True})
        assert closed.phase(T0 + 10**6) == RoundPhase.CLOSED


# =============================================================================
# BET / ORACLE TESTS
# =============================================================================


class TestBetInfo:
    def test_mark_claimed(self):
        bet = BetInfo(position=Position.BULL, amount=3)
        claimed = bet.mark_claimed()

        assert claimed.claimed
        assert not bet.claimed
        assert claimed.amount == 3

    def test_zero_amount_rejected(self):
        with pytest.raises(ValidationError):
            BetInfo(position=Position.BEAR, amount=0)

    def test_position_from_string(self):
        assert BetInfo(position="bear", amount=1).position == Position.BEAR


class TestOraclePrice:
    def test_round_id_positive(self):
        with pytest.raises(ValidationError):
            OraclePrice(round_id=0, price=1)


# =============================================================================
# MARKET STATE TESTS
# =============================================================================


class TestMarketState:
    def test_empty(self):
        state = MarketState()
        assert state.current_epoch == 0
        assert state.current_round() is None
        assert state.get_bet(1, "alice") is None
        assert state.oracle.last_accepted_round_id == 0

    def test_clone_is_independent(self):
        state = MarketState(current_epoch=1)
        state.put_round(_round())
        state.put_bet(1, "alice", BetInfo(position=Position.BULL, amount=1))
        state.user_rounds["alice"] = [1]

        clone = state.clone()
        clone.current_epoch = 2
        clone.put_round(_round(epoch=2))
        clone.put_bet(1, "bob", BetInfo(position=Position.BEAR, amount=1))
        clone.user_rounds["alice"].append(2)
        clone.oracle.last_accepted_round_id = 9
        clone.treasury_amount = 4

        assert state.current_epoch == 1
        assert set(state.rounds) == {1}
        assert state.get_bet(1, "bob") is None
        assert state.user_rounds["alice"] == [1]
        assert state.oracle.last_accepted_round_id == 0
        assert state.treasury_amount == 0

    def test_clone_shares_frozen_values(self):
        state = MarketState(current_epoch=1)
        state.put_round(_round())
        assert state.clone().rounds[1] is state.rounds[1]
