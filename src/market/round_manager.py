"""RoundManager — state machine жизненного цикла раунда.

Переходы (по каждому epoch):
- start_round: (нет раунда | предыдущий CLOSED) → CREATED/LIVE
- lock_round: now >= lock_timestamp → LOCKED (lock price из оракула)
- end_round: LOCKED, now >= close_timestamp → CLOSED (close price + settlement)

Одновременно активен только один epoch: epoch n+1 не стартует,
пока epoch n не закрыт (oracle_called).

Раунд, для которого end_round так и не вызван после close_timestamp,
остаётся неразрешённым (EXPIRED): участники получают refund.
Такой раунд блокирует старт следующего epoch, пока администратор
не выполнит lock и end (lock_round не ограничен сверху по времени).
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from src.core.config import DEFAULT_MIN_LOCK_SECONDS, ClosePolicy
from src.core.domain.market_state import MarketState
from src.core.domain.oracle import OraclePrice
from src.core.domain.round import Round, RoundPhase
from src.core.errors import PolicyError, StateError
from src.oracle.gateway import OracleGateway

from . import treasury
from .events import MarketEvent, RoundEnded, RoundLocked, RoundStarted
from .settlement import SettlementEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoundTransitionResult:
    """Результат перехода раунда."""

    round: Round
    previous_phase: RoundPhase
    new_phase: RoundPhase
    oracle_price: Optional[OraclePrice]
    treasury_delta: int
    events: Tuple[MarketEvent, ...]

    # Для отладки
    details: str

    # Остаток floor-деления пула (только для end_round)
    residual: int = 0


class RoundManager:
    """State machine раундов поверх MarketState.

    Все методы работают на рабочей копии состояния, переданной
    вызывающим кодом; коммит копии — ответственность вызывающего.
    """

    def __init__(
        self,
        gateway: OracleGateway,
        settlement: Optional[SettlementEngine] = None,
        min_lock_seconds: int = DEFAULT_MIN_LOCK_SECONDS,
        close_policy: ClosePolicy = ClosePolicy.FIXED,
    ):
        """
        Args:
            gateway: валидирующий шлюз оракула
            settlement: движок settlement (default SettlementEngine())
            min_lock_seconds: минимальный lock interval
            close_policy: FIXED / FLOATING close_timestamp
        """
        self.gateway = gateway
        self.settlement = settlement or SettlementEngine()
        self.min_lock_seconds = min_lock_seconds
        self.close_policy = ClosePolicy(close_policy)

    # -------------------------------------------------------------------------
    # START
    # -------------------------------------------------------------------------

    def start_round(
        self,
        state: MarketState,
        live_seconds: int,
        lock_seconds: int,
        now: int,
    ) -> RoundTransitionResult:
        """
        Старт нового раунда.

        Args:
            state: рабочая копия состояния (мутируется)
            live_seconds: длительность окна ставок
            lock_seconds: интервал между lock и close
            now: текущее время

        Returns:
            RoundTransitionResult с новым раундом

        Raises:
            PolicyError: lock_seconds < min_lock_seconds или live_seconds <= 0
            StateError: предыдущий раунд не закрыт
        """
        if lock_seconds < self.min_lock_seconds:
            raise PolicyError(
                f"Lock interval seconds must be at least {self.min_lock_seconds}, got {lock_seconds}",
                reason="lock_interval_too_short",
            )
        if live_seconds <= 0:
            raise PolicyError(
                f"Live interval seconds must be positive, got {live_seconds}",
                reason="live_interval_not_positive",
            )

        previous = state.current_round()
        if previous is not None and not previous.oracle_called:
            raise StateError(
                "Can only start new round after previous round has ended",
                reason="previous_round_not_ended",
            )

        epoch = state.current_epoch + 1
        lock_timestamp = now + live_seconds
        round_ = Round(
            epoch=epoch,
            start_timestamp=now,
            lock_timestamp=lock_timestamp,
            close_timestamp=lock_timestamp + lock_seconds,
            lock_interval_seconds=lock_seconds,
        )
        state.put_round(round_)
        state.current_epoch = epoch

        logger.info(
            "Round %d started: lock at %d, close at %d",
            epoch,
            round_.lock_timestamp,
            round_.close_timestamp,
        )

        return RoundTransitionResult(
            round=round_,
            previous_phase=RoundPhase.CLOSED if previous is not None else RoundPhase.CREATED,
            new_phase=round_.phase(now),
            oracle_price=None,
            treasury_delta=0,
            events=(RoundStarted(epoch=epoch),),
            details=f"live={live_seconds}s lock={lock_seconds}s",
        )

    # -------------------------------------------------------------------------
    # LOCK
    # -------------------------------------------------------------------------

    def lock_round(self, state: MarketState, now: int) -> RoundTransitionResult:
        """
        Lock текущего раунда: фиксация lock price.

        Порядок проверок: время → оракул → повторный lock. Повторный
        lock при неизменном оракуле отвергается как OracleStale.

        Raises:
            StateError: раунд не стартовал, now < lock_timestamp, раунд уже заблокирован
            OracleError: оракул не дал валидной цены
        """
        round_ = state.current_round()
        if round_ is None or now < round_.lock_timestamp:
            raise StateError("Can only lock round after lockTimestamp", reason="lock_too_early")

        previous_phase = round_.phase(now)
        price = self.gateway.fetch_price(state.oracle)

        if round_.is_locked:
            raise StateError(f"Round {round_.epoch} already locked", reason="round_already_locked")
        if round_.oracle_called:
            raise StateError(f"Round {round_.epoch} already ended", reason="round_already_ended")

        update = {"lock_price": price.price, "lock_oracle_id": price.round_id}
        if self.close_policy == ClosePolicy.FLOATING:
            update["close_timestamp"] = now + round_.lock_interval_seconds

        locked = round_.model_copy(update=update)
        state.put_round(locked)

        logger.info(
            "Round %d locked: oracle round %d, price %d, close at %d",
            locked.epoch,
            price.round_id,
            price.price,
            locked.close_timestamp,
        )

        return RoundTransitionResult(
            round=locked,
            previous_phase=previous_phase,
            new_phase=locked.phase(now),
            oracle_price=price,
            treasury_delta=0,
            events=(RoundLocked(epoch=locked.epoch, oracle_round_id=price.round_id, price=price.price),),
            details=f"close_policy={self.close_policy.value}",
        )

    # -------------------------------------------------------------------------
    # END
    # -------------------------------------------------------------------------

    def end_round(self, state: MarketState, now: int) -> RoundTransitionResult:
        """
        Close текущего раунда: фиксация close price и settlement.

        Settlement — часть того же перехода, отдельно не вызывается.

        Raises:
            StateError: раунд не заблокирован, уже закрыт или now < close_timestamp
            OracleError: оракул не дал валидной цены
        """
        round_ = state.current_round()
        if round_ is None or not round_.is_locked:
            raise StateError("Can only end round after round has locked", reason="round_not_locked")
        if round_.oracle_called:
            raise StateError(f"Round {round_.epoch} already ended", reason="round_already_ended")
        if now < round_.close_timestamp:
            raise StateError("Can only end round after closeTimestamp", reason="end_too_early")

        previous_phase = round_.phase(now)
        price = self.gateway.fetch_price(state.oracle)

        closed = round_.model_copy(
            update={
                "close_price": price.price,
                "close_oracle_id": price.round_id,
                "oracle_called": True,
            }
        )

        logger.info(
            "Round %d ended: oracle round %d, price %d (lock price %d)",
            closed.epoch,
            price.round_id,
            price.price,
            closed.lock_price,
        )

        winner = closed.winning_position()
        winning_amounts = [
            bet.amount
            for bet in state.ledger.get(closed.epoch, {}).values()
            if bet.position == winner and not bet.claimed
        ]
        result = self.settlement.settle(closed, winning_amounts)
        state.put_round(result.round)
        treasury.credit(state, result.treasury_delta)

        return RoundTransitionResult(
            round=result.round,
            previous_phase=previous_phase,
            new_phase=RoundPhase.CLOSED,
            oracle_price=price,
            treasury_delta=result.treasury_delta,
            events=(
                RoundEnded(epoch=closed.epoch, oracle_round_id=price.round_id, price=price.price),
                result.event,
            ),
            details=f"winner={result.winner.value if result.winner else 'none'}",
            residual=result.residual,
        )
