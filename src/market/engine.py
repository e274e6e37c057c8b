"""PredictionMarket — фасад движка с single-writer дисциплиной.

Каждая мутирующая операция:
1. берёт writer lock и ставит in-progress маркер (вложенный вызов → ReentrancyError)
2. работает на clone() закоммиченного состояния
3. применяет все эффекты к копии, затем выполняет перевод средств
4. сохраняет копию в StateStore и подменяет ею закоммиченное состояние
5. снимает маркер и, всё ещё под writer lock, публикует буферизованные события

Любая ошибка на шагах 2–4 отбрасывает копию: закоммиченное состояние
не меняется. Чтения не берут lock и видят последнее закоммиченное
состояние.
"""

import logging
import threading
import time
from contextlib import contextmanager
from typing import Callable, Iterable, Iterator, List, Optional, Tuple

from src.core.config import MarketConfig
from src.core.domain.bet import BetInfo
from src.core.domain.market_state import MarketState
from src.core.domain.oracle import OraclePrice
from src.core.domain.round import Position, Round, RoundPhase
from src.core.errors import MarketError, ReentrancyError
from src.oracle.feeds import HttpPriceFeed
from src.oracle.gateway import OracleGateway, PriceFeed
from src.storage.state_store import InMemoryStateStore, JsonFileStateStore, StateStore

from . import treasury
from .access import AccessPolicy
from .events import EventBus, MarketEvent, TreasuryClaimed
from .ledger import Ledger
from .round_manager import RoundManager
from .transfer import InMemoryVault, JournalTransfer, ValueTransfer

logger = logging.getLogger(__name__)

Clock = Callable[[], int]

DEFAULT_USER_ROUNDS_PAGE = 100


def system_clock() -> int:
    return int(time.time())


def _default_transfer(config: MarketConfig) -> ValueTransfer:
    if config.transfer_journal:
        return JournalTransfer(config.transfer_journal)
    return InMemoryVault()


class _Transaction:
    """Рабочая копия состояния и буфер событий одной операции."""

    def __init__(self, state: MarketState):
        self.state = state
        self.events: List[MarketEvent] = []

    def emit(self, *events: MarketEvent) -> None:
        self.events.extend(events)


class PredictionMarket:
    """Round-based binary prediction market."""

    def __init__(
        self,
        gateway: OracleGateway,
        access: AccessPolicy,
        transfer: ValueTransfer,
        round_manager: Optional[RoundManager] = None,
        ledger: Optional[Ledger] = None,
        store: Optional[StateStore] = None,
        clock: Optional[Clock] = None,
        event_bus: Optional[EventBus] = None,
    ):
        """
        Args:
            gateway: шлюз оракула
            access: политика авторизации
            transfer: примитив перевода средств
            round_manager: state machine раундов (default поверх gateway)
            ledger: ledger ставок (default Ledger())
            store: хранилище снапшотов (default InMemoryStateStore)
            clock: источник времени, unix seconds
            event_bus: шина событий
        """
        self.gateway = gateway
        self.access = access
        self.transfer = transfer
        self.round_manager = round_manager or RoundManager(gateway)
        self.ledger = ledger or Ledger()
        self.store = store if store is not None else InMemoryStateStore()
        self.clock = clock or system_clock
        self.events = event_bus or EventBus()

        self._lock = threading.RLock()
        self._in_progress: Optional[str] = None
        self._state = self.store.load() or MarketState()

    @classmethod
    def from_config(
        cls,
        config: MarketConfig,
        feed: Optional[PriceFeed] = None,
        transfer: Optional[ValueTransfer] = None,
        is_contract: Optional[Callable[[str], bool]] = None,
        clock: Optional[Clock] = None,
    ) -> "PredictionMarket":
        """
        Сборка движка по конфигурации.

        Без явного feed используется HttpPriceFeed(config.oracle_url).
        """
        if feed is None:
            if not config.oracle_url:
                raise ValueError("oracle_url is required when no price feed is given")
            feed = HttpPriceFeed(config.oracle_url, timeout=config.oracle_timeout_sec)

        gateway = OracleGateway(feed)
        store: StateStore = (
            JsonFileStateStore(config.state_path) if config.state_path else InMemoryStateStore()
        )
        return cls(
            gateway=gateway,
            access=AccessPolicy(config.admin, is_contract=is_contract),
            transfer=transfer if transfer is not None else _default_transfer(config),
            round_manager=RoundManager(
                gateway,
                min_lock_seconds=config.min_lock_seconds,
                close_policy=config.close_policy,
            ),
            ledger=Ledger(min_bet_amount=config.min_bet_amount),
            store=store,
            clock=clock,
        )

    # -------------------------------------------------------------------------
    # Transaction
    # -------------------------------------------------------------------------

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[_Transaction]:
        with self._lock:
            if self._in_progress is not None:
                raise ReentrancyError(
                    f"{operation} called while {self._in_progress} is in progress"
                )
            self._in_progress = operation
            try:
                tx = _Transaction(self._state.clone())
                yield tx
                self.store.save(tx.state)
                self._state = tx.state
            except MarketError as e:
                logger.warning("%s rejected: %s", operation, e)
                raise
            finally:
                self._in_progress = None

            # под writer lock: порядок публикации совпадает с порядком коммитов
            self.events.publish(tx.events)

    # -------------------------------------------------------------------------
    # Administrative surface
    # -------------------------------------------------------------------------

    def start_round(self, caller: str, live_seconds: int, lock_seconds: int) -> int:
        """Старт раунда. Возвращает новый epoch."""
        self.access.require_admin(caller)
        with self._transaction("start_round") as tx:
            result = self.round_manager.start_round(tx.state, live_seconds, lock_seconds, self.clock())
            tx.emit(*result.events)
        return result.round.epoch

    def lock_round(self, caller: str) -> OraclePrice:
        """Lock текущего раунда. Возвращает принятый снапшот оракула."""
        self.access.require_admin(caller)
        with self._transaction("lock_round") as tx:
            result = self.round_manager.lock_round(tx.state, self.clock())
            tx.emit(*result.events)
        return result.oracle_price

    def end_round(self, caller: str) -> OraclePrice:
        """Close текущего раунда и settlement. Возвращает принятый снапшот оракула."""
        self.access.require_admin(caller)
        with self._transaction("end_round") as tx:
            result = self.round_manager.end_round(tx.state, self.clock())
            tx.emit(*result.events)
        return result.oracle_price

    def claim_treasury(self, caller: str) -> int:
        """Вывод всего treasury администратору."""
        self.access.require_admin(caller)
        with self._transaction("claim_treasury") as tx:
            amount = treasury.drain(tx.state)
            tx.emit(TreasuryClaimed(amount=amount))
            if amount > 0:
                self.transfer.send(self.access.admin, amount)
        logger.info("Treasury drained: %d", amount)
        return amount

    # -------------------------------------------------------------------------
    # Participant surface
    # -------------------------------------------------------------------------

    def bet(self, caller: str, epoch: int, position: Position, amount: int) -> BetInfo:
        """Ставка в текущем раунде; amount — приложенная сумма."""
        self.access.require_participant(caller)
        with self._transaction("bet") as tx:
            event = self.ledger.place_bet(tx.state, epoch, caller, position, amount, self.clock())
            tx.emit(event)
            self.transfer.receive(caller, amount)
        return tx.state.get_bet(epoch, caller)

    def bet_bull(self, caller: str, epoch: int, amount: int) -> BetInfo:
        return self.bet(caller, epoch, Position.BULL, amount)

    def bet_bear(self, caller: str, epoch: int, amount: int) -> BetInfo:
        return self.bet(caller, epoch, Position.BEAR, amount)

    def claim(self, caller: str, epochs: Iterable[int]) -> int:
        """
        Claim выигрышей и возвратов по списку раундов одним переводом.

        Returns:
            Выплаченная сумма
        """
        self.access.require_participant(caller)
        epochs = list(epochs)
        with self._transaction("claim") as tx:
            result = self.ledger.claim(tx.state, epochs, caller, self.clock())
            tx.emit(*result.events)
            if result.total > 0:
                self.transfer.send(caller, result.total)
        logger.info("Claim %s epochs=%s paid=%d", caller, epochs, result.total)
        return result.total

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    @property
    def current_epoch(self) -> int:
        return self._state.current_epoch

    @property
    def treasury_amount(self) -> int:
        return self._state.treasury_amount

    @property
    def oracle_latest_round_id(self) -> int:
        return self._state.oracle.last_accepted_round_id

    def snapshot(self) -> MarketState:
        """Копия последнего закоммиченного состояния."""
        return self._state.clone()

    def get_round(self, epoch: int) -> Optional[Round]:
        return self._state.get_round(epoch)

    def get_bet(self, epoch: int, participant: str) -> Optional[BetInfo]:
        return self._state.get_bet(epoch, participant)

    def round_phase(self, epoch: int) -> Optional[RoundPhase]:
        round_ = self._state.get_round(epoch)
        return round_.phase(self.clock()) if round_ is not None else None

    def claimable(self, epoch: int, participant: str) -> bool:
        return self.ledger.claimable(self._state, epoch, participant)

    def refundable(self, epoch: int, participant: str) -> bool:
        return self.ledger.refundable(self._state, epoch, participant, self.clock())

    def get_user_rounds_length(self, participant: str) -> int:
        return len(self._state.user_rounds.get(participant, []))

    def get_user_rounds(
        self,
        participant: str,
        cursor: int = 0,
        size: int = DEFAULT_USER_ROUNDS_PAGE,
    ) -> Tuple[List[int], List[BetInfo], int]:
        """
        Постраничная история ставок участника.

        Returns:
            (epochs, bets, next_cursor)
        """
        if cursor < 0 or size < 0:
            raise ValueError(f"cursor and size must be non-negative, got {cursor}/{size}")
        state = self._state
        epochs = state.user_rounds.get(participant, [])[cursor:cursor + size]
        bets = [state.get_bet(epoch, participant) for epoch in epochs]
        return epochs, bets, cursor + len(epochs)

    def get_price_from_oracle(self) -> OraclePrice:
        """Текущая цена оракула с валидацией, без продвижения watermark."""
        return self.gateway.peek_price(self._state.oracle)
