"""
Errors — таксономия ошибок prediction market engine

Каждая ошибка несёт стабильный машинно-проверяемый ``reason``.
Любая ошибка прерывает операцию целиком: рабочая копия состояния
отбрасывается, закоммиченное состояние не меняется.

Иерархия:
- MarketError
  - AuthorizationError — вызов привилегированной операции не админом / contract-caller
  - StateError — операция в неверной фазе жизненного цикла раунда
    - AlreadySettled — повторный settlement раунда
    - ReentrancyError — вложенный мутирующий вызов
  - PolicyError — нарушение конфигурируемой политики (min lock interval и т.п.)
  - OracleError
    - OracleIncomplete — feed round ещё не финализирован (updated_at == 0)
    - OracleStale — round_id не строго больше последнего принятого
    - OracleUnavailable — транспортная ошибка live feed
  - EconomicError — нулевая ставка, двойная ставка, claim без права
  - TransferError — перевод средств не выполнен
  - StorageError — не удалось сохранить/загрузить снапшот состояния
"""

from typing import Optional


class MarketError(Exception):
    """Базовая ошибка движка."""

    reason: str = "market_error"

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message)
        if reason is not None:
            self.reason = reason

    def __str__(self) -> str:
        return f"[{self.reason}] {super().__str__()}"


class AuthorizationError(MarketError):
    reason = "not_authorized"


class StateError(MarketError):
    reason = "invalid_state"


class AlreadySettled(StateError):
    reason = "already_settled"


class ReentrancyError(StateError):
    reason = "reentrant_call"


class PolicyError(MarketError):
    reason = "policy_violation"


class OracleError(MarketError):
    reason = "oracle_error"


class OracleIncomplete(OracleError):
    reason = "oracle_incomplete"


class OracleStale(OracleError):
    reason = "oracle_stale"


class OracleUnavailable(OracleError):
    reason = "oracle_unavailable"


class EconomicError(MarketError):
    reason = "economic_violation"


class TransferError(MarketError):
    reason = "transfer_failed"


class StorageError(MarketError):
    reason = "storage_failed"
