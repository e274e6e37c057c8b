"""AccessPolicy — авторизация вызовов.

- require_admin: привилегированные операции (start/lock/end round, claim treasury)
- require_participant: участник не может быть контрактом (если задан is_contract)
"""

import logging
from typing import Callable, Optional

from src.core.errors import AuthorizationError

logger = logging.getLogger(__name__)


class AccessPolicy:
    """Проверка caller identity."""

    def __init__(self, admin: str, is_contract: Optional[Callable[[str], bool]] = None):
        """
        Args:
            admin: идентификатор администратора
            is_contract: предикат "caller — контракт/бот" (None — фильтр отключён)
        """
        if not admin:
            raise ValueError("admin must be a non-empty identifier")
        self.admin = admin
        self._is_contract = is_contract

    def require_admin(self, caller: str) -> None:
        if caller != self.admin:
            logger.warning("Privileged call rejected for %s", caller)
            raise AuthorizationError("Not admin", reason="not_admin")

    def require_participant(self, caller: str) -> None:
        if not caller:
            raise AuthorizationError("Empty caller identity", reason="empty_caller")
        if self._is_contract is not None and self._is_contract(caller):
            logger.warning("Contract caller rejected: %s", caller)
            raise AuthorizationError("Contract not allowed", reason="contract_not_allowed")
