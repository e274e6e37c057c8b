"""Value transfer — перемещение средств между участниками и пулом рынка.

ValueTransfer — внешний коллаборатор. Движок вызывает его последним
шагом мутирующей операции, после того как все эффекты применены
к рабочей копии состояния.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Protocol, Union

from src.core.errors import TransferError

logger = logging.getLogger(__name__)


class ValueTransfer(Protocol):
    """Примитив перевода средств."""

    def receive(self, sender: str, amount: int) -> None:
        """Зачисление ставки от sender в пул рынка."""
        ...

    def send(self, recipient: str, amount: int) -> None:
        """Выплата amount из пула рынка recipient'у."""
        ...


class InMemoryVault:
    """
    In-memory реализация ValueTransfer.

    balance — средства на счету рынка, paid_out — накопленные
    выплаты по получателям.
    """

    def __init__(self, balance: int = 0):
        self.balance = balance
        self.received: Dict[str, int] = {}
        self.paid_out: Dict[str, int] = {}

    def receive(self, sender: str, amount: int) -> None:
        if amount < 0:
            raise TransferError(f"Negative deposit {amount} from {sender}")
        self.balance += amount
        self.received[sender] = self.received.get(sender, 0) + amount

    def send(self, recipient: str, amount: int) -> None:
        if amount < 0:
            raise TransferError(f"Negative payout {amount} to {recipient}")
        if amount > self.balance:
            logger.error("Vault balance %d insufficient for payout %d to %s", self.balance, amount, recipient)
            raise TransferError(
                f"Insufficient balance {self.balance} for payout {amount} to {recipient}"
            )
        self.balance -= amount
        self.paid_out[recipient] = self.paid_out.get(recipient, 0) + amount


class JournalTransfer:
    """
    ValueTransfer, записывающий поручения на перевод в JSONL журнал.

    Используется операторским CLI: фактическое движение средств
    выполняет внешняя система, читающая журнал.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _append(self, record: Dict[str, object]) -> None:
        record["ts"] = datetime.now(timezone.utc).isoformat()
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(json.dumps(record, ensure_ascii=False) + "\n")
        except OSError as e:
            logger.error("Cannot append transfer journal %s: %s", self.path, e)
            raise TransferError(f"Cannot write transfer journal {self.path}: {e}") from e

    def receive(self, sender: str, amount: int) -> None:
        if amount < 0:
            raise TransferError(f"Negative deposit {amount} from {sender}")
        self._append({"op": "receive", "sender": sender, "amount": amount})

    def send(self, recipient: str, amount: int) -> None:
        if amount < 0:
            raise TransferError(f"Negative payout {amount} to {recipient}")
        self._append({"op": "send", "recipient": recipient, "amount": amount})
