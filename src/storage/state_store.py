"""State store — персистентность MarketState.

JsonFileStateStore пишет снапшот целиком:
- запись во временный файл в том же каталоге + os.replace (атомарно)
- валидация JSON Schema market_state перед записью и после чтения

Файл содержит таблицу раундов, таблицу ставок, индекс участников,
treasury и watermark оракула.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Protocol, Union

from jsonschema import ValidationError
from pydantic import ValidationError as ModelValidationError

from src.core.contracts import MarketStateValidator
from src.core.domain.market_state import MarketState
from src.core.errors import StorageError

logger = logging.getLogger(__name__)


class StateStore(Protocol):
    """Хранилище снапшотов состояния."""

    def load(self) -> Optional[MarketState]:
        ...

    def save(self, state: MarketState) -> None:
        ...


class InMemoryStateStore:
    """Хранилище в памяти: сериализует снапшот, чтобы не делить объекты с движком."""

    def __init__(self):
        self._payload: Optional[str] = None
        self.save_count = 0

    def load(self) -> Optional[MarketState]:
        if self._payload is None:
            return None
        return MarketState.model_validate_json(self._payload)

    def save(self, state: MarketState) -> None:
        self._payload = state.model_dump_json()
        self.save_count += 1


class JsonFileStateStore:
    """JSON снапшот на диске с атомарной записью."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._validator = MarketStateValidator()

    def load(self) -> Optional[MarketState]:
        """
        Загрузка снапшота.

        Returns:
            MarketState или None, если файла ещё нет

        Raises:
            StorageError: файл не читается или не проходит валидацию
        """
        if not self.path.exists():
            logger.info("No state snapshot at %s, starting empty", self.path)
            return None

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Cannot read state snapshot {self.path}: {e}") from e

        try:
            self._validator.validate(data)
            state = MarketState.model_validate(data)
        except (ValidationError, ModelValidationError) as e:
            raise StorageError(f"Invalid state snapshot {self.path}: {e}", reason="storage_corrupt") from e

        logger.info(
            "Loaded state snapshot %s: epoch=%d rounds=%d",
            self.path,
            state.current_epoch,
            len(state.rounds),
        )
        return state

    def save(self, state: MarketState) -> None:
        """
        Атомарная запись снапшота.

        Raises:
            StorageError: снапшот невалиден или запись не удалась
        """
        data = state.model_dump(mode="json")
        try:
            self._validator.validate(data)
        except ValidationError as e:
            raise StorageError(f"Refusing to persist invalid state: {e.message}", reason="storage_corrupt") from e

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, sort_keys=True)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except OSError as e:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StorageError(f"Cannot write state snapshot {self.path}: {e}") from e

        logger.debug("Saved state snapshot %s (epoch=%d)", self.path, state.current_epoch)
