"""
MarketConfig — конфигурация движка prediction market

Frozen dataclass с дефолтами, загружается из YAML (yaml.safe_load).

Параметры:
- admin: идентификатор администратора (единственный привилегированный caller)
- min_lock_seconds: минимальный lock interval (оракулу нужно время на update)
- min_bet_amount: минимальная ставка в минимальных единицах
- close_policy: FIXED (close bound фиксируется при старте) / FLOATING (пересчёт при lock)
- state_path: путь к JSON снапшоту состояния (None — in-memory)
- oracle_url / oracle_timeout_sec: live price feed
- transfer_journal: JSONL журнал поручений на перевод (операторский CLI)
"""

from dataclasses import dataclass, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Final, Optional, Union

import yaml


# =============================================================================
# CONSTANTS
# =============================================================================

# 2 часа: оракул обновляется не реже heartbeat-интервала
DEFAULT_MIN_LOCK_SECONDS: Final[int] = 7200

DEFAULT_MIN_BET_AMOUNT: Final[int] = 1

DEFAULT_ORACLE_TIMEOUT_SEC: Final[float] = 10.0


class ClosePolicy(str, Enum):
    """Политика close_timestamp при lock раунда."""

    FIXED = "fixed"  # close_timestamp = lock_timestamp + lock_seconds, задаётся при старте
    FLOATING = "floating"  # close_timestamp = lock_moment + lock_seconds


# =============================================================================
# CONFIG
# =============================================================================


@dataclass(frozen=True)
class MarketConfig:
    """Конфигурация движка."""

    admin: str
    min_lock_seconds: int = DEFAULT_MIN_LOCK_SECONDS
    min_bet_amount: int = DEFAULT_MIN_BET_AMOUNT
    close_policy: ClosePolicy = ClosePolicy.FIXED
    state_path: Optional[str] = None
    log_level: str = "INFO"
    log_file: Optional[str] = None
    oracle_url: Optional[str] = None
    oracle_timeout_sec: float = DEFAULT_ORACLE_TIMEOUT_SEC
    transfer_journal: Optional[str] = None

    def __post_init__(self):
        if not self.admin:
            raise ValueError("admin must be a non-empty identifier")
        if self.min_lock_seconds < 0:
            raise ValueError(f"min_lock_seconds must be >= 0, got {self.min_lock_seconds}")
        if self.min_bet_amount < 1:
            raise ValueError(f"min_bet_amount must be >= 1, got {self.min_bet_amount}")
        if self.oracle_timeout_sec <= 0:
            raise ValueError(f"oracle_timeout_sec must be positive, got {self.oracle_timeout_sec}")
        if not isinstance(self.close_policy, ClosePolicy):
            # frozen dataclass: обход __setattr__ для нормализации строки из YAML
            object.__setattr__(self, "close_policy", ClosePolicy(self.close_policy))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MarketConfig":
        """
        Создание конфигурации из dict.

        Raises:
            ValueError: неизвестные ключи или невалидные значения
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown config keys: {', '.join(unknown)}")
        if "admin" not in data:
            raise ValueError("Missing required config key: admin")
        return cls(**data)


def load_config(path: Union[str, Path]) -> MarketConfig:
    """
    Загрузка конфигурации из YAML файла.

    Ожидается mapping на верхнем уровне либо секция ``market:``.

    Args:
        path: путь к YAML файлу

    Returns:
        MarketConfig

    Raises:
        FileNotFoundError: файл не найден
        ValueError: файл не парсится или содержит невалидные значения
    """
    config_path = Path(path)
    with open(config_path, "r", encoding="utf-8") as f:
        try:
            raw = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Cannot parse {config_path}: {e}") from e

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValueError(f"{config_path}: top-level mapping expected")
    if "market" in raw:
        raw = raw["market"] or {}

    return MarketConfig.from_dict(raw)
