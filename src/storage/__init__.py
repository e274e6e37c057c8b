"""Storage — персистентность состояния рынка."""

from .state_store import InMemoryStateStore, JsonFileStateStore, StateStore

__all__ = [
    "StateStore",
    "InMemoryStateStore",
    "JsonFileStateStore",
]
