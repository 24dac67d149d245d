"""State store interfaces and implementations."""

from .board import ResultBoard
from .sqlite_store import SqliteStateStore
from .store import RegimeRecord, StateStore

__all__ = ["ResultBoard", "RegimeRecord", "SqliteStateStore", "StateStore"]
