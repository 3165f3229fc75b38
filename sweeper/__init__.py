"""Shared-session Minesweeper: board engine, game session and room sync."""
from sweeper.codec import ProtocolError
from sweeper.relay import LocalTransport, RelayService
from sweeper.session import GameSession
from sweeper.sync import SyncClient
from sweeper.types import (
    DIFFICULTIES, Board, Cell, Difficulty, DifficultyConfig, GameStatus,
    SessionState,
)

__all__ = [
    "Board",
    "Cell",
    "DIFFICULTIES",
    "Difficulty",
    "DifficultyConfig",
    "GameSession",
    "GameStatus",
    "LocalTransport",
    "ProtocolError",
    "RelayService",
    "SessionState",
    "SyncClient",
]
