"""Type definitions for shared Minesweeper."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List


PROTOCOL_VERSION = 1


@dataclass
class Cell:
    """Represents a single cell on the minesweeper board."""
    is_mine: bool = False
    is_revealed: bool = False
    is_flagged: bool = False
    neighbor_mines: int = 0


@dataclass
class Board:
    """Represents the game board."""
    cells: List[List[Cell]]
    rows: int
    cols: int
    mines: int

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self.rows and 0 <= col < self.cols


class Difficulty(str, Enum):
    """Fixed board presets."""
    BEGINNER = 'beginner'
    INTERMEDIATE = 'intermediate'
    EXPERT = 'expert'


@dataclass(frozen=True)
class DifficultyConfig:
    """Board dimensions and mine count for a preset."""
    rows: int
    cols: int
    mines: int

    def __post_init__(self):
        if self.rows < 1 or self.cols < 1:
            raise ValueError("Board dimensions must be positive")
        if self.mines < 0:
            raise ValueError("Number of mines cannot be negative")
        if self.mines >= self.rows * self.cols:
            raise ValueError(f"Too many mines (max {self.rows * self.cols - 1})")

    @property
    def safe_cells(self) -> int:
        return self.rows * self.cols - self.mines


DIFFICULTIES: Dict[Difficulty, DifficultyConfig] = {
    Difficulty.BEGINNER: DifficultyConfig(rows=9, cols=9, mines=10),
    Difficulty.INTERMEDIATE: DifficultyConfig(rows=16, cols=16, mines=40),
    Difficulty.EXPERT: DifficultyConfig(rows=16, cols=30, mines=99),
}


class GameStatus(str, Enum):
    """Possible game states."""
    IDLE = 'idle'
    PLAYING = 'playing'
    WON = 'won'
    LOST = 'lost'


TERMINAL_STATUSES = (GameStatus.WON, GameStatus.LOST)


class RevealOutcome(str, Enum):
    """Result of a single reveal request."""
    IGNORED = 'ignored'
    REVEALED = 'revealed'
    EXPLODED = 'exploded'


@dataclass
class SessionState:
    """The unit of state a client holds and exchanges with the relay."""
    board: Board
    status: GameStatus = GameStatus.IDLE
    mines_left: int = 0
    elapsed_seconds: int = 0
    difficulty: Difficulty = Difficulty.BEGINNER
    version: int = field(default=PROTOCOL_VERSION)

    @property
    def config(self) -> DifficultyConfig:
        return DIFFICULTIES[self.difficulty]
