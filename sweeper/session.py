"""Game session state machine wrapping the board engine."""
import copy
import logging
import random
from typing import Optional

from sweeper import engine
from sweeper.types import (
    DIFFICULTIES, TERMINAL_STATUSES, Board, Difficulty, DifficultyConfig,
    GameStatus, RevealOutcome, SessionState,
)

logger = logging.getLogger(__name__)


def idle_state(difficulty: Difficulty) -> SessionState:
    """A fresh, blank session for the given preset."""
    config = DIFFICULTIES[difficulty]
    return SessionState(
        board=engine.new_board(config),
        status=GameStatus.IDLE,
        mines_left=config.mines,
        elapsed_seconds=0,
        difficulty=difficulty,
    )


class GameSession:
    """A single client's game: board, status, mine counter and timer.

    Status moves ``idle -> playing -> won | lost``. The first reveal places
    the mines around the clicked cell. Terminal states accept nothing but a
    reset.
    """

    def __init__(self, difficulty: Difficulty = Difficulty.BEGINNER,
                 rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()
        self.state: SessionState = idle_state(Difficulty(difficulty))

    @property
    def board(self) -> Board:
        return self.state.board

    @property
    def status(self) -> GameStatus:
        return self.state.status

    @property
    def difficulty(self) -> Difficulty:
        return self.state.difficulty

    @property
    def config(self) -> DifficultyConfig:
        return self.state.config

    @property
    def mines_left(self) -> int:
        return self.state.mines_left

    @property
    def elapsed_seconds(self) -> int:
        return self.state.elapsed_seconds

    def reveal(self, row: int, col: int) -> bool:
        """Reveal a cell. Returns True if the session changed."""
        if self.state.status in TERMINAL_STATUSES:
            return False
        if not self.board.in_bounds(row, col):
            return False

        if self.state.status == GameStatus.IDLE:
            self.state.board = engine.generate(self.config, (row, col), self.rng)
            self.state.status = GameStatus.PLAYING
            logger.debug(f"Mines placed for {self.difficulty.value} game, first reveal at ({row}, {col})")

        outcome = engine.reveal(self.state.board, row, col)
        if outcome == RevealOutcome.EXPLODED:
            self.state.status = GameStatus.LOST
        elif outcome == RevealOutcome.REVEALED and engine.check_win(self.state.board, self.config):
            self.state.status = GameStatus.WON
        return outcome != RevealOutcome.IGNORED

    def flag(self, row: int, col: int) -> bool:
        """Toggle a flag while playing. The mine counter is not clamped."""
        if self.state.status != GameStatus.PLAYING:
            return False
        if not engine.toggle_flag(self.state.board, row, col):
            return False
        if self.state.board.cells[row][col].is_flagged:
            self.state.mines_left -= 1
        else:
            self.state.mines_left += 1
        return True

    def tick(self, seconds: int = 1) -> bool:
        """Advance the elapsed-time counter, only while playing."""
        if self.state.status != GameStatus.PLAYING:
            return False
        self.state.elapsed_seconds += seconds
        return True

    def reset(self, difficulty: Optional[Difficulty] = None) -> None:
        """Back to idle with a blank board, optionally switching preset."""
        if difficulty is None:
            difficulty = self.state.difficulty
        self.state = idle_state(Difficulty(difficulty))

    def snapshot(self) -> SessionState:
        """An independent copy of the current state."""
        return copy.deepcopy(self.state)

    def load(self, state: SessionState) -> None:
        """Overwrite the whole session with a received snapshot."""
        self.state = copy.deepcopy(state)
