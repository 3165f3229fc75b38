"""
Unit tests for the game session state machine.

Tests status transitions, the mine-remaining counter, the elapsed-time
counter and resets.
"""
import random

import pytest

from helpers import expected_disclosure, mine_positions, revealed_positions
from sweeper import engine
from sweeper.session import GameSession
from sweeper.types import DIFFICULTIES, Difficulty, GameStatus


WALL_MINES = [(row, 4) for row in range(9)] + [(8, 8)]


@pytest.fixture
def walled_session(session: GameSession) -> GameSession:
    """Playing beginner session with mines down column 4 and at (8, 8)."""
    session.state.board = engine.lay_mines(session.config, WALL_MINES)
    session.state.status = GameStatus.PLAYING
    return session


def safe_positions(session: GameSession):
    board = session.board
    return [
        (row, col)
        for row in range(board.rows)
        for col in range(board.cols)
        if not board.cells[row][col].is_mine
    ]


# ============================================================================
# Initial State Tests
# ============================================================================

class TestInitialState:
    """Test a freshly created session."""

    def test_starts_idle(self, session: GameSession) -> None:
        assert session.status == GameStatus.IDLE
        assert session.mines_left == 10
        assert session.elapsed_seconds == 0
        assert mine_positions(session.board) == set()

    def test_flag_ignored_while_idle(self, session: GameSession) -> None:
        assert session.flag(0, 0) is False
        assert session.board.cells[0][0].is_flagged is False
        assert session.mines_left == 10

    def test_timer_frozen_while_idle(self, session: GameSession) -> None:
        assert session.tick() is False
        assert session.elapsed_seconds == 0


# ============================================================================
# Transition Tests
# ============================================================================

class TestTransitions:
    """Test idle -> playing -> won/lost."""

    def test_first_reveal_starts_game(self, rng: random.Random) -> None:
        session = GameSession(Difficulty.BEGINNER, rng=rng)
        assert session.reveal(0, 0) is True
        assert session.status == GameStatus.PLAYING
        assert session.board.cells[0][0].is_mine is False
        assert len(mine_positions(session.board)) == 10
        assert revealed_positions(session.board) == expected_disclosure(session.board, 0, 0)

    def test_first_reveal_never_loses(self) -> None:
        for seed in range(100):
            session = GameSession(Difficulty.EXPERT, rng=random.Random(seed))
            session.reveal(7, 15)
            assert session.status != GameStatus.LOST

    def test_first_reveal_out_of_bounds_stays_idle(self, session: GameSession) -> None:
        assert session.reveal(9, 0) is False
        assert session.status == GameStatus.IDLE

    def test_mine_loses(self, playing_session: GameSession) -> None:
        row, col = sorted(mine_positions(playing_session.board))[0]
        assert playing_session.reveal(row, col) is True
        assert playing_session.status == GameStatus.LOST
        for mine in mine_positions(playing_session.board):
            assert playing_session.board.cells[mine[0]][mine[1]].is_revealed is True

    def test_revealing_every_safe_cell_wins(self, playing_session: GameSession) -> None:
        for row, col in safe_positions(playing_session):
            playing_session.reveal(row, col)
        assert playing_session.status == GameStatus.WON

    def test_safe_reveal_keeps_playing(self, walled_session: GameSession) -> None:
        assert walled_session.reveal(0, 0) is True
        assert revealed_positions(walled_session.board) == {(r, c) for r in range(9) for c in range(4)}
        assert walled_session.status == GameStatus.PLAYING

    def test_win_on_last_safe_cell(self, walled_session: GameSession) -> None:
        walled_session.reveal(0, 0)
        walled_session.reveal(8, 7)
        assert walled_session.status == GameStatus.PLAYING
        walled_session.reveal(0, 8)
        assert walled_session.status == GameStatus.WON

    def test_terminal_state_ignores_input(self, playing_session: GameSession) -> None:
        row, col = sorted(mine_positions(playing_session.board))[0]
        playing_session.reveal(row, col)
        before = playing_session.snapshot()
        hidden = [p for p in safe_positions(playing_session)
                  if not playing_session.board.cells[p[0]][p[1]].is_revealed]
        assert playing_session.reveal(*hidden[0]) is False
        assert playing_session.flag(*hidden[0]) is False
        assert playing_session.tick() is False
        assert playing_session.state == before


# ============================================================================
# Counter Tests
# ============================================================================

class TestCounters:
    """Test the mine-remaining and elapsed-time counters."""

    def test_flag_decrements_and_unflag_increments(self, playing_session: GameSession) -> None:
        row, col = sorted(mine_positions(playing_session.board))[0]
        playing_session.flag(row, col)
        assert playing_session.mines_left == 9
        playing_session.flag(row, col)
        assert playing_session.mines_left == 10

    def test_counter_goes_negative_when_over_flagged(self, walled_session: GameSession) -> None:
        for col in range(9):
            assert walled_session.flag(0, col) is True
            assert walled_session.flag(1, col) is True
        assert walled_session.mines_left == 10 - 18

    def test_flag_on_revealed_cell_is_ignored(self, playing_session: GameSession) -> None:
        assert playing_session.flag(4, 4) is False
        assert playing_session.mines_left == 10

    def test_tick_while_playing(self, playing_session: GameSession) -> None:
        playing_session.tick()
        playing_session.tick()
        assert playing_session.elapsed_seconds == 2


# ============================================================================
# Reset and Snapshot Tests
# ============================================================================

class TestReset:
    """Test resets, difficulty changes and snapshots."""

    def test_reset_while_playing(self, playing_session: GameSession) -> None:
        playing_session.tick()
        hidden = next((r, c) for r in range(9) for c in range(9)
                      if not playing_session.board.cells[r][c].is_revealed)
        playing_session.flag(*hidden)
        playing_session.reset()
        assert playing_session.status == GameStatus.IDLE
        assert playing_session.mines_left == 10
        assert playing_session.elapsed_seconds == 0
        assert mine_positions(playing_session.board) == set()
        assert revealed_positions(playing_session.board) == set()

    def test_reset_to_new_difficulty(self, session: GameSession) -> None:
        session.reset(Difficulty.EXPERT)
        assert session.difficulty == Difficulty.EXPERT
        assert (session.board.rows, session.board.cols) == (16, 30)
        assert session.mines_left == 99

    def test_snapshot_is_independent(self, playing_session: GameSession) -> None:
        snapshot = playing_session.snapshot()
        playing_session.reset()
        assert snapshot.status == GameStatus.PLAYING
        assert snapshot.board.cells[4][4].is_revealed is True

    def test_load_overwrites(self, session: GameSession) -> None:
        other = GameSession(Difficulty.INTERMEDIATE, rng=random.Random(5))
        other.reveal(0, 0)
        session.load(other.state)
        assert session.state == other.state
        assert session.state is not other.state
        assert session.config == DIFFICULTIES[Difficulty.INTERMEDIATE]
        assert engine.check_win(session.board, session.config) == (session.status == GameStatus.WON)
