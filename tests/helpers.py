"""
Test doubles and board inspection helpers.
"""
from typing import Any, List, Set, Tuple

from sweeper import engine
from sweeper.relay import MailboxParticipant
from sweeper.types import Board


class RecordingTransport:
    """Transport stand-in that keeps every sent message."""

    def __init__(self):
        self.sent: List[Tuple[str, Any]] = []
        self.handler = None

    def bind(self, handler) -> None:
        self.handler = handler

    def send(self, event: str, payload: Any) -> None:
        self.sent.append((event, payload))

    def events(self) -> List[str]:
        return [event for event, _ in self.sent]


def drain(participant: MailboxParticipant) -> List[Tuple[str, Any]]:
    """Collect everything currently queued for a participant."""
    messages = []
    while True:
        message = participant.next_message(timeout=0.01)
        if message is None:
            return messages
        messages.append(message)


def revealed_positions(board: Board) -> Set[Tuple[int, int]]:
    return {
        (row, col)
        for row in range(board.rows)
        for col in range(board.cols)
        if board.cells[row][col].is_revealed
    }


def mine_positions(board: Board) -> Set[Tuple[int, int]]:
    return {
        (row, col)
        for row in range(board.rows)
        for col in range(board.cols)
        if board.cells[row][col].is_mine
    }


def brute_force_count(board: Board, row: int, col: int) -> int:
    count = 0
    for r in range(row - 1, row + 2):
        for c in range(col - 1, col + 2):
            if (r, c) == (row, col):
                continue
            if 0 <= r < board.rows and 0 <= c < board.cols and board.cells[r][c].is_mine:
                count += 1
    return count


def expected_disclosure(board: Board, row: int, col: int) -> Set[Tuple[int, int]]:
    """Zero-region reachable from (row, col) plus its bordering ring."""
    seen = set()
    frontier = [(row, col)]
    while frontier:
        position = frontier.pop()
        if position in seen:
            continue
        seen.add(position)
        r, c = position
        if board.cells[r][c].neighbor_mines == 0 and not board.cells[r][c].is_mine:
            frontier.extend(engine.neighbors(board, r, c))
    return seen
