"""Board engine: mine placement, disclosure, flagging and win detection."""
import random
from typing import Iterable, Iterator, List, Optional, Tuple

from sweeper.types import Board, Cell, DifficultyConfig, RevealOutcome


Position = Tuple[int, int]


def new_board(config: DifficultyConfig) -> Board:
    """Allocate a blank board with no mines placed."""
    cells: List[List[Cell]] = []
    for row in range(config.rows):
        cells.append([])
        for col in range(config.cols):
            cells[row].append(Cell())
    return Board(cells=cells, rows=config.rows, cols=config.cols, mines=config.mines)


def neighbors(board: Board, row: int, col: int) -> Iterator[Position]:
    """Yield the in-bounds positions around (row, col)."""
    for dr in [-1, 0, 1]:
        for dc in [-1, 0, 1]:
            if dr == 0 and dc == 0:
                continue
            new_row = row + dr
            new_col = col + dc
            if board.in_bounds(new_row, new_col):
                yield new_row, new_col


def count_neighbor_mines(board: Board, row: int, col: int) -> int:
    """Count the number of mines in neighboring cells."""
    count = 0
    for new_row, new_col in neighbors(board, row, col):
        if board.cells[new_row][new_col].is_mine:
            count += 1
    return count


def lay_mines(config: DifficultyConfig, positions: Iterable[Position]) -> Board:
    """Build a board with mines at the given positions and neighbor counts filled in."""
    board = new_board(config)
    for row, col in positions:
        board.cells[row][col].is_mine = True

    for row in range(board.rows):
        for col in range(board.cols):
            cell = board.cells[row][col]
            if not cell.is_mine:
                cell.neighbor_mines = count_neighbor_mines(board, row, col)
    return board


def generate(config: DifficultyConfig, excluded: Position,
             rng: Optional[random.Random] = None) -> Board:
    """Create a board with config.mines mines, none of them at the excluded cell.

    Positions are drawn by rejection sampling: a random cell is picked and
    kept unless it already holds a mine or is the excluded cell, until the
    quota is met. The layout is fully determined by ``rng``.
    """
    rng = rng or random.Random()
    mines = set()
    while len(mines) < config.mines:
        position = (rng.randrange(config.rows), rng.randrange(config.cols))
        if position in mines or position == excluded:
            continue
        mines.add(position)
    return lay_mines(config, sorted(mines))


def reveal_all_mines(board: Board) -> None:
    for row in board.cells:
        for cell in row:
            if cell.is_mine:
                cell.is_revealed = True


def reveal(board: Board, row: int, col: int) -> RevealOutcome:
    """Reveal a cell in place and cascade through zero-count regions.

    Out of bounds, already revealed and flagged cells are left untouched.
    Hitting a mine discloses every mine on the board. The cascade uses an
    explicit stack; each popped position goes through the same guard, so no
    cell is revealed twice.
    """
    if not board.in_bounds(row, col):
        return RevealOutcome.IGNORED
    cell = board.cells[row][col]
    if cell.is_revealed or cell.is_flagged:
        return RevealOutcome.IGNORED

    if cell.is_mine:
        cell.is_revealed = True
        reveal_all_mines(board)
        return RevealOutcome.EXPLODED

    pending: List[Position] = [(row, col)]
    while pending:
        r, c = pending.pop()
        current = board.cells[r][c]
        if current.is_revealed or current.is_flagged:
            continue
        current.is_revealed = True
        if current.neighbor_mines == 0:
            pending.extend(neighbors(board, r, c))
    return RevealOutcome.REVEALED


def toggle_flag(board: Board, row: int, col: int) -> bool:
    """Flip the flag on an unrevealed cell. Returns True if the flag changed."""
    if not board.in_bounds(row, col):
        return False
    cell = board.cells[row][col]
    if cell.is_revealed:
        return False
    cell.is_flagged = not cell.is_flagged
    return True


def count_revealed(board: Board) -> int:
    revealed_count = 0
    for row in board.cells:
        for cell in row:
            if cell.is_revealed:
                revealed_count += 1
    return revealed_count


def check_win(board: Board, config: DifficultyConfig) -> bool:
    """All safe cells are revealed. Flags play no part."""
    return count_revealed(board) == config.safe_cells
