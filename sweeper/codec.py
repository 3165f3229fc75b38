"""Wire encoding and validation for session snapshots and relay messages."""
import json
from typing import Any, Dict, List, Optional, Tuple

from sweeper.types import (
    DIFFICULTIES, PROTOCOL_VERSION, Board, Cell, Difficulty, GameStatus,
    SessionState,
)


class ProtocolError(ValueError):
    """A payload that does not match the message contract."""


def serialize_cell(cell: Cell) -> Dict[str, Any]:
    return {
        'isMine': cell.is_mine,
        'isRevealed': cell.is_revealed,
        'isFlagged': cell.is_flagged,
        'neighborMines': cell.neighbor_mines,
    }


def encode_session_state(state: SessionState) -> Dict[str, Any]:
    """Convert a session state to a JSON-serializable dict."""
    return {
        'version': state.version,
        'difficulty': state.difficulty.value,
        'status': state.status.value,
        'minesLeft': state.mines_left,
        'elapsedSeconds': state.elapsed_seconds,
        'board': [[serialize_cell(cell) for cell in row] for row in state.board.cells],
    }


def _require(data: Dict[str, Any], key: str, kind: type) -> Any:
    if key not in data:
        raise ProtocolError(f"Missing field '{key}'")
    value = data[key]
    # bool is an int subclass; never accept one for the other
    if kind is int and isinstance(value, bool):
        raise ProtocolError(f"Field '{key}' must be an integer")
    if not isinstance(value, kind):
        raise ProtocolError(f"Field '{key}' must be of type {kind.__name__}")
    return value


def deserialize_cell(data: Any) -> Cell:
    if not isinstance(data, dict):
        raise ProtocolError("Cell must be an object")
    neighbor_mines = _require(data, 'neighborMines', int)
    if not 0 <= neighbor_mines <= 8:
        raise ProtocolError(f"neighborMines out of range: {neighbor_mines}")
    return Cell(
        is_mine=_require(data, 'isMine', bool),
        is_revealed=_require(data, 'isRevealed', bool),
        is_flagged=_require(data, 'isFlagged', bool),
        neighbor_mines=neighbor_mines,
    )


def decode_session_state(data: Any) -> SessionState:
    """Validate and rebuild a session state received over the wire."""
    if not isinstance(data, dict):
        raise ProtocolError("Session state must be an object")

    version = _require(data, 'version', int)
    if version != PROTOCOL_VERSION:
        raise ProtocolError(f"Unsupported session state version: {version}")

    difficulty_name = _require(data, 'difficulty', str)
    status_name = _require(data, 'status', str)
    try:
        difficulty = Difficulty(difficulty_name)
        status = GameStatus(status_name)
    except ValueError as error:
        raise ProtocolError(str(error)) from error

    mines_left = _require(data, 'minesLeft', int)
    elapsed_seconds = _require(data, 'elapsedSeconds', int)
    if elapsed_seconds < 0:
        raise ProtocolError("elapsedSeconds cannot be negative")

    config = DIFFICULTIES[difficulty]
    rows = _require(data, 'board', list)
    if len(rows) != config.rows:
        raise ProtocolError(f"Expected {config.rows} rows for {difficulty.value}, got {len(rows)}")
    cells: List[List[Cell]] = []
    for row in rows:
        if not isinstance(row, list) or len(row) != config.cols:
            raise ProtocolError(f"Expected {config.cols} columns for {difficulty.value}")
        cells.append([deserialize_cell(cell) for cell in row])

    return SessionState(
        board=Board(cells=cells, rows=config.rows, cols=config.cols, mines=config.mines),
        status=status,
        mines_left=mines_left,
        elapsed_seconds=elapsed_seconds,
        difficulty=difficulty,
        version=version,
    )


def decode_room_id(payload: Any) -> str:
    if not isinstance(payload, str) or not payload:
        raise ProtocolError("Room id must be a non-empty string")
    return payload


def decode_room_payload(payload: Any) -> Tuple[str, Dict[str, Any]]:
    """Extract the room id from an object payload addressed to a room."""
    if not isinstance(payload, dict):
        raise ProtocolError("Payload must be an object")
    return decode_room_id(payload.get('roomId')), payload


def decode_action(payload: Any) -> Tuple[int, int]:
    """Extract (row, col) from a cell action notice."""
    if not isinstance(payload, dict):
        raise ProtocolError("Action notice must be an object")
    return _require(payload, 'row', int), _require(payload, 'col', int)


def decode_origin(payload: Any) -> Optional[Tuple[str, int]]:
    """Extract (clientId, seq) from a tagged payload, or None when untagged."""
    if not isinstance(payload, dict):
        return None
    origin = payload.get('origin')
    if origin is None:
        return None
    if not isinstance(origin, dict):
        raise ProtocolError("origin must be an object")
    return _require(origin, 'clientId', str), _require(origin, 'seq', int)


def encode_message(event: str, payload: Any) -> str:
    return json.dumps({'event': event, 'payload': payload}, separators=(",", ":"))


def decode_message(text: str) -> Tuple[str, Any]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as error:
        raise ProtocolError(f"Invalid JSON: {error}") from error
    if not isinstance(data, dict):
        raise ProtocolError("Message must be an object")
    return _require(data, 'event', str), data.get('payload')
