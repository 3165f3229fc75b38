"""Client side of the shared-session protocol."""
import logging
import random
import string
import time
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple
from urllib.parse import parse_qs, urlencode, urlsplit, urlunsplit

from sweeper.codec import (
    ProtocolError, decode_action, decode_origin, decode_session_state,
    encode_session_state,
)
from sweeper.session import GameSession
from sweeper.types import Difficulty, SessionState

logger = logging.getLogger(__name__)

ROOM_ALPHABET = string.ascii_lowercase + string.digits
ROOM_ID_LENGTH = 7


def new_room_id(rng: Optional[random.Random] = None) -> str:
    """Short opaque token for a shareable room."""
    rng = rng or random.SystemRandom()
    return ''.join(rng.choice(ROOM_ALPHABET) for _ in range(ROOM_ID_LENGTH))


def room_url(base_url: str, room_id: str) -> str:
    """Shareable link carrying the room token as ``?room=``."""
    parts = urlsplit(base_url)
    query = parse_qs(parts.query)
    query['room'] = [room_id]
    return urlunsplit(parts._replace(query=urlencode(query, doseq=True)))


def room_id_from_url(url: str) -> Optional[str]:
    values = parse_qs(urlsplit(url).query).get('room')
    if not values or not values[0]:
        return None
    return values[0]


@dataclass
class SessionContext:
    """Everything a client knows about its shared session."""
    room_id: Optional[str]
    session: GameSession
    pending_echo: bool = False


class OriginEchoGuard:
    """Tags outgoing mutations with (clientId, seq) and filters inbound ones.

    A message is ignored when it carries this client's own id, or a sequence
    number not newer than the last one seen from its origin.
    """

    def __init__(self, client_id: str):
        self.client_id = client_id
        self.seq = 0
        self.last_seen: Dict[str, int] = {}

    def tag(self) -> Dict[str, Any]:
        self.seq += 1
        return {'clientId': self.client_id, 'seq': self.seq}

    def accept(self, origin: Optional[Tuple[str, int]]) -> bool:
        if origin is None:
            return True
        client_id, seq = origin
        if client_id == self.client_id:
            return False
        if seq <= self.last_seen.get(client_id, 0):
            return False
        self.last_seen[client_id] = seq
        return True

    def snapshot_applied(self) -> None:
        pass

    def may_broadcast(self) -> bool:
        return True


class WindowEchoGuard(OriginEchoGuard):
    """Withholds local state broadcasts for a short window after a remote snapshot.

    Timing based: a genuine local edit inside the window is withheld too, and
    a slow apply can outlast it. Kept for parity with the timer approach.
    """

    WINDOW_SECONDS = 0.05

    def __init__(self, client_id: str, window: float = WINDOW_SECONDS,
                 clock: Callable[[], float] = time.monotonic):
        super().__init__(client_id)
        self.window = window
        self.clock = clock
        self.suppress_until: Optional[float] = None

    def accept(self, origin: Optional[Tuple[str, int]]) -> bool:
        return True

    def snapshot_applied(self) -> None:
        self.suppress_until = self.clock() + self.window

    def may_broadcast(self) -> bool:
        return self.suppress_until is None or self.clock() >= self.suppress_until


class SyncClient:
    """Keeps a local GameSession in step with the other members of a room.

    Local reveals and flags are applied first, then announced as an action
    notice followed by the resulting full snapshot. Remote notices are
    replayed locally without re-broadcast; remote snapshots overwrite the
    local state wholesale.
    """

    def __init__(self, transport, session: Optional[GameSession] = None,
                 client_id: Optional[str] = None,
                 echo_guard: Optional[OriginEchoGuard] = None):
        self.client_id = client_id or str(uuid.uuid4())
        self.transport = transport
        self.context = SessionContext(room_id=None, session=session or GameSession())
        self.echo_guard = echo_guard or OriginEchoGuard(self.client_id)
        self.handlers = {
            'sync-state': self.on_sync_state,
            'remote-click': self.on_remote_click,
            'remote-flag': self.on_remote_flag,
            'remote-reset': self.on_remote_reset,
        }
        transport.bind(self.receive)

    @property
    def session(self) -> GameSession:
        return self.context.session

    @property
    def state(self) -> SessionState:
        return self.context.session.state

    def join(self, room_id: str) -> SessionContext:
        """Subscribe to a room, leaving the previous one. Hydration, if any, arrives as sync-state."""
        previous = self.context.room_id
        if previous is not None and previous != room_id:
            self.transport.send('leave-room', previous)
        self.context.room_id = room_id
        self.transport.send('join-room', room_id)
        return self.context

    def reveal(self, row: int, col: int) -> bool:
        if not self.session.reveal(row, col):
            return False
        self._send_action('cell-click', row, col)
        self._broadcast_state()
        return True

    def flag(self, row: int, col: int) -> bool:
        if not self.session.flag(row, col):
            return False
        self._send_action('cell-flag', row, col)
        self._broadcast_state()
        return True

    def reset(self) -> None:
        """Start over locally and clear the room's stored state."""
        self.session.reset()
        if self.context.room_id is not None:
            self.transport.send('reset-game', self.context.room_id)

    def change_difficulty(self, difficulty: Difficulty) -> None:
        """Reset to a new preset and publish the idle board so peers follow."""
        self.session.reset(difficulty)
        if self.context.room_id is not None:
            self.transport.send('reset-game', self.context.room_id)
        self._broadcast_state()

    def _send_action(self, event: str, row: int, col: int) -> None:
        if self.context.room_id is None:
            return
        self.transport.send(event, {
            'roomId': self.context.room_id,
            'row': row,
            'col': col,
            'userId': self.client_id,
            'origin': self.echo_guard.tag(),
        })

    def _broadcast_state(self) -> None:
        if self.context.room_id is None:
            return
        if not self.echo_guard.may_broadcast():
            self.context.pending_echo = True
            logger.debug(f"Withholding state broadcast for room {self.context.room_id}")
            return
        self.context.pending_echo = False
        self.transport.send('update-state', {
            'roomId': self.context.room_id,
            'state': encode_session_state(self.session.state),
            'origin': self.echo_guard.tag(),
        })

    def receive(self, event: str, payload: Any) -> None:
        """Entry point for everything the relay delivers."""
        handler = self.handlers.get(event)
        if handler is None:
            logger.warning(f"Ignoring unknown event '{event}'")
            return
        try:
            handler(payload)
        except ProtocolError as error:
            logger.warning(f"Dropped {event}: {error}")

    def _accept(self, event: str, payload: Any) -> bool:
        if not isinstance(payload, dict):
            raise ProtocolError(f"{event} payload must be an object")
        if payload.get('roomId') != self.context.room_id:
            logger.debug(f"Ignoring {event} for room {payload.get('roomId')}")
            return False
        if self.echo_guard.accept(decode_origin(payload)):
            return True
        logger.debug(f"Ignoring echoed {event}")
        return False

    def on_sync_state(self, payload: Any) -> None:
        if not self._accept('sync-state', payload):
            return
        state = decode_session_state(payload.get('state'))
        self.session.load(state)
        self.echo_guard.snapshot_applied()
        self.context.pending_echo = not self.echo_guard.may_broadcast()

    def on_remote_click(self, payload: Any) -> None:
        row, col = decode_action(payload)
        if self._accept('remote-click', payload):
            self.session.reveal(row, col)

    def on_remote_flag(self, payload: Any) -> None:
        row, col = decode_action(payload)
        if self._accept('remote-flag', payload):
            self.session.flag(row, col)

    def on_remote_reset(self, payload: Any) -> None:
        if self._accept('remote-reset', payload):
            self.session.reset()
