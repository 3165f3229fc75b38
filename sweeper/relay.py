"""Room relay: latest snapshot per room, forwarding of events to room peers."""
import logging
import queue
import threading
import uuid
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Tuple

from sweeper.codec import (
    ProtocolError, decode_room_id, decode_room_payload, decode_session_state,
    encode_session_state,
)
from sweeper.types import SessionState

logger = logging.getLogger(__name__)

Handler = Callable[[str, Any], None]


class Participant(ABC):
    """One connection to the relay. Subclasses decide how deliveries travel."""

    def __init__(self, participant_id: Optional[str] = None):
        self.id: str = participant_id or str(uuid.uuid4())

    @abstractmethod
    def deliver(self, event: str, payload: Any) -> None:
        """Hand one relay event to this connection."""


class MailboxParticipant(Participant):
    """Queues deliveries until a stream reader collects them.

    The mailbox is bounded. A reader that falls ``maxsize`` messages behind,
    or never shows up, is handed to ``on_overflow`` and receives nothing more.
    """

    MAILBOX_SIZE = 256

    def __init__(self, participant_id: Optional[str] = None, maxsize: int = MAILBOX_SIZE,
                 on_overflow: Optional[Callable[["MailboxParticipant"], None]] = None):
        super().__init__(participant_id)
        self.mailbox: "queue.Queue[Tuple[str, Any]]" = queue.Queue(maxsize=maxsize)
        self.on_overflow = on_overflow
        self.overflowed = False

    def deliver(self, event: str, payload: Any) -> None:
        if self.overflowed:
            return
        try:
            self.mailbox.put_nowait((event, payload))
        except queue.Full:
            self.overflowed = True
            logger.warning(f"Mailbox full for {self.id}, dropping participant")
            if self.on_overflow is not None:
                self.on_overflow(self)

    def next_message(self, timeout: Optional[float] = None) -> Optional[Tuple[str, Any]]:
        try:
            return self.mailbox.get(timeout=timeout)
        except queue.Empty:
            return None


class LocalTransport(Participant):
    """Connects a client to a relay running in the same process."""

    def __init__(self, relay: "RelayService", participant_id: Optional[str] = None):
        super().__init__(participant_id)
        self.relay = relay
        self.handler: Optional[Handler] = None

    def bind(self, handler: Handler) -> None:
        self.handler = handler

    def send(self, event: str, payload: Any) -> None:
        self.relay.dispatch(self, event, payload)

    def deliver(self, event: str, payload: Any) -> None:
        if self.handler is not None:
            self.handler(event, payload)

    def close(self) -> None:
        self.relay.disconnect(self)


class RelayService:
    """Holds the last broadcast state of every room in memory and fans out events.

    Events are processed one at a time under a lock, in arrival order. The
    relay never sends anything back to the participant that originated it,
    except the join-time hydration snapshot.
    """

    def __init__(self):
        self.rooms: Dict[str, SessionState] = {}
        self.members: Dict[str, List[Participant]] = {}
        self.lock = threading.RLock()
        self.handlers: Dict[str, Callable[[Participant, Any], None]] = {
            'join-room': self.join_room,
            'leave-room': self.leave_room,
            'update-state': self.update_state,
            'cell-click': self.cell_click,
            'cell-flag': self.cell_flag,
            'reset-game': self.reset_game,
        }

    def dispatch(self, sender: Participant, event: str, payload: Any) -> bool:
        """Route one inbound event. Malformed events are logged and dropped."""
        with self.lock:
            try:
                handler = self.handlers.get(event)
                if handler is None:
                    raise ProtocolError(f"Unknown event '{event}'")
                handler(sender, payload)
                return True
            except ProtocolError as error:
                logger.warning(f"Dropped {event} from {sender.id}: {error}")
                return False

    def join_room(self, sender: Participant, payload: Any) -> None:
        room_id = decode_room_id(payload)
        room = self.members.setdefault(room_id, [])
        if sender not in room:
            room.append(sender)
        logger.info(f"Participant {sender.id} joined room {room_id}")

        state = self.rooms.get(room_id)
        if state is not None:
            sender.deliver('sync-state', {
                'roomId': room_id,
                'state': encode_session_state(state),
                'origin': None,
            })

    def leave_room(self, sender: Participant, payload: Any) -> None:
        room_id = decode_room_id(payload)
        self.remove_member(room_id, sender)
        logger.info(f"Participant {sender.id} left room {room_id}")

    def update_state(self, sender: Participant, payload: Any) -> None:
        room_id, data = decode_room_payload(payload)
        state = decode_session_state(data.get('state'))
        self.rooms[room_id] = state
        self.broadcast(room_id, sender, 'sync-state', {
            'roomId': room_id,
            'state': encode_session_state(state),
            'origin': data.get('origin'),
        })

    def cell_click(self, sender: Participant, payload: Any) -> None:
        room_id, data = decode_room_payload(payload)
        self.broadcast(room_id, sender, 'remote-click', data)

    def cell_flag(self, sender: Participant, payload: Any) -> None:
        room_id, data = decode_room_payload(payload)
        self.broadcast(room_id, sender, 'remote-flag', data)

    def reset_game(self, sender: Participant, payload: Any) -> None:
        room_id = decode_room_id(payload)
        self.rooms.pop(room_id, None)
        logger.info(f"Room {room_id} reset by {sender.id}")
        self.broadcast(room_id, sender, 'remote-reset', {'roomId': room_id})

    def broadcast(self, room_id: str, sender: Participant, event: str, payload: Any) -> None:
        """Deliver to every member of the room except the sender."""
        for participant in list(self.members.get(room_id, [])):
            if participant is not sender:
                participant.deliver(event, payload)

    def disconnect(self, participant: Participant) -> None:
        with self.lock:
            for room_id in list(self.members):
                self.remove_member(room_id, participant)
        logger.info(f"Participant {participant.id} disconnected")

    def remove_member(self, room_id: str, participant: Participant) -> None:
        room = self.members.get(room_id)
        if room is None:
            return
        if participant in room:
            room.remove(participant)
        # Clean up if there are no more connections for this room
        if not room:
            del self.members[room_id]

    def room_count(self) -> int:
        with self.lock:
            return len(self.rooms)

    def snapshot(self, room_id: str) -> Optional[SessionState]:
        with self.lock:
            return self.rooms.get(room_id)
