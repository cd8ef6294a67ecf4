import logging
import math
import threading
from typing import Dict, List, Optional

from bankroll.errors import ErrorCode, GameError, malformed
from bankroll.models import DEFAULT_MAX_ROUNDS, Room


def normalize_code(code) -> str:
    if not isinstance(code, str) or not code.strip():
        raise malformed()
    return code.strip().upper()


def coerce_max_rounds(value, default: int = DEFAULT_MAX_ROUNDS) -> int:
    """Coerce a host-supplied round count to a positive integer."""
    if value is None or value == '':
        return default
    if isinstance(value, bool):
        raise malformed()
    if isinstance(value, float) and not math.isfinite(value):
        raise malformed()
    try:
        rounds = int(value)
    except (TypeError, ValueError, OverflowError):
        raise malformed()
    if rounds < 1:
        raise malformed()
    return rounds


class RoomRegistry:
    """Owns every live room and knows which room each connection belongs to.

    Rooms are only ever created or looked up here; all game state changes go
    through the Room itself.
    """

    def __init__(self, scheduler, send, logger=None, dice=None,
                 roll_interval: float = 5.0, bust_grace: float = 5.0,
                 default_max_rounds: int = DEFAULT_MAX_ROUNDS):
        self.scheduler = scheduler
        self.send = send
        self.logger = logger or logging.getLogger(__name__)
        self.dice = dice
        self.roll_interval = roll_interval
        self.bust_grace = bust_grace
        self.default_max_rounds = default_max_rounds
        self._rooms: Dict[str, Room] = {}
        self._connections: Dict[str, Room] = {}
        self._lock = threading.Lock()

    def create_room(self, code, host: str, max_rounds: Optional[int] = None) -> Room:
        code = normalize_code(code)
        with self._lock:
            if code in self._rooms:
                raise GameError(ErrorCode.CODE_IN_USE, 'Room code already in use.')
            room = Room(
                code,
                host,
                send=self.send,
                scheduler=self.scheduler,
                max_rounds=max_rounds or self.default_max_rounds,
                dice=self.dice,
                roll_interval=self.roll_interval,
                bust_grace=self.bust_grace,
                logger=self.logger,
            )
            self._rooms[code] = room
        self.logger.info(f"[room-create] room={code} host={host} max_rounds={room.max_rounds}")
        self._attach(host, room)
        return room

    def lookup(self, code) -> Optional[Room]:
        if not isinstance(code, str):
            return None
        return self._rooms.get(code.strip().upper())

    def rooms(self) -> List[Room]:
        return list(self._rooms.values())

    def room_for(self, conn: str) -> Optional[Room]:
        return self._connections.get(conn)

    def join(self, conn: str, code, name) -> Room:
        room = self.lookup(normalize_code(code))
        if room is None:
            raise GameError(ErrorCode.ROOM_NOT_FOUND, 'Room not found.')
        room.join(conn, name)
        self._attach(conn, room)
        return room

    def _attach(self, conn: str, room: Room) -> None:
        with self._lock:
            previous = self._connections.get(conn)
            self._connections[conn] = room
        if previous is not None and previous is not room:
            previous.leave(conn)

    def disconnect(self, conn: str) -> None:
        with self._lock:
            room = self._connections.pop(conn, None)
        if room is None:
            return
        name = room.leave(conn)
        self.logger.info(f"[disconnect] room={room.code} conn={conn} player={name}")

    def close(self) -> None:
        for room in self.rooms():
            room.close()
