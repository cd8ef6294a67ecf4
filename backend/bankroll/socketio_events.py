import json
from typing import Any, Dict

from flask import current_app, request
from flask_socketio import emit

from bankroll import socketio
from bankroll.errors import ErrorCode, GameError, malformed
from bankroll.registry import coerce_max_rounds

NAMESPACE = '/ws'


class SocketIOOutbox:
    """Delivers room events to individual Socket.IO connections.

    Sending to a connection that has already gone away is a no-op that
    returns False, so rooms never fail on a stale player.
    """

    def __init__(self, sio, namespace: str = NAMESPACE, logger=None):
        self.socketio = sio
        self.namespace = namespace
        self.logger = logger
        self._connected = set()

    def connect(self, sid: str) -> None:
        self._connected.add(sid)

    def disconnect(self, sid: str) -> None:
        self._connected.discard(sid)

    def send(self, sid: str, event: str, payload: Dict[str, Any]) -> bool:
        if sid not in self._connected:
            if self.logger:
                self.logger.debug(f"[send-skip] sid={sid} event={event} not connected")
            return False
        self.socketio.emit(event, payload, to=sid, namespace=self.namespace)
        return True


def _registry():
    return current_app.extensions['bankroll']


def _outbox() -> SocketIOOutbox:
    return current_app.extensions['bankroll_outbox']


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _require_str(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise malformed()
    return value


# ---- Intents ----

def _host_create(registry, sid: str, data: Dict[str, Any]) -> None:
    code = _require_str(data, 'room')
    max_rounds = coerce_max_rounds(data.get('maxRounds'), registry.default_max_rounds)
    room = registry.create_room(code, sid, max_rounds)
    emit('room_created', {'room': room.code, 'maxRounds': room.max_rounds})


def _join(registry, sid: str, data: Dict[str, Any]) -> None:
    code = _require_str(data, 'room')
    name = data.get('name')
    if name is not None and not isinstance(name, str):
        raise malformed()
    registry.join(sid, code, name)


def _start_game(registry, sid: str, data: Dict[str, Any]) -> None:
    room = registry.room_for(sid)
    if room is None:
        raise GameError(ErrorCode.NOT_HOST, 'Only host can start the game.')
    room.start_game(sid)


def _bank(registry, sid: str, data: Dict[str, Any]) -> None:
    room = registry.room_for(sid)
    if room is not None:
        room.bank(sid)


def _use_powerup(registry, sid: str, data: Dict[str, Any]) -> None:
    room = registry.room_for(sid)
    if room is None:
        raise GameError(ErrorCode.ROOM_NOT_FOUND, 'You have not joined a room.')
    room.use_powerup(sid, data.get('name'))


INTENTS = {
    'host_create': _host_create,
    'join': _join,
    'start_game': _start_game,
    'bank': _bank,
    'use_powerup': _use_powerup,
}


def dispatch(intent: str, data) -> None:
    handler = INTENTS.get(intent)
    if handler is None:
        return
    if data is None:
        data = {}
    try:
        if not isinstance(data, dict):
            raise malformed()
        handler(_registry(), _get_sid(), data)
    except GameError as exc:
        current_app.logger.info(f"[intent-error] sid={_get_sid()} intent={intent} code={exc.code.value}")
        emit('error', exc.to_dict())


# ---- Socket.IO handlers ----

def handle_connect(auth=None):
    _outbox().connect(_get_sid())
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(reason=None):
    sid = _get_sid()
    _outbox().disconnect(sid)
    _registry().disconnect(sid)


def handle_message(data):
    """Raw envelope intents: ``{"type": "<intent>", ...}``, as text or object."""
    if isinstance(data, (str, bytes)):
        try:
            data = json.loads(data)
        except ValueError:
            emit('error', malformed().to_dict())
            return
    if not isinstance(data, dict):
        emit('error', malformed().to_dict())
        return
    intent = data.get('type')
    if isinstance(intent, str):
        dispatch(intent, data)


def handle_ping(data=None):
    emit('pong', data or {})


def _intent_handler(intent: str):
    def handler(data=None):
        dispatch(intent, data)
    handler.__name__ = f'handle_{intent}'
    return handler


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on namespace '/ws'.

    Intents are accepted both as named events and as ``message`` envelopes.
    """
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=NAMESPACE)
    socketio.on_event('message', handle_message, namespace=NAMESPACE)
    socketio.on_event('ping', handle_ping, namespace=NAMESPACE)
    for intent in INTENTS:
        socketio.on_event(intent, _intent_handler(intent), namespace=NAMESPACE)
