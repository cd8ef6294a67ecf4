import os
import sys
import logging
import pytest

# Ensure the backend root (containing the `bankroll` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from bankroll import create_app, socketio
from bankroll.models import Room
from bankroll.registry import RoomRegistry
from bankroll.services.games.scheduler import ManualScheduler


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    CORS_ORIGINS = ['http://localhost:5173']
    ROLL_INTERVAL_SEC = 5.0
    BUST_GRACE_SEC = 5.0
    DEFAULT_MAX_ROUNDS = 10
    LOG_LEVEL = 'DEBUG'


class ScriptedDice:
    """Dice that return pre-arranged pairs, in order."""

    def __init__(self, *pairs):
        self.pairs = list(pairs)

    def push(self, *pairs):
        self.pairs.extend(pairs)

    def __call__(self):
        if not self.pairs:
            raise AssertionError('dice rolled more often than scripted')
        return self.pairs.pop(0)


class RecordingOutbox:
    """Collects every (connection, event, payload) a room sends."""

    def __init__(self):
        self.sent = []
        self.closed = set()

    def send(self, conn, event, payload):
        if conn in self.closed:
            return False
        self.sent.append((conn, event, payload))
        return True

    def events(self, conn=None):
        return [event for c, event, _ in self.sent if conn is None or c == conn]

    def payloads(self, event, conn=None):
        return [payload for c, e, payload in self.sent if e == event and (conn is None or c == conn)]

    def clear(self):
        self.sent = []


@pytest.fixture()
def scheduler():
    return ManualScheduler(start=1000.0)


@pytest.fixture()
def dice():
    return ScriptedDice()


@pytest.fixture()
def outbox():
    return RecordingOutbox()


@pytest.fixture()
def registry(scheduler, dice, outbox):
    return RoomRegistry(
        scheduler=scheduler,
        send=outbox.send,
        logger=logging.getLogger('bankroll.tests'),
        dice=dice,
    )


@pytest.fixture()
def make_room(registry):
    """Create a room hosted by 'host-conn' with players joined as '<name>-conn'."""

    def _make(*names, code='ABCD', max_rounds=2) -> Room:
        room = registry.create_room(code, 'host-conn', max_rounds)
        for name in names:
            registry.join(f'{name}-conn', code, name)
        return room

    return _make


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application
        application.extensions['bankroll'].close()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    if test_client.is_connected('/ws'):
        test_client.disconnect(namespace='/ws')
