import logging

from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO

from config import Config

socketio = SocketIO(async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(getattr(logging, str(flask_app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO))

    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from bankroll.registry import RoomRegistry
    from bankroll.services.games.scheduler import BackgroundScheduler, ManualScheduler
    from bankroll.socketio_events import SocketIOOutbox, register_socketio_handlers

    # Tests drive the round clock themselves unless they opt into real timers
    if flask_app.config.get('TESTING') and not flask_app.config.get('ENABLE_SCHEDULER_IN_TESTS'):
        scheduler = ManualScheduler()
    else:
        scheduler = BackgroundScheduler(socketio, logger=flask_app.logger)

    outbox = SocketIOOutbox(socketio, logger=flask_app.logger)
    registry = RoomRegistry(
        scheduler=scheduler,
        send=outbox.send,
        logger=flask_app.logger,
        roll_interval=flask_app.config.get('ROLL_INTERVAL_SEC', 5.0),
        bust_grace=flask_app.config.get('BUST_GRACE_SEC', 5.0),
        default_max_rounds=flask_app.config.get('DEFAULT_MAX_ROUNDS', 10),
    )
    flask_app.extensions['bankroll'] = registry
    flask_app.extensions['bankroll_outbox'] = outbox

    from bankroll.main import main
    flask_app.register_blueprint(main)

    register_socketio_handlers()

    return flask_app
