import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Comma separated list of origins allowed to open the socket
    CORS_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            'CORS_ORIGINS',
            'http://localhost:5173,http://127.0.0.1:5173,http://localhost:5174,http://127.0.0.1:5174',
        ).split(',')
        if origin.strip()
    ]
    # Round engine timers (seconds)
    ROLL_INTERVAL_SEC = float(os.environ.get('ROLL_INTERVAL_SEC', '5'))
    BUST_GRACE_SEC = float(os.environ.get('BUST_GRACE_SEC', '5'))
    DEFAULT_MAX_ROUNDS = int(os.environ.get('DEFAULT_MAX_ROUNDS', '10'))
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
