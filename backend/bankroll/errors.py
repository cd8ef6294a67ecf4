from enum import Enum


class ErrorCode(str, Enum):
    CODE_IN_USE = 'code_in_use'
    ROOM_NOT_FOUND = 'room_not_found'
    EMPTY_NAME = 'empty_name'
    NAME_TAKEN = 'name_taken'
    NOT_HOST = 'not_host'
    ALREADY_STARTED = 'already_started'
    INVALID_POWERUP = 'invalid_powerup'
    POWERUP_ALREADY_USED = 'powerup_already_used'
    POWERUP_ALREADY_ACTIVE = 'powerup_already_active'
    INSUFFICIENT_COVER = 'insufficient_cover'
    MALFORMED_MESSAGE = 'malformed_message'


class GameError(Exception):
    """A rejected player intent.

    Always recoverable: the socket layer replies with an ``error`` event to the
    connection that sent the intent and leaves the room untouched.
    """

    def __init__(self, code: ErrorCode, message: str):
        super().__init__(message)
        self.code = code
        self.message = message

    def to_dict(self):
        return {
            'message': self.message,
            'code': self.code.value,
        }


def malformed() -> GameError:
    return GameError(ErrorCode.MALFORMED_MESSAGE, 'Malformed request.')
