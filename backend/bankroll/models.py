import functools
import logging
import threading
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from bankroll.errors import ErrorCode, GameError
from bankroll.services.games.engine import RoundEngine
from bankroll.services.games.powerups import PowerupKind, can_cover
from bankroll.services.games.scoring import roll_dice

DEFAULT_MAX_ROUNDS = 10
TOP_PLAYERS = 3

# send(connection_id, event, payload) -> delivered?
Send = Callable[[str, str, dict], bool]


class RoomState(str, Enum):
    WAITING = 'waiting'
    PLAYING = 'playing'


class Leaderboard:
    """Player name -> score, in join order."""

    def __init__(self):
        self._scores: Dict[str, int] = {}

    def __contains__(self, name):
        return name in self._scores

    def __getitem__(self, name):
        return self._scores[name]

    def add(self, name: str) -> None:
        self._scores[name] = 0

    def remove(self, name: str) -> None:
        self._scores.pop(name, None)

    def credit(self, name: str, amount: int) -> int:
        self._scores[name] += amount
        return self._scores[name]

    def set_score(self, name: str, score: int) -> None:
        self._scores[name] = max(0, int(score))

    def ranking(self) -> List[Tuple[str, int]]:
        # sorted() is stable, so equal scores keep join order
        return sorted(self._scores.items(), key=lambda item: item[1], reverse=True)

    def placement(self, name: str) -> dict:
        score = self._scores[name]
        higher = sum(1 for other in self._scores.values() if other > score)
        return {'rank': higher + 1, 'score': score}

    def to_dict(self) -> Dict[str, int]:
        return dict(self._scores)


class PowerupSlot:
    def __init__(self):
        self.active = False
        self.used = False

    def activate(self) -> None:
        self.active = True
        self.used = True

    def deactivate(self) -> None:
        self.active = False

    def to_dict(self):
        return {'active': self.active, 'used': self.used}


class StreakBonusSlot(PowerupSlot):
    def __init__(self):
        super().__init__()
        self.rolls_survived = 0

    def activate(self) -> None:
        super().activate()
        self.rolls_survived = 0

    def to_dict(self):
        data = super().to_dict()
        data['rollsSurvived'] = self.rolls_survived
        return data


class PlayerPowerups:
    """The three one-shot power-up slots held by a single player."""

    def __init__(self):
        self.snake_eyes = PowerupSlot()
        self.streak_bonus = StreakBonusSlot()
        self.double_or_nothing = PowerupSlot()

    def slot(self, kind: PowerupKind) -> PowerupSlot:
        if kind is PowerupKind.SNAKE_EYES:
            return self.snake_eyes
        if kind is PowerupKind.STREAK_BONUS:
            return self.streak_bonus
        if kind is PowerupKind.DOUBLE_OR_NOTHING:
            return self.double_or_nothing
        raise ValueError(f'unknown power-up {kind!r}')

    def active_kinds(self) -> List[PowerupKind]:
        return [kind for kind in PowerupKind if self.slot(kind).active]

    def to_dict(self):
        return {kind.value: self.slot(kind).to_dict() for kind in PowerupKind}


def synchronized(method):
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self.lock:
            return method(self, *args, **kwargs)
    return wrapper


class Room:
    """A game room: membership, leaderboard, power-ups and the round engine.

    Every public operation runs under the room's lock, and so do timer
    callbacks fired by the round engine, which keeps handling of a single room
    strictly sequential whatever the Socket.IO async mode is.
    """

    def __init__(self, code: str, host: str, send: Send, scheduler,
                 max_rounds: int = DEFAULT_MAX_ROUNDS, dice=None,
                 roll_interval: float = 5.0, bust_grace: float = 5.0, logger=None):
        self.code = code
        self.host = host
        self.max_rounds = max_rounds
        self.state = RoomState.WAITING
        self.players: Dict[str, str] = {}  # name -> connection id
        self.leaderboard = Leaderboard()
        self.powerups: Dict[str, PlayerPowerups] = {}
        self.current_round = 1
        self.round_total = 0
        self.roll_count = 0
        self.banked = set()
        self.snake_eyes_this_round = False
        self.lock = threading.RLock()
        self.logger = logger or logging.getLogger(__name__)
        self._send = send
        self.engine = RoundEngine(
            self,
            scheduler=scheduler,
            dice=dice or roll_dice,
            roll_interval=roll_interval,
            bust_grace=bust_grace,
            logger=self.logger,
        )

    # ---- Delivery ----

    def audience(self) -> List[str]:
        connections = [self.host] if self.host else []
        for conn in self.players.values():
            if conn not in connections:
                connections.append(conn)
        return connections

    def send(self, conn: str, event: str, payload: dict) -> bool:
        delivered = self._send(conn, event, payload)
        if not delivered:
            self.logger.debug(f"[send-stale] room={self.code} conn={conn} event={event}")
        return delivered

    def send_to_player(self, name: str, event: str, payload: dict) -> bool:
        conn = self.players.get(name)
        if conn is None:
            return False
        return self.send(conn, event, payload)

    def broadcast(self, event: str, payload: dict) -> None:
        for conn in self.audience():
            self.send(conn, event, payload)

    def broadcast_lobby(self) -> None:
        self.broadcast('lobby_update', {'players': list(self.players)})
        self.broadcast_leaderboard()

    def broadcast_leaderboard(self) -> None:
        self.broadcast('leaderboard_update', {'leaderboard': self.leaderboard.to_dict()})

    # ---- Membership ----

    def name_for(self, conn: str) -> Optional[str]:
        for name, player_conn in self.players.items():
            if player_conn == conn:
                return name
        return None

    def everyone_banked(self) -> bool:
        return all(name in self.banked for name in self.players)

    @synchronized
    def join(self, conn: str, name) -> str:
        name = (name or '').strip()
        if not name:
            raise GameError(ErrorCode.EMPTY_NAME, 'Name cannot be empty.')
        if name in self.players:
            raise GameError(ErrorCode.NAME_TAKEN, f"Name '{name}' is already taken.")

        previous = self.name_for(conn)
        if previous is not None:
            self._remove_player(previous)

        self.players[name] = conn
        self.leaderboard.add(name)
        self.powerups[name] = PlayerPowerups()
        self.logger.info(f"[join] room={self.code} player={name} conn={conn}")
        self.broadcast_lobby()
        return name

    @synchronized
    def leave(self, conn: str) -> Optional[str]:
        name = self.name_for(conn)
        if name is None:
            return None
        self._remove_player(name)
        self.logger.info(f"[leave] room={self.code} player={name}")
        self.broadcast_lobby()
        return name

    def _remove_player(self, name: str) -> None:
        self.players.pop(name, None)
        self.leaderboard.remove(name)
        self.powerups.pop(name, None)
        self.banked.discard(name)

    # ---- Game flow ----

    @synchronized
    def start_game(self, conn: str) -> None:
        if conn != self.host:
            raise GameError(ErrorCode.NOT_HOST, 'Only host can start the game.')
        if self.state is RoomState.PLAYING:
            raise GameError(ErrorCode.ALREADY_STARTED, 'Game already in progress.')

        self.state = RoomState.PLAYING
        self.current_round = 1
        self.logger.info(f"[game-start] room={self.code} players={list(self.players)} max_rounds={self.max_rounds}")
        self.broadcast('game_start', {'players': list(self.players), 'maxRounds': self.max_rounds})
        self.engine.start_round()

    def finish_game(self) -> None:
        """Send the final standings and return the room to the lobby."""
        ranking = self.leaderboard.ranking()
        top_players = [{'name': name, 'score': score} for name, score in ranking[:TOP_PLAYERS]]
        leaderboard = self.leaderboard.to_dict()
        self.logger.info(f"[game-over] room={self.code} top={top_players}")

        for name, conn in self.players.items():
            self.send(conn, 'game_over', {
                'leaderboard': leaderboard,
                'topPlayers': top_players,
                'yourPlacement': self.leaderboard.placement(name),
            })
        if self.host and self.host not in self.players.values():
            self.send(self.host, 'game_over', {
                'leaderboard': leaderboard,
                'topPlayers': top_players,
                'yourPlacement': None,
            })

        self.state = RoomState.WAITING
        for name in self.players:
            self.powerups[name] = PlayerPowerups()

    @synchronized
    def bank(self, conn: str) -> bool:
        name = self.name_for(conn)
        if name is None or self.state is not RoomState.PLAYING:
            return False
        return self.engine.bank(name)

    @synchronized
    def use_powerup(self, conn: str, powerup) -> PowerupKind:
        name = self.name_for(conn)
        if name is None:
            raise GameError(ErrorCode.ROOM_NOT_FOUND, 'You have not joined this room.')
        kind = PowerupKind.parse(powerup)
        if kind is None:
            raise GameError(ErrorCode.INVALID_POWERUP, 'Unknown power-up.')

        slots = self.powerups[name]
        slot = slots.slot(kind)
        if slot.active:
            raise GameError(ErrorCode.POWERUP_ALREADY_ACTIVE, f'{kind.value} is already active.')
        if slot.used:
            raise GameError(ErrorCode.POWERUP_ALREADY_USED, f'You have already used {kind.value}.')
        if not can_cover(slots.active_kinds(), kind, self.leaderboard[name]):
            raise GameError(ErrorCode.INSUFFICIENT_COVER, f'Not enough points to cover {kind.value}.')

        slot.activate()
        self.logger.info(f"[powerup] room={self.code} player={name} activated={kind.value}")
        self.send_to_player(name, 'powerup_activated', {
            'name': kind.value,
            'message': f'{kind.value} activated.',
        })
        self.broadcast('powerup_used', {'player': name, 'name': kind.value})
        return kind

    @synchronized
    def close(self) -> None:
        self.engine.cancel_pending()

    @synchronized
    def to_dict(self):
        return {
            'code': self.code,
            'state': self.state.value,
            'phase': self.engine.phase.value,
            'players': list(self.players),
            'leaderboard': self.leaderboard.to_dict(),
            'currentRound': self.current_round,
            'maxRounds': self.max_rounds,
            'pot': self.round_total,
            'rollCount': self.roll_count,
            'banked': sorted(self.banked),
            'snakeEyesThisRound': self.snake_eyes_this_round,
            'rollTime': self.engine.roll_time,
            'powerups': {name: slots.to_dict() for name, slots in self.powerups.items()},
        }
