"""Round engine: sequences rounds and rolls for a single room.

Round lifecycle::

    round_starting -> awaiting_roll (repeats) -> round_resolving -> next round | game over

The engine owns the room's only delayed continuation (the next roll, or the
grace period after a bust). Scheduling always cancels the previous handle, and
a handle that fires after it has been replaced is ignored.
"""

from enum import Enum
from typing import Optional

from .powerups import (
    PowerupOutcome,
    advance_streak,
    resolve_double_or_nothing,
    resolve_snake_eyes,
)
from .scheduler import ScheduledCall
from .scoring import is_bust, score_roll


class Phase(str, Enum):
    IDLE = 'idle'
    ROUND_STARTING = 'round_starting'
    AWAITING_ROLL = 'awaiting_roll'
    ROUND_RESOLVING = 'round_resolving'


class RoundEngine:
    def __init__(self, room, scheduler, dice, roll_interval: float, bust_grace: float, logger):
        self.room = room
        self.scheduler = scheduler
        self.dice = dice
        self.roll_interval = roll_interval
        self.bust_grace = bust_grace
        self.logger = logger
        self.phase = Phase.IDLE
        self._pending: Optional[ScheduledCall] = None

    @property
    def pending(self) -> Optional[ScheduledCall]:
        return self._pending

    @property
    def roll_time(self) -> Optional[int]:
        """Epoch milliseconds of the next roll, if one is scheduled."""
        if self._pending is None or self.phase is not Phase.AWAITING_ROLL:
            return None
        return int(self._pending.fire_at * 1000)

    # ---- Scheduling ----

    def cancel_pending(self) -> None:
        if self._pending is None:
            return
        self._pending.cancel()
        self.logger.info(f"[timer-cancel] room={self.room.code} round={self.room.current_round} handle={self._pending!r}")
        self._pending = None

    def _schedule(self, delay: float, callback) -> ScheduledCall:
        self.cancel_pending()
        self._pending = self.scheduler.call_later(delay, callback)
        return self._pending

    def _claim(self, handle: ScheduledCall) -> bool:
        """Accept a firing handle only if it is still the pending one."""
        if handle is not self._pending:
            self.logger.info(f"[timer-stale] room={self.room.code} handle={handle!r}")
            return False
        self._pending = None
        return True

    # ---- Rounds ----

    def start_round(self) -> None:
        room = self.room
        self.cancel_pending()
        self.phase = Phase.ROUND_STARTING
        room.round_total = 0
        room.roll_count = 0
        room.banked.clear()
        room.snake_eyes_this_round = False
        for slots in room.powerups.values():
            if slots.streak_bonus.active:
                slots.streak_bonus.rolls_survived = 0

        self.logger.info(f"[round-start] room={room.code} round={room.current_round}/{room.max_rounds}")
        room.broadcast('round_update', {'round': room.current_round, 'maxRounds': room.max_rounds})
        self._schedule_roll()

    def _schedule_roll(self) -> None:
        self._schedule(self.roll_interval, self._on_roll_due)
        self.phase = Phase.AWAITING_ROLL
        self.room.broadcast('roll_scheduled', {'rollTime': self.roll_time})

    def _on_roll_due(self, handle: ScheduledCall) -> None:
        with self.room.lock:
            if self._claim(handle):
                self.roll()

    def _on_grace_over(self, handle: ScheduledCall) -> None:
        with self.room.lock:
            if self._claim(handle):
                self._advance()

    def roll(self) -> None:
        room = self.room
        if room.everyone_banked():
            self.logger.info(f"[roll-skip] room={room.code} round={room.current_round} everyone banked")
            self._end_round()
            return

        d1, d2 = self.dice()
        total = d1 + d2
        room.roll_count += 1
        if d1 == 1 and d2 == 1:
            room.snake_eyes_this_round = True

        results = self._advance_streaks(total)
        room.round_total, message = score_roll(room.roll_count, d1, d2, room.round_total)
        results.extend(self._resolve_double_or_nothing(total))
        self.logger.info(
            f"[roll] room={room.code} round={room.current_round} roll={room.roll_count} "
            f"d1={d1} d2={d2} pot={room.round_total}"
        )

        if is_bust(room.roll_count, d1, d2):
            self.phase = Phase.ROUND_RESOLVING
            results.extend(self._resolve_snake_eyes())
            self.logger.info(f"[bust] room={room.code} round={room.current_round}")
            self._publish_roll(d1, d2, message, results)
            self._schedule(self.bust_grace, self._on_grace_over)
            return

        self._publish_roll(d1, d2, message, results)
        self._schedule_roll()

    def bank(self, name: str) -> bool:
        room = self.room
        if self.phase is not Phase.AWAITING_ROLL or name in room.banked:
            return False

        room.banked.add(name)
        new_score = room.leaderboard.credit(name, room.round_total)
        self.logger.info(f"[bank] room={room.code} player={name} pot={room.round_total} score={new_score}")
        room.broadcast('banked', {'name': name, 'newScore': new_score})
        room.broadcast_leaderboard()

        if room.everyone_banked():
            self.cancel_pending()
            self._end_round()
        return True

    def _end_round(self) -> None:
        self.phase = Phase.ROUND_RESOLVING
        results = self._resolve_snake_eyes()
        self._publish_results(results)
        self._advance()

    def _advance(self) -> None:
        room = self.room
        room.current_round += 1
        if room.current_round <= room.max_rounds:
            self.start_round()
            return
        self.cancel_pending()
        self.phase = Phase.IDLE
        room.finish_game()

    # ---- Power-ups ----

    def _advance_streaks(self, total: int) -> list:
        room = self.room
        results = []
        for name, slots in room.powerups.items():
            slot = slots.streak_bonus
            if not slot.active:
                continue
            slot.rolls_survived, outcome = advance_streak(slot.rolls_survived, total, room.leaderboard[name])
            if outcome is not None:
                slot.deactivate()
                results.append(self._apply(name, outcome))
        return results

    def _resolve_double_or_nothing(self, total: int) -> list:
        room = self.room
        results = []
        for name, slots in room.powerups.items():
            slot = slots.double_or_nothing
            if not slot.active:
                continue
            slot.deactivate()
            results.append(self._apply(name, resolve_double_or_nothing(room.leaderboard[name], total)))
            room.banked.add(name)
        return results

    def _resolve_snake_eyes(self) -> list:
        room = self.room
        results = []
        for name, slots in room.powerups.items():
            slot = slots.snake_eyes
            if not slot.active:
                continue
            slot.deactivate()
            results.append(self._apply(name, resolve_snake_eyes(room.leaderboard[name], room.snake_eyes_this_round)))
        return results

    def _apply(self, name: str, outcome: PowerupOutcome):
        self.room.leaderboard.set_score(name, outcome.score)
        self.logger.info(
            f"[powerup] room={self.room.code} player={name} resolved={outcome.kind.value} points={outcome.points}"
        )
        return name, outcome

    # ---- Publishing ----

    def _publish_roll(self, d1: int, d2: int, message, results) -> None:
        room = self.room
        room.broadcast('roll', {
            'd1': d1,
            'd2': d2,
            'sum': d1 + d2,
            'pot': room.round_total,
            'message': message,
        })
        self._publish_results(results)

    def _publish_results(self, results) -> None:
        if not results:
            return
        room = self.room
        for name, outcome in results:
            room.send_to_player(name, 'powerup_result', {
                'name': outcome.kind.value,
                'message': outcome.message,
                'points': outcome.points,
            })
        room.broadcast_leaderboard()
