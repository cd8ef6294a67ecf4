"""Power-up rules.

Pure functions only: they take a player's score and the roll facts and return
what happens to the score. Slot bookkeeping (active/used flags, counters)
lives on the room models.
"""

from collections import namedtuple
from enum import Enum
from typing import Iterable, Optional, Tuple


class PowerupKind(str, Enum):
    SNAKE_EYES = 'snake_eyes'
    STREAK_BONUS = 'streak_bonus'
    DOUBLE_OR_NOTHING = 'double_or_nothing'

    @classmethod
    def parse(cls, value) -> Optional['PowerupKind']:
        try:
            return cls(value)
        except ValueError:
            return None


SNAKE_EYES_STAKE = 100
STREAK_BONUS_STAKE = 300
STREAK_BONUS_TARGET = 3

# points: actual change applied to the score (after flooring at zero)
PowerupOutcome = namedtuple('PowerupOutcome', ['kind', 'score', 'points', 'message'])


def stake_for(kind: PowerupKind, score: int) -> int:
    """Worst-case loss of ``kind`` for a player currently holding ``score``."""
    if kind is PowerupKind.SNAKE_EYES:
        return SNAKE_EYES_STAKE
    if kind is PowerupKind.STREAK_BONUS:
        return STREAK_BONUS_STAKE
    if kind is PowerupKind.DOUBLE_OR_NOTHING:
        return score
    raise ValueError(f'unknown power-up {kind!r}')


def required_cover(active: Iterable[PowerupKind], kind: PowerupKind, score: int) -> int:
    return sum(stake_for(k, score) for k in active) + stake_for(kind, score)


def can_cover(active: Iterable[PowerupKind], kind: PowerupKind, score: int) -> bool:
    """Whether ``score`` covers every active stake plus the stake of ``kind``."""
    return score >= required_cover(active, kind, score)


def _apply(kind: PowerupKind, score: int, delta: int, message: str) -> PowerupOutcome:
    new_score = max(0, score + delta)
    return PowerupOutcome(kind, new_score, new_score - score, message)


def resolve_snake_eyes(score: int, snake_eyes_seen: bool) -> PowerupOutcome:
    if snake_eyes_seen:
        return _apply(PowerupKind.SNAKE_EYES, score, SNAKE_EYES_STAKE,
                      f'Snake eyes hit this round! +{SNAKE_EYES_STAKE} points.')
    return _apply(PowerupKind.SNAKE_EYES, score, -SNAKE_EYES_STAKE,
                  f'No snake eyes this round. -{SNAKE_EYES_STAKE} points.')


def advance_streak(rolls_survived: int, total: int, score: int) -> Tuple[int, Optional[PowerupOutcome]]:
    """Count one roll against an active streak bonus.

    Returns the new survived count and an outcome once the streak resolves
    (a 7 loses the stake, the third survived roll wins it).
    """
    if total == 7:
        return rolls_survived, _apply(PowerupKind.STREAK_BONUS, score, -STREAK_BONUS_STAKE,
                                      f'Streak broken by a 7. -{STREAK_BONUS_STAKE} points.')
    rolls_survived += 1
    if rolls_survived >= STREAK_BONUS_TARGET:
        return rolls_survived, _apply(PowerupKind.STREAK_BONUS, score, STREAK_BONUS_STAKE,
                                      f'Survived {STREAK_BONUS_TARGET} rolls! +{STREAK_BONUS_STAKE} points.')
    return rolls_survived, None


def resolve_double_or_nothing(score: int, total: int) -> PowerupOutcome:
    if total == 7:
        return _apply(PowerupKind.DOUBLE_OR_NOTHING, score, score,
                      f'Double or nothing paid out! Score doubled to {score * 2}.')
    return _apply(PowerupKind.DOUBLE_OR_NOTHING, score, -score,
                  'Double or nothing lost. Score reset to 0.')
