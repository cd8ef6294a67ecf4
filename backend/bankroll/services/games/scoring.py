import random
from typing import Optional, Tuple

# Rolls 1..EARLY_PHASE_ROLLS of a round are the "early phase"
EARLY_PHASE_ROLLS = 3
EARLY_SEVEN_BONUS = 70
BUST_SUM = 7


def roll_die(rng=random) -> int:
    return rng.randint(1, 6)


def roll_dice(rng=random) -> Tuple[int, int]:
    return roll_die(rng), roll_die(rng)


def is_early_phase(roll_count: int) -> bool:
    return roll_count <= EARLY_PHASE_ROLLS


def is_bust(roll_count: int, d1: int, d2: int) -> bool:
    """A 7 after the early phase wipes the pot and ends the round."""
    return d1 + d2 == BUST_SUM and not is_early_phase(roll_count)


def score_roll(roll_count: int, d1: int, d2: int, pot: int) -> Tuple[int, Optional[str]]:
    """Apply one roll to the round pot.

    ``roll_count`` is the index of this roll within the round (1-based, already
    incremented). Returns the new pot and an optional message for the table.

    Early phase: a 7 adds a flat bonus, anything else (doubles included) adds
    the sum. Late phase: a 7 busts the pot to zero, doubles double the pot,
    anything else adds the sum.
    """
    total = d1 + d2
    if is_early_phase(roll_count):
        if total == BUST_SUM:
            return pot + EARLY_SEVEN_BONUS, f'Early 7! +{EARLY_SEVEN_BONUS} added.'
        if d1 == d2:
            return pot + total, f'Early double! +{total} added.'
        return pot + total, None

    if total == BUST_SUM:
        return 0, 'Rolled a 7. Round total lost!'
    if d1 == d2:
        doubled = pot * 2
        return doubled, f'Doubles! Round total doubled to {doubled}'
    return pot + total, None
