from bankroll.services.games.powerups import (
    PowerupKind,
    advance_streak,
    can_cover,
    required_cover,
    resolve_double_or_nothing,
    resolve_snake_eyes,
)


def test_parse_rejects_unknown_names():
    assert PowerupKind.parse('snake_eyes') is PowerupKind.SNAKE_EYES
    assert PowerupKind.parse('triple_or_bust') is None
    assert PowerupKind.parse(None) is None


def test_cover_accounts_for_every_active_stake():
    assert can_cover([], PowerupKind.STREAK_BONUS, 300)
    assert not can_cover([], PowerupKind.STREAK_BONUS, 250)
    assert required_cover([PowerupKind.SNAKE_EYES], PowerupKind.STREAK_BONUS, 350) == 400
    assert not can_cover([PowerupKind.SNAKE_EYES], PowerupKind.STREAK_BONUS, 350)
    assert can_cover([PowerupKind.SNAKE_EYES], PowerupKind.STREAK_BONUS, 400)


def test_double_or_nothing_stakes_the_whole_score():
    assert can_cover([], PowerupKind.DOUBLE_OR_NOTHING, 500)
    # anything else already at risk cannot also be covered
    assert not can_cover([PowerupKind.SNAKE_EYES], PowerupKind.DOUBLE_OR_NOTHING, 500)
    assert not can_cover([PowerupKind.DOUBLE_OR_NOTHING], PowerupKind.SNAKE_EYES, 500)


def test_snake_eyes_pays_or_costs_a_hundred():
    win = resolve_snake_eyes(150, True)
    assert (win.score, win.points) == (250, 100)
    loss = resolve_snake_eyes(150, False)
    assert (loss.score, loss.points) == (50, -100)


def test_snake_eyes_loss_is_floored_at_zero():
    loss = resolve_snake_eyes(40, False)
    assert loss.score == 0
    assert loss.points == -40


def test_streak_pays_after_three_survived_rolls():
    survived, outcome = advance_streak(0, 8, 300)
    assert (survived, outcome) == (1, None)
    survived, outcome = advance_streak(survived, 12, 300)
    assert (survived, outcome) == (2, None)
    survived, outcome = advance_streak(survived, 4, 300)
    assert survived == 3
    assert outcome.kind is PowerupKind.STREAK_BONUS
    assert (outcome.score, outcome.points) == (600, 300)


def test_streak_broken_by_seven():
    survived, outcome = advance_streak(2, 7, 320)
    assert survived == 2
    assert (outcome.score, outcome.points) == (20, -300)


def test_double_or_nothing_doubles_on_seven_and_wipes_otherwise():
    assert resolve_double_or_nothing(120, 7).score == 240
    lost = resolve_double_or_nothing(120, 6)
    assert (lost.score, lost.points) == (0, -120)
