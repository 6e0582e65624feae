# ABOUTME: Dice roller for the movement (d6 + d4) and attack (|d6 - d4|) rolls.
# ABOUTME: Every roll takes an injectable random.Random so tests and replays are reproducible.

import random
from datetime import UTC, datetime

from src.models.dice_models import AttackRoll, MovementRoll


def roll_d6(rng: random.Random | None = None) -> int:
    """
    Roll a single d6.

    Args:
        rng: Random source (default: module-level random)

    Returns:
        Integer between 1 and 6 (inclusive)
    """
    return (rng or random).randint(1, 6)


def roll_d4(rng: random.Random | None = None) -> int:
    """Roll a single d4 (1-4 inclusive)"""
    return (rng or random).randint(1, 4)


def roll_movement(rng: random.Random | None = None) -> MovementRoll:
    """
    Roll d6 + d4 for movement.

    Examples:
        >>> roll = roll_movement(random.Random(7))
        >>> 2 <= roll.total <= 10
        True

    Args:
        rng: Random source

    Returns:
        MovementRoll with both dice and their sum
    """
    d6 = roll_d6(rng)
    d4 = roll_d4(rng)
    return MovementRoll(d6=d6, d4=d4, total=d6 + d4, timestamp=datetime.now(UTC))


def roll_attack(rng: random.Random | None = None) -> AttackRoll:
    """
    Roll d6 and d4 for an attack; damage is the absolute difference.

    A roll of equal dice deals no damage (miss).

    Args:
        rng: Random source

    Returns:
        AttackRoll with both dice and the damage dealt
    """
    d6 = roll_d6(rng)
    d4 = roll_d4(rng)
    return AttackRoll(d6=d6, d4=d4, damage=abs(d6 - d4), timestamp=datetime.now(UTC))
