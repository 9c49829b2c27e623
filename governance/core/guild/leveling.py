"""Guild leveling arithmetic."""

from typing import Tuple

EXPERIENCE_BASE = 1000


def required_experience(level: int) -> int:
    """Experience needed to reach ``level``: level^2 * 1000."""
    return level * level * EXPERIENCE_BASE


def apply_experience(level: int, progress: int, amount: int) -> Tuple[int, int, int]:
    """Add ``amount`` to level progress and level up one step at a time.

    ``progress`` is experience accumulated toward the next level; each
    level-up consumes the threshold of the level reached and the next
    threshold is checked again.

    Returns:
        (new level, remaining progress, levels gained)
    """
    progress += amount
    gained = 0
    while progress >= required_experience(level + 1):
        progress -= required_experience(level + 1)
        level += 1
        gained += 1
    return level, progress, gained
