"""Reputation arithmetic.

All pure functions. Ledger values live on a 0.1 grid in [-100, +100].
"""

import math
from typing import Optional

from governance.core.reputation.catalog import (
    RELATIONSHIP_MULTIPLIERS,
    REPUTATION_MAX,
    REPUTATION_MIN,
)
from governance.core.reputation.models import ActionContext, RelationKind

DIMINISHING_START = 50.0
VALUE_SCALE_FACTOR = 0.2
PROPAGATION_MIN_DELTA = 0.1
DECAY_MIN_STEP = 0.1
DECAY_FRACTION = 0.01


def round_tenth(value: float) -> float:
    """Round half up to one decimal place."""
    return math.floor(value * 10 + 0.5) / 10


def clamp_reputation(value: float) -> float:
    """-100 ~ +100 clamp."""
    return max(REPUTATION_MIN, min(REPUTATION_MAX, value))


def value_scale(value: Optional[float]) -> float:
    """Scaling for high-value interactions: 1 + 0.2 * log10(max(1, value / 100))."""
    if value is None:
        return 1.0
    return 1.0 + VALUE_SCALE_FACTOR * math.log10(max(1.0, value / 100))


def compute_raw_delta(base: float, context: Optional[ActionContext] = None) -> float:
    """base x multiplier x faction modifier x value scale."""
    context = context or ActionContext()
    delta = base
    if context.multiplier is not None:
        delta *= context.multiplier
    if context.faction_modifier is not None:
        delta *= context.faction_modifier
    return delta * value_scale(context.value)


def apply_diminishing_returns(current: float, raw_delta: float) -> float:
    """Shrink same-sign deltas beyond +/-50.

    Positive deltas above +50 scale by (100 - current) / 50,
    negative deltas below -50 scale by (100 + current) / 50.
    """
    if raw_delta > 0 and current > DIMINISHING_START:
        return raw_delta * (REPUTATION_MAX - current) / DIMINISHING_START
    if raw_delta < 0 and current < -DIMINISHING_START:
        return raw_delta * (REPUTATION_MAX + current) / DIMINISHING_START
    return raw_delta


def compute_action_delta(
    base: float, current: float, context: Optional[ActionContext] = None
) -> float:
    """Full pipeline for a player action, rounded to one decimal."""
    raw = compute_raw_delta(base, context)
    return round_tenth(apply_diminishing_returns(current, raw))


def apply_delta(current: float, delta: float) -> float:
    return clamp_reputation(round_tenth(current + delta))


def compute_propagated_delta(
    delta: float, kind: RelationKind, strength: float
) -> Optional[float]:
    """Secondary delta for one faction relationship edge.

    None when the result is below PROPAGATION_MIN_DELTA in magnitude.
    """
    positive, negative = RELATIONSHIP_MULTIPLIERS[kind]
    multiplier = positive if delta > 0 else negative
    secondary = delta * multiplier * strength
    if abs(secondary) < PROPAGATION_MIN_DELTA:
        return None
    return round_tenth(secondary)


def compute_decay_step(value: float, rate: float) -> float:
    """Signed step toward zero: magnitude min(rate, |value| * 0.01).

    Steps smaller than DECAY_MIN_STEP are not applied (returns 0.0).
    """
    if value == 0:
        return 0.0
    magnitude = min(rate, abs(value) * DECAY_FRACTION)
    if magnitude < DECAY_MIN_STEP:
        return 0.0
    magnitude = round_tenth(magnitude)
    return -magnitude if value > 0 else magnitude
