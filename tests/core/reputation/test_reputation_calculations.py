"""Reputation arithmetic: delta pipeline, rounding, clamping, propagation, decay."""

import pytest

from governance.core.reputation import (
    REPUTATION_ACTIONS,
    ActionContext,
    RelationKind,
    apply_delta,
    apply_diminishing_returns,
    clamp_reputation,
    compute_action_delta,
    compute_decay_step,
    compute_propagated_delta,
    compute_raw_delta,
    round_tenth,
)


class TestRounding:
    def test_half_rounds_up(self):
        assert round_tenth(0.05) == 0.1
        assert round_tenth(1.25) == 1.3

    def test_negative_half_rounds_toward_positive(self):
        assert round_tenth(-0.05) == 0.0

    def test_clamp(self):
        assert clamp_reputation(120) == 100
        assert clamp_reputation(-130) == -100
        assert clamp_reputation(12.3) == 12.3


class TestRawDelta:
    def test_base_only(self):
        assert compute_raw_delta(2) == 2

    def test_multiplier_and_faction_modifier(self):
        ctx = ActionContext(multiplier=2.0, faction_modifier=1.5)
        assert compute_raw_delta(5, ctx) == pytest.approx(15.0)

    def test_value_scaling(self):
        # 1 + 0.2 * log10(10000 / 100) = 1.4
        assert compute_raw_delta(2, ActionContext(value=10000)) == pytest.approx(2.8)

    def test_small_values_do_not_scale(self):
        assert compute_raw_delta(2, ActionContext(value=50)) == 2


class TestDiminishingReturns:
    def test_positive_above_fifty(self):
        assert apply_diminishing_returns(60, 2) == pytest.approx(1.6)

    def test_positive_below_fifty_unchanged(self):
        assert apply_diminishing_returns(0, 2) == 2

    def test_negative_below_minus_fifty(self):
        assert apply_diminishing_returns(-60, -15) == pytest.approx(-12.0)

    def test_opposite_sign_unchanged(self):
        assert apply_diminishing_returns(90, -15) == -15
        assert apply_diminishing_returns(-90, 10) == 10

    def test_gain_shrinks_near_cap(self):
        base = REPUTATION_ACTIONS["TRADE_COMPLETED"].base
        assert compute_action_delta(base, 90) < compute_action_delta(base, 0)


class TestActionDelta:
    def test_trade_at_sixty(self):
        delta = compute_action_delta(REPUTATION_ACTIONS["TRADE_COMPLETED"].base, 60)
        assert delta == 1.6
        assert apply_delta(60, delta) == 61.6

    def test_apply_delta_clamps(self):
        assert apply_delta(99.5, 2) == 100
        assert apply_delta(-99.0, -5) == -100

    def test_zero_base_action(self):
        assert compute_action_delta(REPUTATION_ACTIONS["FIRST_CONTACT"].base, 10) == 0


class TestPropagation:
    def test_allied_positive_share(self):
        assert compute_propagated_delta(10, RelationKind.ALLIED, 0.6) == 1.8

    def test_allied_negative_share(self):
        assert compute_propagated_delta(-15, RelationKind.ALLIED, 0.6) == -0.9

    def test_helping_hurts_with_enemy(self):
        assert compute_propagated_delta(10, RelationKind.ENEMY, 1.0) == -2.0

    def test_harming_also_hurts_with_enemy(self):
        assert compute_propagated_delta(-15, RelationKind.ENEMY, 1.0) == -7.5

    def test_neutral_edge_is_noop(self):
        assert compute_propagated_delta(10, RelationKind.NEUTRAL, 1.0) is None

    def test_tiny_secondary_discarded(self):
        assert compute_propagated_delta(0.3, RelationKind.ALLIED, 0.2) is None


class TestDecayStep:
    def test_capped_by_rate(self):
        assert compute_decay_step(50, 0.1) == -0.1

    def test_moves_negative_values_up(self):
        assert compute_decay_step(-80, 0.1) == 0.1

    def test_capped_by_one_percent(self):
        assert compute_decay_step(80, 1.0) == -0.8

    def test_sub_grid_step_skipped(self):
        assert compute_decay_step(5, 0.1) == 0.0

    def test_zero_value(self):
        assert compute_decay_step(0, 0.1) == 0.0
