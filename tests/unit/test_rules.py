"""
Unit tests for rule sets: presets, scoring and bust functions, validation.
"""

import pickle
from dataclasses import FrozenInstanceError

import pytest
from sim.dice import DiceRoll
from sim.errors import ConfigurationError
from sim.rules import (
    BISCUITS_DICE,
    BUST_ZEROES_TURN,
    RuleSet,
    any_pip_busts,
    bank_rules,
    biscuits_rules,
    estimate_roll_odds,
    never_busts,
    set_aside_points,
    sum_pips,
)


class TestPresets:
    """Test suite for the built-in rule sets."""

    def test_bank_defaults(self):
        rules = bank_rules()
        rules.validate()

        assert rules.dice_count == 5
        assert rules.dice == (6, 6, 6, 6, 6)
        assert rules.ceiling == 30
        assert rules.max_delta == 30
        assert rules.set_aside is False
        assert rules.bust(DiceRoll([1, 2, 3, 4, 5], rules.dice))
        assert not rules.bust(DiceRoll([2, 2, 3, 4, 5], rules.dice))

    def test_biscuits_defaults(self):
        """15 dice: twelve d6 plus d8, d10, d12; ceiling is the sum of faces - 1."""
        rules = biscuits_rules()
        rules.validate()

        assert rules.dice == BISCUITS_DICE
        assert rules.dice_count == 15
        assert rules.ceiling == 12 * 5 + 7 + 9 + 11
        assert rules.max_turns == 15
        assert rules.set_aside is True

    def test_rule_sets_are_immutable(self):
        rules = bank_rules()
        with pytest.raises(FrozenInstanceError):
            rules.ceiling = 10  # type: ignore[misc]

    def test_rule_sets_pickle(self):
        """Worker processes receive rule sets by pickling."""
        for rules in (bank_rules(), biscuits_rules()):
            clone = pickle.loads(pickle.dumps(rules))
            assert clone.dice == rules.dice
            roll = DiceRoll([1] * rules.dice_count, rules.dice)
            assert clone.bust(roll) == rules.bust(roll)


class TestScoringFunctions:
    """Test suite for module-level scoring and bust rules."""

    def test_sum_pips(self):
        assert sum_pips(DiceRoll([2, 3, 6], [6, 6, 6]), 10) == 11

    def test_set_aside_points(self):
        """Only chosen dice score, each pip - 1."""
        roll = DiceRoll([6, 2, 12], [6, 6, 12])
        assert set_aside_points(roll, 0, (0, 2)) == 5 + 11
        assert set_aside_points(roll, 0, [1]) == 1

    def test_bust_rules(self):
        roll = DiceRoll([3, 4], [6, 6])
        assert any_pip_busts(roll, pip=3)
        assert not any_pip_busts(roll, pip=1)
        assert never_busts(roll) is False


class TestValidation:
    """Test suite for RuleSet.validate."""

    def test_zero_dice(self):
        with pytest.raises(ConfigurationError):
            bank_rules(dice_count=0).validate()
        with pytest.raises(ConfigurationError):
            biscuits_rules(dice=()).validate()

    def test_ceiling_zero(self):
        with pytest.raises(ConfigurationError):
            bank_rules(ceiling=0).validate()

    def test_ceiling_below_single_turn(self):
        with pytest.raises(ConfigurationError):
            bank_rules(dice_count=5, ceiling=20).validate()

    def test_ceiling_unreachable(self):
        with pytest.raises(ConfigurationError):
            bank_rules(dice_count=1, faces=6, ceiling=100, max_turns=3).validate()

    def test_bad_fields(self):
        with pytest.raises(ConfigurationError):
            bank_rules(bust_policy="round").validate()
        with pytest.raises(ConfigurationError):
            bank_rules(max_turns=0).validate()
        with pytest.raises(ConfigurationError):
            bank_rules(faces=1).validate()

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            bank_rules(ceiling=0).validate()

    def test_custom_rule_set(self):
        """Any callables can make up a rule set."""
        rules = RuleSet(name="custom", dice=(4, 4), ceiling=16, score=sum_pips,
                        bust=never_busts, max_delta=8, bust_policy=BUST_ZEROES_TURN, max_turns=4)
        rules.validate()
        assert rules.dice_count == 2


class TestRollOdds:
    """Test suite for estimate_roll_odds."""

    def test_five_d6_bust_on_one(self):
        """P(no 1 in 5d6) = (5/6)^5, and a non-bust die averages 4."""
        bust_chance, mean_gain = estimate_roll_odds(bank_rules(), samples=20000, seed=1)
        assert bust_chance == pytest.approx(1 - (5 / 6) ** 5, abs=0.02)
        assert mean_gain == pytest.approx(20.0, abs=0.3)

    def test_deterministic(self):
        assert estimate_roll_odds(bank_rules(), samples=500, seed=3) == \
            estimate_roll_odds(bank_rules(), samples=500, seed=3)

    def test_samples_must_be_positive(self):
        with pytest.raises(ValueError):
            estimate_roll_odds(bank_rules(), samples=0)
