from sim.game import Action
from sim.rules import BUST_ZEROES_GAME


class FirstRollAgent:
    """Banks the first roll that does not bust."""

    def __init__(self, name='first-roll'):
        self.name = name

    def decide(self, view, roll):
        return Action.stop()


class ThresholdAgent:
    def __init__(self, name='threshold', target=None):
        self.name = name
        # None chases the ceiling
        self.target = target

    def decide(self, view, roll):
        target = view.ceiling if self.target is None else self.target
        if view.score >= target:
            return Action.stop()
        return Action.roll()


class RollCountAgent:
    def __init__(self, name='roll-count', rolls=2):
        if rolls <= 0:
            raise ValueError("rolls must be positive")
        self.name = name
        self.rolls = rolls

    def decide(self, view, roll):
        if view.turn >= self.rolls:
            return Action.stop()
        return Action.roll()


class ExpectedValueAgent:
    """
    Rolls again while the expected gain of one more roll is at least what a
    bust would cost.

    bust_chance and mean_gain describe a single full roll; see
    sim.rules.estimate_roll_odds.
    """

    def __init__(self, name='expected-value', bust_chance=0.5, mean_gain=1.0):
        if not 0.0 <= bust_chance <= 1.0:
            raise ValueError("bust_chance must be within [0, 1]")
        self.name = name
        self.bust_chance = bust_chance
        self.mean_gain = mean_gain

    def decide(self, view, roll):
        # the last roll is scored but never followed by another
        if len(roll) == 0 or view.turns_left <= 0:
            return Action.stop()
        p = self.bust_chance
        headroom = view.ceiling - view.score
        gain = (1 - p) * min(self.mean_gain, headroom)
        loss = p * view.score if view.bust_policy == BUST_ZEROES_GAME else 0.0
        if gain > 0 and gain >= loss:
            return Action.roll()
        return Action.stop()
