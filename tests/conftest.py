import pytest
from sim.dice import DiceRoll
from sim.game import GameSimulator, GameView
from sim.rules import bank_rules, biscuits_rules


class ScriptedSource:
    """Random source replacement that replays fixed pips, one tuple per roll."""

    def __init__(self, rolls):
        self.rolls = [tuple(r) for r in rolls]

    def roll(self, faces):
        pips = self.rolls.pop(0)
        assert len(pips) == len(faces), f"scripted roll {pips} does not match dice {faces}"
        return DiceRoll(pips, faces)


@pytest.fixture
def deterministic_seed():
    """Provides fixed random seed for reproducible tests"""
    return 42


@pytest.fixture
def small_bank_rules():
    """Two d6, bust on a 1, ceiling 20, at most 5 rolls"""
    return bank_rules(dice_count=2, faces=6, ceiling=20, bust_pip=1, max_turns=5)


@pytest.fixture
def spec_bank_rules():
    """Five d6 with ceiling 30"""
    return bank_rules(dice_count=5, faces=6, ceiling=30)


@pytest.fixture
def small_biscuits_rules():
    """Two d6 and a d12: ceiling 5 + 5 + 11 = 21"""
    return biscuits_rules(dice=(6, 6, 12))


@pytest.fixture
def full_biscuits_rules():
    return biscuits_rules()


@pytest.fixture
def scripted_game():
    """Factory for a GameSimulator whose dice follow a script"""
    def _make(rules, rolls):
        sim = GameSimulator(rules, seed=0)
        sim.source = ScriptedSource(rolls)
        return sim
    return _make


@pytest.fixture
def make_view():
    """Factory for GameView snapshots with sensible defaults"""
    def _make(score=0, turn=1, dice=(6, 6), ceiling=30, max_turns=50, bust_policy="game"):
        return GameView(score=score, turn=turn, dice=tuple(dice), ceiling=ceiling,
                        max_turns=max_turns, bust_policy=bust_policy)
    return _make
