from __future__ import annotations

from dataclasses import dataclass
from functools import partial
from typing import Any, Callable, Optional, Sequence, Tuple

from sim.dice import DiceRoll, RandomSource
from sim.errors import ConfigurationError


BUST_ZEROES_GAME = "game"
BUST_ZEROES_TURN = "turn"
VALID_BUST_POLICIES = {BUST_ZEROES_GAME, BUST_ZEROES_TURN}

# 12 six-sided dice plus one each of d8, d10 and d12
BISCUITS_DICE = (6,) * 12 + (8, 10, 12)

ScoreFn = Callable[[DiceRoll, int, Any], int]
BustFn = Callable[[DiceRoll], bool]


# Scoring and bust rules live at module level so rule sets can be pickled
# into worker processes.
def sum_pips(roll: DiceRoll, total: int, payload: Any = None) -> int:
    return roll.total()


def set_aside_points(roll: DiceRoll, total: int, payload: Any = None) -> int:
    """Each die set aside is worth one less than its pip, so a top face scores faces - 1."""
    return sum(roll[i] - 1 for i in payload)


def any_pip_busts(roll: DiceRoll, pip: int = 1) -> bool:
    return roll.count(pip) > 0


def never_busts(roll: DiceRoll) -> bool:
    return False


@dataclass(frozen=True)
class RuleSet:
    name: str
    dice: Tuple[int, ...]
    ceiling: int
    score: ScoreFn
    bust: BustFn
    max_delta: int
    bust_policy: str = BUST_ZEROES_GAME
    max_turns: int = 50
    set_aside: bool = False
    description: str = ""

    @property
    def dice_count(self) -> int:
        return len(self.dice)

    def validate(self) -> None:
        if not self.dice:
            raise ConfigurationError("rule set needs at least one die")
        for f in self.dice:
            if isinstance(f, bool) or not isinstance(f, int) or f < 2:
                raise ConfigurationError(f"die face count must be an int >= 2, got {f!r}")
        if self.bust_policy not in VALID_BUST_POLICIES:
            raise ConfigurationError(f"Invalid bust_policy: {self.bust_policy}")
        if not isinstance(self.max_turns, int) or self.max_turns <= 0:
            raise ConfigurationError("max_turns must be a positive integer")
        if not callable(self.score) or not callable(self.bust):
            raise ConfigurationError("score and bust must be callables")
        if not isinstance(self.max_delta, int) or self.max_delta <= 0:
            raise ConfigurationError("max_delta must be a positive integer")
        if not isinstance(self.ceiling, int) or self.ceiling <= 0:
            raise ConfigurationError(f"ceiling must be a positive integer, got {self.ceiling!r}")
        if self.ceiling < self.max_delta:
            raise ConfigurationError(
                f"ceiling {self.ceiling} is below the best single turn ({self.max_delta})")
        if self.ceiling > self.max_delta * self.max_turns:
            raise ConfigurationError(
                f"ceiling {self.ceiling} is unreachable in {self.max_turns} turns")


def bank_rules(dice_count: int = 5, faces: int = 6, ceiling: int = 30, bust_pip: int = 1,
               bust_policy: str = BUST_ZEROES_GAME, max_turns: int = 50) -> RuleSet:
    """
    Roll all dice every turn and bank their sum; any die showing `bust_pip` busts.

    The game ends when the strategy banks, the ceiling is reached, or
    `max_turns` rolls have been made.
    """
    return RuleSet(
        name="bank",
        dice=(faces,) * dice_count,
        ceiling=ceiling,
        score=sum_pips,
        bust=partial(any_pip_busts, pip=bust_pip),
        max_delta=dice_count * faces,
        bust_policy=bust_policy,
        max_turns=max_turns,
        set_aside=False,
        description=f"{dice_count}d{faces}, bust on {bust_pip}, ceiling {ceiling}",
    )


def biscuits_rules(dice: Sequence[int] = BISCUITS_DICE, max_turns: Optional[int] = None) -> RuleSet:
    """
    Roll every die still in play, set at least one aside, repeat until none are left.

    A die set aside scores pip - 1, so the ceiling is only reached when every
    die leaves play on its top face (a gravy). Nothing busts.
    """
    dice = tuple(dice)
    ceiling = sum(f - 1 for f in dice)
    return RuleSet(
        name="biscuits",
        dice=dice,
        ceiling=ceiling,
        score=set_aside_points,
        bust=never_busts,
        max_delta=ceiling,
        max_turns=max_turns or max(1, len(dice)),
        set_aside=True,
        description=f"{len(dice)} dice set aside one roll at a time, ceiling {ceiling}",
    )


def estimate_roll_odds(rules: RuleSet, samples: int = 20000, seed: int = 0) -> Tuple[float, float]:
    """
    Monte Carlo estimate of (bust chance, mean gain of a non-bust roll) for a
    full roll of the rule set's dice.
    """
    if samples <= 0:
        raise ValueError("samples must be positive")
    src = RandomSource(seed)
    busts = 0
    gain = 0
    for _ in range(samples):
        roll = src.roll(rules.dice)
        if rules.bust(roll):
            busts += 1
        else:
            gain += rules.score(roll, 0, None)
    scored = samples - busts
    mean_gain = gain / scored if scored else 0.0
    return busts / samples, mean_gain
