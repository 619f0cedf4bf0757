"""
Single-player game state machine.

`GameSimulator.play_game` resolves one trial: it rolls the dice in play,
applies the rule set's bust and scoring rules, and consults a strategy for
each decision until the game reaches a terminal status.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional, Tuple

from sim.dice import DiceRoll, RandomSource
from sim.errors import StrategyContractViolation
from sim.rules import BUST_ZEROES_GAME, RuleSet

logger = logging.getLogger(__name__)


IN_PROGRESS = "in_progress"
BUSTED = "busted"
CEILING_REACHED = "ceiling_reached"
STRATEGY_STOPPED = "strategy_stopped"


class Action:
    @staticmethod
    def roll(payload=None):
        return ("roll", payload)

    @staticmethod
    def stop():
        return ("stop",)

    @staticmethod
    def is_roll(a):
        return a[0] == 'roll'

    @staticmethod
    def is_stop(a):
        return a[0] == 'stop'

    @staticmethod
    def payload(a):
        return a[1] if Action.is_roll(a) else None

    @staticmethod
    def to_str(a):
        if a[0] == 'roll' and a[1] is not None:
            return f"roll {a[1]}"
        return a[0]


@dataclass
class GameState:
    score: int
    turn: int
    dice: Tuple[int, ...]
    status: str = IN_PROGRESS
    suspect: bool = False
    # payload of the last roll action, scored with the next roll in bank games
    pending: Any = None

    @property
    def terminal(self) -> bool:
        return self.status != IN_PROGRESS

    def outcome(self) -> "TrialOutcome":
        return TrialOutcome(
            score=self.score,
            busted=self.status == BUSTED,
            ceiling_hit=self.status == CEILING_REACHED,
            turns=self.turn,
            suspect=self.suspect,
        )


@dataclass(frozen=True)
class GameView:
    """Read-only snapshot of a game handed to strategies."""
    score: int
    turn: int
    dice: Tuple[int, ...]
    ceiling: int
    max_turns: int
    bust_policy: str

    @property
    def turns_left(self) -> int:
        return self.max_turns - self.turn


@dataclass(frozen=True)
class TrialOutcome:
    score: int
    busted: bool = False
    ceiling_hit: bool = False
    turns: int = 0
    suspect: bool = False

    @property
    def stopped(self) -> bool:
        return not (self.busted or self.ceiling_hit)


class GameSimulator:
    def __init__(self, rules: RuleSet, seed: Optional[int] = None):
        self.rules = rules
        self.source = RandomSource(seed)

    def new_game(self) -> GameState:
        return GameState(score=0, turn=0, dice=tuple(self.rules.dice))

    def view(self, state: GameState) -> GameView:
        return GameView(
            score=state.score,
            turn=state.turn,
            dice=state.dice,
            ceiling=self.rules.ceiling,
            max_turns=self.rules.max_turns,
            bust_policy=self.rules.bust_policy,
        )

    def roll(self, state: GameState) -> DiceRoll:
        return self.source.roll(state.dice)

    def check_action(self, action, state: GameState, roll: DiceRoll) -> None:
        """Raise StrategyContractViolation unless `action` is legal for this state."""
        if not isinstance(action, tuple) or not action:
            raise StrategyContractViolation(f"not an action: {action!r}")
        if action[0] == 'stop' and len(action) == 1:
            return
        if action[0] != 'roll' or len(action) != 2:
            raise StrategyContractViolation(f"unknown action: {action!r}")
        if not self.rules.set_aside:
            return

        payload = action[1]
        try:
            indices = list(payload)
        except TypeError:
            raise StrategyContractViolation(f"set-aside payload is not a collection: {payload!r}")
        if not indices:
            raise StrategyContractViolation("must set aside at least one die")
        for i in indices:
            if isinstance(i, bool) or not isinstance(i, int) or not 0 <= i < len(roll):
                raise StrategyContractViolation(f"die index out of range: {i!r}")
        if len(set(indices)) != len(indices):
            raise StrategyContractViolation(f"duplicate die indices: {indices}")

    def _decide(self, strategy, state: GameState, roll: DiceRoll):
        action = strategy.decide(self.view(state), roll)
        try:
            self.check_action(action, state, roll)
        except StrategyContractViolation as e:
            # the trial still counts; it is flagged instead of aborting the batch
            logger.debug(f"{getattr(strategy, 'name', strategy)} broke contract on turn {state.turn}: {e}")
            state.suspect = True
            return Action.stop()
        return action

    def _add_points(self, state: GameState, delta: int) -> None:
        ceiling = self.rules.ceiling
        state.score = max(0, min(ceiling, state.score + delta))
        if state.score == ceiling:
            state.status = CEILING_REACHED

    def _bank_turn(self, strategy, state: GameState, roll: DiceRoll) -> None:
        self._add_points(state, self.rules.score(roll, state.score, state.pending))
        if state.terminal:
            return
        action = self._decide(strategy, state, roll)
        if Action.is_stop(action):
            state.status = STRATEGY_STOPPED
        else:
            state.pending = Action.payload(action)

    def _set_aside_turn(self, strategy, state: GameState, roll: DiceRoll) -> None:
        action = self._decide(strategy, state, roll)
        if Action.is_stop(action):
            state.status = STRATEGY_STOPPED
            return
        payload = Action.payload(action)
        self._add_points(state, self.rules.score(roll, state.score, payload))
        # highest index first, the last die fills each freed slot
        dice = list(state.dice)
        for i in sorted(set(payload), reverse=True):
            dice[i] = dice[-1]
            dice.pop()
        state.dice = tuple(dice)
        if not state.terminal and not state.dice:
            state.status = STRATEGY_STOPPED

    def play_game(self, strategy) -> TrialOutcome:
        rules = self.rules
        state = self.new_game()

        while not state.terminal:
            state.turn += 1
            roll = self.roll(state)

            if rules.bust(roll):
                if rules.bust_policy == BUST_ZEROES_GAME:
                    state.score = 0
                state.status = BUSTED
                break

            if rules.set_aside:
                self._set_aside_turn(strategy, state, roll)
            else:
                self._bank_turn(strategy, state, roll)

            if not state.terminal and state.turn >= rules.max_turns:
                state.status = STRATEGY_STOPPED

        return state.outcome()
