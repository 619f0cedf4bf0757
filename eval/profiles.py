from __future__ import annotations

from typing import Callable, Dict, List

from agents.bank_agents import ExpectedValueAgent, FirstRollAgent, RollCountAgent, ThresholdAgent
from agents.set_aside_agents import (
    AllZeroBigMinAgent,
    AllZeroOneMinAgent,
    AllZeroPrioMinAgent,
    BigZeroFirstAgent,
    OneMinAgent,
)
from sim.errors import ConfigurationError
from sim.rules import RuleSet, bank_rules, biscuits_rules, estimate_roll_odds


RULE_SETS: Dict[str, Callable[..., RuleSet]] = {
    "bank": bank_rules,
    "biscuits": biscuits_rules,
}


def get_rule_set(name: str, **params) -> RuleSet:
    factory = RULE_SETS.get(str(name).lower())
    if factory is None:
        raise ConfigurationError(f"Unknown rule set: {name}")
    try:
        return factory(**params)
    except TypeError as e:
        raise ConfigurationError(f"Invalid parameters for rule set {name}: {e}") from e


def _expected_value(rules: RuleSet):
    bust_chance, mean_gain = estimate_roll_odds(rules)
    return ExpectedValueAgent(bust_chance=bust_chance, mean_gain=mean_gain)


BANK_PROFILES: Dict[str, Callable[[RuleSet], object]] = {
    "first-roll": lambda rules: FirstRollAgent(),
    "two-rolls": lambda rules: RollCountAgent(name="two-rolls", rolls=2),
    "half-ceiling": lambda rules: ThresholdAgent(name="half-ceiling", target=rules.ceiling // 2),
    "gravy-hunter": lambda rules: ThresholdAgent(name="gravy-hunter"),
    "expected-value": _expected_value,
}

SET_ASIDE_PROFILES: Dict[str, Callable[[RuleSet], object]] = {
    "one-min": lambda rules: OneMinAgent(),
    "all-zero/one-min": lambda rules: AllZeroOneMinAgent(),
    "all-zero/prio-min": lambda rules: AllZeroPrioMinAgent(),
    "all-zero/big-min": lambda rules: AllZeroBigMinAgent(),
    "big-zero/one-zero/big-min": lambda rules: BigZeroFirstAgent(),
}

# "<prefix>:<int>" builds a parametrised bank strategy
_PARAMETRIC_BANK = {
    "threshold": lambda n: ThresholdAgent(name=f"threshold:{n}", target=n),
    "rolls": lambda n: RollCountAgent(name=f"rolls:{n}", rolls=n),
}


def _profiles_for(rules: RuleSet) -> Dict[str, Callable[[RuleSet], object]]:
    return SET_ASIDE_PROFILES if rules.set_aside else BANK_PROFILES


def strategy_names(rules: RuleSet) -> List[str]:
    return list(_profiles_for(rules))


def get_strategy(name: str, rules: RuleSet):
    key = str(name).strip().lower()
    profiles = _profiles_for(rules)
    if key in profiles:
        return profiles[key](rules)
    prefix, sep, arg = key.partition(":")
    if sep and not rules.set_aside and prefix in _PARAMETRIC_BANK:
        try:
            n = int(arg)
        except ValueError as e:
            raise ConfigurationError(f"Invalid strategy parameter: {name}") from e
        if n <= 0:
            raise ConfigurationError(f"Strategy parameter must be positive: {name}")
        return _PARAMETRIC_BANK[prefix](n)
    raise ConfigurationError(f"Unknown strategy {name!r} for rule set {rules.name}")


def build_strategies(names: List[str], rules: RuleSet) -> List[object]:
    if not names:
        raise ConfigurationError("at least one strategy is required")
    return [get_strategy(n, rules) for n in names]


def default_strategies(rules: RuleSet) -> List[object]:
    return build_strategies(strategy_names(rules), rules)
