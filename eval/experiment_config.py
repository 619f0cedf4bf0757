from __future__ import annotations

import json
from dataclasses import dataclass, asdict, field
from typing import Any, Dict, List, Optional

from sim.errors import ConfigurationError

from .profiles import RULE_SETS


@dataclass
class ExperimentConfig:
    name: str
    rule_set: str
    trials: int
    strategies: List[str] = field(default_factory=list)  # empty means every profile of the rule set
    rule_params: Dict[str, Any] = field(default_factory=dict)
    seed: Optional[int] = None
    workers: int = 1
    out_dir: Optional[str] = None

    def validate(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise ConfigurationError("name must be a non-empty string")
        if self.rule_set not in RULE_SETS:
            raise ConfigurationError(f"Invalid rule_set: {self.rule_set}")
        if not isinstance(self.rule_params, dict):
            raise ConfigurationError("rule_params must be a dict")
        if isinstance(self.trials, bool) or not isinstance(self.trials, int) or self.trials <= 0:
            raise ConfigurationError("trials must be a positive integer")
        if not isinstance(self.strategies, list) or not all(isinstance(s, str) for s in self.strategies):
            raise ConfigurationError("strategies must be a list[str]")
        if self.seed is not None and (isinstance(self.seed, bool) or not isinstance(self.seed, int) or self.seed < 0):
            raise ConfigurationError("seed must be a non-negative integer or null")
        if isinstance(self.workers, bool) or not isinstance(self.workers, int) or self.workers < 0:
            raise ConfigurationError("workers must be a non-negative integer (0 = auto)")

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @staticmethod
    def from_json(s: str) -> ExperimentConfig:
        obj = json.loads(s)
        if not isinstance(obj, dict):
            raise ConfigurationError("experiment config must be a JSON object")
        cfg = ExperimentConfig(
            name=obj.get("name"),
            rule_set=obj.get("rule_set"),
            trials=obj.get("trials"),
            strategies=list(obj.get("strategies", [])),
            rule_params=obj.get("rule_params", {}),
            seed=obj.get("seed"),
            workers=obj.get("workers", 1),
            out_dir=obj.get("out_dir"),
        )
        return cfg

    @staticmethod
    def from_file(path: str) -> ExperimentConfig:
        with open(path, "r", encoding="utf-8") as f:
            return ExperimentConfig.from_json(f.read())
