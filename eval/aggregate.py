from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from sim.errors import EmptyAggregateError
from sim.game import TrialOutcome


def wilson_ci(k: int, n: int, z: float = 1.959963984540054) -> Tuple[float, float]:
    if n == 0:
        return float("nan"), float("nan")
    p = k / n
    denom = 1 + z * z / n
    center = (p + z * z / (2 * n)) / denom
    half = z * ((p * (1 - p) / n + z * z / (4 * n * n)) ** 0.5) / denom
    return center - half, center + half


@dataclass
class AggregateStats:
    """
    Streaming statistics over trial outcomes, O(1) memory in the number of trials.

    All sums are integers, so the result does not depend on the order in which
    outcomes (or per-worker aggregates) are folded in.
    """
    count: int = 0
    total: int = 0
    total_sq: int = 0
    min_score: Optional[int] = None
    max_score: Optional[int] = None
    ceiling_hits: int = 0
    busts: int = 0
    stops: int = 0
    suspect: int = 0
    # set by the harness
    seed: Optional[int] = None
    cancelled: bool = False

    def update(self, outcome: TrialOutcome) -> None:
        s = outcome.score
        self.count += 1
        self.total += s
        self.total_sq += s * s
        if self.min_score is None or s < self.min_score:
            self.min_score = s
        if self.max_score is None or s > self.max_score:
            self.max_score = s
        if outcome.busted:
            self.busts += 1
        elif outcome.ceiling_hit:
            self.ceiling_hits += 1
        else:
            self.stops += 1
        if outcome.suspect:
            self.suspect += 1

    def merge(self, other: AggregateStats) -> None:
        self.cancelled = self.cancelled or other.cancelled
        if other.count == 0:
            return
        self.count += other.count
        self.total += other.total
        self.total_sq += other.total_sq
        if self.min_score is None or other.min_score < self.min_score:
            self.min_score = other.min_score
        if self.max_score is None or other.max_score > self.max_score:
            self.max_score = other.max_score
        self.ceiling_hits += other.ceiling_hits
        self.busts += other.busts
        self.stops += other.stops
        self.suspect += other.suspect

    @property
    def average(self) -> float:
        if self.count == 0:
            raise EmptyAggregateError("no trials have been aggregated")
        return self.total / self.count

    def finalize(self) -> Dict:
        """
        Summary of everything aggregated so far: count, average, min, max,
        gravies, busts, stopped, suspect, std and a Wilson interval on the
        gravy rate.
        """
        if self.count == 0:
            raise EmptyAggregateError("finalize() needs at least one trial")
        n = self.count
        # population variance from exact integer sums
        var = (n * self.total_sq - self.total * self.total) / (n * n)
        lo, hi = wilson_ci(self.ceiling_hits, n)
        return {
            "count": n,
            "average": self.total / n,
            "min": self.min_score,
            "max": self.max_score,
            "gravies": self.ceiling_hits,
            "busts": self.busts,
            "stopped": self.stops,
            "suspect": self.suspect,
            "std": max(0.0, var) ** 0.5,
            "gravy_ci_low": lo,
            "gravy_ci_high": hi,
        }
