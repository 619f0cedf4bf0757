import random
from typing import Optional, Sequence

import numpy as np


class DiceRoll:
    """
    Pips shown by the dice in play, in the same order as the dice.

    `faces[i]` is the number of faces of the die that produced `pips[i]`,
    so strategies can tell a d6 from a d12 without looking at the rule set.
    """

    __slots__ = ('pips', 'faces')

    def __init__(self, pips: Sequence[int], faces: Sequence[int]):
        if len(pips) != len(faces):
            raise ValueError("pips and faces must have the same length")
        self.pips = tuple(pips)
        self.faces = tuple(faces)

    def __len__(self):
        return len(self.pips)

    def __iter__(self):
        return iter(self.pips)

    def __getitem__(self, idx):
        return self.pips[idx]

    def __eq__(self, other):
        if not isinstance(other, DiceRoll):
            return NotImplemented
        return self.pips == other.pips and self.faces == other.faces

    def __repr__(self):
        return f"DiceRoll(pips={self.pips}, faces={self.faces})"

    def total(self) -> int:
        return sum(self.pips)

    def count(self, pip: int) -> int:
        return sum(1 for p in self.pips if p == pip)

    def penalty(self, idx: int) -> int:
        # 0 when the die shows its top face
        return self.faces[idx] - self.pips[idx]

    def is_top(self, idx: int) -> bool:
        return self.pips[idx] == self.faces[idx]


class RandomSource:
    """Uniform die faces from a private `random.Random`. Seeded runs are reproducible."""

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self.rng = random.Random(seed)

    def roll(self, faces: Sequence[int]) -> DiceRoll:
        return DiceRoll([self.rng.randint(1, f) for f in faces], faces)


def root_entropy(seed: Optional[int] = None) -> int:
    """Entropy for a batch: the seed itself, or fresh system entropy when it is None."""
    if seed is None:
        return int(np.random.SeedSequence().entropy)
    if isinstance(seed, bool) or not isinstance(seed, int) or seed < 0:
        raise ValueError(f"seed must be a non-negative int, got {seed!r}")
    return seed


def trial_seed(entropy: int, trial_idx: int) -> int:
    """
    Seed of trial `trial_idx` in a batch rooted at `entropy`.

    Each trial gets its own spawn key, so seeds do not depend on how trials
    are split between workers and do not overlap between trials.
    """
    ss = np.random.SeedSequence(entropy, spawn_key=(trial_idx,))
    return int(ss.generate_state(1, dtype=np.uint64)[0])

