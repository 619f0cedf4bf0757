from __future__ import annotations

import logging
import time
from concurrent.futures import ProcessPoolExecutor, as_completed
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from sim.dice import root_entropy, trial_seed
from sim.errors import ConfigurationError
from sim.game import GameSimulator, TrialOutcome
from sim.rules import RuleSet

from .aggregate import AggregateStats

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 5000


def play_trial(rules: RuleSet, strategy, seed: int) -> TrialOutcome:
    """Resolve a single game with its own random source."""
    return GameSimulator(rules, seed=seed).play_game(strategy)


def run_chunk(rules: RuleSet, strategy, entropy: int, start: int, stop: int, cancel=None) -> AggregateStats:
    """
    Play trials [start, stop) of a batch into a fresh aggregator.

    `cancel` is checked before every trial, so a trial that has started
    always reaches a terminal state. Module level so worker processes can
    import it.
    """
    stats = AggregateStats()
    for i in range(start, stop):
        if cancel is not None and cancel.is_set():
            stats.cancelled = True
            break
        stats.update(play_trial(rules, strategy, trial_seed(entropy, i)))
    return stats


def _split(trial_count: int, chunk_size: int) -> List[Tuple[int, int]]:
    return [(a, min(a + chunk_size, trial_count)) for a in range(0, trial_count, chunk_size)]


def _check_settings(rules: RuleSet, trial_count: int, max_workers: Optional[int], chunk_size: int) -> None:
    rules.validate()
    if isinstance(trial_count, bool) or not isinstance(trial_count, int) or trial_count <= 0:
        raise ConfigurationError(f"trial_count must be a positive integer, got {trial_count!r}")
    if max_workers is not None and (not isinstance(max_workers, int) or max_workers < 0):
        raise ConfigurationError("max_workers must be a non-negative integer or None")
    if not isinstance(chunk_size, int) or chunk_size <= 0:
        raise ConfigurationError("chunk_size must be a positive integer")


def _resolve_entropy(seed: Optional[int]) -> int:
    try:
        return root_entropy(seed)
    except ValueError as e:
        raise ConfigurationError(str(e)) from e


def merge_prefix(parts: Sequence[Optional[AggregateStats]], seed: Optional[int] = None) -> AggregateStats:
    """
    Merge per-chunk aggregates in chunk order, up to the first chunk that
    never ran (None) or was cut short by cancellation.

    Chunks finished after that point are dropped, so the result always covers
    the first `count` trials of the batch.
    """
    stats = AggregateStats(seed=seed)
    for part in parts:
        if part is None:
            stats.cancelled = True
            break
        stats.merge(part)
        if part.cancelled:
            break
    return stats


def _progress_update(progress, n: int, done: int, total: int) -> None:
    if progress is None:
        return
    # tqdm-like object with update method
    upd = getattr(progress, "update", None)
    if callable(upd):
        upd(n)
    elif callable(progress):
        progress(done, total)


def run(rules: RuleSet, strategy, trial_count: int, seed: Optional[int] = None,
        max_workers: Optional[int] = None, progress: Optional[object] = None,
        cancel=None, chunk_size: int = DEFAULT_CHUNK_SIZE) -> AggregateStats:
    """
    Play `trial_count` independent games of `strategy` and aggregate them.

    Every trial gets its own seed derived from `seed` (system entropy when it
    is None), so results do not depend on scheduling. If `progress` is given it
    can be either:
      - an object with an `update(int)` method (e.g., tqdm instance), or
      - a callable taking (done:int, total:int).
    Parallelization:
      - If max_workers is None or <= 1, chunks run sequentially in-process.
      - If max_workers > 1, chunks are dispatched to a ProcessPoolExecutor.
        Rule set, strategy and `cancel` must then be picklable (use a
        multiprocessing Manager().Event() for cancellation).
    A cancelled batch keeps only the trials before the first unfinished chunk,
    even when later chunks completed in other workers.
    Raises ConfigurationError before any trial runs if the settings are invalid.
    """
    _check_settings(rules, trial_count, max_workers, chunk_size)
    entropy = _resolve_entropy(seed)
    name = getattr(strategy, "name", type(strategy).__name__)
    chunks = _split(trial_count, chunk_size)
    logger.info(f"Running {trial_count} trials of {name} on {rules.name} "
                f"({len(chunks)} chunks, workers={max_workers or 1})")

    results: List[Optional[AggregateStats]] = [None] * len(chunks)
    done = 0

    # Sequential path (default)
    if not max_workers or max_workers <= 1:
        for idx, (a, b) in enumerate(chunks):
            part = run_chunk(rules, strategy, entropy, a, b, cancel)
            results[idx] = part
            done += part.count
            _progress_update(progress, part.count, done, trial_count)
            if part.cancelled:
                break
    else:
        # Parallel path
        with ProcessPoolExecutor(max_workers=max_workers) as ex:
            future_to_idx = {
                ex.submit(run_chunk, rules, strategy, entropy, a, b, cancel): idx
                for idx, (a, b) in enumerate(chunks)
            }
            logger.debug(f"Submitted {len(future_to_idx)} chunks to {max_workers} workers")
            for fut in as_completed(future_to_idx):
                if fut.cancelled():
                    continue
                part = fut.result()
                results[future_to_idx[fut]] = part
                done += part.count
                _progress_update(progress, part.count, done, trial_count)
                if cancel is not None and cancel.is_set():
                    for other in future_to_idx:
                        other.cancel()

    stats = merge_prefix(results, seed=entropy)
    if stats.cancelled:
        logger.warning(f"{name}: cancelled after {stats.count}/{trial_count} trials")
    if stats.suspect:
        logger.warning(f"{name}: {stats.suspect} trials stopped early on an invalid action")
    logger.info(f"Finished {stats.count} trials of {name}")
    return stats


def summary_row(name: str, rules: RuleSet, stats: AggregateStats, elapsed_s: float) -> Dict:
    summary = stats.finalize()
    return {
        "strategy": name,
        "rule_set": rules.name,
        "trials": summary["count"],
        "avg_score": summary["average"],
        "min_score": summary["min"],
        "gravies": summary["gravies"],
        "max_score": summary["max"],
        "busts": summary["busts"],
        "stopped": summary["stopped"],
        "suspect": summary["suspect"],
        "std": summary["std"],
        "gravy_ci_low": summary["gravy_ci_low"],
        "gravy_ci_high": summary["gravy_ci_high"],
        "elapsed_s": elapsed_s,
        "seed": stats.seed,
        "cancelled": stats.cancelled,
    }


def run_comparison(rules: RuleSet, strategies: Sequence, trial_count: int, seed: Optional[int] = None,
                   max_workers: Optional[int] = None,
                   make_progress: Optional[Callable[[str, int], object]] = None,
                   cancel=None, chunk_size: int = DEFAULT_CHUNK_SIZE) -> List[Dict]:
    """
    Run one batch per strategy and return one summary row per strategy, in input order.

    All batches share the same per-trial seeds, so strategies are compared on
    the same dice wherever their games take the same course. `make_progress`,
    if given, builds a progress object per batch from (strategy name, trials).
    """
    if not strategies:
        raise ConfigurationError("at least one strategy is required")
    _check_settings(rules, trial_count, max_workers, chunk_size)
    entropy = _resolve_entropy(seed)

    rows: List[Dict] = []
    for strategy in strategies:
        name = getattr(strategy, "name", type(strategy).__name__)
        progress = make_progress(name, trial_count) if make_progress else None
        t0 = time.time()
        try:
            stats = run(rules, strategy, trial_count, seed=entropy, max_workers=max_workers,
                        progress=progress, cancel=cancel, chunk_size=chunk_size)
        finally:
            close = getattr(progress, "close", None)
            if callable(close):
                close()
        elapsed = time.time() - t0

        if stats.count:
            rows.append(summary_row(name, rules, stats, elapsed))
        if stats.cancelled:
            break
    return rows
