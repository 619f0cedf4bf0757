from __future__ import annotations

import argparse
import csv
import json
import logging
import os
import sys
from datetime import datetime
from typing import Dict, List, Optional

from tqdm import tqdm

from sim.errors import ConfigurationError

from .experiment_config import ExperimentConfig
from .harness import run_comparison
from .plots import save_strategy_scores
from .profiles import RULE_SETS, build_strategies, default_strategies, get_rule_set, strategy_names

logger = logging.getLogger(__name__)


DEFAULT_RULE_SET = "biscuits"
DEFAULT_TRIALS = 100000

RESULTS_SCHEMA = [
    "strategy",
    "rule_set",
    "trials",
    "avg_score",
    "min_score",
    "gravies",
    "max_score",
    "busts",
    "stopped",
    "suspect",
    "std",
    "gravy_ci_low",
    "gravy_ci_high",
    "elapsed_s",
    "seed",
    "cancelled",
]


def _make_progress(name: str, total: int):
    bar_format = "{l_bar}{bar}| {n_fmt}/{total_fmt} [{elapsed}<{remaining}, {rate_fmt}]"
    return tqdm(total=total, desc=name, unit="game", dynamic_ncols=True, bar_format=bar_format, leave=False)


def _ensure_out_dir(out: str | None, name: str) -> str:
    if out:
        base = out
    else:
        ts = datetime.now().strftime("%Y%m%d_%H%M%S")
        base = os.path.join("eval", "results", "experiments", name or ts)
    os.makedirs(base, exist_ok=True)
    return base


def _write_json(path: str, obj) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(obj, f, indent=2, ensure_ascii=False)


def _write_csv(path: str, rows: List[dict], schema: List[str]) -> None:
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=schema)
        writer.writeheader()
        for r in rows:
            writer.writerow({k: r.get(k) for k in schema})


def _parse_params(items: Optional[List[str]]) -> Dict:
    params: Dict = {}
    for item in items or []:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise ConfigurationError(f"Expected key=value, got: {item}")
        try:
            params[key.strip()] = int(value)
        except ValueError:
            params[key.strip()] = value.strip()
    return params


def _parse_names(s: str | None) -> List[str]:
    if not s:
        return []
    return [x.strip() for x in s.split(",") if x.strip()]


def format_elapsed(seconds: float) -> str:
    if seconds < 1.0:
        return f"{seconds * 1000:.2f}ms"
    return f"{seconds:.2f}s"


def format_table(rows: List[Dict]) -> str:
    """Render summary rows as a fixed-width table, best average first."""
    lines = [
        f"{'Strategy':<30} {'Avg Points':<10} {'Min':>4} {'Gravies':>8} {'Max':>4} {'Time':>10}",
        "-" * 72,
    ]
    for r in sorted(rows, key=lambda r: r["avg_score"], reverse=True):
        lines.append(
            f"{r['strategy']:<30} {r['avg_score']:>10.2f} {r['min_score']:>4} {r['gravies']:>8} "
            f"{r['max_score']:>4} {format_elapsed(r['elapsed_s']):>10}"
        )
    return "\n".join(lines)


def _build_config(args: argparse.Namespace) -> ExperimentConfig:
    if args.config:
        cfg = ExperimentConfig.from_file(args.config)
    else:
        cfg = ExperimentConfig(name="compare", rule_set=DEFAULT_RULE_SET, trials=DEFAULT_TRIALS)

    # Flags given on the command line win over the config file
    if args.name is not None:
        cfg.name = args.name
    if args.rule_set is not None:
        cfg.rule_set = args.rule_set
    if args.param:
        cfg.rule_params = {**cfg.rule_params, **_parse_params(args.param)}
    if args.strategies is not None:
        cfg.strategies = _parse_names(args.strategies)
    if args.trials is not None:
        cfg.trials = args.trials
    if args.seed is not None:
        cfg.seed = args.seed
    if args.jobs is not None:
        cfg.workers = args.jobs
    if args.out is not None:
        cfg.out_dir = args.out
    cfg.validate()
    return cfg


def cmd_compare(args: argparse.Namespace) -> int:
    cfg = _build_config(args)
    rules = get_rule_set(cfg.rule_set, **cfg.rule_params)
    rules.validate()
    strategies = build_strategies(cfg.strategies, rules) if cfg.strategies else default_strategies(rules)

    # Resolve jobs -> max_workers (0 means auto)
    jobs = cfg.workers
    if jobs <= 0:
        cpu = os.cpu_count() or 1
        jobs = max(1, cpu - 1)
    max_workers = jobs if jobs > 1 else None

    print(f"Simulating {cfg.trials} games for each strategy on {rules.name} ({rules.description})...")
    make_progress = None if args.no_progress else _make_progress
    rows = run_comparison(rules, strategies, cfg.trials, seed=cfg.seed,
                          max_workers=max_workers, make_progress=make_progress)

    print()
    print(format_table(rows))

    if cfg.out_dir or args.plot:
        out_dir = _ensure_out_dir(cfg.out_dir, cfg.name)
        _write_json(os.path.join(out_dir, "config.json"), json.loads(cfg.to_json()))
        _write_json(os.path.join(out_dir, "summary.json"), {
            "name": cfg.name,
            "rule_set": rules.name,
            "rule_description": rules.description,
            "ceiling": rules.ceiling,
            "trials": cfg.trials,
            "results": rows,
        })
        _write_csv(os.path.join(out_dir, "results.csv"), rows, RESULTS_SCHEMA)
        if args.plot:
            path = save_strategy_scores(rows, out_dir, title=f"{rules.name}: {cfg.trials} games per strategy")
            logger.info(f"Saved plot to {path}")
        print(f"\nOutputs saved to: {out_dir}")
    return 0


def cmd_list(args: argparse.Namespace) -> int:
    for name in sorted(RULE_SETS):
        rules = get_rule_set(name)
        print(f"{name}: {rules.description}")
        for s in strategy_names(rules):
            print(f"  - {s}")
    print("bank also accepts threshold:<n> and rolls:<n>")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="biscuits-sim", description="Compare dice game strategies by Monte Carlo simulation")
    p.add_argument("-v", "--verbose", action="count", default=0, help="increase verbosity (use -vv for debug)")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_cmp = sub.add_parser("compare", help="Simulate every selected strategy and print a summary table")
    p_cmp.add_argument("--config", default=None, help="Experiment config JSON file")
    p_cmp.add_argument("--name", default=None, help="Experiment name")
    p_cmp.add_argument("--rule-set", default=None, choices=sorted(RULE_SETS), help=f"Rule set (default {DEFAULT_RULE_SET})")
    p_cmp.add_argument("--param", action="append", default=None, metavar="KEY=VALUE",
                       help="Rule set parameter, e.g. ceiling=30 (repeatable)")
    p_cmp.add_argument("--strategies", default=None, help="Comma-separated strategy names (default: all for the rule set)")
    p_cmp.add_argument("--trials", type=int, default=None, help=f"Games per strategy (default {DEFAULT_TRIALS})")
    p_cmp.add_argument("--seed", type=int, default=None, help="Root seed for reproducible runs")
    p_cmp.add_argument("--jobs", type=int, default=None, help="Worker processes (0=auto, 1=sequential)")
    p_cmp.add_argument("--out", default=None, help="Directory for config.json, summary.json and results.csv")
    p_cmp.add_argument("--plot", action="store_true", help="Also save a strategy score chart")
    p_cmp.add_argument("--no-progress", action="store_true", help="Do not show progress bars")
    p_cmp.set_defaults(func=cmd_compare)

    p_list = sub.add_parser("list", help="List rule sets and their strategies")
    p_list.set_defaults(func=cmd_list)

    return p


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    level = logging.WARNING if args.verbose == 0 else logging.INFO if args.verbose == 1 else logging.DEBUG
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        return args.func(args)
    except ConfigurationError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
