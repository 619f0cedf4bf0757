from __future__ import annotations

import os
from typing import Dict, List


def save_strategy_scores(rows: List[Dict], out_dir: str, title: str | None = None) -> str:
    """
    Save a bar chart of average score per strategy, with whiskers down to the
    minimum and up to the maximum score. Returns the path of the saved file.
    """
    import matplotlib
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    rows_sorted = sorted(rows, key=lambda r: r.get("avg_score", 0.0))
    names = [r.get("strategy", "?") for r in rows_sorted]
    avgs = [r.get("avg_score", 0.0) for r in rows_sorted]
    lows = [a - r.get("min_score", a) for a, r in zip(avgs, rows_sorted)]
    highs = [r.get("max_score", a) - a for a, r in zip(avgs, rows_sorted)]

    fig, ax = plt.subplots(figsize=(7, 0.5 * len(names) + 2))
    ax.barh(names, avgs, xerr=[lows, highs], capsize=4, alpha=0.8)
    ax.set_xlabel("score")
    if title:
        ax.set_title(title)
    ax.grid(True, axis="x", alpha=0.3)

    os.makedirs(out_dir, exist_ok=True)
    path = os.path.join(out_dir, "strategy_scores.png")
    fig.tight_layout()
    fig.savefig(path)
    plt.close(fig)
    return path
