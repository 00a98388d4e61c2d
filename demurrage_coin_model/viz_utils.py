"""
Visualisation utilities for demurrage_coin_model.

Figures are read-only with respect to simulation state: they take finished
run results / distributions and write image files under results/figures/.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import numpy as np

from .io_utils import results_root
from .model import LifetimeDistribution
from .scheduler import DecayRunResult

COLOURS = {
    "below": "#0072B2",  # blue
    "above": "#D55E00",  # orange
    "threshold": "#009E73",  # green
}


def _style():
    import matplotlib as mpl

    mpl.use("Agg")
    mpl.rcParams.update(
        {
            "font.family": "serif",
            "font.size": 11,
            "axes.titlesize": 12,
            "axes.labelsize": 11,
            "legend.fontsize": 10,
            "lines.linewidth": 1.5,
        }
    )
    import matplotlib.pyplot as plt

    return plt


def _out_path(out_path: Optional[Path], name: str) -> Path:
    path = out_path if out_path is not None else results_root() / "figures" / name
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def plot_decay_curve(
    result: DecayRunResult,
    *,
    p_scaled: Optional[float] = None,
    out_path: Optional[Path] = None,
) -> Path:
    """Step plot of coins still in circulation versus (scaled) time."""
    plt = _style()
    k = result.schedule.k
    times = np.concatenate([[0.0], result.schedule.lifetimes])
    remaining = np.arange(k, -1, -1)

    fig, ax = plt.subplots(figsize=(8, 5))
    ax.step(times, remaining, where="post", color=COLOURS["below"], label="coins in circulation")
    if p_scaled is not None:
        ax.axvline(p_scaled, color=COLOURS["threshold"], linestyle="--", label="threshold p")
        ax.axhline(k / 2.0, color="#888888", linestyle=":", linewidth=1.0, label="k / 2")
    ax.set_xlabel("time (s)")
    ax.set_ylabel("coins remaining")
    ax.set_title(f"Coin decay (k={k})")
    ax.set_ylim(0, k * 1.05)
    ax.legend(loc="upper right")
    fig.tight_layout()

    path = _out_path(out_path, "decay_curve.png")
    fig.savefig(path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    return path


def plot_lifetime_histogram(
    dist: LifetimeDistribution,
    *,
    bins: int = 20,
    out_path: Optional[Path] = None,
) -> Path:
    """Histogram of the below / adjusted-above blocks, with p marked."""
    plt = _style()
    fig, ax = plt.subplots(figsize=(8, 5))
    edges = np.linspace(min(0.0, float(np.min(dist.values))), max(2.0 * dist.p, float(np.max(dist.values))), bins + 1)
    ax.hist(
        [dist.below, dist.above],
        bins=edges,
        stacked=True,
        color=[COLOURS["below"], COLOURS["above"]],
        label=[f"below p (m={dist.m})", f"above p (k-m={dist.k - dist.m})"],
    )
    ax.axvline(dist.p, color=COLOURS["threshold"], linestyle="--", label="p")
    ax.set_xlabel("lifetime")
    ax.set_ylabel("coins")
    ax.set_title(f"Lifetime distribution (shift={dist.shift:.3g})")
    ax.legend(loc="upper right")
    fig.tight_layout()

    path = _out_path(out_path, "lifetime_histogram.png")
    fig.savefig(path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    return path
