from __future__ import annotations

from pathlib import Path
from typing import Callable

import numpy as np
import pandas as pd
from tqdm import tqdm

from . import config
from .io_utils import (
    atomic_write_csv,
    read_csv_or_empty,
    results_root,
    seed_indices_present,
    upsert_row,
)
from .model import LifetimeDistribution, generate_lifetimes, validate_generator_params
from .scheduler import build_schedule, validate_scale_factor

SEED_COLS = [
    "run_id",
    "k",
    "p",
    "m",
    "seed_index",
    "seed",
    "sum_error",
    "frac_decayed_by_p",
    "empirical_half_life",
    "max_lifetime",
    "total_wait_s",
    "shift",
    "n_out_of_range",
    "n_negative",
]

SUMMARY_COLS = [
    "run_id",
    "k",
    "p",
    "m",
    "target_fraction",
    "mean_frac_decayed_by_p",
    "std_frac_decayed_by_p",
    "mean_empirical_half_life",
    "std_empirical_half_life",
    "mean_max_lifetime",
    "mean_total_wait_s",
    "max_abs_sum_error",
    "frac_seeds_out_of_range",
    "frac_seeds_negative",
    "n_seeds",
]


def _mode_suffix(mode: str) -> str:
    return "" if mode == "full" else f"_{mode}"


def _n(x: float) -> float:
    """Normalise floats for stable CSV resume keys."""
    return float(round(float(x), 12))


def _std_across_seeds(x: pd.Series) -> float:
    if len(x) <= 1:
        return 0.0
    return float(x.std(ddof=1))


def _append_row(df: pd.DataFrame, row: dict) -> pd.DataFrame:
    if df.empty:
        return pd.DataFrame([row], columns=SEED_COLS)
    return pd.concat([df, pd.DataFrame([row], columns=SEED_COLS)], ignore_index=True)


def summarise_distribution(dist: LifetimeDistribution) -> dict:
    """Demurrage diagnostics for one generated distribution (unscaled units)."""
    values = dist.values
    return {
        "sum_error": float(np.sum(values) - dist.k * dist.p),
        # adjusted above values may dip under p, so this can exceed m/k
        "frac_decayed_by_p": float(np.mean(values < dist.p)),
        "empirical_half_life": float(np.median(values)),
        "max_lifetime": float(np.max(values)),
        "shift": dist.shift,
        "n_out_of_range": dist.n_out_of_range,
        "n_negative": dist.n_negative,
    }


def _aggregate_seed_rows(seed_rows: pd.DataFrame) -> dict:
    n_seeds = int(len(seed_rows))
    if n_seeds == 0:
        nan = float("nan")
        return {c: nan for c in SUMMARY_COLS[5:-1]} | {"n_seeds": 0}
    return {
        "mean_frac_decayed_by_p": float(seed_rows["frac_decayed_by_p"].mean()),
        "std_frac_decayed_by_p": _std_across_seeds(seed_rows["frac_decayed_by_p"]),
        "mean_empirical_half_life": float(seed_rows["empirical_half_life"].mean()),
        "std_empirical_half_life": _std_across_seeds(seed_rows["empirical_half_life"]),
        "mean_max_lifetime": float(seed_rows["max_lifetime"].mean()),
        "mean_total_wait_s": float(seed_rows["total_wait_s"].mean()),
        "max_abs_sum_error": float(seed_rows["sum_error"].abs().max()),
        "frac_seeds_out_of_range": float((seed_rows["n_out_of_range"] > 0).mean()),
        "frac_seeds_negative": float((seed_rows["n_negative"] > 0).mean()),
        "n_seeds": n_seeds,
    }


def run_decay_ensemble(
    *,
    mode: str,
    k: int,
    p: float,
    m: int,
    n_seeds: int,
    scale_factor: float,
    logger_warn: Callable[[str], None],
    logger_info: Callable[[str], None],
    out_dir: Path | None = None,
) -> dict:
    """
    Repeat the lifetime draw over n_seeds seeds and record demurrage statistics.

    No waiting happens here: each seed's schedule is built and its total wait
    read off the last deadline. Seeds already present in the CSV for the same
    (k, p, m) are skipped. The seeds CSV is rewritten after every seed, so an
    interrupted ensemble resumes where it stopped. The summary CSV holds one
    row per (k, p, m); rerunning a combination replaces only its own row.
    """
    validate_generator_params(k, p, m)
    validate_scale_factor(scale_factor)
    if n_seeds <= 0:
        raise ValueError("n_seeds must be positive")

    run_id = f"demurrage_{mode}"
    out_dir = out_dir if out_dir is not None else results_root() / "ensemble"
    suffix = _mode_suffix(mode)
    seed_path = out_dir / f"decay_ensemble_seeds{suffix}.csv"
    summary_path = out_dir / f"decay_ensemble_summary{suffix}.csv"

    p_n = _n(p)
    key = {"k": int(k), "p": p_n, "m": int(m)}

    logger_info(f"START ensemble: k={k} p={p} m={m} n_seeds={n_seeds} scale_factor={scale_factor}")

    seed_df = read_csv_or_empty(seed_path, expected_columns=SEED_COLS)
    present = seed_indices_present(seed_df, key=key, seed_index_col="seed_index")
    missing = [i for i in range(n_seeds) if i not in present]
    if missing:
        logger_info(f"ensemble: running {len(missing)} missing seeds")

    for seed_index in tqdm(missing, desc=f"ensemble{suffix}", leave=True):
        seed = int(config.BASE_SEED + seed_index)
        rng = np.random.default_rng(seed)
        dist = generate_lifetimes(k, p_n, m, rng=rng)
        schedule = build_schedule(dist.values, scale_factor=scale_factor, rng=rng)

        row = {"run_id": run_id, **key, "seed_index": int(seed_index), "seed": seed}
        row.update(summarise_distribution(dist))
        row["total_wait_s"] = float(schedule.deadlines[-1][0])
        seed_df = _append_row(seed_df, row)
        atomic_write_csv(seed_df, seed_path)

    mask = (seed_df["k"] == key["k"]) & (seed_df["m"] == key["m"]) & (seed_df["p"].round(12) == p_n)
    mask &= seed_df["seed_index"] < n_seeds
    agg = _aggregate_seed_rows(seed_df.loc[mask])

    n_bad = int((seed_df.loc[mask, "n_out_of_range"] > 0).sum())
    if n_bad:
        logger_warn(f"ensemble: {n_bad}/{agg['n_seeds']} seeds shifted lifetimes outside [p, 2p)")

    summary = {"run_id": run_id, **key, "target_fraction": m / k, **agg}
    summary_df = read_csv_or_empty(summary_path, expected_columns=SUMMARY_COLS)
    summary_df = upsert_row(summary_df, summary, key_cols=["k", "p", "m"])
    atomic_write_csv(summary_df[SUMMARY_COLS], summary_path)

    logger_info(
        f"END ensemble: frac_decayed_by_p={summary['mean_frac_decayed_by_p']:.4f}"
        f" (target {m / k:.4f}), half_life={summary['mean_empirical_half_life']:.6g}"
    )
    return summary
