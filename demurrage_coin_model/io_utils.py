from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, Optional
from uuid import uuid4

import pandas as pd

LOGGER_NAME = "demurrage_coin_model"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"


def package_root() -> Path:
    return Path(__file__).resolve().parent


def results_root() -> Path:
    """Ensemble CSVs, figures and diagnostics logs all live under here."""
    return package_root() / "results"


def ensure_results_layout() -> None:
    root = results_root()
    for sub in ("ensemble", "figures"):
        (root / sub).mkdir(parents=True, exist_ok=True)


def _with_format(handler: logging.Handler) -> logging.Handler:
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def get_logger(*, mode: str = "full") -> logging.Logger:
    """
    Logger for decay runs and ensembles.

    The first call attaches a file handler (`results/diagnostics.log`, or
    `diagnostics_<mode>.log` outside full mode) and a stderr handler; later
    calls return the same logger untouched.
    """
    ensure_results_layout()
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.INFO)
    if getattr(logger, "_configured", False):
        return logger

    log_name = "diagnostics.log" if mode == "full" else f"diagnostics_{mode}.log"
    logger.addHandler(_with_format(logging.FileHandler(results_root() / log_name, mode="a", encoding="utf-8")))
    logger.addHandler(_with_format(logging.StreamHandler()))
    logger.propagate = False
    logger._configured = True  # type: ignore[attr-defined]
    return logger


def atomic_write_csv(df: pd.DataFrame, path: Path) -> None:
    """Write to a sibling temp file, then rename over `path`; readers never see half a CSV."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f"{path.name}.tmp.{os.getpid()}.{uuid4().hex}")
    df.to_csv(tmp, index=False)
    os.replace(tmp, path)


def read_csv_or_empty(path: Path, *, expected_columns: Optional[Iterable[str]] = None) -> pd.DataFrame:
    """Load a results CSV; a missing file reads as an empty frame with the expected columns."""
    columns = list(expected_columns) if expected_columns is not None else []
    if not path.exists():
        return pd.DataFrame(columns=columns)
    df = pd.read_csv(path)
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise ValueError(f"{path} lacks columns {missing}")
    return df


def _key_mask(df: pd.DataFrame, key: dict) -> pd.Series:
    mask = pd.Series(True, index=df.index)
    for col, value in key.items():
        if df[col].dtype.kind == "f" and isinstance(value, (float, int)):
            # p comes back from CSV with float noise
            mask &= df[col].round(12) == round(float(value), 12)
        else:
            mask &= df[col] == value
    return mask


def seed_indices_present(
    seed_df: pd.DataFrame,
    *,
    key: dict,
    seed_index_col: str = "seed_index",
) -> set[int]:
    """Seed indices already recorded for the (k, p, m) combination `key`."""
    if seed_df.empty:
        return set()
    done = seed_df.loc[_key_mask(seed_df, key), seed_index_col]
    return {int(x) for x in done.tolist()}


def upsert_row(df: pd.DataFrame, row: dict, *, key_cols: list[str]) -> pd.DataFrame:
    """Return a copy of `df` where `row` replaces any row sharing its key columns."""
    new = pd.DataFrame([row])
    if df.empty:
        return new
    keep = df.loc[~_key_mask(df, {c: row[c] for c in key_cols})]
    if keep.empty:
        return new
    return pd.concat([keep, new], ignore_index=True)
