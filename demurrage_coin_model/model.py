from __future__ import annotations

import math
import numbers
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np


class InvalidArgument(ValueError):
    """Raised for malformed k / p / m / scale_factor before any sampling."""


@dataclass(frozen=True)
class LifetimeDistribution:
    """
    Lifetimes of k coins, in generation order (below block, then above block).

    `below` holds the m draws from [0, p); `above` holds the k - m draws from
    [p, 2p) after the uniform shift that makes sum(values) == k * p.
    """

    k: int
    p: float
    m: int
    below: np.ndarray
    above: np.ndarray
    shift: float
    n_out_of_range: int  # adjusted above values outside [p, 2p)
    n_negative: int

    @property
    def values(self) -> np.ndarray:
        return np.concatenate([self.below, self.above])

    @property
    def total(self) -> float:
        return float(np.sum(self.below) + np.sum(self.above))


def _is_int(x) -> bool:
    return isinstance(x, (int, np.integer)) and not isinstance(x, bool)


def check_positive_real(name: str, x) -> None:
    if not isinstance(x, numbers.Real) or isinstance(x, (bool, np.bool_)):
        raise InvalidArgument(f"{name} must be a real number (got {x!r})")
    if not math.isfinite(float(x)) or x <= 0:
        raise InvalidArgument(f"{name} must be finite and > 0 (got {x})")


def validate_generator_params(k: int, p: float, m: int) -> None:
    if not _is_int(k) or not _is_int(m):
        raise InvalidArgument(f"k and m must be integers (got k={k!r}, m={m!r})")
    if k <= 0:
        raise InvalidArgument(f"k must be positive (got {k})")
    if not (0 <= m < k):
        raise InvalidArgument(f"m must be in [0, k) (got m={m}, k={k})")
    check_positive_real("p", p)


def generate_lifetimes(
    k: int,
    p: float,
    m: int,
    *,
    rng: np.random.Generator,
    warn_hook: Optional[Callable[[str], None]] = None,
) -> LifetimeDistribution:
    """
    Draw k coin lifetimes: m below the threshold p, k - m above it.

    Model:
    - below ~ Uniform[0, p), size m
    - above ~ Uniform[p, 2p), size k - m
    - above += (k*p - sum(below) - sum(above)) / (k - m)

    The shift is not clamped. For unlucky draws some adjusted above values can
    leave [p, 2p) or go negative; they are kept as-is and reported through
    warn_hook.
    """
    validate_generator_params(k, p, m)
    p = float(p)

    below = rng.uniform(0.0, p, size=m).astype(np.float64, copy=False)
    above = rng.uniform(p, 2.0 * p, size=k - m).astype(np.float64, copy=False)

    total_sum = k * p - (float(np.sum(below)) + float(np.sum(above)))
    shift = total_sum / (k - m)
    above = above + shift

    n_out_of_range = int(np.sum((above < p) | (above >= 2.0 * p)))
    n_negative = int(np.sum(below < 0)) + int(np.sum(above < 0))

    if warn_hook is not None and n_out_of_range:
        warn_hook(
            f"{n_out_of_range} of {k - m} adjusted lifetimes outside [p, 2p)"
            f" (p={p:.6g}, shift={shift:.6g}, n_negative={n_negative})"
        )

    return LifetimeDistribution(
        k=int(k),
        p=p,
        m=int(m),
        below=below,
        above=above,
        shift=float(shift),
        n_out_of_range=n_out_of_range,
        n_negative=n_negative,
    )
