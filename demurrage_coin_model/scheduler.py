from __future__ import annotations

import enum
import time
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

from .model import InvalidArgument, check_positive_real, generate_lifetimes, validate_generator_params
from .rendering import Renderer

Pair = tuple[int, float]


class DecayInterrupted(RuntimeError):
    """
    The suspension primitive failed mid-run.

    The run is aborted, not resumable; `last_completed_index` is the number of
    removals that finished before the failure.
    """

    def __init__(self, last_completed_index: int, k: int, message: str = ""):
        self.last_completed_index = last_completed_index
        self.k = k
        super().__init__(
            message or f"decay interrupted after {last_completed_index} of {k} removals"
        )


class RunState(enum.Enum):
    INITIALIZED = "initialized"
    RUNNING = "running"
    TERMINATED = "terminated"
    ABORTED = "aborted"


@dataclass(frozen=True)
class DecaySchedule:
    """Coins sorted ascending by scaled lifetime, plus the waits between removals."""

    pairs: tuple[Pair, ...]
    intervals: np.ndarray
    scale_factor: float

    @property
    def k(self) -> int:
        return len(self.pairs)

    @property
    def lifetimes(self) -> np.ndarray:
        return np.array([lt for _, lt in self.pairs], dtype=np.float64)

    @property
    def deadlines(self) -> tuple[tuple[float, int], ...]:
        """(deadline, coin_id) events; deadline is the cumulative wait."""
        cum = np.cumsum(self.intervals)
        return tuple((float(t), coin_id) for t, (coin_id, _) in zip(cum, self.pairs))


@dataclass(frozen=True)
class DecayRunResult:
    schedule: DecaySchedule
    removal_order: tuple[int, ...]
    n_snapshots: int
    total_suspended: float  # sum of requested waits, seconds
    elapsed: float  # measured by the scheduler's clock


def validate_scale_factor(scale_factor: float) -> None:
    check_positive_real("scale_factor", scale_factor)


def build_schedule(
    lifetimes: np.ndarray,
    *,
    scale_factor: float,
    rng: np.random.Generator,
) -> DecaySchedule:
    """
    Shuffle, scale, pair with ids 1..k and sort.

    The shuffle decouples coin ids from the below/above generation blocks.
    Sorting is stable, so equal lifetimes keep ascending id order.
    """
    validate_scale_factor(scale_factor)
    raw = np.asarray(lifetimes, dtype=np.float64)
    if raw.ndim != 1 or raw.size == 0:
        raise InvalidArgument("lifetimes must be a non-empty 1-d sequence")

    scaled = rng.permutation(raw) / float(scale_factor)
    ids = np.arange(1, scaled.size + 1)
    order = np.argsort(scaled, kind="stable")

    pairs = tuple((int(ids[i]), float(scaled[i])) for i in order)
    intervals = np.diff(scaled[order], prepend=0.0)
    return DecaySchedule(pairs=pairs, intervals=intervals, scale_factor=float(scale_factor))


class VirtualClock:
    """Discrete-event stand-in for time.sleep / time.monotonic; never blocks."""

    def __init__(self, start: float = 0.0):
        self._now = float(start)
        self.sleeps: list[float] = []

    def sleep(self, seconds: float) -> None:
        if seconds < 0:
            raise ValueError("sleep length must be non-negative")
        self.sleeps.append(float(seconds))
        self._now += float(seconds)

    def now(self) -> float:
        return self._now


class DecayScheduler:
    """
    Sequential timed removal of coins in schedule order.

    States: INITIALIZED -> RUNNING(current_index) -> TERMINATED, or ABORTED
    when the suspension primitive fails. A scheduler runs at most once.
    """

    def __init__(
        self,
        schedule: DecaySchedule,
        renderer: Renderer,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        warn_hook: Optional[Callable[[str], None]] = None,
        info_hook: Optional[Callable[[str], None]] = None,
    ):
        self.schedule = schedule
        self.renderer = renderer
        self._sleep = sleep
        self._clock = clock
        self._warn = warn_hook
        self._info = info_hook
        self.state = RunState.INITIALIZED
        self.current_index = 0
        self._active: dict[int, float] = {}

    @property
    def active_count(self) -> int:
        return len(self._active)

    def snapshot(self) -> tuple[Pair, ...]:
        return tuple(self._active.items())

    def run(self) -> DecayRunResult:
        if self.state is not RunState.INITIALIZED:
            raise RuntimeError(f"scheduler already used (state={self.state.value})")

        k = self.schedule.k
        self._active = dict(self.schedule.pairs)
        self.state = RunState.RUNNING
        start = self._clock()

        self.renderer.render_snapshot(self.snapshot())
        n_snapshots = 1
        removed: list[int] = []
        total_suspended = 0.0

        for i, ((coin_id, lifetime), interval) in enumerate(
            zip(self.schedule.pairs, self.schedule.intervals), start=1
        ):
            self.current_index = i
            delay = float(interval)
            if delay < 0:
                # only reachable when the first lifetime is negative
                if self._warn is not None:
                    self._warn(f"negative wait {delay:.6g}s before coin {coin_id}; not waiting")
                delay = 0.0

            try:
                self._sleep(delay)
            except (OSError, KeyboardInterrupt) as exc:
                self.state = RunState.ABORTED
                raise DecayInterrupted(last_completed_index=i - 1, k=k) from exc
            total_suspended += delay

            del self._active[coin_id]
            removed.append(coin_id)
            if self._info is not None:
                self._info(f"decayed coin {coin_id} ({i}/{k}, lifetime={lifetime:.6g}s)")

            if not self._active:
                self.state = RunState.TERMINATED
                self.renderer.render_terminal()
                break

            self.renderer.render_snapshot(self.snapshot())
            n_snapshots += 1

        return DecayRunResult(
            schedule=self.schedule,
            removal_order=tuple(removed),
            n_snapshots=n_snapshots,
            total_suspended=total_suspended,
            elapsed=float(self._clock() - start),
        )


def run_decay(
    k: int,
    p: float,
    m: int,
    scale_factor: float,
    *,
    rng: np.random.Generator,
    renderer: Renderer,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
    warn_hook: Optional[Callable[[str], None]] = None,
    info_hook: Optional[Callable[[str], None]] = None,
) -> DecayRunResult:
    """Generate k lifetimes and decay them one by one, rendering each state."""
    validate_generator_params(k, p, m)
    validate_scale_factor(scale_factor)

    dist = generate_lifetimes(k, p, m, rng=rng, warn_hook=warn_hook)
    schedule = build_schedule(dist.values, scale_factor=scale_factor, rng=rng)
    if info_hook is not None:
        info_hook(
            f"decay run k={k} p={p} m={m} scale_factor={scale_factor}"
            f" expected_duration={float(schedule.lifetimes[-1]):.6g}s"
        )

    scheduler = DecayScheduler(
        schedule,
        renderer,
        sleep=sleep,
        clock=clock,
        warn_hook=warn_hook,
        info_hook=info_hook,
    )
    return scheduler.run()
