from __future__ import annotations

"""
Sanity-check / validation script.

This script does NOT write into demurrage_coin_model/results/. It runs the
small k=3, p=10, m=1 scenario on a virtual clock and prints the invariant
checks to console.
"""

import numpy as np

from .model import generate_lifetimes
from .scheduler import DecayScheduler, VirtualClock, build_schedule


class _CountingRenderer:
    def __init__(self):
        self.sizes: list[int] = []
        self.terminal_calls = 0

    def render_snapshot(self, pairs) -> None:
        self.sizes.append(len(pairs))

    def render_terminal(self) -> None:
        self.terminal_calls += 1


def _ok(flag: bool) -> str:
    return "OK" if flag else "FAIL"


def main() -> None:
    k, p, m = 3, 10.0, 1
    scale_factor = 1.0
    seed = 123

    rng = np.random.default_rng(seed)
    dist = generate_lifetimes(
        k, p, m, rng=rng, warn_hook=lambda msg: print(f"[VALIDATION][WARN] {msg}")
    )

    print("[VALIDATION] lifetime distribution")
    print(f"k={k}, p={p}, m={m}, seed={seed}")
    print(f"below={np.round(dist.below, 6).tolist()}")
    print(f"above (adjusted)={np.round(dist.above, 6).tolist()}, shift={dist.shift:.6g}")
    print(f"sum={dist.total:.12g} (target {k * p:.12g}) {_ok(bool(np.isclose(dist.total, k * p)))}")
    print("")

    schedule = build_schedule(dist.values, scale_factor=scale_factor, rng=rng)
    cum = np.cumsum(schedule.intervals)
    print("[VALIDATION] schedule")
    for (coin_id, lifetime), interval in zip(schedule.pairs, schedule.intervals):
        print(f"coin {coin_id}: lifetime={lifetime:.6g}s wait={interval:.6g}s")
    print(f"telescoping sum {_ok(bool(np.allclose(cum, schedule.lifetimes)))}")
    print("")

    clock = VirtualClock()
    renderer = _CountingRenderer()
    result = DecayScheduler(schedule, renderer, sleep=clock.sleep, clock=clock.now).run()

    print("[VALIDATION] decay loop (virtual clock)")
    print(f"snapshot sizes={renderer.sizes} {_ok(renderer.sizes == [3, 2, 1])}")
    print(f"terminal calls={renderer.terminal_calls} {_ok(renderer.terminal_calls == 1)}")
    max_lt = float(np.max(schedule.lifetimes))
    print(f"elapsed={result.elapsed:.6g}s max lifetime={max_lt:.6g}s {_ok(bool(np.isclose(result.elapsed, max_lt)))}")
    print("")
    print("[VALIDATION COMPLETE]")


if __name__ == "__main__":
    main()
