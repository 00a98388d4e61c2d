from __future__ import annotations

import argparse
import sys
import time

import numpy as np

from . import config
from .experiments import run_decay_ensemble
from .io_utils import ensure_results_layout, get_logger
from .model import InvalidArgument, generate_lifetimes
from .rendering import TableRenderer
from .scheduler import DecayInterrupted, VirtualClock, run_decay
from .viz_utils import plot_decay_curve, plot_lifetime_histogram


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Run the demurrage coin decay simulation.")
    p.add_argument(
        "--mode",
        choices=["full", "quick"],
        default="full",
        help="full: SCALE_FACTOR + N_SEEDS; quick: faster clock, smaller ensemble, _quick outputs",
    )
    p.add_argument(
        "--only",
        choices=["live", "ensemble", "figures", "all"],
        default="live",
        help="live: timed decay run; ensemble: seed sweep to CSV; figures: plots of one run.",
    )
    p.add_argument("--k", type=int, default=config.K_COINS, help="number of coins")
    p.add_argument("--p", type=float, default=config.P_THRESHOLD, help="threshold lifetime (days)")
    p.add_argument("--m", type=int, default=config.M_BELOW, help="coins decaying before p")
    p.add_argument(
        "--scale-factor",
        type=float,
        default=None,
        help="divide lifetimes by this to get seconds (default depends on --mode)",
    )
    p.add_argument("--seed", type=int, default=config.BASE_SEED)
    p.add_argument(
        "--virtual-time",
        action="store_true",
        help="advance a virtual clock instead of sleeping",
    )
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    mode = args.mode
    only = args.only

    if args.scale_factor is not None:
        scale_factor = args.scale_factor
    elif mode == "quick":
        scale_factor = config.SCALE_FACTOR_QUICK
    else:
        scale_factor = config.SCALE_FACTOR
    n_seeds = config.N_SEEDS_QUICK if mode == "quick" else config.N_SEEDS

    ensure_results_layout()
    logger = get_logger(mode=mode)
    warn = logger.warning
    info = logger.info

    logger.info(
        f"RUN START mode={mode} only={only} k={args.k} p={args.p} m={args.m}"
        f" scale_factor={scale_factor} seed={args.seed}"
    )

    try:
        if only in ("all", "live", "figures"):
            if args.virtual_time or only == "figures":
                clock = VirtualClock()
                sleep, now = clock.sleep, clock.now
            else:
                sleep, now = time.sleep, time.monotonic

            renderer = TableRenderer()
            result = run_decay(
                args.k,
                args.p,
                args.m,
                scale_factor,
                rng=np.random.default_rng(args.seed),
                renderer=renderer,
                sleep=sleep,
                clock=now,
                warn_hook=warn,
                info_hook=info,
            )
            logger.info(
                f"live: {len(result.removal_order)} coins decayed in {result.elapsed:.3f}s"
                f" (requested {result.total_suspended:.3f}s)"
            )

            if only in ("all", "figures"):
                path = plot_decay_curve(result, p_scaled=args.p / scale_factor)
                logger.info(f"figures: wrote {path}")
                # same seed -> same draw as the run above
                dist = generate_lifetimes(args.k, args.p, args.m, rng=np.random.default_rng(args.seed))
                path = plot_lifetime_histogram(dist)
                logger.info(f"figures: wrote {path}")

        if only in ("all", "ensemble"):
            run_decay_ensemble(
                mode=mode,
                k=args.k,
                p=args.p,
                m=args.m,
                n_seeds=n_seeds,
                scale_factor=scale_factor,
                logger_warn=warn,
                logger_info=info,
            )
    except InvalidArgument as e:
        logger.error(f"invalid argument: {e}")
        return 2
    except DecayInterrupted as e:
        logger.error(f"{e}; partial run discarded (completed removals: {e.last_completed_index})")
        return 1

    logger.info("RUN END")
    return 0


if __name__ == "__main__":
    sys.exit(main())
