"""
Demurrage Coin Decay Model

This package simulates a currency whose coins each receive a random lifetime
and are removed from circulation one at a time, in ascending lifetime order,
with real-time pauses proportional to the gaps between consecutive lifetimes.
A target fraction m/k of the supply decays within the period p, analogous to
radioactive half-life statistics.
"""

from .config import (  # noqa: F401
    BASE_SEED,
    K_COINS,
    M_BELOW,
    N_SEEDS,
    N_SEEDS_QUICK,
    P_THRESHOLD,
    SCALE_FACTOR,
    SCALE_FACTOR_QUICK,
)
from .model import InvalidArgument, LifetimeDistribution, generate_lifetimes  # noqa: F401
from .scheduler import (  # noqa: F401
    DecayInterrupted,
    DecayRunResult,
    DecaySchedule,
    DecayScheduler,
    RunState,
    VirtualClock,
    build_schedule,
    run_decay,
)
