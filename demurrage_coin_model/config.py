"""
Configuration for the demurrage coin decay model.

Lifetimes are expressed in days; SCALE_FACTOR divides them into seconds of
wall-clock waiting for the live simulation loop.
"""

# Coin supply
K_COINS = 20

# Demurrage policy: M_BELOW of K_COINS decay within P_THRESHOLD.
# M_BELOW = K_COINS / 2 makes P_THRESHOLD the half-life of the supply.
P_THRESHOLD = 365.0
M_BELOW = 10

# Time compression: one year -> 10 s
SCALE_FACTOR = 36.5

# Quick mode (dev / smoke test): one year -> 1 s
SCALE_FACTOR_QUICK = 365.0

# Ensemble experiment
N_SEEDS = 1_000
N_SEEDS_QUICK = 50

# Randomness
BASE_SEED = 12345
