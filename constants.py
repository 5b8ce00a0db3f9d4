#!/usr/bin/env python3

# Notional spend used to turn lives-per-dollar into a comparable cost per life
SIMULATION_AMOUNT = 1e9

WEIGHT_NORMALIZATION_TOLERANCE = 0.01

# Below this magnitude a rate is treated as exactly zero
ZERO_RATE_EPSILON = 1e-10

# One in a million
MICROPROBABILITY = 1e-6
