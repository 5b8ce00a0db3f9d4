#!/usr/bin/env python3

from math import inf, log1p

import numpy as np

from constants import ZERO_RATE_EPSILON


def discounted_integral(rate, start, end):
    """Present value of one unit per year over [start, end) at annual discount `rate`.

    Closed form of sum(d^t for t in start..end-1) with d = 1/(1+rate), extended to
    fractional years. Exact at rate 0 and continuous as rate approaches 0.
    """
    if start >= end:
        return 0.0
    if abs(rate) < ZERO_RATE_EPSILON:
        return float(end - start)
    log_d = -log1p(rate)
    # d^start * (1 - d^(end-start)), written with expm1 so small rates don't cancel out
    discounted_window = np.exp(start * log_d) * -np.expm1((end - start) * log_d)
    return float(discounted_window / (rate / (1 + rate)))


def growth_adjusted_rate(discount_rate, growth_rate):
    """The single rate whose discount factor is (1+growth)/(1+discount)."""
    return (1 + discount_rate) / (1 + growth_rate) - 1


def population_cap_time(growth_rate, limit):
    """Years until (1+growth)^t reaches `limit`. May be negative or infinite."""
    if limit == 0:
        return -inf
    return float(np.log(limit) / np.log1p(growth_rate))


def population_integral(discount_rate, growth_rate, limit, start, end):
    """`discounted_integral` weighted by the population multiple
    min((1+growth)^t, limit).

    `limit` is a multiple of the current population, or None for unbounded growth.
    """
    if start >= end:
        return 0.0
    if limit is not None and limit == 0:
        return 0.0

    growing = growth_adjusted_rate(discount_rate, growth_rate)

    if abs(growth_rate) < ZERO_RATE_EPSILON:
        plateau = 1.0 if limit is None else min(1.0, limit)
        return plateau * discounted_integral(discount_rate, start, end)

    if limit is None:
        return discounted_integral(growing, start, end)

    cap_time = population_cap_time(growth_rate, limit)
    if growth_rate > 0:
        # Grows until it hits the cap, then stays there
        uncapped = discounted_integral(growing, start, min(end, cap_time))
        capped = limit * discounted_integral(discount_rate, max(start, cap_time), end)
    else:
        # Held at the cap until it shrinks below it
        capped = limit * discounted_integral(discount_rate, start, min(end, cap_time))
        uncapped = discounted_integral(growing, max(start, cap_time), end)
    return uncapped + capped
