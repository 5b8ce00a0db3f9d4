#!/usr/bin/env python3

"""When the lives bought by a gift are saved.

The time limit is cut into equal periods and every active effect gets a column of
lives saved per period, computed with the same discounting as the cost-per-life
figures. Each column sums to that effect's share of the gift's lives, and the
`total` column sums to the lives saved by the gift.
"""

import logging

import numpy as np
from pandas import DataFrame, Index

from assumptions import (
    credited_amount,
    get_recipient_category_effects,
    get_recipient_from_combined,
)
from dataset import donation_year
from effects import (
    active_window,
    qalys_per_dollar_between,
    qalys_to_lives,
    select_effects_for_year,
)
from errors import DomainViolation
from validation import (
    assert_exists,
    assert_number,
    assert_positive_number,
    validate_effect,
    validate_global_parameters,
    validate_recipient,
)

logger = logging.getLogger(__name__)


def period_edges(time_limit, num_periods):
    return np.linspace(0, time_limit, num_periods + 1)


def lives_per_dollar_by_period(effect, params, edges):
    start, end = active_window(effect, params)
    return np.array(
        [
            qalys_to_lives(
                qalys_per_dollar_between(effect, params, max(start, a), min(end, b)),
                effect,
                params,
            )
            for a, b in zip(edges[:-1], edges[1:])
        ]
    )


def lives_saved_over_time(
    combined_assumptions, recipient_id, amount, year=None, num_periods=100
):
    """A `DataFrame` indexed by the start of each period (years after the gift).

    Columns are named "<category id>/<effect id>", then `total`. When `year` is
    given, effects not valid in that year are left out and a `year` column holds
    calendar years.
    """
    assert_positive_number(amount, "amount")
    assert_positive_number(num_periods, "numPeriods")
    if num_periods != int(num_periods):
        raise DomainViolation(
            "Field numPeriods must be a whole number, got: " + repr(num_periods)
        )

    params = validate_global_parameters(combined_assumptions.global_parameters)
    recipient = validate_recipient(
        get_recipient_from_combined(combined_assumptions, recipient_id), recipient_id
    )
    edges = period_edges(params.time_limit, int(num_periods))

    columns = {}
    for category_id, category_data in recipient.categories.items():
        context = (
            "for category " + str(category_id) + " in recipient " + str(recipient_id)
        )
        effects = get_recipient_category_effects(
            combined_assumptions, recipient_id, category_id
        )
        for index, effect in enumerate(effects):
            validate_effect(effect, context + " effect #" + str(index + 1))
        for effect in select_effects_for_year(effects, year, context):
            by_period = lives_per_dollar_by_period(effect, params, edges)
            columns[str(category_id) + "/" + str(effect.effect_id)] = (
                amount * category_data.fraction * by_period
            )

    frame = DataFrame(columns, index=Index(edges[:-1], name="year_offset"))
    frame["total"] = frame.sum(axis=1)
    if year is not None:
        assert_number(year, "year")
        frame.insert(0, "year", year + frame.index.to_numpy())

    logger.debug(
        "Timeline for %s: %d effects over %d periods",
        recipient_id,
        len(columns),
        len(frame),
    )
    return frame


def lives_saved_over_time_for_donation(combined_assumptions, donation, num_periods=100):
    assert_exists(donation, "donation")
    return lives_saved_over_time(
        combined_assumptions,
        donation.recipient_id,
        credited_amount(donation),
        donation_year(donation) if donation.date is not None else None,
        num_periods,
    )
