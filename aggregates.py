#!/usr/bin/env python3

from collections import namedtuple
import logging

from pandas import DataFrame

from assumptions import (
    calculate_lives_saved_for_donation_from_combined,
    credited_amount,
    get_category_from_combined,
    get_cost_per_life_for_recipient_from_combined,
    get_cost_per_life_from_combined,
    get_recipient_from_combined,
)
from dataset import get_donations_for_recipient
from utility import keys_sorted_by_value
from validation import assert_fractions_sum_to_one, crash_instead_of_fallback

logger = logging.getLogger(__name__)

RecipientStats = namedtuple(
    "RecipientStats",
    "id name primary_category_id primary_category_name category_names total_received cost_per_life total_lives_saved",
)

CategoryStats = namedtuple(
    "CategoryStats", "id name cost_per_life total_donated total_lives_saved"
)

CategoryShare = namedtuple("CategoryShare", "category_id fraction effects")


# Recipient categories


def get_category_breakdown(combined_assumptions, recipient_id):
    """The recipient's categories, largest fraction first."""
    recipient = get_recipient_from_combined(combined_assumptions, recipient_id)
    if not recipient.categories:
        crash_instead_of_fallback(
            "No categories found for recipient " + str(recipient_id)
        )
    fractions = {k: v.fraction for k, v in recipient.categories.items()}
    return [
        CategoryShare(k, fractions[k], recipient.categories[k].effects)
        for k in keys_sorted_by_value(fractions, reverse=True)
    ]


def get_primary_category_id(combined_assumptions, recipient_id):
    """The category with the largest fraction; the first listed wins ties."""
    recipient = get_recipient_from_combined(combined_assumptions, recipient_id)
    primary_category_id = None
    max_fraction = None
    for category_id, category_data in (recipient.categories or {}).items():
        if max_fraction is None or category_data.fraction > max_fraction:
            max_fraction = category_data.fraction
            primary_category_id = category_id
    if primary_category_id is None:
        crash_instead_of_fallback(
            "No categories found for recipient " + str(recipient_id)
        )
    return primary_category_id


# Rollups


def _category_name(combined_assumptions, category_id):
    return get_category_from_combined(combined_assumptions, category_id).name


def calculate_recipient_stats(combined_assumptions, dataset, year=None):
    """One row per recipient.

    `cost_per_life` is for gifts made in `year`. Lives saved use each donation's
    own year.
    """
    stats = []
    for recipient_id, recipient in combined_assumptions.recipients.items():
        donations = get_donations_for_recipient(dataset, recipient_id)
        primary_category_id = get_primary_category_id(
            combined_assumptions, recipient_id
        )
        breakdown = get_category_breakdown(combined_assumptions, recipient_id)
        stats.append(
            RecipientStats(
                id=recipient_id,
                name=recipient.name,
                primary_category_id=primary_category_id,
                primary_category_name=_category_name(
                    combined_assumptions, primary_category_id
                ),
                category_names=[
                    _category_name(combined_assumptions, share.category_id)
                    for share in breakdown
                ],
                total_received=sum(credited_amount(d) for d in donations),
                cost_per_life=get_cost_per_life_for_recipient_from_combined(
                    combined_assumptions, recipient_id, year
                ),
                total_lives_saved=sum(
                    calculate_lives_saved_for_donation_from_combined(
                        combined_assumptions, d
                    )
                    for d in donations
                ),
            )
        )
    logger.debug("Calculated stats for %d recipients", len(stats))
    return stats


def calculate_category_stats(combined_assumptions, dataset, year=None):
    """Credited money and lives saved per category.

    Each donation is split across its recipient's categories by fraction, so the
    category totals add up to the donation totals.
    """
    totals = {category_id: 0 for category_id in combined_assumptions.categories}
    lives = {category_id: 0 for category_id in combined_assumptions.categories}

    for recipient_id, recipient in combined_assumptions.recipients.items():
        total_fraction = assert_fractions_sum_to_one(recipient, recipient_id)
        for donation in get_donations_for_recipient(dataset, recipient_id):
            amount = credited_amount(donation)
            lives_saved = calculate_lives_saved_for_donation_from_combined(
                combined_assumptions, donation
            )
            for category_id, category_data in recipient.categories.items():
                share = category_data.fraction / total_fraction
                totals[category_id] += amount * share
                lives[category_id] += lives_saved * share

    stats = [
        CategoryStats(
            id=category_id,
            name=category.name,
            cost_per_life=get_cost_per_life_from_combined(
                combined_assumptions, category_id, year
            ),
            total_donated=totals[category_id],
            total_lives_saved=lives[category_id],
        )
        for category_id, category in combined_assumptions.categories.items()
    ]
    logger.debug("Calculated stats for %d categories", len(stats))
    return stats


def stats_to_frame(stats):
    """Any list of stat records as a table indexed by id."""
    if not stats:
        return DataFrame()
    return DataFrame([s._asdict() for s in stats]).set_index("id")
