#!/usr/bin/env python3

"""Baseline data merged with a user's custom values, and the questions asked of it.

A `CombinedAssumptions` snapshot is rebuilt whenever the custom values change and is
never modified afterwards, so every query here is a pure function of its arguments.
"""

from collections import namedtuple
import logging
from math import inf

from constants import SIMULATION_AMOUNT
from dataset import donation_year, get_donations_for_donor
from effects import apply_recipient_effects, calculate_cost_per_life
from errors import ReferentialIntegrityViolation
from global_params import (
    merge_global_parameters,
    normalize_parameter_keys,
    parameter_field_name,
)
from validation import (
    assert_exists,
    assert_non_zero_number,
    assert_positive_number,
    crash_instead_of_fallback,
    validate_recipient,
)

logger = logging.getLogger(__name__)

CombinedAssumptions = namedtuple(
    "CombinedAssumptions", "global_parameters categories recipients"
)

DonorStats = namedtuple(
    "DonorStats",
    "id name net_worth total_donated known_donations total_donated_field total_lives_saved unknown_lives_saved cost_per_life rank",
)


# Building


def category_override(user_assumptions, category_id):
    if user_assumptions is None or not user_assumptions.categories:
        return None
    return user_assumptions.categories.get(category_id)


def recipient_category_override(user_assumptions, recipient_id, category_id):
    if user_assumptions is None or not user_assumptions.recipients:
        return None
    recipient_override = user_assumptions.recipients.get(recipient_id)
    if recipient_override is None:
        return None
    return recipient_override.categories.get(category_id)


def _combine_recipient(recipient, user_assumptions):
    categories = {}
    for category_id, category_data in recipient.categories.items():
        override = recipient_category_override(
            user_assumptions, recipient.id, category_id
        )
        categories[category_id] = (
            category_data
            if override is None
            else category_data._replace(effects=override.effects)
        )
    return recipient._replace(categories=categories)


def create_combined_assumptions(dataset, user_assumptions=None):
    """Custom effect lists replace baseline lists wholesale. Global parameters merge.

    Does not validate. Baseline data is checked by `validation.validate_dataset` at
    startup and custom values by `validation.validate_user_assumptions` when they are
    entered.
    """
    global_parameters = merge_global_parameters(
        dataset.global_parameters,
        user_assumptions.global_parameters if user_assumptions is not None else None,
    )

    categories = {}
    for category_id, category in dataset.categories_by_id.items():
        override = category_override(user_assumptions, category_id)
        categories[category_id] = (
            category
            if override is None
            else category._replace(effects=override.effects)
        )

    recipients = {
        recipient_id: _combine_recipient(recipient, user_assumptions)
        for recipient_id, recipient in dataset.recipients_by_id.items()
    }

    logger.debug(
        "Combined assumptions: %d categories (%d customized), "
        "%d recipients (%d customized)",
        len(categories),
        len(get_customized_categories(user_assumptions)),
        len(recipients),
        len(get_customized_recipients(user_assumptions)),
    )
    return CombinedAssumptions(global_parameters, categories, recipients)


# Lookups


def get_category_from_combined(combined_assumptions, category_id):
    assert_exists(combined_assumptions, "combinedAssumptions")
    assert_exists(category_id, "categoryId")
    category = combined_assumptions.categories.get(category_id)
    if category is None:
        raise ReferentialIntegrityViolation(
            "Category " + str(category_id) + " not found in combined assumptions"
        )
    return category


def get_recipient_from_combined(combined_assumptions, recipient_id):
    assert_exists(combined_assumptions, "combinedAssumptions")
    assert_exists(recipient_id, "recipientId")
    recipient = combined_assumptions.recipients.get(recipient_id)
    if recipient is None:
        raise ReferentialIntegrityViolation(
            "Recipient " + str(recipient_id) + " not found in combined assumptions"
        )
    return recipient


def get_recipient_category_effects(combined_assumptions, recipient_id, category_id):
    """The category's effects after the recipient's overrides or multipliers."""
    recipient = get_recipient_from_combined(combined_assumptions, recipient_id)
    category_data = recipient.categories.get(category_id)
    if category_data is None:
        raise ReferentialIntegrityViolation(
            "Recipient " + str(recipient_id) + " has no category " + str(category_id)
        )
    category = get_category_from_combined(combined_assumptions, category_id)
    return apply_recipient_effects(
        category.effects,
        category_data.effects,
        "for recipient " + str(recipient_id) + " category " + str(category_id),
    )


# Cost per life


def get_cost_per_life_from_combined(combined_assumptions, category_id, year=None):
    category = get_category_from_combined(combined_assumptions, category_id)
    return calculate_cost_per_life(
        category.effects,
        combined_assumptions.global_parameters,
        year,
        'in category "' + str(category_id) + '"',
    )


def get_recipient_category_cost_per_life(
    combined_assumptions, recipient_id, category_id, year=None
):
    return calculate_cost_per_life(
        get_recipient_category_effects(combined_assumptions, recipient_id, category_id),
        combined_assumptions.global_parameters,
        year,
        "for category " + str(category_id) + " in recipient " + str(recipient_id),
    )


def get_cost_per_life_for_recipient_from_combined(
    combined_assumptions, recipient_id, year=None
):
    """Blends categories by spending `SIMULATION_AMOUNT` split by fraction."""
    recipient = get_recipient_from_combined(combined_assumptions, recipient_id)
    # Also rejects fractions that don't sum to 1
    validate_recipient(recipient, recipient_id)

    total_lives_saved = 0
    for category_id, category_data in recipient.categories.items():
        weight = category_data.fraction
        cost_per_life = get_recipient_category_cost_per_life(
            combined_assumptions, recipient_id, category_id, year
        )
        # A category that saves nothing within the time limit (infinite cost) adds 0
        total_lives_saved += SIMULATION_AMOUNT * weight / cost_per_life

    if total_lives_saved == 0:
        crash_instead_of_fallback(
            "No lives saved by any category of recipient " + str(recipient_id)
        )
    return assert_non_zero_number(
        SIMULATION_AMOUNT / total_lives_saved,
        "costPerLife",
        "for recipient " + str(recipient_id),
    )


# Lives saved


def credited_amount(donation):
    """The part of a donation attributed to its donor."""
    credit = 1
    if donation.credit is not None:
        credit = assert_positive_number(donation.credit, "donation.credit")
    return donation.amount * credit


def calculate_lives_saved_for_donation_from_combined(combined_assumptions, donation):
    assert_exists(donation, "donation")
    assert_exists(donation.recipient_id, "donation.recipientId")
    assert_positive_number(donation.amount, "donation.amount")

    year = donation_year(donation) if donation.date is not None else None
    cost_per_life = get_cost_per_life_for_recipient_from_combined(
        combined_assumptions, donation.recipient_id, year
    )
    return credited_amount(donation) / cost_per_life


def calculate_lives_saved_for_category_from_combined(
    combined_assumptions, category_id, amount, year=None
):
    assert_positive_number(amount, "amount")
    cost_per_life = get_cost_per_life_from_combined(
        combined_assumptions, category_id, year
    )
    return amount / cost_per_life


# Donors


def _donor_stats(combined_assumptions, dataset, donor_id, donor):
    known_donations = 0
    total_lives_saved = 0
    for donation in get_donations_for_donor(dataset, donor_id):
        known_donations += credited_amount(donation)
        total_lives_saved += calculate_lives_saved_for_donation_from_combined(
            combined_assumptions, donation
        )

    total_donated = known_donations
    total_donated_field = None
    unknown_lives_saved = 0

    # Giving we know the total of but not where it went
    if donor.total_donated is not None and donor.total_donated > known_donations:
        total_donated_field = donor.total_donated
        unknown_amount = donor.total_donated - known_donations
        if known_donations > 0 and total_lives_saved != 0:
            average_cost_per_life = known_donations / total_lives_saved
            unknown_lives_saved = unknown_amount / average_cost_per_life
            total_lives_saved += unknown_lives_saved
        total_donated = donor.total_donated

    return DonorStats(
        id=donor_id,
        name=donor.name,
        net_worth=donor.net_worth,
        total_donated=total_donated,
        known_donations=known_donations,
        total_donated_field=total_donated_field,
        total_lives_saved=total_lives_saved,
        unknown_lives_saved=unknown_lives_saved,
        # Only for display; nothing downstream divides by it
        cost_per_life=(
            total_donated / total_lives_saved if total_lives_saved != 0 else inf
        ),
        rank=None,
    )


def calculate_donor_stats_from_combined(combined_assumptions, dataset):
    """Donors who gave anything, most lives saved first, with 1-based ranks."""
    assert_exists(combined_assumptions, "combinedAssumptions")
    stats = [
        _donor_stats(combined_assumptions, dataset, donor_id, donor)
        for donor_id, donor in dataset.donors_by_id.items()
    ]
    ranked = sorted(
        (s for s in stats if s.total_donated > 0),
        key=lambda s: s.total_lives_saved,
        reverse=True,
    )
    return [s._replace(rank=i + 1) for i, s in enumerate(ranked)]


# Which custom values are in effect


def is_category_customized(user_assumptions, category_id):
    return category_override(user_assumptions, category_id) is not None


def is_recipient_category_customized(user_assumptions, recipient_id, category_id):
    return (
        recipient_category_override(user_assumptions, recipient_id, category_id)
        is not None
    )


def get_customized_global_parameters(user_assumptions):
    """Field names, aliases resolved, of the global parameters given a value."""
    if user_assumptions is None or not user_assumptions.global_parameters:
        return []
    return [
        k
        for k, v in normalize_parameter_keys(user_assumptions.global_parameters).items()
        if v is not None
    ]


def is_global_parameter_customized(user_assumptions, parameter_name):
    return parameter_field_name(parameter_name) in get_customized_global_parameters(
        user_assumptions
    )


def get_customized_categories(user_assumptions):
    if user_assumptions is None or not user_assumptions.categories:
        return []
    return list(user_assumptions.categories)


def get_customized_recipients(user_assumptions):
    if user_assumptions is None or not user_assumptions.recipients:
        return []
    return list(user_assumptions.recipients)
