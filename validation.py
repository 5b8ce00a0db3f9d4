#!/usr/bin/env python3

"""Assertions that crash instead of silently computing wrong answers.

Every `assert_*` primitive returns its value unchanged when it is acceptable and
raises a subclass of `errors.ImpactDataError` naming the field and context
otherwise. Nothing in here substitutes a default.
"""

from collections.abc import Mapping
import logging
from math import isnan
from numbers import Real

from constants import WEIGHT_NORMALIZATION_TOLERANCE
from dataset import NUMERIC_EFFECT_FIELDS, Category, donation_year
from errors import (
    DomainViolation,
    ImpactDataError,
    MissingField,
    ReferentialIntegrityViolation,
    SilentFailurePrevented,
    StartupValidationError,
    TypeMismatch,
)
from global_params import TargetPopulation, merge_global_parameters

logger = logging.getLogger(__name__)


def _in(context):
    return " " + context if context else ""


# Primitives


def assert_exists(value, field_name, context=""):
    if value is None:
        raise MissingField("Missing required field: " + field_name + _in(context))
    return value


def is_number(value):
    return isinstance(value, Real) and not isinstance(value, bool) and not isnan(value)


def assert_number(value, field_name, context=""):
    assert_exists(value, field_name, context)
    if not is_number(value):
        raise TypeMismatch(
            "Field "
            + field_name
            + " must be a valid number"
            + _in(context)
            + ", got: "
            + repr(value)
            + " (type: "
            + type(value).__name__
            + ")"
        )
    return value


def assert_positive_number(value, field_name, context=""):
    assert_number(value, field_name, context)
    if value <= 0:
        raise DomainViolation(
            "Field "
            + field_name
            + " must be positive"
            + _in(context)
            + ", got: "
            + repr(value)
        )
    return value


def assert_non_negative_number(value, field_name, context=""):
    assert_number(value, field_name, context)
    if value < 0:
        raise DomainViolation(
            "Field "
            + field_name
            + " cannot be negative"
            + _in(context)
            + ", got: "
            + repr(value)
        )
    return value


def assert_non_zero_number(value, field_name, context=""):
    assert_number(value, field_name, context)
    if value == 0:
        raise DomainViolation(
            "Field "
            + field_name
            + " cannot be zero"
            + _in(context)
            + ", got: "
            + repr(value)
        )
    return value


def assert_array(value, field_name, context=""):
    assert_exists(value, field_name, context)
    if not isinstance(value, (list, tuple)) or hasattr(value, "_fields"):
        raise TypeMismatch(
            "Field "
            + field_name
            + " must be an array"
            + _in(context)
            + ", got: "
            + type(value).__name__
        )
    return value


def assert_non_empty_array(value, field_name, context=""):
    assert_array(value, field_name, context)
    if len(value) == 0:
        raise DomainViolation("Field " + field_name + " cannot be empty" + _in(context))
    return value


def assert_object(value, field_name, context=""):
    """Mappings and records count as objects; sequences and scalars do not."""
    assert_exists(value, field_name, context)
    if not (isinstance(value, Mapping) or hasattr(value, "_fields")):
        raise TypeMismatch(
            "Field "
            + field_name
            + " must be an object"
            + _in(context)
            + ", got: "
            + type(value).__name__
        )
    return value


def crash_instead_of_fallback(message):
    raise SilentFailurePrevented(message)


def assert_target_population(value, field_name, context=""):
    assert_exists(value, field_name, context)
    valid = [p.value for p in TargetPopulation]
    if not (isinstance(value, TargetPopulation) or value in valid):
        raise DomainViolation(
            "Field "
            + field_name
            + " must be one of "
            + ", ".join(valid)
            + _in(context)
            + ", got: "
            + repr(value)
        )
    return value


# Structural validators


def validate_effect(effect, context=""):
    assert_object(effect, "effect", context)

    assert_exists(effect.effect_id, "effectId", context)
    assert_number(effect.start_time, "startTime", context)
    assert_non_negative_number(effect.window_length, "windowLength", context)
    assert_target_population(effect.target_population, "targetPopulation", context)

    if not isinstance(effect.disabled, bool):
        raise TypeMismatch("Field disabled must be a boolean" + _in(context))

    has_cost_per_qaly = effect.cost_per_qaly is not None
    has_cost_per_microprobability = effect.cost_per_microprobability is not None

    if not has_cost_per_qaly and not has_cost_per_microprobability:
        raise MissingField(
            "Effect"
            + _in(context)
            + " must have either costPerQALY or costPerMicroprobability"
        )
    if has_cost_per_qaly and has_cost_per_microprobability:
        raise DomainViolation(
            "Effect"
            + _in(context)
            + " must have only one of costPerQALY or costPerMicroprobability"
        )

    if has_cost_per_qaly:
        assert_non_zero_number(effect.cost_per_qaly, "costPerQALY", context)
    else:
        assert_non_zero_number(
            effect.cost_per_microprobability, "costPerMicroprobability", context
        )
        fraction = assert_positive_number(
            effect.population_fraction_affected, "populationFractionAffected", context
        )
        if fraction > 1:
            raise DomainViolation(
                "Field populationFractionAffected"
                + _in(context)
                + " must be at most 1, got: "
                + repr(fraction)
            )
        assert_non_zero_number(
            effect.qaly_improvement_per_year, "qalyImprovementPerYear", context
        )

    if effect.valid_time_interval is not None:
        validate_time_interval(effect.valid_time_interval, context)

    return effect


def validate_time_interval(interval, context=""):
    assert_array(interval, "validTimeInterval", context)
    if len(interval) != 2:
        raise DomainViolation(
            "Field validTimeInterval"
            + _in(context)
            + " must have a start and an end year"
        )
    start, end = interval
    for year in (start, end):
        if year is not None:
            assert_number(year, "validTimeInterval", context)
    if start is not None and end is not None and start > end:
        raise DomainViolation(
            "Field validTimeInterval"
            + _in(context)
            + " starts after it ends, got: "
            + repr(tuple(interval))
        )
    return interval


def _assert_unique_effect_ids(effects, context):
    seen = set()
    for effect in effects:
        if effect.effect_id in seen:
            raise DomainViolation(
                "Duplicate effectId " + repr(effect.effect_id) + _in(context)
            )
        seen.add(effect.effect_id)


def validate_category(category, category_id):
    context = 'in category "' + category_id + '"'

    assert_object(category, "category", context)
    assert_exists(category.name, "name", context)
    assert_non_empty_array(category.effects, "effects", context)

    for index, effect in enumerate(category.effects):
        validate_effect(effect, context + " effect #" + str(index + 1))
    _assert_unique_effect_ids(category.effects, context)

    return category


def validate_recipient_effect_override(override, context=""):
    assert_object(override, "effect", context)
    assert_exists(override.effect_id, "effectId", context)

    has_overrides = isinstance(override.overrides, Mapping)
    has_multipliers = isinstance(override.multipliers, Mapping)

    if not has_overrides and not has_multipliers:
        raise MissingField(
            "Effect"
            + _in(context)
            + " must have either overrides or multipliers object"
        )
    if has_overrides and has_multipliers:
        raise DomainViolation(
            "Effect" + _in(context) + " must not have both overrides and multipliers"
        )

    values = override.overrides if has_overrides else override.multipliers
    for field_name, value in values.items():
        if field_name not in NUMERIC_EFFECT_FIELDS:
            raise DomainViolation(
                "Unknown effect field " + repr(field_name) + _in(context)
            )
        if has_overrides:
            assert_number(value, "overrides." + field_name, context)
        else:
            assert_non_zero_number(value, "multipliers." + field_name, context)

    if not isinstance(override.disabled, bool):
        raise TypeMismatch("Field disabled must be a boolean" + _in(context))

    return override


def validate_recipient_category(category_data, recipient_id, category_id):
    context = 'in recipient "' + recipient_id + '" category "' + category_id + '"'

    assert_object(category_data, "category", context)
    fraction = assert_number(category_data.fraction, "fraction", context)
    if fraction <= 0 or fraction > 1:
        raise DomainViolation(
            "Field fraction"
            + _in(context)
            + " must be between 0 and 1, got: "
            + repr(fraction)
        )

    if category_data.effects is not None:
        assert_array(category_data.effects, "effects", context)
        for index, override in enumerate(category_data.effects):
            validate_recipient_effect_override(
                override, context + " effect #" + str(index + 1)
            )
        _assert_unique_effect_ids(category_data.effects, context)

    return category_data


def assert_fractions_sum_to_one(recipient, recipient_id):
    total_fraction = sum(c.fraction for c in recipient.categories.values())
    if abs(total_fraction - 1) > WEIGHT_NORMALIZATION_TOLERANCE:
        raise DomainViolation(
            'Category fractions for recipient "'
            + str(recipient_id)
            + '" do not sum to 1 (total: '
            + repr(total_fraction)
            + ")"
        )
    return total_fraction


def validate_recipient(recipient, recipient_id):
    context = 'in recipient "' + recipient_id + '"'

    assert_object(recipient, "recipient", context)
    assert_exists(recipient.name, "name", context)
    assert_object(recipient.categories, "categories", context)

    if len(recipient.categories) == 0:
        raise DomainViolation(
            "Recipient" + _in(context) + " must have at least one category"
        )

    for category_id, category_data in recipient.categories.items():
        validate_recipient_category(category_data, recipient_id, category_id)
    assert_fractions_sum_to_one(recipient, recipient_id)

    return recipient


def validate_global_parameters(params):
    context = "in globalParameters"
    assert_object(params, "globalParameters")

    assert_non_negative_number(params.discount_rate, "discountRate", context)
    growth = assert_number(
        params.population_growth_rate, "populationGrowthRate", context
    )
    if growth <= -1:
        raise DomainViolation(
            "Field populationGrowthRate "
            + context
            + " must be greater than -1, got: "
            + repr(growth)
        )
    assert_positive_number(params.time_limit, "timeLimit", context)
    assert_positive_number(params.current_population, "currentPopulation", context)
    if params.population_limit is not None:
        assert_non_negative_number(params.population_limit, "populationLimit", context)
    assert_positive_number(params.years_per_life, "yearsPerLife", context)
    assert_non_negative_number(
        params.simple_animal_weight, "simpleAnimalWeight", context
    )
    assert_non_negative_number(
        params.medium_animal_weight, "mediumAnimalWeight", context
    )
    assert_non_negative_number(
        params.complex_animal_weight, "complexAnimalWeight", context
    )

    return params


def validate_donor(donor, donor_id):
    assert_exists(donor, "donor", 'with ID "' + donor_id + '"')
    context = 'for donor "' + donor_id + '"'
    assert_exists(donor.name, "donor.name", context)
    assert_positive_number(donor.net_worth, "donor.netWorth", context)
    if donor.total_donated is not None:
        assert_positive_number(donor.total_donated, "donor.totalDonated", context)
    return donor


def validate_donation(donation, index):
    assert_exists(donation, "donation", "at index " + str(index))
    context = "for donation at index " + str(index)
    assert_exists(donation.donor_id, "donation.donorId", context)
    assert_exists(donation.recipient_id, "donation.recipientId", context)
    assert_exists(donation.date, "donation.date", context)
    donation_year(donation)
    assert_positive_number(donation.amount, "donation.amount", context)
    if donation.credit is not None:
        assert_positive_number(donation.credit, "donation.credit", context)
    return donation


# Referential validators


def validate_override_references(overrides, category, context):
    effect_ids = {effect.effect_id for effect in category.effects}
    for override in overrides or ():
        if override.effect_id not in effect_ids:
            raise ReferentialIntegrityViolation(
                "Effect override "
                + context
                + ' references non-existent effect "'
                + str(override.effect_id)
                + '" of category "'
                + str(category.id)
                + '"'
            )


def validate_recipient_references(recipient, recipient_id, categories_by_id):
    for category_id, category_data in recipient.categories.items():
        category = categories_by_id.get(category_id)
        if category is None:
            raise ReferentialIntegrityViolation(
                'Recipient "'
                + recipient_id
                + '" references non-existent category "'
                + category_id
                + '"'
            )
        validate_override_references(
            category_data.effects,
            category,
            'in recipient "' + recipient_id + '" category "' + category_id + '"',
        )
    return recipient


def validate_donation_references(donation, index, donors_by_id, recipients_by_id):
    if donation.donor_id not in donors_by_id:
        raise ReferentialIntegrityViolation(
            "Donation at index "
            + str(index)
            + ' references non-existent donor "'
            + str(donation.donor_id)
            + '"'
        )
    if donation.recipient_id not in recipients_by_id:
        raise ReferentialIntegrityViolation(
            "Donation at index "
            + str(index)
            + ' references non-existent recipient "'
            + str(donation.recipient_id)
            + '"'
        )
    return donation


# Startup pass


def _collect(errors, prefix, check):
    try:
        check()
        return True
    except ImpactDataError as e:
        errors.append(prefix + ": " + str(e))
        return False


def validate_dataset(dataset):
    """Runs every structural and referential check and reports all violations."""
    errors = []

    _collect(
        errors,
        "Global parameter validation failed",
        lambda: validate_global_parameters(dataset.global_parameters),
    )

    if not dataset.categories_by_id:
        errors.append("No categories found in categoriesById")
    valid_categories = {
        category_id: category
        for category_id, category in dataset.categories_by_id.items()
        if _collect(
            errors,
            'Category validation failed for "' + category_id + '"',
            lambda: validate_category(category, category_id),
        )
    }

    if not dataset.recipients_by_id:
        errors.append("No recipients found in recipientsById")
    for recipient_id, recipient in dataset.recipients_by_id.items():

        def check_recipient():
            validate_recipient(recipient, recipient_id)
            validate_recipient_references(recipient, recipient_id, valid_categories)

        _collect(
            errors,
            'Recipient validation failed for "' + recipient_id + '"',
            check_recipient,
        )

    for donor_id, donor in dataset.donors_by_id.items():
        _collect(
            errors,
            'Donor validation failed for "' + donor_id + '"',
            lambda: validate_donor(donor, donor_id),
        )

    for index, donation in enumerate(dataset.donations):

        def check_donation():
            validate_donation(donation, index)
            validate_donation_references(
                donation, index, dataset.donors_by_id, dataset.recipients_by_id
            )

        _collect(
            errors, "Donation validation failed at index " + str(index), check_donation
        )

    if errors:
        error = StartupValidationError(errors)
        logger.error("%s", error)
        raise error

    logger.info(
        "Validated %d categories, %d recipients, %d donors and %d donations",
        len(dataset.categories_by_id),
        len(dataset.recipients_by_id),
        len(dataset.donors_by_id),
        len(dataset.donations),
    )
    return dataset


def validate_user_assumptions(user_assumptions, dataset):
    """For override editors: checks custom values against the baseline."""
    if user_assumptions is None:
        return None

    validate_global_parameters(
        merge_global_parameters(
            dataset.global_parameters, user_assumptions.global_parameters
        )
    )

    categories = dict(dataset.categories_by_id)
    for category_id, override in (user_assumptions.categories or {}).items():
        baseline = categories.get(category_id)
        if baseline is None:
            raise ReferentialIntegrityViolation(
                'Custom values reference non-existent category "' + category_id + '"'
            )
        categories[category_id] = validate_category(
            Category(id=category_id, name=baseline.name, effects=override.effects),
            category_id,
        )

    for recipient_id, override in (user_assumptions.recipients or {}).items():
        recipient = dataset.recipients_by_id.get(recipient_id)
        if recipient is None:
            raise ReferentialIntegrityViolation(
                'Custom values reference non-existent recipient "' + recipient_id + '"'
            )
        for category_id, category_override in override.categories.items():
            category_data = recipient.categories.get(category_id)
            if category_data is None or category_id not in categories:
                raise ReferentialIntegrityViolation(
                    'Custom values for recipient "'
                    + recipient_id
                    + '" reference category "'
                    + category_id
                    + '" which the recipient is not in'
                )
            validate_recipient_category(
                category_data._replace(effects=category_override.effects),
                recipient_id,
                category_id,
            )
            validate_override_references(
                category_override.effects,
                categories[category_id],
                'in recipient "' + recipient_id + '" category "' + category_id + '"',
            )

    return user_assumptions
