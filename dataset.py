#!/usr/bin/env python3

from collections import namedtuple
import datetime
import logging
import re

from errors import (
    MissingField,
    ReferentialIntegrityViolation,
    TypeMismatch,
)
from global_params import TargetPopulation, global_parameters_from_dict
from utility import sanitize_keys

logger = logging.getLogger(__name__)

# Records

Effect = namedtuple(
    "Effect",
    "effect_id start_time window_length cost_per_qaly cost_per_microprobability population_fraction_affected qaly_improvement_per_year target_population disabled valid_time_interval",
    defaults=(None, None, None, None, TargetPopulation.HUMAN.value, False, None),
)

# Fields a recipient may replace or scale
NUMERIC_EFFECT_FIELDS = (
    "start_time",
    "window_length",
    "cost_per_qaly",
    "cost_per_microprobability",
    "population_fraction_affected",
    "qaly_improvement_per_year",
)

Category = namedtuple("Category", "id name effects")

RecipientEffectOverride = namedtuple(
    "RecipientEffectOverride",
    "effect_id overrides multipliers disabled",
    defaults=(None, None, False),
)

RecipientCategory = namedtuple(
    "RecipientCategory", "fraction effects", defaults=(None,)
)

Recipient = namedtuple("Recipient", "id name categories")

Donor = namedtuple("Donor", "id name net_worth total_donated", defaults=(None,))

Donation = namedtuple(
    "Donation", "donor_id recipient_id amount date credit", defaults=(None,)
)

Dataset = namedtuple(
    "Dataset",
    "global_parameters categories_by_id recipients_by_id donors_by_id donations",
)

# User override trees. A missing key means "no override" for that entity.

CategoryOverride = namedtuple("CategoryOverride", "effects")

RecipientCategoryOverride = namedtuple("RecipientCategoryOverride", "effects")

RecipientOverride = namedtuple("RecipientOverride", "categories")

UserAssumptions = namedtuple(
    "UserAssumptions",
    "global_parameters categories recipients",
    defaults=(None, None, None),
)


# Loading from the JSON-shaped data contract. Values are checked in `validation`.


def _record_from_dict(record_type, raw, context):
    """The keys of `raw` that `record_type` has, renamed to snake_case.

    Compiled data also carries display fields (`content`, readable donor and
    recipient names, `source`, `notes`) that no calculation reads. Those are dropped.
    """
    if not isinstance(raw, dict):
        raise TypeMismatch(
            record_type.__name__
            + " "
            + context
            + " must be an object, got: "
            + type(raw).__name__
        )
    fields = sanitize_keys(raw)
    ignored = set(fields) - set(record_type._fields)
    if ignored:
        logger.debug(
            "Ignoring field(s) %s for %s %s",
            ", ".join(sorted(ignored)),
            record_type.__name__,
            context,
        )
    return {k: v for k, v in fields.items() if k in record_type._fields}


def effect_from_dict(raw, context=""):
    if raw is None:
        return None
    fields = _record_from_dict(Effect, raw, context)
    if fields.get("valid_time_interval") is not None:
        fields["valid_time_interval"] = tuple(fields["valid_time_interval"])
    fields.setdefault("effect_id", None)
    fields.setdefault("start_time", None)
    fields.setdefault("window_length", None)
    return Effect(**fields)


def _effects_from_list(raw, context):
    if not isinstance(raw, (list, tuple)):
        return raw
    return tuple(effect_from_dict(e, context) for e in raw)


def category_from_dict(category_id, raw):
    if raw is None:
        return None
    context = 'in category "' + category_id + '"'
    _record_from_dict(Category, raw, context)
    return Category(
        id=category_id,
        name=raw.get("name"),
        effects=_effects_from_list(raw.get("effects"), context),
    )


def recipient_effect_override_from_dict(raw, context=""):
    if raw is None:
        return None
    fields = _record_from_dict(RecipientEffectOverride, raw, context)
    for key in ("overrides", "multipliers"):
        if isinstance(fields.get(key), dict):
            fields[key] = sanitize_keys(fields[key])
    fields.setdefault("effect_id", None)
    return RecipientEffectOverride(**fields)


def recipient_effect_overrides_from_list(raw, context=""):
    if not isinstance(raw, (list, tuple)):
        return raw
    return tuple(recipient_effect_override_from_dict(e, context) for e in raw)


def recipient_category_from_dict(raw, context=""):
    if raw is None:
        return None
    fields = _record_from_dict(RecipientCategory, raw, context)
    return RecipientCategory(
        fraction=fields.get("fraction"),
        effects=recipient_effect_overrides_from_list(fields.get("effects"), context),
    )


def recipient_from_dict(recipient_id, raw):
    if raw is None:
        return None
    context = 'in recipient "' + recipient_id + '"'
    _record_from_dict(Recipient, raw, context)
    categories = raw.get("categories")
    if isinstance(categories, dict):
        categories = {
            category_id: recipient_category_from_dict(
                data, context + ' category "' + category_id + '"'
            )
            for category_id, data in categories.items()
        }
    return Recipient(id=recipient_id, name=raw.get("name"), categories=categories)


def donor_from_dict(donor_id, raw):
    if raw is None:
        return None
    fields = _record_from_dict(Donor, raw, 'for donor "' + donor_id + '"')
    fields["id"] = donor_id
    fields.setdefault("name", None)
    fields.setdefault("net_worth", None)
    return Donor(**fields)


def donation_from_dict(raw, index):
    if raw is None:
        return None
    fields = _record_from_dict(Donation, raw, "at index " + str(index))
    for key in ("donor_id", "recipient_id", "amount", "date"):
        fields.setdefault(key, None)
    return Donation(**fields)


def load_dataset(raw):
    """Builds a `Dataset` from the output of the data-compilation step."""
    return Dataset(
        global_parameters=global_parameters_from_dict(raw.get("globalParameters")),
        categories_by_id={
            k: category_from_dict(k, v)
            for k, v in (raw.get("categoriesById") or {}).items()
        },
        recipients_by_id={
            k: recipient_from_dict(k, v)
            for k, v in (raw.get("recipientsById") or {}).items()
        },
        donors_by_id={
            k: donor_from_dict(k, v) for k, v in (raw.get("donorsById") or {}).items()
        },
        donations=[
            donation_from_dict(d, i) for i, d in enumerate(raw.get("donations") or [])
        ],
    )


def _with_effects(entries):
    """Entries that carry an `effects` list. Anything else means "not customized"."""
    return {
        k: v
        for k, v in (entries or {}).items()
        if v is not None and v.get("effects") is not None
    }


def load_user_assumptions(raw):
    """Override trees only carry entries whose `effects` list is present."""
    if raw is None:
        return None

    categories = {
        category_id: CategoryOverride(
            effects=_effects_from_list(
                data["effects"], 'in custom category "' + category_id + '"'
            )
        )
        for category_id, data in _with_effects(raw.get("categories")).items()
    }

    recipients = {}
    for recipient_id, data in (raw.get("recipients") or {}).items():
        context = 'in custom recipient "' + recipient_id + '"'
        recipient_categories = {
            category_id: RecipientCategoryOverride(
                effects=recipient_effect_overrides_from_list(
                    category_data["effects"],
                    context + ' category "' + category_id + '"',
                )
            )
            for category_id, category_data in _with_effects(
                (data or {}).get("categories")
            ).items()
        }
        if recipient_categories:
            recipients[recipient_id] = RecipientOverride(
                categories=recipient_categories
            )

    return UserAssumptions(
        global_parameters=dict(raw.get("globalParameters") or {}),
        categories=categories,
        recipients=recipients,
    )


# Dates

YEAR_PATTERN = re.compile(r"^\s*(-?\d{4})")


def donation_year(donation):
    date = donation.date
    if date is None:
        raise MissingField(
            "Missing required field: donation.date for donation to "
            + str(donation.recipient_id)
        )
    if isinstance(date, (datetime.date, datetime.datetime)):
        return date.year
    if isinstance(date, str):
        match = YEAR_PATTERN.match(date)
        if match:
            return int(match.group(1))
    raise TypeMismatch(
        "Field donation.date must be an ISO date for donation to "
        + str(donation.recipient_id)
        + ", got: "
        + repr(date)
    )


# Lookups


def get_donations_for_donor(dataset, donor_id):
    if donor_id not in dataset.donors_by_id:
        raise ReferentialIntegrityViolation(
            "Invalid donor ID: " + str(donor_id) + ". This donor does not exist."
        )
    return [d for d in dataset.donations if d.donor_id == donor_id]


def get_donations_for_recipient(dataset, recipient_id):
    if recipient_id not in dataset.recipients_by_id:
        raise ReferentialIntegrityViolation(
            "Invalid recipient ID: "
            + str(recipient_id)
            + ". This recipient does not exist."
        )
    return [d for d in dataset.donations if d.recipient_id == recipient_id]
