#!/usr/bin/env python3

"""Edits to a user's custom values.

Every function takes the current `UserAssumptions` (or None) and returns a new tree,
leaving its input untouched. A custom effect list that ends up equal to the baseline
list is dropped, and a tree with nothing left in it becomes None.
"""

from dataset import (
    CategoryOverride,
    Effect,
    RecipientCategoryOverride,
    RecipientEffectOverride,
    RecipientOverride,
    UserAssumptions,
)
from errors import DomainViolation, ReferentialIntegrityViolation
from global_params import normalize_parameter_keys, parameter_field_name
from utility import sanitize_keys, sanitize_label
from validation import validate_recipient_effect_override


def _parts(user_assumptions):
    if user_assumptions is None:
        return {}, {}, {}
    return (
        normalize_parameter_keys(user_assumptions.global_parameters or {}),
        dict(user_assumptions.categories or {}),
        dict(user_assumptions.recipients or {}),
    )


def _pruned(global_parameters, categories, recipients):
    if not global_parameters and not categories and not recipients:
        return None
    return UserAssumptions(
        global_parameters=global_parameters,
        categories=categories,
        recipients=recipients,
    )


# Global parameters


def set_global_parameter(user_assumptions, dataset, parameter_name, value):
    """A value of None or equal to the baseline clears the custom value."""
    field_name = parameter_field_name(parameter_name)
    if value is None or value == getattr(dataset.global_parameters, field_name):
        return clear_global_parameter(user_assumptions, field_name)
    global_parameters, categories, recipients = _parts(user_assumptions)
    global_parameters[field_name] = value
    return _pruned(global_parameters, categories, recipients)


def clear_global_parameter(user_assumptions, parameter_name):
    field_name = parameter_field_name(parameter_name)
    global_parameters, categories, recipients = _parts(user_assumptions)
    global_parameters.pop(field_name, None)
    return _pruned(global_parameters, categories, recipients)


def clear_all_global_parameters(user_assumptions):
    _, categories, recipients = _parts(user_assumptions)
    return _pruned({}, categories, recipients)


# Category effects


def _baseline_category_effect(dataset, category_id, effect_id):
    category = dataset.categories_by_id.get(category_id)
    if category is None:
        raise ReferentialIntegrityViolation(
            'Category "' + str(category_id) + '" not found'
        )
    for effect in category.effects or ():
        if effect.effect_id == effect_id:
            return effect
    raise ReferentialIntegrityViolation(
        "Effect " + str(effect_id) + " not found in category " + str(category_id)
    )


def _effect_field(field_name, value):
    field_name = sanitize_label(field_name)
    if field_name == "effect_id" or field_name not in Effect._fields:
        raise DomainViolation("Unknown effect field " + repr(field_name))
    if field_name == "disabled":
        value = bool(value)
    elif field_name == "valid_time_interval" and value is not None:
        value = tuple(value)
    return field_name, value


def _replace_effect(effects, effect_id, new_effect):
    if any(e.effect_id == effect_id for e in effects):
        return tuple(new_effect if e.effect_id == effect_id else e for e in effects)
    return tuple(effects) + (new_effect,)


def _current_category_effects(categories, dataset, category_id):
    if category_id in categories:
        return categories[category_id].effects
    return dataset.categories_by_id[category_id].effects


def _with_category_effects(user_assumptions, dataset, category_id, effects):
    global_parameters, categories, recipients = _parts(user_assumptions)
    if tuple(effects) == tuple(dataset.categories_by_id[category_id].effects):
        categories.pop(category_id, None)
    else:
        categories[category_id] = CategoryOverride(effects=tuple(effects))
    return _pruned(global_parameters, categories, recipients)


def set_category_field_value(
    user_assumptions, dataset, category_id, effect_id, field_name, value
):
    """Sets one field of a category effect in the custom effect list."""
    baseline_effect = _baseline_category_effect(dataset, category_id, effect_id)
    field_name, value = _effect_field(field_name, value)
    _, categories, _ = _parts(user_assumptions)
    effects = _current_category_effects(categories, dataset, category_id)
    current = next((e for e in effects if e.effect_id == effect_id), baseline_effect)
    return _with_category_effects(
        user_assumptions,
        dataset,
        category_id,
        _replace_effect(effects, effect_id, current._replace(**{field_name: value})),
    )


def set_category_effect(user_assumptions, dataset, category_id, effect_id, effect_data):
    """Replaces an effect with its baseline plus the fields in `effect_data`.

    Fields left out or None keep their baseline values. Keys starting with an
    underscore are editor state and are skipped.
    """
    baseline_effect = _baseline_category_effect(dataset, category_id, effect_id)
    fields = dict(
        _effect_field(k, v)
        for k, v in sanitize_keys(
            {k: v for k, v in effect_data.items() if not k.startswith("_")}
        ).items()
        if k != "effect_id" and v is not None
    )
    _, categories, _ = _parts(user_assumptions)
    effects = _current_category_effects(categories, dataset, category_id)
    return _with_category_effects(
        user_assumptions,
        dataset,
        category_id,
        _replace_effect(effects, effect_id, baseline_effect._replace(**fields)),
    )


def clear_category_custom_values(user_assumptions, category_id):
    global_parameters, categories, recipients = _parts(user_assumptions)
    categories.pop(category_id, None)
    return _pruned(global_parameters, categories, recipients)


# Recipient effect overrides


def _normalized_override(entry, category):
    base = None
    if category is not None:
        base = next(
            (e for e in category.effects or () if e.effect_id == entry.effect_id), None
        )
    overrides = {
        k: v
        for k, v in (entry.overrides or {}).items()
        if base is None or v != getattr(base, k, None)
    }
    multipliers = {k: v for k, v in (entry.multipliers or {}).items() if v != 1}
    if not overrides and not multipliers:
        if not entry.disabled:
            return None
        return entry._replace(overrides=None, multipliers={})
    return entry._replace(overrides=overrides or None, multipliers=multipliers or None)


def _normalized_overrides(effects, category):
    """`effects` without entries or values that leave the effect unchanged."""
    normalized = (_normalized_override(e, category) for e in effects or ())
    return tuple(e for e in normalized if e is not None)


def _baseline_recipient_category(dataset, recipient_id, category_id):
    recipient = dataset.recipients_by_id.get(recipient_id)
    if recipient is None:
        raise ReferentialIntegrityViolation(
            'Recipient "' + str(recipient_id) + '" not found'
        )
    category_data = recipient.categories.get(category_id)
    if category_data is None:
        raise ReferentialIntegrityViolation(
            "Recipient " + str(recipient_id) + " has no category " + str(category_id)
        )
    return category_data


def _current_recipient_overrides(recipients, dataset, recipient_id, category_id):
    recipient_override = recipients.get(recipient_id)
    if recipient_override is not None and category_id in recipient_override.categories:
        return recipient_override.categories[category_id].effects
    baseline = _baseline_recipient_category(dataset, recipient_id, category_id)
    return baseline.effects or ()


def _with_recipient_overrides(
    user_assumptions, dataset, recipient_id, category_id, effects
):
    global_parameters, categories, recipients = _parts(user_assumptions)
    baseline = _baseline_recipient_category(dataset, recipient_id, category_id)
    recipient_categories = (
        dict(recipients[recipient_id].categories) if recipient_id in recipients else {}
    )
    category = dataset.categories_by_id.get(category_id)
    if _normalized_overrides(effects, category) == _normalized_overrides(
        baseline.effects, category
    ):
        recipient_categories.pop(category_id, None)
    else:
        recipient_categories[category_id] = RecipientCategoryOverride(
            effects=tuple(effects)
        )

    if recipient_categories:
        recipients[recipient_id] = RecipientOverride(categories=recipient_categories)
    else:
        recipients.pop(recipient_id, None)
    return _pruned(global_parameters, categories, recipients)


def _set_recipient_field(
    user_assumptions,
    dataset,
    recipient_id,
    category_id,
    effect_id,
    field_name,
    form,
    value,
    unchanged,
):
    """Sets `field_name` in the `form` ("overrides" or "multipliers") of an override.

    The same field is removed from the other form, but an override still using the
    other form for other fields fails validation. An `unchanged` value removes the
    field instead, and an override left with nothing to do is dropped.
    """
    _baseline_recipient_category(dataset, recipient_id, category_id)
    _baseline_category_effect(dataset, category_id, effect_id)
    field_name = sanitize_label(field_name)
    other_form = "multipliers" if form == "overrides" else "overrides"

    _, _, recipients = _parts(user_assumptions)
    effects = _current_recipient_overrides(
        recipients, dataset, recipient_id, category_id
    )
    entry = next(
        (e for e in effects if e.effect_id == effect_id),
        RecipientEffectOverride(effect_id),
    )

    values = dict(getattr(entry, form) or {})
    other_values = dict(getattr(entry, other_form) or {})
    other_values.pop(field_name, None)
    if unchanged:
        values.pop(field_name, None)
    else:
        values[field_name] = value

    context = (
        "for effect "
        + str(effect_id)
        + " in recipient "
        + str(recipient_id)
        + " category "
        + str(category_id)
    )
    if not values and not other_values and not entry.disabled:
        effects = tuple(e for e in effects if e.effect_id != effect_id)
    else:
        entry = entry._replace(
            **{
                form: values if values or not other_values else None,
                other_form: other_values or None,
            }
        )
        validate_recipient_effect_override(entry, context)
        effects = _replace_effect(effects, effect_id, entry)

    return _with_recipient_overrides(
        user_assumptions, dataset, recipient_id, category_id, effects
    )


def set_recipient_field_override(
    user_assumptions, dataset, recipient_id, category_id, effect_id, field_name, value
):
    """A value equal to the category's baseline effect removes the override."""
    baseline_effect = _baseline_category_effect(dataset, category_id, effect_id)
    return _set_recipient_field(
        user_assumptions,
        dataset,
        recipient_id,
        category_id,
        effect_id,
        field_name,
        "overrides",
        value,
        unchanged=value == getattr(baseline_effect, sanitize_label(field_name), None),
    )


def set_recipient_field_multiplier(
    user_assumptions,
    dataset,
    recipient_id,
    category_id,
    effect_id,
    field_name,
    multiplier,
):
    """A multiplier of 1 removes the multiplier."""
    return _set_recipient_field(
        user_assumptions,
        dataset,
        recipient_id,
        category_id,
        effect_id,
        field_name,
        "multipliers",
        multiplier,
        unchanged=multiplier == 1,
    )


def clear_recipient_overrides(user_assumptions, recipient_id):
    global_parameters, categories, recipients = _parts(user_assumptions)
    recipients.pop(recipient_id, None)
    return _pruned(global_parameters, categories, recipients)


def clear_recipient_category_overrides(user_assumptions, recipient_id, category_id):
    global_parameters, categories, recipients = _parts(user_assumptions)
    if recipient_id in recipients:
        recipient_categories = dict(recipients[recipient_id].categories)
        recipient_categories.pop(category_id, None)
        if recipient_categories:
            recipients[recipient_id] = RecipientOverride(
                categories=recipient_categories
            )
        else:
            recipients.pop(recipient_id)
    return _pruned(global_parameters, categories, recipients)


def normalize_user_assumptions(user_assumptions, dataset):
    """Drops custom values that change nothing, such as saved copies of the baseline.

    Ids the baseline doesn't have are kept for `validate_user_assumptions` to report.
    """
    if user_assumptions is None:
        return None
    global_parameters, categories, recipients = _parts(user_assumptions)

    global_parameters = {
        k: v
        for k, v in global_parameters.items()
        if v is not None and v != getattr(dataset.global_parameters, k)
    }

    categories = {
        category_id: override
        for category_id, override in categories.items()
        if category_id not in dataset.categories_by_id
        or tuple(override.effects)
        != tuple(dataset.categories_by_id[category_id].effects)
    }

    normalized_recipients = {}
    for recipient_id, recipient_override in recipients.items():
        recipient = dataset.recipients_by_id.get(recipient_id)
        recipient_categories = {}
        for category_id, override in recipient_override.categories.items():
            category = dataset.categories_by_id.get(category_id)
            effects = _normalized_overrides(override.effects, category)
            baseline = (
                recipient.categories.get(category_id) if recipient is not None else None
            )
            if baseline is None or effects != _normalized_overrides(
                baseline.effects, category
            ):
                recipient_categories[category_id] = RecipientCategoryOverride(
                    effects=effects
                )
        if recipient_categories:
            normalized_recipients[recipient_id] = RecipientOverride(
                categories=recipient_categories
            )

    return _pruned(global_parameters, categories, normalized_recipients)
