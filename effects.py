#!/usr/bin/env python3

import logging
from math import inf

from constants import MICROPROBABILITY, SIMULATION_AMOUNT
from dataset import Effect
from discounting import discounted_integral, population_integral
from errors import ReferentialIntegrityViolation
from global_params import population_weight
from validation import (
    assert_non_empty_array,
    assert_non_zero_number,
    crash_instead_of_fallback,
    validate_effect,
    validate_global_parameters,
    validate_recipient_effect_override,
)

logger = logging.getLogger(__name__)


# Single effects


def active_window(effect, params):
    """The effect's [start, end) clipped to [0, time limit]."""
    start = max(effect.start_time, 0)
    end = min(effect.start_time + effect.window_length, params.time_limit)
    return start, end


def is_population_effect(effect):
    return effect.cost_per_microprobability is not None


def qalys_per_dollar(effect, params):
    """Discounted QALYs bought by each dollar spent on `effect`, before weighting."""
    start, end = active_window(effect, params)
    return qalys_per_dollar_between(effect, params, start, end)


def qalys_per_dollar_between(effect, params, start, end):
    """Like `qalys_per_dollar` but only counting years in [start, end)."""
    if is_population_effect(effect):
        people_affected_per_dollar = (
            MICROPROBABILITY
            / effect.cost_per_microprobability
            * effect.population_fraction_affected
            * params.current_population
        )
        return (
            people_affected_per_dollar
            * effect.qaly_improvement_per_year
            * population_integral(
                params.discount_rate,
                params.population_growth_rate,
                params.population_limit,
                start,
                end,
            )
        )
    else:
        discounted_years = discounted_integral(params.discount_rate, start, end)
        return discounted_years / effect.cost_per_qaly


def qalys_to_lives(qalys, effect, params):
    weight = population_weight(effect.target_population, params)
    return qalys * weight / params.years_per_life


def lives_per_dollar(effect, params):
    return qalys_to_lives(qalys_per_dollar(effect, params), effect, params)


# Effect lists


def is_valid_in_year(effect, year):
    if year is None or effect.valid_time_interval is None:
        return True
    start_year, end_year = effect.valid_time_interval
    return (start_year is None or start_year <= year) and (
        end_year is None or year < end_year
    )


def select_effects_for_year(effects, year=None, context=""):
    """Drops disabled effects, and effects not valid in `year` when it is given."""
    selected = [e for e in effects if not e.disabled and is_valid_in_year(e, year)]
    if not selected:
        crash_instead_of_fallback(
            "No active effects"
            + (" for year " + str(year) if year is not None else "")
            + (" " + context if context else "")
        )
    return selected


def calculate_cost_per_life(effects, params, year=None, context=""):
    """Dollars per life for a list of effects whose contributions add up.

    Returns `inf` when none of the effects produces anything inside the time limit.
    Negative results mean the effects cost lives.
    """
    assert_non_empty_array(effects, "effects", context)
    validate_global_parameters(params)
    for index, effect in enumerate(effects):
        validate_effect(
            effect, (context + " " if context else "") + "effect #" + str(index + 1)
        )

    total_lives = sum(
        lives_per_dollar(effect, params) * SIMULATION_AMOUNT
        for effect in select_effects_for_year(effects, year, context)
    )
    if total_lives == 0:
        logger.debug("No lives saved within the time limit %s", context)
        return inf

    cost_per_life = SIMULATION_AMOUNT / total_lives
    return assert_non_zero_number(cost_per_life, "costPerLife", context)


# Recipient modifications


def apply_recipient_effect(effect, override, context=""):
    """Replaces (`overrides`) or scales (`multipliers`) fields of a category effect."""
    validate_recipient_effect_override(override, context)
    if override.effect_id != effect.effect_id:
        raise ReferentialIntegrityViolation(
            'Effect override for "'
            + str(override.effect_id)
            + '" cannot apply to effect "'
            + str(effect.effect_id)
            + '"'
            + (" " + context if context else "")
        )

    if override.overrides is not None:
        modified = effect._replace(**override.overrides)
    else:
        scaled = {}
        for field_name, multiplier in override.multipliers.items():
            base_value = getattr(effect, field_name)
            if base_value is None:
                crash_instead_of_fallback(
                    "Cannot apply multiplier for "
                    + field_name
                    + " to effect "
                    + repr(effect.effect_id)
                    + " which has no "
                    + field_name
                    + (" " + context if context else "")
                )
            scaled[field_name] = base_value * multiplier
        modified = effect._replace(**scaled)

    if override.disabled:
        modified = modified._replace(disabled=True)
    return modified


def apply_recipient_effects(effects, overrides, context=""):
    """Applies each override to the effect with its id. Unmatched ids are errors."""
    if not overrides:
        return tuple(effects)

    effects_by_id = {effect.effect_id: effect for effect in effects}
    for override in overrides:
        if override.effect_id not in effects_by_id:
            raise ReferentialIntegrityViolation(
                'Effect "'
                + str(override.effect_id)
                + '" not found'
                + (" " + context if context else "")
            )

    overrides_by_id = {override.effect_id: override for override in overrides}
    return tuple(
        apply_recipient_effect(effect, overrides_by_id[effect.effect_id], context)
        if effect.effect_id in overrides_by_id
        else effect
        for effect in effects
    )


# Legacy flat cost-per-life values


def effect_to_cost_per_life(effect, params, year=None):
    return calculate_cost_per_life(
        [effect], params, year, "for effect " + repr(effect.effect_id)
    )


def cost_per_life_to_effect(cost_per_life, params, effect_id="user-override"):
    """Upgrades a flat cost-per-life figure to the equivalent one-year QALY effect."""
    assert_non_zero_number(cost_per_life, "costPerLife")
    return Effect(
        effect_id=effect_id,
        start_time=0,
        window_length=1,
        cost_per_qaly=cost_per_life / params.years_per_life,
    )
