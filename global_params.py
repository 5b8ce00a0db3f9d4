#!/usr/bin/env python3

from collections import namedtuple
from enum import Enum

from errors import DomainViolation
from utility import merge_dicts, sanitize_keys, sanitize_label

GlobalParameters = namedtuple(
    "GlobalParameters",
    "discount_rate population_growth_rate time_limit current_population population_limit years_per_life simple_animal_weight medium_animal_weight complex_animal_weight",
)

DEFAULTS = GlobalParameters(
    discount_rate=0.05,
    population_growth_rate=0.01,
    time_limit=100,
    current_population=8_000_000_000,
    population_limit=None,
    years_per_life=80,
    # Relative to humans = 1.0
    simple_animal_weight=0.01,
    medium_animal_weight=0.1,
    complex_animal_weight=0.3,
)

# Baseline data must supply these
REQUIRED_FIELDS = (
    "discount_rate",
    "population_growth_rate",
    "time_limit",
    "current_population",
    "years_per_life",
)

# Older data files call the time limit a time horizon
ALIASES = {"time_horizon": "time_limit"}


class TargetPopulation(Enum):
    HUMAN = "human"
    SIMPLE_ANIMAL = "simpleAnimal"
    MEDIUM_ANIMAL = "mediumAnimal"
    COMPLEX_ANIMAL = "complexAnimal"


def target_population_from_tag(tag):
    if isinstance(tag, TargetPopulation):
        return tag
    try:
        return TargetPopulation(tag)
    except ValueError:
        raise DomainViolation(
            "Unknown target population: "
            + repr(tag)
            + ". Valid options are: "
            + ", ".join(p.value for p in TargetPopulation)
        )


def population_weight(target_population, params):
    target = target_population_from_tag(target_population)
    if target is TargetPopulation.HUMAN:
        return 1.0
    elif target is TargetPopulation.SIMPLE_ANIMAL:
        return params.simple_animal_weight
    elif target is TargetPopulation.MEDIUM_ANIMAL:
        return params.medium_animal_weight
    elif target is TargetPopulation.COMPLEX_ANIMAL:
        return params.complex_animal_weight


def parameter_field_name(name):
    """`GlobalParameters` field for a camelCase, snake_case or aliased name."""
    field_name = sanitize_label(name)
    field_name = ALIASES.get(field_name, field_name)
    if field_name not in GlobalParameters._fields:
        raise DomainViolation("Unknown global parameter(s): " + field_name)
    return field_name


def normalize_parameter_keys(raw):
    """Takes camelCase or snake_case keys, resolves aliases, fails on unknown keys."""
    normalized = {ALIASES.get(k, k): v for k, v in sanitize_keys(raw).items()}
    unknown = set(normalized) - set(GlobalParameters._fields)
    if unknown:
        raise DomainViolation(
            "Unknown global parameter(s): " + ", ".join(sorted(unknown))
        )
    return normalized


def merge_global_parameters(baseline, overrides):
    """Shallow, field by field. Override fields that are None are ignored."""
    present = {
        k: v
        for k, v in normalize_parameter_keys(overrides or {}).items()
        if v is not None
    }
    if not present:
        return baseline
    return GlobalParameters(
        **merge_dicts([present, baseline._asdict()], no_clobber=False)
    )


def global_parameters_from_dict(raw):
    """Baseline global parameters as the data supplies them.

    Fields in `REQUIRED_FIELDS` that the data leaves out stay None so validation
    reports them. Only the population limit and the animal weights fall back to
    `DEFAULTS`, and an explicit `populationLimit: null` means no limit.
    """
    optional = {
        k: v for k, v in DEFAULTS._asdict().items() if k not in REQUIRED_FIELDS
    }
    missing = dict.fromkeys(REQUIRED_FIELDS)
    return merge_global_parameters(
        GlobalParameters(**merge_dicts([optional, missing])), raw
    )
