"""Shared fixtures.

The default dataset uses zero discounting and zero growth so expected values can be
worked out by hand: one QALY at $40 with 10 years per life is $400 per life.
"""

import copy

import pytest

from assumptions import create_combined_assumptions
from dataset import Effect, load_dataset
from global_params import DEFAULTS

RAW_DATA = {
    "globalParameters": {
        "discountRate": 0,
        "populationGrowthRate": 0,
        "timeLimit": 100,
        "currentPopulation": 1_000_000,
        "yearsPerLife": 10,
    },
    "categoriesById": {
        "global-health": {
            "name": "Global Health",
            "effects": [
                {"effectId": "malaria", "startTime": 0, "windowLength": 1, "costPerQALY": 40}
            ],
        },
        "animal-welfare": {
            "name": "Animal Welfare",
            "effects": [
                {
                    "effectId": "cage-free",
                    "startTime": 0,
                    "windowLength": 1,
                    "costPerQALY": 4,
                    "targetPopulation": "simpleAnimal",
                }
            ],
        },
    },
    "recipientsById": {
        "health-charity": {
            "name": "Health Charity",
            "categories": {"global-health": {"fraction": 1}},
        },
        "mixed-charity": {
            "name": "Mixed Charity",
            "categories": {
                "global-health": {"fraction": 0.5},
                "animal-welfare": {"fraction": 0.5},
            },
        },
    },
    "donorsById": {
        "donor-a": {"name": "Donor A", "netWorth": 1_000_000_000},
        "donor-b": {"name": "Donor B", "netWorth": 50_000_000},
        "donor-c": {"name": "Donor C", "netWorth": 10_000_000},
    },
    "donations": [
        {"donorId": "donor-a", "recipientId": "health-charity", "amount": 4000, "date": "2020-01-01"},
        {"donorId": "donor-a", "recipientId": "mixed-charity", "amount": 2000, "date": "2021-05-05"},
        {
            "donorId": "donor-b",
            "recipientId": "health-charity",
            "amount": 8000,
            "date": "2022-07-01",
            "credit": 0.5,
        },
    ],
}


@pytest.fixture
def raw_data():
    """A fresh copy each time, so tests may edit it before loading."""
    return copy.deepcopy(RAW_DATA)


@pytest.fixture
def dataset(raw_data):
    return load_dataset(raw_data)


@pytest.fixture
def combined(dataset):
    return create_combined_assumptions(dataset)


@pytest.fixture
def params():
    return DEFAULTS._replace(
        discount_rate=0, population_growth_rate=0, current_population=1_000_000, years_per_life=10
    )


@pytest.fixture
def make_effect():
    def make(effect_id="effect", start_time=0, window_length=1, **fields):
        if "cost_per_microprobability" not in fields:
            fields.setdefault("cost_per_qaly", 40)
        return Effect(
            effect_id=effect_id, start_time=start_time, window_length=window_length, **fields
        )

    return make
