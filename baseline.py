#!/usr/bin/env python3

"""A small baseline shaped like the compiled data files, for demos and tests."""

from dataset import load_dataset

global_parameters_baseline = {
    "discountRate": 0.05,
    "populationGrowthRate": 0.01,
    "timeLimit": 100,
    "currentPopulation": 8_000_000_000,
    "populationLimit": 1.5,
    "yearsPerLife": 80,
    "simpleAnimalWeight": 0.01,
    "mediumAnimalWeight": 0.1,
    "complexAnimalWeight": 0.3,
}

categories_baseline = {
    "global-health": {
        "name": "Global Health",
        "effects": [
            {"effectId": "child-mortality", "startTime": 0, "windowLength": 50, "costPerQALY": 60},
            {"effectId": "income-gains", "startTime": 10, "windowLength": 40, "costPerQALY": 400},
        ],
    },
    "animal-welfare": {
        "name": "Animal Welfare",
        "effects": [
            {
                "effectId": "cage-free",
                "startTime": 1,
                "windowLength": 10,
                "costPerQALY": 0.5,
                "targetPopulation": "simpleAnimal",
            },
            {
                "effectId": "fish-stunning",
                "startTime": 2,
                "windowLength": 15,
                "costPerQALY": 2,
                "targetPopulation": "mediumAnimal",
                "validTimeInterval": [2020, None],
            },
        ],
    },
    "climate-change": {
        "name": "Climate Change",
        "effects": [
            {
                "effectId": "emissions-reduction",
                "startTime": 5,
                "windowLength": 90,
                "costPerMicroprobability": 25_000_000,
                "populationFractionAffected": 0.3,
                "qalyImprovementPerYear": 0.02,
            },
        ],
    },
    "biosecurity": {
        "name": "Biosecurity",
        "effects": [
            {
                "effectId": "pandemic-preparedness",
                "startTime": 3,
                "windowLength": 30,
                "costPerMicroprobability": 200_000_000,
                "populationFractionAffected": 1,
                "qalyImprovementPerYear": 0.1,
            },
        ],
    },
}

recipients_baseline = {
    "bednet-foundation": {
        "name": "Bednet Foundation",
        "categories": {"global-health": {"fraction": 1}},
    },
    "direct-cash": {
        "name": "Direct Cash",
        "categories": {
            "global-health": {
                "fraction": 1,
                "effects": [
                    {"effectId": "child-mortality", "multipliers": {"costPerQALY": 3}},
                    {"effectId": "income-gains", "overrides": {"windowLength": 30}},
                ],
            }
        },
    },
    "humane-campaigns": {
        "name": "Humane Campaigns",
        "categories": {"animal-welfare": {"fraction": 1}},
    },
    "clean-air-fund": {
        "name": "Clean Air Fund",
        "categories": {
            "climate-change": {"fraction": 0.8},
            "global-health": {
                "fraction": 0.2,
                "effects": [{"effectId": "income-gains", "disabled": True, "multipliers": {"costPerQALY": 1}}],
            },
        },
    },
    "pandemic-institute": {
        "name": "Pandemic Institute",
        "categories": {"biosecurity": {"fraction": 0.7}, "global-health": {"fraction": 0.3}},
    },
}

donors_baseline = {
    "ada-lovelace": {"name": "Ada Lovelace", "netWorth": 3_000_000_000, "totalDonated": 400_000_000},
    "grace-hopper": {"name": "Grace Hopper", "netWorth": 900_000_000},
    "alan-turing": {"name": "Alan Turing", "netWorth": 150_000_000},
}

donations_baseline = [
    {"donorId": "ada-lovelace", "recipientId": "bednet-foundation", "amount": 50_000_000, "date": "2019-03-01"},
    {"donorId": "ada-lovelace", "recipientId": "clean-air-fund", "amount": 120_000_000, "date": "2021-11-15"},
    {
        "donorId": "ada-lovelace",
        "recipientId": "pandemic-institute",
        "amount": 40_000_000,
        "date": "2022-06-30",
        "credit": 0.5,
    },
    {"donorId": "grace-hopper", "recipientId": "humane-campaigns", "amount": 10_000_000, "date": "2018-09-12"},
    {"donorId": "grace-hopper", "recipientId": "direct-cash", "amount": 25_000_000, "date": "2023-01-20"},
    {"donorId": "grace-hopper", "recipientId": "humane-campaigns", "amount": 5_000_000, "date": "2023-05-04"},
]


def baseline_data():
    """The raw data contract. A new dict each call, so callers may modify it."""
    return {
        "globalParameters": dict(global_parameters_baseline),
        "categoriesById": {k: dict(v) for k, v in categories_baseline.items()},
        "recipientsById": {k: dict(v) for k, v in recipients_baseline.items()},
        "donorsById": {k: dict(v) for k, v in donors_baseline.items()},
        "donations": [dict(d) for d in donations_baseline],
    }


def baseline_dataset():
    return load_dataset(baseline_data())
