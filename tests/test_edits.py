import copy

import pytest

from assumptions import (
    create_combined_assumptions,
    get_cost_per_life_from_combined,
    get_recipient_category_cost_per_life,
)
from baseline import baseline_dataset
from dataset import RecipientEffectOverride, load_user_assumptions
from edits import (
    clear_all_global_parameters,
    clear_category_custom_values,
    clear_global_parameter,
    clear_recipient_category_overrides,
    clear_recipient_overrides,
    normalize_user_assumptions,
    set_category_effect,
    set_category_field_value,
    set_global_parameter,
    set_recipient_field_multiplier,
    set_recipient_field_override,
)
from errors import DomainViolation, ReferentialIntegrityViolation
from validation import validate_user_assumptions


@pytest.fixture
def custom(dataset):
    """Custom values touching every part of the tree."""
    user = set_global_parameter(None, dataset, "discountRate", 0.03)
    user = set_category_field_value(
        user, dataset, "global-health", "malaria", "costPerQALY", 80
    )
    return set_recipient_field_multiplier(
        user, dataset, "mixed-charity", "animal-welfare", "cage-free", "costPerQALY", 2
    )


class TestGlobalParameters:
    def test_set(self, dataset):
        user = set_global_parameter(None, dataset, "timeLimit", 50)
        assert user.global_parameters == {"time_limit": 50}
        assert create_combined_assumptions(dataset, user).global_parameters.time_limit == 50

    def test_alias(self, dataset):
        user = set_global_parameter(None, dataset, "timeHorizon", 50)
        assert user.global_parameters == {"time_limit": 50}

    def test_baseline_value_clears(self, dataset):
        user = set_global_parameter(None, dataset, "timeLimit", 50)
        assert set_global_parameter(user, dataset, "timeLimit", 100) is None
        assert set_global_parameter(None, dataset, "timeLimit", 100) is None
        assert set_global_parameter(user, dataset, "timeLimit", None) is None

    def test_unknown_parameter(self, dataset):
        with pytest.raises(DomainViolation, match="interest_rate"):
            set_global_parameter(None, dataset, "interestRate", 0.1)

    def test_clear(self, custom):
        user = clear_global_parameter(custom, "discountRate")
        assert user.global_parameters == {}
        assert user.categories == custom.categories
        assert clear_all_global_parameters(custom) == user
        assert clear_global_parameter(None, "discountRate") is None

    def test_raw_keys_are_merged_with_edits(self, dataset):
        user = load_user_assumptions({"globalParameters": {"discountRate": 0.02}})
        user = set_global_parameter(user, dataset, "discount_rate", 0.04)
        assert user.global_parameters == {"discount_rate": 0.04}


class TestCategoryEffects:
    def test_set_field(self, dataset, custom):
        combined = create_combined_assumptions(
            dataset, clear_all_global_parameters(custom)
        )
        assert get_cost_per_life_from_combined(combined, "global-health") == pytest.approx(
            800
        )
        (effect,) = custom.categories["global-health"].effects
        assert (effect.effect_id, effect.start_time, effect.cost_per_qaly) == (
            "malaria",
            0,
            80,
        )

    def test_baseline_value_prunes(self, dataset):
        user = set_category_field_value(
            None, dataset, "global-health", "malaria", "costPerQALY", 80
        )
        user = set_category_field_value(
            user, dataset, "global-health", "malaria", "costPerQALY", 40
        )
        assert user is None

    def test_set_effect(self, dataset):
        user = set_category_effect(
            None,
            dataset,
            "global-health",
            "malaria",
            {"effectId": "malaria", "windowLength": 2, "costPerQALY": None, "_open": True},
        )
        (effect,) = user.categories["global-health"].effects
        assert (effect.window_length, effect.cost_per_qaly) == (2, 40)
        combined = create_combined_assumptions(dataset, user)
        assert get_cost_per_life_from_combined(combined, "global-health") == pytest.approx(
            200
        )

    def test_set_effect_to_baseline_prunes(self, dataset, custom):
        user = set_category_effect(custom, dataset, "global-health", "malaria", {})
        assert "global-health" not in user.categories
        assert user.global_parameters == custom.global_parameters

    def test_unknown_effect(self, dataset):
        with pytest.raises(ReferentialIntegrityViolation, match="deworming"):
            set_category_field_value(
                None, dataset, "global-health", "deworming", "costPerQALY", 5
            )
        with pytest.raises(DomainViolation, match="cost_per_life"):
            set_category_field_value(
                None, dataset, "global-health", "malaria", "costPerLife", 5
            )

    def test_clear(self, custom):
        user = clear_category_custom_values(custom, "global-health")
        assert user.categories == {}
        assert user.recipients == custom.recipients


class TestRecipientOverrides:
    def test_multiplier(self, dataset, custom):
        (entry,) = custom.recipients["mixed-charity"].categories["animal-welfare"].effects
        assert entry == RecipientEffectOverride("cage-free", multipliers={"cost_per_qaly": 2})
        combined = create_combined_assumptions(
            dataset, clear_all_global_parameters(custom)
        )
        assert get_recipient_category_cost_per_life(
            combined, "mixed-charity", "animal-welfare"
        ) == pytest.approx(8000)

    def test_multiplier_of_one_prunes(self, dataset):
        user = set_recipient_field_multiplier(
            None, dataset, "health-charity", "global-health", "malaria", "costPerQALY", 3
        )
        user = set_recipient_field_multiplier(
            user, dataset, "health-charity", "global-health", "malaria", "costPerQALY", 1
        )
        assert user is None

    def test_override_replaces_multiplier_on_same_field(self, dataset):
        user = set_recipient_field_multiplier(
            None, dataset, "health-charity", "global-health", "malaria", "costPerQALY", 3
        )
        user = set_recipient_field_override(
            user, dataset, "health-charity", "global-health", "malaria", "costPerQALY", 20
        )
        (entry,) = user.recipients["health-charity"].categories["global-health"].effects
        assert entry.overrides == {"cost_per_qaly": 20}
        assert entry.multipliers is None
        combined = create_combined_assumptions(dataset, user)
        assert get_recipient_category_cost_per_life(
            combined, "health-charity", "global-health"
        ) == pytest.approx(200)

    def test_override_equal_to_category_value_prunes(self, dataset):
        user = set_recipient_field_override(
            None, dataset, "health-charity", "global-health", "malaria", "windowLength", 2
        )
        user = set_recipient_field_override(
            user, dataset, "health-charity", "global-health", "malaria", "windowLength", 1
        )
        assert user is None

    def test_mixing_forms_on_one_effect_rejected(self, dataset):
        user = set_recipient_field_multiplier(
            None, dataset, "health-charity", "global-health", "malaria", "costPerQALY", 3
        )
        with pytest.raises(DomainViolation, match="both overrides and multipliers"):
            set_recipient_field_override(
                user, dataset, "health-charity", "global-health", "malaria", "startTime", 5
            )

    def test_category_the_recipient_is_not_in(self, dataset):
        with pytest.raises(ReferentialIntegrityViolation, match="no category"):
            set_recipient_field_multiplier(
                None, dataset, "health-charity", "animal-welfare", "cage-free", "costPerQALY", 2
            )

    def test_disabled_baseline_override_kept(self):
        dataset = baseline_dataset()
        user = set_recipient_field_multiplier(
            None, dataset, "clean-air-fund", "global-health", "income-gains", "costPerQALY", 1
        )
        assert user is None

        user = set_recipient_field_multiplier(
            None, dataset, "clean-air-fund", "global-health", "income-gains", "costPerQALY", 4
        )
        (entry,) = user.recipients["clean-air-fund"].categories["global-health"].effects
        assert entry.disabled
        assert entry.multipliers == {"cost_per_qaly": 4}

    def test_clear(self, dataset, custom):
        user = set_recipient_field_multiplier(
            custom, dataset, "mixed-charity", "global-health", "malaria", "costPerQALY", 2
        )
        cleared = clear_recipient_category_overrides(user, "mixed-charity", "animal-welfare")
        assert list(cleared.recipients["mixed-charity"].categories) == ["global-health"]
        assert clear_recipient_category_overrides(cleared, "mixed-charity", "global-health").recipients == {}
        assert clear_recipient_overrides(user, "mixed-charity").recipients == {}
        assert clear_recipient_overrides(None, "mixed-charity") is None


class TestNormalize:
    def test_values_equal_to_baseline_dropped(self, dataset):
        user = load_user_assumptions(
            {
                "globalParameters": {"discountRate": 0, "timeLimit": 100},
                "categories": {
                    "global-health": {
                        "effects": [
                            {"effectId": "malaria", "startTime": 0, "windowLength": 1, "costPerQALY": 40}
                        ]
                    }
                },
                "recipients": {
                    "mixed-charity": {
                        "categories": {
                            "animal-welfare": {
                                "effects": [{"effectId": "cage-free", "multipliers": {"costPerQALY": 1}}]
                            },
                            "global-health": {
                                "effects": [{"effectId": "malaria", "overrides": {"costPerQALY": 40}}]
                            },
                        }
                    }
                },
            }
        )
        assert normalize_user_assumptions(user, dataset) is None
        assert normalize_user_assumptions(None, dataset) is None

    def test_real_changes_kept(self, dataset, custom):
        assert normalize_user_assumptions(custom, dataset) == custom

    def test_keeps_unknown_ids_for_validation(self, dataset):
        user = load_user_assumptions(
            {
                "categories": {
                    "space": {
                        "effects": [{"effectId": "a", "startTime": 0, "windowLength": 1, "costPerQALY": 1}]
                    }
                }
            }
        )
        normalized = normalize_user_assumptions(user, dataset)
        assert list(normalized.categories) == ["space"]
        with pytest.raises(ReferentialIntegrityViolation, match="space"):
            validate_user_assumptions(normalized, dataset)


@pytest.mark.parametrize(
    "edit",
    [
        lambda user, dataset: set_global_parameter(user, dataset, "discountRate", 0.07),
        lambda user, dataset: clear_global_parameter(user, "discountRate"),
        lambda user, dataset: clear_all_global_parameters(user),
        lambda user, dataset: set_category_field_value(
            user, dataset, "global-health", "malaria", "costPerQALY", 40
        ),
        lambda user, dataset: set_category_effect(
            user, dataset, "global-health", "malaria", {"startTime": 3}
        ),
        lambda user, dataset: clear_category_custom_values(user, "global-health"),
        lambda user, dataset: set_recipient_field_multiplier(
            user, dataset, "mixed-charity", "animal-welfare", "cage-free", "costPerQALY", 1
        ),
        lambda user, dataset: set_recipient_field_override(
            user, dataset, "mixed-charity", "global-health", "malaria", "startTime", 2
        ),
        lambda user, dataset: clear_recipient_overrides(user, "mixed-charity"),
        lambda user, dataset: clear_recipient_category_overrides(
            user, "mixed-charity", "animal-welfare"
        ),
        lambda user, dataset: normalize_user_assumptions(user, dataset),
    ],
)
def test_edits_leave_their_input_alone(dataset, custom, edit):
    before = copy.deepcopy(custom)
    edited = edit(custom, dataset)
    assert custom == before
    assert edited is not custom
    if edited is not None:
        validate_user_assumptions(edited, dataset)
