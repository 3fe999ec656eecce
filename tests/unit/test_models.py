"""
Unit tests for data/models.py and data/requests.py.

Tests cover:
- Value immutability and serialization
- Recipe scaling
- Boundary validation of caller input
"""

import dataclasses
import pytest
from datetime import datetime
from pydantic import ValidationError

from meal_personalization.data.models import (
    Ingredient,
    NutritionInfo,
    PreferenceModel,
    Recipe,
    RecipeIngredient,
    UserProfile,
    timing_key,
)
from meal_personalization.data.requests import (
    FeedbackEvent,
    PerceivedDifficulty,
    PortionConstraints,
    RecommendationContext,
    Restrictions,
)


# =============================================================================
# Values
# =============================================================================

class TestIngredient:
    """Tests for Ingredient."""

    def test_matches_name_or_category(self, almond_butter):
        assert almond_butter.matches("ALMOND")
        assert almond_butter.matches("nut butter")
        assert not almond_butter.matches("peanut")
        assert not almond_butter.matches("  ")

    def test_is_frozen(self, kale):
        with pytest.raises(dataclasses.FrozenInstanceError):
            kale.name = "spinach"

    def test_dict_round_trip(self, peanut_butter):
        assert Ingredient.from_dict(peanut_butter.to_dict()) == peanut_butter


class TestRecipeIngredient:
    """Tests for RecipeIngredient."""

    def test_str(self, kale):
        assert str(RecipeIngredient(kale, 150, "g")) == "150 g kale"

    def test_swap_applies_ratio(self, peanut_butter, almond_butter):
        line = RecipeIngredient(peanut_butter, 60, "g", preparation_notes="softened")
        swapped = line.swap(almond_butter, 0.5)

        assert swapped.name == "almond butter"
        assert swapped.quantity == 30
        assert swapped.preparation_notes == "softened"
        assert line.name == "peanut butter"


class TestRecipe:
    """Tests for Recipe."""

    def test_scale_ingredients(self, beef_chili):
        """4 -> 6 servings multiplies quantities by 1.5; nutrition is per serving."""
        scaled = beef_chili.scale_ingredients(6)

        assert scaled.servings == 6
        assert [i.quantity for i in scaled.ingredients] == [750, 75, 1.5]
        assert scaled.nutrition == beef_chili.nutrition
        assert beef_chili.servings == 4

    def test_scale_zero_servings_rejected(self, kale_salad):
        broken = dataclasses.replace(kale_salad, servings=0)
        with pytest.raises(ValueError):
            broken.scale_ingredients(2)

    def test_has_ingredient(self, beef_chili):
        assert beef_chili.has_ingredient("beef")
        assert beef_chili.has_ingredient("dairy")
        assert not beef_chili.has_ingredient("peanut")

    def test_dict_round_trip(self, peanut_noodles):
        assert Recipe.from_dict(peanut_noodles.to_dict()) == peanut_noodles

    def test_from_dict_defaults(self):
        recipe = Recipe.from_dict({"id": "r", "title": "Toast"})

        assert recipe.ingredients == []
        assert recipe.nutrition == NutritionInfo()
        assert recipe.difficulty == "medium"
        assert recipe.servings == 1


class TestPreferenceModel:
    """Tests for PreferenceModel."""

    def test_defaults(self, empty_model):
        assert empty_model.complexity_comfort == 0.5
        assert empty_model.novelty_appetite == 0.5
        assert empty_model.learning_rate == 1.0
        assert empty_model.confidence == 0.0

    def test_timing_weight_lookup(self):
        model = PreferenceModel(user_id="u", timing_weights={timing_key("Dinner", "evening"): 0.4})
        assert model.timing_weight("dinner", "evening") == 0.4
        assert model.timing_weight("lunch", "midday") is None

    def test_dict_round_trip(self):
        model = PreferenceModel(
            user_id="u",
            ingredient_affinity={"kale": 0.4},
            timing_weights={"dinner_evening": 0.2},
            feedback_count=3,
            last_feedback_at=datetime(2025, 3, 14, 19, 30),
        )
        assert PreferenceModel.from_dict(model.to_dict()) == model


class TestUserProfile:
    """Tests for UserProfile."""

    def test_dict_round_trip(self, user_profile):
        user_profile.preference_model = PreferenceModel(user_id="user-1", confidence=0.3)
        assert UserProfile.from_dict(user_profile.to_dict()) == user_profile


# =============================================================================
# Caller input
# =============================================================================

class TestFeedbackEvent:
    """Tests for FeedbackEvent validation."""

    @pytest.mark.parametrize("field,value", [
        ("rating", 0), ("rating", 6),
        ("satisfaction", 0), ("satisfaction", 11),
        ("taste_rating", 9),
        ("cooking_time_actual", -5),
        ("meal_type", "  "),
    ])
    def test_out_of_range_rejected(self, make_feedback, field, value):
        with pytest.raises(ValidationError):
            make_feedback(**{field: value})

    def test_normalizes_meal_type_and_difficulty(self, make_feedback):
        feedback = make_feedback(meal_type=" Lunch ", difficulty_perceived="harder")

        assert feedback.meal_type == "lunch"
        assert feedback.difficulty_perceived == PerceivedDifficulty.HARDER

    def test_is_frozen(self, make_feedback):
        feedback = make_feedback()
        with pytest.raises(ValidationError):
            feedback.rating = 1


class TestRestrictions:
    """Tests for Restrictions."""

    def test_cleans_names(self):
        restrictions = Restrictions(
            allergens=[" peanut ", "", "  "],
            preferred_substitutes={" Cilantro ": ["parsley", " "], "basil": [""]},
        )

        assert restrictions.allergens == ["peanut"]
        assert restrictions.preferred_substitutes == {"cilantro": ["parsley"]}

    def test_is_empty(self):
        assert Restrictions().is_empty()
        assert not Restrictions(disliked_ingredients=["olives"]).is_empty()

    def test_avoid_terms(self):
        restrictions = Restrictions(allergens=["peanut"], disliked_ingredients=["cilantro"])
        assert restrictions.avoid_terms() == ["peanut", "cilantro"]

    def test_from_profile(self, user_profile):
        restrictions = Restrictions.from_profile(user_profile)

        assert restrictions.allergens == ["peanut"]
        assert restrictions.disliked_ingredients == ["cilantro"]
        assert restrictions.preferred_substitutes == {"cilantro": ["parsley"]}


class TestContextAndConstraints:
    """Tests for RecommendationContext and PortionConstraints."""

    def test_hour_range(self):
        with pytest.raises(ValidationError):
            RecommendationContext(hour=24)

    def test_blank_recent_id_rejected(self):
        with pytest.raises(ValidationError):
            RecommendationContext(hour=12, recent_recipe_ids=["recipe-1", " "])

    def test_at(self):
        context = RecommendationContext.at("Breakfast", datetime(2025, 3, 14, 7, 45))
        assert context.meal_type == "breakfast"
        assert context.hour == 7

    def test_portion_constraints_positive(self):
        with pytest.raises(ValidationError):
            PortionConstraints(max_calories=0)
        assert PortionConstraints(min_protein=0).min_protein == 0
