"""
Pytest configuration and shared fixtures.

Fixtures are reusable test setup that can be injected into tests.
"""

import pytest
from datetime import datetime

from meal_personalization.config import Settings
from meal_personalization.data.catalog import InMemoryCatalog
from meal_personalization.data.models import (
    Ingredient,
    NutritionInfo,
    PreferenceModel,
    Recipe,
    RecipeIngredient,
    UserProfile,
)
from meal_personalization.data.requests import FeedbackEvent


# =============================================================================
# Ingredients
# =============================================================================

@pytest.fixture
def peanut_butter():
    return Ingredient(
        id="ing-peanut-butter", name="peanut butter", category="nut butters",
        calories_per_100g=588, protein_per_100g=25, carbs_per_100g=20,
        fat_per_100g=50, fiber_per_100g=6,
    )


@pytest.fixture
def almond_butter():
    return Ingredient(
        id="ing-almond-butter", name="almond butter", category="nut butters",
        calories_per_100g=614, protein_per_100g=21, carbs_per_100g=19,
        fat_per_100g=56, fiber_per_100g=10,
    )


@pytest.fixture
def sunflower_butter():
    return Ingredient(
        id="ing-sunflower-butter", name="sunflower seed butter", category="nut butters",
        calories_per_100g=617, protein_per_100g=17, carbs_per_100g=24,
        fat_per_100g=55, fiber_per_100g=9,
    )


@pytest.fixture
def kale():
    return Ingredient(
        id="ing-kale", name="kale", category="leafy greens",
        calories_per_100g=49, protein_per_100g=4.3, carbs_per_100g=8.8,
        fat_per_100g=0.9, fiber_per_100g=3.6,
    )


@pytest.fixture
def pantry(peanut_butter, almond_butter, sunflower_butter, kale):
    """Ingredients for a small catalog covering allergen, diet and dislike swaps."""
    return [
        peanut_butter,
        almond_butter,
        sunflower_butter,
        kale,
        Ingredient(id="ing-rice-noodles", name="rice noodles", category="grains",
                   calories_per_100g=364, protein_per_100g=6, carbs_per_100g=80,
                   fat_per_100g=0.6, fiber_per_100g=1.6),
        Ingredient(id="ing-soy-sauce", name="soy sauce", category="condiments",
                   calories_per_100g=53, protein_per_100g=8, carbs_per_100g=5),
        Ingredient(id="ing-ground-beef", name="ground beef", category="meats",
                   calories_per_100g=250, protein_per_100g=26, fat_per_100g=15),
        Ingredient(id="ing-tofu", name="tofu", category="soy",
                   calories_per_100g=76, protein_per_100g=8, carbs_per_100g=1.9,
                   fat_per_100g=4.8, fiber_per_100g=0.3),
        Ingredient(id="ing-cheddar", name="cheddar cheese", category="dairy",
                   calories_per_100g=403, protein_per_100g=25, carbs_per_100g=1.3,
                   fat_per_100g=33),
        Ingredient(id="ing-cilantro", name="cilantro", category="herbs",
                   calories_per_100g=23, protein_per_100g=2.1, carbs_per_100g=3.7,
                   fat_per_100g=0.5, fiber_per_100g=2.8),
        Ingredient(id="ing-parsley", name="parsley", category="herbs",
                   calories_per_100g=36, protein_per_100g=3, carbs_per_100g=6.3,
                   fat_per_100g=0.8, fiber_per_100g=3.3),
    ]


def _by_name(ingredients, name):
    return next(i for i in ingredients if i.name == name)


# =============================================================================
# Recipes
# =============================================================================

@pytest.fixture
def peanut_noodles(pantry):
    """Peanut noodle bowl, 2 servings, no detectable cooking method."""
    return Recipe(
        id="recipe-peanut-noodles",
        title="Peanut Noodle Bowl",
        ingredients=[
            RecipeIngredient(_by_name(pantry, "peanut butter"), 60, "g"),
            RecipeIngredient(_by_name(pantry, "rice noodles"), 200, "g"),
            RecipeIngredient(_by_name(pantry, "soy sauce"), 2, "tbsp"),
        ],
        nutrition=NutritionInfo(calories=620, protein_g=22, carbs_g=85, fat_g=20, fiber_g=4),
        difficulty="easy",
        servings=2,
        instructions="Whisk Peanut Butter with soy sauce. Toss with the noodles.",
        cuisine="Thai",
        meal_types=["dinner"],
    )


@pytest.fixture
def beef_chili(pantry):
    return Recipe(
        id="recipe-beef-chili",
        title="Beef Chili",
        ingredients=[
            RecipeIngredient(_by_name(pantry, "ground beef"), 500, "g"),
            RecipeIngredient(_by_name(pantry, "cheddar cheese"), 50, "g"),
            RecipeIngredient(_by_name(pantry, "cilantro"), 1, "bunch"),
        ],
        nutrition=NutritionInfo(calories=540, protein_g=38, carbs_g=20, fat_g=30, fiber_g=6),
        difficulty="hard",
        servings=4,
        instructions="Brown the ground beef, simmer, top with cheddar cheese and cilantro.",
        cuisine="Mexican",
        meal_types=["dinner"],
    )


@pytest.fixture
def kale_salad(kale):
    return Recipe(
        id="recipe-kale-salad",
        title="Kale Salad",
        ingredients=[RecipeIngredient(kale, 150, "g")],
        nutrition=NutritionInfo(calories=180, protein_g=6, carbs_g=14, fat_g=12, fiber_g=5),
        difficulty="easy",
        servings=1,
        instructions="Massage the kale with lemon.",
        cuisine="American",
        meal_types=["lunch", "dinner"],
    )


@pytest.fixture
def catalog(pantry, peanut_noodles, beef_chili, kale_salad):
    return InMemoryCatalog(ingredients=pantry, recipes=[peanut_noodles, beef_chili, kale_salad])


# =============================================================================
# Users and feedback
# =============================================================================

@pytest.fixture
def settings():
    """Default settings, independent of the environment."""
    return Settings()


@pytest.fixture
def empty_model():
    return PreferenceModel(user_id="user-1")


@pytest.fixture
def user_profile():
    return UserProfile(
        user_id="user-1",
        allergens=["peanut"],
        dietary_restrictions=[],
        disliked_ingredients=["cilantro"],
        preferred_substitutes={"cilantro": ["parsley"]},
        favorite_cuisines=["thai"],
    )


@pytest.fixture
def make_feedback():
    """Factory for FeedbackEvent with sensible defaults."""
    def _make(**overrides):
        data = {
            "user_id": "user-1",
            "recipe_id": "recipe-kale-salad",
            "rating": 5,
            "satisfaction": 9,
            "would_make_again": True,
            "consumed_at": datetime(2025, 3, 14, 19, 30),
            "meal_type": "dinner",
        }
        data.update(overrides)
        return FeedbackEvent(**data)
    return _make
