"""
Meal personalization engine: preference learning and recipe adaptation.
"""

from meal_personalization.adaptation import analyze_adaptation_opportunities, calculate_personalization_metrics
from meal_personalization.config import Settings, configure_logging, get_settings
from meal_personalization.data.catalog import Catalog, InMemoryCatalog
from meal_personalization.data.models import (
    AdaptationRecommendation,
    Ingredient,
    IngredientSubstitution,
    NutritionInfo,
    PreferenceModel,
    Recipe,
    RecipeIngredient,
    RecipeModification,
    RecommendationResult,
    UserProfile,
)
from meal_personalization.data.profile_store import InMemoryProfileStore, ProfileStore
from meal_personalization.data.requests import (
    FeedbackEvent,
    NutritionPriority,
    PortionConstraints,
    RecommendationContext,
    Restrictions,
)
from meal_personalization.engine import PersonalizationEngine
from meal_personalization.errors import (
    ConcurrentUpdateError,
    DeadlineExceededError,
    NotFoundError,
    PersonalizationError,
    ProcessingError,
    UnresolvedRestrictionError,
)
from meal_personalization.preference_learning import process_feedback
from meal_personalization.recipe_modifier import adjust_portions
from meal_personalization.recommendation import score_recipe

__all__ = [
    "PersonalizationEngine",
    "Settings",
    "get_settings",
    "configure_logging",
    "Catalog",
    "InMemoryCatalog",
    "ProfileStore",
    "InMemoryProfileStore",
    "Ingredient",
    "RecipeIngredient",
    "NutritionInfo",
    "Recipe",
    "PreferenceModel",
    "UserProfile",
    "IngredientSubstitution",
    "RecipeModification",
    "AdaptationRecommendation",
    "RecommendationResult",
    "FeedbackEvent",
    "Restrictions",
    "PortionConstraints",
    "RecommendationContext",
    "NutritionPriority",
    "PersonalizationError",
    "NotFoundError",
    "ProcessingError",
    "DeadlineExceededError",
    "ConcurrentUpdateError",
    "UnresolvedRestrictionError",
    "process_feedback",
    "score_recipe",
    "adjust_portions",
    "analyze_adaptation_opportunities",
    "calculate_personalization_metrics",
]
