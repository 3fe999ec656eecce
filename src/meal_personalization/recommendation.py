"""
Recommendation Scorer.

Ranks candidate recipes against a preference model and a context with a
fixed weighted sum:
    0.4 ingredient match + 0.2 timing match + 0.2 complexity match + 0.2 novelty balance
"""

import logging
from typing import List, Optional, Tuple

from meal_personalization.data.models import PreferenceModel, Recipe, RecommendationResult, ScoreBreakdown
from meal_personalization.data.requests import RecommendationContext
from meal_personalization.preference_learning import time_bucket

logger = logging.getLogger(__name__)

WEIGHTS = {
    "ingredient_match": 0.4,
    "timing_match": 0.2,
    "complexity_match": 0.2,
    "novelty_balance": 0.2,
}

RECIPE_COMPLEXITY = {"easy": 0.3, "medium": 0.6, "hard": 0.9}

# Defaults when the user has no model yet
DEFAULT_COMFORT = 0.5
DEFAULT_NOVELTY = 0.5
DEFAULT_MODEL_CONFIDENCE = 0.5
DEFAULT_TIMING_WEIGHT = 0.3
NO_INGREDIENTS_MATCH = 0.5


def ingredient_match(recipe: Recipe, model: Optional[PreferenceModel]) -> float:
    """Mean ingredient affinity rescaled to [0, 1]; unlearned ingredients count as 0."""
    if not recipe.ingredients:
        return NO_INGREDIENTS_MATCH
    affinities = model.ingredient_affinity if model else {}
    mean = sum(affinities.get(item.name.lower(), 0.0) for item in recipe.ingredients) / len(recipe.ingredients)
    return (mean + 1) / 2


def timing_match(model: Optional[PreferenceModel], context: RecommendationContext) -> float:
    weight = None
    if model is not None:
        weight = model.timing_weight(context.meal_type, time_bucket(context.hour))
    if weight is None:
        weight = DEFAULT_TIMING_WEIGHT
    return min(1.0, weight * 2)


def complexity_match(recipe: Recipe, model: Optional[PreferenceModel]) -> float:
    comfort = model.complexity_comfort if model else DEFAULT_COMFORT
    complexity = RECIPE_COMPLEXITY.get(recipe.difficulty, RECIPE_COMPLEXITY["medium"])
    return 1 - abs(complexity - comfort)


def novelty_balance(recipe: Recipe, model: Optional[PreferenceModel], context: RecommendationContext) -> float:
    appetite = model.novelty_appetite if model else DEFAULT_NOVELTY
    if recipe.id in context.recent_recipe_ids:
        return 1 - appetite
    return appetite


def score_recipe(recipe: Recipe, model: Optional[PreferenceModel],
                 context: RecommendationContext) -> ScoreBreakdown:
    """Score one candidate recipe."""
    parts = {
        "ingredient_match": ingredient_match(recipe, model),
        "timing_match": timing_match(model, context),
        "complexity_match": complexity_match(recipe, model),
        "novelty_balance": novelty_balance(recipe, model, context),
    }
    total = sum(parts[name] * weight for name, weight in WEIGHTS.items())
    return ScoreBreakdown(total=total, **parts)


def rank_recipes(recipes: List[Recipe], model: Optional[PreferenceModel],
                 context: RecommendationContext) -> List[Tuple[Recipe, ScoreBreakdown]]:
    """Score every candidate and sort descending by total (stable for ties)."""
    scored = [(recipe, score_recipe(recipe, model, context)) for recipe in recipes]
    scored.sort(key=lambda pair: pair[1].total, reverse=True)
    return scored


def batch_confidence(model: Optional[PreferenceModel]) -> float:
    """min(1, model confidence * interaction count / 20)."""
    if model is None:
        return 0.0
    confidence = model.confidence or DEFAULT_MODEL_CONFIDENCE
    return min(1.0, confidence * model.interaction_count / 20)


def explain_score(recipe: Recipe, score: ScoreBreakdown) -> str:
    """One reasoning line: "<title>: <reasons>"."""
    reasons = []
    if score.ingredient_match > 0.7:
        reasons.append("matches your ingredient preferences")
    if score.timing_match > 0.8:
        reasons.append("perfect timing for your schedule")
    if score.complexity_match > 0.7:
        reasons.append("suitable complexity level")
    if score.novelty_balance > 0.6:
        reasons.append("good balance of familiar and new")
    return f"{recipe.title}: {', '.join(reasons) if reasons else 'a reasonable fit'}"


def recommend(recipes: List[Recipe], model: Optional[PreferenceModel],
              context: RecommendationContext, limit: int = 10) -> RecommendationResult:
    """
    Rank candidates and return the top slice with reasoning.

    Args:
        recipes: Candidate recipes
        model: User's preference model, or None for defaults
        context: Meal slot, hour, recent recipes
        limit: How many recipes to return

    Returns:
        RecommendationResult
    """
    ranked = rank_recipes(recipes, model, context)[:limit]
    result = RecommendationResult(
        recipes=[recipe for recipe, _ in ranked],
        scores=[score for _, score in ranked],
        reasoning=[explain_score(recipe, score) for recipe, score in ranked],
        confidence=batch_confidence(model),
    )
    logger.info(
        f"[RECOMMEND] meal_type={context.meal_type} hour={context.hour} "
        f"candidates={len(recipes)} returned={len(result.recipes)} confidence={result.confidence:.2f}"
    )
    return result
