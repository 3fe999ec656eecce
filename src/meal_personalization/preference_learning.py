"""
Preference Model Updater.

Folds one FeedbackEvent into a user's PreferenceModel and returns a new
model; the input model is never mutated.

Signal:
    clamp(((rating - 3) / 2 + (satisfaction - 5.5) / 4.5 + (±0.2 repeat intent)) / 3, -1, 1)

Affinity update (ingredients, cuisine, flavor tags, cooking method):
    new = old + signal * learning_rate * (1 - |old|), clamped to [-1, 1]

Confidence grows logarithmically with feedback count and the learning rate
decays with it, so early feedback moves the model faster than later feedback.
"""

import logging
import math
from dataclasses import replace
from typing import Dict, Iterable, Optional, Tuple

from meal_personalization.data.models import LearningEvent, PreferenceModel, Recipe, timing_key
from meal_personalization.data.requests import FeedbackEvent, PerceivedDifficulty
from meal_personalization.errors import NotFoundError
from meal_personalization.knowledge import KnowledgeBase, default_knowledge

logger = logging.getLogger(__name__)

COMPLEXITY_STEP = 0.05
TIMING_STEP = 0.1
TIMING_RENORMALIZE_ABOVE = 2.0
MIN_LEARNING_RATE = 0.1


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def time_bucket(hour: int) -> str:
    """
    Map an hour of day to one of five time buckets.

    morning [6, 11), midday [11, 15), afternoon [15, 19), evening [19, 23),
    night otherwise.
    """
    if 6 <= hour < 11:
        return "morning"
    if 11 <= hour < 15:
        return "midday"
    if 15 <= hour < 19:
        return "afternoon"
    if 19 <= hour < 23:
        return "evening"
    return "night"


def feedback_signal(feedback: FeedbackEvent) -> float:
    """Scalar preference adjustment in [-1, 1]."""
    rating_part = (feedback.rating - 3) / 2
    satisfaction_part = (feedback.satisfaction - 5.5) / 4.5
    repeat_part = 0.2 if feedback.would_make_again else -0.2
    return clamp((rating_part + satisfaction_part + repeat_part) / 3, -1.0, 1.0)


def smooth_affinity(old_score: float, signal: float, learning_rate: float) -> float:
    """Exponential smoothing that slows as a score approaches ±1."""
    return clamp(old_score + signal * learning_rate * (1 - abs(old_score)), -1.0, 1.0)


def learning_weight(feedback: FeedbackEvent) -> float:
    """How informative a feedback event is, in [0.5, 1]."""
    weight = 0.5
    if feedback.comment and len(feedback.comment) > 10:
        weight += 0.2
    if feedback.rating in (1, 5):
        weight += 0.2
    if feedback.satisfaction <= 3 or feedback.satisfaction >= 8:
        weight += 0.1
    return min(1.0, weight)


def confidence_for(feedback_count: int) -> float:
    return min(1.0, math.log(feedback_count + 1) / 5)


def learning_rate_for(confidence: float) -> float:
    return clamp(1 - confidence * 0.7, MIN_LEARNING_RATE, 1.0)


def _update_affinities(scores: Dict[str, float], keys: Iterable[str], signal: float,
                       learning_rate: float) -> Dict[str, float]:
    updated = dict(scores)
    for key in keys:
        updated[key] = smooth_affinity(updated.get(key, 0.0), signal, learning_rate)
    return updated


def _update_complexity(comfort: float, feedback: FeedbackEvent) -> float:
    if feedback.difficulty_perceived == PerceivedDifficulty.EASIER and feedback.satisfaction > 7:
        comfort += COMPLEXITY_STEP
    elif feedback.difficulty_perceived == PerceivedDifficulty.HARDER and feedback.satisfaction < 5:
        comfort -= COMPLEXITY_STEP
    return clamp(comfort, 0.0, 1.0)


def _update_timing(weights: Dict[str, float], feedback: FeedbackEvent) -> Dict[str, float]:
    updated = dict(weights)
    if feedback.satisfaction > 7:
        key = timing_key(feedback.meal_type, time_bucket(feedback.consumed_at.hour))
        updated[key] = updated.get(key, 0.0) + TIMING_STEP

    # Bound unbounded growth
    if updated:
        largest = max(updated.values())
        if largest > TIMING_RENORMALIZE_ABOVE:
            updated = {k: v / largest for k, v in updated.items()}
    return updated


def _recipe_flavors(recipe: Recipe, knowledge: KnowledgeBase) -> list:
    flavors = []
    for item in recipe.ingredients:
        for tag in item.ingredient.flavor_tags or knowledge.flavors_for(item.name):
            if tag not in flavors:
                flavors.append(tag)
    return flavors


def process_feedback(
    feedback: FeedbackEvent,
    recipe: Optional[Recipe],
    current_model: Optional[PreferenceModel] = None,
    knowledge: Optional[KnowledgeBase] = None,
) -> PreferenceModel:
    """
    Fold one feedback event into a preference model.

    Args:
        feedback: Validated FeedbackEvent
        recipe: The recipe the feedback refers to
        current_model: Existing model, or None for the user's first feedback
        knowledge: Knowledge tables for flavor tags and method detection

    Returns:
        New PreferenceModel

    Raises:
        NotFoundError: If recipe is None or is not the recipe the feedback names
    """
    model, _ = fold_feedback(feedback, recipe, current_model, knowledge)
    return model


def fold_feedback(
    feedback: FeedbackEvent,
    recipe: Optional[Recipe],
    current_model: Optional[PreferenceModel] = None,
    knowledge: Optional[KnowledgeBase] = None,
) -> Tuple[PreferenceModel, LearningEvent]:
    """Same as process_feedback, also returning the LearningEvent it produced."""
    if recipe is None or recipe.id != feedback.recipe_id:
        raise NotFoundError("recipe", feedback.recipe_id)

    knowledge = knowledge or default_knowledge()
    model = current_model or PreferenceModel(user_id=feedback.user_id)
    signal = feedback_signal(feedback)
    rate = model.learning_rate

    ingredient_affinity = _update_affinities(
        model.ingredient_affinity, [item.name.lower() for item in recipe.ingredients], signal, rate
    )
    cuisine_affinity = model.cuisine_affinity
    if recipe.cuisine:
        cuisine_affinity = _update_affinities(cuisine_affinity, [recipe.cuisine.lower()], signal, rate)
    flavor_affinity = _update_affinities(
        model.flavor_affinity, _recipe_flavors(recipe, knowledge), signal, rate
    )
    cooking_method_affinity = model.cooking_method_affinity
    method = knowledge.detect_cooking_method(recipe.instructions)
    if method != "general":
        cooking_method_affinity = _update_affinities(cooking_method_affinity, [method], signal, rate)

    feedback_count = model.feedback_count + 1
    # Never lower confidence, even for models imported with a higher value
    confidence = clamp(max(model.confidence, confidence_for(feedback_count)), 0.0, 1.0)

    updated = replace(
        model,
        ingredient_affinity=ingredient_affinity,
        cuisine_affinity=cuisine_affinity,
        flavor_affinity=flavor_affinity,
        cooking_method_affinity=cooking_method_affinity,
        timing_weights=_update_timing(model.timing_weights, feedback),
        complexity_comfort=_update_complexity(model.complexity_comfort, feedback),
        novelty_appetite=clamp(model.novelty_appetite, 0.0, 1.0),
        interaction_count=model.interaction_count + 1,
        feedback_count=feedback_count,
        confidence=confidence,
        learning_rate=learning_rate_for(confidence),
        last_feedback_at=feedback.consumed_at,
    )

    event = LearningEvent(
        user_id=feedback.user_id,
        event_type="meal_completion",
        timestamp=feedback.consumed_at,
        recipe_id=recipe.id,
        satisfaction=feedback.satisfaction,
        would_make_again=feedback.would_make_again,
        learning_weight=learning_weight(feedback),
    )

    logger.info(
        f"[LEARN] user={feedback.user_id} recipe={recipe.id} signal={signal:+.3f} "
        f"confidence={updated.confidence:.3f} learning_rate={updated.learning_rate:.3f}"
    )
    return updated, event
