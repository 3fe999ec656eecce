"""
Substitution Resolver.

Finds and scores replacements for an ingredient:
- Candidates: same category as the original, excluding the original itself
  and anything whose name contains a declared allergen or dislike
- Scores (each 0-100): nutrition similarity, flavor compatibility,
  cooking-method compatibility; confidence is their mean
- Acceptance: confidence strictly above the configured threshold (default 60);
  the best eligible candidate wins, ties keep catalog order

"No substitute" is a normal outcome and is returned as None.
"""

import logging
from typing import List, Optional

from meal_personalization.config import Settings
from meal_personalization.data.catalog import Catalog
from meal_personalization.data.models import Ingredient, IngredientSubstitution
from meal_personalization.data.requests import NutritionPriority, Restrictions
from meal_personalization.knowledge import KnowledgeBase, default_knowledge

logger = logging.getLogger(__name__)

NUTRITION_METRICS = ("calories", "protein", "carbs", "fat", "fiber")
DEFAULT_NUTRITION_SIMILARITY = 50.0
DEFAULT_FLAVOR_COMPATIBILITY = 50.0
FALLBACK_CALORIES = 100.0  # used when calories per 100g is missing or zero


# =============================================================================
# Scoring Functions
# =============================================================================

def nutrition_similarity(original: Ingredient, candidate: Ingredient) -> float:
    """
    Average per-metric similarity over calories, protein, carbs, fat, fiber.

    Each comparable metric scores 100 - 100 * |a - b| / max(a, b). Metrics
    where both values are zero are skipped.

    Returns:
        Similarity in [0, 100]; 50 when nothing is comparable
    """
    a_profile = original.nutrition_profile()
    b_profile = candidate.nutrition_profile()

    scores = []
    for metric in NUTRITION_METRICS:
        a = a_profile[metric]
        b = b_profile[metric]
        largest = max(a, b)
        if largest > 0:
            scores.append(max(0.0, 100 - abs(a - b) / largest * 100))

    if not scores:
        return DEFAULT_NUTRITION_SIMILARITY
    return sum(scores) / len(scores)


def flavor_compatibility(original: Ingredient, candidate: Ingredient, knowledge: KnowledgeBase) -> float:
    """
    Share of the original's flavor tags that the candidate also has.

    Ingredient.flavor_tags wins over the knowledge table when set.

    Returns:
        Compatibility in [0, 100]; 50 when either side has no flavor data
    """
    original_flavors = set(original.flavor_tags or knowledge.flavors_for(original.name))
    candidate_flavors = set(candidate.flavor_tags or knowledge.flavors_for(candidate.name))

    if not original_flavors or not candidate_flavors:
        return DEFAULT_FLAVOR_COMPATIBILITY

    shared = original_flavors & candidate_flavors
    return len(shared) / len(original_flavors) * 100


def cooking_method_compatibility(original: Ingredient, cooking_method: str, knowledge: KnowledgeBase) -> float:
    """Table lookup keyed by (method, original's category); 75 when untabulated."""
    return knowledge.method_score(cooking_method, original.category)


def substitution_ratio(original: Ingredient, candidate: Ingredient) -> float:
    """Quantity multiplier that preserves caloric load under the swap."""
    original_calories = original.calories_per_100g or FALLBACK_CALORIES
    candidate_calories = candidate.calories_per_100g or FALLBACK_CALORIES
    return original_calories / candidate_calories


def is_allergen_safe(ingredient: Ingredient, allergens: List[str]) -> bool:
    """True when neither name nor category contains any declared allergen."""
    return not any(ingredient.matches(allergen) for allergen in allergens)


def evaluate_substitution(
    original: Ingredient,
    candidate: Ingredient,
    cooking_method: str,
    priority: NutritionPriority,
    allergens: List[str],
    knowledge: KnowledgeBase,
) -> IngredientSubstitution:
    """Score one candidate against the original."""
    nutrition = nutrition_similarity(original, candidate)
    flavor = flavor_compatibility(original, candidate, knowledge)
    method = cooking_method_compatibility(original, cooking_method, knowledge)
    confidence = (nutrition + flavor + method) / 3

    return IngredientSubstitution(
        original=original,
        substitute=candidate,
        substitution_ratio=substitution_ratio(original, candidate),
        nutrition_similarity=nutrition,
        flavor_compatibility=flavor,
        cooking_method_compatibility=method,
        allergen_safety=is_allergen_safe(candidate, allergens),
        confidence=confidence,
        reason=(
            f"Nutritionally similar substitute optimized for {priority.value} "
            f"with {confidence:.0f}% confidence"
        ),
    )


def _contains_any(name: str, terms: List[str]) -> bool:
    lower = name.lower()
    return any(term.lower() in lower for term in terms if term)


# =============================================================================
# Resolver
# =============================================================================

class SubstitutionResolver:
    """Finds the best same-category replacement for an ingredient."""

    def __init__(self, catalog: Catalog, knowledge: Optional[KnowledgeBase] = None,
                 settings: Optional[Settings] = None):
        self.catalog = catalog
        self.knowledge = knowledge or default_knowledge()
        self.settings = settings or Settings()

    async def candidates(self, ingredient: Ingredient, restrictions: Restrictions) -> List[Ingredient]:
        """Same-category ingredients that avoid every allergen and dislike."""
        pool = await self.catalog.get_ingredients_by_category(
            ingredient.category, limit=self.settings.candidate_limit
        )
        avoid = restrictions.avoid_terms()
        return [
            candidate for candidate in pool
            if candidate.id != ingredient.id and not _contains_any(candidate.name, avoid)
        ]

    def rank(self, ingredient: Ingredient, candidates: List[Ingredient], restrictions: Restrictions,
             cooking_method: str = "general",
             priority: NutritionPriority = NutritionPriority.MAINTAIN) -> List[IngredientSubstitution]:
        """Score candidates and keep the eligible ones, best first (stable)."""
        scored = []
        for candidate in candidates:
            substitution = evaluate_substitution(
                ingredient, candidate, cooking_method, priority,
                restrictions.allergens, self.knowledge,
            )
            logger.debug(
                f"[SUBSTITUTE] {ingredient.name} -> {candidate.name}: "
                f"nutrition={substitution.nutrition_similarity:.1f} "
                f"flavor={substitution.flavor_compatibility:.1f} "
                f"method={substitution.cooking_method_compatibility:.1f} "
                f"confidence={substitution.confidence:.1f}"
            )
            if substitution.confidence > self.settings.substitute_min_confidence:
                scored.append(substitution)

        scored.sort(key=lambda s: s.confidence, reverse=True)
        return scored

    async def find_substitute(
        self,
        ingredient: Ingredient,
        restrictions: Optional[Restrictions] = None,
        cooking_method: str = "general",
        priority: NutritionPriority = NutritionPriority.MAINTAIN,
    ) -> Optional[IngredientSubstitution]:
        """
        Find the best substitute for an ingredient.

        Args:
            ingredient: Ingredient to replace
            restrictions: Allergens and dislikes the substitute must avoid
            cooking_method: Method the ingredient will be cooked with
            priority: Nutrition priority recorded on the substitution

        Returns:
            Highest-confidence IngredientSubstitution, or None if no candidate
            clears the confidence threshold
        """
        restrictions = restrictions or Restrictions()
        candidates = await self.candidates(ingredient, restrictions)
        if not candidates:
            logger.warning(f"[SUBSTITUTE] No candidates in category '{ingredient.category}' for {ingredient.name}")
            return None

        ranked = self.rank(ingredient, candidates, restrictions, cooking_method, priority)
        if not ranked:
            logger.warning(
                f"[SUBSTITUTE] No candidate for {ingredient.name} cleared "
                f"{self.settings.substitute_min_confidence:.0f} confidence ({len(candidates)} scored)"
            )
            return None

        best = ranked[0]
        logger.info(
            f"[SUBSTITUTE] {ingredient.name} -> {best.substitute.name} "
            f"(confidence={best.confidence:.1f}, ratio={best.substitution_ratio:.2f})"
        )
        return best
