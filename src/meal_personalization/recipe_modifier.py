"""
Recipe Modifier.

Adapts a recipe to a user's restrictions and goals in fixed priority order:
1. allergen pass: substitute via the Substitution Resolver (impact "major")
2. diet pass: table-assigned substitutes per diet rule (impact "moderate")
3. preference pass: user overrides first, then the Resolver (impact "minor")
4. goal pass: registered goal strategies

Every pass works on a copy; the input Recipe is never mutated. Ingredients
that violate an allergen or diet rule and cannot be substituted stay in place
and are reported on RecipeModification.unresolved_restrictions.

Also provides portion adjustment and cooking-method optimization.
"""

import logging
import re
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Optional, Tuple

from meal_personalization.config import Settings
from meal_personalization.data.catalog import Catalog
from meal_personalization.data.models import (
    CookingMethodOptimization,
    Difficulty,
    ImpactLevel,
    Ingredient,
    IngredientSubstitution,
    ModificationDetail,
    ModificationType,
    NutritionImpact,
    NutritionInfo,
    Recipe,
    RecipeIngredient,
    RecipeModification,
    UnresolvedRestriction,
    UserProfile,
)
from meal_personalization.data.requests import PortionConstraints, Restrictions
from meal_personalization.errors import PersonalizationError, ProcessingError, UnresolvedRestrictionError
from meal_personalization.knowledge import KnowledgeBase, default_knowledge, normalize_restriction
from meal_personalization.substitution import SubstitutionResolver, is_allergen_safe

logger = logging.getLogger(__name__)

# Difficulty added per modification record
IMPACT_DIFFICULTY = {
    ImpactLevel.MINOR: 0.1,
    ImpactLevel.MODERATE: 0.3,
    ImpactLevel.MAJOR: 0.5,
}

# Minutes added per modification record
TIME_BY_TYPE = {
    ModificationType.INGREDIENT_SUBSTITUTION: 2,
    ModificationType.COOKING_METHOD: 5,
    ModificationType.PREPARATION_MODIFICATION: 3,
}

COST_PER_MODIFICATION = 0.1
BASE_SUCCESS_PROBABILITY = 90.0

# Fixed scores (ratio, nutrition, flavor, method, confidence) for table-driven swaps
DIET_SUBSTITUTION_SCORES = (1.0, 75.0, 70.0, 85.0, 80.0)
PREFERENCE_SUBSTITUTION_SCORES = (1.0, 70.0, 65.0, 80.0, 75.0)

# Baselines when a method is missing from the knowledge tables
DEFAULT_RETENTION = 70.0
DEFAULT_METHOD_DIFFICULTY = 3


# =============================================================================
# Goal Strategies
# =============================================================================

GoalStrategy = Callable[[Recipe, Optional[UserProfile]], Tuple[Recipe, List[ModificationDetail]]]


def unchanged_recipe(recipe: Recipe, profile: Optional[UserProfile]) -> Tuple[Recipe, List[ModificationDetail]]:
    """Built-in goal strategy: no transform, no records."""
    return recipe, []


DEFAULT_GOAL_STRATEGIES: Dict[str, GoalStrategy] = {
    "reduce-sodium": unchanged_recipe,
    "increase-protein": unchanged_recipe,
    "reduce-calories": unchanged_recipe,
    "anti-inflammatory": unchanged_recipe,
}


# =============================================================================
# Pure Helpers
# =============================================================================

def fixed_substitution(original: Ingredient, substitute: Ingredient, scores: Tuple[float, ...],
                       allergens: List[str], reason: str) -> IngredientSubstitution:
    """Build a substitution with table-assigned scores."""
    ratio, nutrition, flavor, method, confidence = scores
    return IngredientSubstitution(
        original=original,
        substitute=substitute,
        substitution_ratio=ratio,
        nutrition_similarity=nutrition,
        flavor_compatibility=flavor,
        cooking_method_compatibility=method,
        allergen_safety=is_allergen_safe(substitute, allergens),
        confidence=confidence,
        reason=reason,
    )


def rewrite_instructions(instructions: str, original_name: str, substitute_name: str) -> str:
    """Replace whole-word mentions of an ingredient name in instructions, ignoring case."""
    if not original_name:
        return instructions
    # Whole words only; names may begin or end with punctuation
    pattern = re.compile(rf"(?<!\w){re.escape(original_name)}(?!\w)", re.IGNORECASE)
    return pattern.sub(lambda _: substitute_name, instructions)


def calculate_nutrition_impact(original: Recipe, modified: Recipe) -> NutritionImpact:
    """Per-serving differences between modified and original nutrition."""
    before = original.nutrition
    after = modified.nutrition
    return NutritionImpact(
        calories_change=after.calories - before.calories,
        protein_change=after.protein_g - before.protein_g,
        carbs_change=after.carbs_g - before.carbs_g,
        fat_change=after.fat_g - before.fat_g,
        fiber_change=after.fiber_g - before.fiber_g,
        anti_inflammatory_score_change=modified.anti_inflammatory_score - original.anti_inflammatory_score,
    )


def calculate_difficulty_change(modifications: List[ModificationDetail]) -> float:
    return sum(IMPACT_DIFFICULTY[m.impact_level] for m in modifications)


def calculate_time_impact(modifications: List[ModificationDetail]) -> int:
    return sum(TIME_BY_TYPE.get(m.type, 0) for m in modifications)


def calculate_cost_impact(modifications: List[ModificationDetail]) -> float:
    return round(COST_PER_MODIFICATION * len(modifications), 2)


def estimate_success_probability(recipe: Recipe, modifications: List[ModificationDetail]) -> float:
    """Start at 90, -10 per major change, -10 for hard recipes, clamp to [50, 100]."""
    probability = BASE_SUCCESS_PROBABILITY
    probability -= 10 * sum(1 for m in modifications if m.impact_level == ImpactLevel.MAJOR)
    if recipe.difficulty == Difficulty.HARD.value:
        probability -= 10
    return max(50.0, min(100.0, probability))


def adjust_portions(recipe: Recipe, target_servings: int,
                    constraints: Optional[PortionConstraints] = None) -> Recipe:
    """
    Scale a recipe to a serving count, optionally capping calories per serving.

    Quantities scale by target_servings / servings; nutrition stays per
    serving. When max_calories is exceeded, quantities and nutrition are
    scaled down by max_calories / calories so the reported calories equal
    the cap.

    Args:
        recipe: Recipe to scale
        target_servings: Desired servings (must be positive)
        constraints: Optional PortionConstraints

    Returns:
        New Recipe

    Raises:
        ValueError: If the recipe has zero servings or target_servings <= 0
    """
    if target_servings <= 0:
        raise ValueError(f"target_servings must be positive, got {target_servings}")

    scaled = recipe.scale_ingredients(target_servings)
    logger.info(f"[PORTIONS] {recipe.id}: {recipe.servings} -> {target_servings} servings")

    if constraints is None:
        return scaled

    nutrition = scaled.nutrition
    if constraints.max_calories is not None and nutrition.calories > constraints.max_calories:
        factor = constraints.max_calories / nutrition.calories
        scaled = replace(
            scaled,
            ingredients=[item.scale(factor) for item in scaled.ingredients],
            nutrition=NutritionInfo(
                calories=constraints.max_calories,
                protein_g=nutrition.protein_g * factor,
                carbs_g=nutrition.carbs_g * factor,
                fat_g=nutrition.fat_g * factor,
                fiber_g=nutrition.fiber_g * factor,
            ),
        )
        logger.info(
            f"[PORTIONS] {recipe.id}: capped at {constraints.max_calories:g} cal/serving "
            f"(factor={factor:.2f})"
        )

    if constraints.min_protein is not None and scaled.nutrition.protein_g < constraints.min_protein:
        logger.warning(
            f"[PORTIONS] {recipe.id}: {scaled.nutrition.protein_g:.1f}g protein/serving "
            f"is below the {constraints.min_protein:g}g minimum"
        )

    return scaled


def optimize_cooking_method(recipe: Recipe, goal: str,
                            knowledge: Optional[KnowledgeBase] = None) -> Optional[CookingMethodOptimization]:
    """
    Suggest a better cooking method for a goal.

    Args:
        recipe: Recipe whose instructions name its cooking method
        goal: "nutrient_retention", "time_efficiency", or "flavor_enhancement"
        knowledge: Knowledge tables (defaults to built-ins)

    Returns:
        CookingMethodOptimization, or None if no method is detected or no
        strategy for the goal applies
    """
    knowledge = knowledge or default_knowledge()
    strategies = knowledge.method_optimizations.get(goal)
    if strategies is None:
        logger.warning(f"[MODIFY] Unknown cooking-method goal: {goal}")
        return None

    current = knowledge.detect_cooking_method(recipe.instructions)
    if current == "general":
        return None

    optimized = None
    for method, better in strategies.items():
        if method in current:
            optimized = better
            break

    if optimized is None or optimized == current:
        return None

    retention_gain = (
        knowledge.nutrient_retention.get(optimized, DEFAULT_RETENTION)
        - knowledge.nutrient_retention.get(current, DEFAULT_RETENTION)
    )
    difficulty_change = (
        knowledge.method_difficulty.get(optimized, DEFAULT_METHOD_DIFFICULTY)
        - knowledge.method_difficulty.get(current, DEFAULT_METHOD_DIFFICULTY)
    )
    return CookingMethodOptimization(
        original_method=current,
        optimized_method=optimized,
        nutrient_retention_improvement=retention_gain,
        time_change=knowledge.cooking_time_change.get(optimized, 0),
        equipment_needed=list(knowledge.method_equipment.get(optimized, [])),
        difficulty_change=difficulty_change,
        reasoning=f"Switching from {current} to {optimized} improves {goal.replace('_', ' ')}",
    )


# =============================================================================
# Modifier
# =============================================================================

@dataclass
class _Draft:
    """Working copy of a recipe during one modification call."""
    ingredients: List[RecipeIngredient]
    instructions: str
    nutrition: NutritionInfo
    servings: int
    modifications: List[ModificationDetail] = field(default_factory=list)
    unresolved: List[UnresolvedRestriction] = field(default_factory=list)

    def to_recipe(self, recipe: Recipe) -> Recipe:
        if not self.modifications:
            return recipe
        return replace(
            recipe,
            ingredients=list(self.ingredients),
            instructions=self.instructions,
            nutrition=self.nutrition,
        )


class RecipeModifier:
    """Applies allergen, diet, preference and goal passes to a recipe."""

    def __init__(
        self,
        catalog: Catalog,
        resolver: Optional[SubstitutionResolver] = None,
        knowledge: Optional[KnowledgeBase] = None,
        settings: Optional[Settings] = None,
        goal_strategies: Optional[Dict[str, GoalStrategy]] = None,
    ):
        self.catalog = catalog
        self.knowledge = knowledge or default_knowledge()
        self.settings = settings or Settings()
        self.resolver = resolver or SubstitutionResolver(catalog, self.knowledge, self.settings)
        self.goal_strategies: Dict[str, GoalStrategy] = dict(DEFAULT_GOAL_STRATEGIES)
        for goal, strategy in (goal_strategies or {}).items():
            self.register_goal_strategy(goal, strategy)

    def register_goal_strategy(self, goal: str, strategy: GoalStrategy) -> None:
        """Register (or replace) the transform run for a goal name."""
        self.goal_strategies[normalize_restriction(goal)] = strategy

    async def modify_recipe(
        self,
        recipe: Recipe,
        restrictions: Optional[Restrictions] = None,
        goals: Optional[List[str]] = None,
        profile: Optional[UserProfile] = None,
        block_unresolved: Optional[bool] = None,
    ) -> RecipeModification:
        """
        Adapt a recipe to restrictions and goals.

        Args:
            recipe: Recipe to adapt (not mutated)
            restrictions: Allergens, diet rules, dislikes, preferred substitutes
            goals: Goal names, e.g. ["reduce-sodium"]
            profile: Passed through to goal strategies
            block_unresolved: Raise instead of recording unresolved allergens
                (defaults to settings.block_unresolved_allergens)

        Returns:
            RecipeModification, with an empty modification list when nothing applied

        Raises:
            UnresolvedRestrictionError: If an allergen has no substitute and blocking is on
            ProcessingError: If any intermediate step fails
        """
        restrictions = restrictions or Restrictions()
        goals = goals or []
        if block_unresolved is None:
            block_unresolved = self.settings.block_unresolved_allergens

        try:
            return await self._modify(recipe, restrictions, goals, profile, block_unresolved)
        except PersonalizationError:
            raise
        except Exception as exc:
            logger.error(f"[MODIFY] Failed to modify recipe {recipe.id}: {exc}")
            raise ProcessingError("modify_recipe", f"recipe {recipe.id}: {exc}") from exc

    async def _modify(self, recipe: Recipe, restrictions: Restrictions, goals: List[str],
                      profile: Optional[UserProfile], block_unresolved: bool) -> RecipeModification:
        # Work on a copy
        draft = _Draft(
            ingredients=list(recipe.ingredients),
            instructions=recipe.instructions,
            nutrition=recipe.nutrition,
            servings=recipe.servings,
        )
        cooking_method = self.knowledge.detect_cooking_method(recipe.instructions)

        # 1. Allergens (highest priority)
        await self._allergen_pass(draft, restrictions, cooking_method)
        unresolved_allergens = [u.ingredient_name for u in draft.unresolved if u.kind == "allergen"]
        if unresolved_allergens and block_unresolved:
            raise UnresolvedRestrictionError(recipe.id, unresolved_allergens, "no safe substitute found")

        # 2. Diet rules
        await self._diet_pass(draft, restrictions)

        # 3. Dislikes
        await self._preference_pass(draft, restrictions, cooking_method)

        # 4. Goals
        modified = draft.to_recipe(recipe)
        modifications = list(draft.modifications)
        for goal in goals:
            key = normalize_restriction(goal)
            strategy = self.goal_strategies.get(key)
            if strategy is None:
                logger.warning(f"[MODIFY] Unknown optimization goal '{goal}', skipping")
                continue
            modified, records = strategy(modified, profile)
            modifications.extend(records)

        result = RecipeModification(
            original_recipe=recipe,
            modified_recipe=modified,
            modifications=modifications,
            nutrition_impact=calculate_nutrition_impact(recipe, modified),
            difficulty_change=calculate_difficulty_change(modifications),
            time_impact=calculate_time_impact(modifications),
            cost_impact=calculate_cost_impact(modifications),
            success_probability=estimate_success_probability(recipe, modifications),
            unresolved_restrictions=list(draft.unresolved),
        )

        logger.info(
            f"[MODIFY] {recipe.id}: modifications={len(modifications)}, "
            f"unresolved={len(draft.unresolved)}, success={result.success_probability:.0f}"
        )
        return result

    # -------------------------------------------------------------------------
    # Passes
    # -------------------------------------------------------------------------

    async def _allergen_pass(self, draft: _Draft, restrictions: Restrictions, cooking_method: str) -> None:
        if not restrictions.allergens:
            return

        allergen_only = Restrictions(allergens=restrictions.allergens)
        for index, item in enumerate(list(draft.ingredients)):
            allergen = next((a for a in restrictions.allergens if item.ingredient.matches(a)), None)
            if allergen is None:
                continue

            substitution = await self.resolver.find_substitute(item.ingredient, allergen_only, cooking_method)
            if substitution is not None and not substitution.allergen_safety:
                logger.warning(
                    f"[MODIFY] Rejected {substitution.substitute.name} for {item.name}: not allergen-safe"
                )
                substitution = None
            if substitution is None:
                logger.warning(f"[MODIFY] Unresolved allergen '{allergen}' in {item.name}")
                draft.unresolved.append(
                    UnresolvedRestriction(ingredient_name=item.name, restriction=allergen, kind="allergen")
                )
                continue

            self._apply(
                draft, index, substitution, ImpactLevel.MAJOR,
                f"Replaced {item.name} with {substitution.substitute.name} due to {allergen} allergy",
            )

    async def _diet_pass(self, draft: _Draft, restrictions: Restrictions) -> None:
        for restriction in restrictions.dietary_restrictions:
            rule = self.knowledge.diet_rule(restriction)
            if rule is None:
                logger.warning(f"[MODIFY] Unknown dietary restriction '{restriction}', skipping")
                continue

            for index, item in enumerate(list(draft.ingredients)):
                if not any(item.ingredient.matches(term) for term in rule.exclude):
                    continue

                substitute = None
                key = next((k for k in rule.substitutes if k in item.name.lower()), None)
                if key is not None:
                    substitute = await self.catalog.get_ingredient_by_name(rule.substitutes[key])

                if substitute is None or not is_allergen_safe(substitute, restrictions.allergens):
                    logger.warning(f"[MODIFY] No {restriction} substitute for {item.name}")
                    draft.unresolved.append(
                        UnresolvedRestriction(ingredient_name=item.name, restriction=restriction, kind="diet")
                    )
                    continue

                substitution = fixed_substitution(
                    item.ingredient, substitute, DIET_SUBSTITUTION_SCORES, restrictions.allergens,
                    f"{restriction} alternative",
                )
                self._apply(
                    draft, index, substitution, ImpactLevel.MODERATE,
                    f"Replaced {item.name} with {substitute.name} for {restriction} diet",
                )

    async def _preference_pass(self, draft: _Draft, restrictions: Restrictions, cooking_method: str) -> None:
        for disliked in restrictions.disliked_ingredients:
            term = disliked.lower()
            for index, item in enumerate(list(draft.ingredients)):
                if term not in item.name.lower():
                    continue

                substitution = None
                for name in restrictions.preferred_substitutes.get(term, []):
                    candidate = await self.catalog.get_ingredient_by_name(name)
                    if candidate is not None and is_allergen_safe(candidate, restrictions.allergens):
                        substitution = fixed_substitution(
                            item.ingredient, candidate, PREFERENCE_SUBSTITUTION_SCORES,
                            restrictions.allergens, "User preference",
                        )
                        break

                if substitution is None:
                    substitution = await self.resolver.find_substitute(
                        item.ingredient,
                        Restrictions(
                            allergens=restrictions.allergens,
                            disliked_ingredients=restrictions.disliked_ingredients,
                        ),
                        cooking_method,
                    )
                    if substitution is not None and not substitution.allergen_safety:
                        logger.warning(
                            f"[MODIFY] Rejected {substitution.substitute.name} for {item.name}: not allergen-safe"
                        )
                        substitution = None

                if substitution is None:
                    logger.warning(f"[MODIFY] No substitute for disliked {item.name}, keeping it")
                    continue

                self._apply(
                    draft, index, substitution, ImpactLevel.MINOR,
                    f"Replaced {item.name} with {substitution.substitute.name} based on preferences",
                )

    def _apply(self, draft: _Draft, index: int, substitution: IngredientSubstitution,
               impact: ImpactLevel, description: str) -> None:
        """Swap one ingredient line and record the change."""
        old_item = draft.ingredients[index]
        new_item = old_item.swap(substitution.substitute, substitution.substitution_ratio)
        draft.ingredients[index] = new_item
        draft.instructions = rewrite_instructions(draft.instructions, old_item.name, new_item.name)
        draft.nutrition = self._shift_nutrition(draft.nutrition, draft.servings, old_item, new_item)
        draft.modifications.append(
            ModificationDetail(
                type=ModificationType.INGREDIENT_SUBSTITUTION,
                description=description,
                impact_level=impact,
                original_value=str(old_item),
                new_value=str(new_item),
                substitution=substitution,
            )
        )
        logger.info(f"[MODIFY] {description}")

    def _shift_nutrition(self, nutrition: NutritionInfo, servings: int,
                         old_item: RecipeIngredient, new_item: RecipeIngredient) -> NutritionInfo:
        """Per-serving nutrition after a swap; unweighable units leave it unchanged."""
        old_grams = self.knowledge.to_grams(old_item.quantity, old_item.unit)
        new_grams = self.knowledge.to_grams(new_item.quantity, new_item.unit)
        if old_grams is None or new_grams is None or servings <= 0:
            return nutrition

        before = old_item.ingredient.nutrition_profile()
        after = new_item.ingredient.nutrition_profile()

        def delta(metric: str) -> float:
            return (new_grams * after[metric] - old_grams * before[metric]) / 100 / servings

        return NutritionInfo(
            calories=max(0.0, nutrition.calories + delta("calories")),
            protein_g=max(0.0, nutrition.protein_g + delta("protein")),
            carbs_g=max(0.0, nutrition.carbs_g + delta("carbs")),
            fat_g=max(0.0, nutrition.fat_g + delta("fat")),
            fiber_g=max(0.0, nutrition.fiber_g + delta("fiber")),
        )

    def optimize_cooking_method(self, recipe: Recipe, goal: str) -> Optional[CookingMethodOptimization]:
        return optimize_cooking_method(recipe, goal, self.knowledge)
