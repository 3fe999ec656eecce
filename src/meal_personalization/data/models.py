"""
Data models for the personalization engine.

These models define the core values passed through the engine:
- Ingredient / RecipeIngredient / Recipe: catalog entities (immutable values)
- PreferenceModel: learned per-user preference state
- IngredientSubstitution / RecipeModification: output of recipe adaptation
- AdaptationRecommendation / PersonalizationMetrics: output of the advisor
- ScoreBreakdown / RecommendationResult: output of the recommendation scorer
- UserProfile: declared restrictions plus the learned model
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


# =============================================================================
# Enums
# =============================================================================

class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class ImpactLevel(str, Enum):
    MINOR = "minor"
    MODERATE = "moderate"
    MAJOR = "major"


class ModificationType(str, Enum):
    INGREDIENT_SUBSTITUTION = "ingredient_substitution"
    PORTION_ADJUSTMENT = "portion_adjustment"
    COOKING_METHOD = "cooking_method"
    PREPARATION_MODIFICATION = "preparation_modification"


class AdaptationType(str, Enum):
    INGREDIENT_EXPLORATION = "ingredient_exploration"
    DIFFICULTY_ADJUSTMENT = "difficulty_adjustment"
    CUISINE_EXPLORATION = "cuisine_exploration"
    TIMING_OPTIMIZATION = "timing_optimization"


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def _format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


# =============================================================================
# Catalog Entities
# =============================================================================

@dataclass(frozen=True)
class Ingredient:
    """Catalog ingredient with its per-100g nutrition profile."""
    id: str
    name: str
    category: str = "other"  # e.g., "nuts", "dairy", "vegetables", "meats"
    calories_per_100g: float = 0.0
    protein_per_100g: float = 0.0
    carbs_per_100g: float = 0.0
    fat_per_100g: float = 0.0
    fiber_per_100g: float = 0.0
    anti_inflammatory_score: float = 0.0
    flavor_tags: List[str] = field(default_factory=list)  # overrides knowledge table when set

    def nutrition_profile(self) -> Dict[str, float]:
        """Per-100g values keyed by metric name."""
        return {
            "calories": self.calories_per_100g,
            "protein": self.protein_per_100g,
            "carbs": self.carbs_per_100g,
            "fat": self.fat_per_100g,
            "fiber": self.fiber_per_100g,
        }

    def matches(self, term: str) -> bool:
        """Case-insensitive substring match against name or category."""
        needle = term.strip().lower()
        if not needle:
            return False
        return needle in self.name.lower() or needle in self.category.lower()

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "calories_per_100g": self.calories_per_100g,
            "protein_per_100g": self.protein_per_100g,
            "carbs_per_100g": self.carbs_per_100g,
            "fat_per_100g": self.fat_per_100g,
            "fiber_per_100g": self.fiber_per_100g,
            "anti_inflammatory_score": self.anti_inflammatory_score,
            "flavor_tags": list(self.flavor_tags),
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "Ingredient":
        return cls(
            id=data["id"],
            name=data["name"],
            category=data.get("category", "other"),
            calories_per_100g=data.get("calories_per_100g", 0.0),
            protein_per_100g=data.get("protein_per_100g", 0.0),
            carbs_per_100g=data.get("carbs_per_100g", 0.0),
            fat_per_100g=data.get("fat_per_100g", 0.0),
            fiber_per_100g=data.get("fiber_per_100g", 0.0),
            anti_inflammatory_score=data.get("anti_inflammatory_score", 0.0),
            flavor_tags=list(data.get("flavor_tags", [])),
        )


@dataclass(frozen=True)
class RecipeIngredient:
    """An ingredient line in a recipe: catalog ingredient plus amount."""
    ingredient: Ingredient
    quantity: float
    unit: str = "g"
    preparation_notes: Optional[str] = None  # e.g., "chopped"

    @property
    def name(self) -> str:
        return self.ingredient.name

    @property
    def category(self) -> str:
        return self.ingredient.category

    def __str__(self) -> str:
        return f"{self.quantity:g} {self.unit} {self.ingredient.name}"

    def scale(self, factor: float) -> "RecipeIngredient":
        """Scale quantity by factor.

        Args:
            factor: Scaling factor (e.g., 2.0 for doubling, 0.5 for halving)

        Returns:
            New RecipeIngredient with scaled quantity
        """
        return replace(self, quantity=self.quantity * factor)

    def swap(self, substitute: Ingredient, ratio: float = 1.0) -> "RecipeIngredient":
        """Replace the ingredient, multiplying the quantity by ratio."""
        return replace(self, ingredient=substitute, quantity=self.quantity * ratio)

    def to_dict(self) -> Dict:
        return {
            "ingredient": self.ingredient.to_dict(),
            "quantity": self.quantity,
            "unit": self.unit,
            "preparation_notes": self.preparation_notes,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "RecipeIngredient":
        return cls(
            ingredient=Ingredient.from_dict(data["ingredient"]),
            quantity=data["quantity"],
            unit=data.get("unit", "g"),
            preparation_notes=data.get("preparation_notes"),
        )


@dataclass(frozen=True)
class NutritionInfo:
    """Nutrition information per serving."""
    calories: float = 0.0
    protein_g: float = 0.0
    carbs_g: float = 0.0
    fat_g: float = 0.0
    fiber_g: float = 0.0

    def __str__(self) -> str:
        """Human-readable nutrition summary."""
        return (
            f"{self.calories:g} cal, {self.protein_g:g}g protein, "
            f"{self.carbs_g:g}g carbs, {self.fat_g:g}g fat"
        )

    def to_dict(self) -> Dict:
        return {
            "calories": self.calories,
            "protein_g": self.protein_g,
            "carbs_g": self.carbs_g,
            "fat_g": self.fat_g,
            "fiber_g": self.fiber_g,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "NutritionInfo":
        return cls(
            calories=data.get("calories", 0.0),
            protein_g=data.get("protein_g", 0.0),
            carbs_g=data.get("carbs_g", 0.0),
            fat_g=data.get("fat_g", 0.0),
            fiber_g=data.get("fiber_g", 0.0),
        )


@dataclass(frozen=True)
class Recipe:
    """Recipe value. Modifications always produce a new Recipe."""

    id: str
    title: str
    ingredients: List[RecipeIngredient]
    nutrition: NutritionInfo = field(default_factory=NutritionInfo)  # per serving
    difficulty: str = Difficulty.MEDIUM.value  # "easy", "medium", "hard"
    servings: int = 1
    instructions: str = ""
    cuisine: Optional[str] = None
    meal_types: List[str] = field(default_factory=list)  # e.g., ["dinner"]
    prep_time_minutes: Optional[int] = None
    cook_time_minutes: Optional[int] = None
    anti_inflammatory_score: float = 0.0

    def ingredient_names(self) -> List[str]:
        return [item.name for item in self.ingredients]

    def has_ingredient(self, term: str) -> bool:
        """Check whether any ingredient name or category contains term."""
        return any(item.ingredient.matches(term) for item in self.ingredients)

    def scale_ingredients(self, target_servings: int) -> "Recipe":
        """Scale every ingredient to a new serving count.

        Nutrition stays per serving, so it is unchanged.

        Args:
            target_servings: Desired number of servings

        Returns:
            New Recipe with scaled quantities and updated servings

        Raises:
            ValueError: If this recipe has zero servings
        """
        if self.servings <= 0:
            raise ValueError(f"Recipe {self.id} has {self.servings} servings; cannot scale")

        factor = target_servings / self.servings
        return replace(
            self,
            ingredients=[item.scale(factor) for item in self.ingredients],
            servings=target_servings,
        )

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "title": self.title,
            "ingredients": [item.to_dict() for item in self.ingredients],
            "nutrition": self.nutrition.to_dict(),
            "difficulty": self.difficulty,
            "servings": self.servings,
            "instructions": self.instructions,
            "cuisine": self.cuisine,
            "meal_types": list(self.meal_types),
            "prep_time_minutes": self.prep_time_minutes,
            "cook_time_minutes": self.cook_time_minutes,
            "anti_inflammatory_score": self.anti_inflammatory_score,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "Recipe":
        """Create Recipe from dictionary."""
        return cls(
            id=data["id"],
            title=data["title"],
            ingredients=[RecipeIngredient.from_dict(i) for i in data.get("ingredients", [])],
            nutrition=NutritionInfo.from_dict(data.get("nutrition", {})),
            difficulty=data.get("difficulty", Difficulty.MEDIUM.value),
            servings=data.get("servings", 1),
            instructions=data.get("instructions", ""),
            cuisine=data.get("cuisine"),
            meal_types=list(data.get("meal_types", [])),
            prep_time_minutes=data.get("prep_time_minutes"),
            cook_time_minutes=data.get("cook_time_minutes"),
            anti_inflammatory_score=data.get("anti_inflammatory_score", 0.0),
        )


# =============================================================================
# Preference Model
# =============================================================================

@dataclass(frozen=True)
class PreferenceModel:
    """Learned preference state for one user.

    Created on the first feedback event and superseded (never mutated) by
    every later one. Timing weights are keyed "<meal_type>_<time_bucket>",
    e.g. "dinner_evening".
    """
    user_id: str
    ingredient_affinity: Dict[str, float] = field(default_factory=dict)  # [-1, 1]
    cuisine_affinity: Dict[str, float] = field(default_factory=dict)
    flavor_affinity: Dict[str, float] = field(default_factory=dict)
    cooking_method_affinity: Dict[str, float] = field(default_factory=dict)
    timing_weights: Dict[str, float] = field(default_factory=dict)
    portion_patterns: Dict[str, float] = field(default_factory=dict)  # meal type -> multiplier
    complexity_comfort: float = 0.5  # [0, 1]
    novelty_appetite: float = 0.5  # [0, 1]
    interaction_count: int = 0
    feedback_count: int = 0
    confidence: float = 0.0  # [0, 1]
    learning_rate: float = 1.0  # [0.1, 1]
    health_insights: List[Dict[str, Any]] = field(default_factory=list)
    dietary_compliance_score: float = 75.0
    stability_preference: float = 0.5
    last_feedback_at: Optional[datetime] = None

    def timing_weight(self, meal_type: str, bucket: str) -> Optional[float]:
        return self.timing_weights.get(timing_key(meal_type, bucket))

    def to_dict(self) -> Dict:
        return {
            "user_id": self.user_id,
            "ingredient_affinity": dict(self.ingredient_affinity),
            "cuisine_affinity": dict(self.cuisine_affinity),
            "flavor_affinity": dict(self.flavor_affinity),
            "cooking_method_affinity": dict(self.cooking_method_affinity),
            "timing_weights": dict(self.timing_weights),
            "portion_patterns": dict(self.portion_patterns),
            "complexity_comfort": self.complexity_comfort,
            "novelty_appetite": self.novelty_appetite,
            "interaction_count": self.interaction_count,
            "feedback_count": self.feedback_count,
            "confidence": self.confidence,
            "learning_rate": self.learning_rate,
            "health_insights": list(self.health_insights),
            "dietary_compliance_score": self.dietary_compliance_score,
            "stability_preference": self.stability_preference,
            "last_feedback_at": _format_datetime(self.last_feedback_at),
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "PreferenceModel":
        return cls(
            user_id=data["user_id"],
            ingredient_affinity=dict(data.get("ingredient_affinity", {})),
            cuisine_affinity=dict(data.get("cuisine_affinity", {})),
            flavor_affinity=dict(data.get("flavor_affinity", {})),
            cooking_method_affinity=dict(data.get("cooking_method_affinity", {})),
            timing_weights=dict(data.get("timing_weights", {})),
            portion_patterns=dict(data.get("portion_patterns", {})),
            complexity_comfort=data.get("complexity_comfort", 0.5),
            novelty_appetite=data.get("novelty_appetite", 0.5),
            interaction_count=data.get("interaction_count", 0),
            feedback_count=data.get("feedback_count", 0),
            confidence=data.get("confidence", 0.0),
            learning_rate=data.get("learning_rate", 1.0),
            health_insights=list(data.get("health_insights", [])),
            dietary_compliance_score=data.get("dietary_compliance_score", 75.0),
            stability_preference=data.get("stability_preference", 0.5),
            last_feedback_at=_parse_datetime(data.get("last_feedback_at")),
        )


def timing_key(meal_type: str, bucket: str) -> str:
    """Key for the timing-weight map."""
    return f"{meal_type.lower()}_{bucket}"


@dataclass(frozen=True)
class LearningEvent:
    """Record of one feedback event folded into a preference model."""
    user_id: str
    event_type: str  # "meal_completion"
    timestamp: datetime
    recipe_id: str
    satisfaction: int
    would_make_again: bool
    learning_weight: float  # [0.5, 1]

    def to_dict(self) -> Dict:
        return {
            "user_id": self.user_id,
            "event_type": self.event_type,
            "timestamp": _format_datetime(self.timestamp),
            "recipe_id": self.recipe_id,
            "satisfaction": self.satisfaction,
            "would_make_again": self.would_make_again,
            "learning_weight": self.learning_weight,
        }


# =============================================================================
# Recipe Adaptation Results
# =============================================================================

@dataclass(frozen=True)
class IngredientSubstitution:
    """A scored replacement for one ingredient."""
    original: Ingredient
    substitute: Ingredient
    substitution_ratio: float  # multiplier applied to the original quantity
    nutrition_similarity: float  # [0, 100]
    flavor_compatibility: float  # [0, 100]
    cooking_method_compatibility: float  # [0, 100]
    allergen_safety: bool
    confidence: float  # [0, 100]
    reason: str = ""

    def to_dict(self) -> Dict:
        return {
            "original": self.original.to_dict(),
            "substitute": self.substitute.to_dict(),
            "substitution_ratio": self.substitution_ratio,
            "nutrition_similarity": self.nutrition_similarity,
            "flavor_compatibility": self.flavor_compatibility,
            "cooking_method_compatibility": self.cooking_method_compatibility,
            "allergen_safety": self.allergen_safety,
            "confidence": self.confidence,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class ModificationDetail:
    """One atomic change applied during recipe modification."""
    type: ModificationType
    description: str
    impact_level: ImpactLevel
    original_value: Optional[str] = None
    new_value: Optional[str] = None
    substitution: Optional[IngredientSubstitution] = None

    def to_dict(self) -> Dict:
        return {
            "type": self.type.value,
            "description": self.description,
            "impact_level": self.impact_level.value,
            "original_value": self.original_value,
            "new_value": self.new_value,
            "substitution": self.substitution.to_dict() if self.substitution else None,
        }


@dataclass(frozen=True)
class UnresolvedRestriction:
    """An ingredient left in place because no substitute could be found."""
    ingredient_name: str
    restriction: str  # the allergen or diet rule it violates
    kind: str  # "allergen" or "diet"

    def to_dict(self) -> Dict:
        return {
            "ingredient_name": self.ingredient_name,
            "restriction": self.restriction,
            "kind": self.kind,
        }


@dataclass(frozen=True)
class NutritionImpact:
    """Per-serving nutrition deltas between modified and original recipe."""
    calories_change: float = 0.0
    protein_change: float = 0.0
    carbs_change: float = 0.0
    fat_change: float = 0.0
    fiber_change: float = 0.0
    anti_inflammatory_score_change: float = 0.0
    micronutrient_changes: Dict[str, float] = field(default_factory=dict)
    overall_nutrition_score: float = 85.0

    def to_dict(self) -> Dict:
        return {
            "calories_change": self.calories_change,
            "protein_change": self.protein_change,
            "carbs_change": self.carbs_change,
            "fat_change": self.fat_change,
            "fiber_change": self.fiber_change,
            "anti_inflammatory_score_change": self.anti_inflammatory_score_change,
            "micronutrient_changes": dict(self.micronutrient_changes),
            "overall_nutrition_score": self.overall_nutrition_score,
        }


@dataclass(frozen=True)
class RecipeModification:
    """Result of adapting a recipe to a user's restrictions and goals."""
    original_recipe: Recipe
    modified_recipe: Recipe
    modifications: List[ModificationDetail]
    nutrition_impact: NutritionImpact
    difficulty_change: float
    time_impact: int  # minutes
    cost_impact: float
    success_probability: float  # [50, 100]
    unresolved_restrictions: List[UnresolvedRestriction] = field(default_factory=list)

    @property
    def fully_satisfied(self) -> bool:
        """True when every declared allergen and diet exclusion was resolved."""
        return not self.unresolved_restrictions

    def to_dict(self) -> Dict:
        return {
            "original_recipe": self.original_recipe.to_dict(),
            "modified_recipe": self.modified_recipe.to_dict(),
            "modifications": [m.to_dict() for m in self.modifications],
            "nutrition_impact": self.nutrition_impact.to_dict(),
            "difficulty_change": self.difficulty_change,
            "time_impact": self.time_impact,
            "cost_impact": self.cost_impact,
            "success_probability": self.success_probability,
            "unresolved_restrictions": [u.to_dict() for u in self.unresolved_restrictions],
        }


@dataclass(frozen=True)
class CookingMethodOptimization:
    """Suggested switch from one cooking method to another."""
    original_method: str
    optimized_method: str
    nutrient_retention_improvement: float
    time_change: int  # minutes
    equipment_needed: List[str]
    difficulty_change: int
    reasoning: str

    def to_dict(self) -> Dict:
        return {
            "original_method": self.original_method,
            "optimized_method": self.optimized_method,
            "nutrient_retention_improvement": self.nutrient_retention_improvement,
            "time_change": self.time_change,
            "equipment_needed": list(self.equipment_needed),
            "difficulty_change": self.difficulty_change,
            "reasoning": self.reasoning,
        }


# =============================================================================
# Advisor and Recommendation Results
# =============================================================================

@dataclass(frozen=True)
class AdaptationRecommendation:
    """Higher-level behavioral suggestion derived from a preference model."""
    type: AdaptationType
    description: str
    rationale: str
    confidence: float  # [0, 1]
    expected_impact: float  # [0, 1]
    implementation_difficulty: str  # "easy", "medium", "hard"

    def to_dict(self) -> Dict:
        return {
            "type": self.type.value,
            "description": self.description,
            "rationale": self.rationale,
            "confidence": self.confidence,
            "expected_impact": self.expected_impact,
            "implementation_difficulty": self.implementation_difficulty,
        }


@dataclass(frozen=True)
class PersonalizationMetrics:
    """Summary of how well personalization is working for a user."""
    recommendation_accuracy: float
    user_satisfaction_trend: str  # "improving", "stable", "declining"
    learning_velocity: float  # [0, 1]
    prediction_confidence: float  # [0, 1]
    engagement_score: float  # [0, 100]
    health_correlation_strength: float  # [0, 1]

    def to_dict(self) -> Dict:
        return {
            "recommendation_accuracy": self.recommendation_accuracy,
            "user_satisfaction_trend": self.user_satisfaction_trend,
            "learning_velocity": self.learning_velocity,
            "prediction_confidence": self.prediction_confidence,
            "engagement_score": self.engagement_score,
            "health_correlation_strength": self.health_correlation_strength,
        }


@dataclass(frozen=True)
class ScoreBreakdown:
    """Total recommendation score plus its four weighted parts."""
    total: float
    ingredient_match: float
    timing_match: float
    complexity_match: float
    novelty_balance: float

    def to_dict(self) -> Dict:
        return {
            "total": self.total,
            "ingredient_match": self.ingredient_match,
            "timing_match": self.timing_match,
            "complexity_match": self.complexity_match,
            "novelty_balance": self.novelty_balance,
        }


@dataclass(frozen=True)
class RecommendationResult:
    """Ranked recipes for a context, with per-recipe reasoning."""
    recipes: List[Recipe]
    scores: List[ScoreBreakdown]
    reasoning: List[str]
    confidence: float

    def ranked(self) -> List[Tuple[Recipe, ScoreBreakdown]]:
        return list(zip(self.recipes, self.scores))

    def to_dict(self) -> Dict:
        return {
            "recipes": [r.to_dict() for r in self.recipes],
            "scores": [s.to_dict() for s in self.scores],
            "reasoning": list(self.reasoning),
            "confidence": self.confidence,
        }


# =============================================================================
# User Profile
# =============================================================================

@dataclass
class UserProfile:
    """Declared restrictions and the learned preference model for one user."""

    user_id: str
    allergens: List[str] = field(default_factory=list)  # e.g., ["peanut", "shellfish"]
    dietary_restrictions: List[str] = field(default_factory=list)  # e.g., ["vegetarian"]
    disliked_ingredients: List[str] = field(default_factory=list)
    preferred_substitutes: Dict[str, List[str]] = field(default_factory=dict)
    favorite_cuisines: List[str] = field(default_factory=list)
    recent_recipe_ids: List[str] = field(default_factory=list)
    preference_model: Optional[PreferenceModel] = None

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "user_id": self.user_id,
            "allergens": list(self.allergens),
            "dietary_restrictions": list(self.dietary_restrictions),
            "disliked_ingredients": list(self.disliked_ingredients),
            "preferred_substitutes": {k: list(v) for k, v in self.preferred_substitutes.items()},
            "favorite_cuisines": list(self.favorite_cuisines),
            "recent_recipe_ids": list(self.recent_recipe_ids),
            "preference_model": self.preference_model.to_dict() if self.preference_model else None,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "UserProfile":
        """Create UserProfile from dictionary."""
        model_data = data.get("preference_model")
        return cls(
            user_id=data["user_id"],
            allergens=list(data.get("allergens", [])),
            dietary_restrictions=list(data.get("dietary_restrictions", [])),
            disliked_ingredients=list(data.get("disliked_ingredients", [])),
            preferred_substitutes={
                k: list(v) for k, v in data.get("preferred_substitutes", {}).items()
            },
            favorite_cuisines=list(data.get("favorite_cuisines", [])),
            recent_recipe_ids=list(data.get("recent_recipe_ids", [])),
            preference_model=PreferenceModel.from_dict(model_data) if model_data else None,
        )
