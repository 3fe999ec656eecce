"""
Validated caller input for the personalization engine.

Pydantic models reject out-of-range values at the boundary so the pure
components can assume well-formed input:
- FeedbackEvent: one meal's feedback (frozen once created)
- Restrictions: allergens, diet rules, dislikes, preferred substitutes
- PortionConstraints: optional caps applied when rescaling a recipe
- RecommendationContext: meal slot, hour of day, recently eaten recipes
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from meal_personalization.data.models import UserProfile


class PerceivedDifficulty(str, Enum):
    """How the cook felt about the recipe's difficulty."""
    EASIER = "easier"
    AS_EXPECTED = "as_expected"
    HARDER = "harder"


class FeedbackType(str, Enum):
    LIKE = "like"
    DISLIKE = "dislike"
    LOVE = "love"
    NEUTRAL = "neutral"


class NutritionPriority(str, Enum):
    """What a substitution should do to the nutrition profile."""
    MAINTAIN = "maintain"
    IMPROVE = "improve"
    REDUCE_CALORIES = "reduce_calories"


def _clean_names(values: list[str]) -> list[str]:
    """Strip whitespace and drop blanks, keeping order."""
    return [v.strip() for v in values if v and v.strip()]


class FeedbackEvent(BaseModel):
    """
    Feedback for one consumed meal.

    Validation rules:
    - rating: 1-5
    - satisfaction: 1-10
    - taste_rating: 1-5 when given
    - cooking_time_actual: non-negative minutes when given
    """
    model_config = ConfigDict(frozen=True)

    user_id: str
    recipe_id: str
    rating: int = Field(ge=1, le=5)
    satisfaction: int = Field(ge=1, le=10)
    difficulty_perceived: PerceivedDifficulty = PerceivedDifficulty.AS_EXPECTED
    would_make_again: bool = False
    taste_rating: Optional[int] = Field(default=None, ge=1, le=5)
    post_meal_feeling: Optional[str] = None  # e.g., "energized", "heavy"
    consumed_at: datetime
    meal_type: str = "dinner"
    feedback_type: FeedbackType = FeedbackType.NEUTRAL
    cooking_time_actual: Optional[int] = Field(default=None, ge=0)
    comment: Optional[str] = None  # stored, never interpreted
    modifications_made: tuple[str, ...] = ()

    @field_validator('meal_type')
    @classmethod
    def normalize_meal_type(cls, v: str) -> str:
        v = v.strip().lower()
        if not v:
            raise ValueError("meal_type must not be empty")
        return v


class Restrictions(BaseModel):
    """Constraint set applied when adapting a recipe or finding substitutes."""
    allergens: list[str] = Field(default_factory=list)
    dietary_restrictions: list[str] = Field(default_factory=list)
    disliked_ingredients: list[str] = Field(default_factory=list)
    preferred_substitutes: dict[str, list[str]] = Field(default_factory=dict)

    @field_validator('allergens', 'dietary_restrictions', 'disliked_ingredients')
    @classmethod
    def clean_names(cls, v: list[str]) -> list[str]:
        return _clean_names(v)

    @field_validator('preferred_substitutes')
    @classmethod
    def clean_preferred(cls, v: dict[str, list[str]]) -> dict[str, list[str]]:
        return {
            key.strip().lower(): _clean_names(names)
            for key, names in v.items()
            if key.strip() and _clean_names(names)
        }

    def is_empty(self) -> bool:
        return not (
            self.allergens
            or self.dietary_restrictions
            or self.disliked_ingredients
            or self.preferred_substitutes
        )

    def avoid_terms(self) -> list[str]:
        """Names a substitute must not contain (allergens and dislikes)."""
        return self.allergens + self.disliked_ingredients

    @classmethod
    def from_profile(cls, profile: UserProfile) -> "Restrictions":
        """Build the restriction set a user profile declares."""
        return cls(
            allergens=profile.allergens,
            dietary_restrictions=profile.dietary_restrictions,
            disliked_ingredients=profile.disliked_ingredients,
            preferred_substitutes=profile.preferred_substitutes,
        )


class PortionConstraints(BaseModel):
    """Optional per-serving caps for portion adjustment."""
    max_calories: Optional[float] = Field(default=None, gt=0)
    min_protein: Optional[float] = Field(default=None, ge=0)


class RecommendationContext(BaseModel):
    """Situation a recommendation is generated for."""
    meal_type: str = "dinner"
    hour: int = Field(ge=0, le=23)
    recent_recipe_ids: list[str] = Field(default_factory=list)

    @model_validator(mode='after')
    def validate_recent(self) -> 'RecommendationContext':
        """Recent recipe ids are compared as-is, so blanks are rejected."""
        if any(not rid.strip() for rid in self.recent_recipe_ids):
            raise ValueError("recent_recipe_ids must not contain blank ids")
        return self

    @field_validator('meal_type')
    @classmethod
    def normalize_meal_type(cls, v: str) -> str:
        v = v.strip().lower()
        if not v:
            raise ValueError("meal_type must not be empty")
        return v

    @classmethod
    def at(cls, meal_type: str, when: datetime, recent_recipe_ids: Optional[list[str]] = None) -> "RecommendationContext":
        """Context for a meal at a given moment."""
        return cls(meal_type=meal_type, hour=when.hour, recent_recipe_ids=recent_recipe_ids or [])
