"""
Catalog collaborator abstraction.

The engine reads ingredients and recipes through this interface:
- Catalog: abstract async lookup contract (storage is the caller's concern)
- InMemoryCatalog: dictionary-backed implementation for tests and demos
"""

from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional
import logging

from meal_personalization.data.models import Ingredient, Recipe

logger = logging.getLogger(__name__)


class Catalog(ABC):
    """Abstract base class for recipe/ingredient catalogs."""

    @abstractmethod
    async def get_ingredients_by_category(self, category: str, limit: Optional[int] = None) -> List[Ingredient]:
        """Ingredients in a category, in catalog order."""
        pass

    @abstractmethod
    async def get_ingredient_by_name(self, name: str) -> Optional[Ingredient]:
        """Best match for a name (exact first, then substring), or None."""
        pass

    @abstractmethod
    async def get_recipe_by_id(self, recipe_id: str) -> Optional[Recipe]:
        """Recipe by id, or None."""
        pass

    @abstractmethod
    async def get_candidate_recipes(self, meal_type: str, limit: Optional[int] = None) -> List[Recipe]:
        """Recipes suitable for a meal slot, in catalog order."""
        pass


class InMemoryCatalog(Catalog):
    """Catalog backed by in-process lists.

    Recipes with no meal_types are candidates for every meal slot.
    """

    def __init__(self, ingredients: Optional[Iterable[Ingredient]] = None,
                 recipes: Optional[Iterable[Recipe]] = None):
        self._ingredients: List[Ingredient] = list(ingredients or [])
        self._recipes: Dict[str, Recipe] = {r.id: r for r in (recipes or [])}
        logger.debug(
            f"[CATALOG] In-memory catalog with {len(self._ingredients)} ingredients, "
            f"{len(self._recipes)} recipes"
        )

    @classmethod
    def from_dict(cls, data: Dict) -> "InMemoryCatalog":
        """Build from {"ingredients": [...], "recipes": [...]} in to_dict form."""
        return cls(
            ingredients=[Ingredient.from_dict(i) for i in data.get("ingredients", [])],
            recipes=[Recipe.from_dict(r) for r in data.get("recipes", [])],
        )

    def add_ingredient(self, ingredient: Ingredient) -> None:
        self._ingredients.append(ingredient)

    def add_recipe(self, recipe: Recipe) -> None:
        self._recipes[recipe.id] = recipe

    async def get_ingredients_by_category(self, category: str, limit: Optional[int] = None) -> List[Ingredient]:
        wanted = category.strip().lower()
        matches = [i for i in self._ingredients if i.category.lower() == wanted]
        return matches[:limit] if limit is not None else matches

    async def get_ingredient_by_name(self, name: str) -> Optional[Ingredient]:
        wanted = name.strip().lower()
        if not wanted:
            return None

        for ingredient in self._ingredients:
            if ingredient.name.lower() == wanted:
                return ingredient

        for ingredient in self._ingredients:
            if wanted in ingredient.name.lower():
                return ingredient

        return None

    async def get_recipe_by_id(self, recipe_id: str) -> Optional[Recipe]:
        return self._recipes.get(recipe_id)

    async def get_candidate_recipes(self, meal_type: str, limit: Optional[int] = None) -> List[Recipe]:
        wanted = meal_type.strip().lower()
        matches = [
            r for r in self._recipes.values()
            if not r.meal_types or wanted in [m.lower() for m in r.meal_types]
        ]
        return matches[:limit] if limit is not None else matches
