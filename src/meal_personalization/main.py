#!/usr/bin/env python3
"""
Command-line entry point for the personalization engine.

Runs engine operations against a JSON catalog file and prints the result
as JSON. The catalog file holds {"ingredients": [...], "recipes": [...]}
in the models' to_dict form.
"""

import argparse
import asyncio
import json
import logging
from typing import Optional

from meal_personalization.config import configure_logging, get_settings
from meal_personalization.data.catalog import InMemoryCatalog
from meal_personalization.data.models import UserProfile
from meal_personalization.data.requests import (
    NutritionPriority,
    PortionConstraints,
    RecommendationContext,
    Restrictions,
)
from meal_personalization.engine import PersonalizationEngine
from meal_personalization.errors import NotFoundError, PersonalizationError

logger = logging.getLogger(__name__)


def load_catalog(path: str) -> InMemoryCatalog:
    with open(path, "r") as f:
        return InMemoryCatalog.from_dict(json.load(f))


def load_profile(path: Optional[str]) -> UserProfile:
    if not path:
        return UserProfile(user_id="cli")
    with open(path, "r") as f:
        return UserProfile.from_dict(json.load(f))


def _restrictions(args: argparse.Namespace, profile: UserProfile) -> Restrictions:
    return Restrictions(
        allergens=profile.allergens + args.allergen,
        dietary_restrictions=profile.dietary_restrictions + args.diet,
        disliked_ingredients=profile.disliked_ingredients + args.dislike,
        preferred_substitutes=profile.preferred_substitutes,
    )


async def run(args: argparse.Namespace) -> dict:
    catalog = load_catalog(args.catalog)
    profile = load_profile(args.profile)
    engine = PersonalizationEngine(catalog, settings=get_settings())

    if args.command == "substitute":
        ingredient = await catalog.get_ingredient_by_name(args.ingredient)
        if ingredient is None:
            raise NotFoundError("ingredient", args.ingredient)
        substitution = await engine.find_substitute(
            ingredient, _restrictions(args, profile), args.method, NutritionPriority(args.priority)
        )
        return substitution.to_dict() if substitution else {"substitute": None}

    if args.command == "recommend":
        context = RecommendationContext(meal_type=args.meal_type, hour=args.hour)
        result = await engine.generate_recommendations(profile, context, limit=args.limit)
        return result.to_dict()

    recipe = await catalog.get_recipe_by_id(args.recipe_id)
    if recipe is None:
        raise NotFoundError("recipe", args.recipe_id)

    if args.command == "modify":
        modification = await engine.modify_recipe(
            recipe, profile, _restrictions(args, profile), goals=args.goal
        )
        return modification.to_dict()

    if args.command == "portions":
        constraints = PortionConstraints(max_calories=args.max_calories)
        return engine.adjust_portions(recipe, args.servings, constraints).to_dict()

    optimization = engine.optimize_cooking_method(recipe, args.method_goal)
    return optimization.to_dict() if optimization else {"optimization": None}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Meal personalization engine")
    parser.add_argument(
        "command",
        choices=["modify", "substitute", "recommend", "portions", "optimize"],
        help="Operation to run",
    )
    parser.add_argument("--catalog", required=True, help="Catalog JSON file")
    parser.add_argument("--profile", help="UserProfile JSON file")
    parser.add_argument("--recipe-id", help="Recipe ID (modify, portions, optimize)")
    parser.add_argument("--ingredient", help="Ingredient name (substitute)")
    parser.add_argument("--allergen", action="append", default=[], help="Allergen to avoid")
    parser.add_argument("--diet", action="append", default=[], help="Dietary restriction")
    parser.add_argument("--dislike", action="append", default=[], help="Disliked ingredient")
    parser.add_argument("--goal", action="append", default=[], help="Optimization goal")
    parser.add_argument("--method", default="general", help="Cooking method (substitute)")
    parser.add_argument(
        "--priority",
        default=NutritionPriority.MAINTAIN.value,
        choices=[p.value for p in NutritionPriority],
        help="Nutrition priority (substitute)",
    )
    parser.add_argument("--meal-type", default="dinner", help="Meal slot (recommend)")
    parser.add_argument("--hour", type=int, default=19, help="Hour of day (recommend)")
    parser.add_argument("--limit", type=int, help="Number of recipes (recommend)")
    parser.add_argument("--servings", type=int, help="Target servings (portions)")
    parser.add_argument("--max-calories", type=float, help="Calorie cap per serving (portions)")
    parser.add_argument(
        "--method-goal",
        default="nutrient_retention",
        choices=["nutrient_retention", "time_efficiency", "flavor_enhancement"],
        help="Cooking-method goal (optimize)",
    )

    return parser


def main(argv: Optional[list] = None):
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging()

    required = {"modify": "recipe_id", "portions": "recipe_id", "optimize": "recipe_id",
                "substitute": "ingredient"}
    missing = required.get(args.command)
    if missing and not getattr(args, missing):
        parser.error(f"--{missing.replace('_', '-')} required for '{args.command}' command")
    if args.command == "portions" and not args.servings:
        parser.error("--servings required for 'portions' command")

    try:
        result = asyncio.run(run(args))
    except PersonalizationError as e:
        logger.error(f"{args.command} failed: {e}")
        raise SystemExit(1)

    print(json.dumps(result, indent=2))


if __name__ == "__main__":
    main()
