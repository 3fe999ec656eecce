"""
Culinary knowledge tables for substitution and recipe adaptation.

This knowledge base provides flavor profiles, cooking-method compatibility,
diet restriction rules, and cooking-method optimization data. Tables are
versioned and can be extended or overridden from a JSON file so substitution
quality can improve without code changes.

JSON override format (every key optional):
    {
        "version": "2025.02-local",
        "flavor_profiles": {"leek": ["sweet", "savory"]},
        "method_compatibility": {"grilling": {"meats": 95}},
        "diet_rules": {"pescatarian": {"exclude": ["meat"], "substitutes": {"beef": "salmon"}}}
    }
"""

import json
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

KNOWLEDGE_VERSION = "2025.01"


@dataclass(frozen=True)
class DietRule:
    """Exclusion set and preferred substitutes for one dietary restriction."""
    exclude: List[str]  # matched against ingredient name and category
    substitutes: Dict[str, str]  # original name fragment -> substitute name


# =============================================================================
# Default Tables
# =============================================================================

FLAVOR_PROFILES: Dict[str, List[str]] = {
    "tomato": ["umami", "sweet", "acidic"],
    "onion": ["sweet", "pungent", "savory"],
    "garlic": ["pungent", "savory", "spicy"],
    "basil": ["herbal", "sweet", "peppery"],
    "shallot": ["sweet", "pungent", "savory"],
    "leek": ["sweet", "savory", "grassy"],
    "oregano": ["herbal", "peppery", "earthy"],
    "thyme": ["herbal", "earthy", "savory"],
    "lemon": ["acidic", "bright", "bitter"],
    "lime": ["acidic", "bright", "bitter"],
    "soy sauce": ["umami", "salty", "savory"],
    "tamari": ["umami", "salty", "savory"],
    "mushrooms": ["umami", "earthy", "savory"],
    "peanut butter": ["nutty", "sweet", "salty"],
    "almond butter": ["nutty", "sweet", "earthy"],
    "sunflower seed butter": ["nutty", "earthy", "salty"],
}

# (method -> ingredient category -> score 0-100). Untabulated pairs score 75.
METHOD_COMPATIBILITY: Dict[str, Dict[str, float]] = {
    "roasting": {"vegetables": 90, "meats": 95, "grains": 60},
    "boiling": {"vegetables": 85, "grains": 95, "pasta": 100},
    "frying": {"vegetables": 80, "meats": 90, "tofu": 85},
    "steaming": {"vegetables": 95, "fish": 90, "grains": 70},
}

DEFAULT_METHOD_COMPATIBILITY = 75.0

DIET_RULES: Dict[str, DietRule] = {
    "vegetarian": DietRule(
        exclude=["meat", "fish", "seafood"],
        substitutes={"beef": "tofu", "chicken": "tempeh", "fish": "mushrooms"},
    ),
    "vegan": DietRule(
        exclude=["meat", "fish", "seafood", "dairy", "eggs"],
        substitutes={"milk": "almond milk", "butter": "olive oil", "eggs": "flax eggs"},
    ),
    "gluten-free": DietRule(
        exclude=["wheat", "barley", "rye"],
        substitutes={"wheat flour": "rice flour", "bread": "gluten free bread"},
    ),
    "dairy-free": DietRule(
        exclude=["milk", "cheese", "butter", "cream"],
        substitutes={"milk": "oat milk", "cheese": "nutritional yeast", "butter": "coconut oil"},
    ),
}

# Checked in order; multi-word methods come first so "deep frying" wins over "frying".
# Heat and equipment cues come last so a named technique always wins.
DETECTABLE_METHODS: List[str] = [
    "deep frying", "slow cooking", "oven baking", "microwaving",
    "roasting", "boiling", "frying", "steaming", "grilling", "baking",
    "stovetop", "high heat", "overcooking",
]

METHOD_OPTIMIZATIONS: Dict[str, Dict[str, str]] = {
    "nutrient_retention": {
        "boiling": "steaming",
        "deep frying": "air frying",
        "overcooking": "gentle cooking",
        "high heat": "medium heat",
    },
    "time_efficiency": {
        "slow cooking": "pressure cooking",
        "oven baking": "air frying",
        "stovetop": "microwave",
    },
    "flavor_enhancement": {
        "boiling": "roasting",
        "steaming": "sautéing",
        "microwaving": "grilling",
    },
}

NUTRIENT_RETENTION: Dict[str, float] = {
    "steaming": 95,
    "air frying": 85,
    "roasting": 80,
    "sautéing": 75,
    "boiling": 60,
    "deep frying": 50,
}

COOKING_TIME_CHANGE: Dict[str, int] = {
    "pressure cooking": -15,
    "air frying": -10,
    "microwave": -20,
    "steaming": 5,
    "roasting": 10,
}

METHOD_EQUIPMENT: Dict[str, List[str]] = {
    "air frying": ["Air fryer"],
    "pressure cooking": ["Pressure cooker"],
    "steaming": ["Steamer basket"],
    "roasting": ["Oven"],
    "grilling": ["Grill or grill pan"],
}

METHOD_DIFFICULTY: Dict[str, int] = {
    "microwave": 1,
    "steaming": 2,
    "boiling": 2,
    "air frying": 3,
    "sautéing": 3,
    "roasting": 4,
    "grilling": 4,
    "pressure cooking": 5,
}

# Mass units convertible to grams; other units (cups, pieces) are not weighed
GRAMS_PER_UNIT: Dict[str, float] = {
    "g": 1.0,
    "gram": 1.0,
    "grams": 1.0,
    "kg": 1000.0,
    "oz": 28.35,
    "ounce": 28.35,
    "ounces": 28.35,
    "lb": 453.6,
    "lbs": 453.6,
    "pound": 453.6,
    "pounds": 453.6,
}


def normalize_restriction(name: str) -> str:
    """
    Normalize a restriction or goal name to its canonical table key.

    Examples:
        "Gluten_Free" -> "gluten-free"
        " dairy free " -> "dairy-free"
    """
    return "-".join(name.strip().lower().replace("_", " ").replace("-", " ").split())


# =============================================================================
# Knowledge Base
# =============================================================================

@dataclass(frozen=True)
class KnowledgeBase:
    """Immutable bundle of every lookup table the engine consults."""
    version: str = KNOWLEDGE_VERSION
    flavor_profiles: Dict[str, List[str]] = field(default_factory=lambda: dict(FLAVOR_PROFILES))
    method_compatibility: Dict[str, Dict[str, float]] = field(
        default_factory=lambda: {k: dict(v) for k, v in METHOD_COMPATIBILITY.items()}
    )
    diet_rules: Dict[str, DietRule] = field(default_factory=lambda: dict(DIET_RULES))
    detectable_methods: List[str] = field(default_factory=lambda: list(DETECTABLE_METHODS))
    method_optimizations: Dict[str, Dict[str, str]] = field(
        default_factory=lambda: {k: dict(v) for k, v in METHOD_OPTIMIZATIONS.items()}
    )
    nutrient_retention: Dict[str, float] = field(default_factory=lambda: dict(NUTRIENT_RETENTION))
    cooking_time_change: Dict[str, int] = field(default_factory=lambda: dict(COOKING_TIME_CHANGE))
    method_equipment: Dict[str, List[str]] = field(default_factory=lambda: dict(METHOD_EQUIPMENT))
    method_difficulty: Dict[str, int] = field(default_factory=lambda: dict(METHOD_DIFFICULTY))
    grams_per_unit: Dict[str, float] = field(default_factory=lambda: dict(GRAMS_PER_UNIT))

    def flavors_for(self, name: str) -> List[str]:
        """Flavor tags for an ingredient name (empty when unknown)."""
        return self.flavor_profiles.get(name.strip().lower(), [])

    def method_score(self, method: str, category: str) -> float:
        """Cooking-method compatibility for an ingredient category."""
        by_category = self.method_compatibility.get(method.strip().lower(), {})
        return float(by_category.get(category.strip().lower(), DEFAULT_METHOD_COMPATIBILITY))

    def diet_rule(self, restriction: str) -> Optional[DietRule]:
        """Rule for a dietary restriction, or None if the restriction is unknown."""
        return self.diet_rules.get(normalize_restriction(restriction))

    def detect_cooking_method(self, instructions: str) -> str:
        """First known cooking method named in free-text instructions, else 'general'."""
        lower = instructions.lower()
        for method in self.detectable_methods:
            if method in lower:
                return method
        return "general"

    def to_grams(self, quantity: float, unit: str) -> Optional[float]:
        """Convert a mass quantity to grams, or None for non-mass units."""
        factor = self.grams_per_unit.get(unit.strip().lower())
        if factor is None:
            return None
        return quantity * factor

    def merged(self, overrides: Dict) -> "KnowledgeBase":
        """
        Return a new KnowledgeBase with table entries added or replaced.

        Args:
            overrides: Mapping in the JSON override format (see module docstring)

        Returns:
            New KnowledgeBase; this instance is unchanged
        """
        flavor_profiles = dict(self.flavor_profiles)
        for name, tags in overrides.get("flavor_profiles", {}).items():
            flavor_profiles[name.strip().lower()] = list(tags)

        method_compatibility = {k: dict(v) for k, v in self.method_compatibility.items()}
        for method, scores in overrides.get("method_compatibility", {}).items():
            method_compatibility.setdefault(method.strip().lower(), {}).update(
                {category.lower(): float(score) for category, score in scores.items()}
            )

        diet_rules = dict(self.diet_rules)
        for name, rule in overrides.get("diet_rules", {}).items():
            diet_rules[normalize_restriction(name)] = DietRule(
                exclude=list(rule.get("exclude", [])),
                substitutes=dict(rule.get("substitutes", {})),
            )

        method_optimizations = {k: dict(v) for k, v in self.method_optimizations.items()}
        for goal, strategies in overrides.get("method_optimizations", {}).items():
            method_optimizations.setdefault(goal, {}).update(strategies)

        return replace(
            self,
            version=overrides.get("version", self.version),
            flavor_profiles=flavor_profiles,
            method_compatibility=method_compatibility,
            diet_rules=diet_rules,
            method_optimizations=method_optimizations,
        )


def default_knowledge() -> KnowledgeBase:
    """The built-in tables."""
    return KnowledgeBase()


def load_knowledge(path: Optional[str] = None) -> KnowledgeBase:
    """
    Load the knowledge base, applying JSON overrides when a path is given.

    Args:
        path: Optional JSON file in the override format

    Returns:
        KnowledgeBase

    Raises:
        FileNotFoundError: If the path does not exist
        ValueError: If the file is not a JSON object
    """
    knowledge = default_knowledge()
    if not path:
        return knowledge

    with open(Path(path), "r") as f:
        overrides = json.load(f)

    if not isinstance(overrides, dict):
        raise ValueError(f"Knowledge overrides in {path} must be a JSON object")

    merged = knowledge.merged(overrides)
    logger.info(f"[KNOWLEDGE] Loaded overrides from {path} (version={merged.version})")
    return merged
