"""
Engine settings.

Values come from environment variables (optionally loaded from a .env file).
Every service takes an explicit Settings so tests never read the environment.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    """Tunable knobs for the personalization engine."""
    substitute_min_confidence: float = 60.0  # strictly greater-than threshold
    candidate_limit: int = 20  # same-category pool size per lookup
    recommendation_limit: int = 10  # top-N slice for recommendations
    deadline_seconds: float = 10.0  # per collaborator round trip
    block_unresolved_allergens: bool = False
    knowledge_path: Optional[str] = None  # JSON overrides for knowledge tables
    log_level: str = "INFO"


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.lower() == "true"


def get_settings(env_file: Optional[str] = None) -> Settings:
    """
    Build Settings from the environment.

    Args:
        env_file: Optional path to a .env file (defaults to ./.env if present)

    Returns:
        Settings instance
    """
    load_dotenv(env_file)

    return Settings(
        substitute_min_confidence=float(
            os.environ.get("PERSONALIZATION_SUBSTITUTE_MIN_CONFIDENCE", 60)
        ),
        candidate_limit=int(os.environ.get("PERSONALIZATION_CANDIDATE_LIMIT", 20)),
        recommendation_limit=int(os.environ.get("PERSONALIZATION_RECOMMENDATION_LIMIT", 10)),
        deadline_seconds=float(os.environ.get("PERSONALIZATION_DEADLINE_SECONDS", 10.0)),
        block_unresolved_allergens=_env_bool("PERSONALIZATION_BLOCK_UNRESOLVED_ALLERGENS", False),
        knowledge_path=os.environ.get("PERSONALIZATION_KNOWLEDGE_PATH") or None,
        log_level=os.environ.get("PERSONALIZATION_LOG_LEVEL", "INFO"),
    )


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Configure root logging for scripts and demos (the library never calls this)."""
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
