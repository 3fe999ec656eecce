"""
Profile store collaborator abstraction.

Preference models are saved with an optimistic version token: every save
names the version it was derived from, and a mismatch means another writer
got there first.
- ProfileStore: abstract async read/write contract
- InMemoryProfileStore: dictionary-backed implementation for tests and demos
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional
import logging

from meal_personalization.data.models import PreferenceModel
from meal_personalization.errors import ConcurrentUpdateError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredModel:
    """A preference model plus the version token it was saved under."""
    model: Optional[PreferenceModel]
    version: int  # 0 means nothing stored yet


class ProfileStore(ABC):
    """Abstract base class for preference model storage."""

    @abstractmethod
    async def load(self, user_id: str) -> StoredModel:
        """Current model and version (model None, version 0 if absent)."""
        pass

    @abstractmethod
    async def save(self, user_id: str, model: PreferenceModel, expected_version: int) -> int:
        """
        Save a model derived from expected_version.

        Returns:
            The new version token

        Raises:
            ConcurrentUpdateError: If the stored version is not expected_version
        """
        pass


class InMemoryProfileStore(ProfileStore):
    """Profile store kept in a dict; not shared across processes."""

    def __init__(self):
        self._models: Dict[str, StoredModel] = {}

    async def load(self, user_id: str) -> StoredModel:
        return self._models.get(user_id, StoredModel(model=None, version=0))

    async def save(self, user_id: str, model: PreferenceModel, expected_version: int) -> int:
        current = self._models.get(user_id, StoredModel(model=None, version=0))
        if current.version != expected_version:
            logger.warning(
                f"[PROFILE_STORE] Rejected stale save for {user_id}: "
                f"expected v{expected_version}, found v{current.version}"
            )
            raise ConcurrentUpdateError(user_id, expected_version, current.version)

        new_version = current.version + 1
        self._models[user_id] = StoredModel(model=model, version=new_version)
        logger.debug(f"[PROFILE_STORE] Saved model for {user_id} at v{new_version}")
        return new_version
