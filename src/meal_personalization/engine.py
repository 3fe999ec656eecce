"""
PersonalizationEngine: the service callers use.

Wires the pure components to the Catalog and ProfileStore collaborators.
The engine holds no per-user state between calls except the lock registry
used to serialize feedback submissions for the same user.

Every collaborator call runs under a deadline (settings.deadline_seconds,
overridable per call); a timeout raises DeadlineExceededError.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Tuple

from meal_personalization.adaptation import analyze_adaptation_opportunities, calculate_personalization_metrics
from meal_personalization.config import Settings, get_settings
from meal_personalization.data.catalog import Catalog
from meal_personalization.data.models import (
    AdaptationRecommendation,
    CookingMethodOptimization,
    Ingredient,
    IngredientSubstitution,
    LearningEvent,
    PersonalizationMetrics,
    PreferenceModel,
    Recipe,
    RecipeModification,
    RecommendationResult,
    UserProfile,
)
from meal_personalization.data.profile_store import ProfileStore
from meal_personalization.data.requests import (
    FeedbackEvent,
    NutritionPriority,
    PortionConstraints,
    RecommendationContext,
    Restrictions,
)
from meal_personalization.errors import DeadlineExceededError, NotFoundError, PersonalizationError
from meal_personalization.knowledge import KnowledgeBase, load_knowledge
from meal_personalization.preference_learning import fold_feedback
from meal_personalization.recipe_modifier import GoalStrategy, RecipeModifier, adjust_portions
from meal_personalization.recommendation import recommend
from meal_personalization.substitution import SubstitutionResolver

logger = logging.getLogger(__name__)


class DeadlineCatalog(Catalog):
    """Catalog wrapper that bounds every call with asyncio.wait_for."""

    def __init__(self, inner: Catalog, deadline: float):
        self.inner = inner
        self.deadline = deadline

    async def _call(self, operation: str, coro):
        try:
            return await asyncio.wait_for(coro, timeout=self.deadline)
        except asyncio.TimeoutError as exc:
            logger.error(f"[CATALOG] {operation} exceeded {self.deadline:.2f}s")
            raise DeadlineExceededError(operation, self.deadline) from exc

    async def get_ingredients_by_category(self, category: str, limit: Optional[int] = None) -> List[Ingredient]:
        return await self._call(
            "get_ingredients_by_category", self.inner.get_ingredients_by_category(category, limit)
        )

    async def get_ingredient_by_name(self, name: str) -> Optional[Ingredient]:
        return await self._call("get_ingredient_by_name", self.inner.get_ingredient_by_name(name))

    async def get_recipe_by_id(self, recipe_id: str) -> Optional[Recipe]:
        return await self._call("get_recipe_by_id", self.inner.get_recipe_by_id(recipe_id))

    async def get_candidate_recipes(self, meal_type: str, limit: Optional[int] = None) -> List[Recipe]:
        return await self._call("get_candidate_recipes", self.inner.get_candidate_recipes(meal_type, limit))


class PersonalizationEngine:
    """
    Preference learning, recommendation and recipe adaptation over a catalog.

    Args:
        catalog: Recipe/ingredient lookups
        profile_store: Optional store used by submit_feedback
        settings: Engine settings (defaults to get_settings())
        knowledge: Knowledge tables (defaults to settings.knowledge_path or built-ins)
        goal_strategies: Extra goal name -> strategy registrations
    """

    def __init__(
        self,
        catalog: Catalog,
        profile_store: Optional[ProfileStore] = None,
        settings: Optional[Settings] = None,
        knowledge: Optional[KnowledgeBase] = None,
        goal_strategies: Optional[Dict[str, GoalStrategy]] = None,
    ):
        self.catalog = catalog
        self.profile_store = profile_store
        self.settings = settings or get_settings()
        self.knowledge = knowledge or load_knowledge(self.settings.knowledge_path)
        self._goal_strategies: Dict[str, GoalStrategy] = dict(goal_strategies or {})

        # Per-user locks serializing read-modify-write of preference models
        self._user_locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}
        self._lock_manager = asyncio.Lock()

        logger.info(
            f"[ENGINE] Initialized (knowledge={self.knowledge.version}, "
            f"deadline={self.settings.deadline_seconds}s)"
        )

    def register_goal_strategy(self, goal: str, strategy: GoalStrategy) -> None:
        """Register the transform run for an optimization goal."""
        self._goal_strategies[goal] = strategy

    # =========================================================================
    # Collaborator wiring
    # =========================================================================

    def _catalog(self, deadline: Optional[float]) -> Catalog:
        return DeadlineCatalog(self.catalog, self._timeout(deadline))

    def _resolver(self, catalog: Catalog) -> SubstitutionResolver:
        return SubstitutionResolver(catalog, self.knowledge, self.settings)

    def _modifier(self, catalog: Catalog) -> RecipeModifier:
        return RecipeModifier(
            catalog,
            resolver=self._resolver(catalog),
            knowledge=self.knowledge,
            settings=self.settings,
            goal_strategies=self._goal_strategies,
        )

    async def _store_call(self, operation: str, coro, deadline: Optional[float]):
        timeout = self._timeout(deadline)
        try:
            return await asyncio.wait_for(coro, timeout=timeout)
        except asyncio.TimeoutError as exc:
            logger.error(f"[PROFILE_STORE] {operation} exceeded {timeout:.2f}s")
            raise DeadlineExceededError(operation, timeout) from exc

    def _timeout(self, deadline: Optional[float]) -> float:
        return self.settings.deadline_seconds if deadline is None else deadline

    async def _get_user_lock(self, user_id: str) -> asyncio.Lock:
        async with self._lock_manager:
            if user_id not in self._user_locks:
                self._user_locks[user_id] = asyncio.Lock()
            self._lock_users[user_id] = self._lock_users.get(user_id, 0) + 1
            return self._user_locks[user_id]

    async def _release_user_lock(self, user_id: str) -> None:
        # Drop the entry once no submission holds or awaits it
        async with self._lock_manager:
            self._lock_users[user_id] -= 1
            if self._lock_users[user_id] == 0:
                del self._lock_users[user_id]
                del self._user_locks[user_id]

    # =========================================================================
    # Preference learning
    # =========================================================================

    async def process_feedback(
        self,
        feedback: FeedbackEvent,
        current_model: Optional[PreferenceModel] = None,
        deadline: Optional[float] = None,
    ) -> PreferenceModel:
        """
        Resolve the feedback's recipe and fold the feedback into a model.

        Raises:
            NotFoundError: If the recipe is not in the catalog (model untouched)
            DeadlineExceededError: If the catalog lookup times out
        """
        model, _ = await self.learn_from_feedback(feedback, current_model, deadline)
        return model

    async def learn_from_feedback(
        self,
        feedback: FeedbackEvent,
        current_model: Optional[PreferenceModel] = None,
        deadline: Optional[float] = None,
    ) -> Tuple[PreferenceModel, LearningEvent]:
        """process_feedback, also returning the LearningEvent."""
        recipe = await self._catalog(deadline).get_recipe_by_id(feedback.recipe_id)
        if recipe is None:
            logger.warning(f"[ENGINE] Feedback for unknown recipe {feedback.recipe_id}")
            raise NotFoundError("recipe", feedback.recipe_id)
        return fold_feedback(feedback, recipe, current_model, self.knowledge)

    async def submit_feedback(
        self,
        user_id: str,
        feedback: FeedbackEvent,
        deadline: Optional[float] = None,
    ) -> PreferenceModel:
        """
        Load, update and save a user's model, serialized per user.

        Concurrent submissions for the same user run one at a time; a save
        that races a writer outside this engine fails with
        ConcurrentUpdateError rather than losing the other update.

        Raises:
            PersonalizationError: If no profile store is configured
            ConcurrentUpdateError: If the stored version changed underneath
        """
        if self.profile_store is None:
            raise PersonalizationError("submit_feedback requires a profile store")
        if feedback.user_id != user_id:
            raise ValueError(f"Feedback belongs to {feedback.user_id}, not {user_id}")

        lock = await self._get_user_lock(user_id)
        try:
            async with lock:
                stored = await self._store_call("load_profile", self.profile_store.load(user_id), deadline)
                model = await self.process_feedback(feedback, stored.model, deadline)
                version = await self._store_call(
                    "save_profile", self.profile_store.save(user_id, model, stored.version), deadline
                )
        finally:
            await self._release_user_lock(user_id)
        logger.info(f"[ENGINE] Saved model for {user_id} at v{version}")
        return model

    # =========================================================================
    # Recommendations and advice
    # =========================================================================

    async def generate_recommendations(
        self,
        user_profile: UserProfile,
        context: RecommendationContext,
        limit: Optional[int] = None,
        deadline: Optional[float] = None,
    ) -> RecommendationResult:
        """Rank the catalog's candidates for a meal slot against the user's model."""
        candidates = await self._catalog(deadline).get_candidate_recipes(context.meal_type)
        if not context.recent_recipe_ids and user_profile.recent_recipe_ids:
            context = context.model_copy(update={"recent_recipe_ids": list(user_profile.recent_recipe_ids)})
        return recommend(
            candidates,
            user_profile.preference_model,
            context,
            limit or self.settings.recommendation_limit,
        )

    def analyze_adaptation_opportunities(self, user_profile: UserProfile) -> List[AdaptationRecommendation]:
        """Advisor output for the user's model (empty until a model exists)."""
        if user_profile.preference_model is None:
            return []
        return analyze_adaptation_opportunities(user_profile.preference_model)

    def calculate_personalization_metrics(self, user_profile: UserProfile) -> PersonalizationMetrics:
        model = user_profile.preference_model or PreferenceModel(user_id=user_profile.user_id)
        return calculate_personalization_metrics(model)

    # =========================================================================
    # Recipe adaptation
    # =========================================================================

    async def modify_recipe(
        self,
        recipe: Recipe,
        user_profile: Optional[UserProfile] = None,
        restrictions: Optional[Restrictions] = None,
        goals: Optional[List[str]] = None,
        block_unresolved: Optional[bool] = None,
        deadline: Optional[float] = None,
    ) -> RecipeModification:
        """
        Adapt a recipe. Restrictions default to those the profile declares.

        Raises:
            UnresolvedRestrictionError: If blocking is on and an allergen remains
            DeadlineExceededError: If a catalog lookup times out
            ProcessingError: If any other step fails
        """
        if restrictions is None:
            restrictions = Restrictions.from_profile(user_profile) if user_profile else Restrictions()
        modifier = self._modifier(self._catalog(deadline))
        return await modifier.modify_recipe(recipe, restrictions, goals, user_profile, block_unresolved)

    async def find_substitute(
        self,
        ingredient: Ingredient,
        restrictions: Optional[Restrictions] = None,
        cooking_method: str = "general",
        priority: NutritionPriority = NutritionPriority.MAINTAIN,
        deadline: Optional[float] = None,
    ) -> Optional[IngredientSubstitution]:
        """Best substitute for an ingredient, or None."""
        resolver = self._resolver(self._catalog(deadline))
        return await resolver.find_substitute(ingredient, restrictions, cooking_method, priority)

    def adjust_portions(self, recipe: Recipe, target_servings: int,
                        constraints: Optional[PortionConstraints] = None) -> Recipe:
        return adjust_portions(recipe, target_servings, constraints)

    def optimize_cooking_method(self, recipe: Recipe, goal: str) -> Optional[CookingMethodOptimization]:
        return self._modifier(self.catalog).optimize_cooking_method(recipe, goal)
