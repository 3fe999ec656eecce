"""
Exception taxonomy for the personalization engine.

- NotFoundError: a referenced recipe or ingredient is absent (fail fast)
- ProcessingError: an unexpected fault inside a multi-step operation
- DeadlineExceededError: a collaborator call ran past its deadline
- ConcurrentUpdateError: a preference model save lost an update race
- UnresolvedRestrictionError: an allergen could not be substituted and the
  blocking policy is enabled

"No substitute found" is not an error: find_substitute returns None.
"""

from typing import List, Optional


class PersonalizationError(Exception):
    """Base class for all engine errors."""
    pass


class NotFoundError(PersonalizationError):
    """Raised when a recipe or ingredient cannot be resolved."""

    def __init__(self, kind: str, identifier: str):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found: {identifier}")


class ProcessingError(PersonalizationError):
    """Raised when a multi-step operation fails part way through.

    The original exception is chained as __cause__. Callers may retry the
    whole operation; nothing is retried internally.
    """

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"{operation} failed: {message}")


class DeadlineExceededError(ProcessingError):
    """Raised when a collaborator call exceeds its deadline."""

    def __init__(self, operation: str, deadline: float):
        self.deadline = deadline
        super().__init__(operation, f"deadline of {deadline:.2f}s exceeded")


class ConcurrentUpdateError(PersonalizationError):
    """Raised when a preference model is saved with a stale version token."""

    def __init__(self, user_id: str, expected_version: int, actual_version: int):
        self.user_id = user_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Preference model for {user_id} changed concurrently "
            f"(expected version {expected_version}, found {actual_version})"
        )


class UnresolvedRestrictionError(PersonalizationError):
    """Raised when allergens remain in a recipe and blocking is enabled."""

    def __init__(self, recipe_id: str, unresolved: List[str], detail: Optional[str] = None):
        self.recipe_id = recipe_id
        self.unresolved = list(unresolved)
        message = f"Recipe {recipe_id} still contains restricted ingredients: {', '.join(unresolved)}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
