"""Error taxonomy for the recommendation service"""
from typing import Any, Optional


class RecommendationError(Exception):
    """Base class for recommendation errors"""


class NotFoundError(RecommendationError):
    """A referenced learner or course does not exist"""

    def __init__(self, entity: str, identifier: str):
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity} {identifier} not found")


class NotEligibleError(RecommendationError):
    """The learner exists but fails an eligibility gate"""

    def __init__(self, criterion: str, message: str, current: Any = None, required: Any = None):
        self.criterion = criterion
        self.current = current
        self.required = required
        super().__init__(message)

    def to_detail(self) -> dict:
        return {
            "criterion": self.criterion,
            "message": str(self),
            "current": self.current,
            "required": self.required,
        }


class SearchBackendUnavailable(RecommendationError):
    """The vector/keyword search backend failed.

    ``kind`` is one of ``connection``, ``missing_index`` or ``query`` so the
    cause can be logged distinctly; every kind is recovered the same way.
    """

    CONNECTION = "connection"
    MISSING_INDEX = "missing_index"
    QUERY = "query"

    def __init__(self, kind: str, cause: Optional[BaseException] = None):
        self.kind = kind
        self.cause = cause
        super().__init__(f"Search backend unavailable ({kind}): {cause}")


class SignalSourceDegraded(RecommendationError):
    """A single signal source failed; the request continues without it"""

    def __init__(self, strategy: str, cause: Optional[BaseException] = None):
        self.strategy = strategy
        self.cause = cause
        super().__init__(f"Signal source '{strategy}' degraded: {cause}")
