from course_recommender.services.signals.base import SignalSource
from course_recommender.services.signals.collaborative import CollaborativeSource
from course_recommender.services.signals.content import ContentBasedSource
from course_recommender.services.signals.department import DepartmentAffinitySource
from course_recommender.services.signals.hybrid import HybridSource

__all__ = [
    "SignalSource",
    "CollaborativeSource",
    "ContentBasedSource",
    "DepartmentAffinitySource",
    "HybridSource",
]
