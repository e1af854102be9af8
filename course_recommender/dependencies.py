"""Dependency injection for FastAPI"""
from course_recommender.core.config import settings
from course_recommender.core.database import get_elasticsearch_client, get_mysql_client
from course_recommender.services.course_store import CourseStore, MySQLCourseStore
from course_recommender.services.eligibility import EligibilityChecker
from course_recommender.services.fusion import HybridSearchEngine
from course_recommender.services.identity import ExclusionPolicy
from course_recommender.services.orchestrator import RecommendationOrchestrator, build_sources
from course_recommender.services.search_backend import ElasticsearchSearchBackend, SearchBackend
from course_recommender.services.signals import HybridSource


# Service instances cache
_course_store = None
_search_backend = None
_orchestrator = None


def get_course_store() -> CourseStore:
    """
    Get or create the MySQL-backed course store.
    This is a dependency for FastAPI endpoints.
    """
    global _course_store
    if _course_store is None:
        _course_store = MySQLCourseStore(get_mysql_client())
    return _course_store


def get_search_backend() -> SearchBackend:
    """Get or create the Elasticsearch search backend"""
    global _search_backend
    if _search_backend is None:
        es_client = get_elasticsearch_client()
        _search_backend = ElasticsearchSearchBackend(es_client.client, settings.EMBEDDINGS_INDEX)
    return _search_backend


def build_orchestrator(store: CourseStore, backend: SearchBackend, exclusions: ExclusionPolicy) -> RecommendationOrchestrator:
    """Wire the signal sources, fusion engine and eligibility gate together"""
    engine = HybridSearchEngine(
        backend,
        store,
        rrf_k=settings.RRF_K,
        knn_weight=settings.KNN_WEIGHT,
        bm25_weight=settings.BM25_WEIGHT,
        candidate_multiplier=settings.CANDIDATE_MULTIPLIER,
    )
    hybrid = HybridSource(
        store,
        engine,
        model_id=settings.EMBEDDING_MODEL,
        seed_courses=settings.EMBEDDING_SEED_COURSES,
        per_seed_limit=settings.EMBEDDING_PER_SEED_LIMIT,
        semantic_weight=settings.EMBEDDING_SEMANTIC_WEIGHT,
    )
    eligibility = EligibilityChecker(
        store,
        window_months=settings.CONTRIBUTION_WINDOW_MONTHS,
        review_percent=settings.MIN_FULL_REVIEW_PERCENT,
    )
    return RecommendationOrchestrator(
        store,
        build_sources(store, hybrid, settings),
        eligibility,
        exclusions,
        max_department_boost=settings.MAX_DEPARTMENT_BOOST,
    )


def get_orchestrator() -> RecommendationOrchestrator:
    """
    Get or create RecommendationOrchestrator instance.
    This is a dependency for FastAPI endpoints.
    """
    global _orchestrator
    if _orchestrator is None:
        exclusions = ExclusionPolicy.load(settings.EXCLUDED_COURSES_FILE)
        _orchestrator = build_orchestrator(get_course_store(), get_search_backend(), exclusions)
    return _orchestrator


def reset_services():
    """Reset service instances (useful for testing)"""
    global _course_store, _search_backend, _orchestrator
    _course_store = None
    _search_backend = None
    _orchestrator = None
