"""Health check endpoints"""
from fastapi import APIRouter, Depends
import asyncio
import logging

from course_recommender.models.response import HealthCheckResponse
from course_recommender.core.database import (
    get_elasticsearch_client,
    get_mysql_client,
    ElasticsearchClient,
    MySQLClient,
)
from course_recommender.core.config import settings

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(
    es: ElasticsearchClient = Depends(get_elasticsearch_client),
    mysql: MySQLClient = Depends(get_mysql_client),
):
    """
    Health check endpoint - verify the search index and course database are reachable
    """
    databases = {
        "elasticsearch": await es.verify_connection(),
        "mysql": await asyncio.to_thread(mysql.verify_connection),
    }

    all_healthy = all(databases.values())
    status = "healthy" if all_healthy else "degraded"
    if not all_healthy:
        logger.warning(f"Health check degraded: {databases}")

    return HealthCheckResponse(
        status=status,
        service=settings.APP_NAME,
        version=settings.APP_VERSION,
        databases=databases,
    )
