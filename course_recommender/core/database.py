"""Database connection clients"""
from elasticsearch import AsyncElasticsearch
import pymysql
import logging
from typing import Optional

from course_recommender.core.config import settings

logger = logging.getLogger(__name__)


class ElasticsearchClient:
    """Elasticsearch client for the course embeddings index"""

    def __init__(self):
        basic_auth = None
        if settings.ELASTICSEARCH_USERNAME:
            basic_auth = (settings.ELASTICSEARCH_USERNAME, settings.ELASTICSEARCH_PASSWORD)
        try:
            self.client = AsyncElasticsearch(
                [settings.ELASTICSEARCH_HOST],
                basic_auth=basic_auth,
                request_timeout=settings.ELASTICSEARCH_TIMEOUT,
            )
            logger.info(f"Configured Elasticsearch at {settings.ELASTICSEARCH_HOST}")
        except Exception as e:
            logger.error(f"Failed to configure Elasticsearch: {e}")
            raise ConnectionError(f"Elasticsearch connection failed: {e}")

    async def close(self):
        """Close the client connection"""
        if self.client:
            await self.client.close()
            logger.info("Elasticsearch connection closed")

    async def verify_connection(self) -> bool:
        """Verify database connection"""
        try:
            return await self.client.ping()
        except Exception:
            return False


class MySQLClient:
    """MySQL client for the course catalog, learners and reviews"""

    def __init__(self):
        self.config = {
            'host': settings.MYSQL_HOST,
            'port': settings.MYSQL_PORT,
            'user': settings.MYSQL_USER,
            'password': settings.MYSQL_PASSWORD,
            'database': settings.MYSQL_DATABASE,
            'connect_timeout': settings.MYSQL_CONNECT_TIMEOUT,
            'charset': 'utf8mb4'
        }
        logger.info(f"MySQL client configured for {settings.MYSQL_HOST}")

    def get_connection(self):
        """Get a new database connection"""
        try:
            return pymysql.connect(**self.config)
        except Exception as e:
            logger.error(f"Failed to connect to MySQL: {e}")
            raise ConnectionError(f"MySQL connection failed: {e}")

    def verify_connection(self) -> bool:
        """Verify database connection"""
        try:
            conn = self.get_connection()
            conn.close()
            return True
        except Exception:
            return False


# Singleton instances - will be initialized in dependencies
elasticsearch_client: Optional[ElasticsearchClient] = None
mysql_client: Optional[MySQLClient] = None


def get_elasticsearch_client() -> ElasticsearchClient:
    """Get or create Elasticsearch client instance"""
    global elasticsearch_client
    if elasticsearch_client is None:
        elasticsearch_client = ElasticsearchClient()
    return elasticsearch_client


def get_mysql_client() -> MySQLClient:
    """Get or create MySQL client instance"""
    global mysql_client
    if mysql_client is None:
        mysql_client = MySQLClient()
    return mysql_client


async def close_all_connections():
    """Close all database connections"""
    global elasticsearch_client, mysql_client

    if elasticsearch_client:
        await elasticsearch_client.close()
        elasticsearch_client = None

    mysql_client = None

    logger.info("All database connections closed")
