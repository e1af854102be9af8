from __future__ import annotations

import argparse
import logging
from pathlib import Path

from dotenv import load_dotenv
from elasticsearch import Elasticsearch

from course_recommender.core.config import Settings
from course_recommender.core.database import get_mysql_client
from course_recommender.core.logging_utils import setup_logging
from course_recommender.services.course_store import MySQLCourseStore
from course_recommender.services.embedding_indexer import EmbeddingIndexService

LOGGER = logging.getLogger("course_recommender.index_embeddings")

PROJECT_ROOT = Path(__file__).resolve().parent.parent


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Mirror stored course embeddings into Elasticsearch")
    parser.add_argument(
        "--recreate",
        action="store_true",
        help="Drop and recreate the embeddings index before indexing",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=500,
        help="Number of embedding rows fetched from MySQL per query",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()

    env_path = PROJECT_ROOT / ".env"
    if env_path.exists():
        load_dotenv(env_path)
    settings = Settings()

    default_logging = PROJECT_ROOT / settings.LOGGING_CONFIG
    setup_logging(default_logging)
    LOGGER.info("Indexing embeddings for model=%s into %s", settings.EMBEDDING_MODEL, settings.EMBEDDINGS_INDEX)

    basic_auth = None
    if settings.ELASTICSEARCH_USERNAME:
        basic_auth = (settings.ELASTICSEARCH_USERNAME, settings.ELASTICSEARCH_PASSWORD)
    es_client = Elasticsearch(
        hosts=[settings.ELASTICSEARCH_HOST],
        basic_auth=basic_auth,
        request_timeout=settings.ELASTICSEARCH_TIMEOUT,
    )

    service = EmbeddingIndexService(
        es_client,
        index=settings.EMBEDDINGS_INDEX,
        dims=settings.EMBEDDING_DIMENSIONS,
        model_id=settings.EMBEDDING_MODEL,
        recreate_index=args.recreate,
    )
    store = MySQLCourseStore(get_mysql_client())

    try:
        service.ensure_index()
        opted_out = store.opted_out_learner_ids()
        LOGGER.info("%s learners opted out of embeddings", len(opted_out))
        documents = service.build_documents(store.iter_embeddings(args.batch_size), opted_out)
        service.bulk_index(documents)
    finally:
        es_client.close()

    stats = service.stats
    LOGGER.info(
        "Done: %s indexed, %s stale, %s opted out, %s invalid",
        stats.prepared,
        stats.skipped_stale,
        stats.skipped_opt_out,
        stats.skipped_invalid,
    )


if __name__ == "__main__":
    main()
