"""FastAPI application entry point"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from course_recommender.core.config import settings
from course_recommender.core.database import close_all_connections
from course_recommender.core.logging_utils import setup_logging
from course_recommender.api.v1.api import api_router

setup_logging(settings.LOGGING_CONFIG, level=logging.DEBUG if settings.DEBUG else logging.INFO)
logger = logging.getLogger(__name__)


def create_application() -> FastAPI:
    """Create and configure FastAPI application"""

    app = FastAPI(
        title=settings.APP_NAME,
        description="Hybrid course recommendation service: collaborative, department, content and embedding signals",
        version=settings.APP_VERSION,
        debug=settings.DEBUG,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include API v1 router
    app.include_router(api_router, prefix="/api/v1")

    # Root endpoint
    @app.get("/")
    def root():
        return {
            "message": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "docs": "/docs",
            "api": "/api/v1",
        }

    # Startup event
    @app.on_event("startup")
    async def startup_event():
        logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
        logger.info(f"Debug mode: {settings.DEBUG}")
        logger.info(f"Embeddings index: {settings.EMBEDDINGS_INDEX} (model {settings.EMBEDDING_MODEL})")

    # Shutdown event
    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info(f"Shutting down {settings.APP_NAME}")
        await close_all_connections()

    return app


# Create app instance
app = create_application()
