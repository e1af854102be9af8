"""Application configuration settings"""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # API Settings
    APP_NAME: str = "Course Recommendation API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOGGING_CONFIG: str = "config/logging.yaml"

    # Elasticsearch Settings
    ELASTICSEARCH_HOST: str = "http://elasticsearch:9200"
    ELASTICSEARCH_TIMEOUT: int = 30
    ELASTICSEARCH_USERNAME: str = ""
    ELASTICSEARCH_PASSWORD: str = ""
    EMBEDDINGS_INDEX: str = "course_embeddings"
    EMBEDDING_DIMENSIONS: int = 2560
    EMBEDDING_MODEL: str = "qwen3-embedding:4b"

    # MySQL Settings
    MYSQL_HOST: str = "mysql"
    MYSQL_PORT: int = 3306
    MYSQL_USER: str = "courses"
    MYSQL_PASSWORD: str = "yourpassword"
    MYSQL_DATABASE: str = "courses"
    MYSQL_CONNECT_TIMEOUT: int = 10

    # Rank fusion
    RRF_K: int = 60
    KNN_WEIGHT: float = 3.0
    BM25_WEIGHT: float = 0.25
    CANDIDATE_MULTIPLIER: int = 3
    MAX_DEPARTMENT_BOOST: float = 0.5

    # Signal sources
    MIN_PEER_OVERLAP: int = 3
    MAX_SIMILAR_PEERS: int = 50
    MIN_AVERAGE_RATING: float = 5.5
    MIN_REVIEW_COUNT: int = 3
    TOP_DEPARTMENTS: int = 3
    KEYWORD_MIN_LENGTH: int = 5
    EMBEDDING_SEED_COURSES: int = 15
    EMBEDDING_PER_SEED_LIMIT: int = 25
    EMBEDDING_SEMANTIC_WEIGHT: float = 0.8
    DEFAULT_SEMANTIC_WEIGHT: float = 0.6
    EXCLUDED_COURSES_FILE: str = "config/excluded_courses.yaml"

    # Eligibility
    CONTRIBUTION_WINDOW_MONTHS: int = 4
    MIN_FULL_REVIEW_PERCENT: int = 20

    # CORS Settings
    CORS_ORIGINS: list = ["*"]

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra environment variables


# Global settings instance
settings = Settings()
