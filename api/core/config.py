"""
Configuration settings for the catalog search application
"""
from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings"""

    # Application
    app_name: str = "Catalog Search API"
    version: str = "1.0.0"
    environment: str = "development"
    debug: bool = True

    # Ingest sources (.csv or .json)
    product_source_path: str = "data/products.csv"
    stock_source_path: Optional[str] = "data/stock.csv"

    # CORS
    cors_origins: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:8000",
        "http://127.0.0.1:8000"
    ]

    # Pagination
    default_page_size: int = 20
    max_page_size: int = 100

    # Caching (seconds)
    cache_ttl: int = 300  # 5 minutes
    search_cache_ttl: int = 300
    recommendation_cache_ttl: int = 900  # recommendations move slower than search
    cache_cleanup_interval: int = 600  # 10 minutes
    cache_sweep_batch_size: int = 500

    # Recommendations
    recommend_inactive_products: bool = False
    default_recommendation_limit: int = 10
    max_recommendation_limit: int = 50
    autocomplete_limit: int = 8

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"
    log_dir: str = "logs"
    log_file_max_bytes: int = 10 * 1024 * 1024  # 10MB
    log_file_backups: int = 5

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"  # Allow extra fields from .env


# Global settings instance
settings = Settings()
