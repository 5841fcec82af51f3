"""
Configuration settings for the designchain service
"""
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    # Application
    app_name: str = "designchain API"
    version: str = "1.0.0"
    environment: str = "development"
    debug: bool = True

    # CORS
    cors_origins: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:8000",
        "http://127.0.0.1:8000",
    ]

    # Gemini
    gemini_api_key: str = ""
    gemini_image_model: str = "gemini-2.5-flash-image"
    gemini_text_model: str = "gemini-2.5-flash"
    gemini_scene_model: str = "gemini-2.5-pro"
    gemini_temperature: Optional[float] = None

    # Grounded product search
    product_search_temperature: float = 0.1
    product_search_top_p: float = 0.1
    product_search_top_k: int = 16

    # Google Custom Search (image search)
    search_api_key: str = ""
    cx_key: str = ""
    search_base_url: str = "https://www.googleapis.com/customsearch/v1"

    # Generation chain
    structured_reference_description: bool = False
    resolve_products: bool = True

    # Timeouts (seconds)
    model_timeout_seconds: float = 120.0
    pipeline_timeout_seconds: Optional[float] = None
    http_timeout_seconds: float = 30.0

    # Image fetching
    fetch_user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
    )
    max_fetch_bytes: int = 10 * 1024 * 1024  # 10MB

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"  # Allow extra fields from .env


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """FastAPI dependency returning the application settings"""
    return settings
