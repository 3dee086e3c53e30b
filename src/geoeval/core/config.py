"""Configuration management for GeoEval."""

from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings."""

    # Backend API
    api_base_url: str = Field("http://localhost:8000/api", description="Base URL of the evaluation backend")
    request_timeout: float = Field(120.0, description="Timeout for backend requests in seconds")

    # Logging
    log_level: str = Field("INFO", description="Logging level")

    # Evaluation defaults
    default_nation: str = Field("USA", description="Nation prefilled on the dashboard")
    location_fallback: str = Field("across country", description="Location sent when no state is given")
    default_provider: str = Field("chatgpt", description="Assistant provider used for questions")

    # Report
    report_rules_path: Optional[str] = Field(None, description="Override path for report_rules.yaml")

    @property
    def api_root(self) -> str:
        """Base URL without a trailing slash."""
        return self.api_base_url.rstrip("/")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "GEOEVAL_"


# Global settings instance
settings = Settings()
