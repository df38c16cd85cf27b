"""Centralized configuration — all env vars in one place."""

import os


class Settings:
    """Application settings loaded from environment variables."""

    def __init__(self):
        self.cors_origins: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")
        self.git_sha: str = os.getenv("GIT_SHA", "unknown")
        self.environment: str = os.getenv("ENVIRONMENT", "local")
        self.log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

        # Upstream CRUD API consumed by the fetch layer
        self.api_base_url: str | None = os.getenv("API_BASE_URL")
        self.fetch_timeout_seconds: float = float(os.getenv("FETCH_TIMEOUT_SECONDS", "30"))
        self.fetch_cache_ttl_seconds: float = float(os.getenv("FETCH_CACHE_TTL_SECONDS", "120"))
        self.fetch_retry_delay_seconds: float = float(os.getenv("FETCH_RETRY_DELAY_SECONDS", "1"))
        self.fetch_max_retries: int = int(os.getenv("FETCH_MAX_RETRIES", "3"))

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def validate(self) -> list[str]:
        """Return list of missing required env vars for the data proxy."""
        required = ["API_BASE_URL"]
        return [var for var in required if not getattr(self, var.lower())]


settings = Settings()

