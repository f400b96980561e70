"""
Pipeline configuration and settings management.
"""
import os


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    try:
        return float(raw) if raw else default
    except ValueError:
        return default


class Config:
    """Application configuration."""

    # Source site
    START_URL: str = os.getenv("BENEFICIOS_START_URL", "https://labancaria.org/beneficios/")

    # Document store
    DB_PATH: str = os.getenv("BENEFICIOS_DB", "./data/db/beneficios.db")
    COLLECTION: str = os.getenv("BENEFICIOS_COLLECTION", "beneficios")
    BATCH_LIMIT: int = _env_int("BENEFICIOS_BATCH_LIMIT", 400)

    # Classification run
    CONCURRENCY: int = _env_int("BENEFICIOS_CONCURRENCY", 4)

    # OCR
    OCR_ENABLED: bool = os.getenv("BENEFICIOS_OCR", "1").strip().lower() not in ("0", "false", "no")
    OCR_LANG: str = os.getenv("OCR_LANG", "spa+eng")
    OCR_MAX_IMAGES: int = _env_int("OCR_MAX_IMAGES", 3)
    OCR_TIMEOUT: float = _env_float("OCR_TIMEOUT", 60.0)

    # API settings
    API_TITLE: str = "Beneficios API"
    API_VERSION: str = "1.0.0"
    API_DESCRIPTION: str = "REST API for classified benefit listings"
    CORS_ORIGINS: list = ["*"]
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: list = ["*"]
    CORS_ALLOW_HEADERS: list = ["*"]
    DEFAULT_API_LIMIT: int = 50
    MAX_API_LIMIT: int = 500

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    def validate(self) -> None:
        """Validate configuration on startup."""
        if not os.path.exists(self.DB_PATH):
            raise FileNotFoundError(f"Database file not found: {self.DB_PATH}")


# Global config instance
config = Config()
