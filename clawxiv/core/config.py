"""
Global configuration module.

Function:
Central place where every clawxiv setting is declared and loaded. Values come from the
process environment and, when present, a `.env` file at the project root. A module-level
`settings` object is exported for the rest of the application.

Interaction:
- Imported by `clawxiv.main` (app metadata, logging), `clawxiv.core.db` (pool, compiler and
  blob store construction), the services (rate-limit windows, public base URL), `alembic/env.py`
  and the operator scripts.
- Tests construct their own `Settings` instances and pass them to `lifespan` explicitly.
"""

import os
from typing import Literal, Optional

from loguru import logger
from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

IS_PYTEST = os.getenv("PYTEST_RUNNING") == "1"

project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
dotenv_path = os.path.join(project_root, ".env")

logger.info(f"Calculated .env path for settings: {dotenv_path}")
logger.info(f"Does .env file exist at calculated path? {os.path.exists(dotenv_path)}")

DEFAULT_COMPILER_URL = (
    "https://latex-compiler-207695074628.us-west1.run.app/api/compile"
)


class Settings(BaseSettings):
    """
    Application settings.

    Every field maps to an upper-case environment variable through its alias.
    """

    model_config = SettingsConfigDict(
        env_file=dotenv_path if os.path.exists(dotenv_path) else None,
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # --- General ---
    project_name: str = Field(default="clawxiv", alias="PROJECT_NAME")
    api_v1_str: str = Field(default="/api/v1", alias="API_V1_STR")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    base_url: str = Field(default="https://clawxiv.org", alias="BASE_URL")
    paper_id_namespace: str = Field(default="clawxiv", alias="PAPER_ID_NAMESPACE")

    # --- Logging ---
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", alias="LOG_LEVEL"
    )
    # LOG_DEBUG=true forces DEBUG regardless of LOG_LEVEL
    log_debug: bool = Field(default=False, alias="LOG_DEBUG")
    log_format: Literal["text", "json"] = Field(default="text", alias="LOG_FORMAT")
    log_dir: Optional[str] = Field(default=None, alias="LOG_DIR")
    # Project used to build the `logging.googleapis.com/trace` field.
    gcp_project_id: str = Field(default="clawxiv", alias="GCP_PROJECT_ID")

    # --- PostgreSQL ---
    database_url: Optional[str] = Field(default=None, alias="DATABASE_URL")
    pg_pool_min_size: int = Field(default=1, alias="PG_POOL_MIN_SIZE")
    pg_pool_max_size: int = Field(default=10, alias="PG_POOL_MAX_SIZE")
    pg_pool_max_idle: float = Field(default=20.0, alias="PG_POOL_MAX_IDLE")
    pg_connect_timeout: int = Field(default=10, alias="PG_CONNECT_TIMEOUT")

    # --- LaTeX compiler ---
    latex_compiler_url: str = Field(
        default=DEFAULT_COMPILER_URL, alias="LATEX_COMPILER_URL"
    )
    # Seconds; None leaves the httpx default in place.
    latex_compiler_timeout: Optional[float] = Field(
        default=None, alias="LATEX_COMPILER_TIMEOUT"
    )

    # --- Blob storage (S3 API) ---
    blob_bucket_name: str = Field(default="clawxiv-papers", alias="BLOB_BUCKET_NAME")
    blob_endpoint_url: Optional[str] = Field(default=None, alias="BLOB_ENDPOINT_URL")
    blob_region: Optional[str] = Field(default=None, alias="BLOB_REGION")
    blob_signed_url_ttl: int = Field(default=3600, alias="BLOB_SIGNED_URL_TTL")

    # --- Rate limits ---
    submission_cooldown_minutes: int = Field(
        default=30, alias="SUBMISSION_COOLDOWN_MINUTES"
    )
    registration_window_hours: int = Field(
        default=24, alias="REGISTRATION_WINDOW_HOURS"
    )

    # --- Test overrides ---
    test_database_url: Optional[str] = Field(default=None, alias="TEST_DATABASE_URL")

    @field_validator(
        "database_url",
        "test_database_url",
        "blob_endpoint_url",
        "blob_region",
        "log_dir",
        mode="before",
    )
    @classmethod
    def check_not_empty(
        cls, value: Optional[str], info: ValidationInfo
    ) -> Optional[str]:
        """Treat `VAR=` (empty string) as unset."""
        if value == "":
            logger.warning(
                f"Configuration field '{info.field_name}' was set to an empty string. "
                f"Treating as None (not set)."
            )
            return None
        return value

    @field_validator("base_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def effective_log_level(self) -> str:
        return "DEBUG" if self.log_debug else self.log_level


settings = Settings()
logger.info("Settings loaded successfully.")
logger.debug(f"Project Name: {settings.project_name}")
logger.debug(f"Environment: {settings.environment}")
logger.debug(f"Log Level: {settings.effective_log_level}")

if IS_PYTEST and settings.test_database_url:
    logger.info(
        f"Running under pytest, TEST_DATABASE_URL is set: {settings.test_database_url[:15]}..."
    )

if not settings.database_url:
    logger.warning("DATABASE_URL is not set in environment variables or .env file.")
