# backend/merchops/core/settings.py
"""
MerchOps Engine - Configuration Management with pydantic-settings

- Loads from environment and root .env
- Validates and normalizes values
- Cached singleton via get_settings()
"""
from functools import lru_cache
from pathlib import Path
from typing import Optional, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# backend/merchops/core/settings.py -> <repo>/.env
_ENV_FILE = Path(__file__).resolve().parent.parent.parent.parent / ".env"


class Settings(BaseSettings):
    """
    Engine settings with validation.

    Environment variables take precedence over .env file values.
    """

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ===================
    # Application Settings
    # ===================
    PROJECT_NAME: str = "MerchOps Engine"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    DEBUG: bool = Field(default=False, description="Enable debug mode")
    ENVIRONMENT: str = Field(default="development", description="Deployment environment")

    # ===================
    # Database Settings
    # ===================
    DB_HOST: str = Field(default="localhost", description="PostgreSQL host")
    DB_PORT: int = Field(default=5432, description="PostgreSQL port")
    DB_NAME: str = Field(default="merchops", description="Database name")
    DB_USER: str = Field(default="postgres", description="Database user")
    DB_PASSWORD: str = Field(default="postgres", description="Database password")
    DATABASE_URL: Optional[str] = Field(
        default=None, description="Full database URL (overrides DB_* settings)"
    )

    @property
    def database_url(self) -> str:
        """Build PostgreSQL database URL from components or use explicit URL."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )

    # ===================
    # CORS Settings
    # ===================
    ALLOWED_ORIGINS: List[str] = Field(
        default=["http://localhost:5173", "http://127.0.0.1:5173"],
        description="Allowed CORS origins",
    )

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    # ===================
    # Logging Settings
    # ===================
    LOG_LEVEL: str = Field(default="INFO", description="Root log level")
    LOG_FORMAT: str = Field(default="json", description="Log format: json or text")
    LOG_FILE: Optional[str] = None

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.upper().strip()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid LOG_LEVEL: {v}")
        return level

    @field_validator("LOG_FORMAT")
    @classmethod
    def normalize_log_format(cls, v: str) -> str:
        fmt = v.lower().strip()
        if fmt not in {"json", "text"}:
            raise ValueError(f"Invalid LOG_FORMAT: {v}")
        return fmt

    # ===================
    # Import Settings
    # ===================
    IMPORT_BATCH_SIZE: int = Field(
        default=500, ge=1, description="Rows per bulk insert/update batch (all import paths)"
    )
    VENDOR_SUGGESTION_LIMIT: int = Field(
        default=3, ge=0, description="Fuzzy 'map to existing' suggestions per unknown vendor"
    )
    VENDOR_SUGGESTION_MIN_SCORE: float = Field(
        default=80.0, ge=0, le=100, description="Minimum fuzzy score for a vendor suggestion"
    )

    # ===================
    # Classification Policy
    # ===================
    FRANCHISE_PO_PREFIX: str = Field(default="089", description="PO number prefix of franchise orders")
    PROGRAM_8X8_PREFIX: str = Field(default="8X8", description="Program description marker of 8X8 orders")
    SAMPLE_PROGRAM_PREFIX: str = Field(default="SMP", description="Program description marker of sample orders")
    AMNESTY_REVISERS: List[str] = Field(
        default=["CLIENT", "FORWARDER"],
        description="revised_by parties whose date revisions count as on-time",
    )

    @field_validator("AMNESTY_REVISERS", mode="before")
    @classmethod
    def parse_amnesty_revisers(cls, v):
        if isinstance(v, str):
            v = v.split(",")
        return [party.strip().upper() for party in v if party and party.strip()]

    INLINE_INSPECTION_RISK_DAYS: int = Field(default=14, description="Inline inspection must be booked N days before HOD")
    FINAL_INSPECTION_RISK_DAYS: int = Field(default=7, description="Final inspection must be booked N days before HOD")
    PTS_RISK_DAYS: int = Field(default=30, description="PTS must be submitted N days before HOD")
    QA_TEST_RISK_DAYS: int = Field(default=45, description="A passing quality test is due N days before HOD")
    AT_RISK_WINDOW_DAYS: int = Field(default=14, description="Open POs with no shipment movement this close to HOD are at risk")
    MILESTONE_AT_RISK_DAYS: int = Field(default=7, description="Milestone at-risk horizon in days")

    # ===================
    # Projection Matching
    # ===================
    REGULAR_ORDER_WINDOW_DAYS: int = Field(default=90, description="Order window for regular projections")
    SPO_ORDER_WINDOW_DAYS: int = Field(default=30, description="Order window for SPO/MTO projections")
    SPO_SENTINEL_SKU: str = Field(default="SPO", description="SKU value of made-to-order projections")
    VARIANCE_ALERT_PCT: float = Field(default=10.0, description="Variance percent that flags a matched projection")
    OVERDUE_PROJECTION_DAYS: int = Field(default=90, description="Unmatched projections this close to target are overdue")

    # ===================
    # Analytics
    # ===================
    TREND_THRESHOLD_PCT: float = Field(default=3.0, description="OTD point change separating stable from trending")
    TREND_WINDOW_DAYS: int = Field(default=90, description="Length of each trend comparison window")
    CAPACITY_DRIFT_TOLERANCE_CENTS: int = Field(default=100, description="Allowed capacity vs shipped drift")

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"


@lru_cache
def get_settings() -> Settings:
    """Singleton settings loader (cached)."""
    return Settings()


settings = get_settings()
