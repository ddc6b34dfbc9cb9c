"""Application configuration with validation."""
from pathlib import Path
from typing import Optional, Literal, Dict
from functools import lru_cache
from pydantic import Field, model_validator, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


PACKAGE_ROOT = Path(__file__).resolve().parent
DEFAULT_RULES_DIR = PACKAGE_ROOT / "rules"


# =============================================================================
# SERVICE COST TABLE
# =============================================================================
# Per-visit cost estimates (CAD) used when a scenario service line carries no
# explicit cost. Keys are service codes emitted by the scenario generator.
# =============================================================================

SERVICE_COSTS: Dict[str, float] = {
    "NUR": 95.0,
    "PSW": 42.0,
    "PT": 120.0,
    "OT": 125.0,
    "SLP": 130.0,
    "SW": 110.0,
    "RD": 105.0,
    "HMK": 38.0,
    "HM": 38.0,
    "RPM": 15.0,
    "PERS": 10.0,
    "TELE": 45.0,
    "VPC": 40.0,
    "FALL-MON": 12.0,
    "SEC": 30.0,
    "MED-DISP": 8.0,
    "ADP": 85.0,
    "TRANS": 35.0,
    "REC": 40.0,
    "MEAL": 12.0,
    "RES": 180.0,
    "CGC": 75.0,
    "DEM": 60.0,
    "BEH": 115.0,
    "DEL-ACTS": 45.0,
}


def get_service_cost(service_code: Optional[str]) -> float:
    """
    Get the per-visit cost for a service code.

    Args:
        service_code: Scenario service code (e.g., "PSW", "NUR")

    Returns:
        Per-visit cost, or 0.0 if the code is unknown
    """
    if not service_code:
        return 0.0
    return SERVICE_COSTS.get(service_code.upper(), 0.0)


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "Connected Capacity Bundle Engine"
    APP_VERSION: str = "2.2.0"
    APP_ENV: Literal["development", "staging", "production"] = "development"
    DEBUG: bool = False
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    LOG_FORMAT: Literal["json", "console"] = "console"

    # API
    API_V1_PREFIX: str = "/api/v1"

    # Rule tables (decision trees, CAP triggers, intensity matrix)
    RULES_DIR: Path = DEFAULT_RULES_DIR

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"
    CACHE_ENABLED: bool = False
    CACHE_TTL_PROFILE: int = Field(default=3600, ge=0)  # 1 hour
    CACHE_PREFIX_PROFILE: str = "bundle_engine:patient_profile:"

    # Scenario generation
    REFERENCE_CAP: float = Field(default=5000.0, gt=0)
    MIN_SCENARIOS: int = Field(default=3, ge=1, le=8)
    MAX_SCENARIOS: int = Field(default=5, ge=2, le=8)
    MAX_AXES: int = Field(default=4, ge=1, le=8)

    # Event logging
    ENGINE_VERSION: str = "2.2.0"
    EVENT_SALT: SecretStr = SecretStr("connected-capacity")

    @model_validator(mode="after")
    def validate_scenario_bounds(self):
        """Validate scenario count bounds."""
        if self.MIN_SCENARIOS > self.MAX_SCENARIOS:
            raise ValueError(
                f"MIN_SCENARIOS ({self.MIN_SCENARIOS}) must not exceed "
                f"MAX_SCENARIOS ({self.MAX_SCENARIOS})"
            )
        return self

    @model_validator(mode="after")
    def validate_production_settings(self):
        """Ensure production runs without debug."""
        if self.APP_ENV == "production" and self.DEBUG:
            raise ValueError("DEBUG must be False in production")
        return self

    @property
    def algorithms_dir(self) -> Path:
        return Path(self.RULES_DIR) / "algorithms"

    @property
    def caps_dir(self) -> Path:
        return Path(self.RULES_DIR) / "caps"

    @property
    def intensity_matrix_path(self) -> Path:
        return Path(self.RULES_DIR) / "service_intensity_matrix.json"

    @property
    def service_categories_path(self) -> Path:
        return Path(self.RULES_DIR) / "service_categories.json"

    @property
    def service_types_path(self) -> Path:
        return Path(self.RULES_DIR) / "service_types.json"

@lru_cache
def get_settings() -> Settings:
    return Settings()

settings = get_settings()
