from pathlib import Path
from typing import List

from dotenv import dotenv_values
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

import os

# Explicitly load .env for local/dev environments only if values are missing from the environment
BASE_DIR = Path(__file__).resolve().parent.parent.parent
env_file = BASE_DIR / ".env"

if env_file.exists():
    file_env = dotenv_values(env_file)
    missing_keys = {k: v for k, v in file_env.items() if k not in os.environ and v is not None}
    for k, v in missing_keys.items():
        os.environ[k] = v


class Settings(BaseSettings):
    """Application settings pulled from GREENHOUSE_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="GREENHOUSE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database Configuration (job store)
    database_url: str = Field(default="sqlite:///./greenhouse.db", description="SQLAlchemy database URL")

    # API Configuration
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")
    debug: bool = Field(default=False, description="Enable debug mode")
    allowed_origins: str = Field(default="*", description="Comma-separated CORS allowed origins")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Logging format (console or json)")

    # Grid Configuration
    grid_size: int = Field(default=10, ge=1, le=64, description="Greenhouse grid dimension")

    # Optimizer Configuration
    default_metric: str = Field(default="cell_count", description="Potential metric used when a request names none")
    spawn_min_neighbors: int = Field(default=8, ge=0, le=8, description="Unlocked neighbours a spawn site needs")
    max_candidates: int = Field(default=400, ge=1, description="Max candidate cells accepted per request")
    metric_cache_size: int = Field(default=4096, ge=0, description="Metric evaluations memoized per request")

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]


# Instantiate singleton settings object
settings = Settings()
