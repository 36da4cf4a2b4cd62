"""Application configuration from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    mineralsight_env: str = "development"
    mineralsight_log_level: str = "info"

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    # Materials document; empty = bundled default
    materials_config_path: str = ""

    # Calibration: micrometers per pixel (0 = uncalibrated)
    um_per_px: float = 0.0

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
