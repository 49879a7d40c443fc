"""Application configuration from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    hilbertmap_env: str = "development"
    hilbertmap_log_level: str = "info"

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    # Address space preset: memory | ipv4 | stacked
    hilbertmap_address_space: str = "memory"

    # Range description loaded at startup
    hilbertmap_input_file: str = ""
    hilbertmap_input_format: str = ""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
