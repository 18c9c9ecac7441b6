from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env file."""

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "CHECKHUB_",
        "extra": "ignore",
    }

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8081
    api_url: str = "http://127.0.0.1:8081"  # used by the CLI client
    cors_origins: list[str] = ["*"]

    # Storage
    db_path: str = "data/checkhub.db"
    history_limit: int = 500  # logs kept per check, 0 = unlimited
    seed_file: str = ""  # optional checks.yaml loaded into an empty registry

    # Execution
    command_timeout: int = 60  # seconds, per run default
    max_command_timeout: int = 900  # upper bound for per-request overrides
    output_limit_bytes: int = 64 * 1024
    max_workers: int = 8

    default_triggered_by: str = "api"

    # Logging
    log_level: str = "INFO"


settings = Settings()
