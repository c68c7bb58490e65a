from functools import lru_cache
import json
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


BACKEND_DIR = Path(__file__).resolve().parents[2]
BACKEND_ENV_FILE = BACKEND_DIR / ".env"

DEFAULT_WORKING_DAYS = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday"]


def _split_list(value: str | list[str]) -> list[str]:
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.startswith("["):
            try:
                parsed = json.loads(stripped)
                if isinstance(parsed, list):
                    return [str(item).strip() for item in parsed if str(item).strip()]
            except json.JSONDecodeError:
                pass
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


class Settings(BaseSettings):
    # Resolve to backend/.env so `uvicorn --app-dir backend` works from any cwd.
    model_config = SettingsConfigDict(env_file=str(BACKEND_ENV_FILE), env_file_encoding="utf-8")

    project_name: str = "EduPlan Timetable API"
    api_prefix: str = "/api"
    environment: str = "development"
    log_level: str | None = None

    default_working_days: list[str] = list(DEFAULT_WORKING_DAYS)
    max_daily_periods: int = 7
    generation_time_budget_seconds: float = 480.0
    max_iterations: int = 1000
    max_iterations_large: int = 100
    large_input_threshold: int = 500
    progress_interval_seconds: float = 2.0
    job_retention_seconds: float = 3600.0
    max_jobs: int = 200
    strict_scope_resolution: bool = False
    random_seed: int | None = None

    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    @field_validator("cors_origins", "default_working_days", mode="before")
    @classmethod
    def split_list_values(cls, value: str | list[str]) -> list[str]:
        return _split_list(value)


@lru_cache
def get_settings() -> Settings:
    return Settings()
