from __future__ import annotations

import os
from dataclasses import dataclass


DEFAULT_BASE_URL = "https://api.gptsapi.net/v1"
DEFAULT_MODEL = "claude-sonnet-4-5-20250929"
DEFAULT_FRONTEND_ORIGINS = "http://localhost:5173,http://127.0.0.1:5173"


def _env_str(name: str, default: str = "") -> str:
    return os.getenv(name, default).strip() or default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be a number, got {raw!r}.") from exc
    if value <= 0:
        raise RuntimeError(f"{name} must be positive, got {raw!r}.")
    return value


@dataclass(frozen=True)
class Settings:
    llm_api_key: str = ""
    llm_base_url: str = DEFAULT_BASE_URL
    llm_model: str = DEFAULT_MODEL
    coaching_timeout_seconds: float = 15.0
    analysis_timeout_seconds: float = 15.0
    evaluation_timeout_seconds: float = 15.0
    question_timeout_seconds: float = 7.0
    database_url: str = ""
    frontend_origins: tuple[str, ...] = ()

    @property
    def has_llm_credentials(self) -> bool:
        return bool(self.llm_api_key)


def load_settings() -> Settings:
    origins = _env_str("FRONTEND_ORIGINS", DEFAULT_FRONTEND_ORIGINS)
    return Settings(
        llm_api_key=_env_str("GPTSAPI_KEY"),
        llm_base_url=_env_str("GPTSAPI_BASE_URL", DEFAULT_BASE_URL),
        llm_model=_env_str("GPTSAPI_MODEL", DEFAULT_MODEL),
        coaching_timeout_seconds=_env_float("COACHING_TIMEOUT_SECONDS", 15.0),
        analysis_timeout_seconds=_env_float("ANALYSIS_TIMEOUT_SECONDS", 15.0),
        evaluation_timeout_seconds=_env_float("EVALUATION_TIMEOUT_SECONDS", 15.0),
        question_timeout_seconds=_env_float("QUESTION_TIMEOUT_SECONDS", 7.0),
        database_url=_env_str("DATABASE_URL"),
        frontend_origins=tuple(origin.strip() for origin in origins.split(",") if origin.strip()),
    )
