"""
core/config.py
--------------
Centralised settings management using pydantic-settings.
All configuration is loaded from environment variables / .env file.
Both the gateway and the responder read the same Settings class; each
process only looks at the keys it needs.
"""

from functools import lru_cache
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── App ──────────────────────────────────────────────────────────────
    APP_NAME: str = "MiniChat Gateway"
    APP_ENV: str = "development"
    DEBUG: bool = False

    # ── Tenant / request limits ──────────────────────────────────────────
    TENANT_ID_MAX_LENGTH: int = 128
    MAX_MESSAGE_LENGTH: int = 4096

    # ── Responder (response generation service) ──────────────────────────
    RESPONDER_URL: str = "http://localhost:3001"
    RESPONDER_TIMEOUT_SECONDS: float = 10.0

    # ── Streaming delivery ───────────────────────────────────────────────
    CHUNK_SIZE: int = 50
    SLOW_DELAY_MS: int = 100
    FAST_DELAY_MS: int = 30

    # ── Engine selection (responder process) ─────────────────────────────
    ENGINE: str = "echo"
    OPENAI_API_KEY: str = ""
    LLM_MODEL: str = "gpt-4o-mini"
    LLM_MAX_TOKENS: int = 1024
    LLM_TEMPERATURE: float = 0.7

    # ── Experiment tracking (responder process) ──────────────────────────
    MLFLOW_ENABLED: bool = False
    MLFLOW_TRACKING_URI: str = "mlruns"

    # ── CORS ─────────────────────────────────────────────────────────────
    ALLOWED_ORIGINS: List[str] = ["http://localhost:5173"]

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def parse_origins(cls, v):
        if isinstance(v, str):
            import json
            return json.loads(v)
        return v

    @field_validator("CHUNK_SIZE")
    @classmethod
    def positive_chunk_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError("CHUNK_SIZE must be at least 1")
        return v


@lru_cache()
def get_settings() -> Settings:
    """
    Cached settings factory.
    Use this everywhere to avoid re-reading .env on every call.
    """
    return Settings()


settings = get_settings()
