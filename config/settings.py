"""
config/settings.py

- Reads environment variables defined in .env and exposes them as application-wide settings.
- pydantic v2 / pydantic-settings v2.
- GEMINI_API_KEY may be left empty at startup; every extraction then fails per image
  instead of the app refusing to boot.
"""

from typing import List, Literal
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # =========================
    # App / runtime
    # =========================
    ENV: Literal["dev", "stage", "prod"] = "dev"
    APP_TITLE: str = "Marksheet Analytics API"
    APP_DESCRIPTION: str = "Batch marksheet extraction, class averages and PDF reports"
    APP_VERSION: str = "1.0.0"

    # =========================
    # CORS
    # =========================
    # comma (,) separated string -> List[str]
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _split_origins(cls, v):
        if isinstance(v, str):
            # "a,b , c" -> ["a","b","c"]
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    # =========================
    # LLM (Gemini only)
    # =========================
    GEMINI_MODEL: str = "gemini-2.5-flash"
    GEMINI_API_KEY: str = ""
    GEMINI_API_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    LLM_TIMEOUT: float = 60
    LLM_TEMPERATURE: float = 0.2
    LLM_MAX_TOKENS: int = 2048

    # =========================
    # Uploads / batches
    # =========================
    MAX_UPLOAD_MB: int = 20
    MAX_BATCH_IMAGES: int = 50
    BATCH_STORE_LIMIT: int = 100

    # =========================
    # Dashboard
    # =========================
    GUIDANCE_THRESHOLD: int = 65

    # =========================
    # Logging / Misc
    # =========================
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # =========================
    # BaseSettings Config
    # =========================
    model_config = SettingsConfigDict(
        env_file=".env",               # load values from .env
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",                # undefined keys are ignored
    )

    @property
    def max_upload_bytes(self) -> int:
        return self.MAX_UPLOAD_MB * 1024 * 1024


# ✅ settings object, importable from anywhere
settings = Settings()
