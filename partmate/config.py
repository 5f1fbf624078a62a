from functools import lru_cache
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def normalize_base_path(path: Optional[str]) -> str:
    if not path or path == "/":
        return "/"
    path = path.strip()
    if not path.startswith("/"):
        path = "/" + path
    if not path.endswith("/"):
        path = path + "/"
    return path


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ==============================
    # Application
    # ==============================
    APP_NAME: str = "PartMate Inventory"
    ENVIRONMENT: str = "local"
    BASE_PATH: Optional[str] = None
    PUBLIC_BASE_URL: str = "http://localhost:8080"

    # ==============================
    # Backend
    # ==============================
    BACKEND_MODE: str = "local"
    BACKEND_URL: Optional[str] = None
    BACKEND_ANON_KEY: Optional[str] = None
    BACKEND_TIMEOUT_SECONDS: int = 15
    PARTS_TABLE: str = "spare_parts"
    IMAGE_BUCKET: str = "part-images"

    # ==============================
    # Local backend
    # ==============================
    DATABASE_URL: str = "sqlite:///./partmate.db"
    MEDIA_DIR: str = "media"
    LOCAL_USERNAME: Optional[str] = None
    LOCAL_PASSWORD: Optional[str] = None
    LOCAL_PASSWORD_HASH: Optional[str] = None
    LOCAL_PASSWORD_SALT: Optional[str] = None
    LOCAL_PBKDF2_ROUNDS: int = 200_000

    # ==============================
    # Security
    # ==============================
    JWT_SECRET: Optional[str] = None
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: Optional[str] = None
    SESSION_SECRET: Optional[str] = None
    SESSION_COOKIE: str = "partmate_session"

    # ==============================
    # Images
    # ==============================
    IMAGE_MAX_SIZE_MB: float = 1.0

    # ==============================
    # Logging
    # ==============================
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    @field_validator("BACKEND_MODE")
    @classmethod
    def _check_backend_mode(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in ("local", "rest"):
            raise ValueError("BACKEND_MODE must be 'local' or 'rest'")
        return value

    @property
    def base_path(self) -> str:
        if self.BASE_PATH:
            return normalize_base_path(self.BASE_PATH)
        if self.ENVIRONMENT.lower() == "production":
            return "/partymate-inventory/"
        return "/"


@lru_cache
def get_settings() -> Settings:
    """Cached settings loader (once per process)."""
    return Settings()


__all__ = ["Settings", "get_settings", "normalize_base_path"]
