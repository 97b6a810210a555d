"""Settings loaded from the environment (and ``.env`` when present)"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any, List
from urllib.parse import quote_plus

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode

# Repository root (parent of backend/)
_ROOT_DIR = Path(__file__).resolve().parent.parent.parent

_DEV_SECRETS = {
    "",
    "change-me",
    "dev-access-secret-change-in-production",
    "dev-refresh-secret-change-in-production",
}
MIN_SECRET_LENGTH = 32


class Settings(BaseSettings):
    APP_NAME: str = "SafeCircle API"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    HOST: str = "0.0.0.0"
    PORT: int = 8000
    WORKERS: int = 4

    # Either a full DATABASE_URL or the POSTGRES_* parts
    DATABASE_URL: str = ""
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "safecircle_db"
    POSTGRES_USER: str = "safecircle"
    POSTGRES_PASSWORD: str = "safecircle"
    DATABASE_POOL_SIZE: int = 30
    DATABASE_MAX_OVERFLOW: int = 20
    DB_INIT_MODE: str = "migrate"  # migrate | create_all | off
    DB_REQUIRE_HEAD: bool = True

    # Access and refresh tokens are signed with separate keys
    JWT_ACCESS_SECRET: str = "dev-access-secret-change-in-production"
    JWT_REFRESH_SECRET: str = "dev-refresh-secret-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    # Oldest sessions beyond this are pruned at login (0 = unbounded)
    MAX_REFRESH_SESSIONS_PER_ACCOUNT: int = 20
    REFRESH_COOKIE_NAME: str = "jid"
    REFRESH_COOKIE_PATH: str = "/api/v1/auth"

    RATE_LIMIT_PER_MINUTE: int = 100
    RATE_LIMIT_PER_HOUR: int = 1000
    LOGIN_RATE_LIMIT_PER_MINUTE: int = 10
    LOGIN_RATE_LIMIT_PER_HOUR: int = 50

    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    CORS_ORIGINS: Annotated[List[str], NoDecode] = ["http://localhost:5173"]

    class Config:
        env_file = ".env"
        case_sensitive = True

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _split_origins(cls, value: Any) -> Any:
        """Env values may be a JSON list or a comma-separated string"""
        if not isinstance(value, str):
            return value
        raw = value.strip()
        if raw.startswith("["):
            origins = json.loads(raw)
        else:
            origins = raw.split(",")
        return [str(origin).strip() for origin in origins if str(origin).strip()]

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    def get_log_file(self) -> str:
        return self.LOG_FILE or str(_ROOT_DIR / "logs" / "safecircle.log")

    def get_database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        # Credentials may contain URL-reserved characters
        return "postgresql://{user}:{password}@{host}:{port}/{db}".format(
            user=quote_plus(self.POSTGRES_USER),
            password=quote_plus(self.POSTGRES_PASSWORD),
            host=self.POSTGRES_HOST,
            port=self.POSTGRES_PORT,
            db=self.POSTGRES_DB,
        )

    def validate_security_settings(self) -> None:
        """
        Reject development signing keys in production.

        Raises:
            ValueError: If a key is a known default, too short, or both keys are equal
        """
        if not self.is_production:
            return

        for name in ("JWT_ACCESS_SECRET", "JWT_REFRESH_SECRET"):
            secret = getattr(self, name)
            if secret in _DEV_SECRETS or len(secret) < MIN_SECRET_LENGTH:
                raise ValueError(f"Insecure {name} for production; generate one with `openssl rand -hex 32`.")

        if self.JWT_ACCESS_SECRET == self.JWT_REFRESH_SECRET:
            raise ValueError("JWT_ACCESS_SECRET and JWT_REFRESH_SECRET must differ.")


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
