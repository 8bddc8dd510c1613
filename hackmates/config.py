import os
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv


ENV_MONGO_URL = "MONGO_URL"
ENV_MONGO_DB = "MONGO_DB"
ENV_REDIS_URL = "REDIS_URL"
ENV_JWT_SECRET = "JWT_SECRET"
ENV_JWT_ALGORITHM = "JWT_ALGORITHM"
ENV_ACCESS_TOKEN_MINUTES = "ACCESS_TOKEN_MINUTES"
ENV_LOG_LEVEL = "LOG_LEVEL"
ENV_CORS_ORIGINS = "CORS_ORIGINS"
ENV_PUBLIC_BASE_URL = "PUBLIC_BASE_URL"


@dataclass(frozen=True)
class Settings:

    mongo_url: str = "mongodb://localhost:27017"
    mongo_db: str = "hackmates"
    redis_url: str | None = None
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    access_token_minutes: int = 60 * 24
    log_level: str = "INFO"
    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost:3000"])
    public_base_url: str = ""


def _get_env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_env_list(name: str, default: List[str]) -> List[str]:
    value = os.getenv(name)
    if value is None:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]


def load_settings() -> Settings:
    """Read settings from the environment, loading .env first when present."""

    load_dotenv()
    defaults = Settings()
    return Settings(
        mongo_url=os.getenv(ENV_MONGO_URL, defaults.mongo_url),
        mongo_db=os.getenv(ENV_MONGO_DB, defaults.mongo_db),
        redis_url=os.getenv(ENV_REDIS_URL) or None,
        jwt_secret=os.getenv(ENV_JWT_SECRET, defaults.jwt_secret),
        jwt_algorithm=os.getenv(ENV_JWT_ALGORITHM, defaults.jwt_algorithm),
        access_token_minutes=_get_env_int(ENV_ACCESS_TOKEN_MINUTES, defaults.access_token_minutes),
        log_level=os.getenv(ENV_LOG_LEVEL, defaults.log_level).upper(),
        cors_origins=_get_env_list(ENV_CORS_ORIGINS, defaults.cors_origins),
        public_base_url=os.getenv(ENV_PUBLIC_BASE_URL, defaults.public_base_url).rstrip("/"),
    )
