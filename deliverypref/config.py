# deliverypref/config.py
from __future__ import annotations

import logging
import os
from typing import List, Literal, Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

# Only ever used outside production, and loudly.
_DEV_JWT_SECRET = "dev-secret-change-me-please"


class Settings(BaseModel):
    environment: Literal["development", "test", "production"] = "development"
    host: str = "0.0.0.0"
    port: int = 4000

    database_url: str = "sqlite:///./deliverypref.db"

    jwt_secret: str = Field(min_length=16)
    jwt_algorithm: str = "HS256"
    token_ttl_minutes: int = Field(default=1440, gt=0)

    allow_origins: List[str] = Field(default_factory=list)

    seed_email: str = "demo@task.io"
    seed_password: str = Field(default="Password123!", min_length=8)

    docs_enabled: bool = True
    log_level: str = "INFO"

    @field_validator("database_url")
    @classmethod
    def _normalize_database_url(cls, url: str) -> str:
        url = url.strip()
        if url.startswith("postgres://"):
            return "postgresql+psycopg://" + url[len("postgres://"):]
        if url.startswith("postgresql://"):
            return "postgresql+psycopg://" + url[len("postgresql://"):]
        return url

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


def _split_origins(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    return [o.strip() for o in raw.split(",") if o.strip()]


def _flag(raw: Optional[str], default: bool) -> bool:
    if raw is None:
        return default
    return raw.strip().lower() not in {"0", "false", "no", "off"}


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from the process environment (plus .env when present).
    Call once at startup and hand the result to create_app().
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    environment = environ.get("APP_ENV", "development").strip().lower()

    jwt_secret = environ.get("JWT_SECRET")
    if not jwt_secret:
        if environment == "production":
            raise ValueError("Invalid environment configuration: JWT_SECRET is required in production")
        logger.warning("JWT_SECRET is not set. Using an insecure development secret.")
        jwt_secret = _DEV_JWT_SECRET

    raw: dict = {
        "environment": environment,
        "jwt_secret": jwt_secret,
        "allow_origins": _split_origins(environ.get("ALLOW_ORIGINS")),
        "docs_enabled": _flag(environ.get("DOCS_ENABLED"), True),
    }
    for env_name, field in (
        ("APP_HOST", "host"),
        ("APP_PORT", "port"),
        ("DATABASE_URL", "database_url"),
        ("JWT_ALG", "jwt_algorithm"),
        ("TOKEN_TTL_MINUTES", "token_ttl_minutes"),
        ("SEED_EMAIL", "seed_email"),
        ("SEED_PASSWORD", "seed_password"),
        ("LOG_LEVEL", "log_level"),
    ):
        value = environ.get(env_name)
        if value:
            raw[field] = value.strip()

    try:
        return Settings(**raw)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ValueError(f"Invalid environment configuration: {problems}") from e
