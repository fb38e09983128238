from __future__ import annotations

import pytest

from deliverypref.config import Settings, load_settings


def test_defaults_from_empty_environment():
    s = load_settings({})

    assert s.environment == "development"
    assert s.port == 4000
    assert s.token_ttl_minutes == 1440
    assert s.allow_origins == []
    assert s.docs_enabled is True
    assert s.is_sqlite
    assert len(s.jwt_secret) >= 16


def test_values_from_environment():
    s = load_settings(
        {
            "APP_ENV": "production",
            "APP_PORT": "8080",
            "JWT_SECRET": "a-very-long-production-secret",
            "TOKEN_TTL_MINUTES": "30",
            "ALLOW_ORIGINS": "http://localhost:8081, https://app.example.com,",
            "DOCS_ENABLED": "false",
            "DATABASE_URL": "postgres://task:task@db:5432/task",
        }
    )

    assert s.environment == "production"
    assert s.port == 8080
    assert s.token_ttl_minutes == 30
    assert s.allow_origins == ["http://localhost:8081", "https://app.example.com"]
    assert s.docs_enabled is False
    assert s.database_url == "postgresql+psycopg://task:task@db:5432/task"
    assert not s.is_sqlite


def test_production_requires_jwt_secret():
    with pytest.raises(ValueError, match="JWT_SECRET"):
        load_settings({"APP_ENV": "production"})


@pytest.mark.parametrize(
    "env",
    [
        {"JWT_SECRET": "too-short"},
        {"TOKEN_TTL_MINUTES": "0"},
        {"APP_PORT": "not-a-port"},
    ],
)
def test_invalid_values_are_reported(env):
    with pytest.raises(ValueError, match="Invalid environment configuration"):
        load_settings(env)


def test_postgresql_url_is_normalized():
    s = Settings(jwt_secret="x" * 16, database_url="postgresql://u:p@h/db")
    assert s.database_url == "postgresql+psycopg://u:p@h/db"
