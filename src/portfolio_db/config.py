"""Database configuration — reads connection parameters from environment.

Supports two modes:
1. A single ``DATABASE_URL`` env var (takes precedence).
2. Individual ``PG_HOST``, ``PG_PORT``, ``PG_USER``, ``PG_PASSWORD``,
   ``PG_DATABASE`` env vars (convenient for docker-compose).

``get_sync_url()`` serves Alembic; ``get_async_url()`` serves the asyncpg
engine used at runtime.
"""

import os

_ASYNC_PREFIX = "postgresql+asyncpg://"
_SYNC_PREFIX = "postgresql://"


def _build_url_from_parts() -> str:
    host = os.getenv("PG_HOST", "localhost")
    port = os.getenv("PG_PORT", "5432")
    user = os.getenv("PG_USER", "portfolio")
    password = os.getenv("PG_PASSWORD", "portfolio")
    database = os.getenv("PG_DATABASE", "portfolio")
    return f"{_SYNC_PREFIX}{user}:{password}@{host}:{port}/{database}"


def get_sync_url() -> str:
    """Synchronous URL for Alembic, with any asyncpg driver prefix stripped."""
    url = os.getenv("DATABASE_URL") or _build_url_from_parts()
    return url.replace(_ASYNC_PREFIX, _SYNC_PREFIX, 1)


def get_async_url() -> str:
    """asyncpg URL for the runtime engine."""
    url = os.getenv("DATABASE_URL") or _build_url_from_parts()
    # Heroku-style URLs still use the legacy scheme
    if url.startswith("postgres://"):
        url = _SYNC_PREFIX + url[len("postgres://"):]
    if url.startswith(_SYNC_PREFIX):
        return url.replace(_SYNC_PREFIX, _ASYNC_PREFIX, 1)
    return url
