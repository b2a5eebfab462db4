"""Server configuration — reads settings from environment variables.

All settings have sensible defaults for local development.  In production
the values are typically overridden via env vars or a ``.env`` file.
"""

import os
from dataclasses import dataclass, field

# --- Pagination defaults ---
# Read at import time so FastAPI Query() defaults can reference them.
DEFAULT_PAGE_LIMIT = int(os.getenv("DEFAULT_PAGE_LIMIT", "20"))
MAX_PAGE_LIMIT = int(os.getenv("MAX_PAGE_LIMIT", "100"))


@dataclass(frozen=True)
class ServerSettings:
    """Immutable server configuration read from environment at startup."""

    # Network
    host: str = "0.0.0.0"
    port: int = 8080

    # CORS: comma-separated origins, or "*" for wide-open dev mode
    cors_origins: list[str] = field(default_factory=lambda: ["*"])

    # Logging
    log_level: str = "INFO"

    # YAML portfolio definitions read by portfolio-seed (None = portfolios/ at repo root)
    portfolio_dir: str | None = None

    # Admin bearer tokens (HS256 by default).  No secret = admin routes disabled.
    jwt_secret: str | None = None
    jwt_algorithm: str = "HS256"
    token_ttl_minutes: int = 12 * 60

    # Honour X-Forwarded-For / X-Real-IP when recording submitter IPs
    trust_proxy_headers: bool = True


def load_settings() -> ServerSettings:
    """Build settings from ``SERVER_*`` / ``JWT_*`` environment variables."""
    raw_origins = os.getenv("SERVER_CORS_ORIGINS", "*")
    origins = [o.strip() for o in raw_origins.split(",") if o.strip()]

    return ServerSettings(
        host=os.getenv("SERVER_HOST", "0.0.0.0"),
        port=int(os.getenv("SERVER_PORT", "8080")),
        cors_origins=origins,
        log_level=os.getenv("SERVER_LOG_LEVEL", "INFO").upper(),
        portfolio_dir=os.getenv("SERVER_PORTFOLIO_DIR") or None,
        jwt_secret=os.getenv("JWT_SECRET") or None,
        jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
        token_ttl_minutes=int(os.getenv("JWT_TTL_MINUTES", str(12 * 60))),
        trust_proxy_headers=os.getenv("SERVER_TRUST_PROXY_HEADERS", "true").lower()
        in ("1", "true", "yes"),
    )
