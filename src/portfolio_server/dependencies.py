"""FastAPI dependency injection — DB sessions, the form engine, client IP, admin auth.

Each request that touches the database gets a fresh ``AsyncSession`` via
``get_db()``.  The session is committed on success and rolled back on error,
matching the SDK convention where engine/repository call ``flush()`` but
never ``commit()``.
"""

from typing import Any, AsyncGenerator

from fastapi import Header, HTTPException, Request
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_db.engine import get_session_factory
from portfolio_forms.constants import ADMIN_ROLES
from portfolio_forms.engine import FormEngine

from portfolio_server.auth import decode_access_token


# ------------------------------------------------------------------
# Database session: transaction boundary lives here
# ------------------------------------------------------------------

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async DB session; commit on success, rollback on error."""
    factory = get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# ------------------------------------------------------------------
# Engine: stashed on app.state during lifespan
# ------------------------------------------------------------------

def get_form_engine(request: Request) -> FormEngine:
    """Return the FormEngine singleton from ``app.state``."""
    return request.app.state.engine


# ------------------------------------------------------------------
# Client IP: audit only
# ------------------------------------------------------------------

def get_client_ip(request: Request) -> str:
    """First ``X-Forwarded-For`` hop, then ``X-Real-IP``, else ``unknown``."""
    if request.app.state.settings.trust_proxy_headers:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            first = forwarded.split(",")[0].strip()
            if first:
                return first
        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            return real_ip.strip()
    if request.client is not None and request.client.host:
        return request.client.host
    return "unknown"


# ------------------------------------------------------------------
# Admin identity: bearer JWT with an admin role claim
# ------------------------------------------------------------------

async def require_admin(
    request: Request,
    authorization: str | None = Header(None),
) -> dict[str, Any]:
    """Validate ``Authorization: Bearer <jwt>`` and require an admin role.

    401 when the header is missing or the token does not verify, 403 when
    admin auth is disabled or the role is not an admin tier.
    """
    settings = request.app.state.settings
    if not settings.jwt_secret:
        raise HTTPException(
            status_code=403,
            detail="Admin endpoints are disabled (JWT_SECRET not configured)",
        )
    if not authorization:
        raise HTTPException(status_code=401, detail="Authorization header is required")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(status_code=401, detail="Bearer token is required")

    try:
        claims = decode_access_token(settings, token.strip())
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    if claims.get("role") not in ADMIN_ROLES:
        raise HTTPException(status_code=403, detail="Admin role required")
    return claims
