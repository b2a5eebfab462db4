"""Bearer-token helpers for admin endpoints.

Tokens are JWTs signed with ``JWT_SECRET``.  Claims carried:

    sub           account id
    username      login name
    company_name  member's company (empty for staff accounts)
    role          MEMBER, ADMIN or SUPER_ADMIN
    exp           expiry

Only the ``role`` claim matters to the form engine: export and listing
endpoints accept ``ADMIN`` and ``SUPER_ADMIN``.

``portfolio-token`` issues a token from the command line for operators.
"""

from __future__ import annotations

import argparse
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from portfolio_server.config import ServerSettings, load_settings

ROLES = ("MEMBER", "ADMIN", "SUPER_ADMIN")


def create_access_token(
    settings: ServerSettings,
    *,
    subject: str,
    role: str,
    username: str | None = None,
    company_name: str | None = None,
    expires_in: timedelta | None = None,
) -> str:
    """Sign a token.  Raises ``ValueError`` if no secret is configured."""
    if not settings.jwt_secret:
        raise ValueError("Token issuance is only valid when JWT_SECRET is configured")
    if role not in ROLES:
        raise ValueError(f"Unknown role: {role}")
    expires = datetime.now(timezone.utc) + (
        expires_in or timedelta(minutes=settings.token_ttl_minutes)
    )
    claims = {
        "sub": subject,
        "username": username or subject,
        "company_name": company_name or "",
        "role": role,
        "exp": expires,
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(settings: ServerSettings, token: str) -> dict[str, Any]:
    """Verify signature and expiry; return the claims.

    Raises ``jose.JWTError`` on any verification failure.
    """
    if not settings.jwt_secret:
        raise JWTError("JWT_SECRET is not configured")
    return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])


def cli() -> None:
    """Console-script entry point: ``portfolio-token``."""
    parser = argparse.ArgumentParser(
        prog="portfolio-token",
        description="Issue a bearer token for the portfolio server admin API.",
    )
    parser.add_argument("username", help="Account name recorded in the token")
    parser.add_argument(
        "--role", default="ADMIN", choices=ROLES, help="Role claim (default: ADMIN)",
    )
    parser.add_argument(
        "--hours", type=int, default=None, help="Lifetime in hours (default: $JWT_TTL_MINUTES)",
    )
    args = parser.parse_args()

    settings = load_settings()
    expires_in = timedelta(hours=args.hours) if args.hours else None
    print(
        create_access_token(
            settings,
            subject=args.username,
            role=args.role,
            username=args.username,
            expires_in=expires_in,
        )
    )
