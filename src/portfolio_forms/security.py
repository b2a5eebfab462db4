"""Identity helpers for the company-name + PIN path.

The PIN is a low-friction resume key, not a security boundary: it is
hashed at rest with bcrypt and compared with ``bcrypt.checkpw``.  bcrypt is
CPU-bound, so async callers use the ``*_async`` variants.
"""

from __future__ import annotations

import asyncio

import bcrypt

from portfolio_forms.constants import (
    MSG_COMPANY_REQUIRED,
    MSG_PIN_INVALID,
    PIN_HASH_ROUNDS,
    PIN_LENGTH,
)


def normalize_company(company_name: str | None) -> str:
    """Company names are compared after trimming surrounding whitespace."""
    return (company_name or "").strip()


def identity_error(company_name: str | None, pin: str | None) -> str | None:
    """User-facing message for a malformed identity, or None if it is usable."""
    if not normalize_company(company_name):
        return MSG_COMPANY_REQUIRED
    if (
        pin is None
        or len(pin) != PIN_LENGTH
        or not pin.isascii()
        or not pin.isdigit()
    ):
        return MSG_PIN_INVALID
    return None


def hash_pin(pin: str) -> str:
    return bcrypt.hashpw(pin.encode("utf-8"), bcrypt.gensalt(rounds=PIN_HASH_ROUNDS)).decode("ascii")


def verify_pin(pin: str, pin_hash: str | None) -> bool:
    """Constant-time check of *pin* against a stored bcrypt hash."""
    if not pin_hash:
        return False
    try:
        return bcrypt.checkpw(pin.encode("utf-8"), pin_hash.encode("ascii"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


async def hash_pin_async(pin: str) -> str:
    """``hash_pin`` on a worker thread so the event loop keeps serving."""
    return await asyncio.to_thread(hash_pin, pin)


async def verify_pin_async(pin: str, pin_hash: str | None) -> bool:
    """``verify_pin`` on a worker thread so the event loop keeps serving."""
    return await asyncio.to_thread(verify_pin, pin, pin_hash)
