"""Portfolio endpoints — listing, schema, identity lookup and step validation.

These are public: the only credential a user needs is the company name and
4-digit PIN carried in the body of the lookup request.
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_forms.engine import FormEngine
from portfolio_forms.models.session import (
    NavigationResult,
    PortfolioSchema,
    PortfolioSummary,
    ResumeState,
)
from portfolio_forms.security import identity_error

from portfolio_server.dependencies import get_db, get_form_engine

router = APIRouter(tags=["portfolios"])


# ------------------------------------------------------------------
# Request models
# ------------------------------------------------------------------

class IdentityRequest(BaseModel):
    """Company name + PIN, shared by lookup and listing requests."""
    company_name: str
    pin: str


class StepAnswersRequest(BaseModel):
    """Body for POST /portfolios/{slug}/steps/{step}/validate."""
    answers: dict[str, Any] = Field(default_factory=dict)


def ensure_identity(body: IdentityRequest) -> None:
    """400 with the user-facing message for a malformed identity."""
    message = identity_error(body.company_name, body.pin)
    if message is not None:
        raise HTTPException(status_code=400, detail=message)


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

@router.get("/portfolios")
async def list_portfolios(
    db: AsyncSession = Depends(get_db),
    engine: FormEngine = Depends(get_form_engine),
) -> list[PortfolioSummary]:
    """Active portfolios in display order."""
    return await engine.list_portfolios(db)


@router.get("/portfolios/{slug}")
async def get_portfolio(
    slug: str,
    db: AsyncSession = Depends(get_db),
    engine: FormEngine = Depends(get_form_engine),
) -> PortfolioSchema:
    """Full schema for rendering.  ``is_configured`` is false when the
    portfolio has no questions yet."""
    return await engine.get_schema(db, slug)


@router.post("/portfolios/{slug}/check")
async def check_existing(
    slug: str,
    body: IdentityRequest,
    db: AsyncSession = Depends(get_db),
    engine: FormEngine = Depends(get_form_engine),
) -> ResumeState | None:
    """Saved submission for this identity, or ``null`` for a new one."""
    ensure_identity(body)
    return await engine.check_existing(
        db, slug=slug, company_name=body.company_name, pin=body.pin,
    )


@router.post("/portfolios/{slug}/steps/{step}/validate")
async def validate_step(
    slug: str,
    step: int,
    body: StepAnswersRequest,
    db: AsyncSession = Depends(get_db),
    engine: FormEngine = Depends(get_form_engine),
) -> NavigationResult:
    """Validate one step; on success ``current_step`` is the next step."""
    return await engine.validate_step(db, slug=slug, step=step, answers=body.answers)
