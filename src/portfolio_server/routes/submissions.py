"""Submission endpoints — draft save, final submit, self-service listing.

``PUT /portfolios/{slug}/submission`` is idempotent: repeating it with the
same body only moves timestamps.  A final submit that fails validation
answers 422 with the error map and the step the user must return to.
"""

from typing import Any

from fastapi import APIRouter, Depends, Response
from pydantic import Field
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_forms.engine import FormEngine
from portfolio_forms.models.session import MySubmission, SubmitOutcome

from portfolio_server.dependencies import get_client_ip, get_db, get_form_engine
from portfolio_server.routes.portfolios import IdentityRequest, ensure_identity

router = APIRouter(tags=["submissions"])


# ------------------------------------------------------------------
# Request models
# ------------------------------------------------------------------

class SaveSubmissionRequest(IdentityRequest):
    """Body for PUT /portfolios/{slug}/submission."""
    answers: dict[str, Any] = Field(default_factory=dict)
    collections: dict[str, list[dict[str, Any]]] = Field(default_factory=dict)
    is_draft: bool = False


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

@router.put("/portfolios/{slug}/submission")
async def save_submission(
    slug: str,
    body: SaveSubmissionRequest,
    response: Response,
    ip_address: str = Depends(get_client_ip),
    db: AsyncSession = Depends(get_db),
    engine: FormEngine = Depends(get_form_engine),
) -> SubmitOutcome:
    """Save a draft (never validated) or submit the final version.

    A saved final submit is committed before it is sent to the sheet
    mirror.  Raises 409 if the company already has a submission under
    another PIN.
    """
    ensure_identity(body)
    kwargs = dict(
        slug=slug,
        company_name=body.company_name,
        pin=body.pin,
        answers=body.answers,
        collections=body.collections,
        ip_address=ip_address,
    )
    if body.is_draft:
        return await engine.save_draft(db, **kwargs)

    outcome = await engine.submit_final(db, mirror=False, **kwargs)
    if outcome.status == "invalid":
        response.status_code = 422
        return outcome

    # The sheet mirror only sees committed rows
    await db.commit()
    await engine.mirror_final(db, slug=slug, company_name=body.company_name)
    return outcome


@router.post("/submissions/mine")
async def my_submissions(
    body: IdentityRequest,
    db: AsyncSession = Depends(get_db),
    engine: FormEngine = Depends(get_form_engine),
) -> list[MySubmission]:
    """Every submission of the company protected by this PIN."""
    ensure_identity(body)
    return await engine.list_my_submissions(
        db, company_name=body.company_name, pin=body.pin,
    )
