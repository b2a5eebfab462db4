"""Admin endpoints — submission listing and spreadsheet export.

Protected by a bearer JWT whose ``role`` claim is ``ADMIN`` or
``SUPER_ADMIN`` (see :func:`portfolio_server.dependencies.require_admin`).
"""

from typing import Any

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_forms.engine import FormEngine
from portfolio_forms.excel import XLSX_MEDIA_TYPE, content_disposition
from portfolio_forms.models.session import AdminSubmission

from portfolio_server.config import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT
from portfolio_server.dependencies import get_db, get_form_engine, require_admin

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/submissions")
async def list_submissions(
    portfolio_id: str | None = Query(None),
    limit: int = Query(DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    engine: FormEngine = Depends(get_form_engine),
    _admin: dict[str, Any] = Depends(require_admin),
) -> list[AdminSubmission]:
    """Drafts and completed submissions, most recently updated first."""
    return await engine.list_submissions(
        db, portfolio_id=portfolio_id, limit=limit, offset=offset,
    )


@router.get("/portfolios/{portfolio_id}/export")
async def export_submissions(
    portfolio_id: str,
    db: AsyncSession = Depends(get_db),
    engine: FormEngine = Depends(get_form_engine),
    _admin: dict[str, Any] = Depends(require_admin),
) -> Response:
    """Download completed submissions as xlsx.

    Raises 404 when the portfolio is unknown or has no completed
    submissions.
    """
    filename, data = await engine.export_xlsx(db, portfolio_id=portfolio_id)
    return Response(
        content=data,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": content_disposition(filename)},
    )
