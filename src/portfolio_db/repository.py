"""Async repository for portfolios, questions and form submissions.

All public methods accept an ``AsyncSession`` so the caller controls
transaction boundaries: methods ``flush()`` but never ``commit()``.

The repository avoids business rules (PIN checks, validation); those
belong to the SDK.  It relies on DB constraints for structural invariants,
e.g. one submission per ``(portfolio_id, company_name)``.
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_db.models.base import utcnow
from portfolio_db.models.portfolio import PortfolioRow, QuestionRow
from portfolio_db.models.submission import FormSubmission

# Columns accepted from a question definition on upsert
_QUESTION_COLUMNS = (
    "step", "order", "title", "description", "thumbnail", "question_type",
    "options", "is_required", "min_length", "max_length", "require_min_length",
)


def _as_uuid(value: uuid.UUID | str) -> uuid.UUID:
    return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))


class FormRepository:
    """Async read/write operations on the portfolio and submission tables."""

    # ------------------------------------------------------------------
    # Portfolios & questions
    # ------------------------------------------------------------------

    async def find_portfolio_by_slug(
        self, db: AsyncSession, slug: str
    ) -> PortfolioRow | None:
        stmt = select(PortfolioRow).where(PortfolioRow.slug == slug)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_portfolio(
        self, db: AsyncSession, portfolio_id: uuid.UUID | str
    ) -> PortfolioRow | None:
        return await db.get(PortfolioRow, _as_uuid(portfolio_id))

    async def list_active_portfolios(self, db: AsyncSession) -> list[PortfolioRow]:
        """Active portfolios by display order, then title."""
        stmt = (
            select(PortfolioRow)
            .where(PortfolioRow.is_active.is_(True))
            .order_by(PortfolioRow.display_order, PortfolioRow.title)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def list_questions(
        self, db: AsyncSession, portfolio_id: uuid.UUID | str
    ) -> list[QuestionRow]:
        """Questions of a portfolio ordered by ``(step, order)``."""
        stmt = (
            select(QuestionRow)
            .where(QuestionRow.portfolio_id == _as_uuid(portfolio_id))
            .order_by(QuestionRow.step, QuestionRow.order, QuestionRow.id)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def upsert_portfolio(
        self,
        db: AsyncSession,
        *,
        portfolio_id: uuid.UUID | str,
        slug: str,
        title: str,
        description: str | None = None,
        is_active: bool = True,
        display_order: int = 0,
        collections: list[dict[str, Any]] | None = None,
        questions: list[dict[str, Any]],
    ) -> PortfolioRow:
        """Insert or replace a portfolio and its full question set.

        Questions are matched by ``id``: existing rows are updated in place,
        new ones inserted, and rows missing from *questions* deleted.
        """
        row = await self.find_portfolio_by_slug(db, slug)
        if row is None:
            row = PortfolioRow(id=_as_uuid(portfolio_id), slug=slug, title=title)
            db.add(row)
        row.title = title
        row.description = description
        row.is_active = is_active
        row.display_order = display_order
        row.collections = list(collections or [])
        row.updated_at = utcnow()
        await db.flush()

        existing = {q.id: q for q in await self.list_questions(db, row.id)}
        keep: set[uuid.UUID] = set()
        for data in questions:
            qid = _as_uuid(data["id"])
            keep.add(qid)
            q = existing.get(qid)
            if q is None:
                q = QuestionRow(id=qid, portfolio_id=row.id)
                db.add(q)
            for column in _QUESTION_COLUMNS:
                if column in data:
                    setattr(q, column, data[column])

        stale = [qid for qid in existing if qid not in keep]
        if stale:
            await db.execute(delete(QuestionRow).where(QuestionRow.id.in_(stale)))
        await db.flush()
        return row

    # ------------------------------------------------------------------
    # Submissions: single row
    # ------------------------------------------------------------------

    async def find_submission(
        self, db: AsyncSession, portfolio_id: uuid.UUID | str, company_name: str
    ) -> FormSubmission | None:
        """The submission for ``(portfolio_id, company_name)``, if any.

        PIN verification is left to the caller: bcrypt hashes are salted,
        so the hash cannot be part of the lookup key.
        """
        stmt = select(FormSubmission).where(
            FormSubmission.portfolio_id == _as_uuid(portfolio_id),
            FormSubmission.company_name == company_name,
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def create_submission(
        self,
        db: AsyncSession,
        *,
        portfolio_id: uuid.UUID | str,
        company_name: str,
        password_hash: str,
        responses: str,
        is_draft: bool,
        ip_address: str | None = None,
        completed_at: datetime | None = None,
    ) -> FormSubmission:
        """Insert a new submission.  The caller must commit."""
        row = FormSubmission(
            portfolio_id=_as_uuid(portfolio_id),
            company_name=company_name,
            password=password_hash,
            responses=responses,
            is_draft=is_draft,
            ip_address=ip_address,
            completed_at=completed_at,
        )
        db.add(row)
        await db.flush()
        return row

    async def update_submission(
        self,
        db: AsyncSession,
        submission: FormSubmission,
        *,
        responses: str,
        is_draft: bool,
        ip_address: str | None = None,
        completed_at: datetime | None = None,
    ) -> FormSubmission:
        """Overwrite content in place (same id, PIN hash untouched)."""
        submission.responses = responses
        submission.is_draft = is_draft
        if ip_address is not None:
            submission.ip_address = ip_address
        if completed_at is not None:
            submission.completed_at = completed_at
        submission.updated_at = utcnow()
        await db.flush()
        return submission

    # ------------------------------------------------------------------
    # Submissions: multiple rows
    # ------------------------------------------------------------------

    async def list_by_company(
        self, db: AsyncSession, company_name: str
    ) -> list[FormSubmission]:
        """Every submission of a company across portfolios, newest first."""
        stmt = (
            select(FormSubmission)
            .where(FormSubmission.company_name == company_name)
            .order_by(FormSubmission.updated_at.desc())
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def list_submissions(
        self,
        db: AsyncSession,
        *,
        portfolio_id: uuid.UUID | str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[FormSubmission]:
        """Admin listing: named submissions, most recently updated first."""
        stmt = select(FormSubmission).where(FormSubmission.company_name != "")
        if portfolio_id is not None:
            stmt = stmt.where(FormSubmission.portfolio_id == _as_uuid(portfolio_id))
        stmt = (
            stmt.order_by(FormSubmission.updated_at.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def list_completed_submissions(
        self, db: AsyncSession, portfolio_id: uuid.UUID | str
    ) -> list[FormSubmission]:
        """Export source: finalised, named submissions, latest completion first."""
        stmt = (
            select(FormSubmission)
            .where(
                FormSubmission.portfolio_id == _as_uuid(portfolio_id),
                FormSubmission.is_draft.is_(False),
                FormSubmission.company_name != "",
            )
            .order_by(FormSubmission.completed_at.desc())
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())
