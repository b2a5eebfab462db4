"""FormEngine — server-side orchestration of portfolio submissions.

Stateless engine pattern: each call loads the portfolio and submission from
the database, applies the form rules, persists changes, and returns a
result model.  Nothing is kept in memory between calls.

The engine accepts an ``AsyncSession`` from the caller so that the caller
(typically a FastAPI endpoint) controls transaction boundaries.

Identity: a submission is owned by ``(portfolio, company name, 4-digit
PIN)``.  A lookup miss is the normal new-submission path and returns
``None``.  Saving under an existing company name with a different PIN is a
conflict and raises ``ValueError("... already exists ...")``.

Final submit never trusts the client's step position: the navigator is
replayed from the first step, and the first failing step is reported back
in a ``SubmitOutcome`` with ``status="invalid"``.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_db.models.portfolio import PortfolioRow, QuestionRow
from portfolio_db.models.submission import FormSubmission
from portfolio_db.repository import FormRepository

from portfolio_forms.assembler import SubmissionAssembler, decode_responses
from portfolio_forms.constants import DISPLAY_ONLY_TYPES
from portfolio_forms.excel import export_filename, write_xlsx
from portfolio_forms.export import ExportProjector, ExportTable
from portfolio_forms.interfaces import SheetMirror, format_mirror_row
from portfolio_forms.models.question import Portfolio, Question
from portfolio_forms.models.session import (
    AdminSubmission,
    MySubmission,
    NavigationResult,
    PortfolioSchema,
    PortfolioSummary,
    QuestionPayload,
    ResumeState,
    SubmissionInfo,
    SubmissionRecord,
    SubmitOutcome,
)
from portfolio_forms.navigator import StepNavigator
from portfolio_forms.options import OptionParser
from portfolio_forms.security import (
    hash_pin_async,
    identity_error,
    normalize_company,
    verify_pin_async,
)
from portfolio_forms.validator import AnswerValidator

logger = logging.getLogger(__name__)


class FormEngine:
    """Loads portfolios, resumes and saves submissions, and builds exports.

    Args:
        sheet_mirror: optional spreadsheet mirror notified after each
            successful final submit
    """

    def __init__(self, *, sheet_mirror: SheetMirror | None = None) -> None:
        self._repo = FormRepository()
        self._mirror = sheet_mirror

    # ==================================================================
    # Portfolios
    # ==================================================================

    async def list_portfolios(self, db: AsyncSession) -> list[PortfolioSummary]:
        rows = await self._repo.list_active_portfolios(db)
        return [
            PortfolioSummary(
                id=str(r.id),
                title=r.title,
                description=r.description,
                slug=r.slug,
                display_order=r.display_order,
            )
            for r in rows
        ]

    async def load_portfolio(self, db: AsyncSession, slug: str) -> Portfolio:
        """Load an active portfolio with its questions.

        Raises ``ValueError`` if the slug is unknown or the portfolio is
        inactive.
        """
        row = await self._repo.find_portfolio_by_slug(db, slug)
        if row is None or not row.is_active:
            raise ValueError(f"Portfolio not found: slug={slug}")
        return await self._build_portfolio(db, row)

    async def get_schema(self, db: AsyncSession, slug: str) -> PortfolioSchema:
        """Portfolio plus parsed questions and step range, for rendering."""
        portfolio = await self.load_portfolio(db, slug)
        parser = OptionParser()
        navigator = StepNavigator(portfolio.questions)
        return PortfolioSchema(
            id=portfolio.id,
            title=portfolio.title,
            description=portfolio.description,
            slug=portfolio.slug,
            is_configured=navigator.is_configured,
            min_step=navigator.min_step,
            max_step=navigator.max_step,
            steps=navigator.steps,
            questions=[self._to_payload(q, parser) for q in portfolio.questions],
            collections=portfolio.declared_collections,
        )

    # ==================================================================
    # Identity lookup & persistence
    # ==================================================================

    async def check_existing(
        self, db: AsyncSession, *, slug: str, company_name: str, pin: str
    ) -> ResumeState | None:
        """Return the caller's saved submission, or None when there is none.

        A PIN mismatch also returns None (and is logged): from the caller's
        side it is indistinguishable from "no saved submission yet".
        """
        _check_identity(company_name, pin)
        portfolio = await self.load_portfolio(db, slug)
        row = await self._repo.find_submission(
            db, portfolio.id, normalize_company(company_name),
        )
        if row is None:
            return None
        if not await verify_pin_async(pin, row.password):
            logger.info(
                "PIN mismatch on lookup: portfolio=%s submission=%s", slug, row.id,
            )
            return None

        assembler = SubmissionAssembler(portfolio.declared_collections)
        answers, collections = assembler.hydrate(row.responses)
        return ResumeState(
            submission=self._to_info(row), answers=answers, collections=collections,
        )

    async def create_or_update(
        self,
        db: AsyncSession,
        *,
        portfolio_id: str,
        company_name: str,
        pin: str,
        responses: dict[str, Any],
        is_draft: bool,
        ip_address: str | None = None,
    ) -> SubmissionInfo:
        """Persist *responses* for the identity, creating the row on first save.

        Raises ``ValueError`` (conflict) when the company already has a
        submission protected by a different PIN, or when a concurrent first
        save won the unique ``(portfolio, company)`` slot.
        """
        _check_identity(company_name, pin)
        company = normalize_company(company_name)
        encoded = json.dumps(responses, ensure_ascii=False)
        completed_at = None if is_draft else datetime.now(timezone.utc)

        row = await self._repo.find_submission(db, portfolio_id, company)
        if row is not None:
            if not await verify_pin_async(pin, row.password):
                raise ValueError(
                    f"Submission already exists for company={company!r} "
                    f"in portfolio={portfolio_id} (PIN does not match)"
                )
            row = await self._repo.update_submission(
                db, row,
                responses=encoded,
                is_draft=is_draft,
                ip_address=ip_address,
                completed_at=completed_at,
            )
            logger.info("Updated submission %s (draft=%s)", row.id, is_draft)
            return self._to_info(row)

        try:
            row = await self._repo.create_submission(
                db,
                portfolio_id=portfolio_id,
                company_name=company,
                password_hash=await hash_pin_async(pin),
                responses=encoded,
                is_draft=is_draft,
                ip_address=ip_address,
                completed_at=completed_at,
            )
        except IntegrityError as exc:
            raise ValueError(
                f"Submission already exists for company={company!r} "
                f"in portfolio={portfolio_id} (concurrent create)"
            ) from exc
        logger.info("Created submission %s (draft=%s)", row.id, is_draft)
        return self._to_info(row)

    # ==================================================================
    # Draft save / step validation / final submit
    # ==================================================================

    async def save_draft(
        self,
        db: AsyncSession,
        *,
        slug: str,
        company_name: str,
        pin: str,
        answers: dict[str, Any],
        collections: dict[str, list[dict[str, Any]]] | None = None,
        ip_address: str | None = None,
    ) -> SubmitOutcome:
        """Persist the current answers with ``is_draft=True``.  Never validated."""
        portfolio = await self.load_portfolio(db, slug)
        responses = _assembler_for(portfolio).serialize(answers, collections)
        info = await self.create_or_update(
            db,
            portfolio_id=portfolio.id,
            company_name=company_name,
            pin=pin,
            responses=responses,
            is_draft=True,
            ip_address=ip_address,
        )
        return SubmitOutcome(status="saved", submission=info)

    async def validate_step(
        self, db: AsyncSession, *, slug: str, step: int, answers: dict[str, Any]
    ) -> NavigationResult:
        """Run ``next()`` from *step*: errors, or the step to move to."""
        portfolio = await self.load_portfolio(db, slug)
        navigator = StepNavigator(portfolio.questions)
        if not navigator.is_configured or not (
            navigator.min_step <= step <= navigator.max_step
        ):
            raise ValueError(f"Step not found: slug={slug} step={step}")
        navigator.current_step = step
        return navigator.next(answers)

    async def submit_final(
        self,
        db: AsyncSession,
        *,
        slug: str,
        company_name: str,
        pin: str,
        answers: dict[str, Any],
        collections: dict[str, list[dict[str, Any]]] | None = None,
        ip_address: str | None = None,
        mirror: bool = True,
    ) -> SubmitOutcome:
        """Validate every step, then persist with ``is_draft=False``.

        Returns ``status="invalid"`` with the first failing step's errors
        instead of persisting.  Raises ``ValueError`` for a portfolio with
        no questions.

        With ``mirror=True`` the sheet mirror is notified before the caller
        commits.  Callers that own the transaction pass ``mirror=False``,
        commit, and then call :meth:`mirror_final`.
        """
        portfolio = await self.load_portfolio(db, slug)
        navigator = StepNavigator(portfolio.questions, validator=AnswerValidator())
        if not navigator.is_configured:
            raise ValueError(f"Final submit is only valid on a configured portfolio: {slug}")

        step, errors = navigator.replay(answers)
        if errors:
            logger.info(
                "Final submit blocked at step %d (%d errors): portfolio=%s",
                step, len(errors), slug,
            )
            return SubmitOutcome(status="invalid", errors=errors, blocking_step=step)

        responses = _assembler_for(portfolio).serialize(answers, collections)
        info = await self.create_or_update(
            db,
            portfolio_id=portfolio.id,
            company_name=company_name,
            pin=pin,
            responses=responses,
            is_draft=False,
            ip_address=ip_address,
        )
        if mirror:
            await self._mirror_submission(portfolio, info, responses, ip_address)
        return SubmitOutcome(status="saved", submission=info)

    async def mirror_final(
        self, db: AsyncSession, *, slug: str, company_name: str
    ) -> None:
        """Send the stored final submission to the sheet mirror.

        Reads the row back so the mirror only ever sees committed data.
        Drafts and missing rows are skipped.
        """
        if self._mirror is None:
            return
        portfolio = await self.load_portfolio(db, slug)
        row = await self._repo.find_submission(
            db, portfolio.id, normalize_company(company_name),
        )
        if row is None or row.is_draft:
            logger.warning(
                "No final submission to mirror: portfolio=%s company=%r",
                slug, company_name,
            )
            return
        try:
            responses = decode_responses(row.responses)
        except ValueError:
            logger.warning("Submission %s has unreadable responses", row.id)
            return
        await self._mirror_submission(
            portfolio, self._to_info(row), responses, row.ip_address,
        )

    async def _mirror_submission(
        self,
        portfolio: Portfolio,
        info: SubmissionInfo,
        responses: dict[str, Any],
        ip_address: str | None,
    ) -> None:
        if self._mirror is None:
            return
        row = format_mirror_row(
            submitted_at=info.completed_at or datetime.now(timezone.utc),
            portfolio_title=portfolio.title,
            company_name=info.company_name,
            responses=responses,
            ip_address=ip_address,
        )
        try:
            await self._mirror.append(row)
        except Exception:
            # The submission is already saved; the mirror is best-effort
            logger.exception("Sheet mirror append failed for submission %s", info.id)

    # ==================================================================
    # Listings
    # ==================================================================

    async def list_my_submissions(
        self, db: AsyncSession, *, company_name: str, pin: str
    ) -> list[MySubmission]:
        """Self-service: the company's submissions whose PIN matches."""
        _check_identity(company_name, pin)
        rows = await self._repo.list_by_company(db, normalize_company(company_name))
        matches = await asyncio.gather(
            *(verify_pin_async(pin, r.password) for r in rows)
        )
        return [
            MySubmission(
                submission=self._to_info(r),
                portfolio_title=r.portfolio.title,
                portfolio_slug=r.portfolio.slug,
            )
            for r, matched in zip(rows, matches)
            if matched
        ]

    async def list_submissions(
        self,
        db: AsyncSession,
        *,
        portfolio_id: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[AdminSubmission]:
        """Admin listing with decoded responses."""
        rows = await self._repo.list_submissions(
            db, portfolio_id=portfolio_id, limit=limit, offset=offset,
        )
        items = []
        for r in rows:
            try:
                responses = decode_responses(r.responses)
            except ValueError:
                logger.warning("Submission %s has unreadable responses", r.id)
                responses = {}
            items.append(
                AdminSubmission(
                    submission=self._to_info(r),
                    portfolio_title=r.portfolio.title,
                    ip_address=r.ip_address,
                    responses=responses,
                )
            )
        return items

    # ==================================================================
    # Export
    # ==================================================================

    async def export_table(
        self, db: AsyncSession, *, portfolio_id: str
    ) -> tuple[Portfolio, ExportTable]:
        """Project all completed submissions of a portfolio.

        A row whose stored responses cannot be decoded is logged and
        exported with blank answer cells.

        Raises ``ValueError`` (not found) for an unknown portfolio or one
        without completed submissions.
        """
        row = await self._repo.get_portfolio(db, portfolio_id)
        if row is None:
            raise ValueError(f"Portfolio not found: id={portfolio_id}")
        portfolio = await self._build_portfolio(db, row)

        rows = await self._repo.list_completed_submissions(db, portfolio.id)
        if not rows:
            raise ValueError(f"Completed submissions not found for portfolio={portfolio_id}")

        records = []
        for r in rows:
            try:
                responses = decode_responses(r.responses)
            except ValueError:
                logger.warning("Submission %s has unreadable responses", r.id)
                responses = {}
            records.append(
                SubmissionRecord(
                    company_name=r.company_name,
                    responses=responses,
                    completed_at=r.completed_at,
                )
            )
        table = ExportProjector(portfolio).project(records)
        logger.info(
            "Exported %d submissions x %d columns for portfolio %s",
            len(table.rows), table.width, portfolio.slug,
        )
        return portfolio, table

    async def export_xlsx(
        self, db: AsyncSession, *, portfolio_id: str
    ) -> tuple[str, bytes]:
        """``(filename, xlsx bytes)`` for the admin download."""
        portfolio, table = await self.export_table(db, portfolio_id=portfolio_id)
        return export_filename(portfolio.title), write_xlsx(table)

    # ==================================================================
    # Helpers
    # ==================================================================

    async def _build_portfolio(self, db: AsyncSession, row: PortfolioRow) -> Portfolio:
        question_rows = await self._repo.list_questions(db, row.id)
        return Portfolio(
            id=str(row.id),
            title=row.title,
            description=row.description,
            slug=row.slug,
            is_active=row.is_active,
            display_order=row.display_order,
            questions=[self._to_question(q) for q in question_rows],
            collections=row.collections or [],
        )

    @staticmethod
    def _to_question(row: QuestionRow) -> Question:
        return Question(
            id=str(row.id),
            step=row.step,
            order=row.order,
            title=row.title,
            description=row.description,
            thumbnail=row.thumbnail,
            question_type=row.question_type,
            options=row.options,
            is_required=row.is_required,
            min_length=row.min_length,
            max_length=row.max_length,
            require_min_length=row.require_min_length,
        )

    @staticmethod
    def _to_payload(q: Question, parser: OptionParser) -> QuestionPayload:
        return QuestionPayload(
            **q.model_dump(),
            parsed_options=parser.resolve(q),
            config_error=parser.config_error(q),
        )

    @staticmethod
    def _to_info(row: FormSubmission) -> SubmissionInfo:
        return SubmissionInfo(
            id=str(row.id),
            portfolio_id=str(row.portfolio_id),
            company_name=row.company_name,
            is_draft=row.is_draft,
            completed_at=row.completed_at,
            updated_at=row.updated_at,
            created_at=row.created_at,
        )


def _check_identity(company_name: str, pin: str) -> None:
    message = identity_error(company_name, pin)
    if message is not None:
        raise ValueError(f"Invalid identity: {message}")


def _assembler_for(portfolio: Portfolio) -> SubmissionAssembler:
    """Assembler that keeps only answers to answerable questions."""
    answerable = [
        q.id for q in portfolio.questions if q.question_type not in DISPLAY_ONLY_TYPES
    ]
    return SubmissionAssembler(portfolio.declared_collections, question_ids=answerable)
