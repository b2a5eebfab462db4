"""PortalClient — async HTTP client for the portfolio server.

Wraps ``httpx.AsyncClient`` and speaks the ``/api/v1`` routes.  Form state
lives client-side in a :class:`~portfolio_forms.form_state.FormSession`;
the client never mutates it when a request fails, so no answers are lost
on a failed save.  Transport and HTTP errors propagate as ``httpx``
exceptions for the caller to report.

Usage::

    async with PortalClient("http://localhost:8080") as client:
        session = await client.open_form("accommodation-info", "하늘펜션", "1234")
        session.set_answer(qid, "...")
        await client.save_draft(session, "하늘펜션", "1234")
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from portfolio_forms.cache import InMemoryCache, SubmissionHistory
from portfolio_forms.form_state import FormSession, FormState
from portfolio_forms.interfaces import KeyValueCache
from portfolio_forms.models.question import Portfolio, Question
from portfolio_forms.models.session import (
    MySubmission,
    NavigationResult,
    PortfolioSchema,
    PortfolioSummary,
    ResumeState,
    SubmitOutcome,
)

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


def portfolio_from_schema(schema: PortfolioSchema) -> Portfolio:
    """Rebuild the SDK portfolio model from a server schema response."""
    question_fields = set(Question.model_fields)
    return Portfolio(
        id=schema.id,
        title=schema.title,
        description=schema.description,
        slug=schema.slug,
        questions=[
            Question.model_validate(q.model_dump(include=question_fields))
            for q in schema.questions
        ],
        collections=schema.collections,
    )


class PortalClient:
    """Async client for the submission portal.

    Args:
        base_url: server root, e.g. ``http://localhost:8080``
        cache: key-value cache for self-service search results
        transport: optional ``httpx`` transport (tests use ``MockTransport``)
        timeout: per-request timeout in seconds
    """

    def __init__(
        self,
        base_url: str,
        *,
        cache: KeyValueCache | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/") + API_PREFIX,
            transport=transport,
            timeout=timeout,
        )
        self.history = SubmissionHistory(cache or InMemoryCache())

    async def __aenter__(self) -> "PortalClient":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Portfolios
    # ------------------------------------------------------------------

    async def list_portfolios(self) -> list[PortfolioSummary]:
        resp = await self._client.get("/portfolios")
        resp.raise_for_status()
        return [PortfolioSummary.model_validate(p) for p in resp.json()]

    async def get_schema(self, slug: str) -> PortfolioSchema:
        resp = await self._client.get(f"/portfolios/{slug}")
        resp.raise_for_status()
        return PortfolioSchema.model_validate(resp.json())

    async def check_existing(
        self, slug: str, company_name: str, pin: str
    ) -> ResumeState | None:
        resp = await self._client.post(
            f"/portfolios/{slug}/check",
            json={"company_name": company_name, "pin": pin},
        )
        resp.raise_for_status()
        # A miss is JSON null; treat an empty body the same way
        if not resp.content.strip():
            return None
        data = resp.json()
        return ResumeState.model_validate(data) if data else None

    async def open_form(self, slug: str, company_name: str, pin: str) -> FormSession:
        """Fetch the schema and any saved submission; return a ready session."""
        schema = await self.get_schema(slug)
        portfolio = portfolio_from_schema(schema)
        existing = await self.check_existing(slug, company_name, pin)
        self.history.remember_company(company_name)
        if existing is None:
            return FormSession(portfolio)
        state = FormState(
            existing.collections.keys(),
            answers=existing.answers,
            collections=existing.collections,
        )
        return FormSession(portfolio, state=state)

    # ------------------------------------------------------------------
    # Saving
    # ------------------------------------------------------------------

    async def validate_step(
        self, slug: str, step: int, answers: dict[str, Any]
    ) -> NavigationResult:
        resp = await self._client.post(
            f"/portfolios/{slug}/steps/{step}/validate", json={"answers": answers},
        )
        resp.raise_for_status()
        return NavigationResult.model_validate(resp.json())

    async def save_draft(
        self, session: FormSession, company_name: str, pin: str
    ) -> SubmitOutcome:
        return await self._save(session, company_name, pin, is_draft=True)

    async def submit(
        self, session: FormSession, company_name: str, pin: str
    ) -> SubmitOutcome:
        """Final submit.  A 422 comes back as an ``invalid`` outcome whose
        errors are copied into the session state."""
        outcome = await self._save(session, company_name, pin, is_draft=False)
        if outcome.status == "invalid":
            session.state.set_errors(outcome.errors)
        return outcome

    async def _save(
        self, session: FormSession, company_name: str, pin: str, *, is_draft: bool
    ) -> SubmitOutcome:
        state = session.state
        resp = await self._client.put(
            f"/portfolios/{session.portfolio.slug}/submission",
            json={
                "company_name": company_name,
                "pin": pin,
                "answers": state.answers,
                "collections": state.collections,
                "is_draft": is_draft,
            },
        )
        if resp.status_code == 422 and not is_draft:
            body = resp.json()
            if isinstance(body, dict) and body.get("status") == "invalid":
                return SubmitOutcome.model_validate(body)
        resp.raise_for_status()
        # Cached listing is stale once anything was saved
        self.history.clear(company_name)
        return SubmitOutcome.model_validate(resp.json())

    # ------------------------------------------------------------------
    # Self-service listing
    # ------------------------------------------------------------------

    async def my_submissions(
        self, company_name: str, pin: str, *, refresh: bool = False
    ) -> list[MySubmission]:
        """List the company's submissions, served from cache unless *refresh*."""
        if not refresh:
            cached = self.history.recall(company_name)
            if cached is not None:
                return [MySubmission.model_validate(s) for s in cached]

        resp = await self._client.post(
            "/submissions/mine", json={"company_name": company_name, "pin": pin},
        )
        resp.raise_for_status()
        items = [MySubmission.model_validate(s) for s in resp.json()]
        self.history.remember(company_name, [s.model_dump(mode="json") for s in items])
        return items
