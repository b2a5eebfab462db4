"""Result models — the contract between the form engine and its callers.

These models describe what the engine returns for navigation, persistence
and listing calls.  They are decoupled from the ORM models in
``portfolio_db`` so that API consumers never see database internals (the
PIN hash in particular never leaves the engine).

Expected conditions (validation errors, a missing draft) are carried in
these values rather than raised.
"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from portfolio_forms.models.question import (
    CollectionSpec,
    ParsedOptions,
)


class QuestionPayload(BaseModel):
    """Question as presented to the UI.

    Carries the typed options parse and, when that parse failed for an
    options-bearing type, the configuration-error message to show above
    the free-text fallback.
    """

    id: str
    step: int
    order: int
    title: str
    description: str | None = None
    thumbnail: str | None = None
    question_type: str
    is_required: bool
    min_length: int | None = None
    max_length: int | None = None
    require_min_length: bool = False
    # Raw payload as stored; clients rebuild Question models from it
    options: str | None = None
    parsed_options: ParsedOptions | None = None
    config_error: str | None = None


class PortfolioSummary(BaseModel):
    """Listing entry for the public portfolio index."""

    id: str
    title: str
    description: str | None = None
    slug: str
    display_order: int = 0


class PortfolioSchema(BaseModel):
    """Everything a client needs to render and navigate a portfolio."""

    id: str
    title: str
    description: str | None = None
    slug: str
    is_configured: bool
    min_step: int
    max_step: int
    steps: list[int]
    questions: list[QuestionPayload]
    collections: list[CollectionSpec]


class NavigationResult(BaseModel):
    """Outcome of a navigator transition or step validation.

    ``advanced`` is false when ``next()`` was blocked by validation errors
    (listed in ``errors``) or when the navigator was already at a bound.
    """

    current_step: int
    advanced: bool = False
    errors: dict[str, str] = Field(default_factory=dict)
    progress: float
    is_first_step: bool
    is_last_step: bool


class UploadResult(BaseModel):
    """Upload collaborator response: a public URL or a structured failure."""

    url: str | None = None
    failure: Literal["unsupported_type", "too_large", "transient"] | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.url is not None and self.failure is None


class SubmissionInfo(BaseModel):
    """Public view of a persisted submission (no PIN hash)."""

    id: str
    portfolio_id: str
    company_name: str
    is_draft: bool
    completed_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class ResumeState(BaseModel):
    """A previously persisted submission hydrated back into form state."""

    submission: SubmissionInfo
    answers: dict[str, Any]
    collections: dict[str, list[dict[str, Any]]]


class SubmitOutcome(BaseModel):
    """Result of a draft save or final submit.

    ``status`` is ``"saved"`` when persisted, ``"invalid"`` when a final
    submit was blocked; in that case ``errors`` and ``blocking_step`` say
    where the user has to go back to.
    """

    status: Literal["saved", "invalid"]
    submission: SubmissionInfo | None = None
    errors: dict[str, str] = Field(default_factory=dict)
    blocking_step: int | None = None


class MySubmission(BaseModel):
    """Self-service listing entry: a submission plus its portfolio labels."""

    submission: SubmissionInfo
    portfolio_title: str
    portfolio_slug: str


class AdminSubmission(BaseModel):
    """Admin listing entry with decoded responses."""

    submission: SubmissionInfo
    portfolio_title: str
    ip_address: str | None = None
    responses: dict[str, Any] = Field(default_factory=dict)


class SubmissionRecord(BaseModel):
    """Minimal input row for the export projector."""

    company_name: str
    responses: dict[str, Any]
    completed_at: Optional[datetime] = None
