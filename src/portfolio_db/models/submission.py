"""FormSubmission ORM model — one row per (portfolio, company).

The unique constraint on ``(portfolio_id, company_name)`` is what makes
create-vs-resume safe under concurrent duplicate submissions: at most one
insert wins, the loser gets an ``IntegrityError``.

``responses`` holds the JSON-encoded responses object as text, exactly as
produced by the SDK's ``SubmissionAssembler``.
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from portfolio_db.models.base import Base, utcnow
from portfolio_db.models.portfolio import PortfolioRow


class FormSubmission(Base):
    """A draft or completed set of answers for one portfolio."""

    __tablename__ = "form_submissions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    portfolio_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("portfolios.id", ondelete="CASCADE"),
        nullable=False,
    )

    # --- Identity ---
    company_name: Mapped[str] = mapped_column(Text, nullable=False)
    # bcrypt hash of the 4-digit PIN
    password: Mapped[str] = mapped_column(Text, nullable=False)

    # --- Content ---
    responses: Mapped[str] = mapped_column(
        Text, nullable=False, default="{}", server_default=text("'{}'"),
    )
    is_draft: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false"),
    )
    # Audit only
    ip_address: Mapped[str | None] = mapped_column(Text, nullable=True)

    # --- Timestamps ---
    completed_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=utcnow, onupdate=utcnow,
    )

    # Loaded eagerly so listings can show the portfolio title without
    # lazy IO on the async session.
    portfolio: Mapped[PortfolioRow] = relationship(lazy="selectin")

    __table_args__ = (
        UniqueConstraint("portfolio_id", "company_name", name="uq_submission_company"),
        # Finalised submissions must carry a completion timestamp
        CheckConstraint(
            "is_draft OR completed_at IS NOT NULL",
            name="ck_final_has_completed_at",
        ),
        Index("ix_submissions_company", "company_name"),
        Index(
            "ix_submissions_completed",
            "portfolio_id",
            "completed_at",
            postgresql_where=text("NOT is_draft"),
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<FormSubmission(id={self.id!s}, company={self.company_name!r}, "
            f"draft={self.is_draft})>"
        )
