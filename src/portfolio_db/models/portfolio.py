"""Portfolio and Question ORM models.

A portfolio row owns its question rows (``ON DELETE CASCADE``).  Question
``options`` is stored as the opaque text the administrator entered; it is
parsed only by the SDK.  Declared submission-scoped collections live in a
JSONB list on the portfolio.
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from portfolio_db.models.base import Base, utcnow


class PortfolioRow(Base):
    """One form template."""

    __tablename__ = "portfolios"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    # URL-safe public identifier
    slug: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true"),
    )
    display_order: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0"),
    )
    # [{key, label, fields: [{key, label, optional}]}]; empty means "rooms" default
    collections: Mapped[list] = mapped_column(
        JSONB, nullable=False, default=list, server_default=text("'[]'::jsonb"),
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=utcnow, onupdate=utcnow,
    )

    __table_args__ = (
        Index("ix_portfolios_active_order", "is_active", "display_order"),
    )

    def __repr__(self) -> str:
        return f"<PortfolioRow(id={self.id!s}, slug={self.slug!r})>"


class QuestionRow(Base):
    """One question of a portfolio."""

    __tablename__ = "questions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    portfolio_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("portfolios.id", ondelete="CASCADE"),
        nullable=False,
    )
    step: Mapped[int] = mapped_column(Integer, nullable=False)
    order: Mapped[int] = mapped_column(
        "order", Integer, nullable=False, default=0, server_default=text("0"),
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    thumbnail: Mapped[str | None] = mapped_column(Text, nullable=True)
    # NULL means "textarea" (rows created before types existed)
    question_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    options: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_required: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false"),
    )
    min_length: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_length: Mapped[int | None] = mapped_column(Integer, nullable=True)
    require_min_length: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false"),
    )

    __table_args__ = (
        CheckConstraint("step >= 1", name="ck_question_step_positive"),
        Index("ix_questions_portfolio_step_order", "portfolio_id", "step", "order"),
    )

    def __repr__(self) -> str:
        return (
            f"<QuestionRow(id={self.id!s}, step={self.step}, order={self.order}, "
            f"type={self.question_type!r})>"
        )
