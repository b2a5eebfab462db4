"""Initial schema: portfolios, questions, form_submissions.

``form_submissions`` carries ``UNIQUE(portfolio_id, company_name)`` so that
concurrent first saves from the same company cannot create two rows.

Revision ID: 20261001_initial
Revises:
Create Date: 2026-10-01
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID

# revision identifiers, used by Alembic.
revision = "20261001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # --- portfolios ---
    op.create_table(
        "portfolios",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("slug", sa.Text(), nullable=False, unique=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "collections", JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("created_at", TIMESTAMP(timezone=True), nullable=False),
        sa.Column("updated_at", TIMESTAMP(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_portfolios_active_order", "portfolios", ["is_active", "display_order"],
    )

    # --- questions ---
    op.create_table(
        "questions",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "portfolio_id",
            UUID(as_uuid=True),
            sa.ForeignKey("portfolios.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("step", sa.Integer(), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("thumbnail", sa.Text(), nullable=True),
        sa.Column("question_type", sa.String(20), nullable=True),
        sa.Column("options", sa.Text(), nullable=True),
        sa.Column("is_required", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("min_length", sa.Integer(), nullable=True),
        sa.Column("max_length", sa.Integer(), nullable=True),
        sa.Column(
            "require_min_length", sa.Boolean(), nullable=False, server_default=sa.text("false"),
        ),
        sa.CheckConstraint("step >= 1", name="ck_question_step_positive"),
    )
    op.create_index(
        "ix_questions_portfolio_step_order",
        "questions",
        ["portfolio_id", "step", "order"],
    )

    # --- form_submissions ---
    op.create_table(
        "form_submissions",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "portfolio_id",
            UUID(as_uuid=True),
            sa.ForeignKey("portfolios.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("company_name", sa.Text(), nullable=False),
        sa.Column("password", sa.Text(), nullable=False),
        sa.Column("responses", sa.Text(), nullable=False, server_default=sa.text("'{}'")),
        sa.Column("is_draft", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("ip_address", sa.Text(), nullable=True),
        sa.Column("completed_at", TIMESTAMP(timezone=True), nullable=True),
        sa.Column("created_at", TIMESTAMP(timezone=True), nullable=False),
        sa.Column("updated_at", TIMESTAMP(timezone=True), nullable=False),
        sa.UniqueConstraint("portfolio_id", "company_name", name="uq_submission_company"),
        sa.CheckConstraint(
            "is_draft OR completed_at IS NOT NULL", name="ck_final_has_completed_at",
        ),
    )
    op.create_index("ix_submissions_company", "form_submissions", ["company_name"])
    op.create_index(
        "ix_submissions_completed",
        "form_submissions",
        ["portfolio_id", "completed_at"],
        postgresql_where=sa.text("NOT is_draft"),
    )


def downgrade() -> None:
    op.drop_index("ix_submissions_completed", table_name="form_submissions")
    op.drop_index("ix_submissions_company", table_name="form_submissions")
    op.drop_table("form_submissions")
    op.drop_index("ix_questions_portfolio_step_order", table_name="questions")
    op.drop_table("questions")
    op.drop_index("ix_portfolios_active_order", table_name="portfolios")
    op.drop_table("portfolios")
