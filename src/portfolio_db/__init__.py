"""portfolio_db — PostgreSQL persistence layer for portfolio forms.

This package provides the ORM models, async engine factory, and repository
for portfolios, their questions, and form submissions.  It is consumed by
the form engine and the FastAPI server.
"""

from portfolio_db.engine import get_engine, get_session_factory
from portfolio_db.models.portfolio import PortfolioRow, QuestionRow
from portfolio_db.models.submission import FormSubmission
from portfolio_db.repository import FormRepository

__all__ = [
    "FormRepository",
    "FormSubmission",
    "PortfolioRow",
    "QuestionRow",
    "get_engine",
    "get_session_factory",
]
