"""ORM models for portfolio_db."""

from portfolio_db.models.base import Base
from portfolio_db.models.portfolio import PortfolioRow, QuestionRow
from portfolio_db.models.submission import FormSubmission

__all__ = ["Base", "PortfolioRow", "QuestionRow", "FormSubmission"]
