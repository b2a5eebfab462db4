"""Public model re-exports for portfolio_forms.

Consumers should import from ``portfolio_forms.models`` rather than
reaching into sub-modules directly.
"""

# --- Questions & options ---
from portfolio_forms.models.question import (
    CheckboxOption,
    CheckboxOptions,
    CollectionField,
    CollectionSpec,
    InvalidOptions,
    ParsedOptions,
    Portfolio,
    Question,
    RepeatableField,
    RepeatableOptions,
    default_collections,
)

# --- Results ---
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
    UploadResult,
)

__all__ = [
    # Questions & options
    "CheckboxOption",
    "CheckboxOptions",
    "CollectionField",
    "CollectionSpec",
    "InvalidOptions",
    "ParsedOptions",
    "Portfolio",
    "Question",
    "RepeatableField",
    "RepeatableOptions",
    "default_collections",
    # Results
    "AdminSubmission",
    "MySubmission",
    "NavigationResult",
    "PortfolioSchema",
    "PortfolioSummary",
    "QuestionPayload",
    "ResumeState",
    "SubmissionInfo",
    "SubmissionRecord",
    "SubmitOutcome",
    "UploadResult",
]
