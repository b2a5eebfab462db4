"""portfolio_forms — Dynamic Form Engine SDK for multi-step portfolio submissions.

Public API:
    FormEngine          — server-side orchestration over an AsyncSession
    FormSession         — client-local state + navigation for one submission
    FormState           — answers, errors and submission-scoped collections
    StepNavigator       — step state machine (next / previous / final check)
    AnswerValidator     — per-question-type validation rules
    OptionParser        — memoized options parsing (``parse_options`` is pure)
    SubmissionAssembler — responses blob serialize / hydrate
    ExportProjector     — flattens completed submissions into a table
    PortfolioLoader     — loads YAML portfolio definitions
    PortalClient        — async HTTP client for the REST API

Collaborator interfaces:
    UploadService, SheetMirror, KeyValueCache
"""

from portfolio_forms.assembler import SubmissionAssembler
from portfolio_forms.cache import InMemoryCache, SubmissionHistory
from portfolio_forms.client import PortalClient
from portfolio_forms.engine import FormEngine
from portfolio_forms.export import ExportProjector, ExportTable, format_cell
from portfolio_forms.form_state import FormSession, FormState
from portfolio_forms.interfaces import KeyValueCache, SheetMirror, UploadService
from portfolio_forms.loader import PortfolioLoader
from portfolio_forms.navigator import StepNavigator
from portfolio_forms.options import OptionParser, parse_options
from portfolio_forms.validator import AnswerValidator

__all__ = [
    # Engine & client
    "FormEngine",
    "PortalClient",
    "PortfolioLoader",
    # Form core
    "AnswerValidator",
    "FormSession",
    "FormState",
    "OptionParser",
    "StepNavigator",
    "SubmissionAssembler",
    "parse_options",
    # Export
    "ExportProjector",
    "ExportTable",
    "format_cell",
    # Collaborators
    "InMemoryCache",
    "KeyValueCache",
    "SheetMirror",
    "SubmissionHistory",
    "UploadService",
]
