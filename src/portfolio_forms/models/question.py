"""Question schema models for portfolio forms.

A portfolio is an administrator-defined form template made of stepped
questions.  Each question type maps to one input widget and one answer
shape:

  - notice: display-only text, never holds an answer
  - text / textarea: plain string (``textarea`` is the default type)
  - file: the public URL string returned by the upload service
  - checkbox: ``{"checked": [...], "inputs": {...}}`` when multi-select,
    ``{"selected": "...", "inputs": {...}}`` when single-select
  - repeatable: list of row objects keyed by field label
  - agreement: ``{"agreed": true}``

The ``options`` payload stays an opaque string on the question; it is
parsed into one of the tagged option shapes below by
:mod:`portfolio_forms.options`.  ``ParsedOptions`` is the discriminated
union of those shapes, keyed by ``kind``.

Submission-scoped collections (``rooms`` and friends) are declared on the
portfolio via :class:`CollectionSpec`.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from portfolio_forms.constants import (
    DEFAULT_COLLECTIONS,
    DEFAULT_QUESTION_TYPE,
    QUESTION_TYPES,
)

logger = logging.getLogger(__name__)

_SLUG_RE = re.compile(r"^[a-z0-9][a-z0-9_-]*$")


# --- Option shapes ---

class CheckboxOption(BaseModel):
    """One selectable choice; ``has_input`` unlocks a free-text sub-input."""

    model_config = ConfigDict(populate_by_name=True)

    label: str
    has_input: bool = Field(False, alias="hasInput")


class CheckboxOptions(BaseModel):
    """Checkbox set.  ``multiple`` defaults to true; only an explicit false
    switches the question to single-select."""

    kind: Literal["checkbox"] = "checkbox"
    checkboxes: List[CheckboxOption]
    multiple: bool = True

    @field_validator("multiple", mode="before")
    @classmethod
    def _only_false_disables(cls, v: Any) -> bool:
        return v is not False

    @property
    def labels(self) -> list[str]:
        return [c.label for c in self.checkboxes]


class RepeatableField(BaseModel):
    """One column of a repeatable row template."""

    label: str
    type: Literal["text", "file"] = "text"
    placeholder: Optional[str] = None


class RepeatableOptions(BaseModel):
    """Composite row template repeated 1..N times by the user."""

    kind: Literal["repeatable"] = "repeatable"
    fields: List[RepeatableField]


class InvalidOptions(BaseModel):
    """Configuration error: the payload is missing, malformed, or matches
    neither recognised shape.  The UI falls back to a free-text input."""

    kind: Literal["invalid"] = "invalid"
    reason: str


ParsedOptions = Annotated[
    Union[CheckboxOptions, RepeatableOptions, InvalidOptions],
    Field(discriminator="kind"),
]


# --- Submission-scoped collections ---

class CollectionField(BaseModel):
    """One attribute of a collection entry (e.g. a room's name)."""

    key: str
    label: str
    # Optional fields only get an export column when some entry fills them
    optional: bool = False


class CollectionSpec(BaseModel):
    """A named, variable-length list stored beside the question answers."""

    key: str
    label: str
    fields: List[CollectionField]


def default_collections() -> list[CollectionSpec]:
    """The collections assumed when a portfolio declares none (``rooms``)."""
    return [CollectionSpec.model_validate(c) for c in DEFAULT_COLLECTIONS]


# --- Question ---

class Question(BaseModel):
    """A single schema-defined input unit within a portfolio."""

    id: str
    step: int = Field(ge=1)
    order: int = 0
    title: str
    description: Optional[str] = None
    thumbnail: Optional[str] = None
    question_type: str = DEFAULT_QUESTION_TYPE
    options: Optional[str] = None
    is_required: bool = False
    min_length: Optional[int] = Field(default=None, ge=0)
    # Advisory only: exposed to the UI as an input cap, never validated
    max_length: Optional[int] = Field(default=None, ge=0)
    require_min_length: bool = False

    @field_validator("question_type", mode="before")
    @classmethod
    def _default_type(cls, v: Any) -> str:
        if v is None or v == "":
            return DEFAULT_QUESTION_TYPE
        if v not in QUESTION_TYPES:
            logger.warning("Unknown question type %r, treating as %s", v, DEFAULT_QUESTION_TYPE)
            return DEFAULT_QUESTION_TYPE
        return v

    @field_validator("options", mode="before")
    @classmethod
    def _options_as_string(cls, v: Any) -> Any:
        # YAML definitions may spell options as a mapping; store it opaque
        if isinstance(v, (dict, list)):
            return json.dumps(v, ensure_ascii=False)
        return v

    @property
    def sort_key(self) -> tuple[int, int]:
        return (self.step, self.order)


# --- Portfolio ---

class Portfolio(BaseModel):
    """Form template: identity fields plus its questions and collections.

    Questions are kept sorted by ``(step, order)``; the sort is stable so
    questions sharing a pair keep their definition order.
    """

    id: str
    title: str
    description: Optional[str] = None
    slug: str
    is_active: bool = True
    display_order: int = 0
    questions: List[Question] = Field(default_factory=list)
    collections: List[CollectionSpec] = Field(default_factory=list)

    @field_validator("slug")
    @classmethod
    def _url_safe_slug(cls, v: str) -> str:
        if not _SLUG_RE.match(v):
            raise ValueError(f"slug must be URL-safe (lowercase, digits, '-', '_'): {v!r}")
        return v

    @model_validator(mode="after")
    def _sort_questions(self):
        self.questions = sorted(self.questions, key=lambda q: q.sort_key)
        return self

    @property
    def declared_collections(self) -> list[CollectionSpec]:
        """Declared collections, or the ``rooms`` default when none are."""
        return list(self.collections) or default_collections()

    @property
    def question_ids(self) -> set[str]:
        return {q.id for q in self.questions}

    def get_question(self, question_id: str) -> Question:
        """Look up a question by id.  Raises ``KeyError`` if absent."""
        for q in self.questions:
            if q.id == question_id:
                return q
        raise KeyError(f"Question {question_id!r} not found in portfolio {self.slug!r}")
