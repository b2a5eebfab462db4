"""AnswerValidator — per-question-type validation rules.

Pure functions of (question, current value): no state is mutated and the
same inputs always give the same result, so re-validating on every
transition attempt is safe.

Rules by question type:

  text / textarea
      required: missing or blank after trimming → required error.
      ``require_min_length``: non-empty but shorter than ``min_length``
      after trimming → length error.  An empty value only ever reports the
      required error.
  file
      required: missing or empty URL string.
  checkbox
      multi-select: ``checked`` must be a non-empty list (a bare list from
      older clients is accepted too).  single-select: ``selected`` must be
      non-empty.  Sub-inputs unlocked by ``hasInput`` are never required.
  repeatable
      required: value must be a list with at least one row.  Rows are not
      checked for completeness.
  agreement
      required: ``value["agreed"]`` must be ``True``.
  notice
      never validated.

When a checkbox or repeatable question has invalid options the UI falls
back to a free-text input, so the required check becomes a plain text
check.  ``max_length`` is advisory and never produces an error.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from portfolio_forms.constants import (
    DISPLAY_ONLY_TYPES,
    MSG_AGREEMENT_REQUIRED,
    MSG_CHECKBOX_MULTI_REQUIRED,
    MSG_CHECKBOX_SINGLE_REQUIRED,
    MSG_FILE_REQUIRED,
    MSG_MIN_LENGTH,
    MSG_REPEATABLE_REQUIRED,
    MSG_REQUIRED,
    TEXT_TYPES,
)
from portfolio_forms.models.question import CheckboxOptions, Question
from portfolio_forms.options import OptionParser


def _trimmed(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    return str(value).strip()


def _is_blank(value: Any) -> bool:
    """Fallback emptiness test used when options failed to parse.

    The question is then answered as free text, so anything other than a
    non-blank string counts as missing.
    """
    return not isinstance(value, str) or not value.strip()


def _checked_labels(value: Any) -> list:
    if isinstance(value, dict):
        checked = value.get("checked")
        return checked if isinstance(checked, list) else []
    if isinstance(value, list):
        return value
    return []


class AnswerValidator:
    """Validates answers against their question definitions.

    Args:
        parser: shared :class:`OptionParser`; a private one is created when
            omitted
    """

    def __init__(self, parser: OptionParser | None = None) -> None:
        self._parser = parser or OptionParser()

    @property
    def parser(self) -> OptionParser:
        return self._parser

    # ------------------------------------------------------------------
    # Single question
    # ------------------------------------------------------------------

    def validate(self, question: Question, value: Any) -> str | None:
        """Return the error message for *value*, or None if it passes."""
        qtype = question.question_type
        if qtype in DISPLAY_ONLY_TYPES:
            return None
        if qtype in TEXT_TYPES:
            return self._validate_text(question, value)
        if qtype == "file":
            if question.is_required and (not isinstance(value, str) or not value):
                return MSG_FILE_REQUIRED
            return None
        if qtype == "checkbox":
            return self._validate_checkbox(question, value)
        if qtype == "repeatable":
            return self._validate_repeatable(question, value)
        if qtype == "agreement":
            agreed = isinstance(value, dict) and value.get("agreed") is True
            if question.is_required and not agreed:
                return MSG_AGREEMENT_REQUIRED
            return None
        return None

    def _validate_text(self, question: Question, value: Any) -> str | None:
        text = _trimmed(value)
        if not text:
            return MSG_REQUIRED if question.is_required else None
        if (
            question.require_min_length
            and question.min_length
            and len(text) < question.min_length
        ):
            return MSG_MIN_LENGTH.format(min_length=question.min_length)
        return None

    def _validate_checkbox(self, question: Question, value: Any) -> str | None:
        if not question.is_required:
            return None
        options = self._parser.resolve(question)
        if not isinstance(options, CheckboxOptions):
            # Free-text fallback for a broken options payload
            return MSG_REQUIRED if _is_blank(value) else None
        if options.multiple:
            if not _checked_labels(value):
                return MSG_CHECKBOX_MULTI_REQUIRED
            return None
        selected = value.get("selected") if isinstance(value, dict) else None
        if not selected:
            return MSG_CHECKBOX_SINGLE_REQUIRED
        return None

    def _validate_repeatable(self, question: Question, value: Any) -> str | None:
        if not question.is_required:
            return None
        options = self._parser.resolve(question)
        if options is None or options.kind == "invalid":
            return MSG_REQUIRED if _is_blank(value) else None
        if not isinstance(value, list) or len(value) == 0:
            return MSG_REPEATABLE_REQUIRED
        return None

    # ------------------------------------------------------------------
    # Many questions
    # ------------------------------------------------------------------

    def validate_all(
        self, questions: Iterable[Question], answers: Mapping[str, Any]
    ) -> dict[str, str]:
        """Validate each question against ``answers``; return ``{qid: message}``.

        The mapping is empty iff every question passes.
        """
        errors: dict[str, str] = {}
        for q in questions:
            message = self.validate(q, answers.get(q.id))
            if message is not None:
                errors[q.id] = message
        return errors
