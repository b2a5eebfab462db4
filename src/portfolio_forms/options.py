"""Option parser — turns a question's opaque ``options`` string into a typed shape.

``parse_options`` is the single place that interprets the payload:

  - a ``checkboxes`` array         → :class:`CheckboxOptions`
  - otherwise a ``fields`` array   → :class:`RepeatableOptions`
  - anything else (absent, malformed JSON, wrong shape) → :class:`InvalidOptions`

The ``checkboxes`` check runs first, so a payload carrying both arrays is a
checkbox set.  Nothing raises past this module; configuration problems come
back as ``InvalidOptions`` with a reason.

:class:`OptionParser` adds two things on top: it memoizes the parse per
question id, and it downgrades a parse whose shape does not match the
question's declared type (e.g. a ``fields`` payload on a checkbox) to
``InvalidOptions``.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError

from portfolio_forms.constants import (
    MSG_CHECKBOX_CONFIG_ERROR,
    MSG_REPEATABLE_CONFIG_ERROR,
    OPTION_TYPES,
)
from portfolio_forms.models.question import (
    CheckboxOptions,
    InvalidOptions,
    ParsedOptions,
    Question,
    RepeatableOptions,
)

logger = logging.getLogger(__name__)

# Declared question type → the option kind it expects
_EXPECTED_KIND: dict[str, str] = {
    "checkbox": "checkbox",
    "repeatable": "repeatable",
}

_CONFIG_ERROR_MESSAGES: dict[str, str] = {
    "checkbox": MSG_CHECKBOX_CONFIG_ERROR,
    "repeatable": MSG_REPEATABLE_CONFIG_ERROR,
}


def parse_options(raw: str | None) -> ParsedOptions:
    """Parse a raw options payload.  Pure; never raises."""
    if raw is None or not str(raw).strip():
        return InvalidOptions(reason="options payload is empty")

    try:
        data: Any = json.loads(raw)
    except (TypeError, ValueError) as exc:
        return InvalidOptions(reason=f"options payload is not valid JSON: {exc}")

    if not isinstance(data, dict):
        return InvalidOptions(reason="options payload is not an object")

    try:
        if isinstance(data.get("checkboxes"), list):
            return CheckboxOptions.model_validate(
                {"checkboxes": data["checkboxes"], "multiple": data.get("multiple")}
            )
        if isinstance(data.get("fields"), list):
            return RepeatableOptions.model_validate({"fields": data["fields"]})
    except ValidationError as exc:
        return InvalidOptions(
            reason=f"options payload has malformed entries ({exc.error_count()} errors)"
        )

    return InvalidOptions(reason="options payload has neither 'checkboxes' nor 'fields'")


class OptionParser:
    """Per-question memoized option parsing.

    One parser is typically shared by everything that works on a single
    portfolio (validator, form session, export projector).  Question ids
    are assumed stable for the parser's lifetime.
    """

    def __init__(self) -> None:
        self._cache: dict[str, ParsedOptions | None] = {}

    def resolve(self, question: Question) -> ParsedOptions | None:
        """Return the typed options for *question*.

        ``None`` for types that carry no options payload.  For checkbox and
        repeatable questions the result is the parsed shape, or
        ``InvalidOptions`` if parsing failed or the shape does not match
        the declared type.
        """
        if question.id in self._cache:
            return self._cache[question.id]

        parsed: ParsedOptions | None = None
        if question.question_type in OPTION_TYPES:
            parsed = parse_options(question.options)
            expected = _EXPECTED_KIND[question.question_type]
            if parsed.kind != "invalid" and parsed.kind != expected:
                parsed = InvalidOptions(
                    reason=f"{parsed.kind} options on a {question.question_type} question"
                )
            if parsed.kind == "invalid":
                logger.warning(
                    "Configuration error on question %s (%s): %s",
                    question.id, question.question_type, parsed.reason,
                )
        self._cache[question.id] = parsed
        return parsed

    def config_error(self, question: Question) -> str | None:
        """User-facing configuration-error message, or None if options are fine."""
        parsed = self.resolve(question)
        if parsed is not None and parsed.kind == "invalid":
            return _CONFIG_ERROR_MESSAGES[question.question_type]
        return None

    def clear(self) -> None:
        self._cache.clear()
