"""FormState and FormSession — the client-local state of one submission.

``FormState`` holds the mutable answer map (question id → answer), the
per-question error map, and the submission-scoped collections (``rooms`` by
default).  Every answer mutation goes through :meth:`FormState.set_answer`,
which clears that question's error.

The helpers for checkbox, repeatable and file answers implement the shape
transitions the UI performs:

  - multi-select toggle adds/removes a label in ``checked``, inputs kept
  - single-select keeps only the newly selected option's prior input
  - repeatable rows default to one empty row; the last row cannot be removed

``FormSession`` ties a portfolio, a ``FormState`` and a ``StepNavigator``
together and produces the payloads for draft-save and final submit.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Iterable

from portfolio_forms.assembler import SubmissionAssembler
from portfolio_forms.constants import ROOMS_KEY
from portfolio_forms.models.question import CheckboxOptions, CollectionSpec, Portfolio
from portfolio_forms.models.session import NavigationResult, UploadResult
from portfolio_forms.navigator import StepNavigator
from portfolio_forms.options import OptionParser
from portfolio_forms.validator import AnswerValidator

logger = logging.getLogger(__name__)

_UPLOAD_FAILED = "파일 업로드에 실패했습니다."


class FormState:
    """Answers, errors and collections for one in-progress submission."""

    def __init__(
        self,
        collection_keys: Iterable[str] = (ROOMS_KEY,),
        *,
        answers: dict[str, Any] | None = None,
        collections: dict[str, list[dict[str, Any]]] | None = None,
    ) -> None:
        self.answers: dict[str, Any] = dict(answers or {})
        self.errors: dict[str, str] = {}
        self.collections: dict[str, list[dict[str, Any]]] = {
            key: [] for key in collection_keys
        }
        for key, entries in (collections or {}).items():
            self.collections[key] = [dict(e) for e in entries]

    # ------------------------------------------------------------------
    # Answers & errors
    # ------------------------------------------------------------------

    def get(self, question_id: str, default: Any = None) -> Any:
        return self.answers.get(question_id, default)

    def set_answer(self, question_id: str, value: Any) -> None:
        """Store an answer and clear any error recorded for that question."""
        self.answers[question_id] = value
        self.errors.pop(question_id, None)

    def set_errors(self, errors: dict[str, str]) -> None:
        """Replace the error map (typically with a step's validation result)."""
        self.errors = dict(errors)

    def snapshot(self) -> "FormState":
        """Deep copy, e.g. to keep answers intact across a failed save."""
        clone = FormState(self.collections.keys())
        clone.answers = copy.deepcopy(self.answers)
        clone.errors = dict(self.errors)
        clone.collections = copy.deepcopy(self.collections)
        return clone

    # ------------------------------------------------------------------
    # Checkbox answers
    # ------------------------------------------------------------------

    def toggle_option(self, question_id: str, label: str) -> None:
        """Multi-select: check or uncheck *label*.  Sub-inputs are kept."""
        current = self.answers.get(question_id)
        if isinstance(current, dict):
            checked = list(current.get("checked") or [])
            inputs = dict(current.get("inputs") or {})
        elif isinstance(current, list):
            checked, inputs = list(current), {}
        else:
            checked, inputs = [], {}

        if label in checked:
            checked.remove(label)
        else:
            checked.append(label)
        self.set_answer(question_id, {"checked": checked, "inputs": inputs})

    def select_option(self, question_id: str, label: str) -> None:
        """Single-select: replace the selection with *label*.

        Only *label*'s own previously typed input survives; inputs of other
        options are discarded.
        """
        current = self.answers.get(question_id)
        prior = current.get("inputs") if isinstance(current, dict) else None
        inputs = {}
        if isinstance(prior, dict) and label in prior:
            inputs[label] = prior[label]
        self.set_answer(question_id, {"selected": label, "inputs": inputs})

    def set_option_input(
        self, question_id: str, label: str, text: str, *, multiple: bool = True
    ) -> None:
        """Set the free-text sub-input for option *label*."""
        current = self.answers.get(question_id)
        if isinstance(current, dict):
            value = dict(current)
        elif multiple:
            value = {"checked": list(current) if isinstance(current, list) else []}
        else:
            value = {"selected": ""}
        inputs = dict(value.get("inputs") or {})
        inputs[label] = text
        value["inputs"] = inputs
        self.set_answer(question_id, value)

    # ------------------------------------------------------------------
    # Repeatable rows
    # ------------------------------------------------------------------

    def rows(self, question_id: str) -> list[dict[str, Any]]:
        """Current rows of a repeatable answer (one empty row by default)."""
        current = self.answers.get(question_id)
        if isinstance(current, list) and current:
            return [dict(r) if isinstance(r, dict) else {} for r in current]
        return [{}]

    def add_row(self, question_id: str) -> None:
        self.set_answer(question_id, self.rows(question_id) + [{}])

    def update_row(self, question_id: str, index: int, label: str, value: Any) -> None:
        rows = self.rows(question_id)
        if not 0 <= index < len(rows):
            raise IndexError(f"Row {index} out of range for {question_id!r}")
        rows[index][label] = value
        self.set_answer(question_id, rows)

    def remove_row(self, question_id: str, index: int) -> bool:
        """Remove a row.  Refused (returns False) when only one row is left."""
        rows = self.rows(question_id)
        if len(rows) <= 1 or not 0 <= index < len(rows):
            return False
        del rows[index]
        self.set_answer(question_id, rows)
        return True

    # ------------------------------------------------------------------
    # File answers
    # ------------------------------------------------------------------

    def attach_file(self, question_id: str, result: UploadResult) -> bool:
        """Store an upload's URL, or record its failure as the question's error.

        On failure the previous answer is left untouched.
        """
        if result.ok:
            self.set_answer(question_id, result.url)
            return True
        logger.info("Upload for %s failed: %s", question_id, result.failure)
        self.errors[question_id] = result.message or _UPLOAD_FAILED
        return False

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------

    def entries(self, key: str) -> list[dict[str, Any]]:
        return self.collections.setdefault(key, [])

    def add_entry(self, key: str, spec: CollectionSpec | None = None) -> int:
        """Append a blank entry to collection *key*; return its index."""
        if spec is not None:
            blank = {f.key: "" for f in spec.fields}
        else:
            blank = {"name": "", "desc": "", "type": ""}
        entries = self.entries(key)
        entries.append(blank)
        return len(entries) - 1

    def update_entry(self, key: str, index: int, field: str, value: Any) -> None:
        self.entries(key)[index][field] = value

    def remove_entry(self, key: str, index: int) -> None:
        del self.entries(key)[index]

    @property
    def rooms(self) -> list[dict[str, Any]]:
        return self.entries(ROOMS_KEY)

    def add_room(self) -> int:
        return self.add_entry(ROOMS_KEY)

    def update_room(self, index: int, field: str, value: Any) -> None:
        self.update_entry(ROOMS_KEY, index, field, value)


class FormSession:
    """A portfolio being filled in: state, navigation and payload assembly.

    Args:
        portfolio: the portfolio schema (questions already loaded)
        state: existing state to resume; a blank one is created if omitted
        current_step: step to open on (defaults to the first)
    """

    def __init__(
        self,
        portfolio: Portfolio,
        *,
        state: FormState | None = None,
        current_step: int | None = None,
    ) -> None:
        self.portfolio = portfolio
        self.collections = portfolio.declared_collections
        self.parser = OptionParser()
        self.validator = AnswerValidator(self.parser)
        self.navigator = StepNavigator(
            portfolio.questions, validator=self.validator, current_step=current_step,
        )
        self.assembler = SubmissionAssembler(
            self.collections, question_ids=portfolio.question_ids,
        )
        self.state = state or FormState([c.key for c in self.collections])

    @classmethod
    def resume(
        cls, portfolio: Portfolio, responses: dict[str, Any] | str
    ) -> "FormSession":
        """Open a session pre-filled from a persisted responses object."""
        assembler = SubmissionAssembler(portfolio.declared_collections)
        answers, collections = assembler.hydrate(responses)
        state = FormState(collections.keys(), answers=answers, collections=collections)
        return cls(portfolio, state=state)

    # ------------------------------------------------------------------
    # Answer editing
    # ------------------------------------------------------------------

    def set_answer(self, question_id: str, value: Any) -> None:
        self.state.set_answer(question_id, value)

    def choose_option(self, question_id: str, label: str) -> None:
        """Click on a checkbox option, honouring the question's ``multiple``."""
        options = self.parser.resolve(self.portfolio.get_question(question_id))
        if not isinstance(options, CheckboxOptions):
            raise ValueError(f"Question {question_id!r} has no checkbox options")
        if label not in options.labels:
            raise ValueError(f"Option {label!r} not found on question {question_id!r}")
        if options.multiple:
            self.state.toggle_option(question_id, label)
        else:
            self.state.select_option(question_id, label)

    def set_option_input(self, question_id: str, label: str, text: str) -> None:
        options = self.parser.resolve(self.portfolio.get_question(question_id))
        multiple = options.multiple if isinstance(options, CheckboxOptions) else True
        self.state.set_option_input(question_id, label, text, multiple=multiple)

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    @property
    def current_step(self) -> int:
        return self.navigator.current_step

    def next(self) -> NavigationResult:
        result = self.navigator.next(self.state.answers)
        self.state.set_errors(result.errors)
        return result

    def previous(self) -> NavigationResult:
        return self.navigator.previous()

    # ------------------------------------------------------------------
    # Payloads
    # ------------------------------------------------------------------

    def draft_responses(self) -> dict[str, Any]:
        """Responses to persist as a draft.  Never validated."""
        return self.assembler.serialize(self.state.answers, self.state.collections)

    def final_responses(self) -> dict[str, Any] | None:
        """Responses to persist as final, or None if the last step is invalid.

        Errors are written to the state's error map.  Raises ``ValueError``
        when not on the last step.
        """
        errors = self.navigator.check_final(self.state.answers)
        self.state.set_errors(errors)
        if errors:
            return None
        return self.assembler.serialize(self.state.answers, self.state.collections)
