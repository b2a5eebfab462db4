"""StepNavigator — the page-by-page state machine over a portfolio's steps.

Steps are the distinct ``step`` values of the portfolio's questions.  They
need not be contiguous: ``min_step``/``max_step`` come from the values
actually present.  Navigation moves one step at a time inside that range,
so a gap step (no questions) is shown as an empty page that always passes.

Transitions:

  next()         validate the current step's visible questions; on success
                 move to ``current + 1`` (clamped at ``max_step``)
  previous()     move to ``current - 1`` (clamped at ``min_step``); never
                 validated
  check_final()  legal only on the last step; returns the last step's
                 errors (empty means the submission may be finalised)

A portfolio with no questions is "not configured": it reports the default
range, and transitions are no-ops.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from portfolio_forms.constants import DEFAULT_STEP_RANGE
from portfolio_forms.models.question import Question
from portfolio_forms.models.session import NavigationResult
from portfolio_forms.validator import AnswerValidator

logger = logging.getLogger(__name__)


class StepNavigator:
    """Navigation state for one in-progress submission.

    Args:
        questions: the portfolio's questions (any order)
        validator: shared :class:`AnswerValidator`; a fresh one if omitted
        current_step: where to start; defaults to ``min_step``
    """

    def __init__(
        self,
        questions: Iterable[Question],
        *,
        validator: AnswerValidator | None = None,
        current_step: int | None = None,
    ) -> None:
        self._questions = sorted(questions, key=lambda q: q.sort_key)
        self._validator = validator or AnswerValidator()
        self.steps: list[int] = sorted({q.step for q in self._questions})

        if self.steps:
            self.min_step, self.max_step = self.steps[0], self.steps[-1]
        else:
            self.min_step, self.max_step = DEFAULT_STEP_RANGE

        if current_step is None:
            current_step = self.min_step
        self.current_step = self._clamp(current_step)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def is_configured(self) -> bool:
        return bool(self.steps)

    @property
    def is_first_step(self) -> bool:
        return self.current_step == self.min_step

    @property
    def is_last_step(self) -> bool:
        return self.current_step == self.max_step

    @property
    def progress(self) -> float:
        """Percentage of the step range reached, 100 for a single-step form."""
        span = self.max_step - self.min_step + 1
        if span <= 1:
            return 100.0
        return (self.current_step - self.min_step + 1) / span * 100

    def visible_questions(self, step: int | None = None) -> list[Question]:
        """Questions rendered on *step* (default: the current step), by order."""
        if step is None:
            step = self.current_step
        return [q for q in self._questions if q.step == step]

    def validate_step(
        self, answers: Mapping[str, Any], step: int | None = None
    ) -> dict[str, str]:
        """Error map for one step's visible questions (empty means valid)."""
        return self._validator.validate_all(self.visible_questions(step), answers)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def next(self, answers: Mapping[str, Any]) -> NavigationResult:
        """Advance one step if the current step validates."""
        if not self.is_configured:
            return self._result()

        errors = self.validate_step(answers)
        if errors:
            logger.debug(
                "Step %d blocked by %d invalid answers", self.current_step, len(errors)
            )
            return self._result(errors=errors)

        before = self.current_step
        self.current_step = self._clamp(self.current_step + 1)
        return self._result(advanced=self.current_step != before)

    def previous(self) -> NavigationResult:
        """Go back one step.  Always legal; clamps at ``min_step``."""
        before = self.current_step
        self.current_step = self._clamp(self.current_step - 1)
        return self._result(advanced=self.current_step != before)

    def check_final(self, answers: Mapping[str, Any]) -> dict[str, str]:
        """Errors blocking a final submit from the current step.

        Raises ``ValueError`` when called before the last step, or on a
        portfolio with no questions: both are caller mistakes, not user
        input problems.
        """
        if not self.is_configured:
            raise ValueError("Final submit is only valid on a configured portfolio")
        if not self.is_last_step:
            raise ValueError(
                f"Final submit is only valid during the last step "
                f"(current={self.current_step}, last={self.max_step})"
            )
        return self.validate_step(answers)

    def replay(self, answers: Mapping[str, Any]) -> tuple[int, dict[str, str]]:
        """Walk every step from the first with ``next()`` semantics.

        Returns ``(step, errors)`` for the first step that fails, or
        ``(max_step, {})`` when every step passes.  Leaves the navigator on
        the step it stopped at.  Used to re-check a whole submission before
        it is finalised.
        """
        self.current_step = self.min_step
        while True:
            errors = self.validate_step(answers)
            if errors or self.is_last_step:
                return self.current_step, errors
            self.current_step += 1

    def _clamp(self, step: int) -> int:
        return max(self.min_step, min(self.max_step, step))

    def _result(
        self, *, advanced: bool = False, errors: dict[str, str] | None = None
    ) -> NavigationResult:
        return NavigationResult(
            current_step=self.current_step,
            advanced=advanced,
            errors=errors or {},
            progress=self.progress,
            is_first_step=self.is_first_step,
            is_last_step=self.is_last_step,
        )
