"""StepNavigator tests: step discovery, gated transitions and final submit."""

import pytest

from conftest import make_question
from portfolio_forms.navigator import StepNavigator


def _sparse_questions():
    """Steps {2, 2, 5, 5, 7}: non-contiguous with gaps at 3, 4 and 6."""
    return [
        make_question("a", 2, 1, question_type="text"),
        make_question("b", 2, 2, question_type="text"),
        make_question("c", 5, 1, question_type="text"),
        make_question("d", 5, 2, question_type="text"),
        make_question("e", 7, 1, question_type="text"),
    ]


# =====================================================================
# Step discovery
# =====================================================================


class TestStepRange:

    def test_range_from_present_values(self):
        nav = StepNavigator(_sparse_questions())
        assert nav.steps == [2, 5, 7]
        assert (nav.min_step, nav.max_step) == (2, 7)
        assert nav.current_step == 2, "navigation starts on the smallest step"

    def test_progress_starts_at_first_step(self):
        nav = StepNavigator(_sparse_questions())
        assert nav.progress == pytest.approx(100 / 6)

    def test_empty_portfolio_is_not_configured(self):
        nav = StepNavigator([])
        assert nav.is_configured is False
        assert (nav.min_step, nav.max_step) == (1, 1)
        assert nav.progress == 100.0

    def test_single_step_progress_is_full(self, portfolio):
        nav = StepNavigator([q for q in portfolio.questions if q.step == 1])
        assert nav.progress == 100.0
        assert nav.is_first_step and nav.is_last_step

    def test_visible_questions_sorted_by_order(self, portfolio):
        nav = StepNavigator(portfolio.questions)
        assert [q.id for q in nav.visible_questions()] == ["q_intro", "q_name"]
        assert [q.id for q in nav.visible_questions(3)] == ["q_type", "q_doc", "q_agree"]

    def test_start_step_is_clamped(self, portfolio):
        assert StepNavigator(portfolio.questions, current_step=99).current_step == 3
        assert StepNavigator(portfolio.questions, current_step=-1).current_step == 1


# =====================================================================
# next / previous
# =====================================================================


class TestTransitions:

    def test_next_blocked_by_errors(self, portfolio):
        nav = StepNavigator(portfolio.questions)
        result = nav.next({})
        assert result.advanced is False
        assert nav.current_step == 1, "an invalid step must not advance"
        assert set(result.errors) == {"q_name"}

    def test_next_advances_when_valid(self, portfolio, valid_answers):
        nav = StepNavigator(portfolio.questions)
        result = nav.next(valid_answers)
        assert result.advanced is True
        assert result.errors == {}
        assert nav.current_step == 2
        assert result.progress == pytest.approx(200 / 3)

    def test_only_current_step_is_validated(self, portfolio):
        nav = StepNavigator(portfolio.questions)
        result = nav.next({"q_name": "하늘펜션"})
        assert result.advanced is True, "later-step questions must not block step 1"

    def test_next_walks_through_gap_steps(self):
        nav = StepNavigator(_sparse_questions())
        visited = [nav.current_step]
        while not nav.is_last_step:
            nav.next({})
            visited.append(nav.current_step)
        assert visited == [2, 3, 4, 5, 6, 7], "gap steps are shown as empty pages"

    def test_next_on_last_step_stays(self, portfolio, valid_answers):
        nav = StepNavigator(portfolio.questions, current_step=3)
        result = nav.next(valid_answers)
        assert result.advanced is False
        assert nav.current_step == 3

    def test_previous_is_never_validated(self, portfolio):
        nav = StepNavigator(portfolio.questions, current_step=3)
        result = nav.previous()
        assert result.advanced is True
        assert nav.current_step == 2
        assert result.errors == {}

    def test_previous_clamps_at_first(self, portfolio):
        nav = StepNavigator(portfolio.questions)
        result = nav.previous()
        assert result.advanced is False
        assert nav.current_step == 1
        assert result.is_first_step is True

    def test_sparse_previous_clamps_at_lowest_present_step(self):
        nav = StepNavigator(_sparse_questions())
        assert nav.current_step == 2
        result = nav.previous()
        assert result.advanced is False
        assert nav.current_step == 2, "never drops below the lowest step in use"
        assert result.is_first_step is True

    def test_sparse_next_clamps_at_highest_present_step(self):
        nav = StepNavigator(_sparse_questions(), current_step=7)
        result = nav.next({})
        assert result.advanced is False
        assert result.errors == {}
        assert nav.current_step == 7, "never moves past the highest step in use"

    def test_unconfigured_next_is_noop(self):
        nav = StepNavigator([])
        result = nav.next({})
        assert result.advanced is False
        assert nav.current_step == 1


# =====================================================================
# Final submit
# =====================================================================


class TestFinal:

    def test_final_before_last_step_rejected(self, portfolio, valid_answers):
        nav = StepNavigator(portfolio.questions)
        with pytest.raises(ValueError, match="only valid"):
            nav.check_final(valid_answers)

    def test_final_on_unconfigured_rejected(self):
        with pytest.raises(ValueError, match="only valid"):
            StepNavigator([]).check_final({})

    def test_final_reports_last_step_errors(self, portfolio, valid_answers):
        nav = StepNavigator(portfolio.questions, current_step=3)
        answers = dict(valid_answers)
        del answers["q_agree"]
        assert set(nav.check_final(answers)) == {"q_agree"}

    def test_final_passes(self, portfolio, valid_answers):
        nav = StepNavigator(portfolio.questions, current_step=3)
        assert nav.check_final(valid_answers) == {}

    def test_replay_stops_at_first_failing_step(self, portfolio, valid_answers):
        nav = StepNavigator(portfolio.questions, current_step=3)
        answers = dict(valid_answers, q_reps=[])
        step, errors = nav.replay(answers)
        assert step == 2
        assert set(errors) == {"q_reps"}
        assert nav.current_step == 2

    def test_replay_all_valid_ends_on_last(self, portfolio, valid_answers):
        nav = StepNavigator(portfolio.questions)
        assert nav.replay(valid_answers) == (3, {})
