"""AnswerValidator tests — one class per question type."""

import json

import pytest

from conftest import REPS_OPTIONS, SNS_OPTIONS, TYPE_OPTIONS, make_question
from portfolio_forms.constants import (
    MSG_AGREEMENT_REQUIRED,
    MSG_CHECKBOX_MULTI_REQUIRED,
    MSG_CHECKBOX_SINGLE_REQUIRED,
    MSG_FILE_REQUIRED,
    MSG_MIN_LENGTH,
    MSG_REPEATABLE_REQUIRED,
    MSG_REQUIRED,
)
from portfolio_forms.validator import AnswerValidator


@pytest.fixture
def validator():
    return AnswerValidator()


# =====================================================================
# text / textarea
# =====================================================================


class TestTextValidation:

    @pytest.mark.parametrize("qtype", ["text", "textarea"])
    @pytest.mark.parametrize("value", [None, "", "   ", "\n\t"])
    def test_required_blank_is_single_required_error(self, validator, qtype, value):
        q = make_question(
            "q", 1, question_type=qtype, is_required=True,
            min_length=5, require_min_length=True,
        )
        assert validator.validate(q, value) == MSG_REQUIRED, (
            "blank values report only the required error, never the length error"
        )

    def test_optional_blank_passes(self, validator):
        q = make_question("q", 1, question_type="text")
        assert validator.validate(q, "") is None

    def test_short_value_reports_length_error(self, validator):
        q = make_question(
            "q", 1, question_type="text", is_required=True,
            min_length=5, require_min_length=True,
        )
        assert validator.validate(q, "  abc  ") == MSG_MIN_LENGTH.format(min_length=5)

    def test_length_measured_after_trim(self, validator):
        q = make_question("q", 1, question_type="text", min_length=3, require_min_length=True)
        assert validator.validate(q, " ab ") is not None
        assert validator.validate(q, " abc ") is None

    def test_min_length_needs_gate(self, validator):
        q = make_question("q", 1, question_type="text", min_length=10)
        assert validator.validate(q, "short") is None, (
            "min_length is only enforced when require_min_length is set"
        )

    def test_length_enforced_on_optional_question(self, validator):
        q = make_question("q", 1, question_type="textarea", min_length=4, require_min_length=True)
        assert validator.validate(q, "ab") == MSG_MIN_LENGTH.format(min_length=4)

    def test_max_length_is_advisory(self, validator):
        q = make_question("q", 1, question_type="text", max_length=3)
        assert validator.validate(q, "much longer than three") is None

    def test_missing_type_behaves_as_textarea(self, validator):
        q = make_question("q", 1, question_type=None, is_required=True)
        assert q.question_type == "textarea"
        assert validator.validate(q, " ") == MSG_REQUIRED


# =====================================================================
# file
# =====================================================================


class TestFileValidation:

    @pytest.mark.parametrize("value", [None, ""])
    def test_required_missing(self, validator, value):
        q = make_question("q", 1, question_type="file", is_required=True)
        assert validator.validate(q, value) == MSG_FILE_REQUIRED

    def test_url_passes(self, validator):
        q = make_question("q", 1, question_type="file", is_required=True)
        assert validator.validate(q, "https://files.example.com/a.pdf") is None

    def test_optional_missing_passes(self, validator):
        q = make_question("q", 1, question_type="file")
        assert validator.validate(q, None) is None


# =====================================================================
# checkbox
# =====================================================================


class TestCheckboxValidation:

    @pytest.fixture
    def multi(self):
        return make_question("q", 1, question_type="checkbox", options=SNS_OPTIONS, is_required=True)

    @pytest.fixture
    def single(self):
        return make_question("q", 1, question_type="checkbox", options=TYPE_OPTIONS, is_required=True)

    @pytest.mark.parametrize("value", [None, {}, {"checked": []}, {"checked": None, "inputs": {}}, []])
    def test_multi_select_empty(self, validator, multi, value):
        assert validator.validate(multi, value) == MSG_CHECKBOX_MULTI_REQUIRED

    def test_multi_select_checked(self, validator, multi):
        assert validator.validate(multi, {"checked": ["A"], "inputs": {}}) is None

    def test_multi_select_legacy_list(self, validator, multi):
        assert validator.validate(multi, ["A"]) is None

    def test_unfilled_sub_input_is_not_required(self, validator, multi):
        """Checking B (hasInput) without typing its input still passes."""
        assert validator.validate(multi, {"checked": ["B"], "inputs": {}}) is None
        assert validator.validate(multi, {"checked": ["B"], "inputs": {"B": ""}}) is None

    @pytest.mark.parametrize("value", [None, {"selected": ""}, {"inputs": {"위탁": "x"}}, {"checked": ["직접"]}])
    def test_single_select_empty(self, validator, single, value):
        assert validator.validate(single, value) == MSG_CHECKBOX_SINGLE_REQUIRED

    def test_single_select_selected(self, validator, single):
        assert validator.validate(single, {"selected": "위탁", "inputs": {}}) is None

    def test_invalid_options_fall_back_to_text(self, validator):
        q = make_question("q", 1, question_type="checkbox", options="{broken", is_required=True)
        assert validator.validate(q, "") == MSG_REQUIRED
        assert validator.validate(q, "   ") == MSG_REQUIRED
        assert validator.validate(q, "free text answer") is None

    @pytest.mark.parametrize(
        "value", [{"checked": [], "inputs": {}}, {"selected": None}, [], 0],
    )
    def test_invalid_options_reject_structured_leftovers(self, validator, value):
        """An empty structured answer is not free text and stays required."""
        q = make_question("q", 1, question_type="checkbox", options="{broken", is_required=True)
        assert validator.validate(q, value) == MSG_REQUIRED, f"{value!r} must not pass"

    def test_optional_checkbox_empty_passes(self, validator):
        q = make_question("q", 1, question_type="checkbox", options=SNS_OPTIONS)
        assert validator.validate(q, None) is None


# =====================================================================
# repeatable
# =====================================================================


class TestRepeatableValidation:

    @pytest.fixture
    def reps(self):
        return make_question("q", 1, question_type="repeatable", options=REPS_OPTIONS, is_required=True)

    @pytest.mark.parametrize("value", [None, [], "text", {"대표자명": "홍길동"}])
    def test_missing_rows(self, validator, reps, value):
        assert validator.validate(reps, value) == MSG_REPEATABLE_REQUIRED

    def test_incomplete_row_passes(self, validator, reps):
        """Only the row count is checked; 연락처 may stay empty."""
        assert validator.validate(reps, [{"대표자명": "홍길동"}]) is None

    def test_empty_row_object_counts(self, validator, reps):
        assert validator.validate(reps, [{}]) is None

    def test_invalid_options_fall_back_to_text(self, validator):
        q = make_question("q", 1, question_type="repeatable", options=json.dumps({}), is_required=True)
        assert validator.validate(q, None) == MSG_REQUIRED
        assert validator.validate(q, "대표자 홍길동") is None

    @pytest.mark.parametrize("value", [[{}], [{"name": ""}], {"rows": []}])
    def test_invalid_options_reject_structured_leftovers(self, validator, value):
        q = make_question("q", 1, question_type="repeatable", options="nope", is_required=True)
        assert validator.validate(q, value) == MSG_REQUIRED, f"{value!r} must not pass"


# =====================================================================
# agreement / notice
# =====================================================================


class TestAgreementAndNotice:

    @pytest.mark.parametrize("value", [None, {}, {"agreed": False}, {"agreed": "true"}, True])
    def test_agreement_requires_true(self, validator, value):
        q = make_question("q", 1, question_type="agreement", is_required=True)
        assert validator.validate(q, value) == MSG_AGREEMENT_REQUIRED

    def test_agreement_agreed(self, validator):
        q = make_question("q", 1, question_type="agreement", is_required=True)
        assert validator.validate(q, {"agreed": True}) is None

    def test_notice_never_validated(self, validator):
        q = make_question("q", 1, question_type="notice", is_required=True)
        assert validator.validate(q, None) is None


# =====================================================================
# validate_all
# =====================================================================


class TestValidateAll:

    def test_error_map_keyed_by_question_id(self, validator, portfolio, valid_answers):
        answers = dict(valid_answers, q_name="   ")
        errors = validator.validate_all(portfolio.questions, answers)
        assert errors == {"q_name": MSG_REQUIRED}, (
            "a blank required text must add exactly one entry and leave others untouched"
        )

    def test_valid_answers_give_empty_map(self, validator, portfolio, valid_answers):
        assert validator.validate_all(portfolio.questions, valid_answers) == {}

    def test_repeated_calls_are_idempotent(self, validator, portfolio):
        first = validator.validate_all(portfolio.questions, {})
        second = validator.validate_all(portfolio.questions, {})
        assert first == second
        assert set(first) == {"q_name", "q_sns", "q_reps", "q_type", "q_agree"}
