"""Shared fixtures: a three-step sample portfolio covering every question type.

Layout of ``portfolio``::

    step 1  q_intro  notice
            q_name   text, required, min 2 chars (enforced)
    step 2  q_sns    checkbox multi-select (A, B with input), required
            q_reps   repeatable 대표자명/연락처, required
    step 3  q_type   checkbox single-select (직접/위탁 with input), required
            q_doc    file, optional
            q_agree  agreement, required
"""

import json
import os

# Cheap bcrypt cost for tests; must be set before portfolio_forms is imported
os.environ.setdefault("PIN_HASH_ROUNDS", "4")

import pytest

from portfolio_forms.models.question import Portfolio, Question

SNS_OPTIONS = json.dumps(
    {"checkboxes": [{"label": "A"}, {"label": "B", "hasInput": True}]}
)
TYPE_OPTIONS = json.dumps(
    {
        "multiple": False,
        "checkboxes": [{"label": "직접"}, {"label": "위탁", "hasInput": True}],
    },
    ensure_ascii=False,
)
REPS_OPTIONS = json.dumps(
    {"fields": [{"label": "대표자명", "type": "text"}, {"label": "연락처", "type": "text"}]},
    ensure_ascii=False,
)

# Answers that pass every step of the sample portfolio
VALID_ANSWERS = {
    "q_name": "하늘펜션",
    "q_sns": {"checked": ["B"], "inputs": {"B": "@sky"}},
    "q_reps": [{"대표자명": "홍길동", "연락처": "010-1234-5678"}],
    "q_type": {"selected": "직접", "inputs": {}},
    "q_agree": {"agreed": True},
}


def make_question(qid: str, step: int, order: int = 0, **kwargs) -> Question:
    """Question with a title derived from its id."""
    kwargs.setdefault("title", f"Title {qid}")
    return Question(id=qid, step=step, order=order, **kwargs)


def build_portfolio(**overrides) -> Portfolio:
    questions = [
        make_question(
            "q_name", 1, 1, title="숙소명", question_type="text", is_required=True,
            min_length=2, max_length=20, require_min_length=True,
        ),
        make_question("q_intro", 1, 0, title="안내", question_type="notice"),
        make_question(
            "q_sns", 2, 1, title="SNS", question_type="checkbox",
            options=SNS_OPTIONS, is_required=True,
        ),
        make_question(
            "q_reps", 2, 2, title="사업자", question_type="repeatable",
            options=REPS_OPTIONS, is_required=True,
        ),
        make_question(
            "q_type", 3, 1, title="운영 형태", question_type="checkbox",
            options=TYPE_OPTIONS, is_required=True,
        ),
        make_question("q_doc", 3, 2, title="통장사본", question_type="file"),
        make_question(
            "q_agree", 3, 3, title="동의", question_type="agreement", is_required=True,
        ),
    ]
    data = {
        "id": "11111111-1111-1111-1111-111111111111",
        "title": "숙소 정보 등록",
        "slug": "accommodation",
        "questions": questions,
    }
    data.update(overrides)
    return Portfolio(**data)


@pytest.fixture
def portfolio() -> Portfolio:
    return build_portfolio()


@pytest.fixture
def valid_answers() -> dict:
    return json.loads(json.dumps(VALID_ANSWERS))
