"""PortalClient tests against an in-process fake server (httpx.MockTransport)."""

import json

import httpx
import pytest

from conftest import build_portfolio
from portfolio_forms.cache import InMemoryCache
from portfolio_forms.client import PortalClient, portfolio_from_schema
from portfolio_forms.models.session import PortfolioSchema, QuestionPayload
from portfolio_forms.options import OptionParser

BASE_URL = "http://portal.test"


def _schema_json() -> dict:
    portfolio = build_portfolio()
    parser = OptionParser()
    schema = PortfolioSchema(
        id=portfolio.id,
        title=portfolio.title,
        slug=portfolio.slug,
        is_configured=True,
        min_step=1,
        max_step=3,
        steps=[1, 2, 3],
        questions=[
            QuestionPayload(
                **q.model_dump(),
                parsed_options=parser.resolve(q),
                config_error=parser.config_error(q),
            )
            for q in portfolio.questions
        ],
        collections=portfolio.declared_collections,
    )
    return schema.model_dump(mode="json")


SUBMISSION = {
    "id": "22222222-2222-2222-2222-222222222222",
    "portfolio_id": "11111111-1111-1111-1111-111111111111",
    "company_name": "하늘펜션",
    "is_draft": True,
}


class FakePortal:
    """Routes requests to canned responses and records what was sent."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.existing: dict | None = None
        self.save_response: tuple[int, dict] = (200, {"status": "saved", "submission": SUBMISSION})
        self.mine: list[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/api/v1/portfolios" and request.method == "GET":
            return httpx.Response(200, json=[{"id": "1", "title": "숙소", "slug": "accommodation"}])
        if path == "/api/v1/portfolios/accommodation" and request.method == "GET":
            return httpx.Response(200, json=_schema_json())
        if path == "/api/v1/portfolios/accommodation/check":
            if self.existing is None:
                return httpx.Response(
                    200, content=b"null", headers={"content-type": "application/json"},
                )
            return httpx.Response(200, json=self.existing)
        if path == "/api/v1/portfolios/accommodation/submission":
            status, body = self.save_response
            return httpx.Response(status, json=body)
        if path == "/api/v1/submissions/mine":
            return httpx.Response(200, json=self.mine)
        return httpx.Response(404, json={"detail": "not found"})

    def calls(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]


@pytest.fixture
def portal():
    return FakePortal()


@pytest.fixture
def client(portal):
    return PortalClient(BASE_URL, transport=httpx.MockTransport(portal), cache=InMemoryCache())


class TestSchema:

    def test_portfolio_from_schema_round_trip(self):
        schema = PortfolioSchema.model_validate(_schema_json())
        portfolio = portfolio_from_schema(schema)
        assert portfolio.question_ids == build_portfolio().question_ids
        sns = portfolio.get_question("q_sns")
        assert OptionParser().resolve(sns).kind == "checkbox"

    @pytest.mark.asyncio
    async def test_list_portfolios(self, client):
        async with client:
            summaries = await client.list_portfolios()
        assert [s.slug for s in summaries] == ["accommodation"]


class TestOpenAndSave:

    @pytest.mark.asyncio
    async def test_open_new_form(self, client, portal):
        async with client:
            session = await client.open_form("accommodation", "하늘펜션", "1234")
        assert session.current_step == 1
        assert session.state.answers == {}
        sent = json.loads(portal.calls("/api/v1/portfolios/accommodation/check")[0].content)
        assert sent == {"company_name": "하늘펜션", "pin": "1234"}
        assert client.history.last_company() == "하늘펜션"

    @pytest.mark.asyncio
    async def test_check_miss_is_none(self, client):
        async with client:
            assert await client.check_existing("accommodation", "하늘펜션", "1234") is None

    @pytest.mark.asyncio
    async def test_check_with_empty_body_is_none(self):
        """A proxy that drops the ``null`` body still reads as a miss."""
        transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b""))
        client = PortalClient(BASE_URL, transport=transport, cache=InMemoryCache())
        async with client:
            assert await client.check_existing("accommodation", "하늘펜션", "1234") is None

    @pytest.mark.asyncio
    async def test_open_resumes_existing(self, client, portal):
        portal.existing = {
            "submission": SUBMISSION,
            "answers": {"q_name": "하늘펜션"},
            "collections": {"rooms": [{"name": "A동"}]},
        }
        async with client:
            session = await client.open_form("accommodation", "하늘펜션", "1234")
        assert session.state.get("q_name") == "하늘펜션"
        assert session.state.rooms == [{"name": "A동"}]

    @pytest.mark.asyncio
    async def test_save_draft_payload(self, client, portal):
        async with client:
            session = await client.open_form("accommodation", "하늘펜션", "1234")
            session.set_answer("q_name", "하늘")
            outcome = await client.save_draft(session, "하늘펜션", "1234")
        assert outcome.status == "saved"
        body = json.loads(portal.calls("/api/v1/portfolios/accommodation/submission")[0].content)
        assert body["is_draft"] is True
        assert body["answers"] == {"q_name": "하늘"}
        assert body["collections"] == {"rooms": []}

    @pytest.mark.asyncio
    async def test_invalid_submit_sets_state_errors(self, client, portal):
        portal.save_response = (422, {
            "status": "invalid",
            "errors": {"q_sns": "하나 이상 선택해주세요."},
            "blocking_step": 2,
        })
        async with client:
            session = await client.open_form("accommodation", "하늘펜션", "1234")
            outcome = await client.submit(session, "하늘펜션", "1234")
        assert outcome.status == "invalid"
        assert outcome.blocking_step == 2
        assert session.state.errors == {"q_sns": "하나 이상 선택해주세요."}

    @pytest.mark.asyncio
    async def test_conflict_raises_and_keeps_answers(self, client, portal):
        portal.save_response = (409, {"detail": "Submission already exists"})
        async with client:
            session = await client.open_form("accommodation", "하늘펜션", "9999")
            session.set_answer("q_name", "하늘")
            with pytest.raises(httpx.HTTPStatusError):
                await client.save_draft(session, "하늘펜션", "9999")
        assert session.state.get("q_name") == "하늘", "a failed save never loses answers"


class TestMySubmissions:

    @pytest.mark.asyncio
    async def test_cached_after_first_search(self, client, portal):
        portal.mine = [{
            "submission": SUBMISSION,
            "portfolio_title": "숙소 정보 등록",
            "portfolio_slug": "accommodation",
        }]
        async with client:
            first = await client.my_submissions("하늘펜션", "1234")
            second = await client.my_submissions("하늘펜션", "1234")
            await client.my_submissions("하늘펜션", "1234", refresh=True)
        assert first == second
        assert len(portal.calls("/api/v1/submissions/mine")) == 2, (
            "the second call is served from cache; refresh bypasses it"
        )

    @pytest.mark.asyncio
    async def test_save_invalidates_cache(self, client, portal):
        async with client:
            await client.my_submissions("하늘펜션", "1234")
            assert client.history.has_searched("하늘펜션")
            session = await client.open_form("accommodation", "하늘펜션", "1234")
            await client.save_draft(session, "하늘펜션", "1234")
        assert client.history.recall("하늘펜션") is None
