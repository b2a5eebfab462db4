"""HTTP API tests: FastAPI TestClient over the engine with MockRepository.

The lifespan builds the real FormEngine; its repository is swapped for the
in-memory MockRepository from test_engine, and ``get_db`` is overridden to
yield an AsyncMock so no database is needed.
"""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from conftest import VALID_ANSWERS, build_portfolio
from test_engine import MockRepository, PORTFOLIO_ID, RecordingMirror
from portfolio_forms.constants import MSG_COMPANY_REQUIRED, MSG_PIN_INVALID
from portfolio_forms.interfaces import SheetMirror
from portfolio_server.app import create_app
from portfolio_server.auth import create_access_token
from portfolio_server.config import ServerSettings
from portfolio_server.dependencies import get_db

SETTINGS = ServerSettings(jwt_secret="test-secret")
API = "/api/v1"
IDENTITY = {"company_name": "하늘펜션", "pin": "1234"}


async def _fake_db():
    yield AsyncMock()


def _make_app(settings: ServerSettings):
    app = create_app(settings)
    app.dependency_overrides[get_db] = _fake_db
    return app


@pytest.fixture
def repo():
    r = MockRepository()
    r.add_portfolio(build_portfolio())
    return r


@pytest.fixture
def client(repo):
    app = _make_app(SETTINGS)
    with TestClient(app) as c:
        app.state.engine._repo = repo
        yield c


def _token(role: str) -> dict:
    token = create_access_token(SETTINGS, subject="admin", role=role)
    return {"Authorization": f"Bearer {token}"}


def _save(client, answers, *, is_draft, headers=None, **identity):
    body = {**IDENTITY, **identity, "answers": answers, "is_draft": is_draft}
    return client.put(f"{API}/portfolios/accommodation/submission", json=body, headers=headers)


# =====================================================================
# Public portfolio routes
# =====================================================================


class TestPortfolioRoutes:

    def test_list(self, client):
        resp = client.get(f"{API}/portfolios")
        assert resp.status_code == 200
        assert [p["slug"] for p in resp.json()] == ["accommodation"]

    def test_schema(self, client):
        resp = client.get(f"{API}/portfolios/accommodation")
        assert resp.status_code == 200
        body = resp.json()
        assert body["steps"] == [1, 2, 3]
        assert body["is_configured"] is True

    def test_unknown_slug_is_404(self, client):
        resp = client.get(f"{API}/portfolios/missing")
        assert resp.status_code == 404
        assert resp.json() == {"detail": "Resource not found"}, "raw messages never leak"

    def test_check_miss_returns_null(self, client):
        resp = client.post(f"{API}/portfolios/accommodation/check", json=IDENTITY)
        assert resp.status_code == 200
        assert resp.json() is None

    @pytest.mark.parametrize(
        "identity, message",
        [
            ({"company_name": " ", "pin": "1234"}, MSG_COMPANY_REQUIRED),
            ({"company_name": "하늘펜션", "pin": "12"}, MSG_PIN_INVALID),
        ],
    )
    def test_malformed_identity_is_400(self, client, identity, message):
        resp = client.post(f"{API}/portfolios/accommodation/check", json=identity)
        assert resp.status_code == 400
        assert resp.json()["detail"] == message

    def test_validate_step(self, client):
        resp = client.post(
            f"{API}/portfolios/accommodation/steps/1/validate", json={"answers": {}},
        )
        assert resp.status_code == 200
        assert resp.json()["advanced"] is False
        assert set(resp.json()["errors"]) == {"q_name"}

    def test_validate_unknown_step_is_404(self, client):
        resp = client.post(
            f"{API}/portfolios/accommodation/steps/8/validate", json={"answers": {}},
        )
        assert resp.status_code == 404


# =====================================================================
# Submissions
# =====================================================================


class TestSubmissionRoutes:

    def test_draft_then_resume(self, client):
        assert _save(client, {"q_name": "하늘"}, is_draft=True).status_code == 200
        resp = client.post(f"{API}/portfolios/accommodation/check", json=IDENTITY)
        assert resp.json()["answers"] == {"q_name": "하늘"}

    def test_invalid_final_is_422(self, client, repo):
        resp = _save(client, {"q_name": "하늘펜션"}, is_draft=False)
        assert resp.status_code == 422
        body = resp.json()
        assert body["status"] == "invalid"
        assert body["blocking_step"] == 2
        assert repo.stored() is None

    def test_final_saved(self, client, repo):
        resp = _save(client, VALID_ANSWERS, is_draft=False)
        assert resp.status_code == 200
        assert resp.json()["submission"]["is_draft"] is False

    def test_pin_conflict_is_409(self, client):
        _save(client, {}, is_draft=True)
        resp = _save(client, {}, is_draft=True, pin="9999")
        assert resp.status_code == 409

    def test_forwarded_ip_recorded(self, client, repo):
        _save(client, {}, is_draft=True, headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})
        assert repo.stored().ip_address == "203.0.113.7"

    def test_real_ip_fallback(self, client, repo):
        _save(client, {}, is_draft=True, headers={"X-Real-IP": "198.51.100.2"})
        assert repo.stored().ip_address == "198.51.100.2"

    def test_my_submissions(self, client):
        _save(client, {}, is_draft=True)
        resp = client.post(f"{API}/submissions/mine", json=IDENTITY)
        assert resp.status_code == 200
        assert [s["portfolio_slug"] for s in resp.json()] == ["accommodation"]
        other = client.post(f"{API}/submissions/mine", json={**IDENTITY, "pin": "0000"})
        assert other.json() == []


class TestSheetMirrorOrdering:
    """The sheet mirror only ever sees a final submission after its commit."""

    @pytest.fixture
    def session(self, client):
        db = AsyncMock()

        async def _tracked_db():
            yield db

        client.app.dependency_overrides[get_db] = _tracked_db
        return db

    def test_final_mirrored_after_commit(self, client, session):
        commits_seen = []

        class CommitAwareMirror(SheetMirror):
            async def append(self, row):
                commits_seen.append(session.commit.await_count)

        client.app.state.engine._mirror = CommitAwareMirror()
        resp = _save(client, VALID_ANSWERS, is_draft=False)
        assert resp.status_code == 200
        assert len(commits_seen) == 1, "one row per final submit"
        assert commits_seen[0] >= 1, "commit must precede the mirror append"

    def test_mirrored_row_comes_from_stored_submission(self, client, session):
        mirror = RecordingMirror()
        client.app.state.engine._mirror = mirror
        _save(client, VALID_ANSWERS, is_draft=False, headers={"X-Real-IP": "198.51.100.2"})
        assert len(mirror.rows) == 1
        assert "하늘펜션" in mirror.rows[0]
        assert "198.51.100.2" in mirror.rows[0]

    def test_invalid_final_not_mirrored(self, client, session):
        mirror = RecordingMirror()
        client.app.state.engine._mirror = mirror
        resp = _save(client, {"q_name": "하늘펜션"}, is_draft=False)
        assert resp.status_code == 422
        assert mirror.rows == []
        session.commit.assert_not_awaited()

    def test_draft_not_mirrored(self, client, session):
        mirror = RecordingMirror()
        client.app.state.engine._mirror = mirror
        assert _save(client, {"q_name": "하늘"}, is_draft=True).status_code == 200
        assert mirror.rows == []


# =====================================================================
# Admin
# =====================================================================


class TestAdminRoutes:

    def test_missing_token_is_401(self, client):
        assert client.get(f"{API}/admin/submissions").status_code == 401

    def test_bad_token_is_401(self, client):
        resp = client.get(f"{API}/admin/submissions", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401

    def test_member_role_is_403(self, client):
        resp = client.get(f"{API}/admin/submissions", headers=_token("MEMBER"))
        assert resp.status_code == 403

    def test_listing(self, client):
        _save(client, {"q_name": "하늘"}, is_draft=True)
        resp = client.get(f"{API}/admin/submissions", headers=_token("ADMIN"))
        assert resp.status_code == 200
        assert resp.json()[0]["responses"] == {"q_name": "하늘"}

    def test_export_without_completed_is_404(self, client):
        resp = client.get(
            f"{API}/admin/portfolios/{PORTFOLIO_ID}/export", headers=_token("SUPER_ADMIN"),
        )
        assert resp.status_code == 404
        assert resp.json() == {"detail": "Resource not found"}

    def test_export_xlsx(self, client):
        _save(client, VALID_ANSWERS, is_draft=False)
        resp = client.get(
            f"{API}/admin/portfolios/{PORTFOLIO_ID}/export", headers=_token("ADMIN"),
        )
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith(
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        )
        assert "filename*=UTF-8''" in resp.headers["content-disposition"]
        assert resp.content[:2] == b"PK"

    def test_admin_disabled_without_secret(self):
        app = _make_app(ServerSettings(jwt_secret=None))
        with TestClient(app) as c:
            resp = c.get(f"{API}/admin/submissions", headers={"Authorization": "Bearer x"})
        assert resp.status_code == 403
