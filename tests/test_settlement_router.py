import pytest
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock, Mock

from predictapi.main import app
from predictapi import deps
from predictapi.core import auth_middleware
from predictapi.core.exceptions import AlreadyResolvedError, EventNotFoundError
from predictapi.schemas.settlement import ResolutionRunResponse, SettlementResult
from predictapi.schemas.user import User
from predictapi.services.resolution_service import ResolutionService
from predictapi.utils.timezone_utils import utc_now


def _stub_admin():
    return User(id=1, username="admin", email="admin@example.com", is_admin=True)


def _settlement_result(event_id):
    return SettlementResult(
        event_id=event_id,
        correct_answer="UP",
        total_participants=2,
        total_winners=1,
        total_losers=1,
        total_pool=200,
        winning_pool=100,
        platform_fee=10,
        distributed=190,
        residue=0,
        resolved_by="admin:1",
        resolved_at=utc_now(),
        payouts=[],
    )


@pytest.fixture
def resolution_service():
    service = Mock(spec=ResolutionService)
    service.resolve_manually = AsyncMock()
    return service


@pytest.fixture(autouse=True)
def patch_services_and_auth(resolution_service):
    app.dependency_overrides[deps.get_resolution_service] = lambda: resolution_service
    app.dependency_overrides[auth_middleware.require_admin] = _stub_admin

    yield

    app.dependency_overrides.clear()


client = TestClient(app)


def test_resolve_event(resolution_service):
    resolution_service.resolve_manually.return_value = _settlement_result(5)

    res = client.post(
        "/api/v1/admin/settlement/5/resolve",
        json={"correct_answer": "UP", "final_price": "101.5"},
    )

    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert body["data"]["settlement_result"]["distributed"] == 190
    args, kwargs = resolution_service.resolve_manually.call_args
    assert args == (5, "UP")
    assert kwargs["admin_id"] == 1
    assert str(kwargs["final_price"]) == "101.5"


def test_resolve_twice_is_conflict(resolution_service):
    resolution_service.resolve_manually.side_effect = AlreadyResolvedError(5)

    res = client.post("/api/v1/admin/settlement/5/resolve", json={"correct_answer": "UP"})

    assert res.status_code == 409
    assert res.json()["error"]["code"] == "SETTLE_001"


def test_resolve_unknown_event(resolution_service):
    resolution_service.resolve_manually.side_effect = EventNotFoundError(77)

    res = client.post("/api/v1/admin/settlement/77/resolve", json={"correct_answer": "UP"})

    assert res.status_code == 404
    assert res.json()["error"]["code"] == "EVENT_001"


def test_resolve_requires_answer():
    res = client.post("/api/v1/admin/settlement/5/resolve", json={})

    assert res.status_code == 422


def test_latest_run(resolution_service):
    resolution_service.get_last_run.return_value = ResolutionRunResponse(
        id=3,
        trigger="scheduler",
        started_at=utc_now(),
        finished_at=utc_now(),
        events_attempted=4,
        events_resolved=3,
        events_skipped=0,
        events_failed=1,
        last_error="event 9: boom",
    )

    res = client.get("/api/v1/admin/settlement/runs/latest?trigger=scheduler")

    assert res.status_code == 200
    assert res.json()["data"]["run"]["events_failed"] == 1
    resolution_service.get_last_run.assert_called_once_with("scheduler")


def test_latest_run_when_none_recorded(resolution_service):
    resolution_service.get_last_run.return_value = None

    res = client.get("/api/v1/admin/settlement/runs/latest")

    assert res.status_code == 200
    assert res.json()["data"]["run"] is None


def test_requires_admin():
    app.dependency_overrides.pop(auth_middleware.require_admin)
    app.dependency_overrides[auth_middleware.get_current_active_user] = lambda: User(
        id=2, username="player", is_admin=False
    )

    res = client.post("/api/v1/admin/settlement/5/resolve", json={"correct_answer": "UP"})

    assert res.status_code == 403
