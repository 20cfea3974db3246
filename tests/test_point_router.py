import pytest
from fastapi.testclient import TestClient

from predictapi.core.security import create_access_token
from predictapi.database.session import get_db
from predictapi.main import create_app
from predictapi.models.user import User


@pytest.fixture
def client(db):
    """테스트 DB 세션을 주입한 클라이언트 (인증은 실제 JWT 로 통과)"""
    app = create_app()

    def _get_test_db():
        yield db

    app.dependency_overrides[get_db] = _get_test_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def _auth(user):
    token = create_access_token({"user_id": user.id, "is_admin": user.is_admin})
    return {"Authorization": f"Bearer {token}"}


class TestPointRoutes:
    """포인트 라우터 테스트"""

    def test_get_my_balance(self, client, make_user):
        user = make_user(points=1000)

        response = client.get("/api/v1/points/balance", headers=_auth(user))

        assert response.status_code == 200
        assert response.json() == {"user_id": user.id, "balance": 1000}

    def test_get_my_ledger(self, client, make_user):
        user = make_user(points=500)

        response = client.get(
            "/api/v1/points/ledger?limit=10&offset=0", headers=_auth(user)
        )

        assert response.status_code == 200
        data = response.json()
        assert data["balance"] == 500
        assert data["total_count"] == 1
        assert data["has_next"] is False
        assert data["entries"][0]["reason"] == "admin_adjustment"

    def test_ledger_rejects_out_of_range_limit(self, client, make_user):
        user = make_user()

        response = client.get("/api/v1/points/ledger?limit=101", headers=_auth(user))

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_001"

    def test_claim_daily_twice(self, client, make_user):
        user = make_user(points=0)

        first = client.post("/api/v1/points/claim-daily", headers=_auth(user))
        second = client.post("/api/v1/points/claim-daily", headers=_auth(user))

        assert first.status_code == 200
        assert first.json()["new_total"] == 250
        assert second.status_code == 400
        assert second.json()["error"]["code"] == "CLAIM_001"

    def test_missing_token(self, client):
        response = client.get("/api/v1/points/balance")

        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_invalid_token(self, client):
        response = client.get(
            "/api/v1/points/balance", headers={"Authorization": "Bearer not-a-jwt"}
        )

        assert response.status_code == 401

    def test_suspended_user_is_forbidden(self, client, db, make_user):
        user = make_user()
        db.get(User, user.id).is_suspended = True
        db.commit()

        response = client.get("/api/v1/points/balance", headers=_auth(user))

        assert response.status_code == 403


class TestAdminPointRoutes:
    """관리자 포인트 라우터 테스트"""

    def test_non_admin_is_forbidden(self, client, make_user):
        user = make_user()

        response = client.get("/api/v1/admin/points/integrity", headers=_auth(user))

        assert response.status_code == 403

    def test_adjust_points(self, client, make_user):
        admin = make_user(points=0, is_admin=True)
        user = make_user(points=100)

        response = client.post(
            "/api/v1/admin/points/adjust",
            json={"user_id": user.id, "amount": 250, "note": "event compensation"},
            headers=_auth(admin),
        )

        assert response.status_code == 200
        assert response.json()["new_balance"] == 350

    def test_adjust_below_zero(self, client, make_user):
        admin = make_user(points=0, is_admin=True)
        user = make_user(points=100)

        response = client.post(
            "/api/v1/admin/points/adjust",
            json={"user_id": user.id, "amount": -500, "note": "too much"},
            headers=_auth(admin),
        )

        assert response.status_code == 402
        assert response.json()["error"]["code"] == "BALANCE_001"

    def test_adjust_unknown_user(self, client, make_user):
        admin = make_user(points=0, is_admin=True)

        response = client.post(
            "/api/v1/admin/points/adjust",
            json={"user_id": 999, "amount": 10, "note": "missing"},
            headers=_auth(admin),
        )

        assert response.status_code == 404

    def test_integrity(self, client, make_user):
        admin = make_user(points=0, is_admin=True)
        user = make_user(points=100)

        global_check = client.get("/api/v1/admin/points/integrity", headers=_auth(admin))
        user_check = client.get(
            f"/api/v1/admin/points/integrity/{user.id}", headers=_auth(admin)
        )

        assert global_check.status_code == 200
        assert global_check.json()["status"] == "OK"
        assert user_check.json()["replayed_balance"] == 100

    def test_platform_fee_transfer(self, client, make_user, make_event):
        admin = make_user(points=0, is_admin=True)
        user = make_user(points=100)
        make_event(platform_fee=120)

        response = client.post(
            "/api/v1/admin/points/fees/transfer",
            json={"user_id": user.id, "amount": 100, "reason": "weekly prize"},
            headers=_auth(admin),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["user_points_after"] == 200
        assert body["available_after"] == 20

        summary = client.get("/api/v1/admin/points/fees", headers=_auth(admin))
        assert summary.json() == {"total_collected": 120, "total_transferred": 100, "available": 20}

    def test_platform_fee_transfer_beyond_available(self, client, make_user, make_event):
        admin = make_user(points=0, is_admin=True)
        user = make_user(points=100)
        make_event(platform_fee=50)

        response = client.post(
            "/api/v1/admin/points/fees/transfer",
            json={"user_id": user.id, "amount": 51},
            headers=_auth(admin),
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "FEE_001"
        balance = client.get("/api/v1/points/balance", headers=_auth(user))
        assert balance.json()["balance"] == 100
