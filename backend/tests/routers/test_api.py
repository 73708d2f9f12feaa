from datetime import datetime
from typing import AsyncIterator, Iterator

import pytest
from fastapi.testclient import TestClient
from reservo.config import Settings, get_settings
from reservo.deps import get_session
from reservo.main import app
from reservo.models import ReservationStatus
from reservo.routers import facilities as facilities_router
from reservo.routers import reservations as reservations_router
from reservo.usecases import reservations as reservation_usecase
from reservo.utils.auth import create_access_token

SECRET = "testsecret"
NOW = datetime(2026, 3, 2, 9, 0)


@pytest.fixture
def settings() -> Settings:
    return Settings(auth_secret=SECRET)


@pytest.fixture
def client(
    monkeypatch: pytest.MonkeyPatch,
    settings: Settings,
    facility_repo,
    res_repo,
    dummy_session,
) -> Iterator[TestClient]:
    async def override_get_session() -> AsyncIterator[object]:
        yield dummy_session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_settings] = lambda: settings

    for module in (facilities_router, reservations_router):
        monkeypatch.setattr(module, "SqlAlchemyFacilityRepository", lambda s: facility_repo, raising=False)
        monkeypatch.setattr(module, "SqlAlchemyReservationRepository", lambda s: res_repo)
    monkeypatch.setattr(reservation_usecase, "utc_now_naive", lambda: NOW)

    yield TestClient(app)
    app.dependency_overrides.clear()


def _auth(user_id: str = "user-1", role: str = "user") -> dict[str, str]:
    token = create_access_token(user_id=user_id, secret=SECRET, role=role)
    return {"Authorization": f"Bearer {token}"}


def test_health(client: TestClient) -> None:
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json() == {"status": "ok"}
    assert res.headers.get("X-Request-ID")


def test_missing_token_is_401_with_error_body(client: TestClient) -> None:
    res = client.get("/reservations")
    assert res.status_code == 401
    assert res.json() == {"error": "Unauthorized", "message": "Authentication required"}
    assert res.headers["www-authenticate"] == "Bearer"


def test_create_then_conflict(client: TestClient) -> None:
    body = {"facility_id": 1, "start_time": "2026-03-03T14:00:00Z", "duration": "01:00:00"}
    created = client.post("/reservations", json=body, headers=_auth())
    assert created.status_code == 201
    data = created.json()
    assert data["status"] == "confirmed"
    assert data["start_time"] == "2026-03-03T14:00:00+00:00"
    assert data["end_time"] == "2026-03-03T15:00:00+00:00"
    assert data["duration"] == "01:00:00"

    clash = client.post(
        "/reservations",
        json={**body, "start_time": "2026-03-03T23:30:00+09:00"},
        headers=_auth("user-2"),
    )
    assert clash.status_code == 409
    assert clash.json()["error"] == "Conflict"


def test_create_validation_failures_are_400(client: TestClient) -> None:
    naive = client.post(
        "/reservations",
        json={"facility_id": 1, "start_time": "2026-03-03T14:00:00", "duration": "01:00:00"},
        headers=_auth(),
    )
    assert naive.status_code == 400
    assert naive.json()["error"] == "Bad Request"
    assert naive.json()["message"].startswith("Start time must be a valid ISO 8601 datetime")

    misaligned = client.post(
        "/reservations",
        json={"facility_id": 1, "start_time": "2026-03-03T14:10:00Z", "duration": "01:00:00"},
        headers=_auth(),
    )
    assert misaligned.status_code == 400
    assert "15-minute intervals" in misaligned.json()["message"]


def test_unknown_facility_is_404(client: TestClient) -> None:
    res = client.post(
        "/reservations",
        json={"facility_id": 42, "start_time": "2026-03-03T14:00:00Z", "duration": "01:00:00"},
        headers=_auth(),
    )
    assert res.status_code == 404
    assert res.json()["message"] == "Facility with ID 42 not found"


def test_list_all_requires_admin(client: TestClient, res_repo, tomorrow_at) -> None:
    res_repo.seed(start=tomorrow_at(14))
    res_repo.seed(start=tomorrow_at(16), user_id="user-2")

    assert client.get("/reservations?all=true", headers=_auth()).status_code == 403

    res = client.get("/reservations?all=true", headers=_auth("admin-1", "admin"))
    assert res.status_code == 200
    body = res.json()
    assert body["pagination"] == {"limit": 50, "offset": 0, "total": 2}
    assert body["reservations"][0]["facility"] == {"id": 1, "name": "Court A"}


def test_list_rejects_oversized_page(client: TestClient) -> None:
    res = client.get("/reservations?limit=101", headers=_auth())
    assert res.status_code == 400


def test_patch_requires_exactly_one_operation(client: TestClient, res_repo, tomorrow_at) -> None:
    reservation = res_repo.seed(start=tomorrow_at(14))
    both = client.patch(
        f"/reservations/{reservation.id}",
        json={"duration": "01:30:00", "status": "canceled"},
        headers=_auth(),
    )
    assert both.status_code == 400
    assert both.json()["message"] == "Provide either a new duration or a cancellation, not both"

    empty = client.patch(f"/reservations/{reservation.id}", json={}, headers=_auth())
    assert empty.status_code == 400


def test_owner_cancel_via_delete(client: TestClient, res_repo, tomorrow_at) -> None:
    reservation = res_repo.seed(start=tomorrow_at(14))
    res = client.delete(f"/reservations/{reservation.id}", headers=_auth())
    assert res.status_code == 204
    assert reservation.status == ReservationStatus.CANCELED

    again = client.delete(f"/reservations/{reservation.id}", headers=_auth())
    assert again.status_code == 403


def test_schedule_marks_booked_slots(client: TestClient, res_repo, tomorrow_at) -> None:
    res_repo.seed(start=tomorrow_at(18), duration_minutes=45)
    res_repo.seed(start=tomorrow_at(20), duration_minutes=30, user_id="user-2")

    res = client.get("/facilities/1/schedule?date=2026-03-03", headers=_auth())
    assert res.status_code == 200
    body = res.json()
    assert body["facility"] == {"id": 1, "name": "Court A"}
    assert len(body["time_slots"]) == 32
    assert sum(slot["status"] == "booked" for slot in body["time_slots"]) == 5
    assert [r["is_own"] for r in body["reservations"]] == [True, False]


def test_duration_options_endpoint(client: TestClient, res_repo, tomorrow_at) -> None:
    res_repo.seed(start=tomorrow_at(15), duration_minutes=30)

    res = client.get("/facilities/1/schedule/durations?start_time=2026-03-03T14:00:00Z", headers=_auth())
    assert res.status_code == 200
    assert res.json()["durations"] == ["00:30:00", "00:45:00", "01:00:00"]

    naive = client.get("/facilities/1/schedule/durations?start_time=2026-03-03T14:00:00", headers=_auth())
    assert naive.status_code == 400


def test_export_ics(client: TestClient, res_repo, tomorrow_at) -> None:
    reservation = res_repo.seed(start=tomorrow_at(14))
    res = client.get(f"/reservations/{reservation.id}/export.ics", headers=_auth())
    assert res.status_code == 200
    assert res.headers["content-type"].startswith("text/calendar")
    assert "DTSTART:20260303T140000Z" in res.text


def test_disabled_feature_hides_routes(client: TestClient, settings: Settings) -> None:
    app.dependency_overrides[get_settings] = lambda: settings.model_copy(update={"env_name": "staging"})
    res = client.get("/facilities", headers=_auth())
    assert res.status_code == 404
    assert res.json() == {"error": "Not Found", "message": "Feature not available"}
