from fastapi import APIRouter, Depends, FastAPI
from fastapi.testclient import TestClient
from reservo.config import Settings, get_settings
from reservo.deps import require_feature
from reservo.features import Feature


def _make_app(env_name: str) -> TestClient:
    app = FastAPI()
    router = APIRouter(prefix="/gated", dependencies=[Depends(require_feature(Feature.RESERVATIONS))])

    @router.get("")
    async def gated() -> dict[str, bool]:
        return {"ok": True}

    app.include_router(router)
    app.dependency_overrides[get_settings] = lambda: Settings(env_name=env_name)
    return TestClient(app)


def test_enabled_feature_passes() -> None:
    res = _make_app("local").get("/gated")
    assert res.status_code == 200
    assert res.json() == {"ok": True}


def test_unknown_environment_hides_routes() -> None:
    res = _make_app("staging").get("/gated")
    assert res.status_code == 404
    assert res.json()["detail"] == "Feature not available"


def test_require_feature_is_cached_per_feature() -> None:
    assert require_feature(Feature.FACILITIES) is require_feature(Feature.FACILITIES)
    assert require_feature(Feature.FACILITIES) is not require_feature(Feature.RESERVATIONS)
