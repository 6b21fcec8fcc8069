from fastapi.testclient import TestClient

from app.deps import get_store
from app.main import app


def test_health():
    with TestClient(app) as c:
        r = c.get("/health")
        assert r.status_code == 200
        body = r.json()
        assert body["ok"] is True
        assert body["status"] == "ok"
        # MONGODB_URI is empty in tests
        assert body["database"] is False
        assert "timestamp" in body


def test_health_reports_database(store):
    app.dependency_overrides[get_store] = lambda: store
    try:
        with TestClient(app) as c:
            assert c.get("/health").json()["database"] is True
    finally:
        app.dependency_overrides.clear()


def test_root_lists_endpoints():
    with TestClient(app) as c:
        body = c.get("/").json()
        assert body["health"].endswith("/health")
        assert body["callback"].endswith("/payment/callback")
