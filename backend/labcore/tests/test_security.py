from .conftest import client
from labcore.main import app
from labcore.auth import get_current_user

PUBLIC_PATHS = {
    "/api/auth/login",
    "/api/auth/register",
    "/metrics",
}


def test_all_routes_protected():
    for route in app.routes:
        path = getattr(route, 'path', '')
        if not path.startswith('/api'):
            continue
        if path in PUBLIC_PATHS:
            continue
        if not hasattr(route, 'dependant'):
            continue
        deps = [d.call for d in route.dependant.dependencies]
        assert get_current_user in deps, f"{path} missing authentication"


def test_unauthenticated_requests_are_rejected(client):
    assert client.get("/api/reservations").status_code == 401
    assert client.get("/api/users/me", headers={"Authorization": "Bearer not-a-token"}).status_code == 401


def test_metrics_exposed(client):
    client.get("/api/users/me")
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert b"request_count" in resp.content
