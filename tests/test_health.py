import inspect

from fastapi.routing import APIRoute

from conftest import auth_headers
from mentorhub.auth import get_current_user
from mentorhub.main import app


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_detailed_health_reports_database(client, engine):
    response = client.get("/health/detailed")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["database"]["connected"] is True


def test_security_headers(client, mentee):
    response = client.get("/api/auth/me", headers=auth_headers(mentee))

    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "SAMEORIGIN"
    assert "X-Frame-Options" not in client.get("/health").headers


def test_unknown_api_route(client):
    assert client.get("/api/nothing-here").status_code == 404


def test_transactional_handlers_run_in_threadpool():
    transactional = {
        ("POST", "/api/sessions"),
        ("POST", "/api/sessions/{session_id}/cancel"),
        ("POST", "/api/sessions/{session_id}/reschedule"),
        ("POST", "/api/transactions/add-funds"),
        ("POST", "/api/transactions/purchase"),
        ("POST", "/api/payouts/request"),
        ("POST", "/api/group-sessions/{group_session_id}/join"),
        ("DELETE", "/api/group-sessions/{group_session_id}/leave"),
        ("POST", "/api/auth/login"),
    }
    found = set()
    for route in app.routes:
        if not isinstance(route, APIRoute):
            continue
        for method in route.methods:
            if (method, route.path) in transactional:
                found.add((method, route.path))
                assert not inspect.iscoroutinefunction(route.endpoint), route.path

    assert found == transactional
    assert not inspect.iscoroutinefunction(get_current_user)
