"""
Tests for application-wide HTTP behaviour: health check, error envelope
and request tracing headers.
"""

from sqlalchemy.orm import Session

from test_fixtures import auth_headers, client, db_session, make_owner
from api.responses import success_response


def test_health_check(client):
    response = client.get("/api/health-check")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["service"] == "TiffinMate"
    assert "timestamp" in body


def test_request_id_header(client):
    first = client.get("/api/health-check")
    second = client.get("/api/health-check")

    assert first.headers["X-Request-ID"]
    assert first.headers["X-Request-ID"] != second.headers["X-Request-ID"]
    assert "X-Process-Time" in first.headers


def test_unknown_route_uses_error_envelope(client):
    response = client.get("/api/does-not-exist")

    assert response.status_code == 404
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == "HTTP_404"
    assert "timestamp" in body


def test_validation_error_lists_details(client, db_session: Session):
    owner = make_owner(db_session)

    response = client.post(
        "/api/plans",
        json={"name": "broken"},
        headers=auth_headers(owner),
    )

    assert response.status_code == 422
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert error["message"] == "Request validation failed"
    assert isinstance(error["details"], list)


def test_success_envelope(client, db_session: Session):
    owner = make_owner(db_session)

    response = client.get("/api/auth/me", headers=auth_headers(owner))

    body = response.json()
    assert body["success"] is True
    assert body["data"]["user_code"] == "OWNER001"
    assert "timestamp" in body


def test_success_response_shape():
    body = success_response({"id": 1}, message="Saved")

    assert set(body) == {"success", "message", "data", "timestamp"}
    assert body["success"] is True
    assert body["message"] == "Saved"
    assert body["data"] == {"id": 1}
