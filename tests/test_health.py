"""Health endpoint tests."""


def test_health_returns_ok(client):
    """GET /health returns status, service name and a timestamp."""
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["service"] == "safetrail"
    assert "timestamp" in body


def test_unknown_route_uses_error_envelope(client):
    response = client.get("/nope")
    assert response.status_code == 404
    assert response.json() == {"error": "Not Found"}
