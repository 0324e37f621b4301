"""
Tests for the main application endpoints.
"""


def test_root_endpoint(client):
    """
    Test the root endpoint returns the service banner.
    """
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert "version" in data
    assert data["endpoints"]["auth"] == "/api/auth"
    assert data["endpoints"]["poseDetections"] == "/api/pose-detections"


def test_health_check(client):
    """
    Test the health check endpoint returns a healthy status.
    """
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_request_id_headers(client):
    response = client.get("/health", headers={"X-Request-ID": "trace-123"})
    assert response.headers["X-Request-ID"] == "trace-123"
    assert "X-Process-Time" in response.headers


def test_unknown_route_uses_error_envelope(client):
    response = client.get("/api/nowhere")
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Not Found"}
