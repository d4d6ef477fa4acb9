def test_health(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_liveness_has_timestamp(client):
    payload = client.get("/api/health/live").json()

    assert payload["status"] == "ok"
    assert payload["timestamp"]


def test_readiness_reports_schema(client):
    response = client.get("/api/health/ready")

    assert response.status_code == 200
    database = response.json()["database"]
    assert database["ok"] is True
    assert database["schema_ok"] is True
    assert database["missing_tables"] == []
    assert database["revision"] is None


def test_request_id_is_echoed(client):
    response = client.get("/api/health", headers={"X-Request-ID": "abc123"})

    assert response.headers["X-Request-ID"] == "abc123"
    assert client.get("/api/health").headers["X-Request-ID"]


def test_upload_route_has_larger_body_allowance(client, auth_headers):
    headers = {**auth_headers(), "Content-Length": "2000000", "Content-Type": "application/json"}

    json_response = client.post("/api/timetables", content=b"{}", headers=headers)
    upload_response = client.post("/api/timetable-bulk-upload", content=b"{}", headers=headers)

    assert json_response.status_code == 413
    assert upload_response.status_code != 413


def test_oversized_body_is_rejected(client):
    response = client.post(
        "/api/timetables",
        content=b"{}",
        headers={"Content-Length": "999999999", "Content-Type": "application/json"},
    )

    assert response.status_code == 413
    assert response.json()["details"]["code"] == "RequestTooLarge"
