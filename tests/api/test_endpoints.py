"""
API endpoint tests
"""

import pytest
from fastapi.testclient import TestClient
from api.main import app
from api.dependencies import get_db
from core.config import settings


@pytest.fixture
def client(session_factory, etl_service):
    """Create test client bound to the test database and service"""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.state.etl_service = etl_service

    # No context manager: startup would build a second service on the default database
    yield TestClient(app)

    app.dependency_overrides.clear()
    app.state.etl_service = None


@pytest.fixture
def csv_job(client, csv_file, target_db):
    response = client.post("/jobs", json={
        "name": "CSV orders",
        "source_type": "csv_file",
        "source_config": {"filePath": str(csv_file)},
        "transforms": [{"type": "filter", "config": {"field": "paid", "op": "eq", "value": True}}],
        "target_id": target_db.id,
    })
    assert response.status_code == 201
    return response.json()


def test_health_endpoint(client):
    """Test health endpoint returns database and job status"""
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()

    assert data["status"] == "healthy"
    assert data["database_connected"] is True
    assert data["total_jobs"] == 0
    assert data["running_jobs"] == []
    assert data["registered_sources"] == 2


def test_request_id_is_echoed(client):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})

    assert response.headers["X-Request-ID"] == "req-123"
    assert "X-API-Latency-ms" in response.headers


def test_list_sources(client):
    response = client.get("/sources")

    assert response.status_code == 200
    types = {source["type"] for source in response.json()}
    assert types == {"csv_file", "json_file"}


def test_discover_schema(client, csv_file):
    response = client.post("/sources/csv_file/discover", json={"config": {"filePath": str(csv_file)}})

    assert response.status_code == 200
    assert [f["name"] for f in response.json()["fields"]] == ["id", "customer", "total", "paid"]


def test_preview_accepts_json_text_config(client, csv_file):
    response = client.post(
        "/sources/csv_file/preview",
        json={"config": f'{{"filePath": "{csv_file}"}}'},
    )

    assert response.status_code == 200
    data = response.json()
    assert len(data["records"]) == 3
    assert data["records"][1]["customer"] == "bob"


def test_unknown_source_type_is_bad_request(client):
    response = client.post("/sources/ftp/discover", json={"config": {}})

    assert response.status_code == 400
    assert response.json()["error"] == "SourceNotFoundError"


def test_discovery_failure_is_bad_gateway(client, tmp_path):
    response = client.post(
        "/sources/csv_file/discover",
        json={"config": {"filePath": str(tmp_path / "missing.csv")}},
    )

    assert response.status_code == 502
    assert response.json()["error"] == "DiscoveryError"


def test_job_lifecycle(client, csv_job, target_db):
    job_id = csv_job["id"]
    assert csv_job["sync_mode"] == "replace"
    assert csv_job["trigger_type"] == "manual"

    assert [job["id"] for job in client.get("/jobs").json()] == [job_id]
    assert client.get(f"/jobs/{job_id}").json()["name"] == "CSV orders"

    response = client.post(f"/jobs/{job_id}/run", headers={"X-Request-ID": "run-1"})
    assert response.status_code == 200
    body = response.json()
    assert body["request_id"] == "run-1"
    assert body["result"]["status"] == "success"
    assert body["result"]["rows_read"] == 3
    assert body["result"]["rows_written"] == 2

    runs = client.get(f"/jobs/{job_id}/runs").json()
    assert len(runs) == 1
    assert runs[0]["status"] == "success"

    updated = client.put(f"/jobs/{job_id}", json={
        "name": "Renamed",
        "source_type": "csv_file",
        "source_config": csv_job["source_config"],
        "target_id": target_db.id,
        "sync_mode": "append",
    })
    assert updated.status_code == 200
    assert updated.json()["sync_mode"] == "append"

    assert client.delete(f"/jobs/{job_id}").status_code == 204
    assert client.get(f"/jobs/{job_id}").status_code == 404


def test_failed_run_returns_result(client, target_db, tmp_path):
    job = client.post("/jobs", json={
        "name": "Broken",
        "source_type": "json_file",
        "source_config": {"filePath": str(tmp_path / "missing.json")},
        "target_id": target_db.id,
    }).json()

    response = client.post(f"/jobs/{job['id']}/run")

    assert response.status_code == 502
    body = response.json()
    assert body["error"] == "DiscoveryError"
    assert body["result"]["status"] == "error"
    assert body["detail"].startswith("discover: read file")

    health = client.get("/health").json()
    assert health["failed_jobs"] == 1
    assert health["status"] == "unhealthy"


def test_run_while_running_is_conflict(client, csv_job, etl_service):
    etl_service.guard.try_acquire(csv_job["id"])
    try:
        response = client.post(f"/jobs/{csv_job['id']}/run")
    finally:
        etl_service.guard.release(csv_job["id"])

    assert response.status_code == 409
    assert response.json()["error"] == "JobAlreadyRunningError"
    assert client.get(f"/jobs/{csv_job['id']}/runs").json() == []


def test_invalid_transform_is_rejected(client):
    response = client.post("/jobs", json={
        "name": "Bad",
        "source_type": "csv_file",
        "transforms": [{"type": "pivot"}],
    })

    assert response.status_code == 400
    assert "unknown transform type" in response.json()["detail"]


def test_unknown_job_is_not_found(client):
    assert client.post("/jobs/nope/run").status_code == 404
    assert client.get("/jobs/nope/runs").status_code == 404


def test_api_key_required_when_configured(client, monkeypatch):
    monkeypatch.setattr(settings, "API_KEY", "secret")

    assert client.get("/jobs").status_code == 401
    assert client.get("/jobs", headers={"X-API-Key": "secret"}).status_code == 200
    assert client.get("/health").status_code == 200
