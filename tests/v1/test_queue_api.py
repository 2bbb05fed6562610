"""End-to-end tests for queue, report and system endpoints."""

import httpx
import pytest
from fastapi import status
from fastapi.testclient import TestClient

POST = {
    "ID": 42,
    "title": "Olá",
    "content": "<p>Conteúdo</p>",
    "status": "publish",
    "categories": ["Notícias"],
}


@pytest.fixture()
def receiver_handler():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "a.example.com":
            return httpx.Response(200, json={"success": True})
        return httpx.Response(500)

    return handler


@pytest.fixture()
def configured(client: TestClient) -> TestClient:
    for name in ("a", "b"):
        r = client.post(
            "/api/v1/receivers/",
            json={"name": name.upper(), "url": f"https://{name}.example.com", "auth_token": name},
        )
        assert r.status_code == status.HTTP_201_CREATED
    return client


def test_enqueue_process_and_report(configured: TestClient, sleeps) -> None:
    client = configured

    r = client.post(
        "/api/v1/queue/jobs",
        json={"action": "send", "post": POST, "receiver_indices": [0, 1]},
    )
    assert r.status_code == status.HTTP_202_ACCEPTED
    assert r.json() == {"queued": True}
    assert client.get("/api/v1/queue/stats").json()["pending"] == 1

    r = client.post("/api/v1/queue/process")
    assert r.json() == {"processed": 1}

    report = client.get("/api/v1/reports/posts/42").json()
    assert report["summary"] == {"total": 2, "success": 1, "errors": 1, "success_rate": 50.0}
    assert [res["status"] for res in report["results"]] == ["ok", "fail"]
    assert sleeps == [0.5, 1.0]

    assert client.get("/api/v1/reports/posts/42/notification").status_code == 200
    assert client.get("/api/v1/reports/posts/42/notification").status_code == 404

    stats = client.get("/api/v1/queue/stats").json()
    assert stats["completed"] == 1 and stats["pending"] == 0

    general = client.get("/api/v1/reports/stats").json()
    assert general == {
        "total_reports": 1,
        "success_count": 1,
        "error_count": 1,
        "success_rate": 50.0,
    }
    assert len(client.get("/api/v1/reports/recent", params={"limit": 5}).json()) == 1


def test_enqueue_with_empty_selection_is_not_queued(configured: TestClient) -> None:
    r = configured.post("/api/v1/queue/jobs", json={"action": "send", "post": POST})
    assert r.status_code == status.HTTP_202_ACCEPTED
    assert r.json() == {"queued": False}


def test_enqueue_status_change_and_delete(configured: TestClient) -> None:
    draft = {**POST, "status": "draft"}
    r = configured.post(
        "/api/v1/queue/jobs",
        json={"action": "update_status", "post": draft, "receiver_indices": [0]},
    )
    assert r.json() == {"queued": True}

    r = configured.post(
        "/api/v1/queue/jobs",
        json={"action": "delete", "post": {"ID": 42}, "receiver_indices": [0]},
    )
    assert r.json() == {"queued": True}
    assert configured.get("/api/v1/queue/stats").json()["pending"] == 2


def test_enqueue_rejects_invalid_post(configured: TestClient) -> None:
    r = configured.post(
        "/api/v1/queue/jobs",
        json={"action": "send", "post": {"ID": 0}, "receiver_indices": [0]},
    )
    assert r.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_cancel_pending_job(configured: TestClient, context) -> None:
    configured.post(
        "/api/v1/queue/jobs",
        json={"action": "delete", "post": {"ID": 42}, "receiver_indices": [0]},
    )
    (job,) = context.queue.dequeue_batch()

    r = configured.post(f"/api/v1/queue/{job.id}/cancel")
    assert r.status_code == status.HTTP_200_OK
    assert r.json() == {"cancelled": True}

    assert configured.post(f"/api/v1/queue/{job.id}/cancel").status_code == 409
    assert configured.post("/api/v1/queue/9999/cancel").status_code == 404
    assert configured.get("/api/v1/queue/stats").json()["cancelled"] == 1


def test_cleanup_endpoint(configured: TestClient) -> None:
    r = configured.post("/api/v1/queue/cleanup")
    assert r.status_code == status.HTTP_200_OK
    assert set(r.json()) == {"jobs_removed", "logs_removed", "notifications_removed"}


def test_missing_report_returns_404(client: TestClient) -> None:
    assert client.get("/api/v1/reports/posts/1").status_code == 404
    assert client.get("/api/v1/reports/posts/1/notification").status_code == 404


def test_system_status(configured: TestClient) -> None:
    configured.post(
        "/api/v1/queue/jobs",
        json={"action": "delete", "post": {"ID": 42}, "receiver_indices": [0]},
    )
    configured.post("/api/v1/queue/process")

    data = configured.get("/api/v1/system/status").json()

    assert data["queue"]["completed"] == 1
    assert data["worker"] == {
        "enabled": False,
        "running": False,
        "interval_seconds": 60.0,
        "batch_size": 10,
    }
    assert data["encryption"] == {"enabled": True}
    assert data["delivery"]["attempts_by_operation"] == {"delete": 1}
    assert data["delivery"]["receivers"] == {
        "https://a.example.com": {"ok": 1, "fail": 0, "last_error": None}
    }
    assert "installation_secret" not in str(data)


def test_logs_endpoint_filters_by_level(configured: TestClient) -> None:
    configured.post(
        "/api/v1/queue/jobs",
        json={"action": "delete", "post": {"ID": 42}, "receiver_indices": [1]},
    )
    configured.post("/api/v1/queue/process")

    errors = configured.get("/api/v1/logs/", params={"level": "error"}).json()
    assert errors
    assert all(entry["level"] == "error" for entry in errors)
    assert configured.get("/api/v1/logs/", params={"level": "loud"}).status_code == 422
