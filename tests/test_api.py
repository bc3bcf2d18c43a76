"""Tests for the admin, scheduler health and topic cache endpoints."""

from datetime import date
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from fetchnews.api.routes.scheduler_health import compute_health
from fetchnews.config.settings import Settings
from fetchnews.db import get_db_session
from fetchnews.db.types import utcnow
from fetchnews.main import app
from fetchnews.models import SchedulerExecution
from fetchnews.services.runtime_settings import RuntimeSettingsSnapshot
from fetchnews.services.scheduling import RunOutcome, RunStatus, execution_tracker, scheduled_summary_runner
from fetchnews.services.summaries import summary_generator, topic_cache

STATS = {
    "window_hours": 24,
    "total": 10,
    "completed": 9,
    "failed": 1,
    "running": 0,
    "pending": 0,
    "success_rate": 90.0,
    "avg_duration_ms": 1200,
}


async def override_db_session():
    yield MagicMock()


@pytest.fixture
def client(monkeypatch, test_settings):
    """Test client with the database stubbed out and admin auth open."""
    monkeypatch.setattr("fetchnews.api.middleware.auth.get_settings", lambda: test_settings)
    app.dependency_overrides[get_db_session] = override_db_session
    summary_generator.breaker.reset()
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestComputeHealth:

    def test_healthy(self):
        score, status, issues = compute_health(STATS, "CLOSED")

        assert score == 100
        assert status == "healthy"
        assert issues == []

    def test_no_executions_is_not_penalized(self):
        score, status, _ = compute_health({"success_rate": None, "running": 0}, "CLOSED")

        assert score == 100
        assert status == "healthy"

    def test_moderate_success_rate_warns(self):
        score, status, issues = compute_health({"success_rate": 85.0, "running": 0}, "CLOSED")

        assert score == 85
        assert status == "warning"
        assert issues == ["Moderate success rate: 85.0%"]

    def test_half_open_with_stuck_jobs_is_degraded(self):
        score, status, issues = compute_health({"success_rate": 95.0, "running": 6}, "HALF_OPEN")

        assert score == 60
        assert status == "degraded"
        assert len(issues) == 2

    def test_low_success_and_open_breaker_is_critical(self):
        score, status, _ = compute_health({"success_rate": 50.0, "running": 0}, "OPEN")

        assert score == 30
        assert status == "critical"


def test_health_check(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_scheduler_health(client):
    with patch.object(execution_tracker, "stats", AsyncMock(return_value=STATS)):
        response = client.get("/api/v1/scheduler/health?hours=12")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["health_score"] == 100
    assert data["metrics"]["circuit_breaker"]["state"] == "CLOSED"
    assert data["metrics"]["executions"]["total"] == 10


def test_execution_stats(client):
    by_user = [{"user_id": "u1", "total": 10, "completed": 9, "failed": 1, "avg_duration_ms": 1200}]

    with patch.object(execution_tracker, "stats", AsyncMock(return_value=STATS)), \
            patch.object(execution_tracker, "stats_by_user", AsyncMock(return_value=by_user)):
        response = client.get("/api/v1/scheduler/stats")

    assert response.status_code == 200
    data = response.json()
    assert data["overall"]["success_rate"] == 90.0
    assert data["by_user"][0]["user_id"] == "u1"
    assert data["period"] == "Last 24 hours"


def test_list_executions(client):
    now = utcnow()
    execution = SchedulerExecution(
        execution_id="u1-morning-2024-01-15",
        user_id="u1",
        summary_id="morning",
        scheduled_date=date(2024, 1, 15),
        status="failed",
        started_at=now,
        completed_at=now,
        duration_ms=15,
        topics=["tech"],
        error="model down",
        retry_count=2,
        created_at=now,
    )
    recent = AsyncMock(return_value=[execution])

    with patch.object(execution_tracker, "recent", recent):
        response = client.get("/api/v1/scheduler/executions?limit=5&status=failed")

    assert response.status_code == 200
    executions = response.json()["executions"]
    assert executions[0]["execution_id"] == "u1-morning-2024-01-15"
    assert executions[0]["retry_count"] == 2
    assert recent.await_args.kwargs["limit"] == 5


def test_circuit_breaker_reset(client):
    summary_generator.breaker.failure_count = 2

    response = client.post("/api/v1/scheduler/circuit-breaker/reset")

    assert response.status_code == 200
    data = response.json()
    assert data["state"] == "CLOSED"
    assert data["failure_count"] == 0
    assert data["description"].startswith("Normal operation")


def test_topic_cache_expire(client):
    with patch.object(topic_cache, "expire_now", AsyncMock(return_value=3)):
        response = client.post("/api/v1/topic-cache/expire")

    assert response.status_code == 200
    assert response.json() == {"deleted_entries": 3}


def test_topic_cache_stats(client):
    stats = {
        "total": 3,
        "by_topic": [{"topic": "tech", "count": 2}, {"topic": "sports", "count": 1}],
        "oldest_summary": None,
        "newest_summary": None,
    }

    with patch.object(topic_cache, "stats", AsyncMock(return_value=stats)):
        response = client.get("/api/v1/topic-cache/stats")

    assert response.status_code == 200
    assert response.json()["by_topic"][0] == {"topic": "tech", "count": 2}


def test_run_scheduled_summary(client):
    outcome = RunOutcome(
        status=RunStatus.COMPLETED,
        execution_id="u1-morning-2024-01-15",
        sections=[{"topic": "tech", "summary": "..."}],
    )
    run = AsyncMock(return_value=outcome)

    with patch.object(scheduled_summary_runner, "run", run):
        response = client.post(
            "/api/v1/admin/scheduled-summaries/run",
            json={
                "user_id": "u1",
                "summary_id": "morning",
                "scheduled_date": "2024-01-15",
                "topics": ["tech", "  "],
            },
        )

    assert response.status_code == 200
    assert response.json()["status"] == "completed"
    job = run.await_args.args[1]
    assert job.topics == ["tech"]
    assert job.scheduled_date == date(2024, 1, 15)


def test_unknown_task_is_404(client):
    response = client.post("/api/v1/admin/tasks/rebuild_everything")

    assert response.status_code == 404
    assert "reconcile_stale" in response.json()["detail"]["available"]


def test_runtime_settings_snapshot(client):
    runtime_settings = MagicMock()
    runtime_settings.get.return_value = RuntimeSettingsSnapshot(trending_topics=["ai"], version=4)
    app.state.runtime_settings = runtime_settings

    try:
        response = client.get("/api/v1/admin/settings")
    finally:
        del app.state.runtime_settings

    assert response.status_code == 200
    assert response.json()["trending_topics"] == ["ai"]
    assert response.json()["version"] == 4


def test_runtime_settings_unavailable(client):
    response = client.get("/api/v1/admin/settings")

    assert response.status_code == 503


def test_admin_token_required_when_configured(client, monkeypatch):
    monkeypatch.setattr(
        "fetchnews.api.middleware.auth.get_settings",
        lambda: Settings(admin_token="secret"),
    )

    rejected = client.get("/api/v1/admin/scheduler")
    accepted = client.get("/api/v1/admin/scheduler", headers={"X-Admin-Token": "secret"})

    assert rejected.status_code == 401
    assert accepted.status_code == 200
    assert accepted.json()["running"] is False
