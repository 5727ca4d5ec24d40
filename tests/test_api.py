"""Tests for REST API endpoints."""

import httpx
import pytest
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

from api.dependencies import get_pipeline, get_stats, get_validation_pipeline
from api.main import app, app_state
from api.middleware.rate_limiter import limiter, process_rate_limit
from api.routes import health
from api.services.stats import ProcessingStats
from core.llm_provider import MockGenerationProvider
from core.pipeline import TranscriptPipeline
from config import get_settings, get_settings_for_testing
from exceptions import ProviderConnectionError
from tests.conftest import CHEST_PAIN_TRANSCRIPT, CODING_JSON, HEADACHE_TRANSCRIPT, NOTE_JSON


@pytest.fixture
def stats():
    return ProcessingStats()


@pytest.fixture
def install(settings, stats):
    """Install a pipeline around the given provider and return a TestClient."""
    limiter.enabled = False

    def _install(provider):
        pipeline = TranscriptPipeline(settings=settings, provider=provider)
        app.dependency_overrides[get_pipeline] = lambda: pipeline
        app.dependency_overrides[get_validation_pipeline] = lambda: pipeline
        app.dependency_overrides[get_stats] = lambda: stats
        return TestClient(app)

    yield _install
    app.dependency_overrides.clear()
    limiter.enabled = True


@pytest.fixture
def client(install):
    return install(MockGenerationProvider([NOTE_JSON, CODING_JSON]))


def test_root(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert resp.json()["endpoints"]["process"] == "/api/v1/transcripts/process"


def test_process_success(client):
    resp = client.post("/api/v1/transcripts/process", json={"transcript": HEADACHE_TRANSCRIPT})
    assert resp.status_code == 200
    data = resp.json()
    assert data["success"] is True
    assert "processed_at" in data
    assert data["safety_flags"]["high_risk"] is False
    assert [entry["step"] for entry in data["decision_log"]][-1] == "Processing Complete"
    assert set(data) >= {
        "soap_note", "coding_suggestions", "safety_flags",
        "decision_log", "prompts_used", "processing_time_ms",
    }


def test_process_high_risk(client):
    resp = client.post("/api/v1/transcripts/process", json={"transcript": CHEST_PAIN_TRANSCRIPT})
    assert resp.status_code == 200
    assert resp.json()["safety_flags"]["emergency_terms"] == ["chest pain", "severe pain"]


@pytest.mark.parametrize("body", [{}, {"transcript": None}, {"transcript": "   "}])
def test_process_empty_is_400(client, body):
    resp = client.post("/api/v1/transcripts/process", json=body)
    assert resp.status_code == 400
    data = resp.json()
    assert data["success"] is False
    assert data["error_type"] == "EmptyTranscriptError"
    assert data["message"] == "Transcript is required"


def test_process_too_long_is_413(client):
    resp = client.post("/api/v1/transcripts/process", json={"transcript": "a" * 5121})
    assert resp.status_code == 413
    assert resp.json()["details"]["max_length"] == 5120


def test_provider_unreachable_is_503(install, stats):
    error = ProviderConnectionError("ollama", "http://localhost:11434", "Connection refused")
    client = install(MockGenerationProvider(error=error))

    resp = client.post("/api/v1/transcripts/process", json={"transcript": HEADACHE_TRANSCRIPT})
    assert resp.status_code == 503
    data = resp.json()
    assert data["error_type"] == "PipelineError"
    assert data["details"]["stage"] == "generating_note"
    assert data["decision_log"][-1]["step"] == "Error"
    assert stats.failed == 1


def test_other_stage_failure_is_502(install):
    client = install(MockGenerationProvider([NOTE_JSON], error=RuntimeError("quota"), fail_on_call=2))
    resp = client.post("/api/v1/transcripts/process", json={"transcript": HEADACHE_TRANSCRIPT})
    assert resp.status_code == 502
    assert resp.json()["details"]["stage"] == "generating_codes"


def test_validate(client):
    resp = client.post("/api/v1/transcripts/validate", json={"transcript": CHEST_PAIN_TRANSCRIPT})
    assert resp.status_code == 200
    data = resp.json()
    assert data["success"] is True
    assert data["validation"]["high_risk"] is True
    assert "validated_at" in data


def test_validate_applies_size_limit(client):
    resp = client.post("/api/v1/transcripts/validate", json={"transcript": "a" * 5121})
    assert resp.status_code == 413


def test_stats(client):
    client.post("/api/v1/transcripts/process", json={"transcript": HEADACHE_TRANSCRIPT})
    client.post("/api/v1/transcripts/process", json={"transcript": CHEST_PAIN_TRANSCRIPT})
    client.post("/api/v1/transcripts/process", json={"transcript": ""})

    resp = client.get("/api/v1/transcripts/stats")
    assert resp.status_code == 200
    data = resp.json()
    assert data["total_processed"] == 2
    assert data["safety_flags_triggered"] == 1
    assert data["failed"] == 0
    assert data["avg_processing_time_ms"] >= 0


async def test_process_async_client(install):
    install(MockGenerationProvider([NOTE_JSON, CODING_JSON]))
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        resp = await ac.post("/api/v1/transcripts/process", json={"transcript": HEADACHE_TRANSCRIPT})
    assert resp.status_code == 200
    assert resp.json()["coding_suggestions"]["icd_codes"][0]["code"] == "R51.9"


def test_health_reports_provider(client, monkeypatch):
    async def fake_check_ollama(settings):
        return health.ServiceCheckResult(status=health.ServiceStatus.HEALTHY, message="ok")

    monkeypatch.setattr(health, "check_ollama", fake_check_ollama)
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["provider"] in ("ollama", "openai")
    assert "api" in data["services"]


def _tags_transport(response: httpx.Response) -> httpx.MockTransport:
    return httpx.MockTransport(lambda request: response)


async def test_check_ollama_model_available():
    settings = get_settings_for_testing(llm_provider="ollama", ollama_model="llama3.1:8b")
    transport = _tags_transport(httpx.Response(200, json={"models": [{"name": "llama3.1:8b"}]}))

    result = await health.check_ollama(settings, transport=transport)

    assert result.status == health.ServiceStatus.HEALTHY
    assert result.latency_ms is not None


async def test_check_ollama_model_missing():
    settings = get_settings_for_testing(llm_provider="ollama", ollama_model="llama3.1:8b")
    transport = _tags_transport(httpx.Response(200, json={"models": [{"name": "mistral:7b"}]}))

    result = await health.check_ollama(settings, transport=transport)

    assert result.status == health.ServiceStatus.UNHEALTHY
    assert "ollama pull llama3.1:8b" in result.message


async def test_check_ollama_non_json_body_is_unhealthy():
    settings = get_settings_for_testing(llm_provider="ollama")
    transport = _tags_transport(httpx.Response(200, text="<html>proxy login</html>"))

    result = await health.check_ollama(settings, transport=transport)

    assert result.status == health.ServiceStatus.UNHEALTHY
    assert "unexpected body" in result.message


async def test_check_ollama_connection_error_is_unhealthy():
    settings = get_settings_for_testing(llm_provider="ollama")

    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    result = await health.check_ollama(settings, transport=httpx.MockTransport(refuse))

    assert result.status == health.ServiceStatus.UNHEALTHY
    assert "Cannot connect" in result.message


def test_validate_without_startup_pipeline(monkeypatch):
    monkeypatch.setitem(app_state, "pipeline", None)

    resp = TestClient(app).post("/api/v1/transcripts/validate", json={"transcript": CHEST_PAIN_TRANSCRIPT})

    assert resp.status_code == 200
    assert resp.json()["validation"]["high_risk"] is True


def test_process_without_startup_pipeline_is_503(monkeypatch):
    monkeypatch.setitem(app_state, "pipeline", None)
    limiter.enabled = False
    try:
        resp = TestClient(app).post("/api/v1/transcripts/process", json={"transcript": HEADACHE_TRANSCRIPT})
    finally:
        limiter.enabled = True

    assert resp.status_code == 503


def test_process_rate_limit_reads_settings():
    assert process_rate_limit() == get_settings().rate_limit_process


def test_limiter_attached_to_app():
    assert app.state.limiter is limiter
