"""
Health Check Endpoints
======================

Reports configuration state and generation provider reachability.
"""

import logging
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional

import httpx
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from config import Settings, get_settings


# Set up module logger
logger = logging.getLogger(__name__)

router = APIRouter()


class ServiceStatus(str, Enum):
    """Service health status enumeration."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class ServiceCheckResult(BaseModel):
    """Result of an individual service health check."""
    status: ServiceStatus = Field(description="Service health status")
    message: Optional[str] = Field(None, description="Status message or error details")
    latency_ms: Optional[float] = Field(None, description="Check latency in milliseconds")


class HealthCheckResponse(BaseModel):
    """Health check response."""
    status: ServiceStatus = Field(description="Overall health status")
    timestamp: str = Field(description="ISO 8601 timestamp of the health check")
    provider: str = Field(description="Configured generation provider")
    model: str = Field(description="Configured model name")
    pipeline_loaded: bool = Field(description="Whether the pipeline was created at startup")
    services: Dict[str, ServiceCheckResult] = Field(description="Individual service statuses")


async def check_ollama(
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ServiceCheckResult:
    """
    Check Ollama connectivity and model availability.

    Uses the lightweight /api/tags listing instead of running inference.
    """
    start_time = time.perf_counter()
    try:
        async with httpx.AsyncClient(timeout=2.0, transport=transport) as client:
            response = await client.get(f"{settings.ollama_base_url}/api/tags")
    except httpx.TimeoutException:
        return ServiceCheckResult(
            status=ServiceStatus.UNHEALTHY,
            message=f"Ollama connection timeout (2s) at {settings.ollama_base_url}"
        )
    except httpx.HTTPError as e:
        logger.warning(f"Cannot connect to Ollama at {settings.ollama_base_url}: {e}")
        return ServiceCheckResult(
            status=ServiceStatus.UNHEALTHY,
            message=f"Cannot connect to Ollama at {settings.ollama_base_url}"
        )

    if response.status_code != 200:
        return ServiceCheckResult(
            status=ServiceStatus.UNHEALTHY,
            message=f"Ollama API returned status {response.status_code}"
        )

    try:
        models = response.json().get("models", [])
    except (ValueError, AttributeError):
        return ServiceCheckResult(
            status=ServiceStatus.UNHEALTHY,
            message="Ollama /api/tags returned an unexpected body"
        )
    model_names = [m.get("name", "").split(":")[0] for m in models]
    configured_base = settings.ollama_model.split(":")[0]

    if not any(configured_base in name for name in model_names):
        return ServiceCheckResult(
            status=ServiceStatus.UNHEALTHY,
            message=(
                f"Model '{settings.ollama_model}' not found. "
                f"Run: ollama pull {settings.ollama_model}"
            )
        )

    latency_ms = (time.perf_counter() - start_time) * 1000
    return ServiceCheckResult(
        status=ServiceStatus.HEALTHY,
        message=f"Model '{settings.ollama_model}' available",
        latency_ms=round(latency_ms, 2)
    )


def check_openai(settings: Settings) -> ServiceCheckResult:
    """Configuration-only check; no request is sent to the hosted API."""
    if not settings.openai_api_key:
        return ServiceCheckResult(
            status=ServiceStatus.UNHEALTHY,
            message="SAFESCRIBE_OPENAI_API_KEY is not set"
        )
    return ServiceCheckResult(
        status=ServiceStatus.HEALTHY,
        message=f"API key configured for model '{settings.openai_model}'"
    )


@router.get(
    "/health",
    response_model=HealthCheckResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check",
)
async def health_check(settings: Settings = Depends(get_settings)) -> HealthCheckResponse:
    """
    Report pipeline and provider status.

    Always returns HTTP 200; use the 'status' field to determine health.
    """
    from api.main import app_state

    pipeline_loaded = app_state.get("pipeline") is not None

    if settings.llm_provider == "openai":
        provider_check = check_openai(settings)
        model = settings.openai_model
    else:
        provider_check = await check_ollama(settings)
        model = settings.ollama_model

    services = {
        "api": ServiceCheckResult(status=ServiceStatus.HEALTHY, message="API is running"),
        settings.llm_provider: provider_check,
    }

    if not pipeline_loaded:
        overall = ServiceStatus.UNHEALTHY
    elif provider_check.status != ServiceStatus.HEALTHY:
        # Requests fail until the provider is back; validation still works
        overall = ServiceStatus.DEGRADED
    else:
        overall = ServiceStatus.HEALTHY

    logger.info(f"Health check completed: {overall.value}")

    return HealthCheckResponse(
        status=overall,
        timestamp=datetime.now(timezone.utc).isoformat(),
        provider=settings.llm_provider,
        model=model,
        pipeline_loaded=pipeline_loaded,
        services=services,
    )
