"""
FastAPI Main Application
========================

Main FastAPI application instance with middleware, routes, and lifespan management.
"""

import logging
from contextlib import asynccontextmanager
from typing import Dict, Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.middleware.error_handler import error_handler_middleware
from api.middleware.rate_limiter import setup_rate_limiting
from api.routes import health, transcripts
from api.services.stats import ProcessingStats
from config import configure_logging, get_settings
from core.pipeline import create_pipeline
from exceptions import ConfigurationError


logger = logging.getLogger(__name__)

# Global application state - stores pipeline and other singletons
app_state: Dict[str, Any] = {}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan event handler for startup and shutdown.

    Startup:
    - Creates the pipeline and resolves the generation provider so that
      configuration errors are reported immediately
    - Stores references in app_state for dependency injection

    Shutdown:
    - Clears state
    """
    settings = get_settings()
    configure_logging(settings)

    logger.info("Starting SafeScribe API...")
    logger.info(f"Generation provider: {settings.llm_provider}")

    app_state["settings"] = settings
    app_state["stats"] = ProcessingStats()

    try:
        pipeline = create_pipeline(settings)
        # Resolve now; raises ConfigurationError on a bad provider setup
        pipeline.provider
        app_state["pipeline"] = pipeline
        logger.info("Pipeline loaded successfully")
        logger.info(f"Docs available at http://{settings.api_host}:{settings.api_port}/api/docs")
    except ConfigurationError as e:
        logger.error(f"Failed to initialize pipeline: {e.message}")
        # Store None - health check will report unhealthy
        app_state["pipeline"] = None

    yield  # Application runs here

    logger.info("Shutting down SafeScribe API...")
    app_state.clear()


# Create FastAPI application
app = FastAPI(
    title="SafeScribe API",
    description="""
    Clinical documentation assistant - Convert consultation transcripts to
    safety-reviewed SOAP notes with coding suggestions.

    ## Features
    - Emergency keyword detection
    - SOAP note generation with problem list
    - ICD-10 / CPT coding suggestions
    - Absolute medical claim softening
    - Decision log for every request

    All output is a draft for clinician review.
    """,
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json"
)


# =============================================================================
# Middleware Setup (order matters - first added = outermost)
# =============================================================================

settings = get_settings()

# CORS middleware - allow cross-origin requests
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Global error handling middleware
app.middleware("http")(error_handler_middleware)

# Rate limiting setup
setup_rate_limiting(app)


# =============================================================================
# Router Registration
# =============================================================================

app.include_router(
    health.router,
    prefix="/api/v1",
    tags=["health"]
)

app.include_router(
    transcripts.router,
    prefix="/api/v1/transcripts",
    tags=["transcripts"]
)


# =============================================================================
# Root Endpoint
# =============================================================================

@app.get("/", tags=["root"])
async def root():
    """API information and links."""
    return {
        "message": "SafeScribe API",
        "description": "Transcript to safety-reviewed SOAP note with coding suggestions",
        "version": "1.0.0",
        "docs": "/api/docs",
        "redoc": "/api/redoc",
        "health": "/api/v1/health",
        "endpoints": {
            "process": "/api/v1/transcripts/process",
            "validate": "/api/v1/transcripts/validate",
            "stats": "/api/v1/transcripts/stats"
        }
    }
