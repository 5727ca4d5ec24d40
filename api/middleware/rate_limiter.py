"""
Rate Limiting Middleware
========================

Per-client limits for the generation endpoints, using slowapi.

Only POST /process is limited: it is the one route that calls a
generation provider. Validation, stats and health stay unlimited.
"""

import logging

from fastapi import FastAPI
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from config import get_settings


logger = logging.getLogger(__name__)

# Keyed by client IP
limiter = Limiter(key_func=get_remote_address)


def process_rate_limit() -> str:
    """
    Limit string for POST /process, e.g. "10/minute".

    Read from Settings.rate_limit_process (SAFESCRIBE_RATE_LIMIT_PROCESS)
    on every request, so tests and reloaded settings take effect.
    """
    return get_settings().rate_limit_process


def setup_rate_limiting(app: FastAPI) -> None:
    """
    Attach the limiter to the app and register the 429 handler.

    Routes opt in with:

        @limiter.limit(process_rate_limit)
        async def process_transcript(request: Request, ...):
    """
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    logger.info(f"Rate limiting enabled: /process at {process_rate_limit()}")
