"""
Configuration Management for SafeScribe
=======================================

This module handles all application configuration using the Settings pattern
with Pydantic. This approach provides:

1. **Environment Variable Support**: Easy deployment configuration
2. **Validation**: Catches configuration errors at startup
3. **Type Safety**: IDE support and runtime validation
4. **Defaults**: Sensible defaults for development

Design Pattern: Singleton-like Settings
We use a cached function to ensure we only load settings once,
but still allow for easy testing with different configurations.
"""

import logging
from functools import lru_cache
from typing import Literal, Optional
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Environment variables are prefixed with SAFESCRIBE_ to avoid conflicts.
    Example: SAFESCRIBE_OLLAMA_MODEL=llama3.2

    Priority order (highest to lowest):
    1. Environment variables
    2. .env file
    3. Default values defined here
    """

    # =================================================================
    # Provider Selection
    # =================================================================
    llm_provider: Literal["ollama", "openai"] = Field(
        default="ollama",
        description="""
        Text-generation backend used for both the note and coding stages.

        - ollama: Local model through LangChain (data stays on the machine)
        - openai: Hosted chat completions API (requires an API key)
        """
    )

    # =================================================================
    # Ollama Configuration
    # =================================================================
    ollama_base_url: str = Field(
        default="http://localhost:11434",
        description="Ollama server URL. Default is local installation."
    )

    ollama_model: str = Field(
        default="llama3.2",
        description="Ollama model for note and coding generation"
    )

    ollama_timeout: int = Field(
        default=120,
        description="Timeout in seconds for Ollama requests"
    )

    ollama_context_window: int = Field(
        default=4096,
        description="Context window size for Ollama model (tokens)"
    )

    ollama_json_mode: bool = Field(
        default=True,
        description="""
        Ask Ollama for JSON-constrained output.

        The response is still parsed defensively; this only makes
        well-formed JSON more likely.
        """
    )

    # =================================================================
    # OpenAI Configuration
    # =================================================================
    openai_api_key: Optional[str] = Field(
        default=None,
        description="API key for the OpenAI provider"
    )

    openai_model: str = Field(
        default="gpt-4o-mini",
        description="Chat model used when llm_provider is 'openai'"
    )

    openai_timeout: float = Field(
        default=60.0,
        description="Timeout in seconds for OpenAI requests"
    )

    openai_json_mode: bool = Field(
        default=True,
        description="Request response_format=json_object from OpenAI"
    )

    # =================================================================
    # Generation Parameters
    # =================================================================
    note_max_tokens: int = Field(
        default=1200,
        description="Maximum output tokens for the SOAP note stage"
    )

    note_temperature: float = Field(
        default=0.3,
        ge=0.0,
        le=2.0,
        description="""
        Temperature for the SOAP note stage (0.0 - 2.0)

        Low values favour consistent, deterministic documentation.
        """
    )

    coding_max_tokens: int = Field(
        default=800,
        description="Maximum output tokens for the coding stage"
    )

    coding_temperature: float = Field(
        default=0.2,
        ge=0.0,
        le=2.0,
        description="Temperature for the coding stage (0.0 - 2.0)"
    )

    # =================================================================
    # Processing Limits
    # =================================================================
    max_transcript_chars: int = Field(
        default=5120,
        gt=0,
        description="Maximum transcript length in characters (5KB)"
    )

    max_icd_codes: int = Field(
        default=3,
        ge=1,
        description="Maximum ICD-10 suggestions kept, ranked by relevance"
    )

    max_cpt_codes: int = Field(
        default=3,
        ge=0,
        description="Maximum CPT suggestions kept"
    )

    # =================================================================
    # API Configuration
    # =================================================================
    api_host: str = Field(
        default="127.0.0.1",
        description="Host the API server binds to"
    )

    api_port: int = Field(
        default=8000,
        description="Port the API server listens on"
    )

    api_debug: bool = Field(
        default=False,
        description="Expose unexpected error details in API responses"
    )

    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Origins allowed to call the API from a browser"
    )

    cors_allow_credentials: bool = Field(
        default=True,
        description="Allow credentials on CORS requests"
    )

    rate_limit_process: str = Field(
        default="30/minute",
        description="slowapi rate limit applied to the process endpoint"
    )

    # =================================================================
    # Output Configuration
    # =================================================================
    output_dir: str = Field(
        default="./output",
        description="Directory for saved results (CLI)"
    )

    # =================================================================
    # Logging Configuration
    # =================================================================
    log_level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR, CRITICAL"
    )

    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Python logging format string"
    )

    class Config:
        """Pydantic configuration for Settings."""
        env_prefix = "SAFESCRIBE_"  # All env vars start with SAFESCRIBE_
        env_file = ".env"  # Load from .env file if present
        env_file_encoding = "utf-8"
        case_sensitive = False  # SAFESCRIBE_OLLAMA_MODEL = safescribe_ollama_model
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached singleton).

    Using lru_cache ensures we only parse environment variables once.
    For testing, you can clear the cache:
        get_settings.cache_clear()

    Returns:
        Settings: Application settings instance
    """
    return Settings()


def get_settings_for_testing(**overrides) -> Settings:
    """
    Create a Settings instance with custom values for testing.

    Example:
        settings = get_settings_for_testing(
            max_transcript_chars=100,
            llm_provider="openai"
        )

    Args:
        **overrides: Setting values to override

    Returns:
        Settings: New Settings instance with overrides applied
    """
    return Settings(**overrides)


def configure_logging(settings: Optional[Settings] = None, level: Optional[int] = None) -> None:
    """
    Configure root logging from settings.

    Args:
        settings: Settings providing log_level and log_format
        level: Explicit level that overrides settings.log_level (CLI flags)
    """
    settings = settings or get_settings()
    if level is None:
        level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=settings.log_format)
