"""
Custom Exceptions for SafeScribe
================================

This module defines a hierarchy of custom exceptions that:

1. **Categorize Errors**: Different exception types for different problems
2. **Carry Context**: Include relevant information for debugging
3. **Enable Recovery**: Allow calling code to handle specific errors
4. **Support APIs**: Map cleanly to HTTP status codes

Exception Hierarchy:
    SafeScribeError (base)
    ├── InputValidationError
    │   ├── EmptyTranscriptError
    │   └── TranscriptTooLongError
    ├── GenerationFailure
    │   ├── ProviderConnectionError
    │   ├── ProviderTimeoutError
    │   └── ModelNotFoundError
    ├── MalformedResponseError
    ├── PipelineError
    ├── ProcessingCancelledError
    └── ConfigurationError
"""

from typing import Optional


class SafeScribeError(Exception):
    """
    Base exception for all SafeScribe errors.

    All custom exceptions inherit from this, allowing code to catch
    all SafeScribe-related errors with a single except clause:

        try:
            pipeline.process(transcript)
        except SafeScribeError as e:
            logger.error(f"SafeScribe error: {e}")

    Attributes:
        message: Human-readable error description
        details: Additional context (dict for API responses)
        decision_log: Partial decision trail collected before the failure.
            Populated by the pipeline when a request fails mid-way.
    """

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None
    ):
        self.message = message
        self.details = details or {}
        self.decision_log: list = []
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """
        Convert to dictionary for API responses.

        The decision log is included when present so a reviewer can see
        how far processing got before it stopped.
        """
        payload = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details
        }
        if self.decision_log:
            payload["decision_log"] = [
                entry.model_dump() if hasattr(entry, "model_dump") else entry
                for entry in self.decision_log
            ]
        return payload


# =============================================================================
# Input Validation Errors
# =============================================================================

class InputValidationError(SafeScribeError):
    """Raised when a transcript is rejected before any generation call."""
    pass


class EmptyTranscriptError(InputValidationError):
    """Raised when the transcript is missing, not text, or blank."""

    def __init__(self, received_type: str = "str"):
        super().__init__(
            message="Transcript is required",
            details={"received_type": received_type}
        )


class TranscriptTooLongError(InputValidationError):
    """Raised when the transcript exceeds the configured size bound."""

    def __init__(self, length: int, max_length: int):
        super().__init__(
            message=f"Transcript too large: {length} characters (max: {max_length})",
            details={
                "length": length,
                "max_length": max_length
            }
        )


# =============================================================================
# Generation-Related Errors
# =============================================================================

class GenerationFailure(SafeScribeError):
    """
    Raised when the text-generation provider call itself fails.

    Covers transport errors, quota errors, timeouts and non-2xx responses.
    A provider that answers with unusable text does NOT raise this; see
    MalformedResponseError.
    """

    def __init__(
        self,
        reason: str,
        stage: str = "generation",
        details: Optional[dict] = None
    ):
        self.reason = reason
        self.stage = stage
        merged = {"reason": reason, "stage": stage}
        merged.update(details or {})
        super().__init__(
            message=f"{stage} failed: {reason}",
            details=merged
        )


class ProviderConnectionError(GenerationFailure):
    """Raised when we can't reach the generation provider."""

    def __init__(self, provider: str, url: str, original_error: str):
        super().__init__(
            reason=f"Cannot connect to {provider} at {url}: {original_error}",
            details={
                "provider": provider,
                "url": url,
                "original_error": original_error,
            }
        )


class ProviderTimeoutError(GenerationFailure):
    """Raised when the provider does not answer within the configured timeout."""

    def __init__(self, provider: str, timeout_seconds: float):
        super().__init__(
            reason=f"{provider} did not respond within {timeout_seconds}s",
            details={
                "provider": provider,
                "timeout_seconds": timeout_seconds
            }
        )


class ModelNotFoundError(GenerationFailure):
    """Raised when the requested model is not available on the provider."""

    def __init__(self, model_name: str, provider: str = "ollama"):
        hint = (
            f"Pull the model first: 'ollama pull {model_name}'"
            if provider == "ollama"
            else "Check the configured model name"
        )
        super().__init__(
            reason=f"Model '{model_name}' not found in {provider}",
            details={
                "model_name": model_name,
                "provider": provider,
                "hint": hint
            }
        )


class MalformedResponseError(SafeScribeError):
    """
    Raised when provider output cannot be parsed into the expected shape.

    Never surfaces to callers: the generators catch it and substitute
    their documented fallback record.
    """

    def __init__(self, expected: str, reason: str, response_preview: str = ""):
        preview = response_preview[:100] + "..." if len(response_preview) > 100 else response_preview
        super().__init__(
            message=f"Could not parse {expected} from provider response: {reason}",
            details={
                "expected": expected,
                "reason": reason,
                "response_preview": preview
            }
        )


# =============================================================================
# Pipeline Errors
# =============================================================================

class PipelineError(SafeScribeError):
    """Raised when a pipeline stage fails; carries the stage name."""

    def __init__(self, stage: str, reason: str):
        self.stage = stage
        self.reason = reason
        super().__init__(
            message=f"Failed to process transcript during {stage}: {reason}",
            details={
                "stage": stage,
                "reason": reason
            }
        )


class ProcessingCancelledError(SafeScribeError):
    """Raised when the caller abandons a request between stages."""

    def __init__(self, stage: str):
        self.stage = stage
        super().__init__(
            message=f"Processing cancelled before {stage}",
            details={"stage": stage}
        )


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(SafeScribeError):
    """Raised when there's a configuration problem."""

    def __init__(self, setting_name: str, issue: str):
        super().__init__(
            message=f"Configuration error for '{setting_name}': {issue}",
            details={
                "setting_name": setting_name,
                "issue": issue
            }
        )
