"""
Text-Generation Providers for SafeScribe
========================================

The pipeline talks to text-generation backends through one narrow
interface: system instruction + user prompt + output bound + temperature
in, raw text out. Nothing here parses JSON; callers must assume the text
is arbitrary.

Architecture Pattern: Strategy
------------------------------
- OllamaGenerationProvider: Local LLM via LangChain (default)
- OpenAIGenerationProvider: Hosted chat completions
- MockGenerationProvider: Deterministic stand-in for tests and dry runs

Every provider failure (transport, quota, timeout, unknown model) is
raised as a GenerationFailure subclass.
"""

import asyncio
import logging
from typing import Optional, Protocol, Sequence, Union

import httpx
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_core.output_parsers import StrOutputParser
from langchain_core.prompts import ChatPromptTemplate
from langchain_ollama import OllamaLLM
import openai

from config import Settings, get_settings
from exceptions import (
    ConfigurationError,
    GenerationFailure,
    ModelNotFoundError,
    ProviderConnectionError,
    ProviderTimeoutError,
)


# Set up module logger
logger = logging.getLogger(__name__)


class GenerationProvider(Protocol):
    """
    Protocol for text-generation backends.

    Implementations return the raw completion text or raise
    GenerationFailure. They never validate the text.
    """

    name: str

    def generate(
        self,
        system: str,
        prompt: str,
        max_tokens: int,
        temperature: float,
    ) -> str:
        """Generate text synchronously."""
        ...

    async def agenerate(
        self,
        system: str,
        prompt: str,
        max_tokens: int,
        temperature: float,
    ) -> str:
        """Generate text without blocking the event loop."""
        ...


def _build_prompt(system: str, prompt: str) -> ChatPromptTemplate:
    # Message objects are not templated, so JSON braces in prompts are safe.
    return ChatPromptTemplate.from_messages([
        SystemMessage(content=system),
        HumanMessage(content=prompt),
    ])


class OllamaGenerationProvider:
    """
    Generation provider backed by a local Ollama server through LangChain.

    One OllamaLLM instance is kept per (max_tokens, temperature) pair; the
    pipeline only ever uses two.
    """

    name = "ollama"

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._llms: dict[tuple[int, float], OllamaLLM] = {}

        logger.info(
            f"OllamaGenerationProvider initialized with model: {self.settings.ollama_model}"
        )

    def _llm_for(self, max_tokens: int, temperature: float) -> OllamaLLM:
        key = (max_tokens, temperature)
        if key not in self._llms:
            logger.debug(
                f"Creating Ollama LLM {self.settings.ollama_model} at "
                f"{self.settings.ollama_base_url} (num_predict={max_tokens}, temperature={temperature})"
            )
            self._llms[key] = OllamaLLM(
                model=self.settings.ollama_model,
                base_url=self.settings.ollama_base_url,
                temperature=temperature,
                num_predict=max_tokens,
                num_ctx=self.settings.ollama_context_window,
                format="json" if self.settings.ollama_json_mode else "",
                client_kwargs={"timeout": self.settings.ollama_timeout},
            )
        return self._llms[key]

    def generate(self, system: str, prompt: str, max_tokens: int, temperature: float) -> str:
        chain = _build_prompt(system, prompt) | self._llm_for(max_tokens, temperature) | StrOutputParser()
        try:
            return chain.invoke({})
        except Exception as e:
            raise self._translate_error(e) from e

    async def agenerate(self, system: str, prompt: str, max_tokens: int, temperature: float) -> str:
        chain = _build_prompt(system, prompt) | self._llm_for(max_tokens, temperature) | StrOutputParser()
        try:
            return await chain.ainvoke({})
        except Exception as e:
            raise self._translate_error(e) from e

    def _translate_error(self, error: Exception) -> GenerationFailure:
        if isinstance(error, GenerationFailure):
            return error
        if isinstance(error, httpx.TimeoutException):
            return ProviderTimeoutError(self.name, self.settings.ollama_timeout)

        error_msg = str(error)
        lowered = error_msg.lower()
        if isinstance(error, httpx.ConnectError) or "connection" in lowered or "refused" in lowered:
            return ProviderConnectionError(
                provider=self.name,
                url=self.settings.ollama_base_url,
                original_error=error_msg
            )
        if "not found" in lowered or "pull" in lowered:
            return ModelNotFoundError(self.settings.ollama_model, provider=self.name)

        logger.error(f"Ollama generation failed: {error_msg}")
        return GenerationFailure(reason=error_msg or error.__class__.__name__)


class OpenAIGenerationProvider:
    """Generation provider backed by the OpenAI chat completions API."""

    name = "openai"

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[openai.OpenAI] = None,
        async_client: Optional[openai.AsyncOpenAI] = None,
    ):
        self.settings = settings or get_settings()
        if client is None and async_client is None and not self.settings.openai_api_key:
            raise ConfigurationError("openai_api_key", "required when llm_provider is 'openai'")

        self._client = client
        self._async_client = async_client

        logger.info(
            f"OpenAIGenerationProvider initialized with model: {self.settings.openai_model}"
        )

    @property
    def client(self) -> openai.OpenAI:
        if self._client is None:
            self._client = openai.OpenAI(
                api_key=self.settings.openai_api_key,
                timeout=self.settings.openai_timeout,
            )
        return self._client

    @property
    def async_client(self) -> openai.AsyncOpenAI:
        if self._async_client is None:
            self._async_client = openai.AsyncOpenAI(
                api_key=self.settings.openai_api_key,
                timeout=self.settings.openai_timeout,
            )
        return self._async_client

    def _request(self, system: str, prompt: str, max_tokens: int, temperature: float) -> dict:
        request = {
            "model": self.settings.openai_model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if self.settings.openai_json_mode:
            request["response_format"] = {"type": "json_object"}
        return request

    def generate(self, system: str, prompt: str, max_tokens: int, temperature: float) -> str:
        try:
            completion = self.client.chat.completions.create(
                **self._request(system, prompt, max_tokens, temperature)
            )
        except openai.OpenAIError as e:
            raise self._translate_error(e) from e
        return completion.choices[0].message.content or ""

    async def agenerate(self, system: str, prompt: str, max_tokens: int, temperature: float) -> str:
        try:
            completion = await self.async_client.chat.completions.create(
                **self._request(system, prompt, max_tokens, temperature)
            )
        except openai.OpenAIError as e:
            raise self._translate_error(e) from e
        return completion.choices[0].message.content or ""

    def _translate_error(self, error: openai.OpenAIError) -> GenerationFailure:
        # APITimeoutError subclasses APIConnectionError, so check it first
        if isinstance(error, openai.APITimeoutError):
            return ProviderTimeoutError(self.name, self.settings.openai_timeout)
        if isinstance(error, openai.APIConnectionError):
            return ProviderConnectionError(
                provider=self.name,
                url=str(self.client.base_url) if self._client else "api.openai.com",
                original_error=str(error)
            )
        if isinstance(error, openai.NotFoundError):
            return ModelNotFoundError(self.settings.openai_model, provider=self.name)

        logger.error(f"OpenAI generation failed: {error}")
        details = {}
        if isinstance(error, openai.APIStatusError):
            details["status_code"] = error.status_code
        return GenerationFailure(reason=str(error), details=details)


class MockGenerationProvider:
    """
    Scripted provider for testing and offline runs.

    Responses are returned in order; the last one repeats once the script
    runs out. When ``error`` is set it is raised on every call, or only on
    call number ``fail_on_call`` (1-based) if that is given.
    """

    name = "mock"

    def __init__(
        self,
        responses: Union[str, Sequence[str], None] = None,
        error: Optional[Exception] = None,
        fail_on_call: Optional[int] = None,
    ):
        if responses is None:
            responses = ["{}"]
        elif isinstance(responses, str):
            responses = [responses]
        self.responses = list(responses)
        self.error = error
        self.fail_on_call = fail_on_call
        self.calls: list[dict] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def generate(self, system: str, prompt: str, max_tokens: int, temperature: float) -> str:
        self.calls.append({
            "system": system,
            "prompt": prompt,
            "max_tokens": max_tokens,
            "temperature": temperature,
        })
        if self.error is not None and self.fail_on_call in (None, self.call_count):
            raise self.error
        index = min(self.call_count, len(self.responses)) - 1
        return self.responses[index]

    async def agenerate(self, system: str, prompt: str, max_tokens: int, temperature: float) -> str:
        # Yield to the loop like a real network call would
        await asyncio.sleep(0)
        return self.generate(system, prompt, max_tokens, temperature)


# =============================================================================
# Factory Function
# =============================================================================

def create_generation_provider(
    settings: Optional[Settings] = None,
    use_mock: bool = False,
    mock_responses: Union[str, Sequence[str], None] = None,
) -> GenerationProvider:
    """
    Factory function to create the configured generation provider.

    Args:
        settings: Application settings
        use_mock: If True, returns a mock provider
        mock_responses: Scripted responses for the mock provider

    Returns:
        A generation provider instance

    Raises:
        ConfigurationError: If the configured provider cannot be created
    """
    settings = settings or get_settings()

    if use_mock:
        logger.info("Creating mock generation provider")
        return MockGenerationProvider(responses=mock_responses)

    if settings.llm_provider == "openai":
        logger.info("Creating OpenAI generation provider")
        return OpenAIGenerationProvider(settings=settings)

    logger.info("Creating Ollama generation provider")
    return OllamaGenerationProvider(settings=settings)
