"""LLM Service for model-agnostic document generation using LiteLLM.

This is the only component that talks to a language-model provider. It streams
text fragments and retries or falls back according to configuration.
"""

import os
from typing import Any, AsyncIterator, Dict, List, Optional

from litellm import acompletion
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from document_copilot.config import Settings, get_settings
from document_copilot.utils.errors import LLMError
from document_copilot.utils.logging import get_logger

logger = get_logger("llm_service")


def extract_text(chunk: Any) -> str:
    """Pull the text fragment out of a LiteLLM streaming chunk.

    Handles both dict chunks ({"choices": [{"delta": {"content": "..."}}]})
    and the attribute-style objects LiteLLM returns.
    """
    if isinstance(chunk, dict):
        choices = chunk.get("choices") or []
        if not choices:
            return ""
        choice = choices[0]
        delta = choice.get("delta") or choice.get("message") or {}
        return delta.get("content") or ""

    choices = getattr(chunk, "choices", None) or []
    if not choices:
        return ""
    choice = choices[0]
    delta = getattr(choice, "delta", None) or getattr(choice, "message", None)
    return getattr(delta, "content", None) or ""


class LLMService:
    """Service for LLM model routing and streamed generation.

    It handles:
    - Model selection (default or per-request override)
    - Retry logic with exponential backoff
    - Automatic fallback when the primary model fails before producing output
    """

    def __init__(self, settings: Optional[Settings] = None):
        """Initialize LLM service with configuration."""
        self.settings = settings or get_settings()
        self.default_model = self.settings.llm.default_model_name
        self.fallback_model = self.settings.llm.fallback_model_name
        self.enable_fallbacks = self.settings.llm.enable_fallbacks

        self._configure_litellm_environment()

    def _configure_litellm_environment(self) -> None:
        """Export configured provider keys so LiteLLM can read them from the environment."""
        llm = self.settings.llm
        if llm.openai_api_key:
            os.environ["OPENAI_API_KEY"] = llm.openai_api_key
        if llm.anthropic_api_key:
            os.environ["ANTHROPIC_API_KEY"] = llm.anthropic_api_key
        if llm.azure_api_key:
            os.environ["AZURE_API_KEY"] = llm.azure_api_key
        if llm.azure_api_base:
            os.environ["AZURE_API_BASE"] = llm.azure_api_base
        if llm.azure_api_version:
            os.environ["AZURE_API_VERSION"] = llm.azure_api_version

        logger.debug("LiteLLM environment variables configured")

    def _validate_model_configuration(self, model: str) -> None:
        """Validate that the required API keys are configured for the model.

        Raises:
            LLMError: If required API keys are not configured.
        """
        llm = self.settings.llm
        if model.startswith("azure/") and not llm.has_azure_openai:
            raise LLMError(
                message=f"Azure OpenAI API key or base URL not configured for model {model}",
                model=model,
                details={"required": ["AZURE_API_KEY", "AZURE_API_BASE"]},
            )
        if model.startswith("anthropic/") and not llm.has_anthropic:
            raise LLMError(
                message=f"Anthropic API key not configured for model {model}",
                model=model,
                details={"required": ["ANTHROPIC_API_KEY"]},
            )
        if model.startswith("openai/") and not llm.has_openai:
            raise LLMError(
                message=f"OpenAI API key not configured for model {model}",
                model=model,
                details={"required": ["OPENAI_API_KEY"]},
            )

    async def _call_llm(
        self,
        model: str,
        messages: List[Dict[str, str]],
        temperature: float,
        max_tokens: Optional[int] = None,
        **kwargs,
    ) -> Any:
        """Open a streaming completion, retrying per LLM_MAX_RETRIES.

        Returns:
            The async iterator LiteLLM returns for stream=True.

        Raises:
            LLMError: If the call still fails after retries.
        """
        self._validate_model_configuration(model)

        litellm_params: Dict[str, Any] = {
            "model": model,
            "messages": messages,
            "stream": True,
            "temperature": temperature,
        }
        if max_tokens:
            litellm_params["max_tokens"] = max_tokens
        litellm_params.update(kwargs)

        async for attempt in AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(self.settings.llm.llm_max_retries),
            wait=wait_exponential(multiplier=1, min=2, max=10),
            retry=retry_if_exception_type(LLMError),
        ):
            with attempt:
                try:
                    logger.debug(f"Calling LLM model: {model}")
                    return await acompletion(**litellm_params)
                except Exception as e:
                    logger.error(
                        f"LLM call failed for model {model}: {e}",
                        extra={"model": model, "error_type": type(e).__name__},
                    )
                    raise LLMError(
                        message=f"LLM call failed: {str(e)}",
                        model=model,
                        details={"error_type": type(e).__name__, "error_message": str(e)},
                    ) from e
        raise LLMError(message="LLM retries exhausted", model=model)

    async def _stream_model(
        self,
        model: str,
        messages: List[Dict[str, str]],
        temperature: float,
        max_tokens: Optional[int],
        **kwargs,
    ) -> AsyncIterator[str]:
        response = await self._call_llm(model, messages, temperature, max_tokens, **kwargs)
        try:
            async for chunk in response:
                text = extract_text(chunk)
                if text:
                    yield text
        except LLMError:
            raise
        except Exception as e:
            raise LLMError(
                message=f"LLM stream failed: {str(e)}",
                model=model,
                details={"error_type": type(e).__name__, "error_message": str(e)},
            ) from e
        finally:
            aclose = getattr(response, "aclose", None)
            if aclose is not None:
                await aclose()

    async def stream_completion(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        **kwargs,
    ) -> AsyncIterator[str]:
        """Stream text fragments for the messages, with automatic fallback.

        The fallback model is only tried when the primary fails before any
        fragment was produced, so a client never sees two partial answers.

        Yields:
            Non-empty text fragments in provider order.

        Raises:
            LLMError: If the primary (and fallback, when enabled) model fails.
        """
        primary_model = model or self.default_model
        if temperature is None:
            temperature = self.settings.llm.llm_temperature

        produced = False
        try:
            logger.info(f"Attempting LLM call with primary model: {primary_model}")
            async for text in self._stream_model(primary_model, messages, temperature, max_tokens, **kwargs):
                produced = True
                yield text
            logger.info(f"Successfully generated response using model: {primary_model}")
            return
        except LLMError as e:
            if produced or not (
                self.enable_fallbacks and self.fallback_model and primary_model != self.fallback_model
            ):
                logger.error(f"LLM call failed and no fallback available: {e}")
                raise
            primary_error = e

        logger.warning(
            f"Primary model {primary_model} failed, attempting fallback: {self.fallback_model}",
            extra={"primary_model": primary_model, "fallback_model": self.fallback_model},
        )
        try:
            async for text in self._stream_model(
                self.fallback_model, messages, temperature, max_tokens, **kwargs
            ):
                yield text
            logger.info(f"Successfully generated response using fallback model: {self.fallback_model}")
        except LLMError as fallback_error:
            logger.error(
                f"Both primary ({primary_model}) and fallback ({self.fallback_model}) models failed"
            )
            raise LLMError(
                message=f"All models failed. Primary: {primary_error.message}, Fallback: {fallback_error.message}",
                model=primary_model,
                details={
                    "primary_model": primary_model,
                    "fallback_model": self.fallback_model,
                    "primary_error": primary_error.message,
                    "fallback_error": fallback_error.message,
                },
            ) from fallback_error


# Global service instance
_llm_service: Optional[LLMService] = None


def get_llm_service() -> LLMService:
    """Get the global LLM service instance."""
    global _llm_service
    if _llm_service is None:
        _llm_service = LLMService()
    return _llm_service
