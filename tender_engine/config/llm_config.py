"""
Claude LLM configuration and client.

Every generation stage goes through an LLMClient: submit a prompt, receive
text, or fail with RateLimitError (carrying a retry hint) or
UpstreamGenerationError. Provider exceptions never leave this module.
"""
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

import anthropic

from tender_engine.config.settings import LLMSettings, settings
from tender_engine.errors import RateLimitError, TenderError, UpstreamGenerationError

logger = logging.getLogger(__name__)


class ClaudeModel(Enum):
    """Available Claude models"""
    HAIKU_4_5 = "claude-haiku-4-5-20251001"
    SONNET_4_5 = "claude-sonnet-4-5-20250929"
    OPUS_4_5 = "claude-opus-4-5-20251101"


class LLMClient(Protocol):
    """The only surface the generation stages depend on."""

    def generate_text(
        self,
        prompt: str,
        task_type: str = "content_generation",
        system_message: str | None = None,
    ) -> str: ...


_RETRY_VALUE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*s?\s*$")
_RETRY_IN_MESSAGE = re.compile(
    r"retry(?:[_ ]?delay| in| after)[\"':=\s]*(\d+(?:\.\d+)?)\s*s", re.IGNORECASE
)


def parse_retry_delay(value: Any) -> float | None:
    """
    Parse a provider retry hint such as "42", "42s" or "1.5s" into seconds.

    Returns None when no usable hint is present.
    """
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value) if value >= 0 else None
    match = _RETRY_VALUE.match(str(value))
    if match:
        return float(match.group(1))
    return None


def _is_rate_limit(exc: Exception) -> bool:
    if isinstance(exc, anthropic.RateLimitError):
        return True
    if getattr(exc, "status_code", None) == 429:
        return True
    message = str(exc).lower()
    return "quota" in message or "rate limit" in message


def classify_provider_error(exc: Exception) -> TenderError:
    """Translate a provider exception into the pipeline error taxonomy."""
    if isinstance(exc, TenderError):
        return exc

    if _is_rate_limit(exc):
        delay = None
        headers = getattr(getattr(exc, "response", None), "headers", None)
        if headers is not None:
            delay = parse_retry_delay(headers.get("retry-after"))
        if delay is None:
            match = _RETRY_IN_MESSAGE.search(str(exc))
            if match:
                delay = float(match.group(1))
        return RateLimitError(retry_delay_seconds=delay)

    return UpstreamGenerationError(f"Generation failed: {exc}")


@dataclass
class ClaudeLLMConfig:
    """Configuration for Claude LLM settings"""
    model: str = ClaudeModel.SONNET_4_5.value
    api_key: str | None = None
    max_tokens: int = 8000
    temperature: float = 0.7
    timeout: float = 120.0

    @classmethod
    def from_settings(cls, llm_settings: LLMSettings) -> "ClaudeLLMConfig":
        return cls(
            model=llm_settings.model,
            api_key=llm_settings.api_key,
            max_tokens=llm_settings.max_tokens,
            temperature=llm_settings.temperature,
            timeout=llm_settings.timeout,
        )


class ClaudeLLMManager:
    """
    Claude client tuned per generation stage.

    Retries are disabled on the underlying SDK client: throttling is surfaced
    to the caller as RateLimitError and the caller decides when to re-invoke.
    """

    # Task-specific configurations
    TASK_CONFIGS = {
        "requirement_extraction": {
            "max_tokens": 4000,
            "temperature": 0.2,
        },
        "rft_analysis": {
            "max_tokens": 6000,
            "temperature": 0.3,
        },
        "strategy": {
            "max_tokens": 6000,
            "temperature": 0.5,
        },
        "win_themes": {
            "max_tokens": 2000,
            "temperature": 0.7,
        },
        "content_generation": {
            "model": ClaudeModel.SONNET_4_5,
            "max_tokens": 16000,
            "temperature": 0.7,
        },
        "editor_action": {
            "max_tokens": 4000,
            "temperature": 0.5,
        },
        "batch_generation": {
            "model": ClaudeModel.SONNET_4_5,
            "max_tokens": 20000,
            "temperature": 0.7,
        },
    }

    def __init__(self, config: ClaudeLLMConfig | None = None):
        self.config = config or ClaudeLLMConfig.from_settings(settings.llm)
        self.client = None
        self._initialize_client()

    def _initialize_client(self):
        """Initialize the Anthropic client"""
        if not self.config.api_key:
            logger.warning("ANTHROPIC_API_KEY not set, Claude client not initialized")
            return

        self.client = anthropic.Anthropic(
            api_key=self.config.api_key,
            timeout=self.config.timeout,
            max_retries=0,
        )
        logger.info("Claude client initialized with model: %s", self.config.model)

    def _get_task_config(self, task_type: str) -> dict[str, Any]:
        return self.TASK_CONFIGS.get(task_type, {})

    def generate_text(
        self,
        prompt: str,
        task_type: str = "content_generation",
        system_message: str | None = None,
    ) -> str:
        """
        Generate text for one pipeline stage.

        Args:
            prompt: The user prompt
            task_type: Stage name used for the TASK_CONFIGS lookup
            system_message: Optional system prompt

        Returns:
            The concatenated text blocks of the response

        Raises:
            RateLimitError: provider throttling, with retry delay
            UpstreamGenerationError: any other failure or an empty response
        """
        if not self.client:
            raise UpstreamGenerationError("Claude client not initialized")

        task_config = self._get_task_config(task_type)
        model = task_config.get("model", self.config.model)
        if isinstance(model, ClaudeModel):
            model = model.value

        api_params: dict[str, Any] = {
            "model": model,
            "max_tokens": task_config.get("max_tokens", self.config.max_tokens),
            "temperature": task_config.get("temperature", self.config.temperature),
            "messages": [{"role": "user", "content": prompt}],
        }
        if system_message:
            api_params["system"] = system_message

        logger.info("Generating %s with model %s", task_type, model)
        try:
            response = self.client.messages.create(**api_params)
        except anthropic.APIError as e:
            error = classify_provider_error(e)
            if isinstance(error, RateLimitError):
                logger.warning("Rate limited during %s, retry in %ss", task_type, error.retry_delay_seconds)
            else:
                logger.error("Claude completion failed during %s: %s", task_type, e)
            raise error from e

        text = "".join(block.text for block in response.content if block.type == "text")
        if not text.strip():
            raise UpstreamGenerationError("Model returned an empty response")

        logger.info(
            "Completed %s: %s input / %s output tokens",
            task_type,
            response.usage.input_tokens,
            response.usage.output_tokens,
        )
        return text


def create_llm_client(llm_settings: LLMSettings | None = None) -> LLMClient:
    """Build the configured LLM backend."""
    llm_settings = llm_settings or settings.llm
    if llm_settings.backend == "mock":
        from tender_engine.config.mock_llm import MockLLMClient

        logger.info("Using mock LLM backend")
        return MockLLMClient()
    return ClaudeLLMManager(ClaudeLLMConfig.from_settings(llm_settings))
