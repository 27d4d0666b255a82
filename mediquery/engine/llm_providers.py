# MediQuery - LLM Provider Abstraction
# =====================================
"""
LLM Provider System
==================
Supports text-generation backends behind one interface:
- Claude (Anthropic API) - Primary
- Mock (testing)

Every call is a single request with a bounded timeout and no client-side
retries; callers treat any exception as a failure and fall back.
"""

import re
import os
import time
import logging
from abc import ABC, abstractmethod
from typing import Optional, List, Dict, Any, Tuple, Callable
from dataclasses import dataclass
from enum import Enum

from .errors import MediQueryError, ModelUnavailableError

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION
# =============================================================================

class LLMProvider(str, Enum):
    """Supported LLM providers."""
    CLAUDE = "claude"  # Primary - Cloud LLM via Anthropic API
    MOCK = "mock"      # For testing


@dataclass
class LLMConfig:
    """Configuration for the LLM provider."""
    provider: LLMProvider = LLMProvider.CLAUDE
    temperature: float = 0.0
    summary_temperature: float = 0.3
    max_tokens: int = 1000
    timeout: int = 8

    # Claude/Anthropic settings
    anthropic_api_key: Optional[str] = None
    claude_model: str = "claude-sonnet-4-20250514"
    claude_summary_model: str = "claude-3-5-haiku-20241022"

    @classmethod
    def from_env(cls) -> "LLMConfig":
        """Create config from environment variables."""
        provider_str = os.getenv("LLM_PROVIDER", "claude").lower()
        try:
            provider = LLMProvider(provider_str)
        except ValueError:
            logger.warning(f"Unknown LLM_PROVIDER '{provider_str}', defaulting to claude")
            provider = LLMProvider.CLAUDE

        return cls(
            provider=provider,
            temperature=float(os.getenv("LLM_TEMPERATURE", "0.0")),
            summary_temperature=float(os.getenv("LLM_SUMMARY_TEMPERATURE", "0.3")),
            max_tokens=int(os.getenv("LLM_MAX_TOKENS", "1000")),
            timeout=int(os.getenv("LLM_TIMEOUT_SECONDS", "8")),
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY") or None,
            claude_model=os.getenv("CLAUDE_MODEL", "claude-sonnet-4-20250514"),
            claude_summary_model=os.getenv("CLAUDE_SUMMARY_MODEL", "claude-3-5-haiku-20241022"),
        )


@dataclass
class LLMRequest:
    """Request to send to LLM."""
    prompt: str
    system_prompt: Optional[str] = None
    max_tokens: int = 1000
    temperature: float = 0.0
    model: Optional[str] = None  # overrides the provider default


@dataclass
class LLMResponse:
    """Response from LLM."""
    content: str
    model: str
    provider: str
    generation_time_ms: float
    tokens_used: Optional[int] = None


# =============================================================================
# ERROR CLASSES
# =============================================================================

class LLMError(MediQueryError):
    """Base exception for LLM-related errors."""
    pass


class LLMTimeoutError(LLMError):
    """Raised when LLM request times out."""

    def __init__(self, model: str, timeout: int):
        self.model = model
        self.timeout = timeout
        super().__init__(
            f"The AI model ({model}) is taking longer than expected. "
            f"Timeout after {timeout} seconds."
        )


class LLMConnectionError(LLMError):
    """Raised when cannot connect to LLM service."""

    def __init__(self, host: str, original_error: str = None):
        self.host = host
        self.original_error = original_error
        super().__init__(
            f"Cannot connect to the AI service at {host}. "
            "The service may be unavailable."
        )


# =============================================================================
# BASE LLM PROVIDER
# =============================================================================

class BaseLLMProvider(ABC):
    """Abstract base class for LLM providers."""

    def __init__(self, config: LLMConfig):
        self.config = config

    @abstractmethod
    def generate(self, request: LLMRequest) -> LLMResponse:
        """Generate a response from the LLM."""
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the provider is available."""
        pass

    @abstractmethod
    def get_provider_name(self) -> str:
        pass

    @abstractmethod
    def get_model_name(self) -> str:
        pass

    def complete(self,
                 prompt: str,
                 system_prompt: Optional[str] = None,
                 model: Optional[str] = None,
                 temperature: Optional[float] = None) -> str:
        """Single prompt in, trimmed text out."""
        request = LLMRequest(
            prompt=prompt,
            system_prompt=system_prompt,
            max_tokens=self.config.max_tokens,
            temperature=self.config.temperature if temperature is None else temperature,
            model=model
        )
        return self.generate(request).content.strip()


# =============================================================================
# CLAUDE PROVIDER
# =============================================================================

class ClaudeProvider(BaseLLMProvider):
    """Claude LLM provider using Anthropic API."""

    API_HOST = "https://api.anthropic.com"

    def __init__(self, config: LLMConfig, client=None):
        super().__init__(config)
        self.api_key = config.anthropic_api_key
        self.model = config.claude_model
        self._client = client

    def get_provider_name(self) -> str:
        return "claude"

    def get_model_name(self) -> str:
        return self.model

    def _get_client(self):
        """Get or create Anthropic client."""
        if self._client is None:
            if not self.api_key:
                raise ModelUnavailableError("ANTHROPIC_API_KEY not set")
            import anthropic
            self._client = anthropic.Anthropic(
                api_key=self.api_key,
                timeout=float(self.config.timeout),
                max_retries=0
            )
        return self._client

    def is_available(self) -> bool:
        """Check if Claude API is configured."""
        if not self.api_key and self._client is None:
            return False
        try:
            self._get_client()
            return True
        except Exception:
            return False

    def generate(self, request: LLMRequest) -> LLMResponse:
        """Generate response using Claude API."""
        import anthropic

        start_time = time.time()
        client = self._get_client()
        model = request.model or self.model

        try:
            response = client.messages.create(
                model=model,
                max_tokens=request.max_tokens,
                system=request.system_prompt or "You are a precise assistant for a hospital database.",
                messages=[{"role": "user", "content": request.prompt}],
                temperature=request.temperature
            )
        except anthropic.APITimeoutError:
            raise LLMTimeoutError(model, self.config.timeout)
        except anthropic.APIConnectionError as e:
            raise LLMConnectionError(self.API_HOST, str(e))
        except anthropic.APIStatusError as e:
            raise LLMError(f"Claude API error ({e.status_code}): {e.message}")

        content = ""
        for block in response.content or []:
            if hasattr(block, 'text'):
                content += block.text

        generation_time = (time.time() - start_time) * 1000
        usage = getattr(response, 'usage', None)

        return LLMResponse(
            content=content,
            model=model,
            provider="claude",
            generation_time_ms=generation_time,
            tokens_used=usage.input_tokens + usage.output_tokens if usage else None
        )


# =============================================================================
# MOCK PROVIDER (for testing)
# =============================================================================

class MockProvider(BaseLLMProvider):
    """
    Mock LLM provider for testing.

    Replies come from, in order of preference: a handler callable, a queue
    of canned responses, or a pattern-based default. Every prompt is
    recorded in `calls`.
    """

    def __init__(self,
                 config: Optional[LLMConfig] = None,
                 responses: Optional[List[str]] = None,
                 handler: Optional[Callable[[LLMRequest], str]] = None):
        super().__init__(config or LLMConfig(provider=LLMProvider.MOCK))
        self._responses = list(responses or [])
        self._handler = handler
        self.calls: List[LLMRequest] = []

    def get_provider_name(self) -> str:
        return "mock"

    def get_model_name(self) -> str:
        return "mock-model"

    def is_available(self) -> bool:
        return True

    def generate(self, request: LLMRequest) -> LLMResponse:
        start_time = time.time()
        self.calls.append(request)

        if self._handler is not None:
            content = self._handler(request)
        elif self._responses:
            content = self._responses.pop(0)
        else:
            content = self._default_reply(request.prompt)

        return LLMResponse(
            content=content,
            model="mock-model",
            provider="mock",
            generation_time_ms=(time.time() - start_time) * 1000
        )

    def _default_reply(self, prompt: str) -> str:
        if 'SQL query generator' in prompt:
            table_match = re.search(r'^Table:\s*(\w+)', prompt, re.MULTILINE)
            table = table_match.group(1) if table_match else "hospitals"
            if 'how many' in prompt.lower():
                return f"SELECT COUNT(*) FROM {table}"
            return f"SELECT * FROM {table}"
        return "Here is what the database returned for your question."


# =============================================================================
# PROVIDER FACTORY
# =============================================================================

def create_llm_provider(config: Optional[LLMConfig] = None) -> BaseLLMProvider:
    """
    Create an LLM provider based on configuration.

    Raises:
        ModelUnavailableError: If Claude is selected but no API key is set
    """
    if config is None:
        config = LLMConfig.from_env()

    logger.info(f"Creating LLM provider: {config.provider.value}")

    if config.provider == LLMProvider.MOCK:
        return MockProvider(config)

    provider = ClaudeProvider(config)
    if not provider.is_available():
        raise ModelUnavailableError(
            "Claude API key not configured. Set ANTHROPIC_API_KEY in your environment."
        )
    return provider


def try_create_llm_provider(config: Optional[LLMConfig] = None) -> Tuple[Optional[BaseLLMProvider], str]:
    """
    Create a provider without raising.

    Returns:
        (provider or None, status reason). The reason is "ok" on success.
    """
    try:
        return create_llm_provider(config), "ok"
    except ModelUnavailableError as e:
        logger.warning(f"Language model disabled: {e.reason}")
        return None, f"Language model unavailable: {e.reason}"
    except Exception as e:
        logger.error(f"Failed to initialize LLM provider: {e}")
        return None, f"Language model unavailable: {e}"


def check_model_status(provider: Optional[BaseLLMProvider]) -> Dict[str, Any]:
    """
    Probe the provider with a minimal call.

    Returns:
        Dict with is_valid, message, provider and model
    """
    if provider is None:
        return {
            'is_valid': False,
            'message': "Model API key is not configured. Add ANTHROPIC_API_KEY to your environment.",
            'provider': None,
            'model': None
        }

    try:
        reply = provider.complete("Say hello", temperature=0.0)
        return {
            'is_valid': True,
            'message': reply or "Model API connection successful",
            'provider': provider.get_provider_name(),
            'model': provider.get_model_name()
        }
    except Exception as e:
        logger.warning(f"Model status check failed: {e}")
        return {
            'is_valid': False,
            'message': f"Model API check failed: {e}",
            'provider': provider.get_provider_name(),
            'model': provider.get_model_name()
        }
