"""Data types and errors shared by the LLM provider layer."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from archlens.constants import DEFAULT_LLM_TIMEOUT, DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE


class LLMProvider(Enum):
    """Supported LLM vendors."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"
    OLLAMA = "ollama"
    LOCAL = "local"
    ENTERPRISE = "enterprise"
    APIGEE = "apigee"

    @classmethod
    def parse(cls, name) -> "LLMProvider":
        """Resolve a provider from its name (case-insensitive)."""
        if isinstance(name, cls):
            return name
        try:
            return cls(str(name).strip().lower())
        except ValueError:
            raise UnsupportedProviderError(f"Unsupported LLM provider: {name}", provider=name)


class LLMError(Exception):
    """Base error raised by LLM clients."""

    def __init__(
        self,
        message: str,
        provider=None,
        status_code: Optional[int] = None,
        original_error: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code
        self.original_error = original_error


class LLMConfigurationError(LLMError):
    """Required configuration is missing; raised before any network call."""


class LLMTimeoutError(LLMError):
    """The request exceeded its timeout and was cancelled."""


class LLMHTTPError(LLMError):
    """The provider answered with a non-2xx status."""


class UnsupportedProviderError(LLMError):
    """The provider name is not one ArchLens knows how to talk to."""


@dataclass
class LLMConfig:
    """Connection settings for one provider."""

    provider: LLMProvider
    model: str
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS
    timeout: float = DEFAULT_LLM_TIMEOUT  # seconds

    def to_dict(self, mask_secrets: bool = True) -> dict:
        api_key = self.api_key
        if mask_secrets:
            api_key = "***configured***" if self.api_key else None
        return {
            "provider": self.provider.value,
            "model": self.model,
            "api_key": api_key,
            "base_url": self.base_url,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "timeout": self.timeout,
        }


@dataclass
class TokenInfo:
    """A bearer token and the moment it stops being trusted."""

    token: str
    expires_at: datetime
    refresh_token: Optional[str] = None

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


@dataclass
class LLMResponse:
    """Text returned by a provider plus where it came from."""

    content: str
    provider: LLMProvider
    model: str
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "content": self.content,
            "provider": self.provider.value,
            "model": self.model,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class LLMCallOptions:
    """Per-call overrides.

    ``retries`` is accepted for compatibility with callers that pass it, but
    clients never retry.
    """

    use_cache: bool = False
    timeout: Optional[float] = None
    retries: int = 0
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None

    @classmethod
    def coerce(cls, options) -> "LLMCallOptions":
        """Accept ``None``, an ``LLMCallOptions`` or a plain dict."""
        if options is None:
            return cls()
        if isinstance(options, cls):
            return options
        if isinstance(options, dict):
            return cls(**{k: v for k, v in options.items() if k in cls.__dataclass_fields__})
        raise TypeError(f"Unsupported call options: {type(options).__name__}")
