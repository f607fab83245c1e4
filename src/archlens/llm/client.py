"""Multi-provider LLM client.

Each provider is described by a ``ProviderStrategy``: which transport carries
the request (the ``openai`` SDK, the ``anthropic`` SDK or plain HTTP through
``requests``), how the request is built and how the text is pulled out of the
response. ``LLMClient`` validates the config, resolves credentials, applies the
timeout and maps transport failures onto the ``LLMError`` hierarchy.

Calls are never retried.
"""

import hashlib
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

import anthropic
import openai
import requests

from archlens.constants import (
    DEFAULT_LOCAL_LLM_URL,
    DEFAULT_OLLAMA_HOST,
    LOCAL_API_KEY_PLACEHOLDER,
)
from archlens.llm.tokens import TokenManager
from archlens.llm.types import (
    LLMCallOptions,
    LLMConfig,
    LLMConfigurationError,
    LLMError,
    LLMHTTPError,
    LLMProvider,
    LLMResponse,
    LLMTimeoutError,
    UnsupportedProviderError,
)

logger = logging.getLogger(__name__)

TRANSPORT_OPENAI = "openai"
TRANSPORT_ANTHROPIC = "anthropic"
TRANSPORT_HTTP = "http"

# Credential sources
KEY_REQUIRED = "api_key"
KEY_OPTIONAL = "optional"
KEY_TOKEN = "token"


@dataclass(frozen=True)
class HTTPRequest:
    """A JSON POST for providers spoken to over plain HTTP."""

    url: str
    json: dict
    headers: Optional[dict] = None
    params: Optional[dict] = None


@dataclass(frozen=True)
class ProviderStrategy:
    """How to talk to one provider."""

    transport: str
    build_request: Callable[..., Any]
    parse_response: Callable[[Any], str]
    credentials: str = KEY_REQUIRED
    default_base_url: Optional[str] = None


# ==================== Request builders / response parsers ====================


def _build_chat_request(config: LLMConfig, prompt: str, temperature: float, max_tokens: int) -> dict:
    return {
        "model": config.model,
        "messages": [{"role": "user", "content": prompt}],
        "temperature": temperature,
        "max_tokens": max_tokens,
    }


def _parse_chat_response(response) -> str:
    if not response.choices:
        raise LLMError("Chat completion returned no choices")
    return response.choices[0].message.content or ""


def _build_anthropic_request(config: LLMConfig, prompt: str, temperature: float, max_tokens: int) -> dict:
    return {
        "model": config.model,
        "max_tokens": max_tokens,
        "temperature": temperature,
        "messages": [{"role": "user", "content": prompt}],
    }


def _parse_anthropic_response(response) -> str:
    parts = [block.text for block in response.content if getattr(block, "type", "text") == "text"]
    return "".join(parts)


def _build_gemini_request(config: LLMConfig, prompt: str, temperature: float, max_tokens: int) -> HTTPRequest:
    return HTTPRequest(
        url=f"{config.base_url.rstrip('/')}/models/{config.model}:generateContent",
        params={"key": config.api_key},
        headers={"Content-Type": "application/json"},
        json={
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": temperature,
                "maxOutputTokens": max_tokens,
            },
        },
    )


def _parse_gemini_response(data: dict) -> str:
    candidates = data.get("candidates") or []
    if not candidates:
        raise LLMError("Gemini returned no candidates")
    parts = candidates[0].get("content", {}).get("parts", [])
    return "".join(part.get("text", "") for part in parts)


def _build_ollama_request(config: LLMConfig, prompt: str, temperature: float, max_tokens: int) -> HTTPRequest:
    base_url = (config.base_url or DEFAULT_OLLAMA_HOST).rstrip("/")
    return HTTPRequest(
        url=f"{base_url}/api/generate",
        headers={"Content-Type": "application/json"},
        json={
            "model": config.model,
            "prompt": prompt,
            "stream": False,
            "options": {"temperature": temperature, "num_predict": max_tokens},
        },
    )


def _parse_ollama_response(data: dict) -> str:
    if "response" not in data:
        raise LLMError("Ollama response is missing the 'response' field")
    return data["response"]


PROVIDER_STRATEGIES: dict[LLMProvider, ProviderStrategy] = {
    LLMProvider.OPENAI: ProviderStrategy(
        TRANSPORT_OPENAI, _build_chat_request, _parse_chat_response
    ),
    LLMProvider.ANTHROPIC: ProviderStrategy(
        TRANSPORT_ANTHROPIC, _build_anthropic_request, _parse_anthropic_response
    ),
    LLMProvider.GEMINI: ProviderStrategy(
        TRANSPORT_HTTP, _build_gemini_request, _parse_gemini_response
    ),
    LLMProvider.OLLAMA: ProviderStrategy(
        TRANSPORT_HTTP,
        _build_ollama_request,
        _parse_ollama_response,
        credentials=KEY_OPTIONAL,
        default_base_url=DEFAULT_OLLAMA_HOST,
    ),
    LLMProvider.LOCAL: ProviderStrategy(
        TRANSPORT_OPENAI,
        _build_chat_request,
        _parse_chat_response,
        credentials=KEY_OPTIONAL,
        default_base_url=DEFAULT_LOCAL_LLM_URL,
    ),
    LLMProvider.ENTERPRISE: ProviderStrategy(
        TRANSPORT_OPENAI, _build_chat_request, _parse_chat_response, credentials=KEY_TOKEN
    ),
    LLMProvider.APIGEE: ProviderStrategy(
        TRANSPORT_OPENAI, _build_chat_request, _parse_chat_response, credentials=KEY_TOKEN
    ),
}


def get_strategy(provider: LLMProvider) -> ProviderStrategy:
    try:
        return PROVIDER_STRATEGIES[provider]
    except KeyError:
        raise UnsupportedProviderError(f"Unsupported LLM provider: {provider}", provider=provider)


def prompt_cache_key(provider: LLMProvider, model: str, prompt: str) -> str:
    """Cache key for a prompt sent to a given provider/model."""
    return hashlib.sha256(f"{provider.value}::{model}::{prompt}".encode("utf-8")).hexdigest()


def _http_error_message(response) -> str:
    """Best-effort extraction of the vendor's error message."""
    try:
        data = response.json()
    except ValueError:
        return response.text or "Unknown error"
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return error["message"]
        if isinstance(error, str):
            return error
        if data.get("message"):
            return data["message"]
    return "Unknown error"


# ==================== Client ====================


class LLMClient:
    """Client for a single configured provider."""

    def __init__(
        self,
        config: LLMConfig,
        token_manager: Optional[TokenManager] = None,
        session: Optional[requests.Session] = None,
        response_cache=None,
    ):
        """Initialize the client.

        Args:
            config: Provider configuration
            token_manager: Bearer token source for enterprise/Apigee
            session: HTTP session for plain-HTTP providers
            response_cache: Optional ``AnalysisCache`` used when a call sets
                ``use_cache``
        """
        self.config = config
        self.strategy = get_strategy(config.provider)
        self.token_manager = token_manager
        self.response_cache = response_cache
        self._session = session or requests.Session()
        self._sdk_client = None
        self._sdk_key: Optional[str] = None

    @property
    def provider(self) -> LLMProvider:
        return self.config.provider

    @property
    def base_url(self) -> Optional[str]:
        return self.config.base_url or self.strategy.default_base_url

    def missing_fields(self) -> list[str]:
        """Names of required settings that are not present."""
        missing = []
        if not self.config.model:
            missing.append("model")
        if not self.base_url:
            missing.append("base_url")
        if self.strategy.credentials == KEY_REQUIRED and not self.config.api_key:
            missing.append("api_key")
        if self.strategy.credentials == KEY_TOKEN and not (self.config.api_key or self.token_manager):
            missing.append("token")
        return missing

    def is_available(self) -> bool:
        return not self.missing_fields()

    def get_config(self) -> dict:
        data = self.config.to_dict(mask_secrets=True)
        data["base_url"] = self.base_url
        data["available"] = self.is_available()
        return data

    def call_llm(self, prompt: str, options=None) -> str:
        """Send a prompt and return the response text.

        Args:
            prompt: User prompt
            options: ``LLMCallOptions`` or dict (timeout, temperature,
                max_tokens, use_cache)

        Raises:
            LLMConfigurationError: Required settings are missing
            LLMTimeoutError: The call exceeded its timeout
            LLMHTTPError: The provider returned a non-2xx status
            LLMError: Any other transport or response failure
        """
        return self.generate(prompt, options).content

    def generate(self, prompt: str, options=None) -> LLMResponse:
        opts = LLMCallOptions.coerce(options)
        missing = self.missing_fields()
        if missing:
            raise LLMConfigurationError(
                f"{self.provider.value} provider is not configured (missing: {', '.join(missing)})",
                provider=self.provider,
            )

        cache_key = None
        if opts.use_cache and self.response_cache is not None:
            cache_key = prompt_cache_key(self.provider, self.config.model, prompt)
            cached = self.response_cache.get(cache_key)
            if cached is not None:
                return LLMResponse(content=cached, provider=self.provider, model=self.config.model)

        temperature = opts.temperature if opts.temperature is not None else self.config.temperature
        max_tokens = opts.max_tokens or self.config.max_tokens
        timeout = opts.timeout or self.config.timeout

        start = time.monotonic()
        logger.debug(f"Calling {self.provider.value} ({self.config.model}), timeout {timeout}s")
        content = self._dispatch(prompt, temperature, max_tokens, timeout)
        logger.info(
            f"{self.provider.value} responded in {time.monotonic() - start:.1f}s ({len(content)} chars)"
        )

        if cache_key is not None:
            self.response_cache.put(cache_key, content)

        return LLMResponse(content=content, provider=self.provider, model=self.config.model)

    def _dispatch(self, prompt: str, temperature: float, max_tokens: int, timeout: float) -> str:
        config = self._effective_config()
        request = self.strategy.build_request(config, prompt, temperature, max_tokens)

        if self.strategy.transport == TRANSPORT_OPENAI:
            response = self._send_openai(request, timeout)
        elif self.strategy.transport == TRANSPORT_ANTHROPIC:
            response = self._send_anthropic(request, timeout)
        else:
            response = self._send_http(request, timeout)

        return self.strategy.parse_response(response)

    def _effective_config(self) -> LLMConfig:
        if self.config.base_url:
            return self.config
        return LLMConfig(
            provider=self.config.provider,
            model=self.config.model,
            api_key=self.config.api_key,
            base_url=self.strategy.default_base_url,
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
            timeout=self.config.timeout,
        )

    def _resolve_api_key(self) -> str:
        if self.strategy.credentials == KEY_TOKEN:
            if self.token_manager is not None:
                return self.token_manager.get_valid_token()
            return self.config.api_key
        if self.strategy.credentials == KEY_OPTIONAL:
            return self.config.api_key or LOCAL_API_KEY_PLACEHOLDER
        return self.config.api_key

    def _handle_status(self, status_code: Optional[int]) -> None:
        # A rejected bearer token is dropped so the next call re-reads it
        if status_code == 401 and self.token_manager is not None:
            logger.warning(f"{self.provider.value} rejected its token, clearing cached token")
            self.token_manager.clear_token()

    # ---------- transports ----------

    def _openai_client(self, api_key: str):
        if self._sdk_client is None or self._sdk_key != api_key:
            self._sdk_client = openai.OpenAI(api_key=api_key, base_url=self.base_url, max_retries=0)
            self._sdk_key = api_key
        return self._sdk_client

    def _anthropic_client(self, api_key: str):
        if self._sdk_client is None or self._sdk_key != api_key:
            self._sdk_client = anthropic.Anthropic(
                api_key=api_key, base_url=self._anthropic_base_url(), max_retries=0
            )
            self._sdk_key = api_key
        return self._sdk_client

    def _anthropic_base_url(self) -> Optional[str]:
        # The SDK appends /v1 itself
        base_url = self.base_url
        if base_url and base_url.rstrip("/").endswith("/v1"):
            base_url = base_url.rstrip("/")[: -len("/v1")]
        return base_url

    def _send_openai(self, request: dict, timeout: float):
        client = self._openai_client(self._resolve_api_key())
        try:
            return client.chat.completions.create(**request, timeout=timeout)
        except openai.APITimeoutError as e:
            raise LLMTimeoutError(
                f"{self.provider.value} API call timed out after {timeout}s",
                provider=self.provider,
                original_error=e,
            )
        except openai.APIStatusError as e:
            self._handle_status(e.status_code)
            raise LLMHTTPError(
                f"{self.provider.value} API error: {e.message}",
                provider=self.provider,
                status_code=e.status_code,
                original_error=e,
            )
        except openai.APIError as e:
            raise LLMError(f"{self.provider.value} API call failed: {e}", provider=self.provider, original_error=e)

    def _send_anthropic(self, request: dict, timeout: float):
        client = self._anthropic_client(self._resolve_api_key())
        try:
            return client.messages.create(**request, timeout=timeout)
        except anthropic.APITimeoutError as e:
            raise LLMTimeoutError(
                f"{self.provider.value} API call timed out after {timeout}s",
                provider=self.provider,
                original_error=e,
            )
        except anthropic.APIStatusError as e:
            raise LLMHTTPError(
                f"{self.provider.value} API error: {e.message}",
                provider=self.provider,
                status_code=e.status_code,
                original_error=e,
            )
        except anthropic.APIError as e:
            raise LLMError(f"{self.provider.value} API call failed: {e}", provider=self.provider, original_error=e)

    def _send_http(self, request: HTTPRequest, timeout: float) -> dict:
        try:
            response = self._session.post(
                request.url,
                params=request.params,
                headers=request.headers,
                json=request.json,
                timeout=timeout,
            )
        except requests.exceptions.Timeout as e:
            raise LLMTimeoutError(
                f"{self.provider.value} API call timed out after {timeout}s",
                provider=self.provider,
                original_error=e,
            )
        except requests.exceptions.RequestException as e:
            raise LLMError(f"{self.provider.value} API call failed: {e}", provider=self.provider, original_error=e)

        if not response.ok:
            self._handle_status(response.status_code)
            raise LLMHTTPError(
                f"{self.provider.value} API error: {_http_error_message(response)}",
                provider=self.provider,
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise LLMError(
                f"{self.provider.value} returned invalid JSON",
                provider=self.provider,
                status_code=response.status_code,
                original_error=e,
            )
