"""Build LLM clients from environment configuration."""

import logging
from collections.abc import Mapping
from typing import Optional

from archlens.config import Settings, get_settings
from archlens.constants import (
    DEFAULT_ANTHROPIC_BASE_URL,
    DEFAULT_ANTHROPIC_MODEL,
    DEFAULT_ENTERPRISE_MODEL,
    DEFAULT_GEMINI_BASE_URL,
    DEFAULT_GEMINI_MODEL,
    DEFAULT_LLM_TIMEOUT,
    DEFAULT_LOCAL_LLM_URL,
    DEFAULT_LOCAL_MODEL,
    DEFAULT_MAX_TOKENS,
    DEFAULT_OLLAMA_HOST,
    DEFAULT_OLLAMA_MODEL,
    DEFAULT_OPENAI_BASE_URL,
    DEFAULT_OPENAI_MODEL,
    DEFAULT_TEMPERATURE,
)
from archlens.llm.client import LLMClient
from archlens.llm.tokens import ApigeeTokenManager, EnterpriseTokenManager, TokenManager
from archlens.llm.types import LLMConfig, LLMProvider

logger = logging.getLogger(__name__)


def _hosted_config(
    settings: Settings, provider: LLMProvider, prefix: str, model: str, base_url: str
) -> LLMConfig:
    return LLMConfig(
        provider=provider,
        model=settings.get(f"{prefix}_MODEL", model),
        api_key=settings.get(f"{prefix}_API_KEY"),
        base_url=settings.get(f"{prefix}_BASE_URL", base_url),
        temperature=settings.get_float(f"{prefix}_TEMPERATURE", DEFAULT_TEMPERATURE),
        max_tokens=settings.get_int(f"{prefix}_MAX_TOKENS", DEFAULT_MAX_TOKENS),
        timeout=settings.get_float("LLM_TIMEOUT", DEFAULT_LLM_TIMEOUT),
    )


def create_config_for_provider(provider, env: Optional[Mapping] = None) -> LLMConfig:
    """Build the config for ``provider`` from environment variables.

    Raises:
        UnsupportedProviderError: If the provider name is unknown
    """
    provider = LLMProvider.parse(provider)
    settings = get_settings(env)
    timeout = settings.get_float("LLM_TIMEOUT", DEFAULT_LLM_TIMEOUT)

    if provider == LLMProvider.OPENAI:
        return _hosted_config(settings, provider, "OPENAI", DEFAULT_OPENAI_MODEL, DEFAULT_OPENAI_BASE_URL)
    if provider == LLMProvider.ANTHROPIC:
        return _hosted_config(
            settings, provider, "ANTHROPIC", DEFAULT_ANTHROPIC_MODEL, DEFAULT_ANTHROPIC_BASE_URL
        )
    if provider == LLMProvider.GEMINI:
        return _hosted_config(settings, provider, "GEMINI", DEFAULT_GEMINI_MODEL, DEFAULT_GEMINI_BASE_URL)
    if provider == LLMProvider.OLLAMA:
        return LLMConfig(
            provider=provider,
            model=settings.get("OLLAMA_MODEL", DEFAULT_OLLAMA_MODEL),
            base_url=settings.get("OLLAMA_HOST", DEFAULT_OLLAMA_HOST),
            temperature=settings.get_float("OLLAMA_TEMPERATURE", DEFAULT_TEMPERATURE),
            timeout=timeout,
        )
    if provider == LLMProvider.LOCAL:
        return LLMConfig(
            provider=provider,
            model=settings.get("LOCAL_LLM_MODEL", DEFAULT_LOCAL_MODEL),
            api_key=settings.get("LOCAL_LLM_API_KEY"),
            base_url=settings.get("LOCAL_LLM_URL", DEFAULT_LOCAL_LLM_URL),
            timeout=timeout,
        )
    if provider == LLMProvider.ENTERPRISE:
        return LLMConfig(
            provider=provider,
            model=settings.get("ENTERPRISE_LLM_MODEL", DEFAULT_ENTERPRISE_MODEL),
            base_url=settings.get("ENTERPRISE_LLM_URL"),
            timeout=timeout,
        )
    # Apigee fronts the enterprise gateway
    return LLMConfig(
        provider=provider,
        model=settings.get("APIGEE_MODEL", DEFAULT_ENTERPRISE_MODEL),
        base_url=settings.get("ENTERPRISE_BASE_URL"),
        timeout=timeout,
    )


def is_provider_available(provider, env: Optional[Mapping] = None) -> bool:
    """Whether the environment carries enough settings to use ``provider``."""
    provider = LLMProvider.parse(provider)
    settings = get_settings(env)

    if provider == LLMProvider.OPENAI:
        return settings.has("OPENAI_API_KEY")
    if provider == LLMProvider.ANTHROPIC:
        return settings.has("ANTHROPIC_API_KEY")
    if provider == LLMProvider.GEMINI:
        return settings.has("GEMINI_API_KEY")
    if provider == LLMProvider.OLLAMA:
        return settings.has("OLLAMA_HOST")
    if provider == LLMProvider.LOCAL:
        return settings.has("LOCAL_LLM_URL")
    if provider == LLMProvider.ENTERPRISE:
        return settings.has("ENTERPRISE_LLM_TOKEN") or settings.has("ENTERPRISE_LLM_URL")
    return settings.has("APIGEE_TOKEN") or (
        settings.has("APIGEE_NONPROD_LOGIN_URL") and settings.has("APIGEE_CONSUMER_KEY")
    )


def get_available_providers(env: Optional[Mapping] = None) -> list[LLMProvider]:
    """Available providers, the one named by ``LLM_PROVIDER`` first."""
    settings = get_settings(env)
    available = [p for p in LLMProvider if is_provider_available(p, settings)]

    preferred = settings.get("LLM_PROVIDER")
    if preferred:
        preferred = LLMProvider.parse(preferred)
        if preferred in available:
            available.remove(preferred)
            available.insert(0, preferred)
    return available


def _token_manager_for(provider: LLMProvider, env: Optional[Mapping]) -> Optional[TokenManager]:
    if provider == LLMProvider.ENTERPRISE:
        return EnterpriseTokenManager(env=env)
    if provider == LLMProvider.APIGEE:
        return ApigeeTokenManager(env=env)
    return None


def create_llm_client(
    config: LLMConfig,
    token_manager: Optional[TokenManager] = None,
    env: Optional[Mapping] = None,
    **kwargs,
) -> LLMClient:
    """Construct a client, wiring a token manager for token-based providers."""
    if token_manager is None:
        token_manager = _token_manager_for(config.provider, env)
    return LLMClient(config, token_manager=token_manager, **kwargs)


def create_llm_client_from_env(env: Optional[Mapping] = None, **kwargs) -> Optional[LLMClient]:
    """Create a client for the configured provider.

    ``LLM_PROVIDER`` selects the provider explicitly; otherwise the first
    available provider is used.

    Returns:
        LLMClient, or None if no provider is configured

    Raises:
        UnsupportedProviderError: If ``LLM_PROVIDER`` names an unknown provider
    """
    settings = get_settings(env)

    explicit = settings.get("LLM_PROVIDER")
    if explicit:
        candidates = [LLMProvider.parse(explicit)]
    else:
        candidates = get_available_providers(settings)
        if not candidates:
            logger.warning("No LLM provider configured")
            return None

    # Without an explicit choice, fall through to the next provider whose
    # settings are complete
    for provider in candidates:
        config = create_config_for_provider(provider, settings)
        client = create_llm_client(config, env=settings, **kwargs)
        if client.is_available():
            logger.info(f"Using LLM provider {provider.value} ({config.model})")
            return client
        logger.warning(
            f"LLM provider {provider.value} is missing settings: {', '.join(client.missing_fields())}"
        )

    return None


def environment_status(env: Optional[Mapping] = None) -> dict[str, dict[str, bool]]:
    """Which provider variables are set. Values are never included."""
    s = get_settings(env)
    return {
        "openai": {"api_key": s.has("OPENAI_API_KEY"), "base_url": s.has("OPENAI_BASE_URL")},
        "anthropic": {"api_key": s.has("ANTHROPIC_API_KEY"), "base_url": s.has("ANTHROPIC_BASE_URL")},
        "gemini": {"api_key": s.has("GEMINI_API_KEY"), "base_url": s.has("GEMINI_BASE_URL")},
        "ollama": {"configured": s.has("OLLAMA_HOST")},
        "local": {"configured": s.has("LOCAL_LLM_URL"), "api_key": s.has("LOCAL_LLM_API_KEY")},
        "enterprise": {
            "configured": s.has("ENTERPRISE_LLM_URL") or s.has("ENTERPRISE_LLM_TOKEN"),
            "url": s.has("ENTERPRISE_LLM_URL"),
            "token": s.has("ENTERPRISE_LLM_TOKEN"),
            "refresh_url": s.has("ENTERPRISE_LLM_REFRESH_URL"),
            "client_id": s.has("ENTERPRISE_LLM_CLIENT_ID"),
        },
        "apigee": {
            "configured": s.has("APIGEE_NONPROD_LOGIN_URL") and s.has("APIGEE_CONSUMER_KEY"),
            "login_url": s.has("APIGEE_NONPROD_LOGIN_URL"),
            "consumer_key": s.has("APIGEE_CONSUMER_KEY"),
            "consumer_secret": s.has("APIGEE_CONSUMER_SECRET"),
            "token": s.has("APIGEE_TOKEN"),
            "enterprise_base_url": s.has("ENTERPRISE_BASE_URL"),
        },
    }


# ==================== Process-wide default client ====================

_global_client: Optional[LLMClient] = None


def get_global_client() -> Optional[LLMClient]:
    """Lazily create and return the default client."""
    global _global_client
    if _global_client is None:
        _global_client = create_llm_client_from_env()
    return _global_client


def get_global_client_info() -> Optional[dict]:
    client = get_global_client()
    if client is None:
        return None
    return client.get_config()


def reset_global_client() -> None:
    global _global_client
    _global_client = None
