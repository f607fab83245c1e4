"""LLM provider layer: types, token managers, clients and the factory."""

from archlens.llm.client import PROVIDER_STRATEGIES, LLMClient, ProviderStrategy
from archlens.llm.factory import (
    create_config_for_provider,
    create_llm_client,
    create_llm_client_from_env,
    environment_status,
    get_available_providers,
    get_global_client,
    get_global_client_info,
    is_provider_available,
    reset_global_client,
)
from archlens.llm.tokens import (
    ApigeeTokenManager,
    EnterpriseTokenManager,
    TokenManager,
    TokenUnavailableError,
)
from archlens.llm.types import (
    LLMCallOptions,
    LLMConfig,
    LLMConfigurationError,
    LLMError,
    LLMHTTPError,
    LLMProvider,
    LLMResponse,
    LLMTimeoutError,
    TokenInfo,
    UnsupportedProviderError,
)

__all__ = [
    # Types
    "LLMProvider",
    "LLMConfig",
    "LLMResponse",
    "LLMCallOptions",
    "TokenInfo",
    # Errors
    "LLMError",
    "LLMConfigurationError",
    "LLMTimeoutError",
    "LLMHTTPError",
    "UnsupportedProviderError",
    "TokenUnavailableError",
    # Tokens
    "TokenManager",
    "EnterpriseTokenManager",
    "ApigeeTokenManager",
    # Client
    "LLMClient",
    "ProviderStrategy",
    "PROVIDER_STRATEGIES",
    # Factory
    "create_config_for_provider",
    "create_llm_client",
    "create_llm_client_from_env",
    "environment_status",
    "get_available_providers",
    "get_global_client",
    "get_global_client_info",
    "is_provider_available",
    "reset_global_client",
]
