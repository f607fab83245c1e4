"""Bearer token caching for the enterprise and Apigee providers.

Tokens come from environment variables and are trusted for a fixed TTL.
``refresh_token`` only re-reads the variable; there is no network refresh, so
rotating a token requires updating the environment the process runs in.
"""

import logging
from collections.abc import Mapping
from datetime import datetime, timedelta
from typing import Callable, Optional

from archlens.config import get_settings
from archlens.constants import APIGEE_TOKEN_ENV, ENTERPRISE_TOKEN_ENV, TOKEN_TTL_SECONDS
from archlens.llm.types import LLMConfigurationError, LLMProvider, TokenInfo

logger = logging.getLogger(__name__)


class TokenUnavailableError(LLMConfigurationError):
    """The environment variable backing a token manager is not set."""


class TokenManager:
    """Cache a bearer token read from an environment variable."""

    provider = None

    def __init__(
        self,
        env_var: str,
        ttl: float = TOKEN_TTL_SECONDS,
        env: Optional[Mapping] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """Initialize token manager.

        Args:
            env_var: Name of the variable holding the token
            ttl: Seconds a token is reused before the variable is read again
            env: Mapping to read from instead of the process environment
            clock: Returns the current time; tests pass a fake
        """
        self.env_var = env_var
        self.ttl = timedelta(seconds=ttl)
        self._env = env
        self._clock = clock
        self._token: Optional[TokenInfo] = None

    @property
    def token_info(self) -> Optional[TokenInfo]:
        return self._token

    def is_cached(self) -> bool:
        return self._token is not None and not self._token.is_expired(self._clock())

    def get_valid_token(self) -> str:
        """Return the cached token, reading the environment when it is missing or stale.

        Raises:
            TokenUnavailableError: If the backing variable is unset or empty
        """
        now = self._clock()
        if self._token is not None and not self._token.is_expired(now):
            return self._token.token

        token = get_settings(self._env).get(self.env_var)
        if not token:
            raise TokenUnavailableError(
                f"{self.env_var} environment variable not set", provider=self.provider
            )

        self._token = TokenInfo(token=token, expires_at=now + self.ttl)
        logger.debug(f"Cached {self.env_var} until {self._token.expires_at.isoformat()}")
        return token

    def clear_token(self) -> None:
        self._token = None

    def refresh_token(self) -> str:
        """Discard the cached token and read it again."""
        self.clear_token()
        return self.get_valid_token()


class EnterpriseTokenManager(TokenManager):
    """Token for the enterprise LLM gateway (``ENTERPRISE_LLM_TOKEN``)."""

    provider = LLMProvider.ENTERPRISE

    def __init__(self, ttl: float = TOKEN_TTL_SECONDS, env: Optional[Mapping] = None, clock=datetime.now):
        super().__init__(ENTERPRISE_TOKEN_ENV, ttl=ttl, env=env, clock=clock)


class ApigeeTokenManager(TokenManager):
    """Token for the Apigee-fronted gateway (``APIGEE_TOKEN``)."""

    provider = LLMProvider.APIGEE

    def __init__(self, ttl: float = TOKEN_TTL_SECONDS, env: Optional[Mapping] = None, clock=datetime.now):
        super().__init__(APIGEE_TOKEN_ENV, ttl=ttl, env=env, clock=clock)

    def get_apigee_token(self) -> str:
        return self.get_valid_token()
