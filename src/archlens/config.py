"""Environment-backed settings.

Every provider reads its configuration from environment variables. A YAML file
can supply values for variables the process environment leaves unset, which is
handy for local development::

    OPENAI_API_KEY: sk-...
    LLM_PROVIDER: openai
    EMBEDDINGS_PROVIDER: local
"""

import logging
import os
from collections.abc import Mapping
from typing import Optional

logger = logging.getLogger(__name__)


class Settings:
    """Read-only view over environment variables with an optional file fallback."""

    def __init__(self, environ: Optional[Mapping] = None, file_values: Optional[Mapping] = None):
        """Initialize settings.

        Args:
            environ: Primary mapping (defaults to ``os.environ``, read live)
            file_values: Values used when ``environ`` has no entry for a key
        """
        self._environ = environ if environ is not None else os.environ
        self._file_values = {str(k): str(v) for k, v in (file_values or {}).items() if v is not None}

    @classmethod
    def from_yaml(cls, path: str, environ: Optional[Mapping] = None) -> "Settings":
        """Load fallback values from a YAML file of ``NAME: value`` pairs."""
        import yaml

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Settings file {path} must contain a mapping, got {type(data).__name__}")
        # Allow the values to live under a top-level "env" key
        data = data.get("env", data)
        return cls(environ=environ, file_values=data)

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        value = self._environ.get(key)
        if value is None or value == "":
            value = self._file_values.get(key)
        if value is None or value == "":
            return default
        return value

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def get_float(self, key: str, default: float) -> float:
        raw = self.get(key)
        if raw is None:
            return default
        try:
            return float(raw)
        except ValueError:
            logger.warning(f"Ignoring non-numeric {key}={raw!r}, using {default}")
            return default

    def get_int(self, key: str, default: int) -> int:
        raw = self.get(key)
        if raw is None:
            return default
        try:
            return int(raw)
        except ValueError:
            logger.warning(f"Ignoring non-integer {key}={raw!r}, using {default}")
            return default

    def __contains__(self, key: str) -> bool:
        return self.has(key)


_active_settings: Optional[Settings] = None


def get_settings(env: Optional[Mapping] = None) -> Settings:
    """Resolve the settings to use.

    An explicit mapping wins, then settings installed with ``use_settings``,
    then the live process environment.
    """
    if isinstance(env, Settings):
        return env
    if env is not None:
        return Settings(environ=env)
    if _active_settings is not None:
        return _active_settings
    return Settings()


def use_settings(settings: Optional[Settings]) -> None:
    """Install process-wide settings (``None`` restores the plain environment)."""
    global _active_settings
    _active_settings = settings
