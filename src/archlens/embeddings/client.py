"""Embeddings client for generating vector embeddings.

Supports several embedding vendors behind one interface. Every request is a
JSON POST with an explicit timeout; a timeout surfaces as
``EmbeddingsTimeoutError``.
"""

import logging
import math
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Optional

import requests

from archlens.config import get_settings
from archlens.constants import (
    DEFAULT_BATCH_EMBEDDING_TIMEOUT,
    DEFAULT_COHERE_URL,
    DEFAULT_EMBEDDING_TIMEOUT,
    DEFAULT_EMBEDDINGS_DIMENSIONS,
    DEFAULT_EMBEDDINGS_MODEL,
    DEFAULT_EMBEDDINGS_PROVIDER,
    DEFAULT_HUGGINGFACE_URL,
    DEFAULT_OPENAI_EMBEDDINGS_URL,
    EMBEDDING_BATCH_SIZE,
    LOCAL_API_KEY_PLACEHOLDER,
)

logger = logging.getLogger(__name__)


class EmbeddingsProvider(Enum):
    """Supported embedding vendors."""

    LOCAL = "local"
    OPENAI = "openai"
    COHERE = "cohere"
    HUGGINGFACE = "huggingface"


class EmbeddingsError(Exception):
    """Raised when an embedding request fails."""

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


class EmbeddingsTimeoutError(EmbeddingsError):
    """The embedding request exceeded its timeout."""


@dataclass
class EmbeddingsConfig:
    provider: EmbeddingsProvider
    model: str
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    dimensions: Optional[int] = None


class EmbeddingsClient:
    """Generate embeddings with the configured provider."""

    LABELS = {
        EmbeddingsProvider.LOCAL: "Local",
        EmbeddingsProvider.OPENAI: "OpenAI",
        EmbeddingsProvider.COHERE: "Cohere",
        EmbeddingsProvider.HUGGINGFACE: "Hugging Face",
    }

    def __init__(self, config: EmbeddingsConfig, session: Optional[requests.Session] = None):
        self.config = config
        self._session = session or requests.Session()

    def get_config(self) -> EmbeddingsConfig:
        return replace(self.config)

    def is_available(self) -> bool:
        if not self.config.provider or not self.config.model:
            return False

        if self.config.provider == EmbeddingsProvider.LOCAL:
            # Local models don't need API keys
            return True
        if self.config.provider in (
            EmbeddingsProvider.OPENAI,
            EmbeddingsProvider.COHERE,
            EmbeddingsProvider.HUGGINGFACE,
        ):
            return bool(self.config.api_key and self.config.base_url)
        return False

    def generate_embedding(self, text: str, timeout: Optional[float] = None) -> list[float]:
        """Embed a single text.

        Args:
            text: Text to embed
            timeout: Seconds before the request is abandoned (default 30)

        Raises:
            EmbeddingsTimeoutError: The request timed out
            EmbeddingsError: Misconfiguration or an upstream error
        """
        timeout = timeout or DEFAULT_EMBEDDING_TIMEOUT
        provider = self.config.provider

        if provider == EmbeddingsProvider.LOCAL:
            return self._call_local(text, timeout)
        if provider == EmbeddingsProvider.OPENAI:
            return self._call_openai(text, timeout)
        if provider == EmbeddingsProvider.COHERE:
            return self._call_cohere(text, timeout)
        if provider == EmbeddingsProvider.HUGGINGFACE:
            return self._call_huggingface(text, timeout)
        raise EmbeddingsError(f"Unsupported embedding provider: {provider}", provider)

    def generate_batch_embeddings(
        self,
        texts: list[str],
        timeout: Optional[float] = None,
        batch_size: int = EMBEDDING_BATCH_SIZE,
    ) -> list[list[float]]:
        """Embed many texts, ``batch_size`` at a time.

        The overall timeout is split evenly across batches. Texts inside a
        batch are embedded concurrently; results keep the input order.
        """
        if not texts:
            return []

        timeout = timeout or DEFAULT_BATCH_EMBEDDING_TIMEOUT
        per_call_timeout = timeout / math.ceil(len(texts) / batch_size)
        results: list[list[float]] = []

        with ThreadPoolExecutor(max_workers=batch_size) as executor:
            for i in range(0, len(texts), batch_size):
                batch = texts[i : i + batch_size]
                results.extend(
                    executor.map(lambda t: self.generate_embedding(t, timeout=per_call_timeout), batch)
                )

        return results

    # ---------- providers ----------

    def _post(self, url: str, headers: dict, payload: dict, timeout: float):
        label = self.LABELS[self.config.provider]
        try:
            return self._session.post(url, headers=headers, json=payload, timeout=timeout)
        except requests.exceptions.Timeout as e:
            raise EmbeddingsTimeoutError(
                f"{label} embedding API call timed out", self.config.provider, original_error=e
            )
        except requests.exceptions.RequestException as e:
            raise EmbeddingsError(
                f"{label} embedding API call failed: {e}", self.config.provider, original_error=e
            )

    def _error_field(self, response, *path: str) -> str:
        try:
            data = response.json()
        except ValueError:
            return "Unknown error"
        for key in path:
            if not isinstance(data, dict):
                return "Unknown error"
            data = data.get(key)
        return data or "Unknown error"

    def _bearer_headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.config.api_key}",
        }

    def _call_local(self, text: str, timeout: float) -> list[float]:
        if not self.config.base_url:
            raise EmbeddingsError("Local embedding base URL not provided", EmbeddingsProvider.LOCAL)

        headers = {"Content-Type": "application/json"}
        if self.config.api_key and self.config.api_key != LOCAL_API_KEY_PLACEHOLDER:
            headers["Authorization"] = f"Bearer {self.config.api_key}"

        response = self._post(
            f"{self.config.base_url.rstrip('/')}/v1/embeddings",
            headers,
            {"model": self.config.model, "input": text, "encoding_format": "float"},
            timeout,
        )
        if not response.ok:
            raise EmbeddingsError(
                f"Local embedding API error: {response.text or 'Unknown error'}",
                EmbeddingsProvider.LOCAL,
                response.status_code,
            )
        return self._parse_vector(response, _openai_vector)

    def _call_openai(self, text: str, timeout: float) -> list[float]:
        base_url = (self.config.base_url or DEFAULT_OPENAI_EMBEDDINGS_URL).rstrip("/")
        response = self._post(
            f"{base_url}/v1/embeddings",
            self._bearer_headers(),
            {"model": self.config.model, "input": text, "encoding_format": "float"},
            timeout,
        )
        if not response.ok:
            raise EmbeddingsError(
                f"OpenAI embedding API error: {self._error_field(response, 'error', 'message')}",
                EmbeddingsProvider.OPENAI,
                response.status_code,
            )
        return self._parse_vector(response, _openai_vector)

    def _call_cohere(self, text: str, timeout: float) -> list[float]:
        base_url = (self.config.base_url or DEFAULT_COHERE_URL).rstrip("/")
        response = self._post(
            f"{base_url}/v1/embed",
            self._bearer_headers(),
            {"model": self.config.model, "texts": [text], "input_type": "search_document"},
            timeout,
        )
        if not response.ok:
            raise EmbeddingsError(
                f"Cohere embedding API error: {self._error_field(response, 'message')}",
                EmbeddingsProvider.COHERE,
                response.status_code,
            )
        return self._parse_vector(response, _cohere_vector)

    def _call_huggingface(self, text: str, timeout: float) -> list[float]:
        base_url = (self.config.base_url or DEFAULT_HUGGINGFACE_URL).rstrip("/")
        response = self._post(
            f"{base_url}/models/{self.config.model}",
            self._bearer_headers(),
            {"inputs": text, "options": {"wait_for_model": True}},
            timeout,
        )
        if not response.ok:
            raise EmbeddingsError(
                f"Hugging Face embedding API error: {self._error_field(response, 'error')}",
                EmbeddingsProvider.HUGGINGFACE,
                response.status_code,
            )

        return self._parse_vector(response, _huggingface_vector)

    def _parse_vector(self, response, extract: Callable[[Any], Any]) -> list[float]:
        """Pull the vector out of a 2xx response.

        Raises:
            EmbeddingsError: The body is not JSON or not the expected shape
        """
        label = self.LABELS[self.config.provider]
        try:
            vector = extract(response.json())
            if not isinstance(vector, list):
                raise TypeError(f"expected a list, got {type(vector).__name__}")
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise EmbeddingsError(
                f"{label} embedding API returned an unexpected response: {e}",
                self.config.provider,
                response.status_code,
                original_error=e,
            )
        return vector


def _openai_vector(data):
    return data["data"][0]["embedding"]


def _cohere_vector(data):
    return data["embeddings"][0]


def _huggingface_vector(data):
    # Feature-extraction pipelines answer with one row per input
    if data and isinstance(data[0], list):
        data = data[0]
    return data


def create_embeddings_client_from_env(env: Optional[Mapping] = None) -> Optional[EmbeddingsClient]:
    """Create an embeddings client from ``EMBEDDINGS_*`` variables.

    Returns:
        EmbeddingsClient, or None if the provider is unknown or not configured
    """
    settings = get_settings(env)
    name = settings.get("EMBEDDINGS_PROVIDER", DEFAULT_EMBEDDINGS_PROVIDER)

    try:
        provider = EmbeddingsProvider(name.strip().lower())
    except ValueError:
        logger.error(f"Failed to create embeddings client: unsupported provider {name!r}")
        return None

    config = EmbeddingsConfig(
        provider=provider,
        model=settings.get("EMBEDDINGS_MODEL", DEFAULT_EMBEDDINGS_MODEL),
        api_key=settings.get("EMBEDDINGS_API_KEY"),
        base_url=settings.get("EMBEDDINGS_BASE_URL"),
        dimensions=settings.get_int("EMBEDDINGS_DIMENSIONS", DEFAULT_EMBEDDINGS_DIMENSIONS),
    )

    client = EmbeddingsClient(config)
    if not client.is_available():
        logger.warning(f"Embeddings provider {provider.value} is not fully configured")
        return None
    return client
