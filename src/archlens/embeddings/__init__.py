"""Vector embeddings: provider client and blueprint/analysis service."""

from archlens.embeddings.client import (
    EmbeddingsClient,
    EmbeddingsConfig,
    EmbeddingsError,
    EmbeddingsProvider,
    EmbeddingsTimeoutError,
    create_embeddings_client_from_env,
)
from archlens.embeddings.service import (
    Blueprint,
    EmbeddingResult,
    EmbeddingService,
    get_embedding_service,
)

__all__ = [
    "EmbeddingsClient",
    "EmbeddingsConfig",
    "EmbeddingsError",
    "EmbeddingsProvider",
    "EmbeddingsTimeoutError",
    "create_embeddings_client_from_env",
    "Blueprint",
    "EmbeddingResult",
    "EmbeddingService",
    "get_embedding_service",
]
