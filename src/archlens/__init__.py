"""ArchLens - LLM-backed review of cloud architecture diagrams and IaC files."""

__version__ = "0.1.0"

from archlens.cache import AnalysisCache, generate_analysis_hash
from archlens.llm.types import (
    LLMConfig,
    LLMError,
    LLMProvider,
    LLMTimeoutError,
)


# Lazy imports keep `import archlens` free of the SDK and HTTP client imports
def __getattr__(name):
    """Lazy import for optional modules."""
    if name == "LLMClient":
        from archlens.llm.client import LLMClient

        return LLMClient
    if name == "create_llm_client_from_env":
        from archlens.llm.factory import create_llm_client_from_env

        return create_llm_client_from_env
    if name == "EmbeddingsClient":
        from archlens.embeddings.client import EmbeddingsClient

        return EmbeddingsClient
    if name == "create_embeddings_client_from_env":
        from archlens.embeddings.client import create_embeddings_client_from_env

        return create_embeddings_client_from_env
    if name == "ArchitectureAnalyzer":
        from archlens.analysis import ArchitectureAnalyzer

        return ArchitectureAnalyzer
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "AnalysisCache",
    "generate_analysis_hash",
    "LLMConfig",
    "LLMError",
    "LLMProvider",
    "LLMTimeoutError",
    # Lazy loaded
    "LLMClient",
    "create_llm_client_from_env",
    "EmbeddingsClient",
    "create_embeddings_client_from_env",
    "ArchitectureAnalyzer",
]
