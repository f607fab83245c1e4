"""Embedding service for blueprints and analyses.

Turns blueprint records and analysis results into a compact text description
and embeds it, so similar architectures end up close in vector space.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from archlens.embeddings.client import EmbeddingsClient, EmbeddingsError, create_embeddings_client_from_env

logger = logging.getLogger(__name__)


@dataclass
class EmbeddingResult:
    success: bool
    vector_id: Optional[str] = None
    embedding: Optional[list[float]] = None
    error: Optional[str] = None


@dataclass
class Blueprint:
    """The parts of a blueprint record that feed its embedding."""

    id: str
    name: str
    description: str = ""
    type: str = ""
    category: str = ""
    cloud_providers: list[str] = field(default_factory=list)
    complexity: str = ""
    tags: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "Blueprint":
        """Build from a stored record (camelCase or snake_case keys)."""
        providers = data.get("cloud_providers") or data.get("cloudProviders") or []
        if not providers and data.get("cloudProvider"):
            providers = [data["cloudProvider"]]
        return cls(
            id=str(data.get("id") or data.get("_id") or ""),
            name=data.get("name", ""),
            description=data.get("description", ""),
            type=data.get("type", ""),
            category=data.get("category", ""),
            cloud_providers=list(providers),
            complexity=data.get("complexity", ""),
            tags=list(data.get("tags") or []),
            metadata=dict(data.get("metadata") or {}),
        )

    @property
    def vector_id(self) -> str:
        return f"blueprint_{self.id}"


def _describe_items(items, default: str, with_type: bool = False) -> str:
    if not isinstance(items, list):
        return ""
    names = []
    for item in items:
        if isinstance(item, str):
            names.append(item)
        elif isinstance(item, dict):
            if with_type:
                names.append(f"{item.get('name') or 'component'} ({item.get('type') or 'unknown'})")
            else:
                names.append(item.get("name") or item.get("type") or default)
        else:
            names.append(default)
    return ", ".join(names)


class EmbeddingService:
    """Generate embeddings for blueprints and analyses."""

    def __init__(self, client: Optional[EmbeddingsClient] = None):
        self.client = client if client is not None else create_embeddings_client_from_env()
        if self.client is None:
            logger.warning("No embeddings client available - check EMBEDDINGS_* environment variables")

    def is_available(self) -> bool:
        return self.client is not None and self.client.is_available()

    def extract_blueprint_content(self, blueprint: Blueprint) -> str:
        meta = blueprint.metadata
        connections = meta.get("connections")
        if isinstance(connections, list):
            connections = ", ".join(
                c if isinstance(c, str) else (c.get("type") if isinstance(c, dict) else None) or "connection"
                for c in connections
            )
        else:
            connections = ""

        lines = [
            f"Name: {blueprint.name}",
            f"Description: {blueprint.description}",
            f"Type: {blueprint.type}",
            f"Category: {blueprint.category}",
            f"Cloud Provider: {', '.join(blueprint.cloud_providers)}",
            f"Complexity: {blueprint.complexity}",
            f"Tags: {', '.join(blueprint.tags)}",
            f"Components: {_describe_items(meta.get('components'), 'component')}",
            f"Connections: {connections}",
            f"Purpose: {meta.get('primaryPurpose') or 'Architecture blueprint'}",
            f"Environment: {meta.get('environmentType') or 'Production'}",
            f"Deployment: {meta.get('deploymentModel') or 'Cloud'}",
        ]
        return "\n".join(lines)

    def extract_analysis_content(self, analysis: dict) -> str:
        meta = analysis.get("metadata") or {}
        connections = ", ".join(
            c if isinstance(c, str) else (c.get("type") if isinstance(c, dict) else None) or "connection"
            for c in analysis.get("connections") or []
        )
        cloud_providers = meta.get("cloudProviders") or []

        lines = [
            f"Description: {analysis.get('description') or 'Architecture analysis'}",
            f"Components: {_describe_items(analysis.get('components') or [], 'component', with_type=True)}",
            f"Connections: {connections}",
            f"Architecture Type: {meta.get('architectureType') or 'Unknown'}",
            f"Cloud Providers: {', '.join(cloud_providers) or 'Unknown'}",
            f"Complexity: {meta.get('estimatedComplexity') or 'Unknown'}",
            f"Purpose: {meta.get('primaryPurpose') or 'Architecture analysis'}",
            f"Environment: {meta.get('environmentType') or 'Unknown'}",
        ]
        return "\n".join(lines)

    def _embed(self, content: str, vector_id: Optional[str] = None) -> EmbeddingResult:
        if not self.is_available():
            return EmbeddingResult(success=False, error="Embedding service not available")

        try:
            embedding = self.client.generate_embedding(content)
        except EmbeddingsError as e:
            logger.error(f"Failed to generate embedding: {e}")
            return EmbeddingResult(success=False, error=str(e))

        return EmbeddingResult(success=True, vector_id=vector_id, embedding=embedding)

    def generate_blueprint_embedding(self, blueprint) -> EmbeddingResult:
        if isinstance(blueprint, dict):
            blueprint = Blueprint.from_dict(blueprint)
        return self._embed(self.extract_blueprint_content(blueprint), vector_id=blueprint.vector_id)

    def generate_analysis_embedding(self, analysis: dict) -> EmbeddingResult:
        return self._embed(self.extract_analysis_content(analysis))


_embedding_service: Optional[EmbeddingService] = None


def get_embedding_service() -> EmbeddingService:
    global _embedding_service
    if _embedding_service is None:
        _embedding_service = EmbeddingService()
    return _embedding_service
