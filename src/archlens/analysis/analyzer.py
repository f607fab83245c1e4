"""Architecture analyzer: file in, normalised LLM analysis out."""

import base64
import json
import logging
import time
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from archlens.analysis.parsing import ensure_list, extract_json, normalize_analysis
from archlens.analysis.prompts import ANALYSIS_PROMPT, EXTRACTION_PROMPT
from archlens.analysis.providers import detect_cloud_providers, hybrid_cloud_model
from archlens.cache.analysis_cache import AnalysisCache, generate_analysis_hash, get_default_cache
from archlens.llm.client import LLMClient
from archlens.llm.factory import get_global_client
from archlens.llm.types import LLMConfigurationError

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp", ".bmp", ".svg"}
IAC_EXTENSIONS = {
    ".tf",
    ".tfvars",
    ".hcl",
    ".yaml",
    ".yml",
    ".json",
    ".bicep",
    ".template",
    ".cfn",
}

# Text without an IaC extension is still IaC when it mentions one of these
IAC_MARKERS = ("resource", "provider", "apiVersion", "kind")


def classify_file(file_name: str, content: Union[str, bytes, None] = None) -> str:
    """Return ``image``, ``iac`` or ``text``.

    The extension decides first; other text files count as ``iac`` when their
    content carries a Terraform or Kubernetes marker.
    """
    suffix = Path(file_name).suffix.lower()
    if suffix in IMAGE_EXTENSIONS:
        return "image"
    if suffix in IAC_EXTENSIONS:
        return "iac"
    if isinstance(content, str) and any(marker in content for marker in IAC_MARKERS):
        return "iac"
    return "text"


class ArchitectureAnalyzer:
    """Two-stage LLM analysis of architecture diagrams and IaC files.

    Stage 1 extracts components and connections; stage 2 scores the
    architecture and lists risks, compliance gaps, cost issues and
    recommendations. Results are cached by content hash.
    """

    def __init__(self, llm_client: Optional[LLMClient] = None, cache: Optional[AnalysisCache] = None):
        self._llm_client = llm_client
        self.cache = cache if cache is not None else get_default_cache()

    @property
    def llm_client(self) -> LLMClient:
        if self._llm_client is None:
            self._llm_client = get_global_client()
        if self._llm_client is None:
            raise LLMConfigurationError("No LLM provider configured")
        return self._llm_client

    def analyze_file(
        self,
        path: Union[str, Path],
        app_id: Optional[str] = None,
        component_name: Optional[str] = None,
        environment: Optional[str] = None,
        version: Optional[str] = None,
        use_cache: bool = True,
    ) -> dict:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Architecture file not found: {path}")

        if classify_file(path.name) == "image":
            content: Union[str, bytes] = path.read_bytes()
        else:
            content = path.read_text(encoding="utf-8", errors="replace")

        return self.analyze_content(
            content,
            path.name,
            app_id=app_id,
            component_name=component_name,
            environment=environment,
            version=version,
            use_cache=use_cache,
        )

    def analyze_content(
        self,
        content: Union[str, bytes],
        file_name: str,
        app_id: Optional[str] = None,
        component_name: Optional[str] = None,
        environment: Optional[str] = None,
        version: Optional[str] = None,
        use_cache: bool = True,
    ) -> dict:
        """Analyze in-memory file content.

        Returns:
            Normalised analysis dict with request metadata, the content hash,
            provider/model, processing time and a ``cached`` flag

        Raises:
            LLMError: The provider call failed
            AnalysisParseError: The provider did not return JSON
        """
        content_hash = generate_analysis_hash(content, app_id, component_name, environment, version)

        if use_cache:
            cached = self.cache.get(content_hash)
            if cached is not None:
                return {**cached, "cached": True}

        def compute() -> dict:
            return self._run(content, file_name, content_hash, app_id, component_name, environment, version)

        if not use_cache:
            return compute()
        result = self.cache.get_or_compute(content_hash, compute)
        return {**result, "cached": False}

    def _run(self, content, file_name, content_hash, app_id, component_name, environment, version) -> dict:
        start = time.monotonic()
        client = self.llm_client
        file_type = classify_file(file_name, content)

        if isinstance(content, bytes):
            prompt_content = base64.b64encode(content).decode("ascii")
        else:
            prompt_content = content

        logger.info(f"Stage 1: extracting components from {file_name}")
        extraction_response = client.call_llm(
            EXTRACTION_PROMPT.format(file_name=file_name, file_type=file_type, content=prompt_content)
        )
        extracted = extract_json(extraction_response)

        components = ensure_list(extracted.get("components"))
        cloud_providers = detect_cloud_providers(
            components, content if isinstance(content, str) and file_type != "image" else None
        )
        if not cloud_providers:
            metadata = extracted.get("metadata") if isinstance(extracted.get("metadata"), dict) else {}
            cloud_providers = ensure_list(metadata.get("cloudProviders"))
        logger.info(f"Detected cloud providers: {', '.join(cloud_providers) or 'none'}")

        logger.info("Stage 2: performing detailed analysis")
        architecture = {
            "components": extracted.get("components", []),
            "connections": extracted.get("connections", []),
            "cloudProviders": cloud_providers,
            "summary": extracted.get("summary", ""),
        }
        analysis_response = client.call_llm(
            ANALYSIS_PROMPT.format(
                app_id=app_id or "unknown",
                component_name=component_name or "unknown",
                environment=environment or "unknown",
                version=version or "unknown",
                architecture=json.dumps(architecture, indent=2, ensure_ascii=False),
            )
        )
        result = normalize_analysis(extract_json(analysis_response), extracted)

        metadata = result.get("metadata") if isinstance(result.get("metadata"), dict) else {}
        if cloud_providers:
            metadata = {
                **metadata,
                "cloudProviders": cloud_providers,
                "primaryCloudProvider": cloud_providers[0],
                "hybridCloudModel": hybrid_cloud_model(cloud_providers),
            }

        config = client.get_config()
        result.update(
            {
                "hash": content_hash,
                "fileName": file_name,
                "fileType": file_type,
                "cloudProviders": cloud_providers,
                "metadata": metadata,
                "appId": app_id,
                "componentName": component_name,
                "environment": environment,
                "version": version,
                "timestamp": datetime.now().isoformat(),
                "processingTime": round(time.monotonic() - start, 2),
                "llmProvider": config["provider"],
                "llmModel": config.get("model") or "unknown",
            }
        )
        logger.info(f"Analysis complete for {file_name} (overall score {result['overallScore']})")
        return result
