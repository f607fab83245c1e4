"""Architecture analysis on top of the LLM and cache layers."""

from archlens.analysis.analyzer import ArchitectureAnalyzer, classify_file
from archlens.analysis.parsing import (
    AnalysisParseError,
    ensure_list,
    extract_json,
    normalize_analysis,
    parse_if_stringified,
)
from archlens.analysis.providers import detect_cloud_providers

__all__ = [
    "ArchitectureAnalyzer",
    "classify_file",
    "AnalysisParseError",
    "ensure_list",
    "extract_json",
    "normalize_analysis",
    "parse_if_stringified",
    "detect_cloud_providers",
]
