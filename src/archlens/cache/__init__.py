"""Caching system for analysis results."""

from .analysis_cache import (
    AnalysisCache,
    CachedAnalysis,
    cache_analysis,
    clear_all_cache,
    clear_expired_cache,
    generate_analysis_hash,
    get_cache_stats,
    get_cached_analysis,
    get_default_cache,
    set_default_cache,
)

__all__ = [
    "AnalysisCache",
    "CachedAnalysis",
    "generate_analysis_hash",
    "get_cached_analysis",
    "cache_analysis",
    "clear_expired_cache",
    "clear_all_cache",
    "get_cache_stats",
    "get_default_cache",
    "set_default_cache",
]
