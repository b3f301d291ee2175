"""
Extraction modules for article-parser.

This package contains the ruleset registry and cache, extractor resolution,
the selector engine and the per-page and multi-page extraction drivers.
"""

from .generic import GenericExtractor
from .loader import LoaderConfig, RulesetLoader
from .pagination import collect_all_pages
from .registry import RulesetRegistry, build_default_registry
from .resolver import ExtractorResolver
from .root_extractor import RootExtractor

__all__ = [
    "ExtractorResolver",
    "GenericExtractor",
    "LoaderConfig",
    "RootExtractor",
    "RulesetLoader",
    "RulesetRegistry",
    "build_default_registry",
    "collect_all_pages",
]
