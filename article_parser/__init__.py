"""
article-parser - Extract structured article data from web pages.

Site-specific rulesets pick out the title, author, publication date, body
and other fields of an article; a generic extractor fills in whatever a
ruleset misses, and multi-page articles are stitched back together.
"""

__version__ = "1.0.0"

from .exceptions import (
    ArticleParserError,
    FetchError,
    InvalidDocumentError,
    InvalidRulesetError,
    RulesetNotFoundError,
    URLValidationError,
)
from .models import ExtractionResult, ParsedArticle, Ruleset
from .parser import ArticleParser

__all__ = [
    "ArticleParser",
    "ParsedArticle",
    "ExtractionResult",
    "Ruleset",
    "ArticleParserError",
    "FetchError",
    "InvalidDocumentError",
    "InvalidRulesetError",
    "RulesetNotFoundError",
    "URLValidationError",
]
