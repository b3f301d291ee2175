"""
Exceptions for article-parser.

Only structural problems (a missing document) and bad caller input escape
the public API. Everything else (no selector match, unknown domain, a failed
page fetch during pagination) is absorbed and turned into a partial result.
"""

from typing import Any, Dict, Optional


class ArticleParserError(Exception):
    """Base exception carrying a message and structured details."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging and serialization."""
        return {
            "type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class RulesetNotFoundError(ArticleParserError):
    """Raised by the loader when no ruleset exists for a domain."""

    def __init__(self, domain: str, attempts: int = 0):
        super().__init__(
            f"No ruleset found for domain: {domain}",
            details={"domain": domain, "attempts": attempts},
        )
        self.domain = domain


class InvalidRulesetError(ArticleParserError):
    """Raised when a ruleset definition cannot be registered."""
    pass


class InvalidDocumentError(ArticleParserError):
    """Raised when extraction is attempted without a parsed document."""

    def __init__(self, message: str = "Extraction requires a parsed document",
                 url: Optional[str] = None):
        super().__init__(message, details={"url": url} if url else None)


class FetchError(ArticleParserError):
    """Raised when a page cannot be downloaded or is not HTML."""

    def __init__(self, url: str, reason: str, status_code: Optional[int] = None):
        details = {"url": url, "reason": reason}
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(f"Failed to fetch {url}: {reason}", details=details)
        self.url = url
        self.status_code = status_code


class URLValidationError(ArticleParserError):
    """Raised for URLs that cannot or must not be parsed."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Invalid URL {url!r}: {reason}", details={"url": url})
        self.url = url
        self.reason = reason
