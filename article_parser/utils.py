#!/usr/bin/env python3
"""
Utility functions for article-parser.

URL helpers used by domain resolution and pagination, plus the small text
helpers shared by the cleaners and the generic extractor.
"""

import re
from typing import Optional
from urllib.parse import urlparse, urljoin


def hostname_from_url(url: str) -> Optional[str]:
    """
    Extract the lower-cased hostname from a URL.

    Args:
        url: The URL to inspect

    Returns:
        Hostname, or None when the URL cannot be parsed or has no host
    """
    if not url or not isinstance(url, str):
        return None

    try:
        hostname = urlparse(url.strip()).hostname
    except ValueError:
        return None

    return hostname.lower() if hostname else None


def base_domain(hostname: str) -> str:
    """
    Approximate the registrable domain as the last two labels.

    ``www.example.com`` becomes ``example.com``; ``www.bbc.co.uk`` becomes
    ``co.uk``. A hostname with one label (or none) is returned unchanged.

    Args:
        hostname: Hostname to reduce

    Returns:
        The last two dot-separated labels joined by a dot
    """
    if not hostname:
        return hostname

    parts = hostname.split('.')
    if len(parts) >= 2:
        return '.'.join(parts[-2:])
    return hostname


def remove_anchor(url: str) -> str:
    """
    Strip the fragment and any trailing slash from a URL.

    Used to compare pagination URLs, so ``/a/#p2`` and ``/a`` are the same page.
    """
    without_anchor = url.split('#', 1)[0]
    return without_anchor[:-1] if without_anchor.endswith('/') else without_anchor


def resolve_relative_url(base_url: str, relative_url: str) -> str:
    """
    Resolve a relative URL against a base URL.

    Args:
        base_url: The base URL
        relative_url: The relative URL to resolve

    Returns:
        The resolved absolute URL
    """
    if relative_url.startswith('//'):
        scheme = urlparse(base_url).scheme or 'https'
        return f"{scheme}:{relative_url}"
    return urljoin(base_url, relative_url)


def normalize_spaces(text: str) -> str:
    """
    Collapse runs of whitespace into single spaces and trim.

    Args:
        text: Text to clean

    Returns:
        Text with normalized whitespace
    """
    return re.sub(r'\s+', ' ', text or '').strip()


def truncate_text(text: str, max_length: int = 200, suffix: str = '…') -> str:
    """
    Truncate text to a maximum length, cutting at a word boundary.

    Args:
        text: Text to truncate
        max_length: Maximum length before the suffix is added
        suffix: Suffix to add when truncating

    Returns:
        Truncated text
    """
    if len(text) <= max_length:
        return text

    shortened = text[:max_length]
    last_space = shortened.rfind(' ')
    if last_space > max_length * 0.7:
        shortened = shortened[:last_space]

    return shortened.rstrip(' ,.;:') + suffix


def excerpt_words(text: str, words: int = 10) -> str:
    """Return the first ``words`` words of ``text``, space-joined."""
    return ' '.join(normalize_spaces(text).split(' ')[:words])


def count_words(text: str) -> int:
    """Count whitespace-separated words in text."""
    normalized = normalize_spaces(text)
    if not normalized:
        return 0
    return len(normalized.split(' '))
