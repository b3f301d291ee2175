"""
Field cleaners for article-parser.

Each standard field has a cleaner that normalizes a raw selected value and
rejects values that are obviously wrong for the field. A cleaner returning
None means "no usable value", which lets the caller fall back to the generic
extractor.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup, Comment, Tag
from dateutil import parser as date_parser

from ..utils import excerpt_words, normalize_spaces, resolve_relative_url, truncate_text

logger = logging.getLogger(__name__)

DEK_MIN_LENGTH = 5
DEK_MAX_LENGTH = 1000
TITLE_MAX_LENGTH = 150
EXCERPT_MAX_LENGTH = 200

BYLINE_PREFIX_RE = re.compile(r'^\s*(posted\s+|written\s+)?by\s*:?\s+', re.IGNORECASE)
TEXT_LINK_RE = re.compile(r'https?://', re.IGNORECASE)
MS_DATE_RE = re.compile(r'^\d{13}$')
SEC_DATE_RE = re.compile(r'^\d{10}$')
DATE_PREFIX_RE = re.compile(r'^\s*(published|updated|posted|date)\s*:?\s*', re.IGNORECASE)
MERIDIAN_DOTS_RE = re.compile(r'([ap])\.m\.', re.IGNORECASE)
DIGITS_RE = re.compile(r'\d[\d,]*')

TITLE_SEPARATORS = (' | ', ' - ', ': ')

# Elements never worth keeping in extracted content
STRIP_CONTENT_TAGS = (
    'script', 'style', 'link', 'form', 'input', 'button', 'select',
    'textarea', 'object', 'embed', 'applet',
)
MEDIA_TAGS = ('img', 'picture', 'video', 'audio', 'iframe', 'figure', 'svg')


def strip_tags(text: str) -> str:
    """Remove markup from a string and normalize whitespace."""
    if not text:
        return ''
    if '<' in text:
        text = BeautifulSoup(text, 'html.parser').get_text(' ')
    return normalize_spaces(text)


def clean_title(title: str, url: Optional[str] = None, document: Any = None) -> Optional[str]:
    """
    Normalize a title, shortening very long ones that carry a site name.

    Args:
        title: Raw title text
        url: Article URL (unused by the simple cleaner, kept for symmetry)
        document: Parsed document (unused by the simple cleaner)

    Returns:
        Cleaned title or None if it is blank
    """
    cleaned = strip_tags(title)
    if not cleaned:
        return None

    if len(cleaned) > TITLE_MAX_LENGTH:
        for separator in TITLE_SEPARATORS:
            if separator in cleaned:
                longest = max((part.strip() for part in cleaned.split(separator)), key=len)
                if 10 < len(longest) < len(cleaned):
                    cleaned = longest
                    break

    return cleaned


def clean_author(author: str) -> Optional[str]:
    """Strip a "By" prefix and whitespace noise from an author byline."""
    cleaned = normalize_spaces(BYLINE_PREFIX_RE.sub('', strip_tags(author)))
    return cleaned or None


def _to_iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime('%Y-%m-%dT%H:%M:%S.') + f"{value.microsecond // 1000:03d}Z"


def _parse_date(value: str) -> Optional[datetime]:
    try:
        return date_parser.parse(value)
    except (ValueError, OverflowError, TypeError):
        return None


def clean_date_published(date_string: str) -> Optional[str]:
    """
    Convert a date string into an ISO 8601 UTC timestamp.

    Epoch values in seconds or milliseconds are accepted, as is anything
    ``dateutil`` can parse once common prefixes ("Published:") are stripped.

    Args:
        date_string: Raw date text

    Returns:
        ISO formatted date (``YYYY-MM-DDTHH:MM:SS.sssZ``) or None
    """
    if not date_string:
        return None
    date_string = date_string.strip()

    if MS_DATE_RE.match(date_string):
        return _to_iso(datetime.fromtimestamp(int(date_string) / 1000, tz=timezone.utc))
    if SEC_DATE_RE.match(date_string):
        return _to_iso(datetime.fromtimestamp(int(date_string), tz=timezone.utc))

    parsed = _parse_date(date_string)
    if parsed is None:
        cleaned = DATE_PREFIX_RE.sub('', strip_tags(date_string))
        cleaned = MERIDIAN_DOTS_RE.sub(r'\1m', cleaned)
        parsed = _parse_date(cleaned)
        if parsed is None:
            logger.debug("Unparseable date: %r", date_string)
            return None

    return _to_iso(parsed)


def _absolute_http_url(value: str, url: Optional[str]) -> Optional[str]:
    cleaned = (value or '').strip()
    if not cleaned:
        return None
    if url:
        cleaned = resolve_relative_url(url, cleaned)
    elif cleaned.startswith('//'):
        cleaned = 'https:' + cleaned

    parsed = urlparse(cleaned)
    if parsed.scheme not in ('http', 'https') or not parsed.netloc:
        return None
    return cleaned


def clean_lead_image_url(image_url: str, url: Optional[str] = None) -> Optional[str]:
    """Resolve an image URL and accept it only if it is absolute http(s)."""
    return _absolute_http_url(image_url, url)


def clean_next_page_url(next_url: str, url: Optional[str] = None) -> Optional[str]:
    """Resolve a next page link; a link back to the same page is rejected."""
    resolved = _absolute_http_url(next_url, url)
    if resolved and url and resolved.split('#', 1)[0] == url.split('#', 1)[0]:
        return None
    return resolved


def clean_url(value: str, url: Optional[str] = None) -> Optional[str]:
    return _absolute_http_url(value, url)


def clean_dek(dek: str, excerpt: Optional[str] = None) -> Optional[str]:
    """
    Clean a dek (subtitle), rejecting values that are not really a dek.

    A dek is rejected when its length is out of range, when it contains a
    link, or when it merely repeats the start of the excerpt.

    Args:
        dek: Raw dek text or markup
        excerpt: The article excerpt, if already known

    Returns:
        Cleaned dek or None
    """
    cleaned = strip_tags(dek)
    if len(cleaned) > DEK_MAX_LENGTH or len(cleaned) < DEK_MIN_LENGTH:
        return None

    if excerpt and excerpt_words(excerpt, 10) == excerpt_words(cleaned, 10):
        return None

    if TEXT_LINK_RE.search(cleaned):
        return None
    return cleaned


def clean_excerpt(excerpt: str) -> Optional[str]:
    cleaned = strip_tags(excerpt)
    if not cleaned:
        return None
    return truncate_text(cleaned, EXCERPT_MAX_LENGTH)


def clean_word_count(value: Any) -> Optional[int]:
    """Turn a selected word count ("1,204 words") into an int."""
    if isinstance(value, int):
        return value
    match = DIGITS_RE.search(str(value or ''))
    if not match:
        return None
    return int(match.group(0).replace(',', ''))


def clean_direction(value: str) -> Optional[str]:
    direction = (value or '').strip().lower()
    return direction if direction in ('ltr', 'rtl', 'bidi') else None


def clean_content(container: Tag, title: Optional[str] = None) -> Optional[Tag]:
    """
    Tidy an extracted content container in place.

    Removes scripts, styles and form controls, comments, inline event
    handlers, empty paragraphs and headers repeating the title.

    Args:
        container: The ``<div>`` wrapping the selected content
        title: Article title, if already extracted

    Returns:
        The same container, or None if nothing readable is left
    """
    for comment in container.find_all(string=lambda text: isinstance(text, Comment)):
        comment.extract()

    for node in container.find_all(STRIP_CONTENT_TAGS):
        if not node.decomposed:
            node.decompose()

    for node in container.find_all(True):
        for attr in [name for name in node.attrs if name.lower().startswith('on')]:
            del node[attr]

    if title:
        normalized_title = normalize_spaces(title).lower()
        for header in container.find_all(['h1', 'h2']):
            if normalize_spaces(header.get_text()).lower() == normalized_title:
                header.decompose()

    for paragraph in container.find_all('p'):
        if not paragraph.get_text(strip=True) and not paragraph.find(MEDIA_TAGS):
            paragraph.decompose()

    if not container.get_text(strip=True) and not container.find(MEDIA_TAGS):
        return None
    return container


def clean_field(field: str, value: Any, *, url: Optional[str] = None, document: Any = None,
                context: Any = None) -> Any:
    """
    Apply the cleaner registered for ``field``.

    Fields without a cleaner are only trimmed. ``context`` supplies values
    from earlier fields (title for content, excerpt for dek).

    Returns:
        The cleaned value, or None when the value was rejected
    """
    title = getattr(context, 'title', None)
    excerpt = getattr(context, 'excerpt', None)

    cleaners: Dict[str, Callable[[Any], Any]] = {
        'title': lambda v: clean_title(v, url, document),
        'author': clean_author,
        'date_published': clean_date_published,
        'lead_image_url': lambda v: clean_lead_image_url(v, url),
        'next_page_url': lambda v: clean_next_page_url(v, url),
        'url': lambda v: clean_url(v, url),
        'dek': lambda v: clean_dek(v, excerpt),
        'excerpt': clean_excerpt,
        'word_count': clean_word_count,
        'direction': clean_direction,
        'content': lambda v: clean_content(v, title),
    }

    cleaner = cleaners.get(field)
    if cleaner is None:
        return (value.strip() or None) if isinstance(value, str) else value
    return cleaner(value)
