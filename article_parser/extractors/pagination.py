"""
Multi-page article collection.

Follows ``next_page_url`` links one page at a time, extracting each page with
the same ruleset and appending its content to the first page's.
"""

import logging
import threading
import time
from typing import Any, Dict, Optional

from ..exceptions import FetchError, InvalidDocumentError
from ..models import ExtractionContext, Ruleset
from ..utils import remove_anchor
from .generic import GenericExtractor
from .root_extractor import RootExtractor

logger = logging.getLogger(__name__)

MAX_PAGES = 26
PAGE_SEPARATOR = '<hr><h4>Page {page}</h4>'


def _should_stop(cancel_event: Optional[threading.Event], deadline: Optional[float]) -> bool:
    if cancel_event is not None and cancel_event.is_set():
        logger.debug("Pagination cancelled")
        return True
    if deadline is not None and time.monotonic() >= deadline:
        logger.debug("Pagination deadline passed")
        return True
    return False


def collect_all_pages(first_page_result: Dict[str, Any], *, ruleset: Ruleset, url: str,
                      fetcher: Any, root_extractor: RootExtractor, title: Optional[str] = None,
                      max_pages: int = MAX_PAGES, cancel_event: Optional[threading.Event] = None,
                      deadline: Optional[float] = None,
                      generic: Optional[GenericExtractor] = None) -> Dict[str, Any]:
    """
    Fetch and merge the remaining pages of an article.

    Stops at the first page that cannot be fetched or extracted, when a link
    points back to a page already seen, after ``max_pages`` pages, or when
    cancelled. Whatever was collected up to then is returned.

    Args:
        first_page_result: Field map of the first page
        ruleset: Ruleset used for every page
        url: URL of the first page
        fetcher: Object with a ``fetch(url)`` method returning a parsed document
        root_extractor: Extractor run on each page
        title: Title of the first page, used when cleaning later pages
        max_pages: Upper bound on the number of pages, first page included
        cancel_event: Stops the loop when set
        deadline: ``time.monotonic()`` value after which the loop stops
        generic: Generic extractor used to count words

    Returns:
        The first page's field map with merged ``content``, recomputed
        ``word_count`` and ``total_pages``/``rendered_pages``
    """
    result = dict(first_page_result)
    content = result.get('content') or ''
    next_page_url = result.get('next_page_url')
    visited = [remove_anchor(url)]
    pages = 1

    while next_page_url and pages < max_pages:
        if _should_stop(cancel_event, deadline):
            break

        candidate = remove_anchor(next_page_url)
        if candidate in visited:
            logger.debug("Next page %s was already collected", next_page_url)
            break

        pages += 1
        visited.append(candidate)
        try:
            document = fetcher.fetch(next_page_url)
        except FetchError as e:
            logger.warning("Stopping pagination at %s: %s", next_page_url, e.message)
            break
        except Exception as e:
            logger.warning("Stopping pagination at %s: %s", next_page_url, e)
            break

        context = ExtractionContext(document=document, url=next_page_url, extracted_title=title)
        try:
            page = root_extractor.extract(ruleset, context)
        except InvalidDocumentError as e:
            logger.warning("Stopping pagination at %s: %s", next_page_url, e.message)
            break
        if not page:
            break

        content = f"{content}{PAGE_SEPARATOR.format(page=pages)}{page.get('content') or ''}"
        next_page_url = page.get('next_page_url')

    generic = generic or GenericExtractor()
    word_count = generic.word_count(
        ExtractionContext(document=None, url=url, content=f"<div>{content}</div>")
    )

    result['content'] = content
    result['word_count'] = word_count
    result['total_pages'] = pages
    result['rendered_pages'] = pages
    logger.debug("Collected %d page(s) for %s", pages, url)
    return result
