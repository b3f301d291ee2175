"""
Root extraction orchestrator.

Runs the per-field extraction for one page in dependency order. Every field
is tried against the site ruleset first and, when that yields nothing, against
the generic extractor.
"""

import logging
from typing import Any, Dict, Optional, Protocol

from ..exceptions import InvalidDocumentError
from ..models import ExtractionContext, Ruleset
from ..utils import hostname_from_url
from .generic import GenericExtractor
from .selector import select, select_extended_types

logger = logging.getLogger(__name__)

# Fields whose rules produce markup rather than text
HTML_FIELDS = frozenset({'content'})


class FieldExtractor(Protocol):
    """Produces one field value for a page, or None when it has nothing."""

    def extract(self, field: str, context: ExtractionContext) -> Any:
        ...


class RuleBasedFieldExtractor:
    """Extracts fields with the selectors of a site ruleset."""

    def __init__(self, ruleset: Ruleset):
        self.ruleset = ruleset

    def extract(self, field: str, context: ExtractionContext) -> Any:
        rule = self.ruleset.rule_for(field)
        if rule is None:
            return None
        return select(rule, context.document, field, context.url,
                      extract_html=field in HTML_FIELDS, context=context)


class GenericFieldExtractor:
    """Extracts fields with the generic heuristics."""

    def __init__(self, generic: Optional[GenericExtractor] = None):
        self.generic = generic or GenericExtractor()

    def extract(self, field: str, context: ExtractionContext) -> Any:
        if field == 'url':
            url, _ = self.generic.url_and_domain(context)
            return url

        method = getattr(self.generic, field, None)
        if method is None:
            return None
        return method(context)


class RootExtractor:
    """
    Produces the field map for a single page.

    Example:
        >>> extractor = RootExtractor()
        >>> fields = extractor.extract(ruleset, ExtractionContext(document=soup, url=url))
    """

    def __init__(self, generic: Optional[GenericExtractor] = None):
        self.generic = generic or GenericExtractor()
        self._generic_fields = GenericFieldExtractor(self.generic)

    def _field(self, field: str, context: ExtractionContext, rule_based: FieldExtractor,
               fallback: bool) -> Any:
        value = rule_based.extract(field, context)
        if value is None and fallback:
            value = self._generic_fields.extract(field, context)
            if value is not None:
                logger.debug("Field %s came from the generic extractor", field)
        return value

    def extract(self, ruleset: Ruleset, context: Optional[ExtractionContext],
                content_only: bool = False, fallback: bool = True) -> Dict[str, Any]:
        """
        Extract all fields of a page.

        Args:
            ruleset: Ruleset chosen for the page (the generic sentinel is allowed)
            context: Extraction context holding the parsed document and URL
            content_only: Only extract the content, using ``context.extracted_title``
            fallback: Use the generic extractor for fields the ruleset misses

        Returns:
            Field map; missing fields are None

        Raises:
            InvalidDocumentError: If there is no parsed document
        """
        if context is None or context.document is None:
            raise InvalidDocumentError(url=getattr(context, 'url', None))

        if ruleset.is_generic:
            return self.generic.extract_all(context)

        rule_based = RuleBasedFieldExtractor(ruleset)

        def field(name: str) -> Any:
            return self._field(name, context, rule_based, fallback)

        if content_only:
            context.title = context.extracted_title
            return {'content': field('content')}

        extended = select_extended_types(ruleset.extend, context.document, context.url)

        title = field('title')
        context.title = title
        date_published = field('date_published')
        author = field('author')
        next_page_url = field('next_page_url')
        content = field('content')
        context.content = content
        lead_image_url = field('lead_image_url')
        excerpt = field('excerpt')
        context.excerpt = excerpt
        dek = field('dek')
        word_count = field('word_count')
        direction = field('direction')
        url = field('url') or context.url

        result = {
            'title': title,
            'content': content,
            'author': author,
            'date_published': date_published,
            'lead_image_url': lead_image_url,
            'dek': dek,
            'next_page_url': next_page_url,
            'url': url,
            'domain': hostname_from_url(url),
            'excerpt': excerpt,
            'word_count': word_count,
            'direction': direction,
        }
        result.update(extended)
        return result
