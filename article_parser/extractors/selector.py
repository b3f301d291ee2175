"""
Selector engine for rule-based extraction.

Given a field rule and a document, picks the first selector descriptor that
matches well enough, then produces the field value from it: text or an
attribute value for plain fields, cleaned markup for content-like fields.
"""

import copy
import logging
from typing import Any, Dict, List, Mapping, Optional

from bs4 import BeautifulSoup, Tag

from ..models import ArraySelector, AttributeSelector, Rule, Selector
from .cleaners import clean_field
from .transforms import apply_pipeline, safe_select

logger = logging.getLogger(__name__)

# Fields whose selectors may match several elements even without allow_multiple
MULTI_MATCH_FIELDS = frozenset({'lead_image_url'})


def _count_ok(matches: List[Tag], allow_multiple: bool) -> bool:
    if allow_multiple:
        return len(matches) >= 1
    return len(matches) == 1


def _attribute_value(node: Tag, attribute: str) -> str:
    value = node.get(attribute)
    if isinstance(value, list):
        value = ' '.join(value)
    return (value or '').strip()


def find_matching_selector(rule: Rule, document: Any, extract_html: bool = False,
                           allow_multiple: Optional[bool] = None) -> Optional[Selector]:
    """
    Find the first selector in ``rule`` that matches ``document``.

    Args:
        rule: Field rule whose selectors are tried in order
        document: Parsed document
        extract_html: Whether array descriptors are allowed (content-like fields)
        allow_multiple: Override the rule's multiplicity

    Returns:
        The winning selector, or None if none matches
    """
    if allow_multiple is None:
        allow_multiple = rule.allow_multiple

    for selector in rule.selectors:
        if isinstance(selector, ArraySelector):
            if extract_html and all(safe_select(document, s) for s in selector.selectors):
                return selector
            continue

        matches = safe_select(document, selector.selector)
        if not _count_ok(matches, allow_multiple):
            continue

        if isinstance(selector, AttributeSelector):
            if _attribute_value(matches[0], selector.attribute):
                return selector
        elif matches[0].get_text().strip():
            return selector

    return None


def _new_container(document: Any) -> Tag:
    if isinstance(document, BeautifulSoup):
        return document.new_tag('div')
    return BeautifulSoup('', 'html.parser').new_tag('div')


def _select_html(rule: Rule, selector: Selector, document: Any, field: str, url: str,
                 context: Any) -> Any:
    if isinstance(selector, ArraySelector):
        nodes = [node for s in selector.selectors for node in safe_select(document, s)]
    else:
        nodes = safe_select(document, selector.selector)
        if not rule.allow_multiple:
            nodes = nodes[:1]

    container = _new_container(document)
    for node in nodes:
        container.append(copy.copy(node))

    apply_pipeline([container], document, url, rule)

    if rule.default_cleaner:
        if field == 'content':
            cleaned = clean_field(field, container, url=url, document=document, context=context)
            if cleaned is None:
                return None
            container = cleaned
        else:
            return clean_field(field, container.decode_contents(), url=url,
                               document=document, context=context)

    if rule.allow_multiple:
        children = [str(child) for child in container.children if isinstance(child, Tag)]
        return children or None

    markup = container.decode_contents().strip()
    return markup or None


def _select_text(rule: Rule, selector: Selector, document: Any, field: str, url: str,
                 context: Any) -> Any:
    nodes = safe_select(document, selector.selector)

    if isinstance(selector, AttributeSelector):
        values = [_attribute_value(node, selector.attribute) for node in nodes]
        if selector.transform is not None:
            values = [selector.transform(value) if value else value for value in values]
    else:
        values = [node.get_text().strip() for node in nodes]

    values = [value.strip() for value in values if value and value.strip()]
    if not rule.allow_multiple:
        values = values[:1]

    if rule.default_cleaner:
        values = [clean_field(field, value, url=url, document=document, context=context)
                  for value in values]
        values = [value for value in values if value is not None]

    if not values:
        return None
    return values if rule.allow_multiple else values[0]


def select(rule: Optional[Rule], document: Any, field: str, url: str,
           extract_html: bool = False, context: Any = None) -> Any:
    """
    Produce a field value from a rule.

    Args:
        rule: The field rule (None means no match)
        document: Parsed document
        field: Field name, used to pick the cleaner
        url: Page URL, used to absolutize links
        extract_html: Return markup instead of text
        context: Extraction context supplying earlier field values to cleaners

    Returns:
        A string, a list of strings when the rule allows multiple matches,
        or None when nothing usable matched
    """
    if rule is None:
        return None
    if rule.value is not None:
        return rule.value

    allow_multiple = rule.allow_multiple or field in MULTI_MATCH_FIELDS
    selector = find_matching_selector(rule, document, extract_html, allow_multiple)
    if selector is None:
        return None

    logger.debug("Field %s matched selector %r", field, selector)
    if extract_html:
        return _select_html(rule, selector, document, field, url, context)
    return _select_text(rule, selector, document, field, url, context)


def select_extended_types(extend: Mapping[str, Rule], document: Any, url: str) -> Dict[str, Any]:
    """Select every extended field once in text mode; missing fields map to None."""
    return {
        name: select(rule, document, name, url)
        for name, rule in extend.items()
    }
