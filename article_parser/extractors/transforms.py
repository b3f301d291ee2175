"""
Transform and clean pipeline applied to selected HTML nodes.

Selected content goes through three steps before the field cleaner sees it:
links are made absolute, nodes matching the rule's ``clean`` selectors are
removed, and the rule's ``transforms`` rename (or otherwise rewrite) nodes.
"""

import logging
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from bs4 import Tag
from soupsieve import SelectorSyntaxError

from ..models import Rule, TransformSpec
from ..utils import resolve_relative_url

logger = logging.getLogger(__name__)

LINK_ATTRIBUTES = ('href', 'src')


def safe_select(root: Any, selector: str) -> List[Tag]:
    """
    Run a CSS selector, treating an invalid selector as matching nothing.

    Args:
        root: Document or element to search
        selector: CSS selector

    Returns:
        Matching elements in document order
    """
    try:
        return root.select(selector)
    except (SelectorSyntaxError, NotImplementedError, ValueError) as e:
        logger.debug("Ignoring invalid selector %r: %s", selector, e)
        return []


def document_base_url(document: Any, url: str) -> str:
    """Return the ``<base href>`` of a document resolved against ``url``, or ``url``."""
    base_tag = document.find('base', href=True) if document is not None else None
    if base_tag is not None and base_tag['href'].strip():
        return resolve_relative_url(url, base_tag['href'].strip())
    return url


def _absolute_srcset(srcset: str, base_url: str) -> str:
    candidates = []
    for candidate in srcset.split(','):
        parts = candidate.strip().split()
        if not parts:
            continue
        parts[0] = resolve_relative_url(base_url, parts[0])
        candidates.append(' '.join(parts))
    return ', '.join(candidates)


def _elements_with(root: Tag, attribute: str) -> Iterable[Tag]:
    if isinstance(root, Tag) and root.name != '[document]' and root.has_attr(attribute):
        yield root
    yield from root.find_all(attrs={attribute: True})


def make_links_absolute(root: Any, url: str, base_url: Optional[str] = None) -> Any:
    """
    Rewrite ``href``, ``src`` and ``srcset`` values under ``root`` to absolute URLs.

    Values are resolved against ``base_url`` when given, otherwise against the
    ``<base href>`` found under ``root``, otherwise against ``url``. Running it
    twice changes nothing.

    Args:
        root: Document or element to rewrite in place
        url: The page URL
        base_url: Explicit base to resolve against

    Returns:
        The same root
    """
    if not url:
        return root

    base = base_url or document_base_url(root, url)

    for attribute in LINK_ATTRIBUTES:
        for node in _elements_with(root, attribute):
            value = node.get(attribute)
            if isinstance(value, str) and value.strip():
                node[attribute] = resolve_relative_url(base, value.strip())

    for node in _elements_with(root, 'srcset'):
        value = node.get('srcset')
        if isinstance(value, str) and value.strip():
            node['srcset'] = _absolute_srcset(value, base)

    return root


def clean_by_selectors(nodes: Sequence[Tag], selectors: Sequence[str]) -> Sequence[Tag]:
    """
    Remove every descendant of ``nodes`` matching any of ``selectors``.

    The selectors are combined into one selector list. If that list is not
    valid CSS, each selector is tried on its own so one bad entry does not
    disable the rest.
    """
    if not selectors:
        return nodes

    combined = ', '.join(selectors)
    for node in nodes:
        try:
            matches = node.select(combined)
        except (SelectorSyntaxError, NotImplementedError, ValueError):
            matches = [match for selector in selectors for match in safe_select(node, selector)]

        for match in matches:
            if not match.decomposed:
                match.decompose()

    return nodes


def convert_node_to(node: Tag, tag: str) -> Tag:
    """Rename ``node`` to ``tag``, keeping its attributes and children."""
    node.name = tag
    return node


def transform_elements(nodes: Sequence[Tag], document: Any,
                       transforms: Mapping[str, TransformSpec]) -> Sequence[Tag]:
    """
    Apply transform directives to the descendants of ``nodes``.

    A string directive renames every match to that tag. A callable directive
    is called with ``(node, document)``; when it returns a non-empty tag name
    the node is renamed to it, otherwise the callable is assumed to have done
    its own rewriting. Matches are visited in document order and nodes that
    an earlier directive removed are skipped.
    """
    for selector, spec in transforms.items():
        for node in nodes:
            for match in safe_select(node, selector):
                if match.decomposed or match.parent is None:
                    continue

                if isinstance(spec, str):
                    convert_node_to(match, spec)
                    continue

                tag = spec(match, document)
                if tag and not match.decomposed:
                    convert_node_to(match, tag)

    return nodes


def apply_pipeline(nodes: Sequence[Tag], document: Any, url: str, rule: Rule) -> Sequence[Tag]:
    """
    Run the link, clean and transform steps over selected nodes.

    Args:
        nodes: Copies of the selected elements (modified in place)
        document: The page document
        url: The page URL
        rule: Rule providing ``clean`` and ``transforms``

    Returns:
        The same nodes
    """
    base = document_base_url(document, url) if url else url
    if document is not None:
        make_links_absolute(document, url, base)
    for node in nodes:
        make_links_absolute(node, url, base)

    if rule.clean:
        clean_by_selectors(nodes, rule.clean)
    if rule.transforms:
        transform_elements(nodes, document, rule.transforms)

    return nodes
