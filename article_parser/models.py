"""
Data models for article-parser.

This module contains the core data structures used throughout the application:
the selector variants and rules that make up a site ruleset, the per-page
extraction context, and the parsed article record handed back to callers.
"""

from datetime import datetime
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union
from dataclasses import dataclass, field

from .exceptions import InvalidRulesetError

STANDARD_FIELDS = (
    'title', 'author', 'date_published', 'lead_image_url', 'dek',
    'next_page_url', 'excerpt', 'word_count', 'direction', 'content', 'url',
)

RESULT_FIELDS = (
    'title', 'content', 'author', 'date_published', 'lead_image_url', 'dek',
    'next_page_url', 'url', 'domain', 'excerpt', 'word_count', 'direction',
)

GENERIC_DOMAIN = '*'

# A transform either names the replacement tag or computes it from (node, document).
TransformSpec = Union[str, Callable[[Any, Any], Optional[str]]]


@dataclass(frozen=True)
class TextSelector:
    """CSS selector whose matched text (or markup, in HTML mode) is the value."""
    selector: str


@dataclass(frozen=True)
class AttributeSelector:
    """CSS selector plus the attribute to read, with an optional value transform."""
    selector: str
    attribute: str
    transform: Optional[Callable[[str], str]] = None


@dataclass(frozen=True)
class ArraySelector:
    """Several selectors whose matches are merged into one container (HTML mode)."""
    selectors: Tuple[str, ...]


Selector = Union[TextSelector, AttributeSelector, ArraySelector]


def parse_selector(raw: Any, extract_html: bool = False) -> Selector:
    """
    Convert a loosely-typed selector descriptor into a Selector variant.

    Args:
        raw: A selector string, a list/tuple, or an existing Selector
        extract_html: Whether the owning rule extracts markup (content-like fields)

    Returns:
        The matching Selector variant

    Raises:
        InvalidRulesetError: If the descriptor has an unsupported shape
    """
    if isinstance(raw, (TextSelector, AttributeSelector, ArraySelector)):
        return raw

    if isinstance(raw, str):
        return TextSelector(raw)

    if isinstance(raw, (list, tuple)):
        items = list(raw)
        if extract_html:
            if items and all(isinstance(item, str) for item in items):
                return ArraySelector(tuple(items))
        elif len(items) in (2, 3) and isinstance(items[0], str) and isinstance(items[1], str):
            transform = items[2] if len(items) == 3 else None
            if transform is None or callable(transform):
                return AttributeSelector(items[0], items[1], transform)

    raise InvalidRulesetError(
        f"Unsupported selector descriptor: {raw!r}",
        details={"extract_html": extract_html},
    )


def _frozen_mapping(values: Optional[Mapping]) -> Mapping:
    return MappingProxyType(dict(values or {}))


@dataclass(frozen=True)
class Rule:
    """
    Extraction rule for one field.

    Selectors are tried in order; the first one that yields a non-blank value
    wins. ``clean`` and ``transforms`` only matter for content-like fields.
    """

    selectors: Tuple[Selector, ...] = ()
    allow_multiple: bool = False
    default_cleaner: bool = True
    clean: Tuple[str, ...] = ()
    transforms: Mapping[str, TransformSpec] = field(default_factory=lambda: MappingProxyType({}))
    value: Optional[str] = None

    @classmethod
    def from_definition(cls, definition: Any, extract_html: bool = False) -> Optional['Rule']:
        """
        Build a Rule from a string, selector list, or mapping.

        A bare string is a hardcoded value, a list is a selector list, and a
        mapping may carry ``selectors``, ``allow_multiple`` (or
        ``allowMultiple``), ``default_cleaner`` (or ``defaultCleaner``),
        ``clean`` and ``transforms``.
        """
        if definition is None:
            return None
        if isinstance(definition, Rule):
            return definition
        if isinstance(definition, str):
            return cls(value=definition)
        if isinstance(definition, (list, tuple)):
            definition = {'selectors': definition}
        if not isinstance(definition, Mapping):
            raise InvalidRulesetError(f"Unsupported rule definition: {definition!r}")

        selectors = tuple(
            parse_selector(raw, extract_html) for raw in definition.get('selectors') or ()
        )
        transforms = definition.get('transforms') or {}
        for selector, spec in transforms.items():
            if not (isinstance(spec, str) or callable(spec)):
                raise InvalidRulesetError(
                    f"Transform for {selector!r} must be a tag name or a callable"
                )

        return cls(
            selectors=selectors,
            allow_multiple=bool(definition.get('allow_multiple', definition.get('allowMultiple', False))),
            default_cleaner=bool(definition.get('default_cleaner', definition.get('defaultCleaner', True))),
            clean=tuple(definition.get('clean') or ()),
            transforms=_frozen_mapping(transforms),
        )


@dataclass(frozen=True)
class Ruleset:
    """
    The complete set of field rules governing one site.

    Rulesets are immutable; updating a site means registering a new ruleset
    in place of the old one.
    """

    domain: str
    supported_domains: Tuple[str, ...] = ()
    title: Optional[Rule] = None
    author: Optional[Rule] = None
    date_published: Optional[Rule] = None
    lead_image_url: Optional[Rule] = None
    dek: Optional[Rule] = None
    next_page_url: Optional[Rule] = None
    excerpt: Optional[Rule] = None
    word_count: Optional[Rule] = None
    direction: Optional[Rule] = None
    content: Optional[Rule] = None
    url: Optional[Rule] = None
    extend: Mapping[str, Rule] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def is_generic(self) -> bool:
        """Whether this is the catch-all generic sentinel."""
        return self.domain == GENERIC_DOMAIN

    @property
    def domains(self) -> Tuple[str, ...]:
        """Primary domain followed by alias domains."""
        return (self.domain,) + tuple(d for d in self.supported_domains if d != self.domain)

    def rule_for(self, field_name: str) -> Optional[Rule]:
        """Get the rule for a standard field, or None."""
        if field_name not in STANDARD_FIELDS:
            return None
        return getattr(self, field_name)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Ruleset':
        """
        Create a Ruleset from a loose mapping.

        Args:
            data: Mapping with ``domain``, optional ``supported_domains``
                (or ``supportedDomains``), one entry per standard field, and
                ``extend`` for site-specific fields

        Returns:
            Ruleset instance

        Raises:
            InvalidRulesetError: If the domain is missing or a rule is malformed
        """
        if not isinstance(data, Mapping) or not data.get('domain'):
            raise InvalidRulesetError("Unable to build ruleset: a domain is required")

        supported = data.get('supported_domains', data.get('supportedDomains')) or ()
        rules = {
            name: Rule.from_definition(data.get(name), extract_html=(name == 'content'))
            for name in STANDARD_FIELDS
        }
        extend = {
            name: Rule.from_definition(definition)
            for name, definition in (data.get('extend') or {}).items()
        }

        return cls(
            domain=str(data['domain']),
            supported_domains=tuple(str(d) for d in supported),
            extend=_frozen_mapping(extend),
            **rules
        )


GENERIC_RULESET = Ruleset(domain=GENERIC_DOMAIN)


@dataclass
class ExtractionContext:
    """
    Per-page accumulator for one extraction run.

    Holds the document and URL plus the values later fields depend on.
    Never shared between concurrent extractions.
    """

    document: Any
    url: str
    title: Optional[str] = None
    content: Optional[str] = None
    excerpt: Optional[str] = None
    extracted_title: Optional[str] = None
    # Built lazily by the generic extractor
    meta_names: Optional[Dict[str, str]] = None
    metadata: Any = None


@dataclass
class ParsedArticle:
    """
    Represents an extracted article with metadata and content.

    This is the typed form of the field map produced by the root extractor
    and the pagination aggregator.
    """

    url: Optional[str] = None
    domain: Optional[str] = None
    title: Optional[str] = None
    content: Optional[str] = None
    author: Optional[str] = None
    date_published: Optional[str] = None
    lead_image_url: Optional[str] = None
    dek: Optional[str] = None
    next_page_url: Optional[str] = None
    excerpt: Optional[str] = None
    word_count: Optional[int] = None
    direction: Optional[str] = None
    total_pages: Optional[int] = None
    rendered_pages: Optional[int] = None
    extended: Dict[str, Any] = field(default_factory=dict)

    @property
    def reading_time_minutes(self) -> int:
        """
        Estimate reading time in minutes (assuming 200 words per minute).

        Returns:
            Estimated reading time in minutes
        """
        if not self.word_count:
            return 0
        return max(1, self.word_count // 200)

    @property
    def published_at(self) -> Optional[datetime]:
        """Publication date as a datetime, when it is ISO formatted."""
        if not self.date_published:
            return None
        try:
            return datetime.fromisoformat(self.date_published.replace('Z', '+00:00'))
        except ValueError:
            return None

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert article to a flat field map.

        Extended fields are merged in under their own keys; pagination
        counters are only present when pages were collected.
        """
        data = {name: getattr(self, name) for name in RESULT_FIELDS}
        if self.total_pages is not None:
            data['total_pages'] = self.total_pages
            data['rendered_pages'] = self.rendered_pages
        for key, value in self.extended.items():
            data.setdefault(key, value)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'ParsedArticle':
        """
        Create ParsedArticle from a field map.

        Args:
            data: Field map from the root extractor or pagination aggregator

        Returns:
            ParsedArticle instance
        """
        known = set(RESULT_FIELDS) | {'total_pages', 'rendered_pages'}
        word_count = data.get('word_count')
        return cls(
            url=data.get('url'),
            domain=data.get('domain'),
            title=data.get('title'),
            content=data.get('content'),
            author=data.get('author'),
            date_published=data.get('date_published'),
            lead_image_url=data.get('lead_image_url'),
            dek=data.get('dek'),
            next_page_url=data.get('next_page_url'),
            excerpt=data.get('excerpt'),
            word_count=int(word_count) if word_count is not None else None,
            direction=data.get('direction'),
            total_pages=data.get('total_pages'),
            rendered_pages=data.get('rendered_pages'),
            extended={k: v for k, v in data.items() if k not in known},
        )

    def format_markdown(self) -> str:
        """
        Render the article as Markdown with a metadata header.

        Content is included as-is, so parse with ``content_type='markdown'``
        first for a fully Markdown document.
        """
        lines: List[str] = []
        if self.title:
            lines += [f"# {self.title}", ""]

        metadata = [
            ("Author", self.author),
            ("Date", self.date_published),
            ("URL", self.url),
            ("Pages", self.total_pages if self.total_pages and self.total_pages > 1 else None),
        ]
        metadata = [(label, value) for label, value in metadata if value]
        if metadata:
            lines += ["## Metadata", ""]
            lines += [f"**{label}:** {value}  " for label, value in metadata]
            lines.append("")

        if self.content:
            lines += ["## Content", "", self.content.strip(), ""]

        return "\n".join(lines)


@dataclass
class ExtractionResult:
    """
    Result of content extraction process.

    Contains the extracted article and metadata about the extraction process.
    """

    article: Optional[ParsedArticle] = None
    success: bool = False
    error_message: Optional[str] = None
    extractor_used: Optional[str] = None
    extraction_time_seconds: Optional[float] = None

    @property
    def failed(self) -> bool:
        """Check if extraction failed."""
        return not self.success or self.article is None
