"""
High-level article parser.

Ties the pieces together: URL validation, fetching, extractor resolution,
per-page extraction, multi-page collection and content conversion.
"""

import logging
import threading
import time
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from .config import Config, get_config
from .converters import convert_content
from .exceptions import ArticleParserError
from .extractors.loader import LoaderConfig, LoaderMetrics, RulesetLoader
from .extractors.pagination import collect_all_pages
from .extractors.registry import RulesetRegistry, build_default_registry
from .extractors.resolver import ExtractorResolver
from .extractors.root_extractor import RootExtractor
from .fetcher import Resource
from .models import ExtractionContext, ExtractionResult, ParsedArticle, Ruleset
from .url_validator import URLValidator

logger = logging.getLogger(__name__)


def _extractor_name(ruleset: Ruleset) -> str:
    return 'generic' if ruleset.is_generic else ruleset.domain


class ArticleParser:
    """
    Parses articles from URLs or supplied HTML.

    The parser owns its registry, ruleset loader and resolver, so several
    parsers can coexist with different rulesets. Close it (or use it as a
    context manager) to stop the loader's cache sweeper.

    Example:
        >>> with ArticleParser() as parser:
        ...     article = parser.parse('https://example.com/story')
        ...     print(article.title)
    """

    def __init__(self, config: Optional[Config] = None, registry: Optional[RulesetRegistry] = None,
                 fetcher: Any = None, loader: Optional[RulesetLoader] = None):
        """
        Initialize the parser.

        Args:
            config: Configuration (uses the process default if None)
            registry: Ruleset registry (built-in rulesets plus configured files if None)
            fetcher: Object with ``fetch(url)`` and ``create(html, url)`` methods
            loader: Ruleset loader (built over ``registry`` if None)
        """
        self.config = config if config is not None else get_config()
        self.parser_config = self.config.get_parser_config()
        fetcher_config = self.config.get_fetcher_config()

        if registry is None:
            registry = loader.registry if loader is not None else build_default_registry(
                self.config.get_ruleset_files()
            )
        self.registry = registry
        self.loader = loader or RulesetLoader(registry, LoaderConfig.from_config(self.config))
        self.resolver = ExtractorResolver(self.loader, registry)
        self.root_extractor = RootExtractor()
        self.fetcher = fetcher or Resource(config=self.config)
        self.url_validator = URLValidator(
            allow_private_networks=fetcher_config.get('allow_private_networks', False)
        )

    def parse(self, url: str, html: Optional[str] = None, *, fetch_all_pages: Optional[bool] = None,
              content_type: Optional[str] = None, content_only: bool = False,
              fallback: Optional[bool] = None, cancel_event: Optional[threading.Event] = None,
              deadline: Optional[float] = None) -> ParsedArticle:
        """
        Parse an article.

        Args:
            url: Article URL
            html: Page markup; the page is fetched when None
            fetch_all_pages: Follow next-page links (config default if None)
            content_type: ``html``, ``markdown`` or ``text`` (config default if None)
            content_only: Only extract the content
            fallback: Use the generic extractor for fields a ruleset misses
            cancel_event: Stops multi-page collection when set
            deadline: ``time.monotonic()`` value after which collection stops

        Returns:
            The parsed article

        Raises:
            URLValidationError: If the URL is not acceptable
            FetchError: If the first page cannot be fetched
            InvalidDocumentError: If the page cannot be parsed
            ValueError: If ``content_type`` is not supported
        """
        article, _ = self._parse(url, html, fetch_all_pages=fetch_all_pages,
                                 content_type=content_type, content_only=content_only,
                                 fallback=fallback, cancel_event=cancel_event, deadline=deadline)
        return article

    def _parse(self, url: str, html: Optional[str], fetch_all_pages: Optional[bool],
               content_type: Optional[str], content_only: bool, fallback: Optional[bool],
               cancel_event: Optional[threading.Event],
               deadline: Optional[float]) -> Tuple[ParsedArticle, Ruleset]:
        if fetch_all_pages is None:
            fetch_all_pages = self.parser_config.get('fetch_all_pages', True)
        if content_type is None:
            content_type = self.parser_config.get('content_type', 'html')
        if fallback is None:
            fallback = self.parser_config.get('fallback', True)

        url = self.url_validator.validate(url, resolve_hosts=html is None)

        if html is None:
            document = self.fetcher.fetch(url)
        else:
            document = self.fetcher.create(html, url)

        ruleset = self.resolver.resolve(url, document)
        logger.info("Parsing %s with the %s extractor", url, _extractor_name(ruleset))

        context = ExtractionContext(document=document, url=url)
        result = self.root_extractor.extract(ruleset, context, content_only=content_only,
                                             fallback=fallback)

        if fetch_all_pages and not content_only and result.get('next_page_url'):
            result = collect_all_pages(
                result,
                ruleset=ruleset,
                url=url,
                fetcher=self.fetcher,
                root_extractor=self.root_extractor,
                title=result.get('title'),
                max_pages=self.parser_config.get('max_pages', 26),
                cancel_event=cancel_event,
                deadline=deadline,
                generic=self.root_extractor.generic,
            )

        result['content'] = convert_content(result.get('content'), content_type)
        if content_only:
            result.setdefault('url', url)
        return ParsedArticle.from_dict(result), ruleset

    def extract(self, url: str, html: Optional[str] = None, *, fetch_all_pages: Optional[bool] = None,
                content_type: Optional[str] = None, content_only: bool = False,
                fallback: Optional[bool] = None, cancel_event: Optional[threading.Event] = None,
                deadline: Optional[float] = None) -> ExtractionResult:
        """
        Parse an article without raising.

        Args:
            url: Article URL
            html: Page markup; the page is fetched when None
            Other arguments are the same as for ``parse``

        Returns:
            ExtractionResult with the article or an error message
        """
        start_time = time.time()
        try:
            article, ruleset = self._parse(url, html, fetch_all_pages, content_type, content_only,
                                           fallback, cancel_event, deadline)
        except (ArticleParserError, ValueError) as e:
            logger.warning("Extraction failed for %s: %s", url, e)
            return ExtractionResult(
                success=False,
                error_message=str(e),
                extraction_time_seconds=time.time() - start_time,
            )

        return ExtractionResult(
            article=article,
            success=True,
            extractor_used=_extractor_name(ruleset),
            extraction_time_seconds=time.time() - start_time,
        )

    def add_extractor(self, ruleset: Union[Ruleset, Mapping[str, Any]]) -> List[str]:
        """Register a ruleset that takes priority over the built-in ones."""
        return self.resolver.add_extractor(ruleset)

    def registered_domains(self) -> List[str]:
        """Domains with a ruleset, built-in and added at runtime."""
        return sorted(set(self.registry.domains()) | set(self.resolver.override_domains()))

    def loader_metrics(self) -> LoaderMetrics:
        return self.loader.metrics()

    def cache_stats(self) -> Dict[str, Any]:
        size, capacity, hit_rate = self.loader.cache_stats()
        return {'size': size, 'capacity': capacity, 'hit_rate': hit_rate}

    def close(self) -> None:
        self.loader.close()
        close_fetcher = getattr(self.fetcher, 'close', None)
        if close_fetcher is not None:
            close_fetcher()

    def __enter__(self) -> 'ArticleParser':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
