"""Shared fixtures for the article-parser test suite."""

from typing import Dict, List

import pytest

from article_parser.config import Config
from article_parser.exceptions import FetchError
from article_parser.extractors.loader import LoaderConfig, RulesetLoader
from article_parser.extractors.registry import RulesetRegistry
from article_parser.fetcher import Resource


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeFetcher:
    """Serves canned HTML by URL and records every fetch."""

    def __init__(self, pages: Dict[str, str], resource: Resource):
        self.pages = pages
        self.resource = resource
        self.fetched: List[str] = []

    def fetch(self, url: str):
        self.fetched.append(url)
        if url not in self.pages:
            raise FetchError(url, "Resource returned a response status code of 404", status_code=404)
        return self.resource.create(self.pages[url], url)

    def create(self, html: str, url: str):
        return self.resource.create(html, url)


@pytest.fixture
def config() -> Config:
    """Configuration isolated from any user config file, with no retry delay."""
    config = Config(load_user_config=False)
    config.set('loader.retry_delay', 0)
    config.set('loader.cleanup_interval', 0)
    return config


@pytest.fixture
def resource(config) -> Resource:
    return Resource(config=config)


@pytest.fixture
def make_document(resource):
    """Build a prepared document from HTML."""
    def _make(html: str, url: str = 'https://example.com/article'):
        return resource.create(html, url)
    return _make


@pytest.fixture
def make_fetcher(resource):
    def _make(pages: Dict[str, str]) -> FakeFetcher:
        return FakeFetcher(pages, resource)
    return _make


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def make_loader(clock, sleeps):
    """Build a loader with a fake clock, recorded sleeps and no sweep thread."""
    loaders = []

    def _make(registry: RulesetRegistry, **options) -> RulesetLoader:
        options.setdefault('cleanup_interval', 0)
        loader = RulesetLoader(registry, LoaderConfig(**options), clock=clock, sleep=sleeps.append)
        loaders.append(loader)
        return loader

    yield _make

    for loader in loaders:
        loader.close()
