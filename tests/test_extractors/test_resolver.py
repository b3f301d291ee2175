"""Tests for extractor resolution order."""

import pytest

from article_parser.exceptions import InvalidRulesetError
from article_parser.extractors.registry import RulesetRegistry
from article_parser.extractors.resolver import ExtractorResolver
from article_parser.models import GENERIC_RULESET, Ruleset

BLOG_HTML = '<html><head><meta name="generator" content="Blogger"></head><body><p>x</p></body></html>'


@pytest.fixture
def registry():
    registry = RulesetRegistry([
        Ruleset(domain='example.com'),
        Ruleset(domain='blog.example.com'),
    ])
    registry.register_detector('meta[name="generator"][value="Blogger"]', Ruleset(domain='blogspot.com'))
    return registry


@pytest.fixture
def resolver(registry, make_loader):
    return ExtractorResolver(make_loader(registry, retry_delay=0))


class TestResolve:

    def test_exact_hostname(self, resolver):
        assert resolver.resolve('https://blog.example.com/post').domain == 'blog.example.com'

    def test_base_domain(self, resolver):
        assert resolver.resolve('https://news.example.com/story').domain == 'example.com'

    def test_markup_detection(self, resolver, make_document):
        document = make_document(BLOG_HTML, 'https://my-own-domain.org/post')
        assert resolver.resolve('https://my-own-domain.org/post', document).domain == 'blogspot.com'
        assert resolver.loader.cached_domains() == ['blogspot.com']

    def test_generic_when_nothing_matches(self, resolver, make_document):
        document = make_document('<p>plain</p>', 'https://unknown.org/a')
        assert resolver.resolve('https://unknown.org/a', document) is GENERIC_RULESET
        assert resolver.resolve('https://unknown.org/a') is GENERIC_RULESET

    def test_url_without_hostname(self, resolver):
        assert resolver.resolve('not a url') is GENERIC_RULESET

    def test_domain_beats_markup(self, resolver, make_document):
        document = make_document(BLOG_HTML, 'https://example.com/a')
        assert resolver.resolve('https://example.com/a', document).domain == 'example.com'

    def test_registry_hostname_beats_markup_on_subdomain(self, resolver, make_document):
        document = make_document(BLOG_HTML, 'https://blog.example.com/post')

        ruleset = resolver.resolve('https://blog.example.com/post', document)

        assert ruleset.domain == 'blog.example.com'
        assert 'blogspot.com' not in resolver.loader.cached_domains()

    def test_separate_detection_registry(self, make_loader, make_document):
        loader = make_loader(RulesetRegistry(), retry_delay=0)
        detection = RulesetRegistry()
        detection.register_detector('p.sig', Ruleset(domain='sig.com'))
        resolver = ExtractorResolver(loader, detection)

        document = make_document('<p class="sig">x</p>')

        assert resolver.resolve('https://any.org/', document).domain == 'sig.com'
        assert loader.cached_domains() == []


class TestOverrides:

    def test_override_beats_registry(self, resolver):
        custom = Ruleset(domain='example.com', supported_domains=('alias.example.com',))
        assert resolver.add_extractor(custom) == ['example.com', 'alias.example.com']

        assert resolver.resolve('https://example.com/a') is custom
        assert resolver.resolve('https://www.example.com/a') is custom

    def test_override_for_hostname_beats_base_domain_override(self, resolver):
        base = Ruleset(domain='example.com')
        specific = Ruleset(domain='blog.example.com')
        resolver.add_extractor(base)
        resolver.add_extractor(specific)
        assert resolver.resolve('https://blog.example.com/x') is specific

    def test_base_domain_override_beats_registry_hostname(self, resolver):
        override = Ruleset(domain='example.com')
        resolver.add_extractor(override)

        ruleset = resolver.resolve('https://blog.example.com/x')

        assert ruleset is override
        assert resolver.loader.cached_domains() == []

    def test_add_mapping(self, resolver):
        resolver.add_extractor({'domain': 'Custom.IO', 'title': ['h1']})
        assert resolver.override_domains() == ['custom.io']
        assert resolver.resolve('https://custom.io/a').domain == 'Custom.IO'

    def test_add_requires_domain(self, resolver):
        with pytest.raises(InvalidRulesetError):
            resolver.add_extractor(Ruleset(domain=''))
        with pytest.raises(InvalidRulesetError):
            resolver.add_extractor({'title': ['h1']})

    def test_remove_and_clear(self, resolver):
        resolver.add_extractor(Ruleset(domain='a.io'))
        resolver.add_extractor(Ruleset(domain='b.io'))

        assert resolver.remove_extractor('A.IO') is True
        assert resolver.remove_extractor('a.io') is False
        assert resolver.override_domains() == ['b.io']

        resolver.clear_overrides()
        assert resolver.override_domains() == []
