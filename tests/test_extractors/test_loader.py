"""Tests for the cached ruleset loader."""

from unittest.mock import Mock

import pytest

from article_parser.config import Config
from article_parser.exceptions import RulesetNotFoundError
from article_parser.extractors.loader import LoaderConfig, RulesetLoader
from article_parser.extractors.registry import RulesetRegistry
from article_parser.models import Ruleset


def _registry(*domains):
    return RulesetRegistry(Ruleset(domain=domain) for domain in domains)


class TestLoaderConfig:

    def test_defaults(self):
        config = LoaderConfig()
        assert config.max_cache_size == 50
        assert config.cache_expiration == 1800.0
        assert config.max_load_attempts == 3

    def test_from_config(self):
        config = Config(load_user_config=False)
        config.set('loader.max_cache_size', 5)
        config.set('loader.preload_domains', ['medium.com'])

        loader_config = LoaderConfig.from_config(config)

        assert loader_config.max_cache_size == 5
        assert loader_config.preload_domains == ('medium.com',)
        assert loader_config.retry_delay == 0.1


class TestLoad:

    def test_miss_then_hit(self, make_loader):
        loader = make_loader(_registry('example.com'))

        first = loader.load('example.com')
        second = loader.load('EXAMPLE.com')

        assert first is second
        metrics = loader.metrics()
        assert metrics.cache_misses == 1
        assert metrics.cache_hits == 1
        assert metrics.load_successes == 1
        assert metrics.hit_rate == 0.5

    def test_registry_base_domain_fallback(self, make_loader):
        loader = make_loader(_registry('example.com'))
        assert loader.load('news.example.com').domain == 'example.com'
        assert loader.cached_domains() == ['news.example.com']

    def test_empty_domain(self, make_loader):
        loader = make_loader(_registry())
        with pytest.raises(RulesetNotFoundError):
            loader.load('')

    def test_unknown_domain_retries_then_fails(self, make_loader, sleeps):
        loader = make_loader(_registry(), max_load_attempts=3, retry_delay=0.5)

        with pytest.raises(RulesetNotFoundError) as exc_info:
            loader.load('unknown.org')

        assert exc_info.value.details['attempts'] == 3
        assert sleeps == [0.5, 0.5]
        metrics = loader.metrics()
        assert metrics.load_failures == 1
        assert metrics.cache_misses == 1
        assert loader.cached_domains() == []

    def test_no_sleep_when_delay_is_zero(self, make_loader, sleeps):
        loader = make_loader(_registry(), retry_delay=0)
        with pytest.raises(RulesetNotFoundError):
            loader.load('unknown.org')
        assert sleeps == []

    def test_retry_succeeds_after_transient_miss(self, make_loader, sleeps):
        ruleset = Ruleset(domain='flaky.com')
        registry = Mock(spec=RulesetRegistry)
        registry.get_by_domain.side_effect = [None, ruleset]
        registry.get_by_domain_with_fallback.return_value = None

        loader = make_loader(registry, retry_delay=0.1)

        assert loader.load('flaky.com') is ruleset
        assert sleeps == [0.1]
        assert loader.metrics().load_successes == 1

    def test_average_load_time(self, make_loader, clock):
        registry = Mock(spec=RulesetRegistry)

        def slow_lookup(domain):
            clock.advance(2.0)
            return Ruleset(domain=domain)

        registry.get_by_domain.side_effect = slow_lookup
        loader = make_loader(registry)

        loader.load('a.com')
        loader.load('b.com')

        metrics = loader.metrics()
        assert metrics.total_load_time == pytest.approx(4.0)
        assert metrics.average_load_time == pytest.approx(2.0)

    def test_metrics_disabled(self, make_loader):
        loader = make_loader(_registry('example.com'), enable_metrics=False)
        loader.load('example.com')
        loader.load('example.com')
        metrics = loader.metrics()
        assert metrics.cache_hits == 0
        assert metrics.load_successes == 0


class TestEviction:

    def test_least_recently_used_is_evicted(self, make_loader):
        loader = make_loader(_registry('a.com', 'b.com', 'c.com', 'd.com'), max_cache_size=3)

        loader.load('a.com')
        loader.load('b.com')
        loader.load('c.com')
        loader.load('a.com')
        loader.load('d.com')

        assert loader.cached_domains() == ['c.com', 'a.com', 'd.com']
        assert loader.metrics().eviction_count == 1
        assert loader.cache_stats()[:2] == (3, 3)

    def test_size_never_exceeds_capacity(self, make_loader):
        domains = [f'site{i}.com' for i in range(10)]
        loader = make_loader(_registry(*domains), max_cache_size=4)

        for domain in domains:
            loader.load(domain)
            assert loader.cache_stats()[0] <= 4

        assert loader.metrics().eviction_count == 6


class TestExpiration:

    def test_expired_entry_counts_as_miss(self, make_loader, clock):
        loader = make_loader(_registry('example.com'), cache_expiration=60)

        loader.load('example.com')
        clock.advance(61)
        loader.load('example.com')

        metrics = loader.metrics()
        assert metrics.cache_misses == 2
        assert metrics.cache_hits == 0
        assert metrics.load_successes == 2

    def test_entry_within_age_is_hit(self, make_loader, clock):
        loader = make_loader(_registry('example.com'), cache_expiration=60)
        loader.load('example.com')
        clock.advance(60)
        loader.load('example.com')
        assert loader.metrics().cache_hits == 1

    def test_cleanup_expired(self, make_loader, clock):
        loader = make_loader(_registry('a.com', 'b.com'), cache_expiration=60)

        loader.load('a.com')
        clock.advance(30)
        loader.load('b.com')
        clock.advance(31)

        assert loader.cleanup_expired() == 1
        assert loader.cached_domains() == ['b.com']

    def test_zero_expiration_never_expires(self, make_loader, clock):
        loader = make_loader(_registry('a.com'), cache_expiration=0)
        loader.load('a.com')
        clock.advance(10 ** 6)
        assert loader.cleanup_expired() == 0
        loader.load('a.com')
        assert loader.metrics().cache_hits == 1


class TestDetectionAndWarmup:

    def test_load_by_html_caches_detected_ruleset(self, make_loader, make_document):
        ruleset = Ruleset(domain='medium.com')
        registry = RulesetRegistry([ruleset])
        registry.register_detector('meta[name="generator"][value="Medium"]', ruleset)
        loader = make_loader(registry)

        document = make_document('<html><head><meta name="generator" content="Medium"></head>'
                                 '<body><p>x</p></body></html>')

        assert loader.load_by_html(document) is ruleset
        assert loader.cached_domains() == ['medium.com']
        assert loader.load('medium.com') is ruleset
        assert loader.metrics().cache_hits == 1

    def test_load_by_html_without_match(self, make_loader, make_document):
        loader = make_loader(_registry('a.com'))
        assert loader.load_by_html(make_document('<p>plain</p>')) is None
        assert loader.cached_domains() == []

    def test_warmup_skips_unknown(self, make_loader):
        loader = make_loader(_registry('a.com', 'b.com'), retry_delay=0)
        assert loader.warmup(['a.com', 'missing.org', 'b.com']) == 2
        assert loader.cached_domains() == ['a.com', 'b.com']

    def test_preload_domains(self, make_loader):
        loader = make_loader(_registry('a.com'), preload_domains=('a.com',))
        assert loader.cached_domains() == ['a.com']

    def test_clear(self, make_loader):
        loader = make_loader(_registry('a.com'))
        loader.load('a.com')
        loader.clear()
        assert loader.cached_domains() == []


class TestLifecycle:

    def test_sweeper_thread_stops_on_close(self):
        loader = RulesetLoader(_registry(), LoaderConfig(cleanup_interval=0.01))
        sweeper = loader._sweeper
        assert sweeper is not None and sweeper.is_alive()

        loader.close()

        assert not sweeper.is_alive()

    def test_context_manager(self):
        with RulesetLoader(_registry('a.com'), LoaderConfig(cleanup_interval=0)) as loader:
            assert loader.load('a.com').domain == 'a.com'
