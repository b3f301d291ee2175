"""
Ruleset cache and loader.

Wraps a RulesetRegistry with a bounded LRU cache whose entries expire after
a fixed age, retries registry lookups, and keeps hit/miss/load metrics.
A daemon thread sweeps expired entries until the loader is closed.
"""

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, replace
from typing import Any, Callable, Iterable, List, Optional, Tuple

from ..exceptions import RulesetNotFoundError
from ..models import Ruleset
from .registry import RulesetRegistry

logger = logging.getLogger(__name__)


@dataclass
class LoaderConfig:
    """Settings for RulesetLoader (times in seconds)."""

    max_cache_size: int = 50
    cache_expiration: float = 1800.0
    cleanup_interval: float = 60.0
    max_load_attempts: int = 3
    retry_delay: float = 0.1
    enable_metrics: bool = True
    preload_domains: Tuple[str, ...] = ()

    @classmethod
    def from_config(cls, config: Any) -> 'LoaderConfig':
        """
        Build loader settings from the ``loader`` section of a Config.

        Args:
            config: A Config instance

        Returns:
            LoaderConfig with defaults for missing keys
        """
        values = config.get_loader_config() or {}
        defaults = cls()
        return cls(
            max_cache_size=int(values.get('max_cache_size', defaults.max_cache_size)),
            cache_expiration=float(values.get('cache_expiration', defaults.cache_expiration)),
            cleanup_interval=float(values.get('cleanup_interval', defaults.cleanup_interval)),
            max_load_attempts=int(values.get('max_load_attempts', defaults.max_load_attempts)),
            retry_delay=float(values.get('retry_delay', defaults.retry_delay)),
            enable_metrics=bool(values.get('enable_metrics', defaults.enable_metrics)),
            preload_domains=tuple(values.get('preload_domains') or ()),
        )


@dataclass
class CacheEntry:
    """A cached ruleset; its LRU position is its position in the loader's OrderedDict."""

    ruleset: Ruleset
    load_time: float
    access_time: float
    access_count: int = 1


@dataclass
class LoaderMetrics:
    """Counters describing cache and registry activity."""

    cache_hits: int = 0
    cache_misses: int = 0
    load_successes: int = 0
    load_failures: int = 0
    eviction_count: int = 0
    total_load_time: float = 0.0
    average_load_time: float = 0.0

    @property
    def hit_rate(self) -> float:
        lookups = self.cache_hits + self.cache_misses
        return self.cache_hits / lookups if lookups else 0.0


class RulesetLoader:
    """
    LRU-cached, expiring front end to a RulesetRegistry.

    The loader is thread-safe; every change to the cache or the metrics is
    made under one re-entrant lock. Use it as a context manager (or call
    ``close()``) to stop the sweep thread.
    """

    def __init__(self, registry: RulesetRegistry, config: Optional[LoaderConfig] = None,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep):
        """
        Initialize the loader.

        Args:
            registry: Backing store for rulesets
            config: Cache settings (defaults to LoaderConfig())
            clock: Monotonic time source, injectable for tests
            sleep: Sleep function used between load attempts
        """
        self.registry = registry
        self.config = config or LoaderConfig()
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.RLock()
        self._cache: 'OrderedDict[str, CacheEntry]' = OrderedDict()
        self._metrics = LoaderMetrics()
        self._stop = threading.Event()
        self._sweeper: Optional[threading.Thread] = None

        if self.config.cleanup_interval > 0:
            self._sweeper = threading.Thread(
                target=self._sweep_loop, name='ruleset-cache-sweeper', daemon=True
            )
            self._sweeper.start()

        if self.config.preload_domains:
            self.warmup(self.config.preload_domains)

    # Cache access

    def load(self, domain: str) -> Ruleset:
        """
        Get the ruleset for a domain, from cache or from the registry.

        Args:
            domain: Hostname or base domain

        Returns:
            The matching Ruleset

        Raises:
            RulesetNotFoundError: If the domain is empty or no ruleset exists
        """
        if not domain:
            raise RulesetNotFoundError(domain or '')
        domain = domain.lower()

        cached = self._get_from_cache(domain)
        if cached is not None:
            return cached

        ruleset = self._load_from_registry(domain)
        self._add_to_cache(domain, ruleset)
        return ruleset

    def load_by_html(self, document: Any) -> Optional[Ruleset]:
        """
        Detect a ruleset from page markup and cache it under its primary domain.

        Returns:
            The detected Ruleset, or None if no signature matches
        """
        ruleset = self.registry.detect(document)
        if ruleset is None:
            return None

        domain = ruleset.domain.lower()
        with self._lock:
            entry = self._cache.get(domain)
            if entry is not None and not self._is_expired(entry, self._clock()):
                self._touch(domain, entry)
                return entry.ruleset
        self._add_to_cache(domain, ruleset)
        return ruleset

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return self.config.cache_expiration > 0 and now - entry.load_time > self.config.cache_expiration

    def _touch(self, domain: str, entry: CacheEntry) -> None:
        entry.access_time = self._clock()
        entry.access_count += 1
        self._cache.move_to_end(domain)

    def _get_from_cache(self, domain: str) -> Optional[Ruleset]:
        with self._lock:
            entry = self._cache.get(domain)
            if entry is None:
                self._record('cache_misses')
                return None

            if self._is_expired(entry, self._clock()):
                del self._cache[domain]
                self._record('cache_misses')
                logger.debug("Cached ruleset for %s expired", domain)
                return None

            self._touch(domain, entry)
            self._record('cache_hits')
            return entry.ruleset

    def _load_from_registry(self, domain: str) -> Ruleset:
        start = self._clock()
        ruleset = None
        attempts = 0

        for attempt in range(max(1, self.config.max_load_attempts)):
            attempts = attempt + 1
            ruleset = (self.registry.get_by_domain(domain)
                       or self.registry.get_by_domain_with_fallback(domain))
            if ruleset is not None:
                break
            if attempts < self.config.max_load_attempts and self.config.retry_delay > 0:
                self._sleep(self.config.retry_delay)

        elapsed = self._clock() - start
        if self.config.enable_metrics:
            with self._lock:
                if ruleset is not None:
                    self._metrics.load_successes += 1
                else:
                    self._metrics.load_failures += 1
                self._metrics.total_load_time += elapsed
                loads = self._metrics.load_successes + self._metrics.load_failures
                self._metrics.average_load_time = self._metrics.total_load_time / loads

        if ruleset is None:
            raise RulesetNotFoundError(domain, attempts)
        return ruleset

    def _add_to_cache(self, domain: str, ruleset: Ruleset) -> None:
        with self._lock:
            if domain in self._cache:
                del self._cache[domain]
            elif len(self._cache) >= self.config.max_cache_size:
                self._evict_lru()

            now = self._clock()
            self._cache[domain] = CacheEntry(ruleset=ruleset, load_time=now, access_time=now)

    def _evict_lru(self) -> None:
        if not self._cache:
            return
        domain, _ = self._cache.popitem(last=False)
        self._metrics.eviction_count += 1
        logger.debug("Evicted %s from ruleset cache", domain)

    def _record(self, counter: str) -> None:
        if self.config.enable_metrics:
            setattr(self._metrics, counter, getattr(self._metrics, counter) + 1)

    # Maintenance

    def cleanup_expired(self) -> int:
        """
        Remove every entry older than the expiration.

        Returns:
            Number of entries removed
        """
        if self.config.cache_expiration <= 0:
            return 0

        with self._lock:
            now = self._clock()
            expired = [domain for domain, entry in self._cache.items()
                       if self._is_expired(entry, now)]
            for domain in expired:
                del self._cache[domain]

        if expired:
            logger.debug("Swept %d expired ruleset(s)", len(expired))
        return len(expired)

    def _sweep_loop(self) -> None:
        while not self._stop.wait(self.config.cleanup_interval):
            self.cleanup_expired()

    def warmup(self, domains: Iterable[str]) -> int:
        """
        Load rulesets for ``domains`` into the cache, skipping unknown ones.

        Returns:
            Number of domains loaded
        """
        loaded = 0
        for domain in domains:
            try:
                self.load(domain)
                loaded += 1
            except RulesetNotFoundError:
                logger.debug("No ruleset to preload for %s", domain)
        return loaded

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def close(self) -> None:
        """Stop the sweep thread and wait for it to finish."""
        self._stop.set()
        if self._sweeper is not None and self._sweeper is not threading.current_thread():
            self._sweeper.join()
        self._sweeper = None

    def __enter__(self) -> 'RulesetLoader':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # Introspection

    def metrics(self) -> LoaderMetrics:
        """Return a snapshot copy of the metrics."""
        with self._lock:
            return replace(self._metrics)

    def cache_stats(self) -> Tuple[int, int, float]:
        """Return ``(size, capacity, hit_rate)``."""
        with self._lock:
            return len(self._cache), self.config.max_cache_size, self._metrics.hit_rate

    def cached_domains(self) -> List[str]:
        """Cached domains from least to most recently used."""
        with self._lock:
            return list(self._cache)
