"""
Ruleset registry for article-parser.

The registry is the backing store the loader reads from: it maps every
primary and alias domain to its ruleset, can build rulesets lazily from
factories, and keeps the ordered table of HTML signature detectors.
"""

import logging
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

import yaml

from ..exceptions import InvalidRulesetError
from ..models import Ruleset
from ..utils import base_domain
from .custom import CUSTOM_RULESETS, HTML_DETECTORS
from .transforms import safe_select

logger = logging.getLogger(__name__)

RulesetFactory = Callable[[], Ruleset]


def _as_ruleset(ruleset: Union[Ruleset, Mapping[str, Any]]) -> Ruleset:
    if isinstance(ruleset, Ruleset):
        if not ruleset.domain:
            raise InvalidRulesetError("Unable to register ruleset: a domain is required")
        return ruleset
    if isinstance(ruleset, Mapping):
        return Ruleset.from_dict(ruleset)
    raise InvalidRulesetError(f"Cannot register {type(ruleset).__name__} as a ruleset")


class RulesetRegistry:
    """
    Thread-safe mapping of domains to rulesets.

    Domains are matched case-insensitively. Registering a ruleset for a
    domain that already has one replaces it.
    """

    def __init__(self, rulesets: Iterable[Ruleset] = ()):
        self._lock = threading.RLock()
        self._rulesets: Dict[str, Ruleset] = {}
        self._factories: Dict[str, RulesetFactory] = {}
        self._detectors: List[Tuple[str, Ruleset]] = []

        for ruleset in rulesets:
            self.register(ruleset)

    def register(self, ruleset: Union[Ruleset, Mapping[str, Any]]) -> List[str]:
        """
        Register a ruleset under its primary domain and all aliases.

        Args:
            ruleset: A Ruleset or a mapping accepted by ``Ruleset.from_dict``

        Returns:
            The lower-cased domains registered

        Raises:
            InvalidRulesetError: If the ruleset has no domain or is malformed
        """
        ruleset = _as_ruleset(ruleset)
        domains = [domain.lower() for domain in ruleset.domains]

        with self._lock:
            for domain in domains:
                self._rulesets[domain] = ruleset
                self._factories.pop(domain, None)

        logger.debug("Registered ruleset %s for %s", ruleset.domain, ', '.join(domains))
        return domains

    def register_factory(self, domain: str, factory: RulesetFactory) -> None:
        """Register a callable that builds the ruleset for ``domain`` on first use."""
        if not domain:
            raise InvalidRulesetError("Unable to register factory: a domain is required")
        with self._lock:
            self._factories[domain.lower()] = factory

    def register_detector(self, selector: str, ruleset: Ruleset) -> None:
        """Add an HTML signature; detectors are checked in registration order."""
        with self._lock:
            self._detectors.append((selector, ruleset))

    def get_by_domain(self, domain: str) -> Optional[Ruleset]:
        """Look up a ruleset by exact domain."""
        if not domain:
            return None
        domain = domain.lower()

        with self._lock:
            ruleset = self._rulesets.get(domain)
            if ruleset is not None:
                return ruleset
            factory = self._factories.get(domain)

        if factory is None:
            return None

        ruleset = factory()
        self.register(ruleset)
        with self._lock:
            self._rulesets.setdefault(domain, ruleset)
            self._factories.pop(domain, None)
        return ruleset

    def get_by_domain_with_fallback(self, domain: str) -> Optional[Ruleset]:
        """Look up a ruleset by exact domain, then by its base domain."""
        ruleset = self.get_by_domain(domain)
        if ruleset is None and domain:
            base = base_domain(domain.lower())
            if base != domain.lower():
                ruleset = self.get_by_domain(base)
        return ruleset

    def detect(self, document: Any) -> Optional[Ruleset]:
        """
        Identify a ruleset from the page markup.

        Returns:
            The ruleset of the first detector whose selector matches, or None
        """
        if document is None:
            return None
        with self._lock:
            detectors = list(self._detectors)

        for selector, ruleset in detectors:
            if safe_select(document, selector):
                logger.debug("Detected %s ruleset from page markup", ruleset.domain)
                return ruleset
        return None

    def domains(self) -> List[str]:
        """All registered domains (including lazy ones), sorted."""
        with self._lock:
            return sorted(set(self._rulesets) | set(self._factories))

    def rulesets(self) -> List[Ruleset]:
        """Distinct registered rulesets, ordered by primary domain."""
        with self._lock:
            unique = {id(ruleset): ruleset for ruleset in self._rulesets.values()}
        return sorted(unique.values(), key=lambda ruleset: ruleset.domain)

    def load_yaml(self, path: Union[str, Path]) -> List[Ruleset]:
        """
        Register rulesets declared in a YAML file.

        The file may hold a single ruleset mapping, a list of them, or a
        mapping with a ``rulesets`` list. Selector lists use the same loose
        shape as ``Ruleset.from_dict``.

        Args:
            path: Path to the YAML file

        Returns:
            The rulesets registered

        Raises:
            InvalidRulesetError: If the file cannot be read or holds bad rulesets
        """
        path = Path(path).expanduser()
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise InvalidRulesetError(
                f"Could not load ruleset file {path}: {e}", details={"path": str(path)}
            )

        if isinstance(data, Mapping) and 'rulesets' in data:
            data = data['rulesets']
        if isinstance(data, Mapping):
            data = [data]
        if not isinstance(data, list):
            raise InvalidRulesetError(
                f"Ruleset file {path} must contain a mapping or a list",
                details={"path": str(path)},
            )

        rulesets = [Ruleset.from_dict(definition) for definition in data]
        for ruleset in rulesets:
            self.register(ruleset)

        logger.info("Loaded %d ruleset(s) from %s", len(rulesets), path)
        return rulesets

    def __len__(self) -> int:
        with self._lock:
            return len(set(self._rulesets) | set(self._factories))

    def __contains__(self, domain: object) -> bool:
        if not isinstance(domain, str):
            return False
        domain = domain.lower()
        with self._lock:
            return domain in self._rulesets or domain in self._factories


def build_default_registry(ruleset_files: Iterable[Union[str, Path]] = ()) -> RulesetRegistry:
    """
    Build a registry holding the built-in site rulesets and detectors.

    Args:
        ruleset_files: Extra YAML ruleset files; unreadable ones are skipped with a warning

    Returns:
        A new RulesetRegistry
    """
    registry = RulesetRegistry(CUSTOM_RULESETS)
    for selector, ruleset in HTML_DETECTORS:
        registry.register_detector(selector, ruleset)

    for path in ruleset_files:
        try:
            registry.load_yaml(path)
        except InvalidRulesetError as e:
            logger.warning("Skipping ruleset file: %s", e.message)

    return registry
