"""
Extractor resolution.

Decides which ruleset applies to a page: runtime overrides first, then the
registry (through the loader cache), then page-markup detection, and finally
the generic extractor.
"""

import logging
import threading
from typing import Any, Dict, List, Mapping, Optional, Union

from ..exceptions import InvalidRulesetError, RulesetNotFoundError
from ..models import GENERIC_RULESET, Ruleset
from ..utils import base_domain, hostname_from_url
from .loader import RulesetLoader

logger = logging.getLogger(__name__)


class ExtractorResolver:
    """Resolves the ruleset for a URL, falling back to the generic ruleset."""

    def __init__(self, loader: RulesetLoader, registry=None):
        """
        Initialize the resolver.

        Args:
            loader: Cached ruleset loader
            registry: Registry used for markup detection (defaults to the loader's)
        """
        self.loader = loader
        self.registry = registry if registry is not None else loader.registry
        self._overrides: Dict[str, Ruleset] = {}
        self._lock = threading.RLock()

    # Runtime overrides

    def add_extractor(self, ruleset: Union[Ruleset, Mapping[str, Any]]) -> List[str]:
        """
        Register a ruleset that takes priority over the registry.

        Args:
            ruleset: A Ruleset or a mapping accepted by ``Ruleset.from_dict``

        Returns:
            The lower-cased domains the ruleset was registered under

        Raises:
            InvalidRulesetError: If the ruleset has no domain
        """
        if isinstance(ruleset, Mapping):
            ruleset = Ruleset.from_dict(ruleset)
        if not isinstance(ruleset, Ruleset) or not ruleset.domain:
            raise InvalidRulesetError("Unable to add custom extractor: a domain is required")

        domains = [domain.lower() for domain in ruleset.domains]
        with self._lock:
            for domain in domains:
                self._overrides[domain] = ruleset

        logger.info("Added custom extractor for %s", ', '.join(domains))
        return domains

    def remove_extractor(self, domain: str) -> bool:
        with self._lock:
            return self._overrides.pop(domain.lower(), None) is not None

    def clear_overrides(self) -> None:
        with self._lock:
            self._overrides.clear()

    def override_domains(self) -> List[str]:
        with self._lock:
            return sorted(self._overrides)

    def _override(self, domain: str) -> Optional[Ruleset]:
        with self._lock:
            return self._overrides.get(domain)

    # Resolution

    def _from_loader(self, domain: str) -> Optional[Ruleset]:
        try:
            return self.loader.load(domain)
        except RulesetNotFoundError:
            return None

    def resolve(self, url: str, document: Any = None) -> Ruleset:
        """
        Find the ruleset for a page.

        Tries, in order: an override for the hostname, an override for the
        base domain, the registry for the hostname, the registry for the
        base domain, detection from the page markup, and the generic ruleset.

        Args:
            url: Page URL
            document: Parsed page, used for markup detection

        Returns:
            The matching Ruleset; never raises
        """
        hostname = hostname_from_url(url)

        if hostname:
            base = base_domain(hostname)
            tiers = (
                ('override', hostname, self._override),
                ('override (base domain)', base, self._override),
                ('registry', hostname, self._from_loader),
                ('registry (base domain)', base, self._from_loader),
            )
            for tier, domain, lookup in tiers:
                ruleset = lookup(domain)
                if ruleset is not None:
                    logger.debug("Resolved %s to %s via %s", url, ruleset.domain, tier)
                    return ruleset
        else:
            logger.debug("No hostname in %r, skipping domain lookup", url)

        if document is not None:
            if self.registry is self.loader.registry:
                ruleset = self.loader.load_by_html(document)
            else:
                ruleset = self.registry.detect(document)
            if ruleset is not None:
                logger.debug("Resolved %s to %s from page markup", url, ruleset.domain)
                return ruleset

        logger.debug("Using generic extractor for %s", url)
        return GENERIC_RULESET
