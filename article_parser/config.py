"""
Configuration for article-parser.

Values come from a built-in set of defaults, overlaid with the first YAML file
found in the user's home or working directory (or an explicit ``--config``
file). Sections are addressed with dotted keys such as ``loader.max_cache_size``.
"""

import copy
import logging
import yaml
from pathlib import Path
from typing import Dict, Any, Iterator, List, Optional

logger = logging.getLogger(__name__)

DEFAULTS: Dict[str, Any] = {
    "parser": {
        "fallback": True,
        "fetch_all_pages": True,
        "content_type": "html",
        "max_pages": 26,
    },
    "loader": {
        "max_cache_size": 50,
        "cache_expiration": 1800,
        "cleanup_interval": 60,
        "max_load_attempts": 3,
        "retry_delay": 0.1,
        "enable_metrics": True,
        "preload_domains": [],
    },
    "fetcher": {
        "timeout": 30,
        "user_agent": "article-parser/1.0.0",
        "allow_private_networks": False,
    },
    "extractors": {
        "ruleset_files": [],
    },
    "logging": {
        "level": "WARNING",
    },
}

CONFIG_NAMES = ("article-parser.yml", "article-parser.yaml")


def _candidate_files() -> Iterator[Path]:
    home = Path.home()
    for name in CONFIG_NAMES:
        yield home / f".{name}"
    for suffix in ("yml", "yaml"):
        yield home / ".config" / "article-parser" / f"config.{suffix}"
    for name in CONFIG_NAMES:
        yield Path(name)


def _overlay(base: Dict[str, Any], extra: Dict[str, Any]) -> Dict[str, Any]:
    """Return ``base`` with ``extra`` merged in; nested sections merge key by key."""
    merged = dict(base)
    for key, value in extra.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _overlay(current, value)
        else:
            merged[key] = value
    return merged


class Config:
    """Layered settings: defaults first, then a YAML file on top."""

    def __init__(self, config_file: Optional[str] = None, load_user_config: bool = True):
        """
        Args:
            config_file: Explicit YAML file. When given, the standard locations are skipped.
            load_user_config: Set to False to keep the pure defaults (used by tests).
        """
        self.config_data: Dict[str, Any] = copy.deepcopy(DEFAULTS)

        if config_file:
            self.load_user_config(config_file)
        elif load_user_config:
            found = next((path for path in _candidate_files() if path.exists()), None)
            if found is not None:
                self.load_user_config(str(found))

    def load_user_config(self, config_file: str) -> None:
        """Overlay a YAML file on the current values.

        A missing file is ignored. A file that cannot be read or parsed is
        logged and leaves the current values untouched.
        """
        path = Path(config_file).expanduser()
        if not path.exists():
            logger.debug("Config file %s not found", path)
            return

        try:
            loaded = yaml.safe_load(path.read_text(encoding='utf-8'))
        except (OSError, yaml.YAMLError) as e:
            logger.warning("Could not load config file %s: %s", config_file, e)
            return

        if isinstance(loaded, dict):
            self.config_data = _overlay(self.config_data, loaded)
        elif loaded is not None:
            logger.warning("Ignoring config file %s: top level is not a mapping", config_file)

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a dotted key, returning ``default`` when any part is missing."""
        node: Any = self.config_data
        for part in key.split('.'):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, key: str, value: Any) -> None:
        """Assign a dotted key, creating intermediate sections as needed."""
        *parents, leaf = key.split('.')
        node = self.config_data
        for part in parents:
            node = node.setdefault(part, {})
        node[leaf] = value

    def get_parser_config(self) -> Dict[str, Any]:
        return self.get('parser', {})

    def get_loader_config(self) -> Dict[str, Any]:
        return self.get('loader', {})

    def get_fetcher_config(self) -> Dict[str, Any]:
        return self.get('fetcher', {})

    def get_ruleset_files(self) -> List[Path]:
        """Extra YAML ruleset files to register at startup, with ``~`` expanded."""
        return [self.expand_path(p) for p in self.get('extractors.ruleset_files') or []]

    @staticmethod
    def expand_path(path: str) -> Path:
        return Path(path).expanduser().resolve()


_config: Optional[Config] = None


def get_config() -> Config:
    """Return the process-wide configuration, creating it on first use."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def set_config(config: Config) -> None:
    """Replace the process-wide configuration."""
    global _config
    _config = config
