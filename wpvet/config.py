"""Scan options and user configuration.

``ScanOptions`` is built once per scan and shared read-only by every worker.
``WpVetConfig`` is read from a JSON file (camelCase keys) and only
contributes defaults and candidate lists; it is never mutated after load.
"""

import json
import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .exceptions import ConfigurationError
from .versioning.patterns import BUILTIN_PLUGINS, BUILTIN_THEMES

logger = logging.getLogger('wpvet.config')

VERSION = '0.4.0'
DEFAULT_USER_AGENT = f'WpVet/{VERSION} (Security Scanner)'
DEFAULT_TIMEOUT_MS = 30000
DEFAULT_CONCURRENCY = 5
DEFAULT_RETRY = 2
DEFAULT_RETRY_DELAY_MS = 1000


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning('ignoring non-integer %s=%r', name, raw)
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() not in ('0', 'false', 'no', 'off')


@dataclass(frozen=True)
class ScanOptions:
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    concurrency: int = DEFAULT_CONCURRENCY
    retry: int = DEFAULT_RETRY
    retry_delay_ms: int = DEFAULT_RETRY_DELAY_MS
    user_agent: str = DEFAULT_USER_AGENT
    fingerprint: bool = True

    def __post_init__(self):
        # frozen: normalise through object.__setattr__
        object.__setattr__(self, 'concurrency', max(1, int(self.concurrency)))
        object.__setattr__(self, 'retry', max(0, int(self.retry)))
        object.__setattr__(self, 'retry_delay_ms', max(0, int(self.retry_delay_ms)))
        if int(self.timeout_ms) <= 0:
            raise ConfigurationError('timeout_ms', 'must be positive')
        object.__setattr__(self, 'timeout_ms', int(self.timeout_ms))

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0

    @classmethod
    def from_env(cls, config: Optional['WpVetConfig'] = None) -> 'ScanOptions':
        """Defaults, then config-file values, then ``WPVET_*`` environment."""
        config = config or WpVetConfig()
        timeout = config.timeout or DEFAULT_TIMEOUT_MS
        concurrency = config.concurrency or DEFAULT_CONCURRENCY
        user_agent = config.user_agent or DEFAULT_USER_AGENT
        return cls(
            timeout_ms=_env_int('WPVET_TIMEOUT_MS', timeout),
            concurrency=_env_int('WPVET_CONCURRENCY', concurrency),
            retry=_env_int('WPVET_RETRY', DEFAULT_RETRY),
            retry_delay_ms=_env_int('WPVET_RETRY_DELAY_MS', DEFAULT_RETRY_DELAY_MS),
            user_agent=os.environ.get('WPVET_USER_AGENT') or user_agent,
            fingerprint=_env_bool('WPVET_FINGERPRINT', True),
        )

    def with_overrides(self, **overrides: Any) -> 'ScanOptions':
        """New options with every non-None override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes) if changes else self

    def to_dict(self) -> Dict[str, Any]:
        return {
            'timeout_ms': self.timeout_ms,
            'concurrency': self.concurrency,
            'retry': self.retry,
            'retry_delay_ms': self.retry_delay_ms,
            'user_agent': self.user_agent,
            'fingerprint': self.fingerprint,
        }


@dataclass(frozen=True)
class WpVetConfig:
    additional_plugins: Tuple[str, ...] = ()
    additional_themes: Tuple[str, ...] = ()
    custom_plugins: Tuple[str, ...] = ()
    custom_themes: Tuple[str, ...] = ()
    plugin_vendors: Mapping[str, str] = field(default_factory=dict)
    user_agent: Optional[str] = None
    timeout: Optional[int] = None
    concurrency: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'WpVetConfig':
        if not isinstance(data, Mapping):
            raise ConfigurationError('config', 'top-level value must be an object')

        def _slugs(key: str) -> Tuple[str, ...]:
            value = data.get(key)
            if value is None:
                return ()
            if not isinstance(value, list):
                raise ConfigurationError(key, 'must be a list of slugs')
            return tuple(str(v) for v in value)

        vendors = data.get('pluginVendors')
        if vendors is None:
            vendors = {}
        if not isinstance(vendors, Mapping):
            raise ConfigurationError('pluginVendors', 'must be an object')
        return cls(
            additional_plugins=_slugs('additionalPlugins'),
            additional_themes=_slugs('additionalThemes'),
            custom_plugins=_slugs('customPlugins'),
            custom_themes=_slugs('customThemes'),
            plugin_vendors={str(k): str(v) for k, v in vendors.items()},
            user_agent=data.get('userAgent') or None,
            timeout=_optional_int(data, 'timeout'),
            concurrency=_optional_int(data, 'concurrency'),
        )

    def plugins_to_scan(self) -> List[str]:
        return _merge(BUILTIN_PLUGINS, self.custom_plugins, self.additional_plugins)

    def themes_to_scan(self) -> List[str]:
        return _merge(BUILTIN_THEMES, self.custom_themes, self.additional_themes)


def _optional_int(data: Mapping[str, Any], key: str) -> Optional[int]:
    value = data.get(key)
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(key, f'expected an integer, got {value!r}')


def _merge(builtin, custom, additional) -> List[str]:
    if custom:
        return list(custom)
    return list(dict.fromkeys([*builtin, *additional]))


def default_config_path() -> Path:
    return Path.home() / '.wpvet' / 'config.json'


def resolve_config_path(path: Optional[str] = None) -> Path:
    if path:
        return Path(path).expanduser()
    env_path = os.environ.get('WPVET_CONFIG')
    if env_path:
        return Path(env_path).expanduser()
    return default_config_path()


def load_config(path: Optional[str] = None) -> WpVetConfig:
    """Load the user config; a missing or broken file yields the empty config."""
    cfg_path = resolve_config_path(path)
    if not cfg_path.is_file():
        if path:
            logger.warning('config file not found: %s', cfg_path)
        return WpVetConfig()
    try:
        with cfg_path.open('r', encoding='utf-8') as fh:
            data = json.load(fh)
        return WpVetConfig.from_dict(data)
    except (OSError, ValueError, ConfigurationError) as exc:
        logger.warning('ignoring unreadable config %s: %s', cfg_path, exc)
        return WpVetConfig()


def init_config(path: Optional[str] = None) -> Path:
    """Write a skeleton config file unless one already exists."""
    cfg_path = resolve_config_path(path)
    if cfg_path.exists():
        return cfg_path
    cfg_path.parent.mkdir(parents=True, exist_ok=True)
    skeleton = {'additionalPlugins': [], 'additionalThemes': [], 'pluginVendors': {}}
    cfg_path.write_text(json.dumps(skeleton, indent=2) + '\n', encoding='utf-8')
    logger.info('wrote default config to %s', cfg_path)
    return cfg_path
