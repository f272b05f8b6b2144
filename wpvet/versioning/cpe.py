"""CPE 2.3 identifier encoding and decoding.

Formatted strings look like::

    cpe:2.3:a:<vendor>:<product>:<version>:*:*:*:*:<target_sw>:*:*

Plugins and themes carry ``wordpress`` as target software; core uses ``*``.
Vendor and product are normalized, the version field is escaped so values
containing CPE metacharacters survive a round trip.
"""

import re
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

from .patterns import KNOWN_PLUGIN_VENDORS
from .validator import UNKNOWN_VERSION

CPE_PREFIX = 'cpe:2.3:a:'
TARGET_SW_WORDPRESS = 'wordpress'

_INVALID_CHARS = re.compile(r'[^a-z0-9\-._]')
_REPEATED_UNDERSCORE = re.compile(r'_+')
# Backslash first so later escapes are not themselves escaped
_ESCAPE_ORDER = ('\\', '*', '?', '"', ':')
_ANY = r'(?:\\.|[^\\:])*'
_FIELD = '(' + _ANY + ')'
# vendor, product, version, four ignored, target_sw, two ignored
_CPE_RE = re.compile(
    r'^cpe:2\.3:a:' + _FIELD + ':' + _FIELD + ':' + _FIELD
    + (':' + _ANY) * 4 + ':' + _FIELD + (':' + _ANY) * 2 + '$'
)
_UNESCAPE_RE = re.compile(r'\\(.)')


@dataclass(frozen=True)
class ParsedCpe:
    vendor: str
    product: str
    version: str
    target_sw: str

    def to_dict(self) -> Dict[str, str]:
        return {
            'vendor': self.vendor,
            'product': self.product,
            'version': self.version,
            'target_sw': self.target_sw,
        }


def normalize_component(value: Optional[str]) -> str:
    """Normalize a vendor or product name for the CPE string."""
    value = _INVALID_CHARS.sub('_', (value or '').lower())
    value = _REPEATED_UNDERSCORE.sub('_', value).strip('_')
    return value or 'unknown'


def escape_version(version: Optional[str]) -> str:
    if not version or version in (UNKNOWN_VERSION, '*'):
        return '*'
    for ch in _ESCAPE_ORDER:
        version = version.replace(ch, '\\' + ch)
    return version


def unescape_value(value: str) -> str:
    return _UNESCAPE_RE.sub(r'\1', value)


def encode_cpe(vendor: str, product: str, version: Optional[str], is_plugin: bool) -> str:
    """Build the CPE string; ``is_plugin`` covers both plugins and themes."""
    target_sw = TARGET_SW_WORDPRESS if is_plugin else '*'
    return (
        f'{CPE_PREFIX}{normalize_component(vendor)}:{normalize_component(product)}:'
        f'{escape_version(version)}:*:*:*:*:{target_sw}:*:*'
    )


def core_cpe(version: Optional[str]) -> str:
    return encode_cpe('wordpress', 'wordpress', version, False)


def decode_cpe(cpe: str) -> Optional[ParsedCpe]:
    """Parse a CPE string produced by :func:`encode_cpe`.

    Returns None for anything outside the 13-field grammar.
    """
    if not isinstance(cpe, str):
        return None
    match = _CPE_RE.match(cpe)
    if not match:
        return None
    vendor, product, version, target_sw = match.groups()
    if not vendor or not product or not version:
        return None
    return ParsedCpe(
        vendor=unescape_value(vendor),
        product=unescape_value(product),
        version=UNKNOWN_VERSION if version == '*' else unescape_value(version),
        target_sw=target_sw,
    )


def resolve_plugin_vendor(slug: str, overrides: Optional[Mapping[str, str]] = None) -> str:
    """Pick the CPE vendor for a plugin slug.

    Order: configured override, known-vendor table, known vendor of the
    slug's first dash-separated segment, the slug itself.
    """
    if overrides and slug in overrides:
        return overrides[slug]
    if slug in KNOWN_PLUGIN_VENDORS:
        return KNOWN_PLUGIN_VENDORS[slug]
    prefix = slug.split('-', 1)[0]
    if prefix and prefix != slug and prefix in KNOWN_PLUGIN_VENDORS:
        return KNOWN_PLUGIN_VENDORS[prefix]
    return slug


def component_cpe(kind: str, slug: str, version: Optional[str],
                  vendor_overrides: Optional[Mapping[str, str]] = None) -> str:
    """CPE for a component of ``kind`` core, plugin or theme."""
    if kind == 'core':
        return core_cpe(version)
    if kind == 'plugin':
        return encode_cpe(resolve_plugin_vendor(slug, vendor_overrides), slug, version, True)
    return encode_cpe(slug, slug, version, True)
