"""Multi-signal version extractor.

Collects evidence for one component at a time and reduces it with
:func:`select_winner`. Signals, strongest first:

Core:
1. Meta generator tag on the landing page
2. ``readme.html`` version line
3. ``/wp-json/`` discovery document (presence only)
4. Most frequent ``?ver=`` value on core/content asset URLs
5. Script fingerprints, only while no concrete version is known
6. Bare ``/wp-includes/`` or ``/wp-content/`` references (presence only)

Plugins: ``readme.txt``, then plugin scripts, then ``?ver=`` hints.
Themes: ``style.css`` header, then ``?ver=`` hints.

Fetch failures never raise here; they just mean no evidence.
"""

import json
import logging
import re
from typing import Dict, List, Mapping, Optional, Pattern, Sequence

from ..models import DetectedComponent
from ..scan.network import FetchClient
from .evidence import VersionEvidence, has_concrete, select_winner
from .fingerprint import FingerprintResult, extract_header_version, match_content, score_matches
from .patterns import (
    CORE_JS_PATHS,
    GENERIC_JS_VERSION_PATTERNS,
    GENERIC_PLUGIN_JS_PATHS,
    get_plugin_js_pattern,
)
from .validator import is_loose_version

logger = logging.getLogger('wpvet.versioning')

# Fixed confidence per source
CONF_META_GENERATOR = 95
CONF_README = 85
CONF_VER_PARAM = 80
CONF_WP_JSON = 70
CONF_README_PRESENT = 60
CONF_WP_PATHS = 50
CONF_COMPONENT_FILE = 85
CONF_PLUGIN_JS_KNOWN = 80
CONF_PLUGIN_JS_GENERIC = 70
CONF_VER_HINT = 70

GENERATOR_RE = re.compile(
    r'<meta[^>]*name=["\']generator["\'][^>]*content=["\']WordPress\s*([\d.]+)?["\']', re.I)
README_HTML_VERSION_RE = re.compile(r'Version\s+([\d.]+)', re.I)
CORE_VER_PARAM_RE = re.compile(r'wp-(?:includes|content)/[^"\']+\?ver=([\d.]+)')
_VER_HINT_TEMPLATE = r'/wp-content/{kind}/([a-z0-9_-]+)/[^"\']+\?ver=([\d.]+)'
PLUGIN_VER_HINT_RE = re.compile(_VER_HINT_TEMPLATE.format(kind='plugins'), re.I)
THEME_VER_HINT_RE = re.compile(_VER_HINT_TEMPLATE.format(kind='themes'), re.I)

_HEADER_VERSION = r'(\d+(?:\.\d+)*(?:-[a-zA-Z0-9.]+)?)'
PLUGIN_README_PATTERNS = (
    re.compile(r'Stable tag:\s*' + _HEADER_VERSION, re.I),
    re.compile(r'Version:\s*' + _HEADER_VERSION, re.I),
)
STYLE_VERSION_PATTERNS = (re.compile(r'Version:\s*' + _HEADER_VERSION, re.I),)
THEME_NAME_RE = re.compile(r'Theme Name:\s*(.+)', re.I)

CORE_SLUG = 'wordpress'
CORE_NAME = 'WordPress'


# ============ Landing-page helpers ============

def extract_first(text: str, patterns: Sequence[Pattern[str]]) -> Optional[str]:
    for pattern in patterns:
        m = pattern.search(text)
        if m and m.group(1) and is_loose_version(m.group(1)):
            return m.group(1)
    return None


def extract_generator_version(html: str) -> Optional[str]:
    m = GENERATOR_RE.search(html)
    return m.group(1) if m and m.group(1) else None


def most_common_ver_param(html: str) -> Optional[str]:
    """Most frequent ``?ver=`` value across asset URLs; first seen wins ties."""
    counts: Dict[str, int] = {}
    for m in CORE_VER_PARAM_RE.finditer(html):
        counts[m.group(1)] = counts.get(m.group(1), 0) + 1
    if not counts:
        return None
    return max(counts, key=counts.get)


def extract_ver_hints(html: str, kind: str = 'plugin') -> Dict[str, str]:
    """slug -> longest ``?ver=`` value seen on that component's assets."""
    regex = PLUGIN_VER_HINT_RE if kind == 'plugin' else THEME_VER_HINT_RE
    hints: Dict[str, str] = {}
    for m in regex.finditer(html):
        slug, version = m.group(1).lower(), m.group(2)
        existing = hints.get(slug)
        if existing is None or len(version) > len(existing):
            hints[slug] = version
    return hints


def looks_like_wordpress_json(text: str) -> bool:
    try:
        data = json.loads(text)
    except ValueError:
        return False
    if not isinstance(data, dict):
        return False
    namespaces = data.get('namespaces')
    return bool(data.get('home') or data.get('url')
                or (isinstance(namespaces, list) and 'wp/v2' in namespaces))


# ============ Extractor ============

class VersionExtractor:
    """Gathers evidence for core, plugins and themes of one site.

    Usage:
        extractor = VersionExtractor(client)
        core = extractor.detect_core(base_url, html)
        plugin = extractor.detect_plugin(base_url, 'akismet', hints)
    """

    def __init__(self, client: FetchClient, vendor_overrides: Optional[Mapping[str, str]] = None):
        self.client = client
        self.options = client.options
        self.vendor_overrides = dict(vendor_overrides or {})

    # ---- core ----

    def core_evidence(self, base_url: str, html: str) -> List[VersionEvidence]:
        sources: List[VersionEvidence] = []

        generator = extract_generator_version(html)
        if generator:
            sources.append(VersionEvidence.concrete(generator, CONF_META_GENERATOR, 'meta-generator'))

        readme = self._readme_html_evidence(base_url)
        if readme:
            sources.append(readme)

        text = self.client.get_text(f'{base_url}/wp-json/')
        if text is not None and looks_like_wordpress_json(text):
            sources.append(VersionEvidence.present_unknown(CONF_WP_JSON, 'wp-json'))

        ver_param = most_common_ver_param(html)
        if ver_param:
            sources.append(VersionEvidence.concrete(ver_param, CONF_VER_PARAM, 'ver-param'))

        if self.options.fingerprint and not has_concrete(sources):
            result = self.fingerprint_core(base_url)
            if result is not None and result.version:
                sources.append(VersionEvidence.concrete(result.version, result.confidence, result.source))

        if not sources and ('/wp-includes/' in html or '/wp-content/' in html):
            sources.append(VersionEvidence.present_unknown(CONF_WP_PATHS, 'wp-paths'))
        return sources

    def _readme_html_evidence(self, base_url: str) -> Optional[VersionEvidence]:
        text = self.client.get_text(f'{base_url}/readme.html')
        if text is None:
            return None
        m = README_HTML_VERSION_RE.search(text)
        if m:
            return VersionEvidence.concrete(m.group(1), CONF_README, 'readme.html')
        if 'WordPress' in text and 'GPL' in text:
            return VersionEvidence.present_unknown(CONF_README_PRESENT, 'readme.html')
        return None

    def fingerprint_core(self, base_url: str) -> Optional[FingerprintResult]:
        matches = []
        for path in CORE_JS_PATHS:
            content = self.client.get_text(f'{base_url}{path}')
            if content:
                matches.extend(match_content(path, content))
        result = score_matches(matches)
        if result is not None:
            logger.debug('core fingerprint version=%s confidence=%d matches=%d',
                         result.version, result.confidence, len(result.matches))
        return result

    def detect_core(self, base_url: str, html: str) -> Optional[DetectedComponent]:
        winner = select_winner(self.core_evidence(base_url, html))
        if winner is None:
            return None
        return DetectedComponent.create(
            'core', CORE_SLUG, CORE_NAME, winner.reported_version, winner.confidence, 'remote',
            evidence=winner.source,
        )

    # ---- plugins ----

    def plugin_evidence(self, base_url: str, slug: str,
                        ver_hints: Optional[Mapping[str, str]] = None) -> List[VersionEvidence]:
        sources: List[VersionEvidence] = []
        text = self.client.get_text(f'{base_url}/wp-content/plugins/{slug}/readme.txt')
        if text is not None:
            version = extract_first(text, PLUGIN_README_PATTERNS)
            if version:
                sources.append(VersionEvidence.concrete(version, CONF_COMPONENT_FILE, 'readme.txt'))

        if not has_concrete(sources) and self.options.fingerprint:
            js = self.plugin_js_evidence(base_url, slug)
            if js:
                sources.append(js)

        if not has_concrete(sources) and ver_hints and slug in ver_hints:
            sources.append(VersionEvidence.concrete(ver_hints[slug], CONF_VER_HINT, 'ver-param'))
        return sources

    def plugin_js_evidence(self, base_url: str, slug: str) -> Optional[VersionEvidence]:
        """Version from the plugin's own scripts; a script without one yields nothing."""
        known = get_plugin_js_pattern(slug)
        if known is not None:
            paths, confidence = known.paths, CONF_PLUGIN_JS_KNOWN
        else:
            paths = tuple(p.format(slug=slug) for p in GENERIC_PLUGIN_JS_PATHS)
            confidence = CONF_PLUGIN_JS_GENERIC
        for path in paths:
            content = self.client.get_text(f'{base_url}{path}')
            if not content:
                continue
            if known is not None:
                version = extract_first(content, known.version_patterns)
            else:
                version = extract_header_version(content, GENERIC_JS_VERSION_PATTERNS)
            if version:
                return VersionEvidence.concrete(version, confidence, f'js:{path}')
        return None

    def detect_plugin(self, base_url: str, slug: str,
                      ver_hints: Optional[Mapping[str, str]] = None) -> Optional[DetectedComponent]:
        winner = select_winner(self.plugin_evidence(base_url, slug, ver_hints))
        if winner is None:
            return None
        return DetectedComponent.create(
            'plugin', slug, slug, winner.reported_version, winner.confidence, 'remote',
            vendor_overrides=self.vendor_overrides, evidence=winner.source,
        )

    # ---- themes ----

    def detect_theme(self, base_url: str, slug: str,
                     ver_hints: Optional[Mapping[str, str]] = None) -> Optional[DetectedComponent]:
        sources: List[VersionEvidence] = []
        name = slug
        text = self.client.get_text(f'{base_url}/wp-content/themes/{slug}/style.css')
        if text is not None:
            version = extract_first(text, STYLE_VERSION_PATTERNS)
            if version:
                sources.append(VersionEvidence.concrete(version, CONF_COMPONENT_FILE, 'style.css'))
                m = THEME_NAME_RE.search(text)
                if m and m.group(1).strip():
                    name = m.group(1).strip()
        if not sources and ver_hints and slug in ver_hints:
            sources.append(VersionEvidence.concrete(ver_hints[slug], CONF_VER_HINT, 'ver-param'))

        winner = select_winner(sources)
        if winner is None:
            return None
        return DetectedComponent.create(
            'theme', slug, name, winner.reported_version, winner.confidence, 'remote',
            evidence=winner.source,
        )
