"""Remote WordPress inference over unauthenticated HTTP.

One scan:
1. negotiate a base URL whose landing page looks like WordPress
2. detect core; without it nothing else is scanned
3. build plugin/theme candidates (configured lists plus slugs in the HTML)
4. fan out per-slug detection; the shared limiter enforces the ceiling
5. assemble results in candidate order

The orchestrator always returns a :class:`DetectionResult`; failures end
up in ``result.errors``.
"""

import concurrent.futures
import logging
import re
import time
from typing import Callable, List, Optional, Sequence, Tuple

from ..config import ScanOptions, WpVetConfig, load_config
from ..models import DetectedComponent, DetectionResult, sort_findings
from ..versioning.extractor import VersionExtractor, extract_ver_hints
from .network import FetchClient

logger = logging.getLogger('wpvet.scan')

ERR_NO_SITE = 'Could not connect to the site or WordPress not detected'
ERR_NO_CORE = 'WordPress not detected at this URL'

WP_INDICATORS = ('/wp-content/', '/wp-includes/', 'WordPress', 'wp-json')
SLUG_ARTIFACTS = {'plugin', 'plugins', 'theme', 'themes'}
_SLUG_RE = {
    'plugin': re.compile(r'/wp-content/plugins/([a-z0-9_-]+)/', re.I),
    'theme': re.compile(r'/wp-content/themes/([a-z0-9_-]+)/', re.I),
}

# Thread cap for fan-out; the fetch limiter is the real concurrency ceiling
MAX_FANOUT_WORKERS = 64


def candidate_base_urls(url: str) -> List[str]:
    """Scheme candidates in the order they are tried, without trailing slash."""
    url = url.strip()
    if url.startswith('https://'):
        urls = [url, 'http://' + url[len('https://'):]]
    elif url.startswith('http://'):
        urls = [url, 'https://' + url[len('http://'):]]
    else:
        urls = [f'https://{url}', f'http://{url}']
    return [u.rstrip('/') for u in urls]


def looks_like_wordpress(html: str) -> bool:
    return any(marker in html for marker in WP_INDICATORS)


def negotiate_base_url(url: str, client: FetchClient) -> Optional[Tuple[str, str]]:
    """First ``(base_url, html)`` whose landing page carries a WordPress marker."""
    for base_url in candidate_base_urls(url):
        html = client.get_text(base_url)
        if html is not None and looks_like_wordpress(html):
            logger.debug('negotiated base url %s', base_url)
            return base_url, html
        logger.debug('rejected base url candidate %s', base_url)
    return None


def extract_slugs(html: str, kind: str) -> List[str]:
    """Lowercased unique slugs referenced under ``/wp-content/<kind>s/``, in page order."""
    found = (m.group(1).lower() for m in _SLUG_RE[kind].finditer(html))
    return list(dict.fromkeys(s for s in found if s and s not in SLUG_ARTIFACTS))


def build_candidates(configured: Sequence[str], discovered: Sequence[str]) -> List[str]:
    return list(dict.fromkeys([*configured, *discovered]))


def fan_out(tasks: Sequence[Callable[[], Optional[DetectedComponent]]],
            labels: Sequence[str]) -> List[Optional[DetectedComponent]]:
    """Run every task; a failing task yields None and never affects siblings.

    Results are placed by task index, not completion order.
    """
    results: List[Optional[DetectedComponent]] = [None] * len(tasks)
    if not tasks:
        return results
    workers = min(len(tasks), MAX_FANOUT_WORKERS)
    with concurrent.futures.ThreadPoolExecutor(max_workers=workers, thread_name_prefix='wpvet') as executor:
        future_to_idx = {executor.submit(task): i for i, task in enumerate(tasks)}
        for future in concurrent.futures.as_completed(future_to_idx):
            idx = future_to_idx[future]
            try:
                results[idx] = future.result()
            except Exception as e:
                logger.debug('detection failed for %s: %s', labels[idx], e)
                results[idx] = None
    return results


def scan_remote(
    url: str,
    options: Optional[ScanOptions] = None,
    config: Optional[WpVetConfig] = None,
    *,
    client: Optional[FetchClient] = None,
    audit: bool = False,
) -> DetectionResult:
    """Infer the WordPress inventory of ``url``."""
    config = config if config is not None else load_config()
    options = options or ScanOptions.from_env(config)
    own_client = client is None
    client = client or FetchClient(options)
    started = time.time()
    result = DetectionResult(target=url, source='remote')
    try:
        _scan(url, client, config, result, audit)
    finally:
        if own_client:
            client.close()
    logger.info('remote scan target=%s core=%s plugins=%d themes=%d errors=%d elapsed=%.2fs',
                url, result.core.version if result.core else None, len(result.plugins),
                len(result.themes), len(result.errors), time.time() - started)
    return result


def _scan(url: str, client: FetchClient, config: WpVetConfig,
          result: DetectionResult, audit: bool) -> None:
    found = negotiate_base_url(url, client)
    if found is None:
        result.errors.append(ERR_NO_SITE)
        return
    base_url, html = found
    extractor = VersionExtractor(client, config.plugin_vendors)

    try:
        result.core = extractor.detect_core(base_url, html)
    except Exception as e:
        logger.warning('core detection failed for %s: %s', base_url, e)
        result.errors.append(f'Core detection failed: {e}')
        return
    if result.core is None:
        result.errors.append(ERR_NO_CORE)
        return

    plugins = build_candidates(config.plugins_to_scan(), extract_slugs(html, 'plugin'))
    themes = build_candidates(config.themes_to_scan(), extract_slugs(html, 'theme'))
    plugin_hints = extract_ver_hints(html, 'plugin')
    theme_hints = extract_ver_hints(html, 'theme')
    logger.debug('candidates plugins=%d themes=%d base=%s', len(plugins), len(themes), base_url)

    tasks: List[Callable[[], Optional[DetectedComponent]]] = []
    for slug in plugins:
        tasks.append(lambda s=slug: extractor.detect_plugin(base_url, s, plugin_hints))
    for slug in themes:
        tasks.append(lambda s=slug: extractor.detect_theme(base_url, s, theme_hints))
    labels = [f'plugin:{s}' for s in plugins] + [f'theme:{s}' for s in themes]
    detected = fan_out(tasks, labels)

    result.plugins = [c for c in detected[:len(plugins)] if c is not None]
    result.themes = [c for c in detected[len(plugins):] if c is not None]

    if audit:
        from .audit import run_misconfig_checks
        from .plugin_vulns import run_plugin_vuln_checks
        findings = run_misconfig_checks(base_url, client)
        findings += run_plugin_vuln_checks(base_url, client, [p.slug for p in result.plugins])
        result.misconfigs = sort_findings(findings)
