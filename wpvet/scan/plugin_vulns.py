"""Plugin-specific exposure checks.

Known weak spots of popular plugins: upload and log directories left
browsable, backups in the web root, REST routes answering without
authentication. Each check names the plugin it belongs to. A remote scan
runs only the checks whose plugin was detected; a standalone audit runs
all of them.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence

from ..models import MisconfigFinding
from .audit import MisconfigCheck, run_misconfig_checks
from .network import FetchClient

logger = logging.getLogger('wpvet.audit')


@dataclass(frozen=True)
class PluginVulnCheck(MisconfigCheck):
    plugin_slug: str = ''


_PLUGIN_CHECKS: List[PluginVulnCheck] = []


def plugin_vuln_check(plugin_slug: str, id: str, name: str, severity: str, description: str):
    """Register the decorated function as a check for ``plugin_slug``."""
    def decorator(fn: Callable[[PluginVulnCheck, str, FetchClient], Optional[MisconfigFinding]]):
        def run(base_url: str, client: FetchClient) -> Optional[MisconfigFinding]:
            return fn(descriptor, base_url, client)

        descriptor = PluginVulnCheck(id, name, severity, description, run, plugin_slug)
        _PLUGIN_CHECKS.append(descriptor)
        return fn
    return decorator


ELEMENTOR_ASSET_RE = re.compile(r'elementor/assets/[^"\']*\?ver=([\d.]+)')


def _json_or_none(text: Optional[str]):
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return None


def _first_path_with(client: FetchClient, base_url: str, paths: Sequence[str],
                     markers: Sequence[str]) -> Optional[str]:
    """First of ``paths`` whose successful body contains any of ``markers``."""
    for path in paths:
        text = client.get_text(f'{base_url}{path}')
        if text and any(marker in text for marker in markers):
            return path
    return None


# ============ Checks ============

@plugin_vuln_check('contact-form-7', 'cf7-unrestricted-upload',
                   'Contact Form 7 - Unrestricted File Upload', 'high',
                   'Contact Form 7 versions < 5.3.2 may allow unrestricted file uploads')
def _cf7_upload(check, base_url, client):
    path = _first_path_with(client, base_url,
                            ('/wp-content/uploads/wpcf7_uploads/', '/wp-content/wpcf7_uploads/'),
                            ('Index of', 'Parent Directory', '.php', '.phtml'))
    if path is None:
        return None
    return check.finding(f'Upload directory accessible: {path}',
                         'Update Contact Form 7 to latest version. Block direct access to upload directory.')


@plugin_vuln_check('woocommerce', 'woo-api-exposure', 'WooCommerce - REST API Exposure', 'high',
                   'WooCommerce REST API endpoints may expose sensitive order/customer data')
def _woo_api(check, base_url, client):
    endpoints = ('/wp-json/wc/v3/orders', '/wp-json/wc/v2/orders', '/wp-json/wc/v3/customers',
                 '/wp-json/wc/v2/customers', '/wp-json/wc/v3/products')
    exposed = []
    for endpoint in endpoints:
        data = _json_or_none(client.get_text(f'{base_url}{endpoint}'))
        if isinstance(data, list) and data:
            exposed.append(endpoint)
    if not exposed:
        return None
    # order or customer records leaking is worse than a product catalogue
    sensitive = any('orders' in e or 'customers' in e for e in exposed)
    return check.finding(
        f'Unauthenticated access to: {", ".join(exposed)}',
        'Ensure WooCommerce REST API requires authentication. Check API key permissions '
        'and disable public access to sensitive endpoints.',
        severity='critical' if sensitive else check.severity,
    )


@plugin_vuln_check('woocommerce', 'woo-debug-log', 'WooCommerce - Debug Log Exposure', 'medium',
                   'WooCommerce debug/log files may be publicly accessible')
def _woo_logs(check, base_url, client):
    path = _first_path_with(client, base_url,
                            ('/wp-content/uploads/wc-logs/', '/wp-content/wc-logs/', '/wc-logs/'),
                            ('Index of', '.log', 'fatal-errors', 'woocommerce'))
    if path is None:
        return None
    return check.finding(f'Log directory accessible: {path}',
                         'Block direct access to WooCommerce log directory via .htaccess or server configuration.')


@plugin_vuln_check('elementor', 'elementor-xss-vuln', 'Elementor - XSS Vulnerability Pattern', 'medium',
                   'Elementor may be vulnerable to stored XSS via certain widgets')
def _elementor_xss(check, base_url, client):
    html = client.get_text(base_url)
    if not html:
        return None
    m = ELEMENTOR_ASSET_RE.search(html)
    if not m:
        return None
    version = m.group(1)
    parts = [int(p) for p in version.split('.') if p.isdigit()]
    if not parts:
        return None
    major = parts[0]
    minor = parts[1] if len(parts) > 1 else 0
    if major > 3 or (major == 3 and minor >= 2):
        return None
    return check.finding(f'Elementor version {version} may be vulnerable to XSS',
                         'Update Elementor to the latest version.')


@plugin_vuln_check('all-in-one-seo-pack', 'aioseo-auth-bypass', 'All in One SEO - REST API Exposure', 'medium',
                   'All in One SEO REST API endpoints may be accessible without authentication')
def _aioseo_rest(check, base_url, client):
    for endpoint in ('/wp-json/aioseo/v1/posts', '/wp-json/aioseo/v1/settings'):
        data = _json_or_none(client.get_text(f'{base_url}{endpoint}'))
        # WordPress REST errors are objects carrying a ``code``
        if isinstance(data, list) and data or isinstance(data, dict) and data and 'code' not in data:
            return check.finding(f'REST API endpoint accessible: {endpoint}',
                                 'Update All in One SEO to the latest version. Review REST API permissions.')
    return None


@plugin_vuln_check('wpforms-lite', 'wpforms-upload-exposure', 'WPForms - Upload Directory Exposure', 'medium',
                   'WPForms upload directory may be publicly accessible')
def _wpforms_uploads(check, base_url, client):
    path = _first_path_with(client, base_url, ('/wp-content/uploads/wpforms/', '/wpforms/'),
                            ('Index of', 'Parent Directory'))
    if path is None:
        return None
    return check.finding(f'Upload directory accessible: {path}',
                         'Block direct access to WPForms upload directory.')


@plugin_vuln_check('updraftplus', 'updraft-backup-exposure', 'UpdraftPlus - Backup Files Exposed', 'critical',
                   'UpdraftPlus backup files may be publicly accessible')
def _updraft_backups(check, base_url, client):
    path = _first_path_with(client, base_url,
                            ('/wp-content/updraft/', '/wp-content/uploads/updraft/', '/updraft/'),
                            ('Index of', 'backup_', '.zip', '.gz', '-db.', '-plugins.'))
    if path is None:
        return None
    return check.finding(
        f'Backup directory accessible: {path}',
        'Move UpdraftPlus backups to a secure location outside web root. '
        'Block direct access via server configuration.',
    )


@plugin_vuln_check('wordfence', 'wordfence-log-exposure', 'Wordfence - Log Files Exposed', 'high',
                   'Wordfence log or configuration files may be publicly accessible')
def _wordfence_logs(check, base_url, client):
    path = _first_path_with(client, base_url,
                            ('/wp-content/wflogs/', '/wflogs/', '/wp-content/plugins/wordfence/tmp/'),
                            ('Index of', '.php', 'config', '.log'))
    if path is None:
        return None
    return check.finding(f'Log directory accessible: {path}',
                         'Block direct access to Wordfence log directory.')


@plugin_vuln_check('wordpress-seo', 'yoast-sitemap-info', 'Yoast SEO - Sitemap Information Disclosure', 'info',
                   'Yoast SEO sitemap reveals site structure (informational)')
def _yoast_sitemap(check, base_url, client):
    xml = client.get_text(f'{base_url}/sitemap_index.xml')
    if not xml or ('yoast' not in xml and 'sitemapindex' not in xml):
        return None
    return check.finding(f'Yoast sitemap available with {xml.count("<sitemap>")} sub-sitemaps',
                         'Review sitemap contents to ensure no sensitive URLs are exposed.')


PLUGIN_VULN_CHECKS: Sequence[PluginVulnCheck] = tuple(_PLUGIN_CHECKS)


# ============ Runner ============

def relevant_checks(detected_slugs: Iterable[str],
                    checks: Sequence[PluginVulnCheck] = PLUGIN_VULN_CHECKS) -> List[PluginVulnCheck]:
    """Checks whose plugin was detected.

    Slugs match exactly or by containment either way, so ``wpforms``
    selects the ``wpforms-lite`` checks and vice versa.
    """
    slugs = {s.strip().lower() for s in detected_slugs if s and s.strip()}
    selected = []
    for check in checks:
        plugin = check.plugin_slug.lower()
        if plugin in slugs or any(s in plugin or plugin in s for s in slugs):
            selected.append(check)
    return selected


def run_plugin_vuln_checks(base_url: str, client: FetchClient,
                           detected_slugs: Iterable[str]) -> List[MisconfigFinding]:
    checks = relevant_checks(detected_slugs)
    logger.debug('plugin checks selected=%s', [c.id for c in checks])
    return run_misconfig_checks(base_url, client, checks=checks)


def run_all_plugin_vuln_checks(base_url: str, client: FetchClient) -> List[MisconfigFinding]:
    return run_misconfig_checks(base_url, client, checks=PLUGIN_VULN_CHECKS)
