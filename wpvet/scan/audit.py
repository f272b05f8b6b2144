"""WordPress misconfiguration audit.

Each rule is a :class:`MisconfigCheck` descriptor whose ``check`` is a plain
function ``(base_url, client) -> MisconfigFinding | None``. All checks run
concurrently through the same fetch client; a check that raises is logged
and skipped. Findings come back ordered critical, high, medium, low, info.
"""

import concurrent.futures
import json
import logging
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from ..config import ScanOptions
from ..models import AuditResult, MisconfigFinding, sort_findings
from .network import FetchClient

logger = logging.getLogger('wpvet.audit')

CheckFn = Callable[[str, FetchClient], Optional[MisconfigFinding]]


@dataclass(frozen=True)
class MisconfigCheck:
    id: str
    name: str
    severity: str
    description: str
    check: CheckFn

    def finding(self, evidence: str, recommendation: str, **overrides) -> MisconfigFinding:
        values = dict(id=self.id, name=self.name, severity=self.severity,
                      description=self.description, evidence=evidence,
                      recommendation=recommendation)
        values.update(overrides)
        return MisconfigFinding(**values)


_CHECKS: List[MisconfigCheck] = []


def misconfig_check(id: str, name: str, severity: str, description: str):
    """Register the decorated function as a check, in declaration order."""
    def decorator(fn: Callable[[MisconfigCheck, str, FetchClient], Optional[MisconfigFinding]]):
        def run(base_url: str, client: FetchClient) -> Optional[MisconfigFinding]:
            return fn(descriptor, base_url, client)

        descriptor = MisconfigCheck(id, name, severity, description, run)
        _CHECKS.append(descriptor)
        return fn
    return decorator


# ============ Content heuristics ============

WP_CONFIG_MARKERS = ('DB_NAME', 'DB_USER', 'DB_PASSWORD', 'DB_HOST', "define('DB_",
                     'define("DB_', '$table_prefix', 'ABSPATH')
DEBUG_PATTERNS = (
    re.compile(r'Fatal error:', re.I),
    re.compile(r'Warning:', re.I),
    re.compile(r'Notice:', re.I),
    re.compile(r'Parse error:', re.I),
    re.compile(r'Deprecated:', re.I),
    re.compile(r'Strict Standards:', re.I),
    re.compile(r'on line \d+', re.I),
    re.compile(r'Stack trace:', re.I),
    re.compile(r'WP_DEBUG'),
    re.compile(r'xdebug', re.I),
)
LISTING_MARKERS = ('Index of', 'Parent Directory', '[DIR]', 'Directory listing')
LISTING_LINK_RE = re.compile(r'<a href="[^"]*/">[^<]+/</a>', re.I)
HTACCESS_MARKERS = ('RewriteRule', 'RewriteEngine', 'AuthType', 'Order', '<Files')
README_VERSION_RE = re.compile(r'Version\s+([\d.]+)', re.I)
AUTHOR_RE = re.compile(r'/author/([^/]+)')
XMLRPC_LIST_METHODS = (
    '<?xml version="1.0"?>\n'
    '<methodCall>\n'
    '  <methodName>system.listMethods</methodName>\n'
    '  <params></params>\n'
    '</methodCall>'
)


def contains_wp_config(text: str) -> bool:
    return any(marker in text for marker in WP_CONFIG_MARKERS)


def is_directory_listing(html: str) -> bool:
    return any(marker in html for marker in LISTING_MARKERS) or bool(LISTING_LINK_RE.search(html))


# ============ Checks ============

@misconfig_check('wp-config-exposed', 'wp-config.php Exposed', 'critical',
                 'WordPress configuration file is publicly accessible, potentially exposing database credentials')
def _wp_config_exposed(check, base_url, client):
    files = ('/wp-config.php', '/wp-config.php.bak', '/wp-config.php~', '/wp-config.php.old',
             '/wp-config.php.save', '/wp-config.php.swp', '/wp-config.php.orig',
             '/wp-config.bak', '/wp-config.txt')
    for path in files:
        text = client.get_text(f'{base_url}{path}')
        if text and contains_wp_config(text):
            return check.finding(
                f'{path} returned HTTP 200 with database credentials',
                'Remove backup files and ensure wp-config.php is not directly accessible.',
            )
    return None


@misconfig_check('debug-mode-enabled', 'Debug Mode Enabled', 'high',
                 'WP_DEBUG appears to be enabled, exposing PHP errors and sensitive information')
def _debug_mode(check, base_url, client):
    html = client.get_text(base_url)
    if not html:
        return None
    hits = [m.group(0) for m in (p.search(html) for p in DEBUG_PATTERNS) if m]
    if not hits:
        return None
    return check.finding(
        f'Found debug indicators: {", ".join(hits[:3])}',
        'Set WP_DEBUG to false in production; log to a file outside the web root instead.',
    )


@misconfig_check('debug-log-exposed', 'Debug Log Exposed', 'high',
                 'WordPress debug log file is publicly accessible')
def _debug_log(check, base_url, client):
    for path in ('/wp-content/debug.log', '/debug.log', '/wp-content/uploads/debug.log'):
        text = client.get_text(f'{base_url}{path}')
        if text and '[' in text and any(w in text for w in ('PHP', 'WordPress', 'error', 'Notice', 'Warning')):
            return check.finding(
                f'{path} is publicly accessible',
                'Move debug.log outside the web root or block access to it.',
            )
    return None


@misconfig_check('htaccess-exposed', '.htaccess Exposed', 'high',
                 '.htaccess file is publicly accessible')
def _htaccess(check, base_url, client):
    for path in ('/.htaccess', '/wp-admin/.htaccess', '/wp-content/.htaccess'):
        text = client.get_text(f'{base_url}{path}')
        if text and any(marker in text for marker in HTACCESS_MARKERS):
            return check.finding(f'{path} is publicly accessible',
                                 'Configure the server to deny access to .htaccess files.')
    return None


@misconfig_check('directory-listing', 'Directory Listing Enabled', 'medium',
                 'Server directory listing is enabled, exposing file structure')
def _directory_listing(check, base_url, client):
    dirs = ('/wp-content/uploads/', '/wp-content/plugins/', '/wp-content/themes/',
            '/wp-includes/', '/wp-content/upgrade/', '/wp-content/cache/')
    exposed = []
    for path in dirs:
        html = client.get_text(f'{base_url}{path}')
        if html and is_directory_listing(html):
            exposed.append(path)
    if not exposed:
        return None
    return check.finding(f'Directory listing enabled: {", ".join(exposed)}',
                         'Add "Options -Indexes" to .htaccess or disable nginx autoindex.')


@misconfig_check('xmlrpc-enabled', 'XML-RPC Enabled', 'medium',
                 'XML-RPC is enabled and accessible, potentially allowing brute-force attacks')
def _xmlrpc(check, base_url, client):
    url = f'{base_url}/xmlrpc.php'
    head = client.head(url)
    if head is None or head.status == 404:
        return None
    resp = client.post(url, data=XMLRPC_LIST_METHODS, headers={'Content-Type': 'text/xml'})
    if resp is None or not resp.ok:
        return None
    if 'methodResponse' not in resp.text or 'wp.' not in resp.text:
        return None
    count = resp.text.count('<string>wp.')
    return check.finding(
        f'XML-RPC responds to system.listMethods ({count} wp.* methods available)',
        'Disable XML-RPC if it is not needed or block xmlrpc.php at the server.',
    )


@misconfig_check('readme-exposed', 'readme.html Exposed', 'low',
                 'WordPress readme.html is accessible, revealing version information')
def _readme(check, base_url, client):
    html = client.get_text(f'{base_url}/readme.html')
    if not html:
        return None
    m = README_VERSION_RE.search(html)
    if 'WordPress' not in html and not m:
        return None
    evidence = f'Exposes WordPress version: {m.group(1)}' if m else 'readme.html accessible'
    return check.finding(evidence, 'Delete readme.html or block access to it.')


@misconfig_check('license-exposed', 'license.txt Exposed', 'info',
                 'WordPress license.txt is accessible, confirming WordPress installation')
def _license(check, base_url, client):
    text = client.get_text(f'{base_url}/license.txt')
    if text and ('WordPress' in text or 'GNU General Public License' in text):
        return check.finding('license.txt accessible, confirms WordPress installation',
                             'Delete license.txt or block access to it.')
    return None


@misconfig_check('install-php-accessible', 'install.php Accessible', 'high',
                 'WordPress installation script is accessible, potential security risk')
def _install_php(check, base_url, client):
    html = client.get_text(f'{base_url}/wp-admin/install.php')
    if not html:
        return None
    if 'Welcome' in html and 'WordPress' in html and 'install' in html:
        return check.finding('install.php returns installation page',
                             'Finish the installation or delete wp-admin/install.php.')
    if 'already installed' in html:
        return check.finding(
            'install.php accessible but shows "already installed" message',
            'Consider deleting wp-admin/install.php or blocking access.',
            name='install.php Accessible (Low Risk)',
            severity='info',
            description='WordPress installation script is accessible but WordPress is already installed',
        )
    return None


@misconfig_check('user-enumeration', 'User Enumeration Possible', 'medium',
                 'User enumeration is possible via author archives or REST API')
def _user_enumeration(check, base_url, client):
    notes = []
    resp = client.get(f'{base_url}/?author=1', allow_redirects=False)
    if resp is not None and resp.status in (301, 302):
        location = resp.header('Location')
        if '/author/' in location:
            m = AUTHOR_RE.search(location)
            notes.append('Author redirect reveals username' + (f': {m.group(1)}' if m else ''))

    text = client.get_text(f'{base_url}/wp-json/wp/v2/users')
    if text:
        try:
            users = json.loads(text)
        except ValueError:
            users = None
        if isinstance(users, list) and users:
            names = [u.get('slug') for u in users[:3] if isinstance(u, dict) and u.get('slug')]
            notes.append(f'REST API exposes {len(users)} user(s)' + (f': {", ".join(names)}' if names else ''))
    if not notes:
        return None
    return check.finding('; '.join(notes),
                         'Block author archive enumeration and restrict the REST users endpoint.')


@misconfig_check('wp-includes-exposed', 'wp-includes Directory Exposed', 'low',
                 'Direct access to wp-includes files reveals WordPress internals')
def _wp_includes(check, base_url, client):
    for path in ('/wp-includes/version.php', '/wp-includes/wp-db.php'):
        text = client.get_text(f'{base_url}{path}')
        if text and ('<?php' in text or '$wp_version' in text):
            return check.finding(
                f'{path} exposes PHP source code',
                'Ensure PHP executes .php files instead of serving them as text.',
                severity='critical',
                description='PHP source code is exposed due to misconfigured server',
            )
    return None


MISCONFIG_CHECKS: Sequence[MisconfigCheck] = tuple(_CHECKS)


# ============ Runner ============

def run_misconfig_checks(base_url: str, client: FetchClient,
                         checks: Sequence[MisconfigCheck] = MISCONFIG_CHECKS) -> List[MisconfigFinding]:
    base_url = base_url.rstrip('/')
    findings: List[Optional[MisconfigFinding]] = [None] * len(checks)
    if not checks:
        return []
    with concurrent.futures.ThreadPoolExecutor(max_workers=len(checks), thread_name_prefix='wpvet-audit') as executor:
        future_to_idx = {executor.submit(c.check, base_url, client): i for i, c in enumerate(checks)}
        for future in concurrent.futures.as_completed(future_to_idx):
            idx = future_to_idx[future]
            try:
                findings[idx] = future.result()
            except Exception as e:
                logger.debug('check %s failed: %s', checks[idx].id, e)
    return sort_findings([f for f in findings if f is not None])


def normalize_target(url: str) -> str:
    url = url.strip()
    if not url.startswith(('http://', 'https://')):
        url = f'https://{url}'
    return url.rstrip('/')


def run_audit(url: str, options: Optional[ScanOptions] = None, *,
              client: Optional[FetchClient] = None) -> AuditResult:
    """Audit ``url`` for misconfigurations and every known plugin exposure.

    Errors are reported in the result, not raised.
    """
    from .plugin_vulns import run_all_plugin_vuln_checks

    result = AuditResult(target=url)
    own_client = client is None
    client = client or FetchClient(options or ScanOptions.from_env())
    base_url = normalize_target(url)
    try:
        result.misconfigs = run_misconfig_checks(base_url, client)
        result.plugin_vulns = run_all_plugin_vuln_checks(base_url, client)
    except Exception as e:
        logger.warning('audit failed for %s: %s', url, e)
        result.errors.append(f'Audit failed: {e}')
    finally:
        if own_client:
            client.close()
    logger.info('audit target=%s findings=%d plugin_findings=%d', url, len(result.misconfigs),
                len(result.plugin_vulns))
    return result
