"""Inventory over a remote shell.

Runs ``wp core version``, ``wp plugin list`` and ``wp theme list`` on the
target host through ``ssh`` and interprets their output. The runner is
injectable; the default one runs an allow-listed ``ssh`` binary with no local shell.
"""

import logging
import re
import shlex
import subprocess  # nosec
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Mapping, Optional
from urllib.parse import parse_qs

from ..config import ScanOptions
from ..exceptions import InvalidSshUrlError, RemoteCommandError
from ..models import DetectionResult
from .inventory import INVENTORY_SOURCE, inventory_from_outputs, inventory_to_result

logger = logging.getLogger('wpvet.ssh')

DEFAULT_WP_PATH = '/var/www/html'
DEFAULT_WP_CLI = 'wp'

SSH_URL_RE = re.compile(r'^ssh://(?:([^@/?]+)@)?([^:/?]+)(?::(\d+))?(/[^?]*)?(?:\?(.*))?$')


@dataclass(frozen=True)
class SshTarget:
    host: str
    user: Optional[str] = None
    port: Optional[int] = None
    key_path: Optional[str] = None
    wp_path: str = DEFAULT_WP_PATH
    wp_cli: str = DEFAULT_WP_CLI

    @property
    def destination(self) -> str:
        return f'{self.user}@{self.host}' if self.user else self.host

    @property
    def display_url(self) -> str:
        port = f':{self.port}' if self.port else ''
        return f'ssh://{self.destination}{port}{self.wp_path}'


def parse_ssh_url(url: str, *, key_path: Optional[str] = None,
                  wp_cli: Optional[str] = None) -> SshTarget:
    """Parse ``ssh://[user@]host[:port][/path][?wp-cli=..&path=..]``.

    Query parameters override the path part; explicit keyword arguments
    override both.
    """
    m = SSH_URL_RE.match(url.strip()) if url else None
    if not m:
        raise InvalidSshUrlError(url)
    user, host, port, path, query = m.groups()
    params = parse_qs(query or '')
    if 'path' in params:
        path = params['path'][0]
    port_num = int(port) if port else None
    if port_num is not None and not 0 < port_num < 65536:
        raise InvalidSshUrlError(url)
    return SshTarget(
        host=host,
        user=user,
        port=port_num,
        key_path=key_path,
        wp_path=path if path and path != '/' else DEFAULT_WP_PATH,
        wp_cli=wp_cli or params.get('wp-cli', [DEFAULT_WP_CLI])[0],
    )


def quote_arg(value: str) -> str:
    """Single-quote ``value`` for a POSIX shell when it needs it."""
    return shlex.quote(value)


def quote_command(command: str) -> str:
    """Quote each word of a possibly multi-word command such as ``php wp-cli.phar``."""
    return ' '.join(quote_arg(word) for word in shlex.split(command))


def wp_command(target: SshTarget, subcommand: str) -> str:
    try:
        wp_cli = quote_command(target.wp_cli)
    except ValueError as e:
        raise RemoteCommandError(subcommand, f'cannot parse wp-cli command {target.wp_cli!r}: {e}')
    return f'cd {quote_arg(target.wp_path)} && {wp_cli} {subcommand} 2>/dev/null'


CORE_VERSION_CMD = 'core version'
PLUGIN_LIST_CMD = 'plugin list --format=json'
THEME_LIST_CMD = 'theme list --format=json'

Runner = Callable[[SshTarget, str, int], str]


ALLOWED_SSH_EXECUTABLES = {'ssh', 'ssh.exe'}


def is_allowed_executable(executable: str) -> bool:
    if not executable:
        return False
    return Path(executable).name.lower() in ALLOWED_SSH_EXECUTABLES


class SshRunner:
    """Runs one command on the target and returns its stdout.

    Only an ``ssh`` binary may be configured as the executable, and no
    shell is involved on the local side. Non-zero exit, spawn failure or
    timeout raise :class:`RemoteCommandError`.
    """

    def __init__(self, executable: str = 'ssh'):
        if not is_allowed_executable(executable):
            raise ValueError(f'executable {executable!r} is not permitted by allow list')
        self.executable = executable

    def build_args(self, target: SshTarget, command: str, timeout_ms: int) -> List[str]:
        args = [
            self.executable,
            '-o', 'BatchMode=yes',
            '-o', 'StrictHostKeyChecking=accept-new',
            '-o', f'ConnectTimeout={max(1, timeout_ms // 1000)}',
        ]
        if target.port:
            args += ['-p', str(target.port)]
        if target.key_path:
            args += ['-i', target.key_path]
        args += [target.destination, command]
        return args

    def __call__(self, target: SshTarget, command: str, timeout_ms: int) -> str:
        args = self.build_args(target, command, timeout_ms)
        logger.debug('ssh exec destination=%s timeout_ms=%d', target.destination, timeout_ms)
        try:
            proc = subprocess.run(  # nosec
                args, capture_output=True, text=True, timeout=timeout_ms / 1000.0,
            )
        except subprocess.TimeoutExpired:
            raise RemoteCommandError(command, f'timed out after {timeout_ms} ms')
        except OSError as e:
            raise RemoteCommandError(command, str(e))
        if proc.returncode != 0:
            reason = (proc.stderr or proc.stdout or '').strip()
            raise RemoteCommandError(command, reason, exit_code=proc.returncode)
        return proc.stdout or ''


def scan_via_ssh(
    target: SshTarget,
    options: Optional[ScanOptions] = None,
    *,
    runner: Optional[Runner] = None,
    vendor_overrides: Optional[Mapping[str, str]] = None,
) -> DetectionResult:
    """Inventory a host over ssh; command failures land in ``result.errors``."""
    options = options or ScanOptions.from_env()
    runner = runner or SshRunner()
    try:
        core = runner(target, wp_command(target, CORE_VERSION_CMD), options.timeout_ms).strip()
        plugins = runner(target, wp_command(target, PLUGIN_LIST_CMD), options.timeout_ms)
        themes = runner(target, wp_command(target, THEME_LIST_CMD), options.timeout_ms)
    except RemoteCommandError as e:
        logger.warning('ssh scan of %s failed: %s', target.display_url, e)
        result = DetectionResult(target=target.display_url, source=INVENTORY_SOURCE)
        result.errors.append(e.message)
        return result
    inv = inventory_from_outputs(core, plugins, themes)
    logger.info('ssh scan target=%s plugins=%d themes=%d', target.display_url,
                len(inv.plugins), len(inv.themes))
    return inventory_to_result(inv, target.display_url, vendor_overrides)
