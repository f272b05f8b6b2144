"""``wpvet`` command line.

Usage:
  wpvet detect <url> [--audit]        remote inference over HTTP
  wpvet detect --stdin                parse inventory JSON from stdin
  wpvet detect --targets FILE         one remote scan per line of FILE
  wpvet audit <url>                   misconfiguration and plugin checks
  wpvet scan ssh://user@host/path     inventory over ssh
  wpvet init                          write ~/.wpvet/config.json

Exit codes: 0 components or findings, 1 nothing detected, 2 error.
"""

import argparse
import logging
import os
import sys
from typing import List, Optional, Sequence, Tuple

from .config import VERSION, ScanOptions, init_config, load_config
from .exceptions import WpVetException
from .logging_utils import configure_logging
from .output import FORMATS, format_audit, format_result
from .scan.audit import run_audit
from .scan.inventory import parse_inventory_result
from .scan.remote import scan_remote
from .scan.ssh import parse_ssh_url, scan_via_ssh

logger = logging.getLogger('wpvet.cli')

EXIT_SUCCESS = 0
EXIT_NOT_DETECTED = 1
EXIT_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('-f', '--format', choices=FORMATS, default='table')
    common.add_argument('-t', '--timeout', type=int, help='request timeout in ms (default 30000)')
    common.add_argument('--concurrency', type=int, help='max concurrent requests (default 5)')
    common.add_argument('--retry', type=int, help='retries for failed requests (default 2)')
    common.add_argument('--user-agent', help='custom User-Agent header')
    common.add_argument('--config', help='config file (default ~/.wpvet/config.json)')
    common.add_argument('--no-fingerprint', action='store_true', help='skip script fingerprinting')
    common.add_argument('-v', '--verbose', action='store_true')

    ap = argparse.ArgumentParser(prog='wpvet', description='WordPress core/plugin/theme detection with CPE output')
    ap.add_argument('--version', action='version', version=f'wpvet v{VERSION}')
    sub = ap.add_subparsers(dest='command')

    detect = sub.add_parser('detect', parents=[common], help='scan a site remotely or parse inventory JSON')
    detect.add_argument('url', nargs='?')
    detect.add_argument('--stdin', action='store_true', help='read inventory JSON from stdin')
    detect.add_argument('--targets', help='file with one URL per line')
    detect.add_argument('--audit', action='store_true', help='also run misconfiguration checks and checks for detected plugins')

    audit = sub.add_parser('audit', parents=[common], help='misconfiguration checks plus every plugin check')
    audit.add_argument('url')

    scan = sub.add_parser('scan', parents=[common], help='inventory over ssh')
    scan.add_argument('ssh_url')
    scan.add_argument('-k', '--ssh-key', help='ssh private key path')
    scan.add_argument('--wp-cli', help='wp-cli binary on the remote host (default wp)')

    sub.add_parser('init', help='write a default config file')
    return ap


def read_targets(path: str) -> List[str]:
    with open(path, 'r', encoding='utf-8') as fh:
        return [line.strip() for line in fh if line.strip() and not line.strip().startswith('#')]


def _options(args, config) -> ScanOptions:
    return ScanOptions.from_env(config).with_overrides(
        timeout_ms=args.timeout,
        concurrency=args.concurrency,
        retry=args.retry,
        user_agent=args.user_agent,
        fingerprint=False if args.no_fingerprint else None,
    )


def exit_code(outcomes: Sequence[Tuple[bool, bool]]) -> int:
    """``outcomes`` holds ``(found_something, had_errors)`` per target."""
    found = any(f for f, _ in outcomes)
    errored = any(e for _, e in outcomes)
    if errored and not found:
        return EXIT_ERROR
    if not found:
        return EXIT_NOT_DETECTED
    return EXIT_SUCCESS


def _run_detect(args, config, options) -> List[Tuple[str, bool, bool]]:
    if args.stdin:
        result = parse_inventory_result(sys.stdin.read(), 'stdin', config.plugin_vendors)
        return [(format_result(result, args.format), result.has_components, bool(result.errors))]
    if args.targets:
        urls = read_targets(args.targets)
        if not urls:
            raise WpVetException('No valid URLs in targets file')
    elif args.url:
        urls = [args.url]
    else:
        raise WpVetException('URL required for remote scan (usage: wpvet detect <url>)')
    outputs = []
    for url in urls:
        logger.info('scanning %s', url)
        result = scan_remote(url, options, config, audit=args.audit)
        outputs.append((format_result(result, args.format), result.has_components, bool(result.errors)))
    return outputs


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return EXIT_SUCCESS
    configure_logging('DEBUG' if getattr(args, 'verbose', False) else os.environ.get('WPVET_LOG_LEVEL', 'WARNING'))

    if args.command == 'init':
        try:
            path = init_config()
        except OSError as e:
            print(f'Error initializing config: {e}', file=sys.stderr)
            return EXIT_ERROR
        print(f'Config file initialized at {path}')
        return EXIT_SUCCESS

    config = load_config(args.config)
    try:
        options = _options(args, config)
        if args.command == 'detect':
            outputs = _run_detect(args, config, options)
        elif args.command == 'audit':
            result = run_audit(args.url, options)
            outputs = [(format_audit(result, args.format), result.has_findings, bool(result.errors))]
        else:
            target = parse_ssh_url(args.ssh_url, key_path=args.ssh_key, wp_cli=args.wp_cli)
            result = scan_via_ssh(target, options, vendor_overrides=config.plugin_vendors)
            outputs = [(format_result(result, args.format), result.has_components, bool(result.errors))]
    except (WpVetException, OSError) as e:
        print(f'Error: {e}', file=sys.stderr)
        return EXIT_ERROR

    for text, _, _ in outputs:
        print(text)
        if len(outputs) > 1:
            print()
    return exit_code([(found, errored) for _, found, errored in outputs])


if __name__ == '__main__':
    sys.exit(main())
