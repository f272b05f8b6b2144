#!/usr/bin/env python
"""Compute fingerprint digests of core scripts from unpacked WordPress releases.

Usage:
  python scripts/hash_core_js.py /path/to/wordpress-6.4.2 [/path/to/wordpress-6.4.3 ...]

Each argument is the root of one unpacked release (the directory holding
``wp-includes``). The release version is read from ``wp-includes/version.php``.
Output groups identical digests so the result can be pasted into
``WP_CORE_FINGERPRINTS``.
"""
import argparse
import json
import os
import re
import sys
from typing import Dict, List, Tuple

# Allow running without installation
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from wpvet.versioning.fingerprint import content_hash, normalize_js_content  # noqa: E402
from wpvet.versioning.patterns import CORE_JS_PATHS  # noqa: E402

VERSION_RE = re.compile(r"\$wp_version\s*=\s*'([^']+)'")


def release_version(root: str) -> str:
    with open(os.path.join(root, 'wp-includes', 'version.php'), 'r', encoding='utf-8') as fh:
        m = VERSION_RE.search(fh.read())
    if not m:
        raise ValueError(f'no $wp_version in {root}')
    return m.group(1)


def hash_release(root: str) -> Dict[str, str]:
    digests = {}
    for path in CORE_JS_PATHS:
        full = os.path.join(root, path.lstrip('/'))
        if not os.path.isfile(full):
            continue
        with open(full, 'r', encoding='utf-8', errors='replace') as fh:
            digests[path] = content_hash(normalize_js_content(fh.read()))
    return digests


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument('roots', nargs='+', help='unpacked release directories')
    ap.add_argument('--json', action='store_true', help='print JSON instead of Python literals')
    args = ap.parse_args()

    grouped: Dict[Tuple[str, str], List[str]] = {}
    for root in args.roots:
        try:
            version = release_version(root)
        except (OSError, ValueError) as e:
            print(f'skip {root}: {e}', file=sys.stderr)
            continue
        for path, digest in hash_release(root).items():
            grouped.setdefault((path, digest), []).append(version)

    entries = [{'path': p, 'hash': h, 'versions': v} for (p, h), v in sorted(grouped.items())]
    if args.json:
        print(json.dumps(entries, indent=2))
        return
    for e in entries:
        print(f"    JsFingerprint(\n        '{e['path']}',\n        '{e['hash']}',\n        {tuple(e['versions'])!r},\n    ),")


if __name__ == '__main__':
    main()
