import json
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path

from wpvet.versioning.fingerprint import content_hash, normalize_js_content

SCRIPTS_DIR = Path(__file__).resolve().parent.parent / 'scripts'
HASH_CORE_JS = SCRIPTS_DIR / 'hash_core_js.py'

PYTHON = sys.executable

EMBED_JS = '!function(){"use strict";}();\r\n'


def run(cmd):
    result = subprocess.run(cmd, text=True, capture_output=True)
    if result.returncode != 0:
        raise AssertionError(f"Command failed {cmd}\nSTDOUT:\n{result.stdout}\nSTDERR:\n{result.stderr}")
    return result


def make_release(root: Path, version: str, embed: str = EMBED_JS) -> Path:
    (root / 'wp-includes' / 'js').mkdir(parents=True)
    (root / 'wp-includes' / 'version.php').write_text(f"<?php\n$wp_version = '{version}';\n")
    (root / 'wp-includes' / 'js' / 'wp-embed.min.js').write_text(embed, newline='')
    return root


class TestHashCoreJs(unittest.TestCase):
    def test_identical_files_group_versions(self):
        with tempfile.TemporaryDirectory() as td:
            a = make_release(Path(td) / 'a', '6.4.1')
            b = make_release(Path(td) / 'b', '6.4.2')
            c = make_release(Path(td) / 'c', '6.5', embed='changed();')
            out = run([PYTHON, str(HASH_CORE_JS), str(a), str(b), str(c), '--json']).stdout
        entries = json.loads(out)
        by_hash = {e['hash']: e for e in entries}
        shared = by_hash[content_hash(normalize_js_content(EMBED_JS))]
        self.assertEqual(shared['path'], '/wp-includes/js/wp-embed.min.js')
        self.assertEqual(shared['versions'], ['6.4.1', '6.4.2'])
        self.assertEqual(len(entries), 2)

    def test_release_without_version_is_skipped(self):
        with tempfile.TemporaryDirectory() as td:
            bad = Path(td) / 'bad'
            bad.mkdir()
            result = run([PYTHON, str(HASH_CORE_JS), str(bad), '--json'])
        self.assertEqual(json.loads(result.stdout), [])
        self.assertIn('skip', result.stderr)

    def test_python_literal_output(self):
        with tempfile.TemporaryDirectory() as td:
            a = make_release(Path(td) / 'a', '6.4.2')
            out = run([PYTHON, str(HASH_CORE_JS), str(a)]).stdout
        self.assertIn('JsFingerprint(', out)
        self.assertIn("('6.4.2',)", out)
