import json
import unittest
from unittest.mock import patch

import pytest

from wpvet.config import (
    DEFAULT_USER_AGENT,
    ScanOptions,
    WpVetConfig,
    init_config,
    load_config,
    resolve_config_path,
)
from wpvet.exceptions import ConfigurationError
from wpvet.versioning.patterns import BUILTIN_PLUGINS, BUILTIN_THEMES


class TestScanOptions(unittest.TestCase):
    def test_defaults(self):
        opts = ScanOptions()
        self.assertEqual((opts.timeout_ms, opts.concurrency, opts.retry, opts.retry_delay_ms),
                         (30000, 5, 2, 1000))
        self.assertEqual(opts.user_agent, DEFAULT_USER_AGENT)
        self.assertEqual(opts.timeout_seconds, 30.0)
        self.assertTrue(opts.fingerprint)

    def test_clamping(self):
        opts = ScanOptions(concurrency=0, retry=-1, retry_delay_ms=-5)
        self.assertEqual((opts.concurrency, opts.retry, opts.retry_delay_ms), (1, 0, 0))

    def test_non_positive_timeout(self):
        with self.assertRaises(ConfigurationError):
            ScanOptions(timeout_ms=0)

    def test_with_overrides_ignores_none(self):
        opts = ScanOptions().with_overrides(retry=None, concurrency=3)
        self.assertEqual((opts.retry, opts.concurrency), (2, 3))

    def test_from_env(self):
        env = {'WPVET_TIMEOUT_MS': '5000', 'WPVET_CONCURRENCY': 'lots', 'WPVET_FINGERPRINT': 'false'}
        with patch.dict('os.environ', env, clear=False):
            opts = ScanOptions.from_env(WpVetConfig(concurrency=8, user_agent='Custom/1'))
        self.assertEqual(opts.timeout_ms, 5000)
        self.assertEqual(opts.concurrency, 8)
        self.assertEqual(opts.user_agent, 'Custom/1')
        self.assertFalse(opts.fingerprint)


class TestWpVetConfig(unittest.TestCase):
    def test_defaults_use_builtin_lists(self):
        cfg = WpVetConfig()
        self.assertEqual(cfg.plugins_to_scan(), list(BUILTIN_PLUGINS))
        self.assertEqual(cfg.themes_to_scan(), list(BUILTIN_THEMES))

    def test_additional_are_appended_once(self):
        cfg = WpVetConfig.from_dict({'additionalPlugins': ['my-plugin', 'akismet']})
        plugins = cfg.plugins_to_scan()
        self.assertEqual(plugins[-1], 'my-plugin')
        self.assertEqual(plugins.count('akismet'), 1)

    def test_custom_replaces_builtin(self):
        cfg = WpVetConfig.from_dict({'customThemes': ['mytheme'], 'additionalThemes': ['ignored']})
        self.assertEqual(cfg.themes_to_scan(), ['mytheme'])

    def test_from_dict_fields(self):
        cfg = WpVetConfig.from_dict({'pluginVendors': {'my-plugin': 'acme'}, 'timeout': '10000',
                                     'userAgent': 'UA'})
        self.assertEqual(cfg.plugin_vendors, {'my-plugin': 'acme'})
        self.assertEqual(cfg.timeout, 10000)
        self.assertEqual(cfg.user_agent, 'UA')

    def test_from_dict_rejects_bad_shapes(self):
        for data in ([], {'additionalPlugins': 'akismet'}, {'additionalThemes': {}}, {'pluginVendors': []},
                     {'timeout': 'soon'}):
            with self.assertRaises(ConfigurationError, msg=repr(data)):
                WpVetConfig.from_dict(data)

    def test_from_dict_accepts_missing_or_null_vendors(self):
        self.assertEqual(dict(WpVetConfig.from_dict({'pluginVendors': None}).plugin_vendors), {})
        self.assertEqual(dict(WpVetConfig.from_dict({}).plugin_vendors), {})
        for bad in ([], '', 0, ['a']):
            with self.assertRaises(ConfigurationError, msg=repr(bad)):
                WpVetConfig.from_dict({'pluginVendors': bad})


def test_resolve_config_path_order(monkeypatch, tmp_path):
    monkeypatch.setenv('WPVET_CONFIG', str(tmp_path / 'env.json'))
    assert resolve_config_path(str(tmp_path / 'explicit.json')) == tmp_path / 'explicit.json'
    assert resolve_config_path() == tmp_path / 'env.json'
    monkeypatch.delenv('WPVET_CONFIG')
    assert resolve_config_path().name == 'config.json'
    assert resolve_config_path().parent.name == '.wpvet'


def test_load_config(tmp_path):
    path = tmp_path / 'config.json'
    path.write_text(json.dumps({'customPlugins': ['a']}), encoding='utf-8')
    assert load_config(str(path)).plugins_to_scan() == ['a']


@pytest.mark.parametrize('content', ['{not json', '[]', '{"customPlugins": "a"}'])
def test_broken_config_falls_back_to_empty(tmp_path, content):
    path = tmp_path / 'config.json'
    path.write_text(content, encoding='utf-8')
    assert load_config(str(path)) == WpVetConfig()


def test_missing_config(tmp_path):
    assert load_config(str(tmp_path / 'nope.json')) == WpVetConfig()


def test_init_config_never_overwrites(tmp_path):
    path = tmp_path / 'sub' / 'config.json'
    assert init_config(str(path)) == path
    path.write_text('{"customPlugins": ["kept"]}', encoding='utf-8')
    init_config(str(path))
    assert load_config(str(path)).plugins_to_scan() == ['kept']
