import json

import pytest

from wpvet.exceptions import InvalidInventoryError
from wpvet.scan.inventory import (
    inventory_from_outputs,
    parse_inventory,
    parse_inventory_result,
    parse_plugin_list,
    parse_theme_list,
)


def test_bare_plugin_array():
    result = parse_inventory_result('[{"name":"x","version":"1.0","status":"active"}]')
    assert result.core is None
    assert result.errors == []
    assert len(result.plugins) == 1
    plugin = result.plugins[0]
    assert (plugin.slug, plugin.name, plugin.version) == ('x', 'x', '1.0')
    assert plugin.confidence == 100
    assert plugin.source == 'wp-cli'
    assert plugin.status == 'active'
    assert plugin.cpe == 'cpe:2.3:a:x:x:1.0:*:*:*:*:wordpress:*:*'


def test_object_with_core_site_and_themes():
    doc = {
        'core': {'version': '6.4.2', 'site_url': 'https://ex.com', 'multisite': False},
        'plugins': [{'name': 'contact-form-7', 'title': 'Contact Form 7', 'version': '5.8.1',
                     'update': 'available', 'auto_update': 'on'}],
        'themes': [{'name': 'astra', 'stylesheet': 'astra-child', 'version': '4.6.4', 'status': 'active'}],
    }
    result = parse_inventory_result(json.dumps(doc), target='site-a')
    assert result.target == 'site-a'
    assert result.core.version == '6.4.2'
    assert result.core.cpe == 'cpe:2.3:a:wordpress:wordpress:6.4.2:*:*:*:*:*:*:*'
    assert result.site.to_dict() == {'site_url': 'https://ex.com', 'multisite': False}
    plugin = result.plugins[0]
    assert plugin.name == 'Contact Form 7'
    assert plugin.update == 'available'
    assert plugin.auto_update == 'on'
    assert plugin.cpe.startswith('cpe:2.3:a:rocklobster:contact-form-7:5.8.1:')
    assert result.themes[0].slug == 'astra-child'


def test_core_as_string():
    inv = parse_inventory('{"core": "6.5"}')
    assert inv.core.version == '6.5'


def test_theme_array_detected_by_stylesheet():
    inv = parse_inventory('[{"name":"Astra","stylesheet":"astra","version":"4.6.4"}]')
    assert inv.plugins == []
    assert [t.slug for t in inv.themes] == ['astra']


def test_missing_fields_default():
    records = parse_plugin_list([{'slug': 'akismet'}])
    assert records[0].name == 'akismet'
    assert records[0].version == 'unknown'
    assert records[0].status == 'inactive'
    assert records[0].update == 'none'
    assert records[0].auto_update == 'off'


def test_ndjson_collects_line_errors():
    text = '\n'.join([
        '{"core": {"version": "6.4.2"}}',
        'not json',
        '[{"name": "akismet", "version": "5.3"}]',
        '',
        '"just a string"',
        '[{"name": "astra", "stylesheet": "astra", "version": "4.6.4"}]',
    ])
    inv = parse_inventory(text)
    assert inv.core.version == '6.4.2'
    assert [p.slug for p in inv.plugins] == ['akismet']
    assert [t.slug for t in inv.themes] == ['astra']
    assert len(inv.errors) == 2
    assert inv.errors[0].startswith('Line 2: invalid JSON')
    assert inv.errors[1] == 'Line 5: Invalid WP-CLI input format'


def test_ndjson_errors_surface_on_result():
    result = parse_inventory_result('[{"name":"a","version":"1"}]\n{broken')
    assert [p.slug for p in result.plugins] == ['a']
    assert result.errors[0].startswith('Line 2:')


@pytest.mark.parametrize('text,reason', [
    ('', 'Empty input'),
    ('   \n  ', 'Empty input'),
    ('42', 'Invalid WP-CLI input format'),
    ('{"plugins": {"a": 1}}', 'Expected array for plugin list'),
    ('[{"name": "a"}, "b"]', 'Invalid plugin entry at index 1'),
    ('nope\nstill nope', 'no parseable JSON lines'),
])
def test_structural_errors_raise(text, reason):
    with pytest.raises(InvalidInventoryError) as info:
        parse_inventory(text)
    assert info.value.details['reason'] == reason
    assert info.value.status_code == 400


def test_theme_list_requires_objects():
    with pytest.raises(InvalidInventoryError):
        parse_theme_list([1])


def test_inventory_from_outputs():
    inv = inventory_from_outputs('6.4.2\n', '[{"name":"akismet","version":"5.3"}]', 'garbage')
    assert inv.core.version == '6.4.2'
    assert [p.slug for p in inv.plugins] == ['akismet']
    assert inv.themes == []
    assert len(inv.errors) == 1
    assert inv.errors[0].startswith('Failed to parse theme list')


def test_inventory_from_empty_outputs():
    inv = inventory_from_outputs('', None, '  ')
    assert inv.core is None
    assert inv.errors == []


def test_version_prefix_is_trimmed():
    inv = parse_inventory('[{"name": "a", "version": " v1.2 "}, {"name": "b", "version": ""}]')
    assert [p.version for p in inv.plugins] == ['1.2', 'unknown']
