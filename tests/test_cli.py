import io
import json

import pytest

from wpvet import cli
from wpvet.models import AuditResult, DetectedComponent, DetectionResult, MisconfigFinding


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch, tmp_path):
    monkeypatch.setenv('WPVET_CONFIG', str(tmp_path / 'config.json'))


def _stdin(monkeypatch, text):
    monkeypatch.setattr('sys.stdin', io.StringIO(text))


@pytest.mark.parametrize('outcomes,code', [
    ([(True, False)], 0),
    ([(True, True)], 0),
    ([(False, False)], 1),
    ([(False, True)], 2),
    ([(False, True), (True, False)], 0),
    ([(False, False), (False, True)], 2),
    ([], 1),
])
def test_exit_code(outcomes, code):
    assert cli.exit_code(outcomes) == code


def test_stdin_cpe_output(monkeypatch, capsys):
    _stdin(monkeypatch, json.dumps({'core': {'version': '6.4.2'},
                                    'plugins': [{'name': 'akismet', 'version': '5.3'}]}))
    assert cli.main(['detect', '--stdin', '--format', 'cpe']) == 0
    out = capsys.readouterr().out.splitlines()
    assert out == [
        'cpe:2.3:a:wordpress:wordpress:6.4.2:*:*:*:*:*:*:*',
        'cpe:2.3:a:automattic:akismet:5.3:*:*:*:*:wordpress:*:*',
    ]


def test_stdin_json_output(monkeypatch, capsys):
    _stdin(monkeypatch, '[{"name":"x","version":"1.0","status":"active"}]')
    assert cli.main(['detect', '--stdin', '-f', 'json']) == 0
    data = json.loads(capsys.readouterr().out)
    assert data['source'] == 'wp-cli'
    assert data['plugins'][0]['slug'] == 'x'


def test_stdin_empty_inventory_is_not_detected(monkeypatch, capsys):
    _stdin(monkeypatch, '[]')
    assert cli.main(['detect', '--stdin']) == 1
    assert 'Total: 0 component(s) detected' in capsys.readouterr().out


def test_stdin_invalid_is_error(monkeypatch, capsys):
    _stdin(monkeypatch, '42')
    assert cli.main(['detect', '--stdin']) == 2
    assert 'Invalid WP-CLI input format' in capsys.readouterr().err


def test_detect_without_url(capsys):
    assert cli.main(['detect']) == 2
    assert 'URL required' in capsys.readouterr().err


def test_bad_ssh_url(capsys):
    assert cli.main(['scan', 'ftp://host']) == 2
    assert 'Invalid SSH URL' in capsys.readouterr().err


def test_remote_detect_passes_options(monkeypatch, capsys):
    seen = {}

    def fake_scan(url, options, config, audit=False):
        seen.update(url=url, options=options, audit=audit)
        result = DetectionResult(target=url, source='remote')
        result.core = DetectedComponent.create('core', 'wordpress', 'WordPress', '6.4.2', 95, 'remote')
        return result

    monkeypatch.setattr(cli, 'scan_remote', fake_scan)
    code = cli.main(['detect', 'example.com', '--timeout', '5000', '--concurrency', '2',
                     '--no-fingerprint', '--audit', '-f', 'cpe'])
    assert code == 0
    assert seen['url'] == 'example.com'
    assert seen['options'].timeout_ms == 5000
    assert seen['options'].concurrency == 2
    assert seen['options'].fingerprint is False
    assert seen['audit'] is True
    assert capsys.readouterr().out.strip() == 'cpe:2.3:a:wordpress:wordpress:6.4.2:*:*:*:*:*:*:*'


def test_targets_file(monkeypatch, tmp_path, capsys):
    targets = tmp_path / 'targets.txt'
    targets.write_text('# sites\na.example\n\nb.example\n', encoding='utf-8')
    scanned = []

    def fake_scan(url, options, config, audit=False):
        scanned.append(url)
        result = DetectionResult(target=url, source='remote')
        result.errors.append('Could not connect to the site or WordPress not detected')
        return result

    monkeypatch.setattr(cli, 'scan_remote', fake_scan)
    assert cli.main(['detect', '--targets', str(targets)]) == 2
    assert scanned == ['a.example', 'b.example']


def test_audit_counts_plugin_findings(monkeypatch, capsys):
    def fake_audit(url, options):
        result = AuditResult(target=url)
        result.plugin_vulns.append(MisconfigFinding(
            'updraft-backup-exposure', 'UpdraftPlus - Backup Files Exposed', 'critical',
            'UpdraftPlus backup files may be publicly accessible',
            'Backup directory accessible: /wp-content/updraft/'))
        return result

    monkeypatch.setattr(cli, 'run_audit', fake_audit)
    assert cli.main(['audit', 'example.com']) == 0
    out = capsys.readouterr().out
    assert 'Plugin Vulnerabilities:' in out
    assert '[CRITICAL] UpdraftPlus - Backup Files Exposed' in out
    assert 'Total: 1 finding(s)' in out


def test_init_writes_config(tmp_path, capsys):
    assert cli.main(['init']) == 0
    path = tmp_path / 'config.json'
    assert json.loads(path.read_text(encoding='utf-8'))['additionalPlugins'] == []
    assert str(path) in capsys.readouterr().out
