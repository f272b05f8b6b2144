import json
import logging

from wpvet.logging_utils import log_suppressed
from wpvet.models import AuditResult, DetectedComponent, DetectionResult


def test_health(client):
    resp = client.get('/api/v1/health')
    assert resp.status_code == 200
    data = resp.get_json()
    assert data['status'] == 'ok'
    assert 'uptime_seconds' in data
    assert data['suppressed_errors'] == {}


def test_health_reports_suppressed_errors(client):
    log_suppressed(logging.getLogger('wpvet.network'), ValueError('boom'), 'fetch:connection')
    data = client.get('/api/v1/health').get_json()
    entry = data['suppressed_errors']['wpvet.network:fetch:connection:10']
    assert entry['count'] == 1


def test_version(client, monkeypatch):
    monkeypatch.setenv('WPVET_VERSION', '9.9.9')
    assert client.get('/api/v1/version').get_json()['version'] == '9.9.9'


def test_detect_requires_url(client):
    resp = client.post('/api/v1/detect', json={})
    assert resp.status_code == 400
    body = resp.get_json()
    assert body['error'] is True
    assert body['error_code'] == 'VALIDATION_ERROR'
    assert body['details'] == {'field': 'url'}


def test_detect_rejects_non_object_body(client):
    resp = client.post('/api/v1/detect', data='[1]', content_type='application/json')
    assert resp.status_code == 400


def test_detect_validates_options(client):
    resp = client.post('/api/v1/detect', json={'url': 'example.com', 'concurrency': 500})
    assert resp.status_code == 400
    assert resp.get_json()['details'] == {'field': 'concurrency'}


def test_detect(client, monkeypatch):
    seen = {}

    def fake_scan(url, options, config, audit=False):
        seen.update(url=url, options=options, audit=audit)
        result = DetectionResult(target=url, source='remote')
        result.core = DetectedComponent.create('core', 'wordpress', 'WordPress', '6.4.2', 95, 'remote')
        return result

    monkeypatch.setattr('wpvet.routes.api_v1.scan_remote', fake_scan)
    resp = client.post('/api/v1/detect', json={'url': ' example.com ', 'concurrency': 3,
                                               'fingerprint': False, 'audit': True})
    assert resp.status_code == 200
    data = resp.get_json()
    assert data['core']['cpe'] == 'cpe:2.3:a:wordpress:wordpress:6.4.2:*:*:*:*:*:*:*'
    assert data['source'] == 'remote'
    assert seen['url'] == 'example.com'
    assert seen['options'].concurrency == 3
    assert seen['options'].fingerprint is False
    assert seen['audit'] is True


def test_audit(client, monkeypatch):
    monkeypatch.setattr('wpvet.routes.api_v1.run_audit', lambda url, options: AuditResult(target=url))
    resp = client.post('/api/v1/audit', json={'url': 'example.com'})
    assert resp.status_code == 200
    assert resp.get_json()['misconfigs'] == []
    assert resp.get_json()['plugin_vulns'] == []


def test_inventory(client):
    body = json.dumps([{'name': 'akismet', 'version': '5.3', 'status': 'active'}])
    resp = client.post('/api/v1/inventory?target=site-a', data=body, content_type='application/json')
    assert resp.status_code == 200
    data = resp.get_json()
    assert data['target'] == 'site-a'
    assert data['source'] == 'wp-cli'
    assert data['plugins'][0]['cpe'] == 'cpe:2.3:a:automattic:akismet:5.3:*:*:*:*:wordpress:*:*'
    assert data['core'] is None


def test_inventory_invalid(client):
    resp = client.post('/api/v1/inventory', data='42', content_type='application/json')
    assert resp.status_code == 400
    body = resp.get_json()
    assert body['error_code'] == 'INVALID_INVENTORY'
    assert body['details']['reason'] == 'Invalid WP-CLI input format'
