"""API v1 Blueprint.

Endpoints:
    POST /api/v1/detect     remote inference for one URL
    POST /api/v1/audit      misconfiguration and plugin checks for one URL
    POST /api/v1/inventory  parse inventory JSON posted as the body
    GET  /api/v1/health    uptime and throttled soft-failure counters
    GET  /api/v1/version
"""

import logging
import os
import time

from flask import Blueprint, current_app, jsonify, request

from ..config import VERSION, ScanOptions, load_config
from ..exceptions import ValidationError, WpVetException, error_response
from ..logging_utils import get_suppressed_snapshot
from ..scan.audit import run_audit
from ..scan.inventory import parse_inventory_result
from ..scan.remote import scan_remote

logger = logging.getLogger('wpvet.api')

api_v1 = Blueprint('api_v1', __name__, url_prefix='/api/v1')

_START_TIME = time.time()

# Custom limits (can be overridden via env)
DETECT_LIMIT = os.environ.get('WPVET_DETECT_RATE_LIMIT', '10 per minute')
MAX_CONCURRENCY = 20


@api_v1.errorhandler(WpVetException)
def _handle_wpvet_error(exc: WpVetException):
    body, status = error_response(exc)
    return jsonify(body), status


def _limited(fn):
    limiter = current_app.extensions.get('limiter')
    if limiter:
        # apply limit per call; blueprint-level decorators bind before the limiter exists
        return limiter.limit(DETECT_LIMIT)(fn)()
    return fn()


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('request body must be a JSON object')
    return data


def _require_url(data: dict) -> str:
    url = data.get('url')
    if not isinstance(url, str) or not url.strip():
        raise ValidationError('url is required', details={'field': 'url'})
    return url.strip()


def _int_field(data: dict, name: str, minimum: int, maximum: int):
    value = data.get(name)
    if value is None:
        return None
    try:
        value = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{name} must be an integer', details={'field': name})
    if not minimum <= value <= maximum:
        raise ValidationError(f'{name} must be between {minimum} and {maximum}', details={'field': name})
    return value


def _options(data: dict, config) -> ScanOptions:
    fingerprint = data.get('fingerprint')
    return ScanOptions.from_env(config).with_overrides(
        timeout_ms=_int_field(data, 'timeout', 1000, 120000),
        concurrency=_int_field(data, 'concurrency', 1, MAX_CONCURRENCY),
        retry=_int_field(data, 'retry', 0, 5),
        fingerprint=bool(fingerprint) if fingerprint is not None else None,
    )


# ============ Detection Endpoints ============

@api_v1.route('/detect', methods=['POST'])
def detect():
    """Infer core/plugin/theme versions of a remote site.

    JSON body:
        url: target URL or host (required)
        audit: also run misconfiguration checks
        timeout, concurrency, retry, fingerprint: per-request scan options
    """
    def impl():
        data = _json_body()
        url = _require_url(data)
        config = load_config()
        result = scan_remote(url, _options(data, config), config, audit=bool(data.get('audit')))
        return jsonify(result.to_dict())
    return _limited(impl)


@api_v1.route('/audit', methods=['POST'])
def audit():
    """Run misconfiguration checks. JSON body: url (required) plus scan options."""
    def impl():
        data = _json_body()
        url = _require_url(data)
        result = run_audit(url, _options(data, load_config()))
        return jsonify(result.to_dict())
    return _limited(impl)


@api_v1.route('/inventory', methods=['POST'])
def inventory():
    """Parse inventory JSON / NDJSON from the request body."""
    text = request.get_data(as_text=True)
    target = request.args.get('target', 'api')
    result = parse_inventory_result(text, target, load_config().plugin_vendors)
    return jsonify(result.to_dict())


# ============ System Endpoints ============

@api_v1.route('/health', methods=['GET'])
def health():
    uptime = time.time() - _START_TIME
    return jsonify({
        'status': 'ok',
        'uptime_seconds': round(uptime, 2),
        'suppressed_errors': get_suppressed_snapshot(),
    })


@api_v1.route('/version', methods=['GET'])
def version():
    uptime = time.time() - _START_TIME
    return jsonify({
        'version': os.environ.get('WPVET_VERSION', VERSION),
        'uptime_seconds': round(uptime, 2),
    })
