"""Inventory JSON parsing.

Accepts what management tooling prints:

- a bare array of plugin records (``wp plugin list --format=json``)
- an object ``{core?, plugins?, themes?}``
- newline-delimited JSON, each line one of the above fragments

Structurally invalid top-level input raises :class:`InvalidInventoryError`.
Bad NDJSON lines are recorded as ``Line N: ...`` errors and skipped.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

from ..exceptions import InvalidInventoryError
from ..models import DetectedComponent, DetectionResult, SiteInfo
from ..versioning.validator import normalize_version

logger = logging.getLogger('wpvet.inventory')

INVENTORY_CONFIDENCE = 100
INVENTORY_SOURCE = 'wp-cli'


@dataclass
class PluginRecord:
    name: str
    slug: str
    version: str
    status: str = 'inactive'
    update: str = 'none'
    auto_update: str = 'off'
    title: Optional[str] = None
    author: Optional[str] = None
    description: Optional[str] = None


@dataclass
class ThemeRecord:
    name: str
    slug: str
    version: str
    status: str = 'inactive'
    update: str = 'none'
    auto_update: str = 'off'
    title: Optional[str] = None
    author: Optional[str] = None


@dataclass
class CoreRecord:
    version: str
    site_url: Optional[str] = None
    home_url: Optional[str] = None
    multisite: Optional[bool] = None


@dataclass
class Inventory:
    core: Optional[CoreRecord] = None
    plugins: List[PluginRecord] = field(default_factory=list)
    themes: List[ThemeRecord] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


# ============ Record parsing ============

def _opt_str(value: Any) -> Optional[str]:
    return str(value) if value else None


def _version(value: Any) -> str:
    return normalize_version(None if value is None else str(value))


def _require_list(items: Any, what: str) -> List[Any]:
    if not isinstance(items, list):
        raise InvalidInventoryError(f'Expected array for {what} list')
    return items


def _require_record(item: Any, what: str, index: int) -> Mapping[str, Any]:
    if not isinstance(item, dict):
        raise InvalidInventoryError(f'Invalid {what} entry at index {index}')
    return item


def parse_plugin_list(items: Any) -> List[PluginRecord]:
    records = []
    for index, item in enumerate(_require_list(items, 'plugin')):
        obj = _require_record(item, 'plugin', index)
        slug = str(obj.get('slug') or obj.get('name') or 'unknown')
        records.append(PluginRecord(
            name=str(obj.get('name') or obj.get('slug') or 'unknown'),
            slug=slug,
            version=_version(obj.get('version')),
            status=str(obj.get('status') or 'inactive'),
            update='available' if obj.get('update') == 'available' else 'none',
            auto_update='on' if obj.get('auto_update') == 'on' else 'off',
            title=_opt_str(obj.get('title')),
            author=_opt_str(obj.get('author')),
            description=_opt_str(obj.get('description')),
        ))
    return records


def parse_theme_list(items: Any) -> List[ThemeRecord]:
    records = []
    for index, item in enumerate(_require_list(items, 'theme')):
        obj = _require_record(item, 'theme', index)
        records.append(ThemeRecord(
            name=str(obj.get('name') or obj.get('slug') or 'unknown'),
            slug=str(obj.get('stylesheet') or obj.get('slug') or obj.get('name') or 'unknown'),
            version=_version(obj.get('version')),
            status=str(obj.get('status') or 'inactive'),
            update='available' if obj.get('update') == 'available' else 'none',
            auto_update='on' if obj.get('auto_update') == 'on' else 'off',
            title=_opt_str(obj.get('title')),
            author=_opt_str(obj.get('author')),
        ))
    return records


def parse_core(value: Any) -> Optional[CoreRecord]:
    if not value:
        return None
    if isinstance(value, str):
        return CoreRecord(version=_version(value))
    if not isinstance(value, dict):
        raise InvalidInventoryError('core must be an object')
    multisite = value.get('multisite')
    return CoreRecord(
        version=_version(value.get('version')),
        site_url=_opt_str(value.get('site_url')),
        home_url=_opt_str(value.get('home_url')),
        multisite=bool(multisite) if multisite is not None else None,
    )


# ============ Document parsing ============

def _is_theme_array(items: List[Any]) -> bool:
    return bool(items) and isinstance(items[0], dict) and 'stylesheet' in items[0]


def _merge_object(inv: Inventory, obj: Mapping[str, Any]) -> None:
    core = parse_core(obj.get('core'))
    if core is not None:
        inv.core = core
    if obj.get('plugins'):
        inv.plugins.extend(parse_plugin_list(obj['plugins']))
    if obj.get('themes'):
        inv.themes.extend(parse_theme_list(obj['themes']))


def _parse_document(inv: Inventory, parsed: Any) -> None:
    if isinstance(parsed, list):
        if _is_theme_array(parsed):
            inv.themes.extend(parse_theme_list(parsed))
        else:
            inv.plugins.extend(parse_plugin_list(parsed))
    elif isinstance(parsed, dict):
        _merge_object(inv, parsed)
    else:
        raise InvalidInventoryError('Invalid WP-CLI input format')


def _parse_ndjson(text: str) -> Inventory:
    lines = [(n, line) for n, line in enumerate(text.splitlines(), start=1) if line.strip()]
    if not lines:
        raise InvalidInventoryError('Empty input')
    inv = Inventory()
    parsed_any = False
    for number, line in lines:
        try:
            _parse_document(inv, json.loads(line))
            parsed_any = True
        except ValueError as e:
            inv.errors.append(f'Line {number}: invalid JSON ({e})')
        except InvalidInventoryError as e:
            inv.errors.append(f'Line {number}: {e.details.get("reason", e.message)}')
    if not parsed_any:
        raise InvalidInventoryError('no parseable JSON lines', line=lines[0][0])
    if inv.errors:
        logger.info('inventory parsed with %d bad line(s)', len(inv.errors))
    return inv


def parse_inventory(text: str) -> Inventory:
    """Parse inventory text; whole-document JSON first, NDJSON otherwise."""
    try:
        parsed = json.loads(text)
    except ValueError:
        return _parse_ndjson(text)
    inv = Inventory()
    _parse_document(inv, parsed)
    return inv


# ============ Conversion ============

def inventory_to_result(inv: Inventory, target: str = 'stdin',
                        vendor_overrides: Optional[Mapping[str, str]] = None) -> DetectionResult:
    result = DetectionResult(target=target, source=INVENTORY_SOURCE, errors=list(inv.errors))
    if inv.core is not None:
        result.core = DetectedComponent.create(
            'core', 'wordpress', 'WordPress', inv.core.version, INVENTORY_CONFIDENCE, INVENTORY_SOURCE)
        if inv.core.site_url or inv.core.home_url or inv.core.multisite is not None:
            result.site = SiteInfo(inv.core.site_url, inv.core.home_url, inv.core.multisite)
    for p in inv.plugins:
        result.plugins.append(DetectedComponent.create(
            'plugin', p.slug, p.title or p.name, p.version, INVENTORY_CONFIDENCE, INVENTORY_SOURCE,
            vendor_overrides=vendor_overrides, status=p.status, update=p.update,
            auto_update=p.auto_update,
        ))
    for t in inv.themes:
        result.themes.append(DetectedComponent.create(
            'theme', t.slug, t.title or t.name, t.version, INVENTORY_CONFIDENCE, INVENTORY_SOURCE,
            status=t.status, update=t.update, auto_update=t.auto_update,
        ))
    return result


def parse_inventory_result(text: str, target: str = 'stdin',
                           vendor_overrides: Optional[Mapping[str, str]] = None) -> DetectionResult:
    return inventory_to_result(parse_inventory(text), target, vendor_overrides)


def inventory_from_outputs(core_version: Optional[str], plugins_json: Optional[str],
                           themes_json: Optional[str]) -> Inventory:
    """Build an inventory from the three separate command outputs of a remote host.

    Unparseable pieces are recorded in ``errors``; the rest is kept.
    """
    inv = Inventory()
    if core_version and core_version.strip():
        inv.core = CoreRecord(version=_version(core_version))
    for label, raw, parser, target in (('plugin', plugins_json, parse_plugin_list, inv.plugins),
                                       ('theme', themes_json, parse_theme_list, inv.themes)):
        if raw is None or not raw.strip():
            continue
        try:
            target.extend(parser(json.loads(raw)))
        except ValueError as e:
            inv.errors.append(f'Failed to parse {label} list: {e}')
        except InvalidInventoryError as e:
            inv.errors.append(f'Failed to parse {label} list: {e.details.get("reason", e.message)}')
    return inv
