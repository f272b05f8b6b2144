"""Result types shared by every acquisition path.

All of them are plain dataclasses with ``to_dict()`` so the CLI and the
HTTP layer can serialise them without knowing their shape.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from .versioning.cpe import component_cpe

COMPONENT_TYPES = ('core', 'plugin', 'theme')
SOURCES = ('wp-cli', 'remote', 'local')
SEVERITY_ORDER = {'critical': 0, 'high': 1, 'medium': 2, 'low': 3, 'info': 4}


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z')


@dataclass(frozen=True)
class DetectedComponent:
    """One inventoried item. ``cpe`` is derived; build through :meth:`create`."""

    type: str
    slug: str
    name: str
    version: str
    confidence: int
    cpe: str
    source: str
    status: Optional[str] = None
    update: Optional[str] = None
    auto_update: Optional[str] = None
    evidence: Optional[str] = None

    @classmethod
    def create(
        cls,
        type: str,
        slug: str,
        name: str,
        version: str,
        confidence: int,
        source: str,
        *,
        vendor_overrides: Optional[Mapping[str, str]] = None,
        status: Optional[str] = None,
        update: Optional[str] = None,
        auto_update: Optional[str] = None,
        evidence: Optional[str] = None,
    ) -> 'DetectedComponent':
        if type not in COMPONENT_TYPES:
            raise ValueError(f'unknown component type: {type}')
        return cls(
            type=type,
            slug=slug,
            name=name,
            version=version,
            confidence=max(0, min(100, int(confidence))),
            cpe=component_cpe(type, slug, version, vendor_overrides),
            source=source,
            status=status,
            update=update,
            auto_update=auto_update,
            evidence=evidence,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'type': self.type,
            'slug': self.slug,
            'name': self.name,
            'version': self.version,
            'confidence': self.confidence,
            'cpe': self.cpe,
            'source': self.source,
        }
        for key in ('status', 'update', 'auto_update', 'evidence'):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data


@dataclass(frozen=True)
class SiteInfo:
    site_url: Optional[str] = None
    home_url: Optional[str] = None
    multisite: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in (('site_url', self.site_url), ('home_url', self.home_url),
                                  ('multisite', self.multisite)) if v is not None}


@dataclass(frozen=True)
class MisconfigFinding:
    id: str
    name: str
    severity: str
    description: str
    evidence: str
    recommendation: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'severity': self.severity,
            'description': self.description,
            'evidence': self.evidence,
            'recommendation': self.recommendation,
        }


def sort_findings(findings: List[MisconfigFinding]) -> List[MisconfigFinding]:
    return sorted(findings, key=lambda f: SEVERITY_ORDER.get(f.severity, len(SEVERITY_ORDER)))


@dataclass
class DetectionResult:
    target: str
    source: str
    timestamp: str = field(default_factory=utc_timestamp)
    core: Optional[DetectedComponent] = None
    plugins: List[DetectedComponent] = field(default_factory=list)
    themes: List[DetectedComponent] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    site: Optional[SiteInfo] = None
    misconfigs: Optional[List[MisconfigFinding]] = None

    def components(self) -> List[DetectedComponent]:
        items = [self.core] if self.core else []
        return items + list(self.plugins) + list(self.themes)

    @property
    def has_components(self) -> bool:
        return bool(self.core or self.plugins or self.themes)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'target': self.target,
            'timestamp': self.timestamp,
            'source': self.source,
            'core': self.core.to_dict() if self.core else None,
            'plugins': [p.to_dict() for p in self.plugins],
            'themes': [t.to_dict() for t in self.themes],
            'errors': list(self.errors),
        }
        if self.site is not None:
            data['site'] = self.site.to_dict()
        if self.misconfigs is not None:
            data['misconfigs'] = [f.to_dict() for f in self.misconfigs]
        return data


@dataclass
class AuditResult:
    target: str
    timestamp: str = field(default_factory=utc_timestamp)
    misconfigs: List[MisconfigFinding] = field(default_factory=list)
    plugin_vulns: List[MisconfigFinding] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def has_findings(self) -> bool:
        return bool(self.misconfigs or self.plugin_vulns)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'target': self.target,
            'timestamp': self.timestamp,
            'misconfigs': [f.to_dict() for f in self.misconfigs],
            'plugin_vulns': [f.to_dict() for f in self.plugin_vulns],
            'errors': list(self.errors),
        }
