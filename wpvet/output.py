"""Text rendering of detection and audit results."""

import json
from typing import List

from .models import AuditResult, DetectedComponent, DetectionResult, MisconfigFinding

FORMATS = ('cpe', 'json', 'table')

SEVERITY_LABELS = {
    'critical': 'CRITICAL',
    'high': 'HIGH',
    'medium': 'MEDIUM',
    'low': 'LOW',
    'info': 'INFO',
}


def format_cpe(result: DetectionResult) -> str:
    return '\n'.join(c.cpe for c in result.components())


def format_json(result) -> str:
    return json.dumps(result.to_dict(), indent=2)


def _component_rows(title: str, components: List[DetectedComponent]) -> List[str]:
    lines = [
        f'{title}:',
        f'  {"Name":<30} {"Version":<12} {"Status":<10} Confidence',
        f'  {"-" * 30} {"-" * 12} {"-" * 10} {"-" * 10}',
    ]
    for c in components:
        lines.append(f'  {c.name:<30} {c.version:<12} {(c.status or "-"):<10} {c.confidence}%')
    lines.append('')
    return lines


def _finding_rows(findings: List[MisconfigFinding]) -> List[str]:
    lines = []
    for f in findings:
        lines.append(f'  [{SEVERITY_LABELS.get(f.severity, f.severity.upper())}] {f.name}')
        lines.append(f'    {f.evidence}')
        if f.recommendation:
            lines.append(f'    Fix: {f.recommendation}')
    return lines


def format_table(result: DetectionResult) -> str:
    lines = [
        f'Target: {result.target}',
        f'Scan time: {result.timestamp}',
        f'Source: {result.source}',
        '',
    ]
    if result.core:
        lines += [
            'WordPress Core:',
            f'  Version: {result.core.version} (confidence: {result.core.confidence}%)',
            f'  CPE: {result.core.cpe}',
            '',
        ]
    if result.plugins:
        lines += _component_rows('Plugins', result.plugins)
    if result.themes:
        lines += _component_rows('Themes', result.themes)
    if result.misconfigs:
        lines.append('Misconfigurations:')
        lines += _finding_rows(result.misconfigs)
        lines.append('')
    if result.errors:
        lines.append('Errors:')
        lines += [f'  - {e}' for e in result.errors]
    lines.append(f'Total: {len(result.components())} component(s) detected')
    return '\n'.join(lines)


def format_result(result: DetectionResult, fmt: str = 'table') -> str:
    if fmt == 'cpe':
        return format_cpe(result)
    if fmt == 'json':
        return format_json(result)
    return format_table(result)


def format_audit_table(result: AuditResult) -> str:
    lines = [f'Target: {result.target}', f'Scan time: {result.timestamp}', '']
    if result.misconfigs:
        lines.append('Misconfigurations:')
        lines += _finding_rows(result.misconfigs)
        lines.append('')
    else:
        lines += ['No misconfigurations found.', '']
    if result.plugin_vulns:
        lines.append('Plugin Vulnerabilities:')
        lines += _finding_rows(result.plugin_vulns)
        lines.append('')
    if result.errors:
        lines.append('Errors:')
        lines += [f'  - {e}' for e in result.errors]
    lines.append(f'Total: {len(result.misconfigs) + len(result.plugin_vulns)} finding(s)')
    return '\n'.join(lines)


def format_audit(result: AuditResult, fmt: str = 'table') -> str:
    """Audit output; ``cpe`` has no meaning here and falls back to the table."""
    if fmt == 'json':
        return format_json(result)
    return format_audit_table(result)
