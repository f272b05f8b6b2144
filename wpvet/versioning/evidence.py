"""Version evidence and winner selection.

Each extraction strategy yields at most one :class:`VersionEvidence` for a
component. :func:`select_winner` reduces them in two tiers: a concrete
version always outranks "present, version unknown", confidence only
decides within a tier, and registration order breaks remaining ties.
"""

import enum
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from .validator import UNKNOWN_VERSION


class Presence(enum.Enum):
    ABSENT = 'absent'
    PRESENT_UNKNOWN = 'present-unknown'
    CONCRETE = 'concrete'


@dataclass(frozen=True)
class VersionEvidence:
    presence: Presence
    confidence: int
    source: str
    version: Optional[str] = None

    @classmethod
    def concrete(cls, version: str, confidence: int, source: str) -> 'VersionEvidence':
        return cls(Presence.CONCRETE, confidence, source, version)

    @classmethod
    def present_unknown(cls, confidence: int, source: str) -> 'VersionEvidence':
        return cls(Presence.PRESENT_UNKNOWN, confidence, source)

    @property
    def is_concrete(self) -> bool:
        return self.presence is Presence.CONCRETE

    @property
    def reported_version(self) -> str:
        return self.version if self.is_concrete and self.version else UNKNOWN_VERSION

    def to_dict(self) -> Dict[str, Any]:
        return {
            'version': self.reported_version,
            'presence': self.presence.value,
            'confidence': self.confidence,
            'source': self.source,
        }


def _rank(evidence: VersionEvidence):
    return (not evidence.is_concrete, -evidence.confidence)


def select_winner(candidates: Iterable[Optional[VersionEvidence]]) -> Optional[VersionEvidence]:
    """Pick the winning evidence, or None when nothing showed the component.

    ``ABSENT`` entries and ``None`` are ignored. ``sorted`` is stable, so
    among equal ranks the first registered source wins.
    """
    usable: List[VersionEvidence] = [
        c for c in candidates if c is not None and c.presence is not Presence.ABSENT
    ]
    if not usable:
        return None
    return sorted(usable, key=_rank)[0]


def has_concrete(candidates: Iterable[Optional[VersionEvidence]]) -> bool:
    return any(c is not None and c.is_concrete for c in candidates)
