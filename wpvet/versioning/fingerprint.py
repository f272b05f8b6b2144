"""Script content fingerprinting.

Used when the site hides its generator tag. Fetched core scripts are
normalized and hashed; a digest maps to the *set* of releases shipping that
exact file. Header comments occasionally leak a version too and count
double. This module does no network I/O; callers hand it fetched text.
"""

import hashlib
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Pattern, Sequence, Tuple

from .patterns import CORE_JS_COMMENT_PATTERNS, WP_CORE_FINGERPRINTS, JsFingerprint
from .validator import is_strict_version

logger = logging.getLogger('wpvet.versioning')

HEADER_SCAN_CHARS = 2048
_DIGEST_RE = re.compile(r'[0-9a-f]{64}')

FINGERPRINT_BASE_CONFIDENCE = 50
FINGERPRINT_MATCH_BONUS = 10
FINGERPRINT_MATCH_BONUS_CAP = 25
FINGERPRINT_SPECIFIC_BONUS = 10
# A narrow candidate set is one where few releases share the matched hashes
FINGERPRINT_SPECIFIC_THRESHOLD = 3
FINGERPRINT_CONFIDENCE_CAP = 75

COMMENT_WEIGHT = 2
HASH_WEIGHT = 1


@dataclass(frozen=True)
class FingerprintMatch:
    path: str
    hash: str
    versions: Tuple[str, ...]
    from_comment: bool = False

    def to_dict(self) -> Dict[str, object]:
        return {
            'path': self.path,
            'hash': self.hash,
            'versions': list(self.versions),
            'from_comment': self.from_comment,
        }


@dataclass
class FingerprintResult:
    version: str
    confidence: int
    source: str = 'js-fingerprint'
    matches: List[FingerprintMatch] = field(default_factory=list)


def normalize_js_content(content: str) -> str:
    """Strip a BOM, unify line endings to LF, trim surrounding whitespace."""
    if content.startswith('\ufeff'):
        content = content[1:]
    return content.replace('\r\n', '\n').replace('\r', '\n').strip()


def content_hash(content: str) -> str:
    """Lowercase hex SHA-256 of the UTF-8 encoded text."""
    return hashlib.sha256(content.encode('utf-8')).hexdigest()


def build_hash_lookup(fingerprints: Iterable[JsFingerprint] = WP_CORE_FINGERPRINTS) -> Dict[str, JsFingerprint]:
    """Index the reference table by digest.

    Raises ValueError for an entry whose digest is not a SHA-256 hex string
    or which names no release; such an entry could never match a fetch.
    """
    lookup = {}
    for entry in fingerprints:
        if not _DIGEST_RE.fullmatch(entry.hash):
            raise ValueError(f'malformed digest for {entry.path}: {entry.hash!r}')
        if not entry.versions:
            raise ValueError(f'digest {entry.hash} for {entry.path} names no release')
        lookup[entry.hash] = entry
    return lookup


_HASH_LOOKUP = build_hash_lookup()


def lookup_hash(digest: str) -> Optional[JsFingerprint]:
    return _HASH_LOOKUP.get(digest)


def extract_header_version(content: str, patterns: Sequence[Pattern[str]]) -> Optional[str]:
    """First strict-shaped version matched by ``patterns`` in the file header."""
    header = content[:HEADER_SCAN_CHARS]
    for pattern in patterns:
        m = pattern.search(header)
        if m and is_strict_version(m.group(1)):
            return m.group(1)
    return None


def extract_comment_version(content: str) -> Optional[str]:
    return extract_header_version(content, CORE_JS_COMMENT_PATTERNS)


def match_content(path: str, content: str) -> List[FingerprintMatch]:
    """Matches contributed by one fetched script (hash hit and/or comment)."""
    normalized = normalize_js_content(content)
    digest = content_hash(normalized)
    matches: List[FingerprintMatch] = []
    known = lookup_hash(digest)
    if known is not None:
        matches.append(FingerprintMatch(path, digest, known.versions))
    comment_version = extract_comment_version(normalized)
    if comment_version:
        matches.append(FingerprintMatch(path, digest, (comment_version,), from_comment=True))
    if not matches:
        logger.debug('fingerprint miss path=%s hash=%s', path, digest)
    return matches


def score_matches(matches: Sequence[FingerprintMatch]) -> Optional[FingerprintResult]:
    """Reduce matches to a single best version with a bounded confidence.

    Versions are weighted by how many files corroborate them; ties go to the
    version whose matches share the fewest releases. The candidate set is
    never collapsed before this point.
    """
    if not matches:
        return None
    counts: Dict[str, int] = {}
    for match in matches:
        weight = COMMENT_WEIGHT if match.from_comment else HASH_WEIGHT
        for version in match.versions:
            counts[version] = counts.get(version, 0) + weight

    best_version: Optional[str] = None
    best_count = 0
    best_avg = float('inf')
    for version, count in counts.items():
        avg = sum(len(m.versions) for m in matches if version in m.versions) / len(matches)
        if count > best_count or (count == best_count and avg < best_avg):
            best_version, best_count, best_avg = version, count, avg

    confidence = FINGERPRINT_BASE_CONFIDENCE
    confidence += min(len(matches) * FINGERPRINT_MATCH_BONUS, FINGERPRINT_MATCH_BONUS_CAP)
    if best_avg <= FINGERPRINT_SPECIFIC_THRESHOLD:
        confidence += FINGERPRINT_SPECIFIC_BONUS
    return FingerprintResult(
        version=best_version,
        confidence=min(confidence, FINGERPRINT_CONFIDENCE_CAP),
        matches=list(matches),
    )
