"""Version detection.

Architecture:
- patterns.py: reference tables (fingerprints, plugin script patterns, slug lists)
- validator.py: version shape checks
- cpe.py: CPE 2.3 encoding/decoding and vendor resolution
- fingerprint.py: script hashing and header version extraction
- evidence.py: evidence tuples and winner selection
- extractor.py: per-component evidence gathering over HTTP

``extractor`` is imported directly by callers; it depends on the result
models which in turn depend on ``cpe``.
"""

from .cpe import ParsedCpe, decode_cpe, encode_cpe, normalize_component, resolve_plugin_vendor
from .evidence import Presence, VersionEvidence, select_winner
from .fingerprint import FingerprintMatch, FingerprintResult, match_content, score_matches

__all__ = [
    'ParsedCpe',
    'decode_cpe',
    'encode_cpe',
    'normalize_component',
    'resolve_plugin_vendor',
    'Presence',
    'VersionEvidence',
    'select_winner',
    'FingerprintMatch',
    'FingerprintResult',
    'match_content',
    'score_matches',
]
