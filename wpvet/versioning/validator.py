"""Version validation utilities.

Validates extracted versions against expected formats.
"""

import re
from typing import Optional


# Shape accepted from script headers and hashes: major.minor(.patch)
STRICT_VERSION_PATTERN = re.compile(r'^\d+\.\d+(\.\d+)?$')

# Readme / stylesheet headers: dotted numbers with optional pre-release suffix
LOOSE_VERSION_PATTERN = re.compile(r'^\d+(?:\.\d+)*(?:-[a-zA-Z0-9.]+)?$')

UNKNOWN_VERSION = 'unknown'


def is_strict_version(version: Optional[str]) -> bool:
    """True for ``6.4`` or ``6.4.2``; rejects anything noisier."""
    return bool(version) and bool(STRICT_VERSION_PATTERN.match(version))


def is_loose_version(version: Optional[str]) -> bool:
    """True for dotted numeric versions, optionally with a ``-beta`` style suffix."""
    return bool(version) and bool(LOOSE_VERSION_PATTERN.match(version))


def normalize_version(version: Optional[str]) -> str:
    """Trim whitespace and a leading ``v``; empty values become ``unknown``."""
    if version is None:
        return UNKNOWN_VERSION
    version = str(version).strip()
    if version[:1] in ('v', 'V') and version[1:2].isdigit():
        version = version[1:]
    return version or UNKNOWN_VERSION