"""Version ordering for package ecosystems.

Each ecosystem supplies a VersionScheme; VersionOrdering applies the shared
policy on top of it (dedupe, descending order, unparsed versions last).
"""

from .ordering import VersionOrdering
from .protocol import VersionScheme
from .schemes import (
    DottedNumericScheme,
    NuGetVersionScheme,
    Pep440Scheme,
    SemVerScheme,
    nuget_normalized_version,
)

__all__ = [
    "VersionOrdering",
    "VersionScheme",
    "SemVerScheme",
    "NuGetVersionScheme",
    "Pep440Scheme",
    "DottedNumericScheme",
    "nuget_normalized_version",
]
