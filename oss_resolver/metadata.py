"""Normalized metadata records produced by every provider."""

import json
from dataclasses import dataclass, field, fields, is_dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from .coordinate import Coordinate


@dataclass(frozen=True)
class License:
    """A license declared by a package version."""

    name: Optional[str] = None
    url: Optional[str] = None


@dataclass(frozen=True)
class Person:
    """An author, maintainer or publisher."""

    name: Optional[str] = None
    email: Optional[str] = None
    url: Optional[str] = None

    def __str__(self) -> str:
        parts = [self.name or ""]
        if self.email:
            parts.append(f"<{self.email}>")
        if self.url:
            parts.append(f"({self.url})")
        return " ".join(p for p in parts if p)


@dataclass(frozen=True)
class Dependency:
    """A declared dependency: package reference plus version constraint."""

    package: str
    constraint: Optional[str] = None
    framework: Optional[str] = None  # NuGet target framework


@dataclass(frozen=True)
class Digest:
    """A published artifact digest, e.g. ("sha512", "<base64>")."""

    algorithm: str
    signature: str


@dataclass(frozen=True)
class TroveClassification:
    """A PyPI trove classifier split into parent, target and sub-classes."""

    parent: str
    target: str
    subclasses: tuple = ()


@dataclass(frozen=True)
class RepositoryCandidate:
    """A scored guess at a package's canonical source repository."""

    coordinate: Coordinate
    confidence: float

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")


@dataclass
class NormalizedMetadata:
    """
    Ecosystem-agnostic metadata for one resolved package version.

    Only namespace, name and version are guaranteed. Everything else is
    best-effort: registries are inconsistent and an absent field is a
    normal outcome, not an error.
    """

    name: str
    version: str
    namespace: Optional[str] = None
    latest_version: Optional[str] = None

    description: Optional[str] = None
    homepage: Optional[str] = None
    publish_time: Optional[datetime] = None
    keywords: List[str] = field(default_factory=list)
    licenses: List[License] = field(default_factory=list)
    authors: List[Person] = field(default_factory=list)
    dependencies: List[Dependency] = field(default_factory=list)

    # Locations
    source_artifact_uri: Optional[str] = None
    package_uri: Optional[str] = None
    package_metadata_uri: Optional[str] = None
    package_version_uri: Optional[str] = None
    package_version_metadata_uri: Optional[str] = None

    # Provenance
    source_repository: Optional[RepositoryCandidate] = None
    repository_candidates: List[RepositoryCandidate] = field(default_factory=list)
    digests: List[Digest] = field(default_factory=list)

    # Ecosystem extras
    publisher: Optional[Person] = None
    deprecated: Optional[str] = None
    unpacked_size: Optional[int] = None
    scripts: Dict[str, str] = field(default_factory=dict)
    classifiers: List[TroveClassification] = field(default_factory=list)

    def add_keywords(self, keywords: Iterable[str]) -> None:
        """Append keywords, skipping blanks and ones already present."""
        for keyword in keywords:
            keyword = keyword.strip() if isinstance(keyword, str) else ""
            if keyword and keyword not in self.keywords:
                self.keywords.append(keyword)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-compatible dict, omitting absent fields."""
        return _to_jsonable(self)

    def to_json(self, indent: Optional[int] = 2) -> str:
        """Serialize to JSON, omitting absent fields."""
        return json.dumps(self.to_dict(), indent=indent)


def _is_absent(value: Any) -> bool:
    return value is None or (isinstance(value, (list, dict, tuple, str)) and len(value) == 0)


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, Coordinate):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if is_dataclass(value) and not isinstance(value, type):
        result = {}
        for f in fields(value):
            item = getattr(value, f.name)
            if _is_absent(item):
                continue
            result[f.name] = _to_jsonable(item)
        return result
    if isinstance(value, dict):
        return {k: _to_jsonable(v) for k, v in value.items() if not _is_absent(v)}
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(v) for v in value]
    return value
