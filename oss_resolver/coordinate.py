"""Package coordinates and ecosystem identifiers."""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Optional, Tuple, Union

from packageurl import PackageURL

from .exceptions import UnsupportedEcosystemError


class Ecosystem(str, Enum):
    """Package ecosystems and source forges known to the resolver.

    Values match the package-url type names.
    """

    NPM = "npm"
    NUGET = "nuget"
    HACKAGE = "hackage"
    PYPI = "pypi"
    GITHUB = "github"
    GITLAB = "gitlab"
    BITBUCKET = "bitbucket"

    @classmethod
    def from_type(cls, purl_type: str) -> "Ecosystem":
        """Look up an ecosystem by its package-url type."""
        try:
            return cls(purl_type.lower())
        except ValueError:
            raise UnsupportedEcosystemError(purl_type) from None

    @property
    def folds_case(self) -> bool:
        """Whether names in this ecosystem compare case-insensitively."""
        return self in _CASE_INSENSITIVE

    def __str__(self) -> str:
        return self.value


_CASE_INSENSITIVE = frozenset(
    {
        Ecosystem.NPM,
        Ecosystem.NUGET,
        Ecosystem.GITHUB,
        Ecosystem.GITLAB,
        Ecosystem.BITBUCKET,
    }
)


@dataclass(frozen=True, eq=False)
class Coordinate:
    """
    Immutable identifier of a package (or package version) in one ecosystem.

    Equality and hashing fold the case of namespace and name for ecosystems
    whose registries treat names case-insensitively (npm, NuGet, the forges).
    Hackage and PyPI names keep their case.

    Example:
        coord = Coordinate.from_purl("pkg:npm/lodash@4.17.15")
        latest = coord.with_version("4.17.21")
    """

    ecosystem: Ecosystem
    name: str
    namespace: Optional[str] = None
    version: Optional[str] = None
    qualifiers: Dict[str, str] = field(default_factory=dict)
    subpath: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.ecosystem, Ecosystem):
            object.__setattr__(self, "ecosystem", Ecosystem.from_type(str(self.ecosystem)))
        if not self.name or not self.name.strip():
            raise ValueError("Coordinate name must not be empty")
        # Private copy so callers cannot mutate qualifiers after construction
        object.__setattr__(self, "qualifiers", dict(self.qualifiers or {}))

    @classmethod
    def from_purl(cls, purl: Union[str, PackageURL]) -> "Coordinate":
        """
        Build a coordinate from package-url text or a PackageURL.

        Raises:
            ValueError: If the text is not a valid package-url
            UnsupportedEcosystemError: If the purl type is not a known ecosystem
        """
        if isinstance(purl, str):
            purl = PackageURL.from_string(purl)
        qualifiers = purl.qualifiers or {}
        return cls(
            ecosystem=Ecosystem.from_type(purl.type),
            namespace=purl.namespace or None,
            name=purl.name,
            version=purl.version or None,
            qualifiers=dict(qualifiers),
            subpath=purl.subpath or None,
        )

    def to_purl(self) -> PackageURL:
        """Convert to a PackageURL."""
        return PackageURL(
            type=self.ecosystem.value,
            namespace=self.namespace,
            name=self.name,
            version=self.version,
            qualifiers=dict(self.qualifiers) or None,
            subpath=self.subpath,
        )

    def with_version(self, version: Optional[str]) -> "Coordinate":
        """Return a copy of this coordinate with the version replaced."""
        return replace(self, version=version)

    @property
    def full_name(self) -> str:
        """Registry-facing package name including the namespace, if any."""
        if not self.namespace:
            return self.name
        if self.ecosystem == Ecosystem.NPM:
            scope = self.namespace if self.namespace.startswith("@") else f"@{self.namespace}"
            return f"{scope}/{self.name}"
        return f"{self.namespace}/{self.name}"

    def _identity(self) -> Tuple:
        namespace = self.namespace
        name = self.name
        if self.ecosystem.folds_case:
            namespace = namespace.lower() if namespace else namespace
            name = name.lower()
        return (
            self.ecosystem,
            namespace,
            name,
            self.version,
            tuple(sorted(self.qualifiers.items())),
            self.subpath,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Coordinate):
            return NotImplemented
        return self._identity() == other._identity()

    def __hash__(self) -> int:
        return hash(self._identity())

    def __str__(self) -> str:
        return self.to_purl().to_string()


def as_coordinate(value: Union[str, PackageURL, Coordinate]) -> Coordinate:
    """Accept a Coordinate, PackageURL or purl text and return a Coordinate."""
    if isinstance(value, Coordinate):
        return value
    return Coordinate.from_purl(value)
