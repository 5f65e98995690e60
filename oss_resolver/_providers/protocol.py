"""Provider protocol for ecosystem registry plugins."""

from typing import Any, List, Optional, Protocol, Set

from oss_resolver.coordinate import Coordinate, Ecosystem
from oss_resolver.metadata import NormalizedMetadata, RepositoryCandidate

from .artifacts import ArtifactUri
from .result import DownloadResult


class Provider(Protocol):
    """
    Protocol defining the interface for ecosystem providers.

    Each provider talks to one package registry and translates its documents
    into the shared vocabulary: ordered version lists, NormalizedMetadata,
    artifact locations and download results. Providers also act as the
    RepositoryHints adapter for their own documents.

    Example:
        class NpmProvider:
            name = "npm"
            ecosystem = Ecosystem.NPM

            def supports(self, coordinate: Coordinate) -> bool:
                return coordinate.ecosystem == Ecosystem.NPM

            def enumerate_versions(self, coordinate, use_cache=True) -> List[str]:
                # Fetch the package document and order its versions
                ...
    """

    @property
    def name(self) -> str:
        """
        Human-readable name of this provider.

        Used for logging and CLI output. Examples: "npm", "nuget.org"
        """
        ...

    @property
    def ecosystem(self) -> Ecosystem:
        """The ecosystem this provider serves; the registry key."""
        ...

    def supports(self, coordinate: Coordinate) -> bool:
        """Check if this provider can handle the given coordinate."""
        ...

    def enumerate_versions(self, coordinate: Coordinate, use_cache: bool = True) -> List[str]:
        """
        List every known version, newest first.

        The first element is the latest version: the registry-declared latest
        where the ecosystem has one, the maximum otherwise.

        Raises:
            NotFoundError: If the package does not exist
            TransportError: On network failure or an undecodable document
        """
        ...

    def fetch_metadata(self, coordinate: Coordinate, use_cache: bool = True) -> Any:
        """
        Fetch the raw registry document for the coordinate.

        Raises:
            NotFoundError: If the package does not exist
            TransportError: On network failure or an undecodable document
        """
        ...

    def resolve_metadata(self, coordinate: Coordinate, use_cache: bool = True) -> NormalizedMetadata:
        """
        Resolve the coordinate into normalized metadata.

        A coordinate without a version resolves to the first element of
        enumerate_versions(). The input coordinate is never modified.

        Raises:
            NotFoundError: If the package or version does not exist
            TransportError: On network failure or an undecodable document
        """
        ...

    def artifact_locations(self, coordinate: Coordinate) -> List[ArtifactUri]:
        """
        Derive download URIs for a version-qualified coordinate without network access.

        Raises:
            ValueError: If the coordinate has no version
        """
        ...

    def download(self, coordinate: Coordinate, extract: bool = True, use_cache: bool = True) -> DownloadResult:
        """Download (and optionally extract) the primary artifact. Never raises."""
        ...

    def package_exists(self, coordinate: Coordinate, use_cache: bool = True) -> bool:
        """
        Check whether the registry knows the package.

        Raises:
            TransportError: On failures other than "not found"
        """
        ...

    def infer_repositories(self, coordinate: Coordinate, document: Optional[Any] = None) -> Set[RepositoryCandidate]:
        """Infer source repository candidates. Never raises."""
        ...
