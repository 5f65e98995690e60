"""Resolver facade dispatching coordinates to ecosystem providers."""

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, Iterable, List, Optional, Set, Union

from packageurl import PackageURL

from ._providers import (
    ArtifactUri,
    DownloadResult,
    HackageProvider,
    NpmProvider,
    NuGetProvider,
    Provider,
    ProviderRegistry,
    PyPIProvider,
)
from ._repository import RepositoryInference
from .archive import Extractor, extract_archive
from .cache import DocumentCache
from .config import ResolverConfig
from .coordinate import Coordinate, as_coordinate
from .exceptions import ParseError, ResolverError, UnsupportedEcosystemError
from .logging_config import logger
from .metadata import NormalizedMetadata, RepositoryCandidate

CoordinateLike = Union[str, PackageURL, Coordinate]


def create_default_registry(
    config: Optional[ResolverConfig] = None,
    cache: Optional[DocumentCache] = None,
    extractor: Extractor = extract_archive,
) -> ProviderRegistry:
    """
    Create a ProviderRegistry with the standard providers.

    All providers share one DocumentCache and one inference engine; endpoint
    and download settings come from the configuration.

    Returns:
        Registry serving npm, NuGet, Hackage and PyPI
    """
    config = config or ResolverConfig()
    cache = cache or DocumentCache(timeout=config.timeout)
    inference = RepositoryInference()
    common = {
        "cache": cache,
        "download_dir": config.download_dir,
        "extractor": extractor,
        "inference": inference,
    }

    registry = ProviderRegistry()
    registry.register(NpmProvider(endpoints=config.npm, **common))
    registry.register(NuGetProvider(endpoints=config.nuget, **common))
    registry.register(HackageProvider(endpoints=config.hackage, **common))
    registry.register(PyPIProvider(endpoints=config.pypi, **common))
    return registry


def parse_coordinate(value: CoordinateLike) -> Coordinate:
    """
    Accept a Coordinate, PackageURL or purl text.

    Raises:
        ParseError: If the text is not a valid package-url
        UnsupportedEcosystemError: If the purl type is not a known ecosystem
    """
    try:
        return as_coordinate(value)
    except ValueError as e:
        raise ParseError(f"{value}: invalid package-url: {e}") from e
    except UnsupportedEcosystemError as e:
        if e.coordinate:
            raise
        raise UnsupportedEcosystemError(e.ecosystem, str(value)) from None


class Resolver:
    """
    Entry point for resolving package coordinates.

    The Resolver only dispatches: it looks up the provider registered for a
    coordinate's ecosystem and forwards the call.

    Example:
        with Resolver() as resolver:
            metadata = resolver.resolve("pkg:npm/lodash@4.17.15")
            print(metadata.to_json())

            results = resolver.resolve_all(["pkg:pypi/requests", "pkg:nuget/Newtonsoft.Json"])
    """

    def __init__(
        self,
        registry: Optional[ProviderRegistry] = None,
        config: Optional[ResolverConfig] = None,
        cache: Optional[DocumentCache] = None,
    ) -> None:
        """
        Initialize the Resolver.

        Args:
            registry: Optional ProviderRegistry. If not provided, creates
                      the default registry over the cache.
            config: Optional configuration (defaults apply when omitted)
            cache: Optional shared DocumentCache
        """
        self._config = config or ResolverConfig()
        self._cache = cache or DocumentCache(timeout=self._config.timeout)
        self._registry = registry or create_default_registry(self._config, self._cache)

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    @property
    def cache(self) -> DocumentCache:
        return self._cache

    @property
    def config(self) -> ResolverConfig:
        return self._config

    def close(self) -> None:
        """Close the HTTP session."""
        self._cache.close()

    def __enter__(self) -> "Resolver":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def provider_for(self, coordinate: CoordinateLike) -> Provider:
        """
        Raises:
            UnsupportedEcosystemError: If no provider serves the ecosystem
        """
        return self._registry.get_provider_for(parse_coordinate(coordinate))

    def resolve(self, coordinate: CoordinateLike, use_cache: bool = True) -> NormalizedMetadata:
        """
        Resolve a coordinate into normalized metadata.

        Args:
            coordinate: Coordinate or purl string (e.g. "pkg:npm/lodash@4.17.15")
            use_cache: False forces fresh registry requests

        Raises:
            UnsupportedEcosystemError: If no provider serves the ecosystem
            NotFoundError: If the package or version does not exist
            TransportError: On network failure or an undecodable document
        """
        coordinate = parse_coordinate(coordinate)
        provider = self._registry.get_provider_for(coordinate)
        logger.debug(f"Resolving {coordinate} with {provider.name}")
        return provider.resolve_metadata(coordinate, use_cache=use_cache)

    def enumerate_versions(self, coordinate: CoordinateLike, use_cache: bool = True) -> List[str]:
        coordinate = parse_coordinate(coordinate)
        return self._registry.get_provider_for(coordinate).enumerate_versions(coordinate, use_cache=use_cache)

    def artifact_locations(self, coordinate: CoordinateLike) -> List[ArtifactUri]:
        coordinate = parse_coordinate(coordinate)
        return self._registry.get_provider_for(coordinate).artifact_locations(coordinate)

    def download(self, coordinate: CoordinateLike, extract: bool = True, use_cache: bool = True) -> DownloadResult:
        coordinate = parse_coordinate(coordinate)
        provider = self._registry.get_provider_for(coordinate)
        return provider.download(coordinate, extract=extract, use_cache=use_cache)

    def package_exists(self, coordinate: CoordinateLike, use_cache: bool = True) -> bool:
        coordinate = parse_coordinate(coordinate)
        return self._registry.get_provider_for(coordinate).package_exists(coordinate, use_cache=use_cache)

    def infer_repositories(self, coordinate: CoordinateLike) -> Set[RepositoryCandidate]:
        coordinate = parse_coordinate(coordinate)
        return self._registry.get_provider_for(coordinate).infer_repositories(coordinate)

    def resolve_all(
        self,
        coordinates: Iterable[CoordinateLike],
        use_cache: bool = True,
        max_workers: Optional[int] = None,
    ) -> Dict[str, Union[NormalizedMetadata, ResolverError]]:
        """
        Resolve independent coordinates concurrently.

        Failures do not stop the batch: each coordinate maps to either its
        metadata or the ResolverError it raised.

        Args:
            coordinates: Coordinates or purl strings
            use_cache: False forces fresh registry requests
            max_workers: Thread count (configuration default when omitted)

        Returns:
            Dictionary mapping the input string to metadata or error
        """
        keys = [c if isinstance(c, str) else str(c) for c in coordinates]
        results: Dict[str, Union[NormalizedMetadata, ResolverError]] = {}
        if not keys:
            return results

        workers = max_workers or self._config.max_workers
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {executor.submit(self.resolve, key, use_cache): key for key in dict.fromkeys(keys)}

            for future in as_completed(futures):
                key = futures[future]
                try:
                    results[key] = future.result()
                except ResolverError as e:
                    logger.warning(f"Failed to resolve {key}: {e}")
                    results[key] = e

        resolved = sum(1 for r in results.values() if isinstance(r, NormalizedMetadata))
        logger.info(f"Resolved {resolved}/{len(results)} coordinates")
        return results
