"""NuGet provider for .NET packages."""

import threading
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple, Union

from oss_resolver._repository import RepositoryInference, best_candidate, rank_candidates
from oss_resolver._versioning import NuGetVersionScheme, VersionOrdering
from oss_resolver.archive import Extractor, extract_archive
from oss_resolver.cache import DocumentCache
from oss_resolver.coordinate import Coordinate, Ecosystem
from oss_resolver.exceptions import NotFoundError, ResolverError, TransportError
from oss_resolver.logging_config import logger
from oss_resolver.metadata import Dependency, Digest, License, NormalizedMetadata, Person, RepositoryCandidate

from .artifacts import ArtifactType, ArtifactUri
from .result import DownloadResult
from .utils import (
    document_exists,
    download_artifact,
    extract_field,
    fetch_json,
    fetch_text,
    parse_timestamp,
)

NUGET_API_URL = "https://api.nuget.org"
NUGET_WEBSITE_URL = "https://www.nuget.org"
NUGET_CONTENT_URL = "https://api.nuget.org/v3-flatcontainer/"
NUGET_REGISTRATION_URL = "https://api.nuget.org/v3/registration5-gz-semver2/"

REGISTRATION_RESOURCE_TYPE = "RegistrationsBaseUrl/Versioned"

# Unlisted packages report this publish date
_UNLISTED_YEAR = 1900


@dataclass(frozen=True)
class NuGetEndpoints:
    """
    NuGet V3 endpoints.

    The registration base is discovered from {api}/v3/index.json; the
    `registration` value is the fallback when discovery fails.
    """

    api: str = NUGET_API_URL
    website: str = NUGET_WEBSITE_URL
    content: str = NUGET_CONTENT_URL
    registration: str = NUGET_REGISTRATION_URL


def _with_slash(url: str) -> str:
    return url if url.endswith("/") else url + "/"


class NuGetProvider:
    """
    Provider for nuget.org (NuGet V3 protocol).

    Versions come from the flat container index, per-version metadata from
    the registration index (paged items fetched on demand) and the repository
    hint from the package's .nuspec.

    Supports: pkg:nuget/* coordinates
    """

    def __init__(
        self,
        cache: Optional[DocumentCache] = None,
        endpoints: Optional[NuGetEndpoints] = None,
        download_dir: Union[str, Path] = ".",
        extractor: Extractor = extract_archive,
        inference: Optional[RepositoryInference] = None,
    ) -> None:
        self._cache = cache or DocumentCache()
        self._endpoints = endpoints or NuGetEndpoints()
        self._download_dir = Path(download_dir)
        self._extractor = extractor
        self._inference = inference or RepositoryInference()
        self._ordering = VersionOrdering(NuGetVersionScheme())
        self._registration_base: Optional[str] = None
        self._registration_lock = threading.Lock()

    @property
    def name(self) -> str:
        return "nuget.org"

    @property
    def ecosystem(self) -> Ecosystem:
        return Ecosystem.NUGET

    @property
    def ordering(self) -> VersionOrdering:
        return self._ordering

    def supports(self, coordinate: Coordinate) -> bool:
        return coordinate.ecosystem == Ecosystem.NUGET

    # URLs

    def registration_base(self) -> str:
        """
        Registration base URL from the service index, memoized per instance.

        Falls back to the configured registration endpoint when the service
        index can not be read.
        """
        with self._registration_lock:
            if self._registration_base is None:
                self._registration_base = self._discover_registration_base()
            return self._registration_base

    def _discover_registration_base(self) -> str:
        index_url = f"{self._endpoints.api.rstrip('/')}/v3/index.json"
        try:
            index = self._cache.get_json(index_url)
            for resource in index.get("resources", []):
                if str(resource.get("@type", "")).lower() == REGISTRATION_RESOURCE_TYPE.lower():
                    base = resource.get("@id")
                    if isinstance(base, str) and base:
                        logger.debug(f"NuGet registration base: {base}")
                        return _with_slash(base)
        except (ResolverError, AttributeError, TypeError) as e:
            logger.debug(f"NuGet service index unavailable ({e}), using default registration base")
        return _with_slash(self._endpoints.registration)

    def _lower_id(self, coordinate: Coordinate) -> str:
        return coordinate.name.lower()

    def _lower_version(self, version: str) -> str:
        return self._ordering.normalize(version).lower()

    def registration_index_url(self, coordinate: Coordinate) -> str:
        return f"{self.registration_base()}{self._lower_id(coordinate)}/index.json"

    def versions_url(self, coordinate: Coordinate) -> str:
        return f"{_with_slash(self._endpoints.content)}{self._lower_id(coordinate)}/index.json"

    def _content_url(self, coordinate: Coordinate, extension: str) -> str:
        lower_id = self._lower_id(coordinate)
        version = self._lower_version(coordinate.version or "")
        content = _with_slash(self._endpoints.content)
        if extension == ".nuspec":
            return f"{content}{lower_id}/{version}/{lower_id}.nuspec"
        return f"{content}{lower_id}/{version}/{lower_id}.{version}{extension}"

    # Operations

    def fetch_metadata(self, coordinate: Coordinate, use_cache: bool = True) -> Dict[str, Any]:
        """
        Fetch the registration index for the package.

        Raises:
            NotFoundError: If the package does not exist
            TransportError: On network failure or an undecodable document
        """
        url = self.registration_index_url(coordinate)
        document = fetch_json(self._cache, url, coordinate, use_cache)
        if not isinstance(document, dict):
            raise TransportError(f"{coordinate}: unexpected registration index", url=url)
        return document

    def enumerate_versions(self, coordinate: Coordinate, use_cache: bool = True) -> List[str]:
        """List versions newest first from the flat container index."""
        url = self.versions_url(coordinate)
        document = fetch_json(self._cache, url, coordinate, use_cache)
        versions = document.get("versions") if isinstance(document, dict) else None
        if not isinstance(versions, list):
            raise TransportError(f"{coordinate}: version index has no versions", url=url)
        return self._ordering.sort_descending(versions)

    def _catalog_entry(self, coordinate: Coordinate, use_cache: bool) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        """
        Find the registration leaf and catalog entry for a version.

        Pages without inlined items are fetched only when their lower/upper
        bounds can contain the version.

        Raises:
            NotFoundError: If no leaf matches the version
        """
        version = coordinate.version or ""
        target = self._ordering.normalize(version).lower()
        index = self.fetch_metadata(coordinate, use_cache)

        for page in index.get("items") or []:
            if not isinstance(page, dict):
                continue
            leaves = page.get("items")
            if leaves is None:
                lower, upper = page.get("lower"), page.get("upper")
                if lower and self._ordering.is_greater(lower, version):
                    continue
                if upper and self._ordering.is_greater(version, upper):
                    continue
                page_url = page.get("@id")
                if not page_url:
                    continue
                page_document = fetch_json(self._cache, page_url, coordinate, use_cache)
                leaves = page_document.get("items") if isinstance(page_document, dict) else None
            for leaf in leaves or []:
                entry = leaf.get("catalogEntry") if isinstance(leaf, dict) else None
                if not isinstance(entry, dict):
                    continue
                if self._ordering.normalize(str(entry.get("version", ""))).lower() == target:
                    return leaf, entry

        raise NotFoundError(str(coordinate), "no such version")

    def resolve_metadata(self, coordinate: Coordinate, use_cache: bool = True) -> NormalizedMetadata:
        """
        Resolve a coordinate into normalized metadata.

        Raises:
            NotFoundError: If the package or the requested version does not exist
            TransportError: On network failure or an undecodable document
        """
        ordered = self.enumerate_versions(coordinate, use_cache)
        latest = ordered[0] if ordered else None

        version = coordinate.version or latest
        if not version:
            raise NotFoundError(str(coordinate), "no published versions")
        resolved = coordinate.with_version(version)

        leaf, entry = self._catalog_entry(resolved, use_cache)
        package_id = entry.get("id") if isinstance(entry.get("id"), str) else coordinate.name

        metadata = NormalizedMetadata(name=package_id, version=version, latest_version=latest)
        self._apply_catalog_entry(metadata, resolved, leaf, entry)

        candidates = self.infer_repositories(resolved, self._fetch_nuspec(resolved, use_cache))
        metadata.repository_candidates = rank_candidates(candidates)
        metadata.source_repository = best_candidate(candidates)

        logger.debug(f"Resolved NuGet metadata for {resolved}")
        return metadata

    def _apply_catalog_entry(
        self,
        metadata: NormalizedMetadata,
        coordinate: Coordinate,
        leaf: Dict[str, Any],
        entry: Dict[str, Any],
    ) -> None:
        website = self._endpoints.website.rstrip("/")
        package_id = metadata.name

        description = entry.get("description") or entry.get("summary")
        if isinstance(description, str):
            metadata.description = description

        homepage = entry.get("projectUrl")
        if isinstance(homepage, str) and homepage.strip():
            metadata.homepage = homepage.strip()

        metadata.authors = extract_field("authors", coordinate, _authors, entry.get("authors")) or []
        metadata.add_keywords(extract_field("tags", coordinate, _tags, entry.get("tags")) or [])
        metadata.licenses = extract_field("license", coordinate, _licenses, entry) or []
        metadata.dependencies = extract_field("dependencyGroups", coordinate, _dependencies, entry) or []
        metadata.deprecated = extract_field("deprecation", coordinate, _deprecation, entry.get("deprecation"))

        published = parse_timestamp(entry.get("published"))
        if published is not None and published.year > _UNLISTED_YEAR:
            metadata.publish_time = published

        package_hash = entry.get("packageHash")
        if isinstance(package_hash, str) and package_hash:
            algorithm = str(entry.get("packageHashAlgorithm") or "sha512").lower()
            metadata.digests = [Digest(algorithm=algorithm, signature=package_hash)]

        content = leaf.get("packageContent") or entry.get("packageContent")
        if not isinstance(content, str) or not content:
            content = self._content_url(coordinate, ".nupkg")
        metadata.source_artifact_uri = content

        metadata.package_uri = f"{website}/packages/{package_id}"
        metadata.package_version_uri = f"{website}/packages/{package_id}/{metadata.version}"
        metadata.package_metadata_uri = self.registration_index_url(coordinate)
        catalog_url = entry.get("@id")
        if isinstance(catalog_url, str):
            metadata.package_version_metadata_uri = catalog_url

    def artifact_locations(self, coordinate: Coordinate) -> List[ArtifactUri]:
        """
        The .nupkg and .nuspec URLs, with lower-cased id and normalized version.

        Raises:
            ValueError: If the coordinate has no version
        """
        if not coordinate.version:
            raise ValueError(f"{coordinate}: a version is required for artifact locations")
        return [
            ArtifactUri(ArtifactType.NUPKG, self._content_url(coordinate, ".nupkg")),
            ArtifactUri(ArtifactType.NUSPEC, self._content_url(coordinate, ".nuspec")),
        ]

    def download(self, coordinate: Coordinate, extract: bool = True, use_cache: bool = True) -> DownloadResult:
        """Download the .nupkg (a zip container)."""
        artifact = self.artifact_locations(coordinate)[0] if coordinate.version else None
        return download_artifact(
            coordinate,
            artifact,
            self._cache,
            self._download_dir,
            self._extractor,
            extract=extract,
            use_cache=use_cache,
        )

    def package_exists(self, coordinate: Coordinate, use_cache: bool = True) -> bool:
        return document_exists(self._cache, self.versions_url(coordinate), coordinate, use_cache)

    # Repository inference

    def _fetch_nuspec(self, coordinate: Coordinate, use_cache: bool = True) -> Optional[str]:
        if not coordinate.version:
            return None
        try:
            return fetch_text(self._cache, self._content_url(coordinate, ".nuspec"), coordinate, use_cache)
        except (NotFoundError, TransportError) as e:
            logger.debug(f"No .nuspec for {coordinate}: {e}")
            return None

    def infer_repositories(self, coordinate: Coordinate, document: Optional[Any] = None) -> Set[RepositoryCandidate]:
        """Infer repositories from the .nuspec (fetched when not given)."""
        if document is None:
            if not coordinate.version:
                try:
                    versions = self.enumerate_versions(coordinate)
                except (NotFoundError, TransportError) as e:
                    logger.debug(f"Can not list versions of {coordinate} for repository inference: {e}")
                    versions = []
                if versions:
                    coordinate = coordinate.with_version(versions[0])
            document = self._fetch_nuspec(coordinate)
        return self._inference.infer(coordinate, document, self)

    def builtin_location(self, coordinate: Coordinate) -> Optional[Coordinate]:
        return None

    def repository_urls(self, coordinate: Coordinate, document: Any) -> List[str]:
        """The url attribute of the .nuspec <repository> element."""
        if not isinstance(document, (str, bytes)) or not document:
            return []
        if isinstance(document, str):
            document = document.lstrip("\ufeff")
        try:
            root = ET.fromstring(document)
        except ET.ParseError as e:
            logger.debug(f"Invalid .nuspec for {coordinate}: {e}")
            return []

        urls = []
        for element in root.iter():
            # Tags carry the nuspec schema namespace, e.g. "{http://...}repository"
            if element.tag.rsplit("}", 1)[-1] == "repository":
                url = element.get("url")
                if url:
                    urls.append(url)
        return urls


def _authors(value: Any) -> List[Person]:
    if isinstance(value, list):
        names = [str(v) for v in value]
    elif isinstance(value, str):
        names = value.split(",")
    else:
        return []
    return [Person(name=n.strip()) for n in names if n.strip()]


def _tags(value: Any) -> List[str]:
    if isinstance(value, list):
        return [str(v) for v in value]
    if isinstance(value, str):
        return value.replace(",", " ").split()
    return []


def _licenses(entry: Dict[str, Any]) -> List[License]:
    expression = entry.get("licenseExpression")
    url = entry.get("licenseUrl")
    if isinstance(expression, str) and expression.strip():
        return [License(name=expression.strip(), url=url or None)]
    if isinstance(url, str) and url.strip():
        return [License(url=url.strip())]
    return []


def _dependencies(entry: Dict[str, Any]) -> List[Dependency]:
    dependencies = []
    for group in entry.get("dependencyGroups") or []:
        framework = group.get("targetFramework") or None
        for dependency in group.get("dependencies") or []:
            package = dependency.get("id")
            if package:
                constraint = dependency.get("range") or None
                dependencies.append(Dependency(package=package, constraint=constraint, framework=framework))
    return dependencies


def _deprecation(value: Any) -> Optional[str]:
    if not isinstance(value, dict):
        return None
    message = value.get("message")
    if isinstance(message, str) and message.strip():
        return message.strip()
    reasons = value.get("reasons")
    if isinstance(reasons, list) and reasons:
        return ", ".join(str(r) for r in reasons)
    return "deprecated"
