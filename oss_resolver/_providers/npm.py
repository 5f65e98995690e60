"""npm registry provider for JavaScript packages."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Union
from urllib.parse import quote

from oss_resolver._repository import RepositoryInference, best_candidate, node_builtin_location, rank_candidates
from oss_resolver._versioning import SemVerScheme, VersionOrdering
from oss_resolver.archive import Extractor, extract_archive
from oss_resolver.cache import DocumentCache
from oss_resolver.coordinate import Coordinate, Ecosystem
from oss_resolver.exceptions import NotFoundError, TransportError
from oss_resolver.logging_config import logger
from oss_resolver.metadata import Dependency, Digest, License, NormalizedMetadata, Person, RepositoryCandidate

from .artifacts import ArtifactType, ArtifactUri
from .result import DownloadResult
from .utils import (
    document_exists,
    download_artifact,
    extract_field,
    fetch_json,
    parse_timestamp,
    person_from,
)

NPM_REGISTRY_URL = "https://registry.npmjs.org"
NPM_WEBSITE_URL = "https://www.npmjs.com"


@dataclass(frozen=True)
class NpmEndpoints:
    """Registry API and website base URLs."""

    registry: str = NPM_REGISTRY_URL
    website: str = NPM_WEBSITE_URL


class NpmProvider:
    """
    Provider for the npm registry.

    One document per package ({registry}/{name}) carries every version, the
    dist-tags and the per-version manifests, so a resolution costs a single
    (cached) request.

    Supports: pkg:npm/* coordinates, scoped or not
    """

    def __init__(
        self,
        cache: Optional[DocumentCache] = None,
        endpoints: Optional[NpmEndpoints] = None,
        download_dir: Union[str, Path] = ".",
        extractor: Extractor = extract_archive,
        inference: Optional[RepositoryInference] = None,
    ) -> None:
        self._cache = cache or DocumentCache()
        self._endpoints = endpoints or NpmEndpoints()
        self._download_dir = Path(download_dir)
        self._extractor = extractor
        self._inference = inference or RepositoryInference()
        self._ordering = VersionOrdering(SemVerScheme())

    @property
    def name(self) -> str:
        return "npm"

    @property
    def ecosystem(self) -> Ecosystem:
        return Ecosystem.NPM

    @property
    def ordering(self) -> VersionOrdering:
        return self._ordering

    def supports(self, coordinate: Coordinate) -> bool:
        return coordinate.ecosystem == Ecosystem.NPM

    # URLs

    @staticmethod
    def _scope(coordinate: Coordinate) -> Optional[str]:
        if not coordinate.namespace:
            return None
        return coordinate.namespace.lstrip("@") or None

    def _encoded_name(self, coordinate: Coordinate) -> str:
        scope = self._scope(coordinate)
        name = quote(coordinate.name, safe="")
        if scope:
            return f"%40{quote(scope, safe='')}/{name}"
        return name

    def package_url(self, coordinate: Coordinate) -> str:
        """Registry URL of the package document."""
        return f"{self._endpoints.registry.rstrip('/')}/{self._encoded_name(coordinate)}"

    # Operations

    def fetch_metadata(self, coordinate: Coordinate, use_cache: bool = True) -> Dict[str, Any]:
        """
        Fetch the full package document.

        Raises:
            NotFoundError: If the package does not exist
            TransportError: On network failure or an undecodable document
        """
        url = self.package_url(coordinate)
        document = fetch_json(self._cache, url, coordinate, use_cache)
        if not isinstance(document, dict):
            raise TransportError(f"{coordinate}: unexpected registry document", url=url)
        return document

    def enumerate_versions(self, coordinate: Coordinate, use_cache: bool = True) -> List[str]:
        """List versions newest first, with dist-tags.latest pinned to the front."""
        document = self.fetch_metadata(coordinate, use_cache)
        return self._ordered_versions(coordinate, document)

    def _ordered_versions(self, coordinate: Coordinate, document: Dict[str, Any]) -> List[str]:
        versions = document.get("versions")
        if not isinstance(versions, dict):
            time = document.get("time")
            if isinstance(time, dict) and "unpublished" in time:
                raise NotFoundError(str(coordinate), "package was unpublished")
            raise TransportError(f"{coordinate}: registry document has no versions", url=self.package_url(coordinate))

        ordered = self._ordering.sort_descending(versions.keys())
        dist_tags = document.get("dist-tags")
        latest = dist_tags.get("latest") if isinstance(dist_tags, dict) else None
        if isinstance(latest, str) and latest:
            return self._ordering.pin_latest(ordered, latest)
        return ordered

    def _version_manifest(self, document: Dict[str, Any], version: str) -> Optional[Dict[str, Any]]:
        versions = document.get("versions") or {}
        manifest = versions.get(version)
        if manifest is None:
            target = self._ordering.normalize(version)
            manifest = next(
                (m for v, m in versions.items() if self._ordering.normalize(v) == target),
                None,
            )
        return manifest if isinstance(manifest, dict) else None

    def resolve_metadata(self, coordinate: Coordinate, use_cache: bool = True) -> NormalizedMetadata:
        """
        Resolve a coordinate into normalized metadata.

        Raises:
            NotFoundError: If the package or the requested version does not exist
            TransportError: On network failure or an undecodable document
        """
        document = self.fetch_metadata(coordinate, use_cache)
        ordered = self._ordered_versions(coordinate, document)
        latest = ordered[0] if ordered else None

        version = coordinate.version or latest
        if not version:
            raise NotFoundError(str(coordinate), "no published versions")
        resolved = coordinate.with_version(version)

        manifest = self._version_manifest(document, version)
        if manifest is None:
            raise NotFoundError(str(resolved), "no such version")

        metadata = NormalizedMetadata(
            name=coordinate.name,
            namespace=coordinate.namespace,
            version=version,
            latest_version=latest,
        )
        self._apply_manifest(metadata, resolved, document, manifest)

        candidates = self.infer_repositories(resolved, document)
        metadata.repository_candidates = rank_candidates(candidates)
        metadata.source_repository = best_candidate(candidates)

        logger.debug(f"Resolved npm metadata for {resolved}")
        return metadata

    def _apply_manifest(
        self,
        metadata: NormalizedMetadata,
        coordinate: Coordinate,
        document: Dict[str, Any],
        manifest: Dict[str, Any],
    ) -> None:
        version = metadata.version
        full_name = coordinate.full_name
        registry = self._endpoints.registry.rstrip("/")
        website = self._endpoints.website.rstrip("/")

        # Version-level description wins, even when empty
        description = manifest.get("description")
        if not isinstance(description, str):
            description = document.get("description")
        metadata.description = description if isinstance(description, str) else None

        homepage = manifest.get("homepage")
        if isinstance(homepage, str) and homepage.strip():
            metadata.homepage = homepage.strip()

        metadata.add_keywords(extract_field("keywords", coordinate, _keywords, manifest) or [])
        metadata.licenses = extract_field("license", coordinate, _licenses, manifest) or []
        metadata.authors = extract_field("author", coordinate, _authors, manifest) or []
        metadata.dependencies = extract_field("dependencies", coordinate, _dependencies, manifest) or []
        metadata.publisher = extract_field("_npmUser", coordinate, person_from, manifest.get("_npmUser"))

        time = document.get("time")
        if isinstance(time, dict):
            metadata.publish_time = parse_timestamp(time.get(version))

        dist = manifest.get("dist")
        if isinstance(dist, dict):
            tarball = dist.get("tarball")
            if isinstance(tarball, str) and tarball:
                metadata.source_artifact_uri = tarball
            metadata.digests = extract_field("dist", coordinate, _digests, dist) or []
            size = dist.get("unpackedSize")
            if isinstance(size, int) and not isinstance(size, bool):
                metadata.unpacked_size = size
        if not metadata.source_artifact_uri:
            metadata.source_artifact_uri = self.artifact_locations(coordinate)[0].uri

        deprecated = manifest.get("deprecated")
        if isinstance(deprecated, str) and deprecated:
            metadata.deprecated = deprecated

        scripts = manifest.get("scripts")
        if isinstance(scripts, dict):
            metadata.scripts = {k: v for k, v in scripts.items() if isinstance(v, str)}

        encoded = self._encoded_name(coordinate)
        metadata.package_uri = f"{website}/package/{full_name}"
        metadata.package_version_uri = f"{website}/package/{full_name}/v/{version}"
        metadata.package_metadata_uri = f"{registry}/{encoded}"
        metadata.package_version_metadata_uri = f"{registry}/{encoded}/{version}"

    def artifact_locations(self, coordinate: Coordinate) -> List[ArtifactUri]:
        """
        Tarball URL for a version; the `repository_url` qualifier overrides the feed.

        Raises:
            ValueError: If the coordinate has no version
        """
        if not coordinate.version:
            raise ValueError(f"{coordinate}: a version is required for artifact locations")

        feed = coordinate.qualifiers.get("repository_url") or self._endpoints.registry
        feed = feed.rstrip("/")
        name = coordinate.name
        scope = self._scope(coordinate)
        prefix = f"{feed}/%40{scope}/{name}" if scope else f"{feed}/{name}"
        return [ArtifactUri(ArtifactType.TARBALL, f"{prefix}/-/{name}-{coordinate.version}.tgz")]

    def download(self, coordinate: Coordinate, extract: bool = True, use_cache: bool = True) -> DownloadResult:
        """Download the version tarball."""
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
        return document_exists(self._cache, self.package_url(coordinate), coordinate, use_cache)

    # Repository inference

    def infer_repositories(self, coordinate: Coordinate, document: Optional[Any] = None) -> Set[RepositoryCandidate]:
        """Infer repositories from the package document (fetched when not given)."""
        if document is None and node_builtin_location(coordinate) is None:
            try:
                document = self.fetch_metadata(coordinate)
            except (NotFoundError, TransportError) as e:
                logger.debug(f"No registry document for repository inference of {coordinate}: {e}")
        return self._inference.infer(coordinate, document, self)

    def builtin_location(self, coordinate: Coordinate) -> Optional[Coordinate]:
        return node_builtin_location(coordinate)

    def repository_urls(self, coordinate: Coordinate, document: Any) -> List[str]:
        """The `repository` field of the version manifest (latest when unversioned)."""
        if not isinstance(document, dict):
            return []
        version = coordinate.version
        if not version:
            dist_tags = document.get("dist-tags") or {}
            version = dist_tags.get("latest")
        manifest = self._version_manifest(document, version) if version else None
        if manifest is None:
            return []

        repository = manifest.get("repository")
        if isinstance(repository, str):
            return [repository]
        if isinstance(repository, dict):
            repo_type = repository.get("type")
            url = repository.get("url")
            if repo_type and str(repo_type).lower() != "git":
                return []
            if isinstance(url, str) and url:
                return [url]
        return []


def _keywords(manifest: Dict[str, Any]) -> List[str]:
    keywords = manifest.get("keywords")
    if isinstance(keywords, str):
        return keywords.replace(",", " ").split()
    if isinstance(keywords, list):
        return [k for k in keywords if isinstance(k, str)]
    return []


def _license_entry(value: Any) -> Optional[License]:
    if isinstance(value, str) and value.strip():
        return License(name=value.strip())
    if isinstance(value, dict):
        name = value.get("type") or value.get("name")
        url = value.get("url")
        if name or url:
            return License(name=name or None, url=url or None)
    return None


def _licenses(manifest: Dict[str, Any]) -> List[License]:
    licenses = []
    entry = _license_entry(manifest.get("license"))
    if entry:
        licenses.append(entry)
    legacy = manifest.get("licenses")
    if isinstance(legacy, list):
        for item in legacy:
            entry = _license_entry(item)
            if entry and entry not in licenses:
                licenses.append(entry)
    return licenses


def _authors(manifest: Dict[str, Any]) -> List[Person]:
    authors = []
    author = person_from(manifest.get("author"))
    if author:
        authors.append(author)
    contributors = manifest.get("contributors")
    if isinstance(contributors, list):
        for contributor in contributors:
            person = person_from(contributor)
            if person and person not in authors:
                authors.append(person)
    return authors


def _dependencies(manifest: Dict[str, Any]) -> List[Dependency]:
    dependencies = manifest.get("dependencies")
    if not isinstance(dependencies, dict):
        return []
    return [Dependency(package=name, constraint=str(constraint)) for name, constraint in dependencies.items()]


def _digests(dist: Dict[str, Any]) -> List[Digest]:
    digests = []
    integrity = dist.get("integrity")
    if isinstance(integrity, str) and "-" in integrity:
        # Subresource Integrity: "<algorithm>-<base64 digest>"
        algorithm, signature = integrity.split("-", 1)
        digests.append(Digest(algorithm=algorithm, signature=signature))
    shasum = dist.get("shasum")
    if isinstance(shasum, str) and shasum:
        digests.append(Digest(algorithm="sha1", signature=shasum))
    return digests
