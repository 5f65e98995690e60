"""Hackage provider for Haskell packages."""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Union
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from oss_resolver._repository import RepositoryInference, best_candidate, rank_candidates
from oss_resolver._versioning import DottedNumericScheme, VersionOrdering
from oss_resolver.archive import Extractor, extract_archive
from oss_resolver.cache import DocumentCache
from oss_resolver.coordinate import Coordinate, Ecosystem
from oss_resolver.exceptions import NotFoundError, TransportError
from oss_resolver.logging_config import logger
from oss_resolver.metadata import Dependency, License, NormalizedMetadata, Person, RepositoryCandidate

from .artifacts import ArtifactType, ArtifactUri
from .result import DownloadResult
from .utils import (
    document_exists,
    download_artifact,
    extract_field,
    fetch_text,
    parse_author_string,
    parse_timestamp,
)

HACKAGE_URL = "https://hackage.haskell.org"

_ISO_TIMESTAMP = re.compile(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}(?::\d{2})?(?:\.\d+)?(?:Z|[+-]\d{2}:?\d{2})?")
_CONSTRAINT = re.compile(r"^\s*\(([^)]*)\)")
_DEPENDENCY_HREF = re.compile(r"^/package/([^/]+)$")


@dataclass(frozen=True)
class HackageEndpoints:
    base: str = HACKAGE_URL


class HackageProvider:
    """
    Provider for Hackage.

    Hackage has no JSON package API with the fields we need, so metadata is
    scraped from the HTML package pages with BeautifulSoup. The unversioned
    page lists every version; the versioned page carries that version's
    properties table.

    Supports: pkg:hackage/* coordinates
    """

    def __init__(
        self,
        cache: Optional[DocumentCache] = None,
        endpoints: Optional[HackageEndpoints] = None,
        download_dir: Union[str, Path] = ".",
        extractor: Extractor = extract_archive,
        inference: Optional[RepositoryInference] = None,
    ) -> None:
        self._cache = cache or DocumentCache()
        self._endpoints = endpoints or HackageEndpoints()
        self._download_dir = Path(download_dir)
        self._extractor = extractor
        self._inference = inference or RepositoryInference()
        self._ordering = VersionOrdering(DottedNumericScheme())

    @property
    def name(self) -> str:
        return "hackage.haskell.org"

    @property
    def ecosystem(self) -> Ecosystem:
        return Ecosystem.HACKAGE

    @property
    def ordering(self) -> VersionOrdering:
        return self._ordering

    def supports(self, coordinate: Coordinate) -> bool:
        return coordinate.ecosystem == Ecosystem.HACKAGE

    @property
    def _base(self) -> str:
        return self._endpoints.base.rstrip("/")

    def package_url(self, coordinate: Coordinate) -> str:
        """Package page; the versioned page when the coordinate has a version."""
        if coordinate.version:
            return f"{self._base}/package/{coordinate.name}-{coordinate.version}"
        return f"{self._base}/package/{coordinate.name}"

    def fetch_metadata(self, coordinate: Coordinate, use_cache: bool = True) -> BeautifulSoup:
        """
        Fetch and parse the package page.

        Raises:
            NotFoundError: If the package (or version) does not exist
            TransportError: On network failure
        """
        html = fetch_text(self._cache, self.package_url(coordinate), coordinate, use_cache)
        return BeautifulSoup(html, "html.parser")

    def enumerate_versions(self, coordinate: Coordinate, use_cache: bool = True) -> List[str]:
        """List versions newest first from the "Versions" row of the package page."""
        unversioned = coordinate.with_version(None)
        soup = self.fetch_metadata(unversioned, use_cache)
        cell = _versions_cell(soup)
        if cell is None:
            raise TransportError(
                f"{coordinate}: package page has no versions row",
                url=self.package_url(unversioned),
            )

        versions = []
        for element in cell.select("a, strong"):
            text = element.get_text().strip().lower()
            if not text:
                continue
            # The row also links to RSS and "info" pages; keep only version links
            if element.name == "a" and not str(element.get("href", "")).endswith(f"{coordinate.name}-{text}"):
                continue
            versions.append(text)
        return self._ordering.sort_descending(versions)

    def resolve_metadata(self, coordinate: Coordinate, use_cache: bool = True) -> NormalizedMetadata:
        """
        Resolve a coordinate into normalized metadata.

        Raises:
            NotFoundError: If the package or the requested version does not exist
            TransportError: On network failure
        """
        ordered = self.enumerate_versions(coordinate, use_cache)
        latest = ordered[0] if ordered else None

        version = coordinate.version or latest
        if not version:
            raise NotFoundError(str(coordinate), "no published versions")
        resolved = coordinate.with_version(version)

        target = self._ordering.normalize(version)
        if not any(self._ordering.normalize(v) == target for v in ordered):
            raise NotFoundError(str(resolved), "no such version")

        soup = self.fetch_metadata(resolved, use_cache)
        properties = _properties(soup)

        metadata = NormalizedMetadata(name=coordinate.name, version=version, latest_version=latest)
        self._apply_properties(metadata, resolved, soup, properties)

        candidates = self.infer_repositories(resolved, soup)
        metadata.repository_candidates = rank_candidates(candidates)
        metadata.source_repository = best_candidate(candidates)

        logger.debug(f"Resolved Hackage metadata for {resolved}")
        return metadata

    def _apply_properties(
        self,
        metadata: NormalizedMetadata,
        coordinate: Coordinate,
        soup: BeautifulSoup,
        properties: Dict[str, Tag],
    ) -> None:
        synopsis = soup.select_one("#content h1 small")
        if synopsis is not None:
            metadata.description = synopsis.get_text().strip()

        metadata.licenses = extract_field("license", coordinate, self._licenses, properties.get("license")) or []

        authors = extract_field("author", coordinate, _people, properties.get("author")) or []
        for maintainer in extract_field("maintainer", coordinate, _people, properties.get("maintainer")) or []:
            if maintainer not in authors:
                authors.append(maintainer)
        metadata.authors = authors

        category = properties.get("category")
        if category is not None:
            metadata.add_keywords(category.get_text().split(","))

        homepage = properties.get("home page")
        if homepage is not None:
            link = homepage.find("a")
            text = link.get("href") if link is not None else homepage.get_text().strip()
            if text:
                metadata.homepage = str(text)

        uploaded = properties.get("uploaded")
        if uploaded is not None:
            metadata.publisher = extract_field("uploader", coordinate, _uploader, uploaded, self._base)
            metadata.publish_time = extract_field("upload time", coordinate, _upload_time, uploaded)

        dependencies = properties.get("dependencies")
        metadata.dependencies = extract_field("dependencies", coordinate, _dependencies, dependencies) or []

        name, version = coordinate.name, coordinate.version
        artifacts = self.artifact_locations(coordinate)
        metadata.source_artifact_uri = artifacts[0].uri
        metadata.package_uri = f"{self._base}/package/{name}"
        metadata.package_metadata_uri = metadata.package_uri
        metadata.package_version_uri = f"{self._base}/package/{name}-{version}"
        metadata.package_version_metadata_uri = artifacts[1].uri

    def _licenses(self, cell: Optional[Tag]) -> List[License]:
        if cell is None:
            return []
        name = cell.get_text().strip()
        link = cell.find("a")
        url = urljoin(self._base + "/", str(link["href"])) if link is not None and link.get("href") else None
        if not name and not url:
            return []
        return [License(name=name or None, url=url)]

    def artifact_locations(self, coordinate: Coordinate) -> List[ArtifactUri]:
        """
        Source tarball and .cabal file URLs.

        Raises:
            ValueError: If the coordinate has no version
        """
        if not coordinate.version:
            raise ValueError(f"{coordinate}: a version is required for artifact locations")
        package_id = f"{coordinate.name}-{coordinate.version}"
        return [
            ArtifactUri(ArtifactType.SOURCE_TARBALL, f"{self._base}/package/{package_id}/{package_id}.tar.gz"),
            ArtifactUri(ArtifactType.CABAL, f"{self._base}/package/{package_id}/{coordinate.name}.cabal"),
        ]

    def download(self, coordinate: Coordinate, extract: bool = True, use_cache: bool = True) -> DownloadResult:
        """Download the source tarball."""
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
        url = self.package_url(coordinate.with_version(None))
        return document_exists(self._cache, url, coordinate, use_cache)

    # Repository inference

    def infer_repositories(self, coordinate: Coordinate, document: Optional[Any] = None) -> Set[RepositoryCandidate]:
        """Infer repositories from the package page (fetched when not given)."""
        if document is None:
            try:
                document = self.fetch_metadata(coordinate)
            except (NotFoundError, TransportError) as e:
                logger.debug(f"No package page for repository inference of {coordinate}: {e}")
        return self._inference.infer(coordinate, document, self)

    def builtin_location(self, coordinate: Coordinate) -> Optional[Coordinate]:
        return None

    def repository_urls(self, coordinate: Coordinate, document: Any) -> List[str]:
        """Links in the "Source repo" row of the package page."""
        if not isinstance(document, BeautifulSoup):
            return []
        cell = _properties(document).get("source repo")
        if cell is None:
            return []
        return [str(a["href"]) for a in cell.find_all("a") if a.get("href")]


def _versions_cell(soup: BeautifulSoup) -> Optional[Tag]:
    for th in soup.find_all("th"):
        if th.get_text().strip().startswith("Versions"):
            return th.find_next_sibling("td")
    return None


def _properties(soup: BeautifulSoup) -> Dict[str, Tag]:
    """Map lower-cased property labels ("license", "source repo", ...) to their cells."""
    properties = {}
    for row in soup.find_all("tr"):
        th = row.find("th")
        td = row.find("td")
        if th is None or td is None:
            continue
        label = " ".join(th.get_text().split()).lower()
        properties.setdefault(label, td)
    return properties


def _people(cell: Optional[Tag]) -> List[Person]:
    if cell is None:
        return []
    people = []
    for part in cell.get_text().split(","):
        name, email = parse_author_string(part)
        if name or email:
            people.append(Person(name=name, email=email))
    return people


def _uploader(cell: Tag, base: str) -> Optional[Person]:
    for link in cell.find_all("a"):
        href = str(link.get("href", ""))
        if href.startswith("/user/"):
            return Person(name=link.get_text().strip(), url=urljoin(base + "/", href))
    return None


def _upload_time(cell: Tag) -> Optional[datetime]:
    text = " ".join(cell.get_text().split())
    match = _ISO_TIMESTAMP.search(text)
    if match:
        return parse_timestamp(match.group(0))
    # Older pages: "by someone at Mon Dec 4 19:28:39 UTC 2023"
    if " at " in text:
        parsed = datetime.strptime(text.rsplit(" at ", 1)[1], "%a %b %d %H:%M:%S %Z %Y")
        return parsed.replace(tzinfo=timezone.utc)
    return None


def _dependencies(cell: Optional[Tag]) -> List[Dependency]:
    if cell is None:
        return []
    dependencies = []
    for link in cell.find_all("a"):
        if not _DEPENDENCY_HREF.match(str(link.get("href", ""))):
            continue
        package = link.get_text().strip()
        constraint = None
        following = link.next_sibling
        if isinstance(following, str):
            match = _CONSTRAINT.match(following)
            if match:
                constraint = match.group(1).strip() or None
        dependency = Dependency(package=package, constraint=constraint)
        if package and dependency not in dependencies:
            dependencies.append(dependency)
    return dependencies
