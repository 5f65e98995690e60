"""PyPI provider for Python packages."""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Union

from packaging.requirements import InvalidRequirement, Requirement

from oss_resolver._repository import RepositoryInference, best_candidate, rank_candidates
from oss_resolver._versioning import Pep440Scheme, VersionOrdering
from oss_resolver.archive import Extractor, extract_archive
from oss_resolver.cache import DocumentCache
from oss_resolver.coordinate import Coordinate, Ecosystem
from oss_resolver.exceptions import NotFoundError, TransportError
from oss_resolver.logging_config import logger
from oss_resolver.metadata import Dependency, Digest, License, NormalizedMetadata, Person, RepositoryCandidate

from .artifacts import ArtifactType, ArtifactUri
from .result import DownloadResult
from .trove import license_names, parse_classifiers
from .utils import (
    document_exists,
    download_artifact,
    extract_field,
    fetch_json,
    parse_author_string,
    parse_timestamp,
)

PYPI_URL = "https://pypi.org"
PYPI_FILES_URL = "https://files.pythonhosted.org"

# Longer "license" values are usually the full license text
MAX_LICENSE_NAME_LENGTH = 100

# project_urls labels naming the source repository, in preference order.
# Matched exactly against normalize_label(label)
REPOSITORY_LABELS = ("source", "sourcecode", "repository", "code", "github", "gitlab")

# Digest algorithms in the order they are reported
DIGEST_ALGORITHMS = ("sha256", "blake2b_256", "md5")


@dataclass(frozen=True)
class PyPIEndpoints:
    """JSON API / website base and the file host for source distributions."""

    api: str = PYPI_URL
    files: str = PYPI_FILES_URL


class PyPIProvider:
    """
    Provider for PyPI (Python Package Index).

    The package document ({api}/pypi/{name}/json) lists every release and
    describes the latest one; other versions need a second, version-specific
    request.

    Supports: pkg:pypi/* coordinates
    """

    def __init__(
        self,
        cache: Optional[DocumentCache] = None,
        endpoints: Optional[PyPIEndpoints] = None,
        download_dir: Union[str, Path] = ".",
        extractor: Extractor = extract_archive,
        inference: Optional[RepositoryInference] = None,
    ) -> None:
        self._cache = cache or DocumentCache()
        self._endpoints = endpoints or PyPIEndpoints()
        self._download_dir = Path(download_dir)
        self._extractor = extractor
        self._inference = inference or RepositoryInference()
        self._ordering = VersionOrdering(Pep440Scheme())

    @property
    def name(self) -> str:
        return "pypi.org"

    @property
    def ecosystem(self) -> Ecosystem:
        return Ecosystem.PYPI

    @property
    def ordering(self) -> VersionOrdering:
        return self._ordering

    def supports(self, coordinate: Coordinate) -> bool:
        return coordinate.ecosystem == Ecosystem.PYPI

    @property
    def _api(self) -> str:
        return self._endpoints.api.rstrip("/")

    def package_url(self, coordinate: Coordinate) -> str:
        return f"{self._api}/pypi/{coordinate.name}/json"

    def version_url(self, coordinate: Coordinate, version: str) -> str:
        return f"{self._api}/pypi/{coordinate.name}/{version}/json"

    def _fetch(self, url: str, coordinate: Coordinate, use_cache: bool) -> Dict[str, Any]:
        document = fetch_json(self._cache, url, coordinate, use_cache)
        if not isinstance(document, dict) or not isinstance(document.get("info"), dict):
            raise TransportError(f"{coordinate}: unexpected PyPI document", url=url)
        return document

    def fetch_metadata(self, coordinate: Coordinate, use_cache: bool = True) -> Dict[str, Any]:
        """
        Fetch the package document (describes the latest release).

        Raises:
            NotFoundError: If the package does not exist
            TransportError: On network failure or an undecodable document
        """
        return self._fetch(self.package_url(coordinate), coordinate, use_cache)

    def enumerate_versions(self, coordinate: Coordinate, use_cache: bool = True) -> List[str]:
        """List releases newest first, with info.version pinned to the front."""
        return self._ordered_versions(self.fetch_metadata(coordinate, use_cache))

    def _ordered_versions(self, document: Dict[str, Any]) -> List[str]:
        releases = document.get("releases")
        ordered = self._ordering.sort_descending(releases.keys() if isinstance(releases, dict) else [])
        declared = document["info"].get("version")
        if isinstance(declared, str) and declared:
            return self._ordering.pin_latest(ordered, declared)
        return ordered

    def resolve_metadata(self, coordinate: Coordinate, use_cache: bool = True) -> NormalizedMetadata:
        """
        Resolve a coordinate into normalized metadata.

        Raises:
            NotFoundError: If the package or the requested version does not exist
            TransportError: On network failure or an undecodable document
        """
        document = self.fetch_metadata(coordinate, use_cache)
        ordered = self._ordered_versions(document)
        latest = ordered[0] if ordered else None

        version = coordinate.version or latest
        if not version:
            raise NotFoundError(str(coordinate), "no published versions")
        resolved = coordinate.with_version(version)

        target = self._ordering.normalize(version)
        if self._ordering.normalize(str(document["info"].get("version", ""))) == target:
            version_document = document
        elif any(self._ordering.normalize(v) == target for v in ordered):
            version_document = self._fetch(self.version_url(coordinate, version), resolved, use_cache)
        else:
            raise NotFoundError(str(resolved), "no such version")

        info = version_document["info"]
        metadata = NormalizedMetadata(
            name=info.get("name") or coordinate.name,
            version=version,
            latest_version=latest,
        )
        self._apply_info(metadata, resolved, info)
        self._apply_files(metadata, resolved, version_document.get("urls"))

        candidates = self.infer_repositories(resolved, version_document)
        metadata.repository_candidates = rank_candidates(candidates)
        metadata.source_repository = best_candidate(candidates)

        logger.debug(f"Resolved PyPI metadata for {resolved}")
        return metadata

    def _apply_info(self, metadata: NormalizedMetadata, coordinate: Coordinate, info: Dict[str, Any]) -> None:
        summary = info.get("summary")
        if isinstance(summary, str):
            metadata.description = summary

        project_urls = info.get("project_urls") if isinstance(info.get("project_urls"), dict) else {}
        homepage = info.get("home_page")
        if not homepage:
            homepage = next(
                (url for label, url in project_urls.items() if label.lower().replace(" ", "") in ("homepage", "home")),
                None,
            )
        if isinstance(homepage, str) and homepage.strip():
            metadata.homepage = homepage.strip()

        metadata.add_keywords(extract_field("keywords", coordinate, _keywords, info.get("keywords")) or [])
        classifiers = info.get("classifiers") or []
        metadata.classifiers = extract_field("classifiers", coordinate, parse_classifiers, classifiers) or []
        metadata.licenses = extract_field("license", coordinate, _licenses, info, metadata.classifiers) or []
        metadata.authors = extract_field("author", coordinate, _authors, info) or []
        requires_dist = info.get("requires_dist")
        dependencies = extract_field("requires_dist", coordinate, _dependencies, coordinate, requires_dist)
        metadata.dependencies = dependencies or []

        name = metadata.name
        metadata.package_uri = f"{self._api}/project/{name}/"
        metadata.package_version_uri = f"{self._api}/project/{name}/{metadata.version}/"
        metadata.package_metadata_uri = self.package_url(coordinate)
        metadata.package_version_metadata_uri = self.version_url(coordinate, metadata.version)

    def _apply_files(self, metadata: NormalizedMetadata, coordinate: Coordinate, files: Any) -> None:
        files = [f for f in files if isinstance(f, dict)] if isinstance(files, list) else []
        sdist = next((f for f in files if f.get("packagetype") == "sdist"), None)

        if sdist is not None and sdist.get("url"):
            metadata.source_artifact_uri = sdist["url"]
        else:
            metadata.source_artifact_uri = self.artifact_locations(coordinate)[0].uri

        if sdist is not None:
            digests = sdist.get("digests") if isinstance(sdist.get("digests"), dict) else {}
            metadata.digests = [
                Digest(algorithm=algorithm, signature=digests[algorithm])
                for algorithm in DIGEST_ALGORITHMS
                if digests.get(algorithm)
            ]

        # Publish time: sdist upload, else the earliest file upload
        candidates = [sdist] if sdist is not None else files
        times = [t for t in (_upload_time(f) for f in candidates) if t is not None]
        if times:
            metadata.publish_time = min(times)

        # A release is yanked when all of its files are
        if files and all(f.get("yanked") for f in files):
            metadata.deprecated = files[0].get("yanked_reason") or "yanked"

    def artifact_locations(self, coordinate: Coordinate) -> List[ArtifactUri]:
        """
        Conventional sdist URL on the file host.

        Raises:
            ValueError: If the coordinate has no version
        """
        if not coordinate.version:
            raise ValueError(f"{coordinate}: a version is required for artifact locations")
        name = coordinate.name
        files = self._endpoints.files.rstrip("/")
        uri = f"{files}/packages/source/{name[0]}/{name}/{name}-{coordinate.version}.tar.gz"
        return [ArtifactUri(ArtifactType.SOURCE_TARBALL, uri)]

    def download(self, coordinate: Coordinate, extract: bool = True, use_cache: bool = True) -> DownloadResult:
        """Download the source distribution."""
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
        """Infer repositories from the project URLs (document fetched when not given)."""
        if document is None:
            try:
                if coordinate.version:
                    url = self.version_url(coordinate, coordinate.version)
                else:
                    url = self.package_url(coordinate)
                document = self._fetch(url, coordinate, use_cache=True)
            except (NotFoundError, TransportError) as e:
                logger.debug(f"No PyPI document for repository inference of {coordinate}: {e}")
        return self._inference.infer(coordinate, document, self)

    def builtin_location(self, coordinate: Coordinate) -> Optional[Coordinate]:
        return None

    def repository_urls(self, coordinate: Coordinate, document: Any) -> List[str]:
        """project_urls entries labelled source / repository / code."""
        if not isinstance(document, dict):
            return []
        project_urls = (document.get("info") or {}).get("project_urls")
        if not isinstance(project_urls, dict):
            return []
        labelled: Dict[str, List[str]] = {}
        for label, url in project_urls.items():
            if isinstance(label, str) and isinstance(url, str):
                labelled.setdefault(normalize_label(label), []).append(url)

        urls = []
        for key in REPOSITORY_LABELS:
            for url in labelled.get(key, []):
                if url not in urls:
                    urls.append(url)
        return urls


def normalize_label(label: str) -> str:
    """Lower-cased project_urls label without spaces, dashes or underscores ("Source Code" -> "sourcecode")."""
    return "".join(c for c in label.lower() if c not in " -_")


def _keywords(value: Any) -> List[str]:
    if isinstance(value, list):
        return [str(v) for v in value]
    if not isinstance(value, str):
        return []
    if "," in value:
        return value.split(",")
    return value.split()


def _licenses(info: Dict[str, Any], classifiers: List[Any]) -> List[License]:
    expression = info.get("license_expression")
    if isinstance(expression, str) and expression.strip():
        return [License(name=expression.strip())]

    licenses = []
    text = info.get("license")
    if isinstance(text, str) and text.strip() and "\n" not in text.strip() and len(text) <= MAX_LICENSE_NAME_LENGTH:
        licenses.append(License(name=text.strip()))
    for name in license_names(classifiers):
        entry = License(name=name)
        if entry not in licenses:
            licenses.append(entry)
    return licenses


def _people(names: Any, emails: Any) -> List[Person]:
    """Combine a name field and an email field ("Name <email>, ..." allowed)."""
    people = []
    if isinstance(emails, str) and emails.strip():
        for part in emails.split(","):
            name, email = parse_author_string(part)
            if name or email:
                people.append(Person(name=name, email=email))
    if isinstance(names, str) and names.strip():
        if len(people) == 1 and people[0].name is None:
            people[0] = Person(name=names.strip(), email=people[0].email)
        elif not any(p.name == names.strip() for p in people):
            people.insert(0, Person(name=names.strip()))
    return people


def _authors(info: Dict[str, Any]) -> List[Person]:
    authors = _people(info.get("author"), info.get("author_email"))
    for maintainer in _people(info.get("maintainer"), info.get("maintainer_email")):
        if maintainer not in authors:
            authors.append(maintainer)
    return authors


def _dependencies(coordinate: Coordinate, requires_dist: Any) -> List[Dependency]:
    if not isinstance(requires_dist, list):
        return []
    dependencies = []
    for line in requires_dist:
        try:
            requirement = Requirement(line)
        except InvalidRequirement as e:
            logger.debug(f"Skipping invalid requirement of {coordinate}: {line!r} ({e})")
            continue
        parts = [str(requirement.specifier), str(requirement.marker) if requirement.marker else ""]
        constraint = "; ".join(p for p in parts if p) or None
        dependencies.append(Dependency(package=requirement.name, constraint=constraint))
    return dependencies


def _upload_time(file_info: Dict[str, Any]) -> Optional[datetime]:
    return parse_timestamp(file_info.get("upload_time_iso_8601") or file_info.get("upload_time"))
