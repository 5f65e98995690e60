"""Shared utilities for ecosystem providers."""

import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Optional, Tuple, TypeVar, Union

from oss_resolver.archive import Extractor
from oss_resolver.cache import DocumentCache
from oss_resolver.coordinate import Coordinate
from oss_resolver.exceptions import FetchError, NotFoundError, ParseError, TransportError
from oss_resolver.logging_config import logger
from oss_resolver.metadata import Person

from .artifacts import ArtifactUri
from .result import DownloadResult, DownloadState

T = TypeVar("T")


def _translate_fetch_error(error: FetchError, coordinate: Coordinate) -> Exception:
    if error.is_not_found:
        return NotFoundError(str(coordinate))
    return TransportError(f"{coordinate}: {error}", url=error.url, cause=error)


def fetch_json(cache: DocumentCache, url: str, coordinate: Coordinate, use_cache: bool = True) -> Any:
    """
    Fetch a JSON document through the cache, mapping failures to the error taxonomy.

    Raises:
        NotFoundError: On HTTP 404/410
        TransportError: On other HTTP or network failures, or undecodable JSON
    """
    try:
        return cache.get_json(url, bypass_cache=not use_cache)
    except FetchError as e:
        raise _translate_fetch_error(e, coordinate) from e
    except ParseError as e:
        raise TransportError(f"{coordinate}: {e}", url=url, cause=e) from e


def fetch_text(cache: DocumentCache, url: str, coordinate: Coordinate, use_cache: bool = True) -> str:
    """Fetch a text document through the cache. Raises like fetch_json."""
    try:
        return cache.get_text(url, bypass_cache=not use_cache)
    except FetchError as e:
        raise _translate_fetch_error(e, coordinate) from e


def document_exists(cache: DocumentCache, url: str, coordinate: Coordinate, use_cache: bool = True) -> bool:
    """True if the URL answers, False on 404/410; other failures raise TransportError."""
    try:
        return cache.exists(url, bypass_cache=not use_cache)
    except FetchError as e:
        raise TransportError(f"{coordinate}: {e}", url=url, cause=e) from e


def extract_field(field_name: str, coordinate: Coordinate, func: Callable[..., T], *args: Any) -> Optional[T]:
    """
    Run a field extractor, logging and returning None on malformed input.

    Registry documents are loosely typed; a bad field must not fail the
    whole resolution.
    """
    try:
        return func(*args)
    except (AttributeError, KeyError, IndexError, TypeError, ValueError) as e:
        logger.warning(f"Could not parse {field_name} for {coordinate}: {e}")
        return None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO 8601 timestamp as published by registries.

    Naive timestamps are taken as UTC. Returns None for anything unparseable.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        logger.debug(f"Unparseable timestamp: {value!r}")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_author_string(author_str: str) -> Tuple[Optional[str], Optional[str]]:
    """
    Parse an author string which may be in format "Name <email>".

    This is the format used by npm, PyPI and Hackage.

    Args:
        author_str: Author string like "John Doe <john@example.com>" or just "John Doe"

    Returns:
        Tuple of (name, email) where either may be None
    """
    if not author_str:
        return None, None

    author_str = author_str.strip()

    # Check for "Name <email>" format
    if "<" in author_str and ">" in author_str:
        lt_idx = author_str.index("<")
        gt_idx = author_str.index(">")
        if lt_idx < gt_idx:
            name_part = author_str[:lt_idx].strip()
            email_part = author_str[lt_idx + 1 : gt_idx].strip()
            return name_part or None, email_part or None

    # Bare email address
    if "@" in author_str and " " not in author_str:
        return None, author_str

    return author_str or None, None


def person_from(value: Any) -> Optional[Person]:
    """Build a Person from an author string or a {name, email, url} object."""
    if isinstance(value, str):
        name, email = parse_author_string(value)
        if name or email:
            return Person(name=name, email=email)
        return None
    if isinstance(value, dict):
        name = value.get("name") or value.get("username")
        email = value.get("email")
        url = value.get("url")
        if name or email or url:
            return Person(name=name or None, email=email or None, url=url or None)
    return None


def target_name(coordinate: Coordinate) -> str:
    """
    Directory name for a downloaded package version.

    "{ecosystem}-{name}@{version}", or "{ecosystem}-{namespace}-{name}@{version}"
    for namespaced packages.
    """
    parts = [coordinate.ecosystem.value]
    if coordinate.namespace:
        parts.append(coordinate.namespace.replace("/", "-"))
    parts.append(coordinate.name.replace("/", "-"))
    return f"{'-'.join(parts)}@{coordinate.version}"


def download_artifact(
    coordinate: Coordinate,
    artifact: Optional[ArtifactUri],
    cache: DocumentCache,
    download_dir: Union[str, Path],
    extractor: Extractor,
    extract: bool = True,
    use_cache: bool = True,
) -> DownloadResult:
    """
    Download one artifact into the download directory.

    With extract and use_cache, an existing target directory is returned as
    CACHED_HIT without touching the network. Otherwise the artifact bytes are
    fetched (never stored in the document cache) and either extracted with
    the extractor or written raw next to the target name.

    Never raises: failures are logged and returned as FAILED results.
    """
    if not coordinate.version:
        return DownloadResult.failure_result(f"{coordinate}: a version is required to download")
    if artifact is None:
        return DownloadResult.failure_result(f"{coordinate}: no downloadable artifact")

    target = Path(download_dir) / target_name(coordinate)

    if extract and use_cache and target.is_dir():
        logger.debug(f"Already extracted: {target}")
        return DownloadResult.success_result(DownloadState.CACHED_HIT, [str(target)])

    created = not target.exists()
    try:
        logger.info(f"Downloading {coordinate} from {artifact.uri}")
        data = cache.get(artifact.uri, bypass_cache=True, store=False)

        if extract:
            extracted = extractor(data, target)
            return DownloadResult.success_result(DownloadState.EXTRACTED, [str(extracted)])

        raw_path = target.with_name(target.name + artifact.extension)
        raw_path.parent.mkdir(parents=True, exist_ok=True)
        raw_path.write_bytes(data)
        return DownloadResult.success_result(DownloadState.RAW_WRITTEN, [str(raw_path)])
    except Exception as e:
        logger.warning(f"Failed to download {coordinate}: {e}")
        # Only a complete extraction may leave the target directory behind
        if extract and created and target.exists():
            shutil.rmtree(target, ignore_errors=True)
        return DownloadResult.failure_result(f"{coordinate}: {e}")
