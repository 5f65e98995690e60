"""Default archive extraction for downloaded package artifacts.

Handles gzip'd tarballs (npm .tgz, sdists, Hackage) and zip containers
(.nupkg, wheels). Providers take the extractor as a parameter, so callers can
swap in their own.
"""

import io
import tarfile
import zipfile
from pathlib import Path
from typing import Callable, Union

from .exceptions import DownloadError
from .logging_config import logger

# extract(data, target_dir) -> path of the extracted tree
Extractor = Callable[[bytes, Path], str]

_GZIP_MAGIC = b"\x1f\x8b"
_ZIP_MAGIC = b"PK\x03\x04"


def _detect_archive_type(data: bytes) -> str:
    """Detect archive type from its leading bytes.

    Returns:
        "gz", "zip" or "tar"

    Raises:
        DownloadError: If the data is not a supported archive
    """
    if data.startswith(_GZIP_MAGIC):
        return "gz"
    if data.startswith(_ZIP_MAGIC):
        return "zip"
    if len(data) > 262 and data[257:262] == b"ustar":
        return "tar"
    raise DownloadError("Unsupported archive format")


def extract_archive(data: bytes, target_dir: Union[str, Path]) -> str:
    """Extract an in-memory archive into target_dir.

    Args:
        data: Archive bytes
        target_dir: Directory to extract into; created if missing

    Returns:
        Path to the directory containing the extracted files.

    Raises:
        DownloadError: If the archive is unsupported or extraction fails
    """
    dest = Path(target_dir)
    archive_type = _detect_archive_type(data)
    dest.mkdir(parents=True, exist_ok=True)

    logger.debug(f"Extracting {len(data)} bytes ({archive_type}) to {dest}")

    try:
        if archive_type == "zip":
            _extract_zip(data, dest)
        else:
            mode = "r:gz" if archive_type == "gz" else "r:"
            with tarfile.open(fileobj=io.BytesIO(data), mode=mode) as tar:
                _safe_extractall(tar, dest)
    except DownloadError:
        raise
    except Exception as e:
        raise DownloadError(f"Failed to extract archive into {dest}: {e}") from e

    return str(dest)


def _safe_extractall(tar: tarfile.TarFile, dest: Path) -> None:
    """Extract tarfile with the data filter, falling back for older Pythons."""
    try:
        tar.extractall(path=dest, filter="data")
    except TypeError:
        # Python without extraction filters: reject escaping members ourselves
        for member in tar.getmembers():
            _check_inside(dest, member.name)
        tar.extractall(path=dest)


def _extract_zip(data: bytes, dest: Path) -> None:
    with zipfile.ZipFile(io.BytesIO(data)) as archive:
        for name in archive.namelist():
            _check_inside(dest, name)
        archive.extractall(path=dest)


def _check_inside(dest: Path, member: str) -> None:
    root = dest.resolve()
    resolved = (root / member).resolve()
    if resolved != root and root not in resolved.parents:
        raise DownloadError(f"Archive member escapes target directory: {member}")
