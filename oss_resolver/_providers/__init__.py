"""Ecosystem providers.

One provider per package registry, all implementing the Provider protocol:
version enumeration, metadata resolution, artifact locations and downloads.
"""

from .artifacts import ArtifactType, ArtifactUri
from .hackage import HackageEndpoints, HackageProvider
from .npm import NpmEndpoints, NpmProvider
from .nuget import NuGetEndpoints, NuGetProvider
from .protocol import Provider
from .pypi import PyPIEndpoints, PyPIProvider
from .registry import ProviderRegistry
from .result import DownloadResult, DownloadState
from .trove import parse_classifier, parse_classifiers
from .utils import download_artifact, target_name

__all__ = [
    "Provider",
    "ProviderRegistry",
    "NpmProvider",
    "NpmEndpoints",
    "NuGetProvider",
    "NuGetEndpoints",
    "HackageProvider",
    "HackageEndpoints",
    "PyPIProvider",
    "PyPIEndpoints",
    "ArtifactType",
    "ArtifactUri",
    "DownloadResult",
    "DownloadState",
    "download_artifact",
    "target_name",
    "parse_classifier",
    "parse_classifiers",
]
