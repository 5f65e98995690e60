"""oss-resolver: package identity and metadata resolution across ecosystems."""


def _get_version() -> str:
    """Installed distribution version, else the version in a source checkout's pyproject.toml."""
    from importlib.metadata import PackageNotFoundError, version

    try:
        return version("oss-resolver")
    except PackageNotFoundError:
        pass

    import tomllib
    from pathlib import Path

    pyproject_path = Path(__file__).parent.parent / "pyproject.toml"
    try:
        with open(pyproject_path, "rb") as f:
            return tomllib.load(f).get("project", {}).get("version", "unknown")
    except (OSError, tomllib.TOMLDecodeError):
        return "unknown"


__version__ = _get_version()

# Public API; imported after __version__, which http_client reads at import time
from ._providers import (  # noqa: E402
    ArtifactType,
    ArtifactUri,
    DownloadResult,
    DownloadState,
    HackageProvider,
    NpmProvider,
    NuGetProvider,
    Provider,
    ProviderRegistry,
    PyPIProvider,
)
from ._versioning import VersionOrdering  # noqa: E402
from .cache import DocumentCache  # noqa: E402
from .config import ResolverConfig, load_config  # noqa: E402
from .coordinate import Coordinate, Ecosystem  # noqa: E402
from .exceptions import (  # noqa: E402
    ConfigurationError,
    DownloadError,
    FetchError,
    NotFoundError,
    ParseError,
    ResolverError,
    TransportError,
    UnsupportedEcosystemError,
)
from .metadata import NormalizedMetadata, RepositoryCandidate  # noqa: E402
from .resolver import Resolver, create_default_registry  # noqa: E402

__all__ = [
    "__version__",
    "Resolver",
    "create_default_registry",
    "ResolverConfig",
    "load_config",
    "Coordinate",
    "Ecosystem",
    "NormalizedMetadata",
    "RepositoryCandidate",
    "DocumentCache",
    "VersionOrdering",
    "Provider",
    "ProviderRegistry",
    "NpmProvider",
    "NuGetProvider",
    "HackageProvider",
    "PyPIProvider",
    "ArtifactType",
    "ArtifactUri",
    "DownloadResult",
    "DownloadState",
    "ResolverError",
    "ConfigurationError",
    "TransportError",
    "FetchError",
    "NotFoundError",
    "ParseError",
    "UnsupportedEcosystemError",
    "DownloadError",
]
