"""Resolver configuration loaded from environment variables."""

import os
from dataclasses import dataclass, field, fields, is_dataclass, replace
from typing import Iterator, Optional, Tuple
from urllib.parse import urlparse

from ._providers import HackageEndpoints, NpmEndpoints, NuGetEndpoints, PyPIEndpoints
from .cache import DEFAULT_TIMEOUT
from .exceptions import ConfigurationError
from .logging_config import logger

DEFAULT_MAX_WORKERS = 8

LOCALHOST_PATTERNS = ["127.0.0.1", "localhost", "0.0.0.0"]


@dataclass
class ResolverConfig:
    """Configuration settings for the resolver and its providers."""

    download_dir: str = "."
    timeout: float = DEFAULT_TIMEOUT
    max_workers: int = DEFAULT_MAX_WORKERS
    npm: NpmEndpoints = field(default_factory=NpmEndpoints)
    nuget: NuGetEndpoints = field(default_factory=NuGetEndpoints)
    hackage: HackageEndpoints = field(default_factory=HackageEndpoints)
    pypi: PyPIEndpoints = field(default_factory=PyPIEndpoints)

    def validate(self) -> None:
        """
        Validate configuration settings.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        if not self.download_dir:
            raise ConfigurationError("Download directory is not defined")
        if self.timeout <= 0:
            raise ConfigurationError(f"Timeout must be positive, got {self.timeout}")
        if self.max_workers < 1:
            raise ConfigurationError(f"Max workers must be at least 1, got {self.max_workers}")

        for label, url in self.endpoint_urls():
            _validate_url(label, url)

    def endpoint_urls(self) -> Iterator[Tuple[str, str]]:
        """Yield (label, url) for every configured endpoint, e.g. ("npm.registry", "https://...")."""
        for group in ("npm", "nuget", "hackage", "pypi"):
            endpoints = getattr(self, group)
            if not is_dataclass(endpoints):
                continue
            for f in fields(endpoints):
                yield f"{group}.{f.name}", getattr(endpoints, f.name)


def _validate_url(label: str, url: str) -> None:
    """
    Validate an endpoint URL.

    Raises:
        ConfigurationError: If URL format is invalid
    """
    try:
        parsed = urlparse(url)
    except ValueError as e:
        raise ConfigurationError(f"Invalid {label} URL format: {e}")

    # Validate scheme
    if not parsed.scheme or parsed.scheme not in ("http", "https"):
        raise ConfigurationError(f"{label} URL must start with http:// or https://: {url!r}")

    # Validate hostname
    if not parsed.netloc:
        raise ConfigurationError(f"{label} URL must include a valid hostname: {url!r}")

    if parsed.scheme == "http" and not any(localhost in parsed.netloc for localhost in LOCALHOST_PATTERNS):
        logger.warning(f"Using HTTP (not HTTPS) for {label} - consider using HTTPS")


def _env_number(name: str, default: float, cast: type) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return cast(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {value!r}")


def load_config(download_dir: Optional[str] = None) -> ResolverConfig:
    """
    Load and validate configuration from environment variables.

    Args:
        download_dir: Overrides OSS_RESOLVER_DOWNLOAD_DIR when given

    Returns:
        Validated configuration object

    Raises:
        ConfigurationError: If configuration is invalid
    """
    npm = NpmEndpoints()
    if os.getenv("NPM_REGISTRY_URL"):
        npm = replace(npm, registry=os.environ["NPM_REGISTRY_URL"])

    nuget = NuGetEndpoints()
    if os.getenv("NUGET_API_URL"):
        nuget = replace(nuget, api=os.environ["NUGET_API_URL"])

    hackage = HackageEndpoints()
    if os.getenv("HACKAGE_URL"):
        hackage = replace(hackage, base=os.environ["HACKAGE_URL"])

    pypi = PyPIEndpoints()
    if os.getenv("PYPI_URL"):
        pypi = replace(pypi, api=os.environ["PYPI_URL"])

    config = ResolverConfig(
        download_dir=download_dir or os.getenv("OSS_RESOLVER_DOWNLOAD_DIR", "."),
        timeout=_env_number("OSS_RESOLVER_TIMEOUT", DEFAULT_TIMEOUT, float),
        max_workers=int(_env_number("OSS_RESOLVER_MAX_WORKERS", DEFAULT_MAX_WORKERS, int)),
        npm=npm,
        nuget=nuget,
        hackage=hackage,
        pypi=pypi,
    )
    config.validate()

    logger.debug(f"Loaded configuration: download_dir={config.download_dir}, timeout={config.timeout}")
    return config
