"""Custom exceptions for oss-resolver."""

from typing import Optional


class ResolverError(Exception):
    """Base exception for all resolver operations."""

    kind = "ResolverError"


class ConfigurationError(ResolverError):
    """Raised when configuration validation fails."""

    kind = "ConfigurationError"


class TransportError(ResolverError):
    """Raised on network or HTTP failure. Safe to retry."""

    kind = "TransportError"

    def __init__(self, message: str, url: Optional[str] = None, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.url = url
        self.cause = cause


class FetchError(TransportError):
    """Raised by the document cache when a GET does not succeed."""

    kind = "FetchError"

    def __init__(
        self,
        url: str,
        status_code: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        if status_code is not None:
            message = f"GET {url} failed with HTTP {status_code}"
        else:
            message = f"GET {url} failed: {cause}"
        super().__init__(message, url=url, cause=cause)
        self.status_code = status_code

    @property
    def is_not_found(self) -> bool:
        return self.status_code in (404, 410)


class NotFoundError(ResolverError):
    """Raised when a package or version does not exist upstream. Not retried."""

    kind = "NotFoundError"

    def __init__(self, coordinate: str, message: str = "no such package") -> None:
        super().__init__(f"{coordinate}: {message}")
        self.coordinate = coordinate


class ParseError(ResolverError):
    """Raised when upstream content cannot be parsed."""

    kind = "ParseError"

    def __init__(self, message: str, url: Optional[str] = None) -> None:
        super().__init__(message)
        self.url = url


class UnsupportedEcosystemError(ResolverError):
    """Raised when no provider handles an ecosystem."""

    kind = "UnsupportedEcosystemError"

    def __init__(self, ecosystem: str, coordinate: Optional[str] = None) -> None:
        message = f"unsupported ecosystem: {ecosystem}"
        if coordinate:
            message = f"{coordinate}: {message}"
        super().__init__(message)
        self.ecosystem = ecosystem
        self.coordinate = coordinate


class DownloadError(ResolverError):
    """Raised inside the download pipeline; reported through DownloadResult."""

    kind = "DownloadError"
