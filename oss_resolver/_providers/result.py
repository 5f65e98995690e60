"""DownloadResult dataclass for artifact downloads."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class DownloadState(str, Enum):
    """Terminal state of a download."""

    CACHED_HIT = "cached-hit"  # prior extraction reused, nothing fetched
    EXTRACTED = "extracted"
    RAW_WRITTEN = "raw-written"
    FAILED = "failed"


@dataclass
class DownloadResult:
    """
    Result of a download operation.

    Downloads never raise: failures come back as a FAILED result carrying the
    error message, so bulk callers can keep going while still telling
    "already on disk" apart from "could not download".

    Attributes:
        state: How the download finished
        paths: Local paths produced (empty on failure)
        error: Error message if the download failed
    """

    state: DownloadState
    paths: List[str] = field(default_factory=list)
    error: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate result state."""
        if self.success and self.error:
            raise ValueError("Successful result should not have error")
        if not self.success and not self.error:
            raise ValueError("Failed result must have error")
        if not self.success and self.paths:
            raise ValueError("Failed result must not have paths")

    @property
    def success(self) -> bool:
        return self.state != DownloadState.FAILED

    @property
    def from_cache(self) -> bool:
        """True when an existing extraction was returned without fetching."""
        return self.state == DownloadState.CACHED_HIT

    @classmethod
    def success_result(cls, state: DownloadState, paths: List[str]) -> "DownloadResult":
        """Create a successful download result."""
        return cls(state=state, paths=list(paths))

    @classmethod
    def failure_result(cls, error: str) -> "DownloadResult":
        """Create a failed download result."""
        return cls(state=DownloadState.FAILED, paths=[], error=error)
