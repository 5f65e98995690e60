"""Source repository inference from registry metadata."""

from typing import Any, Iterable, List, Optional, Protocol, Set

from oss_resolver.coordinate import Coordinate
from oss_resolver.logging_config import logger
from oss_resolver.metadata import RepositoryCandidate

from .forges import parse_forge_url

EXPLICIT_CONFIDENCE = 1.0


class RepositoryHints(Protocol):
    """
    Ecosystem adapter telling the inference engine where to look.

    Field names differ per registry, so each provider implements this for
    its own document shape. The priority order and confidence policy stay in
    RepositoryInference.
    """

    def builtin_location(self, coordinate: Coordinate) -> Optional[Coordinate]:
        """Source location when the coordinate names a platform built-in module."""
        ...

    def repository_urls(self, coordinate: Coordinate, document: Any) -> List[str]:
        """Explicit repository URL fields for the coordinate's version, most specific first."""
        ...


class RepositoryInference:
    """
    Derives repository candidates from registry metadata.

    Priority, first match wins:
    1. Platform built-in module -> the platform's source tree (confidence 1.0)
    2. Explicit repository field on a supported forge (confidence 1.0)
    3. Nothing -> empty set

    Free-text fields such as homepage or description are never consulted;
    precision is preferred over recall. Inference never raises.
    """

    def infer(self, coordinate: Coordinate, document: Any, hints: RepositoryHints) -> Set[RepositoryCandidate]:
        """
        Infer repository candidates for a coordinate.

        Args:
            coordinate: Package coordinate (version-qualified when known)
            document: Raw registry document for the package or version
            hints: Ecosystem adapter for built-ins and field extraction

        Returns:
            Set of candidates, empty when nothing explicit was found
        """
        try:
            builtin = hints.builtin_location(coordinate)
            if builtin is not None:
                logger.debug(f"{coordinate} is a platform built-in: {builtin}")
                return {RepositoryCandidate(builtin, EXPLICIT_CONFIDENCE)}

            for url in hints.repository_urls(coordinate, document) or []:
                forge = parse_forge_url(url)
                if forge is not None:
                    logger.debug(f"Repository for {coordinate}: {forge}")
                    return {RepositoryCandidate(forge, EXPLICIT_CONFIDENCE)}
                logger.debug(f"Ignoring unusable repository URL for {coordinate}: {url!r}")
        except Exception as e:
            logger.debug(f"Repository inference failed for {coordinate}: {e}")
        return set()


def rank_candidates(candidates: Iterable[RepositoryCandidate]) -> List[RepositoryCandidate]:
    """Highest confidence first; ties ordered by coordinate string."""
    return sorted(candidates, key=lambda c: (-c.confidence, str(c.coordinate)))


def best_candidate(candidates: Iterable[RepositoryCandidate]) -> Optional[RepositoryCandidate]:
    """Max-confidence policy; ties resolve to the lexically first coordinate."""
    ordered = rank_candidates(candidates)
    return ordered[0] if ordered else None
