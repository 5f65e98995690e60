"""Total ordering of heterogeneous version strings."""

from typing import Any, Iterable, List, Optional, Tuple

from oss_resolver.logging_config import logger

from .protocol import VersionScheme


class VersionOrdering:
    """
    Orders version strings with an ecosystem's VersionScheme.

    Strings the scheme can not parse are never dropped. They are ordered
    lexicographically among themselves and always after every parsed version.
    Strings that normalize to the same version collapse to the first-seen
    spelling.

    Example:
        ordering = VersionOrdering(SemVerScheme())
        ordering.sort_descending(["1.0.0", "2.0.0", "garbage"])
        # -> ["2.0.0", "1.0.0", "garbage"]
    """

    def __init__(self, scheme: VersionScheme) -> None:
        self._scheme = scheme

    @property
    def scheme(self) -> VersionScheme:
        return self._scheme

    def sort_key(self, version: str) -> Tuple[int, Any]:
        """Key placing parsed versions (1, key) above unparsed ones (0, text)."""
        try:
            return (1, self._scheme.parse(version))
        except ValueError:
            return (0, version)

    def is_valid(self, version: str) -> bool:
        return self.sort_key(version)[0] == 1

    def normalize(self, version: str) -> str:
        """Normalized spelling, or the literal string when it does not parse."""
        try:
            return self._scheme.normalize(version)
        except ValueError:
            return version

    def unique(self, versions: Iterable[str]) -> List[str]:
        """Drop blanks and normalized duplicates, keeping first-seen spellings in input order."""
        seen = set()
        result = []
        for version in versions:
            if not isinstance(version, str) or not version.strip():
                continue
            normalized = self.normalize(version)
            if normalized in seen:
                continue
            seen.add(normalized)
            result.append(version)
        return result

    def sort_descending(self, versions: Iterable[str]) -> List[str]:
        """Return distinct versions, newest first."""
        distinct = self.unique(versions)
        invalid = [v for v in distinct if not self.is_valid(v)]
        if invalid:
            logger.debug(f"{len(invalid)} version(s) not valid {self._scheme.name}, ordered last: {invalid[:5]}")
        # sorted() is stable, so equal keys keep first-seen order
        return sorted(distinct, key=self.sort_key, reverse=True)

    def is_greater(self, a: str, b: str) -> bool:
        """True if version a orders strictly above version b."""
        return self.sort_key(a) > self.sort_key(b)

    def max_version(self, versions: Iterable[str]) -> Optional[str]:
        ordered = self.sort_descending(versions)
        return ordered[0] if ordered else None

    def select_latest(self, versions: Iterable[str], declared: Optional[str] = None) -> Optional[str]:
        """The registry-declared latest when there is one, otherwise the maximum."""
        if declared and declared.strip():
            return declared
        return self.max_version(versions)

    def pin_latest(self, ordered: List[str], latest: Optional[str]) -> List[str]:
        """
        Move the declared latest version to the front of a sorted list.

        The remaining versions keep their order. If the declared latest is not
        listed, it is inserted at the front.
        """
        if not latest:
            return list(ordered)
        target = self.normalize(latest)
        rest = [v for v in ordered if self.normalize(v) != target]
        match = next((v for v in ordered if self.normalize(v) == target), latest)
        return [match] + rest
