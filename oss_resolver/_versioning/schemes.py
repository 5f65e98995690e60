"""Version schemes for the supported ecosystems."""

import re
from typing import Optional, Tuple

import semantic_version
from packaging.utils import canonicalize_version
from packaging.version import InvalidVersion, Version

# node-semver accepts a leading "v" or "=" in loose mode
_LOOSE_PREFIX = re.compile(r"^[=v]+")

# Strict semver shape, but tolerant of leading zeros (which semantic_version rejects)
_SEMVER_SHAPE = re.compile(
    r"^(\d+)\.(\d+)\.(\d+)(?:-([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?(?:\+([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)

_NUGET_SHAPE = re.compile(
    r"^(\d+)(?:\.(\d+))?(?:\.(\d+))?(?:\.(\d+))?"
    r"(?:-([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?(?:\+([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)

_DOTTED_SHAPE = re.compile(r"^\d+(?:\.\d+)*$")


def _identifier_key(identifier: str, fold_case: bool = False) -> Tuple[int, int, str]:
    """Sort key for one prerelease identifier: numeric ids sort before alphanumeric ones."""
    if identifier.isdigit():
        return (0, int(identifier), "")
    return (1, 0, identifier.lower() if fold_case else identifier)


def _prerelease_key(identifiers: Tuple[str, ...], fold_case: bool = False) -> Tuple:
    """A release sorts above any of its prereleases."""
    if not identifiers:
        return (1, ())
    return (0, tuple(_identifier_key(i, fold_case) for i in identifiers))


def _strip_zeros(identifiers: Tuple[str, ...]) -> Tuple[str, ...]:
    return tuple(str(int(i)) if i.isdigit() else i for i in identifiers)


class SemVerScheme:
    """Semantic versioning as used by npm."""

    name = "semver"

    def _version(self, version: str) -> semantic_version.Version:
        text = _LOOSE_PREFIX.sub("", version.strip())
        try:
            return semantic_version.Version(text)
        except ValueError:
            match = _SEMVER_SHAPE.match(text)
            if not match:
                raise
            prerelease = tuple(match.group(4).split(".")) if match.group(4) else ()
            build = tuple(match.group(5).split(".")) if match.group(5) else ()
            return semantic_version.Version(
                major=int(match.group(1)),
                minor=int(match.group(2)),
                patch=int(match.group(3)),
                prerelease=_strip_zeros(prerelease),
                build=build,
            )

    def parse(self, version: str) -> Tuple:
        v = self._version(version)
        # Build metadata does not take part in precedence
        return (v.major, v.minor, v.patch, _prerelease_key(tuple(v.prerelease)))

    def normalize(self, version: str) -> str:
        return str(self._version(version))


class NuGetVersionScheme:
    """
    NuGet versions: up to four numeric parts, optional SemVer 2 prerelease
    labels compared case-insensitively, build metadata ignored.
    """

    name = "nuget"

    def _parts(self, version: str) -> Tuple[Tuple[int, int, int, int], Tuple[str, ...]]:
        match = _NUGET_SHAPE.match(version.strip())
        if not match:
            raise ValueError(f"Invalid NuGet version: {version!r}")
        numbers = tuple(int(match.group(i) or 0) for i in range(1, 5))
        prerelease = tuple(match.group(5).split(".")) if match.group(5) else ()
        return numbers, prerelease  # type: ignore[return-value]

    def parse(self, version: str) -> Tuple:
        numbers, prerelease = self._parts(version)
        return numbers + (_prerelease_key(prerelease, fold_case=True),)

    def normalize(self, version: str) -> str:
        """Normalized form as used in flat-container URLs: lower-cased, no metadata."""
        (major, minor, patch, revision), prerelease = self._parts(version)
        text = f"{major}.{minor}.{patch}"
        if revision:
            text += f".{revision}"
        if prerelease:
            text += "-" + ".".join(_strip_zeros(prerelease)).lower()
        return text


class Pep440Scheme:
    """PEP 440 versions as used by PyPI."""

    name = "pep440"

    def parse(self, version: str) -> Version:
        try:
            return Version(version)
        except InvalidVersion as e:
            raise ValueError(str(e)) from e

    def normalize(self, version: str) -> str:
        """Canonical PEP 440 form without trailing zero release segments, so "1.0" and "1.0.0" collapse."""
        return canonicalize_version(self.parse(version))


class DottedNumericScheme:
    """Dotted lists of non-negative integers (Hackage); compared as integer lists."""

    name = "dotted"

    def parse(self, version: str) -> Tuple[int, ...]:
        text = version.strip()
        if not _DOTTED_SHAPE.match(text):
            raise ValueError(f"Invalid dotted version: {version!r}")
        return tuple(int(p) for p in text.split("."))

    def normalize(self, version: str) -> str:
        return ".".join(str(p) for p in self.parse(version))


def nuget_normalized_version(version: str) -> Optional[str]:
    """NuGet normalized version string, or None if the version does not parse."""
    try:
        return NuGetVersionScheme().normalize(version)
    except ValueError:
        return None
