"""VersionScheme protocol for ecosystem version parsers."""

from typing import Any, Protocol


class VersionScheme(Protocol):
    """
    Protocol for an ecosystem's version parser and comparator.

    A scheme turns a version string into a sort key. Keys of the same scheme
    must be mutually comparable; a larger key is a newer version. Strings the
    scheme does not understand make `parse` raise ValueError.

    Example:
        class DottedScheme:
            name = "dotted"

            def parse(self, version: str) -> tuple:
                return tuple(int(p) for p in version.split("."))

            def normalize(self, version: str) -> str:
                return ".".join(str(p) for p in self.parse(version))
    """

    @property
    def name(self) -> str:
        """Short scheme name used in log messages."""
        ...

    def parse(self, version: str) -> Any:
        """
        Parse a version into a comparable key.

        Raises:
            ValueError: If the string is not a valid version in this scheme
        """
        ...

    def normalize(self, version: str) -> str:
        """
        Canonical spelling used to detect duplicate versions.

        Two strings with the same normalized form are the same version.

        Raises:
            ValueError: If the string is not a valid version in this scheme
        """
        ...
