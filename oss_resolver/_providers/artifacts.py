"""Artifact download locations."""

from dataclasses import dataclass
from enum import Enum
from urllib.parse import urlparse


class ArtifactType(str, Enum):
    TARBALL = "tarball"  # npm .tgz
    NUPKG = "nupkg"
    NUSPEC = "nuspec"
    SOURCE_TARBALL = "source-tarball"  # Hackage / PyPI sdist
    CABAL = "cabal"


_COMPOUND_EXTENSIONS = (".tar.gz", ".tar.bz2", ".tar.xz")


@dataclass(frozen=True)
class ArtifactUri:
    """A typed download URI for one package version."""

    type: ArtifactType
    uri: str

    @property
    def extension(self) -> str:
        """File extension of the URI path, e.g. ".tgz" or ".tar.gz"."""
        path = urlparse(self.uri).path.lower()
        for compound in _COMPOUND_EXTENSIONS:
            if path.endswith(compound):
                return compound
        filename = path.rsplit("/", 1)[-1]
        if "." not in filename:
            return ""
        return "." + filename.rsplit(".", 1)[-1]
