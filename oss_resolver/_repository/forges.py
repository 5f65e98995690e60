"""Parsing of source-forge repository URLs into coordinates."""

import re
from typing import List, Optional
from urllib.parse import urlparse

from oss_resolver.coordinate import Coordinate, Ecosystem

# Schemes a repository field may legitimately use, including SPDX VCS forms
ALLOWED_SCHEMES = frozenset({"http", "https", "git", "ssh", "git+https", "git+http", "git+ssh"})

# Supported hosting providers
FORGE_HOSTS = {
    "github.com": Ecosystem.GITHUB,
    "gitlab.com": Ecosystem.GITLAB,
    "bitbucket.org": Ecosystem.BITBUCKET,
}

# Pattern for SSH-style git URLs: git@host:path
_SSH_GIT_PATTERN = re.compile(r"^[A-Za-z0-9._-]+@([^:/]+):(.+)$")

# Pattern for Maven-style SCM URLs: scm:git:...
_SCM_GIT_PATTERN = re.compile(r"^scm:git:(.+)$", re.IGNORECASE)

_SEGMENT_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


def _split_path(path: str) -> List[str]:
    return [segment for segment in path.split("/") if segment]


def _repo_name(segment: str) -> str:
    return segment[:-4] if segment.lower().endswith(".git") else segment


def parse_forge_url(url: Optional[str]) -> Optional[Coordinate]:
    """
    Parse a repository URL on a supported forge into a forge coordinate.

    Accepts https/http/git/ssh URLs, their git+ variants, scp-style
    git@host:owner/repo and the scm:git: prefix. Anything else, including a
    URL without a scheme, returns None.

    Examples:
        "git+https://github.com/lodash/lodash.git" -> pkg:github/lodash/lodash
        "git@gitlab.com:group/sub/project.git"     -> pkg:gitlab/group/sub/project
        "github.com/lodash/lodash"                 -> None (no scheme)

    Args:
        url: Raw repository URL from registry metadata

    Returns:
        Coordinate for the repository, or None if the URL is not usable
    """
    if not isinstance(url, str):
        return None
    text = url.strip()
    if not text:
        return None

    scm_match = _SCM_GIT_PATTERN.match(text)
    if scm_match:
        text = scm_match.group(1)

    ssh_match = _SSH_GIT_PATTERN.match(text)
    if ssh_match and "://" not in text:
        host = ssh_match.group(1).lower()
        path = ssh_match.group(2)
    else:
        try:
            parsed = urlparse(text)
            host = (parsed.hostname or "").lower()
        except ValueError:
            return None
        if parsed.scheme.lower() not in ALLOWED_SCHEMES or not host:
            return None
        path = parsed.path

    if host.startswith("www."):
        host = host[4:]
    ecosystem = FORGE_HOSTS.get(host)
    if ecosystem is None:
        return None

    segments = _split_path(path)
    if ecosystem == Ecosystem.GITLAB:
        # GitLab allows nested groups; "/-/" starts the UI part of the path
        if "-" in segments:
            segments = segments[: segments.index("-")]
        if len(segments) < 2:
            return None
        owner_segments, name = segments[:-1], _repo_name(segments[-1])
    else:
        if len(segments) < 2:
            return None
        owner_segments, name = segments[:1], _repo_name(segments[1])

    if not name or not all(_SEGMENT_PATTERN.match(s) for s in owner_segments + [name]):
        return None

    return Coordinate(ecosystem=ecosystem, namespace="/".join(owner_segments), name=name)


def forge_web_url(coordinate: Coordinate) -> Optional[str]:
    """Browsable https URL for a forge coordinate."""
    for host, ecosystem in FORGE_HOSTS.items():
        if coordinate.ecosystem == ecosystem:
            url = f"https://{host}/{coordinate.full_name}"
            if coordinate.subpath:
                url += f"/tree/HEAD/{coordinate.subpath}"
            return url
    return None
