"""Rich console utilities for oss-resolver.

This module provides the shared Rich Console instances and the helpers the
CLI uses to print JSON documents, summaries and errors.
"""

import json
from typing import Any, List, Optional, Tuple

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.theme import Theme

from ._providers import ArtifactUri, DownloadResult, DownloadState
from ._repository import forge_web_url
from .metadata import NormalizedMetadata

custom_theme = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "success": "bold green",
        "highlight": "magenta",
    }
)

# Documents go to stdout, diagnostics to stderr
console = Console(theme=custom_theme, color_system="auto")
err_console = Console(theme=custom_theme, color_system="auto", stderr=True)


def print_json(data: Any) -> None:
    """Print a JSON document (a string or a JSON-serializable object)."""
    text = data if isinstance(data, str) else json.dumps(data, indent=2)
    console.print_json(text)


def print_error(error: Exception) -> None:
    """Print an error as "<ErrorKind>: <message>"; messages carry the coordinate."""
    kind = getattr(error, "kind", type(error).__name__)
    err_console.print(f"[error]{escape(kind)}:[/error] {escape(str(error))}")


def print_warning(message: str) -> None:
    err_console.print(f"[warning]Warning:[/warning] {escape(message)}")


def print_summary_table(title: str, data: List[Tuple[str, Any]]) -> None:
    """
    Print a two-column summary table, skipping empty values.

    Args:
        title: Table title
        data: List of (label, value) tuples
    """
    data = [(label, value) for label, value in data if value]
    if not data:
        return

    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    for label, value in data:
        table.add_row(label, escape(str(value)))

    console.print(table)


def print_metadata_summary(metadata: NormalizedMetadata) -> None:
    """Print the headline fields of resolved metadata as a table."""
    repository: Optional[str] = None
    if metadata.source_repository is not None:
        coordinate = metadata.source_repository.coordinate
        repository = forge_web_url(coordinate) or str(coordinate)

    title = metadata.name if not metadata.namespace else f"{metadata.namespace}/{metadata.name}"
    print_summary_table(
        f"{title} {metadata.version}",
        [
            ("Latest version", metadata.latest_version),
            ("Description", metadata.description),
            ("Homepage", metadata.homepage),
            ("Repository", repository),
            ("Licenses", ", ".join(lic.name or lic.url or "" for lic in metadata.licenses)),
            ("Authors", ", ".join(str(a) for a in metadata.authors)),
            ("Published", metadata.publish_time.isoformat() if metadata.publish_time else None),
            ("Dependencies", len(metadata.dependencies)),
            ("Deprecated", metadata.deprecated),
            ("Artifact", metadata.source_artifact_uri),
        ],
    )


def print_artifacts(artifacts: List[ArtifactUri]) -> None:
    print_json([{"type": a.type.value, "uri": a.uri} for a in artifacts])


def print_download_result(coordinate: str, result: DownloadResult) -> None:
    """Print the outcome of a download."""
    if result.state == DownloadState.FAILED:
        err_console.print(f"[error]✗ Download failed:[/error] {escape(result.error or coordinate)}")
        return

    label = {
        DownloadState.CACHED_HIT: "Already downloaded",
        DownloadState.EXTRACTED: "Extracted",
        DownloadState.RAW_WRITTEN: "Saved",
    }[result.state]
    err_console.print(f"[success]✓ {label}:[/success] {escape(coordinate)}")
    for path in result.paths:
        console.print(escape(path), soft_wrap=True)
