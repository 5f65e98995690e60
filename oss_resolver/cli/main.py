"""Command line interface for oss-resolver.

Every command takes a package-url (e.g. "pkg:npm/lodash@4.17.15").
Configuration comes from environment variables (see oss_resolver.config);
command options override them.
"""

import functools
import sys
from dataclasses import dataclass, replace
from typing import Any, Callable, Optional

import click

from oss_resolver import __version__
from oss_resolver.config import ResolverConfig, load_config
from oss_resolver.console import (
    print_artifacts,
    print_download_result,
    print_error,
    print_json,
    print_metadata_summary,
)
from oss_resolver.exceptions import ConfigurationError, ResolverError
from oss_resolver.logging_config import logger, set_log_level
from oss_resolver.resolver import Resolver, parse_coordinate

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


@dataclass
class CliState:
    """Options shared by all commands."""

    config: ResolverConfig
    use_cache: bool = True

    def resolver(self, config: Optional[ResolverConfig] = None) -> Resolver:
        return Resolver(config=config or self.config)


def handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """Print resolver errors as "<ErrorKind>: <message>" and exit with status 1."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except ResolverError as e:
            logger.debug(f"{e.kind} in {func.__name__}", exc_info=True)
            print_error(e)
            sys.exit(1)

    return wrapper


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, "--version", "-V", prog_name="oss-resolver")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.option("--no-cache", is_flag=True, help="Bypass the document cache for registry requests.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, no_cache: bool) -> None:
    """Resolve package versions, metadata, source repositories and artifacts.

    Supported ecosystems: npm, nuget, hackage, pypi.
    """
    if verbose:
        set_log_level("DEBUG")

    try:
        config = load_config()
    except ConfigurationError as e:
        print_error(e)
        sys.exit(1)

    ctx.obj = CliState(config=config, use_cache=not no_cache)


@cli.command()
@click.argument("purl")
@click.option("--summary", is_flag=True, help="Print a summary table instead of JSON.")
@click.pass_obj
@handle_errors
def metadata(state: CliState, purl: str, summary: bool) -> None:
    """Resolve normalized metadata for PURL (latest version when unversioned)."""
    with state.resolver() as resolver:
        result = resolver.resolve(purl, use_cache=state.use_cache)

    if summary:
        print_metadata_summary(result)
    else:
        print_json(result.to_json())


@cli.command()
@click.argument("purl")
@click.pass_obj
@handle_errors
def versions(state: CliState, purl: str) -> None:
    """List every known version of PURL, latest first."""
    with state.resolver() as resolver:
        print_json(resolver.enumerate_versions(purl, use_cache=state.use_cache))


@cli.command()
@click.argument("purl")
@click.pass_obj
@handle_errors
def artifacts(state: CliState, purl: str) -> None:
    """List download URLs for a versioned PURL."""
    coordinate = parse_coordinate(purl)
    if not coordinate.version:
        raise click.BadParameter("a version is required, e.g. pkg:npm/lodash@4.17.15", param_hint="PURL")

    with state.resolver() as resolver:
        print_artifacts(resolver.artifact_locations(coordinate))


@cli.command()
@click.argument("purl")
@click.option("--extract/--no-extract", default=True, show_default=True, help="Extract the downloaded archive.")
@click.option("--no-cache", "no_cache", is_flag=True, help="Download again even if already extracted.")
@click.option(
    "--output-dir",
    "-o",
    type=click.Path(file_okay=False, writable=True),
    default=None,
    help="Download directory (default: OSS_RESOLVER_DOWNLOAD_DIR or the current directory).",
)
@click.pass_obj
@handle_errors
def download(state: CliState, purl: str, extract: bool, no_cache: bool, output_dir: Optional[str]) -> None:
    """Download (and extract) the primary artifact of PURL.

    An unversioned PURL downloads the latest version.
    """
    config = replace(state.config, download_dir=output_dir) if output_dir else state.config
    use_cache = state.use_cache and not no_cache

    with state.resolver(config) as resolver:
        coordinate = parse_coordinate(purl)
        if not coordinate.version:
            latest = resolver.enumerate_versions(coordinate, use_cache=use_cache)
            if not latest:
                raise click.ClickException(f"{coordinate}: no published versions")
            coordinate = coordinate.with_version(latest[0])
            logger.info(f"Using latest version: {coordinate}")

        result = resolver.download(coordinate, extract=extract, use_cache=use_cache)

    print_download_result(str(coordinate), result)
    if not result.success:
        sys.exit(1)


def main() -> None:
    """Console script entry point."""
    cli()


if __name__ == "__main__":
    main()
