"""Tests for the Resolver facade."""

import threading

import pytest

from oss_resolver import Resolver, ResolverConfig, create_default_registry
from oss_resolver._providers import DownloadState, NpmEndpoints
from oss_resolver.coordinate import Coordinate, Ecosystem
from oss_resolver.exceptions import NotFoundError, ParseError, UnsupportedEcosystemError
from oss_resolver.metadata import NormalizedMetadata

LODASH_URL = "https://registry.npmjs.org/lodash"
LEFT_PAD_URL = "https://registry.npmjs.org/left-pad"


def npm_document(name, versions, latest, repository=None):
    manifests = {}
    for version in versions:
        manifest = {"name": name, "version": version}
        if repository:
            manifest["repository"] = {"type": "git", "url": repository}
        manifests[version] = manifest
    return {"name": name, "dist-tags": {"latest": latest}, "versions": manifests}


@pytest.fixture
def resolver(cache, tmp_path):
    return Resolver(config=ResolverConfig(download_dir=str(tmp_path)), cache=cache)


@pytest.fixture
def registry_data(fake_registry):
    fake_registry.add_json(
        LODASH_URL,
        npm_document("lodash", ["4.17.15", "4.17.21"], "4.17.21", "git+https://github.com/lodash/lodash.git"),
    )
    fake_registry.add_json(LEFT_PAD_URL, npm_document("left-pad", ["1.3.0"], "1.3.0"))
    return fake_registry


class TestDefaultRegistry:
    def test_all_ecosystems(self, cache):
        registry = create_default_registry(cache=cache)

        assert [p["ecosystem"] for p in registry.list_providers()] == ["hackage", "npm", "nuget", "pypi"]

    def test_endpoints_from_config(self, fake_registry, cache):
        config = ResolverConfig(npm=NpmEndpoints(registry="https://npm.example.com"))
        fake_registry.add_json("https://npm.example.com/lodash", npm_document("lodash", ["1.0.0"], "1.0.0"))

        resolver = Resolver(config=config, cache=cache)

        assert resolver.enumerate_versions("pkg:npm/lodash") == ["1.0.0"]


class TestResolve:
    """Test dispatching to providers."""

    def test_resolve_string(self, resolver, registry_data):
        metadata = resolver.resolve("pkg:npm/lodash@4.17.15")

        assert metadata.version == "4.17.15"
        assert metadata.latest_version == "4.17.21"
        assert str(metadata.source_repository.coordinate) == "pkg:github/lodash/lodash"

    def test_resolve_coordinate(self, resolver, registry_data):
        metadata = resolver.resolve(Coordinate.from_purl("pkg:npm/lodash"))
        assert metadata.version == "4.17.21"

    def test_two_resolutions_fetch_once(self, resolver, registry_data):
        resolver.resolve("pkg:npm/lodash@4.17.15")
        resolver.resolve("pkg:npm/lodash@4.17.15")
        resolver.enumerate_versions("pkg:npm/lodash")

        assert registry_data.call_count(LODASH_URL) == 1

    def test_invalid_purl(self, resolver):
        with pytest.raises(ParseError) as exc_info:
            resolver.resolve("lodash@4.17.15")
        assert "lodash@4.17.15" in str(exc_info.value)

    def test_unsupported_ecosystem(self, resolver):
        with pytest.raises(UnsupportedEcosystemError) as exc_info:
            resolver.resolve("pkg:cargo/serde@1.0.0")
        assert str(exc_info.value) == "pkg:cargo/serde@1.0.0: unsupported ecosystem: cargo"

    def test_unregistered_ecosystem(self, cache):
        resolver = Resolver(registry=create_default_registry(cache=cache), cache=cache)
        resolver.registry.clear()

        with pytest.raises(UnsupportedEcosystemError):
            resolver.resolve("pkg:npm/lodash")

    def test_not_found(self, resolver):
        with pytest.raises(NotFoundError):
            resolver.resolve("pkg:npm/missing@1.0.0")

    def test_provider_for(self, resolver):
        assert resolver.provider_for("pkg:pypi/requests").ecosystem == Ecosystem.PYPI


class TestOtherOperations:
    def test_enumerate_versions(self, resolver, registry_data):
        assert resolver.enumerate_versions("pkg:npm/lodash") == ["4.17.21", "4.17.15"]

    def test_artifact_locations(self, resolver):
        (artifact,) = resolver.artifact_locations("pkg:npm/lodash@4.17.15")
        assert artifact.uri == "https://registry.npmjs.org/lodash/-/lodash-4.17.15.tgz"

    def test_package_exists(self, resolver, registry_data):
        assert resolver.package_exists("pkg:npm/lodash")
        assert not resolver.package_exists("pkg:npm/missing")

    def test_infer_repositories(self, resolver, registry_data):
        (candidate,) = resolver.infer_repositories("pkg:npm/lodash")
        assert candidate.coordinate.name == "lodash"

    def test_download_failure_is_a_result(self, resolver):
        result = resolver.download("pkg:npm/lodash@4.17.15")
        assert result.state == DownloadState.FAILED

    def test_context_manager_closes_cache(self, fake_registry, cache):
        with Resolver(cache=cache) as resolver:
            assert resolver.cache is cache
        # An injected session is owned by the caller
        fake_registry.session.close.assert_not_called()


class TestResolveAll:
    """Test concurrent batch resolution."""

    def test_mixed_results(self, resolver, registry_data):
        results = resolver.resolve_all(["pkg:npm/lodash@4.17.15", "pkg:npm/left-pad", "pkg:npm/missing"])

        assert set(results) == {"pkg:npm/lodash@4.17.15", "pkg:npm/left-pad", "pkg:npm/missing"}
        assert isinstance(results["pkg:npm/lodash@4.17.15"], NormalizedMetadata)
        assert results["pkg:npm/left-pad"].version == "1.3.0"
        assert isinstance(results["pkg:npm/missing"], NotFoundError)

    def test_invalid_entries_reported(self, resolver, registry_data):
        results = resolver.resolve_all(["pkg:npm/left-pad", "garbage"])

        assert isinstance(results["garbage"], ParseError)
        assert isinstance(results["pkg:npm/left-pad"], NormalizedMetadata)

    def test_coordinates_keyed_by_string(self, resolver, registry_data):
        coord = Coordinate.from_purl("pkg:npm/left-pad@1.3.0")
        results = resolver.resolve_all([coord])
        assert list(results) == ["pkg:npm/left-pad@1.3.0"]

    def test_duplicates_resolved_once(self, resolver, registry_data):
        results = resolver.resolve_all(["pkg:npm/left-pad", "pkg:npm/left-pad"])

        assert len(results) == 1
        assert registry_data.call_count(LEFT_PAD_URL) == 1

    def test_empty(self, resolver):
        assert resolver.resolve_all([]) == {}

    def test_runs_on_worker_threads(self, resolver, registry_data, monkeypatch):
        threads = set()
        original = resolver.resolve

        def recording_resolve(coordinate, use_cache=True):
            threads.add(threading.current_thread().name)
            return original(coordinate, use_cache)

        monkeypatch.setattr(resolver, "resolve", recording_resolve)
        resolver.resolve_all(["pkg:npm/left-pad", "pkg:npm/lodash"], max_workers=2)

        assert threading.main_thread().name not in threads
