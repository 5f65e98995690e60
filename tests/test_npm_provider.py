"""Tests for the npm provider."""

from datetime import datetime, timezone

import pytest

from oss_resolver._providers import ArtifactType, DownloadState, NpmEndpoints, NpmProvider
from oss_resolver.coordinate import Coordinate
from oss_resolver.exceptions import NotFoundError, TransportError
from oss_resolver.metadata import Dependency, Digest, License, Person

LODASH_URL = "https://registry.npmjs.org/lodash"


def lodash_document():
    return {
        "name": "lodash",
        "description": "Lodash modular utilities.",
        "dist-tags": {"latest": "4.17.21"},
        "time": {
            "created": "2012-04-23T16:37:11.912Z",
            "4.17.15": "2019-07-19T02:28:46.584Z",
            "4.17.21": "2021-02-20T15:42:16.891Z",
        },
        "versions": {
            "4.17.15": {
                "name": "lodash",
                "version": "4.17.15",
                "description": "Lodash modular utilities.",
                "homepage": "https://lodash.com/",
                "keywords": ["modules", "stdlib", "util"],
                "license": "MIT",
                "author": "John-David Dalton <john.david.dalton@gmail.com>",
                "contributors": [
                    {"name": "Mathias Bynens", "email": "mathias@qiwi.be", "url": "https://mathiasbynens.be/"},
                    "John-David Dalton <john.david.dalton@gmail.com>",
                ],
                "repository": {"type": "git", "url": "git+https://github.com/lodash/lodash.git"},
                "_npmUser": {"name": "jdalton", "email": "john.david.dalton@gmail.com"},
                "dist": {
                    "tarball": "https://registry.npmjs.org/lodash/-/lodash-4.17.15.tgz",
                    "shasum": "b447f6670a0455bbfeedd11392eff330ea097548",
                    "integrity": "sha512-8xOcRHvCjnocdS5cpwXQXVzmmh5e5+saE2QGoeQmbKmRS6J3VQppPOIt0MnmE+4xlZoumy0==",
                    "unpackedSize": 1391000,
                },
                "scripts": {"test": "echo \"See lodash-cli for testing details.\""},
            },
            "4.17.21": {
                "name": "lodash",
                "version": "4.17.21",
                "description": "Lodash modular utilities.",
                "license": "MIT",
                "repository": {"type": "git", "url": "git+https://github.com/lodash/lodash.git"},
                "dist": {"tarball": "https://registry.npmjs.org/lodash/-/lodash-4.17.21.tgz"},
            },
        },
    }


@pytest.fixture
def provider(cache, tmp_path):
    return NpmProvider(cache=cache, download_dir=tmp_path)


@pytest.fixture
def lodash(fake_registry):
    fake_registry.add_json(LODASH_URL, lodash_document())
    return fake_registry


class TestNpmProviderBasics:
    def test_identity(self, provider):
        assert provider.name == "npm"
        assert provider.supports(Coordinate.from_purl("pkg:npm/lodash"))
        assert not provider.supports(Coordinate.from_purl("pkg:pypi/lodash"))

    def test_package_url(self, provider):
        assert provider.package_url(Coordinate.from_purl("pkg:npm/lodash")) == LODASH_URL

    def test_scoped_package_url(self, provider):
        coord = Coordinate.from_purl("pkg:npm/%40angular/core@16.0.0")
        assert provider.package_url(coord) == "https://registry.npmjs.org/%40angular/core"

    def test_custom_registry(self, cache):
        provider = NpmProvider(cache=cache, endpoints=NpmEndpoints(registry="https://npm.example.com/"))
        assert provider.package_url(Coordinate.from_purl("pkg:npm/lodash")) == "https://npm.example.com/lodash"


class TestNpmEnumerateVersions:
    """Test version listing."""

    def test_latest_first(self, provider, lodash):
        assert provider.enumerate_versions(Coordinate.from_purl("pkg:npm/lodash")) == ["4.17.21", "4.17.15"]

    def test_dist_tag_latest_is_pinned(self, provider, fake_registry):
        fake_registry.add_json(
            "https://registry.npmjs.org/pkg",
            {"dist-tags": {"latest": "1.0.0"}, "versions": {"1.0.0": {}, "2.0.0-beta.1": {}, "0.9.0": {}}},
        )
        versions = provider.enumerate_versions(Coordinate.from_purl("pkg:npm/pkg"))
        assert versions == ["1.0.0", "2.0.0-beta.1", "0.9.0"]

    def test_unparseable_versions_last(self, provider, fake_registry):
        fake_registry.add_json(
            "https://registry.npmjs.org/pkg",
            {"versions": {"garbage": {}, "1.0.0": {}}},
        )
        assert provider.enumerate_versions(Coordinate.from_purl("pkg:npm/pkg")) == ["1.0.0", "garbage"]

    def test_unknown_package(self, provider):
        with pytest.raises(NotFoundError) as exc_info:
            provider.enumerate_versions(Coordinate.from_purl("pkg:npm/does-not-exist"))
        assert "pkg:npm/does-not-exist" in str(exc_info.value)

    def test_unpublished_package(self, provider, fake_registry):
        fake_registry.add_json(
            "https://registry.npmjs.org/gone",
            {"name": "gone", "time": {"unpublished": {"time": "2020-01-01T00:00:00.000Z"}}},
        )
        with pytest.raises(NotFoundError):
            provider.enumerate_versions(Coordinate.from_purl("pkg:npm/gone"))

    def test_server_error(self, provider, fake_registry):
        fake_registry.add_status(LODASH_URL, 500)
        with pytest.raises(TransportError):
            provider.enumerate_versions(Coordinate.from_purl("pkg:npm/lodash"))

    def test_invalid_json(self, provider, fake_registry):
        fake_registry.add_text(LODASH_URL, "<html>maintenance</html>")
        with pytest.raises(TransportError):
            provider.enumerate_versions(Coordinate.from_purl("pkg:npm/lodash"))


class TestNpmResolveMetadata:
    """Test metadata normalization."""

    def test_lodash(self, provider, lodash):
        metadata = provider.resolve_metadata(Coordinate.from_purl("pkg:npm/lodash@4.17.15"))

        assert metadata.name == "lodash"
        assert metadata.namespace is None
        assert metadata.version == "4.17.15"
        assert metadata.latest_version == "4.17.21"
        assert metadata.description == "Lodash modular utilities."
        assert metadata.homepage == "https://lodash.com/"
        assert metadata.keywords == ["modules", "stdlib", "util"]
        assert metadata.licenses == [License(name="MIT")]
        assert metadata.authors == [
            Person(name="John-David Dalton", email="john.david.dalton@gmail.com"),
            Person(name="Mathias Bynens", email="mathias@qiwi.be", url="https://mathiasbynens.be/"),
        ]
        assert metadata.publisher == Person(name="jdalton", email="john.david.dalton@gmail.com")
        assert metadata.publish_time == datetime(2019, 7, 19, 2, 28, 46, 584000, tzinfo=timezone.utc)
        assert metadata.unpacked_size == 1391000
        assert "test" in metadata.scripts

    def test_locations(self, provider, lodash):
        metadata = provider.resolve_metadata(Coordinate.from_purl("pkg:npm/lodash@4.17.15"))

        assert metadata.source_artifact_uri == "https://registry.npmjs.org/lodash/-/lodash-4.17.15.tgz"
        assert metadata.package_uri == "https://www.npmjs.com/package/lodash"
        assert metadata.package_version_uri == "https://www.npmjs.com/package/lodash/v/4.17.15"
        assert metadata.package_metadata_uri == LODASH_URL
        assert metadata.package_version_metadata_uri == "https://registry.npmjs.org/lodash/4.17.15"

    def test_digests(self, provider, lodash):
        metadata = provider.resolve_metadata(Coordinate.from_purl("pkg:npm/lodash@4.17.15"))

        assert metadata.digests[0].algorithm == "sha512"
        assert metadata.digests[0].signature.startswith("8xOcRHvCjnocdS5c")
        assert metadata.digests[1] == Digest(algorithm="sha1", signature="b447f6670a0455bbfeedd11392eff330ea097548")

    def test_source_repository(self, provider, lodash):
        metadata = provider.resolve_metadata(Coordinate.from_purl("pkg:npm/lodash@4.17.15"))

        assert str(metadata.source_repository.coordinate) == "pkg:github/lodash/lodash"
        assert metadata.source_repository.confidence == 1.0
        assert metadata.repository_candidates == [metadata.source_repository]

    def test_unversioned_resolves_latest(self, provider, lodash):
        metadata = provider.resolve_metadata(Coordinate.from_purl("pkg:npm/lodash"))
        assert metadata.version == "4.17.21"
        assert metadata.latest_version == "4.17.21"

    def test_unknown_version(self, provider, lodash):
        with pytest.raises(NotFoundError) as exc_info:
            provider.resolve_metadata(Coordinate.from_purl("pkg:npm/lodash@9.9.9"))
        assert "9.9.9" in str(exc_info.value)

    def test_malformed_repository_url(self, provider, fake_registry):
        document = lodash_document()
        document["versions"]["4.17.15"]["repository"] = {"type": "git", "url": "github.com/lodash/lodash"}
        fake_registry.add_json(LODASH_URL, document)

        metadata = provider.resolve_metadata(Coordinate.from_purl("pkg:npm/lodash@4.17.15"))

        assert metadata.source_repository is None
        assert metadata.repository_candidates == []
        assert metadata.version == "4.17.15"

    def test_non_git_repository_ignored(self, provider, fake_registry):
        document = lodash_document()
        document["versions"]["4.17.15"]["repository"] = {"type": "svn", "url": "https://github.com/lodash/lodash"}
        fake_registry.add_json(LODASH_URL, document)

        metadata = provider.resolve_metadata(Coordinate.from_purl("pkg:npm/lodash@4.17.15"))
        assert metadata.source_repository is None

    def test_malformed_fields_do_not_fail_resolution(self, provider, fake_registry):
        document = lodash_document()
        manifest = document["versions"]["4.17.15"]
        manifest["dependencies"] = ["not", "an", "object"]
        manifest["contributors"] = "someone"
        manifest["license"] = 42
        fake_registry.add_json(LODASH_URL, document)

        metadata = provider.resolve_metadata(Coordinate.from_purl("pkg:npm/lodash@4.17.15"))

        assert metadata.dependencies == []
        assert metadata.licenses == []
        assert len(metadata.authors) == 1

    def test_dependencies_and_legacy_licenses(self, provider, fake_registry):
        fake_registry.add_json(
            "https://registry.npmjs.org/%40scope/pkg",
            {
                "dist-tags": {"latest": "1.0.0"},
                "versions": {
                    "1.0.0": {
                        "licenses": [{"type": "MIT", "url": "https://opensource.org/licenses/MIT"}, "Apache-2.0"],
                        "dependencies": {"left-pad": "^1.3.0"},
                        "deprecated": "use other-pkg",
                    }
                },
            },
        )

        metadata = provider.resolve_metadata(Coordinate.from_purl("pkg:npm/%40scope/pkg@1.0.0"))

        assert metadata.namespace == "@scope"
        assert metadata.licenses == [
            License(name="MIT", url="https://opensource.org/licenses/MIT"),
            License(name="Apache-2.0"),
        ]
        assert metadata.dependencies == [Dependency(package="left-pad", constraint="^1.3.0")]
        assert metadata.deprecated == "use other-pkg"
        assert metadata.source_artifact_uri == "https://registry.npmjs.org/%40scope/pkg/-/pkg-1.0.0.tgz"
        assert metadata.package_uri == "https://www.npmjs.com/package/@scope/pkg"

    def test_cached_resolution(self, provider, lodash):
        coord = Coordinate.from_purl("pkg:npm/lodash@4.17.15")
        provider.resolve_metadata(coord)
        provider.resolve_metadata(coord)

        assert lodash.call_count(LODASH_URL) == 1

    def test_use_cache_false_refetches(self, provider, lodash):
        coord = Coordinate.from_purl("pkg:npm/lodash@4.17.15")
        provider.resolve_metadata(coord)
        provider.resolve_metadata(coord, use_cache=False)

        assert lodash.call_count(LODASH_URL) == 2


class TestNpmRepositoryInference:
    def test_builtin_module(self, provider, fake_registry):
        candidates = provider.infer_repositories(Coordinate.from_purl("pkg:npm/fs"))

        (candidate,) = candidates
        assert str(candidate.coordinate) == "pkg:github/nodejs/node#lib"
        assert fake_registry.requested_urls == []

    def test_fetches_document(self, provider, lodash):
        (candidate,) = provider.infer_repositories(Coordinate.from_purl("pkg:npm/lodash"))
        assert str(candidate.coordinate) == "pkg:github/lodash/lodash"

    def test_missing_package(self, provider):
        assert provider.infer_repositories(Coordinate.from_purl("pkg:npm/missing")) == set()

    def test_repository_string(self, provider):
        document = {"dist-tags": {"latest": "1.0.0"}, "versions": {"1.0.0": {"repository": "github:user/repo"}}}
        assert provider.repository_urls(Coordinate.from_purl("pkg:npm/x"), document) == ["github:user/repo"]


class TestNpmArtifacts:
    def test_tarball(self, provider):
        (artifact,) = provider.artifact_locations(Coordinate.from_purl("pkg:npm/lodash@4.17.15"))
        assert artifact.type == ArtifactType.TARBALL
        assert artifact.uri == "https://registry.npmjs.org/lodash/-/lodash-4.17.15.tgz"

    def test_scoped(self, provider):
        (artifact,) = provider.artifact_locations(Coordinate.from_purl("pkg:npm/%40babel/core@7.0.0"))
        assert artifact.uri == "https://registry.npmjs.org/%40babel/core/-/core-7.0.0.tgz"

    def test_repository_url_qualifier(self, provider):
        coord = Coordinate.from_purl("pkg:npm/lodash@4.17.15?repository_url=https://npm.example.com/")
        (artifact,) = provider.artifact_locations(coord)
        assert artifact.uri == "https://npm.example.com/lodash/-/lodash-4.17.15.tgz"

    def test_requires_version(self, provider):
        with pytest.raises(ValueError):
            provider.artifact_locations(Coordinate.from_purl("pkg:npm/lodash"))


class TestNpmPackageExists:
    def test_exists(self, provider, lodash):
        assert provider.package_exists(Coordinate.from_purl("pkg:npm/lodash"))

    def test_missing(self, provider):
        assert not provider.package_exists(Coordinate.from_purl("pkg:npm/missing"))


class TestNpmDownload:
    def test_download_uses_extractor(self, cache, fake_registry, tmp_path):
        fake_registry.add_bytes("https://registry.npmjs.org/lodash/-/lodash-4.17.15.tgz", b"\x1f\x8btarball")
        calls = []

        def extractor(data, target):
            calls.append((data, target))
            return str(target)

        provider = NpmProvider(cache=cache, download_dir=tmp_path, extractor=extractor)
        result = provider.download(Coordinate.from_purl("pkg:npm/lodash@4.17.15"))

        assert result.state == DownloadState.EXTRACTED
        assert result.paths == [str(tmp_path / "npm-lodash@4.17.15")]
        assert calls == [(b"\x1f\x8btarball", tmp_path / "npm-lodash@4.17.15")]

    def test_download_without_version_fails(self, provider):
        result = provider.download(Coordinate.from_purl("pkg:npm/lodash"))
        assert result.state == DownloadState.FAILED
        assert "version" in result.error
