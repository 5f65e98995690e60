"""Tests for artifact downloads and download results."""

import pytest

from oss_resolver._providers import (
    ArtifactType,
    ArtifactUri,
    DownloadResult,
    DownloadState,
    download_artifact,
    target_name,
)
from oss_resolver.archive import extract_archive
from oss_resolver.coordinate import Coordinate
from oss_resolver.exceptions import DownloadError

TARBALL_URL = "https://registry.npmjs.org/lodash/-/lodash-4.17.15.tgz"
ARTIFACT = ArtifactUri(ArtifactType.TARBALL, TARBALL_URL)
COORD = Coordinate.from_purl("pkg:npm/lodash@4.17.15")


class RecordingExtractor:
    """Extractor double recording its calls."""

    def __init__(self, error=None):
        self.calls = []
        self.error = error

    def __call__(self, data, target):
        self.calls.append((data, target))
        if self.error:
            raise self.error
        target.mkdir(parents=True, exist_ok=True)
        return str(target)


class TestDownloadResult:
    """Test DownloadResult validation."""

    def test_success(self):
        result = DownloadResult.success_result(DownloadState.EXTRACTED, ["/tmp/x"])
        assert result.success
        assert not result.from_cache
        assert result.error is None

    def test_cached_hit(self):
        result = DownloadResult.success_result(DownloadState.CACHED_HIT, ["/tmp/x"])
        assert result.success
        assert result.from_cache

    def test_failure(self):
        result = DownloadResult.failure_result("boom")
        assert not result.success
        assert result.paths == []
        assert result.error == "boom"

    def test_success_with_error_rejected(self):
        with pytest.raises(ValueError):
            DownloadResult(state=DownloadState.EXTRACTED, paths=[], error="boom")

    def test_failure_without_error_rejected(self):
        with pytest.raises(ValueError):
            DownloadResult(state=DownloadState.FAILED)

    def test_failure_with_paths_rejected(self):
        with pytest.raises(ValueError):
            DownloadResult(state=DownloadState.FAILED, paths=["/tmp/x"], error="boom")


class TestTargetName:
    def test_plain(self):
        assert target_name(COORD) == "npm-lodash@4.17.15"

    def test_namespaced(self):
        assert target_name(Coordinate.from_purl("pkg:npm/%40babel/core@7.0.0")) == "npm-@babel-core@7.0.0"

    def test_nested_namespace(self):
        coord = Coordinate.from_purl("pkg:gitlab/group/sub/project@1.0")
        assert target_name(coord) == "gitlab-group-sub-project@1.0"


class TestDownloadArtifact:
    """Test the download state machine."""

    def test_extracted(self, fake_registry, cache, tmp_path):
        fake_registry.add_bytes(TARBALL_URL, b"\x1f\x8bdata")
        extractor = RecordingExtractor()

        result = download_artifact(COORD, ARTIFACT, cache, tmp_path, extractor)

        assert result.state == DownloadState.EXTRACTED
        assert result.paths == [str(tmp_path / "npm-lodash@4.17.15")]
        assert extractor.calls == [(b"\x1f\x8bdata", tmp_path / "npm-lodash@4.17.15")]

    def test_artifact_bytes_not_cached(self, fake_registry, cache, tmp_path):
        fake_registry.add_bytes(TARBALL_URL, b"\x1f\x8bdata")

        download_artifact(COORD, ARTIFACT, cache, tmp_path, RecordingExtractor())

        assert TARBALL_URL not in cache

    def test_cached_hit_skips_network(self, fake_registry, cache, tmp_path):
        (tmp_path / "npm-lodash@4.17.15").mkdir()
        extractor = RecordingExtractor()

        result = download_artifact(COORD, ARTIFACT, cache, tmp_path, extractor)

        assert result.state == DownloadState.CACHED_HIT
        assert result.paths == [str(tmp_path / "npm-lodash@4.17.15")]
        assert fake_registry.requested_urls == []
        assert extractor.calls == []

    def test_use_cache_false_downloads_again(self, fake_registry, cache, tmp_path):
        (tmp_path / "npm-lodash@4.17.15").mkdir()
        fake_registry.add_bytes(TARBALL_URL, b"\x1f\x8bdata")

        result = download_artifact(COORD, ARTIFACT, cache, tmp_path, RecordingExtractor(), use_cache=False)

        assert result.state == DownloadState.EXTRACTED
        assert fake_registry.call_count(TARBALL_URL) == 1

    def test_raw_written(self, fake_registry, cache, tmp_path):
        fake_registry.add_bytes(TARBALL_URL, b"\x1f\x8bdata")
        extractor = RecordingExtractor()

        result = download_artifact(COORD, ARTIFACT, cache, tmp_path / "downloads", extractor, extract=False)

        expected = tmp_path / "downloads" / "npm-lodash@4.17.15.tgz"
        assert result.state == DownloadState.RAW_WRITTEN
        assert result.paths == [str(expected)]
        assert expected.read_bytes() == b"\x1f\x8bdata"
        assert extractor.calls == []

    def test_raw_ignores_existing_extraction(self, fake_registry, cache, tmp_path):
        (tmp_path / "npm-lodash@4.17.15").mkdir()
        fake_registry.add_bytes(TARBALL_URL, b"\x1f\x8bdata")

        result = download_artifact(COORD, ARTIFACT, cache, tmp_path, RecordingExtractor(), extract=False)

        assert result.state == DownloadState.RAW_WRITTEN

    def test_http_failure(self, cache, tmp_path):
        result = download_artifact(COORD, ARTIFACT, cache, tmp_path, RecordingExtractor())

        assert result.state == DownloadState.FAILED
        assert result.error.startswith("pkg:npm/lodash@4.17.15: ")
        assert "404" in result.error

    def test_extraction_failure(self, fake_registry, cache, tmp_path):
        fake_registry.add_bytes(TARBALL_URL, b"not an archive")
        extractor = RecordingExtractor(error=DownloadError("Unsupported archive format"))

        result = download_artifact(COORD, ARTIFACT, cache, tmp_path, extractor)

        assert result.state == DownloadState.FAILED
        assert "Unsupported archive format" in result.error

    def test_failed_extraction_is_not_a_later_cache_hit(self, fake_registry, cache, tmp_path):
        fake_registry.add_bytes(TARBALL_URL, b"\x1f\x8b corrupt gzip body")

        first = download_artifact(COORD, ARTIFACT, cache, tmp_path, extract_archive)
        second = download_artifact(COORD, ARTIFACT, cache, tmp_path, extract_archive)

        assert first.state == DownloadState.FAILED
        assert second.state == DownloadState.FAILED
        assert not (tmp_path / "npm-lodash@4.17.15").exists()
        assert fake_registry.call_count(TARBALL_URL) == 2

    def test_failed_extraction_keeps_existing_directory(self, fake_registry, cache, tmp_path):
        existing = tmp_path / "npm-lodash@4.17.15"
        existing.mkdir()
        (existing / "package.json").write_text("{}")
        fake_registry.add_bytes(TARBALL_URL, b"\x1f\x8b corrupt gzip body")

        result = download_artifact(COORD, ARTIFACT, cache, tmp_path, extract_archive, use_cache=False)

        assert result.state == DownloadState.FAILED
        assert (existing / "package.json").exists()

    def test_requires_version(self, cache, tmp_path):
        result = download_artifact(COORD.with_version(None), ARTIFACT, cache, tmp_path, RecordingExtractor())
        assert result.state == DownloadState.FAILED

    def test_requires_artifact(self, cache, tmp_path):
        result = download_artifact(COORD, None, cache, tmp_path, RecordingExtractor())
        assert result.state == DownloadState.FAILED
        assert "no downloadable artifact" in result.error
