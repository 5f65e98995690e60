"""Tests for PyPI trove classifier parsing."""

import pytest

from oss_resolver._providers import parse_classifier, parse_classifiers
from oss_resolver._providers.trove import license_names
from oss_resolver.metadata import TroveClassification


class TestParseClassifier:
    def test_license(self):
        assert parse_classifier("License :: OSI Approved :: MIT License") == TroveClassification(
            parent="License",
            target="OSI Approved",
            subclasses=("MIT License",),
        )

    def test_two_segments(self):
        classification = parse_classifier("Typing :: Typed")
        assert classification.target == "Typed"
        assert classification.subclasses == ()

    def test_single_segment_rejected(self):
        with pytest.raises(ValueError):
            parse_classifier("License")

    def test_unknown_parent_rejected(self):
        with pytest.raises(ValueError):
            parse_classifier("Private :: Do Not Upload")


class TestParseClassifiers:
    def test_invalid_entries_skipped(self):
        parsed = parse_classifiers(
            [
                "Programming Language :: Python :: 3 :: Only",
                "Private :: Do Not Upload",
                "Nonsense",
                None,
            ]
        )
        assert parsed == [
            TroveClassification(parent="Programming Language", target="Python", subclasses=("3", "Only"))
        ]


class TestLicenseNames:
    def test_most_specific_segment(self):
        classifications = parse_classifiers(
            [
                "License :: OSI Approved :: BSD License",
                "License :: Public Domain",
                "License :: OSI Approved",
                "Topic :: Internet",
                "License :: OSI Approved :: BSD License",
            ]
        )
        assert license_names(classifications) == ["BSD License", "Public Domain"]
