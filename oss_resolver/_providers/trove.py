"""PyPI trove classifier parsing."""

from typing import Iterable, List

from oss_resolver.logging_config import logger
from oss_resolver.metadata import TroveClassification

SEPARATOR = " :: "

PARENT_CLASSIFIERS = frozenset(
    {
        "Development Status",
        "Environment",
        "Framework",
        "Intended Audience",
        "License",
        "Natural Language",
        "Operating System",
        "Programming Language",
        "Topic",
        "Typing",
    }
)


def parse_classifier(classifier: str) -> TroveClassification:
    """
    Split a classifier such as "License :: OSI Approved :: MIT License".

    Raises:
        ValueError: If the classifier has a single segment or an unknown parent
    """
    parts = [p.strip() for p in classifier.split(SEPARATOR)]
    if len(parts) < 2:
        raise ValueError(f"Invalid trove classifier: {classifier!r}")
    parent, target, subclasses = parts[0], parts[1], tuple(parts[2:])
    if parent not in PARENT_CLASSIFIERS:
        raise ValueError(f"Unknown trove classifier parent {parent!r} in {classifier!r}")
    return TroveClassification(parent=parent, target=target, subclasses=subclasses)


def parse_classifiers(classifiers: Iterable[str]) -> List[TroveClassification]:
    """Parse every valid classifier, skipping (and logging) invalid ones."""
    parsed = []
    for classifier in classifiers:
        if not isinstance(classifier, str):
            continue
        try:
            parsed.append(parse_classifier(classifier))
        except ValueError as e:
            logger.debug(str(e))
    return parsed


def license_names(classifications: Iterable[TroveClassification]) -> List[str]:
    """License names from "License :: ..." classifiers, most specific segment."""
    names = []
    for classification in classifications:
        if classification.parent != "License":
            continue
        name = classification.subclasses[-1] if classification.subclasses else classification.target
        # "License :: OSI Approved" alone names no license
        if name == "OSI Approved":
            continue
        if name not in names:
            names.append(name)
    return names
