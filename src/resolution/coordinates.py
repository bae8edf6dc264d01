"""Coordinate parsing utilities."""

import re
from typing import List

from common.errors import CoordinateParseError
from constants import Constants
from .models import Coordinate

_SEGMENT = re.compile(r"^[A-Za-z0-9_.\-+]+$")


def tokenize(s: str) -> List[str]:
    """Split a coordinate string on colons, trimming each part."""
    return [part.strip() for part in s.strip().split(":")]


def parse_coordinate(text: str) -> Coordinate:
    """Parse ``group:artifact[:type[:classifier]]:version``.

    Three parts name group/artifact/version, four add the type, five add
    type and classifier. An empty type falls back to ``jar``.

    Raises:
        CoordinateParseError: wrong arity, empty group/artifact/version or
            characters that cannot appear in a repository path.
    """
    if not isinstance(text, str) or not text.strip():
        raise CoordinateParseError("Empty coordinate", subject=str(text))
    parts = tokenize(text)
    if len(parts) == 3:
        group, artifact, version = parts
        extension, classifier = "", ""
    elif len(parts) == 4:
        group, artifact, extension, version = parts
        classifier = ""
    elif len(parts) == 5:
        group, artifact, extension, classifier, version = parts
    else:
        raise CoordinateParseError(
            f"Invalid coordinate '{text}'. Expected 'groupId:artifactId[:type[:classifier]]:version'.",
            subject=text,
        )

    for label, value in (("groupId", group), ("artifactId", artifact), ("version", version)):
        if not value:
            raise CoordinateParseError(f"Invalid coordinate '{text}': missing {label}", subject=text)
        if not _SEGMENT.match(value):
            raise CoordinateParseError(f"Invalid coordinate '{text}': bad {label} '{value}'", subject=text)
    for label, value in (("type", extension), ("classifier", classifier)):
        if value and not _SEGMENT.match(value):
            raise CoordinateParseError(f"Invalid coordinate '{text}': bad {label} '{value}'", subject=text)

    return Coordinate(
        group=group,
        artifact=artifact,
        version=version,
        extension=extension or Constants.DEFAULT_ARTIFACT_TYPE,
        classifier=classifier,
    )
