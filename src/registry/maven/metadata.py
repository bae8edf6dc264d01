"""maven-metadata.xml parsing and version ordering for meta-versions."""
from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import Iterable, List, Optional

from packaging import version

from constants import Constants

logger = logging.getLogger(__name__)


def parse_metadata_versions(data) -> List[str]:
    """Return the versions listed under versioning/versions, in document order.

    Malformed metadata yields an empty list.
    """
    try:
        root = ET.fromstring(data)
    except ET.ParseError as exc:
        logger.warning("Ignoring malformed %s: %s", Constants.METADATA_FILE, exc)
        return []
    versions = []
    for versioning in _children(root, "versioning"):
        for listing in _children(versioning, "versions"):
            for elem in _children(listing, "version"):
                if elem.text and elem.text.strip():
                    versions.append(elem.text.strip())
    return versions


def _children(elem: ET.Element, name: str) -> List[ET.Element]:
    return [child for child in elem if child.tag.rsplit("}", 1)[-1] == name]


def _sort_key(candidate: str):
    base = candidate[:-len(Constants.SNAPSHOT_SUFFIX)] if candidate.endswith(Constants.SNAPSHOT_SUFFIX) else candidate
    try:
        return (1, version.Version(base), not candidate.endswith(Constants.SNAPSHOT_SUFFIX))
    except version.InvalidVersion:
        return (0, version.Version("0"), False)


def pick_latest(candidates: Iterable[str], include_snapshots: bool = False) -> Optional[str]:
    """Pick the highest version among ``candidates``.

    Snapshots are only considered with ``include_snapshots``; a release beats
    the snapshot of the same base version. Versions that do not parse sort
    below every parsable one.
    """
    pool = [c for c in set(candidates) if c]
    if not include_snapshots:
        pool = [c for c in pool if not c.endswith(Constants.SNAPSHOT_SUFFIX)]
    if not pool:
        return None
    return max(pool, key=lambda c: (_sort_key(c), c))
