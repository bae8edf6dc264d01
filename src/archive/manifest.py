"""Parsers for JAR manifests and plugin.properties files."""
from __future__ import annotations

from typing import Dict


def _decode(data) -> str:
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


def parse_manifest(data) -> Dict[str, str]:
    """Return the main-section attributes of a MANIFEST.MF.

    Lines starting with a single space continue the previous line. The main
    section ends at the first blank line.
    """
    attributes: Dict[str, str] = {}
    last_key = None
    for line in _decode(data).splitlines():
        if not line.strip():
            if attributes:
                break
            continue
        if line.startswith(" ") and last_key is not None:
            attributes[last_key] += line[1:]
            continue
        key, sep, value = line.partition(":")
        if not sep:
            continue
        last_key = key.strip()
        attributes[last_key] = value.strip()
    return attributes


def parse_properties(data) -> Dict[str, str]:
    """Parse a Java .properties document (``key=value`` or ``key: value``)."""
    properties: Dict[str, str] = {}
    pending = ""
    for raw in _decode(data).splitlines():
        line = raw.strip()
        if not pending and (not line or line[0] in "#!"):
            continue
        if line.endswith("\\") and not line.endswith("\\\\"):
            pending += line[:-1]
            continue
        line = pending + line
        pending = ""
        positions = [pos for pos in (line.find("="), line.find(":")) if pos >= 0]
        if positions:
            cut = min(positions)
            key, value = line[:cut], line[cut + 1:]
        else:
            key, _, value = line.partition(" ")
        properties[key.strip()] = value.strip()
    return properties
