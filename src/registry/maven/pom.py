"""POM parsing: coordinates, properties, dependencies and dependencyManagement."""
from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from common.errors import DescriptorError
from common.logging_utils import extra_context, is_debug_enabled
from constants import Constants, Scope
from resolution.models import Coordinate, Dependency, DependencyDeclaration

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\$\{([^}]+)\}")
_MAX_INTERPOLATION_PASSES = 10


@dataclass
class RawDependency:
    """A <dependency> element before property interpolation."""
    group: Optional[str]
    artifact: Optional[str]
    version: Optional[str] = None
    type: Optional[str] = None
    classifier: Optional[str] = None
    scope: Optional[str] = None
    optional: bool = False
    exclusions: Tuple[str, ...] = ()

    @property
    def key(self) -> str:
        return f"{self.group}:{self.artifact}"


@dataclass
class PomModel:
    """The parts of a POM the resolver needs."""
    group: Optional[str]
    artifact: Optional[str]
    version: Optional[str]
    packaging: str = Constants.DEFAULT_ARTIFACT_TYPE
    parent: Optional[Coordinate] = None
    properties: Dict[str, str] = field(default_factory=dict)
    dependencies: List[RawDependency] = field(default_factory=list)
    managed: List[RawDependency] = field(default_factory=list)

    @property
    def effective_group(self) -> Optional[str]:
        return self.group or (self.parent.group if self.parent else None)

    @property
    def effective_version(self) -> Optional[str]:
        return self.version or (self.parent.version if self.parent else None)

    def builtin_properties(self) -> Dict[str, str]:
        """project.* / pom.* values usable in ${...} placeholders."""
        values: Dict[str, str] = {}
        pairs = {
            "groupId": self.effective_group,
            "artifactId": self.artifact,
            "version": self.effective_version,
            "packaging": self.packaging,
        }
        if self.parent is not None:
            pairs["parent.groupId"] = self.parent.group
            pairs["parent.artifactId"] = self.parent.artifact
            pairs["parent.version"] = self.parent.version
        for name, value in pairs.items():
            if value:
                values[f"project.{name}"] = value
                values[f"pom.{name}"] = value
                if name in ("groupId", "version", "artifactId"):
                    values[name] = value
        return values


def _local(tag: str) -> str:
    """Drop the XML namespace from a tag."""
    return tag.rsplit("}", 1)[-1]


def _child(elem: ET.Element, name: str) -> Optional[ET.Element]:
    for item in elem:
        if _local(item.tag) == name:
            return item
    return None


def _children(elem: Optional[ET.Element], name: str) -> List[ET.Element]:
    if elem is None:
        return []
    return [item for item in elem if _local(item.tag) == name]


def _text(elem: ET.Element, name: str) -> Optional[str]:
    node = _child(elem, name)
    if node is None or node.text is None:
        return None
    value = node.text.strip()
    return value or None


def _parse_dependency(elem: ET.Element) -> RawDependency:
    exclusions = []
    for excl in _children(_child(elem, "exclusions"), "exclusion"):
        group = _text(excl, "groupId") or "*"
        artifact = _text(excl, "artifactId") or "*"
        exclusions.append(f"{group}:{artifact}")
    return RawDependency(
        group=_text(elem, "groupId"),
        artifact=_text(elem, "artifactId"),
        version=_text(elem, "version"),
        type=_text(elem, "type"),
        classifier=_text(elem, "classifier"),
        scope=_text(elem, "scope"),
        optional=(_text(elem, "optional") or "").lower() == "true",
        exclusions=tuple(exclusions),
    )


def parse_pom(data) -> PomModel:
    """Parse POM bytes or text.

    Raises:
        DescriptorError: the document is not well-formed XML or not a <project>.
    """
    try:
        root = ET.fromstring(data)
    except ET.ParseError as exc:
        raise DescriptorError(f"Malformed POM: {exc}") from exc
    if _local(root.tag) != "project":
        raise DescriptorError(f"Not a POM: root element is <{_local(root.tag)}>")

    parent = None
    parent_elem = _child(root, "parent")
    if parent_elem is not None:
        p_group = _text(parent_elem, "groupId")
        p_artifact = _text(parent_elem, "artifactId")
        p_version = _text(parent_elem, "version")
        if p_group and p_artifact and p_version:
            parent = Coordinate(p_group, p_artifact, p_version, "pom")

    properties: Dict[str, str] = {}
    props_elem = _child(root, "properties")
    if props_elem is not None:
        for prop in props_elem:
            properties[_local(prop.tag)] = (prop.text or "").strip()

    management = _child(root, "dependencyManagement")
    managed = [
        _parse_dependency(dep)
        for dep in _children(_child(management, "dependencies") if management is not None else None, "dependency")
    ]
    dependencies = [
        _parse_dependency(dep) for dep in _children(_child(root, "dependencies"), "dependency")
    ]

    return PomModel(
        group=_text(root, "groupId"),
        artifact=_text(root, "artifactId"),
        version=_text(root, "version"),
        packaging=_text(root, "packaging") or Constants.DEFAULT_ARTIFACT_TYPE,
        parent=parent,
        properties=properties,
        dependencies=dependencies,
        managed=managed,
    )


def interpolate(value: Optional[str], properties: Dict[str, str]) -> Optional[str]:
    """Substitute ${name} placeholders; returns None if any stay unresolved."""
    if value is None:
        return None
    for _ in range(_MAX_INTERPOLATION_PASSES):
        if "${" not in value:
            return value
        value = _PLACEHOLDER.sub(lambda m: properties.get(m.group(1), m.group(0)), value)
        if all(name not in properties for name in _PLACEHOLDER.findall(value)) and "${" in value:
            return None
    return None if "${" in value else value


def to_dependency(raw: RawDependency, properties: Dict[str, str],
                  managed: Optional[Dict[str, RawDependency]] = None) -> Optional[Dependency]:
    """Turn a raw declaration into a Dependency, filling gaps from dependencyManagement.

    Returns None when group, artifact or version cannot be determined.
    """
    group = interpolate(raw.group, properties)
    artifact = interpolate(raw.artifact, properties)
    if not group or not artifact:
        return None
    managed_entry = (managed or {}).get(f"{group}:{artifact}")
    version = raw.version or (managed_entry.version if managed_entry else None)
    scope = raw.scope or (managed_entry.scope if managed_entry else None)
    version = interpolate(version, properties)
    if not version:
        if is_debug_enabled(logger):
            logger.debug("Unversioned dependency dropped", extra=extra_context(
                event="decision", component="pom", action="to_dependency",
                target=f"{group}:{artifact}", outcome="no_version"
            ))
        return None
    exclusions = set(raw.exclusions)
    if managed_entry is not None:
        exclusions.update(managed_entry.exclusions)
    return Dependency(
        coordinate=Coordinate(
            group=group,
            artifact=artifact,
            version=version,
            extension=interpolate(raw.type, properties) or Constants.DEFAULT_ARTIFACT_TYPE,
            classifier=interpolate(raw.classifier, properties) or "",
        ),
        scope=Scope.parse(interpolate(scope, properties)),
        optional=raw.optional,
        exclusions=frozenset(exclusions),
    )


def to_declaration(model: PomModel) -> DependencyDeclaration:
    """Build the declaration of an embedded POM, using only what the POM itself holds."""
    properties = dict(model.properties)
    properties.update(model.builtin_properties())
    managed = {}
    for raw in model.managed:
        dep_group = interpolate(raw.group, properties)
        dep_artifact = interpolate(raw.artifact, properties)
        if dep_group and dep_artifact:
            managed[f"{dep_group}:{dep_artifact}"] = raw

    dependencies = []
    for raw in model.dependencies:
        dep = to_dependency(raw, properties, managed)
        if dep is None:
            logger.warning(
                "Skipping dependency %s of %s: version cannot be determined from the embedded POM",
                raw.key, model.artifact,
            )
            continue
        dependencies.append(dep)

    project = None
    group, version = model.effective_group, model.effective_version
    if group and model.artifact and version:
        project = Coordinate(group, model.artifact, version)
    return DependencyDeclaration(project=project, dependencies=tuple(dependencies))
