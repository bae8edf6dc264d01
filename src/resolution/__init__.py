"""Coordinate parsing, artifact resolution and dependency-tree walking."""

from .models import (
    Classification,
    ClassificationResult,
    ComponentDirectory,
    Coordinate,
    Dependency,
    DependencyDeclaration,
    DependencyNode,
    Origin,
    RemoteRepository,
    ResolvedArtifact,
)
from .coordinates import parse_coordinate
from .classifier import ComponentClassifier
from .gateway import ArtifactResolutionGateway, ResolverOracle
from .walker import DependencyGraphWalker

__all__ = [
    "Classification",
    "ClassificationResult",
    "ComponentDirectory",
    "Coordinate",
    "Dependency",
    "DependencyDeclaration",
    "DependencyNode",
    "Origin",
    "RemoteRepository",
    "ResolvedArtifact",
    "parse_coordinate",
    "ComponentClassifier",
    "ArtifactResolutionGateway",
    "ResolverOracle",
    "DependencyGraphWalker",
]
