"""Component classifier: loadable plugin or plain library?"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from archive.manifest import parse_manifest, parse_properties
from archive.reader import ArchiveReader, ZipArchiveReader
from common.errors import ArchiveReadError
from common.logging_utils import extra_context, is_debug_enabled
from constants import Constants
from .models import Classification, ClassificationResult, ResolvedArtifact

logger = logging.getLogger(__name__)


class ComponentClassifier:
    """Decides whether an artifact carries a component-identity marker.

    The marker is the ``Plugin-Id`` manifest attribute or, failing that, the
    ``plugin.id`` key of a ``plugin.properties`` entry. Anything that cannot
    be inspected is a library: classification never drops an artifact.
    """

    def __init__(self, reader: Optional[ArchiveReader] = None):
        self.reader = reader or ZipArchiveReader()

    def identity_of(self, path: Path) -> Optional[str]:
        """Return the identity marker of the archive at ``path``, if any.

        Raises:
            ArchiveReadError: the archive cannot be opened or read.
        """
        with self.reader.open_archive(path) as handle:
            data = self.reader.find_entry(handle, Constants.JAR_MANIFEST_ENTRY)
            if data is not None:
                plugin_id = parse_manifest(data).get(Constants.PLUGIN_ID_ATTRIBUTE)
                if plugin_id:
                    return plugin_id
            data = self.reader.find_entry(handle, Constants.PLUGIN_PROPERTIES_ENTRY)
            if data is not None:
                plugin_id = parse_properties(data).get(Constants.PLUGIN_ID_PROPERTY)
                if plugin_id:
                    return plugin_id
        return None

    def classify(self, artifact: ResolvedArtifact) -> ClassificationResult:
        """Tag ``artifact`` as a component or a library."""
        if artifact.path is None:
            logger.warning("Cannot classify unresolved artifact %s; treating as library", artifact)
            return ClassificationResult(artifact, Classification.LIBRARY)
        try:
            plugin_id = self.identity_of(artifact.path)
        except ArchiveReadError as exc:
            logger.warning("Cannot inspect %s (%s); treating as library", artifact, exc)
            return ClassificationResult(artifact, Classification.LIBRARY)

        kind = Classification.COMPONENT if plugin_id else Classification.LIBRARY
        if is_debug_enabled(logger):
            logger.debug("Classified artifact", extra=extra_context(
                event="decision", component="classifier", action="classify",
                target=str(artifact), outcome=kind.value
            ))
        return ClassificationResult(artifact, kind, plugin_id)
