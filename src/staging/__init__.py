"""Plugins-root staging.

This package owns every write under the plugins root: component
directories, primary artifacts, lib/ dependency copies and the run lock.
"""

from .materializer import FilesystemMaterializer, find_primary_artifact
from .lock import RunLock
from .report import RunReport, export_json
from .pipeline import StagePipeline

__all__ = [
    "FilesystemMaterializer",
    "find_primary_artifact",
    "RunLock",
    "RunReport",
    "export_json",
    "StagePipeline",
]
