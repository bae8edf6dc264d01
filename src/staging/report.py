"""Run report: what was materialized and what failed."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from common.errors import StageError
from resolution.models import ComponentDirectory, Origin

logger = logging.getLogger(__name__)


@dataclass
class ComponentRecord:
    component_id: str
    directory: str
    origin: Origin
    primary_artifact: Optional[str]
    dependencies_copied: List[str] = field(default_factory=list)
    dependencies_skipped: bool = False


@dataclass
class FailureRecord:
    kind: str
    subject: Optional[str]
    message: str


@dataclass
class RunReport:
    """Collects per-component outcomes and isolated failures of one run."""
    components: List[ComponentRecord] = field(default_factory=list)
    failures: List[FailureRecord] = field(default_factory=list)

    def record_component(self, component: ComponentDirectory, origin: Origin) -> None:
        self.components.append(ComponentRecord(
            component_id=component.component_id,
            directory=str(component.path),
            origin=origin,
            primary_artifact=str(component.primary_artifact) if component.primary_artifact else None,
            dependencies_copied=[path.name for path in component.copied],
            dependencies_skipped=component.dependencies_skipped,
        ))

    def record_failure(self, error: StageError) -> None:
        self.failures.append(FailureRecord(kind=error.kind, subject=error.subject, message=str(error)))

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "components": [
                {
                    "componentId": c.component_id,
                    "directory": c.directory,
                    "origin": c.origin.value,
                    "primaryArtifact": c.primary_artifact,
                    "dependenciesCopied": c.dependencies_copied,
                    "dependenciesSkipped": c.dependencies_skipped,
                }
                for c in self.components
            ],
            "failures": [
                {"kind": f.kind, "subject": f.subject, "message": f.message}
                for f in self.failures
            ],
        }


def export_json(report: RunReport, path: str) -> None:
    """Write the report to ``path`` as JSON.

    Raises:
        OSError: the file cannot be written.
    """
    with open(path, "w", encoding="utf-8") as file:
        json.dump(report.to_dict(), file, ensure_ascii=False, indent=4)
    logging.info("JSON report has been successfully exported at: %s", path)
