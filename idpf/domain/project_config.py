"""Normalized view of ``framework-config.json``.

Historical schemas stored the version as ``installedVersion`` and the specialist
as ``primarySpecialist`` or a ``domainSpecialists`` list. ``from_dict`` resolves
those fallbacks once; everything else in the document is carried through
untouched by ``to_dict``.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

from idpf.domain.transitions import DEFAULT_SPECIALIST

DEFAULT_VERSION = "0.0.0"
DEPRECATED_FIELDS = ("installedVersion", "components")


def _first_specialist(project_type: dict[str, Any]) -> str:
    candidates = [
        project_type.get("domainSpecialist"),
        project_type.get("primarySpecialist"),
    ]
    plural = project_type.get("domainSpecialists")
    if isinstance(plural, list) and plural:
        candidates.append(plural[0])
    for candidate in candidates:
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    return DEFAULT_SPECIALIST


@dataclass
class ProjectConfig:
    framework_version: str
    process_framework: str | None
    domain_specialist: str
    document: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProjectConfig":
        doc = copy.deepcopy(data) if isinstance(data, dict) else {}
        project_type = doc.get("projectType")
        if not isinstance(project_type, dict):
            project_type = {}
        version = doc.get("frameworkVersion") or doc.get("installedVersion") or DEFAULT_VERSION
        framework = project_type.get("processFramework") or doc.get("framework") or None
        return cls(
            framework_version=str(version),
            process_framework=str(framework) if framework else None,
            domain_specialist=_first_specialist(project_type),
            document=doc,
        )

    @property
    def project_type(self) -> dict[str, Any]:
        pt = self.document.get("projectType")
        if not isinstance(pt, dict):
            pt = {}
            self.document["projectType"] = pt
        return pt

    @property
    def framework_path(self) -> str | None:
        value = self.document.get("frameworkPath")
        return str(value) if value else None

    def get(self, key: str, default: Any = None) -> Any:
        return self.document.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.document[key] = value

    def stamp(self, version: str, *, date_field: str, date: str) -> None:
        self.framework_version = version
        self.document[date_field] = date

    def to_dict(self) -> dict[str, Any]:
        doc = copy.deepcopy(self.document)
        for name in DEPRECATED_FIELDS:
            doc.pop(name, None)
        doc["frameworkVersion"] = self.framework_version
        if self.process_framework is not None or "projectType" in doc:
            pt = doc.get("projectType") if isinstance(doc.get("projectType"), dict) else {}
            if self.process_framework is not None:
                pt["processFramework"] = self.process_framework
            pt["domainSpecialist"] = self.domain_specialist
            doc["projectType"] = pt
        return doc
