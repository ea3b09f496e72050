"""Core data models shared across compscan components."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

DEFAULT_KIND_NAMESPACE = "source.lang.swift."


@dataclass(frozen=True)
class Module:
    """A compilable module resolved from the build graph."""

    name: str
    source_path: str
    original_manifest_path: str
    is_third_party: bool


@dataclass(frozen=True)
class CatalogEntry:
    """An importable symbol reported by the completion oracle."""

    name: str
    kind: str
    module_name: str
    doc_brief: Optional[str] = None

    @property
    def base_name(self) -> str:
        return base_name(self.name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind,
            "moduleName": self.module_name,
            "docBrief": self.doc_brief,
        }

    @classmethod
    def from_dict(cls, payload: object) -> Optional["CatalogEntry"]:
        """Build an entry from oracle or catalog JSON, ignoring unknown keys."""
        if not isinstance(payload, dict):
            return None
        name = payload.get("name")
        kind = payload.get("kind")
        module_name = payload.get("moduleName")
        doc_brief = payload.get("docBrief")
        if not isinstance(name, str) or not isinstance(kind, str):
            return None
        if not isinstance(module_name, str) or not module_name:
            return None
        if not isinstance(doc_brief, str):
            doc_brief = None
        return cls(name=name, kind=kind, module_name=module_name, doc_brief=doc_brief)


Catalog = Dict[str, List[CatalogEntry]]


@dataclass
class StructureNode:
    """A node of the structural oracle's nested declaration tree."""

    kind: str
    name: Optional[str] = None
    offset: int = 0
    substructure: List["StructureNode"] = field(default_factory=list)


@dataclass(frozen=True)
class CandidateComponent:
    """A raw declaration or expression site found in one file."""

    name: str
    kind: str
    offset: int

    @property
    def base_name(self) -> str:
        return base_name(self.name)


@dataclass(frozen=True)
class Location:
    """Line/column position of an occurrence, both 1-based."""

    line: int
    column: int
    offset: int

    def to_dict(self) -> Dict[str, int]:
        return {"line": self.line, "column": self.column, "offset": self.offset}


@dataclass
class ResolvedMetadata:
    """Aggregated usage record for one logical symbol."""

    id: str
    name: str
    type: str
    library_name: str
    third_party: bool
    is_self_declared: bool
    design_systems: List[str] = field(default_factory=list)
    design_docs: Optional[str] = None
    total_occurrences: int = 0
    filewise_occurrences: Dict[str, int] = field(default_factory=dict)
    filewise_locations: Dict[str, List[Location]] = field(default_factory=dict)
    tags: List[str] = field(default_factory=list)
    stories: List[Any] = field(default_factory=list)
    overridden_components: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "libraryName": self.library_name,
            "thirdParty": self.third_party,
            "isSelfDeclared": self.is_self_declared,
            "designSystems": list(self.design_systems),
            "designDocs": self.design_docs,
            "totalOccurrences": self.total_occurrences,
            "filewiseOccurrences": dict(self.filewise_occurrences),
            "filewiseLocations": {
                path: [location.to_dict() for location in locations]
                for path, locations in self.filewise_locations.items()
            },
            "tags": list(self.tags),
            "stories": list(self.stories),
            "overriddenComponents": dict(self.overridden_components),
        }


@dataclass
class FileReport:
    """Outcome of running the per-file pipeline on one source file."""

    path: str
    module: Optional[str]
    imports: List[str]
    candidates: int
    matches: int


@dataclass
class ScanReport:
    """Summary of a scan over one or more root paths."""

    files: List[FileReport] = field(default_factory=list)
    failures: List[Exception] = field(default_factory=list)

    def merge(self, other: "ScanReport") -> None:
        self.files.extend(other.files)
        self.failures.extend(other.failures)


def base_name(name: str) -> str:
    """Return the symbol name without its parameter-label suffix."""
    return name.split("(", 1)[0].strip()
