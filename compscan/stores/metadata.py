"""Aggregation and persistence of resolved component metadata."""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from ..logging import get_logger
from ..models import (
    DEFAULT_KIND_NAMESPACE,
    CandidateComponent,
    CatalogEntry,
    Location,
    Module,
    ResolvedMetadata,
)
from ._io import atomic_write_json

logger = get_logger("stores.metadata")


def locate(content: bytes, offset: int) -> Location:
    """Return the 1-based line and column of ``offset`` in ``content``."""
    position = max(0, min(offset, len(content)))
    line_start = content.rfind(b"\n", 0, position) + 1
    line = content.count(b"\n", 0, line_start) + 1
    return Location(line=line, column=position - line_start + 1, offset=offset)


def metadata_key(module_name: str, name: str, kind: str) -> str:
    return f"{module_name}/{name}/{kind}"


class MetadataStore:
    """Owns every ResolvedMetadata of a run and serializes updates."""

    def __init__(
        self,
        modules: Sequence[Module] = (),
        design_systems: Sequence[str] = (),
        *,
        kind_namespace: str = DEFAULT_KIND_NAMESPACE,
    ) -> None:
        self._modules: Dict[str, Module] = {module.name: module for module in modules}
        self._design_systems = list(design_systems)
        self._kind_namespace = kind_namespace
        self._records: Dict[str, ResolvedMetadata] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, key: object) -> bool:
        return key in self._records

    def records(self) -> List[ResolvedMetadata]:
        """Return records in first-seen order."""
        with self._lock:
            return list(self._records.values())

    def record(
        self,
        candidate: CandidateComponent,
        entry: CatalogEntry,
        file_path: str,
        content: bytes,
    ) -> ResolvedMetadata:
        """Count one occurrence of ``entry`` at ``candidate`` in ``file_path``."""
        kind = candidate.kind.removeprefix(self._kind_namespace)
        key = metadata_key(entry.module_name, candidate.name, kind)
        location = locate(content, candidate.offset)
        with self._lock:
            metadata = self._records.get(key)
            if metadata is None:
                metadata = self._create(key, candidate.name, kind, entry)
                self._records[key] = metadata
            metadata.total_occurrences += 1
            metadata.filewise_occurrences[file_path] = (
                metadata.filewise_occurrences.get(file_path, 0) + 1
            )
            metadata.filewise_locations.setdefault(file_path, []).append(location)
        return metadata

    def design_systems_for(self, module_name: str) -> List[str]:
        lowered = module_name.lower()
        return [name for name in self._design_systems if name.lower() == lowered]

    def is_third_party(self, module_name: str) -> bool:
        module = self._modules.get(module_name)
        return module.is_third_party if module is not None else False

    def _create(
        self, key: str, name: str, kind: str, entry: CatalogEntry
    ) -> ResolvedMetadata:
        third_party = self.is_third_party(entry.module_name)
        return ResolvedMetadata(
            id=key,
            name=name,
            type=kind,
            library_name=entry.module_name,
            third_party=third_party,
            is_self_declared=not third_party,
            design_systems=self.design_systems_for(entry.module_name),
            design_docs=entry.doc_brief,
        )

    def persist(self, path: Path) -> None:
        payload = [metadata.to_dict() for metadata in self.records()]
        atomic_write_json(path, payload)
        logger.debug("Saved %d component records to %s", len(payload), path)

    def load(self, path: Path) -> int:
        """Merge records from a previous run; returns the number restored."""
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return 0
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable component output %s: %s", path, exc)
            return 0
        if not isinstance(data, list):
            logger.warning("Ignoring component output %s: root is not a list", path)
            return 0
        restored = 0
        with self._lock:
            for payload in data:
                metadata = _metadata_from_dict(payload)
                if metadata is None or metadata.id in self._records:
                    continue
                self._records[metadata.id] = metadata
                restored += 1
        return restored


def _metadata_from_dict(payload: object) -> Optional[ResolvedMetadata]:
    if not isinstance(payload, dict):
        return None
    key = payload.get("id")
    name = payload.get("name")
    kind = payload.get("type")
    library = payload.get("libraryName")
    if not all(isinstance(value, str) for value in (key, name, kind, library)):
        return None
    third_party = bool(payload.get("thirdParty", False))
    occurrences = {
        str(path): count
        for path, count in _as_mapping(payload.get("filewiseOccurrences")).items()
        if isinstance(count, int)
    }
    locations = {
        str(path): _locations_from_list(items)
        for path, items in _as_mapping(payload.get("filewiseLocations")).items()
    }
    design_docs = payload.get("designDocs")
    return ResolvedMetadata(
        id=key,  # type: ignore[arg-type]
        name=name,  # type: ignore[arg-type]
        type=kind,  # type: ignore[arg-type]
        library_name=library,  # type: ignore[arg-type]
        third_party=third_party,
        is_self_declared=bool(payload.get("isSelfDeclared", not third_party)),
        design_systems=[str(item) for item in _as_list(payload.get("designSystems"))],
        design_docs=design_docs if isinstance(design_docs, str) else None,
        total_occurrences=sum(occurrences.values()),
        filewise_occurrences=occurrences,
        filewise_locations=locations,
        tags=[str(item) for item in _as_list(payload.get("tags"))],
        stories=list(_as_list(payload.get("stories"))),
        overridden_components=dict(_as_mapping(payload.get("overriddenComponents"))),
    )


def _locations_from_list(items: object) -> List[Location]:
    locations: List[Location] = []
    for item in _as_list(items):
        if not isinstance(item, dict):
            continue
        line, column, offset = item.get("line"), item.get("column"), item.get("offset")
        if isinstance(line, int) and isinstance(column, int) and isinstance(offset, int):
            locations.append(Location(line=line, column=column, offset=offset))
    return locations


def _as_mapping(value: object) -> Mapping[object, object]:
    return value if isinstance(value, dict) else {}


def _as_list(value: object) -> Iterable[object]:
    return value if isinstance(value, list) else []


__all__ = ["MetadataStore", "locate", "metadata_key"]
