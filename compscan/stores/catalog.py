"""Persistent catalog of importable symbols keyed by module."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, List, Optional

from ..logging import get_logger
from ..models import Catalog, CatalogEntry
from ._io import atomic_write_json

logger = get_logger("stores.catalog")


class CatalogStore:
    """Loads and saves the module -> entries mapping as JSON."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> Optional[Catalog]:
        """Return the stored catalog, or None when it is missing or unreadable."""
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable catalog %s: %s", self.path, exc)
            return None
        if not isinstance(data, dict):
            logger.warning("Ignoring catalog %s: root is not a mapping", self.path)
            return None

        catalog: Catalog = {}
        for module_name, raw_entries in data.items():
            if not isinstance(module_name, str) or not isinstance(raw_entries, list):
                continue
            entries: List[CatalogEntry] = []
            for payload in raw_entries:
                entry = CatalogEntry.from_dict(payload)
                if entry is not None:
                    entries.append(entry)
            catalog[module_name] = entries
        return catalog

    def persist(self, catalog: Catalog) -> None:
        payload: Dict[str, List[Dict[str, object]]] = {
            module_name: [entry.to_dict() for entry in entries]
            for module_name, entries in catalog.items()
        }
        atomic_write_json(self.path, payload)
        logger.debug("Saved catalog with %d modules to %s", len(payload), self.path)


def append_entries(catalog: Catalog, entries: List[CatalogEntry]) -> None:
    """Append entries to the bucket named by each entry's module."""
    for entry in entries:
        catalog.setdefault(entry.module_name, []).append(entry)


__all__ = ["CatalogStore", "append_entries"]
