"""Builds the catalog of importable symbols by querying the completion oracle."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

from .errors import CompscanError, FileAccessError
from .logging import get_logger
from .models import Catalog, CatalogEntry, Module
from .stores.catalog import append_entries

logger = get_logger("catalog_builder")


class CompletionOracle(Protocol):
    def complete(self, path: Path, offset: int, module: str) -> List[CatalogEntry]:
        ...


def insertion_offset(content: bytes) -> int:
    """Return the byte offset at which completions are requested.

    This is the last newline of the file, or the end of the file when it
    has none.
    """
    index = content.rfind(b"\n")
    return index if index != -1 else len(content)


class CatalogBuilder:
    """Queries one completion per module, concurrently, and merges the results."""

    def __init__(self, oracle: CompletionOracle, *, max_concurrency: int = 8) -> None:
        self._oracle = oracle
        self._max_concurrency = max(1, max_concurrency)

    def build(self, modules: Sequence[Module]) -> Catalog:
        return asyncio.run(self.build_async(modules))

    async def build_async(self, modules: Sequence[Module]) -> Catalog:
        logger.info("Generating a catalog of importable components for %d modules", len(modules))
        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def _bounded(module: Module) -> Optional[List[CatalogEntry]]:
            async with semaphore:
                return await asyncio.to_thread(self._complete_module, module)

        results = await asyncio.gather(*(_bounded(module) for module in modules))

        catalog: Catalog = {}
        for module, entries in zip(modules, results):
            if entries is None:
                continue
            logger.debug("Module %s contributed %d entries", module.name, len(entries))
            append_entries(catalog, entries)
        return catalog

    def _complete_module(self, module: Module) -> Optional[List[CatalogEntry]]:
        path = Path(module.original_manifest_path)
        try:
            try:
                content = path.read_bytes()
            except OSError as exc:
                raise FileAccessError(path, f"cannot read: {exc}") from exc
            offset = insertion_offset(content)
            return self._oracle.complete(path, offset, module.name)
        except CompscanError as exc:
            logger.error("Error generating catalog for module %s: %s", module.name, exc)
            return None


__all__ = ["CatalogBuilder", "CompletionOracle", "insertion_offset"]
