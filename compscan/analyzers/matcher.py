"""Kind-aware name matching of candidate components against the catalog."""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..models import CandidateComponent, CatalogEntry


def is_callable_kind(kind: str) -> bool:
    return "function" in kind or "method" in kind


def is_expression_kind(kind: str) -> bool:
    return "expr" in kind


def kinds_compatible(entry_kind: str, candidate_kind: str) -> bool:
    """A function-like entry matches call expressions; anything matches its own kind."""
    if is_callable_kind(entry_kind) and is_expression_kind(candidate_kind):
        return True
    return entry_kind == candidate_kind


class ComponentMatcher:
    """Resolves candidates to catalog entries, first match wins.

    Entries are indexed by base name. Each bucket keeps catalog order
    (modules in insertion order, then entries), so the index returns the
    same entry a linear scan over the catalog would.
    """

    def __init__(self, catalog: Mapping[str, Sequence[CatalogEntry]]) -> None:
        self._index: Dict[str, List[CatalogEntry]] = {}
        for entries in catalog.values():
            for entry in entries:
                if not entry.name:
                    continue
                self._index.setdefault(entry.base_name, []).append(entry)

    def match(self, candidate: CandidateComponent) -> Optional[CatalogEntry]:
        name = candidate.base_name
        if not name:
            return None
        for entry in self._index.get(name, ()):
            if kinds_compatible(entry.kind, candidate.kind):
                return entry
        return None

    def match_all(
        self, candidates: Iterable[CandidateComponent]
    ) -> List[Tuple[CandidateComponent, CatalogEntry]]:
        """Return resolved pairs in candidate order; unmatched candidates are dropped."""
        resolved: List[Tuple[CandidateComponent, CatalogEntry]] = []
        for candidate in candidates:
            entry = self.match(candidate)
            if entry is not None:
                resolved.append((candidate, entry))
        return resolved


__all__ = ["ComponentMatcher", "is_callable_kind", "is_expression_kind", "kinds_compatible"]
