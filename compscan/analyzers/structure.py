"""Flattening of the structural oracle's declaration tree."""

from __future__ import annotations

from typing import List, Sequence

from ..models import DEFAULT_KIND_NAMESPACE, CandidateComponent, StructureNode

_CANDIDATE_CATEGORIES = ("decl", "expr", "structure")


def candidate_prefixes(namespace: str = DEFAULT_KIND_NAMESPACE) -> tuple[str, ...]:
    return tuple(f"{namespace}{category}" for category in _CANDIDATE_CATEGORIES)


def flatten_structure(
    root: StructureNode, *, namespace: str = DEFAULT_KIND_NAMESPACE
) -> List[CandidateComponent]:
    """Return candidate components below ``root`` in pre-order.

    The root itself (the source file) is not a candidate. Every node is
    descended into, retained or not, so calls nested in a declaration body
    surface as their own candidates.
    """
    prefixes = candidate_prefixes(namespace)
    return _flatten(root.substructure, prefixes)


def _flatten(
    nodes: Sequence[StructureNode], prefixes: tuple[str, ...]
) -> List[CandidateComponent]:
    components: List[CandidateComponent] = []
    for node in nodes:
        if node.kind.startswith(prefixes):
            components.append(
                CandidateComponent(name=node.name or "", kind=node.kind, offset=node.offset)
            )
        components.extend(_flatten(node.substructure, prefixes))
    return components


__all__ = ["DEFAULT_KIND_NAMESPACE", "candidate_prefixes", "flatten_structure"]
