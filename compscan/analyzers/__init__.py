"""Per-file analysis stages: imports, structure flattening and matching."""

from __future__ import annotations

from .imports import SwiftImportParser, extract_imports
from .matcher import ComponentMatcher, kinds_compatible
from .structure import DEFAULT_KIND_NAMESPACE, flatten_structure

__all__ = [
    "ComponentMatcher",
    "DEFAULT_KIND_NAMESPACE",
    "SwiftImportParser",
    "extract_imports",
    "flatten_structure",
    "kinds_compatible",
]
