"""Tree-sitter powered import extraction for Swift sources."""

from __future__ import annotations

import re
from typing import Any, List, Optional

from tree_sitter import Parser
from tree_sitter_language_pack import get_parser

_IMPORT_NODE = "import_declaration"
_ATTRIBUTE_NODE = "attribute"
_TESTABLE_PREFIX = "@testable import"
_IMPORT_PATTERN = re.compile(r"import\s+([^@\s]+)")


def extract_imports(root: Any) -> List[str]:
    """Return imported module names in pre-order, duplicates included.

    ``root`` is any tree-sitter-like node exposing ``type``, ``text`` and
    ``children``.
    """
    imports: List[str] = []
    stack = [root]
    while stack:
        node = stack.pop()
        module = _import_from_node(node)
        if module:
            imports.append(module)
        stack.extend(reversed(list(node.children)))
    return imports


def _import_from_node(node: Any) -> Optional[str]:
    if node.type == _IMPORT_NODE:
        return _module_after_import(_node_text(node))
    if node.type == _ATTRIBUTE_NODE:
        text = _node_text(node)
        if text.startswith(_TESTABLE_PREFIX):
            return _module_after_import(text)
    return None


def _module_after_import(text: str) -> Optional[str]:
    match = _IMPORT_PATTERN.search(text)
    return match.group(1).strip() if match else None


def _node_text(node: Any) -> str:
    text = node.text
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="ignore")
    return (text or "").strip()


class SwiftImportParser:
    """Parses Swift source with tree-sitter and lists its imports."""

    def __init__(self, parser: Parser | None = None) -> None:
        self._parser = parser

    def parse(self, source: bytes) -> List[str]:
        tree = self._get_parser().parse(source)
        return extract_imports(tree.root_node)

    def _get_parser(self) -> Parser:
        if self._parser is None:
            self._parser = get_parser("swift")
        return self._parser


__all__ = ["SwiftImportParser", "extract_imports"]
