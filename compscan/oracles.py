"""Adapters around the SourceKitten structure and completion oracles."""

from __future__ import annotations

import json
import subprocess
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence

from .errors import CompletionOracleError, OracleError, StructuralOracleError
from .models import CatalogEntry, StructureNode

CommandRunner = Callable[[Sequence[str]], str]
"""Executes a command and returns its stdout, raising OracleError on failure."""


def run_command(args: Sequence[str], *, timeout: Optional[float] = None) -> str:
    """Default command runner backed by ``subprocess.run``."""
    try:
        completed = subprocess.run(
            list(args),
            check=True,
            capture_output=True,
            text=True,
            errors="replace",
            timeout=timeout,
        )
    except FileNotFoundError as exc:
        raise OracleError(
            f"Unable to locate '{args[0]}'. Install it or adjust oracle.executable."
        ) from exc
    except OSError as exc:
        raise OracleError(f"Unable to run '{args[0]}': {exc}") from exc
    except subprocess.TimeoutExpired as exc:
        raise OracleError(f"'{args[0]}' timed out after {timeout:g}s") from exc
    except subprocess.CalledProcessError as exc:
        stderr = (exc.stderr or "").strip()
        raise OracleError(f"'{args[0]}' exited with status {exc.returncode}: {stderr}") from exc
    return completed.stdout


class SourceKitten:
    """Runs ``sourcekitten`` and decodes its JSON responses."""

    def __init__(
        self,
        runner: CommandRunner | None = None,
        *,
        executable: str = "sourcekitten",
        timeout: Optional[float] = None,
    ) -> None:
        self.executable = executable
        self.timeout = timeout
        self._runner = runner or self._default_runner

    def structure(self, path: Path) -> StructureNode:
        """Return the nested declaration/expression tree for ``path``."""
        command = [self.executable, "structure", "--file", str(path)]
        try:
            output = self._runner(command)
        except OracleError as exc:
            raise StructuralOracleError(f"Structure request failed for {path}: {exc}") from exc
        try:
            payload = json.loads(output)
        except json.JSONDecodeError as exc:
            raise StructuralOracleError(
                f"Structure output for {path} is not valid JSON: {exc}"
            ) from exc
        if not isinstance(payload, dict):
            raise StructuralOracleError(f"Structure output for {path} is not an object")
        return parse_structure(payload)

    def complete(self, path: Path, offset: int, module: str) -> List[CatalogEntry]:
        """Return the symbols visible from ``offset`` inside ``module``."""
        command = [
            self.executable,
            "complete",
            "--file",
            str(path),
            "--offset",
            str(offset),
            "--spm-module",
            module,
            "--",
            "",
        ]
        try:
            output = self._runner(command)
        except OracleError as exc:
            raise CompletionOracleError(
                f"Completion request failed for module {module}: {exc}"
            ) from exc
        try:
            payload = json.loads(output)
        except json.JSONDecodeError as exc:
            raise CompletionOracleError(
                f"Completion output for module {module} is not valid JSON: {exc}"
            ) from exc
        if not isinstance(payload, list):
            raise CompletionOracleError(f"Completion output for module {module} is not a list")
        entries: List[CatalogEntry] = []
        for item in payload:
            entry = CatalogEntry.from_dict(item)
            if entry is not None:
                entries.append(entry)
        return entries

    def _default_runner(self, args: Sequence[str]) -> str:
        return run_command(args, timeout=self.timeout)


def parse_structure(payload: dict[str, Any]) -> StructureNode:
    """Convert SourceKitten's ``key.``-prefixed JSON into StructureNode trees."""
    children = _field(payload, "substructure")
    substructure = [
        parse_structure(child)
        for child in (children if isinstance(children, list) else [])
        if isinstance(child, dict)
    ]
    kind = _field(payload, "kind")
    name = _field(payload, "name")
    offset = _field(payload, "offset")
    return StructureNode(
        kind=kind if isinstance(kind, str) else "",
        name=name if isinstance(name, str) else None,
        offset=offset if isinstance(offset, int) and not isinstance(offset, bool) else 0,
        substructure=substructure,
    )


def _field(payload: dict[str, Any], name: str) -> Any:
    if f"key.{name}" in payload:
        return payload[f"key.{name}"]
    return payload.get(name)


__all__ = ["CommandRunner", "SourceKitten", "parse_structure", "run_command"]
