"""Recursive traversal of user-supplied scan paths."""

from __future__ import annotations

from pathlib import Path
from typing import Collection, Iterator, List, Sequence

from .errors import FileAccessError, InvalidScanPath
from .logging import get_logger
from .models import Module

logger = get_logger("walker")


class FileWalker:
    """Yields source files below a path, restricted to known module directories.

    Failures are appended to the caller's ``failures`` list and end only the
    branch they occur in; sibling entries keep being walked.
    """

    def __init__(self, modules: Sequence[Module], *, source_suffix: str = ".swift") -> None:
        self._modules = list(modules)
        self._module_paths = [Path(module.source_path).resolve() for module in self._modules]
        self.source_suffix = source_suffix

    @property
    def module_paths(self) -> List[str]:
        return [module.source_path for module in self._modules]

    def is_valid_directory(self, path: Path) -> bool:
        """True when ``path`` equals, contains, or lies under a module path."""
        resolved = path.resolve()
        for module_path in self._module_paths:
            if resolved == module_path:
                return True
            if resolved in module_path.parents or module_path in resolved.parents:
                return True
        return False

    def walk(
        self,
        path: Path,
        exclude: Collection[str],
        failures: List[Exception],
    ) -> Iterator[Path]:
        try:
            is_dir = path.is_dir()
            exists = is_dir or path.exists()
        except OSError as exc:
            self._fail(failures, FileAccessError(path, f"cannot stat: {exc}"))
            return
        if not exists:
            self._fail(failures, FileAccessError(path, "no such file or directory"))
            return

        if not is_dir:
            if path.name.endswith(self.source_suffix):
                yield path
            return

        if not self.is_valid_directory(path):
            self._fail(failures, InvalidScanPath(path, self.module_paths))
            return

        try:
            children = sorted(path.iterdir(), key=lambda child: child.name)
        except OSError as exc:
            self._fail(failures, FileAccessError(path, f"cannot list directory: {exc}"))
            return

        for child in children:
            if child.name in exclude:
                logger.debug("Skipping excluded path %s", child)
                continue
            yield from self.walk(child, exclude, failures)

    @staticmethod
    def _fail(failures: List[Exception], error: Exception) -> None:
        logger.error("%s", error)
        failures.append(error)


__all__ = ["FileWalker"]
