"""Module topology resolution from the SwiftPM build graph (.build/debug.yaml)."""

from __future__ import annotations

import posixpath
import subprocess
import threading
from pathlib import Path
from typing import Any, Callable, IO, List, Optional, Sequence

import yaml

from .errors import BuildError, BuildTimeout, ManifestMalformed, ManifestUnavailable
from .logging import get_logger
from .models import Module

_MODULE_PREFIX = "C."
_CHECKOUTS_MARKER = ".build/checkouts"
_BUILD_MARKER = ".build"
_BUILD_READY_MARKER = "Building"

logger = get_logger("build_graph")


def resolve_modules(manifest_path: Path) -> List[Module]:
    """Read the build manifest and return the module topology."""
    try:
        text = manifest_path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ManifestUnavailable(manifest_path) from exc
    except OSError as exc:
        raise ManifestMalformed(f"Unable to read {manifest_path}: {exc}") from exc

    try:
        # SwiftPM manifests are large; prefer the libyaml loader when compiled in.
        loader = getattr(yaml, "CSafeLoader", yaml.SafeLoader)
        data = yaml.load(text, Loader=loader)
    except yaml.YAMLError as exc:
        raise ManifestMalformed(f"Failed to parse {manifest_path.name}: {exc}") from exc
    return parse_build_graph(data)


def parse_build_graph(data: Any) -> List[Module]:
    """Derive modules from a parsed manifest, in manifest order."""
    if not isinstance(data, dict):
        raise ManifestMalformed("Build manifest must contain a mapping at the root")
    commands = data.get("commands")
    if not isinstance(commands, dict):
        raise ManifestMalformed("Build manifest has no 'commands' mapping")

    modules: List[Module] = []
    seen: set[str] = set()
    for key, command in commands.items():
        if not isinstance(key, str) or not key.startswith(_MODULE_PREFIX):
            continue
        first_input = _first_input(key, command)
        if first_input is None:
            continue
        module = _module_from_input(_module_name(key), first_input)
        if module is None:
            logger.debug("Skipping %s: inputs are intermediate build products", key)
            continue
        if module.name in seen:
            continue
        seen.add(module.name)
        modules.append(module)
    return modules


def is_third_party_path(path: str) -> bool:
    return _CHECKOUTS_MARKER in path


def _module_name(key: str) -> str:
    name = key[len(_MODULE_PREFIX):]
    separator = name.rfind("-")
    return name[:separator] if separator != -1 else name


def _first_input(key: str, command: Any) -> Optional[str]:
    if not isinstance(command, dict):
        raise ManifestMalformed(f"Command {key!r} is not a mapping")
    inputs = command.get("inputs")
    if not isinstance(inputs, list):
        raise ManifestMalformed(f"Command {key!r} has no 'inputs' list")
    if not inputs:
        return None
    first = inputs[0]
    if not isinstance(first, str):
        raise ManifestMalformed(f"Command {key!r} has a non-string first input")
    return first


def _module_from_input(name: str, original_path: str) -> Optional[Module]:
    third_party = is_third_party_path(original_path)
    if not third_party and _BUILD_MARKER in original_path:
        return None
    return Module(
        name=name,
        source_path=posixpath.dirname(original_path),
        original_manifest_path=original_path,
        is_third_party=third_party,
    )


def manifest_is_stale(manifest_path: Path, package_file: Path) -> bool:
    """Return True when the manifest is missing or older than Package.swift."""
    try:
        manifest_mtime = manifest_path.stat().st_mtime
    except FileNotFoundError:
        return True
    try:
        return package_file.stat().st_mtime > manifest_mtime
    except FileNotFoundError:
        return False


PopenFactory = Callable[..., "subprocess.Popen[str]"]


class BuildTrigger:
    """Runs the package build until it starts compiling, under a hard timeout.

    The build writes ``debug.yaml`` during planning, so the process is stopped
    as soon as it reports ``Building``; a full compile is not needed.
    """

    def __init__(
        self,
        root: Path,
        command: Sequence[str] = ("swift", "build"),
        *,
        timeout: float = 300.0,
        popen: PopenFactory | None = None,
    ) -> None:
        self.root = root
        self.command = list(command)
        self.timeout = timeout
        self._popen = popen or subprocess.Popen

    def run(self) -> None:
        logger.info("Initiating build: %s", " ".join(self.command))
        try:
            process = self._popen(
                self.command,
                cwd=str(self.root),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
            )
        except OSError as exc:
            raise BuildError(f"Unable to start {self.command[0]!r}: {exc}") from exc

        timed_out = threading.Event()

        def _expire() -> None:
            timed_out.set()
            process.kill()

        timer = threading.Timer(self.timeout, _expire)
        timer.daemon = True
        timer.start()
        try:
            ready = self._wait_until_building(process.stdout)
        except (OSError, ValueError) as exc:
            process.kill()
            process.wait()
            raise BuildError(f"Unable to read build output: {exc}") from exc
        finally:
            timer.cancel()

        if timed_out.is_set():
            process.wait()
            raise BuildTimeout(self.timeout)
        if ready:
            process.kill()
            process.wait()
            if process.stdout is not None:
                process.stdout.close()
            return
        returncode = process.wait()
        if returncode != 0:
            raise BuildError(f"Build exited with status {returncode}")

    @staticmethod
    def _wait_until_building(stream: Optional[IO[str]]) -> bool:
        if stream is None:
            return False
        for line in stream:
            logger.debug("build: %s", line.rstrip())
            if _BUILD_READY_MARKER in line:
                return True
        return False


def module_for_path(path: Path, modules: Sequence[Module]) -> Optional[Module]:
    """Return the module whose source path contains ``path``, if any."""
    resolved = path.resolve()
    best: Optional[Module] = None
    best_depth = -1
    for module in modules:
        source = Path(module.source_path).resolve()
        if resolved == source or source in resolved.parents:
            depth = len(source.parts)
            if depth > best_depth:
                best, best_depth = module, depth
    return best


__all__ = [
    "BuildTrigger",
    "is_third_party_path",
    "manifest_is_stale",
    "module_for_path",
    "parse_build_graph",
    "resolve_modules",
]
