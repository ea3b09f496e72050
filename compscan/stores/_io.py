"""Atomic JSON writes for persisted stores."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from ..errors import FileAccessError


def atomic_write_json(path: Path, payload: Any) -> None:
    """Write JSON to a sibling temp file, then rename it over ``path``.

    Readers see either the previous file or the complete new one.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), suffix=".tmp")
    except OSError as exc:
        raise FileAccessError(path, f"cannot write: {exc}") from exc
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2)
            handle.write("\n")
        os.replace(tmp_path, str(path))
    except OSError as exc:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise FileAccessError(path, f"cannot write: {exc}") from exc


__all__ = ["atomic_write_json"]
