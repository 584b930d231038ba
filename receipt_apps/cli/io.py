"""CLI I/O helpers: JSON input reading and atomic output writing."""

from __future__ import annotations

import json
import tempfile
from pathlib import Path
from typing import Any


def read_json_file(path: Path, *, label: str) -> Any:
    """Parse a JSON input file, naming it in the error on failure."""

    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ValueError(f"{label} file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {label} file: {path}") from exc


def write_json_report_atomic(path: Path, payload: dict[str, Any]) -> None:
    """Write a JSON report atomically using a temporary file + replace."""

    path.parent.mkdir(parents=True, exist_ok=True)
    _atomic_write_text(
        path,
        json.dumps(payload, ensure_ascii=False, sort_keys=True, separators=(",", ":")),
    )


def write_preview_atomic(path: Path, preview: str) -> None:
    """Write the preview text atomically."""

    path.parent.mkdir(parents=True, exist_ok=True)
    _atomic_write_text(path, preview if preview.endswith("\n") else f"{preview}\n")


def _atomic_write_text(path: Path, text: str) -> None:
    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        dir=path.parent,
        delete=False,
        prefix=f"{path.name}.",
        suffix=".tmp",
    ) as tmp:
        tmp_path = Path(tmp.name)
        tmp.write(text)

    try:
        tmp_path.replace(path)
    except Exception:
        tmp_path.unlink(missing_ok=True)
        raise
