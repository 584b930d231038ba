"""Build the on-screen preview string from rendered segments."""

from __future__ import annotations

from collections.abc import Sequence

from receipt_core.format.compositor import PREVIEW_WIDTH, format_preview
from receipt_core.render.models import SegmentOutput
from receipt_core.templates.models import GlobalSettings


def build_preview(
    outputs: Sequence[SegmentOutput],
    global_settings: GlobalSettings | None = None,
    *,
    width: int = PREVIEW_WIDTH,
) -> str:
    """Join formatted segments and close with signal and cut marker lines."""

    lines = [format_preview(output.text, output.formatting, width=width) for output in outputs]
    if global_settings is not None and global_settings.beep.enabled:
        lines.append(f"[beep x{global_settings.beep.count}]")
    lines.append(cut_marker_line(width))
    return "\n".join(lines)


def cut_marker_line(width: int = PREVIEW_WIDTH) -> str:
    return " CUT ".center(width, "-")
