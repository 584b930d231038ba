"""Realize formatting directives on a printer or as preview text.

Preview rules, applied per line in this order:
- size: 1 puts one space between characters, 2 puts two spaces and adds a
  blank padding line after the block
- bold wraps the line in ``**``; italic wraps it in ``/``
- alignment pads on the left against the visible length (markers excluded)
- underline adds a rule line of ``_`` under each line, matching its padding
"""

from __future__ import annotations

from typing import Any, Protocol

from receipt_core.templates.models import DEFAULT_DIRECTIVES, FormattingDirectives

PREVIEW_WIDTH = 32
BOLD_MARK = "**"
ITALIC_MARK = "/"
UNDERLINE_CHAR = "_"

_ESCPOS_FONTS = {"primary": "a", "secondary": "b"}
_SIZE_SEPARATORS = {0: "", 1: " ", 2: "  "}


class PrinterSink(Protocol):
    """Subset of the python-escpos printer API used for receipts."""

    def set(self, **kwargs: Any) -> None: ...

    def text(self, txt: str) -> None: ...

    def charcode(self, code: str) -> None: ...

    def buzzer(self, times: int, duration: int) -> None: ...

    def cut(self) -> None: ...

    def close(self) -> None: ...


def escpos_style(directives: FormattingDirectives) -> dict[str, Any]:
    """Translate directives to ``Escpos.set`` keyword arguments.

    ESC/POS has no italic mode, so ``italic`` has no hardware effect.
    """

    style: dict[str, Any] = {
        "align": directives.align,
        "font": _ESCPOS_FONTS[directives.font],
        "bold": directives.bold,
        "underline": 1 if directives.underline else 0,
    }
    if directives.size == 0:
        style["normal_textsize"] = True
    else:
        multiplier = directives.size + 1
        style.update(custom_size=True, width=multiplier, height=multiplier)
    return style


def apply_directives(printer: PrinterSink, directives: FormattingDirectives | None) -> None:
    printer.set(**escpos_style(directives or DEFAULT_DIRECTIVES))


def reset_directives(printer: PrinterSink) -> None:
    printer.set(**escpos_style(DEFAULT_DIRECTIVES))


def format_preview(
    text: str, directives: FormattingDirectives | None = None, *, width: int = PREVIEW_WIDTH
) -> str:
    """Approximate formatting in plain text for an on-screen receipt."""

    active = directives or DEFAULT_DIRECTIVES
    rendered: list[str] = []

    for line in text.split("\n"):
        if not line.strip():
            rendered.append(line)
            continue

        body = _SIZE_SEPARATORS[active.size].join(line)
        marker_length = 0
        if active.bold:
            body = f"{BOLD_MARK}{body}{BOLD_MARK}"
            marker_length += 2 * len(BOLD_MARK)
        if active.italic:
            body = f"{ITALIC_MARK}{body}{ITALIC_MARK}"
            marker_length += 2 * len(ITALIC_MARK)

        visible_length = len(body) - marker_length
        padding = " " * alignment_padding(active.align, visible_length, width)
        rendered.append(f"{padding}{body}")
        if active.underline:
            rendered.append(f"{padding}{UNDERLINE_CHAR * visible_length}")

    if active.size == 2:
        rendered.append("")
    return "\n".join(rendered)


def alignment_padding(align: str, visible_length: int, width: int = PREVIEW_WIDTH) -> int:
    free = max(0, width - visible_length)
    if align == "center":
        return free // 2
    if align == "right":
        return free
    return 0
