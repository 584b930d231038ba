"""ESC/POS printer sink with a timeout-bounded open/write and scoped cleanup."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable, Sequence

from escpos.printer import Dummy, Network

from receipt_core.format.compositor import PrinterSink, apply_directives, reset_directives
from receipt_core.render.models import SegmentOutput
from receipt_core.templates.models import GlobalSettings
from receipt_core.utils.errors import (
    DeviceOperationError,
    Language,
    is_recoverable_error,
    make_error,
)

logger = logging.getLogger("receipt.device")

DEFAULT_PRINTER_PORT = 9100
DEFAULT_TIMEOUT_SECONDS = 10.0

PrinterFactory = Callable[[], PrinterSink]


def network_printer_factory(
    host: str, port: int = DEFAULT_PRINTER_PORT, timeout: float = DEFAULT_TIMEOUT_SECONDS
) -> PrinterFactory:
    """Return a factory that opens a network ESC/POS printer."""

    def _open() -> PrinterSink:
        printer = Network(host, port=port, timeout=timeout)
        printer.open()
        logger.info("printer connected: %s:%s", host, port)
        return printer

    return _open


def mock_printer_factory(sink: list[bytes] | None = None) -> PrinterFactory:
    """Return a factory of in-memory printers; closed output lands in ``sink``."""

    def _open() -> PrinterSink:
        return _RecordingDummy(sink)

    return _open


def write_receipt(
    printer: PrinterSink,
    outputs: Sequence[SegmentOutput],
    global_settings: GlobalSettings,
    *,
    abandoned: threading.Event | None = None,
) -> None:
    """Issue the formatted segments, then the signal and cut commands.

    Stops before the next command once ``abandoned`` is set.
    """

    def _stopped() -> bool:
        return abandoned is not None and abandoned.is_set()

    if global_settings.encoding:
        printer.charcode(global_settings.encoding.upper())

    for output in outputs:
        if _stopped():
            logger.warning("print job abandoned before segment %d", output.index)
            return
        apply_directives(printer, output.formatting)
        printer.text(f"{output.text}\n")

    reset_directives(printer)
    if _stopped():
        logger.warning("print job abandoned before cut")
        return
    beep = global_settings.beep
    if beep.enabled:
        printer.buzzer(_clamp(beep.count), _clamp(round(beep.duration / 100)))
    if global_settings.paper_cut:
        printer.cut()


async def print_receipt_async(
    outputs: Sequence[SegmentOutput],
    global_settings: GlobalSettings,
    *,
    printer_factory: PrinterFactory,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    language: Language = "en",
) -> None:
    """Open the printer and write the receipt within ``timeout_seconds``.

    The worker thread owns the printer and closes it on every path. On
    timeout the job is marked abandoned: a printer that opens late is closed
    without writing, and a write in progress stops before the next command.

    Raises:
        DeviceOperationError: With a timeout, transport, or device error.
    """

    abandoned = threading.Event()

    def _open_and_write() -> None:
        printer = printer_factory()
        try:
            if abandoned.is_set():
                logger.warning("printer opened after timeout; closing without writing")
                return
            write_receipt(printer, outputs, global_settings, abandoned=abandoned)
        finally:
            safe_close(printer)

    try:
        await asyncio.wait_for(asyncio.to_thread(_open_and_write), timeout=timeout_seconds)
    except asyncio.TimeoutError as exc:
        abandoned.set()
        raise DeviceOperationError(
            make_error(
                "timeout",
                f"Printing timed out after {timeout_seconds}s",
                language=language,
                detail={"timeout_seconds": timeout_seconds},
            )
        ) from exc
    except Exception as exc:  # noqa: BLE001
        category = "transport" if is_recoverable_error(exc) else "device"
        raise DeviceOperationError(
            make_error(
                category,
                f"Printer operation failed: {exc}",
                language=language,
                cause=exc,
            )
        ) from exc


def print_receipt(
    outputs: Sequence[SegmentOutput],
    global_settings: GlobalSettings,
    *,
    printer_factory: PrinterFactory,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    language: Language = "en",
) -> None:
    """Blocking wrapper around ``print_receipt_async`` for CLI use."""

    asyncio.run(
        print_receipt_async(
            outputs,
            global_settings,
            printer_factory=printer_factory,
            timeout_seconds=timeout_seconds,
            language=language,
        )
    )


def safe_close(printer: PrinterSink) -> None:
    try:
        printer.close()
    except Exception as exc:  # noqa: BLE001
        logger.warning("error during printer cleanup: %s", exc)


def _clamp(value: int) -> int:
    return max(1, min(9, value))


class _RecordingDummy(Dummy):
    def __init__(self, sink: list[bytes] | None) -> None:
        super().__init__()
        self._sink = sink

    def close(self) -> None:
        if self._sink is not None:
            self._sink.append(self.output)
        logger.info("mock printer received %d bytes", len(self.output))
        super().close()
