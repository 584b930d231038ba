from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any

import pytest

from receipt_core.config.settings import AppSettings
from receipt_core.data.samples import sample_record
from receipt_core.orchestrator.pipeline import (
    preview_receipt,
    print_template_async,
    render_for_event,
    render_receipt,
)
from receipt_core.render.segments import ALL_CONDITIONAL_EMPTY
from receipt_core.templates.loader import load_template
from receipt_core.templates.store import EventBindings, TemplateRepository, TemplateStore

NOW = datetime(2024, 5, 1, 9, 5)

ORDER_TEMPLATE: dict[str, Any] = {
    "name": "new_order",
    "segments": [
        {"content": "Receipt #{id}", "settings": {"align": "center", "bold": True}},
        {"content": "{hasDebt:if}Debt: {debtUzs} UZS{hasDebt:endif}"},
        {"content": "{products}"},
        {"content": ""},
    ],
    "globalSettings": {"encoding": "", "paperCut": True},
}


class RecordingPrinter:
    def __init__(self, *, fail_with: BaseException | None = None) -> None:
        self.texts: list[str] = []
        self.closed = False
        self._fail_with = fail_with

    def set(self, **kwargs: Any) -> None:
        return None

    def text(self, txt: str) -> None:
        if self._fail_with is not None:
            raise self._fail_with
        self.texts.append(txt)

    def charcode(self, code: str) -> None:
        return None

    def buzzer(self, times: int, duration: int) -> None:
        return None

    def cut(self) -> None:
        self.texts.append("<cut>")

    def close(self) -> None:
        self.closed = True


def test_render_receipt_success_builds_stats_and_preview() -> None:
    result = render_receipt(ORDER_TEMPLATE, sample_record(), now=NOW)

    assert result.success is True
    assert result.error is None
    assert result.stats is not None
    assert result.stats.total_segments == 4
    assert result.stats.processed_segments == 3
    assert result.stats.skipped_conditional_segments == 0
    assert result.preview is not None
    assert "**Receipt #ORD-1001**" in result.preview
    assert "Debt: 127 500 UZS" in result.preview
    assert "2 x 150 000 = 300 000 UZS" in result.preview
    assert result.preview.endswith(" CUT ".center(32, "-"))


def test_render_receipt_skips_debt_block_without_debt() -> None:
    record = {**sample_record(), "debtAmount": {"uzs": 0, "usd": 0}}

    result = render_receipt(ORDER_TEMPLATE, record, now=NOW)

    assert result.success is True
    assert result.stats is not None
    assert result.stats.skipped_conditional_segments == 1
    assert [output.index for output in result.outputs] == [0, 2]
    assert "Debt:" not in (result.preview or "")


def test_render_receipt_is_deterministic() -> None:
    first = render_receipt(ORDER_TEMPLATE, sample_record(), now=NOW)
    second = render_receipt(ORDER_TEMPLATE, sample_record(), now=NOW)

    assert first == second


def test_invalid_template_short_circuits_as_structural_error() -> None:
    result = render_receipt({"segments": []}, sample_record(), now=NOW)

    assert result.success is False
    assert result.error is not None
    assert result.error.category == "structural"
    assert result.stats is None
    assert result.preview is None


def test_missing_required_fields_is_data_error() -> None:
    result = render_receipt(ORDER_TEMPLATE, {"id": "A1"}, required_fields=["id", "products"])

    assert result.success is False
    assert result.error is not None
    assert result.error.category == "data"
    assert result.error.detail == {"missing_fields": ["products"]}


def test_out_of_range_timestamp_still_renders() -> None:
    result = render_receipt(
        {"segments": [{"content": "Date {date}"}]}, {"createdAt": 1e20}, now=NOW
    )

    assert result.success is True
    assert result.outputs[0].text == "Date 01.05.2024 09:05"


def test_null_record_is_data_error() -> None:
    result = render_receipt(ORDER_TEMPLATE, None)

    assert result.error is not None
    assert result.error.category == "data"


def test_all_conditional_template_without_matches_fails() -> None:
    template = {"segments": [{"content": "{hasNotes:if}Notes: {notes}{hasNotes:endif}"}]}

    result = render_receipt(template, {"id": "A1"}, now=NOW)

    assert result.success is False
    assert result.message == ALL_CONDITIONAL_EMPTY
    assert result.stats is not None
    assert result.stats.skipped_conditional_segments == 1
    assert result.stats.total_segments == 1


def test_strict_markup_rejects_nested_blocks() -> None:
    template = {"segments": [{"content": "{a:if}{b:if}x{b:endif}{a:endif}"}]}

    lenient = render_receipt(template, {"a": True}, now=NOW)
    strict = render_receipt(template, {"a": True}, now=NOW, strict_markup=True)

    assert lenient.success is True
    assert strict.success is False
    assert strict.error is not None
    assert strict.error.category == "structural"


def test_loaded_template_model_is_accepted() -> None:
    template = load_template({"content": "Order {id}", "settings": {"align": "right"}})

    result = render_receipt(template, {"id": "A1"}, now=NOW, width=12, with_preview=False)

    assert result.success is True
    assert result.preview is None
    assert result.outputs[0].text == "Order A1"


def test_preview_receipt_uses_settings_language_and_width() -> None:
    settings = AppSettings(language="uz", receipt_width=20)
    template = {"content": "{status}", "settings": {"align": "right"}}

    result = preview_receipt(template, {"status": "ready"}, settings=settings, now=NOW)

    assert result.success is True
    assert result.preview is not None
    assert result.preview.split("\n")[0] == " " * 14 + "Tayyor"
    assert result.user_message == "Chek tayyor"


@pytest.mark.anyio
async def test_print_template_async_writes_segments_and_cuts() -> None:
    printer = RecordingPrinter()
    settings = AppSettings(printer_ip="192.168.1.50")

    result = await print_template_async(
        ORDER_TEMPLATE, sample_record(), settings=settings, printer_factory=lambda: printer, now=NOW
    )

    assert result.success is True
    assert result.render is not None
    assert printer.texts[0] == "Receipt #ORD-1001\n"
    assert printer.texts[-1] == "<cut>"
    assert printer.closed is True


@pytest.mark.anyio
async def test_print_with_mock_printer_needs_no_address() -> None:
    settings = AppSettings(printer_ip=None, mock_printer=True)

    result = await print_template_async(ORDER_TEMPLATE, sample_record(), settings=settings)

    assert result.success is True


@pytest.mark.anyio
async def test_print_without_printer_address_fails_before_rendering() -> None:
    result = await print_template_async(
        ORDER_TEMPLATE, sample_record(), settings=AppSettings(printer_ip=None)
    )

    assert result.success is False
    assert result.error is not None
    assert result.error.category == "transport"
    assert result.render is None
    assert result.recoverable is False


@pytest.mark.anyio
async def test_print_connection_failure_is_recoverable_result() -> None:
    printer = RecordingPrinter(fail_with=ConnectionRefusedError("Connection refused"))

    result = await print_template_async(
        ORDER_TEMPLATE,
        sample_record(),
        settings=AppSettings(printer_ip="192.168.1.50"),
        printer_factory=lambda: printer,
    )

    assert result.success is False
    assert result.recoverable is True
    assert result.error is not None
    assert result.error.category == "transport"
    assert result.render is not None and result.render.success is True
    assert printer.closed is True


@pytest.mark.anyio
async def test_print_render_failure_never_opens_printer() -> None:
    opened: list[RecordingPrinter] = []

    def factory() -> RecordingPrinter:
        printer = RecordingPrinter()
        opened.append(printer)
        return printer

    result = await print_template_async(
        {"segments": [{"content": "{missing}"}]},
        {},
        settings=AppSettings(printer_ip="192.168.1.50"),
        printer_factory=factory,
    )

    assert result.success is False
    assert result.render is not None
    assert opened == []


def test_render_for_event_uses_bound_template(tmp_path: Path) -> None:
    store = TemplateStore(tmp_path / "templates.json")
    store.save("new_order", ORDER_TEMPLATE)
    bindings = EventBindings(tmp_path / "bindings.json")
    bindings.bind("order_created", "new_order")
    repository = TemplateRepository(store)
    settings = AppSettings()

    result = render_for_event(
        bindings, repository, "order_created", sample_record(), settings=settings, now=NOW
    )
    unbound = render_for_event(
        bindings, repository, "order_paid", sample_record(), settings=settings
    )

    assert result is not None and result.success is True
    assert unbound is None


def test_render_for_event_reports_missing_template(tmp_path: Path) -> None:
    bindings = EventBindings(tmp_path / "bindings.json")
    bindings.bind("order_created", "deleted_template")
    repository = TemplateRepository(TemplateStore(tmp_path / "templates.json"))

    result = render_for_event(
        bindings, repository, "order_created", sample_record(), settings=AppSettings()
    )

    assert result is not None
    assert result.success is False
    assert result.error is not None
    assert result.error.detail == {"template_id": "deleted_template", "event": "order_created"}
