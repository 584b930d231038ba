"""Orchestration pipeline: validate -> prepare -> render segments -> preview or print."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any, cast

from receipt_core.config.settings import AppSettings
from receipt_core.data.labels import labels_for
from receipt_core.data.preparer import prepare
from receipt_core.device.printer import (
    PrinterFactory,
    mock_printer_factory,
    network_printer_factory,
    print_receipt_async,
)
from receipt_core.format.compositor import PREVIEW_WIDTH
from receipt_core.format.preview import build_preview
from receipt_core.render.models import PrintResult, RenderResult, RenderStats
from receipt_core.render.segments import evaluate_outcome, process_segments
from receipt_core.templates.loader import load_template
from receipt_core.templates.models import Template
from receipt_core.templates.store import EventBindings, TemplateRepository
from receipt_core.templates.validator import validate_connection_target, validate_data
from receipt_core.utils.errors import (
    DeviceOperationError,
    Language,
    ReceiptError,
    TemplateLoadError,
    make_error,
)

logger = logging.getLogger("receipt.render")

_READY_MESSAGES: dict[Language, str] = {"en": "Receipt is ready", "uz": "Chek tayyor"}
_PRINTED_MESSAGES: dict[Language, str] = {
    "en": "Receipt printed",
    "uz": "Chek chop etildi",
}
_RECOVERABLE_CATEGORIES = {"timeout", "transport"}


def render_receipt(
    template: Template | object,
    record: object,
    *,
    required_fields: Sequence[str] = (),
    now: datetime | None = None,
    language: Language = "en",
    width: int = PREVIEW_WIDTH,
    currencies: tuple[str, str] = ("uzs", "usd"),
    strict_markup: bool = False,
    with_preview: bool = True,
) -> RenderResult:
    """Render a template against one order record.

    Validation failures short-circuit into a failed result; nothing here
    raises for bad templates, bad data, or empty output.
    """

    if isinstance(template, Template):
        loaded = template
    else:
        try:
            loaded = load_template(template, strict_markup=strict_markup, language=language)
        except TemplateLoadError as exc:
            return _failed_render(exc.error)

    data_check = validate_data(record, required_fields, language=language)
    if data_check.error is not None:
        return _failed_render(data_check.error)

    context = prepare(
        cast(Mapping[str, Any], record),
        now=now,
        labels=labels_for(language),
        currencies=currencies,
    )
    run = process_segments(loaded.segments, context)
    outcome = run.outcome
    stats = RenderStats(
        total_segments=outcome.total_segments,
        processed_segments=outcome.processed_segments,
        skipped_conditional_segments=outcome.skipped_conditional_segments,
    )

    error = evaluate_outcome(outcome, language=language)
    if error is not None:
        logger.info("template %r produced no content: %s", loaded.name, error.message)
        return RenderResult(
            success=False,
            message=error.message,
            user_message=error.user_message,
            stats=stats,
            error=error,
            outcome=outcome,
        )

    logger.debug(
        "template %r rendered: %d/%d segments",
        loaded.name,
        outcome.processed_segments,
        outcome.total_segments,
    )
    return RenderResult(
        success=True,
        message=f"Template processed successfully: {outcome.processed_segments} segment(s)",
        user_message=_READY_MESSAGES[language],
        stats=stats,
        outputs=run.outputs,
        outcome=outcome,
        preview=(
            build_preview(run.outputs, loaded.global_settings, width=width)
            if with_preview
            else None
        ),
    )


def preview_receipt(
    template: Template | object,
    record: object,
    *,
    settings: AppSettings,
    now: datetime | None = None,
    strict_markup: bool = False,
) -> RenderResult:
    """Render with the configured language, width, currencies, and required fields."""

    return render_receipt(
        template,
        record,
        required_fields=settings.required_fields,
        now=now,
        language=settings.language,
        width=settings.receipt_width,
        currencies=(settings.local_currency, settings.foreign_currency),
        strict_markup=strict_markup,
    )


async def print_template_async(
    template: Template | object,
    record: object,
    *,
    settings: AppSettings,
    printer_factory: PrinterFactory | None = None,
    now: datetime | None = None,
) -> PrintResult:
    """Render and print one receipt; every failure comes back as a result value."""

    language = settings.language
    if printer_factory is None and not settings.mock_printer:
        target_check = validate_connection_target(settings, language=language)
        if target_check.error is not None:
            return _failed_print(target_check.error, recoverable=False)

    try:
        loaded = (
            template
            if isinstance(template, Template)
            else load_template(template, language=language)
        )
    except TemplateLoadError as exc:
        return _failed_print(exc.error)

    rendered = preview_receipt(loaded, record, settings=settings, now=now)
    if rendered.error is not None:
        return _failed_print(rendered.error, render=rendered)

    factory = printer_factory or _default_factory(settings)
    try:
        await print_receipt_async(
            rendered.outputs,
            loaded.global_settings,
            printer_factory=factory,
            timeout_seconds=settings.timeout_seconds,
            language=language,
        )
    except DeviceOperationError as exc:
        logger.warning("printing failed [%s]: %s", exc.error.category, exc.error.message)
        return _failed_print(exc.error, render=rendered)

    return PrintResult(
        success=True,
        message="Receipt sent to printer",
        user_message=_PRINTED_MESSAGES[language],
        render=rendered,
    )


def render_for_event(
    bindings: EventBindings,
    repository: TemplateRepository,
    event_name: str,
    record: object,
    *,
    settings: AppSettings,
    now: datetime | None = None,
) -> RenderResult | None:
    """Render the template bound to ``event_name``.

    Returns None when no template is bound to the event.
    """

    template_id = bindings.resolve(event_name)
    if template_id is None:
        logger.info("no template bound to event %r", event_name)
        return None

    try:
        template = repository.get(template_id)
    except TemplateLoadError as exc:
        return _failed_render(exc.error)
    if template is None:
        return _failed_render(
            make_error(
                "structural",
                f"Template '{template_id}' bound to event '{event_name}' was not found",
                "Template not found",
                language=settings.language,
                detail={"template_id": template_id, "event": event_name},
            )
        )
    return preview_receipt(template, record, settings=settings, now=now)


def _default_factory(settings: AppSettings) -> PrinterFactory:
    if settings.mock_printer:
        return mock_printer_factory()
    return network_printer_factory(
        cast(str, settings.printer_ip),
        port=settings.printer_port,
        timeout=settings.timeout_seconds,
    )


def _failed_render(error: ReceiptError) -> RenderResult:
    return RenderResult(
        success=False,
        message=error.message,
        user_message=error.user_message,
        error=error,
    )


def _failed_print(
    error: ReceiptError,
    *,
    render: RenderResult | None = None,
    recoverable: bool | None = None,
) -> PrintResult:
    if recoverable is None:
        recoverable = error.category in _RECOVERABLE_CATEGORIES
    return PrintResult(
        success=False,
        message=error.message,
        user_message=error.user_message,
        render=render,
        error=error,
        recoverable=recoverable,
    )
