"""Load raw template JSON into the normalized ``Template`` model."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, cast

from pydantic import ValidationError

from receipt_core.templates.models import (
    FormattingDirectives,
    GlobalSettings,
    Segment,
    Template,
)
from receipt_core.templates.validator import validate_template
from receipt_core.utils.errors import Language, TemplateLoadError, make_error


def load_template(
    raw: object, *, strict_markup: bool = False, language: Language = "en"
) -> Template:
    """Validate and normalize a legacy or segmented template.

    Raises:
        TemplateLoadError: With a structural error value when the shape or a
            directive value is invalid.
    """

    check = validate_template(raw, strict_markup=strict_markup, language=language)
    if check.error is not None:
        raise TemplateLoadError(check.error.message, error=check.error)

    try:
        return _build_template(cast(Mapping[str, Any], raw))
    except ValidationError as exc:
        error = make_error(
            "structural",
            f"Invalid template settings: {exc.error_count()} error(s)",
            "Template settings are invalid",
            language=language,
            detail={"errors": _error_locations(exc)},
            cause=exc,
        )
        raise TemplateLoadError(error.message, error=error) from exc


def template_to_raw(template: Template) -> dict[str, Any]:
    """Dump a template back to its stored JSON shape."""

    if template.kind == "legacy":
        settings = template.formatting.model_dump(mode="json")
        settings["beep"] = template.global_settings.beep.model_dump(mode="json")
        return {
            "name": template.name,
            "content": template.segments[0].markup if template.segments else "",
            "settings": settings,
        }

    global_settings = template.global_settings
    return {
        "name": template.name,
        "segments": [
            {
                "content": segment.markup,
                "settings": (
                    segment.formatting.model_dump(mode="json")
                    if segment.formatting is not None
                    else None
                ),
            }
            for segment in template.segments
        ],
        "globalSettings": {
            "beep": global_settings.beep.model_dump(mode="json"),
            "encoding": global_settings.encoding,
            "paperCut": global_settings.paper_cut,
        },
    }


def _build_template(raw: Mapping[str, Any]) -> Template:
    name = str(raw.get("name") or "")
    segments_raw = raw.get("segments")

    if segments_raw is not None:
        segments = tuple(Segment.model_validate(item) for item in segments_raw)
        global_settings = GlobalSettings.model_validate(raw.get("globalSettings") or {})
        return Template(
            name=name,
            kind="segmented",
            segments=segments,
            global_settings=global_settings,
        )

    settings = raw.get("settings") or {}
    formatting = FormattingDirectives.model_validate(settings)
    global_settings = GlobalSettings.model_validate(
        {"beep": settings["beep"]} if isinstance(settings.get("beep"), Mapping) else {}
    )
    return Template(
        name=name,
        kind="legacy",
        segments=(Segment(markup=raw["content"], formatting=formatting),),
        formatting=formatting,
        global_settings=global_settings,
    )


def _error_locations(exc: ValidationError) -> list[str]:
    return [".".join(str(part) for part in item["loc"]) for item in exc.errors()]
