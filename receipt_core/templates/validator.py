"""Structural checks on templates, data records, and printer targets.

Every check returns a ``CheckResult``; nothing here raises to the caller.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any

from receipt_core.templates.markup import scan_markup
from receipt_core.utils.errors import CheckResult, Language, make_error

_IPV4_RE = re.compile(
    r"^(?:(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}"
    r"(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)$"
)


def validate_template(
    template: object, *, strict_markup: bool = False, language: Language = "en"
) -> CheckResult:
    """Check the raw template shape before it is loaded or rendered.

    Args:
        template: Parsed JSON template, legacy or segmented.
        strict_markup: Also reject nested, overlapping, or unbalanced
            conditional markers.
        language: Language of the user-facing messages.
    """

    try:
        if template is None:
            return _structural("Template is null", "Template not found", language)
        if not isinstance(template, Mapping):
            return _structural("Template must be an object", "Template format is invalid", language)

        if "segments" in template and template["segments"] is not None:
            segments = template["segments"]
            if not isinstance(segments, list):
                return _structural(
                    "Template segments must be an array",
                    "Template segments are malformed",
                    language,
                )
            if not segments:
                return _structural(
                    "Template segments array is empty",
                    "Template is empty, it has no segments",
                    language,
                )
            for index, segment in enumerate(segments):
                result = _validate_segment(segment, index, strict_markup, language)
                if not result.success:
                    return result
        elif not template.get("content"):
            return _structural(
                "Template has no segments or content", "Template has no content", language
            )
        else:
            content = template["content"]
            if not isinstance(content, str):
                return _structural(
                    "Template content must be a string", "Template content must be text", language
                )
            if strict_markup:
                result = _check_markup(content, None, language)
                if not result.success:
                    return result
            settings = template.get("settings")
            if settings is not None and not isinstance(settings, Mapping):
                return _structural(
                    "Template settings must be an object", "Template settings are invalid", language
                )

        return CheckResult.ok()
    except Exception as exc:  # noqa: BLE001
        return CheckResult.fail(
            make_error(
                "structural",
                "Error validating template structure",
                language=language,
                cause=exc,
            )
        )


def validate_data(
    data: object, required_fields: Sequence[str] = (), *, language: Language = "en"
) -> CheckResult:
    """Check that the data record is a mapping holding every required field."""

    try:
        if data is None or not isinstance(data, Mapping):
            return CheckResult.fail(
                make_error(
                    "data",
                    "Template data is null or not an object",
                    language=language,
                )
            )

        missing = [name for name in required_fields if data.get(name) is None]
        if missing:
            joined = ", ".join(missing)
            return CheckResult.fail(
                make_error(
                    "data",
                    f"Missing required fields: {joined}",
                    f"Required data is missing: {joined}",
                    language=language,
                    detail={"missing_fields": missing},
                )
            )

        return CheckResult.ok()
    except Exception as exc:  # noqa: BLE001
        return CheckResult.fail(
            make_error("data", "Error validating template data", language=language, cause=exc)
        )


def validate_connection_target(settings: object, *, language: Language = "en") -> CheckResult:
    """Check that printer settings carry a dotted-quad IPv4 address."""

    address = _read_address(settings)
    if not address:
        return CheckResult.fail(
            make_error(
                "transport",
                "Printer IP not found in settings",
                "Printer IP address is not configured",
                language=language,
            )
        )
    if not isinstance(address, str) or not _IPV4_RE.match(address):
        return CheckResult.fail(
            make_error(
                "transport",
                "Invalid IP address format",
                "Printer IP address format is invalid",
                language=language,
                detail={"printer_ip": str(address)},
            )
        )
    return CheckResult.ok()


def _validate_segment(
    segment: object, index: int, strict_markup: bool, language: Language
) -> CheckResult:
    if not isinstance(segment, Mapping):
        return _structural(
            f"Segment {index} is invalid", f"Segment {index + 1} is malformed", language, index
        )

    content = segment.get("content")
    if "content" in segment and content is not None and not isinstance(content, str):
        return _structural(
            f"Segment {index} content must be a string",
            f"Segment {index + 1} content must be text",
            language,
            index,
        )

    settings = segment.get("settings")
    if settings is not None and not isinstance(settings, Mapping):
        return _structural(
            f"Segment {index} settings must be an object",
            f"Segment {index + 1} settings are invalid",
            language,
            index,
        )

    if strict_markup and isinstance(content, str):
        return _check_markup(content, index, language)
    return CheckResult.ok()


def _check_markup(markup: str, index: int | None, language: Language) -> CheckResult:
    issues = scan_markup(markup).issues
    if not issues:
        return CheckResult.ok()
    first = issues[0]
    where = "Template content" if index is None else f"Segment {index}"
    detail: dict[str, Any] = {"issues": [issue.kind for issue in issues]}
    if index is not None:
        detail["segment_index"] = index
    return CheckResult.fail(
        make_error(
            "structural",
            f"{where} has unsupported conditional markup: {first.kind} {first.text}",
            "Template conditions are not closed correctly",
            language=language,
            detail=detail,
        )
    )


def _structural(
    message: str, user_message: str, language: Language, index: int | None = None
) -> CheckResult:
    detail = {"segment_index": index} if index is not None else None
    return CheckResult.fail(
        make_error("structural", message, user_message, language=language, detail=detail)
    )


def _read_address(settings: object) -> object:
    if isinstance(settings, Mapping):
        return settings.get("printer_ip") or settings.get("printerIp")
    return getattr(settings, "printer_ip", None)
