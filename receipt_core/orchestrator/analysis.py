"""Static template analysis and scenario checks against demonstration records."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from receipt_core.data.samples import default_scenarios
from receipt_core.orchestrator.pipeline import render_receipt
from receipt_core.render.models import RenderStats
from receipt_core.templates.markup import has_conditional_markers, scan_markup
from receipt_core.templates.validator import validate_template
from receipt_core.utils.errors import Language, ReceiptError


class TemplateStructure(BaseModel):
    model_config = ConfigDict(extra="forbid")

    kind: str
    has_name: bool
    has_segments: bool
    segment_count: int
    has_global_settings: bool


class MarkupIssueSummary(BaseModel):
    model_config = ConfigDict(extra="forbid")

    kind: str
    key: str
    text: str
    start: int


class SegmentAnalysis(BaseModel):
    """Static facts about one segment's markup."""

    model_config = ConfigDict(extra="forbid")

    index: int
    has_content: bool
    content_length: int
    has_settings: bool
    has_conditionals: bool
    placeholders: list[str] = Field(default_factory=list)
    conditional_keys: list[str] = Field(default_factory=list)
    markup_issues: list[MarkupIssueSummary] = Field(default_factory=list)


class TemplateAnalysis(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None
    structure: TemplateStructure
    valid: bool
    error: ReceiptError | None = None
    segments: list[SegmentAnalysis] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)


class ScenarioResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    scenario: str
    success: bool
    message: str
    user_message: str
    stats: RenderStats | None = None
    error: ReceiptError | None = None


class ScenarioReport(BaseModel):
    model_config = ConfigDict(extra="forbid")

    results: list[ScenarioResult] = Field(default_factory=list)
    passed: int = 0
    failed: int = 0

    @property
    def all_passed(self) -> bool:
        return self.failed == 0


def analyze_template(template: object) -> TemplateAnalysis:
    """Summarize a raw template without rendering it.

    Works on malformed input too: structural problems land in ``valid`` and
    ``error`` instead of raising.
    """

    raw: Mapping[str, Any] = template if isinstance(template, Mapping) else {}
    segments = _raw_segments(raw)
    check = validate_template(template)

    structure = TemplateStructure(
        kind="segmented" if isinstance(raw.get("segments"), list) else "legacy",
        has_name=bool(raw.get("name")),
        has_segments=isinstance(raw.get("segments"), list),
        segment_count=len(segments),
        has_global_settings=isinstance(raw.get("globalSettings"), Mapping),
    )
    analyses = [_analyze_segment(index, segment) for index, segment in enumerate(segments)]

    return TemplateAnalysis(
        name=str(raw["name"]) if raw.get("name") else None,
        structure=structure,
        valid=check.success,
        error=check.error,
        segments=analyses,
        recommendations=_recommendations(analyses),
    )


def run_scenarios(
    template: object,
    scenarios: Sequence[tuple[str, Mapping[str, Any]]] | None = None,
    *,
    now: datetime | None = None,
    language: Language = "en",
) -> ScenarioReport:
    """Render the template once per named record and tally the outcomes."""

    report = ScenarioReport()
    named_records = scenarios if scenarios is not None else default_scenarios()
    for name, record in named_records:
        result = render_receipt(template, record, now=now, language=language, with_preview=False)
        report.results.append(
            ScenarioResult(
                scenario=name,
                success=result.success,
                message=result.message,
                user_message=result.user_message,
                stats=result.stats,
                error=result.error,
            )
        )
        if result.success:
            report.passed += 1
        else:
            report.failed += 1
    return report


def _raw_segments(raw: Mapping[str, Any]) -> list[Mapping[str, Any]]:
    segments = raw.get("segments")
    if isinstance(segments, list):
        return [segment if isinstance(segment, Mapping) else {} for segment in segments]
    if isinstance(raw.get("content"), str):
        return [{"content": raw["content"], "settings": raw.get("settings")}]
    return []


def _analyze_segment(index: int, segment: Mapping[str, Any]) -> SegmentAnalysis:
    content = segment.get("content", segment.get("markup"))
    markup = content if isinstance(content, str) else ""
    scan = scan_markup(markup)
    return SegmentAnalysis(
        index=index,
        has_content=bool(markup.strip()),
        content_length=len(markup),
        has_settings=bool(segment.get("settings", segment.get("formatting"))),
        has_conditionals=has_conditional_markers(markup),
        placeholders=scan.placeholders,
        conditional_keys=scan.conditional_keys,
        markup_issues=[
            MarkupIssueSummary(kind=issue.kind, key=issue.key, text=issue.text, start=issue.start)
            for issue in scan.issues
        ],
    )


def _recommendations(segments: list[SegmentAnalysis]) -> list[str]:
    if not segments:
        return ["Template has no segments - consider adding content segments"]

    recommendations: list[str] = []
    empty = [segment for segment in segments if not segment.has_content]
    if empty:
        recommendations.append(f"{len(empty)} empty segments detected")

    unconditional = [
        segment for segment in segments if segment.has_content and not segment.has_conditionals
    ]
    if not unconditional:
        recommendations.append(
            "All segments are conditional - template may be empty if conditions not met"
        )

    for segment in segments:
        for issue in segment.markup_issues:
            recommendations.append(
                f"Segment {segment.index}: {issue.kind.replace('_', ' ')} "
                f"'{issue.text}' at offset {issue.start}"
            )
    return recommendations
