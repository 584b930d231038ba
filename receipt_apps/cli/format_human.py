"""Human-readable validation and render summaries for CLI output."""

from __future__ import annotations

from collections import Counter

from receipt_core.orchestrator.analysis import ScenarioReport, TemplateAnalysis
from receipt_core.render.models import RenderResult


def render_validation_summary(analysis: TemplateAnalysis, report: ScenarioReport) -> str:
    """Render one-screen validation summary."""

    structure = analysis.structure
    lines: list[str] = []
    lines.append("validation_summary:")
    lines.append(f"template={analysis.name or 'unnamed'} kind={structure.kind}")
    lines.append(f"structure={'VALID' if analysis.valid else 'INVALID'}")
    if analysis.error is not None:
        lines.append(f"structure_error: {analysis.error.message}")

    empty = sum(1 for segment in analysis.segments if not segment.has_content)
    conditional = sum(1 for segment in analysis.segments if segment.has_conditionals)
    lines.append(
        f"segments: total={structure.segment_count} empty={empty} conditional={conditional}"
    )

    issue_counter: Counter[str] = Counter(
        issue.kind for segment in analysis.segments for issue in segment.markup_issues
    )
    if issue_counter:
        issues_text = ", ".join(f"{kind}={issue_counter[kind]}" for kind in sorted(issue_counter))
        lines.append(f"markup_issues: {issues_text}")
    else:
        lines.append("markup_issues: none")

    lines.append(f"scenarios: passed={report.passed} failed={report.failed}")
    for result in report.results:
        status = "PASSED" if result.success else "FAILED"
        processed = result.stats.processed_segments if result.stats is not None else 0
        lines.append(f"scenario: {result.scenario} {status} processed={processed}")
        if not result.success:
            lines.append(f"  reason: {result.message}")

    if analysis.recommendations:
        for recommendation in analysis.recommendations:
            lines.append(f"recommendation: {recommendation}")
    else:
        lines.append("recommendation: none")
    return "\n".join(lines)


def render_result_line(result: RenderResult) -> str:
    if result.success:
        stats = result.stats
        if stats is None:
            return "result=OK"
        return (
            f"result=OK processed={stats.processed_segments}/{stats.total_segments} "
            f"skipped_conditional={stats.skipped_conditional_segments}"
        )
    category = result.error.category if result.error is not None else "unknown"
    return f"result=FAILED category={category} reason={result.message}"
