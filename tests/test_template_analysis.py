from __future__ import annotations

from datetime import datetime

from receipt_core.orchestrator.analysis import analyze_template, run_scenarios

NOW = datetime(2024, 5, 1, 9, 5)


def test_analyze_segmented_template_reports_segment_facts() -> None:
    template = {
        "name": "new_order",
        "segments": [
            {"content": "Receipt #{id} {id}", "settings": {"bold": True}},
            {"content": "{hasDebt:if}Debt: {debt}{hasDebt:endif}"},
            {"content": "  "},
        ],
        "globalSettings": {"paperCut": True},
    }

    analysis = analyze_template(template)

    assert analysis.valid is True
    assert analysis.name == "new_order"
    assert analysis.structure.kind == "segmented"
    assert analysis.structure.segment_count == 3
    assert analysis.structure.has_global_settings is True
    first, second, third = analysis.segments
    assert first.placeholders == ["id"]
    assert first.has_settings is True
    assert first.has_conditionals is False
    assert second.has_conditionals is True
    assert second.conditional_keys == ["hasDebt"]
    assert second.placeholders == ["debt"]
    assert third.has_content is False
    assert third.content_length == 2
    assert analysis.recommendations == ["1 empty segments detected"]


def test_analyze_legacy_template_as_single_segment() -> None:
    analysis = analyze_template({"content": "Order {id}", "settings": {"align": "center"}})

    assert analysis.structure.kind == "legacy"
    assert analysis.structure.segment_count == 1
    assert analysis.segments[0].placeholders == ["id"]
    assert analysis.recommendations == []


def test_analyze_recommends_for_all_conditional_template() -> None:
    analysis = analyze_template({"segments": [{"content": "{flag:if}X{flag:endif}"}]})

    assert analysis.recommendations == [
        "All segments are conditional - template may be empty if conditions not met"
    ]


def test_analyze_reports_markup_issues() -> None:
    analysis = analyze_template({"segments": [{"content": "A {open:if} B {close:endif}"}]})

    issues = analysis.segments[0].markup_issues
    assert [(issue.kind, issue.key) for issue in issues] == [
        ("unclosed_block", "open"),
        ("stray_close", "close"),
    ]
    assert any("unclosed block" in item for item in analysis.recommendations)


def test_analyze_malformed_template_does_not_raise() -> None:
    empty = analyze_template({"segments": []})
    broken = analyze_template("not a template")

    assert empty.valid is False
    assert empty.recommendations == [
        "Template has no segments - consider adding content segments"
    ]
    assert broken.valid is False
    assert broken.error is not None
    assert broken.error.category == "structural"


def test_run_scenarios_defaults_cover_four_records() -> None:
    template = {
        "segments": [
            {"content": "Receipt #{id}"},
            {"content": "{hasNotes:if}Notes: {notes}{hasNotes:endif}"},
        ]
    }

    report = run_scenarios(template, now=NOW)

    assert [result.scenario for result in report.results] == [
        "complete",
        "no-debt",
        "no-notes",
        "minimal",
    ]
    assert report.passed == 4
    assert report.all_passed is True
    no_notes = report.results[2]
    assert no_notes.stats is not None
    assert no_notes.stats.skipped_conditional_segments == 1


def test_run_scenarios_counts_failures() -> None:
    template = {"segments": [{"content": "{hasNotes:if}{notes}{hasNotes:endif}"}]}

    report = run_scenarios(template, [("with notes", {"notes": "x"}), ("bare", {})], now=NOW)

    assert report.passed == 1
    assert report.failed == 1
    assert report.all_passed is False
    assert report.results[1].error is not None
