from __future__ import annotations

from collections.abc import Mapping

from receipt_core.render.segments import (
    ALL_CONDITIONAL_EMPTY,
    NO_NON_CONDITIONAL_CONTENT,
    evaluate_outcome,
    process_segments,
)
from receipt_core.templates.markup import render_markup
from receipt_core.templates.models import FormattingDirectives, Segment

DEBT_TEMPLATE = (
    Segment(markup="Receipt #{id}"),
    Segment(markup="{hasDebt:if}Debt: {debt}{hasDebt:endif}"),
    Segment(markup=""),
)


def test_debt_scenario_renders_conditional_segment() -> None:
    run = process_segments(DEBT_TEMPLATE, {"id": "A1", "hasDebt": True, "debt": "5000"})

    assert [output.text for output in run.outputs] == ["Receipt #A1", "Debt: 5000"]
    assert run.outcome.processed_segments == 2
    assert run.outcome.skipped_conditional_segments == 0
    assert run.outcome.blank_segments == 1
    assert run.outcome.total_segments == 3
    assert evaluate_outcome(run.outcome) is None


def test_no_debt_scenario_skips_conditional_segment() -> None:
    run = process_segments(DEBT_TEMPLATE, {"id": "A1", "hasDebt": False})

    assert [output.text for output in run.outputs] == ["Receipt #A1"]
    assert run.outcome.processed_segments == 1
    assert run.outcome.skipped_conditional_segments == 1
    assert run.outcome.total_segments == 3
    assert run.outcome.has_content is True
    assert evaluate_outcome(run.outcome) is None


def test_all_conditional_empty_template_fails_with_specific_message() -> None:
    run = process_segments((Segment(markup="{flag:if}X{flag:endif}"),), {"flag": False})

    error = evaluate_outcome(run.outcome)

    assert error is not None
    assert error.message == ALL_CONDITIONAL_EMPTY
    assert error.category == "structural"


def test_unconditional_segments_rendering_blank_fail() -> None:
    run = process_segments((Segment(markup="{missing}"),), {})

    error = evaluate_outcome(run.outcome)

    assert run.outcome.empty_segments == 1
    assert error is not None
    assert error.message == NO_NON_CONDITIONAL_CONTENT


def test_blank_segments_are_never_counted() -> None:
    segments = (Segment(markup="   \n\t"), Segment(markup=""), Segment(markup="ok"))

    run = process_segments(segments, {})

    assert run.outcome.blank_segments == 2
    assert run.outcome.processed_segments == 1
    assert run.outcome.skipped_conditional_segments == 0
    assert run.outcome.error_segments == []
    assert [output.index for output in run.outputs] == [2]


def test_failing_segment_is_isolated() -> None:
    def flaky_renderer(markup: str, context: Mapping[str, object]) -> str:
        if markup == "boom":
            raise RuntimeError("bad segment")
        return render_markup(markup, context)

    segments = (Segment(markup="first"), Segment(markup="boom"), Segment(markup="third"))

    run = process_segments(segments, {}, renderer=flaky_renderer)

    assert len(run.outcome.error_segments) == 1
    assert run.outcome.error_segments[0].index == 1
    assert "RuntimeError: bad segment" in run.outcome.error_segments[0].error
    assert [output.index for output in run.outputs] == [0, 2]
    assert evaluate_outcome(run.outcome) is None


def test_outputs_carry_effective_formatting() -> None:
    bold = FormattingDirectives(bold=True, align="center")
    segments = (Segment(markup="A", formatting=bold), Segment(markup="B"))

    run = process_segments(segments, {})

    assert run.outputs[0].formatting == bold
    assert run.outputs[1].formatting == FormattingDirectives()
