"""Segment processor: render each segment in order, isolating failures."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence

from receipt_core.render.models import RenderOutcome, SegmentError, SegmentOutput, SegmentRun
from receipt_core.templates.markup import has_conditional_markers, render_markup
from receipt_core.templates.models import Segment
from receipt_core.utils.errors import Language, ReceiptError, make_error

logger = logging.getLogger("receipt.render")

MarkupRenderer = Callable[[str, Mapping[str, object]], str]

NO_NON_CONDITIONAL_CONTENT = "no printable content in non-conditional segments"
ALL_CONDITIONAL_EMPTY = "all segments conditional and empty"
NO_CONTENT = "no content after processing"


def process_segments(
    segments: Sequence[Segment],
    context: Mapping[str, object],
    *,
    renderer: MarkupRenderer = render_markup,
) -> SegmentRun:
    """Render segments in order; one failing segment never stops the rest."""

    outcome = RenderOutcome(total_segments=len(segments))
    outputs: list[SegmentOutput] = []

    for index, segment in enumerate(segments):
        markup = segment.markup
        if not markup or not markup.strip():
            outcome.blank_segments += 1
            continue

        try:
            text = renderer(markup, context)
        except Exception as exc:  # noqa: BLE001
            logger.warning("segment %d failed to render: %s: %s", index, type(exc).__name__, exc)
            outcome.error_segments.append(
                SegmentError(index=index, error=f"{type(exc).__name__}: {exc}")
            )
            continue

        if not text.strip():
            if has_conditional_markers(markup):
                outcome.skipped_conditional_segments += 1
            else:
                outcome.empty_segments += 1
                logger.debug("segment %d is empty after processing", index)
            continue

        outcome.has_content = True
        outcome.processed_segments += 1
        outputs.append(
            SegmentOutput(index=index, text=text, formatting=segment.effective_formatting())
        )

    return SegmentRun(outputs=outputs, outcome=outcome)


def evaluate_outcome(outcome: RenderOutcome, *, language: Language = "en") -> ReceiptError | None:
    """Return the failure for a render without content, else None.

    An all-conditional template that evaluates empty is reported separately
    from templates whose unconditional segments produced nothing.
    """

    if outcome.has_content:
        return None

    detail = {
        "total_segments": outcome.total_segments,
        "processed_segments": outcome.processed_segments,
        "skipped_conditional_segments": outcome.skipped_conditional_segments,
        "error_segments": [item.index for item in outcome.error_segments],
    }
    non_conditional = outcome.total_segments - outcome.skipped_conditional_segments
    if non_conditional > 0 and outcome.processed_segments == 0:
        return make_error(
            "structural",
            NO_NON_CONDITIONAL_CONTENT,
            "The template produced no printable content",
            language=language,
            detail=detail,
        )
    if outcome.total_segments == outcome.skipped_conditional_segments:
        return make_error(
            "structural",
            ALL_CONDITIONAL_EMPTY,
            "Nothing to print for this data: every template section is conditional",
            language=language,
            detail=detail,
        )
    return make_error(
        "structural",
        NO_CONTENT,
        "The template produced no content",
        language=language,
        detail=detail,
    )
