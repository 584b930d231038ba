"""Segment processing and render result models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from receipt_core.templates.models import FormattingDirectives
from receipt_core.utils.errors import ReceiptError


class SegmentOutput(BaseModel):
    """Rendered text of one segment paired with its formatting."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    index: int
    text: str
    formatting: FormattingDirectives


class SegmentError(BaseModel):
    """A segment whose rendering raised."""

    model_config = ConfigDict(extra="forbid")

    index: int
    error: str


class RenderOutcome(BaseModel):
    """Per-render segment accounting.

    Rules:
    - processed + skipped_conditional + blank + len(error_segments) <= total
    - empty_segments counts non-conditional segments that rendered blank
    """

    model_config = ConfigDict(extra="forbid")

    has_content: bool = False
    processed_segments: int = 0
    skipped_conditional_segments: int = 0
    blank_segments: int = 0
    empty_segments: int = 0
    error_segments: list[SegmentError] = Field(default_factory=list)
    total_segments: int = 0


class SegmentRun(BaseModel):
    """Outputs of one ``process_segments`` call."""

    model_config = ConfigDict(extra="forbid")

    outputs: list[SegmentOutput] = Field(default_factory=list)
    outcome: RenderOutcome


class RenderStats(BaseModel):
    model_config = ConfigDict(extra="forbid")

    total_segments: int
    processed_segments: int
    skipped_conditional_segments: int


class RenderResult(BaseModel):
    """Diagnostic result payload of a render call."""

    model_config = ConfigDict(extra="forbid")

    success: bool
    message: str
    user_message: str
    stats: RenderStats | None = None
    error: ReceiptError | None = None
    outputs: list[SegmentOutput] = Field(default_factory=list)
    outcome: RenderOutcome | None = None
    preview: str | None = None


class PrintResult(BaseModel):
    """Result of sending a rendered receipt to the printer."""

    model_config = ConfigDict(extra="forbid")

    success: bool
    message: str
    user_message: str
    render: RenderResult | None = None
    error: ReceiptError | None = None
    recoverable: bool = False
