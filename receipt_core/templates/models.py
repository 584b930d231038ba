"""Data models for receipt templates, segments, and formatting directives."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

Align = Literal["left", "center", "right"]
Font = Literal["primary", "secondary"]
TemplateKind = Literal["legacy", "segmented"]

_FONT_CODES = {"a": "primary", "b": "secondary"}


class FormattingDirectives(BaseModel):
    """Visual directives for one segment; comparable and immutable."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    align: Align = "left"
    font: Font = "primary"
    size: int = Field(default=0, ge=0, le=2)
    bold: bool = False
    underline: bool = False
    italic: bool = False

    @field_validator("align", mode="before")
    @classmethod
    def _normalize_align(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("font", mode="before")
    @classmethod
    def _normalize_font(cls, value: Any) -> Any:
        if isinstance(value, str):
            normalized = value.strip().lower()
            return _FONT_CODES.get(normalized, normalized)
        return value

    @field_validator("bold", "underline", "italic", mode="before")
    @classmethod
    def _none_is_off(cls, value: Any) -> Any:
        return False if value is None else value


DEFAULT_DIRECTIVES = FormattingDirectives()


class BeepSettings(BaseModel):
    """Audible signal played after a receipt is printed."""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    enabled: bool = False
    count: int = Field(default=1, ge=1)
    duration: int = Field(default=100, ge=0, validation_alias=AliasChoices("duration", "time"))


class GlobalSettings(BaseModel):
    """Template-wide output settings."""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    beep: BeepSettings = Field(default_factory=BeepSettings)
    encoding: str = "cp866"
    paper_cut: bool = Field(default=True, validation_alias=AliasChoices("paper_cut", "paperCut"))


class Segment(BaseModel):
    """One ordered piece of markup with optional formatting."""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    markup: str = Field(default="", validation_alias=AliasChoices("markup", "content"))
    formatting: FormattingDirectives | None = Field(
        default=None, validation_alias=AliasChoices("formatting", "settings")
    )

    @field_validator("markup", mode="before")
    @classmethod
    def _none_is_blank(cls, value: Any) -> Any:
        return "" if value is None else value

    def effective_formatting(self) -> FormattingDirectives:
        return self.formatting or DEFAULT_DIRECTIVES


class Template(BaseModel):
    """Loaded template in normalized segmented form.

    Legacy templates become a single segment whose formatting is the
    template-level settings; their beep settings move to ``global_settings``.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = ""
    kind: TemplateKind
    segments: tuple[Segment, ...]
    formatting: FormattingDirectives = DEFAULT_DIRECTIVES
    global_settings: GlobalSettings = Field(default_factory=GlobalSettings)


MarkupTokenKind = Literal["text", "var", "open", "close"]


@dataclass(frozen=True)
class MarkupToken:
    """One lexical unit of template markup."""

    kind: MarkupTokenKind
    text: str
    start: int
    end: int
    key: str | None = None


@dataclass(frozen=True)
class ConditionalBlock:
    """A matched ``{key:if} ... {key:endif}`` pair, as token indices."""

    key: str
    open_index: int
    close_index: int


@dataclass(frozen=True)
class MarkupIssue:
    """A conditional marker that the single-level grammar cannot honor."""

    kind: Literal["nested_block", "unclosed_block", "stray_close"]
    key: str
    text: str
    start: int
    end: int


@dataclass
class MarkupScan:
    """Static summary of one markup string."""

    placeholders: list[str] = field(default_factory=list)
    conditional_keys: list[str] = field(default_factory=list)
    issues: list[MarkupIssue] = field(default_factory=list)
