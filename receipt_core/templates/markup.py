"""Receipt markup lexer and renderer.

Grammar:
- ``{key}`` substitutes a context value.
- ``{key:if} ... {key:endif}`` keeps its body only when ``context[key]`` is truthy.
- Keys allow only A-Z, a-z, 0-9 and underscore, and are case-sensitive.
- Blocks are single-level. An open marker pairs with the next close marker of
  the same key; markers inside a block body or without a partner stay literal.
"""

from __future__ import annotations

import re
from collections.abc import Mapping

from receipt_core.templates.models import (
    ConditionalBlock,
    MarkupIssue,
    MarkupScan,
    MarkupToken,
)

FlatContext = Mapping[str, object]

_TOKEN_RE = re.compile(r"\{([A-Za-z0-9_]+)(?::(if|endif))?\}")
_MARKER_KIND = {None: "var", "if": "open", "endif": "close"}


def tokenize(markup: str) -> list[MarkupToken]:
    """Split markup into text, variable, and conditional marker tokens."""

    tokens: list[MarkupToken] = []
    cursor = 0
    for match in _TOKEN_RE.finditer(markup):
        if match.start() > cursor:
            tokens.append(
                MarkupToken(
                    kind="text",
                    text=markup[cursor : match.start()],
                    start=cursor,
                    end=match.start(),
                )
            )
        tokens.append(
            MarkupToken(
                kind=_MARKER_KIND[match.group(2)],
                text=match.group(0),
                start=match.start(),
                end=match.end(),
                key=match.group(1),
            )
        )
        cursor = match.end()

    if cursor < len(markup):
        tokens.append(MarkupToken(kind="text", text=markup[cursor:], start=cursor, end=len(markup)))
    return tokens


def pair_conditionals(tokens: list[MarkupToken]) -> list[ConditionalBlock]:
    """Pair open/close markers leftmost-first, non-greedy, without nesting."""

    blocks: list[ConditionalBlock] = []
    index = 0
    while index < len(tokens):
        token = tokens[index]
        if token.kind == "open":
            close_index = _find_close(tokens, index + 1, token.key)
            if close_index is not None:
                blocks.append(
                    ConditionalBlock(key=token.key or "", open_index=index, close_index=close_index)
                )
                index = close_index + 1
                continue
        index += 1
    return blocks


def render_markup(markup: str, context: FlatContext) -> str:
    """Render markup against a flat context.

    The conditional pass runs first and its output is lexed again for
    substitution, so block bodies resolve their own placeholders.
    """

    return substitute_placeholders(resolve_conditionals(markup, context), context)


def resolve_conditionals(markup: str, context: FlatContext) -> str:
    """Replace each conditional block with its body or with nothing."""

    tokens = tokenize(markup)
    blocks = {block.open_index: block for block in pair_conditionals(tokens)}

    chunks: list[str] = []
    index = 0
    while index < len(tokens):
        block = blocks.get(index)
        if block is None:
            chunks.append(tokens[index].text)
            index += 1
            continue
        if is_truthy(context.get(block.key)):
            chunks.extend(token.text for token in tokens[block.open_index + 1 : block.close_index])
        index = block.close_index + 1

    return "".join(chunks)


def substitute_placeholders(markup: str, context: FlatContext) -> str:
    """Substitute ``{key}`` tokens; unresolved tokens render as empty text."""

    chunks: list[str] = []
    for token in tokenize(markup):
        if token.kind != "var":
            chunks.append(token.text)
            continue
        value = context.get(token.key or "")
        if value is None:
            continue
        chunks.append(stringify(value))
    return "".join(chunks)


def has_conditional_markers(markup: str) -> bool:
    """Return True when markup holds an open and a close marker of any key."""

    kinds = {token.kind for token in tokenize(markup)}
    return "open" in kinds and "close" in kinds


def scan_markup(markup: str) -> MarkupScan:
    """Collect placeholders, conditional keys, and unsupported marker usage."""

    tokens = tokenize(markup)
    result = MarkupScan()
    seen_placeholders: set[str] = set()
    seen_keys: set[str] = set()

    for token in tokens:
        key = token.key or ""
        if token.kind == "var" and key not in seen_placeholders:
            result.placeholders.append(key)
            seen_placeholders.add(key)
        elif token.kind == "open" and key not in seen_keys:
            result.conditional_keys.append(key)
            seen_keys.add(key)

    paired: set[int] = set()
    for block in pair_conditionals(tokens):
        paired.update((block.open_index, block.close_index))
        for inner in tokens[block.open_index + 1 : block.close_index]:
            if inner.kind in {"open", "close"}:
                result.issues.append(_issue("nested_block", inner))

    nested_positions = {issue.start for issue in result.issues}
    for index, token in enumerate(tokens):
        if index in paired or token.start in nested_positions:
            continue
        if token.kind == "open":
            result.issues.append(_issue("unclosed_block", token))
        elif token.kind == "close":
            result.issues.append(_issue("stray_close", token))

    result.issues.sort(key=lambda item: item.start)
    return result


def is_truthy(value: object) -> bool:
    if value is None or value is False:
        return False
    if isinstance(value, str):
        return value != ""
    if isinstance(value, (int, float)):
        return value != 0
    return True


def stringify(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _find_close(tokens: list[MarkupToken], start: int, key: str | None) -> int | None:
    for index in range(start, len(tokens)):
        token = tokens[index]
        if token.kind == "close" and token.key == key:
            return index
    return None


def _issue(kind, token: MarkupToken) -> MarkupIssue:
    return MarkupIssue(
        kind=kind, key=token.key or "", text=token.text, start=token.start, end=token.end
    )
