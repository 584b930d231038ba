from __future__ import annotations

from receipt_core.templates.markup import (
    has_conditional_markers,
    is_truthy,
    pair_conditionals,
    render_markup,
    scan_markup,
    stringify,
    tokenize,
)


def test_tokenize_splits_text_variables_and_markers() -> None:
    tokens = tokenize("Hi {name}{vip:if}!{vip:endif}")

    assert [token.kind for token in tokens] == ["text", "var", "open", "text", "close"]
    assert tokens[1].key == "name"
    assert tokens[2].key == "vip"
    assert (tokens[1].start, tokens[1].end) == (3, 9)


def test_tokenize_leaves_malformed_braces_as_text() -> None:
    tokens = tokenize("{a-b} {} {x:else}")

    assert [token.kind for token in tokens] == ["text"]


def test_render_substitutes_placeholders_and_blanks_missing_keys() -> None:
    result = render_markup("#{id} for {client} {missing}.", {"id": "A1", "client": "Jane"})

    assert result == "#A1 for Jane ."


def test_render_stringifies_booleans_and_integral_floats() -> None:
    context = {"flag": True, "off": False, "amount": 5000.0, "rate": 1.5, "zero": 0}

    result = render_markup("{flag}/{off}/{amount}/{rate}/{zero}", context)

    assert result == "true/false/5000/1.5/0"


def test_render_treats_none_as_missing() -> None:
    assert render_markup("[{value}]", {"value": None}) == "[]"


def test_conditional_block_kept_when_truthy_with_inner_placeholders() -> None:
    markup = "{hasDebt:if}Debt: {debt}{hasDebt:endif}"

    assert render_markup(markup, {"hasDebt": True, "debt": "5 000"}) == "Debt: 5 000"


def test_conditional_block_removed_when_falsy() -> None:
    markup = "A{hasNotes:if}Notes: {notes}{hasNotes:endif}B"

    for value in (False, 0, "", None):
        result = render_markup(markup, {"hasNotes": value, "notes": "fragile"})
        assert result == "AB"
        assert "Notes" not in result


def test_conditional_keys_are_case_sensitive() -> None:
    markup = "{Flag:if}X{flag:endif}"

    assert render_markup(markup, {"Flag": True, "flag": True}) == markup


def test_multiple_blocks_of_same_key_pair_leftmost_non_greedy() -> None:
    markup = "{a:if}1{a:endif}-{a:if}2{a:endif}"
    tokens = tokenize(markup)

    blocks = pair_conditionals(tokens)

    assert len(blocks) == 2
    assert render_markup(markup, {"a": True}) == "1-2"
    assert render_markup(markup, {"a": False}) == "-"


def test_inner_marker_of_other_key_stays_literal() -> None:
    markup = "{a:if}x{b:if}y{b:endif}{a:endif}"

    assert render_markup(markup, {"a": True, "b": True}) == "x{b:if}y{b:endif}"
    assert render_markup(markup, {"a": False, "b": True}) == ""


def test_unpaired_open_marker_stays_literal() -> None:
    assert render_markup("{a:if}text", {"a": True}) == "{a:if}text"


def test_render_is_deterministic() -> None:
    markup = "{id} {x:if}{y}{x:endif} {z}"
    context = {"id": 7, "x": 1, "y": "why", "z": 2.0}

    assert render_markup(markup, context) == render_markup(markup, context)


def test_has_conditional_markers_requires_open_and_close() -> None:
    assert has_conditional_markers("{a:if}x{a:endif}")
    assert not has_conditional_markers("{a:if}x")
    assert not has_conditional_markers("{a} plain")


def test_scan_collects_unique_placeholders_and_keys() -> None:
    scan = scan_markup("{id} {id} {a:if}{name}{a:endif} {a:if}{a:endif}")

    assert scan.placeholders == ["id", "name"]
    assert scan.conditional_keys == ["a"]
    assert scan.issues == []


def test_scan_reports_nested_unclosed_and_stray_markers() -> None:
    scan = scan_markup("{a:if}{b:if}x{b:endif}{a:endif} {c:if} {d:endif}")

    kinds = [(issue.kind, issue.key) for issue in scan.issues]
    assert kinds == [
        ("nested_block", "b"),
        ("nested_block", "b"),
        ("unclosed_block", "c"),
        ("stray_close", "d"),
    ]


def test_truthiness_follows_loose_rules() -> None:
    assert is_truthy("0")
    assert is_truthy(1)
    assert is_truthy([])
    assert not is_truthy(0.0)
    assert not is_truthy("")
    assert not is_truthy(None)


def test_stringify_keeps_text_as_is() -> None:
    assert stringify("A1") == "A1"
    assert stringify(12) == "12"
