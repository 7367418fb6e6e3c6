import pytest

from ribbon.errors import Diagnostics, ParseError
from ribbon.grammar import (
    BracketList,
    Flag,
    Ident,
    ListToken,
    coerce_dataset,
    directive_text,
    parse_bracket_list,
    parse_directives,
    parse_number,
    parse_value,
    split_top_level,
    strip_quotes,
    to_text,
)


def test_split_simple():
    assert split_top_level("a, b ,c") == ["a", "b", "c"]


def test_split_ignores_commas_in_brackets_and_quotes():
    s = "class: [a => b, c => d], text: 'x, y', attr: [\"p, q\" => title]"
    assert split_top_level(s) == [
        "class: [a => b, c => d]",
        "text: 'x, y'",
        "attr: [\"p, q\" => title]",
    ]


def test_split_nested_brackets():
    assert split_top_level("a: [x, [y, z]], b") == ["a: [x, [y, z]]", "b"]


def test_split_drops_empty_parts():
    assert split_top_level(" , a,, b , ") == ["a", "b"]
    assert split_top_level("") == []


def test_split_custom_separator():
    assert split_top_level("a;b;[c;d]", sep=";") == ["a", "b", "[c;d]"]


def test_strip_quotes():
    assert strip_quotes("'name'") == "name"
    assert strip_quotes('" spaced "') == "spaced"
    assert strip_quotes("'mismatched\"") == "'mismatched\""


def test_list_token_shapes():
    bl = parse_bracket_list("[users as user, isActive => active, data: fruits, plain]")
    assert bl.items == (
        ListToken("alias", "users", "user"),
        ListToken("map", "isActive", "active"),
        ListToken("map", "fruits", "data"),
        ListToken("plain", "plain", "plain"),
    )
    assert not bl.wildcard


def test_wildcard_token():
    bl = parse_bracket_list("[*, name]")
    assert bl.wildcard
    assert bl.pairs() == [("name", "name")]


def test_bracket_list_config():
    bl = parse_bracket_list("[data: users, as: user]")
    assert bl.config() == {"data": "users", "as": "user"}


def test_parse_value_variants():
    assert parse_value("title") == Ident("title")
    assert parse_value("'Cart.total'") == Ident("Cart.total")
    assert parse_value("") == Ident("")
    assert isinstance(parse_value("[a => b]"), BracketList)


def test_parse_value_rejects_unbalanced():
    with pytest.raises(ParseError):
        parse_value("[a => b")
    with pytest.raises(ParseError):
        parse_value("a => b]")


def test_parse_directives():
    d = parse_directives("text: title, class: [isActive => active], visible")
    assert d["text"] == Ident("title")
    assert d["class"].pairs() == [("isActive", "active")]
    assert d["visible"] == Flag(True)


def test_parse_directives_empty():
    assert parse_directives(None) == {}
    assert parse_directives("") == {}


def test_malformed_directive_is_dropped_and_reported():
    diagnostics = Diagnostics()
    d = parse_directives("text: title, class: [a => b, value: count", diagnostics)
    # the unterminated list swallows the rest of the attribute
    assert d == {"text": Ident("title")}
    assert [r.code for r in diagnostics] == ["parse"]


def test_malformed_value_keeps_siblings():
    diagnostics = Diagnostics()
    d = parse_directives("text: title, attr: a => b], value: count", diagnostics)
    assert set(d) == {"text", "value"}
    assert len(diagnostics.by_code("parse")) == 1


def test_directive_text():
    assert directive_text(Ident("x")) == "x"
    assert directive_text(Ident("")) is None
    assert directive_text(None) is None
    assert directive_text(Flag(True)) == "true"


def test_coerce_dataset():
    assert coerce_dataset(
        {"id": "7", "price": "2.5", "on": "true", "off": "false", "none": "null",
         "tags": '["a","b"]', "name": "Bob", "bad": "{nope"}
    ) == {
        "id": 7,
        "price": 2.5,
        "on": True,
        "off": False,
        "none": None,
        "tags": ["a", "b"],
        "name": "Bob",
        "bad": "{nope",
    }


def test_parse_number():
    assert parse_number("15") == 15
    assert parse_number(" 1.5 ") == 1.5
    assert parse_number("abc") == ""
    assert parse_number("") == ""
    assert parse_number("true") == ""


def test_to_text():
    assert to_text(None) == ""
    assert to_text(True) == "true"
    assert to_text(3.0) == "3"
    assert to_text(["a", 1]) == "a, 1"
    assert to_text("x") == "x"
