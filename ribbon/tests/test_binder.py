from ribbon.dom import DomSink, click, focus, blur, parse_html, select_option, type_text
from ribbon.registry import Registry


def bind(markup: str, **config):
    doc = parse_html(markup)
    registry = Registry(DomSink(), **config)
    registry.scan_and_register(doc)
    return doc, registry


def store_of(registry, doc, el_id="c"):
    return registry.scopes[doc.find_by_id(el_id)].store


def test_text_seeds_store_and_follows_it():
    doc, registry = bind(
        '<div id="c" data-bind="component: Title"><h1 id="t" data-bind="text: title"> Hello </h1></div>'
    )
    store = store_of(registry, doc)
    assert store["title"] == "Hello"
    store["title"] = "Bye"
    assert doc.find_by_id("t").text_content == "Bye"


def test_filled_in_control_wins_over_text():
    doc, registry = bind(
        '<div id="c" data-bind="component: Name">'
        '<span data-bind="text: name">Anon</span>'
        '<input id="i" value="Zoe" data-bind="value: name">'
        "</div>"
    )
    assert store_of(registry, doc)["name"] == "Zoe"


def test_text_input_round_trip():
    doc, registry = bind(
        '<div id="c" data-bind="component: Form">'
        '<input id="i" data-bind="value: query">'
        '<p id="echo" data-bind="text: query"></p>'
        "</div>"
    )
    store = store_of(registry, doc)
    type_text(doc.find_by_id("i"), "abc")
    assert store["query"] == "abc"
    assert doc.find_by_id("echo").text_content == "abc"
    store["query"] = "xyz"
    assert doc.find_by_id("i").value == "xyz"


def test_update_event_override():
    doc, registry = bind(
        '<div id="c" data-bind="component: Form">'
        '<input id="i" data-bind="value: query, update: change">'
        "</div>"
    )
    store = store_of(registry, doc)
    type_text(doc.find_by_id("i"), "abc", change=False)
    assert store["query"] == ""
    type_text(doc.find_by_id("i"), "abc")
    assert store["query"] == "abc"


def test_numeric_value_is_clamped():
    doc, registry = bind(
        '<div id="c" data-bind="component: Counter">'
        '<input id="n" type="number" min="0" max="10" value="3" data-bind="value: count">'
        "</div>"
    )
    store = store_of(registry, doc)
    assert store["count"] == 3
    type_text(doc.find_by_id("n"), "15")
    assert store["count"] == 10
    assert doc.find_by_id("n").value == "10"
    type_text(doc.find_by_id("n"), "-4")
    assert store["count"] == 0
    type_text(doc.find_by_id("n"), "abc")
    assert store["count"] == ""


def test_single_checkbox_is_boolean():
    doc, registry = bind(
        '<div id="c" data-bind="component: Prefs">'
        '<input id="b" type="checkbox" data-bind="value: subscribed">'
        "</div>"
    )
    store = store_of(registry, doc)
    assert store["subscribed"] is False
    click(doc.find_by_id("b"))
    assert store["subscribed"] is True
    store["subscribed"] = False
    assert not doc.find_by_id("b").checked


GROUPED = """
<div id="c" data-bind="component: Colors">
  <input id="red" type="checkbox" value="red" data-bind="value: colors">
  <input id="blue" type="checkbox" value="blue" data-bind="value: colors">
  <input id="green" type="checkbox" value="green" checked data-bind="value: colors">
  <input id="all" type="checkbox" data-bind="toggle, all: colors">
</div>
"""


def test_grouped_checkboxes_track_checked_values():
    doc, registry = bind(GROUPED)
    store = store_of(registry, doc)
    assert store["colors"] == ["green"]

    click(doc.find_by_id("green"))
    click(doc.find_by_id("red"))
    click(doc.find_by_id("blue"))
    assert store["colors"] == ["red", "blue"]

    click(doc.find_by_id("red"))
    assert store["colors"] == ["blue"]


def test_grouped_checkboxes_follow_store():
    doc, registry = bind(GROUPED)
    store = store_of(registry, doc)
    store["colors"] = ["red", "red", "blue"]
    assert doc.find_by_id("red").checked
    assert doc.find_by_id("blue").checked
    assert not doc.find_by_id("green").checked
    click(doc.find_by_id("green"))
    assert sorted(store["colors"]) == ["blue", "green", "red"]
    assert len(store["colors"]) == 3


def test_toggle_all():
    doc, registry = bind(GROUPED)
    store = store_of(registry, doc)
    toggle = doc.find_by_id("all")
    assert not toggle.checked

    click(toggle)
    assert store["colors"] == ["red", "blue", "green"]
    assert all(doc.find_by_id(i).checked for i in ("red", "blue", "green"))

    click(doc.find_by_id("blue"))
    assert not toggle.checked
    click(doc.find_by_id("blue"))
    assert toggle.checked

    click(toggle)
    assert store["colors"] == []


def test_single_checkbox_with_toggle_after_it_is_grouped():
    doc, registry = bind(
        '<div id="c" data-bind="component: Colors">'
        '<input id="red" type="checkbox" value="red" data-bind="value: colors">'
        '<input id="all" type="checkbox" data-bind="toggle, all: colors">'
        "</div>"
    )
    store = store_of(registry, doc)
    assert store["colors"] == []

    click(doc.find_by_id("all"))
    assert store["colors"] == ["red"]
    assert doc.find_by_id("red").checked

    click(doc.find_by_id("red"))
    assert store["colors"] == []
    assert not doc.find_by_id("all").checked


def test_radio_group():
    markup = (
        '<div data-bind="component: Size">'
        '<input type="radio" name="size" value="s" data-bind="value: size">'
        '<input type="radio" name="size" value="m" checked data-bind="value: size">'
        "</div>"
    )
    doc, registry = bind(markup + markup)
    (first_el, second_el) = registry.instances("Size")
    first, second = registry.scopes[first_el].store, registry.scopes[second_el].store
    first_s, first_m = first_el.query_all("input")
    second_s, second_m = second_el.query_all("input")
    assert first["size"] == second["size"] == "m"

    click(first_s)
    assert first["size"] == "s"
    # groups are renamed per scope, the other instance keeps its selection
    assert second["size"] == "m"
    assert second_m.checked
    assert first_s.attrs["name"] != second_s.attrs["name"]

    first["size"] = "m"
    assert first_m.checked
    assert not first_s.checked


def test_radio_without_selection_seeds_none():
    doc, registry = bind(
        '<div id="c" data-bind="component: Pick">'
        '<input type="radio" name="p" value="a" data-bind="value: pick">'
        "</div>"
    )
    assert store_of(registry, doc)["pick"] is None


def test_select_single_and_multiple():
    doc, registry = bind(
        '<div id="c" data-bind="component: Filter">'
        '<select id="s" data-bind="value: sort"><option>name</option><option selected>date</option></select>'
        '<select id="m" multiple data-bind="value: tags">'
        "<option>a</option><option selected>b</option><option>c</option></select>"
        "</div>"
    )
    store = store_of(registry, doc)
    assert store["sort"] == "date"
    assert store["tags"] == ["b"]

    select_option(doc.find_by_id("s"), "name")
    select_option(doc.find_by_id("m"), "a", "c")
    assert store["sort"] == "name"
    assert store["tags"] == ["a", "c"]

    store["tags"] = ["b"]
    assert [o.value for o in doc.find_by_id("m").selected_options] == ["b"]


def test_class_attr_and_visible():
    doc, registry = bind(
        '<div id="c" data-bind="component: Panel">'
        '<p id="p" class="base" data-bind="class: [isActive => active], '
        'attr: [link => href, label => title], visible: shown">x</p>'
        "</div>"
    )
    store = store_of(registry, doc)
    p = doc.find_by_id("p")
    assert store["isActive"] is False
    assert store["shown"] is True
    assert p.classes == ["base"]

    store.update(isActive=True, link="/a", label="Go", shown=False)
    assert p.classes == ["base", "active"]
    assert p.attrs["href"] == "/a"
    assert p.attrs["title"] == "Go"
    assert p.hidden

    store["shown"] = True
    assert not p.hidden


def test_html_readonly_disabled():
    doc, registry = bind(
        '<div id="c" data-bind="component: Doc">'
        '<div id="h" data-bind="html: body"></div>'
        '<input id="i" data-bind="readonly: locked, disabled: off">'
        "</div>"
    )
    store = store_of(registry, doc)
    assert store["body"] == ""
    store["body"] = "<b>bold</b>"
    assert doc.find_by_id("h").inner_html == "<b>bold</b>"

    i = doc.find_by_id("i")
    store.update(locked=True, off=True)
    assert i.readonly and i.disabled
    store.update(locked=False, off=False)
    assert not i.readonly and not i.disabled


def test_focused_two_way():
    doc, registry = bind(
        '<div id="c" data-bind="component: Search">'
        '<input id="i" data-bind="focused: editing">'
        "</div>"
    )
    store = store_of(registry, doc)
    i = doc.find_by_id("i")
    assert store["editing"] is False

    store["editing"] = True
    assert doc.active_element is i
    blur(i)
    assert store["editing"] is False
    focus(i)
    assert store["editing"] is True


def test_malformed_class_directive_is_skipped():
    doc, registry = bind(
        '<div id="c" data-bind="component: Bad">'
        '<p id="p" data-bind="class: active, text: label">hi</p>'
        "</div>"
    )
    assert store_of(registry, doc)["label"] == "hi"
    assert registry.diagnostics.by_code("parse")


def test_with_suppresses_defaults():
    doc, registry = bind(
        '<div id="c" data-bind="component: Outer">'
        '<section data-bind="with: details"><span data-bind="text: inner">x</span></section>'
        '<span data-bind="text: outer">y</span>'
        "</div>"
    )
    store = store_of(registry, doc)
    assert "inner" not in store
    assert store["outer"] == "y"


def test_child_scope_elements_are_not_bound_by_parent():
    doc, registry = bind(
        '<div id="c" data-bind="component: Parent"><span data-bind="text: a">1</span>'
        '<div id="d" data-bind="component: Child"><span data-bind="text: b">2</span></div>'
        "</div>"
    )
    assert store_of(registry, doc, "c").snapshot() == {"a": "1"}
    assert store_of(registry, doc, "d").snapshot() == {"b": "2"}
