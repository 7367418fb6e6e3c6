import pytest

from ribbon.dom import DomSink, parse_html
from ribbon.errors import ResolutionError
from ribbon.paths import is_dotted, resolve_method, resolve_path, title_case
from ribbon.registry import Registry, Scope
from ribbon.store import create_store


def test_title_case():
    assert title_case("cart") == "Cart"
    assert title_case("Cart") == "Cart"
    assert title_case("shoppingCart") == "ShoppingCart"
    assert title_case("line_items") == "LineItems"


def test_is_dotted():
    assert is_dotted("Cart.total")
    assert not is_dotted("total")
    assert not is_dotted(None)
    assert not is_dotted("")


NESTED = """
<div id="outer" data-bind="component: Cart">
  <div id="inner" data-bind="component: Cart">
    <div id="line" data-bind="component: Line">
      <b id="probe" data-bind="text: Cart.total"></b>
    </div>
  </div>
</div>
<div id="sibling" data-bind="component: Cart"></div>
"""


@pytest.fixture
def nested():
    # Same-named nested scopes, registered by hand
    sink = DomSink()
    doc = parse_html(NESTED)
    scopes = {}
    for el_id, name, total in [
        ("outer", "Cart", 10),
        ("inner", "Cart", 20),
        ("line", "Line", None),
        ("sibling", "Cart", 30),
    ]:
        store, subscribe = create_store({"total": total})
        el = doc.find_by_id(el_id)
        scopes[el] = Scope(name=name, element=el, store=store, subscribe=subscribe)
    return sink, doc, scopes


def test_resolves_nearest_ancestor(nested):
    sink, doc, scopes = nested
    resolved = resolve_path(sink, scopes, doc.find_by_id("probe"), "Cart.total")
    assert resolved.store is scopes[doc.find_by_id("inner")].store
    assert resolved.key == "total"


def test_context_name_is_title_cased(nested):
    sink, doc, scopes = nested
    resolved = resolve_path(sink, scopes, doc.find_by_id("probe"), "cart.total")
    assert resolved.store is scopes[doc.find_by_id("inner")].store


def test_never_resolves_to_sibling_or_self(nested):
    sink, doc, scopes = nested
    with pytest.raises(ResolutionError) as info:
        resolve_path(sink, scopes, doc.find_by_id("sibling"), "Cart.total")
    assert info.value.context == "Cart"
    assert str(info.value) == "Context 'Cart' not found for binding 'Cart.total'"


def test_deeper_paths_resolve_one_level(nested, caplog):
    sink, doc, scopes = nested
    resolved = resolve_path(sink, scopes, doc.find_by_id("probe"), "Cart.total.extra")
    assert resolved.key == "total"
    assert "more than two segments" in caplog.text


def test_dotted_binding_follows_ancestor_store():
    doc = parse_html(
        '<div id="cart" data-bind="component: Cart"><i data-bind="text: total">10</i>'
        '<div data-bind="component: Line"><b id="probe" data-bind="text: Cart.total"></b></div>'
        "</div>"
    )
    registry = Registry(DomSink())
    registry.scan_and_register(doc)
    probe = doc.find_by_id("probe")
    assert probe.text_content == "10"
    registry.scopes[doc.find_by_id("cart")].store["total"] = 99
    assert probe.text_content == "99"


def test_unknown_context_raises_at_registration():
    doc = parse_html('<div data-bind="component: Line"><b data-bind="text: Cart.total"></b></div>')
    registry = Registry(DomSink())
    with pytest.raises(ResolutionError):
        registry.scan_and_register(doc)
    assert registry.scopes == {}


def test_resolve_method():
    sink = DomSink()
    doc = parse_html(
        '<div data-bind="component: Shop">'
        '<div id="c" data-bind="component: Item"><button id="b" data-bind="click: Shop.buy">x</button></div>'
        "</div>"
    )
    registry = Registry(sink)

    @registry.component("Shop")
    def shop(store, el):
        return {"buy": lambda: "bought"}

    @registry.component("Item")
    def item(store, el):
        return {"own": lambda: "own"}

    registry.scan_and_register(doc)
    child = doc.find_by_id("c")
    assert resolve_method(sink, registry.scopes, child, "own")() == "own"
    assert resolve_method(sink, registry.scopes, child, "Shop.buy")() == "bought"
    assert resolve_method(sink, registry.scopes, child, "Other.buy") is None
    assert resolve_method(sink, registry.scopes, child, "") is None
