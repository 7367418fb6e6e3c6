import asyncio

import pytest

from ribbon.dom import DomSink, click, parse_html
from ribbon.registry import Registry
from ribbon.scanner import Scanner

CARD = '<div class="card" data-bind="component: Card"><span data-bind="text: title">t</span></div>'


def setup(markup: str = '<main id="root"></main>', **config):
    doc = parse_html(markup)
    registry = Registry(DomSink(), **config)
    return doc, registry, Scanner(registry, doc)


def test_start_registers_existing_components():
    doc, registry, scanner = setup(f'<main id="root">{CARD}</main>')
    registered = scanner.start()
    assert [s.name for s in registered] == ["Card"]
    assert scanner.running


def test_added_nodes_are_registered_on_flush():
    doc, registry, scanner = setup()
    scanner.start()
    doc.find_by_id("root").insert_adjacent_html("beforeend", CARD + CARD)
    assert registry.instances("Card") == []
    registered = scanner.flush()
    assert len(registered) == 2
    assert len(registry.instances("Card")) == 2


def test_removed_nodes_are_unregistered():
    doc, registry, scanner = setup(f'<main id="root">{CARD}</main>')
    scanner.start()
    card = doc.query(".card")
    card.remove()
    scanner.flush()
    assert card not in registry.scopes
    assert registry.components() == {}


def test_moved_nodes_stay_registered():
    doc, registry, scanner = setup(f'<main id="root">{CARD}</main><aside id="side"></aside>')
    scanner.start()
    card = doc.query(".card")
    scope = registry.scopes[card]
    doc.find_by_id("side").append_child(card)
    scanner.flush()
    assert registry.scopes[card] is scope


def test_auto_register_off_only_unregisters():
    doc, registry, scanner = setup(f'<main id="root">{CARD}</main>', auto_register=False)
    scanner.start()
    root = doc.find_by_id("root")
    root.insert_adjacent_html("beforeend", CARD)
    old = root.element_children[0]
    old.remove()
    assert scanner.flush() == []
    assert registry.instances("Card") == []


def test_detached_fragments_are_ignored():
    doc, registry, scanner = setup()
    scanner.start()
    root = doc.find_by_id("root")
    root.insert_adjacent_html("beforeend", CARD)
    root.inner_html = ""
    assert scanner.flush() == []
    assert registry.scopes == {}


def test_rendered_rows_with_components_are_registered():
    doc, registry, scanner = setup(
        '<div id="list" data-bind="component: List">'
        '<ul data-bind="foreach: rows"><li data-bind="component: Row"><i>row</i></li></ul>'
        "</div>"
    )
    scanner.start()
    assert len(registry.instances("Row")) == 1
    store = registry.scopes[doc.find_by_id("list")].store
    store["rows"].append({})
    scanner.flush()
    assert len(registry.instances("Row")) == 2


def test_stop_disconnects():
    doc, registry, scanner = setup()
    scanner.start()
    scanner.stop()
    doc.find_by_id("root").insert_adjacent_html("beforeend", CARD)
    assert scanner.flush() == []
    assert not scanner.running


def test_context_manager():
    doc, registry, _ = setup()
    with Scanner(registry, doc) as scanner:
        doc.find_by_id("root").insert_adjacent_html("beforeend", CARD)
        scanner.flush()
    assert len(registry.instances("Card")) == 1
    assert not scanner.running


@pytest.mark.asyncio
async def test_flush_is_scheduled_on_the_running_loop():
    doc, registry, scanner = setup()
    hits = []
    registry.define("Card", lambda store, el: {"hit": lambda: hits.append(1)})
    scanner.start()
    doc.find_by_id("root").insert_adjacent_html(
        "beforeend",
        '<div data-bind="component: Card"><button data-bind="click: hit">x</button></div>',
    )
    assert registry.instances("Card") == []
    await asyncio.sleep(0)
    (card,) = registry.instances("Card")
    click(card.query("button"))
    assert hits == [1]
