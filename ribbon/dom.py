"""
A small in-memory HTML element tree.

Enough of a browser DOM to drive the binding engine outside of a browser:
parsing and serialization, live form-control properties, bubbling events,
focus tracking and structural mutation records. ``DomSink`` adapts it to the
``Sink`` interface.
"""

from __future__ import annotations

import html as _html
import logging
import re
from dataclasses import dataclass, field
from html.parser import HTMLParser
from typing import Any, Callable, Iterator, Optional

from ribbon.sink import ElementKind, InsertPosition, Listener, Sink

logger = logging.getLogger(__name__)

VOID_ELEMENTS = frozenset(
    {
        "area",
        "base",
        "br",
        "col",
        "embed",
        "hr",
        "img",
        "input",
        "link",
        "meta",
        "source",
        "track",
        "wbr",
    }
)
# Raw-text elements keep their content verbatim
RAW_TEXT = frozenset({"script", "style"})
CONTROLS = frozenset({"input", "select", "textarea", "button"})
# Start tags that close an open sibling of the listed tags
_IMPLIED_END = {
    "option": {"option"},
    "li": {"li"},
    "p": {"p"},
    "tr": {"tr", "td", "th"},
    "td": {"td", "th"},
    "th": {"td", "th"},
}

_UNSET: Any = object()


# ============================================================================
# Nodes
# ============================================================================


class Node:
    parent: Optional["Element"]

    def __init__(self) -> None:
        self.parent = None

    @property
    def document(self) -> Optional["Document"]:
        node: Optional[Node] = self
        while node is not None:
            if isinstance(node, Document):
                return node
            node = node.parent
        return None

    @property
    def is_connected(self) -> bool:
        return self.document is not None

    def root(self) -> "Node":
        node: Node = self
        while node.parent is not None:
            node = node.parent
        return node

    @property
    def text_content(self) -> str:
        raise NotImplementedError

    def clone(self, deep: bool = True) -> "Node":
        raise NotImplementedError

    def serialize(self) -> str:
        raise NotImplementedError


class Text(Node):
    def __init__(self, data: str = "", raw: bool = False) -> None:
        super().__init__()
        self.data = data
        self.raw = raw

    @property
    def text_content(self) -> str:
        return self.data

    def clone(self, deep: bool = True) -> "Text":
        return Text(self.data, self.raw)

    def serialize(self) -> str:
        return self.data if self.raw else _html.escape(self.data, quote=False)

    def __repr__(self) -> str:
        return f"Text({self.data!r})"


class Element(Node):
    def __init__(self, tag: str, attrs: Optional[dict[str, str]] = None) -> None:
        super().__init__()
        self.tag = tag.lower()
        self.attrs: dict[str, str] = dict(attrs or {})
        self.children: list[Node] = []
        self.listeners: dict[str, list[Listener]] = {}
        # Live properties; _UNSET falls back to the markup attribute
        self._value: Any = _UNSET
        self._checked: Any = _UNSET
        self._selected: Any = _UNSET

    def __repr__(self) -> str:
        extra = ""
        if "id" in self.attrs:
            extra += f"#{self.attrs['id']}"
        if "class" in self.attrs:
            extra += "." + ".".join(self.classes)
        return f"<{self.tag}{extra}>"

    # --- Attributes ---
    def get_attribute(self, name: str) -> Optional[str]:
        return self.attrs.get(name)

    def set_attribute(self, name: str, value: Any) -> None:
        self.attrs[name] = "" if value is None else str(value)

    def has_attribute(self, name: str) -> bool:
        return name in self.attrs

    def remove_attribute(self, name: str) -> None:
        self.attrs.pop(name, None)

    @property
    def id(self) -> Optional[str]:
        return self.attrs.get("id")

    @property
    def classes(self) -> list[str]:
        return (self.attrs.get("class") or "").split()

    def toggle_class(self, name: str, on: bool) -> None:
        classes = self.classes
        if on and name not in classes:
            classes.append(name)
        elif not on and name in classes:
            classes.remove(name)
        if classes:
            self.attrs["class"] = " ".join(classes)
        else:
            self.attrs.pop("class", None)

    @property
    def style(self) -> dict[str, str]:
        out: dict[str, str] = {}
        for decl in (self.attrs.get("style") or "").split(";"):
            if ":" in decl:
                prop, _, val = decl.partition(":")
                out[prop.strip().lower()] = val.strip()
        return out

    def set_style(self, prop: str, value: Optional[str]) -> None:
        style = self.style
        if value is None:
            style.pop(prop, None)
        else:
            style[prop] = value
        if style:
            self.attrs["style"] = "; ".join(f"{k}: {v}" for k, v in style.items())
        else:
            self.attrs.pop("style", None)

    @property
    def hidden(self) -> bool:
        return self.style.get("display") == "none"

    @property
    def dataset(self) -> dict[str, str]:
        out: dict[str, str] = {}
        for name, value in self.attrs.items():
            if name.startswith("data-") and len(name) > 5:
                out[_camel(name[5:])] = value
        return out

    # --- Tree ---
    @property
    def element_children(self) -> list["Element"]:
        return [c for c in self.children if isinstance(c, Element)]

    def iter_descendants(self) -> Iterator["Element"]:
        for child in self.children:
            if isinstance(child, Element):
                yield child
                yield from child.iter_descendants()

    def contains(self, other: Optional[Node]) -> bool:
        node = other
        while node is not None:
            if node is self:
                return True
            node = node.parent
        return False

    def append_child(self, child: Node) -> Node:
        return self.insert_before(child, None)

    def insert_before(self, child: Node, ref: Optional[Node]) -> Node:
        if child.parent is not None:
            child.parent.remove_child(child)
        index = len(self.children) if ref is None else self.children.index(ref)
        self.children.insert(index, child)
        child.parent = self
        self._record(added=[child])
        return child

    def remove_child(self, child: Node) -> Node:
        self.children.remove(child)
        child.parent = None
        self._record(removed=[child])
        return child

    def remove(self) -> None:
        if self.parent is not None:
            self.parent.remove_child(self)

    def replace_children(self, nodes: list[Node]) -> None:
        removed = self.children
        for child in removed:
            child.parent = None
        self.children = []
        for node in nodes:
            if node.parent is not None:
                node.parent.remove_child(node)
            node.parent = self
            self.children.append(node)
        self._record(added=list(nodes), removed=removed)

    def _record(
        self, added: Optional[list[Node]] = None, removed: Optional[list[Node]] = None
    ) -> None:
        doc = self.document
        if doc is not None:
            doc._record(MutationRecord(self, list(added or ()), list(removed or ())))

    # --- Content ---
    @property
    def text_content(self) -> str:
        return "".join(c.text_content for c in self.children)

    @text_content.setter
    def text_content(self, value: str) -> None:
        self.replace_children([Text(value)] if value else [])

    @property
    def inner_html(self) -> str:
        return "".join(c.serialize() for c in self.children)

    @inner_html.setter
    def inner_html(self, markup: str) -> None:
        self.replace_children(parse_fragment(markup))

    @property
    def outer_html(self) -> str:
        return self.serialize()

    def insert_adjacent_html(self, position: InsertPosition, markup: str) -> None:
        nodes = parse_fragment(markup)
        if position == "afterbegin":
            ref = self.children[0] if self.children else None
            for node in nodes:
                self.insert_before(node, ref)
        elif position == "beforeend":
            for node in nodes:
                self.append_child(node)
        elif position in ("beforebegin", "afterend"):
            parent = self.parent
            if parent is None:
                raise ValueError(f"Cannot insert {position} of a detached element")
            if position == "beforebegin":
                ref: Optional[Node] = self
            else:
                idx = parent.children.index(self)
                ref = parent.children[idx + 1] if idx + 1 < len(parent.children) else None
            for node in nodes:
                parent.insert_before(node, ref)
        else:
            raise ValueError(f"Invalid insert position '{position}'")

    def replace_with_html(self, markup: str) -> list[Node]:
        parent = self.parent
        if parent is None:
            raise ValueError("Cannot replace a detached element")
        nodes = parse_fragment(markup)
        for node in nodes:
            parent.insert_before(node, self)
        parent.remove_child(self)
        return nodes

    # --- Form control properties ---
    @property
    def input_type(self) -> str:
        return (self.attrs.get("type") or "text").lower()

    @property
    def value(self) -> str:
        if self.tag == "select":
            selected = self.selected_options
            return selected[0].value if selected else ""
        if self._value is not _UNSET:
            return self._value
        if self.tag == "textarea":
            return self.text_content
        if self.tag == "option":
            return self.attrs.get("value", self.text_content.strip())
        if self.tag == "input" and self.input_type in ("checkbox", "radio"):
            return self.attrs.get("value", "on")
        return self.attrs.get("value", "")

    @value.setter
    def value(self, value: Any) -> None:
        text = "" if value is None else str(value)
        if self.tag == "select":
            self.select_values([text])
            return
        self._value = text

    @property
    def checked(self) -> bool:
        if self._checked is not _UNSET:
            return self._checked
        return "checked" in self.attrs

    @checked.setter
    def checked(self, flag: bool) -> None:
        self._checked = bool(flag)
        if flag and self.tag == "input" and self.input_type == "radio":
            for other in self._radio_group():
                if other is not self:
                    other._checked = False

    def _radio_group(self) -> list["Element"]:
        name = self.attrs.get("name")
        if not name:
            return [self]
        scope: Node = self.root()
        node = self.parent
        while node is not None:
            if node.tag == "form":
                scope = node
                break
            node = node.parent
        if not isinstance(scope, Element):
            return [self]
        return [
            el
            for el in scope.iter_descendants()
            if el.tag == "input"
            and el.input_type == "radio"
            and el.attrs.get("name") == name
        ]

    @property
    def selected(self) -> bool:
        if self._selected is not _UNSET:
            return self._selected
        return "selected" in self.attrs

    @selected.setter
    def selected(self, flag: bool) -> None:
        self._selected = bool(flag)

    @property
    def multiple(self) -> bool:
        return "multiple" in self.attrs

    @property
    def options(self) -> list["Element"]:
        return [el for el in self.iter_descendants() if el.tag == "option"]

    @property
    def selected_options(self) -> list["Element"]:
        options = self.options
        selected = [o for o in options if o.selected]
        if self.multiple:
            return selected
        if selected:
            return selected[-1:]
        return options[:1]

    def select_values(self, values: list[str]) -> None:
        wanted = [str(v) for v in values]
        matched = False
        for option in self.options:
            hit = option.value in wanted and (self.multiple or not matched)
            option.selected = hit
            matched = matched or hit

    @property
    def readonly(self) -> bool:
        return "readonly" in self.attrs

    @property
    def disabled(self) -> bool:
        return "disabled" in self.attrs

    # --- Events ---
    def add_event_listener(self, event_type: str, fn: Listener) -> Callable[[], None]:
        self.listeners.setdefault(event_type, []).append(fn)

        def remove():
            self.remove_event_listener(event_type, fn)

        return remove

    def remove_event_listener(self, event_type: str, fn: Listener) -> None:
        listeners = self.listeners.get(event_type)
        if listeners and fn in listeners:
            listeners.remove(fn)

    def dispatch_event(self, event: "Event") -> bool:
        """Run listeners on the target then on each ancestor.

        Returns False when a listener called ``prevent_default``.
        """
        event.target = self
        path: list[Element] = [self]
        node = self.parent
        while node is not None:
            path.append(node)
            node = node.parent
        if not event.bubbles:
            path = path[:1]
        for current in path:
            event.current_target = current
            for fn in list(current.listeners.get(event.type, ())):
                fn(event)
            if event.propagation_stopped:
                break
        event.current_target = None
        return not event.default_prevented

    # --- Cloning and serialization ---
    def clone(self, deep: bool = True) -> "Element":
        copy = Element(self.tag, self.attrs)
        copy._value = self._value
        copy._checked = self._checked
        copy._selected = self._selected
        if deep:
            for child in self.children:
                copy.append_child(child.clone(True))
        return copy

    def _serialized_attrs(self) -> dict[str, str]:
        attrs = dict(self.attrs)
        if self.tag == "input":
            if self._value is not _UNSET:
                attrs["value"] = self._value
            if self._checked is not _UNSET:
                if self._checked:
                    attrs["checked"] = ""
                else:
                    attrs.pop("checked", None)
        elif self.tag == "option" and self._selected is not _UNSET:
            if self._selected:
                attrs["selected"] = ""
            else:
                attrs.pop("selected", None)
        return attrs

    def serialize(self) -> str:
        parts = [f"<{self.tag}"]
        for name, value in self._serialized_attrs().items():
            if value == "":
                parts.append(f" {name}")
            else:
                parts.append(f' {name}="{_html.escape(value, quote=True)}"')
        parts.append(">")
        if self.tag in VOID_ELEMENTS:
            return "".join(parts)
        if self.tag == "textarea" and self._value is not _UNSET:
            parts.append(_html.escape(self._value, quote=False))
        else:
            parts.append(self.inner_html)
        parts.append(f"</{self.tag}>")
        return "".join(parts)

    # --- Queries ---
    def query_all(self, selector: str) -> list["Element"]:
        return select(self, selector)

    def query(self, selector: str) -> Optional["Element"]:
        found = select(self, selector)
        return found[0] if found else None

    def find_by_id(self, id_: str) -> Optional["Element"]:
        for el in self.iter_descendants():
            if el.attrs.get("id") == id_:
                return el
        return None


@dataclass
class MutationRecord:
    target: Element
    added: list[Node] = field(default_factory=list)
    removed: list[Node] = field(default_factory=list)


MutationObserver = Callable[[MutationRecord], None]


class Document(Element):
    """Root of a tree; tracks focus and reports structural mutations."""

    def __init__(self) -> None:
        super().__init__("#document")
        self.active_element: Optional[Element] = None
        self._observers: list[MutationObserver] = []

    def observe(self, fn: MutationObserver) -> Callable[[], None]:
        self._observers.append(fn)

        def disconnect():
            if fn in self._observers:
                self._observers.remove(fn)

        return disconnect

    def _record(self, record: MutationRecord) -> None:
        for fn in list(self._observers):
            fn(record)

    def serialize(self) -> str:
        return self.inner_html

    def __repr__(self) -> str:
        return f"<Document children={len(self.children)}>"


class Event:
    def __init__(
        self,
        type: str,
        bubbles: bool = True,
        detail: Any = None,
        key: Optional[str] = None,
    ) -> None:
        self.type = type
        self.bubbles = bubbles
        self.detail = detail
        self.key = key
        self.target: Optional[Element] = None
        self.current_target: Optional[Element] = None
        self.default_prevented = False
        self.propagation_stopped = False

    def prevent_default(self) -> None:
        self.default_prevented = True

    def stop_propagation(self) -> None:
        self.propagation_stopped = True

    def __repr__(self) -> str:
        return f"Event({self.type!r}, target={self.target!r})"


def _camel(name: str) -> str:
    head, *rest = name.split("-")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


# ============================================================================
# Parsing
# ============================================================================


class _TreeBuilder(HTMLParser):
    def __init__(self, root: Element) -> None:
        super().__init__(convert_charrefs=True)
        self.root = root
        self.stack: list[Element] = [root]

    def handle_starttag(self, tag, attrs):
        el = Element(tag, {k: "" if v is None else v for k, v in attrs})
        closes = _IMPLIED_END.get(el.tag)
        if closes and len(self.stack) > 1 and self.stack[-1].tag in closes:
            self.stack.pop()
        # Skip mutation records while building
        el.parent = self.stack[-1]
        self.stack[-1].children.append(el)
        if el.tag not in VOID_ELEMENTS:
            self.stack.append(el)

    def handle_startendtag(self, tag, attrs):
        self.handle_starttag(tag, attrs)
        if tag.lower() not in VOID_ELEMENTS:
            self.stack.pop()

    def handle_endtag(self, tag):
        tag = tag.lower()
        for i in range(len(self.stack) - 1, 0, -1):
            if self.stack[i].tag == tag:
                del self.stack[i:]
                return
        logger.debug("Ignoring stray closing tag </%s>", tag)

    def handle_data(self, data):
        parent = self.stack[-1]
        node = Text(data, raw=parent.tag in RAW_TEXT)
        node.parent = parent
        parent.children.append(node)


def parse_fragment(markup: str) -> list[Node]:
    holder = Element("#fragment")
    builder = _TreeBuilder(holder)
    builder.feed(markup or "")
    builder.close()
    nodes = list(holder.children)
    for node in nodes:
        node.parent = None
    return nodes


def parse_html(markup: str) -> Document:
    doc = Document()
    builder = _TreeBuilder(doc)
    builder.feed(markup or "")
    builder.close()
    return doc


# ============================================================================
# Selectors
# ============================================================================

_SIMPLE_RE = re.compile(
    r"""
    (?P<tag>[a-zA-Z][\w-]*|\*)
    |\#(?P<id>[\w-]+)
    |\.(?P<cls>[\w-]+)
    |\[(?P<attr>[\w-]+)(?:=(?P<q>["']?)(?P<val>.*?)(?P=q))?\]
    """,
    re.VERBOSE,
)
# Whitespace inside [attr="..."] does not separate compounds
_COMPOUND_RE = re.compile(r"(?:\[[^\]]*\]|[^\s\[])+")


def _compile_compound(compound: str) -> Callable[[Element], bool]:
    checks: list[Callable[[Element], bool]] = []
    pos = 0
    while pos < len(compound):
        m = _SIMPLE_RE.match(compound, pos)
        if not m:
            raise ValueError(f"Unsupported selector {compound!r}")
        pos = m.end()
        if m.group("tag") and m.group("tag") != "*":
            tag = m.group("tag").lower()
            checks.append(lambda el, tag=tag: el.tag == tag)
        elif m.group("id"):
            checks.append(lambda el, v=m.group("id"): el.attrs.get("id") == v)
        elif m.group("cls"):
            checks.append(lambda el, v=m.group("cls"): v in el.classes)
        elif m.group("attr"):
            name, val = m.group("attr"), m.group("val")
            if val is None:
                checks.append(lambda el, name=name: name in el.attrs)
            else:
                checks.append(
                    lambda el, name=name, val=val: el.attrs.get(name) == val
                )
    return lambda el: all(check(el) for check in checks)


def select(root: Element, selector: str) -> list[Element]:
    """Compound selectors joined by descendant combinators."""
    parts = [_compile_compound(p) for p in _COMPOUND_RE.findall(selector)]
    if not parts:
        return []
    *ancestors, last = parts
    out = []
    for el in root.iter_descendants():
        if not last(el):
            continue
        remaining = list(ancestors)
        node = el.parent
        while remaining and node is not None:
            if remaining[-1](node):
                remaining.pop()
            node = node.parent
        if not remaining:
            out.append(el)
    return out


# ============================================================================
# Interaction helpers
# ============================================================================


def fire(el: Element, event_type: str, **kwargs: Any) -> Event:
    event = Event(event_type, **kwargs)
    el.dispatch_event(event)
    return event


def type_text(el: Element, text: str, *, change: bool = True) -> None:
    """Replace the control's value as if the user typed it."""
    el.value = text
    fire(el, "input")
    if change:
        fire(el, "change")


def click(el: Element) -> Event:
    """Click ``el``, toggling checkable inputs and submitting forms."""
    is_input = el.tag == "input"
    kind = el.input_type if is_input else ""
    previous = el.checked
    if kind == "checkbox":
        el.checked = not previous
    elif kind == "radio":
        el.checked = True
    event = fire(el, "click")
    if event.default_prevented:
        if kind in ("checkbox", "radio"):
            el.checked = previous
        return event
    if kind in ("checkbox", "radio") and el.checked != previous:
        fire(el, "input")
        fire(el, "change")
    if (el.tag == "button" and (el.attrs.get("type") or "submit") == "submit") or (
        is_input and kind == "submit"
    ):
        form = _closest(el, "form")
        if form is not None:
            submit(form)
    return event


def select_option(el: Element, *values: str) -> None:
    el.select_values(list(values))
    fire(el, "input")
    fire(el, "change")


def submit(form: Element) -> Event:
    return fire(form, "submit")


def focus(el: Element) -> None:
    doc = el.document
    if doc is None or doc.active_element is el:
        return
    previous = doc.active_element
    if previous is not None:
        blur(previous)
    doc.active_element = el
    fire(el, "focus")


def blur(el: Element) -> None:
    doc = el.document
    if doc is None or doc.active_element is not el:
        return
    doc.active_element = None
    fire(el, "blur")


def _closest(el: Element, tag: str) -> Optional[Element]:
    node: Optional[Element] = el
    while node is not None:
        if node.tag == tag:
            return node
        node = node.parent
    return None


def form_fields(form: Element) -> list[tuple[str, str]]:
    """Name/value pairs a browser would submit for ``form``."""
    fields: list[tuple[str, str]] = []
    for el in form.iter_descendants():
        if el.tag not in CONTROLS or el.disabled:
            continue
        name = el.attrs.get("name")
        if not name:
            continue
        if el.tag == "select":
            fields.extend((name, o.value) for o in el.selected_options)
        elif el.tag == "input":
            kind = el.input_type
            if kind in ("checkbox", "radio") and not el.checked:
                continue
            if kind in ("submit", "button", "reset", "file", "image"):
                continue
            fields.append((name, el.value))
        elif el.tag == "textarea":
            fields.append((name, el.value))
    return fields


# ============================================================================
# Sink
# ============================================================================


class DomSink(Sink):
    """``Sink`` over ``ribbon.dom`` elements."""

    def parent(self, el: Element) -> Optional[Element]:
        return el.parent

    def children(self, el: Element) -> list[Element]:
        return el.element_children

    def descendants(self, el: Element) -> Iterator[Element]:
        return el.iter_descendants()

    def contains(self, ancestor: Element, el: Element) -> bool:
        return ancestor.contains(el)

    def tag_name(self, el: Element) -> str:
        return el.tag

    def kind_of(self, el: Element) -> ElementKind:
        match el.tag:
            case "input":
                match el.input_type:
                    case "checkbox":
                        return ElementKind.CHECKBOX
                    case "radio":
                        return ElementKind.RADIO
                    case "number" | "range":
                        return ElementKind.NUMBER_INPUT
                    case _:
                        return ElementKind.TEXT_INPUT
            case "select":
                return ElementKind.SELECT
            case "textarea":
                return ElementKind.TEXTAREA
            case "form":
                return ElementKind.FORM
            case "template":
                return ElementKind.TEMPLATE
            case _:
                return ElementKind.GENERIC

    # --- Content ---
    def get_text(self, el: Element) -> str:
        return el.text_content

    def set_text(self, el: Element, text: str) -> None:
        el.text_content = text

    def get_html(self, el: Element) -> str:
        return el.inner_html

    def set_html(self, el: Element, html: str) -> None:
        el.inner_html = html

    def insert_html(self, el: Element, position: InsertPosition, html: str) -> None:
        el.insert_adjacent_html(position, html)

    def replace_outer(self, el: Element, html: str) -> None:
        el.replace_with_html(html)

    # --- Form controls ---
    def get_value(self, el: Element) -> str:
        return el.value

    def set_value(self, el: Element, value: str) -> None:
        el.value = value

    def is_checked(self, el: Element) -> bool:
        return el.checked

    def set_checked(self, el: Element, checked: bool) -> None:
        el.checked = checked

    def is_multiple(self, el: Element) -> bool:
        return el.multiple

    def selected_values(self, el: Element) -> list[str]:
        return [o.value for o in el.selected_options]

    def set_selected(self, el: Element, values: list[str]) -> None:
        el.select_values(values)

    def form_fields(self, form: Element) -> list[tuple[str, str]]:
        return form_fields(form)

    # --- Attributes and presentation ---
    def get_attr(self, el: Element, name: str) -> Optional[str]:
        return el.get_attribute(name)

    def set_attr(self, el: Element, name: str, value: str) -> None:
        el.set_attribute(name, value)

    def has_attr(self, el: Element, name: str) -> bool:
        return el.has_attribute(name)

    def remove_attr(self, el: Element, name: str) -> None:
        el.remove_attribute(name)

    def toggle_class(self, el: Element, name: str, on: bool) -> None:
        el.toggle_class(name, on)

    def set_visible(self, el: Element, visible: bool) -> None:
        el.set_style("display", None if visible else "none")

    def set_readonly(self, el: Element, flag: bool) -> None:
        if flag:
            el.set_attribute("readonly", "")
        else:
            el.remove_attribute("readonly")

    def set_disabled(self, el: Element, flag: bool) -> None:
        if flag:
            el.set_attribute("disabled", "")
        else:
            el.remove_attribute("disabled")

    def dataset(self, el: Element) -> dict[str, str]:
        return el.dataset

    # --- Focus ---
    def focus(self, el: Element) -> None:
        focus(el)

    def blur(self, el: Element) -> None:
        blur(el)

    def is_focused(self, el: Element) -> bool:
        doc = el.document
        return doc is not None and doc.active_element is el

    # --- Structure ---
    def clone(self, el: Element) -> Element:
        return el.clone(True)

    def append_child(self, parent: Element, child: Element) -> None:
        parent.append_child(child)

    def remove(self, el: Element) -> None:
        el.remove()

    def template_content(self, el: Element) -> list[Element]:
        return el.element_children

    # --- Events ---
    def listen(self, el: Element, event_type: str, fn: Listener) -> Callable[[], None]:
        return el.add_event_listener(event_type, fn)

    def event_target(self, event: Event) -> Optional[Element]:
        return event.target

    def prevent_default(self, event: Event) -> None:
        event.prevent_default()
