"""
List rendering for the ``foreach`` directive.

Rendering always rebuilds: every notification on the owning key clears the
container and clones the row template once per item. Rows carry their index
(``data-key``) and the owning key (``data-foreach-owner``) so handlers can find
their item again.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Optional

from ribbon.grammar import (
    BracketList,
    DirectiveValue,
    Directives,
    directive_text,
    parse_number,
    to_text,
)
from ribbon.paths import Resolved, is_dotted, resolve_path
from ribbon.sink import ElementKind

if TYPE_CHECKING:
    from ribbon.errors import Diagnostics
    from ribbon.registry import Scope
    from ribbon.sink import Sink
    from ribbon.store import Store

logger = logging.getLogger(__name__)

ROW_KEY_ATTR = "data-key"
ROW_OWNER_ATTR = "data-foreach-owner"
REMOVE_HANDLERS = frozenset({"remove", "removeItem"})

DirectivesOf = Callable[[Any], Directives]


@dataclass
class ForeachPlan:
    """What the first binding pass learns about a ``foreach`` element."""

    element: Any
    path: str
    key: str
    alias: Optional[str]
    template: Any
    seed: list[dict[str, Any]] = field(default_factory=list)
    resolved: Optional[Resolved] = None


def foreach_config(value: DirectiveValue) -> tuple[Optional[str], Optional[str]]:
    """``users`` / ``[data: users, as: user]`` / ``[users as user]`` -> (path, alias)."""
    if not isinstance(value, BracketList):
        return directive_text(value), None
    config = value.config()
    path = config.get("data")
    alias = config.get("as")
    for token in value.items:
        if token.kind == "alias":
            path = path or token.source
            alias = alias or token.target
        elif token.kind == "plain" and path is None:
            path = token.source
    return path, alias


def field_name(key: str, alias: Optional[str]) -> str:
    if alias and key.startswith(alias + "."):
        return key[len(alias) + 1 :]
    return key


def plan_foreach(
    sink: "Sink",
    scopes: Mapping[Any, "Scope"],
    element: Any,
    value: DirectiveValue,
    directives_of: DirectivesOf,
    diagnostics: "Diagnostics",
) -> Optional[ForeachPlan]:
    path, alias = foreach_config(value)
    if not path:
        diagnostics.report(
            "foreach", "foreach binding has no data key", element=element
        )
        return None

    resolved = resolve_path(sink, scopes, element, path) if is_dotted(path) else None
    key = resolved.key if resolved else path

    children = sink.children(element)
    if not children:
        diagnostics.report(
            "foreach",
            f"Markup not found for foreach binding '{key}'",
            element=element,
        )
        return None

    first = children[0]
    if sink.kind_of(first) is ElementKind.TEMPLATE:
        content = sink.template_content(first)
        if not content:
            diagnostics.report(
                "foreach",
                f"Empty <template> in foreach binding '{key}'",
                element=element,
            )
            return None
        template = sink.clone(content[0])
        sink.remove(first)
    else:
        template = sink.clone(first)

    rows = [c for c in sink.children(element) if sink.kind_of(c) is not ElementKind.TEMPLATE]
    seed = [parse_row(sink, row, alias, directives_of) for row in rows]
    return ForeachPlan(
        element=element,
        path=path,
        key=key,
        alias=alias,
        template=template,
        seed=seed,
        resolved=resolved,
    )


def _row_bindables(sink: "Sink", row: Any) -> list[Any]:
    found = [row] if sink.is_bindable(row) else []
    found.extend(el for el in sink.descendants(row) if sink.is_bindable(el))
    return found


def parse_row(
    sink: "Sink", row: Any, alias: Optional[str], directives_of: DirectivesOf
) -> dict[str, Any]:
    """Rebuild a list item from a server-rendered row."""
    item: dict[str, Any] = {}
    for el in _row_bindables(sink, row):
        directives = directives_of(el)
        text_key = directive_text(directives.get("text"))
        if text_key:
            item[field_name(text_key, alias)] = sink.get_text(el).strip()
        value_key = directive_text(directives.get("value"))
        if value_key:
            kind = sink.kind_of(el)
            if kind is ElementKind.CHECKBOX:
                item[field_name(value_key, alias)] = sink.is_checked(el)
            elif kind.is_control:
                item[field_name(value_key, alias)] = sink.get_value(el)
    return item


class ForeachBinding:
    def __init__(
        self,
        sink: "Sink",
        element: Any,
        store: "Store",
        key: str,
        alias: Optional[str],
        template: Any,
        directives_of: DirectivesOf,
        diagnostics: "Diagnostics",
    ) -> None:
        self.sink = sink
        self.element = element
        self.store = store
        self.key = key
        self.alias = alias
        self.template = template
        self.directives_of = directives_of
        self.diagnostics = diagnostics
        self.renders = 0
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def items(self) -> list[Any]:
        items = self.store.get(self.key)
        return items if isinstance(items, list) else []

    def install(self, seed: list[Any]) -> None:
        if not isinstance(self.store.get(self.key), list):
            self.store.set(self.key, seed)
        self._unsubscribe = self.store.subscribe(self.key, self.render)
        self.render(self.store.get(self.key))

    def dispose(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def rows(self) -> list[Any]:
        return [
            c
            for c in self.sink.children(self.element)
            if self.sink.get_attr(c, ROW_OWNER_ATTR) == self.key
        ]

    def render(self, items: Any) -> None:
        if items is None:
            items = []
        if not isinstance(items, list):
            self.diagnostics.report(
                "foreach",
                f"foreach binding '{self.key}' expects a list, got {type(items).__name__}",
                element=self.element,
            )
            items = []

        self.sink.set_html(self.element, "")
        for index, item in enumerate(items):
            row = self.sink.clone(self.template)
            self.sink.set_attr(row, ROW_KEY_ATTR, str(index))
            self.sink.set_attr(row, ROW_OWNER_ATTR, self.key)
            self.bind_row(row, item)
            self.sink.append_child(self.element, row)
        self.renders += 1
        logger.debug("Rendered %d rows for '%s'", len(items), self.key)

    def item_at(self, index: int) -> Any:
        items = self.items
        if 0 <= index < len(items):
            return items[index]
        return None

    def remove_at(self, index: int) -> Any:
        items = self.items
        if 0 <= index < len(items):
            return items.pop(index)
        return None

    # --- Row binding ---
    def lookup(self, item: Any, key: str) -> Any:
        if self.alias and key == self.alias:
            return item
        name = field_name(key, self.alias)
        if isinstance(item, Mapping):
            return item.get(name)
        return getattr(item, name, None)

    def bind_row(self, row: Any, item: Any) -> None:
        sink = self.sink
        for el in _row_bindables(sink, row):
            directives = self.directives_of(el)
            for name, value in directives.items():
                match name:
                    case "text":
                        key = directive_text(value)
                        if key:
                            sink.set_text(el, to_text(self.lookup(item, key)))
                    case "html":
                        key = directive_text(value)
                        if key:
                            sink.set_html(el, to_text(self.lookup(item, key)))
                    case "visible":
                        key = directive_text(value)
                        if key:
                            sink.set_visible(el, bool(self.lookup(item, key)))
                    case "class" if isinstance(value, BracketList):
                        for source, class_name in value.pairs():
                            sink.toggle_class(el, class_name, bool(self.lookup(item, source)))
                    case "attr" if isinstance(value, BracketList):
                        for source, attr_name in value.pairs():
                            sink.set_attr(el, attr_name, to_text(self.lookup(item, source)))
                    case "value":
                        key = directive_text(value)
                        if key:
                            self._bind_row_value(el, key, item, directives)

    def _bind_row_value(self, el, key, item, directives) -> None:
        sink = self.sink
        kind = sink.kind_of(el)
        current = self.lookup(item, key)
        match kind:
            case ElementKind.CHECKBOX:
                sink.set_checked(el, bool(current))
            case ElementKind.RADIO:
                sink.set_checked(el, to_text(current) == sink.get_value(el))
            case ElementKind.SELECT:
                if sink.is_multiple(el):
                    sink.set_selected(el, [to_text(v) for v in current or ()])
                else:
                    sink.set_selected(el, [to_text(current)])
            case ElementKind.TEXT_INPUT | ElementKind.NUMBER_INPUT | ElementKind.TEXTAREA:
                sink.set_value(el, to_text(current))
            case _:
                return

        if not isinstance(item, MutableMapping):
            return
        field_key = field_name(key, self.alias)
        default_event = "input" if kind.is_text_like or kind is ElementKind.NUMBER_INPUT else "change"
        event_type = directive_text(directives.get("update")) or default_event

        def write_back(_event):
            # Items are not observed, the list does not re-render
            match kind:
                case ElementKind.CHECKBOX:
                    item[field_key] = sink.is_checked(el)
                case ElementKind.RADIO:
                    if sink.is_checked(el):
                        item[field_key] = sink.get_value(el)
                case ElementKind.SELECT if sink.is_multiple(el):
                    item[field_key] = sink.selected_values(el)
                case ElementKind.NUMBER_INPUT:
                    item[field_key] = parse_number(sink.get_value(el))
                case _:
                    item[field_key] = sink.get_value(el)

        sink.listen(el, event_type, write_back)


def bind_foreach(
    sink: "Sink",
    plan: ForeachPlan,
    store: "Store",
    directives_of: DirectivesOf,
    diagnostics: "Diagnostics",
) -> ForeachBinding:
    """Install the list under its owning store and render it."""
    target = plan.resolved.store if plan.resolved else store
    binding = ForeachBinding(
        sink,
        plan.element,
        target,
        plan.key,
        plan.alias,
        plan.template,
        directives_of,
        diagnostics,
    )
    binding.install(plan.seed)
    return binding


def row_of(sink: "Sink", el: Any) -> Optional[Any]:
    """Nearest row (``el`` included) rendered by a foreach."""
    node = el
    while node is not None:
        if sink.has_attr(node, ROW_KEY_ATTR) and sink.has_attr(node, ROW_OWNER_ATTR):
            return node
        node = sink.parent(node)
    return None
