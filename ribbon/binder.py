"""
Directive binder.

Binding a scope takes two passes over the elements it owns:

1. ``collect`` parses every directive and derives the initial store contents
   (text content, control values, per-directive defaults);
2. ``apply`` runs once the store exists and wires each directive: it sets the
   element from the store, subscribes to the key and, for controls, writes
   user input back into the store.

The split makes sure every seeded key is in the store before anything
subscribes to it.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, NamedTuple, Optional

from ribbon.foreach import ForeachPlan, bind_foreach, plan_foreach
from ribbon.grammar import (
    BracketList,
    DirectiveValue,
    Directives,
    directive_text,
    parse_number,
    to_text,
)
from ribbon.paths import is_dotted, resolve_path
from ribbon.sink import ElementKind

if TYPE_CHECKING:
    from ribbon.registry import Registry, Scope
    from ribbon.store import Store, Subscribe

logger = logging.getLogger(__name__)

EVENTS = (
    "click",
    "dblclick",
    "mouseenter",
    "mouseleave",
    "mouseover",
    "mouseout",
    "mousedown",
    "mouseup",
    "keydown",
    "keyup",
    "keypress",
    "input",
    "change",
    "focus",
    "blur",
    "contextmenu",
)

# Directives that only modify others
MODIFIERS = frozenset({"update", "swap", "all", "parent", "with", "component", "expose"})


@dataclass
class Binding:
    element: Any
    directives: Directives


class Target(NamedTuple):
    store: "Store"
    subscribe: "Subscribe"
    key: str


def _number_attr(sink, el, name: str) -> Optional[float]:
    raw = sink.get_attr(el, name)
    if raw is None:
        return None
    value = parse_number(raw)
    return None if value == "" else value


class Binder:
    """Binds the elements owned by one scope."""

    def __init__(self, registry: "Registry", scope: "Scope") -> None:
        self.registry = registry
        self.scope = scope
        self.sink = registry.sink
        self.diagnostics = registry.diagnostics
        self.events = registry.events
        self.records: list[Binding] = []
        self.plans: dict[int, ForeachPlan] = {}
        self.grouped: set[str] = set()
        self._text_seeded: set[str] = set()

    def directives(self, el: Any) -> Directives:
        return self.registry.directives(el)

    def listen(self, el: Any, event_type: str, fn: Callable[[Any], Any]) -> None:
        self.scope.disposers.append(self.sink.listen(el, event_type, fn))

    def watch(self, subscribe: "Subscribe", key: str, fn: Callable[[Any], Any]) -> None:
        self.scope.disposers.append(subscribe(key, fn))

    # ------------------------------------------------------------------
    # Ownership
    # ------------------------------------------------------------------

    def owned(self) -> list[Any]:
        """Bindable elements whose nearest scope is this one.

        Foreach row content is left to the reconciler.
        """
        root = self.scope.element
        sink = self.sink
        out = [root] if sink.is_bindable(root) else []
        for el in sink.descendants(root):
            if not sink.is_bindable(el):
                continue
            if self.registry.owner_of(el) is not root:
                continue
            if self._inside(el, "foreach", include_root=True):
                continue
            out.append(el)
        return out

    def _inside(self, el: Any, directive: str, include_root: bool = False) -> bool:
        root = self.scope.element
        for ancestor in self.sink.ancestors(el):
            if ancestor is root and not include_root:
                return False
            if directive in self.directives(ancestor):
                return True
            if ancestor is root:
                return False
        return False

    def suppressed(self, el: Any) -> bool:
        """Defaults come from row or child data inside foreach and ``with``."""
        if el is not self.scope.element and "with" in self.directives(el):
            return True
        return self._inside(el, "foreach") or self._inside(el, "with")

    # ------------------------------------------------------------------
    # First pass
    # ------------------------------------------------------------------

    def collect(self) -> dict[str, Any]:
        initial: dict[str, Any] = {}
        self.records = [Binding(el, self.directives(el)) for el in self.owned()]

        checkbox_keys: Counter[str] = Counter()
        toggled: set[str] = set()
        for record in self.records:
            directives = record.directives
            key = directive_text(directives.get("value"))
            if key and self.sink.kind_of(record.element) is ElementKind.CHECKBOX:
                checkbox_keys[key] += 1
            if "toggle" in directives:
                all_key = directive_text(directives.get("all"))
                if all_key:
                    toggled.add(all_key)
        # A select-all control makes its key a list, whatever the order
        self.grouped = {k for k, n in checkbox_keys.items() if n > 1} | toggled

        for record in self.records:
            el, directives = record.element, record.directives
            seed = not self.suppressed(el)
            for name, value in directives.items():
                if name == "foreach":
                    self._collect_foreach(el, value, initial)
                elif seed:
                    self._seed(el, name, value, directives, initial)
        return initial

    def _seed(
        self,
        el: Any,
        name: str,
        value: DirectiveValue,
        directives: Directives,
        initial: dict[str, Any],
    ) -> None:
        def default(key: Optional[str], val: Any) -> None:
            if key and not is_dotted(key) and key not in initial:
                initial[key] = val

        match name:
            case "text":
                key = directive_text(value)
                if key and not is_dotted(key) and key not in initial:
                    initial[key] = self.sink.get_text(el).strip()
                    self._text_seeded.add(key)
            case "value":
                key = directive_text(value)
                if key and not is_dotted(key):
                    self._seed_value(el, key, initial)
            case "visible":
                default(directive_text(value), True)
            case "html":
                default(directive_text(value), "")
            case "readonly" | "disabled" | "focused":
                default(directive_text(value), False)
            case "toggle":
                default(directive_text(directives.get("all")), [])
            case "class" | "attr":
                if isinstance(value, BracketList):
                    for source, _ in value.pairs():
                        default(source, False if name == "class" else "")

    def _seed_value(self, el: Any, key: str, initial: dict[str, Any]) -> None:
        sink = self.sink
        kind = sink.kind_of(el)
        match kind:
            case ElementKind.CHECKBOX if key in self.grouped:
                values = initial.get(key)
                if not isinstance(values, list):
                    values = initial[key] = []
                value = sink.get_value(el)
                if sink.is_checked(el) and value not in values:
                    values.append(value)
            case ElementKind.CHECKBOX:
                if key not in initial:
                    initial[key] = sink.is_checked(el)
            case ElementKind.RADIO:
                if sink.is_checked(el) and initial.get(key) is None:
                    initial[key] = sink.get_value(el)
                elif key not in initial:
                    initial[key] = None
            case ElementKind.SELECT:
                if key not in initial:
                    if sink.is_multiple(el):
                        initial[key] = sink.selected_values(el)
                    else:
                        initial[key] = sink.get_value(el)
            case ElementKind.NUMBER_INPUT | ElementKind.TEXT_INPUT | ElementKind.TEXTAREA:
                raw = sink.get_value(el)
                value = parse_number(raw) if kind is ElementKind.NUMBER_INPUT else raw
                if key not in initial:
                    initial[key] = value
                elif key in self._text_seeded and raw.strip():
                    # A filled-in control wins over text content
                    initial[key] = value
                    self._text_seeded.discard(key)

    def _collect_foreach(
        self, el: Any, value: DirectiveValue, initial: dict[str, Any]
    ) -> None:
        plan = plan_foreach(
            self.sink,
            self.registry.scopes,
            el,
            value,
            self.directives,
            self.diagnostics,
        )
        if plan is None:
            return
        self.plans[id(el)] = plan
        if plan.resolved is None and not isinstance(initial.get(plan.key), list):
            initial[plan.key] = plan.seed

    # ------------------------------------------------------------------
    # Second pass
    # ------------------------------------------------------------------

    def target(self, el: Any, key: str) -> Target:
        """Store, subscribe and key for ``key``, resolving dotted paths."""
        if is_dotted(key):
            resolved = resolve_path(self.sink, self.registry.scopes, el, key)
            return Target(resolved.store, resolved.subscribe, resolved.key)
        return Target(self.scope.store, self.scope.subscribe, key)

    def apply(self) -> None:
        for record in self.records:
            el, directives = record.element, record.directives
            for name, value in directives.items():
                self.apply_directive(el, name, value, directives)

    def apply_directive(
        self, el: Any, name: str, value: DirectiveValue, directives: Directives
    ) -> None:
        key = directive_text(value)
        update = directive_text(directives.get("update"))
        match name:
            case "text" if key:
                self._bind_property(el, key, lambda v: self.sink.set_text(el, to_text(v)))
            case "html" if key:
                self._bind_property(el, key, lambda v: self.sink.set_html(el, to_text(v)))
            case "visible" if key:
                self._bind_property(el, key, lambda v: self.sink.set_visible(el, bool(v)))
            case "readonly" if key:
                self._bind_property(el, key, lambda v: self.sink.set_readonly(el, bool(v)))
            case "disabled" if key:
                self._bind_property(el, key, lambda v: self.sink.set_disabled(el, bool(v)))
            case "focused" if key:
                self._bind_focused(el, key)
            case "value" if key:
                self._bind_value(el, key, update)
            case "class" | "attr":
                self._bind_pairs(el, name, value)
            case "toggle":
                self._bind_toggle(el, directives)
            case "submit":
                self._bind_submit(el, key, directives)
            case "foreach":
                plan = self.plans.get(id(el))
                if plan is not None:
                    self.scope.foreach[plan.key] = bind_foreach(
                        self.sink,
                        plan,
                        self.scope.store,
                        self.directives,
                        self.diagnostics,
                    )
            case _ if name in self.events and key:
                self.scope.pending.append((key, name, el))
            case _ if name in MODIFIERS or name in EVENTS:
                pass
            case _:
                logger.debug("Ignoring unknown directive '%s' on %r", name, el)

    def _bind_property(self, el: Any, key: str, apply: Callable[[Any], None]) -> None:
        store, subscribe, key = self.target(el, key)
        apply(store.get(key))
        self.watch(subscribe, key, apply)

    def _bind_focused(self, el: Any, key: str) -> None:
        sink = self.sink
        store, subscribe, key = self.target(el, key)

        def sync(value):
            if value and not sink.is_focused(el):
                sink.focus(el)
            elif not value and sink.is_focused(el):
                sink.blur(el)

        self.listen(el, "focus", lambda _e: store.set(key, True))
        self.listen(el, "blur", lambda _e: store.set(key, False))
        if store.get(key):
            sync(True)
        self.watch(subscribe, key, sync)

    def _bind_pairs(self, el: Any, name: str, value: DirectiveValue) -> None:
        if not isinstance(value, BracketList):
            self.diagnostics.report(
                "parse",
                f"'{name}' expects a [state => {name}] list, got '{value.text}'",
                element=el,
            )
            return
        sink = self.sink
        for source, target_name in value.pairs():
            if name == "class":

                def apply(v, target_name=target_name):
                    sink.toggle_class(el, target_name, bool(v))

            else:

                def apply(v, target_name=target_name):
                    sink.set_attr(el, target_name, to_text(v))

            self._bind_property(el, source, apply)

    # --- value ---
    def _bind_value(self, el: Any, key: str, update: Optional[str]) -> None:
        sink = self.sink
        kind = sink.kind_of(el)
        store, subscribe, key = self.target(el, key)

        match kind:
            case ElementKind.CHECKBOX:
                self._bind_checkbox(el, store, subscribe, key, update or "change")
            case ElementKind.RADIO:
                self._bind_radio(el, store, subscribe, key, update or "change")
            case ElementKind.SELECT:
                self._bind_select(el, store, subscribe, key, update or "change")
            case ElementKind.TEXT_INPUT | ElementKind.TEXTAREA | ElementKind.NUMBER_INPUT:
                self._bind_text_control(el, kind, store, subscribe, key, update or "input")
            case _:
                logger.debug("value directive on non-control %r ignored", el)

    def _bind_text_control(self, el, kind, store, subscribe, key, event_type) -> None:
        sink = self.sink
        numeric = kind is ElementKind.NUMBER_INPUT
        low = _number_attr(sink, el, "min") if numeric else None
        high = _number_attr(sink, el, "max") if numeric else None

        def on_input(_event):
            value: Any = sink.get_value(el)
            if numeric:
                value = parse_number(value)
                if value != "":
                    if low is not None and value < low:
                        value = low
                    if high is not None and value > high:
                        value = high
            store.set(key, value)

        def sync(value):
            text = to_text(value)
            if sink.get_value(el) != text:
                sink.set_value(el, text)

        sink.set_value(el, to_text(store.get(key)))
        self.listen(el, event_type, on_input)
        self.watch(subscribe, key, sync)

    def _bind_checkbox(self, el, store, subscribe, key, event_type) -> None:
        sink = self.sink
        own_value = sink.get_value(el)
        grouped = key in self.grouped or isinstance(store.get(key), list)

        if grouped:
            if not isinstance(store.get(key), list):
                store.set(key, [])

            def on_change(_event):
                current = list(dict.fromkeys(store.get(key) or []))
                if sink.is_checked(el):
                    if own_value not in current:
                        current.append(own_value)
                else:
                    current = [v for v in current if v != own_value]
                store.set(key, current)

            def sync(value):
                sink.set_checked(el, isinstance(value, list) and own_value in value)

        else:

            def on_change(_event):
                store.set(key, sink.is_checked(el))

            def sync(value):
                sink.set_checked(el, bool(value))

        sync(store.get(key))
        self.listen(el, event_type, on_change)
        self.watch(subscribe, key, sync)

    def _bind_radio(self, el, store, subscribe, key, event_type) -> None:
        sink = self.sink
        own_value = sink.get_value(el)
        name = sink.get_attr(el, "name") or key
        sink.set_attr(el, "name", f"{name}_{self.scope.serial}")

        def on_change(_event):
            if sink.is_checked(el):
                store.set(key, own_value)

        def sync(value):
            sink.set_checked(el, value is not None and to_text(value) == own_value)

        sync(store.get(key))
        self.listen(el, event_type, on_change)
        self.watch(subscribe, key, sync)

    def _bind_select(self, el, store, subscribe, key, event_type) -> None:
        sink = self.sink
        multiple = sink.is_multiple(el)

        def on_change(_event):
            if multiple:
                store.set(key, sink.selected_values(el))
            else:
                store.set(key, sink.get_value(el))

        def sync(value):
            if multiple:
                values = value if isinstance(value, list) else []
                sink.set_selected(el, [to_text(v) for v in values])
            else:
                sink.set_selected(el, [to_text(value)])

        sync(store.get(key))
        self.listen(el, event_type, on_change)
        self.watch(subscribe, key, sync)

    # --- toggle ---
    def group_values(self, key: str) -> list[str]:
        """Values of the checkboxes in this scope bound to ``key``."""
        sink = self.sink
        values = []
        for el in sink.descendants(self.scope.element):
            if sink.kind_of(el) is not ElementKind.CHECKBOX or not sink.is_bindable(el):
                continue
            if directive_text(self.directives(el).get("value")) == key:
                values.append(sink.get_value(el))
        return values

    def _bind_toggle(self, el: Any, directives: Directives) -> None:
        sink = self.sink
        if sink.kind_of(el) is not ElementKind.CHECKBOX:
            return
        raw_key = directive_text(directives.get("all"))
        if not raw_key:
            self.diagnostics.report(
                "parse", "toggle directive needs an 'all: <key>' directive", element=el
            )
            return
        store, subscribe, key = self.target(el, raw_key)

        def on_change(_event):
            store.set(key, self.group_values(raw_key) if sink.is_checked(el) else [])

        def sync(value):
            values = self.group_values(raw_key)
            sink.set_checked(
                el,
                bool(values) and isinstance(value, list) and all(v in value for v in values),
            )

        sync(store.get(key))
        self.listen(el, "change", on_change)
        self.watch(subscribe, key, sync)

    # --- submit ---
    def _bind_submit(self, el: Any, mode: Optional[str], directives: Directives) -> None:
        if self.sink.kind_of(el) is not ElementKind.FORM:
            return
        if (mode or "").strip() != "ajax":
            # Anything else is a regular browser submission
            return
        swap = directive_text(directives.get("swap")) or "innerHTML"
        remove = self.registry.transport.enhance(
            el,
            target=self.scope.element,
            swap=swap,
            hooks=self.scope.hooks,
        )
        self.scope.disposers.append(remove)
