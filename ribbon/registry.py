"""
Scope lifecycle.

An element carrying ``component: Name`` becomes a scope the first time a scan
finds it. Registration validates the instance (stable key, declared parent,
markup shape), builds its store from the elements it owns, creates its
controller and installs one delegated listener per supported event type on
the scope root.
"""

from __future__ import annotations

import inspect
import itertools
import logging
import re
import weakref
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, NamedTuple, Optional, Unpack

from ribbon.binder import EVENTS, Binder
from ribbon.config import RegistryConfig
from ribbon.errors import ConsistencyFailure, Diagnostics
from ribbon.foreach import (
    REMOVE_HANDLERS,
    ROW_KEY_ATTR,
    ROW_OWNER_ATTR,
    ForeachBinding,
    row_of,
)
from ribbon.grammar import (
    BracketList,
    Directives,
    Ident,
    coerce_dataset,
    directive_text,
    parse_directives,
)
from ribbon.paths import resolve_method
from ribbon.sink import Sink
from ribbon.store import Store, Subscribe, create_store
from ribbon.transport import FormHooks, FormTransport

logger = logging.getLogger(__name__)

STABLE_KEY_ATTR = "data-key"

Controller = dict[str, Any]
ControllerFactory = Callable[[Store, Any], Optional[Mapping[str, Any]]]

_serials = itertools.count(1)
_WS_RE = re.compile(r"\s+")
_BETWEEN_TAGS_RE = re.compile(r">\s+<")


def normalize_markup(html: str) -> str:
    return _BETWEEN_TAGS_RE.sub("><", _WS_RE.sub(" ", html or "")).strip()


class PendingEvent(NamedTuple):
    handler: str
    event_type: str
    element: Any


class Handler(NamedTuple):
    fn: Callable[..., Any]
    n_args: int


def handler_for(fn: Callable[..., Any]) -> Handler:
    try:
        params = list(inspect.signature(fn).parameters.values())
    except (TypeError, ValueError):
        return Handler(fn, -1)
    if any(p.kind is inspect.Parameter.VAR_POSITIONAL for p in params):
        return Handler(fn, -1)
    positional = (
        inspect.Parameter.POSITIONAL_ONLY,
        inspect.Parameter.POSITIONAL_OR_KEYWORD,
    )
    return Handler(fn, sum(1 for p in params if p.kind in positional))


def call_handler(fn: Callable[..., Any], *args: Any) -> Any:
    """Call ``fn`` with as many leading ``args`` as it accepts."""
    handler = handler_for(fn)
    if handler.n_args < 0:
        return handler.fn(*args)
    return handler.fn(*args[: handler.n_args])


@dataclass(eq=False)
class Scope:
    name: str
    element: Any
    key: Optional[str] = None
    parent: Optional[str] = None
    store: Store = field(default_factory=Store)
    subscribe: Optional[Subscribe] = None
    controller: Controller = field(default_factory=dict)
    pending: list[PendingEvent] = field(default_factory=list)
    delegated: bool = False
    foreach: dict[str, ForeachBinding] = field(default_factory=dict)
    serial: int = field(default_factory=lambda: next(_serials))
    disposers: list[Callable[[], None]] = field(default_factory=list, repr=False)

    @property
    def hooks(self) -> FormHooks:
        return FormHooks(source=lambda: self.controller)

    def dispose(self) -> None:
        for binding in self.foreach.values():
            binding.dispose()
        for dispose in self.disposers:
            dispose()
        self.disposers.clear()
        self.delegated = False


class Registry:
    """Owns every scope found in a tree, plus the controller factories."""

    def __init__(
        self,
        sink: Sink,
        *,
        transport: Optional[FormTransport] = None,
        **config: Unpack[RegistryConfig],
    ):
        self.sink = sink
        self.config = config
        shared = config.get("diagnostics")
        self.diagnostics: Diagnostics = shared if shared is not None else Diagnostics()
        self.events: tuple[str, ...] = tuple(config.get("events", EVENTS))
        self._hard_fail = bool(config.get("hard_fail", False))
        self._auto_register = bool(config.get("auto_register", True))
        self._transport = transport

        self.factories: dict[str, ControllerFactory] = {}
        self.scopes: dict[Any, Scope] = {}
        self._instances: dict[str, list[Any]] = {}
        self._keys: set[str] = set()
        self._markup: dict[str, str] = {}
        self._parsed: weakref.WeakKeyDictionary[Any, tuple[Optional[str], Directives]] = (
            weakref.WeakKeyDictionary()
        )
        self._orphans: weakref.WeakSet[Any] = weakref.WeakSet()

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    @property
    def hard_fail(self) -> bool:
        return self._hard_fail

    @hard_fail.setter
    def hard_fail(self, value: bool) -> None:
        self._hard_fail = bool(value)
        logger.info("hard_fail is now %s", self._hard_fail)

    @property
    def auto_register(self) -> bool:
        return self._auto_register

    @auto_register.setter
    def auto_register(self, value: bool) -> None:
        self._auto_register = bool(value)
        logger.info("auto_register is now %s", self._auto_register)

    @property
    def transport(self) -> FormTransport:
        if self._transport is None:
            self._transport = FormTransport(self.sink, diagnostics=self.diagnostics)
        return self._transport

    # ------------------------------------------------------------------
    # Controller factories
    # ------------------------------------------------------------------

    def define(self, name: str, factory: ControllerFactory) -> None:
        if name in self.factories:
            logger.warning("Replacing controller factory for '%s'", name)
        self.factories[name] = factory

    def component(self, name: str):
        """Register the decorated function as the controller factory for ``name``.

        ```python
        @registry.component("Counter")
        def counter(store, element):
            def increment():
                store["count"] += 1
            return {"increment": increment}
        ```
        """

        def decorator(factory: ControllerFactory) -> ControllerFactory:
            self.define(name, factory)
            return factory

        return decorator

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def directives(self, el: Any) -> Directives:
        """Parsed directives of ``el``, cached until its attribute changes."""
        raw = self.sink.directive(el)
        cached = self._parsed.get(el)
        if cached is not None and cached[0] == raw:
            return cached[1]
        parsed = parse_directives(raw, self.diagnostics)
        self._parsed[el] = (raw, parsed)
        return parsed

    def component_name(self, el: Any) -> Optional[str]:
        value = self.directives(el).get("component") if self.sink.is_bindable(el) else None
        if isinstance(value, Ident) and value.name:
            return value.name
        return None

    def owner_of(self, el: Any) -> Optional[Any]:
        """Nearest element, ``el`` included, declaring a component."""
        node = el
        while node is not None:
            if self.sink.is_bindable(node) and self.component_name(node):
                return node
            node = self.sink.parent(node)
        return None

    def scope_of(self, el: Any) -> Optional[Scope]:
        owner = self.owner_of(el)
        return self.scopes.get(owner) if owner is not None else None

    def instances(self, name: str) -> list[Any]:
        return list(self._instances.get(name, ()))

    def components(self) -> dict[str, list[Any]]:
        return {name: list(els) for name, els in self._instances.items()}

    def is_registered(self, el: Any) -> bool:
        return el in self.scopes

    def _has_ancestor(self, el: Any, name: str) -> bool:
        return any(self.component_name(a) == name for a in self.sink.ancestors(el))

    def _nearest_scope(self, el: Any) -> Optional[Scope]:
        for ancestor in self.sink.ancestors(el):
            scope = self.scopes.get(ancestor)
            if scope is not None:
                return scope
        return None

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, el: Any) -> Optional[Scope]:
        """Register and bind ``el``; returns None when it is skipped.

        Raises ``ConsistencyFailure`` on a markup mismatch in hard-fail mode
        and ``ResolutionError`` when a dotted path names a missing context.
        """
        if el in self.scopes:
            return self.scopes[el]
        name = self.component_name(el)
        if not name:
            return None

        sink = self.sink
        directives = self.directives(el)
        key = sink.get_attr(el, STABLE_KEY_ATTR)
        parent = directive_text(directives.get("parent"))

        map_key = f"{name}:{key}" if key else None
        if map_key and map_key in self._keys:
            self.diagnostics.report(
                "duplicate-key",
                f"Duplicate component '{name}' with key '{key}' skipped",
                element=el,
            )
            return None

        if parent and not self._has_ancestor(el, parent):
            self.diagnostics.report(
                "missing-parent",
                f"Component '{name}' is missing expected parent '{parent}'",
                element=el,
            )

        markup = normalize_markup(sink.get_html(el))
        canonical = self._markup.get(name)
        if canonical is None:
            self._markup[name] = markup
        elif canonical != markup:
            if self.hard_fail:
                raise ConsistencyFailure(name, el)
            self.diagnostics.report(
                "markup-mismatch",
                f"Component '{name}' detected with multiple markup structures, "
                "instance skipped",
                element=el,
            )
            return None

        if map_key:
            self._keys.add(map_key)
        scope = Scope(name=name, element=el, key=key, parent=parent)
        self.scopes[el] = scope
        self._instances.setdefault(name, []).append(el)

        try:
            self._build(scope)
        except Exception:
            self._forget(scope)
            raise
        logger.debug("Registered component '%s' (#%d)", name, scope.serial)
        return scope

    def _build(self, scope: Scope) -> None:
        binder = Binder(self, scope)
        initial = binder.collect()
        scope.store, scope.subscribe = create_store(initial)
        self._install_dispatch(scope)
        binder.apply()
        scope.controller = self._create_controller(scope)
        self._expose(scope)
        self._flush_pending(scope)

    def _create_controller(self, scope: Scope) -> Controller:
        factory = self.factories.get(scope.name)
        if factory is None:
            return {}
        try:
            controller = factory(scope.store, scope.element)
        except Exception as e:
            self.diagnostics.report(
                "controller-error",
                f"Failed to initialize component '{scope.name}': {e}",
                element=scope.element,
                exc=e,
            )
            return {}
        if controller is None:
            return {}
        if isinstance(controller, Mapping):
            return dict(controller)
        # Plain objects expose their public callables
        return {
            name: getattr(controller, name)
            for name in dir(controller)
            if not name.startswith("_") and callable(getattr(controller, name))
        }

    def _expose(self, scope: Scope) -> None:
        value = self.directives(scope.element).get("expose")
        if value is None:
            return
        if isinstance(value, BracketList):
            pairs = value.pairs()
        else:
            name = directive_text(value)
            pairs = [(name, name)] if name else []

        parent = self._nearest_scope(scope.element)
        if parent is None:
            self.diagnostics.report(
                "expose",
                f"Component '{scope.name}' exposes values but has no enclosing component",
                element=scope.element,
            )
            return
        for source, target in pairs:
            if source in scope.store:
                parent.controller[target] = scope.store[source]
            else:
                self.diagnostics.report(
                    "expose",
                    f"Cannot expose key '{source}' from '{scope.name}'",
                    element=scope.element,
                )

    def _flush_pending(self, scope: Scope) -> None:
        missing: set[str] = set()
        for handler, event_type, el in scope.pending:
            if handler in REMOVE_HANDLERS or handler in missing:
                continue
            if self.resolve_handler(scope, el, handler) is None:
                missing.add(handler)
                self.diagnostics.report(
                    "handler-missing",
                    f"Event handler '{handler}' for '{event_type}' not found in '{scope.name}'",
                    element=el,
                )
        scope.pending.clear()

    # ------------------------------------------------------------------
    # Delegated dispatch
    # ------------------------------------------------------------------

    def resolve_handler(
        self, scope: Scope, target: Any, name: str
    ) -> Optional[Callable[..., Any]]:
        if "." in name:
            fn = resolve_method(self.sink, self.scopes, target, name)
        else:
            fn = scope.controller.get(name)
        return fn if callable(fn) else None

    def _install_dispatch(self, scope: Scope) -> None:
        if scope.delegated:
            return
        scope.delegated = True
        for event_type in self.events:

            def listener(event, event_type=event_type):
                self.dispatch(scope, event_type, event)

            scope.disposers.append(self.sink.listen(scope.element, event_type, listener))

    def _bindable_from(self, scope: Scope, node: Any) -> Optional[Any]:
        root = scope.element
        while node is not None:
            if self.sink.is_bindable(node):
                return node
            if node is root:
                return None
            node = self.sink.parent(node)
        return None

    def _row_binding(
        self, scope: Scope, el: Any
    ) -> tuple[Optional[ForeachBinding], int]:
        row = row_of(self.sink, el)
        if row is None or not self.sink.contains(scope.element, row):
            return None, -1
        binding = scope.foreach.get(self.sink.get_attr(row, ROW_OWNER_ATTR) or "")
        if binding is None or self.sink.parent(row) is not binding.element:
            return None, -1
        try:
            index = int(self.sink.get_attr(row, ROW_KEY_ATTR) or "")
        except ValueError:
            return None, -1
        return binding, index

    def dispatch(self, scope: Scope, event_type: str, event: Any) -> None:
        sink = self.sink
        target = self._bindable_from(scope, sink.event_target(event))
        if target is None or not sink.contains(scope.element, target):
            return
        if self.owner_of(target) is not scope.element:
            return
        handler_name = directive_text(self.directives(target).get(event_type))
        if not handler_name:
            return

        binding, index = self._row_binding(scope, target)
        if binding is not None and handler_name in REMOVE_HANDLERS:
            binding.remove_at(index)
            return

        fn = self.resolve_handler(scope, target, handler_name)
        if fn is None:
            self.diagnostics.report(
                "handler-missing",
                f"Event handler '{handler_name}' not found in '{scope.name}'",
                element=target,
            )
            return

        context = binding.item_at(index) if binding is not None else scope.store
        dataset = coerce_dataset(sink.dataset(target))
        dataset.pop("bind", None)
        try:
            call_handler(fn, event, dataset, target, context)
        except Exception as e:
            self.diagnostics.report(
                "handler-error",
                f"Error executing handler '{handler_name}': {e}",
                element=target,
                exc=e,
            )

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------

    def _walk(self, root: Any) -> list[Any]:
        return [root, *self.sink.descendants(root)]

    def scan_and_register(self, root: Any) -> list[Scope]:
        """Register every component under ``root``, depth first.

        Binding can render new components (foreach rows); the tree is walked
        again until nothing new turns up.
        """
        registered: list[Scope] = []
        tried: set[Any] = set()
        while True:
            candidates = [
                el
                for el in self._walk(root)
                if el not in tried and el not in self.scopes and self.component_name(el)
            ]
            if not candidates:
                break
            for el in candidates:
                tried.add(el)
                if el is not root and not self.sink.contains(root, el):
                    continue
                scope = self.register(el)
                if scope is not None:
                    registered.append(scope)
        self._report_orphans(root)
        return registered

    def _report_orphans(self, root: Any) -> None:
        for el in self._walk(root):
            if not self.sink.is_bindable(el) or el in self._orphans:
                continue
            if self.owner_of(el) is None:
                self._orphans.add(el)
                self.diagnostics.report(
                    "orphan-binding",
                    "Found data-bind element outside any component",
                    element=el,
                )

    def scan_and_unregister(self, root: Any) -> None:
        for el in self._walk(root):
            self.unregister(el)

    def unregister(self, el: Any) -> None:
        scope = self.scopes.get(el)
        if scope is None:
            return
        self._forget(scope)
        logger.debug("Component removed: '%s' (#%d)", scope.name, scope.serial)

    def _forget(self, scope: Scope) -> None:
        self.scopes.pop(scope.element, None)
        instances = self._instances.get(scope.name)
        if instances is not None:
            if scope.element in instances:
                instances.remove(scope.element)
            if not instances:
                del self._instances[scope.name]
        if scope.key:
            self._keys.discard(f"{scope.name}:{scope.key}")
        scope.dispose()

    def reset(self, root: Any = None) -> None:
        """Forget every scope and markup shape; rescan ``root`` when given."""
        for scope in list(self.scopes.values()):
            scope.dispose()
        self.scopes.clear()
        self._instances.clear()
        self._keys.clear()
        self._markup.clear()
        self._parsed = weakref.WeakKeyDictionary()
        self._orphans = weakref.WeakSet()
        logger.info("Component registry has been reset")
        if root is not None:
            self.scan_and_register(root)
