from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional

from ribbon.errors import ResolutionError

if TYPE_CHECKING:
    from ribbon.registry import Scope
    from ribbon.sink import Sink
    from ribbon.store import Store, Subscribe

logger = logging.getLogger(__name__)

_BOUNDARY_RE = re.compile(r"([a-z])([A-Z])")
_WORD_SPLIT_RE = re.compile(r"[\s_]+")


def title_case(token: str) -> str:
    """``shoppingCart`` -> ``ShoppingCart``, ``line_items`` -> ``LineItems``."""
    spaced = _BOUNDARY_RE.sub(r"\1 \2", token)
    return "".join(w[:1].upper() + w[1:] for w in _WORD_SPLIT_RE.split(spaced) if w)


def is_dotted(path: Optional[str]) -> bool:
    return bool(path) and "." in path  # type: ignore[operator]


@dataclass(frozen=True)
class Resolved:
    store: "Store"
    subscribe: "Subscribe"
    key: str


def _split(path: str) -> tuple[str, str]:
    parts = path.split(".")
    if len(parts) > 2:
        # Only one level is resolved, deeper segments are dropped
        logger.warning(
            "Binding path '%s' has more than two segments, resolving '%s.%s'",
            path,
            parts[0],
            parts[1],
        )
    return title_case(parts[0]), parts[1]


def find_context(
    sink: "Sink", scopes: Mapping[Any, "Scope"], element: Any, name: str
) -> Optional["Scope"]:
    """Nearest strict ancestor of ``element`` registered as scope ``name``."""
    for ancestor in sink.ancestors(element):
        scope = scopes.get(ancestor)
        if scope is not None and scope.name == name:
            return scope
    return None


def resolve_path(
    sink: "Sink", scopes: Mapping[Any, "Scope"], element: Any, path: str
) -> Resolved:
    """Resolve ``Context.prop`` to the store and key of an ancestor scope.

    Raises ``ResolutionError`` when no ancestor scope has that name.
    """
    context, key = _split(path)
    scope = find_context(sink, scopes, element, context)
    if scope is None:
        raise ResolutionError(context, path)
    return Resolved(scope.store, scope.subscribe, key)


def resolve_method(
    sink: "Sink", scopes: Mapping[Any, "Scope"], element: Any, name: str
) -> Optional[Callable[..., Any]]:
    if not name:
        return None
    if "." not in name:
        scope = scopes.get(element)
        if scope is None:
            return None
        return scope.controller.get(name)

    context, method = _split(name)
    scope = find_context(sink, scopes, element, context)
    if scope is None:
        return None
    return scope.controller.get(method)
