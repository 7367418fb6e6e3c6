from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Iterator, Literal, Optional

DIRECTIVE_ATTR = "data-bind"

InsertPosition = Literal["beforebegin", "afterbegin", "beforeend", "afterend"]
Listener = Callable[[Any], Any]


class ElementKind(Enum):
    TEXT_INPUT = "text-input"
    NUMBER_INPUT = "number-input"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    SELECT = "select"
    TEXTAREA = "textarea"
    FORM = "form"
    TEMPLATE = "template"
    GENERIC = "generic"

    @property
    def is_control(self) -> bool:
        return self in _CONTROLS

    @property
    def is_text_like(self) -> bool:
        return self in (ElementKind.TEXT_INPUT, ElementKind.TEXTAREA)


_CONTROLS = frozenset(
    {
        ElementKind.TEXT_INPUT,
        ElementKind.NUMBER_INPUT,
        ElementKind.CHECKBOX,
        ElementKind.RADIO,
        ElementKind.SELECT,
        ElementKind.TEXTAREA,
    }
)


class Sink(ABC):
    """Everything the binding engine needs from a rendering surface.

    Elements are opaque to the engine. Implementations translate each call to
    their own tree; ``ribbon.dom.DomSink`` is the in-memory one.
    """

    directive_attr: str = DIRECTIVE_ATTR

    def directive(self, el: Any) -> Optional[str]:
        return self.get_attr(el, self.directive_attr)

    def is_bindable(self, el: Any) -> bool:
        return self.has_attr(el, self.directive_attr)

    # --- Tree navigation ---
    @abstractmethod
    def parent(self, el: Any) -> Optional[Any]: ...

    @abstractmethod
    def children(self, el: Any) -> list[Any]:
        """Element children, text excluded."""
        ...

    @abstractmethod
    def descendants(self, el: Any) -> Iterator[Any]:
        """Depth-first element descendants, ``el`` excluded."""
        ...

    @abstractmethod
    def contains(self, ancestor: Any, el: Any) -> bool: ...

    @abstractmethod
    def tag_name(self, el: Any) -> str: ...

    @abstractmethod
    def kind_of(self, el: Any) -> ElementKind: ...

    def ancestors(self, el: Any) -> Iterator[Any]:
        node = self.parent(el)
        while node is not None:
            yield node
            node = self.parent(node)

    # --- Content ---
    @abstractmethod
    def get_text(self, el: Any) -> str: ...

    @abstractmethod
    def set_text(self, el: Any, text: str) -> None: ...

    @abstractmethod
    def get_html(self, el: Any) -> str: ...

    @abstractmethod
    def set_html(self, el: Any, html: str) -> None: ...

    @abstractmethod
    def insert_html(self, el: Any, position: InsertPosition, html: str) -> None: ...

    @abstractmethod
    def replace_outer(self, el: Any, html: str) -> None: ...

    # --- Form controls ---
    @abstractmethod
    def get_value(self, el: Any) -> str: ...

    @abstractmethod
    def set_value(self, el: Any, value: str) -> None: ...

    @abstractmethod
    def is_checked(self, el: Any) -> bool: ...

    @abstractmethod
    def set_checked(self, el: Any, checked: bool) -> None: ...

    @abstractmethod
    def is_multiple(self, el: Any) -> bool: ...

    @abstractmethod
    def selected_values(self, el: Any) -> list[str]: ...

    @abstractmethod
    def set_selected(self, el: Any, values: list[str]) -> None: ...

    @abstractmethod
    def form_fields(self, form: Any) -> list[tuple[str, str]]: ...

    # --- Attributes and presentation ---
    @abstractmethod
    def get_attr(self, el: Any, name: str) -> Optional[str]: ...

    @abstractmethod
    def set_attr(self, el: Any, name: str, value: str) -> None: ...

    @abstractmethod
    def has_attr(self, el: Any, name: str) -> bool: ...

    @abstractmethod
    def remove_attr(self, el: Any, name: str) -> None: ...

    @abstractmethod
    def toggle_class(self, el: Any, name: str, on: bool) -> None: ...

    @abstractmethod
    def set_visible(self, el: Any, visible: bool) -> None: ...

    @abstractmethod
    def set_readonly(self, el: Any, flag: bool) -> None: ...

    @abstractmethod
    def set_disabled(self, el: Any, flag: bool) -> None: ...

    @abstractmethod
    def dataset(self, el: Any) -> dict[str, str]: ...

    # --- Focus ---
    @abstractmethod
    def focus(self, el: Any) -> None: ...

    @abstractmethod
    def blur(self, el: Any) -> None: ...

    @abstractmethod
    def is_focused(self, el: Any) -> bool: ...

    # --- Structure ---
    @abstractmethod
    def clone(self, el: Any) -> Any: ...

    @abstractmethod
    def append_child(self, parent: Any, child: Any) -> None: ...

    @abstractmethod
    def remove(self, el: Any) -> None: ...

    @abstractmethod
    def template_content(self, el: Any) -> list[Any]: ...

    # --- Events ---
    @abstractmethod
    def listen(self, el: Any, event_type: str, fn: Listener) -> Callable[[], None]: ...

    @abstractmethod
    def event_target(self, event: Any) -> Any: ...

    @abstractmethod
    def prevent_default(self, event: Any) -> None: ...
