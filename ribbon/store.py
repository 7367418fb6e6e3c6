from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Callable, Optional

from ribbon.reactive import Signal, Subscriber

Subscribe = Callable[[str, Subscriber], Callable[[], None]]


def wrap_list(value: Any) -> Any:
    if isinstance(value, ObservedList):
        return value
    if isinstance(value, (list, tuple)):
        return ObservedList(value)
    return value


class ObservedList(list[Any]):
    """A list that reports every structural change to its owner.

    The owning store attaches itself through ``_attach``; each in-place
    operation then notifies the key's subscribers with the whole list, exactly
    like a plain ``set``. Items themselves are not observed.
    """

    __slots__ = ("_owner", "_reassigned")

    def __init__(self, initial: Iterable[Any] | None = None) -> None:
        super().__init__(initial or ())
        self._owner: Optional[Callable[[], None]] = None
        self._reassigned = False

    def _attach(self, owner: Optional[Callable[[], None]]) -> None:
        self._owner = owner

    def _changed(self) -> None:
        self._reassigned = False
        if self._owner is not None:
            self._owner()

    # ---- item assignment ----
    def __setitem__(self, idx, value):  # type: ignore[override]
        super().__setitem__(idx, value)
        self._changed()

    def __delitem__(self, idx):  # type: ignore[override]
        super().__delitem__(idx)
        self._changed()

    def __iadd__(self, values):  # type: ignore[override]
        super().extend(values)
        self._changed()
        # ``store[key] += ...`` assigns this list back right after
        self._reassigned = True
        return self

    def _take_reassigned(self) -> bool:
        reassigned, self._reassigned = self._reassigned, False
        return reassigned

    # ---- structural operations ----
    def append(self, value: Any) -> None:  # type: ignore[override]
        super().append(value)
        self._changed()

    def extend(self, values: Iterable[Any]) -> None:  # type: ignore[override]
        super().extend(values)
        self._changed()

    def insert(self, index: int, value: Any) -> None:  # type: ignore[override]
        super().insert(index, value)
        self._changed()

    def pop(self, index: int = -1):  # type: ignore[override]
        val = super().pop(index)
        self._changed()
        return val

    def remove(self, value: Any) -> None:  # type: ignore[override]
        super().remove(value)
        self._changed()

    def clear(self) -> None:  # type: ignore[override]
        super().clear()
        self._changed()

    def reverse(self) -> None:  # type: ignore[override]
        super().reverse()
        self._changed()

    def sort(self, *args, **kwargs) -> None:  # type: ignore[override]
        super().sort(*args, **kwargs)
        self._changed()

    # ---- JS style aliases ----
    def push(self, *values: Any) -> int:
        super().extend(values)
        self._changed()
        return len(self)

    def shift(self) -> Any:
        if not self:
            return None
        return self.pop(0)

    def unshift(self, *values: Any) -> int:
        self[0:0] = values
        return len(self)

    def splice(self, start: int, delete_count: Optional[int] = None, *items: Any):
        n = len(self)
        if start < 0:
            start = max(n + start, 0)
        start = min(start, n)
        if delete_count is None:
            delete_count = n - start
        delete_count = max(0, min(delete_count, n - start))
        removed = list.__getitem__(self, slice(start, start + delete_count))
        self[start : start + delete_count] = items
        return removed


class Store(dict[str, Any]):
    """Shallow observable key/value container.

    - ``set`` (and item assignment) notifies every subscriber of the key
    - lists are wrapped in ``ObservedList`` so in-place mutation notifies too
    - ``store[key] += [...]`` notifies once, from the list
    - nested mappings are stored as-is, their fields are not observed
    """

    __slots__ = ("_signals",)

    def __init__(self, initial: Mapping[str, Any] | None = None) -> None:
        super().__init__()
        self._signals: dict[str, Signal[Any]] = {}
        if initial:
            for k, v in initial.items():
                self._store(k, v)

    def _signal(self, key: str) -> Signal[Any]:
        sig = self._signals.get(key)
        if sig is None:
            sig = self._signals[key] = Signal(super().get(key), name=key)
        return sig

    def _store(self, key: str, value: Any) -> Any:
        value = wrap_list(value)
        previous = super().get(key)
        if isinstance(previous, ObservedList) and previous is not value:
            previous._attach(None)
        if isinstance(value, ObservedList):
            value._attach(lambda: self._signal(key).write(value))
        super().__setitem__(key, value)
        self._signal(key).value = value
        return value

    # --- Mapping protocol ---
    def __setitem__(self, key: str, value: Any) -> None:
        current = super().get(key)
        if (
            value is current
            and isinstance(value, ObservedList)
            and value._take_reassigned()
        ):
            # Already notified by the augmented assignment
            return
        self.set(key, value)

    def __delitem__(self, key: str) -> None:
        # Subscribers stay registered; the key reads as None afterwards
        if key in self:
            super().__delitem__(key)
        if key in self._signals:
            self._signals[key].value = None

    # --- Mutation helpers ---
    def set(self, key: str, value: Any) -> None:
        value = self._store(key, value)
        self._signal(key).write(value)

    def update(self, values: Mapping[str, Any] = (), **kwargs: Any) -> None:  # type: ignore[override]
        for k, v in dict(values, **kwargs).items():
            self.set(k, v)

    def setdefault(self, key: str, default: Any = None) -> Any:  # type: ignore[override]
        if key not in self:
            return self._store(key, default)
        return super().__getitem__(key)

    def mutate(self, key: str, op: str, *args: Any, **kwargs: Any) -> Any:
        """Run a named list operation on the list under ``key``."""
        current = super().get(key)
        if not isinstance(current, ObservedList):
            current = self._store(key, list(current or ()))
        method = getattr(current, op, None)
        if method is None or op.startswith("_"):
            raise AttributeError(f"Unsupported list operation '{op}'")
        return method(*args, **kwargs)

    def subscribe(self, key: str, fn: Subscriber) -> Callable[[], None]:
        return self._signal(key).subscribe(fn)

    def subscribers(self, key: str) -> list[Subscriber]:
        sig = self._signals.get(key)
        return list(sig.subscribers) if sig else []

    def snapshot(self) -> dict[str, Any]:
        """Plain (non-observed) copy of the store."""
        return {k: list(v) if isinstance(v, list) else v for k, v in self.items()}

    def __repr__(self) -> str:
        return f"Store({dict.__repr__(self)})"


def create_store(
    initial: Mapping[str, Any] | None = None,
) -> tuple[Store, Subscribe]:
    store = Store(initial)
    return store, store.subscribe
