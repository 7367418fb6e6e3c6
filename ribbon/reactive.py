from typing import Any, Callable, Generic, Optional, TypeVar

T = TypeVar("T")

Subscriber = Callable[[Any], None]


class Signal(Generic[T]):
    """A single observable value.

    Subscribers are called synchronously, in registration order, on every
    write. Writing the same value again still notifies.
    """

    __slots__ = ("value", "name", "subscribers")

    def __init__(self, value: T, name: Optional[str] = None):
        self.value = value
        self.name = name
        self.subscribers: list[Subscriber] = []

    def read(self) -> T:
        return self.value

    def __call__(self) -> T:
        return self.read()

    def subscribe(self, fn: Subscriber) -> Callable[[], None]:
        self.subscribers.append(fn)

        def unsubscribe():
            # Registrations are never deduplicated, drop a single one
            try:
                self.subscribers.remove(fn)
            except ValueError:
                pass

        return unsubscribe

    def write(self, value: T):
        self.value = value
        self.notify()

    def notify(self):
        # Snapshot, subscribers may register new subscribers while running
        for fn in list(self.subscribers):
            fn(self.value)

    def __repr__(self) -> str:
        return f"Signal({self.name or ''}={self.value!r})"
