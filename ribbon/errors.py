from __future__ import annotations

import logging
import traceback
from dataclasses import dataclass
from typing import Any, Literal

logger = logging.getLogger(__name__)

DiagnosticCode = Literal[
    "parse",
    "resolution",
    "duplicate-key",
    "missing-parent",
    "markup-mismatch",
    "handler-missing",
    "handler-error",
    "controller-error",
    "orphan-binding",
    "expose",
    "foreach",
    "transport",
]

_ERROR_CODES: set[DiagnosticCode] = {
    "handler-error",
    "controller-error",
    "transport",
}


class RibbonError(Exception):
    """Base class for every error raised by the binding engine."""


class ParseError(RibbonError):
    """Malformed bracket or grouping inside a directive value."""


class ResolutionError(RibbonError):
    """A dotted path names an ancestor context that does not exist."""

    def __init__(self, context: str, path: str) -> None:
        self.context = context
        self.path = path
        super().__init__(f"Context '{context}' not found for binding '{path}'")


class ConsistencyFailure(RibbonError):
    """Markup mismatch between instances of a component in hard-fail mode."""

    def __init__(self, name: str, element: Any = None) -> None:
        self.name = name
        self.element = element
        super().__init__(
            f"Component '{name}' detected with multiple markup structures. "
            "Ensure the backend renders consistent HTML for this component."
        )


class ConsistencyWarning(UserWarning):
    """Duplicate key, missing parent or soft markup mismatch."""


class HandlerMissing(UserWarning):
    """An event directive names a controller method that does not exist."""


_CATEGORIES: dict[DiagnosticCode, type[Warning]] = {
    "duplicate-key": ConsistencyWarning,
    "missing-parent": ConsistencyWarning,
    "markup-mismatch": ConsistencyWarning,
    "handler-missing": HandlerMissing,
}


def _format_stack(exc: BaseException) -> str:
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))


@dataclass
class Diagnostic:
    code: DiagnosticCode
    message: str
    element: Any = None
    stack: str | None = None

    @property
    def level(self) -> Literal["warning", "error"]:
        return "error" if self.code in _ERROR_CODES else "warning"

    @property
    def category(self) -> type[Warning]:
        return _CATEGORIES.get(self.code, UserWarning)

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "level": self.level,
            "category": self.category.__name__,
            "message": self.message,
            "element": repr(self.element) if self.element is not None else None,
        }


class Diagnostics:
    """Collects and logs the non-fatal problems found while binding."""

    __slots__ = ("records",)

    def __init__(self) -> None:
        self.records: list[Diagnostic] = []

    def report(
        self,
        code: DiagnosticCode,
        message: str,
        *,
        element: Any = None,
        exc: BaseException | None = None,
    ) -> Diagnostic:
        diagnostic = Diagnostic(
            code=code,
            message=message,
            element=element,
            stack=_format_stack(exc) if exc is not None else None,
        )
        self.records.append(diagnostic)
        if diagnostic.level == "error":
            logger.error("[%s] %s", code, message, exc_info=exc)
        else:
            logger.warning("[%s] %s", code, message)
        return diagnostic

    def by_code(self, code: DiagnosticCode) -> list[Diagnostic]:
        return [d for d in self.records if d.code == code]

    def clear(self) -> None:
        self.records.clear()

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self):
        return iter(self.records)
