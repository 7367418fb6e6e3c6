"""
Directive grammar.

A directive attribute is a comma separated list of ``name: value`` entries:

    text: title, class: [isActive => active, isHidden => hidden], visible

Values are either a single identifier (optionally quoted, possibly dotted), a
bracketed list of tokens, or nothing at all (a bare name is a boolean flag).
Bracket list tokens come in four shapes:

    source as target     -> alias
    source => target     -> map
    target: source       -> map (legacy form, normalized)
    *                    -> wildcard
    name                 -> plain (source == target)
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal, Mapping, Optional, Union

from ribbon.errors import ParseError

if TYPE_CHECKING:
    from ribbon.errors import Diagnostics

logger = logging.getLogger(__name__)

_OPENERS = "[{("
_CLOSERS = "]})"
_QUOTES = "\"'"

_WILDCARD_RE = re.compile(r"""^(\*|'\*'|"\*")$""")
_ALIAS_RE = re.compile(r"^(.+?)\s+as\s+(.+)$", re.IGNORECASE)
_MAP_RE = re.compile(r"^(.+?)\s*=>\s*(.+)$")
_COLON_RE = re.compile(r"^(.+?)\s*:\s*(.+)$")
_INT_RE = re.compile(r"^\s*[-+]?\d+\s*$")
_FLOAT_RE = re.compile(r"^\s*[-+]?(\d+\.?\d*|\.\d+)([eE][-+]?\d+)?\s*$")


# ============================================================================
# Values
# ============================================================================


@dataclass(frozen=True)
class Ident:
    name: str
    kind: Literal["ident"] = field(default="ident", repr=False)

    @property
    def text(self) -> str:
        return self.name


@dataclass(frozen=True)
class Flag:
    value: bool = True
    kind: Literal["literal"] = field(default="literal", repr=False)

    @property
    def text(self) -> str:
        return "true" if self.value else "false"


@dataclass(frozen=True)
class ListToken:
    kind: Literal["alias", "map", "plain"]
    source: str
    target: str


@dataclass(frozen=True)
class BracketList:
    items: tuple[ListToken, ...] = ()
    wildcard: bool = False
    kind: Literal["list"] = field(default="list", repr=False)

    @property
    def text(self) -> str:
        return ", ".join(
            t.source if t.kind == "plain" else f"{t.source} => {t.target}"
            for t in self.items
        )

    def pairs(self) -> list[tuple[str, str]]:
        """(source, target) for every token, in declaration order."""
        return [(t.source, t.target) for t in self.items]

    def config(self) -> dict[str, str]:
        """target -> source for mapped tokens, e.g. ``[data: users, as: user]``."""
        return {t.target: t.source for t in self.items if t.kind == "map"}


DirectiveValue = Union[Ident, Flag, BracketList]
Directives = dict[str, DirectiveValue]


# ============================================================================
# Splitting
# ============================================================================


def _scan(s: str):
    """Yield (index, char, top_level) while tracking quotes and bracket depth."""
    depth = 0
    quote: Optional[str] = None
    escaped = False
    for i, ch in enumerate(s):
        if quote:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == quote:
                quote = None
            yield i, ch, False
            continue
        if ch in _QUOTES:
            quote = ch
            yield i, ch, False
            continue
        if ch in _OPENERS:
            depth += 1
            yield i, ch, False
            continue
        if ch in _CLOSERS:
            depth = max(0, depth - 1)
            yield i, ch, False
            continue
        yield i, ch, depth == 0


def split_top_level(s: str, sep: str = ",") -> list[str]:
    """Split ``s`` on ``sep`` outside of brackets and quoted strings."""
    if not s:
        return []
    parts: list[str] = []
    start = 0
    for i, ch, top in _scan(s):
        if top and ch == sep:
            part = s[start:i].strip()
            if part:
                parts.append(part)
            start = i + 1
    tail = s[start:].strip()
    if tail:
        parts.append(tail)
    return parts


def _top_level_index(s: str, target: str) -> int:
    for i, ch, top in _scan(s):
        if top and ch == target:
            return i
    return -1


def _check_balanced(s: str) -> None:
    stack: list[str] = []
    quote: Optional[str] = None
    escaped = False
    for ch in s:
        if quote:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == quote:
                quote = None
            continue
        if ch in _QUOTES:
            quote = ch
        elif ch in _OPENERS:
            stack.append(_CLOSERS[_OPENERS.index(ch)])
        elif ch in _CLOSERS:
            if not stack or stack.pop() != ch:
                raise ParseError(f"Unbalanced '{ch}' in {s!r}")
    if quote:
        raise ParseError(f"Unterminated quote in {s!r}")
    if stack:
        raise ParseError(f"Missing '{stack[-1]}' in {s!r}")


def strip_quotes(s: str) -> str:
    s = (s or "").strip()
    if len(s) >= 2 and s[0] == s[-1] and s[0] in _QUOTES:
        return s[1:-1].strip()
    return s


# ============================================================================
# Parsing
# ============================================================================


def parse_list_token(token: str) -> ListToken | None:
    t = token.strip()
    if not t:
        return None

    if m := _ALIAS_RE.match(t):
        return ListToken("alias", strip_quotes(m.group(1)), strip_quotes(m.group(2)))

    if m := _MAP_RE.match(t):
        return ListToken("map", strip_quotes(m.group(1)), strip_quotes(m.group(2)))

    # legacy "target: source", e.g. "data: fruits"
    if m := _COLON_RE.match(t):
        return ListToken("map", strip_quotes(m.group(2)), strip_quotes(m.group(1)))

    name = strip_quotes(t)
    return ListToken("plain", name, name)


def parse_bracket_list(raw: str) -> BracketList:
    s = raw.strip()
    if not (s.startswith("[") and s.endswith("]")):
        raise ParseError(f"Expected a bracket list, got {raw!r}")
    _check_balanced(s)
    inner = s[1:-1].strip()
    items: list[ListToken] = []
    wildcard = False
    for part in split_top_level(inner):
        if _WILDCARD_RE.match(part.strip()):
            wildcard = True
            continue
        token = parse_list_token(part)
        if token is not None:
            items.append(token)
    return BracketList(items=tuple(items), wildcard=wildcard)


def parse_value(raw: Optional[str]) -> DirectiveValue:
    s = (raw or "").strip()
    if not s:
        return Ident("")
    if s.startswith("["):
        return parse_bracket_list(s)
    if s.endswith("]"):
        raise ParseError(f"Unbalanced ']' in {raw!r}")
    return Ident(strip_quotes(s))


def parse_directives(
    attr: Optional[str], diagnostics: "Diagnostics | None" = None
) -> Directives:
    """Parse a directive attribute into ``{name: value}``.

    A malformed value drops that directive only.
    """
    out: Directives = {}
    if not attr or not isinstance(attr, str):
        return out

    for entry in split_top_level(attr):
        idx = _top_level_index(entry, ":")
        if idx == -1:
            out[entry.strip()] = Flag(True)
            continue
        name = entry[:idx].strip()
        raw = entry[idx + 1 :].strip()
        if not name:
            continue
        try:
            out[name] = parse_value(raw)
        except ParseError as e:
            message = f"Invalid '{name}' directive value {raw!r}: {e}"
            if diagnostics is not None:
                diagnostics.report("parse", message)
            else:
                logger.warning(message)
    return out


def directive_text(value: Optional[DirectiveValue]) -> Optional[str]:
    """Identifier text of a directive value, or None if absent/empty."""
    if value is None:
        return None
    text = value.text
    return text or None


# ============================================================================
# Dataset and values
# ============================================================================


def coerce_value(value: str) -> Any:
    if value == "true":
        return True
    if value == "false":
        return False
    if value == "null":
        return None
    if _INT_RE.match(value):
        return int(value)
    if _FLOAT_RE.match(value):
        return float(value)
    stripped = value.strip()
    if (stripped.startswith("{") and stripped.endswith("}")) or (
        stripped.startswith("[") and stripped.endswith("]")
    ):
        try:
            return json.loads(stripped)
        except ValueError:
            return value
    return value


def coerce_dataset(dataset: Mapping[str, str]) -> dict[str, Any]:
    """Coerce ``data-*`` strings to booleans, null, numbers or JSON."""
    return {key: coerce_value(value) for key, value in dataset.items()}


def parse_number(text: Any) -> Any:
    """Numeric control value: int or float, ``""`` when unparsable."""
    value = coerce_value(str(text).strip()) if text is not None else ""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return ""
    return value


def to_text(value: Any) -> str:
    """Render a store value as element text."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return ", ".join(to_text(v) for v in value)
    return str(value)
