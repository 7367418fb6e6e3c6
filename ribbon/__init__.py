from ribbon.binder import EVENTS, Binder
from ribbon.config import RegistryConfig, config_from_env
from ribbon.dom import Document, DomSink, Element, parse_html
from ribbon.errors import (
    ConsistencyFailure,
    ConsistencyWarning,
    Diagnostic,
    Diagnostics,
    HandlerMissing,
    ParseError,
    ResolutionError,
    RibbonError,
)
from ribbon.foreach import ForeachBinding, bind_foreach, plan_foreach
from ribbon.grammar import (
    BracketList,
    Flag,
    Ident,
    ListToken,
    parse_directives,
    split_top_level,
)
from ribbon.paths import resolve_method, resolve_path
from ribbon.reactive import Signal
from ribbon.registry import Registry, Scope
from ribbon.scanner import Scanner
from ribbon.sink import DIRECTIVE_ATTR, ElementKind, Sink
from ribbon.store import ObservedList, Store, create_store
from ribbon.transport import FormHooks, FormTransport

__version__ = "0.1.0"

__all__ = [
    "DIRECTIVE_ATTR",
    "EVENTS",
    "Binder",
    "BracketList",
    "ConsistencyFailure",
    "ConsistencyWarning",
    "Diagnostic",
    "Diagnostics",
    "Document",
    "DomSink",
    "Element",
    "ElementKind",
    "Flag",
    "ForeachBinding",
    "FormHooks",
    "FormTransport",
    "HandlerMissing",
    "Ident",
    "ListToken",
    "ObservedList",
    "ParseError",
    "Registry",
    "RegistryConfig",
    "ResolutionError",
    "RibbonError",
    "Scanner",
    "Scope",
    "Signal",
    "Sink",
    "Store",
    "bind_foreach",
    "config_from_env",
    "create_store",
    "parse_directives",
    "parse_html",
    "plan_foreach",
    "resolve_method",
    "resolve_path",
    "split_top_level",
]
