"""
Command-line interface for Ribbon.

Binds a static HTML file outside a browser, to check its directives or to see
the markup the bindings produce.
"""

import importlib.util
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

import typer

from ribbon.config import config_from_env
from ribbon.dom import Document, DomSink, parse_html
from ribbon.errors import RibbonError
from ribbon.registry import ControllerFactory, Registry

cli = typer.Typer(
    name="ribbon",
    help="Ribbon - declarative data-bind directives for server-rendered HTML",
    no_args_is_help=True,
)


def load_controllers(file_path: str | Path) -> dict[str, ControllerFactory]:
    """Load the ``controllers`` mapping (component name -> factory) from a Python file."""
    file_path = Path(file_path)

    if not file_path.exists():
        typer.echo(f"❌ File not found: {file_path}")
        raise typer.Exit(1)

    if not file_path.suffix == ".py":
        typer.echo(f"❌ File must be a Python file (.py): {file_path}")
        raise typer.Exit(1)

    # Add the file's directory to Python path so imports work
    sys.path.insert(0, str(file_path.parent.absolute()))
    try:
        spec = importlib.util.spec_from_file_location("ribbon_controllers", file_path)
        if spec is None or spec.loader is None:
            typer.echo(f"❌ Could not load module from: {file_path}")
            raise typer.Exit(1)
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
    finally:
        if str(file_path.parent.absolute()) in sys.path:
            sys.path.remove(str(file_path.parent.absolute()))

    controllers = getattr(module, "controllers", None)
    if not isinstance(controllers, dict):
        typer.echo(f"⚠️  No 'controllers' dict found in {file_path}")
        return {}
    return controllers


def read_document(html_file: str | Path) -> Document:
    path = Path(html_file)
    if not path.exists():
        typer.echo(f"❌ File not found: {path}")
        raise typer.Exit(1)
    return parse_html(path.read_text(encoding="utf-8"))


def build_registry(
    hard_fail: bool, controllers: Optional[str]
) -> Registry:
    config = config_from_env()
    if hard_fail:
        config["hard_fail"] = True
    registry = Registry(DomSink(), **config)
    if controllers:
        for name, factory in load_controllers(controllers).items():
            registry.define(name, factory)
    return registry


def configure_logging(level: str) -> None:
    logging.basicConfig(format="%(levelname)s %(name)s: %(message)s")
    logging.getLogger("ribbon").setLevel(level.upper())


def _scope_summary(registry: Registry) -> list[dict[str, Any]]:
    return [
        {
            "name": scope.name,
            "key": scope.key,
            "store": scope.store.snapshot(),
        }
        for scope in registry.scopes.values()
    ]


@cli.command("check")
def check(
    html_file: str = typer.Argument(..., help="HTML file to bind"),
    hard_fail: bool = typer.Option(
        False, "--hard-fail", help="Raise on inconsistent component markup"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print a JSON report"),
    strict: bool = typer.Option(False, "--strict", help="Exit 1 on any warning"),
    controllers: Optional[str] = typer.Option(
        None, "--controllers", help="Python file defining a 'controllers' dict"
    ),
    log_level: str = typer.Option("WARNING", "--log-level", help="Logging level"),
):
    """Register every component in a file and report what was bound."""
    configure_logging(log_level)
    document = read_document(html_file)
    registry = build_registry(hard_fail, controllers)

    try:
        registry.scan_and_register(document)
    except RibbonError as e:
        if as_json:
            typer.echo(json.dumps({"error": str(e)}))
        else:
            typer.echo(f"❌ {e}")
        raise typer.Exit(1)

    scopes = _scope_summary(registry)
    diagnostics = list(registry.diagnostics)

    if as_json:
        report = {
            "components": scopes,
            "diagnostics": [d.to_dict() for d in diagnostics],
        }
        typer.echo(json.dumps(report, indent=2, default=str))
    else:
        typer.echo(f"📋 Found {len(scopes)} components")
        for scope in scopes:
            key = f" [{scope['key']}]" if scope["key"] else ""
            typer.echo(f"  {scope['name']}{key}: {json.dumps(scope['store'], default=str)}")
        for d in diagnostics:
            mark = "❌" if d.level == "error" else "⚠️ "
            typer.echo(f"{mark} {d.code}: {d.message}")
        if not diagnostics:
            typer.echo("✅ No problems found")

    if any(d.level == "error" for d in diagnostics):
        raise typer.Exit(1)
    if strict and diagnostics:
        raise typer.Exit(1)


@cli.command("render")
def render(
    html_file: str = typer.Argument(..., help="HTML file to bind"),
    hard_fail: bool = typer.Option(False, "--hard-fail"),
    controllers: Optional[str] = typer.Option(None, "--controllers"),
    log_level: str = typer.Option("WARNING", "--log-level"),
):
    """Print the markup after every component has been bound."""
    configure_logging(log_level)
    document = read_document(html_file)
    registry = build_registry(hard_fail, controllers)
    try:
        registry.scan_and_register(document)
    except RibbonError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1)
    typer.echo(document.serialize())


def main():
    """Main CLI entry point."""
    try:
        cli()
    except KeyboardInterrupt:
        typer.echo("\n👋 Interrupted")
        raise typer.Exit(0)
