import json
import logging

import pytest
from typer.testing import CliRunner

from ribbon.cli import cli
from ribbon.config import ENV_RIBBON_HARD_FAIL, config_from_env, env_flag

runner = CliRunner()


@pytest.fixture(autouse=True)
def restore_log_level():
    logger = logging.getLogger("ribbon")
    level = logger.level
    yield
    logger.setLevel(level)


PAGE = """
<div data-bind="component: Counter" data-key="main">
  <span data-bind="text: count">3</span>
  <button data-bind="click: increment">+</button>
</div>
"""

MISMATCH = """
<div data-bind="component: Item"><span>a</span></div>
<div data-bind="component: Item"><b>b</b></div>
"""


def write(tmp_path, name, content):
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")
    return str(path)


def test_check_lists_components_and_diagnostics(tmp_path):
    result = runner.invoke(cli, ["check", write(tmp_path, "page.html", PAGE)])
    assert result.exit_code == 0
    assert "Found 1 components" in result.output
    assert 'Counter [main]: {"count": "3"}' in result.output
    assert "handler-missing" in result.output


def test_check_json_report(tmp_path):
    result = runner.invoke(
        cli,
        ["check", write(tmp_path, "page.html", PAGE), "--json", "--log-level", "CRITICAL"],
    )
    assert result.exit_code == 0
    report = json.loads(result.output)
    assert report["components"] == [
        {"name": "Counter", "key": "main", "store": {"count": "3"}}
    ]
    assert [d["code"] for d in report["diagnostics"]] == ["handler-missing"]


def test_check_strict_fails_on_warnings(tmp_path):
    result = runner.invoke(cli, ["check", write(tmp_path, "page.html", PAGE), "--strict"])
    assert result.exit_code == 1


def test_check_with_controllers_is_clean(tmp_path):
    controllers = write(
        tmp_path,
        "controllers.py",
        "def counter(store, el):\n"
        "    return {'increment': lambda: None}\n"
        "\n"
        "controllers = {'Counter': counter}\n",
    )
    result = runner.invoke(
        cli,
        ["check", write(tmp_path, "page.html", PAGE), "--controllers", controllers, "--strict"],
    )
    assert result.exit_code == 0
    assert "No problems found" in result.output


def test_check_hard_fail(tmp_path):
    path = write(tmp_path, "items.html", MISMATCH)
    soft = runner.invoke(cli, ["check", path])
    assert soft.exit_code == 0
    assert "markup-mismatch" in soft.output

    hard = runner.invoke(cli, ["check", path, "--hard-fail"])
    assert hard.exit_code == 1
    assert "multiple markup structures" in hard.output


def test_hard_fail_from_environment(tmp_path, monkeypatch):
    monkeypatch.setenv(ENV_RIBBON_HARD_FAIL, "yes")
    result = runner.invoke(cli, ["check", write(tmp_path, "items.html", MISMATCH)])
    assert result.exit_code == 1


def test_missing_file(tmp_path):
    result = runner.invoke(cli, ["check", str(tmp_path / "nope.html")])
    assert result.exit_code == 1
    assert "File not found" in result.output


def test_render_prints_bound_markup(tmp_path):
    page = write(
        tmp_path,
        "list.html",
        '<div data-bind="component: List"><ul data-bind="foreach: items">'
        '<li data-bind="text: name">a</li><li data-bind="text: name">b</li></ul></div>',
    )
    result = runner.invoke(cli, ["render", page])
    assert result.exit_code == 0
    assert '<li data-bind="text: name" data-key="1" data-foreach-owner="items">b</li>' in result.output


def test_env_flags(monkeypatch):
    monkeypatch.delenv(ENV_RIBBON_HARD_FAIL, raising=False)
    assert env_flag(ENV_RIBBON_HARD_FAIL, False) is False
    monkeypatch.setenv(ENV_RIBBON_HARD_FAIL, "ON")
    assert env_flag(ENV_RIBBON_HARD_FAIL, False) is True
    monkeypatch.setenv(ENV_RIBBON_HARD_FAIL, "0")
    assert env_flag(ENV_RIBBON_HARD_FAIL, True) is False
    monkeypatch.setenv("RIBBON_AUTO_REGISTER", "false")
    assert config_from_env() == {"hard_fail": False, "auto_register": False}
