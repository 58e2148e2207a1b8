"""
Tests for the mosaic command line.
"""

import pytest
from click.testing import CliRunner

from mosaic import __version__
from mosaic.cli import cli
from mosaic.logging import configure_logging
from mosaic.schema import loader as loader_module


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(autouse=True)
def builtin_plugins_only(monkeypatch):
    monkeypatch.setattr(loader_module.settings, "plugins_config_path", None)
    yield
    # Commands point the root handler at the runner's stream, which is closed afterwards
    configure_logging(level="warning")


def test_version(runner):
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_schema_prints_sdl(runner):
    result = runner.invoke(cli, ["schema"])

    assert result.exit_code == 0, result.output
    assert "type CheckIn {" in result.output
    assert "input CheckInInput {" in result.output
    assert "checkIn(input: CheckInInput!): CheckIn" in result.output


def test_plugins_lists_declared_names(runner):
    result = runner.invoke(cli, ["plugins"])

    assert result.exit_code == 0, result.output
    assert "Found 3 plugin(s):" in result.output
    assert "checkins (namespace: checkins)" in result.output
    assert "Inputs: CheckInInput" in result.output
    assert "Mutations: createEvent" in result.output


def test_plugins_with_empty_config(runner, tmp_path):
    cfg = tmp_path / "plugins.yaml"
    cfg.write_text("plugins: []\n", encoding="utf-8")

    result = runner.invoke(cli, ["plugins", "--config", str(cfg)])

    assert result.exit_code == 0
    assert "No plugins configured." in result.output


def test_check_succeeds_for_builtin_plugins(runner):
    result = runner.invoke(cli, ["check"])

    assert result.exit_code == 0, result.output
    assert "✓ Composite schema is valid: 3 type(s)" in result.output
    assert "from 3 plugin(s)" in result.output


def test_check_fails_on_collision(runner, tmp_path):
    cfg = tmp_path / "plugins.yaml"
    cfg.write_text(
        'plugins:\n'
        '  - class: "mosaic.plugins.people:PeoplePlugin"\n'
        '  - class: "mosaic.plugins.people:PeoplePlugin"\n',
        encoding="utf-8",
    )

    result = runner.invoke(cli, ["check", "--config", str(cfg)])

    assert result.exit_code == 1
    assert "Schema check failed" in result.output
    assert "people" in result.output


def test_check_fails_on_missing_config(runner, tmp_path):
    result = runner.invoke(cli, ["check", "--config", str(tmp_path / "absent.yaml")])
    assert result.exit_code == 1
    assert "Plugins config not found" in result.output
