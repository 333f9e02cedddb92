# tests/test_logging.py
"""Tests for unified logging system."""

import json
import logging

import pytest
import structlog

from steps_monitor import logging as console
from steps_monitor.config import Config


@pytest.fixture
def restore_logging():
    """Undo configure() so later tests see default structlog behaviour."""
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        handler.close()
        root.removeHandler(handler)
    structlog.reset_defaults()
    console._config = None


def test_hazard_color_requires_configure(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(console, "_config", None)
    with pytest.raises(RuntimeError, match="configure"):
        console.hazard_color("HIGH")


def test_hazard_color_uses_configured_palette(monkeypatch: pytest.MonkeyPatch):
    config = Config()
    config.tui.colors.hazard.high = "#abcdef"
    monkeypatch.setattr(console, "_config", config)

    assert console.hazard_color("HIGH") == "#abcdef"
    assert console.hazard_color("LOW") == config.tui.colors.hazard.low
    assert console.hazard_color("UNKNOWN") == config.tui.colors.hazard.unknown


def test_configure_writes_json_lines(isolated_config, restore_logging):
    """Events land in the log file as JSON with ts, level and source."""
    console.configure(isolated_config, source="tui")

    console.get_structlog().info("analysis_requested", samples=20)
    for handler in logging.getLogger().handlers:
        handler.flush()

    lines = isolated_config.log_path.read_text().strip().splitlines()
    event = json.loads(lines[-1])
    assert event["event"] == "analysis_requested"
    assert event["samples"] == 20
    assert event["level"] == "info"
    assert event["source"] == "tui"
    assert "ts" in event


def test_configure_replaces_handlers(isolated_config, restore_logging):
    console.configure(isolated_config)
    console.configure(isolated_config)
    assert len(logging.getLogger().handlers) == 1


def test_info_prints_level_and_message(capsys):
    console.info("Buffer ready", console.Icon.OK)
    out = capsys.readouterr().out
    assert "[info]" in out
    assert "Buffer ready" in out


def test_analysis_helpers_print_hazard(capsys, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(console, "_config", Config())
    console.analysis_complete("MODERATE", "Flux rising.")
    out = capsys.readouterr().out
    assert "MODERATE" in out
    assert "Flux rising." in out


def test_api_key_missing_names_variable(capsys):
    console.api_key_missing("API_KEY")
    out = capsys.readouterr().out
    assert "[warn]" in out
    assert "API_KEY" in out


def test_daemon_stopping_prints_wait_icon(capsys):
    console.daemon_stopping()
    out = capsys.readouterr().out
    assert console.Icon.WAIT in out
    assert "Daemon stopping" in out
