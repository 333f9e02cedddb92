# tests/test_tui.py
"""Tests for TUI app."""

import pytest

from conftest import BASE_MS, make_sample
from steps_monitor.analyst import MISSING_KEY_SUMMARY, HazardLevel, SolarAnalyst
from steps_monitor.config import Config, HazardColors, StatusColors
from steps_monitor.daemon import Daemon, DataStatus
from steps_monitor.telemetry import TelemetryGenerator


def make_app():
    from steps_monitor.tui.app import StepsMonitorApp

    config = Config()
    daemon = Daemon(
        config,
        generator=TelemetryGenerator(seed=11),
        analyst=SolarAnalyst(config.analysis, api_key=""),
    )
    return StepsMonitorApp(config=config, daemon=daemon)


def test_tui_app_starts_without_crash():
    """TUI app initializes without errors."""
    app = make_app()
    assert app is not None
    assert app.daemon.state.status is DataStatus.CONNECTING


def test_hazard_style():
    from steps_monitor.tui.app import hazard_style

    colors = HazardColors()
    assert hazard_style(HazardLevel.HIGH, colors) == f"bold {colors.high}"
    assert hazard_style(HazardLevel.UNKNOWN, colors) == f"bold {colors.unknown}"


def test_status_style():
    from steps_monitor.tui.app import status_style

    colors = StatusColors()
    assert status_style(DataStatus.LIVE, colors) == colors.live
    assert status_style(DataStatus.OFFLINE, colors) == colors.offline


def test_low_flux_trend_compares_four_ticks_back():
    from steps_monitor.tui.app import low_flux_trend

    lows = [1500.0, 1400.0, 1400.0, 1400.0, 1450.0]
    samples = [make_sample(timestamp=BASE_MS + i, proton_flux_low=v) for i, v in enumerate(lows)]
    assert low_flux_trend(samples) == "down"

    samples.append(make_sample(proton_flux_low=1401.0))
    assert low_flux_trend(samples) == "up"


def test_low_flux_trend_short_history():
    from steps_monitor.tui.app import low_flux_trend

    assert low_flux_trend([]) is None
    assert low_flux_trend([make_sample()]) == "down"


@pytest.mark.asyncio
async def test_dashboard_lifecycle():
    """Mounting starts the daemon; quitting stops it."""
    from textual.widgets import ContentSwitcher

    from steps_monitor.tui.app import AnalystPanel, HeaderBar

    app = make_app()
    async with app.run_test() as pilot:
        await pilot.pause()
        assert app.daemon.is_running
        assert len(app.daemon.buffer) == 60
        assert app.query_one("#header", HeaderBar).status is DataStatus.LIVE

        await pilot.press("a")
        assert app.query_one("#views", ContentSwitcher).current == "archive"
        await pilot.press("escape")
        assert app.query_one("#views", ContentSwitcher).current == "dashboard"

        await pilot.press("r")
        await pilot.pause(0.2)
        assert app.daemon.analysis is not None
        assert app.daemon.analysis.summary == MISSING_KEY_SUMMARY
        assert app.query_one("#analyst", AnalystPanel).requesting is False

        await pilot.press("q")

    assert app.daemon.state.status is DataStatus.OFFLINE
