"""Tests for formatting utilities."""

from datetime import datetime

import pytest

from steps_monitor.formatting import (
    average,
    flux_trend,
    format_clock,
    format_display_time,
    format_flux,
    format_flux_with_unit,
    trend_icon,
)


class TestFormatDisplayTime:
    """Tests for format_display_time (local HH:MM:SS)."""

    def test_matches_local_time(self) -> None:
        ts = 1_704_110_400_000
        expected = datetime.fromtimestamp(ts / 1000).strftime("%H:%M:%S")
        assert format_display_time(ts) == expected

    def test_drops_milliseconds(self) -> None:
        ts = 1_704_110_400_000
        assert format_display_time(ts + 999) == format_display_time(ts)


def test_format_clock() -> None:
    assert format_clock(datetime(2024, 5, 1, 9, 5, 7)) == "09:05:07"


class TestFormatFlux:
    """Tests for flux value formatting."""

    def test_integer_display(self) -> None:
        assert format_flux(1532.4) == "1532"

    def test_decimals(self) -> None:
        assert format_flux(47.26, 1) == "47.3"

    def test_with_unit(self) -> None:
        assert format_flux_with_unit(400.0) == "400 cnts/s"


class TestFluxTrend:
    """Tests for trend classification."""

    def test_up(self) -> None:
        assert flux_trend(1510, 1500) == "up"

    def test_equal_is_down(self) -> None:
        assert flux_trend(1500, 1500) == "down"

    def test_lower_is_down(self) -> None:
        assert flux_trend(1490, 1500) == "down"

    def test_missing_previous_is_down(self) -> None:
        assert flux_trend(1500, None) == "down"


def test_trend_icon() -> None:
    assert trend_icon("up") == "▲"
    assert trend_icon("down") == "▼"
    assert trend_icon("stable") == "●"
    assert trend_icon(None) == ""


def test_average() -> None:
    assert average([1.0, 2.0, 3.0]) == 2.0
    with pytest.raises(ValueError):
        average([])
