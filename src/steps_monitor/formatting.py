"""Formatting utilities for consistent output across CLI and TUI."""

from datetime import datetime


def format_display_time(timestamp_ms: int) -> str:
    """Format an epoch-millisecond timestamp as local 24-hour HH:MM:SS.

    Args:
        timestamp_ms: Milliseconds since the Unix epoch

    Returns:
        Wall-clock time such as "14:03:27"
    """
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%H:%M:%S")


def format_clock(now: datetime | None = None) -> str:
    """Format the current (or given) local time as HH:MM:SS."""
    return (now or datetime.now()).strftime("%H:%M:%S")


def format_flux(value: float, decimals: int = 0) -> str:
    """Format a particle flux value for card/table views.

    Args:
        value: Flux in counts/s
        decimals: Digits after the decimal point

    Returns:
        Formatted string like "1532" or "47.3"
    """
    return f"{value:.{decimals}f}"


def format_flux_with_unit(value: float, decimals: int = 0) -> str:
    """Format a flux value followed by its unit."""
    return f"{format_flux(value, decimals)} cnts/s"


def flux_trend(current: float, previous: float | None) -> str:
    """Classify the direction of a flux channel.

    A missing previous value counts as "down", matching how the dashboard
    compares against a sample that has not been collected yet.

    Returns:
        "up" if current is strictly greater than previous, otherwise "down"
    """
    if previous is not None and current > previous:
        return "up"
    return "down"


TREND_ICONS = {
    "up": "▲",
    "down": "▼",
    "stable": "●",
}


def trend_icon(trend: str | None) -> str:
    """Return the glyph for a trend, or an empty string for no trend."""
    if trend is None:
        return ""
    return TREND_ICONS.get(trend, "")


def average(values: list[float]) -> float:
    """Arithmetic mean of a non-empty list."""
    if not values:
        raise ValueError("average() requires at least one value")
    return sum(values) / len(values)
