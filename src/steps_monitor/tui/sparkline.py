"""Sparkline widget for plotting a telemetry channel over the buffer window.

Values are scaled between a fixed floor and ceiling (the channel's walk
bounds), so bar heights are comparable from one refresh to the next.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from enum import Enum
from typing import TYPE_CHECKING

from rich.text import Text
from textual.reactive import reactive
from textual.widgets import Static

if TYPE_CHECKING:
    from textual.app import RenderResult


def _parse_hex_color(hex_color: str) -> tuple[int, int, int]:
    """Parse "#RRGGBB" or "#RGB" to an RGB tuple."""
    hex_color = hex_color.lstrip("#")
    if len(hex_color) == 3:
        hex_color = "".join(c * 2 for c in hex_color)
    return (
        int(hex_color[0:2], 16),
        int(hex_color[2:4], 16),
        int(hex_color[4:6], 16),
    )


def _rgb_to_hex(r: int, g: int, b: int) -> str:
    return f"#{r:02x}{g:02x}{b:02x}"


def _lerp_color(
    color1: tuple[int, int, int],
    color2: tuple[int, int, int],
    t: float,
) -> tuple[int, int, int]:
    """Linearly interpolate between two RGB colors (t clamped to 0-1)."""
    t = max(0.0, min(1.0, t))
    return (
        int(color1[0] + (color2[0] - color1[0]) * t),
        int(color1[1] + (color2[1] - color1[1]) * t),
        int(color1[2] + (color2[2] - color1[2]) * t),
    )


class GradientColor:
    """A color gradient that interpolates between color stops.

    Example:
        ```python
        gradient = GradientColor([
            (200, "#50fa7b"),  # Quiet at the floor of the band
            (800, "#ff5555"),  # Hot at the ceiling
        ])
        color = gradient(500)
        ```
    """

    def __init__(self, stops: list[tuple[float, str]]) -> None:
        """Initialize gradient with color stops.

        Args:
            stops: (threshold, hex_color) tuples. Must have at least 2 stops.
        """
        if len(stops) < 2:
            raise ValueError("Gradient requires at least 2 color stops")
        self._stops = sorted(stops, key=lambda s: s[0])
        self._parsed: list[tuple[float, tuple[int, int, int]]] = [
            (threshold, _parse_hex_color(color)) for threshold, color in self._stops
        ]

    def __call__(self, value: float) -> str:
        """Return the hex color for value, clamped to the outer stops."""
        if value <= self._parsed[0][0]:
            return _rgb_to_hex(*self._parsed[0][1])
        if value >= self._parsed[-1][0]:
            return _rgb_to_hex(*self._parsed[-1][1])

        for (t1, c1), (t2, c2) in zip(self._parsed, self._parsed[1:]):
            if t1 <= value <= t2:
                t = (value - t1) / (t2 - t1) if t2 != t1 else 0.0
                return _rgb_to_hex(*_lerp_color(c1, c2, t))

        return _rgb_to_hex(*self._parsed[-1][1])


class SparklineMode(Enum):
    """Rendering mode for sparkline characters."""

    BLOCKS = "blocks"  # ▁▂▃▄▅▆▇█ - solid bars
    BRAILLE = "braille"  # ⡀⣀⣄⣤⣦⣶⣷⣿ - dot patterns


class Sparkline(Static):
    """Multi-row bar chart of a numeric series.

    Each row adds 8 vertical levels (height=3 gives 24). The newest value is
    drawn at the right edge; when the series is longer than the widget is
    wide, only the most recent values are drawn.
    """

    CHARS: dict[SparklineMode, str] = {
        SparklineMode.BLOCKS: " ▁▂▃▄▅▆▇█",
        SparklineMode.BRAILLE: " ⡀⣀⣄⣤⣦⣶⣷⣿",
    }
    LEVELS_PER_ROW = 8

    DEFAULT_CSS = """
    Sparkline {
        width: 1fr;
        height: auto;
    }
    """

    data: reactive[list[float]] = reactive(list, always_update=True)

    def __init__(
        self,
        height: int = 1,
        max_value: float = 100,
        min_value: float = 0,
        mode: SparklineMode = SparklineMode.BLOCKS,
        color_func: Callable[[float], str] | None = None,
        **kwargs,
    ) -> None:
        """Initialize sparkline.

        Args:
            height: Number of character rows (clamped to 1-4).
            max_value: Value drawn as a full column.
            min_value: Value drawn as an empty column.
            mode: Character set to use.
            color_func: Maps a value to a Rich color string.
            **kwargs: Passed to Static.__init__
        """
        super().__init__(**kwargs)
        self._height = max(1, min(4, height))
        self._max_value = max_value if max_value > min_value else min_value + 1.0
        self._min_value = min_value
        self._mode = mode
        self._color_func = color_func

    def set_series(self, values: Sequence[float]) -> None:
        """Replace the plotted series."""
        self.data = list(values)

    def visible_data(self) -> list[float]:
        """The tail of data that fits the current widget width."""
        width = self.size.width
        if width > 0 and len(self.data) > width:
            return self.data[-width:]
        return list(self.data)

    def render(self) -> RenderResult:
        """Render the series as Rich Text, bottom row last."""
        values = self.visible_data()
        if not values:
            return Text(" ")

        rows: list[Text] = [Text() for _ in range(self._height)]
        for value in values:
            color = self._color_func(value) if self._color_func else ""
            for row_idx, char in enumerate(self._render_column(self._scale_value(value))):
                if color:
                    rows[row_idx].append(char, style=color)
                else:
                    rows[row_idx].append(char)

        # Rows are built bottom-to-top
        return Text("\n").join(reversed(rows))

    def _scale_value(self, value: float) -> int:
        """Scale a value to 0..(height * LEVELS_PER_ROW)."""
        total_levels = self._height * self.LEVELS_PER_ROW
        normalized = (value - self._min_value) / (self._max_value - self._min_value)
        normalized = max(0.0, min(1.0, normalized))
        return int(normalized * total_levels)

    def _render_column(self, level: int) -> list[str]:
        """Characters for one column, bottom row first."""
        chars = self.CHARS[self._mode]
        result: list[str] = []
        for row in range(self._height):
            remaining = level - row * self.LEVELS_PER_ROW
            if remaining <= 0:
                result.append(chars[0])
            elif remaining >= self.LEVELS_PER_ROW:
                result.append(chars[self.LEVELS_PER_ROW])
            else:
                result.append(chars[remaining])
        return result

    def watch_data(self, new_data: list[float]) -> None:
        """React to data changes by refreshing the widget."""
        self.refresh()
