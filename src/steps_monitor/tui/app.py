"""Real-time telemetry dashboard for steps-monitor.

Philosophy: TUI = window into the running simulation. Nothing more.
- The embedded Daemon owns every timer; widgets only render what it reports
- Charts are drawn straight from the sample buffer
- The archive view is a placeholder; there is no archive backend
"""

from collections.abc import Sequence
from typing import Any

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.css.query import NoMatches
from textual.reactive import reactive
from textual.widgets import ContentSwitcher, Footer, Label, Static

from steps_monitor import logging as console
from steps_monitor.analyst import AnalysisResult, HazardLevel
from steps_monitor.config import Config, HazardColors, StatusColors
from steps_monitor.daemon import AnalysisFlight, Daemon, DataStatus
from steps_monitor.formatting import flux_trend, format_flux, trend_icon
from steps_monitor.health import HealthSnapshot
from steps_monitor.telemetry import ELECTRON_FLUX_RATIO, Sample
from steps_monitor.tui.sparkline import GradientColor, Sparkline, SparklineMode

# Low-energy card compares against the sample this many ticks back
TREND_LOOKBACK = 4


def hazard_style(level: HazardLevel, colors: HazardColors) -> str:
    """Map a hazard level to the badge style."""
    color = {
        HazardLevel.LOW: colors.low,
        HazardLevel.MODERATE: colors.moderate,
        HazardLevel.HIGH: colors.high,
    }.get(level, colors.unknown)
    return f"bold {color}"


def status_style(status: DataStatus, colors: StatusColors) -> str:
    """Map the data link status to its indicator color."""
    return {
        DataStatus.LIVE: colors.live,
        DataStatus.CONNECTING: colors.connecting,
        DataStatus.BUFFERING: colors.buffering,
    }.get(status, colors.offline)


def low_flux_trend(samples: Sequence[Sample]) -> str | None:
    """Trend of the low-energy proton channel over the last few ticks."""
    if not samples:
        return None
    current = samples[-1].proton_flux_low
    idx = len(samples) - 1 - TREND_LOOKBACK
    previous = samples[idx].proton_flux_low if idx >= 0 else None
    return flux_trend(current, previous)


class HeaderBar(Static):
    """Mission title and data link indicator."""

    DEFAULT_CSS = """
    HeaderBar {
        height: 4;
        padding: 0 1;
        border: solid $primary;
    }

    HeaderBar Horizontal {
        height: 1;
        width: 100%;
    }

    HeaderBar #title {
        width: 1fr;
    }

    HeaderBar #link-status {
        width: auto;
    }
    """

    status: reactive[DataStatus] = reactive(DataStatus.CONNECTING)

    def compose(self) -> ComposeResult:
        yield Horizontal(
            Label("[bold]ADITYA-L1[/]  [dim]|[/]  [bold]ASPEX-STEPS[/]", id="title"),
            Label("", id="link-status"),
        )
        yield Label("[dim]SUPRA THERMAL ENERGETIC PARTICLE SPECTROMETER[/]", id="subtitle")

    def on_mount(self) -> None:
        self._update_status()

    def watch_status(self, status: DataStatus) -> None:
        self._update_status()

    def _update_status(self) -> None:
        try:
            label = self.query_one("#link-status", Label)
        except NoMatches:
            return
        style = status_style(self.status, self.app.config.tui.colors.status)
        label.update(Text.assemble(("⬤ ", style), (self.status.value, f"bold {style}")))


class HealthBar(Static):
    """Instrument housekeeping: temperature, voltage, integration time, data format."""

    DEFAULT_CSS = """
    HealthBar {
        height: 3;
        border: solid $primary;
        border-title-align: left;
    }

    HealthBar Horizontal {
        height: 1;
    }

    HealthBar Label {
        width: 1fr;
    }
    """

    def compose(self) -> ComposeResult:
        yield Horizontal(
            Label("", id="temp"),
            Label("", id="voltage"),
            Label("", id="integration"),
            Label("[dim]BACKEND FORMAT[/] [bold]FITS / NetCDF4[/]", id="format"),
        )

    def on_mount(self) -> None:
        self.border_title = "PAYLOAD HEALTH"

    def update_health(self, health: HealthSnapshot) -> None:
        """Show a new housekeeping snapshot."""
        try:
            self.query_one("#temp", Label).update(
                f"[dim]DETECTOR TEMP[/] [bold]{health.instrument_temp:.2f} °C[/]"
            )
            self.query_one("#voltage", Label).update(
                f"[dim]INPUT VOLTAGE[/] [bold]{health.voltage:.2f} V[/]"
            )
            self.query_one("#integration", Label).update(
                f"[dim]INTEGRATION[/] [bold]{health.integration_time} ms[/]"
            )
        except NoMatches:
            pass


class MetricCard(Static):
    """Latest value of one channel with an optional trend marker."""

    DEFAULT_CSS = """
    MetricCard {
        height: 3;
        border: solid $primary;
        border-title-align: left;
        padding: 0 1;
    }
    """

    def __init__(
        self, title: str, unit: str, color: str, decimals: int = 0, **kwargs: Any
    ) -> None:
        super().__init__("[dim]--[/]", **kwargs)
        self._title = title
        self._unit = unit
        self._color = color
        self._decimals = decimals

    def on_mount(self) -> None:
        self.border_title = self._title

    def set_value(self, value: float, trend: str | None = None) -> None:
        """Display a value and its trend."""
        text = Text()
        text.append(format_flux(value, self._decimals), style=f"bold {self._color}")
        text.append(f" {self._unit}", style="dim")
        icon = trend_icon(trend)
        if icon:
            text.append(f"  {icon}", style=self._color)
        self.update(text)


class ChannelChart(Static):
    """Bordered sparkline of one channel across the buffer."""

    DEFAULT_CSS = """
    ChannelChart {
        height: auto;
        border: solid $primary;
        border-title-align: left;
    }
    """

    def __init__(
        self,
        title: str,
        minimum: float,
        maximum: float,
        color: str,
        height: int,
        mode: SparklineMode,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._title = title
        gradient = GradientColor([(minimum, "#6272a4"), (maximum, color)])
        self._sparkline = Sparkline(
            height=height,
            min_value=minimum,
            max_value=maximum,
            mode=mode,
            color_func=gradient,
        )

    def compose(self) -> ComposeResult:
        yield self._sparkline

    def on_mount(self) -> None:
        self.border_title = self._title

    def update_series(self, values: Sequence[float]) -> None:
        """Replace the plotted values."""
        self._sparkline.set_series(values)
        if values:
            self.border_subtitle = f"{values[-1]:.1f}"


class AnalystPanel(Static):
    """Latest mission analyst summary and hazard badge."""

    DEFAULT_CSS = """
    AnalystPanel {
        height: 9;
        border: solid $primary;
        border-title-align: left;
        padding: 0 1;
    }
    """

    requesting: reactive[bool] = reactive(False)

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._result: AnalysisResult | None = None

    def on_mount(self) -> None:
        self.border_title = "GEMINI MISSION ANALYST"
        self._render_result()

    def watch_requesting(self, requesting: bool) -> None:
        self.border_subtitle = "● requesting" if requesting else ""
        self._render_result()

    def show_result(self, result: AnalysisResult) -> None:
        """Replace the displayed analysis."""
        self._result = result
        self._render_result()

    def _render_result(self) -> None:
        if self._result is None:
            self.update("[dim]Analyzing Telemetry...[/]")
            return
        colors = self.app.config.tui.colors.hazard
        text = Text()
        text.append(f'"{self._result.summary}"\n\n', style="italic")
        text.append("Hazard Assessment  ", style="dim")
        level = self._result.hazard_level
        text.append(f" {level.value} ", style=f"reverse {hazard_style(level, colors)}")
        text.append(f"\nUpdated: {self._result.last_updated}", style="dim")
        self.update(text)


class PayloadStatus(Static):
    """Static payload configuration summary."""

    DEFAULT_CSS = """
    PayloadStatus {
        border: solid $primary;
        border-title-align: left;
        padding: 0 1;
    }
    """

    def on_mount(self) -> None:
        self.border_title = "PAYLOAD STATUS"
        self.update(
            "[dim]Mode[/]       Fine-Res Survey\n"
            "[dim]Direction[/]  Sun-Pointing (L1)\n"
            "[dim]Bias Lvl[/]   Nominal"
        )


class DataDictionary(Static):
    """Data product formats served by the science archive."""

    DEFAULT_CSS = """
    DataDictionary {
        border: solid $primary;
        border-title-align: left;
        padding: 0 1;
    }
    """

    def on_mount(self) -> None:
        self.border_title = "DATA DICTIONARY"
        self.update(
            "[bold]FITS:[/] Level-1 science data products. Header carries WCS coordinates.\n"
            "[bold]NetCDF:[/] Time-averaged Level-2 data distribution.\n"
            "[bold]JSON:[/] Sample export format (steps-monitor sample -f json)."
        )


class ArchiveView(Static):
    """Placeholder for historical FITS/NetCDF access."""

    DEFAULT_CSS = """
    ArchiveView {
        height: 1fr;
        border: solid $primary;
        content-align: center middle;
        text-align: center;
    }
    """

    def on_mount(self) -> None:
        self.border_title = "DATA ARCHIVE ACCESS"
        self.update(
            "[bold]Data Archive Access[/]\n\n"
            "Historical FITS and NetCDF4 files from the ISRO Science Data Archive (ISDA).\n"
            "[dim italic](Simulation: no archive backend connection)[/]\n\n"
            "Press [bold]d[/] to return to the live dashboard"
        )


class StepsMonitorApp(App):
    """Real-time telemetry dashboard for steps-monitor."""

    CSS = """
    Screen {
        layout: vertical;
    }

    #views {
        height: 1fr;
    }

    #left-column {
        width: 1fr;
    }

    #right-column {
        width: 2fr;
    }

    #info-panels {
        height: 6;
    }

    #info-panels > * {
        width: 1fr;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("d", "show_dashboard", "Live Telemetry"),
        Binding("escape", "show_dashboard", "Back", show=False),
        ("a", "show_archive", "Archive (FITS/NetCDF)"),
        ("r", "analyze_now", "Analyze now"),
    ]

    def __init__(self, config: Config | None = None, daemon: Daemon | None = None):
        super().__init__()
        self.config = config or Config.load()
        self.daemon = daemon or Daemon(self.config)

    def compose(self) -> ComposeResult:
        """Create the TUI layout."""
        colors = self.config.tui.colors.channels
        channels = self.config.channels
        height = self.config.tui.sparkline_height
        mode = SparklineMode(self.config.tui.sparkline_mode)

        yield HeaderBar(id="header")
        yield HealthBar(id="health")
        with ContentSwitcher(initial="dashboard", id="views"):
            with Horizontal(id="dashboard"):
                with Vertical(id="left-column"):
                    yield AnalystPanel(id="analyst")
                    yield MetricCard(
                        "LOW ENERGY H+", "cnts/s", colors.proton_flux_low, id="card-low"
                    )
                    yield MetricCard(
                        "SUPRA THERMAL H+", "cnts/s", colors.proton_flux_high, id="card-high"
                    )
                    yield MetricCard(
                        "ALPHA PARTICLE FLUX",
                        "cnts/s",
                        colors.alpha_flux,
                        decimals=1,
                        id="card-alpha",
                    )
                with Vertical(id="right-column"):
                    yield ChannelChart(
                        "LOW ENERGY H+ (20-80 keV)",
                        channels.proton_flux_low.minimum,
                        channels.proton_flux_low.maximum,
                        colors.proton_flux_low,
                        height,
                        mode,
                        id="chart-proton_flux_low",
                    )
                    yield ChannelChart(
                        "SUPRA THERMAL H+ (>80 keV)",
                        channels.proton_flux_high.minimum,
                        channels.proton_flux_high.maximum,
                        colors.proton_flux_high,
                        height,
                        mode,
                        id="chart-proton_flux_high",
                    )
                    yield ChannelChart(
                        "ALPHA PARTICLES",
                        channels.alpha_flux.minimum,
                        channels.alpha_flux.maximum,
                        colors.alpha_flux,
                        height,
                        mode,
                        id="chart-alpha_flux",
                    )
                    yield ChannelChart(
                        "ELECTRONS",
                        channels.proton_flux_low.minimum * ELECTRON_FLUX_RATIO,
                        channels.proton_flux_low.maximum * ELECTRON_FLUX_RATIO,
                        colors.electron_flux,
                        height,
                        mode,
                        id="chart-electron_flux",
                    )
                    with Horizontal(id="info-panels"):
                        yield PayloadStatus(id="payload")
                        yield DataDictionary(id="dictionary")
            yield ArchiveView(id="archive")
        yield Footer()

    async def on_mount(self) -> None:
        """Start the simulation and draw the seeded buffer."""
        self.title = "steps-monitor"
        self.sub_title = "Live Telemetry"
        self.daemon.add_sample_listener(self._handle_sample)
        self.daemon.add_analysis_listener(self._handle_analysis)
        await self.daemon.start()
        self._refresh_from_buffer()

    async def on_unmount(self) -> None:
        """Stop daemon timers on shutdown."""
        await self.daemon.stop()

    def _handle_sample(self, sample: Sample, health: HealthSnapshot) -> None:
        """Daemon tick callback."""
        try:
            self.query_one("#health", HealthBar).update_health(health)
        except NoMatches:
            pass
        self._refresh_from_buffer()

    def _handle_analysis(self, result: AnalysisResult) -> None:
        """Daemon analysis callback."""
        try:
            panel = self.query_one("#analyst", AnalystPanel)
        except NoMatches:
            return
        panel.show_result(result)
        panel.requesting = False

    def _refresh_from_buffer(self) -> None:
        """Redraw header, cards and charts from the daemon's buffer."""
        samples = self.daemon.buffer.samples
        try:
            self.query_one("#header", HeaderBar).status = self.daemon.state.status
            self.query_one("#analyst", AnalystPanel).requesting = (
                self.daemon.flight is AnalysisFlight.REQUESTING
            )
        except NoMatches:
            return

        if not samples:
            return

        latest = samples[-1]
        try:
            self.query_one("#card-low", MetricCard).set_value(
                latest.proton_flux_low, low_flux_trend(samples)
            )
            self.query_one("#card-high", MetricCard).set_value(latest.proton_flux_high, "stable")
            self.query_one("#card-alpha", MetricCard).set_value(latest.alpha_flux)
        except NoMatches:
            pass

        for chart in self.query(ChannelChart):
            field = (chart.id or "").removeprefix("chart-")
            chart.update_series(self.daemon.buffer.series(field))

    async def action_quit(self) -> None:
        """Stop the simulation, then exit."""
        await self.daemon.stop()
        self.exit()

    def action_show_dashboard(self) -> None:
        """Switch to the live dashboard."""
        self.query_one("#views", ContentSwitcher).current = "dashboard"
        self.sub_title = "Live Telemetry"

    def action_show_archive(self) -> None:
        """Switch to the archive placeholder."""
        self.query_one("#views", ContentSwitcher).current = "archive"
        self.sub_title = "Archive (FITS/NetCDF)"

    def action_analyze_now(self) -> None:
        """Request an analysis outside the regular schedule."""
        task = self.daemon.request_analysis()
        if task is None:
            self.notify("Analysis already in progress", severity="warning")
            return
        try:
            self.query_one("#analyst", AnalystPanel).requesting = True
        except NoMatches:
            pass


def run_tui(config: Config | None = None) -> None:
    """Run the TUI application."""
    config = config or Config.load()

    # Create config file with defaults if it doesn't exist
    if not config.config_path.exists():
        config.save()

    # Daemon events go to the JSON log, never to the terminal Textual owns
    console.configure(config, source="tui")

    app = StepsMonitorApp(config)
    app.run()
