"""Telemetry simulation daemon for steps-monitor.

Owns the generator, the sample buffer, the health model and the analyst, and
drives them from two independent timers:

- tick (1Hz): generate one sample, append to buffer, jitter health
- analysis (every 15s): summarize the buffer tail, at most one request in flight

Both timers run as asyncio tasks on a single event loop, so the in-flight
guard is a plain flag checked and set before the first await.
"""

import asyncio
import signal
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from importlib.metadata import PackageNotFoundError, version

import structlog

from steps_monitor import logging as console
from steps_monitor.analyst import AnalysisOutcome, AnalysisResult, SolarAnalyst
from steps_monitor.config import Config
from steps_monitor.health import HealthMonitor, HealthSnapshot
from steps_monitor.ringbuffer import SampleBuffer, backdated_timestamps
from steps_monitor.telemetry import Sample, TelemetryGenerator

log = structlog.get_logger()

SampleListener = Callable[[Sample, HealthSnapshot], None]
AnalysisListener = Callable[[AnalysisResult], None]


class DataStatus(str, Enum):
    """Telemetry link status shown on the dashboard."""

    CONNECTING = "CONNECTING"
    LIVE = "LIVE"
    BUFFERING = "BUFFERING"
    OFFLINE = "OFFLINE"


class AnalysisFlight(str, Enum):
    """Whether an analysis request is outstanding."""

    IDLE = "IDLE"
    REQUESTING = "REQUESTING"


@dataclass
class DaemonState:
    """Runtime state of the daemon."""

    status: DataStatus = DataStatus.CONNECTING
    tick_count: int = 0
    analysis_count: int = 0
    skipped_analyses: int = 0
    last_sample_time: datetime | None = None

    def update_sample(self) -> None:
        """Update state after a tick."""
        self.tick_count += 1
        self.last_sample_time = datetime.now()


def epoch_ms() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)


def _package_version() -> str:
    try:
        return version("steps-monitor")
    except PackageNotFoundError:
        return "unknown"


class Daemon:
    """Orchestrates the telemetry simulation and the mission analyst."""

    def __init__(
        self,
        config: Config,
        generator: TelemetryGenerator | None = None,
        analyst: SolarAnalyst | None = None,
        health: HealthMonitor | None = None,
        clock: Callable[[], int] | None = None,
        console_output: bool = False,
    ):
        """Initialize the daemon.

        Args:
            config: Application config
            generator: Telemetry generator (built from config.channels if omitted)
            analyst: Summarization client (built from config.analysis if omitted)
            health: Housekeeping model (built from config.health if omitted)
            clock: Returns epoch milliseconds; used for sample timestamps
            console_output: Print Rich console messages (headless mode only)
        """
        self.config = config
        self.state = DaemonState()

        seed = config.simulation.seed or None
        self.generator = generator or TelemetryGenerator(config.channels.to_specs(), seed=seed)
        self.buffer = SampleBuffer(capacity=config.simulation.buffer_size)
        self.health = health or HealthMonitor(config.health)
        self.analyst = analyst or SolarAnalyst(config.analysis)

        self.analysis: AnalysisResult | None = None
        self.flight = AnalysisFlight.IDLE

        self._clock = clock or epoch_ms
        self._console = console_output
        self._shutdown_event = asyncio.Event()
        self._tick_task: asyncio.Task | None = None
        self._analysis_task: asyncio.Task | None = None
        self._analysis_runs: set[asyncio.Task] = set()
        self._sample_listeners: list[SampleListener] = []
        self._analysis_listeners: list[AnalysisListener] = []
        self._heartbeat_count = 0

    # ─────────────────────────────────────────────────────────────────────
    # Listeners
    # ─────────────────────────────────────────────────────────────────────

    def add_sample_listener(self, listener: SampleListener) -> None:
        """Call listener(sample, health) after every tick."""
        self._sample_listeners.append(listener)

    def add_analysis_listener(self, listener: AnalysisListener) -> None:
        """Call listener(result) after every completed analysis."""
        self._analysis_listeners.append(listener)

    def _notify(self, listeners: list, kind: str, *args) -> None:
        for listener in listeners:
            try:
                listener(*args)
            except Exception as e:
                log.exception("listener_failed", kind=kind, error=str(e))
                if self._console:
                    console.listener_failed(kind, str(e))

    # ─────────────────────────────────────────────────────────────────────
    # Tick path
    # ─────────────────────────────────────────────────────────────────────

    def seed(self) -> None:
        """Backfill the buffer so the dashboard has a full window immediately."""
        sim = self.config.simulation
        timestamps = backdated_timestamps(
            self._clock(), self.buffer.capacity, spacing_ms=sim.seed_spacing_ms
        )
        self.buffer.seed(self.generator, timestamps)
        self.state.status = DataStatus.LIVE
        log.info("buffer_seeded", samples=len(self.buffer), spacing_ms=sim.seed_spacing_ms)
        if self._console:
            console.buffer_seeded(len(self.buffer), sim.seed_spacing_ms)

    def tick(self) -> Sample:
        """Generate one sample, append it and jitter instrument health."""
        sample = self.generator.generate(self._clock())
        self.buffer.append(sample)
        health = self.health.perturb()
        self.state.update_sample()

        self._notify(self._sample_listeners, "sample", sample, health)

        self._heartbeat_count += 1
        if self._heartbeat_count >= self.config.simulation.heartbeat_ticks:
            self._heartbeat(sample)
            self._heartbeat_count = 0

        return sample

    def _heartbeat(self, sample: Sample) -> None:
        hazard = self.analysis.hazard_level.value if self.analysis else "UNKNOWN"
        log.info(
            "daemon_heartbeat",
            ticks=self.state.tick_count,
            buffer=f"{len(self.buffer)}/{self.buffer.capacity}",
            proton_flux_low=round(sample.proton_flux_low, 2),
            proton_flux_high=round(sample.proton_flux_high, 2),
            alpha_flux=round(sample.alpha_flux, 2),
            hazard_level=hazard,
            analyses=self.state.analysis_count,
            skipped_analyses=self.state.skipped_analyses,
        )
        if self._console:
            console.heartbeat(
                ticks=self.state.tick_count,
                buffer_size=len(self.buffer),
                buffer_capacity=self.buffer.capacity,
                proton_low=sample.proton_flux_low,
                proton_high=sample.proton_flux_high,
                alpha=sample.alpha_flux,
                hazard_level=hazard,
            )

    async def _tick_loop(self) -> None:
        """Tick at the configured interval until shutdown.

        Sleeps for the remainder of each interval so the sample rate does not
        drift with tick cost.
        """
        interval = self.config.simulation.tick_interval

        # The seeded buffer already ends at now; the first live sample is one interval later
        try:
            await asyncio.wait_for(self._shutdown_event.wait(), timeout=interval)
            return
        except asyncio.TimeoutError:
            pass

        while not self._shutdown_event.is_set():
            try:
                iteration_start = asyncio.get_running_loop().time()
                self.tick()

                elapsed = asyncio.get_running_loop().time() - iteration_start
                sleep_time = interval - elapsed
                if sleep_time > 0:
                    try:
                        await asyncio.wait_for(self._shutdown_event.wait(), timeout=sleep_time)
                        break  # Shutdown requested during sleep
                    except asyncio.TimeoutError:
                        pass  # Normal timeout, continue to next tick

            except asyncio.CancelledError:
                log.info("tick_loop_cancelled")
                raise
            except Exception as e:
                log.error("tick_failed", error=str(e))
                try:
                    await asyncio.wait_for(self._shutdown_event.wait(), timeout=interval)
                    break
                except asyncio.TimeoutError:
                    pass

    # ─────────────────────────────────────────────────────────────────────
    # Analysis path
    # ─────────────────────────────────────────────────────────────────────

    def _record_skip(self, reason: str) -> None:
        self.state.skipped_analyses += 1
        log.info("analysis_skipped", reason=reason)
        if self._console:
            console.analysis_skipped(reason.replace("_", " "))

    async def run_analysis(self) -> AnalysisResult | None:
        """Analyze the buffer tail unless a request is already outstanding.

        The window is snapshotted before the request, so ticks that land
        while waiting do not affect it. The stored result is replaced in one
        assignment.

        Returns:
            The new result, or None if this cycle was skipped.
        """
        if self.flight is AnalysisFlight.REQUESTING:
            self._record_skip("in_flight")
            return None
        if self.buffer.is_empty:
            self._record_skip("buffer_empty")
            return None

        self.flight = AnalysisFlight.REQUESTING
        try:
            window = self.buffer.tail(self.config.analysis.window)
            log.info("analysis_requested", samples=len(window))
            try:
                outcome = await self.analyst.analyze(window)
            except Exception as e:
                log.exception("analysis_crashed", error=str(e))
                if self._console:
                    console.analysis_failed(str(e))
                outcome = AnalysisOutcome.unavailable()

            result = AnalysisResult.from_outcome(outcome)
            self.analysis = result
            self.state.analysis_count += 1
        finally:
            self.flight = AnalysisFlight.IDLE

        if self._console:
            console.analysis_complete(result.hazard_level.value, result.summary)
        self._notify(self._analysis_listeners, "analysis", result)
        return result

    def request_analysis(self) -> asyncio.Task | None:
        """Start an analysis in the background.

        Returns:
            The running task, or None if one is already in flight.
        """
        if self.flight is AnalysisFlight.REQUESTING:
            self._record_skip("in_flight")
            return None
        task = asyncio.create_task(self.run_analysis())
        self._analysis_runs.add(task)
        task.add_done_callback(self._analysis_runs.discard)
        return task

    async def _analysis_loop(self) -> None:
        """Fire an analysis every interval until shutdown."""
        interval = self.config.analysis.interval

        while not self._shutdown_event.is_set():
            try:
                await asyncio.wait_for(self._shutdown_event.wait(), timeout=interval)
                break
            except asyncio.TimeoutError:
                self.request_analysis()

    # ─────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────────

    @property
    def is_running(self) -> bool:
        """True while the tick timer is active."""
        return self._tick_task is not None and not self._tick_task.done()

    async def start(self) -> None:
        """Seed the buffer and start both timers (returns immediately)."""
        if self.is_running:
            return

        log.info("daemon_starting", version=_package_version())
        sim = self.config.simulation
        log.info(
            "daemon_config",
            buffer_size=sim.buffer_size,
            tick_interval=sim.tick_interval,
            analysis_enabled=self.config.analysis.enabled,
            analysis_interval=self.config.analysis.interval,
            analysis_window=self.config.analysis.window,
            model=self.config.analysis.model,
        )
        if self._console:
            console.version_info("steps-monitor", _package_version())
            console.config_summary(sim.buffer_size, sim.tick_interval, self.config.analysis.interval)

        if self.config.analysis.enabled and not self.analyst.has_credential:
            log.warning("analysis_no_credential", env=self.config.analysis.api_key_env)
            if self._console:
                console.api_key_missing(self.config.analysis.api_key_env)

        self._shutdown_event.clear()
        self.seed()

        self._tick_task = asyncio.create_task(self._tick_loop())
        if self.config.analysis.enabled:
            self._analysis_task = asyncio.create_task(self._analysis_loop())

        log.info("daemon_started")
        if self._console:
            console.daemon_started()

    async def run(self) -> None:
        """Start and block until shutdown is requested."""
        await self.start()
        await self._shutdown_event.wait()

    def request_shutdown(self) -> None:
        """Ask run() to return."""
        self._shutdown_event.set()

    async def stop(self) -> None:
        """Stop both timers and any outstanding analysis. Safe to call twice."""
        if self.state.status is DataStatus.OFFLINE:
            return

        log.info("daemon_stopping")
        if self._console:
            console.daemon_stopping()
        self._shutdown_event.set()

        tasks = [t for t in (self._tick_task, self._analysis_task) if t is not None]
        tasks.extend(self._analysis_runs)
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tick_task = None
        self._analysis_task = None
        self._analysis_runs.clear()

        self.state.status = DataStatus.OFFLINE
        log.info("daemon_stopped", ticks=self.state.tick_count)
        if self._console:
            console.daemon_stopped()

    def _handle_signal(self, sig: signal.Signals) -> None:
        """Handle shutdown signals."""
        log.info("signal_received", signal=sig.name)
        if self._console:
            console.signal_received(sig.name)
        self.request_shutdown()


async def run_daemon(config: Config | None = None) -> None:
    """Run the daemon headless until SIGINT/SIGTERM.

    Args:
        config: Optional config, loads from file if not provided
    """
    if config is None:
        config = Config.load()

    # Create config file with defaults if it doesn't exist
    if not config.config_path.exists():
        config.save()
        console.config_created(str(config.config_path))

    # JSON Lines to file; Rich console via the daemon's console_output
    console.configure(config)

    daemon = Daemon(config, console_output=True)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, lambda s=sig: daemon._handle_signal(s))

    try:
        await daemon.run()
    except Exception as e:
        log.exception("daemon_crashed", error=str(e))
        raise
    finally:
        await daemon.stop()
