"""Configuration system for steps-monitor."""

from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path

import tomlkit

from steps_monitor.telemetry import ChannelSpec


@dataclass
class SimulationConfig:
    """Telemetry simulation configuration."""

    tick_interval: float = 1.0  # Seconds between samples (1Hz)
    buffer_size: int = 60  # Number of samples to keep in ring buffer
    seed_spacing_ms: int = 1000  # Spacing of backdated samples at startup
    seed: int = 0  # Random seed for the walk (0 = nondeterministic)
    heartbeat_ticks: int = 60  # Log heartbeat every N ticks (~1 minute at 1Hz)


@dataclass
class ChannelConfig:
    """Random-walk parameters for one channel."""

    start: float
    minimum: float
    maximum: float
    step: float  # Full width of the per-tick perturbation window


@dataclass
class ChannelsConfig:
    """Random-walk parameters for every walked channel.

    Bounds follow the ASPEX-STEPS nominal ambient solar wind levels.
    """

    proton_flux_low: ChannelConfig = field(
        default_factory=lambda: ChannelConfig(start=1500, minimum=1000, maximum=2000, step=50)
    )
    proton_flux_high: ChannelConfig = field(
        default_factory=lambda: ChannelConfig(start=400, minimum=200, maximum=800, step=20)
    )
    alpha_flux: ChannelConfig = field(
        default_factory=lambda: ChannelConfig(start=50, minimum=10, maximum=100, step=5)
    )

    def to_specs(self) -> tuple[ChannelSpec, ...]:
        """Build generator channel specs (validates ranges)."""
        return tuple(
            ChannelSpec(
                name=f.name,
                start=getattr(self, f.name).start,
                minimum=getattr(self, f.name).minimum,
                maximum=getattr(self, f.name).maximum,
                step=getattr(self, f.name).step,
            )
            for f in fields(self)
        )


@dataclass
class HealthConfig:
    """Simulated instrument housekeeping."""

    base_temp: float = -12.4  # Detector temperature (°C)
    base_voltage: float = 28.1  # Input bus voltage (V)
    temp_jitter: float = 1.0  # Full width of per-tick temperature jitter
    voltage_jitter: float = 0.1  # Full width of per-tick voltage jitter
    integration_time: int = 1000  # ms


@dataclass
class AnalysisConfig:
    """Mission analyst (generative AI summary) configuration."""

    enabled: bool = True
    interval: float = 15.0  # Seconds between analysis attempts
    window: int = 20  # Most recent samples sent per analysis
    model: str = "gemini-3-flash-preview"
    api_base: str = "https://generativelanguage.googleapis.com/v1beta"
    api_key_env: str = "API_KEY"  # Environment variable holding the credential
    timeout_seconds: float = 10.0  # Per-request bound; a hung call falls back to UNKNOWN


@dataclass
class SystemConfig:
    """Process-level configuration."""

    # Log file rotation
    log_max_bytes: int = 5 * 1024 * 1024  # Max log file size (5MB)
    log_backup_count: int = 3  # Number of backup log files to keep


# =============================================================================
# TUI Color Configuration
# =============================================================================


@dataclass
class HazardColors:
    """Colors for the hazard assessment badge.

    Default palette: Dracula theme.
    """

    low: str = "#50fa7b"  # Dracula green - ambient solar wind
    moderate: str = "#f1fa8c"  # Dracula yellow - disturbance building
    high: str = "#ff5555"  # Dracula red - SEP/CME conditions
    unknown: str = "#6272a4"  # Dracula comment - no assessment


@dataclass
class ChannelColors:
    """Colors for per-channel cards and charts."""

    proton_flux_low: str = "#8be9fd"  # Dracula cyan
    proton_flux_high: str = "#ff5555"  # Dracula red
    alpha_flux: str = "#50fa7b"  # Dracula green
    electron_flux: str = "#bd93f9"  # Dracula purple


@dataclass
class StatusColors:
    """Colors for the data link indicator."""

    live: str = "#50fa7b"
    connecting: str = "#f1fa8c"
    buffering: str = "#ffb86c"
    offline: str = "#ff5555"


@dataclass
class TUIColorsConfig:
    """All TUI color configurations grouped together."""

    hazard: HazardColors = field(default_factory=HazardColors)
    channels: ChannelColors = field(default_factory=ChannelColors)
    status: StatusColors = field(default_factory=StatusColors)


@dataclass
class TUIConfig:
    """TUI-specific configuration."""

    colors: TUIColorsConfig = field(default_factory=TUIColorsConfig)
    sparkline_height: int = 3  # Character rows per chart (1-4)
    sparkline_mode: str = "blocks"  # "blocks" (solid bars) or "braille" (dots)


def _dataclass_to_table(obj: object) -> tomlkit.items.Table:
    """Convert a dataclass instance to a tomlkit Table recursively."""
    table = tomlkit.table()
    for f in fields(obj):  # type: ignore[arg-type]
        value = getattr(obj, f.name)
        if is_dataclass(value) and not isinstance(value, type):
            table.add(f.name, _dataclass_to_table(value))
        else:
            table.add(f.name, value)
    return table


@dataclass
class Config:
    """Main configuration container."""

    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    channels: ChannelsConfig = field(default_factory=ChannelsConfig)
    health: HealthConfig = field(default_factory=HealthConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    system: SystemConfig = field(default_factory=SystemConfig)
    tui: TUIConfig = field(default_factory=TUIConfig)

    @property
    def config_dir(self) -> Path:
        """Configuration directory."""
        return Path.home() / ".config" / "steps-monitor"

    @property
    def config_path(self) -> Path:
        """Path to config file."""
        return self.config_dir / "config.toml"

    @property
    def state_dir(self) -> Path:
        """State directory for logs and other expendable persistent state."""
        return Path.home() / ".local" / "state" / "steps-monitor"

    @property
    def log_path(self) -> Path:
        """Daemon log path.

        Logs are expendable persistent state, so they go in XDG_STATE_HOME.
        """
        return self.state_dir / "daemon.log"

    def save(self, path: Path | None = None) -> None:
        """Save config to TOML file."""
        path = path or self.config_path
        path.parent.mkdir(parents=True, exist_ok=True)

        doc = tomlkit.document()
        sections = [
            "simulation",
            "channels",
            "health",
            "analysis",
            "system",
            "tui",
        ]
        for name in sections:
            doc.add(name, _dataclass_to_table(getattr(self, name)))
            doc.add(tomlkit.nl())

        path.write_text(tomlkit.dumps(doc))

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """Load config from TOML file, returning defaults for missing values.

        All defaults come from the dataclass definitions - no hardcoded values here.
        This ensures Config() and Config.load() use identical defaults.
        """
        defaults = cls()
        path = path or defaults.config_path
        if not path.exists():
            return defaults

        try:
            with open(path) as f:
                data = tomlkit.load(f)
        except tomlkit.exceptions.TOMLKitError as e:
            raise ValueError(f"Failed to parse config file {path}: {e}") from e

        system_data = data.get("system", {})
        sys_defaults = defaults.system

        return cls(
            simulation=_load_simulation_config(data.get("simulation", {})),
            channels=_load_channels_config(data.get("channels", {})),
            health=_load_health_config(data.get("health", {})),
            analysis=_load_analysis_config(data.get("analysis", {})),
            system=SystemConfig(
                log_max_bytes=system_data.get("log_max_bytes", sys_defaults.log_max_bytes),
                log_backup_count=system_data.get("log_backup_count", sys_defaults.log_backup_count),
            ),
            tui=_load_tui_config(data.get("tui", {})),
        )


def _load_simulation_config(data: dict) -> SimulationConfig:
    """Load simulation config from TOML data, using dataclass defaults for missing fields."""
    defaults = SimulationConfig()

    tick_interval = data.get("tick_interval", defaults.tick_interval)
    buffer_size = data.get("buffer_size", defaults.buffer_size)
    seed_spacing_ms = data.get("seed_spacing_ms", defaults.seed_spacing_ms)
    heartbeat_ticks = data.get("heartbeat_ticks", defaults.heartbeat_ticks)

    if tick_interval <= 0:
        raise ValueError(f"tick_interval must be > 0, got {tick_interval}")
    if buffer_size < 1:
        raise ValueError(f"buffer_size must be >= 1, got {buffer_size}")
    if seed_spacing_ms < 1:
        raise ValueError(f"seed_spacing_ms must be >= 1, got {seed_spacing_ms}")
    if heartbeat_ticks < 1:
        raise ValueError(f"heartbeat_ticks must be >= 1, got {heartbeat_ticks}")

    return SimulationConfig(
        tick_interval=tick_interval,
        buffer_size=buffer_size,
        seed_spacing_ms=seed_spacing_ms,
        seed=data.get("seed", defaults.seed),
        heartbeat_ticks=heartbeat_ticks,
    )


def _load_channels_config(data: dict) -> ChannelsConfig:
    """Load channel walk parameters and validate each range."""
    defaults = ChannelsConfig()
    loaded = {}
    for f in fields(defaults):
        channel_data = data.get(f.name, {})
        d = getattr(defaults, f.name)
        loaded[f.name] = ChannelConfig(
            start=channel_data.get("start", d.start),
            minimum=channel_data.get("minimum", d.minimum),
            maximum=channel_data.get("maximum", d.maximum),
            step=channel_data.get("step", d.step),
        )
    channels = ChannelsConfig(**loaded)
    # ChannelSpec raises ValueError on bad ranges
    channels.to_specs()
    return channels


def _load_health_config(data: dict) -> HealthConfig:
    """Load health config from TOML data."""
    d = HealthConfig()
    return HealthConfig(
        base_temp=data.get("base_temp", d.base_temp),
        base_voltage=data.get("base_voltage", d.base_voltage),
        temp_jitter=data.get("temp_jitter", d.temp_jitter),
        voltage_jitter=data.get("voltage_jitter", d.voltage_jitter),
        integration_time=data.get("integration_time", d.integration_time),
    )


def _load_analysis_config(data: dict) -> AnalysisConfig:
    """Load analysis config from TOML data."""
    defaults = AnalysisConfig()

    interval = data.get("interval", defaults.interval)
    window = data.get("window", defaults.window)
    timeout_seconds = data.get("timeout_seconds", defaults.timeout_seconds)

    if interval <= 0:
        raise ValueError(f"analysis interval must be > 0, got {interval}")
    if window < 1:
        raise ValueError(f"analysis window must be >= 1, got {window}")
    if timeout_seconds <= 0:
        raise ValueError(f"timeout_seconds must be > 0, got {timeout_seconds}")

    return AnalysisConfig(
        enabled=data.get("enabled", defaults.enabled),
        interval=interval,
        window=window,
        model=data.get("model", defaults.model),
        api_base=data.get("api_base", defaults.api_base),
        api_key_env=data.get("api_key_env", defaults.api_key_env),
        timeout_seconds=timeout_seconds,
    )


def _load_tui_config(data: dict) -> TUIConfig:
    """Load TUI config from TOML data.

    Handles nested [tui.colors.*] sections with defaults.
    """
    tui_defaults = TUIConfig()
    colors_data = data.get("colors", {})
    hazard_data = colors_data.get("hazard", {})
    channels_data = colors_data.get("channels", {})
    status_data = colors_data.get("status", {})

    # Use dataclass instances as single source of truth for defaults
    h = HazardColors()
    c = ChannelColors()
    s = StatusColors()

    sparkline_height = data.get("sparkline_height", tui_defaults.sparkline_height)
    if not 1 <= sparkline_height <= 4:
        raise ValueError(f"sparkline_height must be 1-4, got {sparkline_height}")
    sparkline_mode = data.get("sparkline_mode", tui_defaults.sparkline_mode)
    if sparkline_mode not in ("blocks", "braille"):
        raise ValueError(f"sparkline_mode must be 'blocks' or 'braille', got {sparkline_mode!r}")

    return TUIConfig(
        colors=TUIColorsConfig(
            hazard=HazardColors(
                low=hazard_data.get("low", h.low),
                moderate=hazard_data.get("moderate", h.moderate),
                high=hazard_data.get("high", h.high),
                unknown=hazard_data.get("unknown", h.unknown),
            ),
            channels=ChannelColors(
                proton_flux_low=channels_data.get("proton_flux_low", c.proton_flux_low),
                proton_flux_high=channels_data.get("proton_flux_high", c.proton_flux_high),
                alpha_flux=channels_data.get("alpha_flux", c.alpha_flux),
                electron_flux=channels_data.get("electron_flux", c.electron_flux),
            ),
            status=StatusColors(
                live=status_data.get("live", s.live),
                connecting=status_data.get("connecting", s.connecting),
                buffering=status_data.get("buffering", s.buffering),
                offline=status_data.get("offline", s.offline),
            ),
        ),
        sparkline_height=sparkline_height,
        sparkline_mode=sparkline_mode,
    )
