"""Centralized console logging with Rich formatting.

This module provides:
1. Icon vocabulary (Icon class namespace)
2. Level-based styling
3. Core log functions (log, info, warn, error)
4. Domain helpers (daemon_started, buffer_seeded, heartbeat, analysis_complete, etc.)
5. Structlog configuration (configure, get_structlog)

Console output uses Rich markup for colors. JSON file output via structlog
remains separate (machine-parseable, no colors).
"""

from __future__ import annotations

import logging
import logging.handlers
from datetime import datetime
from typing import TYPE_CHECKING

import structlog
from rich.console import Console

if TYPE_CHECKING:
    from steps_monitor.config import Config

# Rich console for colorful human-readable output
_console = Console(highlight=False)

# Module-level config reference for hazard_color (set by configure())
_config: "Config | None" = None


# ─────────────────────────────────────────────────────────────────────────────
# Icons
# ─────────────────────────────────────────────────────────────────────────────


class Icon:
    """Icon vocabulary for console output.

    Use via autocomplete: Icon.<TAB> to see all available icons.
    """

    OK = "[bold green]✓[/]"
    FAIL = "[bold red]✗[/]"
    WAIT = "⏳"
    SEED = "🛰"
    HEARTBEAT = "[magenta]♡[/]"
    ANALYST = "[bright_blue]◆[/]"
    SKIP = "[dim]↷[/]"
    SIGNAL = "⚡"
    KEY = "🔑"


# ─────────────────────────────────────────────────────────────────────────────
# Level Styles
# ─────────────────────────────────────────────────────────────────────────────

_LEVEL_STYLES = {
    "info": "[bright_blue]\\[info][/]",
    "warn": "[yellow]\\[warn][/]",
    "error": "[bold red]\\[err][/] ",
}


# ─────────────────────────────────────────────────────────────────────────────
# Core Functions
# ─────────────────────────────────────────────────────────────────────────────


def log(level: str, msg: str, icon: str = "") -> None:
    """Print a log message with timestamp and level.

    Args:
        level: Log level (info, warn, error)
        msg: Message to print (can include Rich markup)
        icon: Optional icon to show after level (e.g., Icon.OK)
    """
    ts = datetime.now().strftime("%H:%M:%S")
    lvl = _LEVEL_STYLES.get(level, f"[{level}]")
    icon_part = f" {icon}" if icon else ""
    _console.print(f"[dim]{ts}[/] {lvl}{icon_part} {msg}")


def info(msg: str, icon: str = "") -> None:
    """Log an info message."""
    log("info", msg, icon)


def warn(msg: str, icon: str = "") -> None:
    """Log a warning message."""
    log("warn", msg, icon)


def error(msg: str, icon: str = "") -> None:
    """Log an error message."""
    log("error", msg, icon)


# ─────────────────────────────────────────────────────────────────────────────
# Styling Helpers
# ─────────────────────────────────────────────────────────────────────────────


def hazard_color(level: str) -> str:
    """Return the configured Rich color for a hazard level name.

    Requires configure() to have been called first.

    Raises:
        RuntimeError: If configure() hasn't been called.
    """
    if _config is None:
        raise RuntimeError("hazard_color() called before configure()")

    colors = _config.tui.colors.hazard
    return getattr(colors, level.lower(), colors.unknown)


# ─────────────────────────────────────────────────────────────────────────────
# Domain Helpers
# ─────────────────────────────────────────────────────────────────────────────


def daemon_started() -> None:
    """Log daemon startup complete."""
    info("Telemetry simulation live", Icon.OK)


def daemon_stopping() -> None:
    """Log daemon shutdown initiated."""
    info("Daemon stopping...", Icon.WAIT)


def daemon_stopped() -> None:
    """Log daemon shutdown complete."""
    info("Daemon stopped", Icon.OK)


def signal_received(name: str) -> None:
    """Log signal received."""
    info(f"Received [bold]{name}[/]", Icon.SIGNAL)


def buffer_seeded(count: int, spacing_ms: int) -> None:
    """Log startup backfill of the sample buffer."""
    info(f"Buffer seeded with [cyan]{count}[/] samples [dim]({spacing_ms}ms spacing)[/]", Icon.SEED)


def heartbeat(
    ticks: int,
    buffer_size: int,
    buffer_capacity: int,
    proton_low: float,
    proton_high: float,
    alpha: float,
    hazard_level: str,
) -> None:
    """Log periodic heartbeat stats."""
    hc = hazard_color(hazard_level)
    info(
        f"H+ low [cyan]{proton_low:.0f}[/] high [cyan]{proton_high:.0f}[/] "
        f"α [cyan]{alpha:.1f}[/] cnts/s, hazard [{hc}]{hazard_level}[/], "
        f"[dim]{buffer_size}/{buffer_capacity} buffer, {ticks} ticks[/]",
        Icon.HEARTBEAT,
    )


def analysis_complete(hazard_level: str, summary: str) -> None:
    """Log a completed analysis."""
    hc = hazard_color(hazard_level)
    text = summary[:96] + ".." if len(summary) > 96 else summary
    info(f"Analyst [{hc}]{hazard_level}[/] [dim]— {text}[/]", Icon.ANALYST)


def analysis_skipped(reason: str) -> None:
    """Log an analysis cycle that was skipped."""
    info(f"[dim]Analysis skipped — {reason}[/]", Icon.SKIP)


def analysis_failed(error_msg: str) -> None:
    """Log an analysis that fell back to UNKNOWN."""
    error(f"Analysis failed: {error_msg}", Icon.FAIL)


def api_key_missing(env_var: str) -> None:
    """Log that no credential is configured."""
    warn(f"No API key in [cyan]${env_var}[/] — analyst will report UNKNOWN", Icon.KEY)


def listener_failed(kind: str, error_msg: str) -> None:
    """Log a dashboard listener that raised."""
    warn(f"{kind} listener failed: {error_msg}")


def config_created(path: str) -> None:
    """Log config file created."""
    info(f"Created config at [cyan]{path}[/]")


def version_info(name: str, version: str) -> None:
    """Log version info."""
    info(f"[bold cyan]{name}[/] v{version}")


def config_summary(buffer_size: int, tick_interval: float, analysis_interval: float) -> None:
    """Log config summary."""
    info(
        f"Config: buffer=[cyan]{buffer_size}[/], tick=[cyan]{tick_interval}s[/], "
        f"analysis=[cyan]{analysis_interval}s[/]"
    )


# ─────────────────────────────────────────────────────────────────────────────
# Structlog Configuration
# ─────────────────────────────────────────────────────────────────────────────


def _add_source(source: str) -> structlog.types.Processor:
    """Create a processor that adds a source field to log events."""

    def processor(
        logger: structlog.types.WrappedLogger,
        method_name: str,
        event_dict: structlog.types.EventDict,
    ) -> structlog.types.EventDict:
        event_dict["source"] = source
        return event_dict

    return processor


def configure(config: Config, source: str = "daemon") -> None:
    """Configure structlog to write JSON Lines to a rotating log file.

    Console output is handled by Rich (see log functions above); structlog
    only writes to the JSON file for machine parsing. Both use local time.

    Args:
        config: Application config with paths
        source: Value of the "source" field on every event (daemon or tui)
    """
    global _config
    _config = config

    # Ensure state directory exists for log file
    config.state_dir.mkdir(parents=True, exist_ok=True)

    file_handler = logging.handlers.RotatingFileHandler(
        config.log_path,
        maxBytes=config.system.log_max_bytes,
        backupCount=config.system.log_backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.INFO)

    stdlib_root = logging.getLogger()
    stdlib_root.setLevel(logging.INFO)

    # Clear any existing handlers
    stdlib_root.handlers.clear()

    file_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(),
            foreign_pre_chain=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.TimeStamper(fmt="iso", utc=False, key="ts"),
                structlog.processors.add_log_level,
                _add_source(source),
                structlog.processors.format_exc_info,
            ],
        )
    )
    stdlib_root.addHandler(file_handler)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.processors.TimeStamper(fmt="iso", utc=False, key="ts"),
            structlog.processors.add_log_level,
            _add_source(source),
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_structlog() -> structlog.stdlib.BoundLogger:
    """Get a structlog logger instance.

    Returns a logger for structured JSON file output. Use this for
    machine-parseable events that should go to the log file.

    For human-readable console output, use the log/info/warn/error
    functions or domain helpers instead.
    """
    return structlog.get_logger()
