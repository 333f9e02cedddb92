"""Terminal dashboard for steps-monitor."""

from steps_monitor.tui.app import StepsMonitorApp, run_tui

__all__ = ["StepsMonitorApp", "run_tui"]
