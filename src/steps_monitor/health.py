"""Simulated instrument housekeeping (temperature, voltage)."""

import random
from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import Enum

from steps_monitor.config import HealthConfig


class InstrumentStatus(str, Enum):
    """Payload health status."""

    NOMINAL = "NOMINAL"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


@dataclass(frozen=True)
class HealthSnapshot:
    """Instrument housekeeping at one instant."""

    instrument_temp: float  # °C
    voltage: float  # V
    integration_time: int  # ms
    status: InstrumentStatus = InstrumentStatus.NOMINAL


class HealthMonitor:
    """Jitters temperature and voltage around their nominal values each tick.

    Independent of the telemetry generator: separate RNG, no shared state.
    Each perturbation is taken from the nominal value, not accumulated.
    """

    def __init__(self, config: HealthConfig, rng: Callable[[], float] | None = None) -> None:
        self._config = config
        self._rng = rng if rng is not None else random.random
        self._snapshot = HealthSnapshot(
            instrument_temp=config.base_temp,
            voltage=config.base_voltage,
            integration_time=config.integration_time,
        )

    @property
    def snapshot(self) -> HealthSnapshot:
        """Latest housekeeping values."""
        return self._snapshot

    def perturb(self) -> HealthSnapshot:
        """Apply one tick of jitter and return the new snapshot."""
        cfg = self._config
        self._snapshot = replace(
            self._snapshot,
            instrument_temp=cfg.base_temp + (self._rng() - 0.5) * cfg.temp_jitter,
            voltage=cfg.base_voltage + (self._rng() - 0.5) * cfg.voltage_jitter,
        )
        return self._snapshot
