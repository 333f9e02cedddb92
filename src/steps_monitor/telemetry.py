"""Synthetic ASPEX-STEPS telemetry generator.

Each channel follows a bounded random walk: every tick adds a uniform
perturbation, then clamps to the channel range. The electron channel has no
state of its own and is always a fixed multiple of the low-energy protons.
"""

import random
from collections.abc import Callable
from dataclasses import dataclass

from steps_monitor.formatting import format_display_time

ELECTRON_FLUX_RATIO = 1.5

# Order matters: one rng() draw per channel, in this order, every tick
WALKED_CHANNELS = ("proton_flux_low", "proton_flux_high", "alpha_flux")


@dataclass(frozen=True)
class ChannelSpec:
    """Range and step size for one random-walk channel.

    step is the full width of the perturbation window, so a tick moves the
    value by at most step / 2 in either direction.
    """

    name: str
    start: float
    minimum: float
    maximum: float
    step: float

    def __post_init__(self) -> None:
        if self.minimum >= self.maximum:
            raise ValueError(
                f"Channel {self.name!r}: minimum ({self.minimum}) "
                f"must be < maximum ({self.maximum})"
            )
        if self.step <= 0:
            raise ValueError(f"Channel {self.name!r}: step must be > 0, got {self.step}")
        if not self.minimum <= self.start <= self.maximum:
            raise ValueError(
                f"Channel {self.name!r}: start ({self.start}) outside "
                f"[{self.minimum}, {self.maximum}]"
            )

    def clamp(self, value: float) -> float:
        """Limit value to [minimum, maximum]."""
        return max(self.minimum, min(self.maximum, value))


DEFAULT_CHANNELS: tuple[ChannelSpec, ...] = (
    ChannelSpec("proton_flux_low", start=1500, minimum=1000, maximum=2000, step=50),
    ChannelSpec("proton_flux_high", start=400, minimum=200, maximum=800, step=20),
    ChannelSpec("alpha_flux", start=50, minimum=10, maximum=100, step=5),
)


@dataclass(frozen=True)
class Sample:
    """One telemetry reading (counts/s per channel)."""

    timestamp: int  # Milliseconds since epoch
    display_time: str  # HH:MM:SS, derived from timestamp
    proton_flux_low: float  # Simulated 20-80 keV
    proton_flux_high: float  # Simulated >80 keV
    alpha_flux: float
    electron_flux: float  # Derived from proton_flux_low

    def to_dict(self) -> dict:
        """Serialize to a dictionary."""
        return {
            "timestamp": self.timestamp,
            "display_time": self.display_time,
            "proton_flux_low": self.proton_flux_low,
            "proton_flux_high": self.proton_flux_high,
            "alpha_flux": self.alpha_flux,
            "electron_flux": self.electron_flux,
        }


class TelemetryGenerator:
    """Stateful random-walk generator producing one Sample per call.

    The running channel values persist across calls so the walk is
    continuous. Nothing outside this class mutates them.
    """

    def __init__(
        self,
        channels: tuple[ChannelSpec, ...] = DEFAULT_CHANNELS,
        rng: Callable[[], float] | None = None,
        seed: int | None = None,
    ) -> None:
        """Initialize the generator.

        Args:
            channels: One spec per walked channel, keyed by WALKED_CHANNELS names
            rng: Zero-argument source of floats, normally in [0, 1)
            seed: Seed for the default random.Random source (ignored if rng given)
        """
        by_name = {c.name: c for c in channels}
        missing = [name for name in WALKED_CHANNELS if name not in by_name]
        if missing:
            raise ValueError(f"Missing channel specs: {missing}")
        self._channels = tuple(by_name[name] for name in WALKED_CHANNELS)
        self._rng = rng if rng is not None else random.Random(seed).random
        self._values: dict[str, float] = {c.name: float(c.start) for c in self._channels}

    @property
    def channels(self) -> tuple[ChannelSpec, ...]:
        """Channel specs in draw order."""
        return self._channels

    @property
    def state(self) -> dict[str, float]:
        """Current running values (returns a copy)."""
        return dict(self._values)

    def generate(self, timestamp: int) -> Sample:
        """Advance the walk one tick and return the resulting sample."""
        for channel in self._channels:
            perturbed = self._values[channel.name] + (self._rng() - 0.5) * channel.step
            self._values[channel.name] = channel.clamp(perturbed)

        low = self._values["proton_flux_low"]
        return Sample(
            timestamp=timestamp,
            display_time=format_display_time(timestamp),
            proton_flux_low=low,
            proton_flux_high=self._values["proton_flux_high"],
            alpha_flux=self._values["alpha_flux"],
            electron_flux=low * ELECTRON_FLUX_RATIO,
        )
