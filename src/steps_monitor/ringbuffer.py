"""Ring buffer for telemetry samples.

Stores 60 samples at 1Hz resolution (one minute of history).
Seeded at startup with backdated samples so the dashboard is populated
immediately, then grows/evicts one sample per tick.
"""

from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass

from steps_monitor.telemetry import Sample, TelemetryGenerator

SAMPLE_FIELDS = (
    "proton_flux_low",
    "proton_flux_high",
    "alpha_flux",
    "electron_flux",
)


def backdated_timestamps(now_ms: int, count: int, spacing_ms: int = 1000) -> list[int]:
    """Return count timestamps spacing_ms apart, oldest first, the last equal to now_ms."""
    return [now_ms - i * spacing_ms for i in range(count - 1, -1, -1)]


@dataclass(frozen=True)
class BufferContents:
    """Immutable snapshot of the buffer."""

    samples: tuple[Sample, ...]


class SampleBuffer:
    """Bounded FIFO of the most recent samples.

    Stores up to capacity samples (default 60 = 1 minute at 1Hz).
    """

    def __init__(self, capacity: int = 60) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._samples: deque[Sample] = deque(maxlen=capacity)

    def __len__(self) -> int:
        """Return number of samples in buffer."""
        return len(self._samples)

    @property
    def is_empty(self) -> bool:
        """Return True if buffer has no samples."""
        return len(self._samples) == 0

    @property
    def capacity(self) -> int:
        """Return maximum number of samples the buffer can hold."""
        return self._samples.maxlen or 0

    @property
    def samples(self) -> list[Sample]:
        """Read-only access to samples (returns a copy)."""
        return list(self._samples)

    @property
    def latest(self) -> Sample | None:
        """Most recently appended sample, or None when empty."""
        return self._samples[-1] if self._samples else None

    def append(self, sample: Sample) -> None:
        """Add a sample, evicting the oldest when full."""
        self._samples.append(sample)

    def seed(self, generator: TelemetryGenerator, timestamps: Iterable[int]) -> None:
        """Replace contents with one generated sample per timestamp, in order.

        Uses real generator steps, so live ticks continue the same walk.
        """
        self._samples.clear()
        for ts in timestamps:
            self._samples.append(generator.generate(ts))

    def tail(self, n: int) -> tuple[Sample, ...]:
        """Return the latest n samples (fewer if not available), oldest first."""
        if n <= 0:
            return ()
        return tuple(self._samples)[-n:]

    def series(self, field: str) -> list[float]:
        """Values of one channel across the buffer, oldest first."""
        if field not in SAMPLE_FIELDS:
            raise ValueError(f"Unknown channel: {field!r}. Valid channels: {list(SAMPLE_FIELDS)}")
        return [getattr(s, field) for s in self._samples]

    def clear(self) -> None:
        """Empty the buffer."""
        self._samples.clear()

    def freeze(self) -> BufferContents:
        """Return immutable copy of buffer contents."""
        return BufferContents(samples=tuple(self._samples))
