"""Shared test fixtures for steps-monitor."""

from collections.abc import Iterable
from contextlib import ExitStack
from pathlib import Path
from unittest.mock import patch

import pytest

from steps_monitor.config import Config
from steps_monitor.formatting import format_display_time
from steps_monitor.telemetry import Sample

# 2024-01-01 12:00:00 UTC
BASE_MS = 1_704_110_400_000


class SequenceRng:
    """Deterministic rng() that cycles through a fixed list of draws."""

    def __init__(self, values: Iterable[float]) -> None:
        self._values = list(values)
        self.calls = 0

    def __call__(self) -> float:
        value = self._values[self.calls % len(self._values)]
        self.calls += 1
        return value


class FakeClock:
    """Epoch-millisecond clock that advances only when told to."""

    def __init__(self, start_ms: int = BASE_MS) -> None:
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int = 1000) -> None:
        self.now += ms


def make_sample(
    timestamp: int = BASE_MS,
    proton_flux_low: float = 1500.0,
    proton_flux_high: float = 400.0,
    alpha_flux: float = 50.0,
) -> Sample:
    """Create a Sample with a consistent derived electron channel."""
    return Sample(
        timestamp=timestamp,
        display_time=format_display_time(timestamp),
        proton_flux_low=proton_flux_low,
        proton_flux_high=proton_flux_high,
        alpha_flux=alpha_flux,
        electron_flux=proton_flux_low * 1.5,
    )


def patch_config_paths(stack: ExitStack, base_path: Path) -> None:
    """Point every Config path property at base_path."""
    # fmt: off
    stack.enter_context(patch.object(Config, "config_dir", new_callable=lambda: property(lambda self: base_path)))  # noqa: E501
    stack.enter_context(patch.object(Config, "config_path", new_callable=lambda: property(lambda self: base_path / "config.toml")))  # noqa: E501
    stack.enter_context(patch.object(Config, "state_dir", new_callable=lambda: property(lambda self: base_path)))  # noqa: E501
    stack.enter_context(patch.object(Config, "log_path", new_callable=lambda: property(lambda self: base_path / "daemon.log")))  # noqa: E501
    # fmt: on


@pytest.fixture
def isolated_config(tmp_path: Path):
    """Config whose paths all live under tmp_path."""
    with ExitStack() as stack:
        patch_config_paths(stack, tmp_path)
        yield Config()


@pytest.fixture(autouse=True)
def no_api_key(monkeypatch: pytest.MonkeyPatch) -> None:
    """Never pick up a real credential from the test environment."""
    monkeypatch.delenv("API_KEY", raising=False)
