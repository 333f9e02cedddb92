"""CLI commands for steps-monitor."""

import click


@click.group()
@click.version_option()
def main() -> None:
    """Simulated Aditya-L1 ASPEX-STEPS telemetry with AI space-weather summaries."""
    pass


@main.command()
def daemon() -> None:
    """Run the telemetry simulation headless."""
    import asyncio

    from steps_monitor.daemon import run_daemon

    config = _load_config()
    asyncio.run(run_daemon(config))


@main.command()
def tui() -> None:
    """Launch interactive dashboard."""
    from steps_monitor.tui import run_tui

    config = _load_config()
    run_tui(config)


def _load_config():
    """Load config, turning validation errors into click errors."""
    from steps_monitor.config import Config

    try:
        return Config.load()
    except ValueError as e:
        raise click.ClickException(str(e)) from e


def _seeded_buffer(config, count: int, seed: int | None):
    """Build a buffer of count backdated samples ending now."""
    from steps_monitor.daemon import epoch_ms
    from steps_monitor.ringbuffer import SampleBuffer, backdated_timestamps
    from steps_monitor.telemetry import TelemetryGenerator

    generator = TelemetryGenerator(config.channels.to_specs(), seed=seed)
    buffer = SampleBuffer(capacity=count)
    buffer.seed(
        generator,
        backdated_timestamps(epoch_ms(), count, spacing_ms=config.simulation.seed_spacing_ms),
    )
    return buffer


@main.command()
@click.option("--count", "-n", default=10, type=click.IntRange(min=1), help="Samples to print")
@click.option("--seed", "-s", default=None, type=int, help="Random seed for the walk")
@click.option("--format", "-f", "fmt", type=click.Choice(["table", "json", "csv"]), default="table")
def sample(count: int, seed: int | None, fmt: str) -> None:
    """Print backdated telemetry samples.

    Runs the same random walk as the daemon, without live timers.
    """
    import json

    from steps_monitor.formatting import format_flux

    config = _load_config()
    buffer = _seeded_buffer(config, count, seed)

    if fmt == "json":
        click.echo(json.dumps([s.to_dict() for s in buffer.samples], indent=2))
    elif fmt == "csv":
        click.echo(
            "timestamp,display_time,proton_flux_low,proton_flux_high,alpha_flux,electron_flux"
        )
        for s in buffer.samples:
            click.echo(
                f"{s.timestamp},{s.display_time},{s.proton_flux_low:.2f},"
                f"{s.proton_flux_high:.2f},{s.alpha_flux:.2f},{s.electron_flux:.2f}"
            )
    else:
        click.echo(f"{'Time':>8}  {'H+ low':>8}  {'H+ high':>8}  {'Alpha':>7}  {'e-':>8}")
        click.echo("-" * 49)
        for s in buffer.samples:
            click.echo(
                f"{s.display_time:>8}  {format_flux(s.proton_flux_low):>8}  "
                f"{format_flux(s.proton_flux_high):>8}  {format_flux(s.alpha_flux, 1):>7}  "
                f"{format_flux(s.electron_flux):>8}"
            )


@main.command()
@click.option("--seed", "-s", default=None, type=int, help="Random seed for the walk")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
def analyze(seed: int | None, as_json: bool) -> None:
    """Run one analysis over a freshly seeded buffer."""
    import asyncio
    import json

    from steps_monitor import logging as console
    from steps_monitor.daemon import Daemon
    from steps_monitor.telemetry import TelemetryGenerator

    config = _load_config()
    # Keep structured events in the log file, out of the command output
    console.configure(config, source="cli")
    generator = TelemetryGenerator(config.channels.to_specs(), seed=seed)
    daemon = Daemon(config, generator=generator)
    daemon.seed()

    if not daemon.analyst.has_credential:
        click.echo(f"Warning: ${config.analysis.api_key_env} is not set", err=True)

    result = asyncio.run(daemon.run_analysis())
    if result is None:
        raise click.ClickException("Analysis was skipped")

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    latest = daemon.buffer.latest
    click.echo(f"Window: {min(config.analysis.window, len(daemon.buffer))} samples")
    if latest is not None:
        click.echo(
            f"Latest: {latest.display_time}  H+ low {latest.proton_flux_low:.2f}  "
            f"high {latest.proton_flux_high:.2f}  alpha {latest.alpha_flux:.2f}"
        )
    click.echo(f"Hazard: {result.hazard_level.value}")
    click.echo(f"Summary: {result.summary}")
    click.echo(f"Updated: {result.last_updated}")


@main.command()
def status() -> None:
    """Quick configuration check."""
    import os

    config = _load_config()
    analysis = config.analysis

    source = "exists" if config.config_path.exists() else "defaults"
    click.echo(f"Config: {config.config_path} ({source})")
    click.echo(f"Log: {config.log_path}")
    key_set = bool(os.environ.get(analysis.api_key_env))
    click.echo(f"API key (${analysis.api_key_env}): {'set' if key_set else 'missing'}")
    click.echo(f"Analysis: {'enabled' if analysis.enabled else 'disabled'}")
    click.echo(f"  model = {analysis.model}")
    click.echo(f"  interval = {analysis.interval}s, window = {analysis.window} samples")
    click.echo(
        f"Simulation: tick = {config.simulation.tick_interval}s, "
        f"buffer = {config.simulation.buffer_size} samples"
    )


@main.group()
def config() -> None:
    """Manage configuration."""
    pass


@config.command("show")
def config_show() -> None:
    """Display current configuration."""
    cfg = _load_config()

    click.echo(f"Config file: {cfg.config_path}")
    click.echo(f"Exists: {cfg.config_path.exists()}")
    click.echo()
    click.echo("[simulation]")
    click.echo(f"  tick_interval = {cfg.simulation.tick_interval}")
    click.echo(f"  buffer_size = {cfg.simulation.buffer_size}")
    click.echo(f"  seed_spacing_ms = {cfg.simulation.seed_spacing_ms}")
    click.echo(f"  seed = {cfg.simulation.seed}")
    click.echo()
    click.echo("[channels]")
    for spec in cfg.channels.to_specs():
        click.echo(
            f"  {spec.name} = start {spec.start}, range [{spec.minimum}, {spec.maximum}], "
            f"step {spec.step}"
        )
    click.echo()
    click.echo("[analysis]")
    click.echo(f"  enabled = {cfg.analysis.enabled}")
    click.echo(f"  interval = {cfg.analysis.interval}")
    click.echo(f"  window = {cfg.analysis.window}")
    click.echo(f"  model = {cfg.analysis.model}")
    click.echo(f"  api_key_env = {cfg.analysis.api_key_env}")


@config.command("edit")
def config_edit() -> None:
    """Open config file in editor."""
    import os
    import subprocess

    cfg = _load_config()

    # Create config if it doesn't exist
    if not cfg.config_path.exists():
        cfg.save()
        click.echo(f"Created default config at {cfg.config_path}")

    editor = os.environ.get("EDITOR", "nano")
    subprocess.run([editor, str(cfg.config_path)])


@config.command("reset")
@click.confirmation_option(prompt="Reset config to defaults?")
def config_reset() -> None:
    """Reset configuration to defaults."""
    from steps_monitor.config import Config

    cfg = Config()
    cfg.save()
    click.echo(f"Config reset to defaults at {cfg.config_path}")


if __name__ == "__main__":
    main()
