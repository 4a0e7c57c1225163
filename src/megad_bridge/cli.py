"""Command-line interface for the MegaD Bridge."""

from pathlib import Path
from typing import Annotated, Optional

import typer

from megad_bridge import __version__
from megad_bridge.config import BridgeSettings, ConfigError, load_config

app = typer.Typer(
    name="megad-bridge",
    help="MegaD Bridge: expose MegaD MQTT actuators as on/off lights",
    no_args_is_help=True,
)


@app.callback()
def callback() -> None:
    """MegaD Bridge CLI."""
    pass


def _settings(config: Optional[Path]) -> BridgeSettings:
    if config:
        return BridgeSettings(config_file=config)
    return BridgeSettings()


@app.command()
def run(
    config: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to config.yaml"),
    ] = None,
) -> None:
    """Run the MegaD Bridge daemon."""
    from megad_bridge.daemon import run_daemon

    try:
        cfg = load_config(_settings(config))
    except ConfigError as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(1)

    run_daemon(cfg)


@app.command()
def validate(
    config: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to config.yaml"),
    ] = None,
) -> None:
    """Validate the configuration file without starting the daemon."""
    settings = _settings(config)

    try:
        cfg = load_config(settings)
    except ConfigError as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"Configuration valid: {settings.config_file}")
    broker = cfg.mqtt.redacted_broker or "not configured (degraded mode)"
    typer.echo(f"  MQTT broker: {broker}")
    typer.echo(f"  Devices: {len(cfg.devices)}")
    for device in cfg.devices:
        room = f" [{device.room}]" if device.room else ""
        typer.echo(f"    {device.id}: {device.name}{room}")
    typer.echo(f"  Unregister on shutdown: {cfg.unregister_on_shutdown}")


@app.command()
def version() -> None:
    """Show version information."""
    typer.echo(f"megad-bridge {__version__}")


@app.command()
def status() -> None:
    """Check the status of a running bridge instance."""
    import httpx

    try:
        cfg = load_config(BridgeSettings())
    except ConfigError as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(1)

    try:
        resp = httpx.get(f"http://localhost:{cfg.observability.health_port}/health", timeout=5.0)
        data = resp.json()
    except httpx.ConnectError:
        typer.echo("Bridge is not running or health endpoint unreachable", err=True)
        raise typer.Exit(1)
    except (httpx.HTTPError, ValueError) as e:
        typer.echo(f"Health check failed: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"Status: {data.get('status', 'unknown')}")
    typer.echo(f"Lifecycle: {data.get('lifecycle', 'unknown')}")
    typer.echo(f"MQTT connected: {data.get('mqtt_connected', False)}")
    typer.echo(f"Devices: {data.get('devices', 0)}")
    if resp.status_code != 200:
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
