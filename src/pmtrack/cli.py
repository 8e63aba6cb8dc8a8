"""Command line interface for the pmtrack package."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import serial
import typer

from .config import load_config
from .errors import ProtocolViolation, StreamError
from .logging_config import configure_logging
from .runner import SamplerHost, SerialSettings, default_port, discover_ports

logger = logging.getLogger(__name__)

app = typer.Typer(
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
    help="SDS011 dust sensor sampler with ThingSpeak reporting.",
)


def _print_ports() -> None:
    typer.echo("Discovered serial ports")
    for device, description in discover_ports():
        typer.echo(f"{device}\t{description}")


@app.command()
def ports() -> None:
    """List serial ports visible to the host."""

    _print_ports()


@app.command()
def run(
    port: Optional[str] = typer.Option(
        None, "--port", "-p", help="Serial device (default: first discovered). Use '-' to read from stdin."
    ),
    baudrate: Optional[int] = typer.Option(None, "--baud", "-b", help="Serial baudrate [default: 9600]."),
    samples: int = typer.Option(0, "--samples", "-s", min=0, help="Stop after N frames (0 = run forever)."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log packet hex dumps."),
    api_key: str = typer.Option(
        "", "--thingspeak", "-t", envvar="PMTRACK_THINGSPEAK_KEY", help="ThingSpeak write API key."
    ),
    list_first: bool = typer.Option(False, "--list", "-l", help="Print discovered ports before starting."),
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", exists=True, dir_okay=False, help="Path to sampler JSON config."
    ),
    override: Optional[List[str]] = typer.Option(
        None,
        "--set",
        help="Override config keys, e.g. --set report_interval_sec=120 --set request_timeout_sec=10",
    ),
) -> None:
    """Sample the sensor, average every reporting window and post the result."""

    configure_logging(verbose)
    if list_first:
        _print_ports()
    try:
        cfg = load_config(config_path, override)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--set") from exc
    if baudrate is not None:
        cfg.serial.baudrate = baudrate
    settings = SerialSettings(
        port=port or default_port(),
        baudrate=cfg.serial.baudrate,
        timeout=cfg.serial.timeout,
    )
    host = SamplerHost(settings, cfg, samples=samples, api_key=api_key, verbose=verbose)
    try:
        host.run()
    except KeyboardInterrupt:
        logger.info("Stopping sampler (Ctrl+C)")
    except serial.SerialException as exc:
        typer.secho(f"Could not open {settings.port}: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc
    except (StreamError, ProtocolViolation) as exc:
        typer.secho(f"Sampling stopped: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
