#!/usr/bin/env python3
"""Command-line utility for reading and writing Logix controller tags, and for the flow bridge."""

import json
import logging
import signal
import threading
from typing import Any, Optional

import typer
from typing_extensions import Annotated

from . import __version__  # type: ignore
from .bridge import BridgeLoop, format_status
from .client import TagClient
from .errors import ComputationFault, ConnectError, ProtocolIOError, TagPathError
from .fieldbus import FieldBusClient
from .tagpath import TagPath
from .types import DEFAULT_COMPOSITION, BridgeConfig, Cycle, GasComposition, RetryPolicy, TagType, TagValue

app = typer.Typer(
    name="pyabtag",
    help="Read and write tags on Allen-Bradley Logix controllers; bridge a Modbus RTU flow meter to controller tags.",
    no_args_is_help=True,
)

logger = logging.getLogger(__name__)

EXIT_USAGE = 2
EXIT_IO = 3
EXIT_UNEXPECTED = 4
EXIT_COMPUTATION = 5

# ============================================================================
# Shared options and helpers
# ============================================================================

AddressOption = Annotated[
    Optional[str],
    typer.Option("--address", "-a", help="Controller address (host or host/slot)", envvar="PYABTAG_ADDRESS"),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Enable debug logging"),
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", help="Output as JSON"),
]
TagArgument = Annotated[str, typer.Argument(help="Tag name (e.g. Flow_PV, Program:Main.Meter[2].Rate)")]


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbose flag."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s" if not verbose else "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def require_address(address: Optional[str]) -> str:
    if not address:
        typer.echo("Error: --address is required for this command", err=True)
        raise typer.Exit(EXIT_USAGE)
    return address


def parse_bool(value: str) -> bool:
    """Parse boolean value from string."""
    v = value.lower().strip()
    if v in ("true", "1", "on", "yes"):
        return True
    if v in ("false", "0", "off", "no"):
        return False
    raise ValueError(f"Invalid boolean value: {value!r}")


def parse_int(value: str) -> int:
    """Parse integer value from string, supporting 0x hex."""
    v = value.strip()
    if v.lower().startswith(("0x", "-0x")):
        return int(v, 16)
    return int(v)


def parse_value(tag_type: TagType, value: str) -> TagValue:
    """Parse a command-line value into a TagValue of `tag_type` (range-checked)."""
    if tag_type is TagType.BOOL:
        return TagValue.of(tag_type, parse_bool(value))
    if tag_type is TagType.INT or tag_type is TagType.DINT:
        return TagValue.of(tag_type, parse_int(value))
    if tag_type is TagType.REAL:
        return TagValue.of(tag_type, float(value.strip()))
    raise ValueError(f"Unsupported tag type: {tag_type!r}")


def format_value(value: Any) -> str:
    """Format value for display."""
    if isinstance(value, bool):
        return str(value).lower()
    return str(value)


def parse_gas(entries: list[str]) -> GasComposition:
    """Parse NAME=FRACTION entries into a normalized composition; empty means the default gas."""
    if not entries:
        return DEFAULT_COMPOSITION
    fractions: dict[str, float] = {}
    for entry in entries:
        name, sep, frac = entry.partition("=")
        if not sep:
            raise ValueError(f"Gas component must be NAME=FRACTION, got {entry!r}")
        name = name.strip().lower().replace("-", "_")
        if name in fractions:
            raise ValueError(f"Duplicate gas component: {name}")
        fractions[name] = float(frac)
    return GasComposition.from_fractions(fractions)


def _read_tag(tag: str, tag_type: TagType, address: Optional[str], verbose: bool, json_output: bool) -> None:
    setup_logging(verbose)
    host = require_address(address)

    try:
        path = TagPath.parse(tag)
        with TagClient(host) as client:
            tag_value = client.read(path, tag_type)
        if json_output:
            typer.echo(json.dumps({"tag": str(path), "type": tag_type.logix_name, "value": tag_value.value}))
        else:
            typer.echo(f"Tag type:    {tag_type.logix_name}    Tag value:    {format_value(tag_value.value)}")
    except TagPathError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(EXIT_USAGE)
    except (ConnectError, ProtocolIOError) as e:
        typer.echo(f"Error: Connection/protocol error: {e}", err=True)
        raise typer.Exit(EXIT_IO)
    except Exception as e:
        typer.echo(f"Error: Unexpected error: {e}", err=True)
        if verbose:
            import traceback
            traceback.print_exc()
        raise typer.Exit(EXIT_UNEXPECTED)


# ============================================================================
# Commands
# ============================================================================


@app.command(name="read-int")
def read_int(
    tag: TagArgument,
    address: AddressOption = None,
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
) -> None:
    """Read the INT value of a tag."""
    _read_tag(tag, TagType.INT, address, verbose, json_output)


@app.command(name="read-dint")
def read_dint(
    tag: TagArgument,
    address: AddressOption = None,
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
) -> None:
    """Read the DINT value of a tag."""
    _read_tag(tag, TagType.DINT, address, verbose, json_output)


@app.command(name="read-real")
def read_real(
    tag: TagArgument,
    address: AddressOption = None,
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
) -> None:
    """Read the REAL value of a tag."""
    _read_tag(tag, TagType.REAL, address, verbose, json_output)


@app.command(name="read-bool")
def read_bool(
    tag: TagArgument,
    address: AddressOption = None,
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
) -> None:
    """Read the BOOL value of a tag."""
    _read_tag(tag, TagType.BOOL, address, verbose, json_output)


@app.command()
def write(
    tag: TagArgument,
    tag_type: Annotated[TagType, typer.Argument(help="Tag type", case_sensitive=False)],
    value: Annotated[str, typer.Argument(help="Value (bool: true/false/1/0/on/off; int/dint: decimal or 0x hex; real: float)")],
    address: AddressOption = None,
    verbose: VerboseOption = False,
) -> None:
    """
    Write a value to a single tag.

    The value is range-checked against the declared type before anything is sent.
    """
    setup_logging(verbose)
    host = require_address(address)

    try:
        path = TagPath.parse(tag)
        tag_value = parse_value(tag_type, value)
    except TagPathError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(EXIT_USAGE)
    except ValueError as e:
        typer.echo(f"Error: Invalid value: {e}", err=True)
        raise typer.Exit(EXIT_USAGE)

    try:
        with TagClient(host) as client:
            client.write(path, tag_value)
        typer.echo(f"OK: Wrote {path} = {format_value(tag_value.value)} ({tag_type.logix_name})")
    except (ConnectError, ProtocolIOError) as e:
        typer.echo(f"Error: Connection/protocol error: {e}", err=True)
        raise typer.Exit(EXIT_IO)
    except Exception as e:
        typer.echo(f"Error: Unexpected error: {e}", err=True)
        if verbose:
            import traceback
            traceback.print_exc()
        raise typer.Exit(EXIT_UNEXPECTED)


@app.command(name="bridge-write")
def bridge_write(
    port: Annotated[str, typer.Option("--port", help="Serial port of the flow instrument", envvar="PYABTAG_SERIAL_PORT")],
    velocity_register: Annotated[int, typer.Option("--velocity-register", min=0, max=65534, help="Holding register of the velocity float")],
    rate_register: Annotated[int, typer.Option("--rate-register", min=0, max=65534, help="Holding register of the actual rate float (m³/h)")],
    pressure_tag: Annotated[str, typer.Option("--pressure-tag", help="REAL tag holding line pressure (barg)")],
    temperature_tag: Annotated[str, typer.Option("--temperature-tag", help="REAL tag holding line temperature (°C)")],
    diameter: Annotated[float, typer.Option("--diameter", min=0.0, help="Pipe inside diameter (inches)")],
    raw_rate_tag: Annotated[str, typer.Option("--raw-rate-tag", help="REAL tag receiving the actual rate (m³/d)")],
    base_rate_tag: Annotated[str, typer.Option("--base-rate-tag", help="REAL tag receiving the corrected rate (Sm³/d)")],
    address: AddressOption = None,
    slave: Annotated[int, typer.Option("--slave", "-s", min=0, max=255, help="Modbus slave address", envvar="PYABTAG_SLAVE")] = 1,
    baudrate: Annotated[int, typer.Option("--baudrate", "-b", help="Serial baud rate", envvar="PYABTAG_BAUDRATE")] = 9600,
    timeout: Annotated[float, typer.Option("--timeout", "-t", help="Serial response timeout in seconds")] = 1.0,
    gas: Annotated[
        Optional[list[str]],
        typer.Option("--gas", help="Gas component NAME=FRACTION (repeatable; normalized to 1.0)"),
    ] = None,
    interval: Annotated[float, typer.Option("--interval", "-i", help="Cycle interval in seconds")] = 0.5,
    retries: Annotated[int, typer.Option("--retries", "-r", min=0, help="Consecutive transient failures tolerated")] = 3,
    cycles: Annotated[Optional[int], typer.Option("--cycles", min=1, help="Stop after N cycles (default: run until stopped)")] = None,
    verbose: VerboseOption = False,
) -> None:
    """
    Poll a Modbus RTU flow meter, correct its rate to base conditions, write results to tags.

    Each cycle reads velocity and actual rate from the meter and pressure and temperature
    from the controller, computes the standard rate with the Peng-Robinson equation of
    state, then writes the actual rate (m³/d) and the corrected rate (Sm³/d).
    Press Ctrl+C to stop gracefully.
    """
    setup_logging(verbose)
    host = require_address(address)

    if interval < 0:
        typer.echo(f"Error: Interval must be >= 0, got {interval}", err=True)
        raise typer.Exit(EXIT_USAGE)

    try:
        config = BridgeConfig(
            velocity_register=velocity_register,
            rate_register=rate_register,
            pressure_tag=TagPath.parse(pressure_tag),
            temperature_tag=TagPath.parse(temperature_tag),
            raw_rate_tag=TagPath.parse(raw_rate_tag),
            base_rate_tag=TagPath.parse(base_rate_tag),
            diameter_in=diameter,
            composition=parse_gas(gas or []),
            interval_s=interval,
            retry=RetryPolicy(max_attempts=retries),
        )
    except TagPathError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(EXIT_USAGE)
    except ValueError as e:
        typer.echo(f"Error: Invalid bridge configuration: {e}", err=True)
        raise typer.Exit(EXIT_USAGE)

    def report(cycle: Cycle) -> None:
        typer.echo(f"\r{format_status(cycle)}", nl=False)

    cancel = threading.Event()
    previous = signal.signal(signal.SIGTERM, lambda signum, frame: cancel.set())
    try:
        with TagClient(host) as tags, FieldBusClient(port, slave=slave, baudrate=baudrate, timeout=timeout) as bus:
            loop = BridgeLoop(tags, bus, config, reporter=report, cancel=cancel)
            completed = loop.run(max_cycles=cycles)
        typer.echo("")
        logger.info("Bridge stopped after %d cycles", completed)
    except (ConnectError, ProtocolIOError) as e:
        typer.echo("", err=True)
        typer.echo(f"Error: Connection/protocol error: {e}", err=True)
        raise typer.Exit(EXIT_IO)
    except ComputationFault as e:
        typer.echo("", err=True)
        typer.echo(f"Error: Computation fault: {e}", err=True)
        raise typer.Exit(EXIT_COMPUTATION)
    except KeyboardInterrupt:
        typer.echo("\nStopped by user", err=True)
        raise typer.Exit(0)
    except Exception as e:
        typer.echo(f"Error: Unexpected error: {e}", err=True)
        if verbose:
            import traceback
            traceback.print_exc()
        raise typer.Exit(EXIT_UNEXPECTED)
    finally:
        signal.signal(signal.SIGTERM, previous)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        typer.echo(f"pyabtag {__version__}")
        raise typer.Exit(0)


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option("--version", callback=version_callback, is_eager=True, help="Show version and exit"),
    ] = None,
) -> None:
    """pyabtag - tag read/write and flow bridge for Allen-Bradley Logix controllers."""
    pass


if __name__ == "__main__":
    app()
