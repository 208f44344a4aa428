"""notch-link command line.

Usage:
    notch-link ports                      # List serial ports
    notch-link status                     # Connect and show console state
    notch-link status --format json       # Same, as JSON
    notch-link ping                       # Check the console answers
    notch-link menu                       # Jump the console to its main menu
    notch-link set brightness 5           # Change a console setting
    notch-link monitor                    # Print unsolicited console output

The port comes from --port, then NOTCH_PORT, then an interactive choice
among the detected ports.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from collections.abc import Awaitable, Callable, Sequence

import click
from serial.tools.list_ports_common import ListPortInfo

from .client import ConsoleClient, create_serial_client
from .config import LinkConfig
from .errors import (
    CapabilityError,
    ConnectionError,
    NotConnectedError,
    ProtocolBusyError,
    WriteError,
)
from .protocol import Command, CommandResult, ConsoleSnapshot
from .transport import TransportEvent, scan_ports

# Output format options
FORMAT_TABLE = "table"
FORMAT_JSON = "json"

# Exit code for a command the console answered with a failure
EXIT_FAILED = 1

SessionBody = Callable[[ConsoleClient], Awaitable[int]]


def _prompt_for_port(candidates: Sequence[ListPortInfo]) -> str | None:
    """Let the operator pick a port when more than one is detected."""
    if not candidates:
        return None
    if len(candidates) == 1:
        return candidates[0].device

    click.echo("Multiple serial ports found:", err=True)
    for index, port in enumerate(candidates, start=1):
        click.echo(f"  {index}. {port.device}  {port.description or ''}".rstrip(), err=True)
    choice = click.prompt(
        "Select port", type=click.IntRange(1, len(candidates)), default=1, err=True
    )
    return candidates[choice - 1].device


def _run_session(config: LinkConfig, body: SessionBody) -> None:
    """Open a console session, run `body`, always disconnect.

    Maps library errors to messages that tell the operator what to do next.
    """

    async def execute() -> int:
        client = create_serial_client(config, port_selector=_prompt_for_port)
        try:
            await client.open_session()
            return await body(client)
        finally:
            await client.close()

    try:
        code = asyncio.run(execute())
    except CapabilityError as e:
        raise click.ClickException(f"Serial ports are not available on this system: {e}") from e
    except ConnectionError as e:
        raise click.ClickException(
            f"{e}\nCheck the cable and that no other program has the port open."
        ) from e
    except NotConnectedError as e:
        raise click.ClickException(f"Console connection lost: {e}\nReconnect and retry.") from e
    except WriteError as e:
        raise click.ClickException(
            f"Could not write to the console: {e}\nReconnect and retry."
        ) from e
    except ProtocolBusyError as e:
        raise click.ClickException(str(e)) from e
    except KeyboardInterrupt:
        click.echo("\nDisconnected", err=True)
        return
    if code:
        sys.exit(code)


def _report(result: CommandResult, message: str) -> int:
    if result.success:
        click.echo(message)
        return 0
    click.echo(f"Failed: {result.error}", err=True)
    return EXIT_FAILED


def _echo_snapshot(snapshot: ConsoleSnapshot, output_format: str) -> None:
    if output_format == FORMAT_JSON:
        click.echo(json.dumps(snapshot.model_dump(), indent=2))
        return

    info = snapshot.info
    click.echo(f"Firmware: {info.firmware if info and info.firmware else 'Unknown'}")
    click.echo(f"Version:  {info.version if info and info.version else 'Unknown'}")
    click.echo(f"Device:   {info.device if info and info.device else 'Unknown'}")

    if snapshot.memory is not None:
        memory = snapshot.memory
        click.echo("\nMemory:")
        click.echo(f"  SRAM:   {memory.sram} bytes")
        click.echo(f"  Flash:  {memory.flash / 1024:.1f} KB")
        click.echo(f"  EEPROM: {memory.eeprom} bytes")

    if snapshot.settings is not None and snapshot.settings.values:
        click.echo("\nSettings:")
        for key, value in snapshot.settings.values.items():
            click.echo(f"  {key}: {value}")

    if snapshot.stats is not None and snapshot.stats.counters:
        click.echo("\nStats:")
        for key, value in snapshot.stats.counters.items():
            click.echo(f"  {key}: {value}")


@click.group()
@click.option("--port", "-p", help="Serial device (default: NOTCH_PORT or auto-detect)")
@click.option("--verbose", "-v", is_flag=True, help="Log protocol traffic to stderr")
@click.pass_context
def main(ctx: click.Context, port: str | None, verbose: bool) -> None:
    """notch-link - talk to a NOTCH console over USB serial."""
    # Logs go to stderr; stdout carries command output
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )
    try:
        ctx.obj = LinkConfig.from_env(port=port)
    except ValueError as e:
        raise click.UsageError(str(e)) from e


@main.command("ports")
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice([FORMAT_TABLE, FORMAT_JSON]),
    default=FORMAT_TABLE,
    help="Output format",
)
def ports(output_format: str) -> None:
    """List serial ports a console could be attached to."""
    found = scan_ports()

    if output_format == FORMAT_JSON:
        data = [
            {"device": p.device, "description": p.description, "hwid": p.hwid} for p in found
        ]
        click.echo(json.dumps(data, indent=2))
        return

    if not found:
        click.echo("No serial ports found.")
        return

    for p in found:
        click.echo(f"{p.device:<20} {p.description or ''}")


@main.command("status")
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice([FORMAT_TABLE, FORMAT_JSON]),
    default=FORMAT_TABLE,
    help="Output format",
)
@click.pass_obj
def status(config: LinkConfig, output_format: str) -> None:
    """Connect and show console info, settings, memory and stats."""

    async def body(client: ConsoleClient) -> int:
        # Memory was loaded by the session; only stats are missing
        stats = await client.get_stats()
        if stats.success:
            client.snapshot.stats = stats.payload
        _echo_snapshot(client.snapshot, output_format)
        return 0

    _run_session(config, body)


@main.command("ping")
@click.pass_obj
def ping(config: LinkConfig) -> None:
    """Check that the console responds."""

    async def body(client: ConsoleClient) -> int:
        return _report(await client.ping(), "Connection OK")

    _run_session(config, body)


@main.command("menu")
@click.pass_obj
def menu(config: LinkConfig) -> None:
    """Skip the console straight to its main menu."""

    async def body(client: ConsoleClient) -> int:
        return _report(await client.open_menu(), "Jumped to menu")

    _run_session(config, body)


@main.command("set")
@click.argument("key")
@click.argument("value")
@click.pass_obj
def set_setting(config: LinkConfig, key: str, value: str) -> None:
    """Change a console setting.

    Examples:

        notch-link set brightness 5
    """
    try:
        Command.update_setting(key, value)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e

    async def body(client: ConsoleClient) -> int:
        return _report(await client.update_setting(key, value), f"{key} = {value}")

    _run_session(config, body)


@main.command("monitor")
@click.pass_obj
def monitor(config: LinkConfig) -> None:
    """Print lines the console sends on its own, until Ctrl-C or unplug."""

    async def body(client: ConsoleClient) -> int:
        lost = asyncio.Event()
        client.transport.on(TransportEvent.UNSOLICITED_DATA, click.echo)
        client.transport.on(TransportEvent.DISCONNECTED, lost.set)
        click.echo("Listening (Ctrl-C to stop)", err=True)
        await lost.wait()
        click.echo("Console disconnected", err=True)
        return EXIT_FAILED

    _run_session(config, body)


if __name__ == "__main__":
    main()
