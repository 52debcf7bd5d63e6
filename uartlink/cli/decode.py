#!/usr/bin/env python3
"""
uartlink Decoder CLI - Decode frames from a captured or live serial line.
"""

import logging
import sys

import click

from uartlink import TICK_RATE, BIT_RATE, FrameResult
from uartlink.capture import decode_file


def format_result(result: FrameResult) -> str:
    """Format a frame result as a single line."""
    status = "OK" if result.valid else f"ERR({result.status})"
    length = result.length if result.declared_length is None else result.declared_length
    data = result.payload.hex(" ") if result.payload else "(empty)"
    return f"{status:<16} len={length:<3} {data}"


@click.command()
@click.option(
    "-i", "--input",
    type=click.Path(exists=True),
    help="Decode from file instead of live audio",
)
@click.option(
    "-d", "--device",
    type=int,
    help="Audio input device number (default: system default)",
)
@click.option(
    "-t", "--tick-rate",
    type=int,
    default=TICK_RATE,
    help=f"Ticks (samples) per second (default: {TICK_RATE})",
)
@click.option(
    "-b", "--bit-rate",
    type=int,
    default=BIT_RATE,
    help=f"Line bit rate (default: {BIT_RATE})",
)
@click.option(
    "--check-stop-bit",
    is_flag=True,
    help="Drop bytes whose stop bit is low",
)
@click.option(
    "-l", "--list-devices",
    is_flag=True,
    help="List available audio input devices",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output with statistics",
)
def main(input: str | None, device: int | None, tick_rate: int, bit_rate: int, check_stop_bit: bool, list_devices: bool, verbose: bool):
    """
    Decode uartlink frames from a serial line capture.

    Examples:

        uartlink-decode -i hi.wav           # Decode from file

        uartlink-decode -d 2                # Live decode from device 2

        uartlink-decode --list-devices      # Show audio devices
    """
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    if list_devices:
        import sounddevice as sd
        click.echo("Audio Input Devices:")
        click.echo("-" * 60)
        for i, dev in enumerate(sd.query_devices()):
            if dev['max_input_channels'] > 0:
                click.echo(f"  [{i}] {dev['name']}")
        return

    # File decoding mode
    if input:
        click.echo(f"Decoding from file: {input}")
        click.echo("-" * 40)

        try:
            results = decode_file(input, tick_rate, bit_rate, check_stop_bit=check_stop_bit)
        except ValueError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)

        if not results:
            click.echo("No frames detected.", err=True)
            sys.exit(1)

        valid = sum(1 for result in results if result.valid)
        click.echo(f"Detected {len(results)} frames ({valid} valid):")
        for result in results:
            click.echo(f"  {format_result(result)}")
        return

    # Live decoding mode
    from uartlink.monitor import LineMonitor

    click.echo("Decoding frames from live audio input...")
    if device is not None:
        click.echo(f"Using device {device}")
    click.echo("Press Ctrl+C to stop.")
    click.echo("-" * 40)

    monitor = LineMonitor(
        tick_rate=tick_rate,
        bit_rate=bit_rate,
        check_stop_bit=check_stop_bit,
        device=device,
    )

    try:
        monitor.start()

        while True:
            result = monitor.get_frame(timeout=0.1)
            if result is not None:
                click.echo(format_result(result))
                if verbose:
                    click.echo(f"Stats: {monitor.get_statistics()}")

    except KeyboardInterrupt:
        click.echo("\n\nStopped.")
    except Exception as e:
        click.echo(f"\nError: {e}", err=True)
        sys.exit(1)
    finally:
        monitor.stop()


if __name__ == "__main__":
    main()
