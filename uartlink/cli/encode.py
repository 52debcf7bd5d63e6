#!/usr/bin/env python3
"""
uartlink Encoder CLI - Frame a payload and write the serial line to an audio file.
"""

import logging
import sys

import click

from uartlink import TICK_RATE, BIT_RATE, encode_frame, encode_line
from uartlink.capture import write_line


def parse_payload(payload: str, hex_input: bool) -> bytes:
    """
    Parse a payload argument.

    Args:
        payload: Text, or hex digits when hex_input is set ("48 49", "4849")
        hex_input: Interpret payload as hex

    Returns:
        Payload bytes
    """
    if hex_input:
        return bytes.fromhex(payload)
    return payload.encode("utf-8")


@click.command()
@click.argument("payload", type=str)
@click.option(
    "-o", "--output",
    type=click.Path(),
    default="uartlink_line.wav",
    help="Output WAV file path",
)
@click.option(
    "-x", "--hex", "hex_input",
    is_flag=True,
    help="Payload is hex digits instead of text",
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
    "-a", "--amplitude",
    type=float,
    default=0.7,
    help="Amplitude 0.0-1.0 (default: 0.7)",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
def main(payload: str, output: str, hex_input: bool, tick_rate: int, bit_rate: int, amplitude: float, verbose: bool):
    """
    Frame PAYLOAD and write the serial line it produces to a WAV file.

    Examples:

        uartlink-encode HI -o hi.wav

        uartlink-encode --hex "48 49" -b 9600 -t 96000 -o hi.wav
    """
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    try:
        data = parse_payload(payload, hex_input)
        frame = encode_frame(data)
    except ValueError as e:
        click.echo(f"Error parsing payload: {e}", err=True)
        sys.exit(1)

    if not data:
        click.echo("Error parsing payload: payload is empty", err=True)
        sys.exit(1)

    if verbose:
        click.echo(f"Framing {len(data)} byte payload...")
        click.echo(f"  Frame: {frame.hex(' ')}")
        click.echo(f"  Output: {output}")
        click.echo(f"  Tick rate: {tick_rate} Hz")
        click.echo(f"  Bit rate: {bit_rate} bps")

    try:
        levels = encode_line(data, tick_rate, bit_rate)
        write_line(output, levels, tick_rate, amplitude)
        click.echo(f"✓ Generated {output} ({len(levels)} ticks)")
    except Exception as e:
        click.echo(f"Error generating file: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
